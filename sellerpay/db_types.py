"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# UUID type that works with both databases (CHAR(32) on SQLite)
UUIDType = PG_UUID

# Commission rates are stored as fractions with four decimal places (0.1333 = 13.33%)
RateType = Numeric(5, 4, asdecimal=True)
