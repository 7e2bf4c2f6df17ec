"""Marketplace seller payouts: commission splits, escrowed payouts and payout review."""

__version__ = "1.0.0"
