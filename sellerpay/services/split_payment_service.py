"""
Split Payment Service

Pure calculation of split payments between the marketplace and its sellers:
- Commission and payout for a single amount
- Multi-seller orders, each seller at its own rate
- Reconciliation checks on computed splits

ROUNDING RULE:
    commission = amount * rate, rounded to the nearest cent with ROUND_HALF_UP
                 (half away from zero; amounts are never negative)
    payout     = amount - commission

The payout is always the remainder and is never rounded on its own, so
commission + payout == amount holds exactly for every seller.

Amounts are integers in the smallest currency unit (cents).
"""

from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Mapping, Optional
import uuid

from sellerpay.core.exceptions import PayoutValidationError, SplitIntegrityError
from sellerpay.schemas.order import OrderLineInput, OrderPaidNotification
from sellerpay.schemas.split import SellerSplit, SplitAmounts, SplitResult
from sellerpay.services.commission_service import RateLike, validate_commission_rate


# Aggregate tolerance in cents when comparing commission + payout with a total
ROUNDING_TOLERANCE = 1

_CENT = Decimal("1")


class SplitPaymentCalculator:
    """
    Calculates commission/payout splits for amounts and orders.

    Stateless; safe to share between requests.
    """

    def calculate_commission(self, amount: int, rate: RateLike) -> int:
        """
        Commission on an amount at a rate, rounded half-up to the cent.

        Args:
            amount: Amount in cents (>= 0)
            rate: Commission rate as fraction (0-1)
        """
        if amount < 0:
            raise PayoutValidationError(
                "Amount cannot be negative", details={"amount": amount}
            )
        rate = validate_commission_rate(rate)
        return int((Decimal(amount) * rate).quantize(_CENT, rounding=ROUND_HALF_UP))

    def calculate_seller_payout(self, amount: int, commission: int) -> int:
        """Seller payout as the remainder after commission."""
        if commission < 0 or commission > amount:
            raise SplitIntegrityError(
                "Invalid commission: commission must be between 0 and order total",
                details={"amount": amount, "commission": commission},
            )
        return amount - commission

    def split(self, amount: int, rate: RateLike) -> SplitAmounts:
        """
        Split an amount into (commission, payout).

        Examples:
            >>> SplitPaymentCalculator().split(10000, Decimal("0.15"))
            SplitAmounts(commission=1500, payout=8500)
            >>> SplitPaymentCalculator().split(7550, Decimal("0.1333"))
            SplitAmounts(commission=1006, payout=6544)
        """
        commission = self.calculate_commission(amount, rate)
        return SplitAmounts(commission=commission, payout=self.calculate_seller_payout(amount, commission))

    @staticmethod
    def group_lines_by_seller(lines: Iterable[OrderLineInput]) -> Dict[uuid.UUID, int]:
        """
        Sum line prices per seller.

        Lines without a seller are skipped. Sellers keep the order of their
        first line in the order.
        """
        totals: Dict[uuid.UUID, int] = OrderedDict()
        for line in lines:
            if line.seller_id is None:
                continue
            totals[line.seller_id] = totals.get(line.seller_id, 0) + line.price
        return totals

    def split_order(
        self,
        order: OrderPaidNotification,
        seller_rates: Optional[Mapping[uuid.UUID, RateLike]] = None,
        default_rate: Optional[RateLike] = None,
    ) -> SplitResult:
        """
        Split an order between the platform and each seller.

        Each seller's rate applies only to that seller's own line total.
        Sellers missing from seller_rates use default_rate. An order with no
        seller-owned lines gives an empty breakdown with zero totals.

        Args:
            order: Paid order with lines
            seller_rates: Seller ID -> commission rate
            default_rate: Rate for sellers not in seller_rates
        """
        seller_rates = seller_rates or {}
        line_totals = self.group_lines_by_seller(order.lines)

        seller_splits = []
        total_commission = 0
        total_payout = 0

        for seller_id, line_total in line_totals.items():
            rate = seller_rates.get(seller_id, default_rate)
            if rate is None:
                raise PayoutValidationError(
                    f"No commission rate for seller {seller_id}",
                    details={"seller_id": str(seller_id)},
                )
            rate = validate_commission_rate(rate)
            amounts = self.split(line_total, rate)
            seller_splits.append(
                SellerSplit(
                    seller_id=seller_id,
                    amount=amounts.payout,
                    commission=amounts.commission,
                    line_total=line_total,
                    commission_rate=rate,
                )
            )
            total_commission += amounts.commission
            total_payout += amounts.payout

        return SplitResult(
            order_id=order.id,
            total_amount=order.total,
            commission=total_commission,
            seller_payout=total_payout,
            seller_splits=seller_splits,
        )

    def validate_split(self, total: int, commission: int, payout: int) -> None:
        """
        Validate a single split against its total.

        Raises:
            SplitIntegrityError: negative parts, commission above total, or
                commission + payout off by more than one cent
        """
        if commission < 0:
            raise SplitIntegrityError("Commission cannot be negative", details={"commission": commission})
        if payout < 0:
            raise SplitIntegrityError("Seller payout cannot be negative", details={"payout": payout})
        if commission > total:
            raise SplitIntegrityError(
                "Commission cannot exceed total amount",
                details={"commission": commission, "total": total},
            )

        calculated_total = commission + payout
        if abs(calculated_total - total) > ROUNDING_TOLERANCE:
            raise SplitIntegrityError(
                f"Split payment amounts do not add up: commission ({commission}) + "
                f"payout ({payout}) = {calculated_total}, expected {total}",
                details={"commission": commission, "payout": payout, "total": total},
            )

    def validate(self, result: SplitResult) -> None:
        """
        Validate an order split.

        Every seller split must reconcile exactly. The aggregate is compared
        with the sum of seller line totals, and seller lines may not exceed
        the order total.

        Raises:
            SplitIntegrityError: on any reconciliation failure
        """
        for split in result.seller_splits:
            self.validate_split(split.line_total, split.commission, split.amount)
            if split.commission + split.amount != split.line_total:
                raise SplitIntegrityError(
                    f"Seller {split.seller_id} split does not reconcile with line total",
                    details={
                        "seller_id": str(split.seller_id),
                        "commission": split.commission,
                        "amount": split.amount,
                        "line_total": split.line_total,
                    },
                )

        self.validate_split(result.seller_line_total, result.commission, result.seller_payout)

        if result.seller_line_total > result.total_amount + ROUNDING_TOLERANCE:
            raise SplitIntegrityError(
                f"Seller line totals ({result.seller_line_total}) exceed order total ({result.total_amount})",
                details={"order_id": result.order_id},
            )
