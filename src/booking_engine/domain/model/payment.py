"""Payment ledger of a booking.

The ledger is an append-only list of PaymentTransactions plus the totals
derived from it.  Transactions are never edited or removed; corrections
are new, offsetting transactions (refunds carry a negative amount).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from booking_engine.domain.exceptions import InvalidPaymentAmountError, ValidationError
from booking_engine.domain.model.value_objects import Money

OVERPAYMENT_TOLERANCE = Decimal("0.01")


class TransactionOutcome(Enum):
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CASH = "cash"
    KHALTI = "khalti"
    ESEWA = "esewa"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"


class PaymentStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


@dataclass(frozen=True)
class PaymentTransaction:
    """Immutable ledger entry.  ``amount`` is signed: refunds are negative."""

    id: str
    amount: Decimal
    method: PaymentMethod | None
    outcome: TransactionOutcome
    gateway_reference: str
    timestamp: datetime

    @property
    def status(self) -> str:
        return self.outcome.value


def to_amount(value: str | int | float | Decimal) -> Decimal:
    """Coerce a gateway-supplied amount to a 2dp Decimal.

    Raises InvalidPaymentAmountError for anything that is not a finite number.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidPaymentAmountError(f"Malformed payment amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidPaymentAmountError(f"Malformed payment amount: {value!r}")
    return Money(abs(amount)).amount.copy_sign(amount)


@dataclass
class Payment:
    """Ledger plus derived totals.

    Invariant: ``paid_amount + due_amount == total_amount`` (within the
    overpayment tolerance) after every transaction.
    """

    total_amount: Money
    transactions: list[PaymentTransaction] = field(default_factory=list)
    paid_amount: Money | None = None
    refund_amount: Money | None = None
    method: PaymentMethod | None = None
    status: PaymentStatus = PaymentStatus.PENDING

    def __post_init__(self) -> None:
        if self.paid_amount is None:
            self.paid_amount = Money.zero(self.currency)
        if self.refund_amount is None:
            self.refund_amount = Money.zero(self.currency)

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    @property
    def due_amount(self) -> Money:
        return self.total_amount.saturating_sub(self.paid_amount)

    @property
    def is_settled(self) -> bool:
        return self.due_amount.is_zero

    # --- Recording ------------------------------------------------------------

    def record_transaction(
        self,
        amount: Decimal,
        method: PaymentMethod | None,
        gateway_reference: str,
        outcome: TransactionOutcome,
        timestamp: datetime,
        tolerance: Decimal = OVERPAYMENT_TOLERANCE,
    ) -> PaymentTransaction:
        """Append one transaction and recompute the totals.

        ``amount`` is the positive magnitude for every outcome; refunds are
        stored with a negative sign.
        """
        if not gateway_reference or not gateway_reference.strip():
            raise ValidationError("Gateway reference is required")
        if amount < 0:
            raise InvalidPaymentAmountError(f"Payment amount cannot be negative, got {amount}")

        if outcome is TransactionOutcome.CAPTURED:
            self._check_capture(amount, gateway_reference, tolerance)
            signed = amount
        elif outcome is TransactionOutcome.REFUNDED:
            if amount <= 0:
                raise InvalidPaymentAmountError("Refund amount must be positive")
            if amount > self.paid_amount.amount:
                raise InvalidPaymentAmountError(
                    f"Refund {amount} exceeds paid amount {self.paid_amount}"
                )
            signed = -amount
        else:
            signed = amount

        txn = PaymentTransaction(
            id=f"txn_{uuid.uuid4().hex[:16]}",
            amount=signed,
            method=method,
            outcome=outcome,
            gateway_reference=gateway_reference.strip(),
            timestamp=timestamp,
        )
        self.transactions.append(txn)

        if outcome is TransactionOutcome.CAPTURED:
            self.paid_amount = self.paid_amount + Money(amount, self.currency)
            if method is not None:
                self.method = method
        elif outcome is TransactionOutcome.REFUNDED:
            refunded = Money(amount, self.currency)
            self.paid_amount = self.paid_amount - refunded
            self.refund_amount = self.refund_amount + refunded

        self.status = self._derive_status(outcome)
        return txn

    def _check_capture(self, amount: Decimal, gateway_reference: str, tolerance: Decimal) -> None:
        if amount <= 0:
            raise InvalidPaymentAmountError("Captured amount must be positive")
        for txn in self.transactions:
            if (
                txn.outcome is TransactionOutcome.CAPTURED
                and txn.gateway_reference == gateway_reference.strip()
            ):
                raise InvalidPaymentAmountError(
                    f"Gateway reference '{gateway_reference}' was already captured"
                )
        if self.paid_amount.amount + amount > self.total_amount.amount + tolerance:
            raise InvalidPaymentAmountError(
                f"Payment of {amount} would overpay: paid {self.paid_amount}, "
                f"total {self.total_amount}"
            )

    def _derive_status(self, last_outcome: TransactionOutcome) -> PaymentStatus:
        if self.refund_amount.amount > 0:
            if self.paid_amount.is_zero:
                return PaymentStatus.REFUNDED
            return PaymentStatus.PARTIALLY_REFUNDED
        if self.is_settled:
            return PaymentStatus.COMPLETED
        if self.paid_amount.amount > 0:
            return PaymentStatus.PARTIAL
        if last_outcome is TransactionOutcome.FAILED:
            return PaymentStatus.FAILED
        return PaymentStatus.PENDING
