"""
Escrow transactions for peer-to-peer trades.

A transaction is created once per payment attempt, moves forward through
trade-type milestones and is never deleted. Status and escrow status are
set independently: a dispute changes `status` while the money stays
`paid_held`.

The transition table below describes the legal moves. It is only enforced
when ESCROW_ENFORCE_TRANSITIONS is on; callers are otherwise trusted.
"""
import logging
import secrets
from typing import Any, Dict, Optional

from pydantic import ValidationError

from adon.core.errors import (
    IllegalTransitionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
)
from adon.core.store import DocumentStore
from adon.models.transaction import (
    Dispute,
    DisputeStatus,
    EscrowStatus,
    TradeType,
    Transaction,
    TransactionCreate,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

TRANSACTIONS = "transactions"
USERS = "users"

# Trades confirmed in person with the buyer's safety code
SAFETY_CODE_TRADES = {TradeType.MEETUP.value, TradeType.LOCKER.value}

TERMINAL_STATUSES = {TransactionStatus.RELEASED, TransactionStatus.REFUNDED}
SIDE_BRANCHES = {TransactionStatus.CANCELLED, TransactionStatus.DISPUTED, TransactionStatus.REFUNDED}

# Statuses in which the handoff can still be confirmed with the safety code
HANDOFF_STATUSES = {
    TransactionStatus.PAID_HELD,
    TransactionStatus.MEETUP_SCHEDULED,
    TransactionStatus.LOCKER_RESERVED,
    TransactionStatus.DEPOSITED,
    TransactionStatus.PICKED_UP,
    TransactionStatus.DELIVERED,
    TransactionStatus.BUYER_CONFIRMED,
}

# Trade milestones a buyer or seller may report themselves. Payment, release,
# refund and disputes each go through their own operation.
PARTY_STATUSES = {
    TransactionStatus.MEETUP_SCHEDULED,
    TransactionStatus.SHIPPED,
    TransactionStatus.DELIVERED,
    TransactionStatus.LOCKER_RESERVED,
    TransactionStatus.DEPOSITED,
    TransactionStatus.PICKED_UP,
    TransactionStatus.BUYER_CONFIRMED,
    TransactionStatus.CANCELLED,
}

MAX_SAFETY_CODE_ATTEMPTS = 5

_FORWARD = {
    TransactionStatus.INITIATED: {TransactionStatus.PENDING_PAYMENT},
    TransactionStatus.PENDING_PAYMENT: {TransactionStatus.PAID_HELD},
    TransactionStatus.PAID_HELD: {
        TransactionStatus.MEETUP_SCHEDULED,
        TransactionStatus.SHIPPED,
        TransactionStatus.LOCKER_RESERVED,
    },
    TransactionStatus.MEETUP_SCHEDULED: {TransactionStatus.BUYER_CONFIRMED, TransactionStatus.RELEASED},
    TransactionStatus.SHIPPED: {TransactionStatus.DELIVERED},
    TransactionStatus.LOCKER_RESERVED: {TransactionStatus.DEPOSITED},
    TransactionStatus.DEPOSITED: {TransactionStatus.PICKED_UP},
    TransactionStatus.DELIVERED: {TransactionStatus.BUYER_CONFIRMED, TransactionStatus.RELEASED},
    TransactionStatus.PICKED_UP: {TransactionStatus.BUYER_CONFIRMED, TransactionStatus.RELEASED},
    TransactionStatus.BUYER_CONFIRMED: {TransactionStatus.RELEASED},
    TransactionStatus.DISPUTED: {TransactionStatus.RELEASED},
    TransactionStatus.CANCELLED: set(),
}

VALID_TRANSITIONS = {
    status: (set() if status in TERMINAL_STATUSES else (_FORWARD.get(status, set()) | SIDE_BRANCHES) - {status})
    for status in TransactionStatus
}
# A verified safety code releases straight from any handoff state
for _status in HANDOFF_STATUSES:
    VALID_TRANSITIONS[_status].add(TransactionStatus.RELEASED)


def can_transition(current: str, target: str) -> bool:
    return TransactionStatus(target) in VALID_TRANSITIONS[TransactionStatus(current)]


def generate_safety_code() -> str:
    """Four digits, 1000-9999."""
    return str(1000 + secrets.randbelow(9000))


class TransactionService:
    def __init__(self, store: DocumentStore, enforce_transitions: bool = False):
        self.store = store
        self.enforce_transitions = enforce_transitions

    def _path(self, transaction_id: str) -> str:
        if not transaction_id:
            raise InvalidArgumentError("transactionId is required")
        return f"{TRANSACTIONS}/{transaction_id}"

    async def create_transaction(self, data: Dict[str, Any]) -> Transaction:
        """
        Create a transaction awaiting payment.

        The amount breakdown is taken as given (fees come from the pricing
        layer) but must add up: total = item + shipping + platformFee.
        """
        try:
            request = TransactionCreate.model_validate(data)
        except ValidationError as e:
            raise InvalidArgumentError("Invalid transaction", details=e.errors(include_url=False, include_context=False)) from e

        transaction_id = self.store.new_id(TRANSACTIONS)
        now = self.store.server_timestamp()
        transaction = Transaction(
            **request.model_dump(),
            id=transaction_id,
            status=TransactionStatus.PENDING_PAYMENT,
            escrow_status=EscrowStatus.PENDING_PAYMENT,
            created_at=now,
            updated_at=now,
        )

        await self.store.set(self._path(transaction_id), transaction.to_document())
        logger.info(f"💳 Created {transaction.trade_type} transaction {transaction_id} for listing {transaction.listing_id}")
        return await self._require(transaction_id)

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        data = await self.store.get(self._path(transaction_id))
        if data is None:
            return None
        return Transaction.from_document(transaction_id, data)

    async def _require(self, transaction_id: str) -> Transaction:
        transaction = await self.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def find_for_chat(self, listing_id: str, buyer_id: str, seller_id: str) -> Optional[Transaction]:
        """The transaction between a buyer and seller for a listing, if any."""
        matches = await self.store.query(
            TRANSACTIONS,
            {"listingId": listing_id, "buyerId": buyer_id, "sellerId": seller_id},
            limit=1,
        )
        if not matches:
            return None
        doc_id, data = matches[0]
        return Transaction.from_document(doc_id, data)

    async def update_status(
        self,
        transaction_id: str,
        status: str,
        escrow_status: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Merge-write a new status. escrowStatus only changes when given.

        Reaching `released` bumps the seller's sales counter; a failure there
        is logged and does not undo the status change.
        """
        path = self._path(transaction_id)
        try:
            status = TransactionStatus(status)
            escrow_status = EscrowStatus(escrow_status) if escrow_status is not None else None
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        current = None
        if self.enforce_transitions or status is TransactionStatus.RELEASED:
            current = await self._require(transaction_id)
        if self.enforce_transitions and not can_transition(current.status, status):
            raise IllegalTransitionError(f"Cannot transition from {current.status} to {status.value}")

        updates: Dict[str, Any] = dict(extra or {})
        updates["status"] = status.value
        updates["updatedAt"] = self.store.server_timestamp()
        if escrow_status is not None:
            updates["escrowStatus"] = escrow_status.value

        await self.store.set(path, updates, merge=True)
        logger.info(f"Transaction {transaction_id} -> {status.value}" + (f" (escrow {escrow_status.value})" if escrow_status else ""))

        # Only the first move into released counts as a sale
        if status is TransactionStatus.RELEASED and current.status != TransactionStatus.RELEASED.value:
            await self._increment_seller_sales(current)

    async def _increment_seller_sales(self, transaction: Transaction) -> None:
        if not transaction.seller_id:
            return
        try:
            await self.store.increment(f"{USERS}/{transaction.seller_id}", "sales", 1)
        except Exception as e:
            logger.error(f"❌ Failed to increment sales count for transaction {transaction.id}: {e}")

    async def hold_payment(
        self,
        transaction_id: str,
        payment_method: Optional[str] = None,
        payment_provider_ref: Optional[str] = None,
    ) -> Transaction:
        """Payment captured into escrow; meetup and locker trades get their safety code now."""
        transaction = await self._require(transaction_id)

        extra: Dict[str, Any] = {}
        if payment_method:
            extra["paymentMethod"] = payment_method
        if payment_provider_ref:
            extra["paymentProviderRef"] = payment_provider_ref
        if transaction.trade_type in SAFETY_CODE_TRADES and not transaction.safety_code:
            extra["safetyCode"] = generate_safety_code()

        await self.update_status(transaction_id, TransactionStatus.PAID_HELD, EscrowStatus.PAID_HELD, extra=extra)
        return await self._require(transaction_id)

    async def open_dispute(self, transaction_id: str, opened_by: str, reason: str) -> Transaction:
        """Flag the trade as disputed; the escrowed money stays where it is."""
        if not opened_by or not reason or not reason.strip():
            raise InvalidArgumentError("openedBy and reason are required")
        await self._require(transaction_id)

        dispute = Dispute(
            opened_by=opened_by,
            reason=reason.strip(),
            opened_at=self.store.server_timestamp(),
            status=DisputeStatus.OPEN,
        )
        await self.update_status(transaction_id, TransactionStatus.DISPUTED, extra={"dispute": dispute.to_document()})
        return await self._require(transaction_id)

    async def report_milestone(self, transaction_id: str, status: str) -> Transaction:
        """
        Status change reported by a buyer or seller (meetup booked, parcel
        shipped, locker pickup...). Escrow status is never touched here.
        """
        try:
            target = TransactionStatus(status)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        if target not in PARTY_STATUSES:
            raise PermissionDeniedError(f"Status {target.value} cannot be set directly")

        transaction = await self._require(transaction_id)
        if TransactionStatus(transaction.status) in TERMINAL_STATUSES:
            raise IllegalTransitionError(f"Transaction {transaction_id} is already {transaction.status}")

        await self.update_status(transaction_id, target)
        return await self._require(transaction_id)

    async def verify_safety_code(self, transaction_id: str, code: str) -> bool:
        """
        Seller enters the buyer's code at handoff. Exact string match only.

        Only a trade whose money is still held can be confirmed; on a match
        status and escrow both move to `released`. Wrong codes are counted
        and verification locks after MAX_SAFETY_CODE_ATTEMPTS.
        """
        transaction = await self.get_transaction(transaction_id)
        if transaction is None or not transaction.safety_code:
            return False

        if (
            TransactionStatus(transaction.status) not in HANDOFF_STATUSES
            or transaction.escrow_status != EscrowStatus.PAID_HELD.value
        ):
            logger.info(f"Transaction {transaction_id} is {transaction.status}/{transaction.escrow_status}, not awaiting handoff")
            return False

        if transaction.safety_code_attempts >= MAX_SAFETY_CODE_ATTEMPTS:
            logger.warning(f"⚠️ Safety code locked for transaction {transaction_id}")
            raise QuotaExceededError("Too many wrong safety codes. Contact support to release this trade.")

        if not isinstance(code, str) or not secrets.compare_digest(transaction.safety_code.encode(), code.encode()):
            await self.store.increment(self._path(transaction_id), "safetyCodeAttempts", 1)
            logger.info(f"Safety code mismatch for transaction {transaction_id}")
            return False

        await self.update_status(transaction_id, TransactionStatus.RELEASED, EscrowStatus.RELEASED)
        return True
