from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from adon.api.deps import get_components, get_current_caller
from adon.core.components import Components
from adon.core.errors import NotFoundError, PermissionDeniedError
from adon.core.security import CallerIdentity
from adon.models.transaction import Transaction
from adon.schemas.transaction import DisputeIn, HoldPaymentIn, SafetyCodeIn, SafetyCodeResult, StatusUpdate

router = APIRouter()


def _present(transaction: Transaction, caller: CallerIdentity) -> Dict[str, Any]:
    """Record as the caller may see it: the safety code is for the buyer's eyes only."""
    document = transaction.to_document()
    if caller.uid != transaction.buyer_id:
        document.pop("safetyCode", None)
    return document


def _check_party(transaction: Transaction, caller: CallerIdentity) -> None:
    if caller.uid not in (transaction.buyer_id, transaction.seller_id):
        raise PermissionDeniedError("Only the buyer or seller can access this transaction")


async def _get_for_caller(components: Components, transaction_id: str, caller: CallerIdentity) -> Transaction:
    transaction = await components.transactions.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    _check_party(transaction, caller)
    return transaction


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_in: Dict[str, Any] = Body(...),
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    if caller.uid not in (transaction_in.get("buyerId"), transaction_in.get("sellerId")):
        raise PermissionDeniedError("Only the buyer or seller can create a transaction")
    transaction = await components.transactions.create_transaction(transaction_in)
    return _present(transaction, caller)


@router.get("/for-chat")
async def find_for_chat(
    listingId: str,
    buyerId: str,
    sellerId: str,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    """Transaction shown in a chat thread, or null when the parties have none yet."""
    if caller.uid not in (buyerId, sellerId):
        raise PermissionDeniedError("Only the buyer or seller can look up this transaction")
    transaction = await components.transactions.find_for_chat(listingId, buyerId, sellerId)
    return _present(transaction, caller) if transaction else None


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    transaction = await _get_for_caller(components, transaction_id, caller)
    return _present(transaction, caller)


@router.post("/{transaction_id}/status")
async def update_status(
    transaction_id: str,
    update: StatusUpdate,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    await _get_for_caller(components, transaction_id, caller)
    transaction = await components.transactions.report_milestone(transaction_id, update.status)
    return _present(transaction, caller)


@router.post("/{transaction_id}/hold")
async def hold_payment(
    transaction_id: str,
    hold: HoldPaymentIn,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    transaction = await _get_for_caller(components, transaction_id, caller)
    if caller.uid != transaction.buyer_id:
        raise PermissionDeniedError("Only the buyer can pay for this transaction")
    transaction = await components.transactions.hold_payment(
        transaction_id, hold.payment_method, hold.payment_provider_ref
    )
    return _present(transaction, caller)


@router.post("/{transaction_id}/dispute")
async def open_dispute(
    transaction_id: str,
    dispute: DisputeIn,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    await _get_for_caller(components, transaction_id, caller)
    transaction = await components.transactions.open_dispute(transaction_id, caller.uid, dispute.reason)
    return _present(transaction, caller)


@router.post("/{transaction_id}/verify-code", response_model=SafetyCodeResult)
async def verify_safety_code(
    transaction_id: str,
    body: SafetyCodeIn,
    caller: CallerIdentity = Depends(get_current_caller),
    components: Components = Depends(get_components),
):
    """The seller types in the code the buyer shows them at handoff."""
    transaction = await _get_for_caller(components, transaction_id, caller)
    if caller.uid != transaction.seller_id:
        raise PermissionDeniedError("Only the seller can confirm the handoff")
    verified = await components.transactions.verify_safety_code(transaction_id, body.code)
    return SafetyCodeResult(verified=verified)
