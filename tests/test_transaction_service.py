import pytest

from adon.core.errors import (
    IllegalTransitionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
)
from adon.services.transaction_service import (
    MAX_SAFETY_CODE_ATTEMPTS,
    TransactionService,
    can_transition,
    generate_safety_code,
)


def meetup_payload(**overrides):
    payload = {
        "listingId": "l1",
        "buyerId": "buyer",
        "sellerId": "seller",
        "tradeType": "meetup",
        "amount": {"item": 100, "shipping": 0, "platformFee": 5, "total": 105},
        "currency": "HUF",
        "meetup": {"date": "2024-05-01", "time": "18:00", "place": "Deák tér"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def service(store):
    return TransactionService(store)


@pytest.mark.asyncio
async def test_new_transaction_starts_pending_payment(service, store):
    transaction = await service.create_transaction(meetup_payload())

    stored = store.documents[f"transactions/{transaction.id}"]
    assert stored["status"] == "pending_payment"
    assert stored["escrowStatus"] == "pending_payment"
    assert stored["amount"] == {"item": 100, "shipping": 0, "platformFee": 5, "total": 105}
    assert stored["meetup"]["place"] == "Deák tér"
    assert "createdAt" in stored and "updatedAt" in stored


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"amount": {"item": 100, "shipping": 0, "platformFee": 5, "total": 100}},
    {"buyerId": ""},
    {"tradeType": "teleport"},
    {"delivery": {"recipientName": "A", "phone": "1", "address": "x", "postcode": "1000"}},
])
async def test_invalid_transactions_are_rejected(service, store, overrides):
    with pytest.raises(InvalidArgumentError):
        await service.create_transaction(meetup_payload(**overrides))
    assert store.documents == {}


@pytest.mark.asyncio
async def test_update_status_leaves_escrow_alone_unless_given(service, store):
    transaction = await service.create_transaction(meetup_payload())
    await service.update_status(transaction.id, "paid_held", "paid_held")

    await service.update_status(transaction.id, "disputed")

    stored = store.documents[f"transactions/{transaction.id}"]
    assert stored["status"] == "disputed"
    assert stored["escrowStatus"] == "paid_held"
    assert stored["listingId"] == "l1"


@pytest.mark.asyncio
async def test_unknown_status_is_invalid(service):
    transaction = await service.create_transaction(meetup_payload())
    with pytest.raises(InvalidArgumentError):
        await service.update_status(transaction.id, "teleported")


@pytest.mark.asyncio
async def test_transitions_are_not_checked_by_default(service, store):
    transaction = await service.create_transaction(meetup_payload())

    await service.update_status(transaction.id, "delivered")

    assert store.documents[f"transactions/{transaction.id}"]["status"] == "delivered"


@pytest.mark.asyncio
async def test_enforced_transitions_reject_illegal_moves(store):
    service = TransactionService(store, enforce_transitions=True)
    transaction = await service.create_transaction(meetup_payload())

    with pytest.raises(IllegalTransitionError):
        await service.update_status(transaction.id, "released")

    await service.update_status(transaction.id, "paid_held", "paid_held")
    assert store.documents[f"transactions/{transaction.id}"]["status"] == "paid_held"


def test_transition_table():
    assert can_transition("pending_payment", "paid_held")
    assert can_transition("paid_held", "locker_reserved")
    assert can_transition("locker_reserved", "deposited")
    assert can_transition("shipped", "disputed")
    assert can_transition("meetup_scheduled", "cancelled")
    assert not can_transition("pending_payment", "released")
    assert not can_transition("released", "refunded")
    assert not can_transition("refunded", "disputed")


@pytest.mark.asyncio
async def test_hold_payment_generates_safety_code_for_meetups(service):
    transaction = await service.create_transaction(meetup_payload())

    held = await service.hold_payment(transaction.id, payment_method="card", payment_provider_ref="pi_123")

    assert held.status == "paid_held"
    assert held.escrow_status == "paid_held"
    assert held.payment_provider_ref == "pi_123"
    assert len(held.safety_code) == 4 and held.safety_code.isdigit()


@pytest.mark.asyncio
async def test_hold_payment_without_code_for_delivery(service):
    payload = meetup_payload(
        tradeType="delivery",
        meetup=None,
        delivery={"recipientName": "Anna", "phone": "+36", "address": "Fő utca 1", "postcode": "1011"},
    )
    transaction = await service.create_transaction(payload)

    held = await service.hold_payment(transaction.id)

    assert held.safety_code is None


@pytest.mark.asyncio
async def test_hold_payment_on_missing_transaction(service):
    with pytest.raises(NotFoundError):
        await service.hold_payment("nope")


@pytest.mark.asyncio
async def test_open_dispute_keeps_money_held(service, store):
    transaction = await service.create_transaction(meetup_payload())
    await service.hold_payment(transaction.id)

    disputed = await service.open_dispute(transaction.id, "buyer", "Item not as described")

    assert disputed.status == "disputed"
    assert disputed.escrow_status == "paid_held"
    assert disputed.dispute.opened_by == "buyer"
    assert disputed.dispute.status == "open"


@pytest.mark.asyncio
async def test_verify_safety_code_releases_on_exact_match(service, store):
    store.seed("users/seller", {"name": "Seller", "sales": 2})
    transaction = await service.create_transaction(meetup_payload())
    held = await service.hold_payment(transaction.id)

    assert not await service.verify_safety_code(transaction.id, "0000" if held.safety_code != "0000" else "1111")
    assert not await service.verify_safety_code(transaction.id, f" {held.safety_code}")
    assert await service.verify_safety_code(transaction.id, held.safety_code)

    stored = store.documents[f"transactions/{transaction.id}"]
    assert stored["status"] == "released"
    assert stored["escrowStatus"] == "released"
    assert store.documents["users/seller"]["sales"] == 3


@pytest.mark.asyncio
async def test_verify_safety_code_without_code_fails(service):
    transaction = await service.create_transaction(meetup_payload())
    assert not await service.verify_safety_code(transaction.id, "1234")
    assert not await service.verify_safety_code("missing", "1234")


@pytest.mark.asyncio
async def test_find_for_chat(service):
    transaction = await service.create_transaction(meetup_payload())

    found = await service.find_for_chat("l1", "buyer", "seller")

    assert found.id == transaction.id
    assert await service.find_for_chat("l1", "someone", "seller") is None


def test_safety_codes_are_four_digits():
    codes = {generate_safety_code() for _ in range(200)}
    assert all(len(code) == 4 and 1000 <= int(code) <= 9999 for code in codes)


def _wrong_code(code):
    return "0000" if code != "0000" else "1111"


@pytest.mark.asyncio
@pytest.mark.parametrize("status, escrow_status", [
    ("refunded", "refunded"),
    ("cancelled", None),
    ("disputed", None),
])
async def test_safety_code_cannot_release_a_closed_or_disputed_trade(service, store, status, escrow_status):
    store.seed("users/seller", {"sales": 0})
    transaction = await service.create_transaction(meetup_payload())
    held = await service.hold_payment(transaction.id)
    await service.update_status(transaction.id, status, escrow_status)

    assert not await service.verify_safety_code(transaction.id, held.safety_code)

    stored = store.documents[f"transactions/{transaction.id}"]
    assert stored["status"] == status
    assert stored["escrowStatus"] == (escrow_status or "paid_held")
    assert store.documents["users/seller"]["sales"] == 0


@pytest.mark.asyncio
async def test_safety_code_needs_held_money(service, store):
    transaction = await service.create_transaction(meetup_payload())
    await service.update_status(transaction.id, "meetup_scheduled", extra={"safetyCode": "4321"})

    assert not await service.verify_safety_code(transaction.id, "4321")
    assert store.documents[f"transactions/{transaction.id}"]["status"] == "meetup_scheduled"


@pytest.mark.asyncio
async def test_release_counts_one_sale(service, store):
    store.seed("users/seller", {"sales": 2})
    transaction = await service.create_transaction(meetup_payload())
    held = await service.hold_payment(transaction.id)

    assert await service.verify_safety_code(transaction.id, held.safety_code)
    assert not await service.verify_safety_code(transaction.id, held.safety_code)
    await service.update_status(transaction.id, "released", "released")

    assert store.documents["users/seller"]["sales"] == 3


@pytest.mark.asyncio
async def test_safety_code_locks_after_repeated_wrong_codes(service, store):
    transaction = await service.create_transaction(meetup_payload())
    held = await service.hold_payment(transaction.id)

    for _ in range(MAX_SAFETY_CODE_ATTEMPTS):
        assert not await service.verify_safety_code(transaction.id, _wrong_code(held.safety_code))

    with pytest.raises(QuotaExceededError):
        await service.verify_safety_code(transaction.id, held.safety_code)
    stored = store.documents[f"transactions/{transaction.id}"]
    assert stored["safetyCodeAttempts"] == MAX_SAFETY_CODE_ATTEMPTS
    assert stored["status"] == "paid_held"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["released", "paid_held", "refunded", "disputed", "pending_payment"])
async def test_parties_cannot_report_money_statuses(service, store, status):
    transaction = await service.create_transaction(meetup_payload())

    with pytest.raises(PermissionDeniedError):
        await service.report_milestone(transaction.id, status)
    assert store.documents[f"transactions/{transaction.id}"]["status"] == "pending_payment"


@pytest.mark.asyncio
async def test_report_milestone(service, store):
    transaction = await service.create_transaction(meetup_payload())
    await service.hold_payment(transaction.id)

    scheduled = await service.report_milestone(transaction.id, "meetup_scheduled")

    assert scheduled.status == "meetup_scheduled"
    assert scheduled.escrow_status == "paid_held"
    with pytest.raises(InvalidArgumentError):
        await service.report_milestone(transaction.id, "teleported")


@pytest.mark.asyncio
async def test_report_milestone_on_finished_trade(service, store):
    transaction = await service.create_transaction(meetup_payload())
    await service.update_status(transaction.id, "refunded", "refunded")

    with pytest.raises(IllegalTransitionError):
        await service.report_milestone(transaction.id, "cancelled")


@pytest.mark.asyncio
async def test_safety_code_release_passes_enforced_transitions(store):
    service = TransactionService(store, enforce_transitions=True)
    transaction = await service.create_transaction(meetup_payload())
    held = await service.hold_payment(transaction.id)

    assert await service.verify_safety_code(transaction.id, held.safety_code)
    assert store.documents[f"transactions/{transaction.id}"]["status"] == "released"
