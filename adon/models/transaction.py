"""
Escrow transaction documents.

Lifecycle:
    initiated → pending_payment → paid_held
        → meetup_scheduled | shipped | locker_reserved (→ deposited)
        → delivered | picked_up | buyer_confirmed
        → released
    cancelled, disputed, refunded branch off any non-terminal state.
    released and refunded are terminal.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import Field, model_validator

from adon.models.base import DocumentModel


class TradeType(str, Enum):
    MEETUP = "meetup"
    DELIVERY = "delivery"
    LOCKER = "locker"


class TransactionStatus(str, Enum):
    INITIATED = "initiated"
    PENDING_PAYMENT = "pending_payment"
    PAID_HELD = "paid_held"
    MEETUP_SCHEDULED = "meetup_scheduled"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    LOCKER_RESERVED = "locker_reserved"
    DEPOSITED = "deposited"
    PICKED_UP = "picked_up"
    BUYER_CONFIRMED = "buyer_confirmed"
    RELEASED = "released"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    REFUNDED = "refunded"


class EscrowStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID_HELD = "paid_held"
    RELEASED = "released"
    REFUNDED = "refunded"


class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class Amount(DocumentModel):
    """Price breakdown in minor currency units."""

    item: int = Field(ge=0)
    shipping: int = Field(ge=0)
    platform_fee: int = Field(ge=0)
    total: int = Field(ge=0)

    @model_validator(mode="after")
    def check_total(self):
        expected = self.item + self.shipping + self.platform_fee
        if self.total != expected:
            raise ValueError(f"total must equal item + shipping + platformFee ({expected}), got {self.total}")
        return self


class MeetupData(DocumentModel):
    date: str
    time: str
    place: str
    buyer_checkin: Optional[bool] = None
    seller_checkin: Optional[bool] = None


class DeliveryData(DocumentModel):
    recipient_name: str
    phone: str
    address: str
    postcode: str
    carrier: Optional[str] = None
    tracking_no: Optional[str] = None


class LockerData(DocumentModel):
    provider: str  # e.g. "Foxpost", "Zasilkovna"
    location_id: str
    location_name: str
    slot_id: Optional[str] = None
    dropoff_code: Optional[str] = None
    pickup_code: Optional[str] = None


class Dispute(DocumentModel):
    opened_by: str
    reason: str
    opened_at: Optional[Any] = None
    status: DisputeStatus = DisputeStatus.OPEN


_PAYLOAD_FIELD = {
    TradeType.MEETUP.value: "meetup",
    TradeType.DELIVERY.value: "delivery",
    TradeType.LOCKER.value: "locker",
}


class TradeDetails(DocumentModel):
    """Trade type plus at most one payload, and only the one matching the type."""

    trade_type: TradeType
    meetup: Optional[MeetupData] = None
    delivery: Optional[DeliveryData] = None
    locker: Optional[LockerData] = None

    @model_validator(mode="after")
    def check_payload_matches_trade_type(self):
        expected = _PAYLOAD_FIELD[TradeType(self.trade_type).value]
        for name in _PAYLOAD_FIELD.values():
            if name != expected and getattr(self, name) is not None:
                raise ValueError(f"{name} details do not match tradeType {self.trade_type}")
        return self


class TransactionCreate(TradeDetails):
    listing_id: str = Field(min_length=1)
    buyer_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    conversation_id: Optional[str] = None
    amount: Amount
    currency: str = Field(min_length=1)


class Transaction(TransactionCreate):
    id: str
    status: TransactionStatus
    escrow_status: EscrowStatus
    payment_method: Optional[str] = None
    payment_provider_ref: Optional[str] = None
    safety_code: Optional[str] = None
    safety_code_attempts: int = 0
    review_id: Optional[str] = None
    confirm_by: Optional[Any] = None
    dispute: Optional[Dispute] = None
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None
