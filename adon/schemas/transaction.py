from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class StatusUpdate(_CamelModel):
    """Trade milestone reported by a party. Escrow status is not client-settable."""
    status: str

class HoldPaymentIn(_CamelModel):
    payment_method: Optional[str] = None
    payment_provider_ref: Optional[str] = None

class DisputeIn(_CamelModel):
    reason: str

class SafetyCodeIn(_CamelModel):
    code: str

class SafetyCodeResult(_CamelModel):
    verified: bool
