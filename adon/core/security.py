import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth

from adon.core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    uid: str
    claims: Dict[str, Any] = field(default_factory=dict)


async def verify_id_token(id_token: str, app: Optional[firebase_admin.App] = None) -> Optional[CallerIdentity]:
    """Verify a Firebase Auth ID token. Invalid, expired or revoked tokens give None."""
    if not id_token:
        return None
    try:
        claims = await asyncio.to_thread(auth.verify_id_token, id_token, app=app)
    except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError) as e:
        logger.info(f"Rejected ID token: {e}")
        return None
    return CallerIdentity(uid=claims["uid"], claims=claims)


def require_caller(caller: Optional[CallerIdentity]) -> CallerIdentity:
    if caller is None or not caller.uid:
        raise UnauthenticatedError("The function must be called while authenticated.")
    return caller
