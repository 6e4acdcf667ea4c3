from typing import Optional

from fastapi import Depends, Header, Request

from adon.core.components import Components
from adon.core.errors import UnauthenticatedError
from adon.core.security import CallerIdentity, verify_id_token


def get_components(request: Request) -> Components:
    return request.app.state.components


async def get_caller(
    authorization: Optional[str] = Header(default=None),
    components: Components = Depends(get_components),
) -> Optional[CallerIdentity]:
    """Caller identity from a Firebase ID token; None when absent or invalid.

    Services decide whether a caller is required, so a missing token is not an error here.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return await verify_id_token(token.strip(), app=components.firebase_app)


def get_current_caller(caller: Optional[CallerIdentity] = Depends(get_caller)) -> CallerIdentity:
    if caller is None:
        raise UnauthenticatedError("The function must be called while authenticated.")
    return caller
