import pytest
from unittest.mock import patch

from firebase_admin import auth

from adon.core.errors import UnauthenticatedError
from adon.core.security import CallerIdentity, require_caller, verify_id_token


@pytest.mark.asyncio
async def test_valid_token_gives_caller_identity():
    with patch.object(auth, "verify_id_token", return_value={"uid": "alice", "email": "a@example.com"}) as verify:
        caller = await verify_id_token("token-123")

    verify.assert_called_once_with("token-123", app=None)
    assert caller == CallerIdentity(uid="alice", claims={"uid": "alice", "email": "a@example.com"})


@pytest.mark.asyncio
async def test_invalid_token_gives_none():
    with patch.object(auth, "verify_id_token", side_effect=ValueError("bad token")):
        assert await verify_id_token("garbage") is None


@pytest.mark.asyncio
async def test_empty_token_is_not_verified():
    with patch.object(auth, "verify_id_token") as verify:
        assert await verify_id_token("") is None
    verify.assert_not_called()


def test_require_caller():
    assert require_caller(CallerIdentity(uid="alice")).uid == "alice"
    with pytest.raises(UnauthenticatedError):
        require_caller(None)
