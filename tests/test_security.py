from types import SimpleNamespace

import pytest

from teamhub.auth_token import create_access_token, decode_user_id, get_current_user
from teamhub.deps.security import require_admin
from teamhub.errors import AuthenticationRequired, ConflictOfState, PermissionDenied
from teamhub.routes.auth import login, register
from teamhub.schemas import UserRegister
from teamhub.security import hash_password, verify_password

pytestmark = pytest.mark.anyio


async def test_require_admin_allows_admin():
    user = SimpleNamespace(role="admin")
    assert await require_admin(user=user) is user


async def test_require_admin_rejects_player():
    with pytest.raises(PermissionDenied) as excinfo:
        await require_admin(user=SimpleNamespace(role="player"))
    assert excinfo.value.status_code == 403


async def test_missing_user_needs_authentication():
    with pytest.raises(AuthenticationRequired) as excinfo:
        await get_current_user(user=None)
    assert excinfo.value.status_code == 401
    assert excinfo.value.headers == {"WWW-Authenticate": "Bearer"}


def test_token_round_trip_and_garbage():
    token = create_access_token({"user_id": 5})
    assert decode_user_id(token) == 5
    assert decode_user_id("not-a-jwt") is None
    assert decode_user_id(None) is None
    assert decode_user_id(create_access_token({"sub": "nobody"})) is None


def test_password_hashing():
    hashed = hash_password("correct horse battery")
    assert hashed != "correct horse battery"
    assert verify_password("correct horse battery", hashed)[0] is True
    assert verify_password("wrong", hashed)[0] is False


async def test_register_then_login(db):
    created = await register(
        UserRegister(username="grace", email="grace@example.com", password="hopper-1906"), db=db
    )
    assert created.role == "player"

    with pytest.raises(ConflictOfState) as excinfo:
        await register(UserRegister(username="other", email="grace@example.com", password="hopper-1906"), db=db)
    assert excinfo.value.detail == "Email already exists"

    issued = await login(form_data=SimpleNamespace(username="grace@example.com", password="hopper-1906"), db=db)
    assert issued["token_type"] == "bearer"
    assert decode_user_id(issued["access_token"]) == created.id

    with pytest.raises(AuthenticationRequired):
        await login(form_data=SimpleNamespace(username="grace@example.com", password="nope"), db=db)
