from unittest.mock import AsyncMock, patch

import pytest

from appshelf.auth.gate import AdminGate
from appshelf.auth.provider import (
    Identity,
    InMemoryAuthProvider,
    InvalidCredentials,
    hash_password,
    verify_password,
)
from appshelf.catalog.errors import AuthorizationDenied

ADMINS = ["archana@example.com", "admin2@example.com", "admin3@example.com"]


@pytest.fixture
def provider():
    return InMemoryAuthProvider({"admin2@example.com": "s3cret", "random@x.com": "s3cret"})


@pytest.fixture
def gate(provider):
    return AdminGate(provider, ADMINS)


def test_password_hashing():
    stored = hash_password("hunter2")
    assert verify_password("hunter2", stored)
    assert not verify_password("hunter3", stored)
    assert not verify_password("hunter2", "garbage")


def test_allow_list_is_frozen(gate):
    assert isinstance(gate.admin_emails, frozenset)
    assert gate.is_allowed("ADMIN2@example.com")
    assert not gate.is_allowed("random@x.com")
    assert not gate.is_allowed(None)


@pytest.mark.asyncio
async def test_allow_listed_login_yields_admin_session(gate):
    session = await gate.login("admin2@example.com", "s3cret")
    assert session.is_admin is True
    assert session.email == "admin2@example.com"
    assert session.token
    assert gate.require_admin(session.token) == session
    assert gate.current_session.is_admin is True


@pytest.mark.asyncio
async def test_login_outside_allow_list_never_calls_provider(gate, provider):
    with patch.object(provider, "sign_in", AsyncMock()) as sign_in:
        with pytest.raises(AuthorizationDenied, match="Access denied"):
            await gate.login("random@x.com", "s3cret")
    sign_in.assert_not_called()
    assert gate.current_session is None


@pytest.mark.asyncio
async def test_wrong_password_is_denied(gate):
    with pytest.raises(AuthorizationDenied, match="Invalid email or password"):
        await gate.login("admin2@example.com", "wrong")
    assert gate.current_session is None


@pytest.mark.asyncio
async def test_logout_signs_out_and_invalidates_token(gate):
    session = await gate.login("admin2@example.com", "s3cret")
    await gate.logout(session.token)

    assert gate.session_for(session.token) is None
    assert gate.current_session is None
    with pytest.raises(AuthorizationDenied):
        gate.require_admin(session.token)
    await gate.logout(session.token)


def test_require_admin_without_token(gate):
    with pytest.raises(AuthorizationDenied):
        gate.require_admin(None)


def test_session_from_identity_checks_membership(gate):
    admin = gate.session_from_identity(Identity(uid="1", email="admin3@example.com"))
    visitor = gate.session_from_identity(Identity(uid="2", email="random@x.com"))
    assert admin.is_admin is True
    assert visitor.is_admin is False


@pytest.mark.asyncio
async def test_provider_notifies_observers(provider):
    seen = []
    unsubscribe = provider.on_auth_state_changed(seen.append)
    identity = await provider.sign_in("random@x.com", "s3cret")
    await provider.sign_out(identity.uid)
    unsubscribe()
    await provider.sign_in("random@x.com", "s3cret")

    assert seen == [identity, None]


@pytest.mark.asyncio
async def test_provider_rejects_bad_credentials(provider):
    with pytest.raises(InvalidCredentials):
        await provider.sign_in("nobody@x.com", "s3cret")


def test_provider_loads_credentials_file(tmp_path):
    path = tmp_path / "admins.yaml"
    path.write_text("admin2@example.com: s3cret\n")
    provider = InMemoryAuthProvider.from_file(str(path))
    assert "admin2@example.com" in provider._accounts


@pytest.mark.asyncio
async def test_provider_sign_out_drops_gate_sessions(gate, provider):
    session = await gate.login("admin2@example.com", "s3cret")
    await provider.sign_out(session.uid)

    assert gate.session_for(session.token) is None
    assert gate.current_session is None


@pytest.mark.asyncio
async def test_other_admin_sign_out_keeps_current_session(gate, provider):
    provider.add_account("admin3@example.com", "s3cret")
    first = await gate.login("admin2@example.com", "s3cret")
    second = await gate.login("admin3@example.com", "s3cret")
    assert gate.current_session.email == "admin3@example.com"

    await gate.logout(first.token)

    assert gate.current_session.email == "admin3@example.com"
    assert gate.session_for(second.token) == second
    assert gate.session_for(first.token) is None
