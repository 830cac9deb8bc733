import pytest

from effective_membership.auth import authenticator as auth_module
from effective_membership.auth.authenticator import AuthenticationError, Authenticator
from effective_membership.config import AuthConfig, ClientSecretAuth


class FakeConfidentialClient:
    result = {"access_token": "token-123"}

    def __init__(self, client_id, authority, client_credential):
        self.client_id = client_id
        self.authority = authority
        self.client_credential = client_credential

    def acquire_token_for_client(self, scopes):
        return self.result


def secret_config(secret="s3cret") -> AuthConfig:
    return AuthConfig(
        mode="secret",
        secret=ClientSecretAuth(tenant_id="tenant", client_id="client", client_secret=secret),
    )


def test_session_unauthorized_before_token():
    session = Authenticator(AuthConfig()).session
    assert session.is_authorized is False


async def test_client_secret_flow(monkeypatch):
    monkeypatch.setattr(auth_module.msal, "ConfidentialClientApplication", FakeConfidentialClient)
    authenticator = Authenticator(secret_config())

    token = await authenticator.acquire_token()

    assert token == "token-123"
    session = authenticator.session
    assert session.is_authorized is True
    assert session.identity == "app:client"
    assert session.mode == "secret"


async def test_client_secret_from_environment(monkeypatch):
    monkeypatch.setattr(auth_module.msal, "ConfidentialClientApplication", FakeConfidentialClient)
    monkeypatch.setenv("EFFECTIVE_MEMBERSHIP_CLIENT_SECRET", "from-env")

    authenticator = Authenticator(secret_config(secret=""))

    assert await authenticator.acquire_token() == "token-123"


async def test_missing_client_secret(monkeypatch):
    monkeypatch.delenv("EFFECTIVE_MEMBERSHIP_CLIENT_SECRET", raising=False)

    with pytest.raises(AuthenticationError):
        await Authenticator(secret_config(secret="")).acquire_token()


async def test_token_error_is_authentication_error(monkeypatch):
    class Failing(FakeConfidentialClient):
        result = {"error": "invalid_client", "error_description": "bad secret"}

    monkeypatch.setattr(auth_module.msal, "ConfidentialClientApplication", Failing)
    authenticator = Authenticator(secret_config())

    with pytest.raises(AuthenticationError, match="bad secret"):
        await authenticator.acquire_token()
    assert authenticator.session.is_authorized is False


async def test_unknown_mode():
    with pytest.raises(AuthenticationError):
        await Authenticator(AuthConfig(mode="kerberos")).acquire_token()


def test_missing_certificate_file(tmp_path):
    with pytest.raises(AuthenticationError, match="not found"):
        auth_module.load_pfx_credential(str(tmp_path / "missing.txt"), "pw")
