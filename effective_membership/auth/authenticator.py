"""
Authentication module — certificate, client-secret and device-code auth.
Uses MSAL for token acquisition against Microsoft Identity Platform and
exposes the resulting session for the run precondition check.
"""

from __future__ import annotations

import base64
import getpass
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
import msal

from ..config import AuthConfig, CERT_PASSWORD_ENV, CLIENT_SECRET_ENV, REQUIRED_PERMISSIONS

logger = logging.getLogger("effective_membership.auth")

# Default scope for app-only auth
APP_SCOPES = ["https://graph.microsoft.com/.default"]


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


@dataclass(frozen=True)
class SessionInfo:
    """Whether there is an authorized session, and who it represents."""
    is_authorized: bool
    identity: str = ""
    mode: str = ""


def _authority(tenant_id: str) -> str:
    return f"https://login.microsoftonline.com/{tenant_id}"


def load_pfx_credential(cert_path: str, password: str) -> dict:
    """
    Load a base64-encoded PFX file into an MSAL client credential
    (thumbprint + PEM private key).
    """
    try:
        with open(cert_path, "r") as f:
            cert_base64 = f.read().strip()

        cert_bytes = base64.b64decode(cert_base64)
        password_bytes = password.encode("utf-8") if password else None

        private_key, certificate, _ = pkcs12.load_key_and_certificates(
            cert_bytes, password_bytes
        )
    except FileNotFoundError:
        raise AuthenticationError(f"Certificate file not found: {cert_path}")
    except Exception as e:
        raise AuthenticationError(f"Failed to load certificate: {e}")

    if private_key is None or certificate is None:
        raise AuthenticationError(f"Certificate file has no key or certificate: {cert_path}")

    private_key_pem = private_key.private_bytes(
        Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
    ).decode("utf-8")
    thumbprint = certificate.fingerprint(SHA1()).hex()
    logger.info(f"Certificate loaded. Thumbprint: {thumbprint}")

    return {"thumbprint": thumbprint, "private_key": private_key_pem}


class Authenticator:
    """
    Handles MSAL-based authentication for Microsoft Graph.
    Supports:
      - Certificate-based app-only authentication
      - Client-secret app-only authentication
      - Delegated device code authentication
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self._access_token: Optional[str] = None
        self._identity: str = ""

    async def acquire_token(self) -> str:
        """Acquire an access token based on configured auth mode."""
        if self.config.mode == "certificate":
            return self._acquire_certificate_token()
        elif self.config.mode == "secret":
            return self._acquire_secret_token()
        elif self.config.mode == "delegated":
            return self._acquire_delegated_token()
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")

    def _acquire_certificate_token(self) -> str:
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate auth config not provided.")

        logger.info("Authenticating with certificate-based app credentials...")

        password = cert_config.certificate_password or os.environ.get(CERT_PASSWORD_ENV, "")
        if not password:
            password = getpass.getpass("Enter the certificate password: ")

        app = msal.ConfidentialClientApplication(
            client_id=cert_config.client_id,
            authority=_authority(cert_config.tenant_id),
            client_credential=load_pfx_credential(cert_config.certificate_path, password),
        )
        result = app.acquire_token_for_client(scopes=APP_SCOPES)
        return self._accept(result, f"app:{cert_config.client_id}", "Certificate")

    def _acquire_secret_token(self) -> str:
        secret_config = self.config.secret
        if not secret_config:
            raise AuthenticationError("Client secret auth config not provided.")

        secret = secret_config.client_secret or os.environ.get(CLIENT_SECRET_ENV, "")
        if not secret:
            raise AuthenticationError(
                f"No client secret configured. Set {CLIENT_SECRET_ENV} or add it to the config file."
            )

        logger.info("Authenticating with client secret...")
        app = msal.ConfidentialClientApplication(
            client_id=secret_config.client_id,
            authority=_authority(secret_config.tenant_id),
            client_credential=secret,
        )
        result = app.acquire_token_for_client(scopes=APP_SCOPES)
        return self._accept(result, f"app:{secret_config.client_id}", "Client secret")

    def _acquire_delegated_token(self) -> str:
        deleg_config = self.config.delegated
        if not deleg_config:
            raise AuthenticationError("Delegated auth config not provided.")

        logger.info("Initiating device code authentication flow...")

        app = msal.PublicClientApplication(
            client_id=deleg_config.client_id,
            authority=_authority(deleg_config.tenant_id),
        )

        flow = app.initiate_device_flow(scopes=deleg_config.scopes)
        if "user_code" not in flow:
            raise AuthenticationError(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )

        print(f"\n{'='*60}")
        print(f"  To sign in, open: {flow['verification_uri']}")
        print(f"  Enter code: {flow['user_code']}")
        print(f"{'='*60}\n")

        result = app.acquire_token_by_device_flow(flow)
        claims = result.get("id_token_claims") or {}
        identity = claims.get("preferred_username") or claims.get("oid") or "delegated user"
        return self._accept(result, identity, "Delegated")

    def _accept(self, result: dict, identity: str, label: str) -> str:
        if "access_token" in result:
            self._access_token = result["access_token"]
            self._identity = identity
            logger.info(f"{label} authentication successful ({identity}).")
            return self._access_token
        error = result.get("error_description", result.get("error", "Unknown"))
        raise AuthenticationError(f"{label} auth failed: {error}")

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def session(self) -> SessionInfo:
        return SessionInfo(
            is_authorized=bool(self._access_token),
            identity=self._identity,
            mode=self.config.mode,
        )

    @staticmethod
    def list_required_permissions() -> dict[str, str]:
        """Return the map of required Graph API permissions."""
        return REQUIRED_PERMISSIONS
