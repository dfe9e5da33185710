from __future__ import annotations
import logging
from typing import Optional

from .config import AccountConfig
from .contracts import AuthenticatedIdentity, CredentialVerifier
from .errors import InvalidTokenError, UnauthorizedError
from .tokens import TokenIssuer

log = logging.getLogger("accountservice.guard")

BEARER_PREFIX = "Bearer "
MOCK_TOKEN = "faketoken_user1"
MOCK_IDENTITY = AuthenticatedIdentity(id="user1", email="user@example.com")

MISSING_HEADER = "Missing or invalid authorization header"
INVALID_TOKEN = "Invalid token"


class MockBearerVerifier(CredentialVerifier):
    """
    Development stand-in: accepts the fixed demo credential and maps it to a
    fixed identity. No signature checks.

    Known deviation: an empty credential (header "Bearer ") is accepted too.
    """
    def verify(self, token: str) -> AuthenticatedIdentity:
        if not token or token == MOCK_TOKEN:
            return MOCK_IDENTITY.model_copy()
        raise UnauthorizedError(INVALID_TOKEN)


class AccessTokenVerifier(CredentialVerifier):
    """Accepts access tokens issued by TokenIssuer."""

    def __init__(self, issuer: TokenIssuer):
        self.issuer = issuer

    def verify(self, token: str) -> AuthenticatedIdentity:
        if not token:
            raise UnauthorizedError(INVALID_TOKEN)
        try:
            claims = self.issuer.verify_access(token)
        except InvalidTokenError as ex:
            log.info("access_token_rejected reason=%s", ex.message)
            raise UnauthorizedError(INVALID_TOKEN) from ex
        return AuthenticatedIdentity(id=claims.sub, email=claims.email)


class AccessGuard:
    """Per-request bearer gate. Stateless; the verifier decides validity."""

    def __init__(self, verifier: CredentialVerifier):
        self.verifier = verifier

    def authorize(self, authorization: Optional[str]) -> AuthenticatedIdentity:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise UnauthorizedError(MISSING_HEADER)
        token = authorization[len(BEARER_PREFIX):].strip()
        return self.verifier.verify(token)


def build_verifier(cfg: AccountConfig, issuer: TokenIssuer) -> CredentialVerifier:
    if cfg.guard_mode == "jwt":
        return AccessTokenVerifier(issuer)
    return MockBearerVerifier()
