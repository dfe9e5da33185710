from __future__ import annotations
import logging
import uuid
from typing import Optional

from pydantic import ValidationError

from .config import AccountConfig
from .contracts import Clock, TokenClaims, TokenPair, TokenSignerPort, utcnow
from .crypto import HS256TokenSigner
from .errors import InvalidTokenError

log = logging.getLogger("accountservice.tokens")


class TokenIssuer:
    """
    Issues access/refresh token pairs for a user and verifies them.

    Stateless: nothing is recorded at issuance, so every pair stays valid until
    it expires and concurrent calls never interfere.
    """

    def __init__(
        self,
        *,
        access_signer: TokenSignerPort,
        refresh_signer: TokenSignerPort,
        cfg: Optional[AccountConfig] = None,
        now: Optional[Clock] = None,
    ):
        self.access_signer = access_signer
        self.refresh_signer = refresh_signer
        self.cfg = cfg or AccountConfig()
        self._now = now or utcnow

    @classmethod
    def from_config(cls, cfg: AccountConfig, *, now: Optional[Clock] = None) -> "TokenIssuer":
        clock = now or utcnow

        def ts() -> int:
            return int(clock().timestamp())

        return cls(
            access_signer=HS256TokenSigner(cfg.jwt_secret, now=ts),
            refresh_signer=HS256TokenSigner(cfg.jwt_refresh_secret, now=ts),
            cfg=cfg,
            now=clock,
        )

    # --------- Core operations ----------
    def issue_pair(self, user_id: str, email: str) -> TokenPair:
        now = int(self._now().timestamp())
        access = self._claims(user_id, email, "access", now, self.cfg.access_ttl_seconds)
        refresh = self._claims(user_id, email, "refresh", now, self.cfg.refresh_ttl_seconds)
        log.debug("token_pair_issued user_id=%s", user_id)
        return TokenPair(
            access_token=self.access_signer.sign(access.model_dump()),
            refresh_token=self.refresh_signer.sign(refresh.model_dump()),
        )

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._decode(self.refresh_signer, token, "refresh")

    def verify_access(self, token: str) -> TokenClaims:
        return self._decode(self.access_signer, token, "access")

    # --------- Helpers ----------
    def _claims(self, user_id: str, email: str, typ: str, now: int, ttl: int) -> TokenClaims:
        return TokenClaims(
            sub=user_id,
            email=email,
            typ=typ,
            iat=now,
            exp=now + ttl,
            iss=self.cfg.issuer,
            jti=str(uuid.uuid4()),
        )

    def _decode(self, signer: TokenSignerPort, token: str, typ: str) -> TokenClaims:
        payload = signer.verify(token)
        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError:
            raise InvalidTokenError("Malformed token claims")
        if claims.typ != typ:
            raise InvalidTokenError(f"Unexpected token type: {claims.typ}")
        return claims
