from __future__ import annotations
import base64, json, hmac, hashlib, time
from typing import Any, Callable, Dict, Optional

import bcrypt

from .contracts import PasswordHasherPort, TokenSignerPort
from .errors import InvalidTokenError


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _unb64url(s: str) -> bytes:
    pad = '=' * (-len(s) % 4)
    return base64.urlsafe_b64decode(s + pad)


class HS256TokenSigner(TokenSignerPort):
    """
    HS256 JWT signer bound to a single shared secret.
    Access and refresh tokens use separate instances, so a token signed by one
    never verifies under the other.
    """
    def __init__(self, secret: str, *, now: Optional[Callable[[], int]] = None):
        if not secret:
            raise ValueError("HS256TokenSigner requires non-empty secret")
        self._secret = secret.encode("utf-8")
        self._now = now or (lambda: int(time.time()))

    def sign(self, claims: Dict[str, Any]) -> str:
        header_b64 = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}, separators=(",",":")).encode("utf-8"))
        payload_b64 = _b64url(json.dumps(claims, separators=(",",":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        sig = hmac.new(self._secret, signing_input, hashlib.sha256).digest()
        return f"{header_b64}.{payload_b64}.{_b64url(sig)}"

    def verify(self, token: str) -> Dict[str, Any]:
        parts = token.split(".") if isinstance(token, str) else []
        if len(parts) != 3:
            raise InvalidTokenError("Invalid token format")
        header_b64, payload_b64, sig_b64 = parts
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = hmac.new(self._secret, signing_input, hashlib.sha256).digest()
        try:
            sig = _unb64url(sig_b64)
        except ValueError:
            raise InvalidTokenError("Invalid token format")
        if not hmac.compare_digest(expected_sig, sig):
            raise InvalidTokenError("Signature mismatch")
        try:
            header = json.loads(_unb64url(header_b64).decode("utf-8"))
            payload = json.loads(_unb64url(payload_b64).decode("utf-8"))
        except ValueError:
            raise InvalidTokenError("Invalid token format")
        if not isinstance(header, dict) or header.get("alg") != "HS256" or not isinstance(payload, dict):
            raise InvalidTokenError("Invalid token format")
        if "exp" not in payload or self._now() >= int(payload["exp"]):
            raise InvalidTokenError("Token expired")
        return payload


class PasswordHasher(PasswordHasherPort):
    """bcrypt hasher (salted, adaptive). Cost factor is fixed per instance."""

    # bcrypt only reads the first 72 bytes of input.
    MAX_BYTES = 72

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        raw = password.encode("utf-8")[:self.MAX_BYTES]
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, encoded: str) -> bool:
        try:
            raw = password.encode("utf-8")[:self.MAX_BYTES]
            return bcrypt.checkpw(raw, encoded.encode("utf-8"))
        except (ValueError, TypeError):
            return False
