from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator, Tuple, Type

from .contracts import (
    AuthResult, ChangePasswordRequest, CreateUserRequest, LoginRequest,
    MessageResponse, User, UserStorePort,
)
from .errors import ConflictError, UnauthorizedError
from .tokens import TokenIssuer

log = logging.getLogger("accountservice.service")

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
SIGNUP_FAILED = "Signup failed"
PASSWORD_CHANGED = "Password changed successfully"


@contextmanager
def narrow_errors(
    flow: str,
    message: str,
    *,
    passthrough: Tuple[Type[BaseException], ...] = (),
) -> Iterator[None]:
    """
    Error boundary for a whole flow: exceptions in `passthrough` propagate
    unchanged, anything else becomes UnauthorizedError(message).
    """
    try:
        yield
    except passthrough:
        raise
    except Exception as ex:
        log.info("%s_rejected reason=%s", flow, type(ex).__name__)
        raise UnauthorizedError(message) from ex


class AuthService:
    def __init__(self, *, user_store: UserStorePort, token_issuer: TokenIssuer):
        self.user_store = user_store
        self.token_issuer = token_issuer

    # --------- Core operations ----------
    def signup(self, req: CreateUserRequest) -> AuthResult:
        # signup surfaces only ConflictError or UnauthorizedError.
        with narrow_errors("signup", SIGNUP_FAILED, passthrough=(ConflictError,)):
            user = self.user_store.create(req)
            result = self._issue_for_user(user)
        log.info("signup user_id=%s", user.id)
        return result

    def login(self, req: LoginRequest) -> AuthResult:
        record = self.user_store.find_by_email_with_secret(req.email)
        # Same message for unknown email and wrong password.
        if record is None:
            log.info("login_rejected reason=unknown_email")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not self.user_store.verify_password(record, req.password):
            log.info("login_rejected reason=bad_password user_id=%s", record.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        log.info("login user_id=%s", record.id)
        return self._issue_for_user(record.to_public())

    def refresh(self, refresh_token: str) -> AuthResult:
        # Bad signature, expiry and a since-deleted account all look the same.
        with narrow_errors("refresh", INVALID_REFRESH_TOKEN):
            claims = self.token_issuer.verify_refresh(refresh_token)
            user = self.user_store.find_by_id(claims.sub)
            result = self._issue_for_user(user)
        log.info("refresh user_id=%s", user.id)
        return result

    def change_password(self, user_id: str, req: ChangePasswordRequest) -> MessageResponse:
        self.user_store.change_secret(user_id, req.current_password, req.new_password)
        return MessageResponse(message=PASSWORD_CHANGED)

    # --------- Helpers ----------
    def _issue_for_user(self, user: User) -> AuthResult:
        tokens = self.token_issuer.issue_pair(user.id, user.email)
        return AuthResult(
            user=user,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )
