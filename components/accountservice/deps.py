from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from .config import AccountConfig
from .contracts import AuthenticatedIdentity, Clock, UserStorePort
from .crypto import PasswordHasher
from .guard import AccessGuard, build_verifier
from .service import AuthService
from .store import InMemoryUserStore
from .tokens import TokenIssuer


@dataclass
class AccountServices:
    cfg: AccountConfig
    user_store: UserStorePort
    token_issuer: TokenIssuer
    auth_service: AuthService
    guard: AccessGuard


def build_services(cfg: Optional[AccountConfig] = None, *, now: Optional[Clock] = None) -> AccountServices:
    cfg = cfg or AccountConfig()
    store = InMemoryUserStore(PasswordHasher(rounds=cfg.bcrypt_rounds), now=now)
    issuer = TokenIssuer.from_config(cfg, now=now)
    return AccountServices(
        cfg=cfg,
        user_store=store,
        token_issuer=issuer,
        auth_service=AuthService(user_store=store, token_issuer=issuer),
        guard=AccessGuard(build_verifier(cfg, issuer)),
    )


def get_services(request: Request) -> AccountServices:
    return request.app.state.accounts


def get_auth_service(services: AccountServices = Depends(get_services)) -> AuthService:
    return services.auth_service


def get_user_store(services: AccountServices = Depends(get_services)) -> UserStorePort:
    return services.user_store


def get_authorization_header(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> Optional[str]:
    """
    Extract the Authorization header value (e.g., 'Bearer <token>').
    Using Header() ensures we get a plain string during real FastAPI requests.
    """
    return authorization


def require_identity(
    request: Request,
    services: AccountServices = Depends(get_services),
    authorization: Optional[str] = Depends(get_authorization_header),
) -> AuthenticatedIdentity:
    """Run the AccessGuard and attach the caller's identity to request.state.user."""
    identity = services.guard.authorize(authorization)
    request.state.user = identity
    return identity
