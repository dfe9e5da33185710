from .service import AuthService
from .crypto import HS256TokenSigner, PasswordHasher
from .store import InMemoryUserStore, calculate_age
from .tokens import TokenIssuer
from .guard import AccessGuard, AccessTokenVerifier, MockBearerVerifier
from .config import AccountConfig
from .deps import AccountServices, build_services, require_identity
from .app import create_app

__all__ = [
    "AuthService",
    "HS256TokenSigner",
    "PasswordHasher",
    "InMemoryUserStore",
    "calculate_age",
    "TokenIssuer",
    "AccessGuard",
    "AccessTokenVerifier",
    "MockBearerVerifier",
    "AccountConfig",
    "AccountServices",
    "build_services",
    "require_identity",
    "create_app",
]
