from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Callable, List, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator
from pydantic.alias_generators import to_camel

Gender = Literal["male", "female", "other"]
Clock = Callable[[], datetime]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MIN_PASSWORD_LENGTH = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Domain Models ----------
class User(WireModel):
    id: str
    email: str
    name: str
    date_of_birth: date
    gender: Gender
    address: str
    subscribe_to_newsletter: bool
    created_at: datetime
    updated_at: datetime


class UserRecord(User):
    """Stored form of a user. Never serialized outward; use to_public()."""
    password_hash: str = Field(repr=False)

    def to_public(self) -> User:
        return User(**self.model_dump(exclude={"password_hash"}))


class UserProfile(User):
    age: int


class AuthenticatedIdentity(BaseModel):
    id: str
    email: str


class TokenClaims(BaseModel):
    sub: str
    email: str
    typ: Literal["access", "refresh"]
    iat: int
    exp: int
    iss: Optional[str] = None
    jti: Optional[str] = None


class TokenPair(WireModel):
    access_token: str
    refresh_token: str


# ---------- Service I/O ----------
class CreateUserRequest(WireModel):
    model_config = ConfigDict(extra="forbid")

    email: constr(pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    name: constr(strip_whitespace=True, min_length=1)
    date_of_birth: date
    gender: Gender
    address: constr(strip_whitespace=True, min_length=1)
    subscribe_to_newsletter: bool


class UpdateUserRequest(WireModel):
    """Partial profile. Omitted fields are left untouched by the store."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[constr(strip_whitespace=True, min_length=1)] = None
    subscribe_to_newsletter: Optional[bool] = None

    @field_validator("name", "date_of_birth", "gender", "address", "subscribe_to_newsletter", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("must not be null; omit the field to leave it unchanged")
        return v


class LoginRequest(WireModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(WireModel):
    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(WireModel):
    user_id: str = Field(..., min_length=1)
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class AuthResult(WireModel):
    user: User
    access_token: str
    refresh_token: str


class MessageResponse(WireModel):
    message: str


class HealthResponse(WireModel):
    message: str
    timestamp: str


# ---------- Ports (Contracts) ----------
class PasswordHasherPort(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, password: str, encoded: str) -> bool: ...


class TokenSignerPort(Protocol):
    """
    Contract for JWT signing/verification.
    verify() raises InvalidTokenError on bad signature, bad format or expiry.
    """
    def sign(self, claims: dict) -> str: ...
    def verify(self, token: str) -> dict: ...


class UserStorePort(Protocol):
    def create(self, profile: CreateUserRequest) -> User: ...
    def find_all(self) -> List[User]: ...
    def find_by_id(self, user_id: str) -> User: ...
    def find_by_email_with_secret(self, email: str) -> Optional[UserRecord]: ...
    def verify_password(self, record: UserRecord, password: str) -> bool: ...
    def update(self, user_id: str, patch: UpdateUserRequest) -> User: ...
    def remove(self, user_id: str) -> None: ...
    def change_secret(self, user_id: str, current_password: str, new_password: str) -> None: ...
    def age_of(self, date_of_birth: date) -> int: ...


class CredentialVerifier(Protocol):
    """Turns a bearer credential into an identity or raises UnauthorizedError."""
    def verify(self, token: str) -> AuthenticatedIdentity: ...
