from __future__ import annotations

import logging
import threading
import uuid
from datetime import date, timedelta
from typing import Dict, List, Optional

from .contracts import (
    Clock, CreateUserRequest, PasswordHasherPort, UpdateUserRequest,
    User, UserRecord, UserStorePort, utcnow,
)
from .errors import ConflictError, NotFoundError, UnauthorizedError

log = logging.getLogger("accountservice.store")


def calculate_age(date_of_birth: date, today: date) -> int:
    """Whole calendar years from date_of_birth to today."""
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


class InMemoryUserStore(UserStorePort):
    """Thread-safe in-memory user store.

    Records are keyed by id (insertion ordered) with a unique email index kept
    in the same critical section. bcrypt work happens outside the store lock;
    password changes are serialized per record.
    Single-process only; nothing survives a restart.
    """

    def __init__(self, hasher: PasswordHasherPort, *, now: Optional[Clock] = None):
        self._records: Dict[str, UserRecord] = {}
        self._ids_by_email: Dict[str, str] = {}
        self._record_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.RLock()
        self._hasher = hasher
        self._now = now or utcnow

    # ---------- Public API ----------
    def create(self, profile: CreateUserRequest) -> User:
        # Cheap pre-check so duplicates don't pay for a bcrypt round.
        with self._lock:
            self._ensure_email_free(profile.email)

        pw_hash = self._hasher.hash(profile.password)
        now = self._now()
        record = UserRecord(
            id=str(uuid.uuid4()),
            email=profile.email,
            password_hash=pw_hash,
            name=profile.name,
            date_of_birth=profile.date_of_birth,
            gender=profile.gender,
            address=profile.address,
            subscribe_to_newsletter=profile.subscribe_to_newsletter,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            self._ensure_email_free(profile.email)
            self._records[record.id] = record
            self._ids_by_email[record.email] = record.id
            user = record.to_public()
        log.info("user_created user_id=%s", user.id)
        return user

    def find_all(self) -> List[User]:
        with self._lock:
            return [r.to_public() for r in self._records.values()]

    def find_by_id(self, user_id: str) -> User:
        with self._lock:
            return self._get_record(user_id).to_public()

    def find_by_email_with_secret(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            if user_id is None:
                return None
            return self._records[user_id].model_copy()

    def verify_password(self, record: UserRecord, password: str) -> bool:
        return self._hasher.verify(password, record.password_hash)

    def update(self, user_id: str, patch: UpdateUserRequest) -> User:
        changes = patch.model_dump(include=patch.model_fields_set)
        with self._lock:
            record = self._get_record(user_id)
            for field, value in changes.items():
                setattr(record, field, value)
            self._touch(record)
            user = record.to_public()
        log.info("user_updated user_id=%s fields=%s", user_id, ",".join(sorted(changes)) or "-")
        return user

    def remove(self, user_id: str) -> None:
        with self._lock:
            record = self._get_record(user_id)
            del self._records[user_id]
            self._ids_by_email.pop(record.email, None)
            self._record_locks.pop(user_id, None)
        log.info("user_removed user_id=%s", user_id)

    def change_secret(self, user_id: str, current_password: str, new_password: str) -> None:
        with self._record_lock(user_id):
            with self._lock:
                current_hash = self._get_record(user_id).password_hash

            if not self._hasher.verify(current_password, current_hash):
                log.info("password_change_rejected user_id=%s", user_id)
                raise UnauthorizedError("Current password is incorrect")
            new_hash = self._hasher.hash(new_password)

            with self._lock:
                # The record may have been removed while hashing.
                record = self._get_record(user_id)
                record.password_hash = new_hash
                self._touch(record)
        log.info("password_changed user_id=%s", user_id)

    def age_of(self, date_of_birth: date) -> int:
        return calculate_age(date_of_birth, self._now().date())

    # ---------- Internals ----------
    def _get_record(self, user_id: str) -> UserRecord:
        record = self._records.get(user_id)
        if record is None:
            raise NotFoundError("User not found")
        return record

    def _ensure_email_free(self, email: str) -> None:
        if email in self._ids_by_email:
            raise ConflictError("User with this email already exists")

    def _record_lock(self, user_id: str) -> threading.Lock:
        with self._lock:
            self._get_record(user_id)
            return self._record_locks.setdefault(user_id, threading.Lock())

    def _touch(self, record: UserRecord) -> None:
        # updated_at must strictly advance, even on coarse clocks.
        now = self._now()
        if now <= record.updated_at:
            now = record.updated_at + timedelta(microseconds=1)
        record.updated_at = now
