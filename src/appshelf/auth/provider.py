import hashlib
import hmac
import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


class Identity(BaseModel):
    uid: str
    email: str


AuthStateCallback = Callable[[Optional[Identity]], None]


class InvalidCredentials(Exception):
    pass


class AuthProvider(ABC):
    """Email/password identity provider without any notion of roles."""

    def __init__(self):
        self._observers: List[AuthStateCallback] = []

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self, identity: Optional[Identity]):
        for callback in list(self._observers):
            try:
                callback(identity)
            except Exception:
                logger.exception("Auth state observer failed")

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Identity:
        pass

    @abstractmethod
    async def sign_out(self, uid: str):
        pass

    @abstractmethod
    def current(self, uid: str) -> Optional[Identity]:
        """The signed-in identity for ``uid``, if any."""


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt_hex, digest_hex = stored.split("$", 1)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    expected = hash_password(password, salt).split("$", 1)[1]
    return hmac.compare_digest(expected, digest_hex)


class InMemoryAuthProvider(AuthProvider):
    def __init__(self, credentials: Optional[Mapping[str, str]] = None):
        """``credentials`` maps email to plain-text password."""
        super().__init__()
        self._accounts: Dict[str, Dict[str, str]] = {}
        self._signed_in: Dict[str, Identity] = {}
        for email, password in (credentials or {}).items():
            self.add_account(email, password)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryAuthProvider":
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Credentials file must contain a mapping of email to password")
        return cls({str(email): str(password) for email, password in data.items()})

    def add_account(self, email: str, password: str) -> Identity:
        email = email.strip().lower()
        uid = uuid.uuid5(uuid.NAMESPACE_URL, f"mailto:{email}").hex
        self._accounts[email] = {"uid": uid, "password": hash_password(password)}
        return Identity(uid=uid, email=email)

    async def sign_in(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.strip().lower())
        if account is None or not verify_password(password, account["password"]):
            raise InvalidCredentials("Invalid email or password")
        identity = Identity(uid=account["uid"], email=email.strip().lower())
        self._signed_in[identity.uid] = identity
        self._notify(identity)
        return identity

    async def sign_out(self, uid: str):
        if self._signed_in.pop(uid, None) is not None:
            self._notify(None)

    def current(self, uid: str) -> Optional[Identity]:
        return self._signed_in.get(uid)
