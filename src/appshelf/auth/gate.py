import logging
import secrets
from typing import Dict, Iterable, Optional

from appshelf.auth.provider import AuthProvider, Identity
from appshelf.catalog.errors import AuthorizationDenied
from appshelf.catalog.models import AdminSession

logger = logging.getLogger(__name__)


class AdminGate:
    """Admin authorization layered over an identity provider.

    An identity is an admin only when its email is in ``admin_emails``. The
    allow-list is fixed when the gate is built.
    """

    def __init__(self, provider: AuthProvider, admin_emails: Iterable[str]):
        self.provider = provider
        self.admin_emails = frozenset(email.strip().lower() for email in admin_emails)
        self.current_session: Optional[AdminSession] = None
        self._sessions: Dict[str, AdminSession] = {}
        self._unsubscribe = provider.on_auth_state_changed(self._on_auth_state_changed)

    def is_allowed(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() in self.admin_emails

    def session_from_identity(self, identity: Identity) -> AdminSession:
        return AdminSession(
            uid=identity.uid,
            email=identity.email,
            is_admin=self.is_allowed(identity.email),
        )

    def _on_auth_state_changed(self, identity: Optional[Identity]):
        if identity is not None:
            self.current_session = self.session_from_identity(identity)
            return
        current = self.current_session
        if current is not None and self.provider.current(current.uid) is None:
            self.current_session = None
        # Drop tokens whose identity is no longer signed in.
        for token, session in list(self._sessions.items()):
            if self.provider.current(session.uid) is None:
                del self._sessions[token]

    async def login(self, email: str, password: str) -> AdminSession:
        if not self.is_allowed(email):
            logger.warning("Rejected admin login for %s", email)
            raise AuthorizationDenied()
        try:
            identity = await self.provider.sign_in(email, password)
        except Exception as exc:
            logger.warning("Admin sign-in failed for %s: %s", email, exc)
            raise AuthorizationDenied("Invalid email or password") from exc

        session = self.session_from_identity(identity)
        session.token = secrets.token_urlsafe(32)
        self._sessions[session.token] = session
        logger.info("Admin %s logged in", session.email)
        return session

    async def logout(self, token: str):
        session = self._sessions.pop(token, None)
        if session is None:
            return
        if not any(s.uid == session.uid for s in self._sessions.values()):
            await self.provider.sign_out(session.uid)
        logger.info("Admin %s logged out", session.email)

    def session_for(self, token: Optional[str]) -> Optional[AdminSession]:
        if not token:
            return None
        return self._sessions.get(token)

    def require_admin(self, token: Optional[str]) -> AdminSession:
        session = self.session_for(token)
        if session is None or not session.is_admin:
            raise AuthorizationDenied("Admin session required")
        return session

    def close(self):
        self._unsubscribe()
