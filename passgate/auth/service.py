"""Passkey authentication service.

Single entry point for transports (the HTTP API, tests). One instance is
built per request from a database session and a session manager; every
operation either returns a plain result or raises an ``AuthError``.

Usage:
    service = PasskeyAuthService(db, session_manager, auth_config)
    start = await service.register_start("alice")
    ...
    user = await service.register_finish(browser_response)
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from passgate.auth.ceremonies import CeremonyOrchestrator, RegistrationStart
from passgate.auth.config import AuthConfig
from passgate.auth.lifecycle import CredentialLifecycle
from passgate.auth.session import CurrentUser, SessionManager
from passgate.exceptions import NotAuthenticatedError
from passgate.storage.entities import PasskeyCredential, User


class PasskeyAuthService:
    """Public operations of the authentication core."""

    def __init__(self, db: AsyncSession, sessions: SessionManager, config: AuthConfig):
        self.sessions = sessions
        self.ceremonies = CeremonyOrchestrator(db, sessions, config)
        self.lifecycle = CredentialLifecycle(db, sessions, self.ceremonies)

    def _require_user(self) -> CurrentUser:
        current = self.sessions.get_current_user()
        if current is None:
            raise NotAuthenticatedError()
        return current

    def current_user(self) -> CurrentUser | None:
        return self.sessions.get_current_user()

    # Ceremonies

    async def register_start(self, username: str) -> RegistrationStart:
        return await self.ceremonies.register_start(username)

    async def register_finish(self, response: Any) -> CurrentUser:
        return await self.ceremonies.register_finish(response)

    async def login_start(self) -> dict[str, Any]:
        return await self.ceremonies.login_start()

    async def login_finish(self, response: Any) -> CurrentUser:
        return await self.ceremonies.login_finish(response)

    def logout(self) -> None:
        self.sessions.destroy_session()

    # Authenticated operations

    async def add_passkey_start(self) -> dict[str, Any]:
        return await self.lifecycle.add_passkey_start(self._require_user())

    async def add_passkey_finish(self, response: Any) -> PasskeyCredential:
        return await self.lifecycle.add_passkey_finish(self._require_user(), response)

    async def rename_credential(self, credential_id: str, name: str) -> PasskeyCredential:
        return await self.lifecycle.rename_credential(self._require_user(), credential_id, name)

    async def remove_credential(self, credential_id: str) -> None:
        await self.lifecycle.remove_credential(self._require_user(), credential_id)

    async def list_credentials(self) -> list[PasskeyCredential]:
        return await self.lifecycle.list_credentials(self._require_user())

    async def get_profile(self) -> User:
        return await self.lifecycle.get_profile(self._require_user())

    async def update_display_name(self, display_name: str) -> User:
        return await self.lifecycle.update_display_name(self._require_user(), display_name)
