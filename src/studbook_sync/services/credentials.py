"""Credential service: server-side login and registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from studbook_sync.core.records import OrganizationFocus, Session, User
from studbook_sync.errors import InvalidCredentialsError, RemoteOperationError
from studbook_sync.sync.mappers import organization_from_remote

if TYPE_CHECKING:
    from studbook_sync.storage.record_store import LocalRecordStore
    from studbook_sync.sync.transport import RemoteTransport

logger = logging.getLogger(__name__)

_REJECTED_STATUSES = frozenset({400, 401, 403, 409})


class CredentialService(Protocol):
    """Authenticates users. Passwords arrive already hashed by the caller."""

    async def login(self, email: str, password_hash: str) -> Session: ...

    async def register(
        self,
        org_name: str,
        user_name: str,
        email: str,
        focus: OrganizationFocus,
        password_hash: str,
    ) -> Session: ...


def _session_from(payload: Any) -> Session:
    if not isinstance(payload, dict) or not payload.get("token"):
        raise InvalidCredentialsError("Credential service returned no token")
    try:
        # The server returns raw columns plus a few camelCase extras; both validate
        user = User.model_validate(payload.get("user") or {})
    except ValidationError as e:
        raise InvalidCredentialsError(f"Credential service returned an invalid user: {e}") from e
    return Session(token=str(payload["token"]), user=user)


class HttpCredentialService:
    """Talks to ``/api/login`` and ``/api/register`` and persists the session.

    Everything the server returns already exists remotely, so it is saved
    locally with ``skip_sync=True``.
    """

    def __init__(self, transport: RemoteTransport, store: LocalRecordStore) -> None:
        self._transport = transport
        self._store = store

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        try:
            return await self._transport.write("POST", path, body=body)
        except RemoteOperationError as e:
            if e.status_code in _REJECTED_STATUSES:
                raise InvalidCredentialsError(e.message) from e
            raise

    def _remember(self, session: Session) -> None:
        self._store.save_token(session.token)
        self._store.save_session(session.user)
        self._transport.set_token(session.token)

    async def login(self, email: str, password_hash: str) -> Session:
        """
        Authenticate against the server.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            RemoteUnavailableError: Server unreachable after retries
        """
        payload = await self._post("/api/login", {"email": email, "password": password_hash})
        session = _session_from(payload)
        self._remember(session)
        logger.info("Logged in as %s", session.user.email)
        return session

    async def register(
        self,
        org_name: str,
        user_name: str,
        email: str,
        focus: OrganizationFocus,
        password_hash: str,
    ) -> Session:
        """Create organization, default project and admin user in one call."""
        payload = await self._post(
            "/api/register",
            {
                "orgName": org_name,
                "userName": user_name,
                "email": email,
                "focus": focus.value,
                "password": password_hash,
            },
        )
        session = _session_from(payload)
        org_row = payload.get("org")
        if isinstance(org_row, dict) and org_row.get("id"):
            self._store.save_org(organization_from_remote(org_row), skip_sync=True)
        self._store.save_users([session.user], skip_sync=True)
        self._remember(session)
        logger.info("Registered organization %s", org_name)
        return session

    def logout(self) -> None:
        self._store.logout()
        self._transport.set_token(None)
