"""Error taxonomy for local-first synchronization."""

from __future__ import annotations

from enum import StrEnum

# Substrings/codes that mean the remote store exists but its tables or
# grants were never provisioned (Postgres 42P01 = undefined_table,
# 42501 = insufficient_privilege).
_SCHEMA_MARKERS = (
    "permission denied",
    "relation",
    "42P01",
    "42501",
    "could not find the table",
    "schema cache",
)

_NETWORK_MARKERS = (
    "failed to fetch",
    "network request failed",
    "connection error",
    "cannot connect",
    "timed out",
    "timeout",
)


class FailureKind(StrEnum):
    """Why a remote operation did not succeed."""

    NETWORK = "network"
    """Connection could not be established or timed out."""

    MALFORMED_RESPONSE = "malformed_response"
    """Server answered with something other than JSON."""

    SCHEMA_NOT_PROVISIONED = "schema_not_provisioned"
    """Remote tables or permissions are missing; needs setup, not retry."""

    SERVER_ERROR = "server_error"
    """Any other failure reported by the server."""

    NOT_CONFIGURED = "not_configured"
    """No remote store is configured; running purely local."""


def classify_failure(message: str) -> FailureKind:
    """Classify a failure message into the sync error taxonomy."""
    lowered = message.lower()
    if any(marker.lower() in lowered for marker in _SCHEMA_MARKERS):
        return FailureKind.SCHEMA_NOT_PROVISIONED
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return FailureKind.NETWORK
    return FailureKind.SERVER_ERROR


class StudbookSyncError(Exception):
    """Base class for all errors raised by studbook_sync."""


class TransportError(StudbookSyncError):
    """A remote call failed."""

    kind: FailureKind = FailureKind.SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class RemoteUnavailableError(TransportError):
    """Network-level failure that persisted through every retry."""

    kind = FailureKind.NETWORK


class MalformedResponseError(TransportError):
    """The server responded, but not with a JSON body."""

    kind = FailureKind.MALFORMED_RESPONSE


class RemoteOperationError(TransportError):
    """The server reported a failure for the operation."""

    kind = FailureKind.SERVER_ERROR


class SchemaNotProvisionedError(RemoteOperationError):
    """The remote schema (tables or grants) is missing."""

    kind = FailureKind.SCHEMA_NOT_PROVISIONED


class RemoteNotConfiguredError(TransportError):
    """An operation that requires a remote store ran without one."""

    kind = FailureKind.NOT_CONFIGURED


class InvalidCredentialsError(StudbookSyncError):
    """The credential service rejected the supplied email/password hash."""


class BackendError(StudbookSyncError):
    """The local key-value backend failed to read or write."""


def operation_error(
    message: str,
    status_code: int | None = None,
    code: str | None = None,
) -> RemoteOperationError:
    """Build the right RemoteOperationError subclass for a server message."""
    probe = f"{message} {code or ''}"
    if classify_failure(probe) is FailureKind.SCHEMA_NOT_PROVISIONED:
        return SchemaNotProvisionedError(message, status_code=status_code, code=code)
    return RemoteOperationError(message, status_code=status_code, code=code)
