"""Custom exception hierarchy for Blockhost.

All blockhost-specific exceptions inherit from BlockhostError, enabling
callers to catch every orchestration failure with a single except clause.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

type RemoteStage = Literal["connect", "transfer", "execute", "restart"]


class BlockhostError(Exception):
    """Base exception for all Blockhost errors."""


class ConfigurationError(BlockhostError):
    """Raised for invalid configuration or missing required settings."""


class KeyMaterialError(BlockhostError):
    """Raised when the public key material is absent, unreadable or malformed."""


class ProviderAPIError(BlockhostError):
    """Raised when a backend API call fails.

    Attributes:
        stage: Operation that failed (e.g. "create_volume", "resolve_image").
        status: HTTP status reported by the backend, 0 for transport errors.
    """

    def __init__(self, message: str, *, stage: str, status: int = 0) -> None:
        self.stage = stage
        self.status = status
        super().__init__(f"[{stage}] {message}")


class NotFound(ProviderAPIError):  # noqa: N818
    """Raised when a resource cannot be resolved by identifier or derived name."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message, stage=stage, status=404)


class ProvisioningTimeout(BlockhostError):
    """Raised when an instance does not become ready before the deadline."""

    def __init__(self, name: str, timeout: float) -> None:
        self.name = name
        self.timeout = timeout
        super().__init__(f"{name} did not become ready within {timeout:.0f}s")


class TeardownOrderingError(BlockhostError):
    """Raised when a dependent resource could not be released before its dependency."""


class RemoteExecutionError(BlockhostError):
    """Raised when file transfer or command execution on an instance fails.

    The stage tells "artifact not delivered" (connect/transfer) apart from
    "delivered but service not restarted" (restart).
    """

    def __init__(self, message: str, *, stage: RemoteStage, host: str = "") -> None:
        self.stage = stage
        self.host = host
        super().__init__(f"[{stage}] {host}: {message}" if host else f"[{stage}] {message}")


class RollbackError(BlockhostError):
    """Raised when an attempt failed and cleaning up after it failed too.

    The original failure is kept as ``original`` (and as ``__cause__``);
    ``failures`` holds every rollback step that could not be completed.
    """

    def __init__(self, original: BaseException, failures: Sequence[Exception]) -> None:
        self.original = original
        self.failures = tuple(failures)
        details = "; ".join(str(f) for f in self.failures)
        super().__init__(
            f"{original} (rollback incomplete, {len(self.failures)} step(s) failed: {details})"
        )


__all__ = [
    "BlockhostError",
    "ConfigurationError",
    "KeyMaterialError",
    "NotFound",
    "ProviderAPIError",
    "ProvisioningTimeout",
    "RemoteExecutionError",
    "RemoteStage",
    "RollbackError",
    "TeardownOrderingError",
]
