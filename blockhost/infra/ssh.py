"""AsyncSSH-based remote session for post-provision operations.

Service class pattern - host, account and key are bound at construction,
not passed on every call.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Protocol

import asyncssh
from loguru import logger

from blockhost.core.exceptions import RemoteExecutionError
from blockhost.infra.retry import retry


class RemoteSession(Protocol):
    """Authenticated shell session on a provisioned instance."""

    async def __aenter__(self) -> RemoteSession: ...

    async def __aexit__(self, *_: object) -> None: ...

    async def transfer_file(self, local_path: str, remote_path: str) -> None: ...

    async def execute_command(self, command: str) -> str: ...


class SessionFactory(Protocol):
    def __call__(self, host: str, user: str, key_path: str, port: int) -> RemoteSession: ...


@dataclass
class SSHSession:
    """Remote session over asyncssh.

    Example:
        >>> async with SSHSession("10.0.0.1", "root", "~/.ssh/id_ed25519") as s:
        ...     await s.transfer_file("plugin.jar", "/minecraft/plugins/plugin.jar")
        ...     await s.execute_command("systemctl restart minecraft.service")
    """

    host: str
    user: str
    key_path: str
    port: int = 22
    connect_timeout: float = 30.0
    command_timeout: float | None = 300.0
    retry_max_attempts: int = 5
    retry_delay: float = 2.0

    _conn: asyncssh.SSHClientConnection | None = field(default=None, repr=False)

    async def connect(self) -> None:
        """Establish the connection, retrying with a fixed delay."""
        if self._conn is not None:
            return

        @retry(
            on=(OSError, asyncssh.Error),
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_delay,
            exponential_base=1.0,
            jitter=False,
        )
        async def do_connect() -> asyncssh.SSHClientConnection:
            return await asyncssh.connect(
                self.host,
                port=self.port,
                username=self.user,
                client_keys=[self.key_path],
                known_hosts=None,
                connect_timeout=self.connect_timeout,
            )

        try:
            self._conn = await do_connect()
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(str(e), stage="connect", host=self.host) from e
        logger.bind(component="ssh").debug(
            "Connected to {user}@{host}:{port}", user=self.user, host=self.host, port=self.port,
        )

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._conn.wait_closed(), timeout=5.0)
            self._conn = None

    async def __aenter__(self) -> SSHSession:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    def _require_connection(self) -> asyncssh.SSHClientConnection:
        if self._conn is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._conn

    async def transfer_file(self, local_path: str, remote_path: str) -> None:
        conn = self._require_connection()
        try:
            await asyncssh.scp(local_path, (conn, remote_path))
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(str(e), stage="transfer", host=self.host) from e

    async def execute_command(self, command: str) -> str:
        """Run a command and return its stdout.

        Raises:
            RemoteExecutionError: On a non-zero exit status or a broken session.
        """
        conn = self._require_connection()
        try:
            result = await conn.run(command, timeout=self.command_timeout, check=False)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(str(e), stage="execute", host=self.host) from e

        code = result.exit_status or 0
        if code != 0:
            raise RemoteExecutionError(
                f"command {command!r} exited with {code}: {result.stderr or ''}",
                stage="execute",
                host=self.host,
            )
        return str(result.stdout or "")
