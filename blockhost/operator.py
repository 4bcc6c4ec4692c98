"""Post-provision operations on running instances: config updates and artifact uploads."""

from __future__ import annotations

import posixpath
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from loguru import logger

from blockhost.api.model import ResourceDescriptor
from blockhost.bootstrap import RESTART_COMMAND, TemplateRenderer
from blockhost.core.exceptions import RemoteExecutionError
from blockhost.infra.ssh import SessionFactory, SSHSession

ADMIN_USER: Final = "root"
UPDATE_SCRIPT_PATH: Final = "/tmp/blockhost-update.sh"

log = logger.bind(component="operator")


@dataclass(frozen=True, slots=True)
class PostProvisionOperator:
    """Applies updates and uploads over a remote session as the admin account."""

    template: TemplateRenderer
    session_factory: SessionFactory = SSHSession
    user: str = ADMIN_USER
    restart_command: str = RESTART_COMMAND

    def _session(self, host: str, descriptor: ResourceDescriptor):
        return self.session_factory(host, self.user, descriptor.private_key, descriptor.ssh_port)

    async def update(self, host: str, descriptor: ResourceDescriptor) -> None:
        """Re-apply the descriptor's desired configuration.

        The rendered update script is idempotent, so running it twice is safe.
        """
        content = self.template.render_update(descriptor)
        log.info("Updating {name} at {host}", name=descriptor.name, host=host)

        with tempfile.TemporaryDirectory(prefix="blockhost-") as tmp:
            local = Path(tmp) / "update.sh"
            local.write_text(content)
            async with self._session(host, descriptor) as session:
                await session.transfer_file(str(local), UPDATE_SCRIPT_PATH)
                await session.execute_command(f"bash {UPDATE_SCRIPT_PATH}")

    async def upload(
        self,
        host: str,
        descriptor: ResourceDescriptor,
        artifact: str,
        destination: str,
    ) -> str:
        """Transfer ``artifact`` to ``destination`` and restart the service.

        Returns:
            The remote path the artifact was written to.

        Raises:
            RemoteExecutionError: ``stage`` is "connect" or "transfer" when the
                artifact was not delivered, "restart" when it was delivered but
                the service did not restart.
        """
        path = Path(artifact).expanduser()
        if not path.is_file():
            raise RemoteExecutionError(f"artifact {artifact} does not exist", stage="transfer", host=host)

        remote = posixpath.join(destination, path.name)
        async with self._session(host, descriptor) as session:
            await session.transfer_file(str(path), remote)
            log.info("Uploaded {artifact} to {host}:{remote}", artifact=path.name, host=host, remote=remote)
            try:
                await session.execute_command(self.restart_command)
            except RemoteExecutionError as e:
                raise RemoteExecutionError(
                    f"{path.name} delivered to {remote} but restart failed: {e}",
                    stage="restart",
                    host=host,
                ) from e
        return remote
