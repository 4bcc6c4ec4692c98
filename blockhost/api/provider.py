from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from blockhost.api.model import ResourceDescriptor, ResourceResult


@runtime_checkable
class ServerProvider(Protocol):
    """Uniform lifecycle contract callers program against.

    Every method re-fetches authoritative state from the provider; no
    instance state is cached between calls.
    """

    async def create_server(self, descriptor: ResourceDescriptor) -> ResourceResult:
        """Provision a logical resource and wait until it is ready.

        Parameters
        ----------
        descriptor
            Caller-owned description of the resource.

        Returns
        -------
        ResourceResult
            Normalised view of the running instance. Never returned for an
            instance that has not reached readiness.
        """
        ...

    async def delete_server(self, instance_id: str, descriptor: ResourceDescriptor) -> None:
        """Tear down the instance and every auxiliary resource derived from the descriptor."""
        ...

    async def list_servers(self) -> Sequence[ResourceResult]:
        """List orchestrator-owned instances only."""
        ...

    async def get_server(self, instance_id: str, descriptor: ResourceDescriptor) -> ResourceResult:
        ...

    async def update_server(self, instance_id: str, descriptor: ResourceDescriptor) -> None:
        """Re-apply the descriptor's configuration on a running instance."""
        ...

    async def upload_plugin(
        self,
        instance_id: str,
        descriptor: ResourceDescriptor,
        artifact: str,
        destination: str,
    ) -> None:
        """Copy ``artifact`` into ``destination`` on the instance and restart the service."""
        ...


@runtime_checkable
class ProviderConfig[P](Protocol):
    @property
    def type(self) -> str: ...

    async def create_provider(self) -> P: ...
