"""Provider-agnostic provisioning orchestrator.

One state machine drives every backend through ``CloudAdapter``:

    Initiating -> AuxProvisioning -> InstanceRequested -> Polling -> Ready
                        \\________________ any step ________________/-> Failed

Resources created during an attempt are pushed on a per-attempt rollback
stack and unwound in reverse order when the attempt fails, times out or is
cancelled. Teardown re-derives auxiliary names from the descriptor and
deletes in dependency order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Self

from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from blockhost.api.model import (
    Action,
    CreateRequest,
    InstanceRecord,
    ProvisioningState,
    ResourceDescriptor,
    ResourceResult,
    VolumeRecord,
)
from blockhost.bootstrap import ScriptTemplate, TemplateArgs, TemplateRenderer, variant_for
from blockhost.core.exceptions import (
    ConfigurationError,
    NotFound,
    ProviderAPIError,
    ProvisioningTimeout,
    RollbackError,
    TeardownOrderingError,
)
from blockhost.infra.wait import wait_for
from blockhost.keys import resolve_public_key
from blockhost.naming import (
    DEFAULT_OWNER_TAG,
    derive_boot_script_name,
    derive_ssh_key_name,
    derive_volume_name,
    instance_tags,
    is_owned,
    join_tags,
)
from blockhost.operator import PostProvisionOperator
from blockhost.providers.adapter import CloudAdapter

type Undo = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class OrchestratorSettings:
    """Timing and tagging knobs shared by every operation.

    Args:
        poll_interval: Seconds between readiness / action status checks.
        create_timeout: Deadline for an instance to become ready.
        detach_timeout: Deadline for a volume detach action to finish.
        owner_tag: Tag marking instances this orchestrator owns.
        rollback_attempts: Attempts per rollback step on transient API errors.
        rollback_delay: Seconds between rollback attempts.
    """

    poll_interval: float = 2.0
    create_timeout: float = 600.0
    detach_timeout: float = 300.0
    owner_tag: str = DEFAULT_OWNER_TAG
    rollback_attempts: int = 3
    rollback_delay: float = 1.0


def _is_transient(e: BaseException) -> bool:
    return isinstance(e, ProviderAPIError) and not isinstance(e, NotFound)


@dataclass
class _Attempt:
    """Per-call provisioning state. Never shared between calls."""

    name: str
    provider: str
    state: ProvisioningState = ProvisioningState.INITIATING
    undo: list[tuple[str, Undo]] = field(default_factory=list)

    def transition(self, state: ProvisioningState) -> None:
        logger.bind(provider=self.provider, component="orchestrator").info(
            "{name}: {old} -> {new}", name=self.name, old=self.state.value, new=state.value,
        )
        self.state = state

    def created(self, label: str, undo: Undo) -> None:
        self.undo.append((label, undo))


class Orchestrator:
    """``ServerProvider`` implementation shared by every backend.

    Holds only the adapter, the template collaborator, the post-provision
    operator and immutable settings, so concurrent calls for different
    logical resources do not interfere.
    """

    def __init__(
        self,
        adapter: CloudAdapter,
        *,
        template: TemplateRenderer | None = None,
        operator: PostProvisionOperator | None = None,
        settings: OrchestratorSettings | None = None,
    ) -> None:
        self._adapter = adapter
        self._template = template or ScriptTemplate()
        self._operator = operator or PostProvisionOperator(self._template)
        self._settings = settings or OrchestratorSettings()
        self._log = logger.bind(provider=adapter.name, component="orchestrator")

    @property
    def adapter(self) -> CloudAdapter:
        return self._adapter

    @property
    def settings(self) -> OrchestratorSettings:
        return self._settings

    async def close(self) -> None:
        await self._adapter.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ─── Create ──────────────────────────────────────────────────────

    async def create_server(self, descriptor: ResourceDescriptor) -> ResourceResult:
        if descriptor.has_volume and not self._adapter.supports_volumes:
            raise ConfigurationError(
                f"{self._adapter.name} does not support block volumes "
                f"(requested {descriptor.volume_size} GB for {descriptor.name})"
            )
        await self._ensure_name_available(descriptor.name)

        attempt = _Attempt(descriptor.name, self._adapter.name)
        try:
            record = await self._provision(descriptor, attempt)
        except asyncio.CancelledError:
            attempt.transition(ProvisioningState.FAILED)
            failures = await self._rollback(attempt)
            if failures:
                self._log.warning(
                    "{name}: cancelled with {n} resource(s) left behind",
                    name=descriptor.name, n=len(failures),
                )
            raise
        except Exception as e:
            attempt.transition(ProvisioningState.FAILED)
            failures = await self._rollback(attempt)
            if failures:
                raise RollbackError(e, failures) from e
            raise

        attempt.transition(ProvisioningState.READY)
        return self._to_result(record)

    async def _ensure_name_available(self, name: str) -> None:
        for record in await self._adapter.list_instances():
            if record.name == name and is_owned(record.tags, self._settings.owner_tag):
                raise ConfigurationError(f"A resource named {name!r} already exists (id={record.id})")

    async def _provision(self, descriptor: ResourceDescriptor, attempt: _Attempt) -> InstanceRecord:
        adapter = self._adapter
        name = descriptor.name

        attempt.transition(ProvisioningState.AUX_PROVISIONING)
        public_key = resolve_public_key(descriptor)
        mount = adapter.mount_point if descriptor.has_volume else None
        boot_data = self._template.render(
            descriptor, TemplateArgs(mount=mount, variant=variant_for(descriptor)),
        )

        key = await adapter.create_ssh_key(derive_ssh_key_name(name), public_key)
        attempt.created(f"ssh key {key.name}", lambda: adapter.delete_ssh_key(key))

        region = await adapter.resolve_region(descriptor.region)

        volume: VolumeRecord | None = None
        if descriptor.has_volume:
            volume = await adapter.create_volume(derive_volume_name(name), descriptor.volume_size, region)
            attempt.created(f"volume {volume.name}", lambda: self._release_volume(volume.name))

        boot_script = None
        if adapter.uses_boot_scripts:
            boot_script = await adapter.create_boot_script(derive_boot_script_name(name), boot_data)
            attempt.created(
                f"boot script {boot_script.name}", lambda: adapter.delete_boot_script(boot_script),
            )

        image = await adapter.resolve_image(adapter.image)
        plan = await adapter.resolve_plan(descriptor.size)

        request = CreateRequest(
            name=name,
            plan=plan,
            image=image,
            region=region,
            ssh_key=key,
            boot_data=boot_data,
            tags=instance_tags(descriptor.edition, self._settings.owner_tag),
            volume=volume,
            boot_script=boot_script,
        )

        attempt.transition(ProvisioningState.INSTANCE_REQUESTED)
        created = await adapter.create_instance(request)
        attempt.created(f"instance {created.id}", lambda: self._remove_instance(created.id))

        attempt.transition(ProvisioningState.POLLING)
        return await self._wait_ready(created.id, name)

    async def _wait_ready(self, instance_id: str, name: str) -> InstanceRecord:
        timeout = self._settings.create_timeout
        try:
            return await wait_for(
                lambda: self._adapter.get_instance(instance_id),
                lambda r: r.ready,
                interval=self._settings.poll_interval,
                timeout=timeout,
                description=f"instance {name}",
            )
        except TimeoutError as e:
            raise ProvisioningTimeout(name, timeout) from e

    async def _rollback(self, attempt: _Attempt) -> list[Exception]:
        """Unwind the attempt's resources in reverse creation order.

        Returns:
            The rollback steps that could not be completed.
        """
        failures: list[Exception] = []
        for label, undo in reversed(attempt.undo):
            self._log.info("{name}: rolling back {label}", name=attempt.name, label=label)
            try:
                await self._retry_rollback(undo)
            except NotFound:
                self._log.debug("{label} already gone", label=label)
            except Exception as e:
                self._log.warning("Rollback of {label} failed: {err}", label=label, err=e)
                failures.append(e)
        attempt.undo.clear()
        return failures

    async def _remove_instance(self, instance_id: str) -> None:
        """Delete an instance and wait until the provider no longer reports it.

        Deletion is asynchronous on some providers and the instance keeps its
        volumes attached (and locked) until it is gone.
        """
        await self._adapter.delete_instance(instance_id)

        async def gone() -> bool:
            try:
                await self._adapter.get_instance(instance_id)
            except NotFound:
                return True
            return False

        timeout = self._settings.detach_timeout
        try:
            await wait_for(
                gone,
                lambda done: done,
                interval=self._settings.poll_interval,
                timeout=timeout,
                description=f"deletion of instance {instance_id}",
            )
        except TimeoutError as e:
            raise TeardownOrderingError(
                f"Instance {instance_id} still present {timeout:.0f}s after delete"
            ) from e

    async def _retry_rollback(self, undo: Undo) -> None:
        async for retry_attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.rollback_attempts),
            wait=wait_fixed(self._settings.rollback_delay),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with retry_attempt:
                await undo()

    # ─── Delete ──────────────────────────────────────────────────────

    async def delete_server(self, instance_id: str, descriptor: ResourceDescriptor) -> None:
        """Tear down in dependency order.

        volume detach -> detach observed terminal -> volume delete ->
        instance delete -> boot script delete -> ssh key delete.
        Any failure aborts the remaining steps.
        """
        adapter = self._adapter
        name = descriptor.name

        instance = await adapter.get_instance(instance_id)
        self._log.info("Tearing down {name} ({id})", name=name, id=instance.id)

        await self._release_volume(derive_volume_name(name))

        await adapter.delete_instance(instance.id)
        self._log.info("Deleted instance {id}", id=instance.id)

        if adapter.uses_boot_scripts:
            script = await adapter.find_boot_script(derive_boot_script_name(name))
            if script is None:
                self._log.debug("No boot script for {name}", name=name)
            else:
                await self._delete_tolerating_absence(adapter.delete_boot_script(script), script.name)

        key = await adapter.find_ssh_key(derive_ssh_key_name(name))
        if key is None:
            self._log.debug("No ssh key for {name}", name=name)
        else:
            await self._delete_tolerating_absence(adapter.delete_ssh_key(key), key.name)

    async def _delete_tolerating_absence(self, deletion: Awaitable[None], label: str) -> None:
        try:
            await deletion
        except NotFound:
            self._log.debug("{label} already absent", label=label)

    async def _release_volume(self, volume_name: str) -> None:
        """Detach (if attached) and delete a volume; absence counts as done."""
        adapter = self._adapter
        try:
            volume = await adapter.find_volume(volume_name)
        except NotFound:
            volume = None
        if volume is None:
            self._log.debug("No volume {name} to release", name=volume_name)
            return

        if volume.server_id is not None:
            try:
                action = await adapter.detach_volume(volume)
            except NotFound:
                self._log.info("Volume {name} vanished before detach", name=volume_name)
                return
            action = await self._wait_action(action, f"detach of {volume_name}")
            if action.status == "failure":
                raise TeardownOrderingError(f"Detach of volume {volume_name} failed (action {action.id})")

        await self._delete_tolerating_absence(adapter.delete_volume(volume), volume_name)
        self._log.info("Deleted volume {name}", name=volume_name)

    async def _wait_action(self, action: Action, description: str) -> Action:
        if action.is_terminal:
            return action
        try:
            return await wait_for(
                lambda: self._adapter.get_action(action.id),
                lambda a: a.is_terminal,
                interval=self._settings.poll_interval,
                timeout=self._settings.detach_timeout,
                description=description,
            )
        except TimeoutError as e:
            raise TeardownOrderingError(
                f"{description} did not finish within {self._settings.detach_timeout:.0f}s"
            ) from e

    # ─── Read ────────────────────────────────────────────────────────

    async def list_servers(self) -> Sequence[ResourceResult]:
        results: list[ResourceResult] = []
        for record in await self._adapter.list_instances():
            if not is_owned(record.tags, self._settings.owner_tag):
                continue
            if not record.ready:
                self._log.debug("Skipping {name}: not ready ({status})", name=record.name, status=record.status)
                continue
            results.append(self._to_result(record))
        return results

    async def get_server(self, instance_id: str, descriptor: ResourceDescriptor) -> ResourceResult:
        record = await self._resolve_ready(instance_id, descriptor)
        return self._to_result(record)

    async def _resolve_ready(self, instance_id: str, descriptor: ResourceDescriptor) -> InstanceRecord:
        record = await self._adapter.get_instance(instance_id)
        if record.ready:
            return record
        return await self._wait_ready(instance_id, descriptor.name)

    def _to_result(self, record: InstanceRecord) -> ResourceResult:
        return ResourceResult(
            id=record.id,
            name=record.name,
            region=record.region,
            public_ip=record.public_ip,
            tags=join_tags(record.tags, self._settings.owner_tag),
        )

    # ─── Post-provision ──────────────────────────────────────────────

    async def update_server(self, instance_id: str, descriptor: ResourceDescriptor) -> None:
        record = await self._resolve_ready(instance_id, descriptor)
        await self._operator.update(record.public_ip, descriptor)

    async def upload_plugin(
        self,
        instance_id: str,
        descriptor: ResourceDescriptor,
        artifact: str,
        destination: str,
    ) -> None:
        record = await self._resolve_ready(instance_id, descriptor)
        await self._operator.upload(record.public_ip, descriptor, artifact, destination)
