"""Default boot and update script templates.

The orchestrator only depends on the ``TemplateRenderer`` protocol; this
module is the built-in implementation. Standard and proxy variants share
the same skeleton and differ in which jar is fetched and which port the
server binds to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Protocol

from blockhost.api.model import ResourceDescriptor
from blockhost.core.exceptions import ConfigurationError

from .compose import Op, phase, script
from .ops import (
    apt,
    enable_service,
    file,
    mkdir,
    mount_volume,
    shell,
    ssh_port,
    start_service,
    stop_service,
    systemd_unit,
)

SERVER_DIR: Final = "/minecraft"
SERVICE_NAME: Final = "minecraft.service"
UPDATE_LOG: Final = "/var/log/blockhost-update.log"
RESTART_COMMAND: Final = f"systemctl restart {SERVICE_NAME}"

_PAPER_API: Final = "https://api.papermc.io/v2/projects"
_MOJANG_MANIFEST: Final = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
_BUNGEECORD_JAR: Final = (
    "https://ci.md-5.net/job/BungeeCord/lastSuccessfulBuild/artifact/bootstrap/target/BungeeCord.jar"
)
_PAPER_PROJECTS: Final = {"papermc": "paper", "velocity": "velocity", "waterfall": "waterfall"}
EDITIONS: Final = frozenset({"java", "bungeecord", *_PAPER_PROJECTS})
"""Editions ``ScriptTemplate`` knows how to download; others need a custom renderer."""


class TemplateVariant(Enum):
    STANDARD = "standard"
    PROXY = "proxy"


@dataclass(frozen=True, slots=True)
class TemplateArgs:
    mount: str | None = None
    variant: TemplateVariant = TemplateVariant.STANDARD


class TemplateRenderer(Protocol):
    """Turns a descriptor into opaque script text."""

    def render(self, descriptor: ResourceDescriptor, args: TemplateArgs) -> str: ...

    def render_update(self, descriptor: ResourceDescriptor) -> str: ...


def _download_jar(edition: str, version: str, target: str) -> Op:
    """Fetch the server jar for an edition into ``target``."""
    edition = edition.lower()

    if edition in _PAPER_PROJECTS:
        project = _PAPER_PROJECTS[edition]
        return shell("\n".join([
            f'VERSION="{version}"',
            f'[ "$VERSION" = "latest" ] && VERSION=$(curl -fsSL {_PAPER_API}/{project} | jq -r ".versions[-1]")',
            f'BUILD=$(curl -fsSL {_PAPER_API}/{project}/versions/$VERSION/builds | jq -r ".builds[-1].build")',
            f"curl -fsSL -o {target} "
            f"{_PAPER_API}/{project}/versions/$VERSION/builds/$BUILD/downloads/{project}-$VERSION-$BUILD.jar",
        ]))

    if edition == "bungeecord":
        return shell(f"curl -fsSL -o {target} {_BUNGEECORD_JAR}")

    if edition == "java":
        return shell("\n".join([
            f'VERSION="{version}"',
            f'[ "$VERSION" = "latest" ] && VERSION=$(curl -fsSL {_MOJANG_MANIFEST} | jq -r ".latest.release")',
            f'META=$(curl -fsSL {_MOJANG_MANIFEST} | jq -r --arg v "$VERSION" \'.versions[] | select(.id == $v) | .url\')',
            f'curl -fsSL -o {target} $(curl -fsSL "$META" | jq -r ".downloads.server.url")',
        ]))

    raise ConfigurationError(
        f"Unsupported edition: {edition!r} (supported: {', '.join(sorted(EDITIONS))})"
    )


@dataclass(frozen=True, slots=True)
class ScriptTemplate:
    """Bash boot script suitable for cloud-init user data and startup scripts."""

    server_dir: str = SERVER_DIR
    service_name: str = SERVICE_NAME
    java_package: str = "openjdk-21-jre-headless"

    def _jar(self) -> str:
        return f"{self.server_dir}/server.jar"

    def _exec_start(self, descriptor: ResourceDescriptor) -> str:
        return f"/usr/bin/java -Xms{descriptor.memory} -Xmx{descriptor.memory} -jar {self._jar()} nogui"

    def render(self, descriptor: ResourceDescriptor, args: TemplateArgs) -> str:
        is_proxy = args.variant is TemplateVariant.PROXY
        properties = (
            "# proxy configuration is generated on first start"
            if is_proxy
            else file(f"{self.server_dir}/server.properties", "server-port=25565\nenable-query=true")
        )
        return script(
            phase("ssh", ssh_port(descriptor.ssh_port)),
            phase("packages", apt("curl", "jq", self.java_package)),
            phase(
                "storage",
                mount_volume(args.mount, self.server_dir) if args.mount else mkdir(self.server_dir),
            ),
            phase(
                "server",
                _download_jar(descriptor.edition, descriptor.server_version, self._jar()),
                None if is_proxy else file(f"{self.server_dir}/eula.txt", "eula=true"),
                properties,
            ),
            phase(
                "service",
                systemd_unit(
                    self.service_name,
                    f"Minecraft {'proxy' if is_proxy else 'server'} ({descriptor.edition})",
                    self.server_dir,
                    self._exec_start(descriptor),
                ),
                enable_service(self.service_name),
            ),
        )

    def render_update(self, descriptor: ResourceDescriptor) -> str:
        return script(
            phase(
                "update",
                stop_service(self.service_name),
                shell(f"cp {self._jar()} {self._jar()}.bak || true"),
                _download_jar(descriptor.edition, descriptor.server_version, self._jar()),
                start_service(self.service_name),
            ),
            log=UPDATE_LOG,
        )


def variant_for(descriptor: ResourceDescriptor) -> TemplateVariant:
    return TemplateVariant.PROXY if descriptor.is_proxy else TemplateVariant.STANDARD
