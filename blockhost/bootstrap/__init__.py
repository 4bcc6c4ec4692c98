"""Boot script DSL and the default template collaborator.

Example:
    >>> from blockhost.bootstrap import ScriptTemplate, TemplateArgs
    >>> text = ScriptTemplate().render(descriptor, TemplateArgs(mount="sdb"))
"""

from __future__ import annotations

from .compose import BOOT_LOG, Op, phase, resolve, script
from .ops import apt, file, mkdir, mount_volume, shell, ssh_port, systemd_unit
from .template import (
    EDITIONS,
    RESTART_COMMAND,
    SERVER_DIR,
    SERVICE_NAME,
    ScriptTemplate,
    TemplateArgs,
    TemplateRenderer,
    TemplateVariant,
    variant_for,
)

__all__ = [
    "BOOT_LOG",
    "EDITIONS",
    "RESTART_COMMAND",
    "SERVER_DIR",
    "SERVICE_NAME",
    "Op",
    "ScriptTemplate",
    "TemplateArgs",
    "TemplateRenderer",
    "TemplateVariant",
    "apt",
    "file",
    "mkdir",
    "mount_volume",
    "phase",
    "resolve",
    "script",
    "shell",
    "ssh_port",
    "systemd_unit",
    "variant_for",
]
