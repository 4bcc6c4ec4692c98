"""Boot script composition.

A script is a sequence of ops grouped into named phases. Each phase writes
a marker line to the boot log, so a failed cloud-init or startup-script run
shows which step stopped it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Final

type Op = str | Callable[[], str] | list[Op]
"""A literal shell fragment, a thunk producing one, or a nested list."""

BOOT_LOG: Final = "/var/log/blockhost-boot.log"
PHASE_MARKER: Final = "[blockhost]"


def _header(log: str | None) -> str:
    lines = ["#!/bin/bash", "set -euo pipefail", ""]
    if log is not None:
        lines += [f"exec > >(tee -a {log}) 2>&1", ""]
    lines.append("export DEBIAN_FRONTEND=noninteractive")
    return "\n".join(lines) + "\n"


def resolve(op: Op | None) -> str:
    match op:
        case None:
            return ""
        case str():
            return op
        case list():
            return "\n".join(resolve(o) for o in op)
        case _:
            return op()


def phase(name: str, *ops: Op | None) -> Op:
    """Group ops under a named phase with a start marker in the boot log."""
    body = [resolve(o) for o in ops if o is not None]
    return [f'echo "{PHASE_MARKER} {name}"', *(b for b in body if b)]


def script(*ops: Op | None, log: str | None = BOOT_LOG) -> str:
    """Compose ops into a complete bash script.

    ``None`` entries are skipped, which keeps optional steps inline:

    Example:
        >>> script(apt("curl"), mount_volume("sdb", "/minecraft") if mount else None)
    """
    commands = (resolve(op) for op in ops if op is not None)
    return _header(log) + "\n" + "\n\n".join(c for c in commands if c) + "\n"
