"""Deterministic auxiliary resource names and ownership tags.

Auxiliary resources are never stored locally; teardown and updates find
them again by re-deriving the same names from the logical name.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_OWNER_TAG = "blockhost"

SSH_KEY_SUFFIX = "ssh"
VOLUME_SUFFIX = "vol"
BOOT_SCRIPT_SUFFIX = "stackscript"


def derive_name(name: str, suffix: str) -> str:
    return f"{name}-{suffix}"


def derive_ssh_key_name(name: str) -> str:
    return derive_name(name, SSH_KEY_SUFFIX)


def derive_volume_name(name: str) -> str:
    return derive_name(name, VOLUME_SUFFIX)


def derive_boot_script_name(name: str) -> str:
    return derive_name(name, BOOT_SCRIPT_SUFFIX)


def instance_tags(edition: str, owner_tag: str = DEFAULT_OWNER_TAG) -> tuple[str, ...]:
    """Tags applied to every instance the orchestrator creates."""
    if edition == owner_tag:
        return (owner_tag,)
    return (owner_tag, edition)


def is_owned(tags: Iterable[str], owner_tag: str = DEFAULT_OWNER_TAG) -> bool:
    return owner_tag in set(tags)


def join_tags(tags: Iterable[str], owner_tag: str = DEFAULT_OWNER_TAG) -> str:
    """Flatten a tag set for ``ResourceResult.tags``: owner tag first, then provider order."""
    ordered = list(dict.fromkeys(tags))
    if owner_tag in ordered:
        ordered.remove(owner_tag)
        ordered.insert(0, owner_tag)
    return ",".join(ordered)


__all__ = [
    "DEFAULT_OWNER_TAG",
    "derive_boot_script_name",
    "derive_name",
    "derive_ssh_key_name",
    "derive_volume_name",
    "instance_tags",
    "is_owned",
    "join_tags",
]
