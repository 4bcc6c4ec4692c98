"""SSH public key material resolution.

Finds the key a resource descriptor points at and checks that it looks
like an OpenSSH public key before anything is registered on a provider.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

from blockhost.api.model import ResourceDescriptor
from blockhost.core.exceptions import KeyMaterialError


def validate_public_key(public_key: str) -> str:
    """Return the stripped key if it has the "<type> <base64> [comment]" shape.

    Raises:
        KeyMaterialError: If the material is empty or malformed.
    """
    material = public_key.strip()
    parts = material.split()
    if len(parts) < 2:
        raise KeyMaterialError(f"Invalid SSH public key format: {material[:50]!r}")
    try:
        base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyMaterialError(f"Could not decode SSH public key: {e}") from e
    return material


def resolve_public_key(descriptor: ResourceDescriptor) -> str:
    """Resolve the public key material for a descriptor.

    Inline material wins over ``public_key_path``.

    Raises:
        KeyMaterialError: If no usable key material can be found.
    """
    if descriptor.public_key:
        return validate_public_key(descriptor.public_key)

    path = Path(descriptor.public_key_path).expanduser()
    try:
        content = path.read_text()
    except OSError as e:
        raise KeyMaterialError(f"Cannot read public key {path}: {e}") from e
    if not content.strip():
        raise KeyMaterialError(f"Public key file {path} is empty")
    return validate_public_key(content)


__all__ = ["resolve_public_key", "validate_public_key"]
