"""Vultr provider for Blockhost."""

from .config import Vultr

__all__ = ["Vultr"]
