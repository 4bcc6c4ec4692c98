"""Hetzner Cloud provider for Blockhost."""

from .config import Hetzner

__all__ = ["Hetzner"]
