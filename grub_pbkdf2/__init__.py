"""GRUB PBKDF2 — interactive credential derivation utility."""
from .version import __version__, __title__

__all__ = ["__version__", "__title__"]
