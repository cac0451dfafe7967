"""
Derivation Configuration — validated settings for one credential run.

Values come from, in increasing priority:
    defaults → environment variables → explicit overrides (command line)

Environment variables:
    GRUB_PBKDF2_ITERATION_COUNT = <int>
    GRUB_PBKDF2_BUFLEN = <int>
    GRUB_PBKDF2_SALTLEN = <int>
    GRUB_PBKDF2_RANDOM_DEVICE = <path>
    GRUB_PBKDF2_TTY = <path>
"""
import os
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("grub_pbkdf2.credential")

DEFAULT_ITERATIONS = 10000
DEFAULT_BUFLEN = 64
DEFAULT_SALTLEN = 64
DEFAULT_TTY = "/dev/tty"

_ENV_FIELDS = {
    "GRUB_PBKDF2_ITERATION_COUNT": "iterations",
    "GRUB_PBKDF2_BUFLEN": "buflen",
    "GRUB_PBKDF2_SALTLEN": "saltlen",
    "GRUB_PBKDF2_RANDOM_DEVICE": "random_device",
    "GRUB_PBKDF2_TTY": "tty_path",
}


def load_env_settings(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Collect GRUB_PBKDF2_* settings present in the environment.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``.

    Returns:
        Mapping of config field name to raw string value.
    """
    if environ is None:
        environ = os.environ
    settings = {
        field: environ[name]
        for name, field in _ENV_FIELDS.items()
        if environ.get(name)
    }
    if settings:
        logger.debug("Settings from environment: %s", sorted(settings))
    return settings


class DerivationConfig(BaseModel):
    """Validated derivation configuration."""

    iterations: int = Field(default=DEFAULT_ITERATIONS, ge=1)
    buflen: int = Field(default=DEFAULT_BUFLEN, ge=1)
    saltlen: int = Field(default=DEFAULT_SALTLEN, ge=1)
    random_device: Optional[str] = None
    tty_path: str = Field(default=DEFAULT_TTY)

    model_config = {"frozen": True}

    @field_validator("random_device", "tty_path")
    @classmethod
    def validate_path(cls, v: Optional[str]) -> Optional[str]:
        """Reject empty device paths."""
        if v is not None and not v.strip():
            raise ValueError("Device path cannot be empty")
        return v

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "DerivationConfig":
        """Create DerivationConfig from environment plus explicit overrides.

        Overrides whose value is None are ignored, so unset command line
        options fall back to the environment and then to the defaults.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        values: dict[str, Any] = dict(load_env_settings(environ))
        values.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        return cls(**values)
