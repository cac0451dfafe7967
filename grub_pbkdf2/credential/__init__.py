"""Credential — PBKDF2-SHA512 credential derivation pipeline.

Security Note (Threat Model):
    Password, salt and derived key are held in SecretBuffers and zeroed on
    every exit path. Python keeps transient immutable copies (the line read
    from the terminal, the salt passed to the backend, the derived bytes it
    returns) that cannot be overwritten; they are dropped as soon as they
    are copied. A run interrupted by a signal gives no zeroization guarantee.
"""

from .buffers import SecretBuffer, SecretScope
from .config import DerivationConfig
from .crypto import (
    CredentialRecord,
    KeyDerivationPrimitive,
    PBKDF2SHA512,
    decode_token,
    derive_key,
    hexify,
)
from .entropy import DeviceEntropySource, SystemEntropySource
from .errors import (
    CredentialError,
    AllocationError,
    InputError,
    MismatchError,
    EntropyError,
    DerivationError,
    MalformedTokenError,
    OutputError,
)
from .pipeline import CredentialPipeline, PipelineState
from .terminal import SecretReader, StreamSource

__all__ = [
    "SecretBuffer",
    "SecretScope",
    "DerivationConfig",
    "CredentialRecord",
    "KeyDerivationPrimitive",
    "PBKDF2SHA512",
    "decode_token",
    "derive_key",
    "hexify",
    "DeviceEntropySource",
    "SystemEntropySource",
    "CredentialError",
    "AllocationError",
    "InputError",
    "MismatchError",
    "EntropyError",
    "DerivationError",
    "MalformedTokenError",
    "OutputError",
    "CredentialPipeline",
    "PipelineState",
    "SecretReader",
    "StreamSource",
]
