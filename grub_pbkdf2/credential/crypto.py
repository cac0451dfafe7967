"""
Credential Crypto Core — key derivation, hex encoding and token format.

Token format (one line on stdout):
    grub.pbkdf2.sha512.<iterations>.<SALT_HEX>.<HASH_HEX>

- ``grub.pbkdf2`` algorithm tag, ``sha512`` hash identifier
- iterations in decimal, without leading zeros
- salt and derived key as uppercase hex, two digits per byte, no separators

Security Note:
    Never log salt, derived key or their hex forms. Hex digits are written
    into ``SecretBuffer`` storage so that they can be wiped with the rest.
"""
import re
import logging
from typing import BinaryIO, Optional, Protocol

from pydantic import BaseModel, Field
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .buffers import SecretBuffer, SecretScope, scoped
from .errors import DerivationError, MalformedTokenError, OutputError

logger = logging.getLogger("grub_pbkdf2.credential")

ALGORITHM_TAG = "grub.pbkdf2"
HASH_NAME = "sha512"
TOKEN_PREFIX = f"{ALGORITHM_TAG}.{HASH_NAME}"

_HEX_DIGITS = b"0123456789ABCDEF"
_HEX_FIELD = re.compile(r"^(?:[0-9A-F]{2})+$")
_ITERATIONS_FIELD = re.compile(r"^[1-9][0-9]*$")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

class KeyDerivationPrimitive(Protocol):
    """Password-based key derivation capability.

    ``derive`` fills ``out`` completely or raises ``DerivationError``.
    """

    hash_name: str

    def derive(
        self,
        secret: SecretBuffer,
        salt: SecretBuffer,
        iterations: int,
        out: SecretBuffer,
    ) -> None:
        ...


class PBKDF2SHA512:
    """PBKDF2 with HMAC-SHA512 from the ``cryptography`` package."""

    hash_name = HASH_NAME

    def derive(
        self,
        secret: SecretBuffer,
        salt: SecretBuffer,
        iterations: int,
        out: SecretBuffer,
    ) -> None:
        """Derive ``len(out)`` bytes from secret and salt into ``out``.

        Raises:
            DerivationError: If the parameters are rejected by the backend.
        """
        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA512(),
                length=len(out),
                salt=bytes(salt.raw),
                iterations=iterations,
            )
            key = kdf.derive(secret.raw)
        except (ValueError, TypeError, OverflowError, UnsupportedAlgorithm) as err:
            out.raw[:] = bytes(len(out))
            raise DerivationError(
                f"Cryptographic error: {err}", code=type(err).__name__,
            ) from err
        out.fill(key)
        del key


def derive_key(
    secret: SecretBuffer,
    salt: SecretBuffer,
    iterations: int,
    length: int,
    primitive: Optional[KeyDerivationPrimitive] = None,
    scope: Optional[SecretScope] = None,
) -> SecretBuffer:
    """Derive key material and wipe the secret afterwards.

    The secret is wiped as soon as the primitive returns, on success and on
    failure.

    Returns:
        SecretBuffer with ``length`` bytes of derived key material.
    """
    if primitive is None:
        primitive = PBKDF2SHA512()
    out = scoped(scope, SecretBuffer(length))
    try:
        primitive.derive(secret, salt, iterations, out)
    except BaseException:
        out.wipe()
        raise
    finally:
        secret.wipe()
    logger.debug(
        "Derived %d byte(s) with %d iteration(s) of PBKDF2-%s",
        length, iterations, primitive.hash_name.upper(),
    )
    return out


# ---------------------------------------------------------------------------
# Hex encoding
# ---------------------------------------------------------------------------

def hexify(data: SecretBuffer, scope: Optional[SecretScope] = None) -> SecretBuffer:
    """Encode ``data`` as uppercase hex, most significant nibble first.

    Returns:
        SecretBuffer of ``2 * len(data)`` ASCII digits.
    """
    out = scoped(scope, SecretBuffer(2 * len(data)))
    dst = out.raw
    for i, byte in enumerate(data.raw):
        dst[2 * i] = _HEX_DIGITS[byte >> 4]
        dst[2 * i + 1] = _HEX_DIGITS[byte & 0x0F]
    return out


def unhexify(text: str) -> SecretBuffer:
    """Decode an uppercase hex field.

    Raises:
        MalformedTokenError: On lowercase, odd-length, empty or non-hex input.
    """
    if not _HEX_FIELD.match(text):
        raise MalformedTokenError(
            "Hex fields must be non-empty uppercase hexadecimal pairs"
        )
    return SecretBuffer.from_bytes(bytes.fromhex(text))


# ---------------------------------------------------------------------------
# Credential record
# ---------------------------------------------------------------------------

class CredentialRecord(BaseModel):
    """Immutable (algorithm, hash, iterations, salt, derived key) tuple.

    Salt and derived key stay in their SecretBuffers; ``wipe()`` releases
    both.
    """

    algorithm: str = Field(default=ALGORITHM_TAG, pattern=r"^grub\.pbkdf2$")
    hash_name: str = Field(default=HASH_NAME, pattern=r"^sha512$")
    iterations: int = Field(ge=1)
    salt: SecretBuffer
    derived: SecretBuffer

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    def write(self, stream: BinaryIO, scope: Optional[SecretScope] = None) -> None:
        """Write the token and a newline to a binary stream.

        Hex forms live in SecretBuffers owned by ``scope`` (or wiped here
        when no scope is given).

        Raises:
            OutputError: If the stream rejects the write.
        """
        salt_hex = hexify(self.salt, scope)
        derived_hex = hexify(self.derived, scope)
        try:
            header = f"{self.algorithm}.{self.hash_name}.{self.iterations}."
            stream.write(header.encode("ascii"))
            stream.write(salt_hex.raw)
            stream.write(b".")
            stream.write(derived_hex.raw)
            stream.write(b"\n")
            stream.flush()
        except OSError as err:
            raise OutputError(f"Failure to write credential: {err}") from err
        finally:
            if scope is None:
                salt_hex.wipe()
                derived_hex.wipe()

    def encode(self) -> str:
        """Return the token as a string.

        The returned ``str`` cannot be wiped; the command line uses
        ``write()`` instead.
        """
        with hexify(self.salt) as salt_hex, hexify(self.derived) as derived_hex:
            return (
                f"{self.algorithm}.{self.hash_name}.{self.iterations}."
                f"{salt_hex.raw.decode('ascii')}.{derived_hex.raw.decode('ascii')}"
            )

    def wipe(self) -> None:
        self.salt.wipe()
        self.derived.wipe()


def decode_token(token: str) -> CredentialRecord:
    """Parse a ``grub.pbkdf2.sha512`` token.

    Args:
        token: Token as printed by the command line (trailing newline allowed).

    Returns:
        CredentialRecord with decoded salt and derived key.

    Raises:
        MalformedTokenError: If any field is missing or invalid.
    """
    token = token.rstrip("\n")
    parts = token.rsplit(".", 3)
    if len(parts) != 4:
        raise MalformedTokenError("Token must have five dot-separated fields")
    prefix, iterations, salt_hex, derived_hex = parts
    if prefix != TOKEN_PREFIX:
        raise MalformedTokenError(
            f"Unsupported token prefix: expected {TOKEN_PREFIX}"
        )
    if not _ITERATIONS_FIELD.match(iterations):
        raise MalformedTokenError(
            "Iteration count must be a positive decimal without leading zeros"
        )
    salt = unhexify(salt_hex)
    try:
        derived = unhexify(derived_hex)
    except MalformedTokenError:
        salt.wipe()
        raise
    return CredentialRecord(
        iterations=int(iterations), salt=salt, derived=derived,
    )
