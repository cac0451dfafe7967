"""
Secret Buffers — zero-then-release containers for sensitive bytes.

A ``SecretBuffer`` wraps a mutable ``bytearray`` so that its contents can be
overwritten in place. Leaving the buffer's ``with`` block, or calling
``wipe()``, zeroes every byte and marks the buffer released; any later access
to the contents raises ``ValueError``.

A ``SecretScope`` owns all buffers allocated during one pipeline run and wipes
them together on exit, whatever the exit path.

Security Note:
    Only the ``bytearray`` storage is wiped. Immutable ``bytes`` copies made
    by callers (or by libraries) are outside of our control.
"""
import hmac
import logging
from typing import Optional

from .errors import AllocationError

logger = logging.getLogger("grub_pbkdf2.credential")


class SecretBuffer:
    """Fixed-length mutable buffer that is zeroed before release."""

    __slots__ = ("_buf", "_released")

    def __init__(self, size: int = 0):
        if size < 0:
            raise ValueError(f"Buffer size cannot be negative: {size}")
        try:
            self._buf = bytearray(size)
        except (MemoryError, OverflowError) as err:
            raise AllocationError("Out of memory") from err
        self._released = False

    @classmethod
    def from_bytes(cls, data) -> "SecretBuffer":
        """Copy a bytes-like object into a new buffer."""
        buffer = cls(len(data))
        buffer._buf[:] = data
        return buffer

    @property
    def raw(self) -> bytearray:
        """Underlying storage.

        Raises:
            ValueError: If the buffer was already wiped.
        """
        if self._released:
            raise ValueError("SecretBuffer has been released")
        return self._buf

    @property
    def released(self) -> bool:
        return self._released

    @property
    def is_zeroed(self) -> bool:
        """True when every byte of the storage is zero."""
        return not any(self._buf)

    def fill(self, data) -> None:
        """Overwrite the whole buffer with ``data`` of the same length."""
        if len(data) != len(self._buf):
            raise ValueError(
                f"Expected {len(self._buf)} bytes, got {len(data)}"
            )
        self.raw[:] = data

    def equals(self, other: "SecretBuffer") -> bool:
        """Constant-time comparison of two buffers."""
        return hmac.compare_digest(self.raw, other.raw)

    def wipe(self) -> None:
        """Zero the storage and release the buffer. Safe to call twice."""
        if self._buf:
            self._buf[:] = bytes(len(self._buf))
        self._released = True

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.wipe()
        return False

    def __repr__(self) -> str:
        # never expose contents
        return f"<SecretBuffer len={len(self._buf)} released={self._released}>"


class SecretScope:
    """Owner of every sensitive buffer allocated during one run.

    Usage::

        with SecretScope() as scope:
            salt = scope.allocate(64)
            ...
        # every buffer is zeroed here
    """

    def __init__(self):
        self.buffers: list[SecretBuffer] = []

    def allocate(self, size: int) -> SecretBuffer:
        """Allocate a zero-filled buffer owned by this scope."""
        return self.adopt(SecretBuffer(size))

    def adopt(self, buffer: SecretBuffer) -> SecretBuffer:
        """Take ownership of an existing buffer."""
        self.buffers.append(buffer)
        return buffer

    def from_bytes(self, data) -> SecretBuffer:
        return self.adopt(SecretBuffer.from_bytes(data))

    def wipe(self) -> None:
        """Wipe every owned buffer."""
        for buffer in self.buffers:
            buffer.wipe()
        logger.debug("Wiped %d secret buffer(s)", len(self.buffers))

    def __enter__(self) -> "SecretScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.wipe()
        return False


def scoped(scope: Optional[SecretScope], buffer: SecretBuffer) -> SecretBuffer:
    """Register ``buffer`` with ``scope`` when one is given."""
    if scope is not None:
        scope.adopt(buffer)
    return buffer
