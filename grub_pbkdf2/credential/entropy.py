"""
Salt Source — fill salt buffers from a cryptographically strong source.

Two sources are available:
- ``SystemEntropySource``: the operating system CSPRNG via ``os.urandom``.
- ``DeviceEntropySource``: a random device file such as ``/dev/random``.

Short reads and open failures are fatal (``EntropyError``); there is no
retry and no substitute source.
"""
import os
import sys
import logging
from typing import Optional

from .buffers import SecretBuffer, SecretScope, scoped
from .errors import EntropyError

logger = logging.getLogger("grub_pbkdf2.credential")

# Platforms whose random devices are known to be cryptographically strong.
KNOWN_STRONG_PLATFORMS = ("linux", "freebsd")

_SALT_ERROR = "Couldn't retrieve random data for salt"


class EntropySource:
    """Base class for salt sources."""

    name = "entropy"

    @property
    def known_strong(self) -> bool:
        return True

    def _fill(self, buffer: bytearray) -> None:
        raise NotImplementedError

    def read(self, size: int, scope: Optional[SecretScope] = None) -> SecretBuffer:
        """Return ``size`` fresh random bytes.

        Args:
            size: Number of bytes requested.
            scope: Optional owner of the returned buffer.

        Raises:
            EntropyError: If fewer than ``size`` bytes could be obtained.
        """
        if not self.known_strong:
            logger.warning("your random generator isn't known to be secure")
        salt = scoped(scope, SecretBuffer(size))
        try:
            self._fill(salt.raw)
        except EntropyError:
            salt.wipe()
            raise
        except (OSError, NotImplementedError) as err:
            salt.wipe()
            raise EntropyError(_SALT_ERROR) from err
        logger.debug("Read %d salt byte(s) from %s", size, self.name)
        return salt


class SystemEntropySource(EntropySource):
    """Operating system CSPRNG (``getrandom``, ``CryptGenRandom``...)."""

    name = "os.urandom"

    def _fill(self, buffer: bytearray) -> None:
        data = os.urandom(len(buffer))
        if len(data) != len(buffer):
            raise EntropyError(_SALT_ERROR)
        buffer[:] = data


class DeviceEntropySource(EntropySource):
    """Random device file read without buffering.

    Args:
        path: Device to read, e.g. ``/dev/random``.
    """

    def __init__(self, path: str = "/dev/random"):
        self.path = path

    @property
    def name(self) -> str:
        return self.path

    @property
    def known_strong(self) -> bool:
        return sys.platform.startswith(KNOWN_STRONG_PLATFORMS)

    def _fill(self, buffer: bytearray) -> None:
        got = 0
        with open(self.path, "rb", buffering=0) as device:
            view = memoryview(buffer)
            try:
                while got < len(buffer):
                    n = device.readinto(view[got:])
                    if not n:
                        break
                    got += n
            finally:
                view.release()
        if got != len(buffer):
            logger.debug(
                "Short read from %s: %d of %d byte(s)", self.path, got, len(buffer),
            )
            raise EntropyError(_SALT_ERROR)


def default_entropy_source(random_device: Optional[str] = None) -> EntropySource:
    """Device source when a path is configured, the OS CSPRNG otherwise."""
    if random_device:
        return DeviceEntropySource(random_device)
    return SystemEntropySource()
