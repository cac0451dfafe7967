"""
Secret Acquisition — read the password twice with echo disabled.

The controlling terminal is opened once and serves both the password and its
confirmation. When it cannot be opened, or its mode cannot be changed, both
reads come from standard input and prompts go to standard error; echo is
still turned off if standard input happens to be a terminal.

While reading, ECHO and ISIG are cleared on the input terminal. The original
mode is restored before the entries are evaluated, whatever the outcome of
the reads.
"""
import io
import os
import sys
import logging
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, TextIO

try:
    import termios
except ImportError:  # not a POSIX platform; echo cannot be disabled
    termios = None

from .buffers import SecretBuffer, SecretScope, scoped
from .config import DEFAULT_TTY
from .errors import InputError, MismatchError

logger = logging.getLogger("grub_pbkdf2.credential")

PROMPT = "Enter password: "
CONFIRM_PROMPT = "Reenter password: "


# ---------------------------------------------------------------------------
# Input sources
# ---------------------------------------------------------------------------

class StreamSource:
    """Reads lines from a binary stream and writes prompts to a text stream."""

    def __init__(self, instream: BinaryIO, outstream: TextIO):
        self._in = instream
        self._out = outstream

    def fileno(self) -> Optional[int]:
        """Descriptor of the input stream, or None if it has none."""
        try:
            return self._in.fileno()
        except (OSError, ValueError):
            return None

    def write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def readline(self) -> bytes:
        return self._in.readline()

    def close(self) -> None:
        pass


class TerminalSource(StreamSource):
    """The controlling terminal, used for both prompts and input."""

    def __init__(self, device: io.FileIO):
        self._device = device
        super().__init__(device, io.TextIOWrapper(device, write_through=True))

    def fileno(self) -> Optional[int]:
        return self._device.fileno()

    def close(self) -> None:
        self._out.detach()
        self._device.close()


@contextmanager
def quiet_source(source: StreamSource) -> Iterator[StreamSource]:
    """Yield ``source`` with echo disabled when it is a terminal."""
    with TerminalModeGuard(source.fileno()) as guard:
        logger.debug("Reading password, echo disabled: %s", guard.changed)
        yield source


@contextmanager
def open_input_source(tty_path: str = DEFAULT_TTY) -> Iterator[StreamSource]:
    """Open the terminal at ``tty_path`` with echo disabled.

    Falls back to stdin/stderr when the terminal cannot be opened or its
    mode cannot be changed.
    """
    try:
        fd = os.open(tty_path, os.O_RDWR | os.O_NOCTTY)
    except OSError as err:
        logger.debug("Cannot open %s (%s), reading from standard input", tty_path, err)
    else:
        tty = TerminalSource(io.FileIO(fd, "r+"))
        try:
            with TerminalModeGuard(tty.fileno()) as guard:
                if guard.changed:
                    yield tty
                    return
        finally:
            tty.close()
        logger.debug("Cannot disable echo on %s, reading from standard input", tty_path)
    with quiet_source(StreamSource(sys.stdin.buffer, sys.stderr)) as source:
        yield source


# ---------------------------------------------------------------------------
# Terminal mode guard
# ---------------------------------------------------------------------------

class TerminalModeGuard:
    """Clear ECHO and ISIG on ``fd`` for the duration of a ``with`` block.

    Acquisition never fails: if ``fd`` is not a terminal (or termios is
    unavailable) the guard does nothing and ``changed`` stays False.
    """

    def __init__(self, fd: Optional[int]):
        self.fd = fd
        self._saved = None

    @property
    def changed(self) -> bool:
        return self._saved is not None

    def __enter__(self) -> "TerminalModeGuard":
        if termios is None or self.fd is None:
            return self
        try:
            saved = termios.tcgetattr(self.fd)
            quiet = list(saved)
            quiet[3] &= ~(termios.ECHO | termios.ISIG)
            termios.tcsetattr(self.fd, termios.TCSAFLUSH, quiet)
        except (termios.error, OSError) as err:
            logger.debug("Echo left enabled on fd %s: %s", self.fd, err)
            return self
        self._saved = saved
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._saved is not None:
            try:
                termios.tcsetattr(self.fd, termios.TCSAFLUSH, self._saved)
            except (termios.error, OSError) as err:
                logger.warning("Could not restore terminal mode: %s", err)
            self._saved = None
        return False


# ---------------------------------------------------------------------------
# Secret reader
# ---------------------------------------------------------------------------

def read_secret(source: StreamSource) -> Optional[SecretBuffer]:
    """Read one line from ``source`` into a SecretBuffer.

    Exactly one trailing newline is stripped.

    Returns:
        The secret, or None at end of input.

    Raises:
        InputError: If the underlying read fails.
    """
    try:
        line = source.readline()
    except (OSError, ValueError) as err:
        raise InputError("Failure to read password") from err
    if not line:
        return None
    end = len(line) - 1 if line.endswith(b"\n") else len(line)
    return SecretBuffer.from_bytes(memoryview(line)[:end])


class SecretReader:
    """Prompt for a password and its confirmation.

    Args:
        tty_path: Terminal device to open for prompting.
        source: Already opened input source; when given it is used for both
            reads and is not closed by the reader.
    """

    def __init__(
        self,
        tty_path: str = DEFAULT_TTY,
        source: Optional[StreamSource] = None,
        prompt: str = PROMPT,
        confirm_prompt: str = CONFIRM_PROMPT,
    ):
        self.tty_path = tty_path
        self.source = source
        self.prompt = prompt
        self.confirm_prompt = confirm_prompt

    def _open(self):
        if self.source is not None:
            return quiet_source(self.source)
        return open_input_source(self.tty_path)

    def acquire(self, scope: Optional[SecretScope] = None) -> SecretBuffer:
        """Read and confirm the password.

        Only the first entry survives; the confirmation copy is wiped before
        returning.

        Returns:
            SecretBuffer holding the password (without line terminator).

        Raises:
            InputError: If either entry could not be read.
            MismatchError: If the two entries differ.
        """
        primary: Optional[SecretBuffer] = None
        confirm: Optional[SecretBuffer] = None
        try:
            with self._open() as source:
                source.write(self.prompt)
                primary = read_secret(source)
                if primary is not None:
                    scoped(scope, primary)
                    source.write(f"\n{self.confirm_prompt}")
                    confirm = read_secret(source)
                    if confirm is not None:
                        scoped(scope, confirm)
                source.write("\n")
            if primary is None or confirm is None:
                raise InputError("Failure to read password")
            if not primary.equals(confirm):
                raise MismatchError("Passwords don't match")
        except BaseException:
            if primary is not None:
                primary.wipe()
            raise
        finally:
            if confirm is not None:
                confirm.wipe()
        return primary
