"""
Credential Pipeline — acquire, salt, derive, encode.

State machine::

    START → SECRET_ACQUIRED → SALT_ACQUIRED → DERIVED → ENCODED → DONE
                      (any non-terminal state) → FAILED

Every buffer allocated during a run belongs to the run's ``SecretScope`` and
is zeroed when the run ends, successfully or not. There is no retry.
"""
import enum
import logging
from typing import BinaryIO, Optional

from .buffers import SecretScope
from .config import DerivationConfig
from .crypto import CredentialRecord, KeyDerivationPrimitive, PBKDF2SHA512, derive_key
from .entropy import EntropySource, default_entropy_source
from .errors import CredentialError
from .terminal import SecretReader

logger = logging.getLogger("grub_pbkdf2.credential")


class PipelineState(enum.Enum):
    START = "start"
    SECRET_ACQUIRED = "secret_acquired"
    SALT_ACQUIRED = "salt_acquired"
    DERIVED = "derived"
    ENCODED = "encoded"
    DONE = "done"
    FAILED = "failed"


class CredentialPipeline:
    """Single-shot credential derivation.

    Args:
        config: Validated derivation settings.
        reader: Secret acquisition component (terminal by default).
        entropy: Salt source (from ``config.random_device`` by default).
        primitive: Key-derivation primitive (PBKDF2-HMAC-SHA512 by default).
    """

    def __init__(
        self,
        config: DerivationConfig,
        reader: Optional[SecretReader] = None,
        entropy: Optional[EntropySource] = None,
        primitive: Optional[KeyDerivationPrimitive] = None,
    ):
        self.config = config
        self.reader = reader or SecretReader(tty_path=config.tty_path)
        self.entropy = entropy or default_entropy_source(config.random_device)
        self.primitive = primitive or PBKDF2SHA512()
        self.state = PipelineState.START
        self.scope: Optional[SecretScope] = None

    def _advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.name, state.name)
        self.state = state

    def run(self, out: BinaryIO) -> None:
        """Run the pipeline once and write the token line to ``out``.

        Raises:
            CredentialError: Any failure. Only an OutputError can leave a
                partial line in ``out``.
        """
        if self.state is not PipelineState.START:
            raise RuntimeError("CredentialPipeline can only run once")
        self.scope = SecretScope()
        try:
            with self.scope as scope:
                secret = self.reader.acquire(scope)
                self._advance(PipelineState.SECRET_ACQUIRED)

                salt = self.entropy.read(self.config.saltlen, scope)
                self._advance(PipelineState.SALT_ACQUIRED)

                derived = derive_key(
                    secret,
                    salt,
                    self.config.iterations,
                    self.config.buflen,
                    primitive=self.primitive,
                    scope=scope,
                )
                self._advance(PipelineState.DERIVED)

                record = CredentialRecord(
                    hash_name=self.primitive.hash_name,
                    iterations=self.config.iterations,
                    salt=salt,
                    derived=derived,
                )
                record.write(out, scope)
                self._advance(PipelineState.ENCODED)
        except CredentialError as err:
            logger.debug("Pipeline failed in state %s: %s", self.state.name, err)
            self._advance(PipelineState.FAILED)
            raise
        except BaseException:
            self._advance(PipelineState.FAILED)
            raise
        self._advance(PipelineState.DONE)
