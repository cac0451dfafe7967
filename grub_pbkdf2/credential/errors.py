"""
Credential error types.

Every error is fatal for the run: the pipeline wipes its buffers and the
command line reports a single diagnostic line.
"""
from typing import Optional


class CredentialError(Exception):
    """Base exception for credential derivation."""
    pass


class AllocationError(CredentialError):
    """Raised when a sensitive buffer cannot be allocated."""
    pass


class InputError(CredentialError):
    """Raised when the password could not be read."""
    pass


class MismatchError(CredentialError):
    """Raised when the confirmation entry differs from the first entry."""
    pass


class EntropyError(CredentialError):
    """Raised when the salt cannot be filled from the entropy source."""
    pass


class DerivationError(CredentialError):
    """Raised when the key-derivation primitive reports a failure.

    Args:
        message: Human readable description.
        code: Identifier of the failure reported by the primitive.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class MalformedTokenError(CredentialError):
    """Raised when a credential token does not follow the grub.pbkdf2 format."""
    pass


class OutputError(CredentialError):
    """Raised when the credential line cannot be written."""
    pass
