"""
Failure description — structured error information for the failure track.

Every failure carries an ErrorCode naming the kind of problem, a human
message, and optionally the exception that caused it. The codes map to the
ways a bundle export can go wrong:

  - fatal (abort the run):     DOCUMENT_UNAVAILABLE, OUTPUT_WRITE_FAILURE,
                               CONFIGURATION_ERROR
  - recoverable (per service): MALFORMED_SERVICE, INVALID_CERTIFICATE
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """Structured error codes for the failure track."""

    DOCUMENT_UNAVAILABLE = "DOCUMENT_UNAVAILABLE"
    """The trusted list could not be fetched, read, or parsed as XML."""

    MALFORMED_SERVICE = "MALFORMED_SERVICE"
    """A service entry lacks an expected field; defaults are substituted."""

    INVALID_CERTIFICATE = "INVALID_CERTIFICATE"
    """A service carries no usable certificate bytes."""

    OUTPUT_WRITE_FAILURE = "OUTPUT_WRITE_FAILURE"
    """The output sink could not be written to."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid settings, bad filter expression, or unknown fetch country."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected/unclassified failures."""

    @property
    def is_fatal(self) -> bool:
        """True for the kinds that abort the whole run."""
        return self not in (ErrorCode.MALFORMED_SERVICE, ErrorCode.INVALID_CERTIFICATE)


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.INVALID_CERTIFICATE, "empty certificate")
    >>> desc.code
    <ErrorCode.INVALID_CERTIFICATE: 'INVALID_CERTIFICATE'>
    >>> desc.message
    'empty certificate'
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def describe(self) -> str:
        """Message plus the causing exception's text, for one-line error output."""
        if self.exception is None:
            return self.message
        return f"{self.message}: {self.exception}"
