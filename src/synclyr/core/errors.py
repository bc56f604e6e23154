# src/synclyr/core/errors.py


class SynclyrError(Exception):
    """Base application error for SYNCLYR.

    Use this for predictable, user-facing error messages that should be
    caught by the CLI and displayed nicely.
    """

    pass


class TransportError(SynclyrError):
    """An HTTP request could not be completed.

    `transient` tells whether the failure class is one the transport retries
    (connect, timeout, TLS handshake, empty reply, send/receive). When raised
    to a caller it means the retry budget was exhausted or the failure was
    permanent.
    """

    def __init__(self, message: str, *, transient: bool = False, cause: Exception | None = None):
        super().__init__(message)
        self.transient = transient
        self.cause = cause


class LookupFailed(SynclyrError):
    """The lyrics service answered with an error or an undecodable body."""

    pass
