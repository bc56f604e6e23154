"""
HTTP transport for the sync engine.

One `HttpTransport` wraps one `requests.Session`, so a worker that keeps its
transport for the whole run reuses TCP/TLS connections across lookups. The
transport is never shared between workers.

Transient failures (connect, timeout, TLS handshake, empty reply,
send/receive) are retried with exponential backoff; anything else fails on
the first attempt. The CA trust store is probed once, when the transport is
built, and a certificate-verification failure logs a hint describing where
certificates were looked for.
"""

from __future__ import annotations

import logging
import os
import socket
import ssl
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping, Optional, Sequence

import requests
from urllib3.exceptions import NameResolutionError

from .errors import TransportError
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

USER_AGENT = "synclyr (https://github.com/newtonsart/synclyr2metadata)"
DEFAULT_TIMEOUT = 15.0
MAX_RETRIES = 3
BACKOFF_BASE = 1.0  # 1s, 2s, 4s

CA_FILE_ENV_VARS = ("CURL_CA_BUNDLE", "SSL_CERT_FILE", "REQUESTS_CA_BUNDLE")
CA_DIR_ENV_VARS = ("SSL_CERT_DIR",)

SYSTEM_CA_FILES = (
    "/etc/ssl/cert.pem",
    "/etc/ssl/certs/ca-certificates.crt",
    "/etc/pki/tls/certs/ca-bundle.crt",
    "/etc/ssl/ca-bundle.pem",
    "/etc/pki/tls/cacert.pem",
    "/etc/pki/ca-trust/extracted/pem/tls-ca-bundle.pem",
)
SYSTEM_CA_DIRS = (
    "/etc/ssl/certs",
    "/etc/pki/tls/certs",
    "/etc/pki/ca-trust/extracted/pem",
)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class TrustStore:
    """CA bundle file and/or CA directory chosen for TLS verification."""

    ca_file: Optional[str] = None
    ca_dir: Optional[str] = None
    file_candidates: tuple[str, ...] = field(default_factory=tuple)
    dir_candidates: tuple[str, ...] = field(default_factory=tuple)

    @property
    def verify(self) -> bool | str:
        """Value for the `verify` argument of requests."""
        if self.ca_file:
            return self.ca_file
        if self.ca_dir:
            return self.ca_dir
        return True


def _first_readable_file(paths: Sequence[str]) -> Optional[str]:
    for p in paths:
        if p and os.path.isfile(p) and os.access(p, os.R_OK):
            return p
    return None


def _first_readable_dir(paths: Sequence[str]) -> Optional[str]:
    for p in paths:
        if p and os.path.isdir(p) and os.access(p, os.R_OK | os.X_OK):
            return p
    return None


def discover_trust_store(
    environ: Optional[Mapping[str, str]] = None,
    *,
    ca_file: Optional[str] = None,
    ca_dir: Optional[str] = None,
    system_files: Sequence[str] = SYSTEM_CA_FILES,
    system_dirs: Sequence[str] = SYSTEM_CA_DIRS,
) -> TrustStore:
    """Probe for a usable CA file and CA directory.

    Explicit `ca_file`/`ca_dir` values come first, then the environment
    overrides, then the well-known OS locations. The first readable
    candidate of each kind wins.
    """
    env = os.environ if environ is None else environ
    file_candidates = tuple(
        p
        for p in [ca_file, *(env.get(k) for k in CA_FILE_ENV_VARS), *system_files]
        if p
    )
    dir_candidates = tuple(
        p
        for p in [ca_dir, *(env.get(k) for k in CA_DIR_ENV_VARS), *system_dirs]
        if p
    )
    return TrustStore(
        ca_file=_first_readable_file(file_candidates),
        ca_dir=_first_readable_dir(dir_candidates),
        file_candidates=file_candidates,
        dir_candidates=dir_candidates,
    )


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Walk wrapped causes (requests -> urllib3 -> ssl/socket)."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur
        reason = getattr(cur, "reason", None)
        if isinstance(reason, BaseException):
            stack.append(reason)
        for arg in cur.args:
            if isinstance(arg, BaseException):
                stack.append(arg)
        if cur.__cause__ is not None:
            stack.append(cur.__cause__)
        if cur.__context__ is not None:
            stack.append(cur.__context__)


def is_certificate_error(exc: BaseException) -> bool:
    for e in _exception_chain(exc):
        if isinstance(e, ssl.SSLCertVerificationError):
            return True
        if "CERTIFICATE_VERIFY_FAILED" in str(e):
            return True
    return False


def _is_name_resolution_error(exc: BaseException) -> bool:
    return any(
        isinstance(e, (NameResolutionError, socket.gaierror)) for e in _exception_chain(exc)
    )


def is_transient(exc: requests.RequestException) -> bool:
    """Whether a requests failure belongs to the retryable class."""
    if isinstance(exc, requests.exceptions.SSLError):
        # Handshake failures are retried, verification failures are not.
        return not is_certificate_error(exc)
    if isinstance(exc, requests.exceptions.Timeout):
        return True
    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                        requests.exceptions.InvalidSchema, requests.exceptions.URLRequired)):
        return False
    if isinstance(exc, requests.exceptions.ConnectionError):
        return not _is_name_resolution_error(exc)
    return isinstance(exc, requests.exceptions.ChunkedEncodingError)


def log_ca_hint(trust_store: TrustStore) -> None:
    logger.warning("hint: TLS CA bundle was not found/readable in this runtime.")
    if trust_store.ca_file:
        logger.warning("hint: using CA file candidate: %s", trust_store.ca_file)
    if trust_store.ca_dir:
        logger.warning("hint: using CA directory candidate: %s", trust_store.ca_dir)
    tried = ", ".join(trust_store.file_candidates + trust_store.dir_candidates)
    if tried:
        logger.warning("hint: locations probed: %s", tried)
    logger.warning(
        "hint: set %s or %s if your cert store is in a custom path.",
        " / ".join(CA_FILE_ENV_VARS),
        " / ".join(CA_DIR_ENV_VARS),
    )


class HttpTransport:
    """Blocking HTTP GET with connection reuse, timeout and retry/backoff."""

    def __init__(
        self,
        *,
        trust_store: Optional[TrustStore] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
        user_agent: str = USER_AGENT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.trust_store = trust_store if trust_store is not None else discover_trust_store()
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._sleep = sleep
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _attempt(self, url: str) -> HttpResponse:
        try:
            r = self.session.get(
                url,
                timeout=self.timeout,
                verify=self.trust_store.verify,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc), transient=is_transient(exc), cause=exc) from exc
        return HttpResponse(status_code=r.status_code, body=r.content)

    def _log_retry(self, exc: BaseException, delay: float, attempt: int) -> None:
        logger.warning(
            "%s, retrying in %ds (%d/%d)...",
            exc,
            delay,
            attempt,
            self.max_retries,
            extra={"attempt": attempt, "delay": delay},
        )

    def get(self, url: str) -> HttpResponse:
        """GET `url`, returning status and body or raising `TransportError`."""
        try:
            return retry_with_backoff(
                lambda: self._attempt(url),
                retries=self.max_retries,
                base=self.backoff_base,
                should_retry=lambda e: isinstance(e, TransportError) and e.transient,
                on_retry=self._log_retry,
                sleep=self._sleep,
            )
        except TransportError as exc:
            logger.error("HTTP request failed: %s", exc, extra={"url": url})
            if exc.cause is not None and is_certificate_error(exc.cause):
                log_ca_hint(self.trust_store)
            raise

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
