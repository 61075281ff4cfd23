"""
Request origin guard (CSRF protection) for state-changing requests.

Decision order, first match wins:
  1. GET / HEAD / OPTIONS pass.
  2. X-Requested-With is XMLHttpRequest or Fetch (needs a CORS preflight cross-origin).
  3. Origin present: pass if trusted, otherwise reject without looking at Referer.
  4. Referer whose origin is trusted.
  5. NODE_ENV == "development" and ALLOW_CSRF_BYPASS == "true": pass with a warning.
  6. Reject.
"""

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from urllib.parse import urlsplit

from fastapi import HTTPException, Request, status

from usogui.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
TRUSTED_REQUESTED_WITH = frozenset({"XMLHttpRequest", "Fetch"})
DEFAULT_DEV_ORIGINS = ("http://localhost:3000", "http://localhost:3002")
_DEFAULT_PORTS = {"http": 80, "https": 443}

INVALID_ORIGIN_MESSAGE = "Invalid request origin"
CSRF_FAILED_MESSAGE = "CSRF validation failed. Ensure your request includes proper headers."


class ForbiddenOriginError(Exception):
    """Raised when a state-changing request lacks credible same-origin evidence."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def build_allowed_origins(
    cors_allowed_origins: str | None,
    frontend_url: str | None,
    node_env: str | None,
) -> list[str]:
    """
    Trusted origins from CORS_ALLOWED_ORIGINS (or FRONTEND_URL when that is unset
    or empty). Outside production the local dev origins are added.
    """
    raw = cors_allowed_origins or frontend_url or ""
    configured = [o.strip() for o in raw.split(",") if o.strip()]
    if node_env == "production":
        return configured
    origins: list[str] = []
    for origin in (*DEFAULT_DEV_ORIGINS, *configured):
        if origin not in origins:
            origins.append(origin)
    return origins


def origin_of(url: str) -> str | None:
    """
    Serialized origin of an absolute http(s) URL, as a browser computes it
    (lowercase scheme and host, default port dropped). None if unparsable.
    """
    try:
        parts = urlsplit(url.strip())
        scheme = parts.scheme.lower()
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None
    if scheme not in _DEFAULT_PORTS or not host:
        return None
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == _DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class OriginGuard:
    """Stateless per-request origin check; configuration is fixed at construction."""

    def __init__(
        self,
        allowed_origins: Iterable[str],
        node_env: str | None = None,
        bypass_flag: str | None = None,
    ) -> None:
        self.allowed_origins = frozenset(allowed_origins)
        self.node_env = node_env
        self.bypass_flag = bypass_flag

    @classmethod
    def from_settings(cls, settings: Settings) -> "OriginGuard":
        return cls(
            build_allowed_origins(
                settings.CORS_ALLOWED_ORIGINS,
                settings.FRONTEND_URL,
                settings.NODE_ENV,
            ),
            node_env=settings.NODE_ENV,
            bypass_flag=settings.ALLOW_CSRF_BYPASS,
        )

    @property
    def bypass_enabled(self) -> bool:
        return self.node_env == "development" and self.bypass_flag == "true"

    def check(self, method: str, headers: Mapping[str, str], path: str = "") -> bool:
        """Return True if the request may proceed; raise ForbiddenOriginError otherwise."""
        method = method.upper()
        if method in SAFE_METHODS:
            return True

        lowered = {k.lower(): v for k, v in headers.items()}

        if lowered.get("x-requested-with") in TRUSTED_REQUESTED_WITH:
            return True

        origin = lowered.get("origin")
        if origin:
            if origin in self.allowed_origins:
                return True
            logger.info(
                "Rejected request with untrusted origin",
                extra={"method": method, "path": path, "origin": origin[:200]},
            )
            raise ForbiddenOriginError(INVALID_ORIGIN_MESSAGE)

        referer = lowered.get("referer")
        if referer:
            referer_origin = origin_of(referer)
            if referer_origin is not None and referer_origin in self.allowed_origins:
                return True

        if self.bypass_enabled:
            logger.warning(
                "CSRF bypass: %s %s missing valid origin/referer headers; "
                "allowed because ALLOW_CSRF_BYPASS=true in development",
                method,
                path,
            )
            return True

        logger.info(
            "Rejected request without origin evidence",
            extra={"method": method, "path": path},
        )
        raise ForbiddenOriginError(CSRF_FAILED_MESSAGE)


@lru_cache
def get_origin_guard() -> OriginGuard:
    """Cached guard built from settings (safe to call from dependencies)."""
    return OriginGuard.from_settings(get_settings())


def verify_request_origin(request: Request) -> None:
    """Application-wide dependency: 403 when the origin guard rejects the request."""
    try:
        get_origin_guard().check(request.method, request.headers, request.url.path)
    except ForbiddenOriginError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e
