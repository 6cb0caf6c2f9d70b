"""
Client Context Detection

Works out who is asking: user agent, source address, public scheme/host, and
whether the request comes from a restrictive in-app browser (WeChat and
similar) that blocks or mangles scripted redirects.

Detection is a pure function of the user agent string; the HTTP specifics of
reading headers live in context_from_request().
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from fastapi import Request

from qrlink.core.setting import settings


def is_restrictive_browser(
    user_agent: Optional[str],
    signatures: Optional[Iterable[str]] = None,
) -> bool:
    """
    Check a user agent against known in-app browser signatures.

    Args:
        user_agent: Raw User-Agent header (may be None)
        signatures: Lowercase fragments to look for (defaults to settings)

    Returns:
        True if any signature occurs in the user agent (case-insensitive)
    """
    if not user_agent:
        return False
    if signatures is None:
        signatures = settings.RESTRICTIVE_UA_SIGNATURES
    ua = user_agent.lower()
    return any(signature.lower() in ua for signature in signatures)


@dataclass(frozen=True)
class ClientContext:
    """What the services need to know about the requesting client."""
    user_agent: str = ""
    source_address: str = ""
    scheme: str = "https"
    host: str = "localhost"
    restrictive_flag: bool = False

    @property
    def restrictive(self) -> bool:
        """Explicit client flag wins; otherwise sniff the user agent."""
        return self.restrictive_flag or is_restrictive_browser(self.user_agent)

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


def split_base_url(base_url: str, default_scheme: str = "https") -> Tuple[str, str]:
    """
    Split a configured base URL into (scheme, host).

    Example:
        split_base_url("https://q.example/") -> ("https", "q.example")
        split_base_url("q.example") -> ("https", "q.example")
    """
    base_url = base_url.strip().rstrip("/")
    if "://" not in base_url:
        return default_scheme, base_url
    scheme, _, host = base_url.partition("://")
    return scheme or default_scheme, host


def context_from_request(request: Request, restrictive_flag: bool = False) -> ClientContext:
    """
    Build a ClientContext from an incoming request.

    Scheme and host come from PUBLIC_BASE_URL when configured, then from
    X-Forwarded-Proto / X-Forwarded-Host, then from the request URL itself.
    """
    if settings.PUBLIC_BASE_URL:
        scheme, host = split_base_url(settings.PUBLIC_BASE_URL)
    else:
        scheme = request.headers.get("X-Forwarded-Proto") or request.url.scheme
        host = (
            request.headers.get("X-Forwarded-Host")
            or request.headers.get("Host")
            or request.url.netloc
        )
    return ClientContext(
        user_agent=request.headers.get("User-Agent", ""),
        source_address=get_client_ip(request),
        scheme=scheme,
        host=host,
        restrictive_flag=bool(restrictive_flag),
    )
