"""
Public Path Routes

Pure lookups shared by creation and resolution:
- (route hint, compact flag) -> path segment used in public links
- path -> short code, trying known route prefixes in priority order
- optional disguise query parameter appended to public links

Compact spellings are handed to restrictive in-app browsers, which are more
likely to rewrite or flag long share-style paths.
"""

import random
import re
from typing import Dict, Optional, Sequence, Tuple

DEFAULT_ROUTE_HINT = "go"

# hint -> (normal segment, compact segment)
ROUTE_SEGMENTS: Dict[str, Tuple[str, str]] = {
    "go": ("go", "go"),
    "share": ("share", "s"),
    "link": ("link", "l"),
    "view": ("view", "v"),
    "article": ("article", "a"),
}

# Earlier prefixes win when several could match. "r" serves links issued
# before route hints existed.
ROUTE_PREFIX_PRIORITY: Tuple[str, ...] = (
    "go", "share", "s", "link", "l", "view", "v", "article", "a", "r",
)

_PREFIX_PATTERNS = tuple(
    re.compile(rf"/{prefix}/([a-zA-Z0-9]+)") for prefix in ROUTE_PREFIX_PRIORITY
)

DISGUISE_QUERIES: Tuple[str, ...] = (
    "from=singlemessage",
    "from=timeline",
    "from=groupmessage",
    "isappinstalled=0",
)


def normalize_route_hint(route_hint: Optional[str], default: str = DEFAULT_ROUTE_HINT) -> str:
    """Lowercased known hint, or the default for anything unrecognised."""
    if route_hint:
        hint = route_hint.strip().lower()
        if hint in ROUTE_SEGMENTS:
            return hint
    return default if default in ROUTE_SEGMENTS else DEFAULT_ROUTE_HINT


def path_segment_for(route_hint: Optional[str], compact: bool) -> str:
    """
    Path segment for a route hint.

    Example:
        path_segment_for("share", compact=False) -> "share"
        path_segment_for("share", compact=True) -> "s"
        path_segment_for(None, compact=True) -> "go"
    """
    normal, short = ROUTE_SEGMENTS[normalize_route_hint(route_hint)]
    return short if compact else normal


def extract_short_code(path: str) -> Optional[str]:
    """
    Pull the short code out of a request path.

    Known prefixes are tried in ROUTE_PREFIX_PRIORITY order; otherwise the
    last non-empty path segment is used.

    Example:
        extract_short_code("/share/Ab3dEf9h") -> "Ab3dEf9h"
        extract_short_code("/anything/Ab3dEf9h/") -> "Ab3dEf9h"
        extract_short_code("/") -> None
    """
    if not path:
        return None
    for pattern in _PREFIX_PATTERNS:
        match = pattern.search(path)
        if match:
            return match.group(1)
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else None


def pick_disguise_query(
    rng: Optional[random.Random] = None,
    choices: Sequence[str] = DISGUISE_QUERIES,
) -> str:
    """One disguise parameter, chosen pseudo-randomly."""
    return (rng or random).choice(choices)


def build_public_url(
    base_url: str,
    segment: str,
    code: str,
    disguise_query: Optional[str] = None,
) -> str:
    """
    Compose the link handed out to clients.

    Example:
        build_public_url("https://q.example", "s", "Ab3dEf9h", "from=timeline")
        -> "https://q.example/s/Ab3dEf9h?from=timeline"
    """
    url = f"{base_url.rstrip('/')}/{segment}/{code}"
    if disguise_query:
        url = f"{url}?{disguise_query}"
    return url
