from typing import Optional

from challenge_proxy.vars import CHALLENGE_SOLVER_URL

from .errors import ChallengeDetected
from .fetcher import UpstreamResponse
from .urls import encode_uri_component

CHALLENGE_STATUSES = frozenset({403, 429})

CHALLENGE_MARKERS = (
    "recaptcha/api.js",
    "Our systems have detected unusual traffic",
    "detected unusual traffic from your computer network",
    "To continue, please type the characters you see",
)


def is_challenge(upstream: UpstreamResponse) -> bool:
    """
    True when the upstream response is a bot challenge: a 403/429 status, or a
    decoded body containing one of the marker strings, whatever the status.
    """
    if upstream.status in CHALLENGE_STATUSES:
        return True
    if upstream.text is None:
        return False
    return any(marker in upstream.text for marker in CHALLENGE_MARKERS)


def solver_redirect_url(target: str, solver_base: Optional[str] = None) -> str:
    base = (solver_base or CHALLENGE_SOLVER_URL).rstrip("/")
    return f"{base}/?url={encode_uri_component(target)}"


def detect_challenge(target: str, upstream: UpstreamResponse):
    """Return a ChallengeDetected outcome for ``target`` or None."""
    if not is_challenge(upstream):
        return None
    return ChallengeDetected(target, solver_redirect_url(target))
