from .errors import (
    ChallengeDetected,
    FetchError,
    MalformedTargetError,
    MissingTargetError,
    ProxyError,
)
from .handler import ProxyRequest, handle_proxy_request

__all__ = [
    "ChallengeDetected",
    "FetchError",
    "MalformedTargetError",
    "MissingTargetError",
    "ProxyError",
    "ProxyRequest",
    "handle_proxy_request",
]
