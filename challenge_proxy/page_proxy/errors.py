"""
Error taxonomy of the proxy pipeline.

Only ``MissingTargetError`` and ``FetchError`` have dedicated responses (400 and
502). Everything else, ``MalformedTargetError`` included, is answered by the
top-level catch in the handler with a generic 502.
"""

from typing import Optional


class ProxyError(Exception):
    """Base class for errors raised while proxying a single request."""


class MissingTargetError(ProxyError):
    """The ``url`` query parameter was not supplied."""

    def __init__(self, message: str = "Use /proxy?url=https://example.com"):
        super().__init__(message)
        self.message = message


class MalformedTargetError(ProxyError):
    """The target could not be parsed as an absolute http(s) URL."""

    def __init__(self, target: str):
        super().__init__(f"Invalid URL: {target}")
        self.target = target


class FetchError(ProxyError):
    """Contacting the upstream failed (network, TLS, protocol or timeout)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ChallengeDetected(Exception):
    """
    Classification outcome, not a failure: the upstream answered with a bot
    challenge and the caller has to be sent to the challenge solver.
    """

    def __init__(self, target: str, redirect_url: str):
        super().__init__(f"Challenge detected for {target}")
        self.target = target
        self.redirect_url = redirect_url
