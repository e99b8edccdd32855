"""
Outbound request headers that make the proxy look like a browser opening a
page from the address bar.
"""

import random
from typing import Dict

from .urls import origin_of

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5_0) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:118.0) Gecko/20100101 Firefox/118.0",
)

ACCEPT_LANGUAGES = (
    "en-US,en;q=0.9",
    "en-GB,en;q=0.8",
    "en;q=0.7",
    "en-US,en-CA;q=0.8",
)

ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def random_accept_language() -> str:
    return random.choice(ACCEPT_LANGUAGES)


def disguise_headers(target: str) -> Dict[str, str]:
    """
    Build the headers for the outbound GET.

    Raises MalformedTargetError when the target has no http(s) origin, since
    the Referer is derived from it.
    """
    return {
        "User-Agent": random_user_agent(),
        "Accept-Language": random_accept_language(),
        "Accept": ACCEPT,
        "Referer": origin_of(target) + "/",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-User": "?1",
        "Sec-Fetch-Dest": "document",
        "Upgrade-Insecure-Requests": "1",
    }
