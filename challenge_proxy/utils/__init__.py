from urllib.parse import urlsplit, urlunsplit


def redact_url(url: str) -> str:
    """Drop the query string and credentials of a URL for logs and span attributes."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    query = "..." if parts.query else ""
    return urlunsplit((parts.scheme, netloc, parts.path, query, ""))
