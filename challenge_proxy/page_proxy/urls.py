from urllib.parse import quote, urljoin, urlparse

from .errors import MalformedTargetError

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_."
_URI_COMPONENT_SAFE = "!~*'()"

DEFAULT_PORTS = {"http": 80, "https": 443}


def encode_uri_component(value: str) -> str:
    """Percent-encode ``value`` for use as a single query parameter value."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def origin_of(target: str) -> str:
    """
    Return the serialized origin ``scheme://host[:port]`` of an absolute http(s) URL.

    Credentials are dropped, scheme and host are lowercased and the default
    port of the scheme is omitted.
    """
    try:
        parsed = urlparse(target)
        scheme = parsed.scheme.lower()
        host = parsed.hostname
        port = parsed.port
    except ValueError as e:
        raise MalformedTargetError(target) from e
    if scheme not in DEFAULT_PORTS or not host:
        raise MalformedTargetError(target)
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def resolve_root_relative(path: str, target: str) -> str:
    """Resolve a root-relative path such as ``/x?y=1`` against the target."""
    return urljoin(origin_of(target) + "/", path)


def proxied_url(self_base: str, url: str) -> str:
    return f"{self_base}/proxy?url={encode_uri_component(url)}"
