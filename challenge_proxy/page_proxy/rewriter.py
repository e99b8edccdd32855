"""
HTML link rewriting.

The rewrite is a fixed sequence of whole-document regex substitutions, not a
parse-tree transformation. Later passes see the output of earlier ones, so the
order below is part of the observable behavior:

1. inject ``<base href="{origin}/">`` right after the first ``<head ...>`` tag
2. replace every ``http(s)://host`` in the document (outside the injected tag)
   with a proxied URL
3. proxy root-relative ``href="/..."`` values
4. proxy root-relative ``action="/..."`` values
5. force ``src="http(s)://..."`` through the proxy with an https target

Running the pipeline over its own output nests the proxied URLs; nothing here
tries to detect already-proxied links.
"""

import re
from dataclasses import dataclass

from .urls import origin_of, proxied_url, resolve_root_relative

HEAD_TAG = re.compile(r"<head([^>]*)>", re.IGNORECASE)
ABSOLUTE_URL = re.compile(r"https?://([a-zA-Z0-9.-]+)")
ROOT_RELATIVE_HREF = re.compile(r'href="/(?!/)([^"]*)"')
ROOT_RELATIVE_ACTION = re.compile(r'action="/(?!/)([^"]*)"')
ABSOLUTE_SRC = re.compile(r'src="https?://([^"]+)"')


@dataclass(frozen=True)
class RewriteContext:
    target: str
    self_base: str
    target_origin: str

    @classmethod
    def for_target(cls, target: str, self_base: str) -> "RewriteContext":
        return cls(
            target=target,
            self_base=self_base.rstrip("/"),
            target_origin=origin_of(target),
        )


def inject_base(html: str, ctx: RewriteContext):
    """
    Insert the base tag after the first head tag.

    Returns the new document and the span ``(start, end)`` of the inserted tag,
    or ``None`` when the document has no head tag.
    """
    match = HEAD_TAG.search(html)
    if match is None:
        return html, None
    base = f'<base href="{ctx.target_origin}/">'
    start = match.end()
    return html[:start] + base + html[start:], (start, start + len(base))


def rewrite_absolute_urls(html: str, ctx: RewriteContext) -> str:
    return ABSOLUTE_URL.sub(lambda m: proxied_url(ctx.self_base, m.group(0)), html)


def _rewrite_root_relative(pattern, attribute: str, html: str, ctx: RewriteContext) -> str:
    def replace(match):
        full = resolve_root_relative("/" + match.group(1), ctx.target)
        return f'{attribute}="{proxied_url(ctx.self_base, full)}"'

    return pattern.sub(replace, html)


def rewrite_root_relative_hrefs(html: str, ctx: RewriteContext) -> str:
    return _rewrite_root_relative(ROOT_RELATIVE_HREF, "href", html, ctx)


def rewrite_root_relative_actions(html: str, ctx: RewriteContext) -> str:
    return _rewrite_root_relative(ROOT_RELATIVE_ACTION, "action", html, ctx)


def force_https_sources(html: str, ctx: RewriteContext) -> str:
    # The target stays unencoded here, unlike the other passes
    return ABSOLUTE_SRC.sub(
        lambda m: f'src="{ctx.self_base}/proxy?url=https://{m.group(1)}"', html
    )


def rewrite_html(html: str, ctx: RewriteContext) -> str:
    html, base_span = inject_base(html, ctx)
    if base_span is None:
        html = rewrite_absolute_urls(html, ctx)
    else:
        start, end = base_span
        html = (
            rewrite_absolute_urls(html[:start], ctx)
            + html[start:end]
            + rewrite_absolute_urls(html[end:], ctx)
        )
    html = rewrite_root_relative_hrefs(html, ctx)
    html = rewrite_root_relative_actions(html, ctx)
    return force_https_sources(html, ctx)
