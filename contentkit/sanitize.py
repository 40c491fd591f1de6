"""HTML sanitising for user-generated content bodies."""

from __future__ import annotations

from collections import Counter
from html import escape
from html.parser import HTMLParser
from urllib.parse import urlsplit

_ALLOWED_TAGS = frozenset(
    """
    a abbr acronym address article aside b bdi bdo blockquote br caption cite
    code col colgroup dd del details dfn div dl dt em figcaption figure footer
    h1 h2 h3 h4 h5 h6 header hgroup hr i img ins kbd li mark nav ol p pre q rp
    rt ruby s samp section small span strike strong sub summary sup table tbody
    td tfoot th thead time tr tt u ul var wbr
    """.split()
)

# Elements whose whole content is discarded, not just the tags.
_SKIP_CONTENT = frozenset({"script", "style"})

_VOID_TAGS = frozenset({"br", "col", "hr", "img", "wbr"})

# Elements that are meaningless and dropped when no attribute survives.
_NEEDS_ATTRS = frozenset({"a", "img"})

_GLOBAL_ATTRS = frozenset({"dir", "id", "lang", "title"})

_ELEMENT_ATTRS = {
    "a": frozenset({"href"}),
    "img": frozenset({"src", "alt", "width", "height"}),
    "td": frozenset({"colspan", "rowspan", "headers"}),
    "th": frozenset({"colspan", "rowspan", "headers", "scope"}),
    "ol": frozenset({"start", "type"}),
    "li": frozenset({"value"}),
    "blockquote": frozenset({"cite"}),
    "q": frozenset({"cite"}),
    "del": frozenset({"cite", "datetime"}),
    "ins": frozenset({"cite", "datetime"}),
    "time": frozenset({"datetime"}),
    "table": frozenset({"summary"}),
}

_URL_ATTRS = frozenset({"href", "src", "cite"})
_NUMERIC_ATTRS = frozenset({"width", "height", "colspan", "rowspan", "start", "value"})
_SAFE_SCHEMES = frozenset({"http", "https", "mailto"})


def _check_url(value: str) -> tuple[bool, bool]:
    """Return (allowed, fully_qualified) for a URL attribute value."""
    value = value.strip()
    if not value:
        return False, False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False, False
    scheme = parts.scheme.lower()
    if scheme and scheme not in _SAFE_SCHEMES:
        return False, False
    return True, bool(parts.netloc)


def _filter_attrs(tag: str, attrs: list[tuple[str, str | None]]) -> list[tuple[str, str]]:
    allowed = _GLOBAL_ATTRS | _ELEMENT_ATTRS.get(tag, frozenset())
    kept: list[tuple[str, str]] = []
    external_link = False
    for name, value in attrs:
        if value is None or name not in allowed:
            continue
        if name in _NUMERIC_ATTRS and not value.strip().isdigit():
            continue
        if name in _URL_ATTRS:
            ok, qualified = _check_url(value)
            if not ok:
                continue
            value = value.strip()
            if tag == "a" and name == "href" and qualified:
                external_link = True
        kept.append((name, value))
    if external_link:
        kept.append(("rel", "nofollow"))
    return kept


class _Sanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skip_depth = 0
        self._dropped: Counter[str] = Counter()

    def handle_starttag(self, tag, attrs):
        self._start(tag, attrs, closed=False)

    def handle_startendtag(self, tag, attrs):
        self._start(tag, attrs, closed=True)

    def _start(self, tag, attrs, closed):
        if tag in _SKIP_CONTENT:
            if not closed:
                self._skip_depth += 1
            return
        if self._skip_depth or tag not in _ALLOWED_TAGS:
            return
        kept = _filter_attrs(tag, attrs)
        if tag in _NEEDS_ATTRS and not kept:
            if not closed and tag not in _VOID_TAGS:
                self._dropped[tag] += 1
            return
        rendered = "".join(f' {name}="{escape(value)}"' for name, value in kept)
        self.parts.append(f"<{tag}{rendered}{'/' if closed else ''}>")

    def handle_endtag(self, tag):
        if tag in _SKIP_CONTENT:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth or tag not in _ALLOWED_TAGS or tag in _VOID_TAGS:
            return
        if self._dropped[tag]:
            self._dropped[tag] -= 1
            return
        self.parts.append(f"</{tag}>")

    def handle_data(self, data):
        if not self._skip_depth:
            self.parts.append(escape(data, quote=False))


def sanitize_html(html: str) -> str:
    """Strip dangerous markup (scripts, event handlers, unsafe URLs) from HTML."""
    if not html:
        return ""
    parser = _Sanitizer()
    parser.feed(html)
    parser.close()
    return "".join(parser.parts)