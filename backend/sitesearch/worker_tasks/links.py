"""
Link canonicalization for the crawler.

Every link found on a page is turned into one absolute, same-site form so that
two anchors pointing at the same document compare equal as plain strings.
"""
import posixpath
import re
from urllib.parse import urlsplit

REJECTED_PREFIXES = ("javascript:", "tel:", "mailto:")
ALLOWED_SCHEMES = ("http", "https")

_ABSOLUTE_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_IP_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def _bare_host(host: str | None) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def _needs_www(host: str) -> bool:
    # localhost, intranet names and IP addresses have no www. label
    return "." in host and not host.startswith("www.") and not _IP_RE.match(host)


def with_www(url: str) -> str:
    """Insert a ``www.`` label right after the scheme when the host lacks one."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    host = urlsplit(url).hostname or ""
    if not _needs_www(host):
        return url
    return f"{scheme}://www.{rest}"


def same_site(url: str, base_url: str) -> bool:
    """True when ``url`` is served by the host of ``base_url`` (``www.`` ignored)."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ALLOWED_SCHEMES:
        return False
    return _bare_host(parts.hostname) == _bare_host(urlsplit(base_url).hostname)


def canonicalize(href: str | None, base_url: str) -> str | None:
    """
    Normalize a raw ``href`` found on a page of the site at ``base_url``.

    Returns None for values that must not be crawled: empty or one-character
    values, javascript/tel/mailto and other non-HTTP schemes and absolute links
    to foreign hosts. Accepted links are absolute, carry a ``www.`` host label,
    have no fragment or query string, no repeated slashes and end with ``/``.
    """
    value = (href or "").strip()
    if len(value) <= 1:
        return None
    if value.lower().startswith(REJECTED_PREFIXES):
        return None

    base = with_www(base_url.strip().rstrip("/"))

    if value.startswith("//"):
        value = f"{urlsplit(base).scheme}:{value}"

    if _ABSOLUTE_RE.match(value):
        if not same_site(value, base):
            return None
        link = with_www(value)
    elif _SCHEME_RE.match(value):
        return None
    else:
        link = base + (value if value.startswith("/") else f"/{value}")

    link = link.split("#", 1)[0].split("?", 1)[0]

    scheme, _, rest = link.partition("://")
    host, slash, path = rest.partition("/")
    path = posixpath.normpath("/" + re.sub(r"/{2,}", "/", path)) if slash else "/"
    link = f"{scheme.lower()}://{host.lower()}{path}"

    return link if link.endswith("/") else f"{link}/"


def relative_path(url: str) -> str:
    """Site-relative path of a canonical link, ``/`` for the site root."""
    return urlsplit(url).path or "/"
