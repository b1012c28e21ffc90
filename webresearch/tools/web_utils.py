from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlparse

# Domains whose pages are video/social feeds with no extractable article text.
NON_TEXT_DOMAINS = {
    "youtube.com",
    "youtu.be",
    "tiktok.com",
    "instagram.com",
    "facebook.com",
    "x.com",
    "twitter.com",
    "vimeo.com",
    "spotify.com",
}

NON_TEXT_SUFFIXES = (
    ".pdf",
    ".zip",
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".mp3",
    ".mp4",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
)

_TERM_SPLIT_RE = re.compile(r"\s+")

# Hostnames that never resolve to a public site.
LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}
LOCAL_HOST_SUFFIXES = (".localhost", ".local", ".internal", ".lan", ".home.arpa")


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def extract_domain(url: str) -> str:
    """Lower-cased host without a leading ``www.``."""
    host = (urlparse(url).hostname or "").lower().strip()
    if host.startswith("www."):
        host = host[4:]
    return host


def is_probably_text_url(url: str) -> bool:
    domain = extract_domain(url)
    if any(domain == d or domain.endswith("." + d) for d in NON_TEXT_DOMAINS):
        return False
    path = urlparse(url).path.lower()
    return not path.endswith(NON_TEXT_SUFFIXES)


def normalize_url(url: str) -> str:
    """Dedup key for a URL: scheme/host case-folded, fragment and trailing slash dropped."""
    parsed = urlparse(url.strip())
    host = (parsed.netloc or "").lower()
    if host.startswith("www."):
        host = host[4:]
    path = parsed.path.rstrip("/") or ""
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{host}{path}{query}"


def query_terms(query: str) -> list[str]:
    """Lower-cased whitespace tokens longer than two characters."""
    return [term for term in _TERM_SPLIT_RE.split(query.lower()) if len(term) > 2]


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Cut to ``max_length`` including ``suffix``; prefers a word boundary."""
    if len(text) <= max_length:
        return text
    if max_length <= len(suffix):
        return text[:max_length]
    cut = text[: max_length - len(suffix)]
    boundary = cut.rfind(" ")
    if boundary > (max_length - len(suffix)) // 2:
        cut = cut[:boundary]
    return cut.rstrip() + suffix


def is_public_url(url: str) -> bool:
    """False for loopback, private, link-local and other non-routable hosts.

    Only literal IP addresses and well-known local names are checked; no DNS lookup.
    """
    if not is_valid_url(url):
        return False
    host = (urlparse(url).hostname or "").lower().rstrip(".")
    if not host or host in LOCAL_HOSTNAMES or host.endswith(LOCAL_HOST_SUFFIXES):
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return not (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )
