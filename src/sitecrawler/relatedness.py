"""Crawl scope: deciding whether two URLs belong to the same host neighborhood."""

from urllib.parse import urlparse


def host_of(url: str) -> str | None:
    """Return the lowercased host of an absolute URL, or None."""
    if not url or not url.strip():
        return None
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    return host.rstrip('.')


def is_related(url: str, reference_url: str) -> bool:
    """Check whether ``url`` shares a host with ``reference_url``.

    Related means the same host, or one host is a subdomain of the other:
    ``blog.example.com`` and ``example.com`` are related in both directions.
    Malformed URLs are never related.
    """
    host = host_of(url)
    reference = host_of(reference_url)
    if host is None or reference is None:
        return False

    return (
        host == reference
        or host.endswith("." + reference)
        or reference.endswith("." + host)
    )
