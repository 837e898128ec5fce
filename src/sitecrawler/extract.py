"""Link extraction from HTML using selectolax."""

import logging
from urllib.parse import urldefrag, urljoin, urlparse

from selectolax.parser import HTMLParser

from .frontier import normalize_url
from .relatedness import is_related

logger = logging.getLogger(__name__)

SKIPPED_PREFIXES = ('#', 'javascript:', 'mailto:', 'tel:', 'data:')
ALLOWED_SCHEMES = frozenset({'http', 'https'})


class HtmlLinkExtractor:
    """Extract crawlable links from anchor tags."""

    def extract_links(self, html: str, base_url: str) -> list[str]:
        """Return absolute http(s) links in document order, fragments dropped.

        Duplicates are detected on the normalized form; the first spelling wins.
        """
        if not html or not html.strip():
            logger.debug("Empty HTML content provided for %s", base_url)
            return []

        try:
            tree = HTMLParser(html)
            nodes = tree.css("a[href]")
        except Exception:
            logger.exception("Error parsing HTML content from %s", base_url)
            return []

        links: list[str] = []
        seen: set[str] = set()
        for node in nodes:
            href = (node.attributes.get("href") or "").strip()
            if not href or href.lower().startswith(SKIPPED_PREFIXES):
                continue

            try:
                absolute_url = urldefrag(urljoin(base_url, href)).url
                scheme = urlparse(absolute_url).scheme.lower()
            except ValueError:
                logger.debug("Could not resolve %r against %s", href, base_url)
                continue

            if scheme not in ALLOWED_SCHEMES:
                continue

            key = normalize_url(absolute_url)
            if key not in seen:
                seen.add(key)
                links.append(absolute_url)

        logger.debug("Extracted %d links from %s", len(links), base_url)
        return links

    def is_related(self, url: str, reference_url: str) -> bool:
        return is_related(url, reference_url)
