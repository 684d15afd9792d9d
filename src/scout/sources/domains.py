"""
URL and domain helpers shared by the web-facing sources.
"""

from __future__ import annotations

from urllib.parse import urlparse

# Media, aggregator and social domains. A result from one of these is
# coverage about a company, never the company itself.
EXCLUDED_DOMAINS = (
    "techcrunch.com",
    "forbes.com",
    "bloomberg.com",
    "reuters.com",
    "crunchbase.com",
    "pitchbook.com",
    "linkedin.com",
    "twitter.com",
    "x.com",
    "facebook.com",
    "youtube.com",
    "medium.com",
    "substack.com",
    "wikipedia.org",
    "wired.com",
    "venturebeat.com",
    "theverge.com",
    "arstechnica.com",
    "ycombinator.com",
    "reddit.com",
    "producthunt.com",
    "cbinsights.com",
    "tracxn.com",
    "businessinsider.com",
)

SOCIAL_DOMAINS = (
    "linkedin.com",
    "twitter.com",
    "x.com",
    "facebook.com",
    "youtube.com",
    "reddit.com",
)


def domain_of(url: str) -> str:
    """Return the lowercase host of a URL without a leading ``www.``."""
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        return ""
    host = host.split("@")[-1].split(":")[0]
    if host.startswith("www."):
        host = host[4:]
    return host


def _matches(domain: str, candidates: tuple[str, ...]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in candidates)


def is_excluded_domain(domain: str) -> bool:
    """True for news, aggregator and social domains."""
    return bool(domain) and _matches(domain, EXCLUDED_DOMAINS)


def is_social_domain(domain: str) -> bool:
    """True for social networks."""
    return bool(domain) and _matches(domain, SOCIAL_DOMAINS)


def normalize_url(url: str) -> str:
    """Canonical form used to deduplicate links.

    Drops scheme, ``www.``, query, fragment and trailing slash.
    """
    parsed = urlparse(url.strip())
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    path = parsed.path.rstrip("/")
    return f"{host}{path}"
