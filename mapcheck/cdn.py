"""
Hosts of community CDNs whose scripts are outside the page owner's control
"""
from typing import Optional

from mapcheck.urls import url_host

COMMUNITY_CDN_HOSTS = frozenset([
    'ssl.google-analytics.com',
    'cdn.js.com',
    'ajax.googleapis.com',
    'cdn.ravenjs.com',
    'cdn.jsdelivr.net',
])


def community_cdn_host(url: str) -> Optional[str]:
    """Return the matching CDN host, or None. Exact host match only."""
    host = url_host(url)
    if host and host in COMMUNITY_CDN_HOSTS:
        return host
    return None
