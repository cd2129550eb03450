"""
URL helpers shared by the extractor, analyzer and validator
"""
import posixpath
from urllib.parse import urljoin, urlsplit, urlunsplit
from typing import Optional

from mapcheck.errors import UrlResolutionError

HTTP_SCHEMES = ('http', 'https')


def validate_page_url(url: str) -> str:
    """Check that the input is an absolute http(s) URL and normalize an empty path"""
    try:
        parts = urlsplit(url.strip())
        parts.port  # raises on a malformed port
    except ValueError as e:
        raise UrlResolutionError(url, reason=str(e))

    if parts.scheme.lower() not in HTTP_SCHEMES or not parts.hostname:
        raise UrlResolutionError(url, reason='expected an absolute http(s) URL')

    path = parts.path or '/'
    return urlunsplit((parts.scheme.lower(), _normalize_netloc(parts), path, parts.query, parts.fragment))


def _normalize_netloc(parts) -> str:
    # lowercase the host only; userinfo and port are kept as given
    userinfo, _, _ = parts.netloc.rpartition('@')
    host = parts.hostname
    if ':' in host:
        host = f'[{host}]'
    netloc = f'{userinfo}@{host}' if '@' in parts.netloc else host
    if parts.port is not None:
        netloc = f'{netloc}:{parts.port}'
    return netloc


def join_url(base: str, reference: Optional[str]) -> str:
    """Resolve reference against base with standard RFC 3986 rules"""
    if not isinstance(reference, str) or not reference.strip():
        raise UrlResolutionError(repr(reference), base, 'empty reference')

    try:
        base_parts = urlsplit(base)
        base_parts.port
        if not base_parts.scheme:
            raise ValueError('base URL is not absolute')
        joined = urljoin(base, reference.strip())
        urlsplit(joined).port
    except ValueError as e:
        raise UrlResolutionError(reference, base, str(e))

    return joined


def url_host(url: str) -> Optional[str]:
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def url_filename(url: str) -> str:
    """Final path segment of a URL (empty for a trailing slash)"""
    return posixpath.basename(urlsplit(url).path)
