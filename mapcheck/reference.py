"""
Locates the sourcemap a script declares, via response headers or a pragma comment
"""
import re
import base64
import binascii
import logging
from typing import Mapping, Optional
from urllib.parse import unquote_to_bytes

from mapcheck.errors import SourcemapSyntaxError

logger = logging.getLogger(__name__)

SOURCEMAP_HEADERS = ('sourcemap', 'x-sourcemap')

# //# sourceMappingURL=... (current) or //@ sourceMappingURL=... (legacy),
# also the /*# ... */ form emitted for CSS
PRAGMA_PATTERN = re.compile(
    r'(?://|/\*)[#@][ \t]*sourceMappingURL[ \t]*=[ \t]*([^\s*\'"]+)[^\n]*?(?:\*/)?[ \t]*$',
    re.MULTILINE
)


def header_reference(headers: Mapping[str, str]) -> Optional[str]:
    """SourceMap header first, then the legacy X-SourceMap alias"""
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in SOURCEMAP_HEADERS:
        value = lowered.get(name)
        if value and value.strip():
            return value.strip()
    return None


def locate_pragma_reference(body: str) -> Optional[str]:
    """Return the URL of the last sourceMappingURL pragma in body"""
    ref = None
    for match in PRAGMA_PATTERN.finditer(body):
        ref = match.group(1)
    return ref


def find_sourcemap_reference(headers: Mapping[str, str], body: Optional[str] = None) -> Optional[str]:
    """Find the declared sourcemap reference (possibly relative) for a script.

    Headers win over the body. The result must be resolved against the
    script's URL by the caller.
    """
    ref = header_reference(headers)
    if ref:
        logger.debug(f"  sourcemap declared by header: {ref}")
        return ref

    if body is None:
        return None

    ref = locate_pragma_reference(body)
    if ref:
        logger.debug(f"  sourcemap declared by pragma: {ref}")
    return ref


def is_data_uri(ref: str) -> bool:
    return ref[:5].lower() == 'data:'


def decode_data_uri(ref: str) -> bytes:
    """Decode an inline data: sourcemap reference into raw bytes"""
    try:
        header, payload = ref[5:].split(',', 1)
    except ValueError:
        raise SourcemapSyntaxError('malformed data URI: missing payload')

    if header.lower().endswith(';base64'):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise SourcemapSyntaxError(f"malformed base64 data URI: {e}")
    return unquote_to_bytes(payload)
