"""
Sourcemap decoding and validation
Decodes regular and index sourcemaps and checks that every original
source is either embedded or can be scraped from the server
"""
import json
import posixpath
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import sourcemap

from mapcheck.errors import (
    FetchError,
    SourceReferenceInvalid,
    SourcemapIndexUnsupported,
    SourcemapSyntaxError,
    UrlResolutionError,
)
from mapcheck.models import (
    EMBEDDED,
    INVALID,
    SCRAPEABLE,
    UNREACHABLE,
    DecodedSourcemap,
    SourceCheck,
    ValidationReport,
)
from mapcheck.urls import join_url

logger = logging.getLogger(__name__)

# Not checked over the network (--no-source-checks)
UNCHECKED = 'unchecked'

XSSI_PREFIX = ')]}'


def _load_json(data: bytes) -> Dict:
    """Parse sourcemap bytes into a JSON object, dropping an XSSI guard line"""
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise SourcemapSyntaxError(f"not UTF-8: {e}")

    if text.startswith(XSSI_PREFIX):
        text = text.split('\n', 1)[1] if '\n' in text else ''

    try:
        document = json.loads(text)
    except ValueError as e:
        raise SourcemapSyntaxError(f"not JSON: {e}")

    if not isinstance(document, dict):
        raise SourcemapSyntaxError('top level value is not an object')
    return document


def is_sourcemap(data: bytes) -> bool:
    """Sniff test: a JSON object carrying mappings or sections"""
    try:
        document = _load_json(data)
    except SourcemapSyntaxError:
        return False
    return 'mappings' in document or 'sections' in document


@dataclass
class RegularMap:
    sourcemap: DecodedSourcemap


@dataclass
class IndexMap:
    sections: List[Dict]

    def flatten(self, fetcher=None, base_url: Optional[str] = None) -> RegularMap:
        """Merge all sections into one regular view.

        Sections referenced by url are resolved against base_url (the
        sourcemap's own URL) and fetched. Nested index maps and unreachable
        sections are not supported.
        """
        sources: List[Optional[str]] = []
        contents: List[Optional[str]] = []
        token_count = 0

        for idx, section in enumerate(self.sections):
            child = self._load_section(idx, section, fetcher, base_url)
            if 'sections' in child:
                raise SourcemapIndexUnsupported(f"section {idx} is itself an index sourcemap")
            try:
                decoded = _decode_regular(child)
            except SourcemapSyntaxError as e:
                raise SourcemapIndexUnsupported(f"section {idx} does not decode: {e}")

            for _, name, content in decoded.iter_sources():
                sources.append(name)
                contents.append(content)
            token_count += decoded.token_count

        return RegularMap(DecodedSourcemap(sources=sources, token_count=token_count, contents=contents))

    def _load_section(self, idx: int, section, fetcher, base_url: Optional[str]) -> Dict:
        if not isinstance(section, dict):
            raise SourcemapIndexUnsupported(f"section {idx} is not an object")

        if 'map' in section:
            child = section['map']
            if not isinstance(child, dict):
                raise SourcemapIndexUnsupported(f"section {idx} has a malformed map")
            return child

        if 'url' not in section:
            raise SourcemapIndexUnsupported(f"section {idx} has neither map nor url")

        if fetcher is None or base_url is None:
            raise SourcemapIndexUnsupported(f"section {idx} references {section['url']} which cannot be fetched")

        try:
            url = join_url(base_url, section['url'])
            resp = fetcher.get(url)
        except (UrlResolutionError, FetchError) as e:
            raise SourcemapIndexUnsupported(f"section {idx} is unreachable: {e}")

        if resp.failed:
            raise SourcemapIndexUnsupported(f"section {idx} is unreachable: {url} [{resp.status}]")

        try:
            return _load_json(resp.content)
        except SourcemapSyntaxError as e:
            raise SourcemapIndexUnsupported(f"section {idx} at {url} is not a sourcemap: {e}")


DecodedMap = Union[RegularMap, IndexMap]


def _check_shape(document: Dict):
    """Reject field types the decoder would crash on or misread"""
    if not isinstance(document.get('mappings'), str):
        raise SourcemapSyntaxError('mappings is not a string')
    if not isinstance(document.get('sources'), list):
        raise SourcemapSyntaxError('sources is not a list')
    if not isinstance(document.get('names', []), list):
        raise SourcemapSyntaxError('names is not a list')
    if not isinstance(document.get('sourcesContent') or [], list):
        raise SourcemapSyntaxError('sourcesContent is not a list')
    source_root = document.get('sourceRoot')
    if source_root is not None and not isinstance(source_root, str):
        raise SourcemapSyntaxError('sourceRoot is not a string')


def _apply_source_root(source_root: Optional[str], sources: List) -> List[Optional[str]]:
    # null or non-string entries are kept as None and reported per source
    rooted = []
    for name in sources:
        if not isinstance(name, str):
            rooted.append(None)
        elif source_root:
            rooted.append(posixpath.join(source_root, name))
        else:
            rooted.append(name)
    return rooted


def _decode_regular(document: Dict) -> DecodedSourcemap:
    """Decode a regular sourcemap object with the sourcemap library"""
    _check_shape(document)
    document = dict(document)
    # names is optional in v3 maps but the decoder requires it
    document.setdefault('names', [])
    # the decoder joins sourceRoot with os.path.join and fails on null sources
    source_root = document.pop('sourceRoot', None)

    try:
        index = sourcemap.loads(json.dumps(document))
    except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
        raise SourcemapSyntaxError(f"cannot decode sourcemap: {e!r}")

    contents = document.get('sourcesContent') or []
    return DecodedSourcemap(
        sources=_apply_source_root(source_root, document['sources']),
        token_count=len(index),
        contents=[content if isinstance(content, str) else None for content in contents],
    )


def decode(data: bytes) -> DecodedMap:
    """Decode sourcemap bytes into a RegularMap or an unflattened IndexMap"""
    document = _load_json(data)

    if 'sections' in document:
        sections = document['sections']
        if not isinstance(sections, list):
            raise SourcemapSyntaxError('sections is not a list')
        return IndexMap(sections=sections)

    if 'mappings' not in document:
        raise SourcemapSyntaxError('missing mappings')
    return RegularMap(_decode_regular(document))


class SourcemapValidator:
    """Validates sourcemaps and checks reachability of their sources"""

    def __init__(self, fetcher, check_sources: bool = True):
        self.fetcher = fetcher
        self.check_sources = check_sources

    def validate(self, sourcemap_url: str, data: bytes, base_url: Optional[str] = None) -> ValidationReport:
        """Decode and inspect a sourcemap.

        base_url is what relative sources and sections resolve against; it
        defaults to the sourcemap URL and differs only for inline maps.
        Raises SourcemapSyntaxError when the document cannot be decoded.
        Index maps that cannot be flattened are reported, not raised.
        """
        base_url = base_url or sourcemap_url
        decoded = decode(data)

        if isinstance(decoded, RegularMap):
            kind = 'regular'
            sm = decoded.sourcemap
        elif isinstance(decoded, IndexMap):
            kind = 'index'
            try:
                sm = decoded.flatten(self.fetcher, base_url).sourcemap
            except SourcemapIndexUnsupported as e:
                logger.debug(f"unsupported index sourcemap {sourcemap_url}: {e}")
                return ValidationReport(sourcemap_url=sourcemap_url, kind=kind, error=str(e))
        else:
            raise TypeError(f"unexpected sourcemap shape {decoded!r}")

        report = ValidationReport(
            sourcemap_url=sourcemap_url,
            kind=kind,
            source_count=sm.source_count,
            token_count=sm.token_count,
        )
        for idx, name, content in sm.iter_sources():
            report.sources.append(self.check_source(base_url, idx, name, content))
        return report

    def resolve_source(self, base_url: str, idx: int, name: Optional[str]) -> str:
        try:
            return join_url(base_url, name)
        except UrlResolutionError:
            raise SourceReferenceInvalid(idx, name)

    def check_source(self, base_url: str, idx: int, name: Optional[str], content: Optional[str]) -> SourceCheck:
        """Embedded sources are accepted as-is; others are checked with HEAD"""
        if content is not None:
            return SourceCheck(index=idx, name=name, state=EMBEDDED)

        try:
            url = self.resolve_source(base_url, idx, name)
        except SourceReferenceInvalid as e:
            return SourceCheck(index=idx, name=name, state=INVALID, reason=str(e))

        if not self.check_sources:
            return SourceCheck(index=idx, name=name, state=UNCHECKED, url=url)

        try:
            resp = self.fetcher.head(url)
        except FetchError as e:
            return SourceCheck(index=idx, name=name, state=UNREACHABLE, url=url, reason=e.reason)

        if resp.ok:
            return SourceCheck(index=idx, name=name, state=SCRAPEABLE, url=resp.url, status=resp.status)
        return SourceCheck(index=idx, name=name, state=UNREACHABLE, url=resp.url, status=resp.status)
