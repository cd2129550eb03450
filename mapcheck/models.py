"""
Data models shared by the analysis pipeline
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from requests.structures import CaseInsensitiveDict

from mapcheck.errors import HttpStatusError


@dataclass
class FetchResponse:
    """Final response after redirects"""

    url: str
    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    content: bytes = b''

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def failed(self) -> bool:
        return not self.ok

    def text(self) -> str:
        return self.content.decode('utf-8', errors='ignore')

    def raise_for_status(self) -> 'FetchResponse':
        if self.failed:
            raise HttpStatusError(self.url, self.status)
        return self


@dataclass(frozen=True)
class ScriptReference:
    url: str
    page_url: str


@dataclass
class DecodedSourcemap:
    """Source table of a regular (or flattened) sourcemap"""

    sources: List[Optional[str]]
    token_count: int
    contents: List[Optional[str]] = field(default_factory=list)

    @property
    def source_count(self) -> int:
        return len(self.sources)

    def iter_sources(self) -> Iterator[Tuple[int, Optional[str], Optional[str]]]:
        """Yield (index, name, embedded content) for every source"""
        for idx, name in enumerate(self.sources):
            content = self.contents[idx] if idx < len(self.contents) else None
            yield idx, name, content


# Per-source validation states
EMBEDDED = 'embedded'
SCRAPEABLE = 'scrapeable'
UNREACHABLE = 'unreachable'
INVALID = 'invalid'


@dataclass
class SourceCheck:
    index: int
    name: Optional[str]
    state: str
    url: Optional[str] = None
    status: Optional[int] = None
    reason: Optional[str] = None

    @property
    def missing(self) -> bool:
        return self.state not in (EMBEDDED, SCRAPEABLE)


@dataclass
class ValidationReport:
    """Result of validating one sourcemap document"""

    sourcemap_url: str
    kind: str
    source_count: int = 0
    token_count: int = 0
    sources: List[SourceCheck] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def missing_sources(self) -> int:
        return sum(1 for check in self.sources if check.missing)


@dataclass(frozen=True)
class Ignored:
    cdn_host: str


@dataclass(frozen=True)
class Unminified:
    pass


@dataclass(frozen=True)
class MissingReference:
    pass


@dataclass(frozen=True)
class BrokenReference:
    sourcemap_url: str
    status: Optional[int] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class FetchFailed:
    status: Optional[int] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class Valid:
    details: ValidationReport


SourcemapOutcome = Union[Ignored, Unminified, MissingReference, BrokenReference, FetchFailed, Valid]


@dataclass(frozen=True)
class UploadCandidate:
    script_url: str
    sourcemap_url: Optional[str]
    resolved: bool


@dataclass
class AnalysisResult:
    """Everything collected during one run"""

    page_url: str
    final_url: str
    scripts: List[str] = field(default_factory=list)
    outcomes: List[Tuple[ScriptReference, SourcemapOutcome]] = field(default_factory=list)
    candidates: List[UploadCandidate] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    folders: Set[Path] = field(default_factory=set)

    @property
    def redirected(self) -> bool:
        return self.final_url != self.page_url

    @property
    def missing_sourcemaps(self) -> int:
        return self.counts.get('missing_reference', 0) + self.counts.get('broken_reference', 0)
