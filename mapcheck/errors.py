"""
Error types raised across the analysis pipeline
"""
from typing import Optional


class MapCheckError(Exception):
    """Base class for every error MapCheck raises"""


class UrlResolutionError(MapCheckError):
    """A URL could not be parsed or joined"""

    def __init__(self, reference: str, base: Optional[str] = None, reason: str = ''):
        self.reference = reference
        self.base = base
        message = f"cannot resolve {reference!r}"
        if base:
            message += f" against {base}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class FetchError(MapCheckError):
    """Transport level failure (DNS, connection, timeout, bad scheme)"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"failed to fetch {url}: {reason}")


class HttpStatusError(MapCheckError):
    """The final response after redirects was not 2xx"""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"{url} returned HTTP {status}")


class SourcemapSyntaxError(MapCheckError):
    """Bytes did not look like a sourcemap document"""


class SourcemapIndexUnsupported(MapCheckError):
    """An index sourcemap could not be flattened"""


class SourceReferenceInvalid(MapCheckError):
    """A source entry inside a sourcemap is not a usable URL"""

    def __init__(self, index: int, name: Optional[str]):
        self.index = index
        self.name = name
        super().__init__(f"invalid source reference #{index}")


class FilesystemWalkError(MapCheckError):
    """A directory entry could not be read during the local walk"""
