import json

import pytest
from requests.structures import CaseInsensitiveDict

from mapcheck.config import ScanConfig
from mapcheck.errors import FetchError
from mapcheck.models import FetchResponse

# One long line with almost no whitespace
MINIFIED_JS = (
    '!function(e){var t={};function n(r){if(t[r])return t[r].exports;var o=t[r]={i:r,l:!1,'
    'exports:{}};return e[r].call(o.exports,o,o.exports,n),o.l=!0,o.exports}n.m=e,n.c=t,'
    'n.d=function(e,t,r){n.o(e,t)||Object.defineProperty(e,t,{enumerable:!0,get:r})}}([]);'
)

READABLE_JS = """
// Adds two numbers together.
function addNumbers(first, second) {
    const total = first + second;
    return total;
}

module.exports = { addNumbers };
"""


def make_map(sources, contents=None, mappings=None, **extra):
    """Build a regular v3 sourcemap; one token per source unless mappings is given"""
    if mappings is None:
        mappings = ';'.join(['AAAA'] + ['ACAA'] * (len(sources) - 1)) if sources else ''
    document = {
        'version': 3,
        'file': 'app.js',
        'sources': sources,
        'names': [],
        'mappings': mappings,
    }
    if contents is not None:
        document['sourcesContent'] = contents
    document.update(extra)
    return document


def to_bytes(document) -> bytes:
    return json.dumps(document).encode('utf-8')


class FakeFetcher:
    """Scripted stand-in for Fetcher; unknown URLs answer 404"""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url, body=b'', status=200, headers=None, final_url=None):
        if isinstance(body, str):
            body = body.encode('utf-8')
        elif isinstance(body, dict):
            body = to_bytes(body)
        self.routes[url] = (status, body, headers or {}, final_url or url)

    def add_error(self, url, reason='connection refused'):
        self.routes[url] = FetchError(url, reason)

    def _respond(self, method, url):
        self.calls.append((method, url))
        route = self.routes.get(url)
        if isinstance(route, FetchError):
            raise route
        if route is None:
            return FetchResponse(url=url, status=404)
        status, body, headers, final_url = route
        return FetchResponse(
            url=final_url,
            status=status,
            headers=CaseInsensitiveDict(headers),
            content=body if method == 'GET' else b'',
        )

    def get(self, url):
        return self._respond('GET', url)

    def head(self, url):
        return self._respond('HEAD', url)

    def urls(self, method=None):
        return [url for m, url in self.calls if method is None or m == method]

    def close(self):
        pass


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def config(tmp_path):
    return ScanConfig(root=tmp_path)
