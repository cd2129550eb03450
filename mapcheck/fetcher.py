"""
Blocking HTTP access for pages, scripts, sourcemaps and source files
"""
import logging
import requests
from requests.structures import CaseInsensitiveDict

from mapcheck.config import ScanConfig
from mapcheck.errors import FetchError
from mapcheck.models import FetchResponse

logger = logging.getLogger(__name__)


class Fetcher:
    """Thin wrapper around a requests session; follows redirects, never retries"""

    def __init__(self, config: ScanConfig = None):
        self.config = config or ScanConfig()
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': self.config.user_agent
        })

    def get(self, url: str) -> FetchResponse:
        """GET url, following redirects"""
        return self._request('GET', url)

    def head(self, url: str) -> FetchResponse:
        """HEAD url, following redirects; the body is never read"""
        return self._request('HEAD', url)

    def _request(self, method: str, url: str) -> FetchResponse:
        logger.debug(f"{method} {url}")
        try:
            resp = self.session.request(
                method,
                url,
                timeout=self.config.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.debug(f"{method} {url} failed: {e}")
            raise FetchError(url, str(e))

        content = resp.content if method == 'GET' else b''
        if resp.history:
            logger.debug(f"  {url} redirected to {resp.url}")
        logger.debug(f"  [{resp.status_code}] {resp.url} ({len(content)} bytes)")

        return FetchResponse(
            url=resp.url,
            status=resp.status_code,
            headers=CaseInsensitiveDict(resp.headers),
            content=content,
        )

    def close(self):
        self.session.close()
