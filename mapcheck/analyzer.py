"""
Drives the crawl-resolve-validate pipeline for one page
"""
import logging
from typing import Optional, Tuple

from mapcheck.cdn import community_cdn_host
from mapcheck.config import ScanConfig
from mapcheck.correlator import LocalCorrelator
from mapcheck.errors import FetchError, SourcemapSyntaxError, UrlResolutionError
from mapcheck.fetcher import Fetcher
from mapcheck.minify import is_likely_minified
from mapcheck.models import (
    AnalysisResult,
    BrokenReference,
    FetchFailed,
    Ignored,
    MissingReference,
    ScriptReference,
    SourcemapOutcome,
    Unminified,
    UploadCandidate,
    Valid,
)
from mapcheck.reference import decode_data_uri, find_sourcemap_reference, is_data_uri
from mapcheck.scanners import ScriptScanner
from mapcheck.sourcemap import SourcemapValidator, is_sourcemap
from mapcheck.urls import join_url, validate_page_url

logger = logging.getLogger(__name__)

COUNTER_KEYS = {
    Ignored: 'ignored',
    FetchFailed: 'fetch_failed',
    Unminified: 'unminified',
    MissingReference: 'missing_reference',
    BrokenReference: 'broken_reference',
    Valid: 'valid',
}

ScriptVerdict = Tuple[SourcemapOutcome, Optional[UploadCandidate]]


class SourcemapAnalyzer:
    """Finds the scripts of a page and checks each one for a usable sourcemap"""

    def __init__(self, config: ScanConfig = None, fetcher=None, correlator: LocalCorrelator = None):
        self.config = config or ScanConfig()
        self.fetcher = fetcher or Fetcher(self.config)
        self.validator = SourcemapValidator(self.fetcher, check_sources=self.config.check_sources)
        self.correlator = correlator or LocalCorrelator(self.config.root)

    def find_scripts(self, page_url: str) -> Tuple[str, list]:
        """Fetch the page and return (final url, script urls).

        Every failure here is fatal to the run.
        """
        page_url = validate_page_url(page_url)
        logger.debug(f"Finding scripts on {page_url}")
        resp = self.fetcher.get(page_url).raise_for_status()

        scripts = ScriptScanner(resp.url).extract_js_urls(resp.content)
        logger.debug(f"Found {len(scripts)} script reference(s)")
        return resp.url, scripts

    def analyze_script(self, script: ScriptReference) -> ScriptVerdict:
        """Classify one script. Never raises for per-script failures."""
        url = script.url

        cdn_host = community_cdn_host(url)
        if cdn_host:
            logger.debug(f"{url} is on community CDN {cdn_host}; ignoring")
            return Ignored(cdn_host), None

        try:
            resp = self.fetcher.get(url)
        except FetchError as e:
            logger.warning(f"[!] Could not fetch {url}: {e.reason}")
            return FetchFailed(reason=e.reason), None

        if resp.failed:
            return FetchFailed(status=resp.status), None

        body = resp.text()
        ref = find_sourcemap_reference(resp.headers, body)

        if ref is None:
            if is_likely_minified(body):
                return MissingReference(), UploadCandidate(url, None, False)
            return Unminified(), None

        if is_data_uri(ref):
            return self.check_inline_sourcemap(url, ref)

        try:
            sourcemap_url = join_url(url, ref)
        except UrlResolutionError as e:
            logger.warning(f"[!] Bad sourcemap reference in {url}: {e}")
            return BrokenReference(ref, reason=str(e)), UploadCandidate(url, None, False)

        return self.check_sourcemap(url, sourcemap_url)

    def check_sourcemap(self, script_url: str, sourcemap_url: str) -> ScriptVerdict:
        try:
            resp = self.fetcher.get(sourcemap_url)
        except FetchError as e:
            return BrokenReference(sourcemap_url, reason=e.reason), UploadCandidate(script_url, sourcemap_url, False)

        if resp.failed:
            return BrokenReference(sourcemap_url, status=resp.status), UploadCandidate(script_url, sourcemap_url, False)

        return self._validate(script_url, sourcemap_url, resp.content, sourcemap_url, status=resp.status)

    def check_inline_sourcemap(self, script_url: str, data_uri: str) -> ScriptVerdict:
        try:
            data = decode_data_uri(data_uri)
        except SourcemapSyntaxError as e:
            return BrokenReference(data_uri, reason=str(e)), UploadCandidate(script_url, None, False)
        # sources of an inline map are relative to the script itself
        return self._validate(script_url, data_uri, data, script_url)

    def _validate(self, script_url: str, sourcemap_url: str, data: bytes, base_url: str,
                  status: Optional[int] = None) -> ScriptVerdict:
        broken = UploadCandidate(script_url, sourcemap_url, False)

        if not is_sourcemap(data):
            return BrokenReference(sourcemap_url, status=status, reason='not a valid sourcemap'), broken

        try:
            report = self.validator.validate(sourcemap_url, data, base_url=base_url)
        except SourcemapSyntaxError as e:
            return BrokenReference(sourcemap_url, status=status, reason=f"error parsing sourcemap: {e}"), broken

        return Valid(report), UploadCandidate(script_url, sourcemap_url, True)

    def run(self, page_url: str) -> AnalysisResult:
        """Analyze every script on the page, then correlate with local files"""
        final_url, scripts = self.find_scripts(page_url)
        result = AnalysisResult(
            page_url=validate_page_url(page_url),
            final_url=final_url,
            scripts=scripts,
            counts={key: 0 for key in COUNTER_KEYS.values()},
        )

        logger.info(f"[*] Analyzing {len(scripts)} script(s) on {final_url}")
        seen = set()
        for script_url in scripts:
            if script_url in seen:
                logger.debug(f"{script_url} already analyzed; skipping duplicate")
                continue
            seen.add(script_url)

            script = ScriptReference(url=script_url, page_url=final_url)
            outcome, candidate = self.analyze_script(script)
            result.outcomes.append((script, outcome))
            result.counts[COUNTER_KEYS[type(outcome)]] += 1
            if candidate is not None:
                result.candidates.append(candidate)

        if result.candidates:
            result.folders = self.correlator.correlate(result.candidates)
        return result
