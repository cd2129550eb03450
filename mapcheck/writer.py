"""
Human readable report of an analysis run
"""
import logging
from pathlib import Path

from mapcheck.models import (
    INVALID,
    SCRAPEABLE,
    UNREACHABLE,
    AnalysisResult,
    BrokenReference,
    FetchFailed,
    Ignored,
    MissingReference,
    Unminified,
    Valid,
    ValidationReport,
)
from mapcheck.reference import is_data_uri

logger = logging.getLogger(__name__)


def display_url(url: str) -> str:
    if url and is_data_uri(url):
        return 'inline data: URI'
    return url


class ReportWriter:
    """Prints the diagnostic report to stdout"""

    def write(self, result: AnalysisResult):
        self.write_header(result)
        self.write_scripts(result)
        self.write_summary(result)
        if result.candidates:
            self.write_upload_hints(result)

    def write_header(self, result: AnalysisResult):
        print(f"[*] Finding scripts on {result.page_url}")
        if result.redirected:
            print(f"[*] Redirected to {result.final_url}")

        print("[*] Scripts referenced:")
        for script_url in result.scripts:
            print(f"  - {script_url}")

    def write_scripts(self, result: AnalysisResult):
        print("[*] Analyzing scripts:")
        for script, outcome in result.outcomes:
            if isinstance(outcome, Ignored):
                print(f"  [-] {script.url}")
                print(f"      known community CDN provided script ({outcome.cdn_host}); ignoring")
                continue

            if isinstance(outcome, FetchFailed):
                print(f"  [!] {script.url} [{outcome.status or outcome.reason}]")
                continue

            print(f"  [+] {script.url}")
            if isinstance(outcome, Unminified):
                print("      unminified")
            elif isinstance(outcome, MissingReference):
                print("      minified without sourcemap reference")
            elif isinstance(outcome, BrokenReference):
                print(f"      minified with sourcemap (-> {display_url(outcome.sourcemap_url)})")
                if outcome.status is not None and outcome.reason is None:
                    print(f"      [!] {outcome.sourcemap_url} [{outcome.status}]")
                else:
                    print(f"      [!] {display_url(outcome.sourcemap_url)}: {outcome.reason}")
            elif isinstance(outcome, Valid):
                details = outcome.details
                print(f"      minified with sourcemap (-> {display_url(details.sourcemap_url)})")
                print(f"      [+] {display_url(details.sourcemap_url)}")
                self.write_validation(details)

    def write_validation(self, report: ValidationReport):
        prefix = "        "
        print(f"{prefix}sourcemap type: {report.kind}")
        if report.error:
            print(f"{prefix}unsupported sourcemap index: {report.error}")
            return

        print(f"{prefix}sources: {report.source_count}")
        print(f"{prefix}tokens: {report.token_count}")

        for check in report.sources:
            if check.state == INVALID:
                print(f"{prefix}  warning: invalid source reference #{check.index}")
                continue
            if not check.missing and check.state != SCRAPEABLE:
                continue

            print(f"{prefix}  warning: no embedded sourcecode for {check.name}")
            if check.state == SCRAPEABLE:
                print(f"{prefix}  (but can scrape source at {check.url})")
            elif check.state == UNREACHABLE:
                print(f"{prefix}  (error: cannot scrape at {check.url} [{check.status or check.reason}])")
            else:
                print(f"{prefix}  (not checked: {check.url})")

    def write_summary(self, result: AnalysisResult):
        counts = result.counts
        missing = result.missing_sourcemaps
        if missing > 0:
            print(f"[!] Found {missing} missing sourcemap(s) that need uploading")
        else:
            print("[+] No missing sourcemaps found!")
            if result.candidates:
                print(f"  (but there are {len(result.candidates)} sourcemap(s) you should consider uploading)")

        logger.debug(
            "Totals: "
            + ", ".join(f"{key.replace('_', ' ')}={value}" for key, value in counts.items())
        )

    def write_upload_hints(self, result: AnalysisResult):
        print("[*] Local folders with matching build output:")
        if result.folders:
            for folder in sorted(result.folders):
                print(f"  - {self.format_folder(folder)}")
        else:
            print("  (none found)")

        print("[*] Scripts and sourcemaps:")
        for candidate in result.candidates:
            marker = "" if candidate.resolved else "  [missing]"
            print(f"  - {candidate.script_url}{marker}")
            if candidate.sourcemap_url:
                print(f"    -> {display_url(candidate.sourcemap_url)}")

    def format_folder(self, folder: Path) -> str:
        return './' if folder == Path('.') else f"./{folder.as_posix()}"
