"""
Correlates discovered scripts with build output on the local disk
"""
import os
import logging
from pathlib import Path
from typing import Iterable, Set, Union

from mapcheck.errors import FilesystemWalkError
from mapcheck.models import UploadCandidate
from mapcheck.urls import url_filename

logger = logging.getLogger(__name__)

SKIP_DIRS = {'.git', '.hg', '.svn', 'node_modules'}


def known_filenames(candidates: Iterable[UploadCandidate]):
    """Split upload candidates into (script filenames, sourcemap filenames)"""
    js_files = set()
    sm_files = set()
    for candidate in candidates:
        name = url_filename(candidate.script_url)
        if name:
            js_files.add(name)
        if candidate.sourcemap_url and not candidate.sourcemap_url.lower().startswith('data:'):
            name = url_filename(candidate.sourcemap_url)
            if name:
                sm_files.add(name)
    return js_files, sm_files


class LocalCorrelator:
    """Finds folders below root that hold files named like known scripts or sourcemaps"""

    def __init__(self, root: Union[str, Path] = None):
        self.root = Path(root) if root is not None else Path(os.getcwd())
        self.skipped = []

    def _on_error(self, error: OSError):
        skipped = FilesystemWalkError(f"cannot read {error.filename}: {error.strerror}")
        self.skipped.append(skipped)
        logger.debug(f"Skipping {skipped}")

    def find_folders(self, js_files: Set[str], sm_files: Set[str]) -> Set[Path]:
        """Walk root read-only; returns folders relative to root"""
        wanted = set(js_files) | set(sm_files)
        folders = set()
        if not wanted:
            return folders

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_error):
            dirnames[:] = [name for name in dirnames if name not in SKIP_DIRS]
            for filename in filenames:
                if filename in wanted:
                    folders.add(Path(dirpath).relative_to(self.root))

        logger.debug(f"Found {len(folders)} candidate folder(s) below {self.root}")
        return folders

    def correlate(self, candidates: Iterable[UploadCandidate]) -> Set[Path]:
        js_files, sm_files = known_filenames(candidates)
        return self.find_folders(js_files, sm_files)
