"""
Run configuration
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = 'MapCheck/1.0'


@dataclass
class ScanConfig:
    """Settings that control fetching and the local folder walk"""

    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    root: Path = field(default_factory=lambda: Path(os.getcwd()))
    check_sources: bool = True
