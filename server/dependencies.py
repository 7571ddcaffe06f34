import sys
import os
from functools import lru_cache

# Add project root to path so we can import src
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.config import Config
from src.core.scan_machine import ScanMachine

@lru_cache()
def get_scan_machine() -> ScanMachine:
    """The one scanner instance shared by every request."""
    Config.ensure_dirs()
    return ScanMachine(Config)
