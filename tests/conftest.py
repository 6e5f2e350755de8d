"""Pytest configuration - add src/ to path so tests import pair_design as installed."""
import sys
from pathlib import Path

SRC = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC))
