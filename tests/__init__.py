"""Pytest package root so shared helpers import as ``tests.utils``."""

import sys
from pathlib import Path

# Benchmarks and shared dataset helpers are imported from the repository root.
_ROOT = str(Path(__file__).resolve().parents[1])
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)
