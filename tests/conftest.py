"""
Pytest configuration for tests under tests/.

These tests import the package as `traceprof.*` and the shared trace builders
as `tests.fixtures.traces`. When pytest is invoked from elsewhere without an
installed package, the repo root is not automatically on `sys.path`.

This conftest ensures the repo root is on sys.path regardless of invocation cwd.
"""

from __future__ import annotations

import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))
