"""Pytest configuration.

Tests import ``blocktap`` and the shared fakes in ``tests._fakes`` straight
from the checkout, so the repository root is put on ``sys.path`` for runs
without an editable install.
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
