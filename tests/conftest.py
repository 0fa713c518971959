import os
import sys

import pytest

# Make libs/ and the practice pod importable without installing the project
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
LIBS = os.path.join(ROOT, "libs")
PRACTICE_POD = os.path.join(ROOT, "pods", "practice")
for p in (ROOT, LIBS, PRACTICE_POD):
    if p not in sys.path:
        sys.path.insert(0, p)

from hmcore.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Settings are memoized; tests that patch HM_* variables need a fresh load."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
