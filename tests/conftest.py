from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
SDK_SRC = BASE_DIR / "src"
TESTS_DIR = BASE_DIR / "tests"

for path in (SDK_SRC, TESTS_DIR):
    sys.path.insert(0, str(path))
