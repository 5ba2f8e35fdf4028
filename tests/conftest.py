import json
import sys
from pathlib import Path

import pytest

# Ensure project 'src' dir (and the repo root, for tests.* imports) are on sys.path
root_dir = Path(__file__).resolve().parents[1]
src_path = root_dir / "src"
for path in (src_path, root_dir):
    if path.exists() and str(path) not in sys.path:
        sys.path.insert(0, str(path))


@pytest.fixture(autouse=True)
def _no_usda_key(monkeypatch):
    # Builtins must never pick up a developer's real key during tests
    monkeypatch.delenv("USDA_API_KEY", raising=False)
    monkeypatch.delenv("PRODUCT_LOOKUP_CONFIG", raising=False)


@pytest.fixture
def write_config(tmp_path):
    """Write a plugin configuration document and return its path."""

    def _write(document, name: str = "plugins.json") -> str:
        path = tmp_path / name
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document), encoding="utf-8")
        return str(path)

    return _write
