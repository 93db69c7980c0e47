import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from utils.config import Config, SecretStore


@pytest.fixture
def write_file(tmp_path):
    """Write text under tmp_path and return the path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def env_file(tmp_path):
    return tmp_path / ".env"


@pytest.fixture
def config(env_file):
    return Config(env_file, environ={})


@pytest.fixture
def secrets(env_file):
    return SecretStore(env_file, environ={})
