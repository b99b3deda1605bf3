import os

import pytest

from memorylayer.config import reset_config
from memorylayer.providers import clear_embedding_cache


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every test from an empty directory, without MEMORYLAYER_ variables or cached state."""
    for key in list(os.environ):
        if key.startswith("MEMORYLAYER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    clear_embedding_cache()
    yield
    reset_config()
    clear_embedding_cache()
