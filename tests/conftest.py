"""Shared fixtures: a small site tree and clients for each resolution mode."""
import pytest
from fastapi.testclient import TestClient

from badlopo.api.config import build_config
from badlopo.api.main import create_app

INDEX_BYTES = b"<!doctype html><title>index</title>"
LOGO_BYTES = b"\x89PNG\r\n\x1a\nnot-really-a-png"
SECRET_BYTES = b"top secret"


@pytest.fixture
def site(tmp_path):
    """
    tmp_path/
      secret.txt          (outside the served root)
      site/
        index.html
        img/logo.png
        docs/             (empty directory)
    """
    (tmp_path / "secret.txt").write_bytes(SECRET_BYTES)
    root = tmp_path / "site"
    (root / "img").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "index.html").write_bytes(INDEX_BYTES)
    (root / "img" / "logo.png").write_bytes(LOGO_BYTES)
    return root


@pytest.fixture
def make_client(site):
    def _make(mode, **kwargs):
        config = build_config(root=site, entry="index.html", port=8080, mode=mode)
        return TestClient(create_app(config), raise_server_exceptions=False, **kwargs)
    return _make
