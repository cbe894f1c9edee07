"""Shared fixtures: a small site on disk and a server over it."""

import pytest

from serge.config import ServerConfig
from serge.server.handler import FileServer


@pytest.fixture
def site(tmp_path):
    """Create a site tree to serve.

    public/
        index.html
        style.css
        app.js
        data.bin
        notes            (no extension, UTF-8 text)
        docs/index.html
        empty/           (directory without index)
        nested/index.html/page.txt   (index name used as a directory)
        secret/.env
    outside.txt          (next to the root, must never be served)
    """
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_text("<h1>Home</h1>")
    (root / "style.css").write_text("body { color: red; }\n" * 200)
    (root / "app.js").write_text("console.log('hello');")
    (root / "data.bin").write_bytes(bytes(range(256)))
    (root / "notes").write_text("plain notes, no extension")

    docs = root / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<h1>Docs</h1>")

    (root / "empty").mkdir()

    nested = root / "nested" / "index.html"
    nested.mkdir(parents=True)
    (nested / "page.txt").write_text("deep")

    secret = root / "secret"
    secret.mkdir()
    (secret / ".env").write_text("TOKEN=hunter2")

    (tmp_path / "outside.txt").write_text("outside the root")
    return root


@pytest.fixture
def server(site):
    return FileServer(ServerConfig(root=site))
