"""Tests for serge.server.handler — the FileServer request pipeline."""

import gzip
import logging
import os
import zlib

import brotli
import pytest

from serge.config import ServerConfig
from serge.filesystem import RootedFileSystem
from serge.server.handler import FileServer, clean_path, relative_redirect
from serge.testing import TestClient


class TestCleanPath:
    @pytest.mark.parametrize(
        ("raw", "cleaned"),
        [
            ("/", "/"),
            ("", "/"),
            ("/a/b/", "/a/b"),
            ("/a/./b", "/a/b"),
            ("/a/../b", "/b"),
            ("/../../etc/passwd", "/etc/passwd"),
            ("//a//b", "/a/b"),
            ("a/b", "/a/b"),
        ],
    )
    def test_clean(self, raw: str, cleaned: str) -> None:
        assert clean_path(raw) == cleaned


class TestRegularFiles:
    async def test_serves_file(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css")
        assert response.status == 200
        assert response.content_type == "text/css; charset=utf-8"
        assert response.body.startswith(b"body { color: red; }")
        assert response.header("content-encoding") is None

    async def test_nested_file(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/nested/index.html/page.txt")
        assert response.status == 200
        assert response.body == b"deep"

    async def test_sniffed_content_type(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/notes")
        assert response.status == 200
        assert response.content_type == "text/plain; charset=utf-8"
        assert response.body == b"plain notes, no extension"

    async def test_missing_file(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/missing.css")
        assert response.status == 404
        assert response.body == b""

    async def test_file_used_as_directory(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css/more")
        assert response.status == 404

    async def test_hidden_file_is_not_found(self, server, site) -> None:
        assert (site / "secret" / ".env").exists()
        async with TestClient(server) as client:
            response = await client.get("/secret/.env")
        assert response.status == 404
        assert response.body == b""

    async def test_traversal_stays_in_root(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/../outside.txt")
        assert response.status == 404

    async def test_dotdot_inside_root(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/docs/../app.js")
        assert response.status == 200
        assert b"console.log" in response.body

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions")
    async def test_permission_denied(self, server, site) -> None:
        locked = site / "locked.txt"
        locked.write_text("no")
        locked.chmod(0)
        async with TestClient(server) as client:
            response = await client.get("/locked.txt")
        assert response.status == 403
        assert response.body == b""

    async def test_head(self, server, site) -> None:
        async with TestClient(server) as client:
            response = await client.head("/style.css")
        assert response.status == 200
        assert response.body == b""
        assert response.header("content-length") == str((site / "style.css").stat().st_size)

    async def test_post_not_allowed(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.request("POST", "/style.css")
        assert response.status == 405
        assert response.header("allow") == "GET, HEAD"

    async def test_range_request(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/data.bin", headers={"Range": "bytes=0-3"})
        assert response.status == 206
        assert response.body == b"\x00\x01\x02\x03"

    async def test_idempotent(self, server) -> None:
        headers = {"Accept-Encoding": "gzip, deflate"}
        async with TestClient(server) as client:
            first = await client.get("/app.js", headers=headers)
            second = await client.get("/app.js", headers=headers)
        assert first.status == second.status == 200
        assert first.header("content-encoding") == second.header("content-encoding") == "gzip"


class TestDirectories:
    async def test_redirect_adds_trailing_slash(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/docs")
        assert response.status == 301
        assert response.header("location") == "/docs/"
        assert response.body == b""

    async def test_redirect_keeps_query_verbatim(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/docs?lang=en&x=%20y")
        assert response.status == 301
        assert response.header("location") == "/docs/?lang=en&x=%20y"

    async def test_redirect_is_relative(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/docs", headers={"Host": "evil.example"})
        assert response.header("location") == "/docs/"

    async def test_root_serves_index(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.body == b"<h1>Home</h1>"
        assert response.content_type == "text/html; charset=utf-8"

    async def test_directory_index_matches_direct_request(self, server) -> None:
        headers = {"Accept-Encoding": "br"}
        async with TestClient(server) as client:
            via_dir = await client.get("/docs/", headers=headers)
            direct = await client.get("/docs/index.html", headers=headers)
        assert via_dir.status == direct.status == 200
        assert via_dir.header("content-encoding") == direct.header("content-encoding") == "br"
        assert brotli.decompress(via_dir.body) == brotli.decompress(direct.body) == b"<h1>Docs</h1>"

    async def test_directory_without_index(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/empty/")
        assert response.status == 404

    async def test_index_that_is_a_directory_redirects(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/nested/")
        assert response.status == 301
        assert response.header("location") == "/nested/index.html/"

    async def test_index_directory_redirect_keeps_query(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/nested/?v=1")
        assert response.header("location") == "/nested/index.html/?v=1"

    async def test_index_resolution_stops_after_second_pass(self, site, monkeypatch) -> None:
        (site / "nested" / "index.html" / "index.html").mkdir()
        opened: list[str] = []
        real_open = RootedFileSystem.open

        def tracking_open(self, name: str):
            opened.append(name)
            return real_open(self, name)

        monkeypatch.setattr(RootedFileSystem, "open", tracking_open)
        server = FileServer(ServerConfig(root=site))
        async with TestClient(server) as client:
            response = await client.get("/nested/index.html/")
        assert response.status == 301
        assert response.header("location") == "/nested/index.html/index.html/"
        assert opened == ["/nested/index.html", "/nested/index.html/index.html"]

    async def test_redirect_never_names_a_host(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("//docs?next=1")
        assert response.status == 301
        assert response.header("location") == "/docs/?next=1"

    @pytest.mark.parametrize(
        ("path", "location"),
        [
            ("//evil.example/", "/evil.example/"),
            ("/\\evil.example/", "/evil.example/"),
            ("\\\\evil.example/", "/evil.example/"),
            ("/docs/", "/docs/"),
        ],
    )
    def test_relative_redirect_collapses_leading_separators(
        self, path: str, location: str
    ) -> None:
        assert relative_redirect(path, "").header("location") == location


class TestEncodingNegotiation:
    async def test_server_order_wins(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get(
                "/style.css", headers={"Accept-Encoding": "gzip;q=1.0, br;q=0.5"}
            )
        assert response.status == 200
        assert response.header("content-encoding") == "br"
        assert brotli.decompress(response.body).startswith(b"body { color: red; }")

    async def test_gzip(self, server, site) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css", headers={"Accept-Encoding": "gzip"})
        assert response.header("content-encoding") == "gzip"
        assert response.header("content-length") is None
        assert response.header("vary") == "Accept-Encoding"
        assert gzip.decompress(response.body) == (site / "style.css").read_bytes()

    async def test_deflate(self, server, site) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css", headers={"Accept-Encoding": "deflate"})
        assert response.header("content-encoding") == "deflate"
        assert zlib.decompress(response.body) == (site / "style.css").read_bytes()

    async def test_body_terminated_once(self, server) -> None:
        async with TestClient(server) as client:
            await client.get("/style.css", headers={"Accept-Encoding": "gzip"})
            final = [
                m
                for m in client.last_messages
                if m["type"] == "http.response.body" and not m.get("more_body", False)
            ]
            assert len(final) == 1
            assert client.last_messages[-1] is final[0]

    async def test_no_header_serves_identity(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css")
        assert response.header("content-encoding") is None
        assert response.header("vary") == "Accept-Encoding"

    async def test_unsupported_only_falls_back_to_identity(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css", headers={"Accept-Encoding": "zstd"})
        assert response.status == 200
        assert response.header("content-encoding") is None

    async def test_nothing_acceptable(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get(
                "/style.css", headers={"Accept-Encoding": "zstd, identity;q=0"}
            )
        assert response.status == 406
        assert response.body == b""

    async def test_malformed_header(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/style.css", headers={"Accept-Encoding": "gzip;q=9"})
        assert response.status == 406
        assert response.body == b""

    async def test_quoted_parameter_is_accepted(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get(
                "/style.css", headers={"Accept-Encoding": 'gzip;x="a,b"'}
            )
        assert response.status == 200
        assert response.header("content-encoding") == "gzip"

    async def test_directory_redirect_ignores_encoding(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.get("/docs", headers={"Accept-Encoding": "*;q=0"})
        assert response.status == 301

    async def test_head_compressed_has_no_body(self, server) -> None:
        async with TestClient(server) as client:
            response = await client.head("/style.css", headers={"Accept-Encoding": "gzip"})
        assert response.status == 200
        assert response.header("content-encoding") == "gzip"
        assert response.body == b""

    async def test_not_modified_with_encoding(self, server) -> None:
        async with TestClient(server) as client:
            first = await client.get("/style.css", headers={"Accept-Encoding": "gzip"})
            response = await client.get(
                "/style.css",
                headers={
                    "Accept-Encoding": "gzip",
                    "If-Modified-Since": first.header("last-modified") or "",
                },
            )
        assert response.status == 304
        assert response.body == b""

    async def test_identity_only_server(self, site) -> None:
        server = FileServer(ServerConfig(root=site, encodings=()))
        async with TestClient(server) as client:
            response = await client.get("/style.css", headers={"Accept-Encoding": "br, gzip"})
        assert response.status == 200
        assert response.header("content-encoding") is None
        assert response.header("vary") is None


class TestErrors:
    async def test_other_os_error_is_logged_500(self, server, monkeypatch, caplog) -> None:
        def broken_open(self, name: str):
            raise OSError(5, "Input/output error")

        monkeypatch.setattr(RootedFileSystem, "open", broken_open)
        with caplog.at_level(logging.DEBUG, logger="serge.server"):
            async with TestClient(server) as client:
                response = await client.get("/style.css")
        assert response.status == 500
        assert response.body == b""
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    async def test_not_found_is_not_logged_as_error(self, server, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="serge.server"):
            async with TestClient(server) as client:
                await client.get("/missing")
        assert not any(r.levelno >= logging.WARNING for r in caplog.records)

    async def test_unknown_encoding_fails_request(self, server, monkeypatch, caplog) -> None:
        monkeypatch.setattr(
            "serge.server.handler.negotiate_encoding", lambda value, supported: "zstd"
        )
        with caplog.at_level(logging.ERROR, logger="serge.server"):
            async with TestClient(server) as client:
                response = await client.get("/style.css", headers={"Accept-Encoding": "zstd"})
        assert response.status == 500
        assert "zstd" in caplog.text

    async def test_client_disconnect_is_abandonment(self, server, caplog) -> None:
        async def receive() -> dict:
            return {"type": "http.disconnect"}

        async def send(message: dict) -> None:
            raise ConnectionResetError("peer gone")

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/style.css",
            "raw_path": b"/style.css",
            "query_string": b"",
            "headers": [],
        }
        with caplog.at_level(logging.DEBUG, logger="serge.server"):
            await server(scope, receive, send)
        assert "client went away" in caplog.text
        assert not any(r.levelno >= logging.ERROR for r in caplog.records)

    async def test_file_handles_released(self, server, monkeypatch) -> None:
        opened = []
        real_open = RootedFileSystem.open

        def tracking_open(self, name: str):
            handle = real_open(self, name)
            opened.append(handle)
            return handle

        monkeypatch.setattr(RootedFileSystem, "open", tracking_open)
        async with TestClient(server) as client:
            await client.get("/docs/", headers={"Accept-Encoding": "gzip"})
            await client.get("/docs")
            await client.get("/style.css", headers={"Accept-Encoding": "zstd, identity;q=0"})
        assert len(opened) == 4
        assert all(handle.closed for handle in opened)


class TestLifespan:
    async def test_startup_and_shutdown(self, server) -> None:
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict] = []

        async def receive() -> dict:
            return incoming.pop(0)

        async def send(message: dict) -> None:
            sent.append(message)

        await server({"type": "lifespan"}, receive, send)
        assert sent == [
            {"type": "lifespan.startup.complete"},
            {"type": "lifespan.shutdown.complete"},
        ]
