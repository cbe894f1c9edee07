"""Testing utilities for serge applications.

Usage::

    from serge.testing import TestClient

    async def test_index(tmp_path):
        (tmp_path / "index.html").write_text("<h1>Hi</h1>")
        server = FileServer(ServerConfig(root=tmp_path))
        async with TestClient(server) as client:
            response = await client.get("/")
            assert response.status == 200
"""

from serge.testing.client import TestClient

__all__ = ["TestClient"]
