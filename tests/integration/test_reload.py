"""Integration tests — file-backed sampling config through the HTTP app.

Exercises the combined source -> decode -> snapshot -> query pipeline:
1. Initial file contents served immediately
2. Valid rewrites adopted within two poll intervals
3. Malformed rewrites ignored, previous config kept
"""

import asyncio
import json
import os
from pathlib import Path

import pytest
from aiohttp import web

from samplegate.server import VERSION_HEADER, create_app

POLL = 0.25


def write_payload(path: Path, payload: dict | str) -> None:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(text)
    os.replace(tmp, path)


async def wait_for_version(client, version: int, timeout: float) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        resp = await client.get("/config")
        if resp.headers[VERSION_HEADER] == str(version):
            return True
        await asyncio.sleep(POLL / 5)
    return False


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "sampling.json"
    write_payload(path, {"configs": [{"csid": "reader-1", "deadline": 1000}]})
    return path


@pytest.fixture
def app(config_path: Path) -> web.Application:
    settings = {
        "server": {"port": 8090},
        "sampling": {"source": f"file:{config_path}", "poll_interval_seconds": POLL},
        "logging": {"level": "INFO"},
    }
    return create_app(settings)


class TestFileReloadFlow:
    async def test_initial_file_served(self, aiohttp_client, app) -> None:
        client = await aiohttp_client(app)
        resp = await client.get("/sampling", params={"csid": "reader-1", "at": "999"})
        assert resp.status == 200
        resp = await client.get("/sampling", params={"csid": "reader-1", "at": "1000"})
        assert resp.status == 403

    async def test_rewrite_adopted(self, aiohttp_client, app, config_path: Path) -> None:
        client = await aiohttp_client(app)
        write_payload(
            config_path,
            {
                "configs": [
                    {"csid": "reader-1", "deadline": 10},
                    {"csid": "reader-2", "deadline": 1000},
                ]
            },
        )
        assert await wait_for_version(client, 2, POLL * 4)

        resp = await client.get("/sampling", params={"csid": "reader-1", "at": "500"})
        assert resp.status == 403
        resp = await client.get("/sampling", params={"csid": "reader-2", "at": "500"})
        assert resp.status == 200

    async def test_malformed_rewrite_ignored(self, aiohttp_client, app, config_path: Path) -> None:
        client = await aiohttp_client(app)
        write_payload(config_path, "{ this is not json")
        assert not await wait_for_version(client, 2, POLL * 2)

        resp = await client.get("/sampling", params={"csid": "reader-1", "at": "999"})
        assert resp.status == 200
        resp = await client.get("/config")
        assert await resp.json() == {"configs": [{"csid": "reader-1", "deadline": 1000}]}

    async def test_update_callback_sees_rewrite(self, aiohttp_client, app, config_path: Path) -> None:
        client = await aiohttp_client(app)
        loop = asyncio.get_running_loop()
        adopted: asyncio.Future = loop.create_future()

        def on_update(config) -> None:
            if config.deadline_for("reader-3") is not None:
                loop.call_soon_threadsafe(
                    lambda: adopted.done() or adopted.set_result(config)
                )

        app["sampling"].set_update_callback(on_update)
        write_payload(config_path, {"configs": [{"csid": "reader-3", "deadline": 50}]})
        config = await asyncio.wait_for(adopted, POLL * 4)

        assert [(e.csid, e.deadline) for e in config] == [("reader-3", 50)]
        resp = await client.get("/sampling", params={"csid": "reader-3", "at": "49"})
        assert resp.status == 200
