import json
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from nodeward.api.model import ClusterState
from nodeward.bootstrap.script import (
    CLUSTER_JSON_PATH,
    build_bootstrap_script,
    load_script,
    render_header,
)
from nodeward.core.exceptions import RenderError

pytestmark = [pytest.mark.unit]


@pytest.fixture
def state() -> ClusterState:
    return ClusterState(
        name="kube",
        endpoint="10.0.0.5",
        port="6443",
        values={"INJECTEDMASTER": "10.0.0.5:6443", "INJECTEDPORT": "6443"},
    )


def _embedded_json(script: str) -> dict:
    start = script.index("NODEWARD_CLUSTER_EOF\n") + len("NODEWARD_CLUSTER_EOF\n")
    end = script.index("\nNODEWARD_CLUSTER_EOF", start)
    return json.loads(script[start:end])


class TestHeader:
    def test_writes_cluster_json(self, state: ClusterState):
        header = render_header(state)
        assert header.startswith("#!/usr/bin/env bash\n")
        assert f"> {CLUSTER_JSON_PATH}" in header
        assert _embedded_json(header) == state.to_dict()


class TestLoadScript:
    async def test_local_path(self, tmp_path: Path):
        script = tmp_path / "setup.sh"
        script.write_text("echo hello\n")
        assert await load_script(str(script)) == "echo hello\n"

    async def test_search_path(self, tmp_path: Path):
        (tmp_path / "setup.sh").write_text("echo from search path\n")
        assert await load_script("setup.sh", [tmp_path]) == "echo from search path\n"

    async def test_shipped_script(self):
        content = await load_script("triton_k8s_master.sh")
        assert "INJECTEDPORT" in content

    async def test_missing_script_raises(self, tmp_path: Path):
        with pytest.raises(RenderError, match="nope.sh"):
            await load_script("nope.sh", [tmp_path])

    async def test_url(self):
        app = web.Application()

        async def serve(_: web.Request) -> web.Response:
            return web.Response(text="echo remote\n")

        app.router.add_get("/setup.sh", serve)
        srv = TestServer(app)
        await srv.start_server()
        try:
            url = f"http://{srv.host}:{srv.port}/setup.sh"
            assert await load_script(url) == "echo remote\n"
        finally:
            await srv.close()

    async def test_url_error_raises(self):
        app = web.Application()
        srv = TestServer(app)
        await srv.start_server()
        try:
            with pytest.raises(RenderError, match="missing.sh"):
                await load_script(f"http://{srv.host}:{srv.port}/missing.sh")
        finally:
            await srv.close()


class TestBuildBootstrapScript:
    async def test_scripts_follow_header_in_order(self, tmp_path: Path, state: ClusterState):
        (tmp_path / "first.sh").write_text("echo first\n")
        (tmp_path / "second.sh").write_text("echo second\n")

        script = await build_bootstrap_script(
            ("first.sh", "second.sh"), state, search_paths=[tmp_path]
        )

        assert script.index(CLUSTER_JSON_PATH) < script.index("echo first")
        assert script.index("echo first") < script.index("echo second")
        assert _embedded_json(script)["values"]["INJECTEDMASTER"] == "10.0.0.5:6443"

    async def test_no_scripts_renders_header_only(self, state: ClusterState):
        assert await build_bootstrap_script((), state) == render_header(state)

    async def test_missing_reference_fails_whole_render(self, tmp_path: Path, state: ClusterState):
        (tmp_path / "first.sh").write_text("echo first\n")
        with pytest.raises(RenderError):
            await build_bootstrap_script(("first.sh", "absent.sh"), state, search_paths=[tmp_path])
