"""Tests for full_autorest.server.app -- the FastAPI routes end to end.

Most tests use the FastAPI TestClient and a stub ``autorest`` on ``PATH``:

- ``GET|POST /generate`` -- streaming body, trailer, query overrides.
- ``GET /generate?buffered=true`` -- status codes per outcome.
- Setup failure -- 500 with the error text, generator never launched.
- Rejected parameters -- 422, generator never launched.
- Load and disconnects -- a busy server stays responsive, and a client
  hanging up kills its generator (checked against a real uvicorn server).
- ``GET /healthz`` -- liveness.
"""

from __future__ import annotations

import contextlib
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator

import httpx
import pytest
import uvicorn
from fastapi import FastAPI
from fastapi.testclient import TestClient

from full_autorest import __version__
from full_autorest.models import DEFAULT_INPUT_SPEC, GeneratorConfig, GlobalConfig
from full_autorest.server.app import create_app
from full_autorest.server.handler import EXIT_CODE_HEADER

ECHO_ARGS = 'for arg in "$@"; do echo "$arg"; done\n'


def _client(**generator: object) -> TestClient:
    config = GlobalConfig(generator=GeneratorConfig(**generator))
    return TestClient(create_app(config))


@contextlib.contextmanager
def _serve(app: FastAPI) -> Iterator[str]:
    """Run *app* on a real uvicorn server in a thread; yield its base URL."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    deadline = time.monotonic() + 10
    while not server.started:
        assert time.monotonic() < deadline, "uvicorn did not start"
        time.sleep(0.05)
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        thread.join(10)


class TestHealth:
    def test_healthz(self) -> None:
        resp = _client().get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}


class TestGenerateStreaming:
    def test_success_streams_output(self, stub_generator) -> None:
        stub_generator("echo generating\necho warning >&2\n")
        resp = _client().get("/generate")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == "generating\nwarning\nfull_autorest: exit-status=0\n"

    def test_post_is_accepted(self, stub_generator) -> None:
        stub_generator("echo ok\n")
        resp = _client().post("/generate")
        assert resp.status_code == 200
        assert resp.text.endswith("full_autorest: exit-status=0\n")

    def test_default_language_and_spec(self, stub_generator, parse_output_folder) -> None:
        stub_generator(ECHO_ARGS)
        resp = _client().get("/generate")
        lines = resp.text.splitlines()
        assert lines[0] == "--go"
        assert lines[2] == DEFAULT_INPUT_SPEC
        assert not parse_output_folder(resp.text).exists()

    def test_query_overrides(self, stub_generator) -> None:
        stub_generator(ECHO_ARGS)
        resp = _client().get(
            "/generate",
            params=[("language", "java"), ("spec", "a.md"), ("spec", "b.md"), ("tag", "v2")],
        )
        lines = resp.text.splitlines()
        assert lines[0] == "--java"
        assert lines[1] == '--tag="v2"'
        assert lines[3:5] == ["a.md", "b.md"]

    def test_tool_failure_reported_in_trailer(self, stub_generator) -> None:
        stub_generator("echo bad spec >&2\nexit 3\n")
        resp = _client().get("/generate")
        assert resp.status_code == 200
        assert resp.text.endswith("full_autorest: exit-status=3\n")

    def test_missing_generator_reported_in_trailer(self) -> None:
        resp = _client(executable="full-autorest-no-such-binary").get("/generate")
        assert "full_autorest: error=not-found" in resp.text

    def test_timeout_reported_in_trailer(self, stub_generator) -> None:
        stub_generator("echo started\nsleep 30\n")
        resp = _client(timeout_seconds=0.5).get("/generate")
        assert resp.text.startswith("started\n")
        assert "full_autorest: error=timeout" in resp.text


class TestGenerateBuffered:
    def test_success_is_200(self, stub_generator) -> None:
        stub_generator("echo done\n")
        resp = _client().get("/generate", params={"buffered": "true"})
        assert resp.status_code == 200
        assert resp.text == "done\nfull_autorest: exit-status=0\n"

    def test_tool_failure_is_502_with_exit_code(self, stub_generator) -> None:
        stub_generator("exit 3\n")
        resp = _client().get("/generate", params={"buffered": "true"})
        assert resp.status_code == 502
        assert resp.headers[EXIT_CODE_HEADER] == "3"

    def test_timeout_is_504(self, stub_generator) -> None:
        stub_generator("sleep 30\n")
        resp = _client(timeout_seconds=0.5).get("/generate", params={"buffered": "true"})
        assert resp.status_code == 504

    def test_missing_generator_is_500(self) -> None:
        resp = _client(executable="full-autorest-no-such-binary").get(
            "/generate", params={"buffered": "true"}
        )
        assert resp.status_code == 500
        assert EXIT_CODE_HEADER not in resp.headers

    def test_failure_body_keeps_status_line(self, stub_generator) -> None:
        stub_generator("echo bad spec\nexit 3\n")
        resp = _client().get("/generate", params={"buffered": "true"})
        assert resp.status_code == 502
        assert resp.text == "bad spec\nfull_autorest: exit-status=3\n"


class TestSetupFailure:
    def test_workspace_failure_is_500_and_skips_generator(
        self, stub_generator, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        marker = tmp_path / "ran"
        stub_generator(f"touch {marker}\n")

        def _fail(prefix: str) -> str:
            raise OSError("no space left on device")

        monkeypatch.setattr("full_autorest.server.handler.tempfile.mkdtemp", _fail)
        resp = _client().get("/generate")
        assert resp.status_code == 500
        assert "no space left on device" in resp.text
        assert not marker.exists()


class TestRejectedParameters:
    @pytest.fixture
    def marker(self, stub_generator, tmp_path: Path) -> Path:
        path = tmp_path / "ran"
        stub_generator(f"touch {path}\n")
        return path

    @pytest.mark.parametrize(
        "language", ["--output-folder=/tmp/x", "--go --use=x", "Go", "go;true", "-go", ""]
    )
    def test_unknown_language_token(self, marker: Path, language: str) -> None:
        resp = _client().get("/generate", params={"language": language})
        assert resp.status_code == 422
        assert not marker.exists()

    @pytest.mark.parametrize("language", ["go", "typescript", "--python", "--net"])
    def test_known_language_forms_accepted(self, marker: Path, language: str) -> None:
        resp = _client().get("/generate", params={"language": language})
        assert resp.status_code == 200
        assert marker.exists()

    @pytest.mark.parametrize("spec", ["--use=@evil/pkg", "-x", ""])
    def test_spec_looking_like_a_flag(self, marker: Path, spec: str) -> None:
        resp = _client().get("/generate", params=[("spec", "a.md"), ("spec", spec)])
        assert resp.status_code == 422
        assert not marker.exists()

    def test_spec_cannot_redirect_output(self, stub_generator, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        stub_generator(
            """
            for arg in "$@"; do
              case "$arg" in
                --output-folder=*) d=${arg#--output-folder=}; d=${d#\\"}; d=${d%\\"} ;;
              esac
            done
            mkdir -p "$d" && echo "package x" > "$d/client.go"
            """
        )
        resp = _client().get("/generate", params={"spec": f"--output-folder={outside}"})
        assert resp.status_code == 422
        assert not (outside / "client.go").exists()

    def test_use_is_not_a_request_parameter(self, stub_generator) -> None:
        stub_generator(ECHO_ARGS)
        resp = _client().get("/generate", params={"use": "@evil/pkg"})
        assert resp.status_code == 200
        assert "--use" not in resp.text
        assert "@evil/pkg" not in resp.text


class TestLoad:
    def test_healthz_responsive_while_runs_are_busy(self, stub_generator, tmp_path: Path) -> None:
        started = tmp_path / "started"
        started.mkdir()
        stub_generator(f"touch {started}/$$\nsleep 3\n")
        count = 41

        with TestClient(create_app(GlobalConfig())) as client:
            with ThreadPoolExecutor(max_workers=count) as pool:
                futures = [
                    pool.submit(client.get, "/generate", params={"buffered": "true"})
                    for _ in range(count)
                ]
                deadline = time.monotonic() + 10
                while len(list(started.iterdir())) < count:
                    assert time.monotonic() < deadline, "not every run was started"
                    time.sleep(0.05)

                before = time.monotonic()
                resp = client.get("/healthz")
                assert resp.status_code == 200
                assert time.monotonic() - before < 1.0

                assert all(f.result(timeout=30).status_code == 200 for f in futures)


class TestDisconnect:
    def test_client_hanging_up_kills_generator(self, stub_generator, tmp_path: Path) -> None:
        finished = tmp_path / "finished"
        stub_generator(f"echo started\nsleep 4\ntouch {finished}\n")
        config = GlobalConfig(generator=GeneratorConfig(timeout_seconds=60))

        with _serve(create_app(config)) as base_url:
            with httpx.stream("GET", f"{base_url}/generate", timeout=10) as resp:
                assert resp.status_code == 200
                first = next(resp.iter_raw())
            assert first.startswith(b"started")
            time.sleep(6)

        assert not finished.exists()
