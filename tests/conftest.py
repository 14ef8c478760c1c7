import socketserver
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from auh import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Defaults only, with the build workdir under tmp_path."""
    monkeypatch.delenv("AUH_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    cfg = config.load()
    cfg.merged["install"]["workdir"] = str(tmp_path / "build")
    config.set_config(cfg)
    yield cfg


@pytest.fixture
def thread_pool():
    return lambda cap: ThreadPoolExecutor(max_workers=cap)


class _CannedReply(socketserver.BaseRequestHandler):
    def handle(self):
        self.request.recv(65536)
        self.request.sendall(self.server.reply)


@pytest.fixture
def raw_http(monkeypatch):
    """serve(reply_bytes) -> base URL of a local server answering every request with exactly those bytes."""
    for var in ("http_proxy", "HTTP_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    servers = []

    def serve(reply: bytes) -> str:
        srv = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _CannedReply)
        srv.daemon_threads = True
        srv.reply = reply
        threading.Thread(target=srv.serve_forever, daemon=True).start()
        servers.append(srv)
        return f"http://127.0.0.1:{srv.server_address[1]}"

    yield serve
    for srv in servers:
        srv.shutdown()
        srv.server_close()
