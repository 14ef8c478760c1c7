import urllib.error

from auh import fetcher, pkgtool, sync


def test_reports_packages_known_to_catalog(monkeypatch):
    monkeypatch.setattr(pkgtool, "explicit_packages", lambda: ["base", "yay", "bad name", "pikaur"])
    monkeypatch.setattr(fetcher, "query_catalog_many", lambda names: {"yay", "pikaur"})
    res = sync.sync_explicit()
    assert res["ok"]
    assert res["found"] == ["yay", "pikaur"]
    assert res["total"] == 2
    assert res["skipped"] == ["bad name"]


def test_nothing_installed(monkeypatch):
    monkeypatch.setattr(pkgtool, "explicit_packages", lambda: [])
    assert sync.sync_explicit()["total"] == 0


def test_catalog_failure(monkeypatch):
    monkeypatch.setattr(pkgtool, "explicit_packages", lambda: ["yay"])
    monkeypatch.setattr(fetcher, "query_catalog_many", lambda names: None)
    assert sync.sync_explicit()["ok"] is False


def test_batched_lookup(monkeypatch):
    urls = []

    def fake_fetch(url, timeout=None):
        urls.append(url)
        return {"results": [{"Name": "pkg7"}, {"Name": "pkg150"}]}

    monkeypatch.setattr(fetcher, "_fetch_json", fake_fetch)
    found = fetcher.query_catalog_many([f"pkg{i}" for i in range(160)])
    assert len(urls) == 2
    assert "arg%5B%5D=pkg0" in urls[0]
    assert found == {"pkg7", "pkg150"}


def test_single_lookup(monkeypatch):
    monkeypatch.setattr(fetcher, "_fetch_json", lambda url, timeout=None: {"results": [{"Name": "yay"}]})
    assert fetcher.query_catalog("yay") is True
    monkeypatch.setattr(fetcher, "_fetch_json", lambda url, timeout=None: {"results": []})
    assert fetcher.query_catalog("nope") is False

    def offline(url, timeout=None):
        raise urllib.error.URLError("offline")
    monkeypatch.setattr(fetcher, "_fetch_json", offline)
    assert fetcher.query_catalog("yay") is None


def _point_rpc(cfg, base):
    cfg.merged["sources"]["rpc_url"] = f"{base}/rpc/"


def test_single_lookup_over_http(raw_http, isolated_config):
    body = b'{"resultcount": 1, "results": [{"Name": "yay"}]}'
    _point_rpc(isolated_config, raw_http(b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\nContent-Length: %d\r\n\r\n%s" % (len(body), body)))
    assert fetcher.query_catalog("yay") is True


def test_single_lookup_bad_status_line(raw_http, isolated_config):
    _point_rpc(isolated_config, raw_http(b"garbage\r\n"))
    assert fetcher.query_catalog("yay") is None


def test_single_lookup_truncated_body(raw_http, isolated_config):
    _point_rpc(isolated_config, raw_http(b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\n{\"results\""))
    assert fetcher.query_catalog("yay") is None


def test_batched_lookup_bad_status_line(raw_http, isolated_config):
    _point_rpc(isolated_config, raw_http(b"HTTP/1.1 abc OK\r\n\r\n"))
    assert fetcher.query_catalog_many(["yay", "pikaur"]) is None


def test_sync_reports_unreachable_catalog(raw_http, isolated_config, monkeypatch):
    _point_rpc(isolated_config, raw_http(b"HTTP/1.1 200 OK\r\nContent-Length: 50\r\n\r\n{"))
    monkeypatch.setattr(pkgtool, "explicit_packages", lambda: ["yay"])
    res = sync.sync_explicit()
    assert res["ok"] is False
    assert res["reason"] == "catalog-unavailable"
