import os
import time
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
import requests

from flask_enqueue import sources


def _write_asset(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _response(status_code=200, headers=None, text=""):
    return SimpleNamespace(status_code=status_code, headers=headers or {}, text=text)


@pytest.mark.usefixtures("request_ctx")
class TestStaticSources:
    def test_static_file_is_found_on_disk(self, app):
        asset = Path(app.static_folder) / "js" / "app.js"
        _write_asset(asset, "console.log(1);")
        os.utime(asset, (1_600_000_000, 1_600_000_000))

        assert sources.static_path_for("/static/js/app.js") == asset.resolve()
        assert sources.source_exists("/static/js/app.js")
        assert sources.source_last_modified("/static/js/app.js") == 1_600_000_000
        assert sources.read_source("/static/js/app.js") == "console.log(1);"
        assert sources.probe_source("/static/js/app.js") == sources.SourceProbe(True, 1_600_000_000)

    def test_query_string_is_ignored_for_static_files(self, app):
        _write_asset(Path(app.static_folder) / "app.css", "body{}")
        assert sources.source_exists("/static/app.css?ver=3")

    def test_missing_static_file(self):
        assert sources.probe_source("/static/nope.js") is sources.MISSING
        assert not sources.source_exists("/static/nope.js")
        assert sources.source_last_modified("/static/nope.js") is None
        assert sources.read_source("/static/nope.js") == ""

    def test_paths_outside_static_folder_are_not_resolved(self):
        assert sources.static_path_for("/static/../secrets.txt") is None
        assert not sources.source_exists("/static/../secrets.txt")

    def test_non_static_paths_are_not_mapped(self):
        assert sources.static_path_for("https://cdn.example.com/static/app.js") is None
        assert sources.static_path_for("") is None


class TestRemoteSources:
    def test_exists_only_for_http_200(self, monkeypatch):
        responses = {
            "https://url.com/ok.js": _response(200),
            "https://url.com/moved.js": _response(301),
            "https://url.com/missing.js": _response(404),
        }
        monkeypatch.setattr(requests, "head", lambda url, **kwargs: responses[url])

        assert sources.source_exists("https://url.com/ok.js")
        assert not sources.source_exists("https://url.com/moved.js")
        assert not sources.source_exists("https://url.com/missing.js")

    def test_probe_uses_configured_timeout_without_redirects(self, app, monkeypatch):
        calls = []

        def _head(url, **kwargs):
            calls.append(kwargs)
            return _response(200)

        monkeypatch.setattr(requests, "head", _head)
        app.config["ENQUEUE_PROBE_TIMEOUT"] = 0.25
        with app.app_context():
            sources.source_exists("https://url.com/app.js")

        assert calls == [{"timeout": 0.25, "allow_redirects": False}]

    def test_probe_outside_app_uses_default_timeout(self, monkeypatch):
        calls = []

        def _head(url, **kwargs):
            calls.append(kwargs["timeout"])
            return _response(200)

        monkeypatch.setattr(requests, "head", _head)
        sources.source_exists("https://url.com/app.js")
        assert calls == [0.05]

    def test_network_errors_mean_missing(self):
        assert not sources.source_exists("https://url.com/offline.js")
        assert sources.source_last_modified("https://url.com/offline.js") is None
        assert sources.read_source("https://url.com/offline.js") == ""

    def test_invalid_url_means_missing(self, monkeypatch):
        monkeypatch.undo()
        assert not sources.source_exists("not a url")
        assert not sources.source_exists("")

    def test_last_modified_header_is_parsed(self, monkeypatch):
        monkeypatch.setattr(
            requests,
            "head",
            lambda url, **kwargs: _response(200, {"Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT"}),
        )
        expected = int(datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc).timestamp())
        assert sources.source_last_modified("https://url.com/app.js") == expected

    @pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
    def test_unknown_zone_last_modified_is_read_as_utc(self, monkeypatch):
        monkeypatch.setattr(
            requests,
            "head",
            lambda url, **kwargs: _response(200, {"Last-Modified": "Wed, 21 Oct 2015 07:28:00 -0000"}),
        )
        monkeypatch.setenv("TZ", "America/New_York")
        time.tzset()
        try:
            assert sources.source_last_modified("https://url.com/app.js") == 1445412480
        finally:
            monkeypatch.undo()
            time.tzset()

    def test_missing_or_bad_last_modified(self, monkeypatch):
        headers = {"https://url.com/none.js": {}, "https://url.com/bad.js": {"Last-Modified": "yesterday"}}
        monkeypatch.setattr(requests, "head", lambda url, **kwargs: _response(200, headers[url]))

        assert sources.source_last_modified("https://url.com/none.js") is None
        assert sources.source_last_modified("https://url.com/bad.js") is None

    def test_read_source_over_http(self, monkeypatch):
        bodies = {
            "https://url.com/app.js": _response(200, text="let a = 1;"),
            "https://url.com/gone.js": _response(404, text="Not Found"),
        }
        monkeypatch.setattr(requests, "get", lambda url, **kwargs: bodies[url])

        assert sources.read_source("https://url.com/app.js") == "let a = 1;"
        assert sources.read_source("https://url.com/gone.js") == ""
