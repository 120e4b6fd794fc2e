"""
Pytest configuration and shared fixtures for flask-enqueue tests.
"""
import pytest
import requests

from flask_enqueue import create_app


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create and configure a new app instance for each test."""
    static_root = tmp_path / 'static'
    static_root.mkdir()

    app = create_app({
        'TESTING': True,
        'STATIC_FOLDER': str(static_root),
        'ENQUEUE_DEFAULT_VERSION': None,
        'ENQUEUE_PROBE_TIMEOUT': 0.05,
    })
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def request_ctx(app):
    """Push a request context so assets can be registered."""
    with app.test_request_context('/'):
        yield


@pytest.fixture
def pipeline(app):
    return app.extensions['enqueue']


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Tests never reach the network; sources behave as unreachable unless a test stubs them."""

    def _offline(url, *args, **kwargs):
        raise requests.ConnectionError(f"network disabled in tests: {url}")

    monkeypatch.setattr(requests, 'head', _offline)
    monkeypatch.setattr(requests, 'get', _offline)
