"""Pytest configuration and fixtures."""

import pytest

import shortener
from aliases import AliasTable


@pytest.fixture
def table(monkeypatch):
    """Give each test an empty alias table."""
    fresh = AliasTable()
    monkeypatch.setattr(shortener, "aliases", fresh)
    return fresh


@pytest.fixture
def client(table):
    shortener.app.config.update(TESTING=True)
    with shortener.app.test_client() as c:
        yield c


@pytest.fixture
def create(client):
    """POST a form to /create."""
    def _create(alias, url, **kwargs):
        return client.post("/create", data={"alias": alias, "url": url}, **kwargs)
    return _create
