"""Shared fixtures for ftpmirror tests."""

import pytest

from ftpmirror.sync import SyncEngine
from tests.fakes import FakeRemoteStore


@pytest.fixture
def remote():
    """Provide an empty in-memory FTP server."""
    return FakeRemoteStore()


@pytest.fixture
def root(tmp_path):
    """Provide an empty synced directory."""
    directory = tmp_path / "sync"
    directory.mkdir()
    return directory


@pytest.fixture
def make_engine(root, remote):
    """Factory building engines on the fake server."""
    engines = []

    def _make(**kwargs):
        engine = SyncEngine(
            root, "ftp.test", 21, "bob", "secret", client=remote, **kwargs
        )
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        engine.stop_sync()


@pytest.fixture
def engine(make_engine):
    """Provide a connected engine."""
    return make_engine()
