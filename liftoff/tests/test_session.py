"""Tests for the launcher session pipeline."""

import io
import os

import pytest

from liftoff.core.config import Config
from liftoff.core.errors import (
    ConfigError, HistorySaveError, IngestionError, ParseError, SessionError
)
from liftoff.core.history import UsageHistory
from liftoff.core.session import LauncherSession


@pytest.fixture
def bin_dir(tmp_path):
    directory = tmp_path / "bin"
    directory.mkdir()
    for name in ("cat", "cut", "htop"):
        path = directory / name
        path.write_text("#!/bin/sh\n")
        os.chmod(path, 0o755)
    return directory


@pytest.fixture
def test_config(tmp_path, bin_dir):
    """Path scan over one directory, history in the temp dir, no decay."""
    config = Config()
    config.sources.search_path = [bin_dir]
    config.history.path = tmp_path / "history.csv"
    config.history.decrease_interval = 0
    return config


@pytest.mark.asyncio
async def test_start_builds_ready_index(test_config):
    session = LauncherSession(test_config)
    await session.start()

    assert session.ready
    assert [c.name for c in session.candidates()] == ["cat", "cut", "htop"]
    assert [c.name for c in session.search("ht")] == ["htop"]


def test_queries_before_start_are_rejected(test_config):
    session = LauncherSession(test_config)
    with pytest.raises(SessionError):
        session.search("c")
    with pytest.raises(SessionError):
        session.candidates()


@pytest.mark.asyncio
async def test_launch_is_learned_across_sessions(test_config):
    first = LauncherSession(test_config)
    await first.start()
    assert first.record_launch("htop", "htop")

    second = LauncherSession(test_config)
    await second.start()
    candidates = second.candidates()
    assert candidates[0].name == "htop"
    assert candidates[0].base_score == 1


@pytest.mark.asyncio
async def test_free_form_command_resurfaces(test_config):
    first = LauncherSession(test_config)
    await first.start()
    selected = first.select("ssh build-box")
    assert selected.value == "ssh build-box"
    first.record_launch(selected.name, selected.value)

    second = LauncherSession(test_config)
    await second.start()
    assert [c.name for c in second.search("ssh")] == ["ssh build-box"]


@pytest.mark.asyncio
async def test_failed_launch_is_not_counted(test_config):
    session = LauncherSession(test_config)
    await session.start()

    assert not session.record_launch("cat", "cat", succeeded=False)
    assert not test_config.history.path.exists()
    assert session.history.get("cat") is None


@pytest.mark.asyncio
async def test_history_saved_once_per_session(test_config):
    session = LauncherSession(test_config)
    await session.start()
    session.record_launch("cat", "cat")

    with pytest.raises(SessionError):
        session.record_launch("cut", "cut")


@pytest.mark.asyncio
async def test_save_failure_is_not_raised(test_config, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    test_config.history.path = blocker / "history.csv"
    session = LauncherSession(test_config)
    await session.start()

    assert session.record_launch("cat", "cat") is False
    assert session.history.get("cat").num_used == 1


@pytest.mark.asyncio
async def test_corrupt_history_is_left_untouched(test_config):
    store = test_config.history.path
    store.write_text("name,value,num_used\ncat,cat,3\nls,ls,2\nbad,bad,x\n")
    before = store.read_bytes()

    session = LauncherSession(test_config)
    await session.start()

    assert all(c.base_score == 0 for c in session.candidates())
    assert session.history is None
    assert session.record_launch("cat", "cat") is False
    assert store.read_bytes() == before


@pytest.mark.asyncio
async def test_history_disabled(test_config):
    test_config.history.enabled = False
    session = LauncherSession(test_config)
    await session.start()

    assert session.history is None
    assert session.record_launch("cat", "cat") is False
    assert not test_config.history.path.exists()


@pytest.mark.asyncio
async def test_stdin_source(test_config):
    test_config.sources.from_path = False
    test_config.sources.from_stdin = True
    session = LauncherSession(test_config, stdin=io.StringIO("alpha=run-alpha\n"))
    await session.start()

    assert session.select("alp").value == "run-alpha"


@pytest.mark.asyncio
async def test_ingestion_failure_propagates(test_config, tmp_path):
    test_config.sources.files = [tmp_path / "missing"]
    session = LauncherSession(test_config)

    with pytest.raises(IngestionError):
        await session.start()
    assert not session.ready


@pytest.mark.asyncio
async def test_smart_case_setting(test_config, bin_dir):
    upper = bin_dir / "Firefox"
    upper.write_text("")
    os.chmod(upper, 0o755)

    session = LauncherSession(test_config)
    await session.start()
    assert session.search("fire") == []

    test_config.search.smart_case = True
    session = LauncherSession(test_config)
    await session.start()
    assert [c.name for c in session.search("fire")] == ["Firefox"]


@pytest.mark.asyncio
async def test_decay_applied_on_start(test_config):
    history = UsageHistory(test_config.history.path)
    history.increment("cut", "cut")
    history.save()
    os.utime(test_config.history.path, (0, 0))
    test_config.history.decrease_interval = 1

    session = LauncherSession(test_config)
    await session.start()

    assert len(session.history) == 0
    assert session.candidates()[0].name == "cat"


def test_error_severities():
    assert IngestionError("x").is_fatal
    assert ConfigError("x").is_fatal
    assert SessionError("x").is_fatal
    assert not HistorySaveError("x").is_fatal
    assert not ParseError("x", "line").is_fatal
