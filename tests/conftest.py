"""Shared fixtures for daybook tests."""

import pytest


@pytest.fixture(autouse=True)
def isolated_data(tmp_path):
    """Point every tool at a fresh data directory for every test."""
    # Own MonkeyPatch instance so a test's monkeypatch.undo() keeps the isolation.
    with pytest.MonkeyPatch.context() as mp:
        data = tmp_path / "data"
        mp.setenv("DAYBOOK_DATA_DIR", str(data))
        mp.delenv("DAYBOOK_TZ", raising=False)
        mp.delenv("DAYBOOK_LOG_LEVEL", raising=False)
        mp.chdir(tmp_path)
        yield data


@pytest.fixture
def run_main():
    """Run a tool's main() and return its exit status, SystemExit included."""
    def run(module, *argv):
        try:
            return module.main(list(argv))
        except SystemExit as e:
            return e.code
    return run
