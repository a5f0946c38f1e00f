from pathlib import Path

import pytest

from flprefs import PrefsContext, set_default_context


@pytest.fixture
def ctx(tmp_path: Path) -> PrefsContext:
    """Context whose USER and SYSTEM directories live under tmp_path."""
    return PrefsContext(user_dir=tmp_path / "user", system_dir=tmp_path / "system")


@pytest.fixture(autouse=True)
def isolated_default_context(ctx: PrefsContext):
    """Calls that omit context= must never touch the real config directories."""
    set_default_context(ctx)
    yield
    set_default_context(None)
