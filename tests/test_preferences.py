"""Tests for the Preferences handle."""

import gc
import locale

import pytest

from flprefs import FileAccess, Name, Preferences, PrefsContext, Root, new_uuid

VENDOR = "acme.test"
APP = "demo"


def _open(root: Root = Root.USER_L, **kwargs) -> Preferences:
    return Preferences.open(root, VENDOR, APP, **kwargs)


@pytest.fixture
def comma_locale(monkeypatch):
    conv = dict(locale.localeconv())
    conv.update(decimal_point=",", thousands_sep="")
    monkeypatch.setattr(locale, "localeconv", lambda: conv)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def test_value_survives_reopen():
    with _open() as app:
        with app.child("window") as win:
            win.set("width", 800)
            win.set("height", 600)

    with _open() as app:
        assert app.get("window/height", -1) == 600
        assert app.get("window/width", -1) == 800
        with app.child("window") as win:
            assert win.get("width", -1) == 800


def test_first_run_returns_defaults_and_writes_nothing(ctx):
    with _open() as app:
        assert app.get("window/width", 640) == 640
        assert app.get("title", "untitled") == "untitled"
        assert app.get("missing") is None
        assert not app.group_exists("window")
    assert not (ctx.user_dir / VENDOR / f"{APP}.prefs").exists()


def test_child_handle_outlives_parent(ctx):
    app = _open()
    win = app.child("window")
    assert app.close() == 0
    assert not (ctx.user_dir / VENDOR / f"{APP}.prefs").exists()
    win.set("height", 600)
    assert win.close() == 0
    assert "height:600" in (ctx.user_dir / VENDOR / f"{APP}.prefs").read_text()


def test_garbage_collected_handle_flushes(ctx):
    app = _open()
    app.set("k", 1)
    del app
    gc.collect()
    assert "k:1" in (ctx.user_dir / VENDOR / f"{APP}.prefs").read_text()


def test_explicit_flush(ctx):
    with _open() as app:
        app.set("k", "v")
        assert app.dirty()
        assert app.flush() == 0
        assert not app.dirty()
        assert (ctx.user_dir / VENDOR / f"{APP}.prefs").exists()


def test_open_path(tmp_path):
    with Preferences.open_path(tmp_path / "portable", VENDOR, APP) as app:
        assert app.root().scope == Root.USER
        assert app.filename() == tmp_path / "portable" / "demo.prefs"
        app.set("k", "v")
    assert (tmp_path / "portable" / "demo.prefs").exists()


def test_filename_and_userdata(ctx):
    expected = ctx.user_dir / VENDOR / f"{APP}.prefs"
    assert Preferences.filename_for(Root.USER_L, VENDOR, APP) == expected
    assert Preferences.filename_for(Root.SYSTEM_L, VENDOR, APP) == ctx.system_dir / VENDOR / f"{APP}.prefs"
    assert Preferences.filename_for(Root.MEMORY, VENDOR, APP) is None
    with _open() as app:
        assert app.filename() == expected
        data = app.get_userdata_path()
        assert data == ctx.user_dir / VENDOR / APP
        assert data.is_dir()


def test_core_file_denied_without_core_access(tmp_path):
    ctx = PrefsContext(user_dir=tmp_path, file_access=FileAccess.APP_OK)
    prefs = _open(Root.CORE_USER_L, context=ctx)
    prefs.set("k", "v")
    assert prefs.close() == -1
    assert not (tmp_path / VENDOR / f"{APP}.prefs").exists()


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def test_child_creates_path():
    with _open() as app:
        with app.child("a/b/c") as c:
            assert c.name() == "c"
            assert c.path() == "./a/b/c"
        assert app.groups() == ["a"]
        assert app.group_exists("a/b/c")
        assert not app.group_exists("a/c")


def test_child_by_position():
    with _open() as app:
        app.child("first").close()
        app.child("second").close()
        assert app.group(1) == "second"
        assert app.group(2) is None
        with app.child(0) as first:
            assert first.name() == "first"
        with pytest.raises(IndexError):
            app.child(5)


def test_delete_group():
    with _open() as app:
        app.set("a/b/x", 1)
        app.set("a/c/y", 2)
        assert app.delete_group("a/b")
        assert not app.delete_group("a/b")
        assert not app.group_exists("a/b")
        assert app.get("a/c/y", 0) == 2
        assert app.delete_all_groups()
        assert app.groups() == []


def test_clear():
    with _open() as app:
        app.set("x", 1)
        app.set("g/y", 2)
        assert app.clear()
        assert app.entries() == []
        assert app.groups() == []


def test_copy_points_at_same_group():
    with _open() as app:
        with app.child("g") as g, g.copy() as same:
            same.set("k", "v")
            assert g.get("k") == "v"


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


def test_entry_listing():
    with _open() as app:
        app.set("b", 1)
        app.set("a", 2)
        assert app.entries() == ["b", "a"]
        assert app.entry(0) == "b"
        assert app.entry(2) is None
        assert app.entry_exists("a")
        assert not app.entry_exists("c")
        assert not app.entry_exists("nowhere/a")


def test_delete_entry_through_path():
    with _open() as app:
        app.set("g/k", "v")
        assert app.delete_entry("g/k")
        assert not app.delete_entry("g/k")
        assert not app.delete_entry("missing/k")
        assert app.group_exists("g")
        assert app.delete_all_entries()


def test_size_is_stored_text_length():
    with _open() as app:
        app.set("s", "hello")
        app.set("blob", b"\x00\x01")
        assert app.size("s") == 5
        assert app.size("blob") == 4
        assert app.size("missing") == 0


def test_name_helper():
    assert Name("File%d", 3) == "File3"
    assert Name(7) == "7"
    assert Name("plain") == "plain"
    with pytest.raises(TypeError):
        Name(1.5)
    with _open() as app, app.child("recent") as recent:
        for i, path in enumerate(["/a", "/b"]):
            recent.set(Name("File%d", i), path)
        assert recent.entries() == ["File0", "File1"]


def test_uuid_format():
    value = new_uuid()
    assert len(value) == 36
    assert value == value.upper()
    assert value.count("-") == 4
    assert new_uuid() != value


# ---------------------------------------------------------------------------
# Typed values
# ---------------------------------------------------------------------------


def test_typed_round_trip():
    with _open() as app:
        app.set("flag", True)
        app.set("count", -3)
        app.set("ratio", 0.1)
        app.set("pi", 3.14159, 3)
        app.set("title", "multi\nline: text")

    with _open() as app:
        assert app.get("flag", False) is True
        assert app.get("count", 0) == -3
        assert app.get("ratio", 0.0) == 0.1
        assert app.get("pi", 0.0) == 3.14
        assert app.get("title", "") == "multi\nline: text"
        assert app.get_str("title", max_size=5) == "multi"


def test_binary_payload_with_nul_and_high_bytes():
    data = b"\x00\xff\x80caf\xc3\xa9\n\x00"
    with _open() as app:
        app.set("blob", data)
    with _open() as app:
        assert app.get("blob", b"") == data
        assert app.get_bytes("blob", max_size=2) == b"\x00\xff"
        assert app.get_bytes("missing", b"dflt") == b"dflt"


def test_unparsable_values_fall_back_to_default():
    with _open() as app:
        app.set("w", "wide")
        assert app.get("w", 5) == 5
        assert app.get("w", 1.5) == 1.5
        assert app.get("w", b"x") == b"x"
        assert app.get("w", "s") == "wide"


def test_unsupported_types_rejected():
    with _open() as app:
        with pytest.raises(TypeError):
            app.set("k", [1, 2])
        with pytest.raises(TypeError):
            app.get("k", [1])


def test_c_locale_file_ignores_comma_locale(ctx, monkeypatch):
    conv = dict(locale.localeconv())
    conv.update(decimal_point=",", thousands_sep="")
    with monkeypatch.context() as m:
        m.setattr(locale, "localeconv", lambda: conv)
        with _open() as app:
            app.set("ratio", 3.25)
            app.set("third", 1 / 3)
    assert "ratio:3.25" in (ctx.user_dir / VENDOR / f"{APP}.prefs").read_text()
    with _open() as app:
        assert app.get("ratio", 0.0) == 3.25
        assert app.get("third", 0.0) == 1 / 3


def test_legacy_file_follows_process_locale(ctx, comma_locale):
    with _open(Root.USER) as app:
        app.set("ratio", 3.25)
    assert "ratio:3,25" in (ctx.user_dir / VENDOR / f"{APP}.prefs").read_text()
    with _open(Root.USER) as app:
        assert app.get("ratio", 0.0) == 3.25


# ---------------------------------------------------------------------------
# Ids and memory preferences
# ---------------------------------------------------------------------------


def test_id_reopens_live_group():
    with _open() as app, app.child("a/b") as sub:
        token = sub.id()
        assert sub.id() == token
        with Preferences.from_id(token) as again:
            assert again.path() == "./a/b"
            again.set("k", 1)
        assert sub.get("k", 0) == 1

        assert Preferences.remove_id(token)
        assert not app.group_exists("a/b")
        with pytest.raises(KeyError):
            Preferences.from_id(token)
        assert not Preferences.remove_id(token)


def test_id_dies_with_its_file():
    app = _open()
    token = app.child("g").id()
    app.close()
    with pytest.raises(KeyError):
        Preferences.from_id(token)


def test_memory_preferences_shared_within_context(ctx, tmp_path):
    with Preferences.memory("session") as mem:
        assert mem.root().scope == Root.MEMORY
        assert mem.filename() is None
        mem.set("x", 1)
        assert mem.flush() == 0
    with Preferences.memory("session") as mem:
        assert mem.get("x", 0) == 1
    with Preferences.memory("session", context=PrefsContext(user_dir=tmp_path)) as other:
        assert other.get("x", 0) == 0
    assert not ctx.user_dir.exists()


def test_closed_handle_raises():
    app = _open()
    assert app.close() == 0
    assert app.close() == 0
    assert app.closed
    with pytest.raises(RuntimeError):
        app.get("x")
    with pytest.raises(RuntimeError):
        app.child("g")
