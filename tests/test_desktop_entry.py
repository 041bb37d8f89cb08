"""Tests for description-file parsing and the entry loader.

Covers localization, field-code stripping, sub-actions and the ignore-list,
discovery order, de-duplication and per-file failure handling.

Run with: python -m pytest tests/test_desktop_entry.py -v
"""

import os

import pytest

from jogger.applications.desktop_entry import (
    ApplicationRecord,
    DesktopEntryError,
    iter_desktop_files,
    load_desktop_entries,
    load_ignore_list,
    parse_desktop_file,
    split_list,
    strip_field_codes,
    unescape_string,
)


FOO_DESKTOP = """
    [Desktop Entry]
    Type=Application
    Name=Foo
    Name[de]=Fu
    Comment=Foo editor
    Comment[de]=Fu Editor
    GenericName=Text Editor
    Exec=foo --new-window %U
    Icon=foo-icon
    Path=/tmp
    Terminal=false
    Categories=Utility;Development;
    Keywords=editor;code;
    Keywords[de]=bearbeiten;
    MimeType=text/plain;text/x-python;
    Actions=bar-action;baz-action;

    [Desktop Action bar-action]
    Name=Bar
    Exec=foo --bar %f

    [Desktop Action baz-action]
    Name=Baz
    Name[de]=Bas
    Icon=baz-icon
    Exec=foo --baz
"""


# ============================================================================
# VALUE HELPERS
# ============================================================================

class TestStripFieldCodes:
    """Field codes never receive arguments, so they are removed."""

    def test_file_and_url_lists(self):
        assert strip_field_codes("foo %U") == "foo"
        assert strip_field_codes("foo %f --flag %F") == "foo --flag"

    def test_name_and_icon_codes(self):
        """%i, %c and %k are stripped too."""
        assert strip_field_codes("foo %i %c %k") == "foo"

    def test_deprecated_codes(self):
        assert strip_field_codes("foo %d %D %n %N %v %m") == "foo"

    def test_percent_escape(self):
        """%% becomes a literal percent sign and is not read as a code."""
        assert strip_field_codes("printf 100%%f %u") == "printf 100%f"

    def test_quoted_code(self):
        """Quotes wrapping only a field code disappear with it."""
        assert strip_field_codes('foo "%u"') == "foo"

    def test_unknown_code_kept(self):
        assert strip_field_codes("foo %z") == "foo %z"

    def test_quoted_whitespace_preserved(self):
        """Spacing inside a quoted argument survives; only the code's own gap goes."""
        stripped = strip_field_codes("sh -c \"printf 'a  b'\" %U")
        assert stripped == "sh -c \"printf 'a  b'\""
        record = ApplicationRecord(identity="sh", name="Sh", command=stripped)
        assert record.argv() == ["sh", "-c", "printf 'a  b'"]

    def test_code_inside_argument(self):
        assert strip_field_codes("foo --file=%f --x") == "foo --file= --x"


class TestValueHelpers:
    """String unescaping and list splitting."""

    def test_unescape(self):
        assert unescape_string(r"a\sb\tc\\d") == "a b\tc\\d"

    def test_split_list_drops_empty(self):
        assert split_list("a;;b;") == ["a", "b"]

    def test_split_list_escaped_semicolon(self):
        assert split_list(r"a\;b;c") == ["a;b", "c"]

    def test_split_list_none(self):
        assert split_list(None) == []


# ============================================================================
# PARSING
# ============================================================================

class TestParseDesktopFile:
    """One description file -> one ApplicationRecord."""

    def test_unlocalized_fields(self, tmp_path, write_desktop):
        """Without locale preferences the plain values are used."""
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [])

        assert record.identity == "foo"
        assert record.name == "Foo"
        assert record.description == "Foo editor"
        assert record.icon == "foo-icon"
        assert record.categories == ("Utility", "Development")
        assert record.keywords == ("editor", "code")
        assert record.mime_types == frozenset({"text/plain", "text/x-python"})
        assert str(record.working_directory) == "/tmp"
        assert record.terminal is False
        assert record.file_path == path

    def test_localized_fields(self, tmp_path, write_desktop):
        """The first matching locale wins for name, description and keywords."""
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", ["de_DE", "de"])

        assert record.name == "Fu"
        assert record.description == "Fu Editor"
        assert record.keywords == ("bearbeiten",)
        assert record.actions["baz-action"].name == "Bas"

    def test_unmatched_locale_falls_back(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", ["ja_JP", "ja"])
        assert record.name == "Foo"

    def test_command_stripped_raw_kept(self, tmp_path, write_desktop):
        """The command loses its field codes; the raw template is preserved."""
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [])

        assert record.command == "foo --new-window"
        assert record.raw_command == "foo --new-window %U"
        assert record.argv() == ["foo", "--new-window"]
        assert record.program() == "foo"

    def test_actions(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [])

        assert list(record.actions) == ["bar-action", "baz-action"]
        assert record.actions["bar-action"].command == "foo --bar"
        assert record.actions["baz-action"].icon == "baz-icon"

    def test_ignore_list_hides_action(self, tmp_path, write_desktop):
        """An ignore-listed (identity, action) pair is not exposed."""
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [], ignored={("foo", "bar-action")})

        assert list(record.actions) == ["baz-action"]

    def test_ignore_list_is_per_identity(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [], ignored={("other", "bar-action")})
        assert list(record.actions) == ["bar-action", "baz-action"]

    def test_action_without_exec_is_inert(self, tmp_path, write_desktop):
        """Actions with no invocation are kept as no-op entries."""
        path = write_desktop(tmp_path, "foo", """
            [Desktop Entry]
            Name=Foo
            Exec=foo
            Actions=ghost;;

            [Desktop Action ghost]
            Name=Ghost
        """)
        record = parse_desktop_file(path, "foo", [])

        assert list(record.actions) == ["ghost"]
        assert record.actions["ghost"].inert
        assert record.actions["ghost"].argv() == []

    def test_action_without_group(self, tmp_path, write_desktop):
        """A declared action with no group gets the sentinel name."""
        path = write_desktop(tmp_path, "foo", """
            [Desktop Entry]
            Name=Foo
            Actions=missing;
        """)
        record = parse_desktop_file(path, "foo", [])
        assert record.actions["missing"].name == "<none>"
        assert record.actions["missing"].inert

    def test_missing_name_uses_sentinel(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "anon", """
            [Desktop Entry]
            Exec=anon
        """)
        record = parse_desktop_file(path, "anon", [])
        assert record.name == "<none>"

    def test_generic_name_fallback(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", """
            [Desktop Entry]
            Name=Foo
            GenericName=Web Browser
        """)
        record = parse_desktop_file(path, "foo", [])
        assert record.description == "Web Browser"

    def test_usage_count(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        record = parse_desktop_file(path, "foo", [], usage={"foo": 7})
        assert record.usage_count == 7

    def test_terminal_args(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "kitty", """
            [Desktop Entry]
            Name=kitty
            Exec=kitty
            Categories=System;TerminalEmulator;
            X-TerminalArgExec=--
            X-TerminalArgHold=--hold
        """)
        record = parse_desktop_file(path, "kitty", [])

        assert record.is_terminal_emulator
        assert record.terminal_args.exec == "--"
        assert record.terminal_args.hold == "--hold"

    def test_no_display_flag(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", """
            [Desktop Entry]
            Name=Foo
            NoDisplay=true
        """)
        assert parse_desktop_file(path, "foo", []).display is False

    def test_missing_group_rejected(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", """
            [Something Else]
            Name=Foo
        """)
        with pytest.raises(DesktopEntryError):
            parse_desktop_file(path, "foo", [])

    def test_garbage_rejected(self, tmp_path):
        path = tmp_path / "junk.desktop"
        path.write_text("this is not an ini file\n", encoding="utf-8")
        with pytest.raises(DesktopEntryError):
            parse_desktop_file(path, "junk", [])

    def test_non_application_rejected(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "link", """
            [Desktop Entry]
            Type=Link
            Name=Home page
            URL=https://example.com
        """)
        with pytest.raises(DesktopEntryError):
            parse_desktop_file(path, "link", [])

    def test_records_equal_by_identity(self, tmp_path, write_desktop):
        path = write_desktop(tmp_path, "foo", FOO_DESKTOP)
        a = parse_desktop_file(path, "foo", [])
        b = parse_desktop_file(path, "foo", ["de"])
        assert a == b
        assert len({a, b}) == 1


# ============================================================================
# LOADER
# ============================================================================

class TestLoadDesktopEntries:
    """Discovery across ordered search directories."""

    def test_dedup_identical_records(self, tmp_path, write_desktop):
        """The same identity and command in two directories loads once."""
        body = """
            [Desktop Entry]
            Name=Foo
            Exec=foo
        """
        write_desktop(tmp_path / "a", "foo", body)
        write_desktop(tmp_path / "b", "foo", body)

        records = load_desktop_entries([tmp_path / "a", tmp_path / "b"], [])
        assert [r.identity for r in records] == ["foo"]

    def test_first_directory_wins(self, tmp_path, write_desktop):
        write_desktop(tmp_path / "user", "foo", """
            [Desktop Entry]
            Name=User Foo
            Exec=foo --user
        """)
        write_desktop(tmp_path / "system", "foo", """
            [Desktop Entry]
            Name=System Foo
            Exec=foo
        """)

        records = load_desktop_entries([tmp_path / "user", tmp_path / "system"], [])
        assert len(records) == 1
        assert records[0].name == "User Foo"

    def test_no_display_dropped(self, tmp_path, write_desktop):
        write_desktop(tmp_path, "hidden", """
            [Desktop Entry]
            Name=Hidden
            NoDisplay=true
        """)
        write_desktop(tmp_path, "deleted", """
            [Desktop Entry]
            Name=Deleted
            Hidden=true
        """)
        write_desktop(tmp_path, "shown", """
            [Desktop Entry]
            Name=Shown
        """)

        records = load_desktop_entries([tmp_path], [])
        assert [r.identity for r in records] == ["shown"]

    def test_user_no_display_hides_system_entry(self, tmp_path, write_desktop):
        """A higher-precedence NoDisplay copy shadows the lower one."""
        write_desktop(tmp_path / "user", "foo", """
            [Desktop Entry]
            Name=Foo
            NoDisplay=true
        """)
        write_desktop(tmp_path / "system", "foo", """
            [Desktop Entry]
            Name=Foo
            Exec=foo
        """)
        assert load_desktop_entries([tmp_path / "user", tmp_path / "system"], []) == []

    def test_subdirectory_identity(self, tmp_path, write_desktop):
        """Nested files get a dash-joined desktop-file ID."""
        write_desktop(tmp_path / "kde4", "dolphin", """
            [Desktop Entry]
            Name=Dolphin
        """)
        records = load_desktop_entries([tmp_path], [])
        assert [r.identity for r in records] == ["kde4-dolphin"]

    def test_malformed_file_skipped(self, tmp_path, write_desktop):
        (tmp_path / "broken.desktop").write_text("garbage\n", encoding="utf-8")
        write_desktop(tmp_path, "good", """
            [Desktop Entry]
            Name=Good
        """)
        records = load_desktop_entries([tmp_path], [])
        assert [r.identity for r in records] == ["good"]

    def test_malformed_higher_copy_falls_through(self, tmp_path, write_desktop):
        (tmp_path / "user").mkdir()
        (tmp_path / "user" / "foo.desktop").write_text("garbage\n", encoding="utf-8")
        write_desktop(tmp_path / "system", "foo", """
            [Desktop Entry]
            Name=Foo
        """)
        records = load_desktop_entries([tmp_path / "user", tmp_path / "system"], [])
        assert [r.name for r in records] == ["Foo"]

    def test_missing_directory_contributes_nothing(self, tmp_path, write_desktop):
        write_desktop(tmp_path / "real", "foo", """
            [Desktop Entry]
            Name=Foo
        """)
        records = load_desktop_entries([tmp_path / "does-not-exist", tmp_path / "real"], [])
        assert [r.identity for r in records] == ["foo"]

    def test_symlink_cycle_visited_once(self, tmp_path, write_desktop):
        """A link back to an ancestor directory does not loop the scan."""
        apps = tmp_path / "applications"
        write_desktop(apps, "foo", """
            [Desktop Entry]
            Name=Foo
        """)
        (apps / "nested").mkdir()
        os.symlink(apps, apps / "nested" / "loop")

        assert [identity for identity, _ in iter_desktop_files(apps)] == ["foo"]
        assert [r.identity for r in load_desktop_entries([apps], [])] == ["foo"]

    def test_symlinked_directory_scanned(self, tmp_path, write_desktop):
        """A link to a directory outside the tree is still followed."""
        write_desktop(tmp_path / "elsewhere", "bar", """
            [Desktop Entry]
            Name=Bar
        """)
        apps = tmp_path / "applications"
        apps.mkdir()
        os.symlink(tmp_path / "elsewhere", apps / "linked")

        assert [identity for identity, _ in iter_desktop_files(apps)] == ["linked-bar"]

    @pytest.mark.skipif(os.geteuid() == 0 if hasattr(os, "geteuid") else True,
                        reason="root can read any directory")
    def test_unreadable_directory_contributes_nothing(self, tmp_path, write_desktop):
        locked = tmp_path / "locked"
        write_desktop(locked / "inner", "secret", """
            [Desktop Entry]
            Name=Secret
        """)
        (locked / "inner").chmod(0)
        try:
            assert load_desktop_entries([locked], []) == []
        finally:
            (locked / "inner").chmod(0o755)

    def test_ignore_list_and_usage_applied(self, tmp_path, write_desktop):
        write_desktop(tmp_path, "foo", FOO_DESKTOP)
        records = load_desktop_entries(
            [tmp_path], [], ignored={("foo", "bar-action")}, usage={"foo": 3}
        )
        assert list(records[0].actions) == ["baz-action"]
        assert records[0].usage_count == 3


class TestIgnoreList:
    """The identity/action-key ignore file."""

    def test_parse(self, tmp_path):
        path = tmp_path / "ignored.conf"
        path.write_text("foo/bar-action\nnot-a-pair\n\nfirefox/new-private-window\n", encoding="utf-8")
        assert load_ignore_list(path) == {("foo", "bar-action"), ("firefox", "new-private-window")}

    def test_missing_file(self, tmp_path):
        assert load_ignore_list(tmp_path / "nope.conf") == set()
