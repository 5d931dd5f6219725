"""Tests for the executable cache."""

import os
import stat
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from exefind.cache import CacheManager, format_line, parse_line
from exefind.config import Settings
from exefind.errors import CacheError
from exefind.models import ExecutableEntry

NOW = 1_700_000_000.0
HOUR = 3600


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "installierte_programme.txt"


@pytest.fixture
def programs(tmp_path):
    root = tmp_path / "Program Files"
    for rel in ["Foo/Foo.exe", "Bar/bin/Bar.exe", "Bar/readme.txt"]:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"MZ")
    return root


@pytest.fixture
def manager(programs, cache_path):
    settings = Settings(root_directories=[programs], cache_path=cache_path)
    return CacheManager(settings, clock=lambda: NOW)


def _set_age(path: Path, seconds: float) -> None:
    mtime = NOW - seconds
    os.utime(path, (mtime, mtime))


class TestFormatLine:
    def test_format(self):
        entry = ExecutableEntry(name="Foo.exe", path=r"C:\Program Files\Foo.exe")
        assert format_line(entry) == r"Name: Foo.exe, Pfad: C:\Program Files\Foo.exe"

    def test_warns_on_delimiter_in_name(self, caplog):
        entry = ExecutableEntry(name="odd, Pfad: name.exe", path="/x/odd.exe")
        format_line(entry)
        assert "delimiter" in caplog.text


class TestParseLine:
    def test_strips_name_prefix(self):
        entry = parse_line(r"Name: Foo.exe, Pfad: C:\Program Files\Foo.exe")
        assert entry.name == "Foo.exe"
        assert entry.path == r"C:\Program Files\Foo.exe"

    def test_trims_whitespace(self):
        entry = parse_line("  Name: Foo.exe, Pfad: /opt/Foo.exe  \n")
        assert entry.name == "Foo.exe"
        assert entry.path == "/opt/Foo.exe"

    def test_missing_delimiter_yields_empty_path(self):
        entry = parse_line("Name: broken line")
        assert entry.name == "broken line"
        assert entry.path == ""

    def test_line_without_prefix(self):
        entry = parse_line("Foo.exe, Pfad: /opt/Foo.exe")
        assert entry.name == "Foo.exe"
        assert entry.path == "/opt/Foo.exe"

    def test_path_containing_delimiter_survives(self):
        entry = parse_line("Name: a.exe, Pfad: /weird, Pfad: dir/a.exe")
        assert entry.name == "a.exe"
        assert entry.path == "/weird, Pfad: dir/a.exe"


class TestIsStale:
    def test_missing_file_is_stale(self, manager, cache_path):
        assert not cache_path.exists()
        assert manager.is_stale()

    def test_recent_file_is_fresh(self, manager, cache_path):
        cache_path.write_text("")
        _set_age(cache_path, HOUR)
        assert not manager.is_stale()

    def test_exactly_max_age_is_fresh(self, manager, cache_path):
        cache_path.write_text("")
        _set_age(cache_path, 24 * HOUR)
        assert not manager.is_stale()

    def test_old_file_is_stale(self, manager, cache_path):
        cache_path.write_text("")
        _set_age(cache_path, 25 * HOUR)
        assert manager.is_stale()

    def test_future_mtime_is_stale(self, manager, cache_path):
        cache_path.write_text("")
        _set_age(cache_path, -HOUR)
        assert manager.is_stale()

    def test_unreadable_metadata_is_stale(self, manager, cache_path):
        cache_path.write_text("")
        with patch.object(Path, "stat", side_effect=PermissionError("denied")):
            assert manager.is_stale()

    def test_custom_max_age(self, programs, cache_path):
        settings = Settings(
            root_directories=[programs],
            cache_path=cache_path,
            max_age=timedelta(minutes=30),
        )
        manager = CacheManager(settings, clock=lambda: NOW)
        cache_path.write_text("")
        _set_age(cache_path, HOUR)
        assert manager.is_stale()


class TestRefresh:
    def test_writes_one_line_per_entry(self, manager, cache_path):
        entries = manager.refresh()

        lines = cache_path.read_text(encoding="utf-8").splitlines()
        assert len(entries) == 2
        assert len(lines) == 2
        for entry, line in zip(entries, lines):
            assert line == f"Name: {entry.name}, Pfad: {entry.path}"

    def test_overwrites_previous_contents(self, manager, cache_path):
        cache_path.write_text("Name: old.exe, Pfad: /old/old.exe\n")
        manager.refresh()

        assert "old.exe" not in cache_path.read_text(encoding="utf-8")

    def test_refresh_makes_cache_fresh(self, programs, cache_path):
        manager = CacheManager(Settings(root_directories=[programs], cache_path=cache_path))
        assert manager.is_stale()
        manager.refresh()
        assert not manager.is_stale()

    def test_empty_scan_writes_empty_file(self, tmp_path, cache_path):
        manager = CacheManager(
            Settings(root_directories=[tmp_path / "missing"], cache_path=cache_path)
        )
        assert manager.refresh() == []
        assert cache_path.read_text() == ""

    def test_write_failure_raises_and_keeps_previous(self, manager, cache_path):
        cache_path.write_text("Name: old.exe, Pfad: /old/old.exe\n")

        with patch("exefind.cache.os.replace", side_effect=PermissionError("denied")):
            with pytest.raises(CacheError):
                manager.refresh()

        assert cache_path.read_text() == "Name: old.exe, Pfad: /old/old.exe\n"
        # No temporary files left behind
        assert [p.name for p in cache_path.parent.iterdir() if p.name.startswith(".")] == []

    def test_missing_cache_directory_raises(self, programs, tmp_path):
        settings = Settings(
            root_directories=[programs],
            cache_path=tmp_path / "no" / "such" / "dir" / "cache.txt",
        )
        with pytest.raises(CacheError):
            CacheManager(settings).refresh()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_cache_follows_umask(self, manager, cache_path):
        umask = os.umask(0o022)
        try:
            manager.refresh()
        finally:
            os.umask(umask)

        assert stat.S_IMODE(cache_path.stat().st_mode) == 0o644

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_keeps_previous_cache_mode(self, manager, cache_path):
        cache_path.write_text("Name: old.exe, Pfad: /old/old.exe\n")
        cache_path.chmod(0o640)

        manager.refresh()

        assert stat.S_IMODE(cache_path.stat().st_mode) == 0o640


class TestEnsureFresh:
    def test_refreshes_when_stale(self, manager, cache_path):
        assert manager.ensure_fresh() is True
        assert cache_path.exists()

    def test_skips_when_fresh(self, manager, cache_path):
        cache_path.write_text("Name: keep.exe, Pfad: /keep.exe\n")
        _set_age(cache_path, HOUR)

        with patch("exefind.cache.scan") as mock_scan:
            assert manager.ensure_fresh() is False
            mock_scan.assert_not_called()

        assert "keep.exe" in cache_path.read_text()


class TestSearch:
    @pytest.fixture
    def example_cache(self, manager, cache_path):
        cache_path.write_text(
            "Name: Foo.exe, Pfad: C:\\Program Files\\Foo.exe\n"
            "Name: Bar.exe, Pfad: C:\\Program Files (x86)\\Bar\\Bar.exe\n",
            encoding="utf-8",
        )
        return manager

    def test_search_example(self, example_cache):
        results = example_cache.search("Bar")
        assert len(results) == 1
        assert results[0].name == "Bar.exe"
        assert results[0].path == r"C:\Program Files (x86)\Bar\Bar.exe"

    def test_empty_term_matches_all(self, example_cache):
        assert len(example_cache.search("")) == 2

    def test_no_match_returns_empty(self, example_cache):
        assert example_cache.search("Quux") == []

    def test_case_sensitive(self, example_cache):
        assert example_cache.search("bar") == []

    def test_matches_path_portion(self, example_cache):
        results = example_cache.search("(x86)")
        assert [r.name for r in results] == ["Bar.exe"]

    def test_unparseable_line_kept_with_empty_path(self, manager, cache_path):
        cache_path.write_text("garbage without delimiter\n")
        results = manager.search("garbage")
        assert len(results) == 1
        assert results[0].path == ""

    def test_blank_line_kept_for_empty_term(self, manager, cache_path):
        cache_path.write_text("Name: Foo.exe, Pfad: /opt/Foo.exe\n\nName: Bar.exe, Pfad: /opt/Bar.exe\n")

        results = manager.search("")
        assert [(e.name, e.path) for e in results] == [
            ("Foo.exe", "/opt/Foo.exe"),
            ("", ""),
            ("Bar.exe", "/opt/Bar.exe"),
        ]
        assert [e.name for e in manager.search("Bar")] == ["Bar.exe"]

    def test_missing_file_raises(self, manager):
        with pytest.raises(CacheError):
            manager.search("anything")

    def test_does_not_modify_cache(self, example_cache, cache_path):
        before = cache_path.stat().st_mtime
        example_cache.search("Foo")
        assert cache_path.stat().st_mtime == before

    def test_round_trip(self, manager):
        written = manager.refresh()
        found = manager.search("")

        assert [(e.name, e.path) for e in found] == [(e.name, e.path) for e in written]


class TestStatus:
    def test_missing(self, manager):
        status = manager.status()
        assert not status.exists
        assert status.stale
        assert status.age is None

    def test_fresh(self, manager, cache_path):
        cache_path.write_text("")
        _set_age(cache_path, 2 * HOUR)

        status = manager.status()
        assert status.exists
        assert not status.stale
        assert status.age == timedelta(hours=2)
        assert status.age_human == "2.0 h"

    def test_unreadable_metadata(self, manager, cache_path):
        cache_path.write_text("")

        with patch.object(Path, "stat", side_effect=PermissionError("denied")):
            status = manager.status()

        assert not status.exists
        assert status.stale
        assert status.age is None
