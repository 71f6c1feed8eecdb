import json
import time

import pytest

from cjshell.update import (
    UpdateCache,
    check_for_update,
    display_changelog,
    is_first_boot,
    is_newer_version,
    load_update_cache,
    mark_first_boot_complete,
    parse_version,
    save_update_cache,
    should_check_for_updates,
)


def test_parse_version():
    assert parse_version("2.1.13") == [2, 1, 13]


def test_parse_version_trailing_dot():
    assert parse_version("1.2.") == [1, 2]


def test_parse_version_invalid():
    with pytest.raises(ValueError):
        parse_version("a.b")


@pytest.mark.parametrize(
    ("latest", "current", "expected"),
    [
        ("2.1.14", "2.1.13", True),
        ("2.1.13", "2.1.13", False),
        ("2.1", "2.1.0", False),
        ("3", "2.9.9", True),
        ("2.0.9", "2.1.0", False),
    ],
)
def test_is_newer_version(latest, current, expected):
    assert is_newer_version(latest, current) is expected


def _release_url(tmp_path, payload):
    release = tmp_path / "release.json"
    release.write_text(payload)
    return release.as_uri()


def test_check_for_update_newer(tmp_path):
    url = _release_url(tmp_path, json.dumps({"tag_name": "v9.0.0"}))
    assert check_for_update("2.1.13", url) == (True, "9.0.0")


def test_check_for_update_current(tmp_path):
    url = _release_url(tmp_path, json.dumps({"tag_name": "v2.1.13"}))
    assert check_for_update("v2.1.13", url) == (False, "2.1.13")


def test_check_for_update_bad_json(tmp_path):
    url = _release_url(tmp_path, "not json")
    assert check_for_update("2.1.13", url) == (False, None)


def test_check_for_update_missing_tag(tmp_path):
    url = _release_url(tmp_path, json.dumps({"name": "release"}))
    assert check_for_update("2.1.13", url) == (False, None)


def test_check_for_update_unreachable(tmp_path):
    url = (tmp_path / "missing.json").as_uri()
    assert check_for_update("2.1.13", url) == (False, None)


def test_update_cache_round_trip(tmp_path):
    path = tmp_path / "cache" / "update.json"
    saved = save_update_cache(path, True, "3.0.0")
    loaded = load_update_cache(path)
    assert loaded == saved
    assert loaded.update_available is True
    assert loaded.latest_version == "3.0.0"


def test_load_update_cache_missing(tmp_path):
    assert load_update_cache(tmp_path / "nope.json") is None


def test_load_update_cache_incomplete(tmp_path):
    path = tmp_path / "update.json"
    path.write_text(json.dumps({"update_available": False}))
    assert load_update_cache(path) is None


def test_load_update_cache_explicit_values(tmp_path):
    path = tmp_path / "update.json"
    path.write_text(
        json.dumps({"update_available": False, "latest_version": "1.0", "check_time": 5})
    )
    assert load_update_cache(path) == UpdateCache(False, "1.0", 5)


def test_should_check_for_updates():
    now = int(time.time())
    assert should_check_for_updates(0, 86400) is True
    assert should_check_for_updates(now, 86400) is False
    assert should_check_for_updates(now - 100000, 86400) is True


def test_first_boot_marker(tmp_path):
    assert is_first_boot(tmp_path) is True
    mark_first_boot_complete(tmp_path)
    assert is_first_boot(tmp_path) is False


def test_display_changelog(tmp_path, capsys):
    changelog = tmp_path / "CHANGELOG.txt"
    changelog.write_text("Fixed things")
    display_changelog(changelog)
    out = capsys.readouterr().out
    assert "===== CHANGELOG =====" in out
    assert "Fixed things" in out


def test_display_changelog_missing(tmp_path, capsys):
    display_changelog(tmp_path / "absent.txt")
    assert capsys.readouterr().out == ""