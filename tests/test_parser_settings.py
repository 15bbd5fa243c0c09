import os
from datetime import date
from datetime import datetime

import pytest

import repo_paths

repo_paths.add_pipeline_to_path()

from p4lib import parser_settings


#============================================
def test_load_settings_missing_file(tmp_path) -> None:
	"""
	Missing settings file should return empty settings.
	"""
	settings, resolved_path = parser_settings.load_settings(str(tmp_path / "missing.yaml"))
	assert settings == {}
	assert resolved_path.endswith("missing.yaml")


#============================================
def test_load_settings_reads_changelog_section(tmp_path) -> None:
	"""
	YAML dates, quoted p4 dates, and booleans all resolve.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text(
		"changelog:\n"
		"  start: 2023-06-01\n"
		"  end: '2023/12/31 23:59:59'\n"
		"  flush_pending_on_end: yes\n",
		encoding="utf-8",
	)
	settings, _ = parser_settings.load_settings(str(settings_path))
	window = parser_settings.resolve_date_window(settings)
	assert window.start == datetime(2023, 6, 1)
	assert window.end == datetime(2023, 12, 31, 23, 59, 59)
	assert parser_settings.get_flush_pending_on_end(settings) is True


#============================================
def test_load_settings_non_mapping_raises(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(RuntimeError):
		parser_settings.load_settings(str(settings_path))


#============================================
def test_load_settings_empty_file(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("", encoding="utf-8")
	settings, _ = parser_settings.load_settings(str(settings_path))
	assert settings == {}


#============================================
@pytest.mark.parametrize(
	"value, expected",
	[
		("2023/06/01", datetime(2023, 6, 1)),
		("2023/06/01 13:45:00", datetime(2023, 6, 1, 13, 45, 0)),
		("2023-06-01", datetime(2023, 6, 1)),
		("2023-06-01T13:45:00", datetime(2023, 6, 1, 13, 45, 0)),
		(datetime(2023, 6, 1, 8, 0, 0), datetime(2023, 6, 1, 8, 0, 0)),
		("", None),
		(None, None),
	],
)
def test_parse_date_bound(value, expected) -> None:
	assert parser_settings.parse_date_bound(value) == expected


#============================================
def test_parse_date_bound_rejects_garbage() -> None:
	with pytest.raises(RuntimeError):
		parser_settings.parse_date_bound("last tuesday", "start")


#============================================
def test_parse_date_bound_rejects_timezone_offset() -> None:
	"""
	p4 timestamps are naive, so aware bounds are refused.
	"""
	with pytest.raises(RuntimeError):
		parser_settings.parse_date_bound("2023-06-01T00:00:00+02:00")


#============================================
def test_resolve_date_window_overrides_win() -> None:
	settings = {"changelog": {"start": "2020/01/01", "end": "2020/12/31"}}
	window = parser_settings.resolve_date_window(settings, "2020/06/01", None)
	assert window.start == datetime(2020, 6, 1)
	# a bare end date covers the whole day
	assert window.end == datetime(2020, 12, 31, 23, 59, 59)


#============================================
def test_resolve_date_window_defaults_open() -> None:
	window = parser_settings.resolve_date_window({})
	assert window.start is None
	assert window.end is None


#============================================
def test_resolve_date_window_start_after_end_raises() -> None:
	with pytest.raises(RuntimeError):
		parser_settings.resolve_date_window({}, "2024/02/01", "2024/01/01")


#============================================
def test_flush_pending_override_and_invalid_value() -> None:
	settings = {"changelog": {"flush_pending_on_end": "maybe"}}
	assert parser_settings.get_flush_pending_on_end(settings, False) is False
	with pytest.raises(RuntimeError):
		parser_settings.get_flush_pending_on_end(settings)
	assert parser_settings.get_flush_pending_on_end({}) is False


#============================================
@pytest.mark.parametrize(
	"value, expected",
	[
		("2024/01/31", datetime(2024, 1, 31, 23, 59, 59)),
		("2024-01-31", datetime(2024, 1, 31, 23, 59, 59)),
		("2024/01/31 12:00:00", datetime(2024, 1, 31, 12, 0, 0)),
		(date(2024, 1, 31), datetime(2024, 1, 31, 23, 59, 59)),
	],
)
def test_parse_date_bound_end_of_day(value, expected) -> None:
	"""
	Bare end dates stretch to the last second of the day; explicit times stay.
	"""
	assert parser_settings.parse_date_bound(value, "end", end_of_day=True) == expected


#============================================
def test_resolve_date_window_bare_dates_cover_whole_days() -> None:
	window = parser_settings.resolve_date_window({}, "2024/01/31", "2024/01/31")
	assert window.start == datetime(2024, 1, 31, 0, 0, 0)
	assert window.end == datetime(2024, 1, 31, 23, 59, 59)
	assert window.contains(datetime(2024, 1, 31, 17, 30, 0))


#============================================
def test_load_settings_falls_back_to_repo_root(tmp_path, monkeypatch) -> None:
	"""
	A relative path missing from the cwd resolves against the repo root.
	"""
	monkeypatch.chdir(tmp_path)
	settings, resolved_path = parser_settings.load_settings("settings.yaml")
	assert resolved_path == os.path.join(repo_paths.get_repo_root(), "settings.yaml")
	assert parser_settings.get_flush_pending_on_end(settings) is False


#============================================
def test_get_changelog_setting_ignores_non_mapping_section() -> None:
	assert parser_settings.get_changelog_setting({"changelog": "oops"}, "start") is None
	assert parser_settings.get_changelog_setting({}, "end", "x") == "x"
	assert parser_settings.get_changelog_setting({"changelog": {"end": "2024/01/01"}}, "end") == "2024/01/01"
