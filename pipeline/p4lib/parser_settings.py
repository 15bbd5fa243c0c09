import os
from datetime import date
from datetime import datetime
from datetime import time

import yaml

from p4lib import change_entry_store


SETTINGS_SECTION = "changelog"
DATETIME_BOUND_FORMATS = (
	"%Y/%m/%d %H:%M:%S",
)
DATE_ONLY_BOUND_FORMATS = (
	"%Y/%m/%d",
	"%Y-%m-%d",
)
TRUE_WORDS = {"1", "true", "yes", "on"}
FALSE_WORDS = {"0", "false", "no", "off"}


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load the YAML settings file, trying the cwd and then the repo root.

	Returns:
		(settings dict, resolved path). A missing or empty file gives {}.
	"""
	resolved_path = os.path.abspath(path_text)
	if not os.path.isabs(path_text) and not os.path.isfile(resolved_path):
		repo_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
		resolved_path = os.path.join(repo_root, path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle)
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise RuntimeError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def get_changelog_setting(settings: dict, key: str, default_value=None):
	"""
	Read one key from the changelog section of the settings.
	"""
	section = settings.get(SETTINGS_SECTION)
	if not isinstance(section, dict):
		return default_value
	return section.get(key, default_value)


#============================================
def parse_date_bound(value, label: str = "date", end_of_day: bool = False) -> datetime | None:
	"""
	Convert a date bound from settings or the command line into a datetime.

	Accepts p4 style text (YYYY/MM/DD with optional HH:MM:SS), ISO text,
	and the date/datetime values YAML produces for unquoted dates.
	Empty values mean no bound. With end_of_day set, a bound given as a
	bare date covers that whole day (23:59:59).

	Raises:
		RuntimeError: the value cannot be read as a date, or carries a
			UTC offset (p4 timestamps are server local and naive).
	"""
	if value is None:
		return None
	if isinstance(value, datetime):
		parsed = value
	elif isinstance(value, date):
		parsed = _date_only_bound(value, end_of_day)
	else:
		text = str(value).strip()
		if not text:
			return None
		parsed = _parse_bound_text(text, label, end_of_day)
	if parsed.tzinfo is not None:
		raise RuntimeError(f"Timezone offsets are not supported for {label} bound: {value}")
	return parsed


#============================================
def _date_only_bound(day: date, end_of_day: bool) -> datetime:
	if end_of_day:
		return datetime.combine(day, time(23, 59, 59))
	return datetime.combine(day, time(0, 0, 0))


#============================================
def _parse_bound_text(text: str, label: str, end_of_day: bool) -> datetime:
	for date_format in DATETIME_BOUND_FORMATS:
		try:
			return datetime.strptime(text, date_format)
		except ValueError:
			continue
	for date_format in DATE_ONLY_BOUND_FORMATS:
		try:
			day = datetime.strptime(text, date_format).date()
		except ValueError:
			continue
		return _date_only_bound(day, end_of_day)
	try:
		return datetime.fromisoformat(text)
	except ValueError as error:
		raise RuntimeError(f"Invalid {label} bound: {text}") from error


#============================================
def resolve_date_window(
	settings: dict,
	start_override=None,
	end_override=None,
) -> change_entry_store.DateWindow:
	"""
	Build the date window from settings, letting non-empty overrides win.
	"""
	start_value = start_override or get_changelog_setting(settings, "start")
	end_value = end_override or get_changelog_setting(settings, "end")
	start = parse_date_bound(start_value, "start")
	end = parse_date_bound(end_value, "end", end_of_day=True)
	if start is not None and end is not None and start > end:
		raise RuntimeError(f"Date window start {start} is after end {end}")
	return change_entry_store.DateWindow(start=start, end=end)


#============================================
def get_flush_pending_on_end(settings: dict, override: bool | None = None) -> bool:
	"""
	Resolve the end-of-stream flush policy; an explicit override wins.
	"""
	if override is not None:
		return override
	value = get_changelog_setting(settings, "flush_pending_on_end", False)
	if value is None:
		return False
	if isinstance(value, bool):
		return value
	if isinstance(value, int):
		return value != 0
	text = str(value).strip().lower()
	if text in TRUE_WORDS:
		return True
	if text in FALSE_WORDS:
		return False
	raise RuntimeError(f"Invalid boolean for setting {SETTINGS_SECTION}.flush_pending_on_end: {value}")
