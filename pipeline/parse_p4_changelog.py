#!/usr/bin/env python3
"""Parse captured Perforce filelog output into per-changelist entries.

Reads the text written by `p4 filelog -t -l <paths>` from a file or stdin,
groups file revisions by changelist, applies the optional date window, and
prints a summary table, newest change first.
"""

# Standard Library
import argparse
import io
import sys
from datetime import datetime

# PIP3 modules
import rich.console
import rich.table

# local repo modules
from p4lib import changelog_parser
from p4lib import parser_settings


RICH_CONSOLE = rich.console.Console()


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[parse_p4_changelog {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("skipped" in lower) or ("dropped" in lower) or ("unparseable" in lower):
		style = "yellow"
	elif ("parsed " in lower) or ("committed" in lower):
		style = "green"
	RICH_CONSOLE.print(line, style=style, highlight=False)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Group captured p4 filelog output into changelist entries."
	)
	parser.add_argument(
		'-i', '--input', dest='input_file',
		default="-",
		help="Captured log output to read ('-' for stdin, the default).",
	)
	parser.add_argument(
		'--settings', dest='settings',
		default="settings.yaml",
		help="YAML settings path for date window and flush defaults.",
	)
	parser.add_argument(
		'--start', dest='start',
		default=None,
		help="Earliest change date kept, inclusive (YYYY/MM/DD [HH:MM:SS]; a bare date starts at 00:00:00).",
	)
	parser.add_argument(
		'--end', dest='end',
		default=None,
		help="Latest change date kept, inclusive (YYYY/MM/DD [HH:MM:SS]; a bare date runs to 23:59:59).",
	)
	# flush-pending / no-flush-pending flag pair
	parser.add_argument(
		'--flush-pending', dest='flush_pending',
		action='store_true',
		help="Commit an entry whose comment is still open when input ends.",
	)
	parser.add_argument(
		'--no-flush-pending', dest='flush_pending',
		action='store_false',
		help="Drop an entry whose comment is still open when input ends.",
	)
	parser.set_defaults(flush_pending=None)
	parser.add_argument(
		'-v', '--verbose', dest='verbose',
		action='store_true',
		help="Log every committed, skipped, and dropped revision.",
	)
	args = parser.parse_args(argv)
	return args


#============================================
def read_input_lines(input_file: str) -> list[str]:
	"""
	Read all lines from a path or stdin, newlines removed.
	"""
	if input_file == "-":
		# same lenient decoding as the file branch
		stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
		try:
			return [line.rstrip("\r\n") for line in stream]
		finally:
			# leave sys.stdin.buffer open for the caller
			stream.detach()
	with open(input_file, "r", encoding="utf-8", errors="replace") as handle:
		return [line.rstrip("\r\n") for line in handle]


#============================================
def format_timestamp(value) -> str:
	if value is None:
		return "(unknown)"
	return value.strftime("%Y/%m/%d %H:%M:%S")


#============================================
def build_entries_table(entries: list) -> rich.table.Table:
	"""
	Render change entries as a rich table.
	"""
	table = rich.table.Table(title="Perforce Changes", show_header=True)
	table.add_column("Change", justify="right", style="cyan")
	table.add_column("Date", style="magenta")
	table.add_column("Author", style="green")
	table.add_column("Files", justify="right", style="yellow")
	table.add_column("Comment", style="white")
	for entry in entries:
		table.add_row(
			str(entry.changelist_number),
			format_timestamp(entry.timestamp),
			entry.author,
			str(len(entry.files)),
			entry.first_comment_line(),
		)
	return table


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Parse one captured log and print the grouped changes.
	"""
	args = parse_args(argv)
	settings, settings_path = parser_settings.load_settings(args.settings)
	window = parser_settings.resolve_date_window(settings, args.start, args.end)
	flush_pending = parser_settings.get_flush_pending_on_end(settings, args.flush_pending)
	log_step(f"Using settings file: {settings_path}")
	log_step(f"Date window: {window.start or 'open'} -> {window.end or 'open'}")

	lines = read_input_lines(args.input_file)
	source_label = "stdin" if args.input_file == "-" else args.input_file
	log_step(f"Read {len(lines)} line(s) from {source_label}")

	parser = changelog_parser.P4ChangelogParser(
		start=window.start,
		end=window.end,
		flush_pending_on_end=flush_pending,
		log_fn=log_step if args.verbose else None,
	)
	parser.consume_lines(lines)
	parser.finish()
	entries = parser.get_entries()

	RICH_CONSOLE.print(build_entries_table(entries))
	stats = parser.stats_snapshot()
	log_step(
		f"Parsed {len(entries)} change(s): "
		+ f"headers={stats['headers_matched']}, "
		+ f"filtered={stats['entries_filtered']}, "
		+ f"noise_lines={stats['noise_lines']}, "
		+ f"invalid_timestamps={stats['invalid_timestamps']}, "
		+ f"pending_dropped={stats['pending_dropped']}, "
		+ f"pending_flushed={stats['pending_flushed']}"
	)


if __name__ == "__main__":
	main()
