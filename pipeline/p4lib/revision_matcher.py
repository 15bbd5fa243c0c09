"""Header-line matching for `p4 filelog -t -l` style output.

A revision header looks like:

	... #3 change 1204 edit on 2024/01/10 10:00:00 by alice@alice-ws (text)

and is preceded (somewhere above) by the depot path line it applies to,
which starts with two slashes.
"""

import re
from dataclasses import dataclass
from datetime import datetime


FILE_BEGIN_TOKEN = "//"
P4_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"
REVISION_RE = re.compile(
	r"^\.\.\. #(\d+) "
	+ r"change (\d+) .* "
	+ r"on (.*) "
	+ r"by (.*)@"
)


#============================================
@dataclass(frozen=True)
class RevisionHeader:
	revision_number: int
	changelist_number: int
	timestamp: datetime | None
	author: str


#============================================
def is_file_line(line: str) -> bool:
	"""
	Check whether a line announces a depot file path.
	"""
	return line.startswith(FILE_BEGIN_TOKEN)


#============================================
def parse_timestamp(text: str) -> datetime | None:
	"""
	Parse a p4 timestamp, returning None when the text does not fit the format.
	"""
	try:
		return datetime.strptime(text.strip(), P4_TIMESTAMP_FORMAT)
	except ValueError:
		return None


#============================================
def match_revision_header(line: str) -> RevisionHeader | None:
	"""
	Match one line against the revision header pattern.

	Args:
		line: one line of log output, without its newline.

	Returns:
		RevisionHeader with all four fields, or None when the line is not
		a header. A header whose timestamp cannot be parsed still matches
		and carries timestamp=None.
	"""
	match = REVISION_RE.match(line)
	if not match:
		return None
	header = RevisionHeader(
		revision_number=int(match.group(1)),
		changelist_number=int(match.group(2)),
		timestamp=parse_timestamp(match.group(3)),
		author=match.group(4),
	)
	return header
