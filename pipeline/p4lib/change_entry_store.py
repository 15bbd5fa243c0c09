"""Per-changelist aggregation of parsed file revisions."""

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime

from p4lib import revision_matcher


COMMIT_ADDED = "added"
COMMIT_EXTENDED = "extended"
COMMIT_FILTERED = "filtered"


#============================================
@dataclass(frozen=True)
class FileReference:
	path: str
	revision_number: str


#============================================
@dataclass
class ChangeEntry:
	"""
	One changelist with every file revision it touched.
	"""
	changelist_number: int
	timestamp: datetime | None
	author: str
	comment: str = ""
	files: list[FileReference] = field(default_factory=list)

	#============================================
	def first_comment_line(self) -> str:
		"""
		Return the first non-blank comment line, stripped.
		"""
		for line in self.comment.splitlines():
			if line.strip():
				return line.strip()
		return ""


#============================================
@dataclass(frozen=True)
class DateWindow:
	"""
	Inclusive date bounds; None on either side means unbounded.
	"""
	start: datetime | None = None
	end: datetime | None = None

	#============================================
	def contains(self, timestamp: datetime | None) -> bool:
		"""
		Check a timestamp against both bounds. Missing timestamps are kept.
		"""
		if timestamp is None:
			return True
		if self.start is not None and timestamp < self.start:
			return False
		if self.end is not None and timestamp > self.end:
			return False
		return True


#============================================
class ChangeEntryStore:
	"""
	Single-owner map of changelist number to ChangeEntry.

	At most one entry exists per changelist number. An entry, once added,
	only ever gains files; its author, timestamp and comment keep the
	values from the first commit. Snapshots come out highest change first.
	"""

	def __init__(self, window: DateWindow | None = None, log_fn=None):
		self.window = window if window is not None else DateWindow()
		self.log_fn = log_fn
		self._entries: dict[int, ChangeEntry] = {}

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def __len__(self) -> int:
		return len(self._entries)

	#============================================
	def __contains__(self, changelist_number: int) -> bool:
		return changelist_number in self._entries

	#============================================
	def get(self, changelist_number: int) -> ChangeEntry | None:
		return self._entries.get(changelist_number)

	#============================================
	def upsert(self, entry: ChangeEntry, file_ref: FileReference) -> bool:
		"""
		Insert entry with file_ref, or append file_ref to the stored entry.

		Returns:
			True when the changelist was new to the store.
		"""
		existing = self._entries.get(entry.changelist_number)
		if existing is None:
			entry.files.append(file_ref)
			self._entries[entry.changelist_number] = entry
			return True
		existing.files.append(file_ref)
		return False

	#============================================
	def commit(
		self,
		header: revision_matcher.RevisionHeader,
		file_path: str,
		revision_number: str,
		comment: str,
	) -> str:
		"""
		Build a candidate entry from a parsed header and store it.

		Args:
			header: parsed revision header for the pending entry.
			file_path: the file announcement line the revision applies to.
			revision_number: per-file revision, as text.
			comment: accumulated comment text.

		Returns:
			COMMIT_ADDED, COMMIT_EXTENDED, or COMMIT_FILTERED when the
			timestamp falls outside the date window.
		"""
		if not self.window.contains(header.timestamp):
			self.log(
				f"Skipped change {header.changelist_number} outside date window "
				+ f"({header.timestamp})"
			)
			return COMMIT_FILTERED
		candidate = ChangeEntry(
			changelist_number=header.changelist_number,
			timestamp=header.timestamp,
			author=header.author,
			comment=comment,
		)
		file_ref = FileReference(path=file_path, revision_number=revision_number)
		added = self.upsert(candidate, file_ref)
		self.log(f"Committed change {header.changelist_number}: {file_path}#{revision_number}")
		if added:
			return COMMIT_ADDED
		return COMMIT_EXTENDED

	#============================================
	def ordered_snapshot(self) -> list[ChangeEntry]:
		"""
		Return stored entries sorted by descending changelist number.
		"""
		keys = sorted(self._entries, reverse=True)
		return [self._entries[key] for key in keys]
