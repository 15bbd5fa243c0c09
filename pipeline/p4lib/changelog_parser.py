"""Line-by-line state machine for Perforce changelog output.

The log repeats this shape per file revision:

	//depot/path/file.c
	... #3 change 1204 edit on 2024/01/10 10:00:00 by alice@ws (text)
	<one separator line>
	comment line
	comment line
	<blank line ends the comment>

Each completed block is committed into a ChangeEntryStore keyed by
changelist number.
"""

from dataclasses import asdict
from dataclasses import dataclass
from enum import Enum

from p4lib import change_entry_store
from p4lib import revision_matcher


#============================================
class ParserStateError(RuntimeError):
	"""
	Raised when the parser reaches a state outside ParserState.
	"""


#============================================
class ParserState(Enum):
	AWAITING_REVISION = 1
	AWAITING_COMMENT_START = 2
	IN_COMMENT = 3


#============================================
class LineAction(Enum):
	IGNORE = "ignore"
	REMEMBER_FILE = "remember_file"
	START_ENTRY = "start_entry"
	SKIP_SEPARATOR = "skip_separator"
	APPEND_COMMENT = "append_comment"
	COMMIT_ENTRY = "commit_entry"


#============================================
@dataclass(frozen=True)
class Transition:
	next_state: ParserState
	action: LineAction
	header: revision_matcher.RevisionHeader | None = None


#============================================
def transition(state: ParserState, line: str) -> Transition:
	"""
	Classify one line for the given state without touching parser fields.

	Args:
		state: current ParserState.
		line: one log line without its newline.

	Returns:
		Transition with the next state, the action to apply, and the
		parsed header for START_ENTRY.

	Raises:
		ParserStateError: state is not a ParserState member.
	"""
	if state is ParserState.AWAITING_REVISION:
		if revision_matcher.is_file_line(line):
			return Transition(ParserState.AWAITING_REVISION, LineAction.REMEMBER_FILE)
		header = revision_matcher.match_revision_header(line)
		if header is None:
			return Transition(ParserState.AWAITING_REVISION, LineAction.IGNORE)
		return Transition(ParserState.AWAITING_COMMENT_START, LineAction.START_ENTRY, header)
	if state is ParserState.AWAITING_COMMENT_START:
		return Transition(ParserState.IN_COMMENT, LineAction.SKIP_SEPARATOR)
	if state is ParserState.IN_COMMENT:
		if line == "":
			return Transition(ParserState.AWAITING_REVISION, LineAction.COMMIT_ENTRY)
		return Transition(ParserState.IN_COMMENT, LineAction.APPEND_COMMENT)
	raise ParserStateError(f"Unknown parser state: {state!r}")


#============================================
@dataclass
class ParseStats:
	lines_read: int = 0
	file_lines: int = 0
	headers_matched: int = 0
	noise_lines: int = 0
	invalid_timestamps: int = 0
	entries_added: int = 0
	entries_extended: int = 0
	entries_filtered: int = 0
	pending_dropped: int = 0
	pending_flushed: int = 0


#============================================
class P4ChangelogParser:
	"""
	Stateful consumer of one log stream.

	Not reentrant: use a fresh instance for every log. Feed lines with
	consume_line() or consume_lines(), call finish() once the stream ends,
	then read get_entries().
	"""

	def __init__(
		self,
		start=None,
		end=None,
		flush_pending_on_end: bool = False,
		log_fn=None,
	):
		self.log_fn = log_fn
		self.flush_pending_on_end = flush_pending_on_end
		window = change_entry_store.DateWindow(start=start, end=end)
		self.store = change_entry_store.ChangeEntryStore(window, log_fn=log_fn)
		self.stats = ParseStats()
		self.state = ParserState.AWAITING_REVISION
		self.current_file = ""
		self.pending_header: revision_matcher.RevisionHeader | None = None
		self.pending_comment = ""

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def consume_line(self, line: str) -> None:
		"""
		Advance the state machine by one line.
		"""
		line = line.rstrip("\r\n")
		self.stats.lines_read += 1
		step = transition(self.state, line)
		if step.action is LineAction.REMEMBER_FILE:
			self.current_file = line
			self.stats.file_lines += 1
		elif step.action is LineAction.IGNORE:
			self.stats.noise_lines += 1
		elif step.action is LineAction.START_ENTRY:
			self._start_entry(step.header)
		elif step.action is LineAction.APPEND_COMMENT:
			self.pending_comment += line + "\n"
		elif step.action is LineAction.COMMIT_ENTRY:
			self._commit_pending()
		self.state = step.next_state

	#============================================
	def consume_lines(self, lines) -> None:
		for line in lines:
			self.consume_line(line)

	#============================================
	def _start_entry(self, header: revision_matcher.RevisionHeader) -> None:
		self.stats.headers_matched += 1
		if header.timestamp is None:
			self.stats.invalid_timestamps += 1
			self.log(f"Unparseable timestamp on change {header.changelist_number}; keeping entry")
		self.pending_header = header
		self.pending_comment = ""

	#============================================
	def _commit_pending(self) -> None:
		header = self.pending_header
		if header is None:
			raise ParserStateError("Comment block ended with no pending revision header")
		if not self.current_file:
			self.log(f"Change {header.changelist_number} has no preceding file line")
		outcome = self.store.commit(
			header,
			self.current_file,
			str(header.revision_number),
			self.pending_comment,
		)
		if outcome == change_entry_store.COMMIT_ADDED:
			self.stats.entries_added += 1
		elif outcome == change_entry_store.COMMIT_EXTENDED:
			self.stats.entries_extended += 1
		else:
			self.stats.entries_filtered += 1
		self.pending_header = None
		self.pending_comment = ""

	#============================================
	def finish(self) -> None:
		"""
		Handle end of stream.

		A revision still waiting for its comment terminator is dropped,
		or committed with the comment collected so far when
		flush_pending_on_end is set. The parser returns to AWAITING_REVISION.
		"""
		if self.state is ParserState.AWAITING_REVISION:
			return
		header = self.pending_header
		if self.state not in (ParserState.AWAITING_COMMENT_START, ParserState.IN_COMMENT):
			raise ParserStateError(f"Unknown parser state: {self.state!r}")
		if header is None:
			raise ParserStateError(f"No pending revision header in state {self.state.name}")
		if self.flush_pending_on_end:
			self.log(f"Flushing unterminated change {header.changelist_number} at end of log")
			self.stats.pending_flushed += 1
			self._commit_pending()
		else:
			self.log(f"Dropped unterminated change {header.changelist_number} at end of log")
			self.stats.pending_dropped += 1
			self.pending_header = None
			self.pending_comment = ""
		self.state = ParserState.AWAITING_REVISION

	#============================================
	def get_entries(self) -> list[change_entry_store.ChangeEntry]:
		"""
		Return committed entries, highest changelist number first.
		"""
		return self.store.ordered_snapshot()

	#============================================
	def stats_snapshot(self) -> dict:
		return asdict(self.stats)


#============================================
def parse_changelog_lines(
	lines,
	start=None,
	end=None,
	flush_pending_on_end: bool = False,
	log_fn=None,
) -> list[change_entry_store.ChangeEntry]:
	"""
	Parse a full log with a fresh parser and return its ordered entries.
	"""
	parser = P4ChangelogParser(
		start=start,
		end=end,
		flush_pending_on_end=flush_pending_on_end,
		log_fn=log_fn,
	)
	parser.consume_lines(lines)
	parser.finish()
	return parser.get_entries()
