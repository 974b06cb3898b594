"""
Tolerant parser for the action markup emitted by the model.

A response is wrapped in <artifact>...</artifact> and holds action tags:

    <action type="file" path="app/page.tsx">full file content</action>
    <action type="diff" path="app/page.tsx">
      <oldContent>exact old snippet</oldContent>
      <newContent>replacement</newContent>
    </action>

The legacy tag names (boltArtifact, boltAction, filePath) and the short
sub-block names (<old>, <new>) are accepted as aliases.

Parsing is a single left-to-right pass over marker tokens driven by an
explicit state machine. Input may end anywhere: an action still open at end
of input is emitted with whatever body preceded the cut, an opening marker cut
before its '>' is held back, and the scan result records the state the
tokenizer stopped in.
"""

import html
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from clone_gen.models import FileDiff, GeneratedFile


WRAPPER_TAG = "artifact"
ACTION_TAG = "action"
OLD_TAG = "oldContent"
NEW_TAG = "newContent"

_TOKEN_PATTERN = re.compile(
    r"<(?P<open>boltAction|action)\b(?P<attrs>[^<>]*)>"
    r"|</(?P<close>boltAction|action)\s*>"
    r"|</(?P<wrapper_close>boltArtifact|artifact)\s*>"
    r"|<(?P<sub_open>oldContent|newContent|old|new)\s*>"
    r"|</(?P<sub_close>oldContent|newContent|old|new)\s*>"
)
_ATTR_PATTERN = re.compile(r"""([A-Za-z_][\w:.-]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_TAG_NAME_PATTERN = re.compile(r"<([A-Za-z]*)")

_OPEN_TAGS = ("action", "boltAction")

_SUB_BLOCK_LABELS = {
    "oldContent": "old",
    "old": "old",
    "newContent": "new",
    "new": "new",
}


class ScanState(str, Enum):
    """Tokenizer states."""
    OUTSIDE = "outside-action"
    FILE_BODY = "in-file-body"
    DIFF_BODY = "in-diff"
    DIFF_OLD = "in-diff-old"
    DIFF_NEW = "in-diff-new"
    OTHER_BODY = "in-other-body"
    OPENING_MARKER = "in-opening-marker"


@dataclass(frozen=True)
class FileAction:
    """A full file write recovered from model output (raw, undecoded)."""
    path: str
    body: str
    terminated: bool
    start: int

    def to_file(self) -> Optional[GeneratedFile]:
        path = html.unescape(self.path).strip()
        content = html.unescape(self.body).strip()
        if not path or not content:
            return None
        return GeneratedFile(path=path, content=content)


@dataclass(frozen=True)
class DiffAction:
    """A partial edit recovered from model output (raw, undecoded)."""
    path: str
    old: str
    new: str
    terminated: bool
    start: int

    def to_diff(self) -> Optional[FileDiff]:
        path = html.unescape(self.path).strip()
        old_content = html.unescape(self.old).strip()
        new_content = html.unescape(self.new).strip()
        if not path or not old_content:
            return None
        return FileDiff(path=path, old_content=old_content, new_content=new_content)


Action = Union[FileAction, DiffAction]


@dataclass
class ParsedOutput:
    """Actions recovered from one piece of model output plus scan metadata."""
    actions: List[Action] = field(default_factory=list)
    wrapper_closed: bool = False
    end_state: ScanState = ScanState.OUTSIDE
    pending_tail: str = ""
    unterminated: int = 0

    @property
    def files(self) -> List[GeneratedFile]:
        files = []
        for action in self.actions:
            if isinstance(action, FileAction):
                file = action.to_file()
                if file is not None:
                    files.append(file)
        return files

    @property
    def diffs(self) -> List[FileDiff]:
        diffs = []
        for action in self.actions:
            if isinstance(action, DiffAction):
                diff = action.to_diff()
                if diff is not None:
                    diffs.append(diff)
        return diffs

    @property
    def truncated(self) -> bool:
        """True when input ended inside an action or its opening marker."""
        return self.end_state != ScanState.OUTSIDE


def _parse_attributes(raw: str) -> Dict[str, str]:
    attributes = {}
    for name, double_quoted, single_quoted in _ATTR_PATTERN.findall(raw):
        attributes[name] = double_quoted or single_quoted
    return attributes


def _partial_opener(text: str, offset: int) -> str:
    """Return a trailing action opener cut before its '>', or ''.

    Matches a bare '<', a prefix of a tag name ('<act'), and a full tag name
    followed by unfinished attributes ('<action type="file" pa').
    """
    start = text.rfind("<", offset)
    if start == -1:
        return ""
    fragment = text[start:]
    if ">" in fragment:
        return ""

    name = _TAG_NAME_PATTERN.match(fragment).group(1)
    rest = fragment[len(name) + 1:]
    if rest:
        if name in _OPEN_TAGS and rest[0].isspace():
            return fragment
        return ""
    if any(tag.startswith(name) for tag in _OPEN_TAGS):
        return fragment
    return ""


class ActionScanner:
    """State-machine tokenizer over action markers."""

    def __init__(self, text: str):
        self.text = text
        self.state = ScanState.OUTSIDE
        self.actions: List[Action] = []
        self.wrapper_closed = False
        self.unterminated = 0

        self._path = ""
        self._start = 0
        self._body_start = 0
        self._sub_start = 0
        self._old: Optional[str] = None
        self._new: Optional[str] = None

    def scan(self) -> ParsedOutput:
        scanned_to = 0
        for match in _TOKEN_PATTERN.finditer(self.text):
            self._feed(match)
            scanned_to = match.end()

        end_state = self.state
        pending_tail = ""
        if end_state != ScanState.OUTSIDE:
            pending_tail = self.text[self._start:]
            self._end_action(len(self.text), terminated=False)
        else:
            # Output cut inside an opening marker: nothing to emit yet
            pending_tail = _partial_opener(self.text, scanned_to)
            if pending_tail:
                end_state = ScanState.OPENING_MARKER

        return ParsedOutput(
            actions=self.actions,
            wrapper_closed=self.wrapper_closed,
            end_state=end_state,
            pending_tail=pending_tail,
            unterminated=self.unterminated,
        )

    def _feed(self, match: "re.Match[str]") -> None:
        if match.group("open"):
            # A new opening marker implicitly ends an unclosed action
            if self.state != ScanState.OUTSIDE:
                self._end_action(match.start(), terminated=False)
            self._begin_action(match)

        elif match.group("close"):
            if self.state != ScanState.OUTSIDE:
                self._end_action(match.start(), terminated=True)

        elif match.group("wrapper_close"):
            if self.state != ScanState.OUTSIDE:
                self._end_action(match.start(), terminated=False)
            self.wrapper_closed = True

        elif match.group("sub_open"):
            if self.state == ScanState.DIFF_BODY:
                label = _SUB_BLOCK_LABELS[match.group("sub_open")]
                self.state = ScanState.DIFF_OLD if label == "old" else ScanState.DIFF_NEW
                self._sub_start = match.end()

        elif match.group("sub_close"):
            label = _SUB_BLOCK_LABELS[match.group("sub_close")]
            if self.state == ScanState.DIFF_OLD and label == "old":
                self._old = self.text[self._sub_start:match.start()]
                self.state = ScanState.DIFF_BODY
            elif self.state == ScanState.DIFF_NEW and label == "new":
                self._new = self.text[self._sub_start:match.start()]
                self.state = ScanState.DIFF_BODY

    def _begin_action(self, match: "re.Match[str]") -> None:
        attributes = _parse_attributes(match.group("attrs"))
        kind = attributes.get("type", "").strip().lower()

        self._path = attributes.get("path") or attributes.get("filePath") or ""
        self._start = match.start()
        self._body_start = match.end()
        self._old = None
        self._new = None

        if kind == "file":
            self.state = ScanState.FILE_BODY
        elif kind == "diff":
            self.state = ScanState.DIFF_BODY
        else:
            self.state = ScanState.OTHER_BODY

    def _end_action(self, end: int, terminated: bool) -> None:
        if not terminated:
            self.unterminated += 1

        if self.state == ScanState.FILE_BODY:
            self.actions.append(FileAction(
                path=self._path,
                body=self.text[self._body_start:end],
                terminated=terminated,
                start=self._start,
            ))
        elif self.state in (ScanState.DIFF_BODY, ScanState.DIFF_OLD, ScanState.DIFF_NEW):
            # Both sub-blocks must have been closed; anything less is dropped
            if self._old is not None and self._new is not None:
                self.actions.append(DiffAction(
                    path=self._path,
                    old=self._old,
                    new=self._new,
                    terminated=terminated,
                    start=self._start,
                ))

        self.state = ScanState.OUTSIDE


def parse_actions(text: Optional[str]) -> ParsedOutput:
    """
    Parse model output into file and diff actions.

    Never raises; text without actions yields an empty result.

    Args:
        text: Raw model output, possibly truncated.

    Returns:
        ParsedOutput with actions in document order.
    """
    if not text:
        return ParsedOutput()
    return ActionScanner(str(text)).scan()


def extract_files(text: Optional[str]) -> List[GeneratedFile]:
    """Extract full-file writes from model output."""
    return parse_actions(text).files


def extract_diffs(text: Optional[str]) -> List[FileDiff]:
    """Extract diff edits from model output."""
    return parse_actions(text).diffs
