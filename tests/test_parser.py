"""
Tests for the action markup parser.
"""

import pytest

from clone_gen.models import FileDiff, GeneratedFile
from clone_gen.pipeline.parser import (
    ScanState,
    extract_diffs,
    extract_files,
    parse_actions,
)


def test_single_file_action():
    """Test that one closed file action yields exactly one file."""
    files = extract_files('<action type="file" path="app/page.tsx">hello</action>')
    assert files == [GeneratedFile(path="app/page.tsx", content="hello")]


def test_unclosed_file_action_is_recovered():
    """Test that a file cut off at end of input keeps its partial body."""
    text = '<artifact><action type="file" path="app/page.tsx">export default function Page() {'
    parsed = parse_actions(text)

    assert parsed.files == [
        GeneratedFile(path="app/page.tsx", content="export default function Page() {")
    ]
    assert parsed.truncated
    assert parsed.end_state == ScanState.FILE_BODY
    assert parsed.unterminated == 1
    assert not parsed.wrapper_closed
    assert parsed.pending_tail.startswith('<action type="file" path="app/page.tsx">')


def test_cut_inside_opening_marker_is_held_back():
    """Test that a half-written opener becomes the pending tail."""
    text = (
        '<artifact><action type="file" path="a.tsx">A</action>'
        '<action type="file" pa'
    )
    parsed = parse_actions(text)

    assert [f.path for f in parsed.files] == ["a.tsx"]
    assert parsed.truncated
    assert parsed.end_state == ScanState.OPENING_MARKER
    assert parsed.pending_tail == '<action type="file" pa'
    assert parsed.unterminated == 0


@pytest.mark.parametrize("ending", ["<", "<act", "<boltAct", "<action", '<boltAction type="file"'])
def test_partial_opener_prefixes(ending):
    """Test that every prefix of an action opener is carried."""
    parsed = parse_actions('<action type="file" path="a.ts">A</action>' + ending)
    assert parsed.pending_tail == ending
    assert parsed.truncated


@pytest.mark.parametrize("ending", ["<div", "</artif", "a < b", "<div>", "<actions"])
def test_other_trailing_text_is_not_an_opener(ending):
    """Test that unrelated trailing markup does not mark the scan truncated."""
    parsed = parse_actions('<action type="file" path="a.ts">A</action>' + ending)
    assert parsed.pending_tail == ""
    assert not parsed.truncated


def test_complete_response():
    """Test a complete response with wrapper close."""
    text = (
        "<artifact>\n"
        '<action type="file" path="app/layout.tsx">layout</action>\n'
        '<action type="file" path="app/page.tsx">page</action>\n'
        "</artifact>"
    )
    parsed = parse_actions(text)

    assert [f.path for f in parsed.files] == ["app/layout.tsx", "app/page.tsx"]
    assert parsed.wrapper_closed
    assert not parsed.truncated
    assert parsed.pending_tail == ""
    assert parsed.unterminated == 0


def test_diff_action():
    """Test extraction of a diff with both sub-blocks."""
    text = (
        '<action type="diff" path="app/globals.css">'
        "<oldContent>color: red;</oldContent>"
        "<newContent>color: blue;</newContent>"
        "</action>"
    )
    assert extract_diffs(text) == [
        FileDiff(path="app/globals.css", old_content="color: red;", new_content="color: blue;")
    ]
    assert extract_files(text) == []


def test_diff_with_short_sub_block_names():
    """Test that <old>/<new> are accepted for diff sub-blocks."""
    text = '<action type="diff" path="a.css"><old>a</old><new>b</new></action>'
    assert extract_diffs(text) == [FileDiff(path="a.css", old_content="a", new_content="b")]


def test_diff_missing_sub_block_is_dropped():
    """Test that a diff without a closed new block yields nothing."""
    text = '<action type="diff" path="a.css"><oldContent>a</oldContent></action>'
    assert extract_diffs(text) == []

    text = '<action type="diff" path="a.css"><oldContent>a</oldContent><newContent>b'
    assert extract_diffs(text) == []


def test_diff_empty_new_content_allowed():
    """Test that an empty replacement deletes the old snippet."""
    text = '<action type="diff" path="a.css"><oldContent>a</oldContent><newContent></newContent></action>'
    assert extract_diffs(text) == [FileDiff(path="a.css", old_content="a", new_content="")]


def test_entities_are_decoded_and_whitespace_trimmed():
    """Test HTML entity decoding and trimming of file content."""
    text = '<action type="file" path="a.tsx">\n  &lt;div className=&quot;x&quot;&gt;&amp;&lt;/div&gt;\n</action>'
    assert extract_files(text) == [GeneratedFile(path="a.tsx", content='<div className="x">&</div>')]


def test_legacy_tag_names():
    """Test that boltArtifact/boltAction/filePath are accepted."""
    text = (
        "<boltArtifact>"
        '<boltAction type="file" filePath="src/index.js">console.log(1)</boltAction>'
        "</boltArtifact>"
    )
    parsed = parse_actions(text)
    assert parsed.files == [GeneratedFile(path="src/index.js", content="console.log(1)")]
    assert parsed.wrapper_closed


def test_empty_path_or_content_is_dropped():
    """Test that files without a path or content are skipped."""
    text = (
        '<action type="file" path="">content</action>'
        '<action type="file" path="empty.ts">   </action>'
        '<action type="file" path="ok.ts">ok</action>'
    )
    assert extract_files(text) == [GeneratedFile(path="ok.ts", content="ok")]


def test_new_opening_marker_ends_unclosed_action():
    """Test that an action left open is implicitly closed by the next one."""
    text = (
        '<action type="file" path="a.ts">A'
        '<action type="file" path="b.ts">B</action>'
    )
    parsed = parse_actions(text)
    assert [(f.path, f.content) for f in parsed.files] == [("a.ts", "A"), ("b.ts", "B")]
    assert parsed.unterminated == 1
    assert not parsed.truncated


def test_mixed_actions_in_document_order():
    """Test that files and diffs keep document order."""
    text = (
        '<action type="file" path="a.ts">A</action>'
        '<action type="diff" path="a.ts"><oldContent>A</oldContent><newContent>AA</newContent></action>'
        '<action type="file" path="b.ts">B</action>'
    )
    parsed = parse_actions(text)
    kinds = [type(action).__name__ for action in parsed.actions]
    assert kinds == ["FileAction", "DiffAction", "FileAction"]


def test_other_action_types_are_ignored():
    """Test that non-file, non-diff actions produce nothing."""
    text = '<action type="shell">npm install</action><action type="file" path="a.ts">A</action>'
    assert extract_files(text) == [GeneratedFile(path="a.ts", content="A")]


def test_sub_block_tags_inside_file_body_are_content():
    """Test that <new>-like text in a file body is not treated as markup."""
    text = '<action type="file" path="a.ts">const x = <new>1</new>;</action>'
    assert extract_files(text) == [GeneratedFile(path="a.ts", content="const x = <new>1</new>;")]


@pytest.mark.parametrize("text", [None, "", "no markup at all", "</action></artifact>"])
def test_inputs_without_actions(text):
    """Test that text without actions never raises."""
    parsed = parse_actions(text)
    assert parsed.files == []
    assert parsed.diffs == []
