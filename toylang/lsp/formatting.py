"""
toylang.lsp.formatting - Formatting and folding for brace-delimited code

- format_document: whitespace trimming edits for textDocument/formatting
- indent_document: whole-text reindentation by brace depth
- provide_folding_ranges: one region per multi-line brace block

None of these parse the language; they look only at which lines contain
"{" and "}". A line containing both counts as an opening line.
"""

from typing import Any, Optional

from toylang.lsp.documents import DocumentStore, split_lines
from toylang.lsp.protocol import FoldingRangeKind, make_range, make_text_edit

INDENT_WIDTH = 4

# str.strip() with no argument also strips Unicode spaces and \x0b
ASCII_WHITESPACE = " \t\n\x0c\r"


def format_document(store: DocumentStore, uri: str) -> list[dict[str, Any]]:
    """
    Edits that trim leading and trailing ASCII whitespace from every line.

    Lines that are already trimmed produce no edit, so formatting an already
    formatted document yields nothing.
    """
    text = store.get(uri)
    if text is None:
        return []

    edits = []
    for line_number, line in enumerate(split_lines(text)):
        trimmed = line.strip(ASCII_WHITESPACE)
        if trimmed != line:
            edits.append(
                make_text_edit(make_range(line_number, 0, line_number, len(line)), trimmed)
            )
    return edits


def indent_document(text: str) -> str:
    """
    Reindent text by brace depth, INDENT_WIDTH spaces per level.

    An opening line is printed at the current level and deepens the
    following lines; a closing line dedents itself. Empty lines are kept
    as they are. The level never goes below zero.
    """
    level = 0
    result = []
    for line in split_lines(text):
        if not line:
            result.append(line)
            continue

        if "{" in line:
            result.append(_indent(level) + line.lstrip())
            level += 1
        elif "}" in line:
            level = max(level - 1, 0)
            result.append(_indent(level) + line.lstrip())
        else:
            result.append(_indent(level) + line.lstrip())
    return "\n".join(result)


def _indent(level: int) -> str:
    return " " * (level * INDENT_WIDTH)


def find_matching_brace(lines: list[str], start_line: int) -> Optional[int]:
    """Line closing the block opened on start_line, counted one brace per line."""
    depth = 0
    for line_number in range(start_line, len(lines)):
        line = lines[line_number]
        if "{" in line:
            depth += 1
        elif "}" in line:
            depth -= 1
            if depth == 0:
                return line_number
    return None


def provide_folding_ranges(text: str) -> list[dict[str, Any]]:
    """
    Folding regions from each opening line to its matching closing line.

    Blocks that open and close on one line cannot fold and are skipped, as
    are blocks that are never closed.
    """
    lines = split_lines(text)
    ranges = []
    for line_number, line in enumerate(lines):
        if "{" not in line:
            continue
        end_line = find_matching_brace(lines, line_number)
        if end_line is None or end_line == line_number:
            continue
        ranges.append(
            {
                "startLine": line_number,
                "startCharacter": line.find("{"),
                "endLine": end_line,
                "endCharacter": lines[end_line].find("}"),
                "kind": FoldingRangeKind.REGION,
            }
        )
    return ranges
