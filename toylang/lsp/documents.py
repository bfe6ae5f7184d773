"""
toylang.lsp.documents - Open document tracking

The DocumentStore maps document URIs to their full current text. It is
owned by the server and handed to every feature provider explicitly;
nothing in this package keeps a module-level store.

Lifecycle notifications (didOpen/didChange/didClose) are applied through
the did_* helpers, which treat malformed payloads as a no-op.
"""

from typing import Any, Iterator, Optional
from urllib.parse import urlsplit

from toylang.lsp.protocol import get_array, get_object, get_str


class DocumentStore:
    """Full-text documents keyed by URI."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    def open(self, uri: str, text: str) -> None:
        """Insert a document, overwriting any previous text."""
        self._documents[uri] = text

    def change(self, uri: str, text: str) -> None:
        """Replace the whole text of a document. Unknown URIs are opened."""
        self._documents[uri] = text

    def close(self, uri: str) -> None:
        """Forget a document. Closing an unknown URI does nothing."""
        self._documents.pop(uri, None)

    def get(self, uri: str) -> Optional[str]:
        return self._documents.get(uri)

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._documents.items()))

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)


# =============================================================================
# Lifecycle notifications
# =============================================================================


def parse_uri(value: Any) -> Optional[str]:
    """
    Validate a document URI.

    Returns the URI unchanged, or None if it is not a string or has no scheme.
    """
    if not isinstance(value, str):
        return None
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if not parts.scheme:
        return None
    return value


def _document_uri(params: Any) -> Optional[str]:
    return parse_uri(get_str(get_object(params, "textDocument"), "uri"))


def did_open(store: DocumentStore, params: Any) -> Optional[list[dict[str, Any]]]:
    """
    Apply a textDocument/didOpen notification.

    Returns the diagnostics for the opened text, or None when the payload is
    malformed (in which case nothing is stored).
    """
    from toylang.lsp.features import generate_diagnostics

    uri = _document_uri(params)
    text = get_str(get_object(params, "textDocument"), "text")
    if uri is None or text is None:
        return None

    store.open(uri, text)
    return generate_diagnostics(text)


def _changed_text(params: Any) -> Optional[str]:
    # Full sync: the last content change holds the whole document
    changes = get_array(params, "contentChanges")
    if changes:
        text = get_str(changes[-1], "text")
        if text is not None:
            return text
    return get_str(get_object(params, "textDocument"), "text")


def did_change(store: DocumentStore, params: Any) -> Optional[list[dict[str, Any]]]:
    """
    Apply a textDocument/didChange notification.

    Returns the diagnostics for the new text, or None when the payload is
    malformed and the stored text was left alone.
    """
    from toylang.lsp.features import generate_diagnostics

    uri = _document_uri(params)
    text = _changed_text(params)
    if uri is None or text is None:
        return None

    store.change(uri, text)
    return generate_diagnostics(text)


def did_close(store: DocumentStore, params: Any) -> Optional[str]:
    """
    Apply a textDocument/didClose notification. Never raises.

    Returns the closed URI, or None if no open document was removed.
    """
    uri = _document_uri(params)
    if uri is None or uri not in store:
        return None
    store.close(uri)
    return uri


# =============================================================================
# Word resolution
# =============================================================================


def split_lines(text: str) -> list[str]:
    """
    Split text into lines.

    A trailing "\\r" is dropped from every line and a final newline does not
    start an extra empty line, so "" has no lines at all.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def get_line(text: str, line: int) -> Optional[str]:
    """Get a specific line (0-based), or None if out of range."""
    if line < 0:
        return None
    lines = split_lines(text)
    if line >= len(lines):
        return None
    return lines[line]


def is_word_char(c: str) -> bool:
    return c.isalnum() or c == "_"


def resolve_word_at(
    text: str, line: int, character: int
) -> Optional[tuple[str, int, int]]:
    """
    Find the identifier that starts at the given position.

    The scan only moves forward from `character`, so a position in the
    middle of a word yields its tail. A position on a non-word character
    (or at the end of the line) yields an empty word.

    Returns:
        (word, start, end) in character offsets, or None if the line or the
        offset is out of range.
    """
    line_text = get_line(text, line)
    if line_text is None:
        return None
    if character < 0 or character > len(line_text):
        return None

    end = character
    while end < len(line_text) and is_word_char(line_text[end]):
        end += 1

    return line_text[character:end], character, end
