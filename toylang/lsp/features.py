"""
toylang.lsp.features - Language feature providers

Each provider answers one LSP method for the toy language. Providers are
plain functions: they read the DocumentStore they are given, recompute
everything from the current text, and never raise for an unknown document,
an out-of-range position or a word they do not recognise. Those cases
return None or an empty list.

Formatting and folding live in toylang.lsp.formatting.
"""

from enum import IntEnum
from typing import Any, Iterator, Optional

from toylang.lsp.documents import (
    DocumentStore,
    get_line,
    is_word_char,
    resolve_word_at,
    split_lines,
)
from toylang.lsp.formatting import find_matching_brace
from toylang.lsp.protocol import (
    CodeActionKind,
    CompletionItemKind,
    DiagnosticSeverity,
    DocumentHighlightKind,
    InlayHintKind,
    SymbolKind,
    build_notification,
    get_int,
    get_object,
    make_completion_item,
    make_diagnostic,
    make_hover,
    make_location,
    make_range,
    make_text_edit,
    make_workspace_edit,
)

DIAGNOSTIC_SOURCE = "toy-lang-server"
TODO_MESSAGE = "Found a TODO item."

KEYWORDS = ["fn", "let", "struct"]

# Offered for a partial word, keywords before builtin types
COMPLETION_KEYWORDS = [
    "let", "loop", "fn", "for", "false", "if", "impl", "struct", "true", "type",
]
COMPLETION_TYPES = ["i32", "String", "str"]

KEYWORD_HOVERS = {
    "fn": "Keyword: Function definition",
    "let": "Keyword: Variable declaration",
    "struct": "Keyword: Structure definition",
}

# The toy language has exactly one resolvable function and one variable
DEFINITION_TARGET = "my_function"
REFERENCE_TARGET = "my_variable"


def _position(position: Any) -> Optional[tuple[int, int]]:
    line = get_int(position, "line")
    character = get_int(position, "character")
    if line is None or character is None:
        return None
    return line, character


def _word_at(
    store: DocumentStore, uri: str, position: Any, offset: int = 0
) -> Optional[str]:
    text = store.get(uri)
    pos = _position(position)
    if text is None or pos is None:
        return None
    line, character = pos
    resolved = resolve_word_at(text, line, character + offset)
    if resolved is None:
        return None
    return resolved[0]


def _first_occurrences(text: str, word: str) -> list[dict[str, Any]]:
    """Range of the first occurrence of word on every line containing it."""
    ranges = []
    for line_number, line in enumerate(split_lines(text)):
        start = line.find(word)
        if start < 0:
            continue
        ranges.append(make_range(line_number, start, line_number, start + len(word)))
    return ranges


# =============================================================================
# Diagnostics
# =============================================================================


def generate_diagnostics(text: str) -> list[dict[str, Any]]:
    """Warn about every line mentioning TODO, in any letter case."""
    diagnostics = []
    for line_number, line in enumerate(split_lines(text)):
        if "todo" in line.lower():
            diagnostics.append(
                make_diagnostic(
                    range_=make_range(line_number, 0, line_number, 0),
                    message=TODO_MESSAGE,
                    severity=DiagnosticSeverity.WARNING,
                    source=DIAGNOSTIC_SOURCE,
                )
            )
    return diagnostics


def create_publish_diagnostics(uri: str, diagnostics: list[dict[str, Any]]) -> bytes:
    """Build the framed textDocument/publishDiagnostics notification."""
    return build_notification(
        "textDocument/publishDiagnostics",
        {"uri": uri, "diagnostics": diagnostics},
    )


# =============================================================================
# Completion, hover, definition
# =============================================================================


def generate_completions() -> list[dict[str, Any]]:
    """Keyword completions; the same list is offered at every position."""
    return [make_completion_item(kw, CompletionItemKind.KEYWORD) for kw in KEYWORDS]


def _partial_word(text: str, line: int, character: int) -> Optional[str]:
    line_text = get_line(text, line)
    if line_text is None or not 0 <= character <= len(line_text):
        return None
    start = character
    while start > 0 and is_word_char(line_text[start - 1]):
        start -= 1
    return line_text[start:character] or None


def get_completion_items(
    store: DocumentStore, uri: str, position: Any
) -> list[dict[str, Any]]:
    """
    Keyword and builtin type suggestions for the word being typed.

    The partial word is the identifier run ending at the cursor. Matching
    ignores case, so "L" offers "let" and "loop". Returns an empty list when
    the cursor does not follow a word.
    """
    text = store.get(uri)
    pos = _position(position)
    if text is None or pos is None:
        return []

    partial = _partial_word(text, *pos)
    if partial is None:
        return []

    prefix = partial.lower()
    items = [
        make_completion_item(keyword, CompletionItemKind.KEYWORD)
        for keyword in COMPLETION_KEYWORDS
        if keyword.startswith(prefix)
    ]
    items.extend(
        make_completion_item(type_name, CompletionItemKind.TYPE_PARAMETER)
        for type_name in COMPLETION_TYPES
        if type_name.lower().startswith(prefix)
    )
    return items


def get_hover(
    store: DocumentStore, uri: str, position: Any
) -> Optional[dict[str, Any]]:
    """Describe the keyword under the cursor."""
    # Hover and definition scan from one column left of the cursor
    word = _word_at(store, uri, position, offset=-1)
    if word not in KEYWORD_HOVERS:
        return None
    return make_hover(KEYWORD_HOVERS[word])


def get_definition(
    store: DocumentStore, uri: str, position: Any
) -> Optional[dict[str, Any]]:
    """Jump to my_function, which is always defined at the top of the file."""
    word = _word_at(store, uri, position, offset=-1)
    if word != DEFINITION_TARGET:
        return None
    return make_location(uri, make_range(0, 0, 0, 0))


# =============================================================================
# References, rename, highlights
# =============================================================================


def find_references(
    store: DocumentStore, uri: str, position: Any
) -> list[dict[str, Any]]:
    """
    Locations of my_variable, one per line.

    Only the first occurrence on each line is reported.
    """
    word = _word_at(store, uri, position)
    text = store.get(uri)
    if word != REFERENCE_TARGET or text is None:
        return []
    return [make_location(uri, range_) for range_ in _first_occurrences(text, word)]


def rename(
    store: DocumentStore, uri: str, position: Any, new_name: str
) -> Optional[dict[str, Any]]:
    """Rename my_variable on every line it appears (first occurrence per line)."""
    word = _word_at(store, uri, position)
    text = store.get(uri)
    if word != REFERENCE_TARGET or text is None:
        return None

    edits = [
        make_text_edit(range_, new_name) for range_ in _first_occurrences(text, word)
    ]
    return make_workspace_edit({uri: edits})


def get_document_highlights(
    store: DocumentStore, uri: str, position: Any
) -> list[dict[str, Any]]:
    word = _word_at(store, uri, position)
    text = store.get(uri)
    if word != REFERENCE_TARGET or text is None:
        return []
    return [
        {"range": range_, "kind": DocumentHighlightKind.TEXT}
        for range_ in _first_occurrences(text, word)
    ]


# =============================================================================
# Symbols
# =============================================================================


def _leading_word(text: str) -> str:
    end = 0
    while end < len(text) and is_word_char(text[end]):
        end += 1
    return text[:end]


def get_document_symbols(store: DocumentStore, uri: str) -> list[dict[str, Any]]:
    """
    Function symbols for lines of the form "fn <name>...".

    A line such as "fn(" starts with "fn" but not with "fn ", and is skipped.
    """
    text = store.get(uri)
    if text is None:
        return []

    prefix = "fn "
    symbols = []
    for line_number, line in enumerate(split_lines(text)):
        if not line.startswith(prefix):
            continue
        name = _leading_word(line[len(prefix) :])
        if not name:
            continue
        symbols.append(
            {
                "name": name,
                "kind": SymbolKind.FUNCTION,
                "range": make_range(line_number, 0, line_number, len(line)),
                "selectionRange": make_range(
                    line_number, len(prefix), line_number, len(prefix) + len(name)
                ),
            }
        )
    return symbols


def _definition_name(line: str, keyword: str) -> Optional[str]:
    stripped = line.lstrip()
    prefix = keyword + " "
    if not stripped.startswith(prefix):
        return None
    return _leading_word(stripped[len(prefix) :]) or None


def workspace_symbols(store: DocumentStore, query: str) -> list[dict[str, Any]]:
    """
    Search fn and struct definitions across every open document.

    Names match when they contain the query, ignoring case. An empty query
    matches nothing.
    """
    if not query:
        return []

    query_lower = query.lower()
    results = []
    for uri, text in store.items():
        if query_lower not in text.lower():
            continue
        for line_number, line in enumerate(split_lines(text)):
            for keyword, kind in (("fn", SymbolKind.FUNCTION), ("struct", SymbolKind.STRUCT)):
                name = _definition_name(line, keyword)
                if name is None or query_lower not in name.lower():
                    continue
                results.append(
                    {
                        "name": name,
                        "kind": kind,
                        "location": make_location(
                            uri, make_range(line_number, 0, line_number, len(line))
                        ),
                    }
                )
    return results


# =============================================================================
# Code actions
# =============================================================================


def _range_bounds(range_: Any) -> Optional[tuple[tuple[int, int], tuple[int, int]]]:
    start = _position(get_object(range_, "start"))
    end = _position(get_object(range_, "end"))
    if start is None or end is None:
        return None
    return start, end


def get_code_actions(
    uri: str, range_: Any, diagnostics: list[Any]
) -> list[dict[str, Any]]:
    """
    Quick fixes for the diagnostics sent with a codeAction request.

    Only TODO warnings that touch the requested range have a fix: deleting
    the diagnostic's range.
    """
    requested = _range_bounds(range_)
    if requested is None:
        return []

    actions = []
    for diagnostic in diagnostics:
        if not isinstance(diagnostic, dict):
            continue
        if diagnostic.get("message") != TODO_MESSAGE:
            continue
        diagnostic_range = get_object(diagnostic, "range")
        bounds = _range_bounds(diagnostic_range)
        if bounds is None:
            continue
        # Positions compare as (line, character) tuples
        if bounds[0] > requested[1] or bounds[1] < requested[0]:
            continue
        actions.append(
            {
                "title": "Remove TODO item",
                "kind": CodeActionKind.QUICK_FIX,
                "edit": make_workspace_edit(
                    {uri: [make_text_edit(diagnostic_range, "")]}
                ),
            }
        )
    return actions


# =============================================================================
# Inlay hints
# =============================================================================


def _literal_type(value: str) -> Optional[str]:
    if value.isdigit():
        return ": i32"
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return ": &str"
    if value in ("true", "false"):
        return ": bool"
    return None


def get_inlay_hints(store: DocumentStore, uri: str, range_: Any) -> list[dict[str, Any]]:
    """Type hints after the name in `let <name> = <literal>;` lines."""
    text = store.get(uri)
    bounds = _range_bounds(range_)
    if text is None or bounds is None:
        return []
    start, end = bounds

    hints = []
    for line_number, line in enumerate(split_lines(text)):
        if line_number < start[0] or line_number > end[0]:
            continue
        if not line.startswith("let "):
            continue
        name, sep, value = line[len("let ") :].partition(" = ")
        if not sep:
            continue
        label = _literal_type(value.rstrip(";"))
        if label is None:
            continue
        hints.append(
            {
                "position": {"line": line_number, "character": len("let ") + len(name)},
                "label": label,
                "kind": InlayHintKind.TYPE,
            }
        )
    return hints


# =============================================================================
# Signature help
# =============================================================================

SIGNATURES = {
    "println!": (
        "println!(format: &str, ...)",
        [("format: &str", "Format string"), ("...", "Arguments for formatting")],
    ),
    "format!": (
        "format!(format: &str, ...) -> String",
        [("format: &str", "Format string"), ("...", "Arguments for formatting")],
    ),
    "vec!": (
        "vec![element, ...] -> Vec<T>",
        [("element", "Vector element"), ("...", "Additional elements")],
    ),
    "assert_eq!": (
        "assert_eq!(left: T, right: T)",
        [("left: T", "Left side of assertion"), ("right: T", "Right side of assertion")],
    ),
}


def _find_call(line: str, cursor: int) -> Optional[tuple[str, str]]:
    """
    Find the call enclosing the cursor.

    Returns (callee, text from the opening bracket to the cursor).
    """
    before = line[:cursor]
    depth = 0
    open_at = None
    for i in range(len(before) - 1, -1, -1):
        c = before[i]
        if c in ")]":
            depth += 1
        elif c in "([":
            if depth == 0:
                open_at = i
                break
            depth -= 1
    if open_at is None:
        return None

    start = open_at
    while start > 0 and (is_word_char(before[start - 1]) or before[start - 1] == "!"):
        start -= 1
    if start == open_at:
        return None
    return before[start:open_at], before[open_at:]


def _active_parameter(inside_call: str) -> int:
    depth = 0
    commas = 0
    for c in inside_call:
        if c in "([":
            depth += 1
        elif c in ")]":
            depth -= 1
        elif c == "," and depth == 1:
            commas += 1
    return commas


def get_signature_help(
    store: DocumentStore, uri: str, position: Any
) -> Optional[dict[str, Any]]:
    """Signature of the builtin macro call around the cursor."""
    text = store.get(uri)
    pos = _position(position)
    if text is None or pos is None:
        return None

    lines = split_lines(text)
    line, character = pos
    if not 0 <= line < len(lines) or character < 0:
        return None

    call = _find_call(lines[line], character)
    if call is None or call[0] not in SIGNATURES:
        return None

    callee, inside_call = call
    label, params = SIGNATURES[callee]
    return {
        "signatures": [
            {
                "label": label,
                "parameters": [
                    {"label": param, "documentation": doc} for param, doc in params
                ],
            }
        ],
        "activeSignature": 0,
        "activeParameter": _active_parameter(inside_call),
    }


# =============================================================================
# Code lenses
# =============================================================================


def _lens_command(lines: list[str], line_number: int, name: str) -> dict[str, Any]:
    if line_number > 0 and lines[line_number - 1].startswith("#[test]"):
        return {"title": "Run test", "command": "toylang.test.run", "arguments": [name]}
    if name == "main":
        return {"title": "Run function", "command": "toylang.main.run"}
    return {
        "title": "Show references",
        "command": "toylang.references.show",
        "arguments": [name],
    }


def provide_code_lenses(text: str) -> list[dict[str, Any]]:
    """A run or references lens over the name of each top-level fn."""
    lines = split_lines(text)
    lenses = []
    for line_number, line in enumerate(lines):
        if not line.startswith("fn "):
            continue
        name = _leading_word(line[len("fn ") :])
        if not name:
            continue
        lenses.append(
            {
                "range": make_range(
                    line_number, len("fn "), line_number, len("fn ") + len(name)
                ),
                "command": _lens_command(lines, line_number, name),
            }
        )
    return lenses


# =============================================================================
# Linked editing
# =============================================================================


def _identifier_at(text: str, line: int, character: int) -> Optional[str]:
    lines = split_lines(text)
    if not 0 <= line < len(lines):
        return None
    line_text = lines[line]
    if not 0 <= character < len(line_text) or not is_word_char(line_text[character]):
        return None

    start = character
    while start > 0 and is_word_char(line_text[start - 1]):
        start -= 1
    end = character
    while end < len(line_text) and is_word_char(line_text[end]):
        end += 1

    if not (line_text[start].isalpha() or line_text[start] == "_"):
        return None
    return line_text[start:end]


def provide_linked_editing_ranges(text: str, position: Any) -> Optional[dict[str, Any]]:
    """Every whole-word occurrence of the identifier under the cursor."""
    pos = _position(position)
    if pos is None:
        return None
    identifier = _identifier_at(text, *pos)
    if identifier is None:
        return None

    ranges = []
    for line_number, line in enumerate(split_lines(text)):
        start = line.find(identifier)
        while start >= 0:
            end = start + len(identifier)
            before_ok = start == 0 or not is_word_char(line[start - 1])
            after_ok = end >= len(line) or not is_word_char(line[end])
            if before_ok and after_ok:
                ranges.append(make_range(line_number, start, line_number, end))
            start = line.find(identifier, start + 1)

    return {"ranges": ranges, "wordPattern": identifier}


# =============================================================================
# Semantic tokens
# =============================================================================


class SemanticTokenType(IntEnum):
    """Token types, indexed as in SEMANTIC_TOKEN_LEGEND."""

    KEYWORD = 0
    FUNCTION = 1
    VARIABLE = 2
    STRING = 3
    NUMBER = 4
    TYPE = 5


SEMANTIC_TOKEN_LEGEND = {
    "tokenTypes": [token_type.name.lower() for token_type in SemanticTokenType],
    "tokenModifiers": [],
}

SEMANTIC_KEYWORDS = frozenset(
    [
        "fn", "let", "mut", "if", "else", "for", "while", "loop", "match",
        "struct", "enum", "impl", "trait", "use", "pub", "return", "const",
        "static", "mod", "as", "where", "self", "Self",
    ]
)

SEMANTIC_TYPES = frozenset(
    [
        "i8", "i16", "i32", "i64", "i128", "isize",
        "u8", "u16", "u32", "u64", "u128", "usize",
        "f32", "f64", "bool", "char", "str", "String",
    ]
)


def _string_end(line: str, start: int) -> int:
    # An unterminated string runs to the end of the line
    escaped = False
    for i in range(start + 1, len(line)):
        if escaped:
            escaped = False
        elif line[i] == "\\":
            escaped = True
        elif line[i] == '"':
            return i + 1
    return len(line)


def _lex(text: str) -> Iterator[tuple[int, int, int, SemanticTokenType]]:
    """Yield (line, start, length, type) for every token, in document order."""
    previous_word = ""
    for line_number, line in enumerate(split_lines(text)):
        i = 0
        while i < len(line):
            c = line[i]
            if c == '"':
                end = _string_end(line, i)
                yield line_number, i, end - i, SemanticTokenType.STRING
            elif "0" <= c <= "9":
                end = i + 1
                while end < len(line) and "0" <= line[end] <= "9":
                    end += 1
                yield line_number, i, end - i, SemanticTokenType.NUMBER
            elif c.isalpha() or c == "_":
                end = i + 1
                while end < len(line) and is_word_char(line[end]):
                    end += 1
                word = line[i:end]
                if word in SEMANTIC_KEYWORDS:
                    token_type = SemanticTokenType.KEYWORD
                elif word in SEMANTIC_TYPES:
                    token_type = SemanticTokenType.TYPE
                elif previous_word == "fn":
                    token_type = SemanticTokenType.FUNCTION
                else:
                    token_type = SemanticTokenType.VARIABLE
                previous_word = word
                yield line_number, i, end - i, token_type
            else:
                end = i + 1
            i = end


def provide_semantic_tokens(text: str) -> dict[str, Any]:
    """
    Full-document semantic tokens.

    Each token is five integers: line delta, start delta (relative to the
    previous token on the same line, else absolute), length, type index and
    modifier bits (always 0).
    """
    data: list[int] = []
    previous_line = previous_start = 0
    for line, start, length, token_type in _lex(text):
        delta_line = line - previous_line
        delta_start = start - previous_start if delta_line == 0 else start
        data.extend([delta_line, delta_start, length, int(token_type), 0])
        previous_line, previous_start = line, start
    return {"data": data}


# =============================================================================
# Selection ranges
# =============================================================================


def _is_selection_char(c: str) -> bool:
    # Macro names such as println! select as one word
    return is_word_char(c) or c == "!"


def _enclosing_block(
    lines: list[str], line: int, start: int, end: int
) -> Optional[dict[str, Any]]:
    """Range from the unmatched { before start to the } closing it after end."""
    opening = None
    depth = 0
    for line_number in range(line, -1, -1):
        text = lines[line_number]
        stop = start if line_number == line else len(text)
        for col in range(stop - 1, -1, -1):
            if text[col] == "}":
                depth += 1
            elif text[col] == "{":
                if depth == 0:
                    opening = (line_number, col)
                    break
                depth -= 1
        if opening is not None:
            break
    if opening is None:
        return None

    depth = 0
    for line_number in range(line, len(lines)):
        text = lines[line_number]
        first = end if line_number == line else 0
        for col in range(first, len(text)):
            if text[col] == "{":
                depth += 1
            elif text[col] == "}":
                if depth == 0:
                    return make_range(opening[0], opening[1], line_number, col + 1)
                depth -= 1
    return None


def _selection_range(
    lines: list[str], line: int, character: int
) -> Optional[dict[str, Any]]:
    if not 0 <= line < len(lines):
        return None
    text = lines[line]
    if not 0 <= character <= len(text):
        return None

    start = character
    while start > 0 and _is_selection_char(text[start - 1]):
        start -= 1
    end = character
    while end < len(text) and _is_selection_char(text[end]):
        end += 1

    # The statement runs from after the previous ";" through the next one
    statement_start = text.rfind(";", 0, start) + 1
    while statement_start < start and text[statement_start].isspace():
        statement_start += 1
    semicolon = text.find(";", end)
    statement_end = semicolon + 1 if semicolon >= 0 else max(len(text.rstrip()), end)

    ranges = []
    if start < end:
        ranges.append(make_range(line, start, line, end))
    ranges.append(make_range(line, statement_start, line, statement_end))
    block = _enclosing_block(lines, line, statement_start, statement_end)
    if block is not None:
        ranges.append(block)

    # Build outermost first; a parent must be strictly larger than its child
    selection: Optional[dict[str, Any]] = None
    for range_ in reversed(ranges):
        if selection is not None and selection["range"] == range_:
            continue
        node: dict[str, Any] = {"range": range_}
        if selection is not None:
            node["parent"] = selection
        selection = node
    return selection


def provide_selection_ranges(text: str, positions: list[Any]) -> list[dict[str, Any]]:
    """
    Nested selections for each position: word, then statement, then block.

    Positions outside the document are skipped.
    """
    lines = split_lines(text)
    selections = []
    for position in positions:
        pos = _position(position)
        if pos is None:
            continue
        selection = _selection_range(lines, *pos)
        if selection is not None:
            selections.append(selection)
    return selections


# =============================================================================
# Call hierarchy
# =============================================================================


def _fn_name_start(line: str) -> int:
    return len(line) - len(line.lstrip()) + len("fn ")


def _call_hierarchy_item(uri: str, lines: list[str], line_number: int) -> dict[str, Any]:
    line = lines[line_number]
    name = _definition_name(line, "fn") or ""
    name_start = _fn_name_start(line)
    end_line = find_matching_brace(lines, line_number)
    if end_line is None:
        end_line = len(lines) - 1
    return {
        "name": name,
        "kind": SymbolKind.FUNCTION,
        "uri": uri,
        "range": make_range(line_number, 0, end_line, len(lines[end_line])),
        "selectionRange": make_range(
            line_number, name_start, line_number, name_start + len(name)
        ),
    }


def _enclosing_function(lines: list[str], line_number: int) -> Optional[int]:
    """Definition line of the fn whose body contains line_number."""
    for candidate in range(line_number, -1, -1):
        if _definition_name(lines[candidate], "fn") is None:
            continue
        end_line = find_matching_brace(lines, candidate)
        if end_line is None or line_number <= end_line:
            return candidate
        return None
    return None


def _call_sites(line: str, name: str) -> Iterator[int]:
    pattern = name + "("
    start = line.find(pattern)
    while start >= 0:
        if start == 0 or not is_word_char(line[start - 1]):
            yield start
        start = line.find(pattern, start + 1)


def prepare_call_hierarchy(
    store: DocumentStore, uri: str, position: Any
) -> Optional[list[dict[str, Any]]]:
    """Call hierarchy items for the fn definitions of the identifier under the cursor."""
    text = store.get(uri)
    pos = _position(position)
    if text is None or pos is None:
        return None
    name = _identifier_at(text, *pos)
    if name is None:
        return None

    items = []
    for doc_uri, doc_text in store.items():
        lines = split_lines(doc_text)
        for line_number, line in enumerate(lines):
            if _definition_name(line, "fn") == name:
                items.append(_call_hierarchy_item(doc_uri, lines, line_number))
    return items or None


def call_hierarchy_incoming_calls(
    store: DocumentStore, name: str
) -> list[dict[str, Any]]:
    """
    Functions calling `name`, across every open document.

    A call is `name(` not preceded by an identifier character. Each caller
    appears once, with the range of every call it makes. Calls outside any
    fn body are not reported.
    """
    if not name:
        return []

    calls: dict[tuple[str, int], dict[str, Any]] = {}
    for uri, text in store.items():
        lines = split_lines(text)
        for line_number, line in enumerate(lines):
            # The name in its own definition is not a call
            skip = _fn_name_start(line) if _definition_name(line, "fn") == name else None
            for start in _call_sites(line, name):
                if start == skip:
                    continue
                caller = _enclosing_function(lines, line_number)
                if caller is None:
                    break
                key = (uri, caller)
                if key not in calls:
                    calls[key] = {
                        "from": _call_hierarchy_item(uri, lines, caller),
                        "fromRanges": [],
                    }
                calls[key]["fromRanges"].append(
                    make_range(line_number, start, line_number, start + len(name))
                )
    return list(calls.values())
