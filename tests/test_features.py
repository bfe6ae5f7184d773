"""
Test suite for the language feature providers.

This module tests:
- TODO diagnostics and their quick fix
- Completion, hover and go to definition
- References, highlights and rename of my_variable
- Document symbols, workspace symbols and code lenses
- Inlay hints, signature help and linked editing ranges
- Prefix completion, semantic tokens, selection ranges and call hierarchy
"""

import json
import unittest

URI = "file:///workspace/main.toy"


def _store(text, uri=URI):
    from toylang.lsp.documents import DocumentStore

    store = DocumentStore()
    store.open(uri, text)
    return store


def _pos(line, character):
    return {"line": line, "character": character}


class TestDiagnostics(unittest.TestCase):
    """Test TODO diagnostics."""

    def test_single_todo(self):
        """Test that a TODO line yields one warning at the line start."""
        from toylang.lsp.features import generate_diagnostics

        diagnostics = generate_diagnostics("x TODO y")

        self.assertEqual(len(diagnostics), 1)
        diag = diagnostics[0]
        self.assertEqual(diag["message"], "Found a TODO item.")
        self.assertEqual(diag["range"], {"start": _pos(0, 0), "end": _pos(0, 0)})
        self.assertEqual(diag["severity"], 2)
        self.assertEqual(diag["source"], "toy-lang-server")

    def test_case_insensitive(self):
        from toylang.lsp.features import generate_diagnostics

        text = "let a = 1;\n// todo later\n// ToDo again\nlet b = 2;"
        diagnostics = generate_diagnostics(text)

        self.assertEqual([d["range"]["start"]["line"] for d in diagnostics], [1, 2])

    def test_no_todo(self):
        from toylang.lsp.features import generate_diagnostics

        self.assertEqual(generate_diagnostics("fn main() {}\n"), [])
        self.assertEqual(generate_diagnostics(""), [])

    def test_publish_notification(self):
        """Test the framed publishDiagnostics notification."""
        from toylang.lsp.features import create_publish_diagnostics, generate_diagnostics
        from toylang.lsp.protocol import decode

        diagnostics = generate_diagnostics("TODO")
        header, content = decode(create_publish_diagnostics(URI, diagnostics))
        message = json.loads(content)

        self.assertEqual(message["method"], "textDocument/publishDiagnostics")
        self.assertNotIn("id", message)
        self.assertEqual(message["params"]["uri"], URI)
        self.assertEqual(message["params"]["diagnostics"], json.loads(json.dumps(diagnostics)))


class TestCodeActions(unittest.TestCase):
    def test_todo_quick_fix(self):
        """Test that a TODO diagnostic gets a removal quick fix."""
        from toylang.lsp.features import generate_diagnostics, get_code_actions
        from toylang.lsp.protocol import make_range

        diagnostics = generate_diagnostics("ok\n// TODO")
        other = {"range": make_range(0, 0, 0, 2), "message": "Something else"}

        actions = get_code_actions(URI, make_range(0, 0, 1, 7), [other] + diagnostics)

        self.assertEqual(len(actions), 1)
        action = actions[0]
        self.assertEqual(action["title"], "Remove TODO item")
        self.assertEqual(action["kind"], "quickfix")
        self.assertEqual(
            action["edit"],
            {"changes": {URI: [{"range": make_range(1, 0, 1, 0), "newText": ""}]}},
        )

    def test_only_diagnostics_in_range(self):
        """Test that TODOs outside the requested range get no fix."""
        from toylang.lsp.features import generate_diagnostics, get_code_actions
        from toylang.lsp.protocol import make_range

        diagnostics = generate_diagnostics("// TODO one\nok\n// TODO two")

        actions = get_code_actions(URI, make_range(2, 0, 2, 11), diagnostics)

        self.assertEqual(len(actions), 1)
        self.assertEqual(
            actions[0]["edit"]["changes"][URI][0]["range"], make_range(2, 0, 2, 0)
        )
        self.assertEqual(get_code_actions(URI, make_range(1, 0, 1, 2), diagnostics), [])
        self.assertEqual(get_code_actions(URI, {"start": "x"}, diagnostics), [])

    def test_no_diagnostics(self):
        from toylang.lsp.features import get_code_actions
        from toylang.lsp.protocol import make_range

        self.assertEqual(get_code_actions(URI, make_range(0, 0, 0, 0), []), [])
        self.assertEqual(
            get_code_actions(URI, make_range(0, 0, 0, 0), ["junk", {"message": "x"}]),
            [],
        )


class TestCompletionHoverDefinition(unittest.TestCase):
    def test_completions(self):
        """Test the fixed keyword completions."""
        from toylang.lsp.features import generate_completions
        from toylang.lsp.protocol import CompletionItemKind

        items = generate_completions()

        self.assertEqual([item["label"] for item in items], ["fn", "let", "struct"])
        self.assertTrue(all(item["kind"] == CompletionItemKind.KEYWORD for item in items))

    def test_hover_scans_from_previous_column(self):
        """Test that hover starts its word one column left of the cursor."""
        from toylang.lsp.features import get_hover

        store = _store("fn main() {\n    let x = 1;\n}")

        hover = get_hover(store, URI, _pos(0, 1))
        self.assertEqual(hover["contents"]["value"], "Keyword: Function definition")

        hover = get_hover(store, URI, _pos(1, 5))
        self.assertEqual(hover["contents"]["kind"], "markdown")
        self.assertEqual(hover["contents"]["value"], "Keyword: Variable declaration")

        # Cursor at the start of the keyword reads from one column earlier
        self.assertIsNone(get_hover(store, URI, _pos(1, 4)))
        self.assertIsNone(get_hover(store, URI, _pos(0, 0)))

    def test_hover_struct(self):
        from toylang.lsp.features import get_hover

        store = _store("struct Point {}")
        hover = get_hover(store, URI, _pos(0, 1))
        self.assertEqual(hover["contents"]["value"], "Keyword: Structure definition")

    def test_hover_soft_failures(self):
        from toylang.lsp.features import get_hover

        store = _store("fn main() {}")
        self.assertIsNone(get_hover(store, URI, _pos(0, 4)))
        self.assertIsNone(get_hover(store, URI, _pos(5, 1)))
        self.assertIsNone(get_hover(store, URI, _pos(0, 40)))
        self.assertIsNone(get_hover(store, "file:///other.toy", _pos(0, 1)))
        self.assertIsNone(get_hover(store, URI, {"line": 0}))

    def test_definition(self):
        """Test that my_function always resolves to the top of the file."""
        from toylang.lsp.features import get_definition
        from toylang.lsp.protocol import make_range

        store = _store("fn my_function() {}\nlet y = my_function();")

        location = get_definition(store, URI, _pos(1, 9))
        self.assertEqual(location, {"uri": URI, "range": make_range(0, 0, 0, 0)})

        self.assertIsNone(get_definition(store, URI, _pos(1, 8)))
        self.assertIsNone(get_definition(store, URI, _pos(1, 1)))
        self.assertIsNone(get_definition(store, "file:///missing.toy", _pos(1, 9)))


class TestReferences(unittest.TestCase):
    """Test references, highlights and rename for my_variable."""

    TEXT = "let my_variable = 10;\nmy_variable = 20;"

    def test_find_references(self):
        from toylang.lsp.features import find_references
        from toylang.lsp.protocol import make_range

        locations = find_references(_store(self.TEXT), URI, _pos(0, 4))

        self.assertEqual(
            locations,
            [
                {"uri": URI, "range": make_range(0, 4, 0, 15)},
                {"uri": URI, "range": make_range(1, 0, 1, 11)},
            ],
        )

    def test_first_occurrence_per_line(self):
        """Test that a line mentioning the word twice reports it once."""
        from toylang.lsp.features import find_references

        store = _store("my_variable = my_variable + 1;\nlet z = 0;")
        locations = find_references(store, URI, _pos(0, 0))

        self.assertEqual(len(locations), 1)
        self.assertEqual(locations[0]["range"]["start"]["character"], 0)

    def test_references_no_offset(self):
        """Test that references read the word exactly at the cursor."""
        from toylang.lsp.features import find_references

        store = _store(self.TEXT)
        self.assertEqual(find_references(store, URI, _pos(0, 5)), [])
        self.assertEqual(find_references(store, URI, _pos(0, 0)), [])
        self.assertEqual(find_references(store, URI, _pos(9, 0)), [])
        self.assertEqual(find_references(store, "file:///x.toy", _pos(0, 4)), [])

    def test_highlights(self):
        from toylang.lsp.features import get_document_highlights
        from toylang.lsp.protocol import DocumentHighlightKind, make_range

        highlights = get_document_highlights(_store(self.TEXT), URI, _pos(1, 0))

        self.assertEqual(
            highlights,
            [
                {"range": make_range(0, 4, 0, 15), "kind": DocumentHighlightKind.TEXT},
                {"range": make_range(1, 0, 1, 11), "kind": DocumentHighlightKind.TEXT},
            ],
        )
        self.assertEqual(get_document_highlights(_store(self.TEXT), URI, _pos(0, 0)), [])

    def test_rename(self):
        from toylang.lsp.features import rename
        from toylang.lsp.protocol import make_range

        edit = rename(_store(self.TEXT), URI, _pos(0, 4), "counter")

        self.assertEqual(
            edit,
            {
                "changes": {
                    URI: [
                        {"range": make_range(0, 4, 0, 15), "newText": "counter"},
                        {"range": make_range(1, 0, 1, 11), "newText": "counter"},
                    ]
                }
            },
        )

    def test_rename_other_word(self):
        from toylang.lsp.features import rename

        self.assertIsNone(rename(_store(self.TEXT), URI, _pos(0, 0), "x"))
        self.assertIsNone(rename(_store(self.TEXT), "file:///x.toy", _pos(0, 4), "x"))


class TestSymbols(unittest.TestCase):
    def test_document_symbols(self):
        """Test function symbols with full-line and name ranges."""
        from toylang.lsp.features import get_document_symbols
        from toylang.lsp.protocol import SymbolKind, make_range

        store = _store("fn main() {\n}\nfn helper_2(x) {}")
        symbols = get_document_symbols(store, URI)

        self.assertEqual(
            symbols,
            [
                {
                    "name": "main",
                    "kind": SymbolKind.FUNCTION,
                    "range": make_range(0, 0, 0, 11),
                    "selectionRange": make_range(0, 3, 0, 7),
                },
                {
                    "name": "helper_2",
                    "kind": SymbolKind.FUNCTION,
                    "range": make_range(2, 0, 2, 17),
                    "selectionRange": make_range(2, 3, 2, 11),
                },
            ],
        )

    def test_fn_without_space_is_skipped(self):
        """Test that lines starting with "fn" but not "fn " give no symbol."""
        from toylang.lsp.features import get_document_symbols

        store = _store("fn(x) {}\nfn{}\nfnord()\n    fn indented() {}\nfn last")
        names = [s["name"] for s in get_document_symbols(store, URI)]

        self.assertEqual(names, ["last"])

    def test_symbol_name_edge_cases(self):
        """Test that a name may end the line and an empty name gives no symbol."""
        from toylang.lsp.features import get_document_symbols
        from toylang.lsp.protocol import make_range

        symbols = get_document_symbols(_store("fn main\nfn (x) {}"), URI)

        self.assertEqual(len(symbols), 1)
        self.assertEqual(symbols[0]["name"], "main")
        self.assertEqual(symbols[0]["range"], make_range(0, 0, 0, 7))
        self.assertEqual(symbols[0]["selectionRange"], make_range(0, 3, 0, 7))

    def test_document_symbols_unknown_uri(self):
        from toylang.lsp.features import get_document_symbols

        self.assertEqual(get_document_symbols(_store("fn a() {}"), "file:///b.toy"), [])

    def test_workspace_symbols(self):
        from toylang.lsp.features import workspace_symbols
        from toylang.lsp.protocol import SymbolKind

        store = _store("fn parse_expr() {}\nstruct Parser {\n}")
        store.open("file:///workspace/other.toy", "    fn parse_stmt() {}\nfn run() {}")

        results = workspace_symbols(store, "PARSE")
        found = sorted((r["name"], r["kind"], r["location"]["uri"]) for r in results)

        self.assertEqual(
            found,
            [
                ("Parser", SymbolKind.STRUCT, URI),
                ("parse_expr", SymbolKind.FUNCTION, URI),
                ("parse_stmt", SymbolKind.FUNCTION, "file:///workspace/other.toy"),
            ],
        )
        self.assertEqual(workspace_symbols(store, ""), [])
        self.assertEqual(workspace_symbols(store, "missing"), [])

    def test_code_lenses(self):
        from toylang.lsp.features import provide_code_lenses
        from toylang.lsp.protocol import make_range

        text = "fn main() {\n}\n#[test]\nfn checks_sum() {\n}\nfn helper() {\n}"
        lenses = provide_code_lenses(text)

        self.assertEqual(len(lenses), 3)
        self.assertEqual(lenses[0]["range"], make_range(0, 3, 0, 7))
        self.assertEqual(lenses[0]["command"]["title"], "Run function")
        self.assertEqual(lenses[1]["command"]["title"], "Run test")
        self.assertEqual(lenses[1]["command"]["arguments"], ["checks_sum"])
        self.assertEqual(lenses[2]["command"]["title"], "Show references")
        self.assertEqual(lenses[2]["command"]["command"], "toylang.references.show")


class TestInlayHints(unittest.TestCase):
    def test_literal_types(self):
        from toylang.lsp.features import get_inlay_hints
        from toylang.lsp.protocol import InlayHintKind, make_range

        text = 'let count = 10;\nlet name = "toy";\nlet ok = true;\nlet f = g();'
        hints = get_inlay_hints(_store(text), URI, make_range(0, 0, 3, 0))

        self.assertEqual(
            [(h["position"], h["label"]) for h in hints],
            [(_pos(0, 9), ": i32"), (_pos(1, 8), ": &str"), (_pos(2, 6), ": bool")],
        )
        self.assertTrue(all(h["kind"] == InlayHintKind.TYPE for h in hints))

    def test_outside_range(self):
        from toylang.lsp.features import get_inlay_hints
        from toylang.lsp.protocol import make_range

        text = "let a = 1;\nlet b = 2;\nlet c = 3;"
        hints = get_inlay_hints(_store(text), URI, make_range(1, 0, 1, 5))

        self.assertEqual([h["position"]["line"] for h in hints], [1])
        self.assertEqual(get_inlay_hints(_store(text), URI, {}), [])


class TestSignatureHelp(unittest.TestCase):
    def test_active_parameter(self):
        from toylang.lsp.features import get_signature_help

        store = _store('    println!("{}", x);')

        help_ = get_signature_help(store, URI, _pos(0, 14))
        self.assertEqual(help_["signatures"][0]["label"], "println!(format: &str, ...)")
        self.assertEqual(help_["activeSignature"], 0)
        self.assertEqual(help_["activeParameter"], 0)

        help_ = get_signature_help(store, URI, _pos(0, 19))
        self.assertEqual(help_["activeParameter"], 1)

    def test_nested_call(self):
        """Test that commas inside inner calls are not counted."""
        from toylang.lsp.features import get_signature_help

        store = _store("assert_eq!(add(1, 2), ")
        help_ = get_signature_help(store, URI, _pos(0, 22))

        self.assertEqual(help_["signatures"][0]["label"], "assert_eq!(left: T, right: T)")
        self.assertEqual(help_["activeParameter"], 1)

    def test_vec_brackets(self):
        from toylang.lsp.features import get_signature_help

        help_ = get_signature_help(_store("let v = vec![1, 2"), URI, _pos(0, 17))
        self.assertEqual(help_["signatures"][0]["label"], "vec![element, ...] -> Vec<T>")

    def test_unknown_or_outside_call(self):
        from toylang.lsp.features import get_signature_help

        store = _store("my_call(1, 2);\nprintln!(x);")
        self.assertIsNone(get_signature_help(store, URI, _pos(0, 9)))
        self.assertIsNone(get_signature_help(store, URI, _pos(1, 0)))
        self.assertIsNone(get_signature_help(store, URI, _pos(1, 12)))
        self.assertIsNone(get_signature_help(store, URI, _pos(4, 0)))


class TestLinkedEditing(unittest.TestCase):
    def test_whole_word_occurrences(self):
        from toylang.lsp.features import provide_linked_editing_ranges
        from toylang.lsp.protocol import make_range

        text = "let total = 0;\ntotal = total + totally;"
        result = provide_linked_editing_ranges(text, _pos(0, 6))

        self.assertEqual(result["wordPattern"], "total")
        self.assertEqual(
            result["ranges"],
            [make_range(0, 4, 0, 9), make_range(1, 0, 1, 5), make_range(1, 8, 1, 13)],
        )

    def test_not_on_identifier(self):
        from toylang.lsp.features import provide_linked_editing_ranges

        text = "let x = 10;"
        self.assertIsNone(provide_linked_editing_ranges(text, _pos(0, 3)))
        self.assertIsNone(provide_linked_editing_ranges(text, _pos(0, 8)))
        self.assertIsNone(provide_linked_editing_ranges(text, _pos(0, 11)))
        self.assertIsNone(provide_linked_editing_ranges(text, _pos(3, 0)))


class TestPrefixCompletion(unittest.TestCase):
    def _labels(self, text, line, character):
        from toylang.lsp.features import get_completion_items

        items = get_completion_items(_store(text), URI, _pos(line, character))
        return [item["label"] for item in items]

    def test_keywords_for_prefix(self):
        from toylang.lsp.features import get_completion_items
        from toylang.lsp.protocol import CompletionItemKind

        store = _store("fn main() {\n    l\n}")
        items = get_completion_items(store, URI, _pos(1, 5))

        self.assertEqual([item["label"] for item in items], ["let", "loop"])
        for item in items:
            self.assertEqual(item["kind"], CompletionItemKind.KEYWORD)

    def test_types_follow_keywords(self):
        from toylang.lsp.features import get_completion_items
        from toylang.lsp.protocol import CompletionItemKind

        items = get_completion_items(_store("let x: i"), URI, _pos(0, 8))

        self.assertEqual([item["label"] for item in items], ["if", "impl", "i32"])
        self.assertEqual(items[-1]["kind"], CompletionItemKind.TYPE_PARAMETER)

    def test_case_insensitive(self):
        self.assertEqual(self._labels("s", 0, 1), ["struct", "String", "str"])
        self.assertEqual(self._labels("L", 0, 1), ["let", "loop"])
        self.assertEqual(self._labels("le", 0, 2), ["let"])

    def test_no_partial_word(self):
        from toylang.lsp.features import get_completion_items

        self.assertEqual(self._labels("fn main() {\n    \n}", 1, 4), [])
        self.assertEqual(self._labels("xyz", 0, 3), [])
        self.assertEqual(self._labels("let", 5, 0), [])
        self.assertEqual(
            get_completion_items(_store("l"), "file:///missing.toy", _pos(0, 1)), []
        )


class TestSemanticTokens(unittest.TestCase):
    def test_legend(self):
        from toylang.lsp.features import SEMANTIC_TOKEN_LEGEND

        self.assertEqual(
            SEMANTIC_TOKEN_LEGEND["tokenTypes"],
            ["keyword", "function", "variable", "string", "number", "type"],
        )
        self.assertEqual(SEMANTIC_TOKEN_LEGEND["tokenModifiers"], [])

    def test_function_name(self):
        from toylang.lsp.features import provide_semantic_tokens

        result = provide_semantic_tokens("fn calculate() {}")
        self.assertEqual(result["data"], [0, 0, 2, 0, 0, 0, 3, 9, 1, 0])

    def test_let_statement(self):
        from toylang.lsp.features import provide_semantic_tokens

        result = provide_semantic_tokens("let mut count = 10;")
        self.assertEqual(
            result["data"],
            [0, 0, 3, 0, 0, 0, 4, 3, 0, 0, 0, 4, 5, 2, 0, 0, 8, 2, 4, 0],
        )

    def test_builtin_type(self):
        from toylang.lsp.features import provide_semantic_tokens

        result = provide_semantic_tokens("let x: i32 = 0;")
        self.assertEqual(
            result["data"],
            [0, 0, 3, 0, 0, 0, 4, 1, 2, 0, 0, 3, 3, 5, 0, 0, 6, 1, 4, 0],
        )

    def test_multiline_with_escaped_string(self):
        """Test that line deltas reset the start column and escapes stay in the string."""
        from toylang.lsp.features import provide_semantic_tokens

        text = 'fn test() {\n    let x = "a\\"b";\n}'
        result = provide_semantic_tokens(text)
        self.assertEqual(
            result["data"],
            [
                0, 0, 2, 0, 0,
                0, 3, 4, 1, 0,
                1, 4, 3, 0, 0,
                0, 4, 1, 2, 0,
                0, 4, 6, 3, 0,
            ],
        )

    def test_empty_document(self):
        from toylang.lsp.features import provide_semantic_tokens

        self.assertEqual(provide_semantic_tokens(""), {"data": []})


class TestSelectionRanges(unittest.TestCase):
    def test_word_then_statement(self):
        from toylang.lsp.features import provide_selection_ranges
        from toylang.lsp.protocol import make_range

        result = provide_selection_ranges("let variable = 42;", [_pos(0, 6)])

        self.assertEqual(len(result), 1)
        self.assertEqual(result[0]["range"], make_range(0, 4, 0, 12))
        parent = result[0]["parent"]
        self.assertEqual(parent["range"], make_range(0, 0, 0, 18))
        self.assertNotIn("parent", parent)

    def test_block_is_outermost(self):
        from toylang.lsp.features import provide_selection_ranges
        from toylang.lsp.protocol import make_range

        text = "fn test() {\n    let x = 42;\n}"
        selection = provide_selection_ranges(text, [_pos(1, 8)])[0]

        self.assertEqual(selection["range"], make_range(1, 8, 1, 9))
        self.assertEqual(selection["parent"]["range"], make_range(1, 4, 1, 15))
        block = selection["parent"]["parent"]
        self.assertEqual(block["range"], make_range(0, 10, 2, 1))
        self.assertNotIn("parent", block)

    def test_macro_name_is_one_word(self):
        from toylang.lsp.features import provide_selection_ranges
        from toylang.lsp.protocol import make_range

        text = 'fn main() {\n    println!("hi");\n    let y = 1;\n}'
        selection = provide_selection_ranges(text, [_pos(1, 10)])[0]

        self.assertEqual(selection["range"], make_range(1, 4, 1, 12))
        self.assertEqual(selection["parent"]["range"], make_range(1, 4, 1, 19))
        self.assertEqual(selection["parent"]["parent"]["range"], make_range(0, 10, 3, 1))

    def test_one_result_per_position(self):
        from toylang.lsp.features import provide_selection_ranges
        from toylang.lsp.protocol import make_range

        text = "let a = 1;\nlet b = 2;"
        result = provide_selection_ranges(text, [_pos(0, 4), _pos(1, 4)])

        self.assertEqual(
            [node["range"] for node in result],
            [make_range(0, 4, 0, 5), make_range(1, 4, 1, 5)],
        )

    def test_identical_levels_collapse(self):
        from toylang.lsp.features import provide_selection_ranges
        from toylang.lsp.protocol import make_range

        self.assertEqual(
            provide_selection_ranges("x", [_pos(0, 0)]),
            [{"range": make_range(0, 0, 0, 1)}],
        )
        # No word under the cursor leaves only the statement
        self.assertEqual(
            provide_selection_ranges("a = 1;", [_pos(0, 2)]),
            [{"range": make_range(0, 0, 0, 6)}],
        )

    def test_invalid_positions_skipped(self):
        from toylang.lsp.features import provide_selection_ranges

        self.assertEqual(provide_selection_ranges("let x = 1;", [_pos(10, 0)]), [])
        self.assertEqual(provide_selection_ranges("let x = 1;", [_pos(0, 40)]), [])
        self.assertEqual(provide_selection_ranges("let x = 1;", [{"line": "x"}]), [])
        self.assertEqual(provide_selection_ranges("let x = 1;", []), [])


MAIN_URI = "file:///workspace/main.toy"
UTILS_URI = "file:///workspace/utils.toy"

MAIN_TEXT = (
    "fn main() {\n"
    "    let result = calculate(10);\n"
    "    helper();\n"
    "}\n"
    "\n"
    "fn another_func() {\n"
    "    calculate(20);\n"
    "}"
)

UTILS_TEXT = (
    "fn calculate(x: i32) -> i32 {\n"
    "    helper();\n"
    "    x * 2\n"
    "}\n"
    "\n"
    "fn helper() {\n"
    "    print(1);\n"
    "}"
)


def _workspace():
    store = _store(MAIN_TEXT, MAIN_URI)
    store.open(UTILS_URI, UTILS_TEXT)
    return store


class TestCallHierarchy(unittest.TestCase):
    def test_prepare_finds_definition(self):
        from toylang.lsp.features import prepare_call_hierarchy
        from toylang.lsp.protocol import SymbolKind, make_range

        items = prepare_call_hierarchy(_workspace(), MAIN_URI, _pos(1, 20))

        self.assertEqual(
            items,
            [
                {
                    "name": "calculate",
                    "kind": SymbolKind.FUNCTION,
                    "uri": UTILS_URI,
                    "range": make_range(0, 0, 3, 1),
                    "selectionRange": make_range(0, 3, 0, 12),
                }
            ],
        )

    def test_prepare_without_definition(self):
        from toylang.lsp.features import prepare_call_hierarchy

        store = _workspace()
        self.assertIsNone(prepare_call_hierarchy(store, MAIN_URI, _pos(1, 0)))
        self.assertIsNone(prepare_call_hierarchy(store, MAIN_URI, _pos(1, 8)))
        self.assertIsNone(prepare_call_hierarchy(store, "file:///none.toy", _pos(0, 0)))

    def test_incoming_calls_across_documents(self):
        from toylang.lsp.features import call_hierarchy_incoming_calls
        from toylang.lsp.protocol import make_range

        calls = call_hierarchy_incoming_calls(_workspace(), "calculate")

        self.assertEqual([call["from"]["name"] for call in calls], ["main", "another_func"])
        self.assertEqual(calls[0]["from"]["uri"], MAIN_URI)
        self.assertEqual(calls[0]["from"]["range"], make_range(0, 0, 3, 1))
        self.assertEqual(calls[0]["from"]["selectionRange"], make_range(0, 3, 0, 7))
        self.assertEqual(calls[0]["fromRanges"], [make_range(1, 17, 1, 26)])
        self.assertEqual(calls[1]["fromRanges"], [make_range(6, 4, 6, 13)])

    def test_incoming_calls_of_helper(self):
        from toylang.lsp.features import call_hierarchy_incoming_calls

        calls = call_hierarchy_incoming_calls(_workspace(), "helper")

        self.assertEqual(
            [(call["from"]["name"], call["from"]["uri"]) for call in calls],
            [("main", MAIN_URI), ("calculate", UTILS_URI)],
        )

    def test_recursive_call(self):
        from toylang.lsp.features import call_hierarchy_incoming_calls
        from toylang.lsp.protocol import make_range

        text = (
            "fn factorial(n: u32) -> u32 {\n"
            "    if n <= 1 {\n"
            "        1\n"
            "    } else {\n"
            "        n * factorial(n - 1)\n"
            "    }\n"
            "}"
        )
        calls = call_hierarchy_incoming_calls(_store(text), "factorial")

        self.assertEqual(len(calls), 1)
        self.assertEqual(calls[0]["from"]["name"], "factorial")
        self.assertEqual(calls[0]["fromRanges"], [make_range(4, 12, 4, 21)])

    def test_repeated_calls_grouped(self):
        from toylang.lsp.features import call_hierarchy_incoming_calls
        from toylang.lsp.protocol import make_range

        text = "fn batch() {\n    calculate(1);\n    calculate(2);\n}"
        calls = call_hierarchy_incoming_calls(_store(text), "calculate")

        self.assertEqual(len(calls), 1)
        self.assertEqual(
            calls[0]["fromRanges"], [make_range(1, 4, 1, 13), make_range(2, 4, 2, 13)]
        )

    def test_no_incoming_calls(self):
        from toylang.lsp.documents import DocumentStore
        from toylang.lsp.features import call_hierarchy_incoming_calls

        self.assertEqual(call_hierarchy_incoming_calls(_workspace(), "nonexistent"), [])
        self.assertEqual(call_hierarchy_incoming_calls(DocumentStore(), "main"), [])
        # Longer identifiers and calls outside a fn body do not count
        self.assertEqual(
            call_hierarchy_incoming_calls(_store("fn a() {\n    sub_calc(1);\n}"), "calc"), []
        )
        self.assertEqual(call_hierarchy_incoming_calls(_store("fn a() {\n}\nb();"), "b"), [])


if __name__ == "__main__":
    unittest.main()
