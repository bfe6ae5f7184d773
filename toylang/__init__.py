"""
toylang - A micro language server for a small brace-delimited toy language.

The interesting parts live in toylang.lsp; toylang.cli wires them up as the
`toylang` command.
"""

__version__ = "0.1.0"
