"""
toylang.lsp - Language Server Protocol implementation for the toy language

This package provides an LSP server for editor integration with features
like:
- Diagnostics (TODO warnings)
- Keyword completion and hover
- Go to definition, references, highlights and rename
- Document and workspace symbols
- Code actions, formatting and folding
- Semantic tokens, selection ranges and call hierarchy

The LSP server communicates over stdio using JSON-RPC 2.0.
"""

from toylang.lsp.documents import DocumentStore
from toylang.lsp.server import ToyLanguageServer

__all__ = ["DocumentStore", "ToyLanguageServer"]
