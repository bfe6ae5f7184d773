"""
toylang.lsp.server - Toy Language Server Implementation

This module provides the main LSP server for the toy language. It owns
the DocumentStore, keeps track of the initialize/shutdown lifecycle and
routes each LSP method to its feature provider.

Features:
- Document synchronization (full text)
- Diagnostics for TODO comments
- Completion, hover, definition, references, highlights, rename
- Document and workspace symbols, code actions, code lenses
- Formatting, folding ranges, inlay hints, signature help, linked editing
- Semantic tokens, selection ranges and incoming call hierarchy

Usage:
    The server is started via `toylang lsp` and communicates over stdio.
"""

import sys
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from toylang.lsp import features, formatting
from toylang.lsp.config import ServerConfig
from toylang.lsp.documents import DocumentStore, did_change, did_close, did_open, parse_uri
from toylang.lsp.protocol import (
    ErrorCode,
    JsonRpcError,
    JsonRpcProtocol,
    ProtocolReader,
    ProtocolWriter,
    TextDocumentSyncKind,
    get_array,
    get_object,
    get_path,
    get_str,
)


@dataclass
class ToyLanguageServer:
    """
    Toy language Language Server Protocol implementation.

    The server is single threaded: every message is handled to completion
    before the next one is read.
    """

    # Protocol handler
    protocol: JsonRpcProtocol = field(default_factory=JsonRpcProtocol)

    # Open documents: uri -> text
    documents: DocumentStore = field(default_factory=DocumentStore)

    config: ServerConfig = field(default_factory=ServerConfig)

    # Server state
    initialized: bool = False
    shutdown_requested: bool = False
    exit_code: Optional[int] = None

    # Logging
    log_file: Any = None

    def __post_init__(self):
        """Set up the server after initialization."""
        self.protocol.log = self._log
        self._register_handlers()

    def _log(self, message: str) -> None:
        """Log a message for debugging."""
        if self.log_file:
            self.log_file.write(f"{message}\n")
            self.log_file.flush()
        # stdout carries the protocol, so log lines go to stderr
        print(f"[toylang-lsp] {message}", file=sys.stderr)
        sys.stderr.flush()

    def _register_handlers(self) -> None:
        """Register all LSP method handlers."""
        # Lifecycle
        self.protocol.register_request_handler("initialize", self._handle_initialize)
        self.protocol.register_notification_handler(
            "initialized", self._handle_initialized
        )
        self.protocol.register_request_handler("shutdown", self._handle_shutdown)
        self.protocol.register_notification_handler("exit", self._handle_exit)

        # Text document synchronization
        self.protocol.register_notification_handler(
            "textDocument/didOpen", self._handle_did_open
        )
        self.protocol.register_notification_handler(
            "textDocument/didChange", self._handle_did_change
        )
        self.protocol.register_notification_handler(
            "textDocument/didClose", self._handle_did_close
        )

        # Language features
        feature_handlers = {
            "textDocument/completion": self._handle_completion,
            "textDocument/hover": self._handle_hover,
            "textDocument/definition": self._handle_definition,
            "textDocument/references": self._handle_references,
            "textDocument/documentHighlight": self._handle_document_highlight,
            "textDocument/rename": self._handle_rename,
            "textDocument/documentSymbol": self._handle_document_symbol,
            "workspace/symbol": self._handle_workspace_symbol,
            "textDocument/codeAction": self._handle_code_action,
            "textDocument/codeLens": self._handle_code_lens,
            "textDocument/formatting": self._handle_formatting,
            "textDocument/foldingRange": self._handle_folding_range,
            "textDocument/inlayHint": self._handle_inlay_hint,
            "textDocument/signatureHelp": self._handle_signature_help,
            "textDocument/linkedEditingRange": self._handle_linked_editing_range,
            "textDocument/semanticTokens/full": self._handle_semantic_tokens,
            "textDocument/selectionRange": self._handle_selection_range,
            "textDocument/prepareCallHierarchy": self._handle_prepare_call_hierarchy,
            "callHierarchy/incomingCalls": self._handle_incoming_calls,
        }
        for method, handler in feature_handlers.items():
            self.protocol.register_request_handler(method, self._guarded(handler))

    def _guarded(self, handler: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """Reject feature requests outside the initialized, running state."""

        def guarded(params: Any) -> Any:
            if not self.initialized:
                raise JsonRpcError(
                    ErrorCode.SERVER_NOT_INITIALIZED, "Server not initialized"
                )
            if self.shutdown_requested:
                raise JsonRpcError(
                    ErrorCode.INVALID_REQUEST, "Server is shutting down"
                )
            return handler(params)

        return guarded

    # =========================================================================
    # Lifecycle Methods
    # =========================================================================

    def _handle_initialize(self, params: Any) -> dict[str, Any]:
        """Handle the initialize request."""
        if self.initialized:
            raise JsonRpcError(ErrorCode.INVALID_REQUEST, "Server already initialized")

        self._log("Received initialize request")
        self.config = self.config.with_initialization_options(
            get_path(params, "initializationOptions")
        )
        self.initialized = True

        return {
            "capabilities": {
                "textDocumentSync": {
                    "openClose": True,
                    "change": TextDocumentSyncKind.FULL,
                },
                "completionProvider": {"resolveProvider": False},
                "hoverProvider": True,
                "definitionProvider": True,
                "referencesProvider": True,
                "documentHighlightProvider": True,
                "renameProvider": True,
                "documentSymbolProvider": True,
                "workspaceSymbolProvider": True,
                "codeActionProvider": True,
                "codeLensProvider": {"resolveProvider": False},
                "documentFormattingProvider": True,
                "foldingRangeProvider": True,
                "inlayHintProvider": True,
                "signatureHelpProvider": {"triggerCharacters": ["(", "[", ","]},
                "linkedEditingRangeProvider": True,
                "semanticTokensProvider": {
                    "legend": features.SEMANTIC_TOKEN_LEGEND,
                    "full": True,
                },
                "selectionRangeProvider": True,
                "callHierarchyProvider": True,
            },
            "serverInfo": self.config.server_info(),
        }

    def _handle_initialized(self, params: Any) -> None:
        """Handle the initialized notification."""
        self._log("Server initialized")

    def _handle_shutdown(self, params: Any) -> None:
        """Handle the shutdown request."""
        self._log("Shutdown requested")
        self.shutdown_requested = True
        return None

    def _handle_exit(self, params: Any) -> None:
        """Handle the exit notification."""
        self._log("Exit notification received")
        self.exit_code = 0 if self.shutdown_requested else 1
        self.protocol.stop()

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _notification_uri(self, params: Any) -> Optional[str]:
        if not self.initialized:
            self._log("Dropping document notification before initialize")
            return None
        return parse_uri(get_path(params, "textDocument", "uri"))

    def _handle_did_open(self, params: Any) -> None:
        """Handle textDocument/didOpen notification."""
        uri = self._notification_uri(params)
        if uri is None:
            return

        diagnostics = did_open(self.documents, params)
        if diagnostics is None:
            self._log(f"Ignoring malformed didOpen for {uri}")
            return

        self._log(f"Document opened: {uri}")
        self._publish_diagnostics(uri, diagnostics)

    def _handle_did_change(self, params: Any) -> None:
        """Handle textDocument/didChange notification."""
        uri = self._notification_uri(params)
        if uri is None:
            return

        diagnostics = did_change(self.documents, params)
        if diagnostics is None:
            self._log(f"Ignoring malformed didChange for {uri}")
            return

        self._publish_diagnostics(uri, diagnostics)

    def _handle_did_close(self, params: Any) -> None:
        """Handle textDocument/didClose notification."""
        uri = self._notification_uri(params)
        if uri is None:
            return

        if did_close(self.documents, params) is None:
            return

        self._log(f"Document closed: {uri}")
        # Clear diagnostics for closed document
        self._publish_diagnostics(uri, [])

    def _publish_diagnostics(self, uri: str, diagnostics: list[dict[str, Any]]) -> None:
        """Publish diagnostics for a document."""
        if not self.config.publish_diagnostics:
            return
        self.protocol.send(features.create_publish_diagnostics(uri, diagnostics))

    # =========================================================================
    # Parameter Helpers
    # =========================================================================

    def _require_uri(self, params: Any) -> str:
        uri = parse_uri(get_path(params, "textDocument", "uri"))
        if uri is None:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, "Missing textDocument.uri")
        return uri

    def _require_object(self, params: Any, key: str) -> dict[str, Any]:
        value = get_object(params, key)
        if value is None:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, f"Missing {key}")
        return value

    def _text(self, uri: str) -> str:
        # Unknown documents read as empty, which every provider treats as no result
        text = self.documents.get(uri)
        return text if text is not None else ""

    # =========================================================================
    # Language Features
    # =========================================================================

    def _handle_completion(self, params: Any) -> dict[str, Any]:
        """Handle textDocument/completion request."""
        uri = self._require_uri(params)
        if uri not in self.documents:
            return {"isIncomplete": False, "items": []}
        # Suggestions for the word being typed, else the fixed keyword list
        items = features.get_completion_items(
            self.documents, uri, get_object(params, "position")
        )
        return {
            "isIncomplete": False,
            "items": items or features.generate_completions(),
        }

    def _handle_hover(self, params: Any) -> Optional[dict[str, Any]]:
        """Handle textDocument/hover request."""
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.get_hover(self.documents, uri, position)

    def _handle_definition(self, params: Any) -> Optional[dict[str, Any]]:
        """Handle textDocument/definition request."""
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.get_definition(self.documents, uri, position)

    def _handle_references(self, params: Any) -> list[dict[str, Any]]:
        """Handle textDocument/references request."""
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.find_references(self.documents, uri, position)

    def _handle_document_highlight(self, params: Any) -> list[dict[str, Any]]:
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.get_document_highlights(self.documents, uri, position)

    def _handle_rename(self, params: Any) -> Optional[dict[str, Any]]:
        """Handle textDocument/rename request."""
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        new_name = get_str(params, "newName")
        if not new_name:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, "Missing newName")
        return features.rename(self.documents, uri, position, new_name)

    def _handle_document_symbol(self, params: Any) -> list[dict[str, Any]]:
        """Handle textDocument/documentSymbol request."""
        uri = self._require_uri(params)
        return features.get_document_symbols(self.documents, uri)

    def _handle_workspace_symbol(self, params: Any) -> list[dict[str, Any]]:
        query = get_str(params, "query") or ""
        return features.workspace_symbols(self.documents, query)

    def _handle_code_action(self, params: Any) -> list[dict[str, Any]]:
        """Handle textDocument/codeAction request."""
        uri = self._require_uri(params)
        range_ = self._require_object(params, "range")
        diagnostics = get_array(get_object(params, "context"), "diagnostics") or []
        return features.get_code_actions(uri, range_, diagnostics)

    def _handle_code_lens(self, params: Any) -> list[dict[str, Any]]:
        uri = self._require_uri(params)
        return features.provide_code_lenses(self._text(uri))

    def _handle_formatting(self, params: Any) -> list[dict[str, Any]]:
        """Handle textDocument/formatting request."""
        uri = self._require_uri(params)
        return formatting.format_document(self.documents, uri)

    def _handle_folding_range(self, params: Any) -> list[dict[str, Any]]:
        uri = self._require_uri(params)
        return formatting.provide_folding_ranges(self._text(uri))

    def _handle_inlay_hint(self, params: Any) -> list[dict[str, Any]]:
        uri = self._require_uri(params)
        range_ = self._require_object(params, "range")
        return features.get_inlay_hints(self.documents, uri, range_)

    def _handle_signature_help(self, params: Any) -> Optional[dict[str, Any]]:
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.get_signature_help(self.documents, uri, position)

    def _handle_linked_editing_range(self, params: Any) -> Optional[dict[str, Any]]:
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.provide_linked_editing_ranges(self._text(uri), position)

    def _handle_semantic_tokens(self, params: Any) -> dict[str, Any]:
        uri = self._require_uri(params)
        return features.provide_semantic_tokens(self._text(uri))

    def _handle_selection_range(self, params: Any) -> list[dict[str, Any]]:
        uri = self._require_uri(params)
        positions = get_array(params, "positions")
        if positions is None:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, "Missing positions")
        return features.provide_selection_ranges(self._text(uri), positions)

    def _handle_prepare_call_hierarchy(
        self, params: Any
    ) -> Optional[list[dict[str, Any]]]:
        uri = self._require_uri(params)
        position = self._require_object(params, "position")
        return features.prepare_call_hierarchy(self.documents, uri, position)

    def _handle_incoming_calls(self, params: Any) -> list[dict[str, Any]]:
        """Handle callHierarchy/incomingCalls for an item from prepareCallHierarchy."""
        item = self._require_object(params, "item")
        name = get_str(item, "name")
        if not name:
            raise JsonRpcError(ErrorCode.INVALID_PARAMS, "Missing item.name")
        return features.call_hierarchy_incoming_calls(self.documents, name)

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    def run(self) -> int:
        """
        Run the language server main loop.

        Returns:
            The process exit code: 0 after a clean shutdown/exit sequence,
            1 otherwise.
        """
        self._log(f"{self.config.name} {self.config.version} starting")

        try:
            self.protocol.run()
        except KeyboardInterrupt:
            self._log("Interrupted")
        except Exception as e:
            self._log(f"Server error: {e}")
            traceback.print_exc(file=sys.stderr)
        finally:
            self._log("Server stopped")

        if self.exit_code is None:
            # Input ended without an exit notification
            return 0 if self.shutdown_requested else 1
        return self.exit_code


def start_server(
    config: Optional[ServerConfig] = None, input_stream=None, output_stream=None
) -> int:
    """
    Start the toy language server.

    Args:
        config: Server settings; config.log_path names an optional debug log.
        input_stream: Binary stream to read from (default: stdin).
        output_stream: Binary stream to write to (default: stdout).

    Returns:
        The exit code from ToyLanguageServer.run().
    """
    config = config or ServerConfig()
    log_file = None
    if config.log_path:
        log_file = open(config.log_path, "w")

    try:
        server = ToyLanguageServer(
            protocol=JsonRpcProtocol(
                reader=ProtocolReader(input_stream),
                writer=ProtocolWriter(output_stream),
            ),
            config=config,
            log_file=log_file,
        )
        return server.run()
    finally:
        if log_file:
            log_file.close()


def main() -> None:
    """Main entry point for toylang-lsp command."""
    import argparse

    parser = argparse.ArgumentParser(description="Toy Language Server")
    parser.add_argument(
        "--log",
        metavar="FILE",
        help="Log file for debugging",
    )
    args = parser.parse_args()

    sys.exit(start_server(ServerConfig.from_args(log_path=args.log)))


if __name__ == "__main__":
    main()
