"""
toylang.lsp.protocol - JSON-RPC 2.0 Protocol Implementation for LSP

This module provides low-level JSON-RPC 2.0 protocol handling for the
Language Server Protocol. It handles:
- Message framing with Content-Length headers
- Classifying JSON-RPC envelopes into requests, notifications and responses
- Building framed success, error and notification bodies
- Reading from stdin and writing to stdout

The LSP uses JSON-RPC 2.0 over stdio with HTTP-style headers:
    Content-Length: <length>\r\n
    \r\n
    <JSON body>
"""

import json
import sys
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional, Union

HEADER_SEPARATOR = "\r\n\r\n"
CONTENT_LENGTH_PREFIX = "Content-Length: "
JSONRPC_VERSION = "2.0"

# =============================================================================
# JSON-RPC Error Codes
# =============================================================================


class ErrorCode(IntEnum):
    """JSON-RPC and LSP error codes."""

    # JSON-RPC defined errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Implementation defined server error
    SERVER_ERROR = -32000

    # LSP defined errors
    SERVER_NOT_INITIALIZED = -32002
    UNKNOWN_ERROR_CODE = -32001

    # LSP request errors
    REQUEST_CANCELLED = -32800
    CONTENT_MODIFIED = -32801


class JsonRpcError(Exception):
    """Exception representing a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-RPC error object."""
        return {
            "code": int(self.code),
            "message": self.message,
            "data": self.data,
        }


# =============================================================================
# Transport Framing
# =============================================================================


def encode(content: str) -> bytes:
    """
    Frame a message body with its Content-Length header.

    The declared length is the UTF-8 byte length of the body, not its
    character count.
    """
    body = content.encode("utf-8")
    header = f"{CONTENT_LENGTH_PREFIX}{len(body)}{HEADER_SEPARATOR}".encode("ascii")
    return header + body


def decode(message: Union[bytes, str]) -> Optional[tuple[str, str]]:
    """
    Split a framed message into its header block and content block.

    Returns:
        (header, content), or None if the header separator is missing
        or the message is not valid UTF-8.
    """
    if isinstance(message, bytes):
        try:
            message = message.decode("utf-8")
        except UnicodeDecodeError:
            return None

    header, sep, content = message.partition(HEADER_SEPARATOR)
    if not sep:
        return None
    return header, content


def parse_content_length(header: str) -> Optional[int]:
    """
    Extract the length from a single "Content-Length: <n>" header.

    Returns None when the prefix does not match exactly or the value
    is not a non-negative decimal integer.
    """
    if not header.startswith(CONTENT_LENGTH_PREFIX):
        return None

    value = header[len(CONTENT_LENGTH_PREFIX) :].strip()
    if not value.isascii() or not value.isdigit():
        return None
    return int(value)


# =============================================================================
# Message Types
# =============================================================================


@dataclass
class Request:
    """A JSON-RPC request message."""

    id: Union[int, float, str]
    method: str
    params: Optional[Union[dict[str, Any], list[Any]]] = None


@dataclass
class Notification:
    """A JSON-RPC notification message (no id, no response expected)."""

    method: str
    params: Optional[Union[dict[str, Any], list[Any]]] = None


@dataclass
class Response:
    """A JSON-RPC response message."""

    id: Union[int, float, str, None]
    result: Any = None
    error: Optional[dict[str, Any]] = None


@dataclass
class Invalid:
    """An envelope that is neither a request, a notification nor a response."""

    reason: str
    id: Union[int, float, str, None] = None


Message = Union[Request, Notification, Response, Invalid]


# =============================================================================
# Envelope Classification
# =============================================================================


def parse_json(content: str) -> Optional[Any]:
    """Parse a message body, returning None on a syntax error."""
    try:
        return json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return None


def _is_valid_id(value: Any) -> bool:
    # bool is an int subclass but not a JSON number
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))


def get_object(value: Any, key: str) -> Optional[dict[str, Any]]:
    """Return value[key] if value is an object and the field is an object."""
    if not isinstance(value, dict):
        return None
    item = value.get(key)
    return item if isinstance(item, dict) else None


def get_array(value: Any, key: str) -> Optional[list[Any]]:
    """Return value[key] if value is an object and the field is an array."""
    if not isinstance(value, dict):
        return None
    item = value.get(key)
    return item if isinstance(item, list) else None


def get_str(value: Any, key: str) -> Optional[str]:
    """Return value[key] if value is an object and the field is a string."""
    if not isinstance(value, dict):
        return None
    item = value.get(key)
    return item if isinstance(item, str) else None


def get_int(value: Any, key: str) -> Optional[int]:
    """Return value[key] if value is an object and the field is an integer."""
    if not isinstance(value, dict):
        return None
    item = value.get(key)
    if isinstance(item, bool) or not isinstance(item, int):
        return None
    return item


def get_path(value: Any, *keys: str) -> Optional[Any]:
    """
    Walk nested objects along keys.

    Example:
        get_path(params, "textDocument", "uri")
    """
    current = value
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def get_method(value: Any) -> Optional[str]:
    """Return the method name, or None if absent or not a string."""
    return get_str(value, "method")


def get_params(value: Any) -> Optional[Union[dict[str, Any], list[Any]]]:
    """Return the params, or None if absent or not structured (object/array)."""
    if not isinstance(value, dict):
        return None
    params = value.get("params")
    if isinstance(params, (dict, list)):
        return params
    return None


def classify(value: Any) -> Message:
    """
    Classify a decoded JSON value as a JSON-RPC envelope.

    A request carries a string or numeric id, a notification carries no
    id at all; anything with an id of another type is invalid.
    """
    if not isinstance(value, dict):
        return Invalid("Message is not a JSON object")

    msg_id = value.get("id")
    recovered_id = msg_id if _is_valid_id(msg_id) else None

    if value.get("jsonrpc") != JSONRPC_VERSION:
        return Invalid("Missing or unsupported jsonrpc version", recovered_id)

    if "method" in value:
        method = get_method(value)
        if method is None:
            return Invalid("Method must be a string", recovered_id)

        params = get_params(value)
        if "id" not in value:
            return Notification(method=method, params=params)
        if recovered_id is None:
            return Invalid("Request id must be a string or a number")
        return Request(id=recovered_id, method=method, params=params)

    if "result" in value or "error" in value:
        error = value.get("error")
        return Response(
            id=recovered_id,
            result=value.get("result"),
            error=error if isinstance(error, dict) else None,
        )

    return Invalid("Missing method field", recovered_id)


# =============================================================================
# Response Building
# =============================================================================


def _frame(message: dict[str, Any]) -> bytes:
    return encode(json.dumps(message, ensure_ascii=False))


def build_success(msg_id: Any, result: Any) -> bytes:
    """Build a framed JSON-RPC success response."""
    return _frame({"jsonrpc": JSONRPC_VERSION, "id": msg_id, "result": result})


def build_error(msg_id: Any, code: int, message: str, data: Any = None) -> bytes:
    """
    Build a framed JSON-RPC error response.

    The error object always carries a "data" key, null when no data is given.
    """
    error = JsonRpcError(code, message, data)
    return _frame({"jsonrpc": JSONRPC_VERSION, "id": msg_id, "error": error.to_dict()})


def build_notification(method: str, params: Any) -> bytes:
    """Build a framed JSON-RPC notification (no id key)."""
    return _frame({"jsonrpc": JSONRPC_VERSION, "method": method, "params": params})


# =============================================================================
# Protocol Transport
# =============================================================================


class ProtocolReader:
    """
    Reads LSP messages from an input stream.

    LSP messages have HTTP-style headers followed by a JSON body:
        Content-Length: <length>\r\n
        \r\n
        <JSON body>
    """

    def __init__(self, input_stream=None):
        """
        Initialize the reader.

        Args:
            input_stream: The input stream to read from (default: sys.stdin.buffer)
        """
        self.input = input_stream or sys.stdin.buffer
        self._lock = threading.Lock()

    def read_message(self) -> Optional[str]:
        """
        Read a single LSP message body.

        Returns:
            The decoded body text, or None if EOF.

        Raises:
            JsonRpcError: If the headers are malformed or the body is not UTF-8.
        """
        with self._lock:
            content_length = self._read_headers()
            if content_length is None:
                return None

            body = self.input.read(content_length)
            if len(body) < content_length:
                return None

            try:
                return body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise JsonRpcError(
                    ErrorCode.PARSE_ERROR,
                    f"Message body is not valid UTF-8: {e}",
                )

    def _read_headers(self) -> Optional[int]:
        """
        Read LSP headers and return the Content-Length.

        Returns:
            The content length, or None if EOF.
        """
        content_length = None
        saw_length_header = False

        while True:
            line = self.input.readline()
            if not line:
                return None

            line = line.decode("ascii", errors="replace").rstrip("\r\n")

            if not line:
                # Empty line marks end of headers
                break

            name, _, value = line.partition(":")
            if name.strip().lower() == "content-length":
                saw_length_header = True
                value = value.strip()
                # Header names are case-insensitive and the space is optional
                content_length = (
                    int(value) if value.isascii() and value.isdigit() else None
                )
            # Ignore other headers (like Content-Type)

        if not saw_length_header:
            raise JsonRpcError(
                ErrorCode.PARSE_ERROR,
                "Missing Content-Length header",
            )
        if content_length is None:
            raise JsonRpcError(
                ErrorCode.PARSE_ERROR,
                "Invalid Content-Length header",
            )

        return content_length


class ProtocolWriter:
    """
    Writes framed LSP messages to an output stream.
    """

    def __init__(self, output_stream=None):
        """
        Initialize the writer.

        Args:
            output_stream: The output stream to write to (default: sys.stdout.buffer)
        """
        self.output = output_stream or sys.stdout.buffer
        self._lock = threading.Lock()

    def write(self, framed: bytes) -> None:
        """Write one already framed message and flush."""
        with self._lock:
            self.output.write(framed)
            self.output.flush()


# =============================================================================
# JSON-RPC Protocol Handler
# =============================================================================


@dataclass
class JsonRpcProtocol:
    """
    High-level JSON-RPC protocol handler.

    Classifies incoming messages, dispatches requests and notifications to
    registered handlers and turns failures into error responses.
    """

    reader: ProtocolReader = field(default_factory=ProtocolReader)
    writer: ProtocolWriter = field(default_factory=ProtocolWriter)

    # Optional sink for diagnostic log lines
    log: Optional[Callable[[str], None]] = None

    # Request handlers: method -> callable
    _request_handlers: dict[str, Callable] = field(default_factory=dict)

    # Notification handlers: method -> callable
    _notification_handlers: dict[str, Callable] = field(default_factory=dict)

    _running: bool = False

    def _log(self, message: str) -> None:
        if self.log is not None:
            self.log(message)

    def register_request_handler(
        self, method: str, handler: Callable[[Any], Any]
    ) -> None:
        """
        Register a handler for a request method.

        The handler receives the params and should return a result
        or raise JsonRpcError.

        Args:
            method: The JSON-RPC method name.
            handler: The handler function.
        """
        self._request_handlers[method] = handler

    def register_notification_handler(
        self, method: str, handler: Callable[[Any], None]
    ) -> None:
        """
        Register a handler for a notification method.

        The handler receives the params and should not return anything.

        Args:
            method: The JSON-RPC method name.
            handler: The handler function.
        """
        self._notification_handlers[method] = handler

    def handle_content(self, content: str) -> Optional[bytes]:
        """
        Handle a raw message body.

        Returns:
            A framed response if one is owed to the client, None otherwise.
        """
        value = parse_json(content)
        if value is None:
            return build_error(None, ErrorCode.PARSE_ERROR, "Invalid JSON")
        return self.handle_message(value)

    def handle_message(self, value: Any) -> Optional[bytes]:
        """
        Handle a decoded JSON-RPC message.

        Returns:
            A framed response if the input was a request or was invalid,
            None otherwise.
        """
        message = classify(value)

        if isinstance(message, Invalid):
            return build_error(message.id, ErrorCode.INVALID_REQUEST, message.reason)

        if isinstance(message, Response):
            # The server never sends requests, so nothing is waiting on this
            self._log(f"Ignoring response to unknown request: {message.id}")
            return None

        params = message.params if message.params is not None else {}

        if isinstance(message, Request):
            return self._handle_request(message.id, message.method, params)

        self._handle_notification(message.method, params)
        return None

    def _handle_request(self, msg_id: Any, method: str, params: Any) -> bytes:
        """Handle an incoming request."""
        handler = self._request_handlers.get(method)

        if handler is None:
            return build_error(
                msg_id,
                ErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {method}",
            )

        try:
            return build_success(msg_id, handler(params))
        except JsonRpcError as e:
            return build_error(msg_id, e.code, e.message, e.data)
        except Exception as e:
            self._log(f"Error handling {method}: {e}")
            return build_error(msg_id, ErrorCode.INTERNAL_ERROR, str(e))

    def _handle_notification(self, method: str, params: Any) -> None:
        """Handle an incoming notification."""
        handler = self._notification_handlers.get(method)

        if handler is None:
            self._log(f"Ignoring notification: {method}")
            return

        try:
            handler(params)
        except Exception as e:
            # Notifications don't get responses, so the error is only logged
            self._log(f"Error handling {method}: {e}")

    def send(self, framed: bytes) -> None:
        """Send an already framed message to the client."""
        self.writer.write(framed)

    def stop(self) -> None:
        """Make run() return after the message being handled."""
        self._running = False

    def run(self) -> None:
        """
        Run the protocol handler main loop.

        Reads messages from the input stream and dispatches them
        to registered handlers. Continues until EOF or stop().
        """
        self._running = True
        while self._running:
            try:
                content = self.reader.read_message()
            except JsonRpcError as e:
                # Protocol-level error, keep reading
                self._log(f"Transport error: {e.message}")
                self.send(build_error(None, e.code, e.message, e.data))
                continue

            if content is None:
                # EOF
                break

            response = self.handle_content(content)
            if response is not None:
                self.send(response)


# =============================================================================
# LSP-Specific Types
# =============================================================================


class DiagnosticSeverity(IntEnum):
    """LSP diagnostic severity levels."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class CompletionItemKind(IntEnum):
    """LSP completion item kinds used by toylang."""

    TEXT = 1
    FUNCTION = 3
    VARIABLE = 6
    KEYWORD = 14
    STRUCT = 22
    TYPE_PARAMETER = 25


class SymbolKind(IntEnum):
    """LSP symbol kinds used by toylang."""

    FIELD = 8
    FUNCTION = 12
    VARIABLE = 13
    STRUCT = 23


class DocumentHighlightKind(IntEnum):
    """LSP document highlight kinds."""

    TEXT = 1
    READ = 2
    WRITE = 3


class InlayHintKind(IntEnum):
    """LSP inlay hint kinds."""

    TYPE = 1
    PARAMETER = 2


class TextDocumentSyncKind(IntEnum):
    """LSP text document sync kinds."""

    NONE = 0
    FULL = 1
    INCREMENTAL = 2


class CodeActionKind:
    """LSP code action kinds (string valued)."""

    QUICK_FIX = "quickfix"
    REFACTOR = "refactor"
    SOURCE = "source"


class FoldingRangeKind:
    """LSP folding range kinds (string valued)."""

    COMMENT = "comment"
    IMPORTS = "imports"
    REGION = "region"


# =============================================================================
# LSP Helper Functions
# =============================================================================


def make_position(line: int, character: int) -> dict[str, int]:
    """Create an LSP Position object (0-based line and character)."""
    return {"line": line, "character": character}


def make_range(
    start_line: int, start_char: int, end_line: int, end_char: int
) -> dict[str, Any]:
    """Create an LSP Range object."""
    return {
        "start": make_position(start_line, start_char),
        "end": make_position(end_line, end_char),
    }


def make_location(uri: str, range_: dict[str, Any]) -> dict[str, Any]:
    """Create an LSP Location object."""
    return {"uri": uri, "range": range_}


def make_diagnostic(
    range_: dict[str, Any],
    message: str,
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
    source: str = "toy-lang-server",
    code: Optional[Union[int, str]] = None,
) -> dict[str, Any]:
    """Create an LSP Diagnostic object."""
    diagnostic: dict[str, Any] = {
        "range": range_,
        "message": message,
        "severity": severity,
        "source": source,
    }
    if code is not None:
        diagnostic["code"] = code
    return diagnostic


def make_completion_item(
    label: str,
    kind: CompletionItemKind = CompletionItemKind.TEXT,
    detail: Optional[str] = None,
    documentation: Optional[str] = None,
    insert_text: Optional[str] = None,
) -> dict[str, Any]:
    """Create an LSP CompletionItem object."""
    item: dict[str, Any] = {
        "label": label,
        "kind": kind,
    }
    if detail is not None:
        item["detail"] = detail
    if documentation is not None:
        item["documentation"] = documentation
    if insert_text is not None:
        item["insertText"] = insert_text
    return item


def make_hover(
    contents: str, range_: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Create an LSP Hover object."""
    hover: dict[str, Any] = {
        "contents": {"kind": "markdown", "value": contents},
    }
    if range_ is not None:
        hover["range"] = range_
    return hover


def make_text_edit(range_: dict[str, Any], new_text: str) -> dict[str, Any]:
    """Create an LSP TextEdit object."""
    return {"range": range_, "newText": new_text}


def make_workspace_edit(changes: dict[str, list[dict[str, Any]]]) -> dict[str, Any]:
    """Create an LSP WorkspaceEdit object from uri -> TextEdit[] changes."""
    return {"changes": changes}
