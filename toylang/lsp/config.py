"""
toylang.lsp.config - Language server configuration

ServerConfig holds the settings the server runs with. It starts from the
defaults below, is filled in from command line flags, and is then updated
from the client's initializationOptions:

    {"publishDiagnostics": false}

Unknown option keys are ignored so newer clients do not break the server.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from toylang import __version__

# Default configuration values
DEFAULT_SERVER_NAME = "toy-lang-server"
DEFAULT_PUBLISH_DIAGNOSTICS = True


@dataclass
class ServerConfig:
    """Settings for one language server session."""

    name: str = DEFAULT_SERVER_NAME
    version: str = __version__
    publish_diagnostics: bool = DEFAULT_PUBLISH_DIAGNOSTICS
    log_path: Optional[str] = None

    @classmethod
    def from_args(cls, log_path: Optional[str] = None) -> "ServerConfig":
        """Create a configuration from command line values."""
        return cls(log_path=log_path)

    def with_initialization_options(self, options: Any) -> "ServerConfig":
        """
        Return a copy updated from the client's initializationOptions.

        Values of the wrong type are ignored, as is anything that is not
        an object.
        """
        if not isinstance(options, dict):
            return self

        publish = options.get("publishDiagnostics")
        if isinstance(publish, bool):
            return replace(self, publish_diagnostics=publish)
        return self

    def server_info(self) -> dict[str, str]:
        """The serverInfo object returned from initialize."""
        return {"name": self.name, "version": self.version}
