'''
Server configuration for `badlopo serve`.
Validates the four CLI inputs once at startup and freezes them into a ServerConfig
that every request handler reads but never changes.
'''
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

# DEFAULTS (mirrored by the CLI flags)
DEFAULT_ROOT = "."
DEFAULT_ENTRY = "index.html"
DEFAULT_PORT = 80
DEFAULT_MODE = "mixed"

# Listen on every interface so other devices on the LAN can reach the server.
BIND_HOST = "0.0.0.0"


class ServeError(Exception):
    """Base class for failures that stop the server before it listens."""


class InvalidRootError(ServeError):
    def __init__(self, root):
        self.root = root
        super().__init__("Invalid root (root is not a directory)")


class InvalidEntryError(ServeError):
    def __init__(self, entry):
        self.entry = entry
        super().__init__("Invalid entry (entry is not a file)")


class InvalidPortError(ServeError):
    def __init__(self, port):
        self.port = port
        super().__init__(f"Invalid port ({port} is not in 0-65535)")


class InvalidModeError(ServeError):
    def __init__(self, mode, reason: str):
        self.mode = mode
        super().__init__(f"Invalid mode ({reason})")


class BindError(ServeError):
    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        super().__init__(f"Failed to bind {host}:{port} ({reason})")


class ResolutionMode(Enum):
    """How a request path is mapped onto a file under the root."""

    SINGLE = "single"  # every request gets the entry file
    MIXED = "mixed"  # the file at the path if it exists, else the entry file
    DIRECT = "direct"  # the file at the path, or 404

    @classmethod
    def parse(cls, value: Union[str, "ResolutionMode"]) -> "ResolutionMode":
        """Case-insensitive lookup, e.g. 'Mixed' -> ResolutionMode.MIXED."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"invalid mode '{value}' (choose from {choices})") from None


@dataclass(frozen=True)
class ServerConfig:
    root: Path
    entry: Path
    mode: ResolutionMode
    port: int


def build_config(root=DEFAULT_ROOT, entry=DEFAULT_ENTRY, port=DEFAULT_PORT, mode=DEFAULT_MODE) -> ServerConfig:
    """
    Validate raw inputs and return the immutable ServerConfig.
    - root must be an existing directory (checked first).
    - root joined with entry must be an existing regular file. An absolute
      entry replaces root, exactly as path joining does.
    Raises a ServeError subclass with a distinct message for each check.
    """
    root_path = Path(os.path.abspath(root))
    if not root_path.is_dir():
        raise InvalidRootError(root_path)

    entry_path = root_path / entry
    if not entry_path.is_file():
        raise InvalidEntryError(entry_path)

    try:
        port_number = int(port)
    except (TypeError, ValueError):
        raise InvalidPortError(port) from None
    if not 0 <= port_number <= 65535:
        raise InvalidPortError(port)

    try:
        resolution_mode = ResolutionMode.parse(mode)
    except ValueError as e:
        raise InvalidModeError(mode, str(e)) from None

    return ServerConfig(
        root=root_path,
        entry=entry_path,
        mode=resolution_mode,
        port=port_number,
    )
