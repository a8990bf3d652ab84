import os
import stat
from pathlib import Path
from typing import Iterable, List, Optional

from badlopo.api.config import ResolutionMode, ServerConfig

# None means "no file" (the 404 catcher takes over).
ResolvedTarget = Optional[Path]


def split_request_path(path: str) -> List[str]:
    """Split a decoded URL path ('img/logo.png', '/a//b/') into its segments."""
    return [segment for segment in path.split("/") if segment]


def contained_join(root: Path, segments: Iterable[str]) -> Optional[Path]:
    """
    Join segments onto root without ever leaving it.
    '.' and empty segments are skipped and '..' pops the previous segment.
    Returns None when a '..' would climb above root or a segment carries a
    NUL byte or an OS path separator.
    """
    parts = []
    for segment in segments:
        if "\x00" in segment or os.sep in segment or (os.altsep and os.altsep in segment):
            return None
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(segment)
    return root.joinpath(*parts)


def is_regular_file(path: Optional[Path]) -> bool:
    """stat-based check: follows symlinks, any OSError counts as 'not a file'."""
    if path is None:
        return False
    try:
        return stat.S_ISREG(os.stat(path).st_mode)
    except (OSError, ValueError):
        return False


def resolve(config: ServerConfig, segments: Iterable[str]) -> ResolvedTarget:
    """Pick the file to serve for a request, according to config.mode."""
    mode = config.mode

    if mode is ResolutionMode.SINGLE:
        return config.entry

    candidate = contained_join(config.root, segments)
    found = is_regular_file(candidate)

    if mode is ResolutionMode.MIXED:
        return candidate if found else config.entry
    if mode is ResolutionMode.DIRECT:
        return candidate if found else None

    raise ValueError(f"Unknown resolution mode: {mode!r}")
