"""
Image Path Safety

sanitize_path() cleans a user-supplied relative path; resolve_within_root()
joins it to a root directory and rejects anything that resolves outside.
Handlers must use both before touching the filesystem.
"""

import re
from pathlib import Path
from typing import Optional, Union

_TRAVERSAL_PATTERNS = (
    (re.compile(r"\.\./"), ""),
    (re.compile(r"\.\.\\"), ""),
    (re.compile(r"/\.\./"), "/"),
    (re.compile(r"\\\.\.\\"), r"\\"),
)
_LEADING_SEPARATORS = re.compile(r"^[/\\]+")
_DRIVE_LETTER = re.compile(r"^[a-zA-Z]:")


def sanitize_path(path: Optional[str]) -> Optional[str]:
    """
    Strip traversal sequences and leading separators from a relative path.

    Stripping repeats until nothing changes, so nested input such as
    "....//" cannot rebuild a "../" after one pass.

    Returns:
        The cleaned relative path, or None if the input is empty, starts
        with a drive letter, or nothing is left after cleaning.
    """
    if not path:
        return None

    sanitized = path
    while True:
        previous = sanitized
        for pattern, replacement in _TRAVERSAL_PATTERNS:
            sanitized = pattern.sub(replacement, sanitized)
        sanitized = _LEADING_SEPARATORS.sub("", sanitized)
        if sanitized == previous:
            break

    if _DRIVE_LETTER.match(sanitized):
        return None

    return sanitized or None


def resolve_within_root(root: Union[str, Path], relative: str) -> Optional[Path]:
    """
    Join a sanitized relative path onto root and canonicalize it.

    Returns:
        The resolved path if it is root itself or a descendant of it,
        None otherwise. The file does not need to exist.
    """
    root_path = Path(root).resolve()
    candidate = (root_path / relative.replace("\\", "/")).resolve()
    if candidate == root_path or root_path in candidate.parents:
        return candidate
    return None
