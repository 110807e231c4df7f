from __future__ import annotations

from pathlib import PurePosixPath

from keyshare.core.errors import InvalidPath

_FORBIDDEN_NAMES = {"", ".", ".."}


def is_safe_component(name: str) -> bool:
    """True when ``name`` is a single usable path component."""
    if name in _FORBIDDEN_NAMES:
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def parse_filename_from_uri(uri: str) -> str | None:
    """Final path component of ``uri``, or None when there is none.

    ``uri`` is an already-decoded path, so ``?`` and ``#`` belong to the
    name. Inputs such as ``/``, ``..`` or ``a/..`` have no usable final
    component.
    """
    name = PurePosixPath(uri).name
    if not is_safe_component(name):
        return None
    return name


def split_object_path(path: str) -> tuple[str, str]:
    """Split ``<namespace>/<filename>`` into its two components."""
    parts = path.strip("/").split("/")
    if len(parts) != 2 or not all(is_safe_component(p) for p in parts):
        raise InvalidPath("No valid path given")
    return parts[0], parts[1]


def join_object_path(namespace: str, filename: str) -> str:
    return f"{namespace}/{filename}"
