from __future__ import annotations

"""Bundle naming, URL joins, and safe filesystem joins.

Bundle names come from host configuration and end up both in URLs and on disk
(`<name>.js.map`), so they are normalized once here:

- `normalize_bundle_name()` turns a name into a stable relative POSIX path.
- `safe_join()` keeps artifact paths inside their output directory.
- `join_url()` builds the URLs advertised in the map and the minified text.
"""

import re
from pathlib import Path

from .errors import UnsafePathError

MAP_SUFFIX = ".js.map"
SCRIPT_SUFFIX = ".js"

# "https://", "file://" and Windows drive prefixes such as "C:".
_ABSOLUTE_PREFIX = re.compile(r"^(?:[A-Za-z][A-Za-z0-9+.-]*://|[A-Za-z]:)")


def clean_relative_path(path: str) -> str:
    """Return ``path`` as a relative POSIX path below its output directory.

    Backslashes count as separators, leading slashes are ignored, and ``.``
    and ``..`` segments are resolved. Paths with a URL scheme or drive
    letter, paths that climb above the directory and empty paths raise
    `UnsafePathError`.
    """

    if _ABSOLUTE_PREFIX.match(path):
        raise UnsafePathError(f"Expected a relative path, got {path!r}")

    kept: list[str] = []
    for part in path.replace("\\", "/").split("/"):
        if part == "..":
            if not kept:
                raise UnsafePathError(f"Path escapes its output directory: {path!r}")
            kept.pop()
        elif part not in ("", "."):
            kept.append(part)

    if not kept:
        raise UnsafePathError(f"Empty path: {path!r}")
    return "/".join(kept)


def normalize_bundle_name(name: str) -> str:
    """Normalize a bundle's logical name; a trailing ``.js`` is dropped."""

    normalized = clean_relative_path(name.strip())
    if normalized.endswith(SCRIPT_SUFFIX) and normalized != SCRIPT_SUFFIX:
        normalized = normalized[: -len(SCRIPT_SUFFIX)]
    return normalized


def map_file_name(bundle_name: str) -> str:
    return normalize_bundle_name(bundle_name) + MAP_SUFFIX


def script_file_name(bundle_name: str) -> str:
    return normalize_bundle_name(bundle_name) + SCRIPT_SUFFIX


def join_url(base: str, relative: str) -> str:
    """Join a site-root-relative or absolute base URL with a relative part.

    An empty base yields a root-relative URL.
    """

    base = base.strip() or "/"
    if not base.endswith("/"):
        base += "/"
    return base + relative.lstrip("/")


def safe_join(base: Path, relative_path: str) -> Path:
    """Join ``relative_path`` under ``base``; symlinks leading outside are rejected too."""

    joined = base.joinpath(*clean_relative_path(relative_path).split("/"))
    if not joined.resolve(strict=False).is_relative_to(base.resolve(strict=False)):
        raise UnsafePathError(f"Path escapes its output directory: {relative_path!r}")
    return joined
