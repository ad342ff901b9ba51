from __future__ import annotations

"""Data model for bundle builds and the source maps they produce.

Positions are 0-based throughout. Offsets and columns count characters of the
decoded text, not bytes.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


def _squash(value: str) -> str:
    return value.replace("-", "").replace("_", "").replace(" ", "").lower()


class _UnknownFallbackEnum(Enum):
    """Base for option enums that return UNKNOWN for unrecognized values.

    Lookup is case-insensitive and ignores separators, and accepts the member
    name, its value, or any spelling returned by ``_aliases()``.
    """

    @classmethod
    def _missing_(cls, value: object) -> "_UnknownFallbackEnum":
        if isinstance(value, str):
            wanted = _squash(value)
            for member in cls:
                if member.name == "UNKNOWN":
                    continue
                spellings = (member.name, member.value, *cls._aliases().get(member.name, ()))
                if wanted in {_squash(s) for s in spellings}:
                    return member
        return cls.UNKNOWN  # type: ignore[attr-defined]

    @classmethod
    def _aliases(cls) -> dict[str, tuple[str, ...]]:
        return {}


class LocalRenaming(_UnknownFallbackEnum):
    KEEP_ALL = "KeepAll"
    CRUNCH_ALL = "CrunchAll"
    KEEP_LOCALIZATION_VARS = "KeepLocalizationVars"
    UNKNOWN = "?"

    @classmethod
    def _aliases(cls) -> dict[str, tuple[str, ...]]:
        return {
            "KEEP_ALL": ("none",),
            "CRUNCH_ALL": ("aggressive",),
            "KEEP_LOCALIZATION_VARS": ("aggressive-except-localization-prefixed",),
        }


class OutputMode(_UnknownFallbackEnum):
    SINGLE_LINE = "SingleLine"
    MULTIPLE_LINES = "MultipleLines"
    UNKNOWN = "?"

    @classmethod
    def _aliases(cls) -> dict[str, tuple[str, ...]]:
        return {"MULTIPLE_LINES": ("multi-line",)}


class ResourceMode(Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class MapReferenceStyle(Enum):
    STANDARD = "//#"
    LEGACY = "///#"


class BuildState(Enum):
    IDLE = "idle"
    CONCATENATING = "concatenating"
    MINIFYING = "minifying"
    ENCODING = "encoding"
    WRITING_ARTIFACTS = "writing_artifacts"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class MinifierOptions:
    collapse_to_literal: bool = True
    evals_are_safe: bool = False
    mac_safari_quirks: bool = True
    catch_as_local: bool = True
    local_renaming: LocalRenaming = LocalRenaming.KEEP_ALL
    output_mode: OutputMode = OutputMode.SINGLE_LINE
    remove_unneeded_code: bool = True
    strip_debug_statements: bool = True


@dataclass(frozen=True)
class Resource:
    """One entry of the host's ordered resource list.

    ``content`` lets the host hand over text it already holds; otherwise the
    text is read from ``path``.
    """

    identifier: str
    path: Path | None = None
    mode: ResourceMode = ResourceMode.STATIC
    content: str | None = None

    @property
    def is_dynamic(self) -> bool:
        return self.mode is ResourceMode.DYNAMIC


@dataclass(frozen=True)
class SourceFile:
    identifier: str
    content: str
    byte_length: int

    @classmethod
    def from_text(cls, identifier: str, content: str) -> "SourceFile":
        return cls(identifier=identifier, content=content, byte_length=len(content.encode("utf-8")))


@dataclass(frozen=True)
class Segment:
    """A contiguous range of the combined buffer attributable to one file.

    ``[start, content_start)`` holds the source directive line; the file's own
    text starts at ``content_start``.
    """

    source_file: SourceFile
    start: int
    length: int
    content_start: int
    original_line: int = 0
    original_column: int = 0

    @property
    def end(self) -> int:
        return self.start + self.length

    @property
    def content_end(self) -> int:
        return self.content_start + len(self.source_file.content)

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


@dataclass(frozen=True)
class PositionMapping:
    generated_line: int
    generated_column: int
    source_index: int
    original_line: int
    original_column: int
    name_index: int | None = None


@dataclass(frozen=True)
class SourceMapDocument:
    file: str
    sources: tuple[str, ...]
    names: tuple[str, ...]
    mappings: str
    source_root: str | None = None
    sources_content: tuple[str | None, ...] | None = None
    coarse: bool = False
    version: int = 3

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"version": self.version, "file": self.file}
        if self.source_root is not None:
            payload["sourceRoot"] = self.source_root
        payload["sources"] = list(self.sources)
        if self.sources_content is not None:
            payload["sourcesContent"] = list(self.sources_content)
        payload["names"] = list(self.names)
        payload["mappings"] = self.mappings
        if self.coarse:
            payload["x_bundlemap_coarse"] = True
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True)
class Bundle:
    name: str
    text: str
    source_map: SourceMapDocument | None = None
    map_path: Path | None = None
    map_url: str | None = None
    script_path: Path | None = None
    diagnostics: list[str] = field(default_factory=list)
