from __future__ import annotations

"""Resource loading and concatenation with source directives.

Each resource is preceded by a directive line naming it, e.g.::

    ;///#SOURCE 1 1 /scripts/app.js

The leading ``;`` closes any statement the previous resource left open, and
the rest of the line is a comment to the minifier. A `Segment` records where
every resource landed so positions in the combined buffer can be translated
back into the resource's own coordinates.
"""

from bisect import bisect_right
from collections.abc import Sequence

from .errors import ResourceUnavailableError, UnsupportedResourceError
from .positions import PositionIndex
from .types import Resource, Segment, SourceFile

SOURCE_DIRECTIVE = ";///#SOURCE {line} {column} {identifier}\n"
SEPARATOR = "\n"


def read_resource(resource: Resource) -> SourceFile:
    """Load a resource's text, from inline content or from its path."""

    if resource.content is not None:
        return SourceFile.from_text(resource.identifier, resource.content)

    if resource.path is None:
        raise ResourceUnavailableError(f"{resource.identifier}: no path or content supplied")
    if not resource.path.is_file():
        raise ResourceUnavailableError(f"{resource.identifier}: {resource.path} not found")

    try:
        content = resource.path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceUnavailableError(f"{resource.identifier}: {e}") from e

    return SourceFile.from_text(resource.identifier, content)


def reject_dynamic(resources: Sequence[Resource]) -> None:
    for resource in resources:
        if resource.is_dynamic:
            raise UnsupportedResourceError(
                f"Dynamic resource {resource.identifier!r} has no stable identity for source mapping"
            )


def plain_concatenate(resources: Sequence[Resource]) -> str:
    """Join resource contents without directives (debug builds)."""

    return SEPARATOR.join(read_resource(r).content for r in resources)


class SegmentTable:
    """Ordered segments plus per-file position indexes for offset lookups."""

    def __init__(self, segments: Sequence[Segment]) -> None:
        self.segments = tuple(segments)
        self._starts = [s.start for s in self.segments]
        self._indexes = [PositionIndex(s.source_file.content) for s in self.segments]

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def find(self, offset: int) -> int | None:
        """Return the index of the segment containing ``offset``, if any."""

        i = bisect_right(self._starts, offset) - 1
        if i < 0 or not self.segments[i].contains(offset):
            return None
        return i

    def resolve(self, offset: int) -> tuple[int, int, int] | None:
        """Translate a combined-buffer offset to ``(segment, line, column)``.

        Offsets on a directive line resolve to None. Offsets past the end of a
        resource's text (its trailing separator) clamp to that end.
        """

        i = self.find(offset)
        if i is None:
            return None
        segment = self.segments[i]
        if offset < segment.content_start:
            return None

        local = min(offset - segment.content_start, len(segment.source_file.content))
        line, column = self._indexes[i].offset_to_line_column(local)
        if line == 0:
            column += segment.original_column
        return i, line + segment.original_line, column


class SourceConcatenator:
    def combine(self, resources: Sequence[Resource]) -> tuple[str, SegmentTable]:
        reject_dynamic(resources)
        files = [read_resource(r) for r in resources]
        return self.combine_files(files)

    def combine_files(self, files: Sequence[SourceFile]) -> tuple[str, SegmentTable]:
        parts: list[str] = []
        segments: list[Segment] = []
        offset = 0

        for source_file in files:
            directive = SOURCE_DIRECTIVE.format(line=1, column=1, identifier=source_file.identifier)
            length = len(directive) + len(source_file.content) + len(SEPARATOR)
            segments.append(
                Segment(
                    source_file=source_file,
                    start=offset,
                    length=length,
                    content_start=offset + len(directive),
                )
            )
            parts.extend((directive, source_file.content, SEPARATOR))
            offset += length

        return "".join(parts), SegmentTable(segments)
