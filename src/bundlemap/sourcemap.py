from __future__ import annotations

"""Source Map v3 building, encoding, and parsing.

The builder collects correlation points while a bundle is minified and turns
them into a `SourceMapDocument`. Mappings are encoded line by line: segments
on one generated line are joined with ``,`` and lines with ``;``. Every field
is a VLQ delta against the previous segment. The generated column restarts at
zero on each line; the source, original line, original column and name fields
carry their running value across the whole stream.
"""

import json
from collections.abc import Iterable

from .errors import InvalidPositionError, SourceMapFormatError, UnorderedMappingError
from .types import PositionMapping, SourceMapDocument
from .vlq import decode_vlq_segment, encode_vlq


class SourceMapBuilder:
    def __init__(self, *, embed_sources: bool = False) -> None:
        self.embed_sources = embed_sources
        self.coarse = False
        self._sources: list[str] = []
        self._source_lookup: dict[str, int] = {}
        self._sources_content: list[str | None] = []
        self._names: list[str] = []
        self._name_lookup: dict[str, int] = {}
        self._mappings: list[PositionMapping] = []

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(self._sources)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._names)

    @property
    def mappings(self) -> tuple[PositionMapping, ...]:
        return tuple(self._mappings)

    def add_source(self, identifier: str, content: str | None = None) -> int:
        index = self._source_lookup.get(identifier)
        if index is None:
            index = len(self._sources)
            self._source_lookup[identifier] = index
            self._sources.append(identifier)
            self._sources_content.append(content)
        elif content is not None and self._sources_content[index] is None:
            self._sources_content[index] = content
        return index

    def add_name(self, name: str) -> int:
        index = self._name_lookup.get(name)
        if index is None:
            index = len(self._names)
            self._name_lookup[name] = index
            self._names.append(name)
        return index

    def add_mapping(self, mapping: PositionMapping) -> None:
        self._mappings.append(mapping)

    def add(
        self,
        generated_line: int,
        generated_column: int,
        source: str,
        original_line: int,
        original_column: int,
        name: str | None = None,
    ) -> PositionMapping:
        """Register ``source`` (and ``name``) and append the resulting mapping."""

        mapping = PositionMapping(
            generated_line=generated_line,
            generated_column=generated_column,
            source_index=self.add_source(source),
            original_line=original_line,
            original_column=original_column,
            name_index=None if name is None else self.add_name(name),
        )
        self._mappings.append(mapping)
        return mapping

    def build(self, file: str, source_root: str | None = None) -> SourceMapDocument:
        for mapping in self._mappings:
            _check_mapping(mapping, len(self._sources), len(self._names))

        return SourceMapDocument(
            file=file,
            sources=tuple(self._sources),
            names=tuple(self._names),
            mappings=encode_mappings(self._mappings),
            source_root=source_root,
            sources_content=tuple(self._sources_content) if self.embed_sources else None,
            coarse=self.coarse,
        )


def _check_mapping(mapping: PositionMapping, source_count: int, name_count: int) -> None:
    if mapping.generated_line < 0 or mapping.generated_column < 0:
        raise InvalidPositionError(f"Negative generated position in {mapping}")
    if mapping.original_line < 0 or mapping.original_column < 0:
        raise InvalidPositionError(f"Negative original position in {mapping}")
    if not 0 <= mapping.source_index < source_count:
        raise InvalidPositionError(f"Source index {mapping.source_index} out of range in {mapping}")
    if mapping.name_index is not None and not 0 <= mapping.name_index < name_count:
        raise InvalidPositionError(f"Name index {mapping.name_index} out of range in {mapping}")


def encode_mappings(mappings: Iterable[PositionMapping]) -> str:
    lines: list[str] = []
    segments: list[str] = []
    line = 0
    previous_column = 0
    previous_source = 0
    previous_original_line = 0
    previous_original_column = 0
    previous_name = 0
    last: PositionMapping | None = None

    for mapping in mappings:
        if last is not None and (mapping.generated_line, mapping.generated_column) < (
            last.generated_line,
            last.generated_column,
        ):
            raise UnorderedMappingError(
                f"Mapping at {mapping.generated_line}:{mapping.generated_column} follows "
                f"{last.generated_line}:{last.generated_column}"
            )
        last = mapping

        while line < mapping.generated_line:
            lines.append(",".join(segments))
            segments = []
            line += 1
            previous_column = 0

        parts = [
            encode_vlq(mapping.generated_column - previous_column),
            encode_vlq(mapping.source_index - previous_source),
            encode_vlq(mapping.original_line - previous_original_line),
            encode_vlq(mapping.original_column - previous_original_column),
        ]
        previous_column = mapping.generated_column
        previous_source = mapping.source_index
        previous_original_line = mapping.original_line
        previous_original_column = mapping.original_column
        if mapping.name_index is not None:
            parts.append(encode_vlq(mapping.name_index - previous_name))
            previous_name = mapping.name_index
        segments.append("".join(parts))

    lines.append(",".join(segments))
    return ";".join(lines)


def decode_mappings(mappings: str) -> list[PositionMapping]:
    """Decode a mappings string back into absolute `PositionMapping` entries.

    Single-field segments carry no original position and are skipped.
    """

    decoded: list[PositionMapping] = []
    source = 0
    original_line = 0
    original_column = 0
    name = 0

    for generated_line, group in enumerate(mappings.split(";")):
        if not group:
            continue
        column = 0
        for segment in group.split(","):
            if not segment:
                raise SourceMapFormatError(f"Empty segment on generated line {generated_line}")
            values = decode_vlq_segment(segment)
            if len(values) not in (1, 4, 5):
                raise SourceMapFormatError(f"Segment {segment!r} has {len(values)} fields")
            column += values[0]
            if len(values) == 1:
                continue
            source += values[1]
            original_line += values[2]
            original_column += values[3]
            name_index = None
            if len(values) == 5:
                name += values[4]
                name_index = name
            decoded.append(
                PositionMapping(
                    generated_line=generated_line,
                    generated_column=column,
                    source_index=source,
                    original_line=original_line,
                    original_column=original_column,
                    name_index=name_index,
                )
            )

    return decoded


def parse_sourcemap(text: str) -> SourceMapDocument:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise SourceMapFormatError(f"Source map is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise SourceMapFormatError("Source map must be a JSON object")
    if payload.get("version") != 3:
        raise SourceMapFormatError(f"Unsupported source map version: {payload.get('version')!r}")

    sources = payload.get("sources")
    names = payload.get("names", [])
    mappings = payload.get("mappings")
    if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
        raise SourceMapFormatError("'sources' must be a list of strings")
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise SourceMapFormatError("'names' must be a list of strings")
    if not isinstance(mappings, str):
        raise SourceMapFormatError("'mappings' must be a string")

    sources_content = payload.get("sourcesContent")
    return SourceMapDocument(
        file=str(payload.get("file", "")),
        sources=tuple(sources),
        names=tuple(names),
        mappings=mappings,
        source_root=payload.get("sourceRoot"),
        sources_content=tuple(sources_content) if isinstance(sources_content, list) else None,
        coarse=bool(payload.get("x_bundlemap_coarse", False)),
    )
