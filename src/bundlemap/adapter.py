from __future__ import annotations

"""Bridges a minification engine to the source map builder.

Engines report positions as offsets: into the combined buffer on one side and
into their own output on the other. The adapter turns the former into
``(source, line, column)`` through the segment table and the latter into
``(line, column)`` through an index over the output, then hands the result to
a `SourceMapBuilder`.

Engines that cannot report positions are run once per resource instead, and
each resource gets a single mapping at the start of its output. Maps built
that way are flagged as coarse.
"""

from dataclasses import dataclass, field
from enum import Enum

from .concat import SegmentTable
from .minify import Minifier, unsupported_options
from .positions import PositionIndex
from .sourcemap import SourceMapBuilder
from .types import MinifierOptions, PositionMapping

COARSE_SEPARATOR = ";\n"


@dataclass
class MinifyResult:
    text: str
    coarse: bool = False
    diagnostics: list[str] = field(default_factory=list)


class MinifierAdapter:
    def __init__(self, engine: Minifier, options: MinifierOptions | None = None) -> None:
        self.engine = engine
        self.options = options or MinifierOptions()

    def _diagnostics(self) -> list[str]:
        engine_name = type(self.engine).__name__
        messages = []
        for name in unsupported_options(self.engine, self.options):
            value = getattr(self.options, name)
            shown = value.value if isinstance(value, Enum) else value
            messages.append(f"{engine_name} ignores option {name}={shown}")
        return messages

    def minify_plain(self, text: str) -> MinifyResult:
        return MinifyResult(text=self.engine.minify(text, self.options), diagnostics=self._diagnostics())

    def minify(self, buffer: str, segments: SegmentTable, builder: SourceMapBuilder) -> MinifyResult:
        source_indexes = [
            builder.add_source(s.source_file.identifier, s.source_file.content) for s in segments
        ]
        diagnostics = self._diagnostics()

        if not self.engine.supports_correlation:
            builder.coarse = True
            diagnostics.append(
                f"{type(self.engine).__name__} cannot report positions; "
                "source map has one mapping per resource"
            )
            text = self._minify_coarse(segments, source_indexes, builder)
            return MinifyResult(text=text, coarse=True, diagnostics=diagnostics)

        events: list[tuple[int, int, str | None]] = []

        def sink(original: int, generated: int, name: str | None = None) -> None:
            events.append((original, generated, name))

        text = self.engine.minify(buffer, self.options, sink)
        output_index = PositionIndex(text)

        last: PositionMapping | None = None
        for original, generated, name in events:
            resolved = segments.resolve(original)
            if resolved is None:
                continue
            segment_number, line, column = resolved
            generated_line, generated_column = output_index.offset_to_line_column(generated)
            mapping = PositionMapping(
                generated_line=generated_line,
                generated_column=generated_column,
                source_index=source_indexes[segment_number],
                original_line=line,
                original_column=column,
                name_index=None if name is None else builder.add_name(name),
            )
            if mapping == last:
                continue
            builder.add_mapping(mapping)
            last = mapping

        return MinifyResult(text=text, diagnostics=diagnostics)

    def _minify_coarse(
        self, segments: SegmentTable, source_indexes: list[int], builder: SourceMapBuilder
    ) -> str:
        chunks = [self.engine.minify(s.source_file.content, self.options) for s in segments]
        text = COARSE_SEPARATOR.join(chunks)
        output_index = PositionIndex(text)

        offset = 0
        for segment, source_index, chunk in zip(segments, source_indexes, chunks):
            if chunk:
                line, column = output_index.offset_to_line_column(offset)
                builder.add_mapping(
                    PositionMapping(
                        generated_line=line,
                        generated_column=column,
                        source_index=source_index,
                        original_line=segment.original_line,
                        original_column=segment.original_column,
                    )
                )
            offset += len(chunk) + len(COARSE_SEPARATOR)

        return text
