from __future__ import annotations

"""Bundle builds: concatenate, minify with tracking, encode, write.

Artifacts land in shared, externally visible locations, so every build holds
the lock for its map path from concatenation through the final write, and
each file is written to a temporary sibling and renamed into place. Readers
see either the previous artifact or the new one, never a partial file.

A failed build leaves earlier artifacts where they are.
"""

import os
import tempfile
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .adapter import MinifierAdapter
from .concat import SourceConcatenator, plain_concatenate, reject_dynamic
from .config import BundleConfig
from .errors import MissingConfigurationError
from .minify import Minifier, TokenMinifier
from .paths import join_url, map_file_name, normalize_bundle_name, safe_join, script_file_name
from .sourcemap import SourceMapBuilder
from .types import Bundle, BuildState, MapReferenceStyle, Resource

_registry_lock = threading.Lock()
_path_locks: dict[Path, threading.Lock] = {}


def lock_for(path: Path) -> threading.Lock:
    """Return the process-wide lock guarding writes to ``path``.

    Locks are kept for the life of the process, one per distinct resolved
    path, so the registry grows with the number of bundles built.
    """

    key = path.resolve(strict=False)
    with _registry_lock:
        lock = _path_locks.get(key)
        if lock is None:
            lock = _path_locks[key] = threading.Lock()
        return lock


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def append_map_reference(text: str, map_url: str, style: MapReferenceStyle = MapReferenceStyle.STANDARD) -> str:
    if text and not text.endswith("\n"):
        text += "\n"
    return f"{text}{style.value} sourceMappingURL={map_url}\n"


@dataclass(frozen=True)
class BundleRequest:
    name: str
    resources: Sequence[Resource]
    debug: bool = False


class BundleOrchestrator:
    def __init__(
        self,
        config: BundleConfig,
        minifier: Minifier | None = None,
        concatenator: SourceConcatenator | None = None,
    ) -> None:
        self.config = config
        self.adapter = MinifierAdapter(minifier or TokenMinifier(), config.options)
        self.concatenator = concatenator or SourceConcatenator()
        self._local = threading.local()

    @property
    def history(self) -> list[BuildState]:
        """States of the most recent build started by the calling thread."""

        return getattr(self._local, "history", [])

    def build(self, request: BundleRequest, *, trace: list[BuildState] | None = None) -> Bundle:
        """Run one build.

        ``trace``, when given, receives each state the build passes through;
        ``history`` holds the states of the calling thread's most recent build.
        """

        states = trace if trace is not None else []
        self._local.history = states
        states.append(BuildState.IDLE)
        try:
            if request.debug:
                bundle = self._build_debug(request, states)
            else:
                bundle = self._build_mapped(request, states)
        except Exception:
            states.append(BuildState.FAILED)
            raise
        states.append(BuildState.DONE)
        return bundle

    def _build_debug(self, request: BundleRequest, states: list[BuildState]) -> Bundle:
        name = normalize_bundle_name(request.name)
        script_path = self._script_path(name)

        states.append(BuildState.CONCATENATING)
        combined = plain_concatenate(request.resources)
        states.append(BuildState.MINIFYING)
        result = self.adapter.minify_plain(combined)

        if script_path is not None:
            states.append(BuildState.WRITING_ARTIFACTS)
            with lock_for(script_path):
                atomic_write_text(script_path, result.text)

        return Bundle(name=name, text=result.text, script_path=script_path, diagnostics=result.diagnostics)

    def _build_mapped(self, request: BundleRequest, states: list[BuildState]) -> Bundle:
        config = self.config
        if config.map_output_dir is None:
            raise MissingConfigurationError("No source map output directory configured")

        name = normalize_bundle_name(request.name)
        map_name = map_file_name(name)
        map_path = safe_join(config.map_output_dir, map_name)
        map_url = join_url(config.map_base_url or config.output_base_url, map_name)
        script_path = self._script_path(name)

        reject_dynamic(request.resources)

        with lock_for(map_path):
            states.append(BuildState.CONCATENATING)
            buffer, segments = self.concatenator.combine(request.resources)

            states.append(BuildState.MINIFYING)
            builder = SourceMapBuilder(embed_sources=config.embed_sources)
            result = self.adapter.minify(buffer, segments, builder)

            states.append(BuildState.ENCODING)
            document = builder.build(join_url(config.output_base_url, name), config.source_root)
            map_json = document.to_json()
            text = append_map_reference(result.text, map_url, config.reference_style)

            states.append(BuildState.WRITING_ARTIFACTS)
            atomic_write_text(map_path, map_json)
            if script_path is not None:
                atomic_write_text(script_path, text)

        return Bundle(
            name=name,
            text=text,
            source_map=document,
            map_path=map_path,
            map_url=map_url,
            script_path=script_path,
            diagnostics=result.diagnostics,
        )

    def _script_path(self, name: str) -> Path | None:
        if self.config.script_output_dir is None:
            return None
        return safe_join(self.config.script_output_dir, script_file_name(name))


def build_bundle(
    name: str,
    resources: Sequence[Resource],
    config: BundleConfig,
    *,
    debug: bool = False,
    minifier: Minifier | None = None,
) -> Bundle:
    return BundleOrchestrator(config, minifier).build(BundleRequest(name=name, resources=resources, debug=debug))
