from __future__ import annotations

"""Build configuration: minifier options and TOML bundle files.

Option keys are accepted in snake_case, in the PascalCase spelling of the
ASP.NET minifier settings they mirror (``LocalRenaming``, ``OutputMode``...),
and under descriptive aliases. Unrecognized keys or values fall back to the
default and produce a diagnostic, or raise `InvalidOptionError` when parsing
strictly.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

from .errors import ConfigFileError, InvalidOptionError
from .types import LocalRenaming, MapReferenceStyle, MinifierOptions, OutputMode, Resource, ResourceMode


def _squash(key: str) -> str:
    return key.replace("-", "").replace("_", "").replace(" ", "").lower()


_OPTION_ALIASES = {
    "collapse-constructors-to-literals": "collapse_to_literal",
    "treat-eval-as-safe-for-renaming": "evals_are_safe",
    "apply-legacy-browser-quirks": "mac_safari_quirks",
    "scope-catch-variables-to-function": "catch_as_local",
    "identifier-renaming-mode": "local_renaming",
    "output-layout": "output_mode",
    "strip-dead-code": "remove_unneeded_code",
}

_OPTION_KEYS = {_squash(f.name): f.name for f in fields(MinifierOptions)}
_OPTION_KEYS.update({_squash(alias): name for alias, name in _OPTION_ALIASES.items()})

_ENUM_OPTIONS = {"local_renaming": LocalRenaming, "output_mode": OutputMode}

_TRUE = frozenset(("true", "yes", "on", "1"))
_FALSE = frozenset(("false", "no", "off", "0"))


def _parse_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


def parse_minifier_options(
    values: Mapping[str, object], *, strict: bool = False
) -> tuple[MinifierOptions, list[str]]:
    """Build `MinifierOptions` from loosely-typed settings.

    Returns the options and a list of diagnostics describing every fallback
    that was applied.
    """

    defaults = MinifierOptions()
    parsed: dict[str, object] = {}
    diagnostics: list[str] = []

    def reject(message: str) -> None:
        if strict:
            raise InvalidOptionError(message)
        diagnostics.append(message)

    for key, raw in values.items():
        name = _OPTION_KEYS.get(_squash(key))
        if name is None:
            reject(f"Unknown minifier option {key!r}; ignored")
            continue

        default = getattr(defaults, name)
        enum_type = _ENUM_OPTIONS.get(name)
        if enum_type is not None:
            member = raw if isinstance(raw, enum_type) else enum_type(str(raw))
            if member is enum_type.UNKNOWN:
                reject(f"Unrecognized value {raw!r} for {key}; using {default.value}")
                continue
            parsed[name] = member
        else:
            flag = _parse_bool(raw)
            if flag is None:
                reject(f"Option {key} expects a boolean, got {raw!r}; using {default}")
                continue
            parsed[name] = flag

    return MinifierOptions(**parsed), diagnostics


@dataclass(frozen=True)
class BundleConfig:
    """Where a build writes its artifacts and how it advertises them."""

    map_output_dir: Path | None = None
    script_output_dir: Path | None = None
    output_base_url: str = "/"
    map_base_url: str | None = None
    source_root: str | None = None
    reference_style: MapReferenceStyle = MapReferenceStyle.STANDARD
    embed_sources: bool = False
    options: MinifierOptions = field(default_factory=MinifierOptions)


@dataclass(frozen=True)
class BundleFile:
    """A bundle definition loaded from TOML."""

    name: str | None
    resources: list[Resource]
    config: BundleConfig
    debug: bool = False
    diagnostics: list[str] = field(default_factory=list)


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ConfigFileError(f"Config section '{key}' must be a table.")
    return value


def _optional_str(table: dict[str, object], key: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigFileError(f"'{key}' must be a string.")
    return value


def _optional_bool(table: dict[str, object], key: str) -> bool:
    value = table.get(key, False)
    if not isinstance(value, bool):
        raise ConfigFileError(f"'{key}' must be true or false.")
    return value


def _parse_resource(entry: object, base_dir: Path) -> Resource:
    if isinstance(entry, str):
        return Resource(identifier=entry, path=base_dir / entry)
    if not isinstance(entry, dict):
        raise ConfigFileError("Each resource must be a path string or a table.")

    path = entry.get("path")
    if not isinstance(path, str) or not path:
        raise ConfigFileError("Resource tables need a non-empty 'path'.")
    identifier = entry.get("identifier", path)
    if not isinstance(identifier, str):
        raise ConfigFileError(f"Resource {path!r}: 'identifier' must be a string.")
    mode_value = entry.get("mode", ResourceMode.STATIC.value)
    try:
        mode = ResourceMode(str(mode_value).lower())
    except ValueError:
        raise ConfigFileError(f"Resource {path!r}: unknown mode {mode_value!r}.") from None
    return Resource(identifier=identifier, path=base_dir / path, mode=mode)


def load_bundle_config(config_path: Path, *, strict: bool = False) -> BundleFile:
    """Load a bundle definition; relative paths resolve against its directory."""

    try:
        with config_path.open("rb") as handle:
            payload = tomllib.load(handle)
    except OSError as e:
        raise ConfigFileError(f"Cannot read {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(f"{config_path}: {e}") from e

    base_dir = config_path.parent
    bundle = _get_table(payload, "bundle")
    minifier = _get_table(payload, "minifier")

    raw_resources = bundle.get("resources", [])
    if not isinstance(raw_resources, list):
        raise ConfigFileError("'resources' must be an array.")
    resources = [_parse_resource(entry, base_dir) for entry in raw_resources]

    options, diagnostics = parse_minifier_options(minifier, strict=strict)

    map_dir = _optional_str(bundle, "map_dir")
    script_dir = _optional_str(bundle, "script_dir")
    config = BundleConfig(
        map_output_dir=base_dir / map_dir if map_dir else None,
        script_output_dir=base_dir / script_dir if script_dir else None,
        output_base_url=_optional_str(bundle, "base_url") or "/",
        map_base_url=_optional_str(bundle, "map_url"),
        source_root=_optional_str(bundle, "source_root"),
        reference_style=(
            MapReferenceStyle.LEGACY if _optional_bool(bundle, "legacy_comment") else MapReferenceStyle.STANDARD
        ),
        embed_sources=_optional_bool(bundle, "embed_sources"),
        options=options,
    )

    return BundleFile(
        name=_optional_str(bundle, "name"),
        resources=resources,
        config=config,
        debug=_optional_bool(bundle, "debug"),
        diagnostics=diagnostics,
    )
