from __future__ import annotations

"""Command-line interface for bundlemap.

Combines JavaScript files into one minified bundle and writes a Source Map v3
file next to the configured map directory. Settings can come from a TOML
bundle file (`--config`); flags override it.
"""

import argparse
import sys
from dataclasses import fields, replace
from pathlib import Path

from .build import BundleOrchestrator, BundleRequest
from .config import BundleConfig, BundleFile, load_bundle_config, parse_minifier_options
from .errors import BundleMapError
from .minify import ENGINES, create_engine
from .types import MapReferenceStyle, Resource


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        description="Bundle and minify JavaScript files with a source map",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    bundlemap a.js b.js --name site --map-dir maps      # minified bundle to stdout
    bundlemap a.js b.js --name site --map-dir maps --script-dir public
    bundlemap --config bundle.toml -v                   # settings from a file
    bundlemap --config bundle.toml -n                   # show what would be built
    bundlemap a.js --name site --debug                  # no source map
    bundlemap a.js --name site --map-dir maps --set LocalRenaming=KeepAll
        """,
    )


def _parse_assignments(values: list[str]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise BundleMapError(f"Expected KEY=VALUE, got {item!r}")
        parsed[key.strip()] = value.strip()
    return parsed


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    parser.add_argument("resources", nargs="*", help="JavaScript files, in bundle order")
    parser.add_argument("--name", help="Bundle name (map is written as NAME.js.map)")
    parser.add_argument("-c", "--config", help="TOML bundle definition")
    parser.add_argument("--map-dir", help="Directory the source map is written to")
    parser.add_argument("--script-dir", help="Directory the minified bundle is written to")
    parser.add_argument("--base-url", help="URL the bundle is served under (default: /)")
    parser.add_argument("--map-url", help="URL the map directory is served under (default: --base-url)")
    parser.add_argument("--source-root", help="sourceRoot recorded in the map")
    parser.add_argument("--debug", action="store_true", help="Minify only; no source map")
    parser.add_argument("--engine", choices=sorted(ENGINES), default="token", help="Minification engine")
    parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Minifier option, e.g. OutputMode=MultipleLines (repeatable)",
    )
    parser.add_argument("--strict", action="store_true", help="Fail on unknown minifier options or values")
    parser.add_argument("--legacy-comment", action="store_true", help="Use the ///# sourceMappingURL form")
    parser.add_argument("--embed-sources", action="store_true", help="Include sourcesContent in the map")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print diagnostics")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Show what would be built")

    args = parser.parse_args(argv)

    try:
        if args.config:
            config_path = Path(args.config)
            if not config_path.exists():
                print(f"Error: {config_path} not found", file=sys.stderr)
                return 1
            bundle_file = load_bundle_config(config_path, strict=args.strict)
        else:
            bundle_file = BundleFile(name=None, resources=[], config=BundleConfig())

        config = bundle_file.config
        diagnostics = list(bundle_file.diagnostics)

        option_values: dict[str, object] = {f.name: getattr(config.options, f.name) for f in fields(config.options)}
        option_values.update(_parse_assignments(args.assignments))
        options, option_diagnostics = parse_minifier_options(option_values, strict=args.strict)
        diagnostics.extend(option_diagnostics)

        overrides: dict[str, object] = {"options": options}
        if args.map_dir:
            overrides["map_output_dir"] = Path(args.map_dir)
        if args.script_dir:
            overrides["script_output_dir"] = Path(args.script_dir)
        if args.base_url:
            overrides["output_base_url"] = args.base_url
        if args.map_url:
            overrides["map_base_url"] = args.map_url
        if args.source_root:
            overrides["source_root"] = args.source_root
        if args.legacy_comment:
            overrides["reference_style"] = MapReferenceStyle.LEGACY
        if args.embed_sources:
            overrides["embed_sources"] = True
        config = replace(config, **overrides)

        resources = [Resource(identifier=r, path=Path(r)) for r in args.resources] or bundle_file.resources
        name = args.name or bundle_file.name
        debug = args.debug or bundle_file.debug

        if not name:
            print("Error: no bundle name given (use --name or [bundle] name)", file=sys.stderr)
            return 1
        if not resources:
            print("Error: no resources to bundle", file=sys.stderr)
            return 1

        if args.dry_run:
            print(f"Would build bundle {name!r} from {len(resources)} resources")
            for resource in resources:
                print(f"  {resource.identifier}")
            if not debug and config.map_output_dir is not None:
                print(f"Source map: {config.map_output_dir}/{name}.js.map")
            return 0

        orchestrator = BundleOrchestrator(config, create_engine(args.engine))
        bundle = orchestrator.build(BundleRequest(name=name, resources=resources, debug=debug))
    except BundleMapError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        for message in diagnostics + bundle.diagnostics:
            print(f"  {message}", file=sys.stderr)

    status = sys.stdout if bundle.script_path is not None else sys.stderr
    if bundle.script_path is not None:
        print(f"Wrote {bundle.script_path} ({len(bundle.text)} chars)", file=status)
    else:
        sys.stdout.write(bundle.text)
    if bundle.map_path is not None:
        print(f"Wrote {bundle.map_path} -> {bundle.map_url}", file=status)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
