from __future__ import annotations

import tempfile
import textwrap
import unittest
from pathlib import Path

from bundlemap.config import load_bundle_config, parse_minifier_options
from bundlemap.errors import ConfigFileError, InvalidOptionError
from bundlemap.types import LocalRenaming, MapReferenceStyle, MinifierOptions, OutputMode, ResourceMode


class TestParseMinifierOptions(unittest.TestCase):
    def test_defaults(self):
        options, diagnostics = parse_minifier_options({})
        self.assertEqual(options, MinifierOptions())
        self.assertEqual(diagnostics, [])
        self.assertIs(options.local_renaming, LocalRenaming.KEEP_ALL)
        self.assertIs(options.output_mode, OutputMode.SINGLE_LINE)

    def test_original_setting_names(self):
        options, diagnostics = parse_minifier_options(
            {
                "CollapseToLiteral": "false",
                "EvalsAreSafe": True,
                "LocalRenaming": "keeplocalizationvars",
                "OutputMode": "MultipleLines",
                "StripDebugStatements": "no",
            }
        )
        self.assertEqual(diagnostics, [])
        self.assertFalse(options.collapse_to_literal)
        self.assertTrue(options.evals_are_safe)
        self.assertIs(options.local_renaming, LocalRenaming.KEEP_LOCALIZATION_VARS)
        self.assertIs(options.output_mode, OutputMode.MULTIPLE_LINES)
        self.assertFalse(options.strip_debug_statements)

    def test_descriptive_aliases(self):
        options, _ = parse_minifier_options(
            {"identifier-renaming-mode": "aggressive", "output-layout": "multi-line", "strip-dead-code": 0}
        )
        self.assertIs(options.local_renaming, LocalRenaming.CRUNCH_ALL)
        self.assertIs(options.output_mode, OutputMode.MULTIPLE_LINES)
        self.assertFalse(options.remove_unneeded_code)

    def test_unrecognized_enum_value_falls_back_with_diagnostic(self):
        options, diagnostics = parse_minifier_options({"LocalRenaming": "CrunchSome"})
        self.assertIs(options.local_renaming, LocalRenaming.KEEP_ALL)
        self.assertEqual(len(diagnostics), 1)
        self.assertIn("CrunchSome", diagnostics[0])

    def test_unknown_key_and_bad_boolean(self):
        options, diagnostics = parse_minifier_options({"Colour": "red", "MacSafariQuirks": "maybe"})
        self.assertTrue(options.mac_safari_quirks)
        self.assertEqual(len(diagnostics), 2)

    def test_strict_mode_raises(self):
        with self.assertRaises(InvalidOptionError):
            parse_minifier_options({"OutputMode": "Sideways"}, strict=True)
        with self.assertRaises(InvalidOptionError):
            parse_minifier_options({"Colour": "red"}, strict=True)

    def test_enum_members_pass_through(self):
        options, _ = parse_minifier_options({"output_mode": OutputMode.MULTIPLE_LINES})
        self.assertIs(options.output_mode, OutputMode.MULTIPLE_LINES)


class TestLoadBundleConfig(unittest.TestCase):
    def _write(self, directory: Path, body: str) -> Path:
        path = directory / "bundle.toml"
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    def test_full_file(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            path = self._write(
                root,
                """
                [bundle]
                name = "site"
                resources = ["js/a.js", { path = "js/b.js", identifier = "/static/b.js" }]
                base_url = "/scripts"
                map_url = "/maps"
                map_dir = "out/maps"
                script_dir = "out/js"
                legacy_comment = true
                embed_sources = true

                [minifier]
                OutputMode = "MultipleLines"
                Bogus = 1
                """,
            )
            loaded = load_bundle_config(path)

        self.assertEqual(loaded.name, "site")
        self.assertEqual([r.identifier for r in loaded.resources], ["js/a.js", "/static/b.js"])
        self.assertEqual(loaded.resources[1].path, root / "js/b.js")
        self.assertEqual(loaded.config.map_output_dir, root / "out/maps")
        self.assertEqual(loaded.config.script_output_dir, root / "out/js")
        self.assertEqual(loaded.config.output_base_url, "/scripts")
        self.assertEqual(loaded.config.map_base_url, "/maps")
        self.assertIs(loaded.config.reference_style, MapReferenceStyle.LEGACY)
        self.assertTrue(loaded.config.embed_sources)
        self.assertIs(loaded.config.options.output_mode, OutputMode.MULTIPLE_LINES)
        self.assertEqual(len(loaded.diagnostics), 1)
        self.assertFalse(loaded.debug)

    def test_dynamic_resource_mode(self):
        with tempfile.TemporaryDirectory() as td:
            path = self._write(
                Path(td),
                """
                [bundle]
                resources = [{ path = "gen.js", mode = "dynamic" }]
                """,
            )
            loaded = load_bundle_config(path)
        self.assertIs(loaded.resources[0].mode, ResourceMode.DYNAMIC)
        self.assertIsNone(loaded.config.map_output_dir)

    def test_malformed_files(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            for body in (
                "[bundle\n",
                "bundle = 3\n",
                "[bundle]\nresources = 'a.js'\n",
                "[bundle]\nresources = [{ identifier = 'x' }]\n",
                "[bundle]\nresources = [{ path = 'a.js', mode = 'sometimes' }]\n",
                "[bundle]\ndebug = 'yes'\n",
            ):
                path = self._write(root, body)
                with self.assertRaises(ConfigFileError, msg=body):
                    load_bundle_config(path)

    def test_missing_file(self):
        with self.assertRaises(ConfigFileError):
            load_bundle_config(Path("/nonexistent/bundle.toml"))

    def test_strict_minifier_section(self):
        with tempfile.TemporaryDirectory() as td:
            path = self._write(Path(td), '[minifier]\nLocalRenaming = "Everything"\n')
            with self.assertRaises(InvalidOptionError):
                load_bundle_config(path, strict=True)


if __name__ == "__main__":
    unittest.main()
