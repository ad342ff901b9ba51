from __future__ import annotations

import contextlib
import io
import json
import shutil
import subprocess
import tempfile
import textwrap
import unittest
from pathlib import Path

from bundlemap.cli import main as bundlemap_main

UTIL_JS = """\
/* helpers */
function add(a, b) {
  return a + b
}
var greeting = 'SUM:'
"""

APP_JS = """\
var parts = [1, 2, 3].map(function (n) { return n * 2 });
debugger;
console.log(greeting + add(parts[0], parts[2]) + '/' + new Array(4, 5).length)
"""


def _node() -> str | None:
    return shutil.which("node")


def _run_cli(argv: list[str]) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = bundlemap_main(argv)
    return code, out.getvalue(), err.getvalue()


def _write_project(root: Path) -> tuple[Path, Path]:
    util = root / "util.js"
    app = root / "app.js"
    util.write_text(UTIL_JS, encoding="utf-8")
    app.write_text(APP_JS, encoding="utf-8")
    return util, app


class TestCli(unittest.TestCase):
    def test_writes_bundle_and_map(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, app = _write_project(root)
            code, out, _err = _run_cli(
                [
                    str(util),
                    str(app),
                    "--name",
                    "site",
                    "--map-dir",
                    str(root / "maps"),
                    "--script-dir",
                    str(root / "public"),
                    "--map-url",
                    "/maps",
                ]
            )
            self.assertEqual(code, 0)
            self.assertIn("Wrote", out)

            script = (root / "public" / "site.js").read_text(encoding="utf-8")
            payload = json.loads((root / "maps" / "site.js.map").read_text(encoding="utf-8"))
            self.assertTrue(script.endswith("//# sourceMappingURL=/maps/site.js.map\n"))
            self.assertEqual(payload["sources"], [str(util), str(app)])
            self.assertNotIn("debugger", script)
            self.assertIn("add", payload["names"])

    def test_prints_bundle_without_script_dir(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, _app = _write_project(root)
            code, out, err = _run_cli([str(util), "--name", "site", "--map-dir", str(root / "maps")])
            self.assertEqual(code, 0)
            self.assertTrue(out.startswith("function add(a,b){return a+b}\nvar greeting='SUM:'"))
            self.assertIn("site.js.map", err)

    def test_config_file_with_overrides(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _write_project(root)
            (root / "bundle.toml").write_text(
                textwrap.dedent(
                    """
                    [bundle]
                    name = "site"
                    resources = ["util.js", "app.js"]
                    map_dir = "maps"

                    [minifier]
                    LocalRenaming = "CrunchEverything"
                    """
                ),
                encoding="utf-8",
            )
            code, _out, err = _run_cli(
                ["--config", str(root / "bundle.toml"), "--set", "OutputMode=MultipleLines", "--legacy-comment", "-v"]
            )
            self.assertEqual(code, 0)
            self.assertIn("CrunchEverything", err)
            payload = json.loads((root / "maps" / "site.js.map").read_text(encoding="utf-8"))
            self.assertEqual(payload["sources"], ["util.js", "app.js"])

    def test_strict_rejects_bad_option(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, _app = _write_project(root)
            code, _out, err = _run_cli(
                [str(util), "--name", "site", "--map-dir", str(root / "maps"), "--set", "OutputMode=Wide", "--strict"]
            )
            self.assertEqual(code, 1)
            self.assertIn("Error:", err)

    def test_missing_resource_fails(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            code, _out, err = _run_cli([str(root / "nope.js"), "--name", "site", "--map-dir", str(root / "maps")])
            self.assertEqual(code, 1)
            self.assertIn("nope.js", err)
            self.assertFalse((root / "maps").exists())

    def test_missing_map_dir_fails(self):
        with tempfile.TemporaryDirectory() as td:
            util, _app = _write_project(Path(td))
            code, _out, err = _run_cli([str(util), "--name", "site"])
            self.assertEqual(code, 1)
            self.assertIn("map output directory", err)

    def test_debug_build(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, _app = _write_project(root)
            code, out, _err = _run_cli([str(util), "--name", "site", "--map-dir", str(root / "maps"), "--debug"])
            self.assertEqual(code, 0)
            self.assertNotIn("sourceMappingURL", out)
            self.assertFalse((root / "maps").exists())

    def test_dry_run(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, app = _write_project(root)
            code, out, _err = _run_cli([str(util), str(app), "--name", "site", "--map-dir", str(root / "maps"), "--dry-run"])
            self.assertEqual(code, 0)
            self.assertIn("2 resources", out)
            self.assertFalse((root / "maps").exists())

    def test_short_flag_is_dry_run(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, _app = _write_project(root)
            code, out, _err = _run_cli([str(util), "--name", "site", "--map-dir", str(root / "maps"), "-n"])
            self.assertEqual(code, 0)
            self.assertIn("Would build bundle 'site'", out)
            self.assertFalse((root / "maps").exists())


class TestNodeExecution(unittest.TestCase):
    @unittest.skipIf(_node() is None, "node not installed")
    def test_minified_bundle_behaves_like_sources(self):
        node = _node()
        assert node is not None

        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            util, app = _write_project(root)
            (root / "original.js").write_text(UTIL_JS + "\n" + APP_JS, encoding="utf-8")

            for engine in ("token", "rjsmin"):
                code, _out, _err = _run_cli(
                    [
                        str(util),
                        str(app),
                        "--name",
                        f"site-{engine}",
                        "--engine",
                        engine,
                        "--map-dir",
                        str(root / "maps"),
                        "--script-dir",
                        str(root / "public"),
                    ]
                )
                self.assertEqual(code, 0)

                expected = subprocess.run(
                    [node, str(root / "original.js")], check=True, text=True, stdout=subprocess.PIPE
                ).stdout
                actual = subprocess.run(
                    [node, str(root / "public" / f"site-{engine}.js")], check=True, text=True, stdout=subprocess.PIPE
                ).stdout
                self.assertEqual(actual, expected)
                self.assertEqual(actual.strip(), "SUM:8/2")


if __name__ == "__main__":
    unittest.main()
