from __future__ import annotations

import unittest
from pathlib import Path

from bundlemap.errors import UnsafePathError
from bundlemap.paths import clean_relative_path, join_url, map_file_name, normalize_bundle_name, safe_join


class TestPaths(unittest.TestCase):
    def test_clean_relative_path_rejects_scheme_and_drive(self):
        for name in ("https://cdn.example.com/site", "file:///tmp/site", "C:\\site", "c:site"):
            with self.subTest(name=name), self.assertRaises(UnsafePathError):
                clean_relative_path(name)

    def test_bundle_name_with_scheme_is_rejected(self):
        with self.assertRaises(UnsafePathError):
            normalize_bundle_name("https://cdn/x")

    def test_clean_relative_path_drops_dot_segments(self):
        self.assertEqual(clean_relative_path("a/./b/../c"), "a/c")

    def test_clean_relative_path_rejects_empty(self):
        with self.assertRaises(UnsafePathError):
            clean_relative_path("")

    def test_bundle_names(self):
        self.assertEqual(normalize_bundle_name("site"), "site")
        self.assertEqual(normalize_bundle_name("site.js"), "site")
        self.assertEqual(normalize_bundle_name("\\areas\\admin"), "areas/admin")
        self.assertEqual(map_file_name("areas/admin.js"), "areas/admin.js.map")

    def test_bundle_name_rejects_escape(self):
        with self.assertRaises(UnsafePathError):
            normalize_bundle_name("../site")

    def test_join_url(self):
        self.assertEqual(join_url("/scripts", "site"), "/scripts/site")
        self.assertEqual(join_url("/scripts/", "/site.js.map"), "/scripts/site.js.map")
        self.assertEqual(join_url("", "site.js.map"), "/site.js.map")
        self.assertEqual(join_url("https://cdn.example.com", "site"), "https://cdn.example.com/site")

    def test_safe_join_stays_within_base(self):
        base = Path("/tmp/out")
        out = safe_join(base, "a/b/site.js.map")
        self.assertTrue(str(out).endswith("/tmp/out/a/b/site.js.map"))

    def test_safe_join_prevents_escape(self):
        base = Path("/tmp/out")
        with self.assertRaises(UnsafePathError):
            safe_join(base, "../../etc/passwd")


if __name__ == "__main__":
    unittest.main()
