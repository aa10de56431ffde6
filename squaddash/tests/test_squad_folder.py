import tempfile
import unittest
from pathlib import Path

from squaddash.markdown_utils import extract_section, is_separator_row, slugify, split_table_cells
from squaddash.squad_folder import detect_squad_folder, get_squad_folder_name, get_squad_path, has_squad_team


class SquadFolderTests(unittest.TestCase):
    def test_detection_prefers_current_layout(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            self.assertIsNone(detect_squad_folder(root))
            self.assertEqual(get_squad_folder_name(root), ".squad")
            self.assertFalse(has_squad_team(root))

            (root / ".ai-team").mkdir()
            (root / ".ai-team" / "team.md").write_text("# Team\n", encoding="utf-8")
            self.assertEqual(detect_squad_folder(root), ".ai-team")
            self.assertTrue(has_squad_team(root))
            self.assertEqual(get_squad_path(root, "log"), root / ".ai-team" / "log")

            (root / ".squad").mkdir()
            self.assertEqual(detect_squad_folder(root), ".squad")
            self.assertFalse(has_squad_team(root))


class MarkdownHelperTests(unittest.TestCase):
    def test_extract_section(self) -> None:
        content = "# Title\n\n## Summary\n\nFirst.\n\n### Detail\n\nMore.\n\n## Next\n\nOther.\n"
        self.assertEqual(extract_section(content, "summary"), "First.\n\n### Detail\n\nMore.")
        self.assertEqual(extract_section(content, "Next"), "Other.")
        self.assertIsNone(extract_section(content, "Missing"))

    def test_table_helpers(self) -> None:
        self.assertEqual(split_table_cells("| a | b |"), ["a", "b"])
        self.assertTrue(is_separator_row(split_table_cells("|---|:---:|")))
        self.assertFalse(is_separator_row(split_table_cells("| a | --- |")))

    def test_slugify(self) -> None:
        self.assertEqual(slugify("Danny O'Brien"), "danny-o-brien")
        self.assertEqual(slugify("  --Rusty--  "), "rusty")


if __name__ == "__main__":
    unittest.main()
