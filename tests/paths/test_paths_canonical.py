import unittest

from carslots.errors import PathValidationError
from carslots.paths import (
    assert_valid_path,
    basename,
    join_path,
    normalize_path,
    parent_path,
    sanitize_filename,
    sanitize_segment,
)


class TestNormalizePath(unittest.TestCase):
    def test_messy_path_is_canonicalized(self) -> None:
        self.assertEqual(
            normalize_path("  \\Фото / MSK \\ car // photos  "),
            "/Фото/MSK/car/photos",
        )

    def test_disk_prefix_is_stripped(self) -> None:
        self.assertEqual(normalize_path("disk:/Фото/R1"), "/Фото/R1")
        self.assertEqual(normalize_path("/disk:/Фото/R1"), "/Фото/R1")

    def test_leading_slash_added_and_trailing_removed(self) -> None:
        self.assertEqual(normalize_path("Фото/R1/"), "/Фото/R1")
        self.assertEqual(normalize_path("/"), "/")

    def test_empty_or_whitespace_raises(self) -> None:
        for raw in ("", "   ", "\t\n"):
            with self.subTest(raw=raw):
                with self.assertRaises(PathValidationError):
                    normalize_path(raw)

    def test_non_string_raises(self) -> None:
        with self.assertRaises(PathValidationError):
            normalize_path(None)  # type: ignore[arg-type]

    def test_idempotent(self) -> None:
        once = normalize_path(" disk:/A // B / C ")
        self.assertEqual(normalize_path(once), once)


class TestAssertValidPath(unittest.TestCase):
    def test_returns_canonical_path(self) -> None:
        self.assertEqual(assert_valid_path("/a//b/", "upload"), "/a/b")

    def test_colon_in_segment_is_rejected_with_stage(self) -> None:
        with self.assertRaises(PathValidationError) as ctx:
            assert_valid_path("/a/C:b", "upload")
        self.assertEqual(ctx.exception.stage, "upload")
        self.assertIn("[upload]", str(ctx.exception))

    def test_traversal_is_rejected(self) -> None:
        with self.assertRaises(PathValidationError) as ctx:
            assert_valid_path("/a/../b", "move")
        self.assertEqual(ctx.exception.stage, "move")

    def test_blank_reports_calling_stage(self) -> None:
        with self.assertRaises(PathValidationError) as ctx:
            assert_valid_path("  ", "list_folder")
        self.assertEqual(ctx.exception.stage, "list_folder")


class TestSanitize(unittest.TestCase):
    def test_illegal_characters_replaced(self) -> None:
        self.assertEqual(sanitize_segment('a/b\\c:d*e?f"g<h>i|j'), "a_b_c_d_e_f_g_h_i_j")

    def test_dots_and_whitespace(self) -> None:
        self.assertEqual(sanitize_segment("  ..name..  "), "name")
        self.assertEqual(sanitize_segment("a...b"), "a.b")
        self.assertEqual(sanitize_segment(".."), "")
        self.assertEqual(sanitize_segment("..."), "")

    def test_truncates_to_255(self) -> None:
        self.assertEqual(len(sanitize_segment("a" * 300)), 255)

    def test_filename_keeps_extension(self) -> None:
        self.assertEqual(sanitize_filename("my:photo.jpg"), "my_photo.jpg")
        self.assertEqual(sanitize_filename("photo"), "photo")

    def test_filename_falls_back_to_default_name(self) -> None:
        self.assertEqual(sanitize_filename("...jpg"), "file.jpg")
        self.assertEqual(sanitize_filename("??.png"), "__.png")
        self.assertEqual(sanitize_filename(" .png"), "file.png")


class TestJoinHelpers(unittest.TestCase):
    def test_join_parent_basename(self) -> None:
        path = join_path("/Фото/R1", "Toyota Camry X", "_CAR.json")
        self.assertEqual(path, "/Фото/R1/Toyota Camry X/_CAR.json")
        self.assertEqual(parent_path(path), "/Фото/R1/Toyota Camry X")
        self.assertEqual(basename(path), "_CAR.json")
        self.assertEqual(parent_path("/Фото"), "/")


if __name__ == "__main__":
    unittest.main()
