"""
Path sanitization tests
"""

import pytest

from image_optimizer.paths import resolve_within_root, sanitize_path


class TestSanitizePath:

    @pytest.mark.parametrize("value", [None, "", "../", "/", "\\\\"])
    def test_empty_results_are_rejected(self, value):
        assert sanitize_path(value) is None

    def test_strips_unix_traversal(self):
        assert sanitize_path("../../etc/passwd") == "etc/passwd"

    def test_strips_windows_traversal(self):
        assert sanitize_path("..\\..\\windows\\system32") == "windows\\system32"

    def test_strips_embedded_traversal(self):
        assert sanitize_path("products/../../secret.jpg") == "products/secret.jpg"

    def test_strips_embedded_windows_traversal(self):
        assert sanitize_path("products\\..\\secret.jpg") == "products\\secret.jpg"
        assert sanitize_path("a\\..\\..\\b") == "a\\b"

    def test_nested_sequences_do_not_rebuild_traversal(self):
        assert sanitize_path("....//....//etc") == "etc"
        assert ".." not in sanitize_path("..././..././etc/passwd").split("/")

    def test_strips_leading_separators(self):
        assert sanitize_path("/images/a.jpg") == "images/a.jpg"
        assert sanitize_path("\\\\server\\share") == "server\\share"

    @pytest.mark.parametrize("value", ["C:\\secrets", "c:/windows", "/D:/data", "../Z:stuff"])
    def test_drive_letters_are_rejected(self, value):
        assert sanitize_path(value) is None

    def test_plain_relative_path_unchanged(self):
        assert sanitize_path("monuments/heart monument.jpg") == "monuments/heart monument.jpg"


class TestResolveWithinRoot:

    def test_descendant_is_resolved(self, tmp_path):
        resolved = resolve_within_root(tmp_path, "products/a.jpg")
        assert resolved == (tmp_path / "products" / "a.jpg").resolve()

    def test_root_itself_is_allowed(self, tmp_path):
        assert resolve_within_root(tmp_path, ".") == tmp_path.resolve()

    def test_escape_is_rejected(self, tmp_path):
        assert resolve_within_root(tmp_path / "images", "a/../../secret") is None
        assert resolve_within_root(tmp_path / "images", "/etc/passwd") is None

    def test_backslashes_are_normalized(self, tmp_path):
        resolved = resolve_within_root(tmp_path, "products\\a.jpg")
        assert resolved == (tmp_path / "products" / "a.jpg").resolve()

    def test_symlink_escape_is_rejected(self, tmp_path):
        root = tmp_path / "images"
        root.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)
        assert resolve_within_root(root, "link/file.jpg") is None

    @pytest.mark.parametrize("attack", ["../../etc/passwd", "..\\..\\windows\\system32", "....//....//etc"])
    def test_sanitized_attacks_stay_inside_root(self, tmp_path, attack):
        sanitized = sanitize_path(attack)
        resolved = resolve_within_root(tmp_path, sanitized)
        assert resolved is not None
        assert tmp_path.resolve() in resolved.parents
