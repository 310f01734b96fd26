"""
Tests for upload path safety and small helpers
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from vfserve.utils import safe_join, normalize_path, format_file_size, PathTraversalError


class TestPathSafety:
    """Test path safety functions"""

    def setup_method(self):
        """Setup test environment"""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.root_path = self.temp_dir / "root"
        self.root_path.mkdir(parents=True)

        (self.root_path / "folder1").mkdir()
        (self.root_path / "test.txt").write_text("test content")

    def teardown_method(self):
        """Cleanup test environment"""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_safe_join_normal_paths(self):
        """Test safe_join with normal paths"""

        result = safe_join(self.root_path, "upload.txt")
        assert result == (self.root_path / "upload.txt").resolve()

        result = safe_join(self.root_path, "folder1/file.txt")
        assert result == (self.root_path / "folder1" / "file.txt").resolve()

        # Leading slash should be handled
        result = safe_join(self.root_path, "/folder1/test.txt")
        assert result == (self.root_path / "folder1" / "test.txt").resolve()

    def test_safe_join_path_traversal_attempts(self):
        """Test safe_join blocks path traversal attempts"""

        with pytest.raises(PathTraversalError):
            safe_join(self.root_path, "../outside.txt")

        with pytest.raises(PathTraversalError):
            safe_join(self.root_path, "folder1/../../outside.txt")

        with pytest.raises(PathTraversalError):
            safe_join(self.root_path, "folder1\\..\\..\\outside.txt")

    def test_safe_join_edge_cases(self):
        """Test safe_join edge cases"""

        assert safe_join(self.root_path, "") == self.root_path.resolve()
        assert safe_join(self.root_path, "/") == self.root_path.resolve()
        assert safe_join(self.root_path, ".") == self.root_path.resolve()

        result = safe_join(self.root_path, "//folder1///file.txt")
        assert result == (self.root_path / "folder1" / "file.txt").resolve()

    def test_safe_join_special_characters(self):
        """Test safe_join with special characters"""

        result = safe_join(self.root_path, "file name.txt")
        assert result == (self.root_path / "file name.txt").resolve()

        result = safe_join(self.root_path, "报告.txt")
        assert result == (self.root_path / "报告.txt").resolve()

        result = safe_join(self.root_path, "q1$final.txt")
        assert result == (self.root_path / "q1$final.txt").resolve()

    def test_safe_join_symlink_attacks(self):
        """Test safe_join handles symlink attacks (if supported by OS)"""

        try:
            outside_dir = self.temp_dir / "outside"
            outside_dir.mkdir()

            symlink_path = self.root_path / "symlink"
            symlink_path.symlink_to(outside_dir)
        except OSError:
            pytest.skip("Symlinks not supported on this system")

        with pytest.raises(PathTraversalError):
            safe_join(self.root_path, "symlink/secret.txt")


def test_path_normalization():
    assert normalize_path("folder\\subfolder") == "folder/subfolder"
    assert normalize_path("folder/subfolder") == "folder/subfolder"
    assert normalize_path("folder\\sub/folder") == "folder/sub/folder"


def test_format_file_size():
    assert format_file_size(0) == "0 B"
    assert format_file_size(512) == "512 B"
    assert format_file_size(128 * 1024) == "128.0 KB"
    assert format_file_size(3 * 1024 * 1024) == "3.0 MB"
