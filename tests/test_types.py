"""Tests for shared types module."""

from bootc_imagegen.types import BuildStatus, ImageType


class TestEnums:
    """Test enum definitions."""

    def test_build_status_values(self) -> None:
        """BuildStatus should have expected values."""
        assert BuildStatus.CREATING.value == "creating"
        assert BuildStatus.RUNNING.value == "running"
        assert BuildStatus.SUCCESS.value == "success"
        assert BuildStatus.ERROR.value == "error"

    def test_image_type_values(self) -> None:
        """ImageType should have expected values."""
        assert [t.value for t in ImageType] == ["qcow2", "ami", "raw", "iso"]

    def test_enums_compare_to_strings(self) -> None:
        """str-based enums should compare equal to their values."""
        assert BuildStatus.SUCCESS == "success"
        assert ImageType.ISO == "iso"
