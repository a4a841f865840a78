"""Tests for builds/validation.py module."""

from unittest.mock import MagicMock

import pytest

from bootc_imagegen.builds.schema import BuildRequest
from bootc_imagegen.builds.validation import (
    REQUIRED_FIELDS,
    check_required_fields,
    validate_build_request,
)
from bootc_imagegen.errors import PrivilegeError, ValidationError

VALID_FIELDS = {
    "name": "os",
    "tag": "latest",
    "type": "qcow2",
    "engine_id": "e1",
    "folder": "/out",
    "arch": "x86_64",
}


@pytest.fixture
def runtime() -> MagicMock:
    """Create a runtime reporting a rootful engine."""
    runtime = MagicMock()
    runtime.is_rootful.return_value = True
    return runtime


class TestCheckRequiredFields:
    """Tests for check_required_fields function."""

    def test_valid_request(self):
        """Should accept a complete request."""
        check_required_fields(BuildRequest(**VALID_FIELDS))

    @pytest.mark.parametrize(("field", "message"), REQUIRED_FIELDS)
    def test_missing_field(self, field, message):
        """Should report the missing field with its message."""
        fields = {**VALID_FIELDS, field: ""}
        with pytest.raises(ValidationError) as exc_info:
            check_required_fields(BuildRequest(**fields))

        assert str(exc_info.value) == message
        assert exc_info.value.field == field
        assert exc_info.value.code == "validation"

    def test_fields_checked_in_order(self):
        """Should report the first missing field only."""
        with pytest.raises(ValidationError) as exc_info:
            check_required_fields(BuildRequest(folder="/out"))

        assert exc_info.value.field == "name"

    def test_engine_message(self):
        """Engine message should name engineId."""
        fields = {**VALID_FIELDS, "engine_id": ""}
        with pytest.raises(ValidationError, match="engineId is required"):
            check_required_fields(BuildRequest(**fields))


class TestValidateBuildRequest:
    """Tests for validate_build_request function."""

    def test_valid(self, runtime):
        """Should check the engine of a complete request."""
        validate_build_request(BuildRequest(**VALID_FIELDS), runtime)
        runtime.is_rootful.assert_called_once_with("e1")

    def test_missing_field_skips_engine(self, runtime):
        """Should not query the engine when a field is missing."""
        with pytest.raises(ValidationError):
            validate_build_request(BuildRequest(**{**VALID_FIELDS, "arch": ""}), runtime)

        runtime.is_rootful.assert_not_called()

    def test_rootless_engine(self, runtime):
        """Should raise PrivilegeError for rootless engines."""
        runtime.is_rootful.return_value = False

        with pytest.raises(PrivilegeError) as exc_info:
            validate_build_request(BuildRequest(**VALID_FIELDS), runtime)

        assert str(exc_info.value) == "The podman machine is not set as rootful."
