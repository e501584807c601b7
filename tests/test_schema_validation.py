"""Tests for JSON Schema validation of replay documents and render configs."""

import jsonschema
import pytest

from clicksynth.schema import list_schemas, validate_document


class TestSchemaValidation:
    """Test suite for bundled schema validation."""

    def test_bundled_schemas(self):
        assert list_schemas() == [
            "echo_json",
            "gdr",
            "mhr_json",
            "render_config",
            "tasbot",
        ]

    def test_valid_documents_pass(self):
        # Should not raise any exception
        validate_document({"meta": {"fps": 240}, "events": []}, "mhr_json")
        validate_document({"fps": 60, "inputs": []}, "echo_json")
        validate_document(
            {"sample_rate": 44100, "pitch": {"from": 0.9}}, "render_config"
        )

    def test_missing_required_fields(self):
        with pytest.raises(jsonschema.ValidationError) as exc_info:
            validate_document({"events": []}, "mhr_json")

        assert "Missing required field(s): meta" in str(exc_info.value)

    def test_nested_path_is_reported(self):
        document = {"meta": {"fps": 240}, "events": [{"frame": 1}, {"frame": -3}]}

        with pytest.raises(jsonschema.ValidationError) as exc_info:
            validate_document(document, "mhr_json")

        error_msg = str(exc_info.value)
        assert "events[1].frame" in error_msg
        assert ">= 0" in error_msg

    def test_enum_values_are_listed(self):
        with pytest.raises(jsonschema.ValidationError) as exc_info:
            validate_document({"expression": {"variable": "pitch"}}, "render_config")

        error_msg = str(exc_info.value)
        assert "Allowed values" in error_msg
        assert "time-offset" in error_msg

    def test_type_errors_name_expected_type(self):
        with pytest.raises(jsonschema.ValidationError) as exc_info:
            validate_document({"normalize": "yes"}, "render_config")

        assert "Expected boolean" in str(exc_info.value)

    def test_exclusive_minimum(self):
        with pytest.raises(jsonschema.ValidationError) as exc_info:
            validate_document({"meta": {"fps": 0}, "events": []}, "mhr_json")

        assert "must be > 0" in str(exc_info.value)

    def test_fallback_names_must_be_categories(self):
        with pytest.raises(jsonschema.ValidationError):
            validate_document({"fallback": {"clack": ["click"]}}, "render_config")

    def test_anyof_layouts(self):
        validate_document({"FPS": 60, "Echo Replay": []}, "echo_json")
        with pytest.raises(jsonschema.ValidationError):
            validate_document({"frames": []}, "echo_json")

    def test_unknown_schema(self):
        with pytest.raises(FileNotFoundError):
            validate_document({}, "nope")
