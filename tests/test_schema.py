"""
Tests for backend payload schemas and the schema model.

Covers JSON Schema validation of platform schema and apply response
payloads, and the parsing of the camelCase payloads into model objects.
"""
import pytest

from errors import ConfigurationError, SchemaValidationError
from schema import (
    APPLY_RESPONSE_SCHEMA,
    PLATFORM_SCHEMA_SCHEMA,
    AppliedTemplateEntry,
    CompositeBlockSchema,
    FieldType,
    PlatformSchema,
    SchemaField,
    TargetsConfig,
    TemplateDefinition,
    TemplateRecord,
    get_apply_response_schema,
    get_platform_schema_schema,
    validate_apply_response,
    validate_platform_schema,
)


class TestSchemaLoading:
    """Test that JSON schemas are loaded at import time."""

    def test_constants_loaded(self):
        assert PLATFORM_SCHEMA_SCHEMA["title"] == "Platform Schema"
        assert APPLY_RESPONSE_SCHEMA["title"] == "Template Apply Response"

    def test_getters_return_constants(self):
        assert get_platform_schema_schema() is PLATFORM_SCHEMA_SCHEMA
        assert get_apply_response_schema() is APPLY_RESPONSE_SCHEMA


class TestPlatformSchemaValidation:
    """Test validation of platform schema payloads."""

    def test_sample_schema_is_valid(self, schema_payload):
        validate_platform_schema(schema_payload)

    def test_empty_schema_is_valid(self):
        validate_platform_schema({})

    def test_block_without_type_rejected(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate_platform_schema({"editor": {"blocks": [{"id": "x"}]}})
        assert "editor.blocks.0" in str(exc_info.value)

    def test_field_without_name_or_id_rejected(self):
        payload = {"editor": {"blocks": [{"type": "form", "fields": [{"type": "text"}]}]}}
        with pytest.raises(SchemaValidationError):
            validate_platform_schema(payload)

    def test_non_object_root_rejected(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate_platform_schema([])
        assert "<root>" in str(exc_info.value)

    def test_schema_validation_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            validate_platform_schema({"editor": "nope"})


class TestApplyResponseValidation:
    """Test validation of template apply responses."""

    def test_success_with_content(self):
        validate_apply_response({"success": True, "content": {"subject": "x"}})

    def test_failure_without_content(self):
        validate_apply_response({"success": False, "error": "Template not found"})

    def test_success_without_content_rejected(self):
        with pytest.raises(SchemaValidationError):
            validate_apply_response({"success": True})

    def test_missing_success_rejected(self):
        with pytest.raises(SchemaValidationError):
            validate_apply_response({"content": {}})


class TestSchemaField:
    """Test SchemaField parsing."""

    def test_name_falls_back_to_id(self):
        field = SchemaField.from_dict({"id": "venue", "type": "text"})
        assert field.name == "venue"

    def test_unknown_type_kept_raw(self):
        field = SchemaField.from_dict({"name": "where", "type": "map"})
        assert field.type == "map"
        assert field.field_type is None

    def test_known_type_parsed(self):
        field = SchemaField.from_dict({"name": "at", "type": "target-list"})
        assert field.field_type is FieldType.TARGET_LIST

    def test_ui_order_defaults_to_999(self):
        field = SchemaField.from_dict({"name": "a"})
        assert field.ui.order == 999

    def test_bare_string_options(self):
        field = SchemaField.from_dict({"name": "genre", "type": "select", "options": ["rock", "jazz"]})
        assert [(o.label, o.value) for o in field.options] == [("rock", "rock"), ("jazz", "jazz")]

    def test_visibility(self):
        field = SchemaField.from_dict({
            "name": "groups", "visibleWhen": {"field": "mode", "value": "groups"},
        })
        assert field.is_visible({"mode": "groups"}) is True
        assert field.is_visible({"mode": "all"}) is False

    def test_hidden_ui_hint(self):
        field = SchemaField.from_dict({"name": "secret", "ui": {"hidden": True}})
        assert field.is_visible({}) is False


class TestCompositeBlockSchema:
    """Test composite block parsing."""

    def test_reads_rendering_section(self, schema_payload):
        block = CompositeBlockSchema.from_dict(schema_payload["editor"]["blocks"][0])
        assert set(block.schema) == {"mode", "individual", "groups"}
        assert block.data_endpoints["recipients"] == "/platforms/:platformId/recipients"
        assert block.missing_endpoints() == []

    def test_missing_endpoints(self):
        block = CompositeBlockSchema.from_dict({
            "id": "targets",
            "rendering": {
                "schema": {"individual": {"fieldType": "multiselect", "source": "recipients"}},
                "dataEndpoints": {},
            },
        })
        assert block.missing_endpoints() == ["individual"]


class TestPlatformSchema:
    """Test PlatformSchema helpers."""

    def test_targets_and_form_blocks(self, platform_schema):
        assert platform_schema.targets_block().id == "targets"
        assert [b.id for b in platform_schema.form_blocks()] == ["content"]

    def test_max_length(self, platform_schema):
        assert platform_schema.max_length() == 200
        assert PlatformSchema.from_dict("x", {}).max_length() == 1000


class TestTemplateModels:
    """Test template record and audit entry models."""

    def test_definition_canonical(self):
        assert TemplateDefinition.from_dict({"name": "eventTitle", "canonicalName": "title"}).canonical == "title"
        assert TemplateDefinition.from_dict({"name": "venue"}).canonical == "venue"

    def test_localized_name(self, template_record):
        assert template_record.localized_name("de-DE") == "Sommerkonzert"
        assert template_record.localized_name("en") == "Summer Gig"
        assert template_record.localized_name("es") == "Summer Gig"

    def test_localized_name_falls_back_to_id(self):
        assert TemplateRecord.from_dict({"id": "t1"}).localized_name("de") == "t1"

    def test_targets_config_round_trip_keeps_unknown_keys(self):
        data = {"mode": "groups", "groups": ["g1"], "templateLocale": "de", "mapping": {"g1": "t"}}
        assert TargetsConfig.from_dict(data).to_dict() == data

    def test_applied_entry_name_falls_back_to_template_id(self):
        entry = AppliedTemplateEntry.from_dict({"id": "1", "templateId": "t1"})
        assert entry.template_name == "t1"
        assert entry.to_dict()["specificFiles"] == []
