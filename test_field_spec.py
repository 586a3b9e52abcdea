"""
Unit tests for field_spec module.
"""

import pytest

from docforms.exceptions import InvalidSpecificationError
from docforms.field_spec import (
    FieldKind,
    FieldSpec,
    TemplateSummary,
    empty_value,
    parse_field_specs,
    parse_template_spec,
)


class TestFieldSpec:
    """Test class for field descriptors."""

    def test_wire_format_is_accepted(self):
        spec = FieldSpec.model_validate({
            "key": "name",
            "type": "text",
            "label": {"en": "Name", "ar": "الاسم"},
            "required": True,
            "maxLength": 40,
        })

        assert spec.kind == FieldKind.TEXT.value
        assert spec.max_length == 40
        assert spec.required is True

    def test_item_shape_children_take_mapping_keys(self):
        spec = FieldSpec.model_validate({
            "key": "dependents",
            "type": "array",
            "itemShape": {
                "name": {"type": "text", "required": True},
                "relation": {"type": "select", "options": ["Spouse", "Child"]},
            },
        })

        children = spec.child_fields()
        assert [child.key for child in children] == ["name", "relation"]
        assert children[1].options == ["Spouse", "Child"]
        assert spec.is_array

    def test_unknown_kind_is_accepted(self):
        spec = FieldSpec.model_validate({"key": "sig", "type": "signature"})
        assert not spec.is_known_kind

    @pytest.mark.parametrize("locale,expected", [
        ("en", "Full name"),
        ("ar", "الاسم الكامل"),
        ("fr", "full_name"),
    ])
    def test_display_label(self, locale, expected):
        spec = FieldSpec.model_validate({
            "key": "full_name",
            "type": "text",
            "label": {"en": "Full name", "ar": "الاسم الكامل"},
        })
        assert spec.display_label(locale) == expected

    def test_display_label_without_labels(self):
        spec = FieldSpec.model_validate({"key": "a key", "type": "text"})
        assert spec.display_label("en") == "a key"

    def test_empty_label_falls_back_to_key(self):
        spec = FieldSpec.model_validate({"key": "city", "type": "text", "label": {"en": ""}})
        assert spec.display_label("en") == "city"

    def test_specs_are_immutable(self):
        spec = FieldSpec.model_validate({"key": "city", "type": "text"})
        with pytest.raises(Exception):
            spec.key = "town"


class TestParsing:
    """Test class for parsing specification payloads."""

    def test_parse_field_specs_reports_location(self):
        with pytest.raises(InvalidSpecificationError) as exc_info:
            parse_field_specs([
                {"key": "ok", "type": "text"},
                {"key": "bad", "type": "number", "min": "low"},
            ])
        assert exc_info.value.field_path.startswith("1")

    def test_parse_field_specs_requires_list(self):
        with pytest.raises(InvalidSpecificationError, match="list"):
            parse_field_specs({"key": "name"})

    def test_parse_template_spec(self):
        spec = parse_template_spec({
            "templateId": "tpl-1",
            "version": 2,
            "fields": [{"key": "name", "type": "text"}],
        })

        assert spec.template_id == "tpl-1"
        assert spec.version == 2
        assert spec.to_payload() == {
            "templateId": "tpl-1",
            "version": 2,
            "fields": [{"key": "name", "type": "text", "required": False}],
        }

    def test_format_hint_is_kept(self):
        spec = parse_template_spec({
            "templateId": "tpl-1",
            "fields": [{"key": "contact", "type": "text", "format": "email"}],
        })

        assert spec.fields[0].format == "email"
        assert spec.to_payload()["fields"][0]["format"] == "email"

    def test_parse_template_spec_requires_template_id(self):
        with pytest.raises(InvalidSpecificationError):
            parse_template_spec({"fields": []})

    def test_template_summary(self):
        summary = TemplateSummary.model_validate({
            "templateId": "tpl-1",
            "name": "Contract",
            "version": 3,
            "createdAt": "2024-05-01T10:00:00Z",
        })

        spec = summary.to_template_spec()
        assert summary.created_at == "2024-05-01T10:00:00Z"
        assert spec.template_id == "tpl-1"
        assert spec.version == 3
        assert spec.fields == []


@pytest.mark.parametrize("raw,expected", [
    ({"key": "a", "type": "text"}, ""),
    ({"key": "a", "type": "text", "default": "x"}, "x"),
    ({"key": "a", "type": "number"}, None),
    ({"key": "a", "type": "number", "default": 5}, 5),
    ({"key": "a", "type": "date"}, ""),
    ({"key": "a", "type": "select", "options": ["x", "y"], "default": "y"}, "y"),
    ({"key": "a", "type": "image"}, ""),
    ({"key": "a", "type": "array"}, []),
    ({"key": "a", "type": "signature"}, None),
])
def test_empty_value(raw, expected):
    assert empty_value(FieldSpec.model_validate(raw)) == expected
