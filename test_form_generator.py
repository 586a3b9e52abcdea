"""
Unit tests for form_generator module.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

import docforms.form_generator as form_generator
from docforms.config_loader import get_default_config
from docforms.form_generator import FormGenerator, RenderContext, widget_key
from docforms.form_state import FormBinding


def _widget(inputs):
    """Fake widget returning the user input for its key, else its initial value."""
    def render(label, *args, **kwargs):
        if kwargs['key'] in inputs:
            return inputs[kwargs['key']]
        if 'index' in kwargs:
            return args[0][kwargs['index']]
        return kwargs.get('value')
    return render


@pytest.fixture
def fake_st(monkeypatch):
    st = MagicMock()
    st.button.return_value = False
    st.columns.side_effect = lambda spec: [MagicMock() for _ in spec]
    monkeypatch.setattr(form_generator, "st", st)
    return st


@pytest.fixture
def context():
    return RenderContext.from_config(get_default_config(), "en")


def _use_inputs(st, inputs):
    for widget in ('text_input', 'number_input', 'date_input', 'selectbox'):
        getattr(st, widget).side_effect = _widget(inputs)


class TestRenderContext:
    """Test class for the render context."""

    def test_ltr_locale(self, context):
        assert context.direction == "ltr"
        assert context.text('form.submit') == "Submit"

    def test_rtl_locale(self):
        context = RenderContext.from_config(get_default_config(), "ar")

        assert context.is_rtl
        assert context.text('form.add') == "إضافة"

    def test_missing_translation_falls_back(self):
        context = RenderContext.from_config(get_default_config(), "fr")
        assert context.text('form.remove') == "Remove"
        assert context.direction == "ltr"

    def test_apply_direction(self, fake_st):
        FormGenerator.apply_direction(RenderContext.from_config(get_default_config(), "ar"))
        fake_st.markdown.assert_called_once()


class TestRenderDynamicForm:
    """Test class for form rendering."""

    def test_widget_values_flow_into_binding(self, fake_st, context):
        binding = FormBinding([
            {"key": "name", "type": "text", "maxLength": 10},
            {"key": "age", "type": "number", "step": 1},
            {"key": "dob", "type": "date"},
            {"key": "relation", "type": "select", "options": ["Spouse", "Other"]},
            {"key": "logo", "type": "image", "constraints": {"width": 120, "height": 40}},
        ], version=1)
        _use_inputs(fake_st, {
            widget_key(binding, ("name",)): "Ann",
            widget_key(binding, ("age",)): 30,
            widget_key(binding, ("dob",)): date(2024, 3, 5),
            widget_key(binding, ("relation",)): "Other",
            widget_key(binding, ("logo",)): "https://example.com/logo.png",
        })

        submitted = FormGenerator.render_dynamic_form(binding, context)

        assert submitted is False
        assert binding.values == {
            "name": "Ann",
            "age": 30,
            "dob": "2024-03-05",
            "relation": "Other",
            "logo": "https://example.com/logo.png",
        }
        assert fake_st.text_input.call_args_list[0][1]['max_chars'] == 10
        fake_st.image.assert_called_once_with("https://example.com/logo.png", width=120)

    def test_labels_use_locale_and_mark_required(self, fake_st):
        context = RenderContext.from_config(get_default_config(), "ar")
        binding = FormBinding([
            {"key": "name", "type": "text", "required": True, "label": {"en": "Name", "ar": "الاسم"}},
        ])
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        assert fake_st.text_input.call_args[0][0] == "الاسم *"

    def test_select_has_placeholder(self, fake_st, context):
        binding = FormBinding([{"key": "relation", "type": "select", "options": ["Spouse", "Child"]}])
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        args, kwargs = fake_st.selectbox.call_args
        assert args[1] == ["", "Spouse", "Child"]
        assert kwargs['index'] == 0
        assert kwargs['format_func']("") == context.text('form.select')
        assert binding.values == {"relation": ""}

    def test_select_without_options_is_text_input(self, fake_st, context):
        binding = FormBinding([{"key": "city", "type": "select"}])
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        fake_st.selectbox.assert_not_called()
        fake_st.text_input.assert_called_once()

    def test_unknown_kind_renders_nothing(self, fake_st, context):
        binding = FormBinding([{"key": "sig", "type": "signature"}])
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        fake_st.text_input.assert_not_called()
        fake_st.empty.assert_not_called()

    def test_submit_button(self, fake_st, context):
        binding = FormBinding([{"key": "name", "type": "text"}], version=4)
        _use_inputs(fake_st, {})
        fake_st.button.return_value = True

        assert FormGenerator.render_dynamic_form(binding, context, busy=True) is True

        args, kwargs = fake_st.button.call_args
        assert args[0] == "Submit"
        assert kwargs['disabled'] is True
        assert kwargs['key'] == "field_v4_submit"
        assert fake_st.text_input.call_args[1]['disabled'] is True

    def test_errors_shown_beneath_controls_after_submit(self, fake_st, context):
        binding = FormBinding([
            {"key": "name", "type": "text", "required": True},
            {"key": "age", "type": "number", "max": 120},
        ])
        slot = MagicMock()
        fake_st.empty.return_value = slot
        _use_inputs(fake_st, {widget_key(binding, ("age",)): 200})

        FormGenerator.render_dynamic_form(binding, context)
        slot.error.assert_not_called()

        binding.submit()
        FormGenerator.render_dynamic_form(binding, context)

        messages = [call[0][0] for call in slot.error.call_args_list]
        assert messages == ["This field is required", "Must be at most 120"]

    def test_errors_clear_when_input_is_fixed(self, fake_st, context):
        binding = FormBinding([{"key": "name", "type": "text", "required": True}])
        binding.submit()
        slot = MagicMock()
        fake_st.empty.return_value = slot
        _use_inputs(fake_st, {widget_key(binding, ("name",)): "Ann"})

        FormGenerator.render_dynamic_form(binding, context)

        slot.error.assert_not_called()
        assert binding.errors == {}


class TestArrayRendering:
    """Test class for repeatable groups."""

    FIELDS = [{
        "key": "dependents",
        "type": "array",
        "itemShape": {
            "name": {"type": "text", "required": True},
            "relation": {"type": "select", "options": ["Spouse", "Child", "Other"]},
        },
    }]

    def test_add_button_appends_item(self, fake_st, context):
        binding = FormBinding(self.FIELDS, version=2)
        add_key = widget_key(binding, ("dependents",), "add")
        fake_st.button.side_effect = lambda label, **kwargs: kwargs['key'] == add_key
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        assert binding.values == {"dependents": [{"name": "", "relation": ""}]}
        fake_st.rerun.assert_called_once()

    def test_item_widgets_are_keyed_by_item_id(self, fake_st, context):
        binding = FormBinding(self.FIELDS, version=2)
        binding.append_item(("dependents",))
        second = binding.append_item(("dependents",))
        binding.remove_item(("dependents",), 0)
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        keys = [call[1]['key'] for call in fake_st.text_input.call_args_list]
        assert keys == [widget_key(binding, ("dependents", second, "name"))]

    def test_remove_button_removes_its_item(self, fake_st, context):
        binding = FormBinding(self.FIELDS)
        first = binding.append_item(("dependents",))
        second = binding.append_item(("dependents",))
        remove_key = widget_key(binding, ("dependents", first), "remove")
        fake_st.button.side_effect = lambda label, **kwargs: kwargs['key'] == remove_key
        _use_inputs(fake_st, {
            widget_key(binding, ("dependents", first, "name")): "Ann",
            widget_key(binding, ("dependents", second, "name")): "Bob",
        })

        FormGenerator.render_dynamic_form(binding, context)

        assert [item.item_id for item in binding.items(("dependents",))] == [second]
        assert binding.values == {"dependents": [{"name": "Bob", "relation": ""}]}
        fake_st.rerun.assert_called_once()

    def test_item_errors_follow_their_item(self, fake_st, context):
        binding = FormBinding(self.FIELDS)
        first = binding.append_item(("dependents",))
        binding.append_item(("dependents",))
        binding.set_value(("dependents", first, "name"), "Ann")
        binding.submit()

        slots = []

        def make_slot():
            slot = MagicMock()
            slots.append(slot)
            return slot

        fake_st.empty.side_effect = make_slot
        _use_inputs(fake_st, {})

        FormGenerator.render_dynamic_form(binding, context)

        # name and relation per item, then the array's own slot
        assert len(slots) == 5
        assert not slots[0].error.called
        slots[2].error.assert_called_once_with("This field is required")
        assert not slots[4].error.called
