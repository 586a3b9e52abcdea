"""
Dynamic form generator for the document form app.
Renders a bound field specification as Streamlit widgets.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import streamlit as st
from dateutil import parser as date_parser

from .field_spec import FieldKind, FieldSpec
from .form_state import FieldPath, FormBinding
from .i18n import FALLBACK_LOCALE, get_strings
from .model_builder import is_absolute_url

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

RTL_STYLE = """
<style>
section.main .block-container, section[data-testid="stSidebar"] {
    direction: rtl;
    text-align: right;
}
</style>
"""


@dataclass(frozen=True)
class RenderContext:
    """Read-only rendering context: display locale, text direction and UI strings."""
    locale: str = FALLBACK_LOCALE
    direction: str = "ltr"
    strings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(get_strings(FALLBACK_LOCALE)))
    validate_on_change: bool = True

    @classmethod
    def from_config(cls, config: Dict[str, Any], locale: Optional[str] = None) -> 'RenderContext':
        ui = config.get('ui', {})
        locale = locale or ui.get('default_locale', FALLBACK_LOCALE)
        rtl_locales = ui.get('rtl_locales', [])
        return cls(
            locale=locale,
            direction="rtl" if locale in rtl_locales else "ltr",
            strings=MappingProxyType(get_strings(locale)),
            validate_on_change=ui.get('validate_on_change', True)
        )

    @property
    def is_rtl(self) -> bool:
        return self.direction == "rtl"

    def text(self, name: str, **kwargs) -> str:
        template = self.strings.get(name, name)
        return template.format(**kwargs) if kwargs else template


def widget_key(binding: FormBinding, path: FieldPath, suffix: str = "") -> str:
    """
    Build the Streamlit key of a control.

    Keys contain the form version and the identity path, so a new form never
    reuses old widget state and array instances keep their widgets when
    earlier instances are removed.
    """
    key = f"field_v{binding.version}" + "".join(f"[{part!r}]" for part in path)
    return f"{key}_{suffix}" if suffix else key


class FormGenerator:
    """Generates Streamlit forms from bound field specifications."""

    @staticmethod
    def apply_direction(context: RenderContext) -> None:
        """Switch the page to right-to-left layout for RTL locales."""
        if context.is_rtl:
            st.markdown(RTL_STYLE, unsafe_allow_html=True)

    @staticmethod
    def render_dynamic_form(binding: FormBinding, context: RenderContext, busy: bool = False) -> bool:
        """
        Render every field of a binding followed by the submit button.

        Widget values are written back into the binding as they are read.
        Once the form has been submitted, it is re-validated on every run so
        errors clear as soon as the input is fixed.

        Args:
            binding: Bound form to render
            context: Locale, direction and UI strings
            busy: Disable the controls while a request is in flight

        Returns:
            True if the submit button was clicked
        """
        error_slots: List[Tuple[FieldPath, Any]] = []

        for spec in binding.fields:
            FormGenerator._render_field(binding, spec, (spec.key,), context, error_slots, busy)

        if binding.submitted and context.validate_on_change:
            binding.validate()

        for path, slot in error_slots:
            error = binding.error_for(path)
            if error is not None:
                slot.error(error.message)

        return st.button(
            context.text('form.submit'),
            key=widget_key(binding, (), "submit"),
            type="primary",
            disabled=busy
        )

    @staticmethod
    def _render_field(binding: FormBinding, spec: FieldSpec, path: FieldPath, context: RenderContext,
                      error_slots: List[Tuple[FieldPath, Any]], busy: bool) -> None:
        """Render a single field by kind and record where its error goes."""
        if spec.kind == FieldKind.ARRAY.value:
            FormGenerator._render_array(binding, spec, path, context, error_slots, busy)
            return

        label = FormGenerator._label(spec, context)
        key = widget_key(binding, path)
        current_value = binding.get_value(path)

        if spec.kind == FieldKind.TEXT.value:
            value = FormGenerator._render_text_input(spec, label, key, current_value, busy)
        elif spec.kind == FieldKind.NUMBER.value:
            value = FormGenerator._render_number_input(spec, label, key, current_value, busy)
        elif spec.kind == FieldKind.DATE.value:
            value = FormGenerator._render_date_input(spec, label, key, current_value, busy)
        elif spec.kind == FieldKind.SELECT.value:
            value = FormGenerator._render_selectbox(spec, label, key, current_value, context, busy)
        elif spec.kind == FieldKind.IMAGE.value:
            value = FormGenerator._render_image_input(spec, label, key, current_value, context, busy)
        else:
            logger.debug(f"Skipping field '{spec.key}' with unsupported kind '{spec.kind}'")
            return

        binding.set_value(path, value)
        error_slots.append((path, st.empty()))

    @staticmethod
    def _label(spec: FieldSpec, context: RenderContext) -> str:
        label = spec.display_label(context.locale)
        return f"{label} *" if spec.required else label

    @staticmethod
    def _render_text_input(spec: FieldSpec, label: str, key: str, current_value: Any, busy: bool) -> str:
        value = st.text_input(
            label,
            value=current_value if isinstance(current_value, str) else "",
            max_chars=spec.max_length,
            placeholder=label,
            key=key,
            disabled=busy
        )
        return value if value is not None else ""

    @staticmethod
    def _render_number_input(spec: FieldSpec, label: str, key: str, current_value: Any, busy: bool) -> Any:
        """Render number input field; an empty input stays None."""
        step = spec.step if spec.step is not None else 1
        value = current_value if isinstance(current_value, (int, float)) else None

        # Streamlit requires value and step to share a numeric type
        if isinstance(step, float) or isinstance(value, float):
            step = float(step)
            value = float(value) if value is not None else None

        return st.number_input(label, value=value, step=step, key=key, disabled=busy)

    @staticmethod
    def _render_date_input(spec: FieldSpec, label: str, key: str, current_value: Any, busy: bool) -> str:
        """Render date input field and return as YYYY-MM-DD string."""
        value = None
        if isinstance(current_value, str) and current_value:
            try:
                value = date_parser.parse(current_value).date()
            except (ValueError, OverflowError) as e:
                logger.warning(f"Failed to parse date string '{current_value}': {e}")
        elif isinstance(current_value, datetime):
            value = current_value.date()
        elif isinstance(current_value, date):
            value = current_value

        result = st.date_input(label, value=value, format="YYYY-MM-DD", key=key, disabled=busy)
        if isinstance(result, date):
            return result.strftime(DATE_FORMAT)
        return ""

    @staticmethod
    def _render_selectbox(spec: FieldSpec, label: str, key: str, current_value: Any,
                          context: RenderContext, busy: bool) -> str:
        """Render selectbox with a leading placeholder; free text when there are no options."""
        if not spec.has_options():
            value = st.text_input(
                label,
                value=current_value if isinstance(current_value, str) else "",
                key=key,
                disabled=busy
            )
            return value if value is not None else ""

        options = [""] + list(spec.options)
        index = options.index(current_value) if current_value in options else 0
        placeholder = context.text('form.select')
        value = st.selectbox(
            label,
            options,
            index=index,
            format_func=lambda option: placeholder if option == "" else option,
            key=key,
            disabled=busy
        )
        return value if value is not None else ""

    @staticmethod
    def _render_image_input(spec: FieldSpec, label: str, key: str, current_value: Any,
                            context: RenderContext, busy: bool) -> str:
        help_text = None
        constraints = spec.constraints
        if constraints is not None and (constraints.width or constraints.height):
            help_text = context.text(
                'form.image_hint',
                width=constraints.width or '-',
                height=constraints.height or '-'
            )

        value = st.text_input(
            label,
            value=current_value if isinstance(current_value, str) else "",
            placeholder="https://example.com/image.png",
            help=help_text,
            key=key,
            disabled=busy
        )
        value = value if value is not None else ""

        if value and is_absolute_url(value):
            width = constraints.width if constraints is not None else None
            st.image(value, width=width)
        return value

    @staticmethod
    def _render_array(binding: FormBinding, spec: FieldSpec, path: FieldPath, context: RenderContext,
                      error_slots: List[Tuple[FieldPath, Any]], busy: bool) -> None:
        """
        Render a repeatable group.

        Each instance is rendered with its own identity path; add and remove
        change the binding and rerun the script so the widgets follow.
        """
        st.markdown(f"**{FormGenerator._label(spec, context)}**")

        remove_position = None
        for position, item in enumerate(binding.items(path)):
            item_path = path + (item.item_id,)
            with st.container(border=True):
                header_col, remove_col = st.columns([4, 1])
                with header_col:
                    st.caption(context.text('form.item', number=position + 1))
                with remove_col:
                    if st.button(context.text('form.remove'), key=widget_key(binding, item_path, "remove"),
                                 disabled=busy):
                        remove_position = position

                for child in spec.child_fields():
                    FormGenerator._render_field(
                        binding, child, item_path + (child.key,), context, error_slots, busy
                    )

        add_clicked = st.button(
            context.text('form.add'),
            key=widget_key(binding, path, "add"),
            disabled=busy
        )
        error_slots.append((path, st.empty()))

        if remove_position is not None:
            binding.remove_item(path, remove_position)
            st.rerun()
        elif add_clicked:
            binding.append_item(path)
            st.rerun()
