"""
Session state management for the document form app.
Holds the active template, its form binding and in-flight request tracking.
"""

import logging
from typing import Optional

import streamlit as st

from .field_spec import TemplateSpec
from .form_state import FormBinding
from .submission_handler import InFlightRequests, SubmissionOutcome

logger = logging.getLogger(__name__)

PAGE_UPLOAD = "upload"
PAGE_TEMPLATES = "templates"
PAGE_RENDER = "render"
PAGES = (PAGE_UPLOAD, PAGE_TEMPLATES, PAGE_RENDER)

DEFAULT_PAGE = PAGE_UPLOAD
DEFAULT_LOCALE = "en"


class SessionManager:
    """Manages Streamlit session state for the document form app."""

    @staticmethod
    def initialize(default_locale: str = DEFAULT_LOCALE, active_template: Optional[TemplateSpec] = None):
        """Initialize session state variables; existing keys are left alone."""
        defaults = {
            'current_page': PAGE_RENDER if active_template is not None else DEFAULT_PAGE,
            'locale': default_locale,
            'active_template': active_template,
            'form_binding': None,
            'form_version': 0,
            'request_tracker': InFlightRequests(),
            'last_document': None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def get_current_page() -> str:
        return st.session_state.get('current_page', DEFAULT_PAGE)

    @staticmethod
    def set_current_page(page: str):
        """Set the current page; leaving the render page discards its form."""
        if page not in PAGES:
            raise ValueError(f"Unknown page: {page}")

        old_page = st.session_state.get('current_page')
        if old_page != page:
            logger.info(f"Page transition: {old_page} -> {page}")
            if old_page == PAGE_RENDER:
                SessionManager.discard_binding()
            st.session_state['current_page'] = page

    @staticmethod
    def get_locale() -> str:
        return st.session_state.get('locale', DEFAULT_LOCALE)

    @staticmethod
    def set_locale(locale: str):
        if locale != st.session_state.get('locale'):
            logger.info(f"Locale changed: {st.session_state.get('locale')} -> {locale}")
            st.session_state['locale'] = locale

    @staticmethod
    def get_active_template() -> Optional[TemplateSpec]:
        return st.session_state.get('active_template')

    @staticmethod
    def set_active_template(spec: Optional[TemplateSpec]):
        """Make a template active; any form bound to the previous one is discarded."""
        st.session_state['active_template'] = spec
        st.session_state['last_document'] = None
        SessionManager.discard_binding()
        if spec is not None:
            logger.info(f"Active template: {spec.template_id} v{spec.version}")

    @staticmethod
    def get_binding() -> Optional[FormBinding]:
        return st.session_state.get('form_binding')

    @staticmethod
    def ensure_binding() -> Optional[FormBinding]:
        """
        Return the form binding of the active template, creating it if needed.

        Raises:
            InvalidSpecificationError: If the active template's fields are malformed
        """
        binding = st.session_state.get('form_binding')
        if binding is not None:
            return binding

        spec = SessionManager.get_active_template()
        if spec is None:
            return None

        version = st.session_state.get('form_version', 0) + 1
        binding = FormBinding(spec.fields, version=version)
        st.session_state['form_version'] = version
        st.session_state['form_binding'] = binding
        logger.debug(f"Created form binding v{version} for template {spec.template_id}")
        return binding

    @staticmethod
    def discard_binding():
        if st.session_state.get('form_binding') is not None:
            logger.debug("Discarding form binding")
        st.session_state['form_binding'] = None

    @staticmethod
    def is_active_binding(version: int) -> bool:
        """Check whether the form that started a request is still on screen."""
        binding = st.session_state.get('form_binding')
        return binding is not None and binding.version == version

    @staticmethod
    def get_request_tracker() -> InFlightRequests:
        tracker = st.session_state.get('request_tracker')
        if tracker is None:
            tracker = InFlightRequests()
            st.session_state['request_tracker'] = tracker
        return tracker

    @staticmethod
    def apply_render_outcome(version: int, outcome: SubmissionOutcome) -> bool:
        """
        Apply the result of a render request started by form ``version``.

        Results of abandoned forms are dropped. A successful render stores
        the document and discards the form.

        Returns:
            True if the outcome was applied
        """
        if not SessionManager.is_active_binding(version):
            logger.info(f"Dropping render result for abandoned form v{version}")
            return False

        if outcome.success:
            st.session_state['last_document'] = outcome.document
            SessionManager.discard_binding()
        return True

    @staticmethod
    def get_last_document() -> Optional[bytes]:
        return st.session_state.get('last_document')

    @staticmethod
    def clear_last_document():
        st.session_state['last_document'] = None
