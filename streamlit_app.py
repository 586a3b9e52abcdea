"""
Main Streamlit application for Document Forms.
Upload a document template, fill in the form generated from its fields and
download the rendered document.
"""

import logging
from pathlib import Path

import streamlit as st

from docforms.api_client import DOCX_MIME_TYPE, TemplateServiceClient
from docforms.config_loader import get_logging_level, load_config, validate_config
from docforms.error_handler import ErrorHandler
from docforms.exceptions import InvalidSpecificationError, RequestInFlightError, TransportFailure
from docforms.form_generator import FormGenerator, RenderContext
from docforms.session_manager import PAGE_RENDER, PAGE_TEMPLATES, PAGE_UPLOAD, PAGES, SessionManager
from docforms.spec_store import ActiveTemplateStore
from docforms.submission_handler import INSPECT_ACTION, RENDER_ACTION, SubmissionHandler
from docforms.ui_feedback import Notify

config = load_config()

logging.basicConfig(level=get_logging_level(config))
logger = logging.getLogger(__name__)

if not validate_config(config):
    logger.warning("Configuration is incomplete or invalid, some settings may fall back to defaults")

st.set_page_config(
    page_title=config['ui']['page_title'],
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)

PAGE_LABELS = {
    PAGE_UPLOAD: 'nav.upload',
    PAGE_TEMPLATES: 'nav.templates',
    PAGE_RENDER: 'nav.render',
}


@st.cache_resource
def get_client() -> TemplateServiceClient:
    return TemplateServiceClient.from_config(config)


def get_store() -> ActiveTemplateStore:
    storage = config['storage']
    return ActiveTemplateStore(Path(storage['directory']), storage['active_template_key'])


def main():
    """Main application entry point."""
    try:
        init_session_state()
        context = RenderContext.from_config(config, SessionManager.get_locale())
        FormGenerator.apply_direction(context)

        render_sidebar(context)
        render_main_content(context)

    except (InvalidSpecificationError, TransportFailure, OSError) as e:
        ErrorHandler.handle_error(e, "application")


def init_session_state():
    """Initialize session state, restoring the last active template."""
    if 'active_template' not in st.session_state:
        SessionManager.initialize(config['ui']['default_locale'], get_store().load())


def activate_template(spec):
    """Make a template the active one and open the render page."""
    SessionManager.set_active_template(spec)
    get_store().save(spec)
    SessionManager.set_current_page(PAGE_RENDER)


def render_sidebar(context: RenderContext):
    with st.sidebar:
        st.title(config['app']['name'])

        current_page = SessionManager.get_current_page()
        page = st.radio(
            "Navigation",
            PAGES,
            index=PAGES.index(current_page),
            format_func=lambda name: context.text(PAGE_LABELS[name]),
            label_visibility="collapsed"
        )
        if page != current_page:
            SessionManager.set_current_page(page)
            st.rerun()

        locales = config['ui']['locales']
        locale = st.selectbox(
            context.text('common.language'),
            locales,
            index=locales.index(context.locale) if context.locale in locales else 0
        )
        if locale != context.locale:
            SessionManager.set_locale(locale)
            st.rerun()

        spec = SessionManager.get_active_template()
        if spec is not None:
            st.caption(f"{spec.template_id} v{spec.version}")


def render_main_content(context: RenderContext):
    page = SessionManager.get_current_page()
    if page == PAGE_UPLOAD:
        render_upload_page(context)
    elif page == PAGE_TEMPLATES:
        render_templates_page(context)
    else:
        render_render_page(context)


def render_upload_page(context: RenderContext):
    st.header(context.text('upload.title'))
    st.write(context.text('upload.subtitle'))

    tracker = SessionManager.get_request_tracker()
    uploaded_file = st.file_uploader(context.text('upload.title'), type=['docx'])

    if st.button(context.text('upload.inspect'), type="primary",
                 disabled=uploaded_file is None or tracker.is_active(INSPECT_ACTION)):
        try:
            with tracker.track(INSPECT_ACTION):
                with st.spinner(context.text('upload.inspecting')):
                    spec = get_client().inspect(uploaded_file.name, uploaded_file.getvalue())
        except (TransportFailure, InvalidSpecificationError, RequestInFlightError) as e:
            ErrorHandler.handle_error(e, "template inspection")
            return

        activate_template(spec)
        Notify.success(context.text('upload.success'))
        st.rerun()


def render_templates_page(context: RenderContext):
    st.header(context.text('templates.title'))

    try:
        templates = get_client().list_templates()
    except TransportFailure as e:
        ErrorHandler.handle_error(e, "template list")
        return

    if not templates:
        st.info(context.text('templates.empty'))
        return

    for summary in templates:
        name_col, use_col, delete_col = st.columns([4, 1, 1])
        with name_col:
            st.write(f"**{summary.name or summary.template_id}** v{summary.version}")
            if summary.created_at:
                st.caption(summary.created_at)
        with use_col:
            use_clicked = st.button(context.text('templates.use'),
                                    key=f"use_{summary.template_id}_{summary.version}")
        with delete_col:
            delete_clicked = st.button(context.text('common.delete'),
                                       key=f"delete_{summary.template_id}_{summary.version}")

        if use_clicked:
            try:
                spec = summary.to_template_spec()
                if not spec.fields:
                    spec = get_client().get_spec(summary.template_id, summary.version)
            except (TransportFailure, InvalidSpecificationError) as e:
                ErrorHandler.handle_error(e, "template selection")
                return
            activate_template(spec)
            st.rerun()

        if delete_clicked:
            try:
                get_client().delete_template(summary.template_id, summary.version)
            except TransportFailure as e:
                ErrorHandler.handle_error(e, "template deletion")
                return

            active = SessionManager.get_active_template()
            if active is not None and active.template_id == summary.template_id \
                    and active.version == summary.version:
                SessionManager.set_active_template(None)
                get_store().clear()
            Notify.success(context.text('templates.deleted'))
            st.rerun()


def render_render_page(context: RenderContext):
    st.header(context.text('render.title'))

    spec = SessionManager.get_active_template()
    if spec is None:
        st.info(context.text('render.no_template'))
        return

    document = SessionManager.get_last_document()
    if document is not None:
        render_download(context, document)
        return

    try:
        binding = SessionManager.ensure_binding()
    except InvalidSpecificationError as e:
        ErrorHandler.handle_error(e, "form rendering")
        return

    st.write(context.text('render.subtitle'))
    tracker = SessionManager.get_request_tracker()
    submitted = FormGenerator.render_dynamic_form(
        binding, context, busy=tracker.is_active(RENDER_ACTION)
    )
    if not submitted:
        return

    version = binding.version
    handler = SubmissionHandler(get_client(), tracker)
    try:
        with st.spinner(context.text('render.rendering')):
            outcome = handler.validate_and_submit(binding, spec.template_id)
    except RequestInFlightError as e:
        ErrorHandler.handle_error(e, "document rendering")
        return

    if outcome.transport_error is not None:
        ErrorHandler.handle_error(outcome.transport_error, "document rendering")
    elif not outcome.success:
        Notify.warn(context.text('form.fix_errors'))
        st.rerun()
    elif SessionManager.apply_render_outcome(version, outcome):
        Notify.success(context.text('render.success'))
        st.rerun()


def render_download(context: RenderContext, document: bytes):
    st.success(context.text('render.success'))
    st.download_button(
        context.text('render.download'),
        data=document,
        file_name=config['ui']['download_filename'],
        mime=DOCX_MIME_TYPE,
        type="primary"
    )
    if st.button(context.text('render.new_form')):
        SessionManager.clear_last_document()
        st.rerun()


if __name__ == "__main__":
    main()
