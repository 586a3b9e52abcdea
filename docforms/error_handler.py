"""
Error handling for the document form app.
Maps failures to one user-friendly message and shows it in the right place.
"""

import logging
from typing import Optional

import streamlit as st

from .exceptions import (
    DocFormsError,
    InvalidSpecificationError,
    RequestInFlightError,
    TransportFailure,
)
from .ui_feedback import Notify

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handling for the document form app."""

    @staticmethod
    def handle_error(error: Exception, context: str, user_message: Optional[str] = None) -> str:
        """
        Log an error and show exactly one message for it.

        A malformed specification aborts the form, so its message is shown
        inline with st.error. Transport failures are retryable and shown as a
        dismissible toast. Duplicate requests are only logged.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            user_message: Custom user-friendly message

        Returns:
            The message shown to the user
        """
        if isinstance(error, RequestInFlightError):
            logger.info(f"Ignored duplicate request in {context}: {error}")
            return ""

        if isinstance(error, DocFormsError):
            logger.error(f"Error in {context}: {error.get_full_details()}")
        else:
            logger.error(f"Error in {context}: {error}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler.get_user_friendly_message(error)

        if isinstance(error, TransportFailure):
            Notify.error(user_message)
        else:
            st.error(user_message)
        return user_message

    @staticmethod
    def get_user_friendly_message(error: Exception) -> str:
        """Generate the message shown for an error."""
        if isinstance(error, InvalidSpecificationError):
            return f"📋 This template cannot be shown as a form: {error.message}"

        if isinstance(error, TransportFailure):
            if error.status_code is None:
                return f"🌐 {error.message}. Please check your connection and try again."
            return f"🌐 {error.message}"

        if isinstance(error, DocFormsError):
            return error.message

        if isinstance(error, (IOError, OSError)):
            return "💾 A local file could not be read or written. Please try again."

        return "💻 An unexpected error occurred. Please try again."
