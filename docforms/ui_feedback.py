"""
User feedback helpers for the document form app.
"""

import logging

import streamlit as st

logger = logging.getLogger(__name__)


class Notify:
    """
    Toast-first notification helper.

    Toasts are non-blocking and dismissible, so they are used for failures the
    user can retry (an unreachable template service) and for confirmations.

    Usage:
    Notify.success("Document rendered")
    Notify.error("Template service unreachable")
    """

    ICONS = {
        'success': '✅',
        'info': 'ℹ️',
        'warning': '⚠️',
        'error': '❌'
    }

    @staticmethod
    def _display_notification(message: str, notification_type: str = 'info') -> None:
        icon = Notify.ICONS.get(notification_type, 'ℹ️')
        logger.debug(f"Notify ({notification_type}): {message}")
        st.toast(message, icon=icon)

    @staticmethod
    def success(message: str) -> None:
        """Show success notification."""
        Notify._display_notification(message, 'success')

    @staticmethod
    def info(message: str) -> None:
        """Show info notification."""
        Notify._display_notification(message, 'info')

    @staticmethod
    def warn(message: str) -> None:
        """Show warning notification."""
        Notify._display_notification(message, 'warning')

    @staticmethod
    def error(message: str) -> None:
        """Show error notification."""
        Notify._display_notification(message, 'error')
