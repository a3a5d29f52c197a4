"""Reusable UI components for thumbzone application."""

from typing import Any

import streamlit as st
import structlog

from thumbzone.ui.handlers.error import handle_error

logger = structlog.get_logger()


def render_header() -> None:
    """Render the application header."""
    st.markdown("# Thumbnail :red[Zone]")
    st.divider()


def render_empty_state(title: str, description: str, icon: str = "🖼️") -> None:
    """
    Render an empty state message.

    Args:
        title: Main title for the empty state
        description: Description text
        icon: Emoji icon to display
    """
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(
            f"""
        <div style='text-align: center; padding: 2rem 0;'>
            <div style='font-size: 4rem; margin-bottom: 1rem;'>{icon}</div>
            <h3 style='color: #666; margin-bottom: 1rem;'>{title}</h3>
            <p style='color: #888;'>{description}</p>
        </div>
        """,
            unsafe_allow_html=True,
        )


def render_error_message(error_type: str, message: str, details: str | None = None) -> None:
    """
    Render a standardized error message.

    Args:
        error_type: Type of error (e.g., "Gallery Error")
        message: Main error message
        details: Additional error details (optional)
    """
    st.error(f"**{error_type}:** {message}")

    if details:
        with st.expander("Error details"):
            st.code(details)


def render_exception(error_type: str, exception: Exception, context: dict[str, Any] | None = None) -> None:
    """Classify an unexpected exception and render it with its user-facing message."""
    error_info = handle_error(exception, context)
    logger.error("ui_error_rendered", error_type=error_type, code=error_info.code, **(context or {}))
    render_error_message(error_type, error_info.user_message, str(exception))


def render_field_error(errors: dict[str, str], field: str) -> None:
    """Show the inline error for one form field, if any."""
    message = errors.get(field)
    if message:
        st.caption(f":red[{message}]")


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        str: Formatted file size (e.g., "1.5 MB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
