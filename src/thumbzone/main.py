"""
Main Streamlit application for thumbzone.

This is the entry point for the thumbnail gallery web application.
"""

import streamlit as st

from thumbzone.logging_config import configure_structured_logging, get_logger
from thumbzone.ui.components.common import render_exception, render_header
from thumbzone.ui.pages.gallery import render_gallery_page

# Configure structured logging
configure_structured_logging()
logger = get_logger(__name__)


def main() -> None:
    """Main application entry point."""
    logger.info("application_starting", page="gallery")

    try:
        st.set_page_config(
            page_title="Thumbnail Zone",
            page_icon="🖼️",
            layout="wide",
            menu_items={
                "Get Help": None,
                "Report a bug": None,
                "About": "Thumbnail Zone - thumbnail gallery with AI critique",
            },
        )

        render_header()

        with st.container():
            render_gallery_page()

    except Exception as e:
        logger.critical("critical_application_error", error=str(e))
        render_exception("Application Error", e, {"operation": "main"})

        if st.button("🔄 Restart application", type="primary"):
            st.rerun()


if __name__ == "__main__":
    main()
