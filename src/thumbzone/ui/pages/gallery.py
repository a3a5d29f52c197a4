"""Gallery page for thumbzone application."""

import streamlit as st

from thumbzone.models.thumbnail import ALL_CATEGORIES
from thumbzone.ui.components.common import render_empty_state, render_exception
from thumbzone.ui.components.gallery import render_filter_bar, render_gallery_header, render_thumbnail_grid
from thumbzone.ui.components.upload import clear_upload_state, show_upload_dialog
from thumbzone.ui.handlers.gallery import get_collection, show_notifications


def render_gallery_page() -> None:
    """Render the gallery page with filter bar and thumbnail grid."""
    try:
        collection = get_collection()
    except Exception as e:
        show_notifications()
        render_exception("Gallery Error", e, {"operation": "load_gallery"})
        return

    show_notifications()

    col1, col2 = st.columns([3, 1])
    with col1:
        st.markdown("### 🖼️ Your thumbnails")
    with col2:
        if st.button("➕ Upload Thumbnail", type="primary", use_container_width=True):
            clear_upload_state()
            show_upload_dialog()

    try:
        category, search_term = render_filter_bar()
        st.divider()

        records = collection.filtered_view(category, search_term)
        if not records:
            if len(collection) == 0:
                render_empty_state(
                    title="No thumbnails yet",
                    description="Upload your first thumbnail to get started.",
                )
            else:
                filtered = category != ALL_CATEGORIES or bool(search_term.strip())
                render_empty_state(
                    title="No thumbnails found",
                    description="Try another search or category." if filtered else "",
                    icon="🔍",
                )
            return

        render_gallery_header(len(records), len(collection))
        render_thumbnail_grid(records)

    except Exception as e:
        render_exception("Gallery Error", e, {"operation": "render_gallery"})
