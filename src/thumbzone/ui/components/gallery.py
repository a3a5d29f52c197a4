"""Gallery components for thumbzone application."""

import streamlit as st
import structlog

from thumbzone.models.thumbnail import ALL_CATEGORIES, ThumbnailRecord, filter_options
from thumbzone.ui.components.critique import render_critique_result
from thumbzone.ui.components.upload import show_edit_dialog
from thumbzone.ui.handlers.gallery import build_download_payload, request_critique, submit_delete

logger = structlog.get_logger(__name__)


def render_filter_bar() -> tuple[str, str]:
    """
    Render the search box and category buttons.

    Returns:
        tuple: (selected category label, search term)
    """
    search_term = st.text_input(
        "Search", placeholder="Search by title...", key="gallery_search", label_visibility="collapsed"
    )

    if "gallery_category" not in st.session_state:
        st.session_state.gallery_category = ALL_CATEGORIES

    options = filter_options()
    cols = st.columns(len(options))
    for col, option in zip(cols, options):
        with col:
            selected = st.session_state.gallery_category == option
            if st.button(
                option,
                key=f"filter_{option}",
                type="primary" if selected else "secondary",
                use_container_width=True,
            ):
                st.session_state.gallery_category = option
                st.rerun()

    return st.session_state.gallery_category, search_term


def render_thumbnail_grid(records: list[ThumbnailRecord]) -> None:
    """
    Render thumbnails in a grid layout.

    Args:
        records: Thumbnails to show, newest first
    """
    cols_per_row = 4

    for i in range(0, len(records), cols_per_row):
        cols = st.columns(cols_per_row)

        for j, col in enumerate(cols):
            index = i + j
            with col:
                if index < len(records):
                    render_thumbnail_card(records[index])
                else:
                    st.empty()


def render_thumbnail_card(record: ThumbnailRecord) -> None:
    """
    Render a single thumbnail card with its actions.

    Args:
        record: Thumbnail to render
    """
    with st.container(border=True):
        payload = build_download_payload(record)
        if payload is not None:
            st.image(payload[0], use_container_width=True)
        else:
            st.error("📷 Image unavailable")

        st.markdown(f"**{record.title}**")
        st.caption(f"{record.category.value} · {record.created_at.strftime('%Y-%m-%d')}")

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            if st.button("✏️", key=f"edit_{record.id}", help="Edit", use_container_width=True):
                show_edit_dialog(record)
        with col2:
            if st.button("🗑️", key=f"delete_{record.id}", help="Delete", use_container_width=True):
                st.session_state.confirm_delete = record.id
        with col3:
            if payload is not None:
                data, file_name, mime = payload
                st.download_button(
                    "⬇️",
                    data=data,
                    file_name=file_name,
                    mime=mime,
                    key=f"download_{record.id}",
                    help="Download",
                    use_container_width=True,
                )
        with col4:
            if st.button("✨", key=f"critique_{record.id}", help="AI critique", use_container_width=True):
                result = request_critique(record.image_data)
                if result is not None:
                    st.session_state[f"critique_{record.id}_result"] = result
                else:
                    st.rerun()

        if st.session_state.get("confirm_delete") == record.id:
            render_delete_confirmation(record)

        critique = st.session_state.get(f"critique_{record.id}_result")
        if critique is not None:
            with st.expander("AI critique", expanded=True):
                render_critique_result(critique)


def render_delete_confirmation(record: ThumbnailRecord) -> None:
    """Ask before deleting a thumbnail."""
    st.warning(f"Delete **{record.title}**?")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Cancel", key=f"cancel_delete_{record.id}", use_container_width=True):
            st.session_state.confirm_delete = None
            st.rerun()
    with col2:
        if st.button("Delete", key=f"confirm_delete_{record.id}", type="primary", use_container_width=True):
            st.session_state.confirm_delete = None
            submit_delete(record.id)
            st.session_state.pop(f"critique_{record.id}_result", None)
            st.rerun()


def render_gallery_header(shown: int, total: int) -> None:
    """Show how many thumbnails match the current filter."""
    if shown == total:
        st.caption(f"{total} thumbnails")
    else:
        st.caption(f"{shown} of {total} thumbnails")
