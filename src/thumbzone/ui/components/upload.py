"""Upload and edit dialogs for thumbzone application."""

import streamlit as st
import structlog

from thumbzone.models.thumbnail import Category, ThumbnailRecord
from thumbzone.ui.components.common import format_file_size, render_field_error
from thumbzone.ui.components.critique import render_critique_result
from thumbzone.ui.handlers.gallery import (
    critique_uploaded_file,
    get_size_gate,
    show_notifications,
    submit_edit,
    submit_upload,
)

logger = structlog.get_logger(__name__)

ACCEPTED_TYPES = ["png", "jpg", "jpeg", "webp", "gif"]


@st.dialog("Upload a new thumbnail")
def show_upload_dialog() -> None:
    """Dialog with title, category and image fields plus an optional critique."""
    st.caption("Add a new thumbnail to your collection. Enter the details below.")
    errors: dict[str, str] = st.session_state.get("upload_errors", {})
    max_size = get_size_gate().max_file_size

    title = st.text_input("Title", placeholder="e.g., My Awesome Video", key="upload_title")
    render_field_error(errors, "title")

    category = st.selectbox(
        "Category", Category.labels(), index=None, placeholder="Select a category", key="upload_category"
    )
    render_field_error(errors, "category")

    uploaded_file = st.file_uploader(
        "Thumbnail image",
        type=ACCEPTED_TYPES,
        help=f"Maximum size: {format_file_size(max_size)}",
        key="upload_file",
    )
    render_field_error(errors, "image")

    if uploaded_file is not None:
        st.image(uploaded_file, use_container_width=True)
        if st.button("✨ Get AI critique", use_container_width=True):
            st.session_state.upload_critique = critique_uploaded_file(uploaded_file)

    critique = st.session_state.get("upload_critique")
    if critique is not None:
        with st.expander("AI critique", expanded=True):
            render_critique_result(critique)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Cancel", use_container_width=True):
            clear_upload_state()
            st.rerun()
    with col2:
        if st.button("Upload", type="primary", use_container_width=True):
            outcome = submit_upload(title, category, uploaded_file)
            st.session_state.upload_errors = outcome.errors
            if outcome.succeeded:
                clear_upload_state()
                st.rerun()
            elif outcome.errors:
                st.rerun(scope="fragment")
            else:
                # Store or read failure: keep the dialog open with the entered values
                show_notifications()


@st.dialog("Edit thumbnail")
def show_edit_dialog(record: ThumbnailRecord) -> None:
    """Dialog changing the title and category of a stored thumbnail."""
    errors: dict[str, str] = st.session_state.get(f"edit_errors_{record.id}", {})

    title = st.text_input("Title", value=record.title, key=f"edit_title_{record.id}")
    render_field_error(errors, "title")

    labels = Category.labels()
    category = st.selectbox(
        "Category", labels, index=labels.index(record.category.value), key=f"edit_category_{record.id}"
    )
    render_field_error(errors, "category")

    if st.button("Save changes", type="primary", use_container_width=True):
        outcome = submit_edit(record.id, title, category)
        st.session_state[f"edit_errors_{record.id}"] = outcome.errors
        if outcome.succeeded:
            st.rerun()
        elif outcome.errors:
            st.rerun(scope="fragment")
        else:
            show_notifications()


def clear_upload_state() -> None:
    """Reset the upload dialog fields."""
    for key in ("upload_title", "upload_category", "upload_file", "upload_errors", "upload_critique"):
        st.session_state.pop(key, None)
