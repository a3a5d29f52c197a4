"""Configuration for UI unit tests."""

from unittest.mock import MagicMock, patch

import pytest

from tests.conftest import SessionState


@pytest.fixture
def session_state():
    """Replace st.session_state, spinners and toasts for handler tests."""
    state = SessionState()
    toast = MagicMock()
    with (
        patch("streamlit.session_state", state),
        patch("streamlit.spinner", MagicMock()),
        patch("streamlit.toast", toast),
    ):
        state["_toast"] = toast
        yield state

    loop = state.get("event_loop")
    if loop is not None and not loop.is_closed():
        loop.close()
