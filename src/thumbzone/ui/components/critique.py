"""Critique result display."""

import streamlit as st

from thumbzone.services.critique import CritiqueResult


def render_critique_result(result: CritiqueResult) -> None:
    """
    Render scores, verdict and suggestions of a critique.

    Args:
        result: Critique returned by the critique service
    """
    col1, col2, col3 = st.columns(3)
    for column, label, score in (
        (col1, "Engagement", result.engagement_score),
        (col2, "Clarity", result.clarity_score),
        (col3, "Color", result.color_score),
    ):
        with column:
            st.metric(label, f"{score:.0f}/100")
            st.progress(int(score))

    st.markdown(f"**Verdict:** {result.overall_verdict}")
    st.markdown("**Suggestions**")
    st.markdown("\n".join(f"- {suggestion}" for suggestion in result.suggestions))
