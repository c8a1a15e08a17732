import streamlit as st


def wide_button(label: str, **kwargs):
    """Render a full-width Streamlit button.

    - Drops the legacy use_container_width kwarg in favour of width
    - Defaults to width="stretch" so the button spans its container
    """
    kwargs.pop("use_container_width", None)
    kwargs.setdefault("width", "stretch")
    return st.button(label, **kwargs)
