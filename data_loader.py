from __future__ import annotations

import json
import os
from typing import Any, List

import streamlit as st

from errors import SchemaError
from form_schema import FormSchema, parse

APP_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(APP_DIR, "data")
FORMS_DIR = os.path.join(DATA_DIR, "forms")
DRAFTS_DIR = os.path.join(DATA_DIR, "drafts")

DEFAULT_FORM = "default-config"


def form_path(name: str) -> str:
    # Only a bare document name is accepted, never a path
    base = os.path.basename((name or DEFAULT_FORM).strip())
    if base.endswith(".json"):
        base = base[:-5]
    return os.path.join(FORMS_DIR, f"{base}.json")


def list_forms() -> List[str]:
    if not os.path.isdir(FORMS_DIR):
        return []
    return sorted(f[:-5] for f in os.listdir(FORMS_DIR) if f.endswith(".json"))


def _mtime(path: str) -> float:
    try:
        return os.path.getmtime(path)
    except OSError:
        return 0.0


def _read_json(path: str) -> Any:
    """Read a JSON file with a helpful error on failure."""
    if not os.path.exists(path):
        st.error(f"Missing form document: {os.path.relpath(path, APP_DIR)}.")
        raise FileNotFoundError(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError as e:
        st.error(f"Failed to parse JSON file: {os.path.relpath(path, APP_DIR)}\nError: {e}")
        raise SchemaError(f"{path} is not valid JSON: {e}") from e


@st.cache_data(show_spinner=False)
def _load_form_schema(path: str, mtime: float) -> FormSchema:
    raw = _read_json(path)
    try:
        return parse(raw)
    except SchemaError as e:
        st.error(f"Form document {os.path.relpath(path, APP_DIR)} is invalid: {e}")
        raise


def load_form_schema(name: str = DEFAULT_FORM) -> FormSchema:
    """
    Load and validate data/forms/<name>.json.
    Cached per file modification time, so an edited document is picked up on the next run.
    """
    path = form_path(name)
    return _load_form_schema(path, _mtime(path))
