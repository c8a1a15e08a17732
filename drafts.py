"""
Pending-submission draft storage.

A draft is the collected answer record, saved right before the login redirect and
read back once the user returns. Stores are plain string key-value maps; the draft
itself is kept as a JSON blob under one scope key.

Exports:
- MemoryDraftStore, JsonFileDraftStore
- save_draft(store, record, scope) / load_draft(store, scope) / discard_draft(store, scope)
- new_draft_token() / session_scope(form_name, token) / return_url(page_url, form_name, token)
"""

from __future__ import annotations

import json
import logging
import os
import re
import uuid
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlencode

from errors import RestoreError

logger = logging.getLogger(__name__)

DRAFT_SCOPE = "liff_form_temp"
DRAFT_PARAM = "draft"
_TOKEN_RE = re.compile(r"[0-9a-f]{32}")


class DraftStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryDraftStore:
    """Process-lifetime store."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileDraftStore:
    """
    One file per key under a directory, so a draft survives the app process being
    recycled while the user is away at the login page.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            f.write(value)

    def remove(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


def save_draft(store: DraftStore, record: Dict[str, Any], scope: str = DRAFT_SCOPE) -> None:
    store.set(scope, json.dumps(record, ensure_ascii=False))


def load_draft(store: DraftStore, scope: str = DRAFT_SCOPE) -> Optional[Dict[str, Any]]:
    """Return the saved record, None when there is none; RestoreError when it is unreadable."""
    blob = store.get(scope)
    if not blob:
        return None
    try:
        data = json.loads(blob)
    except ValueError as e:
        raise RestoreError(f"Draft '{scope}' is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RestoreError(f"Draft '{scope}' must be an object, got {type(data).__name__}.")
    return data


def discard_draft(store: DraftStore, scope: str = DRAFT_SCOPE) -> None:
    store.remove(scope)


# ---------------- Per-session scoping ----------------


def new_draft_token() -> str:
    return uuid.uuid4().hex


def is_draft_token(value: Any) -> bool:
    return isinstance(value, str) and bool(_TOKEN_RE.fullmatch(value))


def session_scope(form_name: str, token: str) -> str:
    """Draft key for one browser session's copy of one form."""
    if not is_draft_token(token):
        raise ValueError(f"Not a draft token: {token!r}")
    return f"{DRAFT_SCOPE}::{form_name}::{token}"


def return_url(page_url: Optional[str], form_name: str, token: str) -> str:
    """
    Where the login page sends the user back to. The token rides along as a query
    parameter so the returning session finds its own draft.
    """
    if not page_url:
        return ""
    base = page_url.split("?", 1)[0].split("#", 1)[0]
    return f"{base}?{urlencode({'config': form_name, DRAFT_PARAM: token})}"
