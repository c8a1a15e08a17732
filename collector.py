"""
Reads the current input state back into an answer record.

The record is rebuilt from scratch on every call; nothing here mutates a previous one.
"""

from __future__ import annotations

import datetime
import re
from typing import Any, Callable, Dict, Mapping, Optional, Union

from form_renderer import (
    CONTACT_EMAIL_KEY,
    CONTACT_MOBILE_KEY,
    REMIND_EMAIL_KEY,
    REMIND_LINE_KEY,
    option_key,
)
from form_schema import ChoiceField, ContactSection, FormSchema, RemindSection, TextField
from identity import GUEST_UID, Session

AnswerRecord = Dict[str, Union[str, bool]]

YES = "是"
NO = "否"

SESSION_FIELD_ID = "session"
_SESSION_DATE_RE = re.compile(r"(\d+)/(\d+)")


def _text(inputs: Mapping[str, Any], key: str) -> str:
    value = inputs.get(key)
    return "" if value is None else str(value).strip()


def derive_remind_date(session_answer: Any, today: datetime.date) -> Optional[str]:
    """'3/15 場次' -> '2025-03-15' (current year). None when no M/D is present."""
    if not session_answer:
        return None
    m = _SESSION_DATE_RE.search(str(session_answer))
    if not m:
        return None
    return f"{today.year}-{int(m.group(1)):02d}-{int(m.group(2)):02d}"


def collect(
    schema: FormSchema,
    inputs: Mapping[str, Any],
    session: Session,
    today: Optional[Callable[[], datetime.date]] = None,
) -> AnswerRecord:
    ident = session.identity
    data: AnswerRecord = {
        "uid": GUEST_UID if ident.is_guest else ident.user_id,
        "lineName": "" if ident.is_guest else ident.display_name,
    }
    need_remind = False

    for fld in schema.form_fields:
        if not fld.enabled:
            continue

        if isinstance(fld, TextField):
            data[fld.id] = _text(inputs, fld.id)

        elif isinstance(fld, ChoiceField):
            if fld.multiple:
                # schema option order, never click order
                picked = [o for i, o in enumerate(fld.options) if inputs.get(option_key(fld.id, i))]
                data[fld.id] = ", ".join(picked)
            else:
                selected = inputs.get(fld.id)
                if selected:
                    data[fld.id] = str(selected)

        elif isinstance(fld, ContactSection):
            data["contact_mobile"] = _text(inputs, CONTACT_MOBILE_KEY)
            data["contact_email"] = _text(inputs, CONTACT_EMAIL_KEY)
            data["contact_line_linked"] = ident.linked
            data["contact_line_id"] = ident.user_id if ident.linked else ""
            data["contact_line_message_sent"] = bool(session.line_message_sent)

        elif isinstance(fld, RemindSection):
            line_on = bool(inputs.get(REMIND_LINE_KEY))
            email_on = bool(inputs.get(REMIND_EMAIL_KEY))
            data["lineRemind"] = YES if line_on else NO
            data["emailRemind"] = YES if email_on else NO
            data["needRemind"] = YES if (line_on or email_on) else NO
            need_remind = need_remind or line_on or email_on

    # after the loop so the session answer is present whatever the field order
    if need_remind:
        clock = today or datetime.date.today
        remind_date = derive_remind_date(data.get(SESSION_FIELD_ID), clock())
        if remind_date:
            data["remindDate"] = remind_date

    return data
