"""
Fail-fast validation of a collected answer record.

validate(schema, record, session) returns Valid() or the first Invalid(reason, focus_field).
Failures are values the caller shows inline, never exceptions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from collector import YES
from form_renderer import CONTACT_EMAIL_KEY, CONTACT_MOBILE_KEY
from form_schema import ChoiceField, ContactSection, FormSchema, TextField
from identity import Session

MOBILE_RE = re.compile(r"^09\d{8}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MSG_REQUIRED = "請填寫「{title}」"
MSG_SOURCE_REQUIRED = "請至少選擇一項「從哪得知」"
MSG_EMAIL_REMIND_NEEDS_EMAIL = "勾選 Email 提醒需填寫電子信箱，請至「聯絡方式」區塊填寫 Email。"
MSG_LINE_REMIND_NEEDS_LOGIN = "勾選 Line 通知提醒需先連結帳號，請至「聯絡方式」區塊完成 Line 連結或發送訊息。"
MSG_BAD_MOBILE = "請輸入有效的手機號碼 (格式: 09xxxxxxxx)"
MSG_BAD_EMAIL = "請輸入有效的電子郵件格式"
MSG_NO_CONTACT = "請在「聯絡方式」中，至少完成一項 (手機、Line連結、或 Email)，以便我們能聯繫您。"


@dataclass(frozen=True)
class Valid:
    ok = True


@dataclass(frozen=True)
class Invalid:
    reason: str
    focus_field: Optional[str] = None
    ok = False


ValidationResult = Union[Valid, Invalid]


def is_valid_mobile(value: str) -> bool:
    return bool(MOBILE_RE.match(value or ""))


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value or ""))


def _check_required(schema: FormSchema, record: Mapping[str, object]) -> Optional[Invalid]:
    for fld in schema.enabled_fields():
        if not fld.required:
            continue
        if isinstance(fld, TextField) or (isinstance(fld, ChoiceField) and not fld.multiple):
            if not record.get(fld.id):
                return Invalid(MSG_REQUIRED.format(title=fld.title), fld.id)
    return None


def validate(schema: FormSchema, record: Mapping[str, object], session: Session) -> ValidationResult:
    missing = _check_required(schema, record)
    if missing is not None:
        return missing

    source = schema.get_field("source")
    if source is not None and source.enabled and isinstance(source, ChoiceField):
        if not record.get("source"):
            return Invalid(MSG_SOURCE_REQUIRED, "source")

    if record.get("emailRemind") == YES and not record.get("contact_email"):
        return Invalid(MSG_EMAIL_REMIND_NEEDS_EMAIL, CONTACT_EMAIL_KEY)

    if record.get("lineRemind") == YES and session.identity.is_guest:
        return Invalid(MSG_LINE_REMIND_NEEDS_LOGIN)

    contact_enabled = any(isinstance(f, ContactSection) for f in schema.enabled_fields())
    if contact_enabled:
        mobile = str(record.get("contact_mobile") or "")
        email = str(record.get("contact_email") or "")
        has_mobile = is_valid_mobile(mobile)
        has_email = is_valid_email(email)
        has_line = bool(record.get("contact_line_linked"))

        if mobile and not has_mobile:
            return Invalid(MSG_BAD_MOBILE, CONTACT_MOBILE_KEY)
        if email and not has_email:
            return Invalid(MSG_BAD_EMAIL, CONTACT_EMAIL_KEY)
        if not (has_mobile or has_email or has_line):
            return Invalid(MSG_NO_CONTACT)

    return Valid()
