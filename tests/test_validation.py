import pytest

from collector import collect
from form_schema import parse
from identity import Identity, Session
from validation import (
    MSG_BAD_EMAIL,
    MSG_BAD_MOBILE,
    MSG_EMAIL_REMIND_NEEDS_EMAIL,
    MSG_LINE_REMIND_NEEDS_LOGIN,
    MSG_NO_CONTACT,
    MSG_SOURCE_REQUIRED,
    Invalid,
    Valid,
    is_valid_email,
    is_valid_mobile,
    validate,
)

from conftest import filled_inputs


def _check(schema, inputs, session=None):
    session = session or Session()
    return validate(schema, collect(schema, inputs, session), session)


def test_filled_form_is_valid(schema):
    assert _check(schema, filled_inputs()) == Valid()


@pytest.mark.parametrize("value,ok", [
    ("0912345678", True),
    ("12345678", False),
    ("091234567", False),
    ("0912-345-678", False),
])
def test_mobile_pattern(value, ok):
    assert is_valid_mobile(value) is ok


@pytest.mark.parametrize("value,ok", [
    ("a@b.com", True),
    ("a@b", False),
    ("a b@c.com", False),
])
def test_email_pattern(value, ok):
    assert is_valid_email(value) is ok


def test_required_text_field(schema):
    inputs = filled_inputs()
    inputs["realName"] = "   "
    result = _check(schema, inputs)
    assert isinstance(result, Invalid)
    assert result.focus_field == "realName"
    assert "姓名" in result.reason


def test_required_radio(schema):
    inputs = filled_inputs()
    del inputs["session"]
    result = _check(schema, inputs)
    assert result.focus_field == "session"


def test_source_must_be_chosen(schema):
    inputs = filled_inputs()
    del inputs["source__1"]
    result = _check(schema, inputs)
    assert result == Invalid(MSG_SOURCE_REQUIRED, "source")


def test_disabled_source_is_not_checked(raw_doc):
    raw_doc["formFields"][5]["enabled"] = False
    schema = parse(raw_doc)
    inputs = filled_inputs()
    del inputs["source__1"]
    assert _check(schema, inputs) == Valid()


def test_email_reminder_needs_email(schema):
    inputs = filled_inputs()
    inputs["remind_email"] = True
    result = _check(schema, inputs)
    assert result == Invalid(MSG_EMAIL_REMIND_NEEDS_EMAIL, "contact_email")


def test_line_reminder_needs_login(schema):
    inputs = filled_inputs()
    inputs["remind_line"] = True
    assert _check(schema, inputs).reason == MSG_LINE_REMIND_NEEDS_LOGIN

    linked = Session(identity=Identity(is_guest=False, user_id="U1"))
    assert _check(schema, inputs, linked) == Valid()


def test_bad_mobile_rejected(schema):
    inputs = filled_inputs()
    inputs["contact_mobile"] = "12345678"
    assert _check(schema, inputs) == Invalid(MSG_BAD_MOBILE, "contact_mobile")


def test_bad_email_rejected(schema):
    inputs = filled_inputs()
    inputs["contact_email"] = "a@b"
    assert _check(schema, inputs) == Invalid(MSG_BAD_EMAIL, "contact_email")


def test_email_alone_is_enough(schema):
    inputs = filled_inputs()
    inputs["contact_mobile"] = ""
    inputs["contact_email"] = "a@b.com"
    assert _check(schema, inputs) == Valid()


def test_no_contact_channel(schema):
    inputs = filled_inputs()
    inputs["contact_mobile"] = ""
    result = _check(schema, inputs)
    assert result == Invalid(MSG_NO_CONTACT)
    assert result.focus_field is None


def test_linked_identity_counts_as_channel(schema):
    inputs = filled_inputs()
    inputs["contact_mobile"] = ""
    linked = Session(identity=Identity(is_guest=False, user_id="U1"))
    assert _check(schema, inputs, linked) == Valid()


def test_first_failure_wins(schema):
    inputs = filled_inputs()
    del inputs["source__1"]
    inputs["contact_mobile"] = "bad"
    assert _check(schema, inputs).reason == MSG_SOURCE_REQUIRED
