import datetime

from collector import collect, derive_remind_date
from identity import Identity, Session

from conftest import filled_inputs


def test_untouched_form_collects_only_empty_values(schema, fixed_today):
    record = collect(schema, {}, Session(), today=fixed_today)
    assert record["uid"] == "guest"
    assert record["lineName"] == ""
    assert record["realName"] == ""
    assert record["note"] == ""
    assert record["source"] == ""
    assert "session" not in record
    assert "gender" not in record
    assert record["contact_mobile"] == ""
    assert record["contact_email"] == ""
    assert record["contact_line_linked"] is False
    assert record["needRemind"] == "否"
    assert "remindDate" not in record


def test_disabled_fields_are_not_collected(schema):
    record = collect(schema, {"age": "18-30"}, Session())
    assert "age" not in record


def test_text_values_are_trimmed(schema):
    record = collect(schema, filled_inputs(), Session())
    assert record["realName"] == "王小明"


def test_checkbox_keeps_schema_option_order(schema):
    inputs = {}
    # checked C first, then A
    inputs["source__2"] = True
    inputs["source__0"] = True
    record = collect(schema, inputs, Session())
    assert record["source"] == "A, C"


def test_contact_for_linked_identity(schema):
    session = Session(identity=Identity(is_guest=False, user_id="U9", display_name="Amy"),
                      line_message_sent=True)
    record = collect(schema, {"contact_mobile": " 0912345678 "}, session)
    assert record["uid"] == "U9"
    assert record["lineName"] == "Amy"
    assert record["contact_mobile"] == "0912345678"
    assert record["contact_line_linked"] is True
    assert record["contact_line_id"] == "U9"
    assert record["contact_line_message_sent"] is True


def test_remind_date_from_session_answer(schema, fixed_today):
    inputs = {"session": "3/15 上午場", "remind_email": True}
    record = collect(schema, inputs, Session(), today=fixed_today)
    assert record["emailRemind"] == "是"
    assert record["lineRemind"] == "否"
    assert record["needRemind"] == "是"
    assert record["remindDate"] == "2025-03-15"


def test_remind_date_needs_a_reminder(schema, fixed_today):
    record = collect(schema, {"session": "3/15 上午場"}, Session(), today=fixed_today)
    assert "remindDate" not in record


def test_derive_remind_date():
    today = datetime.date(2025, 1, 1)
    assert derive_remind_date("3/15 場次", today) == "2025-03-15"
    assert derive_remind_date("12/1", today) == "2025-12-01"
    assert derive_remind_date("asdf", today) is None
    assert derive_remind_date("", today) is None


def test_collect_does_not_reuse_previous_record(schema):
    inputs = filled_inputs()
    first = collect(schema, inputs, Session())
    inputs["realName"] = "李四"
    second = collect(schema, inputs, Session())
    assert first["realName"] == "王小明"
    assert second["realName"] == "李四"
