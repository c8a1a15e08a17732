"""
Form document parsing:
- well-formed documents produce typed field variants in schema order
- missing metadata, unknown types and bad options raise SchemaError
- location map query is derived from place name and address
"""
import pytest

from errors import SchemaError
from form_schema import (
    ChoiceField,
    ContactSection,
    LocationInfoBlock,
    RemindSection,
    TextField,
    TextInfoBlock,
    derive_map_query,
    dump,
    parse,
)


def test_parse_builds_typed_fields_in_order(schema):
    ids = [f.id for f in schema.form_fields]
    assert ids == ["session", "realName", "gender", "age", "contact", "source", "remind", "note"]
    assert isinstance(schema.get_field("realName"), TextField)
    assert isinstance(schema.get_field("session"), ChoiceField)
    assert isinstance(schema.get_field("contact"), ContactSection)
    assert isinstance(schema.get_field("remind"), RemindSection)
    assert schema.get_field("note").type == "textarea"


def test_parse_meta(schema):
    assert schema.meta.title == "親子手作"
    assert schema.meta.version == "2.1"
    assert schema.meta.auth_id == "1650000000-abcd"
    assert schema.meta.channel_id == "@shop"
    assert schema.meta.submit_url.startswith("https://")


def test_choice_variants(schema):
    gender = schema.get_field("gender")
    assert gender.layout == "horizontal"
    assert gender.multiple is False
    assert schema.get_field("session").layout == "vertical"
    source = schema.get_field("source")
    assert source.multiple is True
    assert source.options == ("A", "B", "C")


def test_remind_methods(schema):
    remind = schema.get_field("remind")
    assert remind.line_enabled and remind.email_enabled


def test_info_blocks(schema):
    text_block, location = schema.info_blocks
    assert isinstance(text_block, TextInfoBlock)
    assert isinstance(location, LocationInfoBlock)
    assert location.map_query == "活動中心+忠孝東路1號"


def test_map_query_empty_unless_both_parts_present():
    assert derive_map_query("活動中心", "") == ""
    assert derive_map_query("", "忠孝東路1號") == ""
    assert derive_map_query("A", "B") == "A+B"


def test_stored_map_query_is_ignored(raw_doc):
    raw_doc["infoBlocks"][1]["mapQuery"] = "stale"
    raw_doc["infoBlocks"][1]["address"] = ""
    location = parse(raw_doc).info_blocks[1]
    assert location.map_query == ""


def test_missing_meta_rejected(raw_doc):
    del raw_doc["formMeta"]
    with pytest.raises(SchemaError):
        parse(raw_doc)


def test_missing_title_rejected(raw_doc):
    raw_doc["formMeta"]["title"] = "  "
    with pytest.raises(SchemaError, match="title"):
        parse(raw_doc)


def test_unknown_type_rejected(raw_doc):
    raw_doc["formFields"].append({"id": "dob", "type": "date", "title": "生日"})
    with pytest.raises(SchemaError, match="unsupported type"):
        parse(raw_doc)


@pytest.mark.parametrize("options", [None, []])
def test_choice_without_options_rejected(raw_doc, options):
    fld = {"id": "pick", "type": "checkbox", "title": "選擇"}
    if options is not None:
        fld["options"] = options
    raw_doc["formFields"].append(fld)
    with pytest.raises(SchemaError):
        parse(raw_doc)


def test_duplicate_ids_rejected(raw_doc):
    raw_doc["formFields"].append({"id": "realName", "type": "text", "title": "again"})
    with pytest.raises(SchemaError, match="Duplicate"):
        parse(raw_doc)


def test_bad_radio_layout_rejected(raw_doc):
    raw_doc["formFields"][0]["layout"] = "grid"
    with pytest.raises(SchemaError):
        parse(raw_doc)


def test_document_must_be_object():
    with pytest.raises(SchemaError):
        parse(["not", "a", "form"])


def test_dump_parses_back_to_equal_schema(schema):
    assert parse(dump(schema)) == schema
