import dataclasses

from form_renderer import (
    BannerBlock,
    ChoiceBlock,
    ContactBlock,
    FormRegion,
    LocationInfoView,
    RemindBlock,
    TextInfoView,
    TextInputBlock,
    TitleBlock,
    VersionStamp,
    identity_status,
    render_field,
    render_form,
)
from form_schema import parse
from identity import Identity, Session


def _logged_in_session():
    return Session(identity=Identity(is_guest=False, user_id="U1", display_name="小明"))


def test_block_order(schema):
    surface = render_form(schema, Session())
    kinds = [type(b) for b in surface.blocks]
    assert kinds == [VersionStamp, TitleBlock, BannerBlock, TextInfoView, LocationInfoView, FormRegion]
    assert surface.blocks[0].text == "親子手作 ver2.1"
    assert surface.blocks[2].alt_text == "活動橫幅"


def test_disabled_fields_are_skipped(schema):
    region = render_form(schema, Session()).region
    ids = [b.field_id for b in region.fields]
    assert "age" not in ids
    assert ids == ["session", "realName", "gender", "contact", "source", "remind", "note"]
    assert region.submit.label == "送出報名"


def test_banner_and_info_blocks_respect_enabled(raw_doc):
    raw_doc["banner"]["enabled"] = False
    raw_doc["infoBlocks"][0]["enabled"] = False
    surface = render_form(parse(raw_doc), Session())
    assert not any(isinstance(b, (BannerBlock, TextInfoView)) for b in surface.blocks)


def test_location_map_link_only_with_show_map(raw_doc):
    location = render_form(parse(raw_doc), Session()).blocks[4]
    assert location.map_url.startswith("https://www.google.com/maps/search/?api=1&query=")
    assert "%2B" in location.map_url

    raw_doc["infoBlocks"][1]["showMap"] = False
    location = render_form(parse(raw_doc), Session()).blocks[4]
    assert location.map_url is None


def test_field_blocks_per_type(schema):
    blocks = {b.field_id: b for b in render_form(schema, Session()).region.fields}

    assert isinstance(blocks["realName"], TextInputBlock)
    assert blocks["realName"].required
    assert blocks["note"].multiline

    session_block = blocks["session"]
    assert isinstance(session_block, ChoiceBlock)
    assert not session_block.multiple
    assert {o.key for o in session_block.options} == {"session"}

    source = blocks["source"]
    assert source.multiple
    assert [o.key for o in source.options] == ["source__0", "source__1", "source__2"]
    assert blocks["gender"].horizontal

    remind = blocks["remind"]
    assert isinstance(remind, RemindBlock)
    assert remind.offer_line and remind.offer_email


def test_contact_block_for_guest(schema):
    contact = next(b for b in render_form(schema, Session()).region.fields if isinstance(b, ContactBlock))
    assert contact.description == "至少擇一填寫"
    assert contact.mobile_label == "手機"
    assert contact.email_label == "Email"
    assert contact.add_friend_url == "https://line.me/R/ti/p/@shop"
    assert contact.identity.connect_visible
    assert not contact.identity.status_visible
    assert contact.identity.connect_text == "連結"


def test_contact_block_for_logged_in_user(schema):
    contact = next(b for b in render_form(schema, _logged_in_session()).region.fields
                   if isinstance(b, ContactBlock))
    assert not contact.identity.connect_visible
    assert contact.identity.status_text == "✅ 已連結 (小明)"


def test_identity_status_is_idempotent():
    session = _logged_in_session()
    assert identity_status(session) == identity_status(session)
    session.sign_out()
    view = identity_status(session)
    assert view.connect_visible and not view.status_visible


def test_render_is_deterministic(schema):
    assert render_form(schema, Session()) == render_form(schema, Session())


def test_field_without_renderer_is_skipped(schema, caplog):
    @dataclasses.dataclass(frozen=True)
    class RatingField:
        id: str
        type: str = "rating"
        enabled: bool = True

    assert render_field(RatingField("stars"), schema, Session()) is None
    assert "no renderer" in caplog.text
