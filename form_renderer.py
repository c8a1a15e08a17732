"""
Form rendering for the event signup form (Streamlit).

Rendering happens in two steps:
- render_form(schema, session) -> FormSurface
    pure; turns the schema into an ordered list of typed blocks
- paint_surface(surface, handlers, control, view) -> None
    draws the blocks with Streamlit widgets keyed by the input keys below;
    the engine's view state gates the reminder hints and marks the focused input

Exports:
- render_form, identity_status, paint_surface, paint_confirmation
- option_key, CONTACT_MOBILE_KEY, CONTACT_EMAIL_KEY, REMIND_LINE_KEY, REMIND_EMAIL_KEY
- FormHandlers, SubmitControl
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Union
from urllib.parse import quote

import streamlit as st

from app.ui import wide_button
from form_schema import (
    ChoiceField,
    ContactSection,
    FieldDefinition,
    FormSchema,
    LocationInfoBlock,
    RemindSection,
    TextField,
)
from identity import Session

if TYPE_CHECKING:
    from form_engine import ViewState

logger = logging.getLogger(__name__)

# Input keys outside the per-field ids
CONTACT_MOBILE_KEY = "contact_mobile"
CONTACT_EMAIL_KEY = "contact_email"
REMIND_LINE_KEY = "remind_line"
REMIND_EMAIL_KEY = "remind_email"
LINE_LOGIN_KEY = "contact_btnLineLogin"
SUBMIT_KEY = "btnSubmit"

SUBMIT_LABEL = "送出報名"
BUSY_LABEL = "資料傳送中..."
CONNECT_LABEL = "連結 Line 帳號"
LINE_CONNECT_HINT = ":orange[⚠️ 需先在「聯絡方式」完成 Line 連結或訊息驗證]"
EMAIL_INPUT_HINT = ":orange[✉️ 請在「聯絡方式」填寫 Email]"
FOCUS_HINT = ":red[⬆️ 請確認此欄位]"
DEFAULT_BANNER_ALT = "活動橫幅"
DEFAULT_CONTACT_DESCRIPTION = "至少擇一填寫"
DEFAULT_REMIND_DESCRIPTION = "請選擇提醒方式 (預設不提醒)："
MAP_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="
ADD_FRIEND_URL = "https://line.me/R/ti/p/"


def option_key(field_id: str, index: int) -> str:
    """Input key of one checkbox option."""
    return f"{field_id}__{index}"


def add_friend_url(channel_id: str) -> Optional[str]:
    return f"{ADD_FRIEND_URL}{channel_id}" if channel_id else None


# ---------------- Surface blocks ----------------


@dataclass(frozen=True)
class VersionStamp:
    text: str


@dataclass(frozen=True)
class TitleBlock:
    text: str


@dataclass(frozen=True)
class BannerBlock:
    image_url: str
    alt_text: str


@dataclass(frozen=True)
class TextInfoView:
    block_id: str
    title: str
    content: str


@dataclass(frozen=True)
class LocationInfoView:
    block_id: str
    title: str
    place_name: str
    address: str
    map_url: Optional[str] = None


@dataclass(frozen=True)
class IdentityStatusView:
    connect_visible: bool
    status_visible: bool
    status_text: str = ""
    connect_text: str = CONNECT_LABEL


@dataclass(frozen=True)
class TextInputBlock:
    field_id: str
    label: str
    input_type: str
    required: bool = False
    placeholder: str = ""

    @property
    def multiline(self) -> bool:
        return self.input_type == "textarea"


@dataclass(frozen=True)
class ChoiceOption:
    key: str
    value: str


@dataclass(frozen=True)
class ChoiceBlock:
    field_id: str
    label: str
    options: Tuple[ChoiceOption, ...]
    multiple: bool = False
    horizontal: bool = False
    required: bool = False


@dataclass(frozen=True)
class ContactBlock:
    field_id: str
    label: str
    description: str
    mobile_label: str
    mobile_placeholder: str
    line_label: str
    email_label: str
    email_placeholder: str
    identity: IdentityStatusView
    add_friend_url: Optional[str] = None
    required: bool = False


@dataclass(frozen=True)
class RemindBlock:
    field_id: str
    label: str
    description: str
    offer_line: bool
    offer_email: bool
    required: bool = False


@dataclass(frozen=True)
class SubmitBlock:
    label: str = SUBMIT_LABEL


FieldBlock = Union[TextInputBlock, ChoiceBlock, ContactBlock, RemindBlock]


@dataclass(frozen=True)
class FormRegion:
    fields: Tuple[FieldBlock, ...]
    submit: SubmitBlock


Block = Union[VersionStamp, TitleBlock, BannerBlock, TextInfoView, LocationInfoView, FormRegion]


@dataclass(frozen=True)
class FormSurface:
    blocks: Tuple[Block, ...]

    @property
    def region(self) -> FormRegion:
        return next(b for b in self.blocks if isinstance(b, FormRegion))


# ---------------- Engine-owned UI state ----------------


@dataclass
class SubmitControl:
    disabled: bool = False
    label: str = SUBMIT_LABEL

    def arm(self) -> None:
        self.disabled = False
        self.label = SUBMIT_LABEL

    def busy(self) -> None:
        self.disabled = True
        self.label = BUSY_LABEL


@dataclass(frozen=True)
class FormHandlers:
    """Event callbacks owned by a FormEngine and handed to the painter."""
    on_line_login: Callable[[], Any]
    on_toggle_line_remind: Callable[[], Any]
    on_toggle_email_remind: Callable[[], Any]
    on_submit: Callable[[], Any]


@dataclass(frozen=True)
class ConfirmationView:
    show_remind_notice: bool
    add_friend_url: Optional[str] = None


# ---------------- Pure render ----------------


def identity_status(session: Session, connect_text: str = "") -> IdentityStatusView:
    """Connect button vs. linked indicator, derived from the session identity alone."""
    ident = session.identity
    if not ident.is_guest:
        return IdentityStatusView(
            connect_visible=False,
            status_visible=True,
            status_text=f"✅ 已連結 ({ident.display_name})",
            connect_text=connect_text or CONNECT_LABEL,
        )
    return IdentityStatusView(connect_visible=True, status_visible=False,
                              connect_text=connect_text or CONNECT_LABEL)


def _render_text(fld: TextField, schema: FormSchema, session: Session) -> FieldBlock:
    return TextInputBlock(field_id=fld.id, label=fld.title, input_type=fld.type,
                          required=fld.required, placeholder=fld.placeholder)


def _render_choice(fld: ChoiceField, schema: FormSchema, session: Session) -> FieldBlock:
    if fld.multiple:
        options = tuple(ChoiceOption(key=option_key(fld.id, i), value=o)
                        for i, o in enumerate(fld.options))
    else:
        # a radio group shares one input key
        options = tuple(ChoiceOption(key=fld.id, value=o) for o in fld.options)
    return ChoiceBlock(
        field_id=fld.id,
        label=fld.title,
        options=options,
        multiple=fld.multiple,
        horizontal=fld.layout == "horizontal",
        required=fld.required,
    )


def _render_contact(fld: ContactSection, schema: FormSchema, session: Session) -> FieldBlock:
    return ContactBlock(
        field_id=fld.id,
        label=fld.title,
        description=fld.description or DEFAULT_CONTACT_DESCRIPTION,
        mobile_label=fld.mobile.title or "手機",
        mobile_placeholder=fld.mobile.placeholder,
        line_label=fld.line.title or "Line",
        email_label=fld.email.title or "Email",
        email_placeholder=fld.email.placeholder,
        identity=identity_status(session, fld.line.button_text),
        add_friend_url=add_friend_url(schema.meta.channel_id),
        required=fld.required,
    )


def _render_remind(fld: RemindSection, schema: FormSchema, session: Session) -> FieldBlock:
    return RemindBlock(
        field_id=fld.id,
        label=fld.title,
        description=fld.description or DEFAULT_REMIND_DESCRIPTION,
        offer_line=fld.line_enabled,
        offer_email=fld.email_enabled,
        required=fld.required,
    )


_FIELD_RENDERERS: Dict[type, Callable[[Any, FormSchema, Session], FieldBlock]] = {
    TextField: _render_text,
    ChoiceField: _render_choice,
    ContactSection: _render_contact,
    RemindSection: _render_remind,
}


def render_field(fld: FieldDefinition, schema: FormSchema, session: Session) -> Optional[FieldBlock]:
    renderer = _FIELD_RENDERERS.get(type(fld))
    if renderer is None:
        logger.warning("Skipping field '%s': no renderer for type '%s'",
                       getattr(fld, "id", "?"), getattr(fld, "type", type(fld).__name__))
        return None
    return renderer(fld, schema, session)


def render_form(schema: FormSchema, session: Session) -> FormSurface:
    """
    version stamp -> title -> banner (if enabled) -> enabled info blocks
    -> form region (enabled fields, submit control)
    """
    meta = schema.meta
    blocks = [
        VersionStamp(f"{meta.title} ver{meta.version}"),
        TitleBlock(meta.title),
    ]

    if schema.banner is not None and schema.banner.enabled:
        blocks.append(BannerBlock(image_url=schema.banner.image_url,
                                  alt_text=schema.banner.alt_text or DEFAULT_BANNER_ALT))

    for info in schema.info_blocks:
        if not info.enabled:
            continue
        if isinstance(info, LocationInfoBlock):
            map_url = None
            if info.show_map and info.map_query:
                map_url = MAP_SEARCH_URL + quote(info.map_query, safe="")
            blocks.append(LocationInfoView(block_id=info.id, title=info.title,
                                           place_name=info.place_name, address=info.address,
                                           map_url=map_url))
        else:
            blocks.append(TextInfoView(block_id=info.id, title=info.title, content=info.content))

    fields = []
    for fld in schema.form_fields:
        if not fld.enabled:
            continue
        rendered = render_field(fld, schema, session)
        if rendered is not None:
            fields.append(rendered)

    blocks.append(FormRegion(fields=tuple(fields), submit=SubmitBlock()))
    return FormSurface(blocks=tuple(blocks))


# ---------------- Streamlit painter ----------------


def _label(text: str, required: bool) -> str:
    # Visual indicator only; the engine's validation enforces required
    return f"{text} *" if required else text


def _focus_hint(key: str, view: Optional[ViewState]) -> None:
    # Streamlit cannot move focus, so the focused input gets a marker instead
    if view is not None and view.focus == key:
        st.caption(FOCUS_HINT)


def _paint_field(block: FieldBlock, handlers: FormHandlers, view: Optional[ViewState] = None) -> None:
    if isinstance(block, TextInputBlock):
        label = _label(block.label, block.required)
        if block.multiline:
            st.text_area(label, key=block.field_id, placeholder=block.placeholder or None, height=120)
        else:
            st.text_input(label, key=block.field_id, placeholder=block.placeholder or None)
        _focus_hint(block.field_id, view)

    elif isinstance(block, ChoiceBlock):
        label = _label(block.label, block.required)
        if block.multiple:
            st.markdown(f"**{label}**")
            for opt in block.options:
                st.checkbox(opt.value, key=opt.key)
        else:
            st.radio(label, options=[o.value for o in block.options], index=None,
                     horizontal=block.horizontal, key=block.field_id)
        _focus_hint(block.field_id, view)

    elif isinstance(block, ContactBlock):
        st.markdown(f"**{_label(block.label, block.required)}** ({block.description})")
        with st.container(border=True):
            st.text_input(block.mobile_label, key=CONTACT_MOBILE_KEY,
                          placeholder=block.mobile_placeholder or None)
            _focus_hint(CONTACT_MOBILE_KEY, view)

            st.markdown(f"**{block.line_label}**")
            if block.add_friend_url:
                st.markdown(f"1. 請先 [加入官方帳號好友]({block.add_friend_url})  \n2. 點擊下方按鈕連結帳號")
            if block.identity.connect_visible:
                st.button(block.identity.connect_text, key=LINE_LOGIN_KEY,
                          on_click=handlers.on_line_login)
            if block.identity.status_visible:
                st.success(block.identity.status_text)

            st.text_input(block.email_label, key=CONTACT_EMAIL_KEY,
                          placeholder=block.email_placeholder or None)
            _focus_hint(CONTACT_EMAIL_KEY, view)

    elif isinstance(block, RemindBlock):
        st.markdown(f"**{_label(block.label, block.required)}**")
        st.caption(block.description)
        if block.offer_line:
            st.checkbox("Line 提醒", key=REMIND_LINE_KEY, on_change=handlers.on_toggle_line_remind)
            if view is not None and view.line_connect_visible:
                st.caption(LINE_CONNECT_HINT)
        if block.offer_email:
            st.checkbox("Email 提醒", key=REMIND_EMAIL_KEY, on_change=handlers.on_toggle_email_remind)
            if view is not None and view.email_input_visible:
                st.caption(EMAIL_INPUT_HINT)

    else:
        logger.warning("No painter for block %r", block)


def _with_spinner(callback: Callable[[], Any]) -> Callable[[], Any]:
    # The callback finishes before the rerun repaints the button, so the busy
    # label is only ever seen through the spinner
    def run() -> Any:
        with st.spinner(BUSY_LABEL):
            return callback()
    return run


def paint_surface(surface: FormSurface, handlers: FormHandlers, control: SubmitControl,
                  view: Optional[ViewState] = None) -> None:
    """Draw a rendered surface. Widget values land in st.session_state under the input keys."""
    for block in surface.blocks:
        if isinstance(block, VersionStamp):
            st.caption(block.text)
        elif isinstance(block, TitleBlock):
            st.title(f"📝 {block.text}")
        elif isinstance(block, BannerBlock):
            st.markdown(f"![{block.alt_text}]({block.image_url})")
        elif isinstance(block, TextInfoView):
            st.subheader(block.title)
            with st.container(border=True):
                st.markdown(block.content.replace("\n", "  \n"))
        elif isinstance(block, LocationInfoView):
            st.subheader(block.title)
            with st.container(border=True):
                st.markdown(f"**{block.place_name}**")
                st.write(block.address)
                if block.map_url:
                    st.link_button("📍 開啟 Google 地圖", block.map_url)
        elif isinstance(block, FormRegion):
            for fb in block.fields:
                _paint_field(fb, handlers, view)
            wide_button(control.label, key=SUBMIT_KEY, disabled=control.disabled,
                        on_click=_with_spinner(handlers.on_submit), type="primary")


def paint_confirmation(view: ConfirmationView) -> None:
    st.markdown("## ✅ 報名成功！")
    st.write("我們已收到您的報名資訊。")
    if view.show_remind_notice:
        st.markdown(":orange[屆時將會發送提醒通知給您。]")
    if view.add_friend_url:
        st.link_button("💬 加入官方帳號好友", view.add_friend_url)
    st.caption("加入後如有疑問可直接傳訊諮詢")
