"""
FormEngine: one in-progress signup form interaction.

Owns the session (identity, notification flag), the input-state mapping the widgets
write into, the submit control, and the pending draft. Flow:

    engine = FormEngine(schema, provider=..., sink=..., draft_store=..., inputs=st.session_state)
    await engine.init_identity()      # may queue a draft restore
    surface = engine.render()         # runs the queued restore right after rendering
    ...
    await engine.handle_submit()      # collect -> validate -> submit
"""

from __future__ import annotations

import asyncio
import datetime
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, MutableMapping, Optional, Union

from collector import YES, AnswerRecord, collect
from drafts import DRAFT_SCOPE, DraftStore, MemoryDraftStore, discard_draft, load_draft, save_draft
from errors import RestoreError, SubmissionError
from form_renderer import (
    CONTACT_EMAIL_KEY,
    CONTACT_MOBILE_KEY,
    REMIND_EMAIL_KEY,
    REMIND_LINE_KEY,
    ConfirmationView,
    FormHandlers,
    FormSurface,
    IdentityStatusView,
    SubmitControl,
    add_friend_url,
    identity_status,
    option_key,
    render_form,
)
from form_schema import ChoiceField, FormSchema, RemindSection, TextField
from identity import GuestIdentityProvider, IdentityProvider, NotificationOutcome, Session
from submission import HttpSubmissionSink, SubmissionSink
from validation import Invalid, ValidationResult, validate

logger = logging.getLogger(__name__)

MSG_INIT_FAILED = "系統初始化失敗,請重新整理。"
MSG_LOGIN_FAILED = "無法連結 Line 帳號,請稍後再試。"
MSG_SEND_FAILED = "❌ 傳送失敗,請檢查網路或稍後再試"
MSG_NOTIFICATION_FAILED = "注意：無法發送報名紀錄到您的 Line (可能權限不足)。\n但我們已收到您的報名資料。"
NOTIFICATION_TEMPLATE = "报名\n{title}\n{session}"


class SubmitState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusMessage:
    text: str
    kind: str = "info"      # "info" | "error"


@dataclass
class ViewState:
    form_visible: bool = True
    status: Optional[StatusMessage] = None
    warnings: List[str] = field(default_factory=list)
    focus: Optional[str] = None
    line_connect_visible: bool = False
    email_input_visible: bool = False
    confirmation: Optional[ConfirmationView] = None


@dataclass(frozen=True)
class SubmitOutcome:
    state: SubmitState
    notification: NotificationOutcome = NotificationOutcome.SKIPPED
    error: Optional[str] = None


class FormEngine:
    def __init__(
        self,
        schema: FormSchema,
        *,
        provider: Optional[IdentityProvider] = None,
        sink: Optional[SubmissionSink] = None,
        draft_store: Optional[DraftStore] = None,
        inputs: Optional[MutableMapping[str, Any]] = None,
        draft_scope: str = DRAFT_SCOPE,
        redirect_target: str = "",
        today: Optional[Callable[[], datetime.date]] = None,
    ):
        self.schema = schema
        self.provider: IdentityProvider = provider or GuestIdentityProvider()
        self.sink: SubmissionSink = sink or HttpSubmissionSink()
        self.draft_store: DraftStore = draft_store if draft_store is not None else MemoryDraftStore()
        self.inputs: MutableMapping[str, Any] = inputs if inputs is not None else {}
        self.draft_scope = draft_scope
        self.redirect_target = redirect_target
        self.today = today

        self.session = Session()
        self.control = SubmitControl()
        self.view = ViewState()
        self.state = SubmitState.IDLE
        self.surface: Optional[FormSurface] = None
        self.last_record: Optional[AnswerRecord] = None
        self.last_outcome: Optional[SubmitOutcome] = None

        self._restore_pending = False
        self._draft_restored = False

    # ---------------- Identity ----------------

    async def init_identity(self) -> None:
        auth_id = self.schema.meta.auth_id
        if not auth_id:
            logger.warning("No external auth id configured; continuing as guest")
            return

        try:
            await self.provider.init(auth_id)
            self.restore_draft()

            if await self.provider.is_logged_in():
                profile = await self.provider.get_profile()
                self.session.sign_in(profile)
                logger.info("Signed in as %s", profile.user_id)
            else:
                self.session.sign_out()
        except Exception:
            logger.exception("Identity provider initialisation failed")
            self.view.status = StatusMessage(MSG_INIT_FAILED, "error")

    def identity_status(self) -> IdentityStatusView:
        return identity_status(self.session)

    async def login(self) -> bool:
        """Save the in-progress answers, then hand off to the provider's login page."""
        try:
            if await self.provider.is_logged_in():
                return False
            self.save_draft()
            await self.provider.login(self.redirect_target)
        except Exception:
            logger.exception("Login redirect failed")
            self.view.status = StatusMessage(MSG_LOGIN_FAILED, "error")
            return False
        return True

    # ---------------- Render / collect / validate ----------------

    def render(self) -> FormSurface:
        self.surface = render_form(self.schema, self.session)
        if self._restore_pending:
            self._apply_draft()
        return self.surface

    def collect(self) -> AnswerRecord:
        return collect(self.schema, self.inputs, self.session, today=self.today)

    def validate(self, record: AnswerRecord) -> ValidationResult:
        return validate(self.schema, record, self.session)

    # ---------------- Reminder toggles ----------------

    def toggle_line_remind(self) -> None:
        self.view.line_connect_visible = bool(self.inputs.get(REMIND_LINE_KEY))

    def toggle_email_remind(self) -> None:
        visible = bool(self.inputs.get(REMIND_EMAIL_KEY))
        self.view.email_input_visible = visible
        if visible:
            self.view.focus = CONTACT_EMAIL_KEY
        elif self.view.focus == CONTACT_EMAIL_KEY:
            self.view.focus = None

    # ---------------- Submission ----------------

    def notification_text(self, record: AnswerRecord) -> str:
        return NOTIFICATION_TEMPLATE.format(
            title=self.schema.meta.title or "活動",
            session=record.get("session") or "",
        )

    async def _notify(self, record: AnswerRecord) -> NotificationOutcome:
        if not self.session.identity.linked:
            return NotificationOutcome.SKIPPED
        try:
            if not await self.provider.is_in_client():
                logger.info("Not inside the messaging client, skipping notification")
                return NotificationOutcome.SKIPPED
            await self.provider.send_notification(self.notification_text(record))
        except Exception as e:
            logger.error("Notification failed: %s", e)
            self.view.warnings.append(MSG_NOTIFICATION_FAILED)
            return NotificationOutcome.FAILED
        self.session.line_message_sent = True
        logger.info("Notification sent to %s", self.session.identity.user_id)
        return NotificationOutcome.SENT

    async def handle_submit(self) -> Union[Invalid, SubmitOutcome]:
        """Submit button handler: collect, validate, then submit."""
        if self.control.disabled:
            return self.last_outcome or SubmitOutcome(self.state)

        record = self.collect()
        result = self.validate(record)
        if isinstance(result, Invalid):
            self.view.status = StatusMessage(result.reason, "error")
            self.view.focus = result.focus_field
            return result

        self.view.focus = None
        self.last_record = record
        return await self.submit(record)

    async def submit(self, record: AnswerRecord) -> SubmitOutcome:
        """
        Idle -> Submitting -> Succeeded | Failed.

        A no-op while the submit control is disabled. The record is never mutated,
        so a failed attempt can be retried with the same record.
        """
        if self.control.disabled:
            logger.info("Submit ignored: a submission is already in progress")
            return self.last_outcome or SubmitOutcome(self.state)

        self.state = SubmitState.SUBMITTING
        self.control.busy()
        self.view.status = None
        self.view.warnings = []

        notification = NotificationOutcome.SKIPPED
        try:
            notification = await self._notify(record)
            url = self.schema.meta.submit_url
            if not url:
                raise SubmissionError("Submission endpoint is not configured (formMeta.gasUrl).")
            await self.sink.post(url, dict(record))
        except Exception as e:
            logger.error("Submit error: %s", e)
            self.state = SubmitState.FAILED
            self.control.arm()
            self.view.status = StatusMessage(MSG_SEND_FAILED, "error")
            self.last_outcome = SubmitOutcome(self.state, notification, str(e))
            return self.last_outcome

        self.state = SubmitState.SUCCEEDED
        self.clear_draft()
        self.view.form_visible = False
        self.view.confirmation = ConfirmationView(
            show_remind_notice=record.get("needRemind") == YES,
            add_friend_url=add_friend_url(self.schema.meta.channel_id),
        )
        self.last_outcome = SubmitOutcome(self.state, notification)
        return self.last_outcome

    # ---------------- Drafts ----------------

    def save_draft(self, record: Optional[AnswerRecord] = None) -> AnswerRecord:
        if record is None:
            record = self.collect()
        save_draft(self.draft_store, record, self.draft_scope)
        logger.info("Draft saved under '%s'", self.draft_scope)
        return record

    def clear_draft(self) -> None:
        discard_draft(self.draft_store, self.draft_scope)

    def restore_draft(self) -> bool:
        """
        Re-apply a saved draft to the inputs. Before the first render the restore is
        queued and runs as soon as render() completes. A draft is applied at most once.
        """
        if self._draft_restored:
            return False
        if self.surface is None:
            self._restore_pending = True
            return False
        return self._apply_draft()

    def _apply_draft(self) -> bool:
        self._restore_pending = False
        self._draft_restored = True
        try:
            data = load_draft(self.draft_store, self.draft_scope)
        except RestoreError as e:
            logger.error("Restore error: %s", e)
            return False
        if data is None:
            return False

        for key, value in data.items():
            fld = self.schema.get_field(key)
            if fld is not None and not fld.enabled:
                continue
            if isinstance(fld, ChoiceField):
                self._restore_choice(fld, value)
            elif isinstance(fld, TextField) or key in (CONTACT_MOBILE_KEY, CONTACT_EMAIL_KEY):
                self.inputs[key] = "" if value is None else str(value)

        remind = next((f for f in self.schema.enabled_fields() if isinstance(f, RemindSection)), None)
        if remind is not None:
            if remind.line_enabled and data.get("lineRemind") == YES:
                self.inputs[REMIND_LINE_KEY] = True
                self.toggle_line_remind()
            if remind.email_enabled and data.get("emailRemind") == YES:
                self.inputs[REMIND_EMAIL_KEY] = True
                self.toggle_email_remind()

        logger.info("Draft restored from '%s'", self.draft_scope)
        return True

    def _restore_choice(self, fld: ChoiceField, value: Any) -> None:
        if fld.multiple:
            chosen = set(str(value).split(", ")) if value else set()
            for i, opt in enumerate(fld.options):
                self.inputs[option_key(fld.id, i)] = opt in chosen
        elif value in fld.options:
            self.inputs[fld.id] = value

    # ---------------- Event wiring ----------------

    def handlers(self, run: Callable[[Awaitable[Any]], Any] = asyncio.run) -> FormHandlers:
        return FormHandlers(
            on_line_login=lambda: run(self.login()),
            on_toggle_line_remind=self.toggle_line_remind,
            on_toggle_email_remind=self.toggle_email_remind,
            on_submit=lambda: run(self.handle_submit()),
        )
