import asyncio
import logging

import streamlit as st

from data_loader import DEFAULT_FORM, DRAFTS_DIR, list_forms, load_form_schema
from drafts import (
    DRAFT_PARAM,
    JsonFileDraftStore,
    is_draft_token,
    new_draft_token,
    return_url,
    session_scope,
)
from errors import SchemaError
from form_engine import FormEngine, SubmitState
from form_renderer import paint_confirmation, paint_surface
from identity import GuestIdentityProvider
from submission import HttpSubmissionSink

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("signup_form")

# ---------------- App Config ----------------

st.set_page_config(page_title="活動報名", layout="centered")

# ?config=<name> selects data/forms/<name>.json
config_name = st.query_params.get("config", DEFAULT_FORM)

try:
    schema = load_form_schema(config_name)
except (FileNotFoundError, SchemaError):
    available = list_forms()
    if available:
        st.info("Available forms: " + ", ".join(available))
    st.stop()

# One engine per browser session and form document
engine_key = f"_engine::{config_name}"
engine: FormEngine = st.session_state.get(engine_key)
if engine is None or engine.schema != schema:
    # ?draft=<token> ties the saved draft to this browser session; the login page
    # sends the user back with the same token
    draft_token = st.query_params.get(DRAFT_PARAM)
    if not is_draft_token(draft_token):
        draft_token = new_draft_token()
        st.query_params[DRAFT_PARAM] = draft_token

    engine = FormEngine(
        schema,
        # Swap in a concrete login/messaging integration here
        provider=GuestIdentityProvider(),
        sink=HttpSubmissionSink(),
        draft_store=JsonFileDraftStore(DRAFTS_DIR),
        inputs=st.session_state,
        draft_scope=session_scope(config_name, draft_token),
        redirect_target=return_url(st.context.url, config_name, draft_token),
    )
    st.session_state[engine_key] = engine
    logger.info("New form session for '%s'", config_name)
    asyncio.run(engine.init_identity())

# ---------------- Form ----------------

if engine.view.confirmation is not None and engine.state == SubmitState.SUCCEEDED:
    paint_confirmation(engine.view.confirmation)
    st.stop()

surface = engine.render()
paint_surface(surface, engine.handlers(), engine.control, engine.view)

for warning in engine.view.warnings:
    st.warning(warning)

status = engine.view.status
if status is not None:
    if status.kind == "error":
        st.error(status.text)
    else:
        st.info(status.text)
