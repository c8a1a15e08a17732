import copy
import datetime
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from form_schema import parse  # noqa: E402
from identity import Profile  # noqa: E402

SUBMIT_URL = "https://script.example.com/macros/s/abc/exec"

BASE_DOC = {
    "formMeta": {
        "title": "親子手作",
        "version": "2.1",
        "liffId": "1650000000-abcd",
        "lineOaId": "@shop",
        "gasUrl": SUBMIT_URL,
    },
    "banner": {"enabled": True, "imageUrl": "https://img.example.com/b.png", "altText": ""},
    "infoBlocks": [
        {"id": "activity-info", "enabled": True, "title": "活動內容", "content": "第一行\n第二行"},
        {"id": "location", "enabled": True, "title": "地點", "placeName": "活動中心",
         "address": "忠孝東路1號", "showMap": True},
    ],
    "formFields": [
        {"id": "session", "type": "radio", "title": "場次", "enabled": True, "required": True,
         "options": ["3/15 上午場", "3/16 下午場"]},
        {"id": "realName", "type": "text", "title": "姓名", "enabled": True, "required": True},
        {"id": "gender", "type": "radio", "title": "性別", "enabled": True, "required": False,
         "layout": "horizontal", "options": ["男", "女"]},
        {"id": "age", "type": "radio", "title": "年齡", "enabled": False, "required": False,
         "options": ["18-30", "31-45"]},
        {"id": "contact", "type": "contact-section", "title": "聯絡方式", "enabled": True,
         "mobile": {"title": "手機"}, "line": {"buttonText": "連結"}, "email": {}},
        {"id": "source", "type": "checkbox", "title": "從哪得知", "enabled": True,
         "options": ["A", "B", "C"]},
        {"id": "remind", "type": "remind-section", "title": "提醒", "enabled": True,
         "methods": {"line": {"enabled": True}, "email": {"enabled": True}}},
        {"id": "note", "type": "textarea", "title": "備註", "enabled": True, "placeholder": "..."},
    ],
}


@pytest.fixture
def raw_doc():
    return copy.deepcopy(BASE_DOC)


@pytest.fixture
def schema(raw_doc):
    return parse(raw_doc)


@pytest.fixture
def fixed_today():
    return lambda: datetime.date(2025, 6, 1)


def make_provider(logged_in=False, in_client=True, user_id="U123", display_name="小明"):
    provider = AsyncMock()
    provider.init = AsyncMock(return_value=None)
    provider.is_logged_in = AsyncMock(return_value=logged_in)
    provider.get_profile = AsyncMock(return_value=Profile(user_id=user_id, display_name=display_name))
    provider.login = AsyncMock(return_value=None)
    provider.is_in_client = AsyncMock(return_value=in_client)
    provider.send_notification = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def provider():
    return make_provider()


@pytest.fixture
def sink():
    sink = AsyncMock()
    sink.post = AsyncMock(return_value=None)
    return sink


def filled_inputs():
    """Inputs of a form that passes validation as a guest."""
    return {
        "session": "3/15 上午場",
        "realName": "  王小明 ",
        "source__1": True,
        "contact_mobile": "0912345678",
        "contact_email": "",
    }
