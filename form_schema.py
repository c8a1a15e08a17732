"""
Declarative form document model for the event signup form.

Exports:
- parse(raw) -> FormSchema            (raises SchemaError)
- dump(schema) -> dict                (inverse of parse, JSON-ready)
- derive_map_query(place_name, address) -> str
- DEFAULT_FIELD_IDS, FIELD_TYPES

The document shape is the one the editor saves:
  { "formMeta": {...}, "banner": {...}, "infoBlocks": [...], "formFields": [...] }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from errors import SchemaError

# Fields every event form carries. They can be disabled but never removed.
DEFAULT_FIELD_IDS: Tuple[str, ...] = ("session", "realName", "gender", "age", "source", "remind")

TEXT_TYPES: Set[str] = {"text", "email", "textarea"}
CHOICE_TYPES: Set[str] = {"radio", "checkbox"}
CONTACT_TYPE = "contact-section"
REMIND_TYPE = "remind-section"

# Centralized field type allowlist
FIELD_TYPES: Set[str] = TEXT_TYPES | CHOICE_TYPES | {CONTACT_TYPE, REMIND_TYPE}

RADIO_LAYOUTS: Set[str] = {"vertical", "horizontal"}


@dataclass(frozen=True)
class FormMeta:
    title: str
    version: str = "1.0"
    auth_id: str = ""          # external identity provider app id (liffId)
    channel_id: str = ""       # messaging channel id (lineOaId)
    submit_url: str = ""       # submission endpoint (gasUrl)


@dataclass(frozen=True)
class Banner:
    enabled: bool = False
    image_url: str = ""
    alt_text: str = ""


@dataclass(frozen=True)
class TextInfoBlock:
    id: str
    title: str = ""
    enabled: bool = True
    content: str = ""


@dataclass(frozen=True)
class LocationInfoBlock:
    id: str
    title: str = ""
    enabled: bool = True
    place_name: str = ""
    address: str = ""
    show_map: bool = False

    @property
    def map_query(self) -> str:
        return derive_map_query(self.place_name, self.address)


InfoBlock = Union[TextInfoBlock, LocationInfoBlock]


@dataclass(frozen=True)
class TextField:
    id: str
    type: str
    title: str
    enabled: bool = True
    required: bool = False
    placeholder: str = ""


@dataclass(frozen=True)
class ChoiceField:
    id: str
    type: str
    title: str
    options: Tuple[str, ...]
    enabled: bool = True
    required: bool = False
    layout: str = "vertical"

    @property
    def multiple(self) -> bool:
        return self.type == "checkbox"


@dataclass(frozen=True)
class ContactInput:
    title: str = ""
    placeholder: str = ""
    button_text: str = ""


@dataclass(frozen=True)
class ContactSection:
    id: str
    title: str
    enabled: bool = True
    required: bool = False
    description: str = ""
    mobile: ContactInput = field(default_factory=ContactInput)
    line: ContactInput = field(default_factory=ContactInput)
    email: ContactInput = field(default_factory=ContactInput)
    type: str = CONTACT_TYPE


@dataclass(frozen=True)
class RemindSection:
    id: str
    title: str
    enabled: bool = True
    required: bool = False
    description: str = ""
    line_enabled: bool = False
    email_enabled: bool = False
    type: str = REMIND_TYPE


FieldDefinition = Union[TextField, ChoiceField, ContactSection, RemindSection]


@dataclass(frozen=True)
class FormSchema:
    meta: FormMeta
    banner: Optional[Banner] = None
    info_blocks: Tuple[InfoBlock, ...] = ()
    form_fields: Tuple[FieldDefinition, ...] = ()

    def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        for fld in self.form_fields:
            if fld.id == field_id:
                return fld
        return None

    def enabled_fields(self) -> List[FieldDefinition]:
        return [f for f in self.form_fields if f.enabled]


def derive_map_query(place_name: str, address: str) -> str:
    if place_name and address:
        return f"{place_name}+{address}"
    return ""


# ---------------- Parsing ----------------


def _as_str(x: Any) -> str:
    if x is None:
        return ""
    return str(x)


def _require_object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{where} must be an object, got {type(value).__name__}.")
    return value


def _parse_meta(raw: Dict[str, Any]) -> FormMeta:
    meta = raw.get("formMeta")
    if meta is None:
        raise SchemaError("Form document must contain 'formMeta'.")
    meta = _require_object(meta, "formMeta")
    title = _as_str(meta.get("title")).strip()
    if not title:
        raise SchemaError("formMeta.title is required.")
    return FormMeta(
        title=title,
        version=_as_str(meta.get("version") or "1.0"),
        auth_id=_as_str(meta.get("liffId")).strip(),
        channel_id=_as_str(meta.get("lineOaId")).strip(),
        submit_url=_as_str(meta.get("gasUrl")).strip(),
    )


def _parse_banner(raw: Dict[str, Any]) -> Optional[Banner]:
    banner = raw.get("banner")
    if not banner:
        return None
    banner = _require_object(banner, "banner")
    return Banner(
        enabled=bool(banner.get("enabled", False)),
        image_url=_as_str(banner.get("imageUrl")),
        alt_text=_as_str(banner.get("altText")),
    )


def _is_location_block(block: Dict[str, Any]) -> bool:
    return block.get("type") == "location" or block.get("id") == "location"


def _parse_info_blocks(raw: Dict[str, Any]) -> Tuple[InfoBlock, ...]:
    blocks = raw.get("infoBlocks") or []
    if not isinstance(blocks, list):
        raise SchemaError("infoBlocks must be a list.")
    out: List[InfoBlock] = []
    for i, block in enumerate(blocks):
        block = _require_object(block, f"infoBlocks[{i}]")
        block_id = _as_str(block.get("id")).strip()
        if not block_id:
            raise SchemaError(f"infoBlocks[{i}] has no 'id'.")
        if _is_location_block(block):
            # mapQuery is always re-derived; a stored value is ignored
            out.append(LocationInfoBlock(
                id=block_id,
                title=_as_str(block.get("title")),
                enabled=bool(block.get("enabled", False)),
                place_name=_as_str(block.get("placeName")),
                address=_as_str(block.get("address")),
                show_map=bool(block.get("showMap", False)),
            ))
        else:
            out.append(TextInfoBlock(
                id=block_id,
                title=_as_str(block.get("title")),
                enabled=bool(block.get("enabled", False)),
                content=_as_str(block.get("content")),
            ))
    return tuple(out)


def _parse_contact_input(value: Any) -> ContactInput:
    if not isinstance(value, dict):
        return ContactInput()
    return ContactInput(
        title=_as_str(value.get("title")),
        placeholder=_as_str(value.get("placeholder")),
        button_text=_as_str(value.get("buttonText")),
    )


def _method_enabled(methods: Dict[str, Any], name: str) -> bool:
    method = methods.get(name)
    return isinstance(method, dict) and bool(method.get("enabled", False))


def parse_field(fld: Any, where: str = "formFields") -> FieldDefinition:
    """Validate one field definition and build its typed variant."""
    fld = _require_object(fld, where)
    field_id = _as_str(fld.get("id")).strip()
    if not field_id:
        raise SchemaError(f"{where} has a field without an 'id'.")
    ftype = _as_str(fld.get("type")).strip()
    if ftype not in FIELD_TYPES:
        raise SchemaError(
            f"Field '{field_id}' uses unsupported type '{ftype}'. Allowed types: {sorted(FIELD_TYPES)}")

    common = {
        "id": field_id,
        "title": _as_str(fld.get("title")),
        "enabled": bool(fld.get("enabled", True)),
        "required": bool(fld.get("required", False)),
    }

    if ftype in TEXT_TYPES:
        return TextField(type=ftype, placeholder=_as_str(fld.get("placeholder")), **common)

    if ftype in CHOICE_TYPES:
        options = fld.get("options")
        if not isinstance(options, list):
            raise SchemaError(f"Field '{field_id}' ({ftype}) must define an 'options' list.")
        if not options:
            raise SchemaError(f"Field '{field_id}' ({ftype}) must have at least one option.")
        layout = _as_str(fld.get("layout") or "vertical")
        if ftype == "radio" and layout not in RADIO_LAYOUTS:
            raise SchemaError(
                f"Field '{field_id}' has layout '{layout}'. Allowed: {sorted(RADIO_LAYOUTS)}")
        return ChoiceField(
            type=ftype,
            options=tuple(_as_str(o) for o in options),
            layout=layout,
            **common,
        )

    if ftype == CONTACT_TYPE:
        return ContactSection(
            description=_as_str(fld.get("description")),
            mobile=_parse_contact_input(fld.get("mobile")),
            line=_parse_contact_input(fld.get("line")),
            email=_parse_contact_input(fld.get("email")),
            **common,
        )

    methods = fld.get("methods") if isinstance(fld.get("methods"), dict) else {}
    return RemindSection(
        description=_as_str(fld.get("description")),
        line_enabled=_method_enabled(methods, "line"),
        email_enabled=_method_enabled(methods, "email"),
        **common,
    )


def _parse_fields(raw: Dict[str, Any]) -> Tuple[FieldDefinition, ...]:
    fields = raw.get("formFields") or []
    if not isinstance(fields, list):
        raise SchemaError("formFields must be a list.")
    out: List[FieldDefinition] = []
    seen: Set[str] = set()
    for i, fld in enumerate(fields):
        parsed = parse_field(fld, where=f"formFields[{i}]")
        if parsed.id in seen:
            raise SchemaError(f"Duplicate field id '{parsed.id}'.")
        seen.add(parsed.id)
        out.append(parsed)
    return tuple(out)


def parse(raw: Any) -> FormSchema:
    """
    Build a FormSchema from a decoded JSON document.

    Raises SchemaError when formMeta/title is missing or a field is structurally
    invalid (unknown type, choice field without options, duplicate id).
    """
    raw = _require_object(raw, "Form document")
    return FormSchema(
        meta=_parse_meta(raw),
        banner=_parse_banner(raw),
        info_blocks=_parse_info_blocks(raw),
        form_fields=_parse_fields(raw),
    )


# ---------------- Serialization ----------------


def _dump_contact_input(ci: ContactInput) -> Dict[str, Any]:
    return {"title": ci.title, "placeholder": ci.placeholder, "buttonText": ci.button_text}


def dump_field(fld: FieldDefinition) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": fld.id,
        "type": fld.type,
        "title": fld.title,
        "enabled": fld.enabled,
        "required": fld.required,
    }
    if isinstance(fld, TextField):
        out["placeholder"] = fld.placeholder
    elif isinstance(fld, ChoiceField):
        out["options"] = list(fld.options)
        if fld.type == "radio":
            out["layout"] = fld.layout
    elif isinstance(fld, ContactSection):
        out["description"] = fld.description
        out["mobile"] = _dump_contact_input(fld.mobile)
        out["line"] = _dump_contact_input(fld.line)
        out["email"] = _dump_contact_input(fld.email)
    elif isinstance(fld, RemindSection):
        out["description"] = fld.description
        out["methods"] = {
            "line": {"enabled": fld.line_enabled},
            "email": {"enabled": fld.email_enabled},
        }
    return out


def dump(schema: FormSchema) -> Dict[str, Any]:
    """Serialize back to the document shape accepted by parse()."""
    meta = schema.meta
    doc: Dict[str, Any] = {
        "formMeta": {
            "title": meta.title,
            "version": meta.version,
            "liffId": meta.auth_id,
            "lineOaId": meta.channel_id,
            "gasUrl": meta.submit_url,
        },
        "infoBlocks": [],
        "formFields": [dump_field(f) for f in schema.form_fields],
    }
    if schema.banner is not None:
        doc["banner"] = {
            "enabled": schema.banner.enabled,
            "imageUrl": schema.banner.image_url,
            "altText": schema.banner.alt_text,
        }
    for block in schema.info_blocks:
        if isinstance(block, LocationInfoBlock):
            doc["infoBlocks"].append({
                "id": block.id,
                "type": "location",
                "enabled": block.enabled,
                "title": block.title,
                "placeName": block.place_name,
                "address": block.address,
                "showMap": block.show_map,
                "mapQuery": block.map_query,
            })
        else:
            doc["infoBlocks"].append({
                "id": block.id,
                "enabled": block.enabled,
                "title": block.title,
                "content": block.content,
            })
    return doc
