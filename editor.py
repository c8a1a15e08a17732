"""
Editing operations on a form schema (the data side of the card editor).

Every function returns a new FormSchema; schemas are never modified in place.
Default fields (DEFAULT_FIELD_IDS) can be disabled but not removed.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, Optional

from errors import ProtectedFieldError, SchemaError
from form_schema import (
    DEFAULT_FIELD_IDS,
    ChoiceField,
    FieldDefinition,
    FormSchema,
    LocationInfoBlock,
    RemindSection,
    dump_field,
    parse_field,
)

logger = logging.getLogger(__name__)

NEW_OPTION_TEXT = "新選項"


def is_default_field(field_id: str) -> bool:
    return field_id in DEFAULT_FIELD_IDS


def _index_of(schema: FormSchema, field_id: str) -> int:
    for i, f in enumerate(schema.form_fields):
        if f.id == field_id:
            return i
    raise KeyError(field_id)


def _replace_field(schema: FormSchema, field_id: str,
                   change: Callable[[FieldDefinition], FieldDefinition]) -> FormSchema:
    idx = _index_of(schema, field_id)
    fields = list(schema.form_fields)
    fields[idx] = change(fields[idx])
    return dataclasses.replace(schema, form_fields=tuple(fields))


def toggle_field(schema: FormSchema, field_id: str) -> FormSchema:
    return _replace_field(schema, field_id, lambda f: dataclasses.replace(f, enabled=not f.enabled))


def remove_field(schema: FormSchema, field_id: str) -> FormSchema:
    if is_default_field(field_id):
        raise ProtectedFieldError(f"Field '{field_id}' is a default field; disable it instead.")
    idx = _index_of(schema, field_id)
    fields = list(schema.form_fields)
    del fields[idx]
    logger.info("Removed field '%s'", field_id)
    return dataclasses.replace(schema, form_fields=tuple(fields))


def add_field(schema: FormSchema, raw_field: Dict[str, Any]) -> FormSchema:
    """Append a field given in document form ({id, type, title, ...})."""
    fld = parse_field(raw_field, where="new field")
    if schema.get_field(fld.id) is not None:
        raise SchemaError(f"Field id '{fld.id}' already exists.")
    return dataclasses.replace(schema, form_fields=schema.form_fields + (fld,))


def update_field(schema: FormSchema, field_id: str, **changes: Any) -> FormSchema:
    """Set plain attributes such as title, placeholder, required or layout."""
    if "id" in changes or "type" in changes:
        raise SchemaError("A field's id and type cannot be changed.")

    def change(f: FieldDefinition) -> FieldDefinition:
        try:
            changed = dataclasses.replace(f, **changes)
        except TypeError as e:
            raise SchemaError(f"Field '{field_id}' does not accept {sorted(changes)}: {e}") from e
        # Same structural checks as a loaded document (options, layout)
        return parse_field(dump_field(changed), where=f"Field '{field_id}'")

    return _replace_field(schema, field_id, change)


def _choice(schema: FormSchema, field_id: str) -> ChoiceField:
    fld = schema.get_field(field_id)
    if not isinstance(fld, ChoiceField):
        raise SchemaError(f"Field '{field_id}' has no options.")
    return fld


def add_option(schema: FormSchema, field_id: str, text: str = NEW_OPTION_TEXT) -> FormSchema:
    fld = _choice(schema, field_id)
    return _replace_field(schema, field_id,
                          lambda f: dataclasses.replace(fld, options=fld.options + (text,)))


def set_option(schema: FormSchema, field_id: str, index: int, text: str) -> FormSchema:
    fld = _choice(schema, field_id)
    options = list(fld.options)
    options[index] = text
    return _replace_field(schema, field_id,
                          lambda f: dataclasses.replace(fld, options=tuple(options)))


def remove_option(schema: FormSchema, field_id: str, index: int) -> FormSchema:
    fld = _choice(schema, field_id)
    if len(fld.options) <= 1:
        raise SchemaError("At least one option must remain.")
    options = list(fld.options)
    del options[index]
    return _replace_field(schema, field_id,
                          lambda f: dataclasses.replace(fld, options=tuple(options)))


def toggle_remind_method(schema: FormSchema, field_id: str, method: str) -> FormSchema:
    fld = schema.get_field(field_id)
    if not isinstance(fld, RemindSection):
        raise SchemaError(f"Field '{field_id}' is not a remind section.")
    if method == "line":
        changed = dataclasses.replace(fld, line_enabled=not fld.line_enabled)
    elif method == "email":
        changed = dataclasses.replace(fld, email_enabled=not fld.email_enabled)
    else:
        raise SchemaError(f"Unknown reminder method '{method}'.")
    return _replace_field(schema, field_id, lambda f: changed)


def update_location(
    schema: FormSchema,
    block_id: str = "location",
    *,
    title: Optional[str] = None,
    place_name: Optional[str] = None,
    address: Optional[str] = None,
    show_map: Optional[bool] = None,
    enabled: Optional[bool] = None,
) -> FormSchema:
    """Edit the location card; its map query follows place name and address."""
    changes = {k: v for k, v in {
        "title": title,
        "place_name": place_name,
        "address": address,
        "show_map": show_map,
        "enabled": enabled,
    }.items() if v is not None}

    blocks = list(schema.info_blocks)
    for i, block in enumerate(blocks):
        if block.id == block_id and isinstance(block, LocationInfoBlock):
            blocks[i] = dataclasses.replace(block, **changes)
            return dataclasses.replace(schema, info_blocks=tuple(blocks))

    blocks.append(LocationInfoBlock(id=block_id, **changes))
    return dataclasses.replace(schema, info_blocks=tuple(blocks))
