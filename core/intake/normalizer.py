#!/usr/bin/env python3
"""
Field Normalizer - flattens webhook column payloads into a Submission.

Form providers wrap every answer in a polymorphic shape, e.g.:

    {"text0":    {"value": "Acme Water"},
     "date4":    {"date": "2024-05-01", "time": null},
     "status":   {"label": {"index": 1, "text": "Yes"}},
     "country":  {"countryCode": "KE", "countryName": "Kenya"},
     "checkbox": {"checked": "true"}}

Each raw field is converted into a small typed tree (FieldNode) and searched
depth-first for the first key from VALUE_PREFERENCE. A field whose shape
matches nothing becomes EMPTY_VALUE instead of failing the whole submission.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from core.config_loader import IntakeConfig
from core.errors import ValidationError

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool, date]

# Ordered: explicit value, display text, date, country name, checked-flag
VALUE_PREFERENCE: Tuple[str, ...] = ("value", "text", "date", "countryName", "checked")

EMPTY_VALUE = ""


@dataclass(frozen=True)
class ScalarNode:
    value: Optional[Scalar]


@dataclass(frozen=True)
class MappingNode:
    entries: Tuple[Tuple[str, "FieldNode"], ...]


@dataclass(frozen=True)
class SequenceNode:
    items: Tuple["FieldNode", ...]


FieldNode = Union[ScalarNode, MappingNode, SequenceNode]


def to_node(raw: Any) -> FieldNode:
    """Convert decoded JSON into a FieldNode tree."""
    if isinstance(raw, Mapping):
        return MappingNode(tuple((str(k), to_node(v)) for k, v in raw.items()))
    if isinstance(raw, (list, tuple)):
        return SequenceNode(tuple(to_node(item) for item in raw))
    if raw is None or isinstance(raw, (str, int, float, bool, date)):
        return ScalarNode(raw)
    # Anything exotic is kept as its string form
    return ScalarNode(str(raw))


def find_first(node: FieldNode, key: str) -> Optional[FieldNode]:
    """Depth-first search for the first entry named `key`. Returns its node."""
    if isinstance(node, MappingNode):
        for name, child in node.entries:
            if name == key:
                return child
        for _, child in node.entries:
            found = find_first(child, key)
            if found is not None:
                return found
    elif isinstance(node, SequenceNode):
        for item in node.items:
            found = find_first(item, key)
            if found is not None:
                return found
    return None


def _coerce(key: str, value: Scalar) -> Scalar:
    if key == "date" and isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return value
    if key == "checked":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "1", "yes", "v")
    return value


def extract_scalar(node: FieldNode) -> Scalar:
    """
    Pick the single scalar that represents a raw field.

    A bare scalar is returned as-is. Otherwise the preference keys are tried
    in order. A null under a preferred key is skipped; a nested shape under
    one (e.g. {"value": {"text": ...}}) is searched in turn. No match yields
    EMPTY_VALUE.
    """
    if isinstance(node, ScalarNode):
        return EMPTY_VALUE if node.value is None else node.value

    for key in VALUE_PREFERENCE:
        found = find_first(node, key)
        if isinstance(found, ScalarNode) and found.value is not None:
            return _coerce(key, found.value)
        if found is not None and not isinstance(found, ScalarNode):
            # Nested shape under a preferred key, e.g. {"value": {"text": "x"}}
            inner = extract_scalar(found)
            if inner != EMPTY_VALUE:
                return _coerce(key, inner) if isinstance(inner, str) else inner
    return EMPTY_VALUE


def normalize_payload(
    column_values: Mapping[str, Any],
    field_map: Optional[Mapping[str, str]] = None
) -> Mapping[str, Scalar]:
    """
    Flatten raw column payloads into canonical field name -> scalar.

    Args:
        column_values: Raw per-field payloads keyed by raw identifier
        field_map: Static lookup raw identifier -> canonical name

    Returns:
        Read-only mapping of canonical names to scalars
    """
    field_map = field_map or {}
    flat: Dict[str, Scalar] = {}
    for raw_id, raw_value in column_values.items():
        canonical = field_map.get(raw_id, raw_id)
        try:
            flat[canonical] = extract_scalar(to_node(raw_value))
        except RecursionError:
            logger.warning(f"Field {raw_id} nests too deeply, treating as empty")
            flat[canonical] = EMPTY_VALUE
        if flat[canonical] == EMPTY_VALUE:
            logger.debug(f"No value found for field {raw_id} ({canonical})")
    return MappingProxyType(flat)


@dataclass(frozen=True)
class IntakeEvent:
    """A validated intake event ready for identity and workflow start."""
    event_type: str
    submission: Mapping[str, Scalar]
    received_at: datetime


def normalize_event(body: Any, config: IntakeConfig) -> IntakeEvent:
    """
    Unwrap the webhook envelope and normalize its column values.

    Raises:
        ValidationError: If the body is not a recognizable intake event
    """
    if not isinstance(body, Mapping):
        raise ValidationError("Request body must be a JSON object")

    event = body.get("event")
    if not isinstance(event, Mapping):
        raise ValidationError("Request body has no 'event' object")

    event_type = event.get("type")
    if event_type not in config.accepted_event_types:
        raise ValidationError(f"Event not handled: {event_type!r}")

    column_values = event.get("columnValues")
    if not isinstance(column_values, Mapping):
        raise ValidationError("Event has no 'columnValues' object")

    fields = dict(normalize_payload(column_values, config.field_map))

    # The item name doubles as the project name when no column carries it
    pulse_name = event.get("pulseName")
    if isinstance(pulse_name, str) and pulse_name.strip():
        if fields.get(config.project_name_field, EMPTY_VALUE) == EMPTY_VALUE:
            fields[config.project_name_field] = pulse_name.strip()

    if not fields:
        raise ValidationError("Event carries no fields")

    return IntakeEvent(
        event_type=event_type,
        submission=MappingProxyType(fields),
        received_at=datetime.now(timezone.utc)
    )
