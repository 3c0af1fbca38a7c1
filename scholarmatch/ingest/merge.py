from __future__ import annotations

import types
import typing
from dataclasses import fields, is_dataclass, replace
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Callable, Union

from scholarmatch.normalize.schema import Scholarship

STRATEGY_TEXT = "text"
STRATEGY_NUMBER = "number"
STRATEGY_SEQUENCE = "sequence"
STRATEGY_RECORD = "record"
STRATEGY_INCOMING = "incoming"

# Identity fields are never rewritten by a merge.
PRESERVED_FIELDS = frozenset({"id"})


def merge_text(existing: str, incoming: str) -> str:
    return incoming if len(incoming) > len(existing) else existing


def merge_number(existing: float, incoming: float) -> float:
    return max(existing, incoming)


def merge_sequence(existing: tuple[Any, ...], incoming: tuple[Any, ...]) -> tuple[Any, ...]:
    merged: list[Any] = []
    for item in (*existing, *incoming):
        if item not in merged:
            merged.append(item)
    return tuple(merged)


def merge_incoming(existing: Any, incoming: Any) -> Any:
    return incoming


def _strategy_for(annotation: Any) -> str:
    candidates = [annotation]
    if typing.get_origin(annotation) in (Union, types.UnionType):
        candidates = [item for item in typing.get_args(annotation) if item is not type(None)]
    if len(candidates) != 1:
        return STRATEGY_INCOMING

    target = candidates[0]
    if typing.get_origin(target) in (tuple, list):
        return STRATEGY_SEQUENCE
    if target is str:
        return STRATEGY_TEXT
    if target is int or target is float:
        return STRATEGY_NUMBER
    if isinstance(target, type) and is_dataclass(target):
        return STRATEGY_RECORD
    return STRATEGY_INCOMING


@lru_cache(maxsize=None)
def field_strategies(record_type: type) -> dict[str, str]:
    """Merge strategy per field, chosen from the field's declared type."""

    hints = typing.get_type_hints(record_type)
    return {
        item.name: _strategy_for(hints[item.name])
        for item in fields(record_type)
        if item.name not in PRESERVED_FIELDS
    }


def merge_records(existing: Any, incoming: Any) -> Any:
    if type(existing) is not type(incoming):
        raise TypeError(f"Cannot merge {type(incoming).__name__} into {type(existing).__name__}.")

    updates: dict[str, Any] = {}
    for name, strategy in field_strategies(type(existing)).items():
        incoming_value = getattr(incoming, name)
        existing_value = getattr(existing, name)
        if incoming_value is None:
            continue
        if existing_value is None:
            updates[name] = incoming_value
            continue
        updates[name] = MERGE_STRATEGIES[strategy](existing_value, incoming_value)
    return replace(existing, **updates)


MERGE_STRATEGIES: dict[str, Callable[[Any, Any], Any]] = {
    STRATEGY_TEXT: merge_text,
    STRATEGY_NUMBER: merge_number,
    STRATEGY_SEQUENCE: merge_sequence,
    STRATEGY_RECORD: merge_records,
    STRATEGY_INCOMING: merge_incoming,
}


def merge_duplicates(existing: Scholarship, incoming: Scholarship, *, now: datetime | None = None) -> Scholarship:
    """Fold an incoming duplicate into an existing record and stamp `last_verified`."""

    merged = merge_records(existing, incoming)
    return replace(merged, last_verified=now or datetime.now(tz=UTC))
