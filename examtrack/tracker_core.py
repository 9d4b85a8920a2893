from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

SLOT_NEUTRAL = "neutral"
SLOT_PAST = "past"
SLOT_NEXT = "next"
SLOT_FUTURE = "future"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_pointer(value: Any) -> int:
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    return int(match.group(1))


def clamp_pointer(value: int, slot_count: int) -> int:
    return max(0, min(slot_count, value))


@dataclass(frozen=True)
class SubjectRow:
    subject: str
    raw_pointer: str
    slots: tuple[str, ...]

    @property
    def slot_count(self) -> int:
        return len(self.slots)

    @property
    def fallback_pointer(self) -> int:
        return clamp_pointer(parse_pointer(self.raw_pointer), self.slot_count)


@dataclass(frozen=True)
class RowState:
    effective_pointer: int
    matching_ordinals: tuple[int, ...]
    next_ordinal: int | None


@dataclass(frozen=True)
class SlotHighlight:
    slot_class: str
    is_current_column: bool


@dataclass(frozen=True)
class RowView:
    index: int
    row: SubjectRow
    state: RowState
    highlights: tuple[SlotHighlight, ...]


def build_subject_rows(table: list[list[str]]) -> list[SubjectRow]:
    """Turn parsed table rows into subject rows, dropping the header row."""
    rows: list[SubjectRow] = []
    for fields in table[1:]:
        subject = fields[0] if len(fields) > 0 else ""
        raw_pointer = fields[1] if len(fields) > 1 else ""
        rows.append(SubjectRow(subject=subject, raw_pointer=raw_pointer, slots=tuple(fields[2:])))
    return rows


def compute_row_state(row: SubjectRow, query: str, override: int | None = None) -> RowState:
    """Derive the effective pointer, matching slots and the next matching slot.

    The next ordinal is the first match at or after the effective pointer, so a
    match sitting exactly on the pointer still counts as next.
    """
    if override is None:
        pointer = row.fallback_pointer
    else:
        pointer = clamp_pointer(override, row.slot_count)

    matches: tuple[int, ...] = ()
    if query:
        matches = tuple(ordinal for ordinal, occupant in enumerate(row.slots, start=1) if occupant == query)

    next_ordinal: int | None = None
    for ordinal in matches:
        if ordinal >= pointer:
            next_ordinal = ordinal
            break
    return RowState(effective_pointer=pointer, matching_ordinals=matches, next_ordinal=next_ordinal)


def classify_slot(occupant: str, ordinal: int, state: RowState, query: str) -> SlotHighlight:
    pointer = state.effective_pointer
    is_current = pointer >= 1 and ordinal == pointer
    if not query or occupant != query:
        slot_class = SLOT_NEUTRAL
    elif ordinal == state.next_ordinal:
        slot_class = SLOT_NEXT
    elif ordinal <= pointer:
        slot_class = SLOT_PAST
    else:
        slot_class = SLOT_FUTURE
    return SlotHighlight(slot_class=slot_class, is_current_column=is_current)


def classify_row(row: SubjectRow, state: RowState, query: str) -> tuple[SlotHighlight, ...]:
    return tuple(
        classify_slot(occupant, ordinal, state, query)
        for ordinal, occupant in enumerate(row.slots, start=1)
    )


class PointerStore:
    """Session-only pointer overrides keyed by row index (header excluded)."""

    def __init__(self, overrides: dict[int, int] | None = None) -> None:
        self._overrides: dict[int, int] = dict(overrides or {})

    def get(self, row_index: int, fallback: int) -> int:
        return self._overrides.get(row_index, fallback)

    def adjust(self, row_index: int, delta: int, slot_count: int) -> int:
        current = self._overrides.get(row_index, 0)
        value = clamp_pointer(current + delta, slot_count)
        self._overrides[row_index] = value
        return value

    def reset_all(self, new_fallbacks: dict[int, int]) -> None:
        self._overrides = {int(row_index): int(value) for row_index, value in new_fallbacks.items()}

    def snapshot(self) -> dict[int, int]:
        return dict(self._overrides)


class ScheduleSession:
    def __init__(self, table: list[list[str]] | None = None, query: str = "") -> None:
        self.rows: list[SubjectRow] = []
        self.pointers = PointerStore()
        self.query = query
        if table is not None:
            self.apply_refresh(table)

    def apply_refresh(self, table: list[list[str]]) -> None:
        rows = build_subject_rows(table)
        fallbacks = {row_index: row.fallback_pointer for row_index, row in enumerate(rows)}
        self.rows = rows
        self.pointers.reset_all(fallbacks)

    def set_query(self, value: str) -> None:
        self.query = value

    def clear_query(self) -> None:
        self.query = ""

    def effective_pointer(self, row_index: int) -> int:
        return self.row_state(row_index).effective_pointer

    def row_state(self, row_index: int) -> RowState:
        row = self.rows[row_index]
        override = self.pointers.get(row_index, row.fallback_pointer)
        return compute_row_state(row, self.query, override)

    def nudge(self, row_index: int, delta: int) -> int:
        # apply_refresh seeds every row, so adjust always starts from the current value.
        row = self.rows[row_index]
        return self.pointers.adjust(row_index, delta, row.slot_count)

    def max_slot_count(self) -> int:
        return max((row.slot_count for row in self.rows), default=0)

    def row_views(self) -> list[RowView]:
        views: list[RowView] = []
        for row_index, row in enumerate(self.rows):
            state = self.row_state(row_index)
            views.append(
                RowView(
                    index=row_index,
                    row=row,
                    state=state,
                    highlights=classify_row(row, state, self.query),
                )
            )
        return views

    def to_payload(self) -> dict[str, Any]:
        rows: list[dict[str, Any]] = []
        for view in self.row_views():
            rows.append(
                {
                    "index": view.index,
                    "subject": view.row.subject,
                    "effectivePointer": view.state.effective_pointer,
                    "matchingOrdinals": list(view.state.matching_ordinals),
                    "nextOrdinal": view.state.next_ordinal,
                    "slots": [
                        {
                            "ordinal": ordinal,
                            "occupant": occupant,
                            "class": highlight.slot_class,
                            "isCurrentColumn": highlight.is_current_column,
                        }
                        for ordinal, (occupant, highlight) in enumerate(
                            zip(view.row.slots, view.highlights), start=1
                        )
                    ],
                }
            )
        return {"query": self.query, "rows": rows}
