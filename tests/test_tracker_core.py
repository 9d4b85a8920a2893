import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from examtrack.tracker_core import (  # noqa: E402
    SLOT_FUTURE,
    SLOT_NEUTRAL,
    SLOT_NEXT,
    SLOT_PAST,
    PointerStore,
    ScheduleSession,
    SubjectRow,
    build_subject_rows,
    classify_row,
    classify_slot,
    compute_row_state,
    parse_pointer,
)


def make_table() -> list[list[str]]:
    return [
        ["Subject", "CurrentIndex", "Slot1", "Slot2", "Slot3", "Slot4"],
        ["Math", "2", "101", "102", "101", "104"],
        ["English", "1", "101", "103", "101", "102"],
    ]


def math_row() -> SubjectRow:
    return SubjectRow(subject="Math", raw_pointer="2", slots=("101", "102", "101", "104"))


class TestParsePointer(unittest.TestCase):
    def test_parses_leading_integer(self):
        self.assertEqual(parse_pointer("2"), 2)
        self.assertEqual(parse_pointer(" 3 "), 3)
        self.assertEqual(parse_pointer("2.7"), 2)
        self.assertEqual(parse_pointer("4abc"), 4)

    def test_non_numeric_or_missing_is_zero(self):
        self.assertEqual(parse_pointer(""), 0)
        self.assertEqual(parse_pointer("abc"), 0)
        self.assertEqual(parse_pointer(None), 0)

    def test_fallback_pointer_is_clamped_to_slot_range(self):
        self.assertEqual(SubjectRow("A", "9", ("1", "2")).fallback_pointer, 2)
        self.assertEqual(SubjectRow("A", "-3", ("1", "2")).fallback_pointer, 0)


class TestBuildSubjectRows(unittest.TestCase):
    def test_header_is_dropped_and_fields_split(self):
        rows = build_subject_rows(make_table())
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0].subject, "Math")
        self.assertEqual(rows[0].slots, ("101", "102", "101", "104"))
        self.assertEqual(rows[0].fallback_pointer, 2)

    def test_short_rows_have_fewer_slots(self):
        rows = build_subject_rows([["h"], ["Bio"], [], ["Chem", "x", "7"]])
        self.assertEqual(rows[0], SubjectRow("Bio", "", ()))
        self.assertEqual(rows[1], SubjectRow("", "", ()))
        self.assertEqual(rows[2].slot_count, 1)
        self.assertEqual(rows[2].fallback_pointer, 0)

    def test_empty_table_has_no_rows(self):
        self.assertEqual(build_subject_rows([]), [])


class TestRowState(unittest.TestCase):
    def test_next_is_first_match_at_or_after_pointer(self):
        state = compute_row_state(math_row(), "101")
        self.assertEqual(state.effective_pointer, 2)
        self.assertEqual(state.matching_ordinals, (1, 3))
        self.assertEqual(state.next_ordinal, 3)

    def test_pointer_zero_selects_lowest_match(self):
        state = compute_row_state(math_row(), "101", override=0)
        self.assertEqual(state.next_ordinal, 1)

    def test_match_on_pointer_counts_as_next(self):
        state = compute_row_state(math_row(), "101", override=3)
        self.assertEqual(state.next_ordinal, 3)

    def test_no_match_after_pointer(self):
        state = compute_row_state(math_row(), "101", override=4)
        self.assertEqual(state.matching_ordinals, (1, 3))
        self.assertIsNone(state.next_ordinal)

    def test_empty_query_has_no_matches(self):
        state = compute_row_state(math_row(), "")
        self.assertEqual(state.matching_ordinals, ())
        self.assertIsNone(state.next_ordinal)

    def test_override_is_clamped(self):
        self.assertEqual(compute_row_state(math_row(), "", override=99).effective_pointer, 4)
        self.assertEqual(compute_row_state(math_row(), "", override=-5).effective_pointer, 0)


class TestClassifier(unittest.TestCase):
    def classes(self, query: str, pointer: int) -> list[str]:
        row = math_row()
        state = compute_row_state(row, query, override=pointer)
        return [item.slot_class for item in classify_row(row, state, query)]

    def test_pointer_two(self):
        self.assertEqual(self.classes("101", 2), [SLOT_PAST, SLOT_NEUTRAL, SLOT_NEXT, SLOT_NEUTRAL])

    def test_pointer_zero_marks_later_matches_future(self):
        self.assertEqual(self.classes("101", 0), [SLOT_NEXT, SLOT_NEUTRAL, SLOT_FUTURE, SLOT_NEUTRAL])

    def test_empty_query_is_all_neutral(self):
        for pointer in range(0, 5):
            self.assertEqual(self.classes("", pointer), [SLOT_NEUTRAL] * 4)

    def test_pointer_at_end_never_yields_future(self):
        classes = self.classes("101", 4)
        self.assertNotIn(SLOT_FUTURE, classes)
        self.assertEqual(classes, [SLOT_PAST, SLOT_NEUTRAL, SLOT_PAST, SLOT_NEUTRAL])

    def test_at_most_one_next_per_row(self):
        row = SubjectRow("Art", "0", ("7", "7", "7"))
        for pointer in range(0, 4):
            state = compute_row_state(row, "7", override=pointer)
            classes = [item.slot_class for item in classify_row(row, state, "7")]
            self.assertLessEqual(classes.count(SLOT_NEXT), 1)

    def test_current_column_is_independent_of_query(self):
        row = math_row()
        state = compute_row_state(row, "", override=2)
        flags = [item.is_current_column for item in classify_row(row, state, "")]
        self.assertEqual(flags, [False, True, False, False])

    def test_pointer_zero_has_no_current_column(self):
        row = math_row()
        state = compute_row_state(row, "101", override=0)
        self.assertFalse(any(item.is_current_column for item in classify_row(row, state, "101")))

    def test_classification_is_idempotent(self):
        state = compute_row_state(math_row(), "101", override=2)
        first = classify_slot("101", 3, state, "101")
        second = classify_slot("101", 3, state, "101")
        self.assertEqual(first, second)


class TestPointerStore(unittest.TestCase):
    def test_get_returns_fallback_without_override(self):
        store = PointerStore()
        self.assertEqual(store.get(0, 5), 5)

    def test_adjust_clamps_at_both_ends(self):
        store = PointerStore({0: 1})
        for _ in range(5):
            value = store.adjust(0, -1, 4)
        self.assertEqual(value, 0)
        for _ in range(10):
            value = store.adjust(0, +1, 4)
        self.assertEqual(value, 4)
        self.assertEqual(store.adjust(0, 100, 4), 4)
        self.assertEqual(store.adjust(0, -100, 4), 0)

    def test_reset_all_replaces_manual_overrides(self):
        store = PointerStore({0: 2})
        store.adjust(0, -1, 4)
        self.assertEqual(store.get(0, 0), 1)
        store.reset_all({0: 3})
        self.assertEqual(store.get(0, 0), 3)

    def test_reset_all_drops_rows_not_in_new_set(self):
        store = PointerStore({0: 1, 5: 2})
        store.reset_all({0: 0})
        self.assertEqual(store.snapshot(), {0: 0})


class TestScheduleSession(unittest.TestCase):
    def test_refresh_seeds_pointers_from_table(self):
        session = ScheduleSession(make_table())
        self.assertEqual(session.pointers.snapshot(), {0: 2, 1: 1})
        self.assertEqual(session.effective_pointer(0), 2)

    def test_nudge_stays_within_slot_range(self):
        session = ScheduleSession(make_table())
        for _ in range(10):
            session.nudge(0, 1)
            self.assertLessEqual(session.effective_pointer(0), 4)
        for _ in range(10):
            session.nudge(0, -1)
            self.assertGreaterEqual(session.effective_pointer(0), 0)
        self.assertEqual(session.effective_pointer(0), 0)

    def test_refresh_discards_overrides(self):
        session = ScheduleSession(make_table())
        session.nudge(0, -1)
        self.assertEqual(session.effective_pointer(0), 1)
        table = make_table()
        table[1][1] = "3"
        session.apply_refresh(table)
        self.assertEqual(session.effective_pointer(0), 3)

    def test_nudge_unknown_row_raises(self):
        session = ScheduleSession(make_table())
        with self.assertRaises(IndexError):
            session.nudge(7, 1)

    def test_row_views_and_payload(self):
        session = ScheduleSession(make_table(), query="101")
        views = session.row_views()
        self.assertEqual(views[0].state.next_ordinal, 3)
        self.assertEqual(views[1].state.next_ordinal, 1)
        self.assertEqual(session.max_slot_count(), 4)

        payload = session.to_payload()
        self.assertEqual(payload["query"], "101")
        self.assertEqual(payload["rows"][0]["matchingOrdinals"], [1, 3])
        self.assertEqual(payload["rows"][0]["slots"][1]["isCurrentColumn"], True)
        self.assertEqual(payload["rows"][0]["slots"][2]["class"], SLOT_NEXT)

    def test_clear_query_neutralises_all_slots(self):
        session = ScheduleSession(make_table(), query="101")
        session.clear_query()
        for view in session.row_views():
            self.assertTrue(all(item.slot_class == SLOT_NEUTRAL for item in view.highlights))


if __name__ == "__main__":
    unittest.main()
