"""
Tests for leave calendar slot assignment.
"""

from datetime import date

from timeaudit.services.overlap_layout import (
    assign_slots,
    day_rows,
    layout_for_user,
    max_simultaneous,
    month_cells,
    month_layout,
    requests_on_day,
    slot_count,
)

from conftest import make_request


class TestAssignSlots:

    def test_disjoint_requests_share_slot_zero(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-03"),
            make_request("b", "2024-05-06", "2024-05-08"),
        ]
        assert assign_slots(requests) == {"a": 0, "b": 0}

    def test_overlapping_requests_get_distinct_slots(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-03"),
            make_request("b", "2024-05-03", "2024-05-04"),
        ]
        slots = assign_slots(requests)
        assert slots["a"] != slots["b"]

    def test_longer_request_first_on_same_start(self):
        requests = [
            make_request("short", "2024-05-01", "2024-05-01"),
            make_request("long", "2024-05-01", "2024-05-10"),
        ]
        assert assign_slots(requests) == {"long": 0, "short": 1}

    def test_slot_reused_once_free(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-03"),
            make_request("b", "2024-05-02", "2024-05-05"),
            make_request("c", "2024-05-05", "2024-05-06"),
        ]
        assert assign_slots(requests) == {"a": 0, "b": 1, "c": 0}

    def test_uses_as_many_slots_as_busiest_day(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-10"),
            make_request("b", "2024-05-02", "2024-05-03"),
            make_request("c", "2024-05-03", "2024-05-04"),
            make_request("d", "2024-05-05", "2024-05-06"),
            make_request("e", "2024-05-06", "2024-05-08"),
        ]
        slots = assign_slots(requests)
        assert slot_count(slots) == max_simultaneous(requests) == 3

    def test_order_of_input_does_not_matter(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-03"),
            make_request("b", "2024-05-02", "2024-05-05"),
            make_request("c", "2024-05-05", "2024-05-06"),
        ]
        assert assign_slots(requests) == assign_slots(list(reversed(requests)))

    def test_only_the_users_requests(self):
        requests = [
            make_request("mine", "2024-05-01", "2024-05-03"),
            make_request("theirs", "2024-05-01", "2024-05-03", user_id="u2"),
        ]
        assert layout_for_user(requests, "u1") == {"mine": 0}

    def test_requests_on_day(self):
        requests = [
            make_request("a", "2024-05-01", "2024-05-03"),
            make_request("b", "2024-05-03", "2024-05-04"),
            make_request("c", "2024-05-03", "2024-05-03", user_id="u2"),
        ]
        assert [r.id for r in requests_on_day(requests, "u1", date(2024, 5, 3))] == ["a", "b"]
        assert requests_on_day(requests, "u1", date(2024, 5, 5)) == []


class TestDayRows:

    def test_placeholder_keeps_bar_on_its_row(self):
        a = make_request("a", "2024-05-01", "2024-05-03")
        b = make_request("b", "2024-05-02", "2024-05-05")
        slots = assign_slots([a, b])

        rows = day_rows([a, b], slots, date(2024, 5, 4))
        assert rows == [None, b]

    def test_empty_day(self):
        a = make_request("a", "2024-05-01", "2024-05-03")
        assert day_rows([a], {"a": 0}, date(2024, 5, 20)) == []


class TestMonthGrid:

    def test_month_starting_on_sunday_has_no_padding(self):
        cells = month_cells(2024, 9)
        assert cells[0] == date(2024, 9, 1)
        assert len(cells) == 30

    def test_leading_cells_pad_to_first_weekday(self):
        cells = month_cells(2024, 2)  # 1 Feb 2024 is a Thursday
        assert cells[:4] == [None, None, None, None]
        assert cells[4] == date(2024, 2, 1)
        assert cells[-1] == date(2024, 2, 29)

    def test_layout_keeps_slot_across_month_boundary(self):
        requests = [
            make_request("long", "2024-04-28", "2024-05-02"),
            make_request("late", "2024-04-30", "2024-05-01"),
        ]
        cells = [c for c in month_layout(requests, "u1", 2024, 5) if c is not None]
        first = cells[0]
        assert first.day == date(2024, 5, 1)
        assert [r.id for r in first.rows] == ["long", "late"]
        assert [r.id if r else None for r in cells[1].rows] == ["long"]
        assert cells[2].rows == ()
