import math

import pytest

from Client.boq_submission import build_boq_payload
from Client.selection_builder import CascadingSelection, SelectionBuilder
from utils.selection import SelectionError, coerce_count


@pytest.mark.parametrize("value, expected", [(3, 3), ("4", 4), (" 7 ", 7), (2.0, 2), ("5.0", 5)])
def test_coerce_count_accepts_positive_integers(value, expected):
    assert coerce_count(value) == expected


@pytest.mark.parametrize("value", ["", "abc", None, 0, -1, 1.5, "2.5", math.nan, "nan", True, [1]])
def test_coerce_count_rejects_everything_else(value):
    with pytest.raises(SelectionError):
        coerce_count(value)


def test_builder_starts_with_one_blank_row_per_category():
    builder = SelectionBuilder()
    assert builder.rows("cameras") == [{"camera": "", "count": 1}]
    assert builder.to_selections() == {}


def test_rows_are_added_updated_and_removed():
    builder = SelectionBuilder()
    builder.update_row("cameras", 0, "camera", "cam-1")
    builder.update_row("cameras", 0, "count", "3")
    index = builder.add_row("cameras")
    builder.update_row("cameras", index, "camera", "cam-2")
    builder.remove_row("cameras", 0)

    assert builder.to_selections() == {
        "camera_selection": [{"camera": {"connect": ["cam-2"]}, "count": 1}]
    }


def test_remove_missing_row():
    with pytest.raises(IndexError):
        SelectionBuilder().remove_row("cables", 3)


def test_invalid_count_fails_serialization():
    builder = SelectionBuilder()
    builder.update_row("ups", 0, "ups", "ups-1")
    builder.update_row("ups", 0, "count", "two")
    with pytest.raises(SelectionError):
        builder.to_selections()


def test_category_lookup_by_selection_key():
    builder = SelectionBuilder()
    builder.update_row("wpf_selection", 0, "weatherproof_box", "box-1")
    assert builder.to_selections()["wpf_selection"][0]["weatherproof_box"] == {"connect": ["box-1"]}


def test_selecting_a_parent_clears_descendants():
    cascade = CascadingSelection()
    cascade.select("division", "div-1")
    cascade.select("depot", "dep-1")
    cascade.options["bus_station"] = ["st-1"]
    cascade.select("bus_station", "st-1")

    cascade.select("division", "div-2")

    assert cascade.selected == {"division": "div-2", "depot": None, "bus_station": None, "bus_stand": None}
    assert cascade.options["bus_station"] == []


def test_child_requires_parent():
    with pytest.raises(SelectionError):
        CascadingSelection().select("depot", "dep-1")


def test_stale_option_response_is_discarded():
    cascade = CascadingSelection()
    cascade.select("division", "div-1")
    first = cascade.begin_fetch("depot")
    cascade.select("division", "div-2")
    second = cascade.begin_fetch("depot")

    assert cascade.apply_options("depot", second, ["new"]) is True
    assert cascade.apply_options("depot", first, ["old"]) is False
    assert cascade.options["depot"] == ["new"]


def test_in_flight_fetch_is_stale_after_parent_change():
    cascade = CascadingSelection()
    cascade.select("division", "div-1")
    token = cascade.begin_fetch("depot")
    cascade.select("division", "div-2")

    assert cascade.apply_options("depot", token, ["old"]) is False


def test_payload_keeps_only_chosen_rows():
    cascade = CascadingSelection()
    cascade.select("division", "div-1")
    builder = SelectionBuilder()
    builder.update_row("cameras", 0, "camera", "cam-1")

    payload = build_boq_payload(cascade, builder, remarks="urgent")

    assert payload["data"]["division"] == {"connect": ["div-1"]}
    assert payload["data"]["depot"] is None
    assert payload["data"]["camera_selection"] == [{"camera": {"connect": ["cam-1"]}, "count": 1}]
    assert "cable_selection" not in payload["data"]
    assert payload["data"]["remarks"] == "urgent"
