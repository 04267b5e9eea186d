"""Tests for graph validation and repair."""

import asyncio

from conftest import FakePinStore, make_pin
from services.graph_validation import plan_graph_repair, repair_graph, validate_graph


def test_symmetric_connected_graph_is_valid():
    pins = [make_pin(1, [2]), make_pin(2, [1, 3]), make_pin(3, [2])]

    result = validate_graph(pins)

    assert result.is_valid
    assert result.components == 1
    assert result.dead_ends == ["1", "3"]
    assert result.isolated_nodes == []


def test_reports_missing_reverse_and_dangling_edges():
    pins = [make_pin(1, [2, 42]), make_pin(2, [])]

    result = validate_graph(pins)

    assert not result.is_valid
    assert result.missing_reverse_edges == [{"from": "1", "to": "2"}]
    assert result.dangling_references == [{"from": "1", "to": "42"}]
    assert result.isolated_nodes == ["2"]


def test_reports_disconnected_components():
    pins = [make_pin(1, [2]), make_pin(2, [1]), make_pin(3, [4]), make_pin(4, [3])]

    result = validate_graph(pins)

    assert result.components == 2
    assert not result.is_valid
    assert any("2 disconnected components" in w for w in result.warnings)


def test_empty_graph():
    result = validate_graph([])
    assert result.is_valid
    assert result.components == 0


def test_plan_repair():
    pins = [make_pin(1, [2, 42, 1]), make_pin(2, [])]

    additions, removals = plan_graph_repair(pins)

    assert additions == [{"pin": "2", "neighbor": "1"}]
    assert {"pin": "1", "neighbor": "42"} in removals
    assert {"pin": "1", "neighbor": "1"} in removals


def test_repair_makes_graph_symmetric():
    store = FakePinStore([
        make_pin(1, [2, 3]),
        make_pin(2, []),
        make_pin(3, [1, 77]),
        make_pin(4, [1], is_visible=False),
    ])
    campus_id = store.node(1).campus_id

    applied = asyncio.run(repair_graph(store, campus_id))

    assert store.neighbors_of(2) == ["1"]
    assert store.neighbors_of(1) == ["2", "3", "4"]
    assert store.neighbors_of(3) == ["1"]
    assert applied["failed"] == []
    assert len(applied["added"]) == 2
    assert applied["removed"] == [{"pin": "3", "neighbor": "77"}]

    pins = asyncio.run(store.list_pins(campus_id=campus_id, include_invisible=True))
    result = validate_graph(pins)
    assert result.missing_reverse_edges == []
    assert result.dangling_references == []
