from __future__ import annotations

import pytest

from lighthouse.core.exceptions import MalformedGraphError
from lighthouse.core.models import Step
from lighthouse.graph.builder import (
    ChainStatus,
    build_step_chain,
    require_step_chain,
    step_sort_key,
)


def _ids(chain):
    return [s.id for s in chain]


def test_empty_input_gives_empty_conclusive_chain():
    chain = build_step_chain([])
    assert chain.status is ChainStatus.EMPTY
    assert len(chain) == 0
    assert chain.is_conclusive
    assert chain.entry is None


def test_unordered_steps_are_chained_from_entry():
    steps = [
        Step(id="3", parent_id="2"),
        Step(id="1"),
        Step(id="2", parent_id="1"),
    ]
    chain = build_step_chain(steps)
    assert chain.status is ChainStatus.OK
    assert _ids(chain) == ["1", "2", "3"]
    assert chain.entry.id == "1"
    assert not chain.has_branches
    assert chain.unreachable_step_ids == ()


def test_numeric_ids_are_coerced_to_strings():
    chain = build_step_chain([Step(id=7), Step(id=8, parent_id=7)])
    assert _ids(chain) == ["7", "8"]


def test_single_step_workflow():
    chain = build_step_chain([Step(id="only")])
    assert _ids(chain) == ["only"]
    assert chain.is_conclusive


def test_no_entry_step_is_inconclusive():
    steps = [Step(id="1", parent_id="2"), Step(id="2", parent_id="1")]
    chain = build_step_chain(steps)
    assert chain.status is ChainStatus.NO_ENTRY
    assert len(chain) == 0
    assert not chain.is_conclusive
    assert chain.unreachable_step_ids == ("1", "2")


def test_multiple_entry_steps_are_inconclusive():
    chain = build_step_chain([Step(id="1"), Step(id="2")])
    assert chain.status is ChainStatus.MULTIPLE_ENTRIES
    assert len(chain) == 0
    assert not chain.is_conclusive


def test_branching_follows_first_child_in_canonical_order():
    steps = [
        Step(id="1"),
        Step(id="10", parent_id="1"),
        Step(id="9", parent_id="1"),
        Step(id="11", parent_id="9"),
    ]
    chain = build_step_chain(steps)
    # "9" sorts before "10" numerically.
    assert _ids(chain) == ["1", "9", "11"]
    assert chain.has_branches
    assert chain.unreachable_step_ids == ("10",)


def test_cycle_below_entry_terminates():
    steps = [
        Step(id="1"),
        Step(id="2", parent_id="1"),
        Step(id="3", parent_id="2"),
    ]
    # Self-parented step cannot be reached but must not loop.
    steps.append(Step(id="4", parent_id="4"))
    chain = build_step_chain(steps)
    assert _ids(chain) == ["1", "2", "3"]
    assert chain.unreachable_step_ids == ("4",)


def test_duplicate_ids_keep_first_occurrence():
    steps = [
        Step(id="1", action="first"),
        Step(id="1", action="second"),
        Step(id="2", parent_id="1"),
    ]
    chain = build_step_chain(steps)
    assert chain.entry.action == "first"
    assert _ids(chain) == ["1", "2"]


def test_step_sort_key_orders_numeric_before_text():
    ids = ["b", "10", "a", "2"]
    assert sorted(ids, key=step_sort_key) == ["2", "10", "a", "b"]


def test_require_step_chain_raises_on_ambiguous_entry():
    with pytest.raises(MalformedGraphError) as exc_info:
        require_step_chain([Step(id="1"), Step(id="2")])
    assert exc_info.value.context["status"] == "multiple_entries"


def test_builder_does_not_mutate_input():
    steps = [Step(id="2", parent_id="1"), Step(id="1")]
    build_step_chain(steps)
    assert [s.id for s in steps] == ["2", "1"]
