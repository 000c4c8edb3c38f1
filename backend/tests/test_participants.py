"""Tests for the participant add/remove delta."""

import pytest

from services.calendar.core.utils import apply_participant_delta


def test_add_and_remove():
    result = apply_participant_delta({"u1", "u2"}, add=["u3"], remove=["u1"])
    assert result == {"u2", "u3"}


def test_id_in_both_lists_ends_up_removed():
    """Removals are applied after additions."""
    result = apply_participant_delta({"u1"}, add=["u2"], remove=["u2"])
    assert result == {"u1"}


def test_adding_existing_participant_is_idempotent():
    assert apply_participant_delta(["u1", "u1"], add=["u1"]) == {"u1"}


def test_removing_absent_participant_is_ignored():
    assert apply_participant_delta({"u1"}, remove=["ghost"]) == {"u1"}


def test_does_not_mutate_input():
    current = {"u1", "u2"}
    apply_participant_delta(current, add=["u3"], remove=["u1"])
    assert current == {"u1", "u2"}


@pytest.mark.parametrize(
    "current,add,remove",
    [
        (set(), [], []),
        ({"a"}, ["b", "c"], ["a"]),
        ({"a", "b"}, ["b"], ["b", "c"]),
        ({"x"}, ["y", "z"], ["z", "x"]),
    ],
)
def test_matches_set_algebra(current, add, remove):
    assert apply_participant_delta(current, add, remove) == (current | set(add)) - set(remove)
