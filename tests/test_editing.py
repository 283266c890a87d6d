from datetime import date
from decimal import Decimal

import pytest

from event_budget.editing import (
    IDLE,
    Committing,
    EditLocus,
    Editing,
    Idle,
    begin_edit,
    cancel_edit,
    commit_edit,
    finish_commit,
    is_editing,
    toggle_reimbursement_status,
    update_buffer,
)
from event_budget.exceptions import InvalidAmount, InvalidTransition, ValidationError


def test_begin_edit_seeds_buffer_from_current_value():
    state = begin_edit(IDLE, "e1", "amount", Decimal("12.50"))
    assert state == Editing(EditLocus("e1", "amount"), "12.50")

    state = begin_edit(IDLE, "e1", "payment_method", None)
    assert state.buffer == ""

    state = begin_edit(IDLE, "e1", "entry_date", date(2024, 3, 1))
    assert state.buffer == "2024-03-01"


def test_begin_edit_abandons_previous_locus():
    first = update_buffer(begin_edit(IDLE, "e1", "item_name", "Chairs"), "Tables")
    second = begin_edit(first, "e2", "amount", "5")

    assert is_editing(second, "e2", "amount")
    assert not is_editing(second, "e1", "item_name")


def test_begin_edit_rejects_unknown_field():
    with pytest.raises(ValueError):
        begin_edit(IDLE, "e1", "category_id", "c1")


def test_begin_edit_refused_while_committing():
    committing, _ = commit_edit(begin_edit(IDLE, "e1", "item_name", "Chairs"))
    with pytest.raises(InvalidTransition):
        begin_edit(committing, "e2", "amount", "1")


def test_commit_amount_parses_decimal():
    state = update_buffer(begin_edit(IDLE, "e1", "amount", "10"), "1,250.75")
    committing, request = commit_edit(state)

    assert isinstance(committing, Committing)
    assert request.table == "budget_entries"
    assert request.record_id == "e1"
    assert request.changes == {"amount": Decimal("1250.75")}


def test_commit_invalid_amount_raises_and_leaves_state():
    state = update_buffer(begin_edit(IDLE, "e1", "amount", "10"), "abc")
    with pytest.raises(InvalidAmount):
        commit_edit(state)
    # frozen state is untouched and can be corrected
    assert state.buffer == "abc"
    _, request = commit_edit(update_buffer(state, "11"))
    assert request.changes == {"amount": Decimal("11")}


def test_commit_negative_amount_raises():
    state = update_buffer(begin_edit(IDLE, "e1", "amount", "5"), "-500")
    with pytest.raises(InvalidAmount):
        commit_edit(state)


def test_commit_entry_date_is_parsed_to_a_date():
    state = update_buffer(begin_edit(IDLE, "e1", "entry_date", date(2024, 3, 1)), "2024-03-03")
    _, request = commit_edit(state)
    assert request.changes == {"entry_date": date(2024, 3, 3)}


@pytest.mark.parametrize("text", ["March 3rd", "", "2024-13-01"])
def test_commit_invalid_entry_date_raises(text):
    state = update_buffer(begin_edit(IDLE, "e1", "entry_date", date(2024, 3, 1)), text)
    with pytest.raises(ValidationError, match="not a valid date"):
        commit_edit(state)


def test_commit_blank_item_name_raises():
    state = update_buffer(begin_edit(IDLE, "e1", "item_name", "Chairs"), "   ")
    with pytest.raises(ValidationError):
        commit_edit(state)


def test_commit_text_field_passes_buffer_through():
    state = update_buffer(begin_edit(IDLE, "e1", "item_name", "Chairs"), "Folding chairs")
    _, request = commit_edit(state)
    assert request.changes == {"item_name": "Folding chairs"}


def test_commit_requires_editing():
    with pytest.raises(InvalidTransition):
        commit_edit(IDLE)


def test_finish_commit_transitions():
    state = begin_edit(IDLE, "e1", "item_name", "Chairs")
    committing, _ = commit_edit(state)

    assert finish_commit(committing, True) is IDLE
    assert finish_commit(committing, False) == state
    with pytest.raises(InvalidTransition):
        finish_commit(state, True)


def test_cancel_edit_returns_idle():
    state = begin_edit(IDLE, "e1", "amount", "3")
    assert isinstance(cancel_edit(state), Idle)
    assert not is_editing(cancel_edit(state), "e1", "amount")


def test_update_buffer_requires_editing():
    with pytest.raises(InvalidTransition):
        update_buffer(IDLE, "x")


@pytest.mark.parametrize(
    "current, expected",
    [("pending", "completed"), ("completed", "pending"), ("", "completed"), ("weird", "completed")],
)
def test_toggle_reimbursement_status(current, expected):
    request = toggle_reimbursement_status("e1", current)
    assert request.record_id == "e1"
    assert request.changes == {"reimbursement_status": expected}
