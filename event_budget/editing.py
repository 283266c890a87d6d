"""Inline cell editing for the budget table as an explicit state machine.

States::

    Idle --begin_edit--> Editing(locus, buffer)
    Editing --begin_edit--> Editing(new locus)      # unsaved buffer is dropped
    Editing --commit_edit--> Committing(locus)      # + UpdateRequest
    Editing --commit_edit (bad input)--> raises ValidationError, stays Editing
    Committing --finish_commit(ok)--> Idle
    Committing --finish_commit(failed)--> Editing(locus, buffer)
    any --cancel_edit--> Idle

At most one locus is ever open.  No transition here performs I/O; the
caller dispatches the returned :class:`UpdateRequest` and reports back
through :func:`finish_commit`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

from .exceptions import InvalidAmount, InvalidTransition, ValidationError
from .formatting import parse_amount, parse_date

EDITABLE_FIELDS = ("entry_date", "item_name", "amount", "payment_method")

BUDGET_ENTRIES_TABLE = "budget_entries"


@dataclass(frozen=True)
class UpdateRequest:
    """Partial update of one record, handed to the persistence layer."""
    table: str
    record_id: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EditLocus:
    entry_id: str
    field: str


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Editing:
    locus: EditLocus
    buffer: str


@dataclass(frozen=True)
class Committing:
    locus: EditLocus
    buffer: str


EditState = Union[Idle, Editing, Committing]

IDLE = Idle()


def begin_edit(state: EditState, entry_id: str, field_name: str, current_value: Any) -> Editing:
    """Open ``field_name`` of ``entry_id`` for editing.

    Any other open edit is abandoned without a prompt.  Starting an edit
    while a commit is in flight is refused.
    """
    if isinstance(state, Committing):
        raise InvalidTransition("Cannot start an edit while a save is in progress")
    if field_name not in EDITABLE_FIELDS:
        raise ValueError(f"Field '{field_name}' is not editable")
    seed = "" if current_value is None else str(current_value)
    return Editing(locus=EditLocus(entry_id, field_name), buffer=seed)


def update_buffer(state: EditState, text: str) -> Editing:
    if not isinstance(state, Editing):
        raise InvalidTransition("No cell is being edited")
    return Editing(locus=state.locus, buffer=text)


def cancel_edit(state: EditState) -> Idle:
    return IDLE


def commit_edit(state: EditState) -> Tuple[Committing, UpdateRequest]:
    """Validate the buffer and produce the update for the open locus.

    ``amount`` must parse as a non-negative decimal (``InvalidAmount``
    otherwise) and ``entry_date`` as an ISO date (``ValidationError``).  A
    blank item name is refused.  On any of these the caller keeps its
    ``Editing`` state.  The remaining text fields pass through as typed.

    Returns:
        The ``Committing`` state and the request to dispatch
    """
    if not isinstance(state, Editing):
        raise InvalidTransition("No cell is being edited")

    locus = state.locus
    value: Any = state.buffer
    if locus.field == "amount":
        value = parse_amount(state.buffer)
        if value < 0:
            raise InvalidAmount(state.buffer)
    elif locus.field == "entry_date":
        try:
            value = parse_date(state.buffer)
        except ValueError:
            raise ValidationError(f"'{state.buffer}' is not a valid date") from None
    elif locus.field == "item_name" and not state.buffer.strip():
        raise ValidationError("Item name cannot be empty")

    request = UpdateRequest(
        table=BUDGET_ENTRIES_TABLE,
        record_id=locus.entry_id,
        changes={locus.field: value},
    )
    return Committing(locus=locus, buffer=state.buffer), request


def finish_commit(state: EditState, succeeded: bool) -> Union[Idle, Editing]:
    """Close out a commit once the store has answered."""
    if not isinstance(state, Committing):
        raise InvalidTransition("No save is in progress")
    if succeeded:
        return IDLE
    return Editing(locus=state.locus, buffer=state.buffer)


def is_editing(state: EditState, entry_id: str, field_name: str) -> bool:
    return isinstance(state, Editing) and state.locus == EditLocus(entry_id, field_name)


def toggle_reimbursement_status(entry_id: str, current_status: str) -> UpdateRequest:
    """Flip pending <-> completed.  Anything unexpected is treated as pending."""
    new_status = "pending" if current_status == "completed" else "completed"
    return UpdateRequest(
        table=BUDGET_ENTRIES_TABLE,
        record_id=entry_id,
        changes={"reimbursement_status": new_status},
    )
