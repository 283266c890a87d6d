"""Mutation and loading workflows behind the dashboard pages.

This is the only layer that talks to both the data store and receipt
storage.  Every collaborator failure is caught here, logged, and turned
into a :class:`Notification` for the page to show; nothing propagates
past an :class:`Outcome`.  After every successful mutation the
``on_refresh`` callback supplied by the page is invoked so it can re-fetch
its entries and categories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence

from . import config
from . import db as default_store
from .editing import (
    Committing,
    EditState,
    Editing,
    commit_edit,
    finish_commit,
    toggle_reimbursement_status,
)
from .exceptions import InvalidAmount, PersistenceError, UploadError, ValidationError
from .formatting import parse_amount
from .models import (
    CATEGORY_TYPES,
    EVENT_STATUSES,
    REIMBURSEMENT_STATUSES,
    BudgetEntry,
    Category,
    Event,
)
from .receipts import (
    ReceiptFile,
    ReceiptStorage,
    entry_receipt_path,
    existing_receipt_path,
    validate_receipt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"  # or "destructive"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


def _success(description: str, title: str = "Success") -> Notification:
    return Notification(title=title, description=description)


def _failure(description: str, title: str = "Error") -> Notification:
    return Notification(title=title, description=description, variant="destructive")


@dataclass
class Outcome:
    ok: bool
    notifications: List[Notification] = field(default_factory=list)
    value: Any = None


@dataclass
class EventSnapshot:
    event: Optional[Event]
    categories: List[Category]
    entries: List[BudgetEntry]


@dataclass
class EventDraft:
    name: str = ""
    allocated_budget: str = ""
    venue: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = "Active"
    income_categories: List[str] = field(default_factory=list)
    expense_categories: List[str] = field(default_factory=list)


@dataclass
class EntryDraft:
    category_id: str = ""
    item_name: str = ""
    amount: str = ""
    payment_method: str = ""
    to_be_reimbursed: bool = False
    reimbursement_source: str = ""
    reimbursement_status: str = "pending"
    entry_date: date = field(default_factory=date.today)


def event_details_complete(draft: EventDraft) -> bool:
    """First wizard step: every basic field is filled in."""
    return all([
        draft.name.strip(),
        str(draft.allocated_budget).strip(),
        draft.venue.strip(),
        draft.start_date,
        draft.end_date,
    ])


def validate_event_draft(draft: EventDraft) -> None:
    """Check an event draft before anything is written.

    Raises:
        ValidationError: If basic details are missing or either category
            list is empty, or the status is unknown
    """
    if not event_details_complete(draft):
        raise ValidationError("Please fill in the event name, budget, venue and dates")
    if draft.status not in EVENT_STATUSES:
        raise ValidationError(f"Unknown status '{draft.status}'")
    if not [name for name in draft.income_categories if name.strip()]:
        raise ValidationError("Add at least one income category")
    if not [name for name in draft.expense_categories if name.strip()]:
        raise ValidationError("Add at least one expense category")


def validate_entry_draft(draft: EntryDraft) -> Decimal:
    """Check required entry fields and return the parsed amount.

    Raises:
        ValidationError: If category, item name or amount is missing
        InvalidAmount: If the amount is not a number
    """
    if not draft.category_id or not draft.item_name.strip() or not str(draft.amount).strip():
        raise ValidationError("Please fill in all required fields")
    amount = parse_amount(draft.amount)
    if amount < 0:
        raise InvalidAmount(str(draft.amount))
    if draft.reimbursement_status not in REIMBURSEMENT_STATUSES:
        raise ValidationError(f"Unknown reimbursement status '{draft.reimbursement_status}'")
    return amount


class EventBudgetService:
    """Runs dashboard workflows against a store module and receipt storage."""

    def __init__(
        self,
        store=default_store,
        storage: Optional[ReceiptStorage] = None,
        on_refresh: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.storage = storage or ReceiptStorage()
        self.on_refresh = on_refresh

    def _refresh(self) -> None:
        if self.on_refresh is not None:
            self.on_refresh()

    # -- loading -----------------------------------------------------------

    def load_events(self, sort_by: str = "date") -> Outcome:
        try:
            events = self.store.fetch_events(sort_by)
        except PersistenceError as e:
            logger.error("Error fetching events: %s", e)
            return Outcome(False, [_failure("Failed to load events")], [])
        return Outcome(True, [], events)

    def load_event_snapshot(self, event_id: str) -> Outcome:
        """Read an event with its categories and entries.

        Falls back to an empty snapshot when the store is unavailable.
        """
        try:
            event = self.store.fetch_event(event_id)
            categories = self.store.fetch_categories(event_id)
            entries = self.store.fetch_entries(event_id)
        except PersistenceError as e:
            logger.error("Error fetching event data for %s: %s", event_id, e)
            return Outcome(
                False,
                [_failure("Failed to load event data")],
                EventSnapshot(event=None, categories=[], entries=[]),
            )
        return Outcome(True, [], EventSnapshot(event, categories, entries))

    # -- events ------------------------------------------------------------

    def create_event(self, draft: EventDraft) -> Outcome:
        """Create an event and then its categories.

        The two writes are not atomic.  If the category insert fails the
        event is left behind without categories and the failure is
        reported.
        """
        try:
            validate_event_draft(draft)
        except ValidationError as e:
            return Outcome(False, [_failure(str(e), title="Missing Information")])

        try:
            budget = parse_amount(draft.allocated_budget)
        except InvalidAmount:
            logger.warning("Allocated budget %r is not a number; defaulting to 0", draft.allocated_budget)
            budget = Decimal("0")

        try:
            event_id = self.store.insert_event({
                "name": draft.name.strip(),
                "allocated_budget": budget,
                "venue": draft.venue.strip(),
                "start_date": draft.start_date,
                "end_date": draft.end_date,
                "status": draft.status,
            })
        except PersistenceError as e:
            logger.error("Error creating event: %s", e)
            return Outcome(False, [_failure(str(e), title="Unable to create event")])

        rows = [
            {"event_id": event_id, "name": name.strip(), "type": "Income"}
            for name in draft.income_categories if name.strip()
        ] + [
            {"event_id": event_id, "name": name.strip(), "type": "Expense"}
            for name in draft.expense_categories if name.strip()
        ]
        try:
            self.store.insert_categories(rows)
        except PersistenceError as e:
            logger.error("Event %s created but its categories were not: %s", event_id, e)
            self._refresh()
            return Outcome(
                False,
                [_failure("Event was created but its categories could not be saved",
                          title="Unable to create categories")],
                event_id,
            )

        self._refresh()
        return Outcome(True, [_success("Event created successfully")], event_id)

    def update_event_info(self, event_id: str, name: str, status: str) -> Outcome:
        if not name.strip():
            return Outcome(False, [_failure("Event name cannot be empty")])
        if status not in EVENT_STATUSES:
            return Outcome(False, [_failure(f"Unknown status '{status}'")])
        try:
            self.store.update_event(event_id, {"name": name.strip(), "status": status})
        except PersistenceError as e:
            logger.error("Error updating event %s: %s", event_id, e)
            return Outcome(False, [_failure("Failed to update event")])
        self._refresh()
        return Outcome(True, [_success("Event updated successfully")])

    def delete_event(self, event_id: str, confirmation: str) -> Outcome:
        """Delete an event after the user types the confirmation phrase.

        The phrase is a static configured string, not an authorization
        check.
        """
        if confirmation != config.DELETE_CONFIRMATION_PHRASE:
            return Outcome(False, [_failure(
                "Please enter the correct password to delete this event",
                title="Invalid Password",
            )])
        try:
            self.store.delete_event(event_id)
        except PersistenceError as e:
            logger.error("Error deleting event %s: %s", event_id, e)
            return Outcome(False, [_failure("Failed to delete event")])
        self._refresh()
        return Outcome(True, [_success(
            "Event and all associated data have been permanently deleted",
            title="Event Deleted",
        )])

    # -- categories --------------------------------------------------------

    def add_category(self, event_id: str, name: str, category_type: str) -> Outcome:
        if not name.strip():
            return Outcome(False)
        if category_type not in CATEGORY_TYPES:
            return Outcome(False, [_failure(f"Unknown category type '{category_type}'")])
        try:
            category_id = self.store.insert_category(
                {"event_id": event_id, "name": name.strip(), "type": category_type}
            )
        except PersistenceError as e:
            logger.error("Error adding category to %s: %s", event_id, e)
            return Outcome(False, [_failure("Failed to add category")])
        self._refresh()
        return Outcome(True, [_success("Category added successfully")], category_id)

    def delete_category(self, category_id: str) -> Outcome:
        """Delete a category.  Its entries stay and become unclassified."""
        try:
            self.store.delete_category(category_id)
        except PersistenceError as e:
            logger.error("Error deleting category %s: %s", category_id, e)
            return Outcome(False, [_failure("Failed to delete category")])
        self._refresh()
        return Outcome(True, [_success("Category deleted successfully")])

    # -- entries -----------------------------------------------------------

    def create_entry(
        self, event_id: str, draft: EntryDraft, receipt: Optional[ReceiptFile] = None
    ) -> Outcome:
        """Create a budget entry, uploading its receipt first if one is given.

        A rejected or failed receipt upload never blocks the entry: it is
        written with no receipt and the upload problem is reported
        separately.
        """
        try:
            amount = validate_entry_draft(draft)
        except InvalidAmount as e:
            return Outcome(False, [_failure(str(e), title="Invalid Amount")])
        except ValidationError as e:
            return Outcome(False, [_failure(str(e), title="Missing Information")])

        notifications: List[Notification] = []
        receipt_url = receipt_filename = None
        if receipt is not None:
            try:
                validate_receipt(receipt.filename, receipt.content_type, receipt.size)
                receipt_url = self.storage.upload(
                    entry_receipt_path(event_id, receipt.filename), receipt.data
                )
                receipt_filename = receipt.filename
                notifications.append(_success("Receipt uploaded successfully", title="Receipt uploaded"))
            except UploadError as e:
                logger.warning("Receipt upload failed for new entry in %s: %s", event_id, e)
                notifications.append(_failure(str(e), title="Receipt Upload Failed"))

        values = {
            "event_id": event_id,
            "category_id": draft.category_id,
            "item_name": draft.item_name.strip(),
            "amount": amount,
            "payment_method": draft.payment_method or None,
            "receipt_photo_url": receipt_url,
            "receipt_filename": receipt_filename,
            "to_be_reimbursed": draft.to_be_reimbursed,
            "reimbursement_source": draft.reimbursement_source if draft.to_be_reimbursed else None,
            "reimbursement_status": draft.reimbursement_status if draft.to_be_reimbursed else "pending",
            "entry_date": draft.entry_date,
        }
        try:
            entry_id = self.store.insert_entry(values)
        except PersistenceError as e:
            logger.error("Error adding entry to %s: %s", event_id, e)
            notifications.append(_failure("Failed to add budget entry"))
            return Outcome(False, notifications)

        notifications.append(_success("Budget entry added successfully"))
        self._refresh()
        return Outcome(True, notifications, entry_id)

    def commit_inline_edit(self, state: EditState) -> Outcome:
        """Save the open table cell.

        ``value`` on the returned outcome is the next edit state: ``Idle``
        after a successful save, the same ``Editing`` state when the typed value
        is rejected, and ``Editing`` again when the store rejects it.
        """
        if not isinstance(state, Editing):
            return Outcome(False, [], state)
        try:
            committing, request = commit_edit(state)
        except InvalidAmount as e:
            return Outcome(False, [_failure(str(e), title="Invalid Amount")], state)
        except ValidationError as e:
            return Outcome(False, [_failure(str(e), title="Invalid Value")], state)

        succeeded = self._dispatch(committing, request)
        next_state = finish_commit(committing, succeeded)
        if not succeeded:
            return Outcome(False, [_failure("Failed to update entry")], next_state)
        self._refresh()
        return Outcome(True, [_success("Entry updated successfully")], next_state)

    def _dispatch(self, committing: Committing, request) -> bool:
        try:
            updated = self.store.apply_update(request)
        except PersistenceError as e:
            logger.error("Error updating entry %s: %s", committing.locus.entry_id, e)
            return False
        if not updated:
            logger.error("Entry %s no longer exists", committing.locus.entry_id)
        return bool(updated)

    def toggle_reimbursement(self, entry: BudgetEntry) -> Outcome:
        request = toggle_reimbursement_status(entry.id, entry.reimbursement_status)
        try:
            self.store.apply_update(request)
        except PersistenceError as e:
            logger.error("Error updating reimbursement status of %s: %s", entry.id, e)
            return Outcome(False, [_failure("Failed to update reimbursement status")])
        new_status = request.changes["reimbursement_status"]
        self._refresh()
        return Outcome(True, [_success(f"Reimbursement marked as {new_status}")], new_status)

    def delete_entry(self, entry_id: str) -> Outcome:
        try:
            self.store.delete_entry(entry_id)
        except PersistenceError as e:
            logger.error("Error deleting entry %s: %s", entry_id, e)
            return Outcome(False, [_failure("Failed to delete entry")])
        self._refresh()
        return Outcome(True, [_success("Entry deleted successfully")])

    def attach_receipt(self, entry_id: str, receipt: ReceiptFile) -> Outcome:
        """Upload a receipt onto an existing entry and record its URL."""
        try:
            validate_receipt(receipt.filename, receipt.content_type, receipt.size)
        except UploadError as e:
            return Outcome(False, [_failure(str(e), title="Upload Failed")])

        try:
            url = self.storage.upload(
                existing_receipt_path(entry_id, receipt.filename), receipt.data, upsert=True
            )
            self.store.update_entry(
                entry_id, {"receipt_photo_url": url, "receipt_filename": receipt.filename}
            )
        except (UploadError, PersistenceError) as e:
            logger.error("Error uploading receipt for %s: %s", entry_id, e)
            return Outcome(False, [_failure(str(e) or "Failed to upload receipt", title="Upload Failed")])

        self._refresh()
        return Outcome(True, [_success("Receipt uploaded successfully")], url)


def categories_of_type(categories: Sequence[Category], category_type: str) -> List[Category]:
    return [category for category in categories if category.type == category_type]
