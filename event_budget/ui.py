"""Streamlit components for the event budget pages.

The pages hold only layout; widgets, session-state bookkeeping and the
wiring between widgets and :class:`EventBudgetService` live here.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import streamlit as st
from streamlit.errors import StreamlitAPIException

from . import config
from .aggregation import (
    ExpenseSlice,
    FinancialTotals,
    ReimbursementCounts,
    entries_frame,
)
from .editing import IDLE, EditState, begin_edit, cancel_edit, is_editing, update_buffer
from .exceptions import UploadError
from .formatting import format_currency, format_date
from .models import (
    CATEGORY_TYPES,
    EVENT_STATUSES,
    STATUS_COLORS,
    BudgetEntry,
    Category,
    Event,
    index_categories,
)
from .receipts import ReceiptFile, truncate_filename, validate_receipt
from .services import (
    EntryDraft,
    EventBudgetService,
    EventDraft,
    Notification,
    Outcome,
    categories_of_type,
    event_details_complete,
)
from .table_view import (
    ALL,
    TYPE_FILTERS,
    ViewState,
    toggle_sort,
    view_entries,
    with_category_filter,
    with_search,
    with_type_filter,
)
from .visualization import create_expense_pie_chart, create_totals_bar_chart

_NOTIFICATIONS_KEY = "pending_notifications"
_REFRESH_KEY = "refresh_requested"

SORT_LABELS = {
    "entry_date": "Entry Date",
    "category_name": "Category",
    "item_name": "Item Name",
    "amount": "Amount",
}


def _rerun() -> None:
    rerun_fn = getattr(st, 'rerun', None) or getattr(st, 'experimental_rerun', None)
    if rerun_fn:
        rerun_fn()


def setup_page_config(title: str, icon: str) -> None:
    try:
        st.set_page_config(page_title=title, page_icon=icon, layout="wide")
    except StreamlitAPIException:
        # Already configured upstream; avoid raising to keep reruns smooth.
        pass


def request_refresh() -> None:
    """Refresh callback handed to the service: re-fetch on the next run."""
    st.session_state[_REFRESH_KEY] = True


def make_service() -> EventBudgetService:
    return EventBudgetService(on_refresh=request_refresh)


def show_outcome(outcome: Outcome) -> None:
    """Queue an outcome's notifications and rerun if a refresh was requested."""
    queue = st.session_state.setdefault(_NOTIFICATIONS_KEY, [])
    queue.extend(outcome.notifications)
    if st.session_state.pop(_REFRESH_KEY, False):
        _rerun()
    else:
        flush_notifications()


def flush_notifications() -> None:
    pending: List[Notification] = st.session_state.pop(_NOTIFICATIONS_KEY, [])
    for note in pending:
        icon = "⚠️" if note.is_error else "✅"
        st.toast(f"**{note.title}**: {note.description}", icon=icon)


# ---------------------------------------------------------------------------
# Events dashboard
# ---------------------------------------------------------------------------


def render_status_badge(status: str) -> str:
    color = STATUS_COLORS.get(status, "#6b7280")
    return (
        f"<span style='background:{color};color:white;padding:2px 8px;"
        f"border-radius:8px;font-size:0.8em'>{status}</span>"
    )


def render_event_cards(events: Sequence[Event], service: EventBudgetService) -> None:
    if not events:
        st.info("No events yet. Create your first event to start tracking its budget.")
        return

    columns = st.columns(3)
    for index, event in enumerate(events):
        with columns[index % 3]:
            with st.container(border=True):
                st.markdown(f"### {event.name}")
                st.markdown(render_status_badge(event.status), unsafe_allow_html=True)
                st.caption(f"📍 {event.venue or 'Venue not set'}")
                st.caption(f"📅 {format_date(event.start_date)} - {format_date(event.end_date)}")
                st.metric("Allocated Budget", format_currency(event.allocated_budget))
                if st.button("Open", key=f"open-{event.id}", use_container_width=True):
                    st.session_state["selected_event_id"] = event.id
                    if hasattr(st, "switch_page"):
                        st.switch_page("pages/1_💸_Event_Budget.py")
                with st.expander("⚙️ Settings"):
                    render_event_settings(event, service)


def render_event_settings(event: Event, service: EventBudgetService) -> None:
    basic_tab, categories_tab, delete_tab = st.tabs(["Basic Info", "Categories", "Delete"])

    with basic_tab:
        with st.form(f"event-basic-{event.id}"):
            name = st.text_input("Event Name", value=event.name, key=f"name-{event.id}")
            status = st.selectbox(
                "Status", EVENT_STATUSES, index=EVENT_STATUSES.index(event.status)
                if event.status in EVENT_STATUSES else 0,
                key=f"status-{event.id}",
            )
            if st.form_submit_button("Save Changes"):
                show_outcome(service.update_event_info(event.id, name, status))

    with categories_tab:
        snapshot = service.load_event_snapshot(event.id).value
        for category_type in CATEGORY_TYPES:
            st.markdown(f"**{category_type} Categories**")
            for category in categories_of_type(snapshot.categories, category_type):
                col1, col2 = st.columns([4, 1])
                col1.write(category.name)
                if col2.button("🗑️", key=f"del-cat-{category.id}", help="Delete category"):
                    show_outcome(service.delete_category(category.id))
        with st.form(f"event-add-category-{event.id}", clear_on_submit=True):
            new_name = st.text_input("New category", key=f"new-cat-{event.id}")
            new_type = st.selectbox("Type", CATEGORY_TYPES, key=f"new-cat-type-{event.id}")
            if st.form_submit_button("Add Category"):
                show_outcome(service.add_category(event.id, new_name, new_type))

    with delete_tab:
        st.warning("Deleting an event permanently removes all of its categories and entries.")
        confirmation = st.text_input(
            "Type the deletion password to confirm", type="password", key=f"delete-pw-{event.id}"
        )
        if st.button("Delete Event", key=f"delete-event-{event.id}", type="primary"):
            show_outcome(service.delete_event(event.id, confirmation))


def render_add_event_wizard(service: EventBudgetService) -> None:
    """Three steps: basic details, income categories, expense categories."""
    draft: EventDraft = st.session_state.setdefault("event_draft", EventDraft())
    step: int = st.session_state.setdefault("event_wizard_step", 1)

    if step == 1:
        st.subheader("Add New Event")
        draft.name = st.text_input("Event Name", value=draft.name)
        draft.allocated_budget = st.text_input(
            f"Allocated Budget ({config.CURRENCY_SYMBOL})", value=draft.allocated_budget, placeholder="0.00"
        )
        draft.venue = st.text_input("Venue", value=draft.venue)
        col1, col2 = st.columns(2)
        draft.start_date = col1.date_input("Start Date", value=draft.start_date)
        draft.end_date = col2.date_input("End Date", value=draft.end_date)
        draft.status = st.selectbox("Status", EVENT_STATUSES, index=EVENT_STATUSES.index(draft.status))
        if st.button("Next ➡️", disabled=not event_details_complete(draft)):
            st.session_state["event_wizard_step"] = 2
            _rerun()
        return

    label, names = (
        ("Income Categories", draft.income_categories)
        if step == 2
        else ("Expense Categories", draft.expense_categories)
    )
    st.subheader(label)
    with st.form(f"wizard-category-{step}", clear_on_submit=True):
        new_name = st.text_input("Category name")
        if st.form_submit_button("➕ Add") and new_name.strip():
            names.append(new_name.strip())
    for index, name in enumerate(list(names)):
        col1, col2 = st.columns([4, 1])
        col1.write(name)
        if col2.button("✖", key=f"wizard-remove-{step}-{index}"):
            names.pop(index)
            _rerun()

    back, forward = st.columns(2)
    if back.button("⬅️ Back"):
        st.session_state["event_wizard_step"] = step - 1
        _rerun()
    if step == 2:
        if forward.button("Next ➡️", disabled=not names):
            st.session_state["event_wizard_step"] = 3
            _rerun()
    elif forward.button("Create Event", type="primary", disabled=not names):
        outcome = service.create_event(draft)
        if outcome.ok:
            st.session_state.pop("event_draft", None)
            st.session_state.pop("event_wizard_step", None)
        show_outcome(outcome)


# ---------------------------------------------------------------------------
# Event detail page
# ---------------------------------------------------------------------------


def render_event_header(event: Event) -> None:
    st.title(event.name)
    st.markdown(
        f"📍 {event.venue or 'Venue not set'} &nbsp; "
        f"📅 {format_date(event.start_date)} - {format_date(event.end_date)} &nbsp; "
        f"{render_status_badge(event.status)}",
        unsafe_allow_html=True,
    )


def render_summary_metrics(
    event: Event, totals: FinancialTotals, reimbursements: ReimbursementCounts
) -> None:
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Allocated Budget", format_currency(event.allocated_budget))
    col2.metric("Onhand Cash", format_currency(totals.onhand_cash))
    col3.metric("Total Expenses", format_currency(totals.total_expenses))
    col4.metric("Left to Spend", format_currency(totals.left_to_spend))

    col5, col6, col7, col8 = st.columns(4)
    col5.metric("Total Income", format_currency(totals.total_income))
    col6.metric("Ending Balance", format_currency(totals.ending_balance))
    col7.metric("Pending Reimbursements", reimbursements.pending)
    col8.metric("Completed Reimbursements", reimbursements.completed)


def render_expense_chart(distribution: Sequence[ExpenseSlice]) -> None:
    st.subheader("💸 Cash Flow Breakdown")
    if not distribution:
        st.info("No expense data to display yet.")
        return
    st.plotly_chart(create_expense_pie_chart(distribution), use_container_width=True)


def render_totals_chart(totals: FinancialTotals) -> None:
    st.plotly_chart(create_totals_bar_chart(totals), use_container_width=True)


def _view_state() -> ViewState:
    return st.session_state.setdefault("view_state", ViewState())


def _edit_state() -> EditState:
    return st.session_state.setdefault("edit_state", IDLE)


def render_filter_bar(categories: Sequence[Category]) -> ViewState:
    state = _view_state()
    col1, col2, col3 = st.columns([2, 1, 1])
    search = col1.text_input("🔍 Search entries...", value=state.search)
    type_filter = col2.selectbox(
        "Type",
        TYPE_FILTERS,
        index=TYPE_FILTERS.index(state.type_filter),
        format_func=lambda value: "All Types" if value == ALL else value,
    )
    category_options = [ALL] + [category.id for category in categories]
    names = {category.id: category.name for category in categories}
    current = state.category_filter if state.category_filter in category_options else ALL
    category_filter = col3.selectbox(
        "Category",
        category_options,
        index=category_options.index(current),
        format_func=lambda value: "All Categories" if value == ALL else names.get(value, value),
    )
    state = with_category_filter(with_type_filter(with_search(state, search), type_filter), category_filter)
    st.session_state["view_state"] = state
    return state


def _render_sort_headers(columns) -> None:
    state = _view_state()
    for column, field in zip(columns, ("entry_date", "category_name", "item_name", "amount")):
        arrow = ""
        if state.sort_field == field:
            arrow = " ▲" if state.sort_direction == "asc" else " ▼"
        if column.button(f"{SORT_LABELS[field]}{arrow}", key=f"sort-{field}"):
            st.session_state["view_state"] = toggle_sort(state, field)
            _rerun()


def _render_editable_cell(column, entry: BudgetEntry, field: str, display: str, current, service) -> None:
    state = _edit_state()
    if is_editing(state, entry.id, field):
        with column:
            if field == "entry_date":
                value = st.date_input("Entry date", value=entry.entry_date, key=f"buf-{entry.id}-{field}",
                                      label_visibility="collapsed")
                text = value.isoformat() if value else ""
            else:
                text = st.text_input(field, value=state.buffer, key=f"buf-{entry.id}-{field}",
                                     label_visibility="collapsed")
            save, cancel = st.columns(2)
            if save.button("💾", key=f"save-{entry.id}-{field}", help="Save"):
                outcome = service.commit_inline_edit(update_buffer(state, text))
                st.session_state["edit_state"] = outcome.value
                show_outcome(outcome)
            if cancel.button("✖", key=f"cancel-{entry.id}-{field}", help="Cancel"):
                st.session_state["edit_state"] = cancel_edit(state)
                _rerun()
        return

    if column.button(display, key=f"cell-{entry.id}-{field}", help="Click to edit"):
        st.session_state["edit_state"] = begin_edit(state, entry.id, field, current)
        _rerun()


def _render_reimbursement_cell(column, entry: BudgetEntry, service: EventBudgetService) -> None:
    if not entry.to_be_reimbursed:
        column.write("No")
        return
    done = entry.reimbursement_status == "completed"
    label = "✅ Completed" if done else "⏳ Pending"
    source = f" ({entry.reimbursement_source})" if entry.reimbursement_source else ""
    if column.button(
        f"{label}{source}",
        key=f"reimb-{entry.id}",
        help=f"Mark as {'pending' if done else 'completed'}",
    ):
        show_outcome(service.toggle_reimbursement(entry))


def _render_receipt_cell(column, entry: BudgetEntry) -> None:
    if entry.has_receipt:
        column.markdown(f"[📄 {truncate_filename(entry.receipt_filename, 20)}]({entry.receipt_photo_url})")
    else:
        column.write("-")


def _render_actions_cell(column, entry: BudgetEntry, service: EventBudgetService) -> None:
    if st.session_state.get("delete_confirm") == entry.id:
        column.warning("Delete?")
        yes, no = column.columns(2)
        if yes.button("Yes", key=f"del-yes-{entry.id}"):
            st.session_state["delete_confirm"] = None
            show_outcome(service.delete_entry(entry.id))
        if no.button("No", key=f"del-no-{entry.id}"):
            st.session_state["delete_confirm"] = None
            _rerun()
        return
    if column.button("🗑️", key=f"del-{entry.id}", help="Delete entry"):
        st.session_state["delete_confirm"] = entry.id
        _rerun()


def render_budget_table(
    entries: Sequence[BudgetEntry], categories: Sequence[Category], service: EventBudgetService
) -> None:
    st.subheader("📋 Budget Entries")
    state = render_filter_bar(categories)
    lookup = index_categories(categories)
    rows = view_entries(entries, lookup, state)

    widths = [1.2, 1.2, 2, 1.2, 1.2, 1.5, 1.3, 0.8]
    header = st.columns(widths)
    _render_sort_headers(header[:4])
    for column, label in zip(header[4:], ("Payment Method", "Reimbursement", "Receipt", "")):
        column.markdown(f"**{label}**")

    if not rows:
        st.info("No entries match the current filters.")
        return

    for entry in rows:
        category = lookup.get(entry.category_id)
        cells = st.columns(widths)
        _render_editable_cell(cells[0], entry, "entry_date", format_date(entry.entry_date),
                              entry.entry_date.isoformat(), service)
        if category is None:
            cells[1].write("-")
        else:
            color = "green" if category.type == "Income" else "red"
            cells[1].markdown(f":{color}[{category.name}]")
        _render_editable_cell(cells[2], entry, "item_name", entry.item_name, entry.item_name, service)
        _render_editable_cell(cells[3], entry, "amount", format_currency(entry.amount), entry.amount, service)
        _render_editable_cell(cells[4], entry, "payment_method", entry.payment_method or "-",
                              entry.payment_method, service)
        _render_reimbursement_cell(cells[5], entry, service)
        _render_receipt_cell(cells[6], entry)
        _render_actions_cell(cells[7], entry, service)

    with st.expander("⬇️ Export visible rows"):
        frame = entries_frame(rows, lookup)
        st.download_button(
            "Download CSV",
            frame.drop(columns=["id"]).to_csv(index=False).encode("utf-8"),
            file_name="budget_entries.csv",
            mime="text/csv",
        )


def uploaded_to_receipt(uploaded) -> Optional[ReceiptFile]:
    """Convert a Streamlit upload, reporting size/type problems immediately."""
    if uploaded is None:
        return None
    try:
        validate_receipt(uploaded.name, uploaded.type, uploaded.size)
    except UploadError as e:
        st.error(str(e))
        return None
    return ReceiptFile(filename=uploaded.name, content_type=uploaded.type or "", data=uploaded.getvalue())


def render_receipt_uploader(entries: Sequence[BudgetEntry], service: EventBudgetService) -> None:
    if not entries:
        return
    with st.expander("📎 Attach a receipt to an entry"):
        by_id: Dict[str, BudgetEntry] = {entry.id: entry for entry in entries}
        entry_id = st.selectbox(
            "Entry",
            list(by_id),
            format_func=lambda value: f"{by_id[value].item_name} ({format_date(by_id[value].entry_date)})",
        )
        uploaded = st.file_uploader("Receipt image", type=None, key="attach-receipt")
        receipt = uploaded_to_receipt(uploaded)
        if st.button("Upload Receipt", disabled=receipt is None):
            show_outcome(service.attach_receipt(entry_id, receipt))


def render_add_entry_form(event_id: str, categories: Sequence[Category], service: EventBudgetService) -> None:
    with st.expander("➕ Add Entry"):
        if not categories:
            st.info("Add categories in the event settings before recording entries.")
            return
        names = {category.id: f"{category.name} ({category.type})" for category in categories}
        with st.form("add-entry", clear_on_submit=True):
            category_id = st.selectbox("Category *", list(names), format_func=names.get)
            item_name = st.text_input("Item Name *")
            amount = st.text_input(f"Amount ({config.CURRENCY_SYMBOL}) *", placeholder="0.00")
            payment_method = st.text_input("Payment Method")
            entry_date = st.date_input("Entry Date")
            to_be_reimbursed = st.checkbox("To be reimbursed")
            reimbursement_source = st.text_input("Reimbursement Source")
            reimbursement_status = st.selectbox("Reimbursement Status", ("pending", "completed"))
            uploaded = st.file_uploader("Receipt Photo", type=None)
            if st.form_submit_button("Add Entry", type="primary"):
                draft = EntryDraft(
                    category_id=category_id or "",
                    item_name=item_name,
                    amount=amount,
                    payment_method=payment_method,
                    to_be_reimbursed=to_be_reimbursed,
                    reimbursement_source=reimbursement_source,
                    reimbursement_status=reimbursement_status,
                    entry_date=entry_date,
                )
                receipt = None
                if uploaded is not None:
                    receipt = ReceiptFile(uploaded.name, uploaded.type or "", uploaded.getvalue())
                show_outcome(service.create_entry(event_id, draft, receipt))
