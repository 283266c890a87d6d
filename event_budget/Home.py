"""Events dashboard: list, create and manage events.

This file is the Streamlit entry point.  Pages in the pages/ directory
appear in the sidebar automatically.
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from event_budget import config, db
from event_budget.ui import (
    flush_notifications,
    make_service,
    render_add_event_wizard,
    render_event_cards,
    setup_page_config,
)


def main():
    """Render the events dashboard."""
    setup_page_config("Event Budgets", "🎉")
    config.configure_logging()
    config.ensure_data_directories()
    db.init_db()

    service = make_service()

    col1, col2 = st.columns([3, 1])
    with col1:
        st.title("🎉 Event Budget Dashboard")
        st.markdown("Track income, expenses and reimbursements for every event you organize.")
    with col2:
        sort_by = st.selectbox(
            "Sort by",
            ("date", "status"),
            format_func=lambda value: "Date created" if value == "date" else "Status",
        )

    with st.expander("➕ Add Event", expanded=st.session_state.get("event_wizard_step", 1) > 1):
        render_add_event_wizard(service)

    outcome = service.load_events(sort_by)
    st.session_state.setdefault("pending_notifications", []).extend(outcome.notifications)
    render_event_cards(outcome.value, service)
    flush_notifications()


if __name__ == "__main__":
    main()
