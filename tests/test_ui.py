import types

from event_budget import ui
from event_budget.services import Notification, Outcome


def _fake_st(monkeypatch, **attrs):
    state = {}
    toasts = []
    reruns = []
    fake = types.SimpleNamespace(
        session_state=state,
        toast=lambda text, icon=None: toasts.append((text, icon)),
        rerun=lambda: reruns.append(1),
        **attrs,
    )
    monkeypatch.setattr(ui, "st", fake)
    return state, toasts, reruns


def test_show_outcome_flushes_without_refresh(monkeypatch):
    state, toasts, reruns = _fake_st(monkeypatch)

    ui.show_outcome(Outcome(False, [Notification("Error", "Failed to delete entry", "destructive")]))

    assert toasts == [("**Error**: Failed to delete entry", "⚠️")]
    assert reruns == []
    assert "pending_notifications" not in state


def test_show_outcome_reruns_after_refresh(monkeypatch):
    state, toasts, reruns = _fake_st(monkeypatch)

    ui.request_refresh()
    ui.show_outcome(Outcome(True, [Notification("Success", "Entry deleted successfully")]))

    assert reruns == [1]
    assert toasts == []
    # shown on the next run
    ui.flush_notifications()
    assert toasts == [("**Success**: Entry deleted successfully", "✅")]


def test_rerun_falls_back_to_experimental(monkeypatch):
    calls = []
    monkeypatch.setattr(ui, "st", types.SimpleNamespace(experimental_rerun=lambda: calls.append("exp")))
    ui._rerun()
    assert calls == ["exp"]


def test_status_badge_uses_status_color():
    badge = ui.render_status_badge("Cancelled")
    assert "#ef4444" in badge
    assert "Cancelled" in badge
