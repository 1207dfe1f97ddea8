from .types import MonitorState


def classify_state(*, running: bool, paused_by_idle: bool) -> MonitorState:
    """Classify the monitor state from the timer and the auto-pause marker.

    Rules:
        1. If the timer is running → ACTIVE
        2. If paused and the marker is set → AUTO_PAUSED
        3. Otherwise → MANUALLY_PAUSED

    A running timer with the marker still set is read as ACTIVE; the monitor
    drops such a stale marker when it next inspects the timer.
    """
    if running:
        return MonitorState.ACTIVE

    if paused_by_idle:
        return MonitorState.AUTO_PAUSED

    return MonitorState.MANUALLY_PAUSED
