"""Feature status state machine using the transitions library.

Status changes arrive from collaborators as plain field updates
(`{"status": "completed"}`), so this module maps a requested destination to
the trigger that reaches it and runs it through a Machine. Whether an
invalid move is fatal is the caller's choice (strict mode).

Usage:
    from tracker.workflow.fsm import FeatureFSM

    fsm = FeatureFSM("feature-001", "pending")
    fsm.start()      # pending -> in_progress
    fsm.complete()   # in_progress -> completed
    fsm.reset()      # completed -> pending
"""

import logging

from transitions import Machine

from tracker.lib.errors import InvalidTransition

logger = logging.getLogger(__name__)


# State values must match FeatureStatus enum values
STATES = [
    "pending",
    "in_progress",
    "blocked",
    "completed",
]

# Transitions defined as (trigger, source, dest)
# Each trigger becomes a method on the FSM
TRANSITIONS = [
    # Picking up work
    {"trigger": "start", "source": "pending", "dest": "in_progress"},

    # Outcomes of a work session
    {"trigger": "complete", "source": "in_progress", "dest": "completed"},
    {"trigger": "block", "source": "in_progress", "dest": "blocked"},
    {"trigger": "pause", "source": "in_progress", "dest": "pending"},

    # Collaborators may report a result without ever marking the feature started
    {"trigger": "complete", "source": "pending", "dest": "completed"},
    {"trigger": "block", "source": "pending", "dest": "blocked"},

    # Explicit reset (retry) from any state
    {"trigger": "reset", "source": "blocked", "dest": "pending"},
    {"trigger": "reset", "source": "completed", "dest": "pending"},
    {"trigger": "reset", "source": "in_progress", "dest": "pending"},
    {"trigger": "reset", "source": "pending", "dest": "pending"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:  # First trigger wins for a given source->dest
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class FeatureFSM:
    """State machine for one feature's status.

    Not persisted by itself: the FeatureStore owns the stored status and
    builds a FeatureFSM per change to vet it.
    """

    def __init__(self, feature_id: str, initial: str):
        self.feature_id = feature_id
        if initial not in STATES:
            raise InvalidTransition(initial, "?", feature_id)

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            f"[FSM] {self.feature_id}: {event.transition.source} -> "
            f"{event.transition.dest} ({event.event.name})"
        )

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)

    def move_to(self, dest: str) -> str:
        """Run whichever trigger leads to dest. Returns the trigger name.

        Raises:
            InvalidTransition: if no transition reaches dest from here
        """
        trigger = TRIGGER_FOR.get((self.state, dest))
        if trigger is None:
            raise InvalidTransition(self.state, dest, self.feature_id)
        self.trigger(trigger)
        return trigger


def check_transition(feature_id: str, from_state: str, to_state: str, strict: bool = False) -> bool:
    """
    Vet a status change requested through an update.

    Unchanged status is always fine. In strict mode an invalid change raises;
    otherwise it is logged and allowed, since `passes` rather than `status`
    is authoritative for progress.

    Returns:
        True if the FSM allows the change.

    Raises:
        InvalidTransition: strict mode and the change is not allowed
    """
    if from_state == to_state:
        return True
    try:
        FeatureFSM(feature_id, from_state).move_to(to_state)
        return True
    except InvalidTransition:
        if strict:
            raise
        logger.warning(f"[FSM] {feature_id}: unusual transition {from_state} -> {to_state}, allowing")
        return False
