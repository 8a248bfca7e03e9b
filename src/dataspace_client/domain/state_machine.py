"""Composed Flow State Machine Guard.

Uses python-statemachine to enforce the stage order of one end-to-end run.
No transition skips a stage: a transfer can only start once negotiation is
complete, and the flow only completes once the payload has arrived.

The machine is instantiated per flow invocation; a reset starts a fresh one.

Transition table:
    IDLE                  -> NEGOTIATING           (start_negotiation)
    NEGOTIATING           -> NEGOTIATION_COMPLETE  (negotiation_finalized)
    NEGOTIATING           -> ERROR                 (fail)
    NEGOTIATION_COMPLETE  -> TRANSFERRING          (start_transfer)
    TRANSFERRING          -> TRANSFER_COMPLETE     (transfer_completed)
    TRANSFERRING          -> ERROR                 (fail)
    TRANSFER_COMPLETE     -> COMPLETE              (data_received)
    any in-progress stage -> IDLE                  (cancel)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from dataspace_client.domain.exceptions import InvalidFlowTransitionError


class FlowStateMachine(StateMachine):
    """State machine that guards the negotiate -> transfer -> data stages.

    Usage:
        sm = FlowStateMachine()
        sm.start_negotiation()  # transitions to NEGOTIATING
        sm.status               # "NEGOTIATING"
    """

    # --- States ---
    IDLE = State("IDLE", initial=True)
    NEGOTIATING = State("NEGOTIATING")
    NEGOTIATION_COMPLETE = State("NEGOTIATION_COMPLETE")
    TRANSFERRING = State("TRANSFERRING")
    TRANSFER_COMPLETE = State("TRANSFER_COMPLETE")
    COMPLETE = State("COMPLETE", final=True)
    ERROR = State("ERROR", final=True)

    # --- Events / Transitions ---

    # Negotiation stage
    start_negotiation = IDLE.to(NEGOTIATING)
    negotiation_finalized = NEGOTIATING.to(NEGOTIATION_COMPLETE)

    # Transfer stage
    start_transfer = NEGOTIATION_COMPLETE.to(TRANSFERRING)
    transfer_completed = TRANSFERRING.to(TRANSFER_COMPLETE)

    # Payload delivered
    data_received = TRANSFER_COMPLETE.to(COMPLETE)

    # Failures only happen while a driver is active
    fail = NEGOTIATING.to(ERROR) | TRANSFERRING.to(ERROR)

    cancel = (
        NEGOTIATING.to(IDLE)
        | NEGOTIATION_COMPLETE.to(IDLE)
        | TRANSFERRING.to(IDLE)
        | TRANSFER_COMPLETE.to(IDLE)
    )

    def __init__(self, current_status: str = "IDLE") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: A FlowState value (e.g., "TRANSFERRING").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown flow status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches FlowState enum)."""
        return str(self.current_state_value)

    @property
    def is_finished(self) -> bool:
        return any(state.final for state in self.states if state.value == self.current_state_value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        # newer releases keep the attribute name in `id` and a display name in `name`
        return [getattr(event, "id", None) or event.name for event in self.allowed_events]

    def fire(self, event_name: str) -> str:
        """Fire a named event and return the new status.

        Raises InvalidFlowTransitionError if the event is unknown or illegal
        from the current state.
        """
        event_method = getattr(self, event_name, None)
        if event_method is None or not callable(event_method):
            raise InvalidFlowTransitionError(self.status, event_name)
        try:
            event_method()
        except TransitionNotAllowed as err:
            raise InvalidFlowTransitionError(self.status, event_name) from err
        return self.status
