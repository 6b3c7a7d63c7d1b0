"""
Orchestration - the publication state machine.
"""

from portal.orchestration.state_machine import (
    PublicationStateMachine,
    TransitionPlan,
    Trigger,
    can_transition,
    plan_transition,
    valid_transitions,
)

__all__ = [
    "PublicationStateMachine",
    "TransitionPlan",
    "Trigger",
    "can_transition",
    "plan_transition",
    "valid_transitions",
]
