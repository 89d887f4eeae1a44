"""Workflow Machine - Save/approve/reject lifecycle of a ticket's request"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from ..domain.enums import Role, WorkflowEvent, WorkflowState
from ..domain.errors import RoleNotPermittedError, WorkflowTransitionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionRule:
    """Target state per permitted role for one (state, event) pair"""
    targets: Mapping[Role, WorkflowState]
    requires_stored_request: bool = False


# Blank editing state per role. RESET after execute, reject or clear lands
# here, so an administrator stays in EDITING_ADMINISTRATOR rather than
# dropping to the requester form.
_BLANK_EDITING = {
    Role.REQUESTER: WorkflowState.EDITING_REQUESTER,
    Role.ADMINISTRATOR: WorkflowState.EDITING_ADMINISTRATOR,
}

TRANSITIONS: Dict[Tuple[WorkflowState, WorkflowEvent], TransitionRule] = {
    (WorkflowState.EDITING_REQUESTER, WorkflowEvent.SAVE): TransitionRule(
        targets={Role.REQUESTER: WorkflowState.SAVED},
    ),
    (WorkflowState.SAVED, WorkflowEvent.SAVE): TransitionRule(
        targets={Role.REQUESTER: WorkflowState.SAVED},
        requires_stored_request=True,
    ),
    (WorkflowState.SAVED, WorkflowEvent.OPEN_STORED): TransitionRule(
        targets=_BLANK_EDITING,
        requires_stored_request=True,
    ),
    (WorkflowState.SAVED, WorkflowEvent.CLEAR): TransitionRule(
        targets={Role.REQUESTER: WorkflowState.CLEARED},
        requires_stored_request=True,
    ),
    (WorkflowState.EDITING_REQUESTER, WorkflowEvent.CLEAR): TransitionRule(
        targets={Role.REQUESTER: WorkflowState.CLEARED},
        requires_stored_request=True,
    ),
    (WorkflowState.EDITING_ADMINISTRATOR, WorkflowEvent.EXECUTE): TransitionRule(
        targets={Role.ADMINISTRATOR: WorkflowState.EXECUTED},
    ),
    (WorkflowState.EDITING_ADMINISTRATOR, WorkflowEvent.REJECT): TransitionRule(
        targets={Role.ADMINISTRATOR: WorkflowState.REJECTED},
    ),
    (WorkflowState.EXECUTED, WorkflowEvent.RESET): TransitionRule(targets=_BLANK_EDITING),
    (WorkflowState.REJECTED, WorkflowEvent.RESET): TransitionRule(targets=_BLANK_EDITING),
    (WorkflowState.CLEARED, WorkflowEvent.RESET): TransitionRule(targets=_BLANK_EDITING),
}


def initial_state(role: Role, has_stored_request: bool) -> WorkflowState:
    """State a freshly opened ticket starts in, before any stored request is loaded"""
    if has_stored_request:
        return WorkflowState.SAVED
    return _BLANK_EDITING[role]


def apply_event(
    state: WorkflowState,
    event: WorkflowEvent,
    role: Role,
    has_stored_request: bool = False
) -> WorkflowState:
    """
    Compute the next workflow state

    RESET returns to the blank editing state of the given role, so an
    administrator who executed or rejected keeps the administrator form.

    Args:
        state: Current state
        event: Event to apply
        role: Role of the session applying it
        has_stored_request: Whether a stored request exists for the ticket

    Returns:
        The next state

    Raises:
        RoleNotPermittedError: The event is valid here but not for this role
        WorkflowTransitionError: The event is not valid in this state
    """
    rule = TRANSITIONS.get((state, event))
    if rule is None:
        raise WorkflowTransitionError(
            f"Cannot {event.value.lower()} while the request is {state.value.lower()}",
            details={"state": state.value, "event": event.value}
        )

    target: Optional[WorkflowState] = rule.targets.get(role)
    if target is None:
        raise RoleNotPermittedError(
            f"Role {role.value} may not {event.value.lower()} this request",
            details={"state": state.value, "event": event.value, "role": role.value}
        )

    if rule.requires_stored_request and not has_stored_request:
        raise WorkflowTransitionError(
            f"Cannot {event.value.lower()}: no stored request for this ticket",
            details={"state": state.value, "event": event.value}
        )

    logger.debug(
        f"Workflow {state.value} --{event.value}--> {target.value}",
        extra={"role": role.value, "state": target.value}
    )
    return target


def can_apply(
    state: WorkflowState,
    event: WorkflowEvent,
    role: Role,
    has_stored_request: bool = False
) -> bool:
    """Non-raising check used to enable or disable actions"""
    try:
        apply_event(state, event, role, has_stored_request)
    except (RoleNotPermittedError, WorkflowTransitionError):
        return False
    return True
