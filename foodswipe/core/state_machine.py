"""Order lifecycle state machine.

One table decides which actor may move an order from which status to which.
Surfaces use it to disable inapplicable controls and to refuse commands
locally; the backend remains the authority and may still reject a command
that local state believed legal.
"""
from typing import Dict, FrozenSet, Optional, Tuple

from foodswipe.core.exceptions import TransitionError
from foodswipe.models.order import TERMINAL_STATUSES, Actor, OrderStatus

# Display order; a higher rank is further along the lifecycle.
STATUS_RANK: Dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.ACCEPTED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.ON_THE_WAY: 4,
    OrderStatus.ARRIVED: 5,
    OrderStatus.PICKED_UP: 6,
    OrderStatus.ARRIVED_AT_CUSTOMER: 7,
    OrderStatus.DELIVERED: 8,
    OrderStatus.CANCELLED: 9,
}

TRANSITIONS: Dict[Tuple[Actor, OrderStatus], FrozenSet[OrderStatus]] = {
    (Actor.RESTAURANT, OrderStatus.PENDING): frozenset({OrderStatus.ACCEPTED}),
    (Actor.RESTAURANT, OrderStatus.ACCEPTED): frozenset({OrderStatus.PREPARING}),
    (Actor.RESTAURANT, OrderStatus.PREPARING): frozenset({OrderStatus.READY}),
    (Actor.RIDER, OrderStatus.ACCEPTED): frozenset({OrderStatus.ON_THE_WAY}),
    (Actor.RIDER, OrderStatus.PREPARING): frozenset({OrderStatus.ON_THE_WAY}),
    (Actor.RIDER, OrderStatus.READY): frozenset({OrderStatus.ON_THE_WAY}),
    (Actor.RIDER, OrderStatus.ON_THE_WAY): frozenset({OrderStatus.ARRIVED}),
    (Actor.RIDER, OrderStatus.ARRIVED): frozenset({OrderStatus.PICKED_UP}),
    (Actor.RIDER, OrderStatus.PICKED_UP): frozenset({OrderStatus.ARRIVED_AT_CUSTOMER}),
    (Actor.RIDER, OrderStatus.ARRIVED_AT_CUSTOMER): frozenset({OrderStatus.DELIVERED}),
}

# Rider's sequence of button presses after accepting a delivery
RIDER_SEQUENCE = (
    OrderStatus.ON_THE_WAY,
    OrderStatus.ARRIVED,
    OrderStatus.PICKED_UP,
    OrderStatus.ARRIVED_AT_CUSTOMER,
    OrderStatus.DELIVERED,
)


def status_rank(status: OrderStatus) -> int:
    return STATUS_RANK[status]


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OrderStatus, target: OrderStatus, actor: Actor) -> bool:
    """Return True when ``actor`` may move an order from ``current`` to ``target``."""
    if is_terminal(current):
        return False

    # Any actor may cancel a live order
    if target == OrderStatus.CANCELLED:
        return True

    return target in TRANSITIONS.get((actor, current), frozenset())


def require_transition(current: OrderStatus, target: OrderStatus, actor: Actor) -> None:
    """Raise TransitionError unless the transition is allowed."""
    if not can_transition(current, target, actor):
        raise TransitionError(
            f"A {actor.value} cannot move an order from {current.value} to {target.value}"
        )


def allowed_targets(current: OrderStatus, actor: Actor) -> FrozenSet[OrderStatus]:
    """Every status ``actor`` may move the order to from ``current``."""
    if is_terminal(current):
        return frozenset()
    return TRANSITIONS.get((actor, current), frozenset()) | {OrderStatus.CANCELLED}


def supersedes(incoming: OrderStatus, current: Optional[OrderStatus]) -> bool:
    """Whether an observed status should replace the displayed one.

    Displayed status never regresses: terminal statuses are final and anything
    else only moves forward. Re-applying the same status is a no-op.
    """
    if current is None:
        return True
    if is_terminal(current):
        return False
    return status_rank(incoming) > status_rank(current)


def next_rider_step(current: OrderStatus) -> Optional[OrderStatus]:
    """The single forward step the rider's primary button performs, if any."""
    targets = TRANSITIONS.get((Actor.RIDER, current), frozenset())
    for status in RIDER_SEQUENCE:
        if status in targets:
            return status
    return None
