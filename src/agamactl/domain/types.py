"""Tag kinds and lifecycle enums shared by the bus layer.

Transition maps mirror the state machines of proxy handles,
subscriptions, and cancellable operations.
"""

from __future__ import annotations

from enum import StrEnum


class Tag(StrEnum):
    """Kinds of tagged values carried on the bus."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DOUBLE = "double"
    ARRAY = "array"
    STRUCT = "struct"
    DICT = "dict"
    VARIANT = "variant"


class HandleState(StrEnum):
    """Readiness of a proxy handle."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class SubscriptionState(StrEnum):
    """Lifecycle of a change-notifier subscription."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


class OperationState(StrEnum):
    """Lifecycle of a cancellable operation."""

    PENDING = "pending"
    DELIVERED = "delivered"
    DROPPED = "dropped"


# --- Transition maps ---

HANDLE_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["ready", "failed"],
    "ready": [],
    "failed": ["ready", "failed"],  # explicit caller retry
}

SUBSCRIPTION_TRANSITIONS: dict[str, list[str]] = {
    "active": ["cancelled"],
    "cancelled": [],
}

OPERATION_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["delivered", "dropped"],
    "delivered": [],
    "dropped": [],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
