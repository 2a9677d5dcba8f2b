"""Translation of Pathao delivery statuses into local order statuses."""

from __future__ import annotations

from .const import LOCAL_STATUS_SEQUENCE, STATUS_MAP, TERMINAL_LOCAL_STATUSES

LOCAL_STATUSES = frozenset(STATUS_MAP.values())


def translate(courier_status: str | None) -> str | None:
    """Return the local order status for a courier status.

    Unknown statuses return None, meaning the order status is left as is.
    Local statuses translate to themselves.
    """
    if not courier_status:
        return None
    if courier_status in LOCAL_STATUSES:
        return courier_status
    return STATUS_MAP.get(courier_status)


def is_regression(current: str | None, new: str) -> bool:
    """Return True if moving an order from current to new goes backwards.

    Terminal statuses are final. In-flight statuses only move forward;
    statuses outside the courier flow, such as pending, may move
    anywhere.
    """
    if not current or current == new:
        return False
    if current in TERMINAL_LOCAL_STATUSES:
        return True
    if current in LOCAL_STATUS_SEQUENCE and new in LOCAL_STATUS_SEQUENCE:
        return LOCAL_STATUS_SEQUENCE.index(new) < LOCAL_STATUS_SEQUENCE.index(
            current
        )
    return False
