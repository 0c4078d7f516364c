"""Credit cost of each metered action type."""

ACTION_COSTS: dict[str, int] = {
    "image.generate": 2,
    "text.generate": 1,
}


def cost_for(event_type: str) -> int:
    """Return the credit cost of an action type.

    Raises:
        KeyError: If the action type has no configured cost.
    """
    return ACTION_COSTS[event_type]
