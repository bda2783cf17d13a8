"""Exceptions surfaced to callers of the journey planner."""


class PlannerInputError(ValueError):
    """The caller supplied something the planner cannot act on.

    Unresolvable stop names, coordinates with no stop in walking range,
    unusable preferences and malformed departure times all end up here.
    """


class NetworkUnavailableError(RuntimeError):
    """No transit network snapshot has been published yet."""
