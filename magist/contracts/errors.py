"""
Error taxonomy for the Magist market analysis.

DataUnavailable aborts a run. EmptyGroup is attached to a group's summary
instead of being raised. MissingJoinTarget is a warning: the row is kept.
"""


class MagistError(Exception):
    """Base class for pipeline errors."""


class DataUnavailable(MagistError):
    """A required source relation is missing or unreadable."""

    def __init__(self, relation: str, reason: str):
        self.relation = relation
        self.reason = reason
        super().__init__(f"Source relation '{relation}' unavailable: {reason}")


class EmptyGroup(MagistError):
    """A ratio or average was requested over a group with a zero denominator."""

    def __init__(self, key: tuple, metrics: list[str]):
        self.key = key
        self.metrics = list(metrics)
        label = "|".join("null" if k is None else str(k) for k in key) or "<all>"
        super().__init__(
            f"Group '{label}' is empty; undefined metrics: {', '.join(self.metrics)}"
        )


class MissingJoinTarget(UserWarning):
    """A product category has no English translation row."""
