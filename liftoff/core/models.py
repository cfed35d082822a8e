"""Data models for the liftoff launcher core."""

from dataclasses import dataclass


@dataclass(eq=False)
class Candidate:
    """A launchable entry shown in the selection list.

    Equality and deduplication are defined by ``name`` alone.
    """
    name: str
    value: str = ""
    base_score: int = 0

    def __post_init__(self):
        if not self.value:
            self.value = self.name

    def __eq__(self, other):
        if not isinstance(other, Candidate):
            return NotImplemented
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)


@dataclass
class UsageRecord:
    """How often a name was launched, and with which payload last time."""
    name: str
    value: str
    num_used: int = 1
