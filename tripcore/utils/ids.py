"""Deterministic id generation."""

from dataclasses import dataclass


@dataclass
class IdSequence:
    """Monotonic id source so repeated runs produce identical ids."""

    prefix: str = "item"
    counter: int = 0

    def next_id(self, scope: str | None = None) -> str:
        """Get next id, optionally namespaced by a scope such as the day."""
        self.counter += 1
        if scope:
            return f"{self.prefix}-{scope}-{self.counter:04d}"
        return f"{self.prefix}-{self.counter:04d}"
