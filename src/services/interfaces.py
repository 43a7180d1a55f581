"""
Service interfaces for the edge analytics dashboard.
Defines the contract that both data producers must follow.
"""

from abc import ABC, abstractmethod

from src.models.core import DataSource


class DataProducer(ABC):
    """A source of detection and event data feeding the store.

    Exactly one producer is active at a time; the dashboard stops one
    before starting the other.
    """

    source: DataSource

    @abstractmethod
    def start(self) -> None:
        """Begin producing. Calling start on an active producer is a no-op."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop producing and cancel any pending timers. Idempotent."""
        pass

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether the producer is started (including while reconnecting)."""
        pass
