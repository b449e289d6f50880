"""Abstract store interface.

Any storage backend for check history implements this interface. The CLI
depends on BaseStore, not on a concrete backend, so backends are swappable
without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from policylens_store.models import CheckRecord


class BaseStore(ABC):
    """Pluggable persistence layer for compliance-check history.

    Implementations must be safe to call from git hooks and CI jobs: a
    persistence failure must never change the outcome of a check.
    """

    @abstractmethod
    def save(self, record: CheckRecord) -> None:
        """Persist a completed check record."""

    @abstractmethod
    def list_records(self, repo: str, branch: str | None = None) -> list[CheckRecord]:
        """Return records for a repo, oldest first, optionally filtered by branch.

        Returns an empty list if no records exist; never raises.
        """

    def close(self) -> None:
        """Release any resources held by the store. Default is a no-op."""
