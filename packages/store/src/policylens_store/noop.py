"""No-op store — the default when no store is configured."""

from __future__ import annotations

from typing import TYPE_CHECKING

from policylens_store.base import BaseStore

if TYPE_CHECKING:
    from policylens_store.models import CheckRecord


class NoOpStore(BaseStore):
    """Discards all records. Lets the CLI always call store.save()."""

    def save(self, record: CheckRecord) -> None:
        pass

    def list_records(self, repo: str, branch: str | None = None) -> list[CheckRecord]:
        return []
