"""GistStore — shared check history kept in a private GitHub Gist.

Data format: a single JSON file named `policylens_history.json` inside the
Gist, holding a JSON array of CheckRecord dicts, newest entries appended.
"""

from __future__ import annotations

import json
import logging
import os

from github import Github

from policylens_store.base import BaseStore
from policylens_store.models import CheckRecord

logger = logging.getLogger(__name__)

GIST_FILENAME = "policylens_history.json"


class GistStore(BaseStore):
    """Append-only JSON history in a Gist.

    list_records() reads the whole array and filters in memory, which suits a
    team's history of a few thousand checks. Larger histories belong in
    SQLiteStore.
    """

    def __init__(self, gist_id: str, token: str):
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def save(self, record: CheckRecord) -> None:
        """Append a record to the Gist JSON file; failures are logged, never raised."""
        try:
            gist = self._get_gist()
            existing = self._read_records(gist)
            existing.append(record.to_dict())
            gist.edit(files={GIST_FILENAME: {"content": json.dumps(existing, indent=2)}})
        except Exception as e:
            # The check already ran; losing one history entry must not fail the hook.
            logger.warning("GistStore.save() failed (%s): %s", type(e).__name__, e)
            msg = f"Warning: could not save check history to Gist ({type(e).__name__}: {e})"
            if os.environ.get("GITHUB_ACTIONS") == "true":
                msg += (
                    "\nThe built-in GITHUB_TOKEN cannot write Gists. "
                    "Store a PAT with 'gist' scope as a repository secret instead."
                )
            print(msg)

    def list_records(self, repo: str, branch: str | None = None) -> list[CheckRecord]:
        try:
            records = self._read_records(self._get_gist())
        except Exception as e:
            logger.warning("GistStore.list_records() failed: %s", e)
            return []

        results = [CheckRecord.from_dict(r) for r in records if r.get("repo") == repo]
        if branch is not None:
            results = [r for r in results if r.branch == branch]
        return results

    @staticmethod
    def _read_records(gist) -> list[dict]:
        """Read the current JSON array from the Gist file, or return []."""
        file_obj = gist.files.get(GIST_FILENAME)
        if file_obj is None:
            return []
        try:
            data = json.loads(file_obj.content)
        except (json.JSONDecodeError, TypeError):
            return []
        return data if isinstance(data, list) else []
