"""Persistence of the current unit of work between CLI invocations.

The core never reads or writes this file: the CLI loads the snapshot, passes
it to the checker, and writes back the state the checker returns.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from policylens_core.cycle import CycleState

logger = logging.getLogger(__name__)


def load_cycle(path: str) -> CycleState | None:
    p = Path(path)
    if not p.exists():
        return None
    try:
        return CycleState.from_dict(json.loads(p.read_text()))
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        logger.warning("Ignoring unreadable cycle state %s: %s", path, e)
        return None


def save_cycle(path: str, state: CycleState) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(state.to_dict(), indent=2) + "\n")
