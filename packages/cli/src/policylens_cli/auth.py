"""GitHub token resolution for the `pr` command and the Gist store.

Resolution order (stops at first success):
  1. POLICYLENS_GITHUB_TOKEN (a PAT with gist scope, when the CI token lacks it)
  2. GITHUB_TOKEN environment variable (injected by GitHub Actions)
  3. `gh auth token` (GitHub CLI session after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("POLICYLENS_GITHUB_TOKEN", "GITHUB_TOKEN")


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no source is available. Never raises."""
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token:
            return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or hung; there is simply no token.
        return None
    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
