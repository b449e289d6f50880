import copy
import os
from pathlib import Path
from typing import Optional

import yaml

COMMIT_TYPES = ["feat", "fix", "docs", "style", "refactor", "test", "chore", "perf", "ci", "build"]
MICRO_COMMIT_TYPES = ["green", "refactor", "fix"]

DEFAULT_CONFIG: dict = {
    "max_subject_length": 72,
    "max_body_line_length": 72,
    "commit_types": COMMIT_TYPES,
    "micro_commit_types": MICRO_COMMIT_TYPES,
    "branch_types": COMMIT_TYPES + ["hotfix", "release"],
    "trunk_branches": ["main", "master", "trunk"],
    "branch_max_age_days": 2,
    "require_issue_link": True,
    "secret_min_length": 20,
    "secret_min_entropy": 4.0,
    "secret_min_charsets": 3,
    "secret_patterns": {},  # extra signatures: name -> regex
    "secret_allowlist": [],  # regexes; a matching line is never scanned
    "exclude": [],  # fnmatch patterns or directory names never scanned for secrets (e.g. "tests/fixtures/")
    "disabled_rules": [],
    "severity_overrides": {},  # rule id -> "blocking" | "advisory"
    "ignore_generated_messages": True,  # skip message rules for "Merge ..." / 'Revert "..."'
    "cycle_state_path": ".policylens/cycle.json",
    "store": "noop",
    "store_path": ".policylens.db",
}


def load_config(config_path: str = ".policylens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .policylens.yml in the current directory
      3. CLI argument overrides
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def get_setting(config: Optional[dict], key: str):
    """Read a key from a possibly partial config, falling back to the built-in default."""
    if config and config.get(key) is not None:
        return config[key]
    return DEFAULT_CONFIG.get(key)
