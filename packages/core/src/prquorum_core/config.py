import os
from pathlib import Path
from typing import Optional

import yaml

from prquorum_core.heuristic import DEFAULT_DENY_PATTERNS

DEFAULT_CONFIG: dict = {
    "org": None,
    "review_group": None,  # display name of the designated review team
    "approval_threshold": 2,
    "static_reviewers": [],  # logins / e-mails used when the team can't be read
    "reviewers_file": None,  # YAML file with a `reviewers:` list, e.g. written by `prquorum collect`
    "heuristic": True,
    "history_limit": 500,
    "min_occurrences": 3,
    "allow_keywords": [],  # empty = any name passes the allow-list
    "deny_patterns": list(DEFAULT_DENY_PATTERNS),
    "max_workers": 8,
    "timeout": None,  # seconds for a whole batch; None = no deadline
    "short_url_base": None,  # e.g. "http://go" to print http://go/pr/<base62>
}

_LIST_KEYS = ("static_reviewers", "allow_keywords", "deny_patterns")


def load_config(config_path: str = ".prquorum.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prquorum.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG}
    for key in _LIST_KEYS:
        config[key] = list(DEFAULT_CONFIG[key])

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def load_static_reviewers(config: dict) -> list[str]:
    """
    Return the static fallback reviewer list.

    Combines ``static_reviewers`` from the config with the ``reviewers`` entries
    of ``reviewers_file`` when one is set. Entries in the file may be plain
    strings or mappings with a ``login`` (or ``email``) key.
    """
    reviewers = [str(r) for r in config.get("static_reviewers") or []]

    file_path = config.get("reviewers_file")
    if file_path:
        p = Path(file_path)
        if not p.exists():
            raise FileNotFoundError(f"Reviewers file not found: {file_path}")
        data = yaml.safe_load(p.read_text()) or {}
        for entry in data.get("reviewers", []):
            if isinstance(entry, dict):
                key = entry.get("login") or entry.get("email")
                if key:
                    reviewers.append(str(key))
            elif entry:
                reviewers.append(str(entry))

    seen = set()
    result = []
    for r in reviewers:
        if r.lower() not in seen:
            seen.add(r.lower())
            result.append(r)
    return result
