"""Builds resolver, session and source-control objects from CLI config.

This lives in the CLI package so prquorum_core stays free of any knowledge
of the .prquorum.yml format.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console

from prquorum_core.config import load_static_reviewers
from prquorum_core.gh.directory import GitHubTeamDirectory
from prquorum_core.gh.pull_request import GitHubSourceControl, get_client, get_viewer
from prquorum_core.heuristic import FrequencyHeuristic
from prquorum_core.resolver import GroupResolver
from prquorum_core.session import SessionContext

console = Console()
logger = logging.getLogger(__name__)


def require_token(config: dict) -> str:
    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return token


def build_heuristic(config: dict) -> FrequencyHeuristic:
    return FrequencyHeuristic(
        min_occurrences=config.get("min_occurrences", 3),
        allow_keywords=config.get("allow_keywords") or [],
        deny_patterns=config.get("deny_patterns") or [],
    )


def build_resolver(config: dict, client, history=None) -> GroupResolver:
    """Wire the resolution tiers from config.

    The live tier needs ``org``; the heuristic tier needs a history source and
    ``heuristic: true``. A missing reviewers file is reported and skipped;
    ``static_reviewers`` from the config still apply.
    """
    directory = GitHubTeamDirectory(client, config["org"]) if config.get("org") else None

    try:
        static_members = load_static_reviewers(config)
    except FileNotFoundError as e:
        console.print(f"[yellow]{e}. Continuing with static_reviewers only.[/yellow]")
        static_members = [str(r) for r in config.get("static_reviewers") or []]

    heuristic = build_heuristic(config) if config.get("heuristic", True) else None

    return GroupResolver(
        directory=directory,
        static_members=static_members,
        history=history,
        heuristic=heuristic,
        history_limit=config.get("history_limit", 500),
    )


def open_session(config: dict, repo_name: str) -> tuple[SessionContext, GitHubSourceControl]:
    """Connect to GitHub and build a fresh session for one command run."""
    client = get_client(require_token(config))
    source = GitHubSourceControl(client.get_repo(repo_name))
    if not config.get("org"):
        # Default the org to the repository owner.
        config = {**config, "org": repo_name.split("/", 1)[0]}
    session = SessionContext(
        resolver=build_resolver(config, client, history=source),
        group_name=config.get("review_group"),
        viewer=get_viewer(client),
        threshold=config.get("approval_threshold", 2),
    )
    return session, source
