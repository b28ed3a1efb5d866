"""Tests for the CLI entry point."""

import json
import subprocess
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner
from github import GithubException

from prquorum_cli.cli import main
from prquorum_cli.render import ratio_label, shorten_title
from prquorum_cli.wiring import build_resolver, open_session
from prquorum_core.config import DEFAULT_CONFIG
from prquorum_core.models import (
    ActivityDescriptor,
    ApprovalRatio,
    Identity,
    ItemError,
    ItemResult,
    PendingReason,
    PullRequestSnapshot,
    ResolutionTier,
    ResolvedReviewGroup,
    ReviewerVote,
    ReviewOutcome,
    VoteStatus,
)
from prquorum_core.session import SessionContext

ME = Identity(id="100", display_name="dana", unique_name="dana")
ALICE = Identity(id="2", display_name="alice", unique_name="alice")
CREATED = datetime(2026, 1, 5, tzinfo=timezone.utc)


def _make_config(github_token="tok", **overrides):
    config = {**DEFAULT_CONFIG, "github_token": github_token, "review_group": "API Reviewers"}
    config.update(overrides)
    return config


def _patch_common(mocker, config=None, token="tok"):
    """Patch load_config and resolve_github_token for most tests."""
    cfg = config or _make_config()
    mocker.patch("prquorum_core.config.load_config", return_value=cfg)
    mocker.patch("prquorum_cli.auth.resolve_github_token", return_value=token)
    return cfg


def _session(tier=ResolutionTier.LIVE, members=("alice", "dana")):
    resolver = MagicMock()
    resolver.resolve.return_value = ResolvedReviewGroup(frozenset(members), tier)
    return SessionContext(resolver, "API Reviewers", viewer=ME)


def _snapshot(n, title="Fix bug", reviewers=()):
    return PullRequestSnapshot(
        id=n,
        author_id="1",
        created_at=CREATED,
        reviewers=tuple(reviewers),
        title=title,
        author_name="author",
    )


def _result(n, status, reason=PendingReason.PENDING_REQUIRED_REVIEWER_APPROVAL, ratio=ApprovalRatio(1, 2)):
    outcome = ReviewOutcome(status, ratio, reason, "Author: Pushed Code")
    return ItemResult(id=n, outcome=outcome, snapshot=_snapshot(n, title=f"PR {n}"))


def _patch_batch(mocker, command, results, session=None):
    session = session or _session()
    mocker.patch(f"prquorum_cli.commands.{command}.open_session", return_value=(session, MagicMock()))
    return mocker.patch(f"prquorum_cli.commands.{command}.run_batch", return_value=results)


class TestCLIValidation:
    def test_missing_github_token(self, mocker):
        _patch_common(mocker, config=_make_config(github_token=None), token=None)

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo"])
        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output

    def test_repo_is_required(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["pending"])
        assert result.exit_code != 0
        assert "--repo" in result.output

    def test_worker_count_is_bounded(self, mocker):
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--workers", "64"])
        assert result.exit_code != 0

    def test_resolved_token_is_stored_in_config(self, mocker):
        cfg = _patch_common(mocker, config=_make_config(github_token=None), token="from-gh")
        _patch_batch(mocker, "pending", [])

        CliRunner().invoke(main, ["pending", "--repo", "owner/repo"])
        assert cfg["github_token"] == "from-gh"


class TestPendingCommand:
    def test_filters_to_viewer_pending_items(self, mocker):
        _patch_common(mocker)
        _patch_batch(
            mocker,
            "pending",
            [
                _result(1, VoteStatus.NO_VOTE),
                _result(2, VoteStatus.APPROVED),
                _result(3, VoteStatus.NOT_A_REVIEWER),
                _result(4, VoteStatus.WAITING_FOR_AUTHOR),
            ],
        )

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert [item["id"] for item in payload["items"]] == [1, 4]
        assert payload["items"][0]["url"] == "https://github.com/owner/repo/pull/1"
        assert payload["review_group"] == {"member_count": 2, "tier": "live"}

    def test_passes_viewer_filter_and_limits(self, mocker):
        _patch_common(mocker, config=_make_config(max_workers=4, timeout=30))
        mock_run = _patch_batch(mocker, "pending", [])

        CliRunner().invoke(main, ["pending", "--repo", "owner/repo"])
        _, args, kwargs = mock_run.mock_calls[0]
        assert args[2].reviewer == "dana"
        assert args[2].state == "open"
        assert kwargs["max_workers"] == 4
        assert kwargs["timeout"] == 30

    def test_cli_workers_override_config(self, mocker):
        _patch_common(mocker, config=_make_config(max_workers=4))
        mock_run = _patch_batch(mocker, "pending", [])

        CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--workers", "12", "--timeout", "5"])
        assert mock_run.call_args.kwargs["max_workers"] == 12
        assert mock_run.call_args.kwargs["timeout"] == 5.0

    def test_unknown_ratio_in_json(self, mocker):
        _patch_common(mocker)
        _patch_batch(
            mocker,
            "pending",
            [_result(1, VoteStatus.NO_VOTE, ratio=None)],
            session=_session(tier=ResolutionTier.UNRESOLVED, members=()),
        )

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--json"])
        payload = json.loads(result.output)
        assert payload["items"][0]["approval_ratio"] is None
        assert payload["review_group"]["tier"] == "unresolved"

    def test_errors_are_reported(self, mocker):
        _patch_common(mocker)
        _patch_batch(mocker, "pending", [_result(1, VoteStatus.NO_VOTE), ItemError(2, "failed", "RuntimeError: boom")])

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--json"])
        payload = json.loads(result.output)
        assert payload["items"][1] == {
            "id": 2,
            "error": "failed",
            "message": "RuntimeError: boom",
            "url": "https://github.com/owner/repo/pull/2",
        }

    def test_errors_are_printed(self, mocker):
        _patch_common(mocker)
        _patch_batch(mocker, "pending", [ItemError(2, "cancelled", "analysis was cancelled")])

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo"])
        assert result.exit_code == 0
        assert "could not be analyzed" in result.output
        assert "cancelled" in result.output

    def test_empty_message(self, mocker):
        _patch_common(mocker)
        _patch_batch(mocker, "pending", [_result(1, VoteStatus.APPROVED)])

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo"])
        assert result.exit_code == 0
        assert "No pull requests are waiting on your review." in result.output

    def test_short_links_in_json(self, mocker):
        _patch_common(mocker, config=_make_config(short_url_base="http://go"))
        _patch_batch(mocker, "pending", [_result(62, VoteStatus.NO_VOTE)])

        result = CliRunner().invoke(main, ["pending", "--repo", "owner/repo", "--json"])
        assert json.loads(result.output)["items"][0]["url"] == "http://go/pr/10"


class TestApprovedCommand:
    def test_keeps_only_viewer_approvals(self, mocker):
        _patch_common(mocker)
        _patch_batch(
            mocker,
            "approved",
            [
                _result(1, VoteStatus.APPROVED, PendingReason.POLICY_OR_BUILD_BLOCKED),
                _result(2, VoteStatus.APPROVED_WITH_SUGGESTIONS),
                _result(3, VoteStatus.NO_VOTE),
            ],
        )

        result = CliRunner().invoke(main, ["approved", "--repo", "owner/repo", "--json"])
        assert result.exit_code == 0
        items = json.loads(result.output)["items"]
        assert [item["id"] for item in items] == [1]
        assert items[0]["pending_reason"] == "policy_or_build_blocked"

    def test_prints_legend(self, mocker):
        _patch_common(mocker)
        _patch_batch(mocker, "approved", [_result(1, VoteStatus.APPROVED, PendingReason.REJECTED)])

        result = CliRunner().invoke(main, ["approved", "--repo", "owner/repo"])
        assert result.exit_code == 0
        assert "REJ=Rejected" in result.output

    def test_empty_message(self, mocker):
        _patch_common(mocker)
        _patch_batch(mocker, "approved", [])

        result = CliRunner().invoke(main, ["approved", "--repo", "owner/repo"])
        assert "No approved pull requests are waiting to be merged." in result.output


class TestDiagnoseCommand:
    def _patch(self, mocker, snapshot=None, activity=None):
        session = _session()
        source = MagicMock()
        source.get_item.return_value = snapshot or _snapshot(
            73, reviewers=[ReviewerVote(ALICE, 10, True), ReviewerVote(ME, 0, True)]
        )
        source.get_activity.return_value = activity
        mocker.patch("prquorum_cli.commands.diagnose.open_session", return_value=(session, source))
        return source

    def test_accepts_short_id(self, mocker):
        _patch_common(mocker)
        source = self._patch(mocker)

        result = CliRunner().invoke(main, ["diagnose", "--repo", "owner/repo", "--pr", "1b", "--json"])
        assert result.exit_code == 0
        source.get_item.assert_called_once_with(73)

    def test_json_breakdown(self, mocker):
        _patch_common(mocker)
        self._patch(mocker, activity=ActivityDescriptor("2", "Added Comment"))

        result = CliRunner().invoke(main, ["diagnose", "--repo", "owner/repo", "--pr", "73", "--json"])
        payload = json.loads(result.output)
        assert payload["vote_status"] == "no_vote"
        assert payload["approval_ratio"] == "1/2"
        assert payload["pending_reason"] == "pending_required_reviewer_approval"
        assert payload["last_change"] == "Reviewer: Approved"
        assert [r["in_group"] for r in payload["reviewers"]] == [True, True]

    def test_invalid_reference(self, mocker):
        _patch_common(mocker)
        self._patch(mocker)

        result = CliRunner().invoke(main, ["diagnose", "--repo", "owner/repo", "--pr", "pr-12"])
        assert result.exit_code != 0
        assert "--pr" in result.output

    def test_missing_pull_request(self, mocker):
        _patch_common(mocker)
        source = self._patch(mocker)
        source.get_item.side_effect = GithubException(404, {"message": "Not Found"}, None)

        result = CliRunner().invoke(main, ["diagnose", "--repo", "owner/repo", "--pr", "9"])
        assert result.exit_code != 0
        assert "PR #9 not found" in result.output

    def test_activity_failure_is_a_warning(self, mocker):
        _patch_common(mocker)
        source = self._patch(mocker)
        source.get_activity.side_effect = GithubException(500, {"message": "oops"}, None)

        result = CliRunner().invoke(main, ["diagnose", "--repo", "owner/repo", "--pr", "73", "--json"])
        assert result.exit_code == 0
        assert "Could not read recent activity" in result.output


class TestGroupCommand:
    def _patch(self, mocker, resolved):
        mocker.patch("prquorum_cli.commands.group.get_client", return_value=MagicMock())
        resolver = MagicMock()
        resolver.resolve.return_value = resolved
        return mocker.patch("prquorum_cli.commands.group.build_resolver", return_value=resolver)

    def test_json_diagnostics(self, mocker):
        _patch_common(mocker)
        self._patch(mocker, ResolvedReviewGroup(frozenset({"bob", "alice"}), ResolutionTier.STATIC_FALLBACK))

        result = CliRunner().invoke(main, ["group", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "group": "API Reviewers",
            "member_count": 2,
            "tier": "static_fallback",
            "members": ["alice", "bob"],
        }

    def test_name_and_org_override_config(self, mocker):
        _patch_common(mocker)
        mock_build = self._patch(mocker, ResolvedReviewGroup(frozenset(), ResolutionTier.UNRESOLVED))

        result = CliRunner().invoke(main, ["group", "--name", "Core", "--org", "acme", "--json"])
        assert json.loads(result.output)["group"] == "Core"
        assert mock_build.call_args.args[0]["org"] == "acme"
        mock_build.return_value.resolve.assert_called_once_with("Core")

    def test_requires_a_group_name(self, mocker):
        _patch_common(mocker, config=_make_config(review_group=None))

        result = CliRunner().invoke(main, ["group"])
        assert result.exit_code != 0
        assert "No review group configured" in result.output


class TestCollectCommand:
    def _history(self, mocker, items):
        mocker.patch("prquorum_cli.commands.collect.get_client", return_value=MagicMock())
        source_cls = mocker.patch("prquorum_cli.commands.collect.GitHubSourceControl")
        source_cls.return_value.list_recent_closed_items.return_value = items
        return source_cls.return_value

    def _items(self):
        carol = Identity(id="3", display_name="carol", unique_name="carol")
        bot = Identity(id="4", display_name="ci-bot", unique_name="ci-bot")
        return [
            _snapshot(n, reviewers=[ReviewerVote(carol, 10, True), ReviewerVote(bot, 0, True)]) for n in range(4)
        ] + [_snapshot(9, reviewers=[ReviewerVote(ALICE, 10, True)])]

    def test_writes_reviewers_and_updates_config(self, mocker, tmp_path):
        _patch_common(mocker)
        source = self._history(mocker, self._items())
        output = tmp_path / "reviewers.yml"
        config_path = tmp_path / ".prquorum.yml"
        config_path.write_text("review_group: API Reviewers\n")

        result = CliRunner().invoke(
            main,
            ["--config", str(config_path), "collect", "--repo", "owner/repo", "--output", str(output)],
        )

        assert result.exit_code == 0
        source.list_recent_closed_items.assert_called_once_with(500)
        data = yaml.safe_load(output.read_text())
        assert [r["login"] for r in data["reviewers"]] == ["carol"]
        assert data["reviewers"][0]["pull_requests"] == 4
        config = yaml.safe_load(config_path.read_text())
        assert config == {"review_group": "API Reviewers", "reviewers_file": str(output)}

    def test_no_update_config(self, mocker, tmp_path):
        _patch_common(mocker)
        self._history(mocker, self._items())
        config_path = tmp_path / ".prquorum.yml"

        CliRunner().invoke(
            main,
            [
                "--config", str(config_path),
                "collect", "--repo", "owner/repo", "--output", str(tmp_path / "r.yml"), "--no-update-config",
            ],
        )
        assert not config_path.exists()

    def test_nothing_written_below_threshold(self, mocker, tmp_path):
        _patch_common(mocker, config=_make_config(min_occurrences=10))
        self._history(mocker, self._items())
        output = tmp_path / "reviewers.yml"

        result = CliRunner().invoke(main, ["collect", "--repo", "owner/repo", "--output", str(output), "--limit", "50"])
        assert result.exit_code == 0
        assert "Nothing written" in result.output
        assert not output.exists()


class TestLinkCommand:
    def test_encode(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["link", "12041652"])
        assert result.exit_code == 0
        assert result.output.strip() == "OwAc"

    def test_decode(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["link", "--decode", "OwAc"])
        assert result.output.strip() == "12041652"

    def test_decode_digits_passes_through(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["link", "--decode", "4127"])
        assert result.output.strip() == "4127"

    def test_encode_rejects_non_numbers(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["link", "abc"])
        assert result.exit_code != 0
        assert "non-negative integer" in result.output

    def test_prints_urls_for_repo(self, mocker):
        _patch_common(mocker, config=_make_config(short_url_base="http://go"))
        result = CliRunner().invoke(main, ["link", "62", "--repo", "owner/repo"])
        assert "https://github.com/owner/repo/pull/62" in result.output
        assert "http://go/pr/10" in result.output


class TestRender:
    def test_unknown_ratio_label(self):
        assert ratio_label(_result(1, VoteStatus.NO_VOTE, ratio=None)) == "?/?"
        assert ratio_label(_result(1, VoteStatus.NO_VOTE, ratio=ApprovalRatio(0, 0))) == "0/0"

    def test_shorten_title(self):
        assert shorten_title("short") == "short"
        assert shorten_title("x" * 50, 10) == "xxxxxxx..."
        assert shorten_title("a\n  b") == "a b"


# ---------------------------------------------------------------------------
# wiring.py
# ---------------------------------------------------------------------------


class TestWiring:
    def test_missing_reviewers_file_is_skipped(self, tmp_path):
        config = _make_config(reviewers_file=str(tmp_path / "missing.yml"), static_reviewers=["alice"])
        resolved = build_resolver(config, MagicMock()).resolve(None)
        assert resolved.tier is ResolutionTier.STATIC_FALLBACK
        assert resolved.members == frozenset({"alice"})

    def test_heuristic_can_be_disabled(self):
        resolver = build_resolver(_make_config(heuristic=False), MagicMock(), history=MagicMock())
        assert resolver.resolve(None).tier is ResolutionTier.UNRESOLVED

    def test_open_session_defaults_org_to_repo_owner(self, mocker):
        client = MagicMock()
        mocker.patch("prquorum_cli.wiring.get_client", return_value=client)
        mocker.patch("prquorum_cli.wiring.get_viewer", return_value=ME)
        build = mocker.patch("prquorum_cli.wiring.build_resolver")

        session, _ = open_session(_make_config(), "acme/api")

        assert build.call_args.args[0]["org"] == "acme"
        client.get_repo.assert_called_once_with("acme/api")
        assert session.viewer == ME
        assert session.group_name == "API Reviewers"
        assert session.threshold == 2


# ---------------------------------------------------------------------------
# auth.py
# ---------------------------------------------------------------------------


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.delenv("PRQUORUM_GITHUB_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_dedicated_token_wins(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.setenv("PRQUORUM_GITHUB_TOKEN", "org-token")
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "org-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.delenv("PRQUORUM_GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            result = resolve_github_token()
        assert result == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.delenv("PRQUORUM_GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.delenv("PRQUORUM_GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from prquorum_cli.auth import resolve_github_token

        monkeypatch.delenv("PRQUORUM_GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            result = resolve_github_token()
        assert result is None
