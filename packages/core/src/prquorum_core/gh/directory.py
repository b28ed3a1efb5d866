"""GitHub organisation teams as a membership Directory.

Groups are teams, identified as ``team:<numeric id>``. A team's members are
its child teams (nested groups) plus its users; users are identified by
login, bots are service accounts.
"""

from __future__ import annotations

import logging

from prquorum_core.capabilities import Directory
from prquorum_core.models import Identity, IdentityKind, MemberRef

logger = logging.getLogger(__name__)

_TEAM_PREFIX = "team:"


def _team_number(group_id: str) -> int:
    if not group_id.startswith(_TEAM_PREFIX):
        raise ValueError(f"Not a team identifier: {group_id!r}")
    return int(group_id[len(_TEAM_PREFIX) :])


class GitHubTeamDirectory(Directory):
    def __init__(self, client, org_name: str):
        self._client = client
        self._org_name = org_name
        self._org = None

    @property
    def org(self):
        if self._org is None:
            self._org = self._client.get_organization(self._org_name)
        return self._org

    def search_by_exact_name(self, name: str) -> Identity | None:
        wanted = name.strip().casefold()
        for team in self.org.get_teams():
            if team.name.casefold() == wanted or team.slug.casefold() == wanted:
                return Identity(
                    id=f"{_TEAM_PREFIX}{team.id}",
                    display_name=team.name,
                    kind=IdentityKind.GROUP,
                    unique_name=f"{self._org_name}/{team.slug}",
                )
        return None

    def get_members(self, group_id: str) -> list[MemberRef]:
        team = self.org.get_team(_team_number(group_id))
        refs = [MemberRef(f"{_TEAM_PREFIX}{child.id}", IdentityKind.GROUP) for child in team.get_teams()]
        for user in team.get_members():
            kind = IdentityKind.SERVICE_ACCOUNT if user.type == "Bot" else IdentityKind.INDIVIDUAL
            refs.append(MemberRef(user.login, kind))
        logger.debug("Team %s has %d member reference(s)", group_id, len(refs))
        return refs

    def resolve_kind(self, identifier: str) -> IdentityKind:
        if identifier.startswith(_TEAM_PREFIX):
            return IdentityKind.GROUP
        user = self._client.get_user(identifier)
        return IdentityKind.SERVICE_ACCOUNT if user.type == "Bot" else IdentityKind.INDIVIDUAL
