"""
Team role checks.

Roles are ranked OWNER > ADMIN > MEMBER > VIEWER. The team's owner always
passes, whatever their membership row says.
"""
from typing import Optional

from .models import MemberStatus, Team, TeamMember, TeamRole

ROLE_LEVELS = {
    TeamRole.OWNER: 4,
    TeamRole.ADMIN: 3,
    TeamRole.MEMBER: 2,
    TeamRole.VIEWER: 1,
}

MANAGER_ROLES = (TeamRole.OWNER, TeamRole.ADMIN)


def get_membership(team: Team, user, active_only: bool = True) -> Optional[TeamMember]:
    members = TeamMember.objects.filter(team=team, user=user)
    if active_only:
        members = members.filter(status=MemberStatus.ACTIVE)
    return members.first()


def check_team_permission(team: Team, user, required_role: str = TeamRole.VIEWER) -> bool:
    """True if the user holds at least required_role in the team."""
    if team.owner_id == user.id:
        return True
    membership = get_membership(team, user)
    if membership is None:
        return False
    return ROLE_LEVELS.get(membership.role, 0) >= ROLE_LEVELS[required_role]


def is_member_or_owner(team: Team, user) -> bool:
    return check_team_permission(team, user, TeamRole.VIEWER)


def is_manager(team: Team, user) -> bool:
    """Owner of the team or an ADMIN member."""
    return check_team_permission(team, user, TeamRole.ADMIN)


def is_team_member(team: Team, user) -> bool:
    """Active membership row, regardless of ownership."""
    return get_membership(team, user) is not None
