"""
Team activity and analytics bookkeeping.

These run as side effects of other actions; failures are logged and never
raised to the caller.
"""
import logging
from datetime import timedelta

from django.db.models import F, Sum
from django.utils import timezone

from .models import (
    ActivityType,
    InvitationStatus,
    MemberStatus,
    TeamAnalytics,
    TeamDocumentActivity,
    TeamMember,
    TeamRole,
)

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(hours=24)
ANALYTICS_HISTORY_DAYS = 30

ANALYTICS_COUNTERS = (
    'documents_uploaded',
    'documents_analyzed',
    'documents_shared',
    'chat_sessions_created',
    'comments_added',
    'active_members',
    'new_members',
)


def update_member_activity(team_id, user_id) -> None:
    try:
        TeamMember.objects.filter(team_id=team_id, user_id=user_id).update(
            last_active_at=timezone.now()
        )
    except Exception as e:
        logger.error(f"Failed to update activity of {user_id} in team {team_id}: {e}")


def update_team_analytics(team_id, **increments) -> None:
    """
    Add to today's counters for a team, creating the row if needed.

    Only positive increments of known counters are applied.
    """
    increments = {
        name: value for name, value in increments.items()
        if name in ANALYTICS_COUNTERS and value and value > 0
    }
    try:
        row, created = TeamAnalytics.objects.get_or_create(
            team_id=team_id,
            date=timezone.now().date(),
            defaults=increments,
        )
        if not created and increments:
            TeamAnalytics.objects.filter(pk=row.pk).update(
                **{name: F(name) + value for name, value in increments.items()}
            )
    except Exception as e:
        logger.error(f"Failed to update analytics of team {team_id}: {e}")


def increment_documents_reviewed(team_id, user_id) -> None:
    """Count a document review for a member and in today's analytics."""
    try:
        TeamMember.objects.filter(team_id=team_id, user_id=user_id).update(
            documents_reviewed=F('documents_reviewed') + 1,
            last_active_at=timezone.now(),
        )
        row, created = TeamAnalytics.objects.get_or_create(
            team_id=team_id,
            date=timezone.now().date(),
            defaults={'documents_analyzed': 1, 'active_members': 1},
        )
        if not created:
            TeamAnalytics.objects.filter(pk=row.pk).update(
                documents_analyzed=F('documents_analyzed') + 1
            )
    except Exception as e:
        logger.error(f"Failed to count review by {user_id} in team {team_id}: {e}")


def record_shared_document_view(user, document) -> None:
    """
    Record that a team member opened a document shared with their team.

    Logs a VIEWED activity on each live share the user can see, and counts
    a review for them in that team.
    """
    now = timezone.now()
    shares = (
        document.team_shares
        .filter(
            team__is_active=True,
            team__members__user=user,
            team__members__status=MemberStatus.ACTIVE,
        )
        .exclude(expires_at__lte=now)
        .distinct()
    )
    for share in shares:
        try:
            TeamDocumentActivity.objects.create(
                team_document=share,
                user=user,
                action=ActivityType.VIEWED,
            )
        except Exception as e:
            logger.error(f"Failed to record view of share {share.id}: {e}")
            continue
        increment_documents_reviewed(share.team_id, user.id)


def get_active_member_count(team_id) -> int:
    since = timezone.now() - ACTIVE_WINDOW
    return TeamMember.objects.filter(
        team_id=team_id,
        status=MemberStatus.ACTIVE,
        last_active_at__gte=since,
    ).count()


def get_team_stats(team) -> dict:
    members = TeamMember.objects.filter(team=team)
    active = members.filter(status=MemberStatus.ACTIVE)
    reviewed = active.aggregate(total=Sum('documents_reviewed'))['total'] or 0
    pending = team.invitations.filter(
        status=InvitationStatus.PENDING,
        expires_at__gt=timezone.now(),
    ).count()
    history = TeamAnalytics.objects.filter(team=team).order_by('-date')[:ANALYTICS_HISTORY_DAYS]

    return {
        'totalMembers': members.count(),
        'activeMembers': get_active_member_count(team.id),
        'adminCount': members.filter(role__in=[TeamRole.OWNER, TeamRole.ADMIN]).count(),
        'totalDocumentsReviewed': reviewed,
        'pendingInvitations': pending,
        'analytics': [row.to_dict() for row in history],
    }
