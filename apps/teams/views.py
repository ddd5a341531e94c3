"""
Team collaboration endpoints.

Teams:
- GET/POST          /api/teams
- GET/PATCH/DELETE  /api/teams/<id>
- GET               /api/teams/<id>/analytics

Members:
- GET/PATCH/DELETE  /api/teams/<id>/members
- PATCH/DELETE      /api/teams/<id>/members/<memberId>

Invitations:
- GET/POST/DELETE   /api/teams/<id>/invitations
- POST              /api/teams/<id>/invitations/<invitationId>/resend
- GET               /api/teams/invitations/<token>   (public)
- POST              /api/teams/invitations/accept
- POST              /api/teams/invitations/decline

Shared documents:
- GET/POST/DELETE   /api/teams/<id>/documents
- GET/POST/DELETE   /api/teams/<id>/documents/<teamDocumentId>/comments
"""
import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Case, Count, IntegerField, Value, When
from django.http import JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.authn.audit import record_audit
from apps.authn.middleware import auth_required
from apps.authn.models import AuditAction, User
from apps.core.http import error_response, invalid_json, parse_bool, parse_optional_datetime, read_json
from apps.docs.models import Document
from apps.notifications.email import EmailDeliveryError, send_team_invitation_email
from apps.notifications.models import NotificationType
from apps.notifications.services import notify, notify_many
from .models import (
    ActivityType,
    InvitationStatus,
    MemberStatus,
    SharePermission,
    Team,
    TeamDocument,
    TeamDocumentActivity,
    TeamDocumentComment,
    TeamInvitation,
    TeamMember,
    TeamRole,
)
from .permissions import MANAGER_ROLES, get_membership, is_manager, is_member_or_owner, is_team_member
from .services import (
    ANALYTICS_HISTORY_DAYS,
    get_team_stats,
    update_member_activity,
    update_team_analytics,
)

logger = logging.getLogger(__name__)

ROLE_ORDER = Case(
    When(role=TeamRole.OWNER, then=Value(0)),
    When(role=TeamRole.ADMIN, then=Value(1)),
    When(role=TeamRole.MEMBER, then=Value(2)),
    When(role=TeamRole.VIEWER, then=Value(3)),
    default=Value(4),
    output_field=IntegerField(),
)

COMMENT_PERMISSIONS = (SharePermission.COMMENT, SharePermission.EDIT, SharePermission.ADMIN)

# Team fields the update endpoint accepts, mapped to model attributes
TEAM_UPDATE_FIELDS = {
    'name': 'name',
    'description': 'description',
    'color': 'color',
    'maxMembers': 'max_members',
    'allowInvites': 'allow_invites',
    'requireApproval': 'require_approval',
    'isActive': 'is_active',
}

TEAM_NOT_FOUND = 'Team not found'
ACCESS_DENIED = 'Access denied'


def _parse_uuid(value):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _invitation_expiry():
    return timezone.now() + timedelta(days=settings.INVITATION_TTL_DAYS)


def _display_name(user: User) -> str:
    return user.full_name or user.email


def _pending_invitations(team: Team):
    return team.invitations.filter(
        status=InvitationStatus.PENDING,
        expires_at__gt=timezone.now(),
    )


def _team_summary(team: Team, user_role: str) -> dict:
    data = team.to_dict()
    members = team.members.select_related('user').order_by('joined_at')
    data.update({
        'owner': team.owner.to_summary(),
        'members': [m.to_dict() for m in members],
        'userRole': user_role,
        '_count': {
            'members': len(members),
            'invitations': _pending_invitations(team).count(),
        },
    })
    return data


def _user_role(team: Team, user):
    if team.owner_id == user.id:
        return TeamRole.OWNER
    membership = get_membership(team, user)
    return membership.role if membership else None


def _validate_team_fields(body: dict):
    """
    Check the team fields present in a create or update body.

    Returns:
        An error message, or None if every present value is acceptable
    """
    if 'name' in body and (not isinstance(body['name'], str) or not body['name'].strip()):
        return 'Team name is required'
    if 'maxMembers' in body:
        value = body['maxMembers']
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return 'maxMembers must be a positive integer'
    if 'color' in body and not isinstance(body['color'], str):
        return 'color must be a string'
    return None


# =============================================================================
# Teams
# =============================================================================

@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamsView(View):

    def get(self, request):
        """Teams the caller owns, then teams they are an active member of."""
        user = request.auth_user

        owned = Team.objects.filter(owner=user).select_related('owner').order_by('-created_at')
        memberships = (
            TeamMember.objects
            .filter(user=user, status=MemberStatus.ACTIVE)
            .exclude(team__owner=user)
            .select_related('team', 'team__owner')
            .order_by('-joined_at')
        )

        teams = [_team_summary(team, TeamRole.OWNER) for team in owned]
        teams += [_team_summary(m.team, m.role) for m in memberships]

        return JsonResponse({'teams': teams})

    def post(self, request):
        body = read_json(request)
        if body is None:
            return invalid_json()

        user = request.auth_user
        if not isinstance(body.get('name'), str) or not body['name'].strip():
            return error_response('Team name is required')
        error = _validate_team_fields(body)
        if error:
            return error_response(error)

        with transaction.atomic():
            team = Team(owner=user, name=body['name'].strip())
            if body.get('description') is not None:
                team.description = str(body['description'])
            if body.get('color'):
                team.color = body['color']
            if 'maxMembers' in body:
                team.max_members = body['maxMembers']
            team.allow_invites = parse_bool(body.get('allowInvites'), default=True)
            team.require_approval = parse_bool(body.get('requireApproval'), default=True)
            team.save()

            TeamMember.objects.create(
                team=team,
                user=user,
                role=TeamRole.OWNER,
                status=MemberStatus.ACTIVE,
                last_active_at=timezone.now(),
            )

        record_audit(request, AuditAction.TEAM_CREATED, 'team', team.id, {'name': team.name})
        logger.info(f"Team {team.id} created by {user.id}")

        return JsonResponse({'team': _team_summary(team, TeamRole.OWNER)}, status=201)


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamDetailView(View):

    def get(self, request, team_id):
        user = request.auth_user
        team = Team.objects.select_related('owner').filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_member_or_owner(team, user):
            return error_response(ACCESS_DENIED, 403)

        data = _team_summary(team, _user_role(team, user))
        data['invitations'] = [
            i.to_dict() for i in _pending_invitations(team).select_related('invited_by')
        ]
        data['analytics'] = [
            row.to_dict() for row in team.analytics.order_by('-date')[:ANALYTICS_HISTORY_DAYS]
        ]
        update_member_activity(team.id, user.id)

        return JsonResponse({'team': data})

    def patch(self, request, team_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        user = request.auth_user
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_manager(team, user):
            return error_response('Only team owners and admins can update the team', 403)

        error = _validate_team_fields(body)
        if error:
            return error_response(error)

        changed = []
        for field, attr in TEAM_UPDATE_FIELDS.items():
            if field not in body:
                continue
            value = body[field]
            if field == 'name':
                value = value.strip()
            elif attr in ('allow_invites', 'require_approval', 'is_active'):
                value = parse_bool(value)
            setattr(team, attr, value)
            changed.append(field)

        if changed:
            team.save()
            record_audit(request, AuditAction.TEAM_UPDATED, 'team', team.id, {'fields': changed})

        return JsonResponse({'team': _team_summary(team, _user_role(team, user))})

    def delete(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if team.owner_id != request.auth_user.id:
            return error_response('Only the team owner can delete the team', 403)

        record_audit(request, AuditAction.TEAM_DELETED, 'team', team.id, {'name': team.name})
        team.delete()

        return JsonResponse({'message': 'Team deleted successfully'})


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def team_analytics(request, team_id):
    team = Team.objects.filter(id=team_id).first()
    if team is None:
        return error_response(TEAM_NOT_FOUND, 404)
    if not is_member_or_owner(team, request.auth_user):
        return error_response(ACCESS_DENIED, 403)

    return JsonResponse({'stats': get_team_stats(team)})


# =============================================================================
# Members
# =============================================================================

def _update_member(request, team: Team, member_id, body: dict) -> JsonResponse:
    if not is_manager(team, request.auth_user):
        return error_response('Only team owners and admins can update members', 403)

    member_uuid = _parse_uuid(member_id)
    member = (
        TeamMember.objects.select_related('user').filter(id=member_uuid, team=team).first()
        if member_uuid else None
    )
    if member is None:
        return error_response('Member not found', 404)

    role = body.get('role')
    status = body.get('status')

    if role is not None:
        if role not in TeamRole.values:
            return error_response(f"role must be one of: {', '.join(TeamRole.values)}")
        if member.role == TeamRole.OWNER and role != TeamRole.OWNER:
            return error_response('Cannot change the role of the team owner')
        if role == TeamRole.OWNER and member.role != TeamRole.OWNER:
            return error_response('Team ownership cannot be assigned')
        member.role = role

    if status is not None:
        if status not in MemberStatus.values:
            return error_response(f"status must be one of: {', '.join(MemberStatus.values)}")
        member.status = status
        if status == MemberStatus.ACTIVE:
            member.last_active_at = timezone.now()

    member.save()
    record_audit(
        request, AuditAction.TEAM_MEMBER_UPDATED, 'team_member', member.id,
        {'team_id': str(team.id), 'role': member.role, 'status': member.status},
    )

    return JsonResponse({'member': member.to_dict()})


def _remove_member(request, team: Team, member_id) -> JsonResponse:
    if not is_manager(team, request.auth_user):
        return error_response('Only team owners and admins can remove members', 403)

    member_uuid = _parse_uuid(member_id)
    member = TeamMember.objects.filter(id=member_uuid, team=team).first() if member_uuid else None
    if member is None:
        return error_response('Member not found', 404)
    if member.role == TeamRole.OWNER:
        return error_response('Cannot remove the team owner')

    record_audit(
        request, AuditAction.TEAM_MEMBER_REMOVED, 'team_member', member.id,
        {'team_id': str(team.id), 'user_id': str(member.user_id)},
    )
    member.delete()

    return JsonResponse({'message': 'Member removed successfully'})


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamMembersView(View):

    def get(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_member_or_owner(team, request.auth_user):
            return error_response(ACCESS_DENIED, 403)

        members = (
            team.members
            .select_related('user')
            .annotate(role_order=ROLE_ORDER)
            .order_by('role_order', 'joined_at')
        )
        return JsonResponse({'members': [m.to_dict() for m in members]})

    def patch(self, request, team_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not body.get('memberId'):
            return error_response('memberId is required')

        return _update_member(request, team, body['memberId'], body)

    def delete(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)

        member_id = request.GET.get('memberId')
        if not member_id:
            return error_response('memberId is required')

        return _remove_member(request, team, member_id)


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamMemberDetailView(View):

    def patch(self, request, team_id, member_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)

        return _update_member(request, team, member_id, body)

    def delete(self, request, team_id, member_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)

        return _remove_member(request, team, member_id)


# =============================================================================
# Invitations
# =============================================================================

def _send_invitation_email(invitation: TeamInvitation, team: Team, inviter: User) -> None:
    try:
        send_team_invitation_email(
            to=invitation.email,
            team_name=team.name,
            inviter_name=_display_name(inviter),
            role=invitation.role,
            token=invitation.token,
            message=invitation.message,
        )
    except EmailDeliveryError as e:
        logger.error(f"Failed to email invitation {invitation.id} to {invitation.email}: {e}")


def _at_capacity(team: Team) -> bool:
    return team.members.count() >= team.max_members


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamInvitationsView(View):

    def get(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_member_or_owner(team, request.auth_user):
            return error_response(ACCESS_DENIED, 403)

        invitations = team.invitations.select_related('invited_by').order_by('-created_at')
        return JsonResponse({'invitations': [i.to_dict() for i in invitations]})

    def post(self, request, team_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        user = request.auth_user
        email = body.get('email')
        if not isinstance(email, str) or '@' not in email:
            return error_response('A valid email is required')
        email = email.strip().lower()

        role = body.get('role') or TeamRole.MEMBER
        if role not in TeamRole.values or role == TeamRole.OWNER:
            return error_response('role must be one of: ADMIN, MEMBER, VIEWER')

        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_manager(team, user):
            return error_response('Only team owners and admins can invite members', 403)

        if _at_capacity(team):
            return error_response('Team has reached its member limit')
        if team.members.filter(user__email__iexact=email).exists():
            return error_response('User is already a member of this team')
        if _pending_invitations(team).filter(email__iexact=email).exists():
            return error_response('An invitation is already pending for this email')

        invited_user = User.objects.filter(email__iexact=email).first()
        invitation = TeamInvitation.objects.create(
            team=team,
            email=email,
            role=role,
            message=body.get('message') or None,
            expires_at=_invitation_expiry(),
            invited_by=user,
            invited_user=invited_user,
        )

        _send_invitation_email(invitation, team, user)

        record_audit(
            request, AuditAction.TEAM_INVITATION_SENT, 'team_invitation', invitation.id,
            {'team_id': str(team.id), 'email': email, 'role': role},
        )

        if invited_user is not None:
            notify(
                invited_user,
                NotificationType.TEAM_INVITATION,
                title=f"Invitation to join {team.name}",
                message=f"{_display_name(user)} invited you to join {team.name} as {role.lower()}",
                link=f"/teams/accept-invitation?token={invitation.token}",
                action_label='View invitation',
                metadata={'teamId': str(team.id), 'invitationId': str(invitation.id)},
            )

        return JsonResponse({'invitation': invitation.to_dict()}, status=201)

    def delete(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_manager(team, request.auth_user):
            return error_response('Only team owners and admins can cancel invitations', 403)

        invitation_id = _parse_uuid(request.GET.get('invitationId'))
        if invitation_id is None:
            return error_response('invitationId is required')

        invitation = team.invitations.filter(id=invitation_id).first()
        if invitation is None:
            return error_response('Invitation not found', 404)

        invitation.status = InvitationStatus.CANCELLED
        invitation.save(update_fields=['status'])
        record_audit(
            request, AuditAction.TEAM_INVITATION_CANCELLED, 'team_invitation', invitation.id,
            {'team_id': str(team.id)},
        )

        return JsonResponse({'message': 'Invitation cancelled'})


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
def resend_invitation(request, team_id, invitation_id):
    user = request.auth_user
    team = Team.objects.filter(id=team_id).first()
    if team is None:
        return error_response(TEAM_NOT_FOUND, 404)
    if not is_manager(team, user):
        return error_response('Only team owners and admins can resend invitations', 403)

    invitation = team.invitations.select_related('invited_by').filter(id=invitation_id).first()
    if invitation is None:
        return error_response('Invitation not found', 404)
    if invitation.status != InvitationStatus.PENDING:
        return error_response('Only pending invitations can be resent')

    invitation.expires_at = _invitation_expiry()
    invitation.save(update_fields=['expires_at'])
    _send_invitation_email(invitation, team, user)

    return JsonResponse({'message': 'Invitation resent', 'invitation': invitation.to_dict()})


def _expire(invitation: TeamInvitation) -> None:
    if invitation.status == InvitationStatus.PENDING:
        invitation.status = InvitationStatus.EXPIRED
        invitation.save(update_fields=['status'])


@csrf_exempt
@require_http_methods(["GET"])
def invitation_by_token(request, token):
    """Public lookup used by the accept-invitation page."""
    invitation = (
        TeamInvitation.objects
        .select_related('team', 'invited_by')
        .filter(token=token)
        .first()
    )
    if invitation is None:
        return error_response('Invitation not found', 404)

    if invitation.expires_at <= timezone.now():
        _expire(invitation)
        return error_response('Invitation has expired')

    if invitation.status != InvitationStatus.PENDING:
        return error_response(f"Invitation has already been {invitation.status.lower()}")

    team = invitation.team
    data = invitation.to_dict()
    data['team'] = {
        'id': str(team.id),
        'name': team.name,
        'description': team.description,
        'color': team.color,
        'memberCount': team.members.count(),
    }

    return JsonResponse({'invitation': data})


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
def accept_invitation(request):
    body = read_json(request)
    if body is None:
        return invalid_json()

    user = request.auth_user
    token = body.get('token')
    if not token:
        return error_response('Invitation token is required')

    invitation = TeamInvitation.objects.select_related('team').filter(token=token).first()
    if invitation is None:
        return error_response('Invitation not found', 404)
    if invitation.status != InvitationStatus.PENDING:
        return error_response(f"Invitation has already been {invitation.status.lower()}")
    if invitation.expires_at <= timezone.now():
        _expire(invitation)
        return error_response('Invitation has expired')
    if invitation.email.lower() != user.email.lower():
        return error_response('This invitation was sent to a different email address')

    team = invitation.team
    if _at_capacity(team):
        return error_response('Team has reached its member limit')
    if team.members.filter(user=user).exists():
        return error_response('You are already a member of this team')

    now = timezone.now()
    with transaction.atomic():
        member = TeamMember.objects.create(
            team=team,
            user=user,
            role=invitation.role,
            status=MemberStatus.ACTIVE,
            invited_by_id=invitation.invited_by_id,
            last_active_at=now,
        )
        invitation.status = InvitationStatus.ACCEPTED
        invitation.responded_at = now
        invitation.invited_user = user
        invitation.save(update_fields=['status', 'responded_at', 'invited_user'])

    record_audit(
        request, AuditAction.TEAM_MEMBER_ADDED, 'team_member', member.id,
        {'team_id': str(team.id), 'role': member.role, 'invitation_id': str(invitation.id)},
    )

    notify(
        team.owner,
        NotificationType.TEAM_INVITATION_ACCEPTED,
        title='Invitation accepted',
        message=f"{_display_name(user)} joined {team.name}",
        link=f"/teams/{team.id}",
        action_label='View team',
        metadata={'teamId': str(team.id), 'memberId': str(member.id)},
    )
    update_team_analytics(team.id, new_members=1)

    return JsonResponse({
        'message': 'Invitation accepted',
        'team': team.to_dict(),
        'member': member.to_dict(),
    })


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
def decline_invitation(request):
    body = read_json(request)
    if body is None:
        return invalid_json()

    token = body.get('token')
    if not token:
        return error_response('Invitation token is required')

    invitation = TeamInvitation.objects.filter(
        token=token,
        status=InvitationStatus.PENDING,
        email__iexact=request.auth_user.email,
    ).first()
    if invitation is None:
        return error_response('Invitation not found', 404)

    invitation.status = InvitationStatus.DECLINED
    invitation.responded_at = timezone.now()
    invitation.save(update_fields=['status', 'responded_at'])

    return JsonResponse({'message': 'Invitation declined'})


# =============================================================================
# Shared documents
# =============================================================================

def _other_members(team: Team, user):
    return [
        m.user for m in
        team.members.select_related('user').filter(status=MemberStatus.ACTIVE).exclude(user=user)
    ]


def _can_moderate(team: Team, user, author_id) -> bool:
    """Authors may remove their own items; ADMIN and OWNER members anyone's."""
    if author_id == user.id or team.owner_id == user.id:
        return True
    membership = get_membership(team, user)
    return membership is not None and membership.role in MANAGER_ROLES


def _document_summary(document: Document) -> dict:
    return {
        'id': str(document.id),
        'originalFileName': document.original_file_name,
        'mimeType': document.mime_type,
        'fileSize': document.file_size,
        'status': document.status,
        'riskLevel': document.risk_level,
        'overallRiskScore': document.overall_risk_score,
        'analyzedAt': document.analyzed_at.isoformat() if document.analyzed_at else None,
    }


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamDocumentsView(View):

    def get(self, request, team_id):
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_team_member(team, request.auth_user):
            return error_response(ACCESS_DENIED, 403)

        shares = (
            team.documents
            .select_related('document', 'shared_by')
            .annotate(
                comment_count=Count('comments', distinct=True),
                activity_count=Count('activities', distinct=True),
            )
            .order_by('-shared_at')
        )

        documents = []
        for share in shares:
            data = share.to_dict()
            data['document'] = _document_summary(share.document)
            data['_count'] = {'comments': share.comment_count, 'activities': share.activity_count}
            documents.append(data)

        return JsonResponse({'documents': documents})

    def post(self, request, team_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        user = request.auth_user
        document_id = _parse_uuid(body.get('documentId'))
        if document_id is None:
            return error_response('documentId is required')

        permission = body.get('permission') or SharePermission.VIEW
        if permission not in SharePermission.values:
            return error_response(f"permission must be one of: {', '.join(SharePermission.values)}")

        try:
            expires_at = parse_optional_datetime(body.get('expiresAt'))
        except ValueError:
            return error_response('expiresAt must be an ISO-8601 datetime')

        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)
        if not is_team_member(team, user):
            return error_response(ACCESS_DENIED, 403)

        document = Document.objects.filter(id=document_id).first()
        if document is None:
            return error_response('Document not found', 404)
        if document.owner_id != user.id:
            return error_response('You can only share your own documents', 403)
        if team.documents.filter(document=document).exists():
            return error_response('Document is already shared with this team')

        with transaction.atomic():
            share = TeamDocument.objects.create(
                team=team,
                document=document,
                shared_by=user,
                permission=permission,
                document_name=document.original_file_name,
                document_type=document.document_type or document.mime_type,
                document_size=document.file_size,
                can_download=parse_bool(body.get('canDownload'), default=True),
                can_share=parse_bool(body.get('canShare'), default=False),
                expires_at=expires_at,
            )
            TeamDocumentActivity.objects.create(
                team_document=share,
                user=user,
                action=ActivityType.SHARED,
                details={'permission': permission},
            )

        notify_many(
            _other_members(team, user),
            NotificationType.DOCUMENT_SHARED,
            title=f"New document in {team.name}",
            message=f"{_display_name(user)} shared {document.original_file_name}",
            link=f"/analysis/{document.id}",
            action_label='View document',
            metadata={'teamId': str(team.id), 'teamDocumentId': str(share.id)},
        )
        update_team_analytics(team.id, documents_shared=1)
        update_member_activity(team.id, user.id)

        data = share.to_dict()
        data['document'] = _document_summary(document)
        return JsonResponse({'teamDocument': data}, status=201)

    def delete(self, request, team_id):
        user = request.auth_user
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return error_response(TEAM_NOT_FOUND, 404)

        share_id = _parse_uuid(request.GET.get('teamDocumentId'))
        if share_id is None:
            return error_response('teamDocumentId is required')

        share = team.documents.filter(id=share_id).first()
        if share is None:
            return error_response('Shared document not found', 404)
        if not _can_moderate(team, user, share.shared_by_id):
            return error_response('Only the sharer or a team admin can remove this document', 403)

        TeamDocumentActivity.objects.create(
            team_document=share,
            user=user,
            action=ActivityType.REMOVED,
            details={'documentId': str(share.document_id)},
        )
        logger.info(f"Share {share.id} of document {share.document_id} removed from team {team.id}")
        share.delete()

        return JsonResponse({'message': 'Document removed from team'})


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class TeamDocumentCommentsView(View):

    def _load(self, request, team_id, team_document_id):
        """Returns (team, share, error response)."""
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            return None, None, error_response(TEAM_NOT_FOUND, 404)
        if not is_team_member(team, request.auth_user):
            return None, None, error_response(ACCESS_DENIED, 403)
        share = team.documents.filter(id=team_document_id).first()
        if share is None:
            return None, None, error_response('Shared document not found', 404)
        return team, share, None

    def get(self, request, team_id, team_document_id):
        team, share, error = self._load(request, team_id, team_document_id)
        if error:
            return error

        comments = share.comments.select_related('user').order_by('created_at')
        update_member_activity(team.id, request.auth_user.id)

        return JsonResponse({'comments': [c.to_dict() for c in comments]})

    def post(self, request, team_id, team_document_id):
        body = read_json(request)
        if body is None:
            return invalid_json()

        content = body.get('content')
        if not isinstance(content, str) or not content.strip():
            return error_response('Comment content is required')

        team, share, error = self._load(request, team_id, team_document_id)
        if error:
            return error
        if share.permission not in COMMENT_PERMISSIONS:
            return error_response('Commenting is not allowed on this document', 403)

        user = request.auth_user
        with transaction.atomic():
            comment = TeamDocumentComment.objects.create(
                team_document=share,
                user=user,
                content=content.strip(),
            )
            TeamDocumentActivity.objects.create(
                team_document=share,
                user=user,
                action=ActivityType.COMMENTED,
                details={'commentId': str(comment.id)},
            )

        notify_many(
            _other_members(team, user),
            NotificationType.MENTION,
            title=f"New comment on {share.document_name}",
            message=f"{_display_name(user)}: {comment.content[:100]}",
            link=f"/teams/{team.id}",
            action_label='View comment',
            metadata={'teamId': str(team.id), 'teamDocumentId': str(share.id), 'commentId': str(comment.id)},
        )
        update_team_analytics(team.id, comments_added=1)
        update_member_activity(team.id, user.id)

        return JsonResponse({'comment': comment.to_dict()}, status=201)

    def delete(self, request, team_id, team_document_id):
        team, share, error = self._load(request, team_id, team_document_id)
        if error:
            return error

        comment_id = _parse_uuid(request.GET.get('commentId'))
        if comment_id is None:
            return error_response('commentId is required')

        comment = share.comments.filter(id=comment_id).first()
        if comment is None:
            return error_response('Comment not found', 404)

        user = request.auth_user
        if not _can_moderate(team, user, comment.user_id):
            return error_response('Only the author or a team admin can delete this comment', 403)

        TeamDocumentActivity.objects.create(
            team_document=share,
            user=user,
            action=ActivityType.COMMENT_DELETED,
            details={'commentId': str(comment.id)},
        )
        comment.delete()

        return JsonResponse({'message': 'Comment deleted'})
