"""
Tests for teams, membership, invitations, shared documents and analytics.
"""
import json
from datetime import timedelta

import pytest
from django.core import mail
from django.utils import timezone

from apps.authn.models import AuditAction, AuditLog
from apps.docs.models import Document
from apps.notifications.models import Notification, NotificationType
from apps.teams.models import (
    ActivityType,
    InvitationStatus,
    MemberStatus,
    SharePermission,
    Team,
    TeamAnalytics,
    TeamDocument,
    TeamInvitation,
    TeamMember,
    TeamRole,
)
from apps.teams.permissions import check_team_permission, is_manager, is_team_member
from apps.teams.services import get_team_stats, record_shared_document_view, update_team_analytics
from tests.conftest import auth_header, make_user


def send(client, method, url, auth, body=None):
    return getattr(client, method)(
        url, data=json.dumps(body or {}), content_type='application/json', **auth
    )


def make_team(owner, name='Contracts', **extra):
    team = Team.objects.create(owner=owner, name=name, **extra)
    TeamMember.objects.create(team=team, user=owner, role=TeamRole.OWNER)
    return team


def add_member(team, user, role=TeamRole.MEMBER, status=MemberStatus.ACTIVE):
    return TeamMember.objects.create(team=team, user=user, role=role, status=status)


def make_document(owner, name='nda.pdf'):
    return Document.objects.create(
        owner=owner,
        original_file_name=name,
        file_size=1024,
        mime_type='application/pdf',
        file_hash='e' * 64,
    )


def share(team, document, permission=SharePermission.COMMENT, **extra):
    return TeamDocument.objects.create(
        team=team,
        document=document,
        shared_by=document.owner,
        permission=permission,
        document_name=document.original_file_name,
        **extra,
    )


def invite(team, email, inviter, **extra):
    defaults = {'expires_at': timezone.now() + timedelta(days=7)}
    defaults.update(extra)
    return TeamInvitation.objects.create(team=team, email=email, invited_by=inviter, **defaults)


# ============================================================================
# Permissions
# ============================================================================

@pytest.mark.django_db
class TestPermissions:

    def test_owner_always_passes(self, user):
        team = Team.objects.create(owner=user, name='No membership row')

        assert check_team_permission(team, user, TeamRole.OWNER)
        assert is_manager(team, user)
        assert not is_team_member(team, user)

    def test_role_ranking(self, user, other_user):
        team = make_team(user)
        add_member(team, other_user, role=TeamRole.MEMBER)

        assert check_team_permission(team, other_user, TeamRole.VIEWER)
        assert check_team_permission(team, other_user, TeamRole.MEMBER)
        assert not check_team_permission(team, other_user, TeamRole.ADMIN)

    def test_suspended_member_has_no_access(self, user, other_user):
        team = make_team(user)
        add_member(team, other_user, role=TeamRole.ADMIN, status=MemberStatus.SUSPENDED)

        assert not check_team_permission(team, other_user)
        assert not is_team_member(team, other_user)


# ============================================================================
# Teams
# ============================================================================

@pytest.mark.django_db
class TestTeams:

    def test_create_team_adds_owner_membership(self, client, user, auth):
        response = send(client, 'post', '/api/teams', auth, {'name': '  Legal  ', 'maxMembers': 5})

        assert response.status_code == 201
        data = response.json()['team']
        assert data['name'] == 'Legal'
        assert data['maxMembers'] == 5
        assert data['color'] == '#0ea5e9'
        assert data['userRole'] == 'OWNER'
        assert data['_count']['members'] == 1

        team = Team.objects.get(id=data['id'])
        assert team.members.get().role == TeamRole.OWNER
        assert AuditLog.objects.filter(action=AuditAction.TEAM_CREATED, entity_id=str(team.id)).exists()

    def test_create_requires_name(self, client, auth):
        assert send(client, 'post', '/api/teams', auth, {'name': '  '}).status_code == 400

    def test_create_rejects_bad_max_members(self, client, auth):
        response = send(client, 'post', '/api/teams', auth, {'name': 'X', 'maxMembers': 0})

        assert response.status_code == 400

    def test_list_owned_and_member_teams(self, client, user, other_user):
        mine = make_team(other_user, name='Mine')
        joined = make_team(user, name='Joined')
        add_member(joined, other_user, role=TeamRole.VIEWER)
        suspended = make_team(user, name='Suspended')
        add_member(suspended, other_user, status=MemberStatus.SUSPENDED)

        teams = client.get('/api/teams', **auth_header(other_user)).json()['teams']

        assert [(t['name'], t['userRole']) for t in teams] == [('Mine', 'OWNER'), ('Joined', 'VIEWER')]

    def test_detail_requires_membership(self, client, user, other_user):
        team = make_team(user)

        response = client.get(f'/api/teams/{team.id}', **auth_header(other_user))

        assert response.status_code == 403

    def test_detail_includes_pending_invitations(self, client, user, auth):
        team = make_team(user)
        invite(team, 'new@example.com', user)
        invite(team, 'old@example.com', user, expires_at=timezone.now() - timedelta(days=1))

        data = client.get(f'/api/teams/{team.id}', **auth).json()['team']

        assert [i['email'] for i in data['invitations']] == ['new@example.com']

    def test_unknown_team(self, client, auth):
        response = client.get('/api/teams/00000000-0000-0000-0000-000000000000', **auth)

        assert response.status_code == 404

    def test_admin_can_update(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user, role=TeamRole.ADMIN)

        response = send(client, 'patch', f'/api/teams/{team.id}', auth_header(other_user),
                        {'name': 'Renamed', 'allowInvites': 'false'})

        assert response.status_code == 200
        team.refresh_from_db()
        assert team.name == 'Renamed'
        assert team.allow_invites is False

    def test_member_cannot_update(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)

        response = send(client, 'patch', f'/api/teams/{team.id}', auth_header(other_user), {'name': 'X'})

        assert response.status_code == 403

    def test_only_owner_deletes(self, client, user, other_user, auth):
        team = make_team(user)
        add_member(team, other_user, role=TeamRole.ADMIN)

        assert client.delete(f'/api/teams/{team.id}', **auth_header(other_user)).status_code == 403
        assert client.delete(f'/api/teams/{team.id}', **auth).status_code == 200
        assert not Team.objects.filter(id=team.id).exists()


# ============================================================================
# Members
# ============================================================================

@pytest.mark.django_db
class TestMembers:

    def test_list_sorted_by_role(self, client, user, other_user, auth):
        team = make_team(user)
        add_member(team, make_user(email='viewer@example.com'), role=TeamRole.VIEWER)
        add_member(team, other_user, role=TeamRole.ADMIN)

        members = client.get(f'/api/teams/{team.id}/members', **auth).json()['members']

        assert [m['role'] for m in members] == ['OWNER', 'ADMIN', 'VIEWER']
        assert members[1]['user']['email'] == 'member@example.com'

    def test_change_role(self, client, user, other_user, auth):
        team = make_team(user)
        member = add_member(team, other_user)

        response = send(client, 'patch', f'/api/teams/{team.id}/members/{member.id}', auth, {'role': 'ADMIN'})

        assert response.status_code == 200
        assert response.json()['member']['role'] == 'ADMIN'
        assert AuditLog.objects.filter(action=AuditAction.TEAM_MEMBER_UPDATED).exists()

    def test_owner_role_is_protected(self, client, user, auth):
        team = make_team(user)
        owner_member = team.members.get(user=user)

        response = send(client, 'patch', f'/api/teams/{team.id}/members', auth,
                        {'memberId': str(owner_member.id), 'role': 'MEMBER'})

        assert response.status_code == 400
        assert response.json()['error'] == 'Cannot change the role of the team owner'

    def test_owner_role_cannot_be_assigned(self, client, user, other_user, auth):
        team = make_team(user)
        member = add_member(team, other_user)

        response = send(client, 'patch', f'/api/teams/{team.id}/members/{member.id}', auth, {'role': 'OWNER'})

        assert response.status_code == 400

    def test_remove_member(self, client, user, other_user, auth):
        team = make_team(user)
        member = add_member(team, other_user)

        response = client.delete(f'/api/teams/{team.id}/members?memberId={member.id}', **auth)

        assert response.status_code == 200
        assert not TeamMember.objects.filter(id=member.id).exists()

    def test_cannot_remove_owner(self, client, user, auth):
        team = make_team(user)
        owner_member = team.members.get(user=user)

        response = client.delete(f'/api/teams/{team.id}/members/{owner_member.id}', **auth)

        assert response.status_code == 400
        assert response.json()['error'] == 'Cannot remove the team owner'

    def test_member_cannot_remove_others(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)
        victim = add_member(team, make_user(email='v@example.com'))

        response = client.delete(f'/api/teams/{team.id}/members/{victim.id}', **auth_header(other_user))

        assert response.status_code == 403


# ============================================================================
# Invitations
# ============================================================================

@pytest.mark.django_db
class TestInvitations:

    def test_invite_sends_email_and_notifies_existing_user(self, client, user, other_user, auth):
        response = send(client, 'post', f'/api/teams/{make_team(user).id}/invitations', auth,
                        {'email': 'Member@Example.com', 'role': 'VIEWER', 'message': 'Join us'})

        assert response.status_code == 201
        data = response.json()['invitation']
        assert data['email'] == 'member@example.com'
        assert data['role'] == 'VIEWER'
        assert data['status'] == 'PENDING'

        invitation = TeamInvitation.objects.get(id=data['id'])
        assert invitation.invited_user == other_user
        assert len(mail.outbox) == 1
        assert invitation.token in mail.outbox[0].body

        notification = Notification.objects.get(user=other_user)
        assert notification.type == NotificationType.TEAM_INVITATION
        assert notification.link == f'/teams/accept-invitation?token={invitation.token}'

    def test_invite_rejects_owner_role(self, client, user, auth):
        response = send(client, 'post', f'/api/teams/{make_team(user).id}/invitations', auth,
                        {'email': 'a@example.com', 'role': 'OWNER'})

        assert response.status_code == 400

    def test_invite_existing_member(self, client, user, other_user, auth):
        team = make_team(user)
        add_member(team, other_user)

        response = send(client, 'post', f'/api/teams/{team.id}/invitations', auth, {'email': other_user.email})

        assert response.json()['error'] == 'User is already a member of this team'

    def test_duplicate_pending_invitation(self, client, user, auth):
        team = make_team(user)
        invite(team, 'dup@example.com', user)

        response = send(client, 'post', f'/api/teams/{team.id}/invitations', auth, {'email': 'dup@example.com'})

        assert response.json()['error'] == 'An invitation is already pending for this email'

    def test_member_limit(self, client, user, auth):
        team = make_team(user, max_members=1)

        response = send(client, 'post', f'/api/teams/{team.id}/invitations', auth, {'email': 'x@example.com'})

        assert response.json()['error'] == 'Team has reached its member limit'

    def test_only_managers_invite(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)

        response = send(client, 'post', f'/api/teams/{team.id}/invitations', auth_header(other_user),
                        {'email': 'x@example.com'})

        assert response.status_code == 403

    def test_public_lookup_by_token(self, client, user):
        team = make_team(user, description='Contract review')
        invitation = invite(team, 'guest@example.com', user)

        response = client.get(f'/api/teams/invitations/{invitation.token}')

        assert response.status_code == 200
        data = response.json()['invitation']
        assert data['team']['name'] == 'Contracts'
        assert data['team']['memberCount'] == 1
        assert data['invitedBy']['email'] == user.email

    def test_lookup_expired_marks_invitation(self, client, user):
        invitation = invite(make_team(user), 'late@example.com', user,
                            expires_at=timezone.now() - timedelta(minutes=1))

        response = client.get(f'/api/teams/invitations/{invitation.token}')

        assert response.json()['error'] == 'Invitation has expired'
        invitation.refresh_from_db()
        assert invitation.status == InvitationStatus.EXPIRED

    def test_accept(self, client, user, other_user):
        team = make_team(user)
        invitation = invite(team, other_user.email, user, role=TeamRole.ADMIN)

        response = send(client, 'post', '/api/teams/invitations/accept', auth_header(other_user),
                        {'token': invitation.token})

        assert response.status_code == 200
        member = TeamMember.objects.get(team=team, user=other_user)
        assert member.role == TeamRole.ADMIN
        assert member.invited_by == user
        invitation.refresh_from_db()
        assert invitation.status == InvitationStatus.ACCEPTED
        assert invitation.responded_at is not None
        assert Notification.objects.get(user=user).type == NotificationType.TEAM_INVITATION_ACCEPTED
        assert TeamAnalytics.objects.get(team=team).new_members == 1

    def test_accept_with_other_email(self, client, user):
        invitation = invite(make_team(user), 'someone@example.com', user)
        stranger = make_user(email='stranger@example.com')

        response = send(client, 'post', '/api/teams/invitations/accept', auth_header(stranger),
                        {'token': invitation.token})

        assert response.json()['error'] == 'This invitation was sent to a different email address'

    def test_accept_twice(self, client, user, other_user):
        invitation = invite(make_team(user), other_user.email, user)
        auth = auth_header(other_user)
        send(client, 'post', '/api/teams/invitations/accept', auth, {'token': invitation.token})

        response = send(client, 'post', '/api/teams/invitations/accept', auth, {'token': invitation.token})

        assert response.json()['error'] == 'Invitation has already been accepted'

    def test_decline(self, client, user, other_user):
        team = make_team(user)
        invitation = invite(team, other_user.email, user)

        response = send(client, 'post', '/api/teams/invitations/decline', auth_header(other_user),
                        {'token': invitation.token})

        assert response.status_code == 200
        invitation.refresh_from_db()
        assert invitation.status == InvitationStatus.DECLINED
        assert not TeamMember.objects.filter(team=team, user=other_user).exists()

    def test_cancel(self, client, user, auth):
        team = make_team(user)
        invitation = invite(team, 'x@example.com', user)

        response = client.delete(f'/api/teams/{team.id}/invitations?invitationId={invitation.id}', **auth)

        assert response.status_code == 200
        invitation.refresh_from_db()
        assert invitation.status == InvitationStatus.CANCELLED

    def test_resend_extends_expiry(self, client, user, auth):
        team = make_team(user)
        invitation = invite(team, 'x@example.com', user, expires_at=timezone.now() + timedelta(hours=1))

        response = client.post(f'/api/teams/{team.id}/invitations/{invitation.id}/resend', **auth)

        assert response.status_code == 200
        invitation.refresh_from_db()
        assert invitation.expires_at > timezone.now() + timedelta(days=6)
        assert len(mail.outbox) == 1


# ============================================================================
# Shared documents and comments
# ============================================================================

@pytest.mark.django_db
class TestTeamDocuments:

    def test_share_own_document(self, client, user, other_user, auth):
        team = make_team(user)
        add_member(team, other_user)
        document = make_document(user)

        response = send(client, 'post', f'/api/teams/{team.id}/documents', auth,
                        {'documentId': str(document.id), 'permission': 'COMMENT'})

        assert response.status_code == 201
        data = response.json()['teamDocument']
        assert data['documentName'] == 'nda.pdf'
        assert data['permission'] == 'COMMENT'
        share_row = TeamDocument.objects.get(id=data['id'])
        assert share_row.activities.get().action == ActivityType.SHARED
        assert Notification.objects.get(user=other_user).type == NotificationType.DOCUMENT_SHARED
        assert TeamAnalytics.objects.get(team=team).documents_shared == 1

    def test_cannot_share_others_document(self, client, user, other_user, auth):
        team = make_team(user)
        document = make_document(other_user)

        response = send(client, 'post', f'/api/teams/{team.id}/documents', auth, {'documentId': str(document.id)})

        assert response.status_code == 403

    def test_cannot_share_twice(self, client, user, auth):
        team = make_team(user)
        document = make_document(user)
        share(team, document)

        response = send(client, 'post', f'/api/teams/{team.id}/documents', auth, {'documentId': str(document.id)})

        assert response.json()['error'] == 'Document is already shared with this team'

    def test_list_with_counts(self, client, user, auth):
        team = make_team(user)
        share(team, make_document(user))

        documents = client.get(f'/api/teams/{team.id}/documents', **auth).json()['documents']

        assert len(documents) == 1
        assert documents[0]['document']['originalFileName'] == 'nda.pdf'
        assert documents[0]['_count'] == {'comments': 0, 'activities': 0}

    def test_comment_notifies_other_members(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)
        shared = share(team, make_document(user))

        response = send(client, 'post', f'/api/teams/{team.id}/documents/{shared.id}/comments',
                        auth_header(other_user), {'content': ' Check clause 4 '})

        assert response.status_code == 201
        assert response.json()['comment']['content'] == 'Check clause 4'
        assert Notification.objects.get(user=user).type == NotificationType.MENTION
        assert TeamAnalytics.objects.get(team=team).comments_added == 1

    def test_view_only_share_rejects_comments(self, client, user, auth):
        team = make_team(user)
        shared = share(team, make_document(user), permission=SharePermission.VIEW)

        response = send(client, 'post', f'/api/teams/{team.id}/documents/{shared.id}/comments',
                        auth, {'content': 'Hi'})

        assert response.status_code == 403

    def test_only_author_or_admin_deletes_comment(self, client, user, other_user, auth):
        team = make_team(user)
        add_member(team, other_user)
        third = make_user(email='third@example.com')
        add_member(team, third)
        shared = share(team, make_document(user))
        url = f'/api/teams/{team.id}/documents/{shared.id}/comments'
        comment_id = send(client, 'post', url, auth_header(other_user), {'content': 'Mine'}).json()['comment']['id']

        assert client.delete(f'{url}?commentId={comment_id}', **auth_header(third)).status_code == 403
        assert client.delete(f'{url}?commentId={comment_id}', **auth).status_code == 200

    def test_team_member_reads_shared_document(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)
        document = make_document(user)
        shared = share(team, document)

        response = client.get(f'/api/documents/{document.id}', **auth_header(other_user))

        assert response.status_code == 200
        assert shared.activities.get().action == ActivityType.VIEWED
        assert TeamMember.objects.get(team=team, user=other_user).documents_reviewed == 1

    def test_expired_share_is_not_readable(self, client, user, other_user):
        team = make_team(user)
        add_member(team, other_user)
        document = make_document(user)
        share(team, document, expires_at=timezone.now() - timedelta(hours=1))

        response = client.get(f'/api/documents/{document.id}', **auth_header(other_user))

        assert response.status_code == 404


# ============================================================================
# Analytics
# ============================================================================

@pytest.mark.django_db
class TestAnalytics:

    def test_update_accumulates_positive_counters(self, user):
        team = make_team(user)

        update_team_analytics(team.id, documents_shared=1, comments_added=2)
        update_team_analytics(team.id, documents_shared=1, comments_added=-5, unknown=3)

        row = TeamAnalytics.objects.get(team=team)
        assert row.documents_shared == 2
        assert row.comments_added == 2

    def test_record_view_ignores_non_members(self, user, other_user):
        team = make_team(user)
        document = make_document(user)
        shared = share(team, document)

        record_shared_document_view(other_user, document)

        assert not shared.activities.exists()

    def test_stats(self, user, other_user):
        team = make_team(user)
        member = add_member(team, other_user, role=TeamRole.ADMIN)
        TeamMember.objects.filter(id=member.id).update(documents_reviewed=3, last_active_at=timezone.now())
        invite(team, 'p@example.com', user)

        stats = get_team_stats(team)

        assert stats['totalMembers'] == 2
        assert stats['activeMembers'] == 1
        assert stats['adminCount'] == 2
        assert stats['totalDocumentsReviewed'] == 3
        assert stats['pendingInvitations'] == 1

    def test_analytics_endpoint(self, client, user, auth):
        team = make_team(user)
        update_team_analytics(team.id, documents_shared=4)

        stats = client.get(f'/api/teams/{team.id}/analytics', **auth).json()['stats']

        assert stats['analytics'][0]['documentsShared'] == 4
