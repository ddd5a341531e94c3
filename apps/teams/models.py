"""
Team collaboration models: teams, memberships, invitations, shared
documents with their comments and activity, and daily team analytics.
"""
import secrets
import uuid

from django.conf import settings
from django.db import models


class TeamRole(models.TextChoices):
    OWNER = 'OWNER', 'Owner'
    ADMIN = 'ADMIN', 'Admin'
    MEMBER = 'MEMBER', 'Member'
    VIEWER = 'VIEWER', 'Viewer'


class MemberStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    INACTIVE = 'INACTIVE', 'Inactive'
    SUSPENDED = 'SUSPENDED', 'Suspended'


class InvitationStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    ACCEPTED = 'ACCEPTED', 'Accepted'
    DECLINED = 'DECLINED', 'Declined'
    EXPIRED = 'EXPIRED', 'Expired'
    CANCELLED = 'CANCELLED', 'Cancelled'


class SharePermission(models.TextChoices):
    """What team members may do with a shared document."""
    VIEW = 'VIEW', 'View'
    COMMENT = 'COMMENT', 'Comment'
    EDIT = 'EDIT', 'Edit'
    ADMIN = 'ADMIN', 'Admin'


class ActivityType(models.TextChoices):
    SHARED = 'SHARED', 'Shared'
    REMOVED = 'REMOVED', 'Removed'
    COMMENTED = 'COMMENTED', 'Commented'
    COMMENT_DELETED = 'COMMENT_DELETED', 'Comment deleted'
    VIEWED = 'VIEWED', 'Viewed'


DEFAULT_TEAM_COLOR = '#0ea5e9'
DEFAULT_MAX_MEMBERS = 50


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)


class Team(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='owned_teams'
    )
    color = models.CharField(max_length=20, default=DEFAULT_TEAM_COLOR)
    max_members = models.PositiveIntegerField(default=DEFAULT_MAX_MEMBERS)
    allow_invites = models.BooleanField(default=True)
    require_approval = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'teams'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'ownerId': str(self.owner_id),
            'color': self.color,
            'maxMembers': self.max_members,
            'allowInvites': self.allow_invites,
            'requireApproval': self.require_approval,
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class TeamMember(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='team_memberships'
    )
    role = models.CharField(max_length=10, choices=TeamRole.choices, default=TeamRole.MEMBER)
    status = models.CharField(
        max_length=10,
        choices=MemberStatus.choices,
        default=MemberStatus.ACTIVE,
        db_index=True
    )
    documents_reviewed = models.PositiveIntegerField(default=0)
    last_active_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        db_table = 'team_members'
        constraints = [
            models.UniqueConstraint(fields=['team', 'user'], name='unique_team_member'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.team_id} ({self.role})"

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'teamId': str(self.team_id),
            'userId': str(self.user_id),
            'role': self.role,
            'status': self.status,
            'documentsReviewed': self.documents_reviewed,
            'lastActiveAt': self.last_active_at.isoformat() if self.last_active_at else None,
            'joinedAt': self.joined_at.isoformat() if self.joined_at else None,
            'user': self.user.to_summary(),
        }


class TeamInvitation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='invitations')
    email = models.EmailField(db_index=True)
    role = models.CharField(max_length=10, choices=TeamRole.choices, default=TeamRole.MEMBER)
    token = models.CharField(max_length=64, unique=True, default=generate_invitation_token)
    status = models.CharField(
        max_length=10,
        choices=InvitationStatus.choices,
        default=InvitationStatus.PENDING,
        db_index=True
    )
    message = models.TextField(null=True, blank=True)
    expires_at = models.DateTimeField()
    responded_at = models.DateTimeField(null=True, blank=True)
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sent_invitations'
    )
    invited_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='received_invitations'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'team_invitations'
        ordering = ['-created_at']

    def __str__(self):
        return f"Invitation of {self.email} to {self.team_id} ({self.status})"

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'teamId': str(self.team_id),
            'email': self.email,
            'role': self.role,
            'status': self.status,
            'message': self.message,
            'expiresAt': self.expires_at.isoformat() if self.expires_at else None,
            'respondedAt': self.responded_at.isoformat() if self.responded_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'invitedBy': self.invited_by.to_summary(),
        }


class TeamDocument(models.Model):
    """A document shared with a team. Name, type and size are copied at share time."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='documents')
    document = models.ForeignKey(
        'docs.Document',
        on_delete=models.CASCADE,
        related_name='team_shares'
    )
    shared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shared_documents'
    )
    permission = models.CharField(
        max_length=10,
        choices=SharePermission.choices,
        default=SharePermission.VIEW
    )
    document_name = models.CharField(max_length=255)
    document_type = models.CharField(max_length=100, null=True, blank=True)
    document_size = models.PositiveBigIntegerField(default=0)
    can_download = models.BooleanField(default=True)
    can_share = models.BooleanField(default=False)
    expires_at = models.DateTimeField(null=True, blank=True)
    shared_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'team_documents'
        ordering = ['-shared_at']
        constraints = [
            models.UniqueConstraint(fields=['team', 'document'], name='unique_team_document'),
        ]

    def __str__(self):
        return f"{self.document_name} in {self.team_id}"

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'teamId': str(self.team_id),
            'documentId': str(self.document_id),
            'permission': self.permission,
            'documentName': self.document_name,
            'documentType': self.document_type,
            'documentSize': self.document_size,
            'canDownload': self.can_download,
            'canShare': self.can_share,
            'expiresAt': self.expires_at.isoformat() if self.expires_at else None,
            'sharedAt': self.shared_at.isoformat() if self.shared_at else None,
            'sharedBy': self.shared_by.to_summary(),
        }


class TeamDocumentComment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team_document = models.ForeignKey(
        TeamDocument,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='team_document_comments'
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'team_document_comments'
        ordering = ['created_at']

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'teamDocumentId': str(self.team_document_id),
            'content': self.content,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'user': self.user.to_summary(),
        }


class TeamDocumentActivity(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team_document = models.ForeignKey(
        TeamDocument,
        on_delete=models.CASCADE,
        related_name='activities'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='+'
    )
    action = models.CharField(max_length=20, choices=ActivityType.choices)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'team_document_activities'
        ordering = ['-created_at']


class TeamAnalytics(models.Model):
    """Per-team daily counters."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='analytics')
    date = models.DateField()
    documents_uploaded = models.PositiveIntegerField(default=0)
    documents_analyzed = models.PositiveIntegerField(default=0)
    documents_shared = models.PositiveIntegerField(default=0)
    chat_sessions_created = models.PositiveIntegerField(default=0)
    comments_added = models.PositiveIntegerField(default=0)
    active_members = models.PositiveIntegerField(default=0)
    new_members = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'team_analytics'
        ordering = ['-date']
        constraints = [
            models.UniqueConstraint(fields=['team', 'date'], name='unique_team_analytics_day'),
        ]

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'documentsUploaded': self.documents_uploaded,
            'documentsAnalyzed': self.documents_analyzed,
            'documentsShared': self.documents_shared,
            'chatSessionsCreated': self.chat_sessions_created,
            'commentsAdded': self.comments_added,
            'activeMembers': self.active_members,
            'newMembers': self.new_members,
        }
