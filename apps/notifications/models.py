"""
In-app notification model.
"""
import uuid

from django.conf import settings
from django.db import models


class NotificationType(models.TextChoices):
    TEAM_INVITATION = 'TEAM_INVITATION', 'Team invitation'
    TEAM_INVITATION_ACCEPTED = 'TEAM_INVITATION_ACCEPTED', 'Team invitation accepted'
    DOCUMENT_SHARED = 'DOCUMENT_SHARED', 'Document shared'
    MENTION = 'MENTION', 'Mention'
    ANALYSIS_COMPLETE = 'ANALYSIS_COMPLETE', 'Analysis complete'
    ANALYSIS_FAILED = 'ANALYSIS_FAILED', 'Analysis failed'
    SYSTEM = 'SYSTEM', 'System'


class Notification(models.Model):
    """A message shown in the user's notification bell."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=NotificationType.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, null=True, blank=True)
    action_label = models.CharField(max_length=100, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read', 'created_at'], name='notificatio_user_id_8f0c2d_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}: {self.title}"

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'link': self.link,
            'actionLabel': self.action_label,
            'metadata': self.metadata,
            'read': self.read,
            'readAt': self.read_at.isoformat() if self.read_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
