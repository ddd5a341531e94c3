"""
Chat sessions and messages for document chat.
"""
import uuid

from django.conf import settings
from django.db import models

from apps.docs.models import Document


class MessageRole(models.TextChoices):
    USER = 'USER', 'User'
    ASSISTANT = 'ASSISTANT', 'Assistant'


class ChatSession(models.Model):
    """One conversation per (user, document)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='chat_sessions'
    )
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='chat_sessions'
    )
    title = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'chat_sessions'
        indexes = [
            models.Index(fields=['user', 'document'], name='chat_sessio_user_id_3b9e41_idx'),
        ]

    def __str__(self):
        return self.title


class ChatMessage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(
        ChatSession,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    role = models.CharField(max_length=10, choices=MessageRole.choices)
    content = models.TextField()
    # {"sources": [...]} for assistant messages
    metadata = models.JSONField(null=True, blank=True)
    model_used = models.CharField(max_length=100, null=True, blank=True)
    tokens_used = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'chat_messages'
        ordering = ['created_at']

    @property
    def sources(self):
        return (self.metadata or {}).get('sources')

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'role': 'user' if self.role == MessageRole.USER else 'assistant',
            'content': self.content,
            'sources': self.sources,
        }
