"""
User account and audit trail models.
"""
import uuid

from django.contrib.auth.base_user import AbstractBaseUser, BaseUserManager
from django.db import models


class Persona(models.TextChoices):
    """Who the user is, used to tailor analysis language."""
    STUDENT = 'STUDENT', 'Student'
    FREELANCER = 'FREELANCER', 'Freelancer'
    TENANT = 'TENANT', 'Tenant'
    SMALL_BUSINESS = 'SMALL_BUSINESS', 'Small business'
    GENERAL = 'GENERAL', 'General'


class UserRole(models.TextChoices):
    USER = 'USER', 'User'
    ADMIN = 'ADMIN', 'Admin'


class PresenceStatus(models.TextChoices):
    ONLINE = 'ONLINE', 'Online'
    AWAY = 'AWAY', 'Away'
    BUSY = 'BUSY', 'Busy'
    OFFLINE = 'OFFLINE', 'Offline'


class UserManager(BaseUserManager):
    """Manager that creates users keyed by lower-cased email."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Users must have an email address')
        user = self.model(email=email.strip().lower(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user


class User(AbstractBaseUser):
    """
    A LegisEye account.

    Authentication is by email and password; sessions are JWT bearer
    tokens issued by the login view.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(max_length=255, unique=True)

    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, null=True, blank=True)
    image = models.URLField(max_length=500, null=True, blank=True)

    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.USER
    )
    persona = models.CharField(
        max_length=20,
        choices=Persona.choices,
        default=Persona.GENERAL
    )

    # Preferences
    preferred_language = models.CharField(max_length=10, default='en')
    notifications_enabled = models.BooleanField(default=True)
    data_retention_days = models.PositiveIntegerField(default=365)

    # Presence
    status = models.CharField(
        max_length=10,
        choices=PresenceStatus.choices,
        default=PresenceStatus.OFFLINE
    )
    status_message = models.CharField(max_length=255, null=True, blank=True)

    # Email verification
    is_email_verified = models.BooleanField(default=False)
    email_verified_at = models.DateTimeField(null=True, blank=True)
    verification_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    # Password reset
    reset_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    reset_token_expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name']

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return self.email

    @property
    def full_name(self) -> str:
        return ' '.join(part for part in (self.first_name, self.last_name) if part)

    def to_summary(self) -> dict:
        """Short form embedded in team, comment and invitation payloads."""
        return {
            'id': str(self.id),
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'image': self.image,
        }

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'name': self.full_name,
            'image': self.image,
            'role': self.role,
            'persona': self.persona,
            'preferredLanguage': self.preferred_language,
            'notificationsEnabled': self.notifications_enabled,
            'dataRetentionDays': self.data_retention_days,
            'status': self.status,
            'statusMessage': self.status_message,
            'emailVerified': self.is_email_verified,
            'lastLoginAt': self.last_login.isoformat() if self.last_login else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class AuditAction(models.TextChoices):
    """Actions persisted to the audit trail table."""
    TEAM_CREATED = 'TEAM_CREATED', 'Team created'
    TEAM_UPDATED = 'TEAM_UPDATED', 'Team updated'
    TEAM_DELETED = 'TEAM_DELETED', 'Team deleted'
    TEAM_MEMBER_ADDED = 'TEAM_MEMBER_ADDED', 'Team member added'
    TEAM_MEMBER_REMOVED = 'TEAM_MEMBER_REMOVED', 'Team member removed'
    TEAM_MEMBER_UPDATED = 'TEAM_MEMBER_UPDATED', 'Team member updated'
    TEAM_INVITATION_SENT = 'TEAM_INVITATION_SENT', 'Team invitation sent'
    TEAM_INVITATION_CANCELLED = 'TEAM_INVITATION_CANCELLED', 'Team invitation cancelled'


class AuditLog(models.Model):
    """A persisted record of a collaboration action."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    action = models.CharField(max_length=40, choices=AuditAction.choices, db_index=True)
    entity_type = models.CharField(max_length=40)
    entity_id = models.CharField(max_length=64)
    details = models.JSONField(default=dict, blank=True)
    success = models.BooleanField(default=True)
    ip_address = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_logs_entity__5d6a1c_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"
