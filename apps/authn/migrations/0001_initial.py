# Generated migration for User and AuditLog models

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=255, unique=True)),
                ('first_name', models.CharField(max_length=150)),
                ('last_name', models.CharField(blank=True, max_length=150, null=True)),
                ('image', models.URLField(blank=True, max_length=500, null=True)),
                ('role', models.CharField(choices=[('USER', 'User'), ('ADMIN', 'Admin')], default='USER', max_length=10)),
                ('persona', models.CharField(choices=[('STUDENT', 'Student'), ('FREELANCER', 'Freelancer'), ('TENANT', 'Tenant'), ('SMALL_BUSINESS', 'Small business'), ('GENERAL', 'General')], default='GENERAL', max_length=20)),
                ('preferred_language', models.CharField(default='en', max_length=10)),
                ('notifications_enabled', models.BooleanField(default=True)),
                ('data_retention_days', models.PositiveIntegerField(default=365)),
                ('status', models.CharField(choices=[('ONLINE', 'Online'), ('AWAY', 'Away'), ('BUSY', 'Busy'), ('OFFLINE', 'Offline')], default='OFFLINE', max_length=10)),
                ('status_message', models.CharField(blank=True, max_length=255, null=True)),
                ('is_email_verified', models.BooleanField(default=False)),
                ('email_verified_at', models.DateTimeField(blank=True, null=True)),
                ('verification_token', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('reset_token', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('reset_token_expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'users',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('TEAM_CREATED', 'Team created'), ('TEAM_UPDATED', 'Team updated'), ('TEAM_DELETED', 'Team deleted'), ('TEAM_MEMBER_ADDED', 'Team member added'), ('TEAM_MEMBER_REMOVED', 'Team member removed'), ('TEAM_MEMBER_UPDATED', 'Team member updated'), ('TEAM_INVITATION_SENT', 'Team invitation sent'), ('TEAM_INVITATION_CANCELLED', 'Team invitation cancelled')], db_index=True, max_length=40)),
                ('entity_type', models.CharField(max_length=40)),
                ('entity_id', models.CharField(max_length=64)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('success', models.BooleanField(default=True)),
                ('ip_address', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['entity_type', 'entity_id'], name='audit_logs_entity__5d6a1c_idx')],
            },
        ),
    ]
