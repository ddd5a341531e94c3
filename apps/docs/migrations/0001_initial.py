# Generated migration for Document, ProcessingJob and analysis models

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid

RISK_LEVELS = [('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('CRITICAL', 'Critical')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('original_file_name', models.CharField(max_length=255)),
                ('file_size', models.PositiveBigIntegerField(default=0)),
                ('mime_type', models.CharField(max_length=100)),
                ('file_hash', models.CharField(db_index=True, help_text='SHA-256 of the file content', max_length=64)),
                ('document_type', models.CharField(blank=True, max_length=50, null=True)),
                ('storage_path', models.CharField(blank=True, default='', help_text='Path to file on disk (relative to upload root)', max_length=500)),
                ('storage_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('status', models.CharField(choices=[('UPLOADED', 'Uploaded'), ('PROCESSING', 'Processing'), ('ANALYZED', 'Analyzed'), ('FAILED', 'Failed')], db_index=True, default='UPLOADED', max_length=20)),
                ('overall_risk_score', models.FloatField(blank=True, null=True)),
                ('risk_level', models.CharField(blank=True, choices=RISK_LEVELS, max_length=10, null=True)),
                ('page_count', models.PositiveIntegerField(blank=True, null=True)),
                ('analyzed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'documents',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'created_at'], name='documents_owner_i_7c1f0e_idx'),
                    models.Index(fields=['owner', 'file_hash'], name='documents_owner_i_a93b52_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProcessingJob',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('QUEUED', 'Queued'), ('RUNNING', 'Running'), ('COMPLETE', 'Complete'), ('FAILED', 'Failed')], db_index=True, default='QUEUED', max_length=20)),
                ('stage', models.CharField(choices=[('RECEIVED', 'Received'), ('EXTRACT', 'Extracting text'), ('CHUNK', 'Chunking document'), ('ANALYZE', 'Analyzing document'), ('EMBED', 'Generating embeddings'), ('STORE', 'Storing embeddings')], default='RECEIVED', max_length=20)),
                ('progress', models.PositiveSmallIntegerField(default=0)),
                ('progress_message', models.CharField(blank=True, default='', max_length=255)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='jobs', to='docs.document')),
            ],
            options={
                'db_table': 'processing_jobs',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['document', 'created_at'], name='processing__documen_4e2d8b_idx')],
            },
        ),
        migrations.CreateModel(
            name='DocumentAnalysis',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('analysis_type', models.CharField(choices=[('FULL_ANALYSIS', 'Full analysis')], default='FULL_ANALYSIS', max_length=30)),
                ('summary', models.JSONField(default=dict, help_text='{"main": "<summary text>"}')),
                ('model_used', models.CharField(blank=True, max_length=100, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='analyses', to='docs.document')),
            ],
            options={
                'db_table': 'document_analyses',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='RiskFactor',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('severity', models.CharField(choices=RISK_LEVELS, max_length=10)),
                ('category', models.CharField(default='LEGAL', max_length=50)),
                ('recommendation', models.TextField(blank=True, null=True)),
                ('page_number', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='risk_factors', to='docs.document')),
            ],
            options={
                'db_table': 'risk_factors',
            },
        ),
        migrations.CreateModel(
            name='KeyPoint',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('potential_impact', models.TextField(blank=True, null=True)),
                ('importance', models.PositiveSmallIntegerField(default=3, help_text='1 (minor) to 5 (critical)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='key_points', to='docs.document')),
            ],
            options={
                'db_table': 'key_points',
            },
        ),
        migrations.CreateModel(
            name='GlossaryTerm',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('term', models.CharField(max_length=255)),
                ('definition', models.TextField()),
                ('simplified_definition', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='glossary_terms', to='docs.document')),
            ],
            options={
                'db_table': 'glossary_terms',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
