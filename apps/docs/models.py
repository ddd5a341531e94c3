"""
Document, processing job and analysis models for LegisEye.

A Document is an uploaded legal file. A ProcessingJob tracks its trip
through the analysis pipeline. The pipeline's output is stored as one
DocumentAnalysis plus RiskFactor, KeyPoint and GlossaryTerm rows.
"""
import uuid

from django.conf import settings
from django.db import models


class DocumentStatus(models.TextChoices):
    """Status of a document in the analysis pipeline."""
    UPLOADED = 'UPLOADED', 'Uploaded'
    PROCESSING = 'PROCESSING', 'Processing'
    ANALYZED = 'ANALYZED', 'Analyzed'
    FAILED = 'FAILED', 'Failed'


class RiskLevel(models.TextChoices):
    """Severity scale shared by documents and individual risk factors."""
    LOW = 'LOW', 'Low'
    MEDIUM = 'MEDIUM', 'Medium'
    HIGH = 'HIGH', 'High'
    CRITICAL = 'CRITICAL', 'Critical'


class JobStatus(models.TextChoices):
    QUEUED = 'QUEUED', 'Queued'
    RUNNING = 'RUNNING', 'Running'
    COMPLETE = 'COMPLETE', 'Complete'
    FAILED = 'FAILED', 'Failed'


class JobStage(models.TextChoices):
    """Current stage of a processing job."""
    RECEIVED = 'RECEIVED', 'Received'
    EXTRACT = 'EXTRACT', 'Extracting text'
    CHUNK = 'CHUNK', 'Chunking document'
    ANALYZE = 'ANALYZE', 'Analyzing document'
    EMBED = 'EMBED', 'Generating embeddings'
    STORE = 'STORE', 'Storing embeddings'


class AnalysisType(models.TextChoices):
    FULL_ANALYSIS = 'FULL_ANALYSIS', 'Full analysis'


class Document(models.Model):
    """
    A legal document uploaded by a user.

    Files are stored on disk; their metadata, risk summary and pipeline
    status are tracked here.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )

    # File metadata
    original_file_name = models.CharField(max_length=255)
    file_size = models.PositiveBigIntegerField(default=0)
    mime_type = models.CharField(max_length=100)
    file_hash = models.CharField(
        max_length=64,
        db_index=True,
        help_text="SHA-256 of the file content"
    )
    document_type = models.CharField(max_length=50, null=True, blank=True)

    # Storage location
    storage_path = models.CharField(
        max_length=500,
        blank=True,
        default='',
        help_text="Path to file on disk (relative to upload root)"
    )
    storage_url = models.CharField(max_length=1000, null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=DocumentStatus.choices,
        default=DocumentStatus.UPLOADED,
        db_index=True
    )

    # Risk summary
    overall_risk_score = models.FloatField(null=True, blank=True)
    risk_level = models.CharField(
        max_length=10,
        choices=RiskLevel.choices,
        null=True,
        blank=True
    )
    page_count = models.PositiveIntegerField(null=True, blank=True)

    analyzed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'documents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='documents_owner_i_7c1f0e_idx'),
            models.Index(fields=['owner', 'file_hash'], name='documents_owner_i_a93b52_idx'),
        ]

    def __str__(self):
        return f"{self.original_file_name} ({self.status})"

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'userId': str(self.owner_id),
            'originalFileName': self.original_file_name,
            'fileSize': self.file_size,
            'mimeType': self.mime_type,
            'documentType': self.document_type,
            'storageUrl': self.storage_url,
            'status': self.status,
            'overallRiskScore': self.overall_risk_score,
            'riskLevel': self.risk_level,
            'pageCount': self.page_count,
            'analyzedAt': self.analyzed_at.isoformat() if self.analyzed_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class ProcessingJob(models.Model):
    """
    A run of the analysis pipeline for a document.

    Each document can have multiple jobs (e.g., for re-processing).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='jobs'
    )

    status = models.CharField(
        max_length=20,
        choices=JobStatus.choices,
        default=JobStatus.QUEUED,
        db_index=True
    )
    stage = models.CharField(
        max_length=20,
        choices=JobStage.choices,
        default=JobStage.RECEIVED
    )

    # Progress tracking (0-100) plus the human-readable step
    progress = models.PositiveSmallIntegerField(default=0)
    progress_message = models.CharField(max_length=255, blank=True, default='')

    error_message = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'processing_jobs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['document', 'created_at'], name='processing__documen_4e2d8b_idx'),
        ]

    def __str__(self):
        return f"Job {self.id} for {self.document_id} ({self.status}/{self.stage})"


class DocumentAnalysis(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='analyses'
    )
    analysis_type = models.CharField(
        max_length=30,
        choices=AnalysisType.choices,
        default=AnalysisType.FULL_ANALYSIS
    )
    summary = models.JSONField(default=dict, help_text='{"main": "<summary text>"}')
    model_used = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'document_analyses'
        ordering = ['-created_at']

    @property
    def main_summary(self) -> str:
        return (self.summary or {}).get('main') or ''

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'analysisType': self.analysis_type,
            'summary': self.summary,
            'modelUsed': self.model_used,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class RiskFactor(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='risk_factors'
    )
    title = models.CharField(max_length=255)
    description = models.TextField()
    severity = models.CharField(max_length=10, choices=RiskLevel.choices)
    category = models.CharField(max_length=50, default='LEGAL')
    recommendation = models.TextField(null=True, blank=True)
    page_number = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'risk_factors'

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'title': self.title,
            'description': self.description,
            'severity': self.severity,
            'category': self.category,
            'recommendation': self.recommendation,
            'pageNumber': self.page_number,
        }


class KeyPoint(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='key_points'
    )
    title = models.CharField(max_length=255)
    description = models.TextField()
    potential_impact = models.TextField(null=True, blank=True)
    importance = models.PositiveSmallIntegerField(default=3, help_text="1 (minor) to 5 (critical)")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'key_points'

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'title': self.title,
            'description': self.description,
            'potentialImpact': self.potential_impact,
            'importance': self.importance,
        }


class GlossaryTerm(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='glossary_terms'
    )
    term = models.CharField(max_length=255)
    definition = models.TextField()
    simplified_definition = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'glossary_terms'
        ordering = ['created_at', 'id']

    @property
    def display_definition(self) -> str:
        return self.simplified_definition or self.definition

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'term': self.term,
            'definition': self.definition,
            'simplifiedDefinition': self.simplified_definition,
        }
