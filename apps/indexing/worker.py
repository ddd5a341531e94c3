"""
Processing worker - takes uploaded documents through the analysis pipeline.

This worker:
1. Claims queued jobs atomically (SELECT FOR UPDATE SKIP LOCKED)
2. Extracts page text from documents
3. Chunks pages into overlapping segments
4. Analyzes the document with the LLM (summary, risks, key points, glossary)
5. Generates Gemini embeddings for the chunks
6. Stores the vectors in Pinecone and the chunk rows in the database

Run as: python manage.py run_worker
"""
import os
import time
import signal
import logging
from pathlib import Path
from typing import List, Optional

import django
from django.db import transaction
from django.conf import settings
from django.utils import timezone

# Ensure Django is set up
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

from apps.docs.models import Document, ProcessingJob, DocumentStatus, JobStatus, JobStage
from apps.docs.analysis import save_analysis
from apps.docs.storage import get_storage, StorageError
from apps.indexing.models import DocumentChunk
from apps.indexing.extractor import extract_pages, save_pages, ExtractionError
from apps.indexing.chunker import chunk_pages, TextChunk
from apps.indexing.embedder import embed_batch, generate_embeddings, EmbeddingError
from apps.indexing.analyzer import analyze_document, AnalysisError
from apps.indexing.publisher import publish_progress, publish_complete, publish_failed
from apps.indexing.retry import call_with_retry, EMBEDDING_RETRY, RetryExhausted
from apps.notifications.models import NotificationType
from apps.notifications.services import notify
from apps.rag.vectorstore import get_vector_store, vector_id, VectorStoreError
from apps.authn.audit import audit_analysis_started, audit_analysis_completed, audit_analysis_failed

logger = logging.getLogger(__name__)

# Configuration
POLL_INTERVAL = 2  # seconds between job checks
MAX_CONSECUTIVE_ERRORS = 5  # Stop if too many errors in a row
HEARTBEAT_FILE = '/tmp/worker_heartbeat'

# Progress of each stage (EMBED advances from EMBED_START to EMBED_END)
PROGRESS_EXTRACT = 10
PROGRESS_CHUNK = 25
PROGRESS_ANALYZE = 40
PROGRESS_EMBED_START = 55
PROGRESS_EMBED_END = 85
PROGRESS_STORE = 90

MSG_EXTRACT = "Extracting text..."
MSG_CHUNK = "Chunking document..."
MSG_ANALYZE = "Analyzing document with AI..."
MSG_EMBED = "Generating embeddings..."
MSG_STORE = "Storing embeddings..."
MSG_COMPLETE = "Analysis complete"


def touch_heartbeat():
    """Touch heartbeat file for health checks."""
    try:
        Path(HEARTBEAT_FILE).touch()
    except OSError as e:
        logger.warning(f"Failed to update heartbeat: {e}")


def _embed_with_retry(texts: List[str]) -> List[List[float]]:
    try:
        return call_with_retry(
            lambda: embed_batch(texts), EMBEDDING_RETRY, (EmbeddingError,), "Embedding batch"
        )
    except RetryExhausted as e:
        raise EmbeddingError(str(e))


class ProcessingWorker:
    """
    Worker that processes document analysis jobs.

    Uses SELECT FOR UPDATE SKIP LOCKED for safe concurrent job claiming.
    """

    def __init__(self):
        self.running = False
        self.consecutive_errors = 0
        self.extracted_root = Path(settings.EXTRACTED_ROOT)
        self.extracted_root.mkdir(parents=True, exist_ok=True)

    def claim_job(self) -> Optional[ProcessingJob]:
        """
        Atomically claim the oldest queued job.

        Returns:
            The claimed ProcessingJob, or None if no jobs are queued
        """
        with transaction.atomic():
            job = (
                ProcessingJob.objects
                .select_for_update(skip_locked=True)
                .filter(status=JobStatus.QUEUED)
                .order_by('created_at')
                .first()
            )
            if job is None:
                return None

            job.status = JobStatus.RUNNING
            job.stage = JobStage.RECEIVED
            job.save(update_fields=['status', 'stage', 'updated_at'])

            document = job.document
            document.status = DocumentStatus.PROCESSING
            document.save(update_fields=['status', 'updated_at'])

            logger.info(f"Claimed job {job.id} for document {document.original_file_name}")
            return job

    def update_job_progress(
        self,
        job: ProcessingJob,
        stage: str,
        progress: int,
        message: str = ''
    ):
        """Update job progress and emit a WebSocket event."""
        job.stage = stage
        job.progress = progress
        job.progress_message = message
        job.save(update_fields=['stage', 'progress', 'progress_message', 'updated_at'])

        publish_progress(
            document_id=str(job.document_id),
            job_id=str(job.id),
            user_id=str(job.document.owner_id),
            stage=stage,
            progress=progress,
            message=message
        )

    def fail_job(self, job: ProcessingJob, error_message: str):
        """Mark job and document failed, tell the owner."""
        logger.error(f"Job {job.id} failed: {error_message}")
        document = job.document

        job.status = JobStatus.FAILED
        job.error_message = error_message
        job.save(update_fields=['status', 'error_message', 'updated_at'])

        document.status = DocumentStatus.FAILED
        document.save(update_fields=['status', 'updated_at'])

        notify(
            document.owner,
            NotificationType.ANALYSIS_FAILED,
            title='Analysis failed',
            message=f'We could not analyze "{document.original_file_name}": {error_message}',
            link='/upload',
            metadata={'documentId': str(document.id), 'jobId': str(job.id)},
        )

        publish_failed(
            document_id=str(document.id),
            job_id=str(job.id),
            user_id=str(document.owner_id),
            error_message=error_message
        )
        audit_analysis_failed(str(job.id), str(document.id), str(document.owner_id), error_message)

    def complete_job(self, job: ProcessingJob, chunk_count: int):
        logger.info(f"Job {job.id} completed successfully")
        document = job.document

        job.status = JobStatus.COMPLETE
        job.stage = JobStage.STORE  # Final stage
        job.progress = 100
        job.progress_message = MSG_COMPLETE
        job.save(update_fields=['status', 'stage', 'progress', 'progress_message', 'updated_at'])

        document.status = DocumentStatus.ANALYZED
        document.analyzed_at = timezone.now()
        document.save(update_fields=['status', 'analyzed_at', 'updated_at'])

        notify(
            document.owner,
            NotificationType.ANALYSIS_COMPLETE,
            title='Analysis complete',
            message=f'"{document.original_file_name}" has been analyzed.',
            link=f'/analysis/{document.id}',
            action_label='View analysis',
            metadata={'documentId': str(document.id), 'riskLevel': document.risk_level},
        )

        publish_complete(
            document_id=str(document.id),
            job_id=str(job.id),
            user_id=str(document.owner_id)
        )
        audit_analysis_completed(str(job.id), str(document.id), str(document.owner_id), chunk_count)

    def extract(self, document: Document) -> List[str]:
        try:
            file_path = get_storage().get_path(document.storage_path)
        except StorageError as e:
            raise ExtractionError(str(e))
        if not file_path.exists():
            raise ExtractionError(f"File not found: {document.storage_path}")

        pages = extract_pages(file_path, document.mime_type)
        if not any(page.strip() for page in pages):
            raise ExtractionError("No text extracted from document")

        save_pages(str(document.id), pages, self.extracted_root)

        document.page_count = len(pages)
        document.save(update_fields=['page_count', 'updated_at'])
        logger.info(f"Extracted {len(pages)} pages from {document.original_file_name}")
        return pages

    def store(self, document: Document, chunks: List[TextChunk], embeddings: List[List[float]]):
        """Upsert vectors into the document's namespace and record the chunks."""
        doc_id = str(document.id)
        user_id = str(document.owner_id)

        vectors = [
            {
                'id': vector_id(doc_id, chunk.index),
                'values': values,
                'metadata': {
                    'document_id': doc_id,
                    'user_id': user_id,
                    'chunk_index': chunk.index,
                    'page': chunk.page,
                    'text': chunk.text,
                },
            }
            for chunk, values in zip(chunks, embeddings)
        ]

        store = get_vector_store()
        try:
            call_with_retry(
                lambda: store.upsert(vectors, namespace=doc_id),
                EMBEDDING_RETRY,
                (VectorStoreError,),
                f"Vector upsert for {doc_id}",
            )
        except RetryExhausted as e:
            raise VectorStoreError(str(e))

        with transaction.atomic():
            DocumentChunk.objects.filter(document=document).delete()
            DocumentChunk.objects.bulk_create([
                DocumentChunk(
                    document=document,
                    chunk_index=chunk.index,
                    page_number=chunk.page,
                    text=chunk.text,
                    vector_id=vector_id(doc_id, chunk.index),
                )
                for chunk in chunks
            ])

        logger.info(f"Stored {len(chunks)} chunks for {document.original_file_name}")

    def process_job(self, job: ProcessingJob):
        """
        Process a single job through all stages:
        EXTRACT -> CHUNK -> ANALYZE -> EMBED -> STORE
        """
        document = job.document
        owner = document.owner
        audit_analysis_started(str(job.id), str(document.id), str(owner.id))

        try:
            # Stage 1: EXTRACT
            self.update_job_progress(job, JobStage.EXTRACT, PROGRESS_EXTRACT, MSG_EXTRACT)
            pages = self.extract(document)

            # Stage 2: CHUNK
            self.update_job_progress(job, JobStage.CHUNK, PROGRESS_CHUNK, MSG_CHUNK)
            chunks = chunk_pages(pages)
            if not chunks:
                raise ExtractionError("No chunks generated from text")
            logger.info(f"Created {len(chunks)} chunks from {document.original_file_name}")

            # Stage 3: ANALYZE
            self.update_job_progress(job, JobStage.ANALYZE, PROGRESS_ANALYZE, MSG_ANALYZE)
            result, model_name = analyze_document(pages, owner.persona, owner.preferred_language)
            save_analysis(document, result, model_name=model_name, mark_analyzed=False)

            # Stage 4: EMBED
            self.update_job_progress(job, JobStage.EMBED, PROGRESS_EMBED_START, MSG_EMBED)

            def on_embed_progress(done: int, total: int):
                span = PROGRESS_EMBED_END - PROGRESS_EMBED_START
                self.update_job_progress(
                    job, JobStage.EMBED, PROGRESS_EMBED_START + int(done / total * span), MSG_EMBED
                )

            embeddings = generate_embeddings(
                [chunk.text for chunk in chunks],
                embed_func=_embed_with_retry,
                on_progress=on_embed_progress,
            )

            # Stage 5: STORE
            self.update_job_progress(job, JobStage.STORE, PROGRESS_STORE, MSG_STORE)
            self.store(document, chunks, embeddings)

            self.complete_job(job, len(chunks))

        except ExtractionError as e:
            self.fail_job(job, f"Extraction error: {e}")
        except AnalysisError as e:
            self.fail_job(job, f"Analysis error: {e}")
        except EmbeddingError as e:
            self.fail_job(job, f"Embedding error: {e}")
        except VectorStoreError as e:
            self.fail_job(job, f"Vector store error: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error processing job {job.id}")
            self.fail_job(job, f"Unexpected error: {e}")

    def run_once(self) -> bool:
        """
        Try to claim and process one job.

        Returns:
            True if a job was processed, False if no jobs available
        """
        touch_heartbeat()
        job = self.claim_job()

        if not job:
            return False

        self.process_job(job)
        self.consecutive_errors = 0
        return True

    def run(self):
        """Main worker loop; polls for jobs until SIGTERM/SIGINT."""
        logger.info("Starting processing worker...")

        self.running = True

        def handle_signal(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

        while self.running:
            try:
                if self.run_once():
                    continue
                time.sleep(POLL_INTERVAL)

            except Exception as e:
                logger.exception(f"Error in worker loop: {e}")
                self.consecutive_errors += 1

                if self.consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                    logger.error("Too many consecutive errors, stopping worker")
                    break

                time.sleep(POLL_INTERVAL * 2)

        logger.info("Worker stopped")


def main():
    """Entry point for the worker."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)s %(asctime)s %(name)s: %(message)s'
    )

    worker = ProcessingWorker()
    worker.run()


if __name__ == '__main__':
    main()
