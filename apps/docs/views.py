"""
Document upload and management views.

Provides endpoints for:
- POST /upload/initiate - Upload a document and queue its analysis (idempotent)
- GET /upload/status/<job_id> - Processing status and, when done, the analysis
- GET /api/documents - List the caller's documents
- POST /api/documents/create - Store an externally produced analysis
- GET/DELETE /api/documents/<id> - Document with its analysis / delete it
- GET /api/documents/<id>/highlights?page=N - Glossary highlighting of a page
- GET /api/documents/<id>/file - The stored file
- GET /api/document-proxy?url= - Fetch a remote document for the viewer
"""
import hashlib
import logging
import uuid
from pathlib import Path

from django.conf import settings
from django.db import transaction
from django.http import FileResponse, JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt

from apps.authn.middleware import auth_required
from apps.authn.ratelimit import rate_limited, check_upload_rate_limit
from apps.authn.audit import audit_document_uploaded, audit_document_duplicate, audit_document_deleted
from apps.core.http import error_response, invalid_json, read_json, validation_error
from apps.indexing.extractor import load_pages, delete_pages
from apps.teams.services import record_shared_document_view
from .access import get_accessible_document, get_owned_document
from .analysis import AnalysisResult, group_risks, result_payload, risk_factors_by_severity, save_analysis
from .glossary import highlight_segments
from .models import Document, DocumentStatus, JobStatus, ProcessingJob
from .proxy import (
    DEFAULT_CONTENT_DISPOSITION,
    DEFAULT_CONTENT_TYPE,
    ProxyError,
    UpstreamBody,
    close_upstream,
    is_fetchable_url,
    open_upstream,
    rewrite_drive_url,
)
from .storage import get_storage, StorageError

logger = logging.getLogger(__name__)

EXTENSION_TO_MIME = {
    '.pdf': 'application/pdf',
    '.txt': 'text/plain',
    '.md': 'text/markdown',
    '.markdown': 'text/markdown',
}

# Job status as reported to the upload page
CLIENT_JOB_STATUS = {
    JobStatus.QUEUED: 'processing',
    JobStatus.RUNNING: 'processing',
    JobStatus.COMPLETE: 'completed',
    JobStatus.FAILED: 'failed',
}


def get_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def normalize_content_type(content_type: str, filename: str) -> str:
    """
    Use the extension's type when the client sent a generic one.

    Some browsers send application/octet-stream for markdown or text files.
    """
    if content_type in ('application/octet-stream', 'binary/octet-stream', '', None):
        return EXTENSION_TO_MIME.get(get_extension(filename), content_type or '')
    return content_type


def compute_file_hash(uploaded_file) -> str:
    """SHA-256 of the upload, read in chunks; rewinds the file afterwards."""
    sha256 = hashlib.sha256()
    for chunk in uploaded_file.chunks():
        sha256.update(chunk)
    uploaded_file.seek(0)
    return sha256.hexdigest()


def get_existing_document(user, content_hash: str):
    """
    Find an earlier upload of identical content by the same user.

    Returns:
        (Document, ProcessingJob|None) if found, (None, None) if not
    """
    document = (
        Document.objects
        .filter(owner=user, file_hash=content_hash)
        .order_by('-created_at')
        .first()
    )
    if document is None:
        return None, None
    return document, document.jobs.order_by('-created_at').first()


def job_payload(job: ProcessingJob) -> dict:
    status = CLIENT_JOB_STATUS.get(job.status, 'processing')
    data = {
        'job_id': str(job.id),
        'document_id': str(job.document_id),
        'status': status,
        'stage': job.stage,
        'progress': job.progress_message,
        'percent': job.progress,
    }
    if status == 'failed':
        data['error'] = job.error_message or 'Processing failed'
    if status == 'completed':
        data['result'] = result_payload(job.document)
    return data


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
@rate_limited(check_upload_rate_limit)
def upload_initiate(request):
    """
    Upload a document and queue it for analysis.

    POST /upload/initiate  (multipart/form-data, field "file")

    Returns 202:
        {"job_id": "uuid", "document_id": "uuid", "status": "processing"}

    Re-uploading identical content returns the existing document with
    200 and "duplicate": true.
    """
    user = request.auth_user

    if 'file' not in request.FILES:
        return error_response('No file provided', 400, code='MISSING_FILE')

    uploaded_file = request.FILES['file']
    filename = uploaded_file.name
    size_bytes = uploaded_file.size

    logger.info(f"Upload request: {filename}, {uploaded_file.content_type}, {size_bytes} bytes from user {user.id}")

    if size_bytes > settings.MAX_UPLOAD_SIZE:
        max_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        return JsonResponse(
            {
                'error': f'File too large. Maximum size is {max_mb}MB',
                'code': 'FILE_TOO_LARGE',
                'maxSize': settings.MAX_UPLOAD_SIZE
            },
            status=400
        )

    extension = get_extension(filename)
    if extension not in settings.ALLOWED_EXTENSIONS:
        return JsonResponse(
            {
                'error': 'Invalid file type. Allowed: PDF, TXT, MD',
                'code': 'INVALID_FILE_TYPE',
                'allowedExtensions': settings.ALLOWED_EXTENSIONS
            },
            status=400
        )

    content_type = normalize_content_type(uploaded_file.content_type, filename)
    if content_type not in settings.ALLOWED_CONTENT_TYPES:
        return JsonResponse(
            {
                'error': 'Invalid content type. Allowed: PDF, TXT, MD',
                'code': 'INVALID_CONTENT_TYPE',
                'allowedTypes': settings.ALLOWED_CONTENT_TYPES
            },
            status=400
        )

    content_hash = compute_file_hash(uploaded_file)

    existing_doc, existing_job = get_existing_document(user, content_hash)
    if existing_doc:
        logger.info(
            f"Duplicate upload detected: returning existing document {existing_doc.id} "
            f"(original filename: {existing_doc.original_file_name}, new filename: {filename})"
        )
        audit_document_duplicate(request, str(existing_doc.id))
        data = {
            'document_id': str(existing_doc.id),
            'status': CLIENT_JOB_STATUS.get(existing_job.status, 'processing') if existing_job else 'completed',
            'duplicate': True,
            'message': 'Document with identical content already exists',
        }
        if existing_job:
            data['job_id'] = str(existing_job.id)
        return JsonResponse(data, status=200)

    storage = get_storage()
    document_id = uuid.uuid4()

    try:
        storage_path = storage.save(str(user.id), str(document_id), extension, uploaded_file)
    except StorageError as e:
        logger.error(f"Storage error during upload: {e}")
        return error_response('Failed to store file', 500, code='STORAGE_ERROR')

    try:
        with transaction.atomic():
            document = Document.objects.create(
                id=document_id,
                owner=user,
                original_file_name=filename,
                file_size=size_bytes,
                mime_type=content_type,
                file_hash=content_hash,
                storage_path=storage_path,
                storage_url=storage.url_for(str(document_id)),
                status=DocumentStatus.PROCESSING,
            )
            job = ProcessingJob.objects.create(document=document)
    except Exception:
        storage.delete(storage_path)
        raise

    logger.info(f"Document created: {document.id}, job: {job.id}")

    audit_document_uploaded(
        request,
        document_id=str(document.id),
        filename=filename,
        size_bytes=size_bytes,
        content_hash=content_hash
    )

    return JsonResponse({
        'job_id': str(job.id),
        'document_id': str(document.id),
        'status': 'processing',
    }, status=202)


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def upload_status(request, job_id):
    """
    GET /upload/status/<job_id>

    Returns:
        {
            "job_id", "document_id",
            "status": "processing|completed|failed",
            "stage": "EXTRACT",
            "progress": "Extracting text...",
            "percent": 10,
            "error": "...",     // failed only
            "result": {...}     // completed only
        }
    """
    job = (
        ProcessingJob.objects
        .select_related('document')
        .filter(id=job_id, document__owner=request.auth_user)
        .first()
    )
    if job is None:
        return error_response('Job not found', 404, code='NOT_FOUND')

    return JsonResponse(job_payload(job))


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def list_documents(request):
    """GET /api/documents - the caller's documents, newest first."""
    documents = (
        Document.objects
        .filter(owner=request.auth_user)
        .prefetch_related('jobs')
        .order_by('-created_at')
    )

    docs_list = []
    for doc in documents:
        data = doc.to_dict()
        latest_job = max(doc.jobs.all(), key=lambda j: j.created_at, default=None)
        if latest_job:
            data['latestJob'] = {
                'id': str(latest_job.id),
                'status': latest_job.status,
                'stage': latest_job.stage,
                'progress': latest_job.progress,
                'errorMessage': latest_job.error_message,
            }
        docs_list.append(data)

    return JsonResponse({'documents': docs_list})


def validate_file_metadata(file_metadata: dict):
    """An error message for a malformed fileMetadata object, else None."""
    for key in ('fileName', 'fileType'):
        if not isinstance(file_metadata.get(key), (str, type(None))):
            return f'fileMetadata.{key} must be a string'
    size = file_metadata.get('fileSize')
    if size is not None and (isinstance(size, bool) or not isinstance(size, int) or size < 0):
        return 'fileMetadata.fileSize must be a non-negative integer'
    return None


@csrf_exempt
@require_http_methods(["POST"])
@auth_required
def create_document(request):
    """
    POST /api/documents/create

    Request body:
        {
            "analysisResult": {"document_id"?, "file_url"?, "summary",
                               "risk_alerts", "key_points"?, "glossary"},
            "fileMetadata": {"fileName", "fileSize", "fileType"}
        }

    If analysisResult.document_id names a document the caller owns, its
    analysis is replaced (200). Otherwise a new ANALYZED document is
    created (201).
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    analysis_data = body.get('analysisResult')
    file_metadata = body.get('fileMetadata')
    if not isinstance(analysis_data, dict) or not isinstance(file_metadata, dict):
        return error_response('Missing analysis results or file metadata', 400)

    error = validate_file_metadata(file_metadata)
    if error is None and not isinstance(analysis_data.get('file_url'), (str, type(None))):
        error = 'analysisResult.file_url must be a string'
    if error:
        return validation_error(error)

    result = AnalysisResult.from_dict(analysis_data)
    existing = None
    if analysis_data.get('document_id'):
        existing = get_owned_document(request.auth_user, analysis_data['document_id'])

    with transaction.atomic():
        if existing is not None:
            document = existing
            status = 200
        else:
            document = Document.objects.create(
                owner=request.auth_user,
                original_file_name=file_metadata.get('fileName') or 'document',
                file_size=file_metadata.get('fileSize') or 0,
                mime_type=file_metadata.get('fileType') or DEFAULT_CONTENT_TYPE,
                file_hash='',
                storage_url=analysis_data.get('file_url'),
                status=DocumentStatus.PROCESSING,
            )
            status = 201
        save_analysis(document, result)

    document.refresh_from_db()
    return JsonResponse({
        'message': 'Document analyzed and saved successfully',
        'document': document.to_dict(),
    }, status=status)


def _document_detail(document: Document) -> dict:
    analysis = document.analyses.order_by('-created_at').first()
    risk_factors = list(risk_factors_by_severity(document))
    data = document.to_dict()
    data.update({
        'analysis': analysis.to_dict() if analysis else None,
        'riskFactors': [r.to_dict() for r in risk_factors],
        'keyPoints': [p.to_dict() for p in document.key_points.order_by('-importance', 'created_at')],
        'glossaryTerms': [t.to_dict() for t in document.glossary_terms.all()],
        'risksBySeverity': group_risks(risk_factors),
    })
    return data


@csrf_exempt
@require_http_methods(["GET", "DELETE"])
@auth_required
def document_detail(request, document_id):
    """
    GET /api/documents/<id> - owner or active member of a team it is shared with
    DELETE /api/documents/<id> - owner only
    """
    user = request.auth_user

    if request.method == 'DELETE':
        return _delete_document(request, user, document_id)

    document = get_accessible_document(user, document_id)
    if document is None:
        return error_response('Document not found', 404, code='NOT_FOUND')

    if document.owner_id != user.id:
        record_shared_document_view(user, document)

    return JsonResponse({'document': _document_detail(document)})


def _delete_document(request, user, document_id):
    from apps.rag.vectorstore import get_vector_store, VectorStoreError

    document = get_owned_document(user, document_id)
    if document is None:
        return error_response('Document not found', 404, code='NOT_FOUND')

    doc_id = str(document.id)

    if document.storage_path:
        try:
            get_storage().delete(document.storage_path)
        except StorageError as e:
            logger.warning(f"Could not delete file of document {doc_id}: {e}")

    delete_pages(doc_id, Path(settings.EXTRACTED_ROOT))

    if document.chunks.exists():
        try:
            get_vector_store().delete_document(doc_id)
        except VectorStoreError as e:
            logger.warning(f"Could not delete vectors of document {doc_id}: {e}")

    document.delete()
    audit_document_deleted(request, doc_id)
    logger.info(f"Deleted document {doc_id}")

    return JsonResponse({'message': 'Document deleted successfully'})


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def document_highlights(request, document_id):
    """
    GET /api/documents/<id>/highlights?page=N

    Returns:
        {"page": N, "pageCount": M, "segments": [{"text", "termId"?, "term"?, "definition"?}]}
    """
    document = get_accessible_document(request.auth_user, document_id)
    if document is None:
        return error_response('Document not found', 404, code='NOT_FOUND')

    try:
        page = int(request.GET.get('page', '1'))
    except ValueError:
        return error_response('page must be an integer', 400)

    pages = load_pages(str(document.id), Path(settings.EXTRACTED_ROOT))
    if not pages:
        return error_response('No extracted text for this document', 404, code='NO_TEXT')
    if page < 1 or page > len(pages):
        return error_response('Page out of range', 404, code='PAGE_OUT_OF_RANGE')

    segments = highlight_segments(pages[page - 1], list(document.glossary_terms.all()))

    return JsonResponse({
        'page': page,
        'pageCount': len(pages),
        'segments': [s.to_dict() for s in segments],
    })


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def document_file(request, document_id):
    """GET /api/documents/<id>/file - stream the stored upload."""
    document = get_accessible_document(request.auth_user, document_id)
    if document is None or not document.storage_path:
        return error_response('Document not found', 404, code='NOT_FOUND')

    try:
        path = get_storage().get_path(document.storage_path)
    except StorageError:
        return error_response('Document not found', 404, code='NOT_FOUND')
    if not path.exists():
        return error_response('File not found', 404, code='NOT_FOUND')

    return FileResponse(
        open(path, 'rb'),
        content_type=document.mime_type,
        as_attachment=False,
        filename=document.original_file_name,
    )


@csrf_exempt
@require_http_methods(["GET"])
@auth_required
def document_proxy(request):
    """
    GET /api/document-proxy?url=<url>

    Streams a remote document. Google Drive share links are rewritten to
    direct downloads; upstream error statuses are relayed.
    """
    url = request.GET.get('url')
    if not url:
        return error_response('URL parameter is missing', 400)
    if not is_fetchable_url(url):
        return error_response('Only public http(s) URLs can be fetched', 400)

    download_url = rewrite_drive_url(url)

    try:
        client, upstream = open_upstream(download_url)
    except ProxyError:
        return error_response('Failed to fetch file', 502)

    if not upstream.is_success:
        status = upstream.status_code
        reason = upstream.reason_phrase
        close_upstream(client, upstream)
        return error_response(f'Failed to fetch file: {reason}', status)

    response = StreamingHttpResponse(
        UpstreamBody(client, upstream),
        content_type=upstream.headers.get('Content-Type') or DEFAULT_CONTENT_TYPE,
    )
    response['Content-Disposition'] = (
        upstream.headers.get('Content-Disposition') or DEFAULT_CONTENT_DISPOSITION
    )
    return response
