"""
Document chat API views.

Endpoints:
- POST /chat, POST /api/chat: ask a question about a document
- GET /api/chat?documentId=: conversation history
"""
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.authn.audit import audit_chat_query
from apps.authn.middleware import auth_required
from apps.authn.ratelimit import check_chat_rate_limit, rate_limited
from apps.core.http import error_response, invalid_json, read_json
from apps.docs.access import get_accessible_document
from apps.indexing.embedder import EmbeddingError
from apps.rag.chat import ChatError, generate_answer
from apps.rag.embeddings import QueryValidationError, embed_query, normalize_query
from apps.rag.models import ChatMessage, ChatSession, MessageRole
from apps.rag.retrieval import RetrievalResult, retrieve_sources
from apps.rag.vectorstore import VectorStoreError, get_vector_store

logger = logging.getLogger(__name__)


def retrieve_context(document_id: str, question: str) -> RetrievalResult:
    """
    Retrieve excerpts for a question, or none when embedding or the
    vector store is unavailable (the answer then relies on the analysis).
    """
    try:
        query_embedding = embed_query(question)
        return retrieve_sources(get_vector_store(), document_id, query_embedding)
    except (EmbeddingError, VectorStoreError) as e:
        logger.warning(f"Context retrieval unavailable for document {document_id}: {e}")
        return RetrievalResult()


def get_or_create_session(user, document) -> ChatSession:
    session = ChatSession.objects.filter(user=user, document=document).first()
    if session is None:
        session = ChatSession.objects.create(
            user=user,
            document=document,
            title=f"Chat for document {document.id}",
        )
    return session


@method_decorator(csrf_exempt, name='dispatch')
@method_decorator(auth_required, name='dispatch')
class ChatView(View):
    """
    POST {message, document_id}
        -> {id, role: "assistant", response, content, sources, model}

    GET ?documentId=<uuid>
        -> [{id, role: "user"|"assistant", content, sources}] oldest first
    """

    @method_decorator(rate_limited(check_chat_rate_limit))
    def post(self, request):
        body = read_json(request)
        if body is None:
            return invalid_json()

        message = body.get('message')
        document_id = body.get('document_id')

        if not message or not document_id:
            return error_response('Message and document_id are required', 400)

        try:
            question = normalize_query(str(message))
        except QueryValidationError as e:
            return error_response(str(e), 400)

        document = get_accessible_document(request.auth_user, document_id)
        if document is None:
            return error_response('Document not found', 404)

        session = get_or_create_session(request.auth_user, document)

        # Saved before generation so it survives an LLM failure
        ChatMessage.objects.create(
            session=session,
            role=MessageRole.USER,
            content=str(message),
        )

        retrieval = retrieve_context(str(document.id), question)

        try:
            answer = generate_answer(question, document, retrieval.sources)
        except ChatError as e:
            logger.error(f"Chat generation failed for document {document.id}: {e}")
            response = error_response('AI service temporarily unavailable', 503, code='LLM_UNAVAILABLE')
            response['Retry-After'] = '30'
            return response

        sources = [source.to_dict() for source in retrieval.sources]

        assistant_message = ChatMessage.objects.create(
            session=session,
            role=MessageRole.ASSISTANT,
            content=answer.content,
            metadata={'sources': sources} if sources else None,
            model_used=answer.model,
            tokens_used=answer.tokens,
        )
        session.save(update_fields=['updated_at'])

        audit_chat_query(
            request,
            document_id=str(document.id),
            message_length=len(question),
            source_count=len(sources),
            strategy=retrieval.strategy,
        )

        return JsonResponse({
            'id': str(assistant_message.id),
            'role': 'assistant',
            'response': answer.content,
            'content': answer.content,
            'sources': sources,
            'model': answer.model,
        })

    def get(self, request):
        document_id = request.GET.get('documentId')
        if not document_id:
            return error_response('documentId is required', 400)

        document = get_accessible_document(request.auth_user, document_id)
        if document is None:
            return JsonResponse([], safe=False)

        session = ChatSession.objects.filter(user=request.auth_user, document=document).first()
        if session is None:
            return JsonResponse([], safe=False)

        messages = [m.to_dict() for m in session.messages.order_by('created_at')]
        return JsonResponse(messages, safe=False)
