"""
Answer generation for document chat.

The system prompt carries the document's file name, its stored summary and
key risks, and the retrieved excerpts numbered for citation.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from apps.docs.models import Document, DocumentAnalysis
from apps.docs.analysis import risk_factors_by_severity
from apps.rag.llm_client import LLMError, LLMMessage, get_llm_client
from apps.rag.retrieval import Source
from apps.indexing.retry import call_with_retry, GENERATION_RETRY, RetryExhausted

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1024

# Risks listed in the prompt
MAX_PROMPT_RISKS = 5

NO_CONTEXT_ANSWER = (
    "I couldn't find information about that in this document. "
    "Try rephrasing your question or asking about a specific clause."
)


class ChatError(Exception):
    """Raised when an answer cannot be generated."""
    pass


SYSTEM_PROMPT = """You are LegisEye, an assistant that helps people understand legal documents.
Answer the user's question about the document "{file_name}" using the information below.

RULES:
1. Base your answer on the document summary, key risks and excerpts provided.
2. Cite excerpts with bracket notation like [1], [2].
3. If the information is not in the document, say so plainly. Do not invent clauses.
4. Explain legal terms in plain language. You are not giving legal advice.

DOCUMENT SUMMARY:
{summary}

KEY RISKS:
{risks}

EXCERPTS:
{excerpts}"""


@dataclass
class ChatAnswer:
    content: str
    model: Optional[str]
    tokens: Optional[int] = None


def build_excerpts(sources: List[Source]) -> str:
    """
    Number the excerpts for citation:
    [1] (page 3): The tenant shall...
    """
    if not sources:
        return "(No matching excerpts)"
    return "\n\n".join(
        f"[{i}] (page {source.page or '?'}): {source.text}"
        for i, source in enumerate(sources, 1)
    )


def build_system_prompt(
    document: Document,
    analysis: Optional[DocumentAnalysis],
    sources: List[Source],
) -> str:
    summary = analysis.main_summary if analysis else ''
    risks = [
        f"- [{risk.severity}] {risk.title}: {risk.description}"
        for risk in risk_factors_by_severity(document)[:MAX_PROMPT_RISKS]
    ]
    return SYSTEM_PROMPT.format(
        file_name=document.original_file_name,
        summary=summary or "(No summary available)",
        risks="\n".join(risks) or "(No risks identified)",
        excerpts=build_excerpts(sources),
    )


def generate_answer(
    question: str,
    document: Document,
    sources: List[Source],
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> ChatAnswer:
    """
    Answer a question about a document.

    Without excerpts and without a stored analysis there is nothing to
    ground an answer on, so NO_CONTEXT_ANSWER is returned without calling
    the LLM.

    Raises:
        ChatError: If the LLM fails after retries
    """
    analysis = document.analyses.order_by('-created_at').first()

    if not sources and analysis is None:
        logger.info(f"No context for document {document.id}, returning default answer")
        return ChatAnswer(content=NO_CONTEXT_ANSWER, model=None)

    messages = [
        LLMMessage(role="system", content=build_system_prompt(document, analysis, sources)),
        LLMMessage(role="user", content=question),
    ]

    try:
        client = get_llm_client()
        response = call_with_retry(
            lambda: client.chat(messages, temperature=temperature, max_tokens=max_tokens),
            GENERATION_RETRY,
            (LLMError,),
            "Chat generation",
        )
    except RetryExhausted as e:
        raise ChatError(f"LLM unavailable, {e}")
    except LLMError as e:
        raise ChatError(str(e))

    return ChatAnswer(content=response.content, model=response.model, tokens=response.total_tokens)
