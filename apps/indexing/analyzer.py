"""
LLM analysis of an extracted document.

The model is asked for a single JSON object:

    {
        "summary": "...",
        "key_points": [{"title", "description", "potential_impact", "importance"}],
        "risk_alerts": [{"severity", "description", "recommendation", "page"}],
        "glossary": [{"term", "definition"}]
    }

The reply is parsed leniently (the first {...} block is taken, markdown
fences and surrounding prose are ignored) and normalized through
AnalysisResult.
"""
import json
import logging
import re
from typing import List, Optional

from apps.docs.analysis import AnalysisResult
from apps.indexing.retry import call_with_retry, ANALYSIS_RETRY, RetryExhausted
from apps.rag.llm_client import LLMError, LLMMessage, LLMResponse, get_llm_client

logger = logging.getLogger(__name__)

# Characters of document text sent to the model
MAX_ANALYSIS_CHARS = 120_000

ANALYSIS_TEMPERATURE = 0.2
ANALYSIS_MAX_TOKENS = 4096

PERSONA_HINTS = {
    'STUDENT': "The reader is a student; explain obligations and terms simply, with examples.",
    'FREELANCER': "The reader is a freelancer; focus on payment, scope, IP ownership and termination.",
    'TENANT': "The reader is a tenant; focus on rent, deposits, repairs, entry rights and eviction.",
    'SMALL_BUSINESS': "The reader runs a small business; focus on liability, indemnities, renewals and costs.",
    'GENERAL': "The reader has no legal training; use plain, everyday language.",
}

SYSTEM_PROMPT = """You are a legal document analyst. Read the document and return ONLY a JSON object with these keys:

"summary": a plain-language summary of the document in 3-6 sentences.
"key_points": list of objects {{"title", "description", "potential_impact", "importance"}}; importance is an integer from 1 (minor) to 5 (critical).
"risk_alerts": list of objects {{"severity", "description", "recommendation", "page"}}; severity is one of LOW, MEDIUM, HIGH, CRITICAL; page is the page number where the clause appears, if known.
"glossary": list of objects {{"term", "definition"}} for legal terms used in the document, each term written exactly as it appears in the text.

{persona_hint}
Answer in the language with code "{language}". Do not add any text outside the JSON object."""


class AnalysisError(Exception):
    """Raised when the document cannot be analyzed."""
    pass


def build_document_text(pages: List[str], max_chars: int = MAX_ANALYSIS_CHARS) -> str:
    """Join pages with page markers, truncated to max_chars."""
    text = "\n\n".join(
        f"--- Page {number} ---\n{page.strip()}"
        for number, page in enumerate(pages, start=1)
        if page.strip()
    )
    if len(text) > max_chars:
        logger.warning(f"Document text truncated from {len(text)} to {max_chars} characters")
        text = text[:max_chars]
    return text


def build_messages(pages: List[str], persona: Optional[str] = None, language: str = 'en') -> List[LLMMessage]:
    hint = PERSONA_HINTS.get(persona or 'GENERAL', PERSONA_HINTS['GENERAL'])
    return [
        LLMMessage(role="system", content=SYSTEM_PROMPT.format(persona_hint=hint, language=language or 'en')),
        LLMMessage(role="user", content=build_document_text(pages)),
    ]


def parse_analysis_response(response_text: str) -> AnalysisResult:
    """
    Extract the analysis JSON object from a model reply.

    Raises:
        AnalysisError: If no JSON object can be parsed, or it has no summary
    """
    json_match = re.search(r'\{[\s\S]*\}', response_text or '')
    if not json_match:
        raise AnalysisError("No JSON object in analysis response")

    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Invalid JSON in analysis response: {str(e)[:80]}")

    if not isinstance(data, dict):
        raise AnalysisError("Analysis response is not a JSON object")

    result = AnalysisResult.from_dict(data)
    if not result.summary:
        raise AnalysisError("Analysis response has no summary")

    return result


def analyze_document(
    pages: List[str],
    persona: Optional[str] = None,
    language: str = 'en',
) -> tuple[AnalysisResult, str]:
    """
    Run the LLM analysis of a document.

    Returns:
        (AnalysisResult, model name)

    Raises:
        AnalysisError: If the LLM fails or its reply cannot be parsed
    """
    if not any(page.strip() for page in pages):
        raise AnalysisError("Document has no text to analyze")

    messages = build_messages(pages, persona, language)

    try:
        client = get_llm_client()
        response: LLMResponse = call_with_retry(
            lambda: client.chat(
                messages,
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=ANALYSIS_MAX_TOKENS,
                json_output=True,
            ),
            ANALYSIS_RETRY,
            (LLMError,),
            "Document analysis",
        )
    except RetryExhausted as e:
        raise AnalysisError(f"LLM failed, {e}")
    except LLMError as e:
        raise AnalysisError(f"LLM error: {e}")

    result = parse_analysis_response(response.content)
    logger.info(
        f"Analysis parsed: {len(result.risk_alerts)} risks, {len(result.key_points)} key points, "
        f"{len(result.glossary)} glossary terms"
    )
    return result, response.model
