"""
Risk scoring and persistence of document analysis results.

An analysis result is the JSON object produced by the analysis stage of
the pipeline (or posted to /api/documents/create):

    {
        "summary": "Plain-language summary...",
        "risk_alerts": [{"severity": "HIGH", "description": "..."}],
        "key_points": [{"title": "...", "description": "...", "importance": 4}],
        "glossary": [{"term": "Indemnify", "definition": "..."}]
    }
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import transaction
from django.db.models import Case, IntegerField, QuerySet, Value, When
from django.utils import timezone

from .models import (
    Document,
    DocumentAnalysis,
    DocumentStatus,
    GlossaryTerm,
    KeyPoint,
    RiskFactor,
    RiskLevel,
)

logger = logging.getLogger(__name__)

# Points per severity; anything else scores 0
SEVERITY_SCORES = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 3,
    RiskLevel.HIGH: 5,
    RiskLevel.CRITICAL: 10,
}

SEVERITY_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}

RISK_TITLE_LENGTH = 50
DEFAULT_RISK_CATEGORY = 'LEGAL'


@dataclass
class AnalysisResult:
    """Normalized form of an analysis result payload."""
    summary: str = ''
    risk_alerts: List[Dict[str, Any]] = field(default_factory=list)
    key_points: List[Dict[str, Any]] = field(default_factory=list)
    glossary: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisResult':
        """
        Build from loosely-shaped JSON.

        Accepts camelCase aliases and drops entries missing their required
        text fields.
        """
        summary = data.get('summary') or ''
        if isinstance(summary, dict):
            summary = summary.get('main') or ''

        risks = data.get('risk_alerts') or data.get('riskAlerts') or []
        points = data.get('key_points') or data.get('keyPoints') or []
        terms = data.get('glossary') or []

        return cls(
            summary=str(summary).strip(),
            risk_alerts=[
                r for r in _dicts(risks)
                if str(r.get('description') or '').strip()
            ],
            key_points=[
                p for p in _dicts(points)
                if str(p.get('title') or p.get('description') or '').strip()
            ],
            glossary=[
                t for t in _dicts(terms)
                if str(t.get('term') or '').strip() and str(t.get('definition') or '').strip()
            ],
        )

    def to_dict(self) -> dict:
        return {
            'summary': self.summary,
            'risk_alerts': [
                {'severity': normalize_severity(r.get('severity')), 'description': r['description']}
                for r in self.risk_alerts
            ],
            'key_points': self.key_points,
            'glossary': [
                {'term': t['term'], 'definition': t['definition']}
                for t in self.glossary
            ],
        }


def _dicts(items: Any) -> List[dict]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def normalize_severity(severity: Any) -> str:
    """Upper-case a severity; unknown values are stored as LOW."""
    value = str(severity or '').strip().upper()
    return value if value in RiskLevel.values else RiskLevel.LOW


def calculate_risk(risks: Optional[Iterable[Dict[str, Any]]]) -> Tuple[float, str]:
    """
    Compute (overall_risk_score, risk_level) for a list of risk alerts.

    The score is the mean of per-alert points (LOW 1, MEDIUM 3, HIGH 5,
    CRITICAL 10, unknown 0). Levels: >= 5 CRITICAL, >= 3 HIGH, >= 2 MEDIUM,
    otherwise LOW. No alerts gives (0, LOW).
    """
    risks = list(risks or [])
    if not risks:
        return 0.0, RiskLevel.LOW

    total = sum(
        SEVERITY_SCORES.get(str(r.get('severity') or '').strip().upper(), 0)
        for r in risks
    )
    average = total / len(risks)

    if average >= 5:
        level = RiskLevel.CRITICAL
    elif average >= 3:
        level = RiskLevel.HIGH
    elif average >= 2:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return average, level


def _importance(value: Any) -> int:
    try:
        importance = int(value)
    except (TypeError, ValueError):
        return 3
    return max(1, min(5, importance))


def _page_number(value: Any) -> Optional[int]:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return None
    return page if page > 0 else None


@transaction.atomic
def save_analysis(
    document: Document,
    result: AnalysisResult,
    model_name: Optional[str] = None,
    replace: bool = True,
    mark_analyzed: bool = True,
) -> DocumentAnalysis:
    """
    Store an analysis result against a document and, unless
    mark_analyzed is False, mark it ANALYZED.

    With replace=True, earlier analysis rows of the document are removed
    first so re-running the pipeline does not duplicate risks or terms.
    """
    if replace:
        document.analyses.all().delete()
        document.risk_factors.all().delete()
        document.key_points.all().delete()
        document.glossary_terms.all().delete()

    score, level = calculate_risk(result.risk_alerts)

    analysis = DocumentAnalysis.objects.create(
        document=document,
        summary={'main': result.summary},
        model_used=model_name,
    )

    RiskFactor.objects.bulk_create([
        RiskFactor(
            document=document,
            title=str(r['description'])[:RISK_TITLE_LENGTH],
            description=r['description'],
            severity=normalize_severity(r.get('severity')),
            category=str(r.get('category') or DEFAULT_RISK_CATEGORY).upper(),
            recommendation=r.get('recommendation'),
            page_number=_page_number(r.get('page') or r.get('pageNumber')),
        )
        for r in result.risk_alerts
    ])

    KeyPoint.objects.bulk_create([
        KeyPoint(
            document=document,
            title=str(p.get('title') or p.get('description'))[:255],
            description=str(p.get('description') or p.get('title')),
            potential_impact=p.get('potential_impact') or p.get('potentialImpact'),
            importance=_importance(p.get('importance')),
        )
        for p in result.key_points
    ])

    GlossaryTerm.objects.bulk_create([
        GlossaryTerm(
            document=document,
            term=str(t['term']).strip()[:255],
            definition=t['definition'],
            simplified_definition=(
                t.get('simplified_definition') or t.get('simplifiedDefinition') or t['definition']
            ),
        )
        for t in result.glossary
    ])

    document.overall_risk_score = score
    document.risk_level = level
    update_fields = ['overall_risk_score', 'risk_level', 'updated_at']
    if mark_analyzed:
        document.status = DocumentStatus.ANALYZED
        document.analyzed_at = timezone.now()
        update_fields += ['status', 'analyzed_at']
    document.save(update_fields=update_fields)

    logger.info(
        f"Saved analysis for {document.id}: {len(result.risk_alerts)} risks, "
        f"{len(result.key_points)} key points, {len(result.glossary)} terms, "
        f"risk={level} ({score:.2f})"
    )
    return analysis


def risk_factors_by_severity(document: Document) -> QuerySet:
    """Risk factors ordered CRITICAL first, then HIGH, MEDIUM, LOW."""
    return document.risk_factors.annotate(
        severity_rank=Case(
            *[When(severity=level, then=Value(rank)) for level, rank in SEVERITY_RANK.items()],
            default=Value(0),
            output_field=IntegerField(),
        )
    ).order_by('-severity_rank', 'created_at')


def group_risks(risk_factors: Iterable[RiskFactor]) -> Dict[str, List[dict]]:
    """Bucket risks for display: CRITICAL and HIGH together, MEDIUM, and the rest."""
    groups = {'HIGH': [], 'MEDIUM': [], 'LOW': []}
    for risk in risk_factors:
        if risk.severity in (RiskLevel.CRITICAL, RiskLevel.HIGH):
            groups['HIGH'].append(risk.to_dict())
        elif risk.severity == RiskLevel.MEDIUM:
            groups['MEDIUM'].append(risk.to_dict())
        else:
            groups['LOW'].append(risk.to_dict())
    return groups


def result_payload(document: Document) -> dict:
    """The upload status 'result' object for a finished document."""
    analysis = document.analyses.order_by('-created_at').first()
    return {
        'document_id': str(document.id),
        'file_url': document.storage_url,
        'summary': analysis.main_summary if analysis else '',
        'risk_alerts': [
            {'severity': r.severity, 'description': r.description}
            for r in risk_factors_by_severity(document)
        ],
        'key_points': [
            p.to_dict() for p in document.key_points.order_by('-importance', 'created_at')
        ],
        'glossary': [
            {'term': t.term, 'definition': t.definition}
            for t in document.glossary_terms.all()
        ],
        'overall_risk_score': document.overall_risk_score,
        'risk_level': document.risk_level,
    }
