"""
Tests for analysis normalization, risk scoring and persistence.
"""
import pytest

from apps.docs.analysis import (
    AnalysisResult,
    calculate_risk,
    group_risks,
    normalize_severity,
    result_payload,
    risk_factors_by_severity,
    save_analysis,
)
from apps.docs.models import Document, DocumentStatus, RiskFactor, RiskLevel


def make_document(owner, **extra):
    fields = {
        'original_file_name': 'lease.pdf',
        'file_size': 1024,
        'mime_type': 'application/pdf',
        'file_hash': 'a' * 64,
        'status': DocumentStatus.PROCESSING,
    }
    fields.update(extra)
    return Document.objects.create(owner=owner, **fields)


# ============================================================================
# Risk scoring
# ============================================================================

class TestCalculateRisk:

    def test_no_risks(self):
        assert calculate_risk([]) == (0.0, RiskLevel.LOW)
        assert calculate_risk(None) == (0.0, RiskLevel.LOW)

    def test_average_of_points(self):
        score, level = calculate_risk([{'severity': 'HIGH'}, {'severity': 'LOW'}])

        assert score == 3.0
        assert level == RiskLevel.HIGH

    def test_critical_threshold(self):
        score, level = calculate_risk([{'severity': 'CRITICAL'}, {'severity': 'LOW'}])

        assert score == 5.5
        assert level == RiskLevel.CRITICAL

    def test_medium_threshold(self):
        score, level = calculate_risk([{'severity': 'MEDIUM'}, {'severity': 'LOW'}])

        assert score == 2.0
        assert level == RiskLevel.MEDIUM

    def test_unknown_severity_scores_zero(self):
        score, level = calculate_risk([{'severity': 'SEVERE'}, {'severity': 'MEDIUM'}])

        assert score == 1.5
        assert level == RiskLevel.LOW

    def test_severity_is_case_insensitive(self):
        assert calculate_risk([{'severity': 'high'}]) == (5.0, RiskLevel.CRITICAL)


class TestNormalizeSeverity:

    def test_known_values_upper_cased(self):
        assert normalize_severity(' medium ') == 'MEDIUM'

    def test_unknown_becomes_low(self):
        assert normalize_severity('catastrophic') == 'LOW'
        assert normalize_severity(None) == 'LOW'


# ============================================================================
# Payload normalization
# ============================================================================

class TestAnalysisResultFromDict:

    def test_accepts_camel_case_and_drops_incomplete_entries(self):
        result = AnalysisResult.from_dict({
            'summary': {'main': ' A lease. '},
            'riskAlerts': [{'severity': 'HIGH', 'description': 'Auto renewal'}, {'severity': 'LOW'}],
            'keyPoints': [{'title': 'Term'}, 'junk'],
            'glossary': [{'term': 'Lessor', 'definition': 'Landlord'}, {'term': 'Lessee'}],
        })

        assert result.summary == 'A lease.'
        assert len(result.risk_alerts) == 1
        assert len(result.key_points) == 1
        assert result.glossary == [{'term': 'Lessor', 'definition': 'Landlord'}]

    def test_non_list_sections_are_empty(self):
        result = AnalysisResult.from_dict({'summary': 'x', 'risk_alerts': 'none'})

        assert result.risk_alerts == []


# ============================================================================
# Persistence
# ============================================================================

@pytest.mark.django_db
class TestSaveAnalysis:

    @pytest.fixture
    def result(self):
        return AnalysisResult.from_dict({
            'summary': 'Residential lease for 12 months.',
            'risk_alerts': [
                {'severity': 'LOW', 'description': 'Pets need written consent from the landlord before arrival'},
                {'severity': 'critical', 'description': 'Tenant waives all claims', 'page': 3},
                {'severity': 'MEDIUM', 'description': 'Late fee of 10%', 'recommendation': 'Negotiate'},
            ],
            'key_points': [
                {'title': 'Rent', 'description': 'Due monthly', 'importance': 9},
                {'title': 'Deposit', 'description': 'Two months', 'importance': 'x'},
            ],
            'glossary': [{'term': 'Lessor', 'definition': 'The landlord'}],
        })

    def test_stores_rows_and_marks_analyzed(self, user, result):
        document = make_document(user)

        analysis = save_analysis(document, result, model_name='gemini-test')
        document.refresh_from_db()

        assert analysis.main_summary == 'Residential lease for 12 months.'
        assert analysis.model_used == 'gemini-test'
        assert document.status == DocumentStatus.ANALYZED
        assert document.analyzed_at is not None
        assert document.risk_level == RiskLevel.HIGH
        assert document.overall_risk_score == pytest.approx(14 / 3)

        titles = [r.title for r in document.risk_factors.all()]
        assert 'Pets need written consent from the landlord before' in titles
        assert all(len(t) <= 50 for t in titles)
        assert {r.category for r in document.risk_factors.all()} == {'LEGAL'}
        assert document.risk_factors.get(severity='CRITICAL').page_number == 3

        importances = sorted(p.importance for p in document.key_points.all())
        assert importances == [3, 5]

        term = document.glossary_terms.get()
        assert term.simplified_definition == 'The landlord'

    def test_risk_title_comes_from_description(self, user):
        result = AnalysisResult.from_dict({
            'summary': 'Lease.',
            'risk_alerts': [
                {'title': 'Deposit', 'severity': 'HIGH', 'description': 'Deposit is never returned to the tenant'},
            ],
        })

        save_analysis(make_document(user), result, model_name='gemini-test')

        risk = RiskFactor.objects.get()
        assert risk.title == 'Deposit is never returned to the tenant'
        assert risk.description == 'Deposit is never returned to the tenant'

    def test_mark_analyzed_false_keeps_status(self, user, result):
        document = make_document(user)

        save_analysis(document, result, mark_analyzed=False)
        document.refresh_from_db()

        assert document.status == DocumentStatus.PROCESSING
        assert document.analyzed_at is None
        assert document.risk_level == RiskLevel.HIGH

    def test_replace_removes_previous_rows(self, user, result):
        document = make_document(user)

        save_analysis(document, result)
        save_analysis(document, result)

        assert document.analyses.count() == 1
        assert document.risk_factors.count() == 3
        assert document.glossary_terms.count() == 1

    def test_risks_ordered_critical_first_and_grouped(self, user, result):
        document = make_document(user)
        save_analysis(document, result)

        ordered = list(risk_factors_by_severity(document))
        assert [r.severity for r in ordered] == ['CRITICAL', 'MEDIUM', 'LOW']

        groups = group_risks(ordered)
        assert len(groups['HIGH']) == 1
        assert len(groups['MEDIUM']) == 1
        assert len(groups['LOW']) == 1

    def test_result_payload(self, user, result):
        document = make_document(user, storage_url='/api/documents/x/file')
        save_analysis(document, result)

        payload = result_payload(document)

        assert payload['document_id'] == str(document.id)
        assert payload['file_url'] == '/api/documents/x/file'
        assert payload['summary'] == 'Residential lease for 12 months.'
        assert payload['risk_alerts'][0] == {'severity': 'CRITICAL', 'description': 'Tenant waives all claims'}
        assert payload['glossary'] == [{'term': 'Lessor', 'definition': 'The landlord'}]
