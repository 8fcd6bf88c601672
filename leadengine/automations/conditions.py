"""
Workflow condition evaluation.

Evaluated once per workflow per dispatch. These never mutate the lead or
analysis they are given.
"""
from typing import Optional

from leadengine.automations.base import AnalysisSnapshot, Conditions, LeadSnapshot


def resolve_score(lead: LeadSnapshot, analysis: Optional[AnalysisSnapshot]) -> float:
    """analysis.score → lead.score → 0."""
    if analysis is not None and analysis.score is not None:
        return analysis.score
    if lead.score is not None:
        return lead.score
    return 0


def resolve_intent(lead: LeadSnapshot, analysis: Optional[AnalysisSnapshot]) -> Optional[str]:
    """analysis.intent → lead.intent."""
    if analysis is not None and analysis.intent:
        return analysis.intent
    return lead.intent


def evaluate_conditions(
    lead: LeadSnapshot,
    analysis: Optional[AnalysisSnapshot],
    conditions: Optional[Conditions],
) -> bool:
    """
    True when every declared predicate holds.

    Score bounds are inclusive. Membership checks require a non-null live
    value that is in the allow-list. solar_enriched is exact equality.
    """
    if conditions is None or conditions.is_empty:
        return True

    if conditions.min_score is not None or conditions.max_score is not None:
        score = resolve_score(lead, analysis)
        if conditions.min_score is not None and score < conditions.min_score:
            return False
        if conditions.max_score is not None and score > conditions.max_score:
            return False

    if conditions.intent_in is not None:
        intent = resolve_intent(lead, analysis)
        if not intent or intent not in conditions.intent_in:
            return False

    if conditions.stage_in is not None:
        if not lead.stage or lead.stage not in conditions.stage_in:
            return False

    if conditions.site_suitability_in is not None:
        if not lead.site_suitability or lead.site_suitability not in conditions.site_suitability_in:
            return False

    if conditions.solar_enriched is not None:
        if bool(lead.solar_enriched) is not conditions.solar_enriched:
            return False

    return True
