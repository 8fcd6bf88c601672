"""
Automation engine contracts.

The dispatcher only sees these types: immutable lead/event snapshots, parsed
workflow configuration, and the two collaborators it is constructed with
(a LeadStore for persistence and a MessageSender for outbound messages).
Concrete adapters live in leadengine.services; tests substitute fakes.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from leadengine.config import (
    CHANNELS, DEFAULT_CHANNEL,
    DEFAULT_INTENT, DEFAULT_SCORE, DEFAULT_SENTIMENT,
)


# ── Lead snapshots ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LeadEventRecord:
    """One entry of a lead's audit trail, newest first when loaded."""
    type: str
    content: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class LeadSnapshot:
    """Read-only view of a lead plus its most recent events."""
    id: str
    tenant_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    source: Optional[str] = None
    stage: Optional[str] = None
    intent: Optional[str] = None
    score: Optional[float] = None
    sentiment: Optional[str] = None
    site_suitability: Optional[str] = None
    max_panels_count: Optional[int] = None
    max_sunshine_hours_year: Optional[float] = None
    annual_kwh_production: Optional[float] = None
    roof_pitch: Optional[float] = None
    carbon_offset_kg: Optional[float] = None
    solar_enriched: bool = False
    solar_enriched_at: Optional[datetime] = None
    solar_enrichment_error: Optional[str] = None
    recent_events: Tuple[LeadEventRecord, ...] = ()

    @property
    def has_address(self) -> bool:
        return bool(self.address and self.address.strip())


@dataclass(frozen=True)
class AnalysisSnapshot:
    """AI analysis of the lead, resolved once per dispatch."""
    intent: str = DEFAULT_INTENT
    score: float = DEFAULT_SCORE
    sentiment: str = DEFAULT_SENTIMENT


def _present(value) -> bool:
    return value is not None and value != ''


def derive_analysis(lead: LeadSnapshot) -> Optional[AnalysisSnapshot]:
    """
    Build the analysis snapshot from the most recent event carrying intent or score.

    Each field resolves event metadata → lead column → default. Returns None
    when no recent event carries analysis metadata, in which case condition
    checks read the lead's own columns.
    """
    for event in lead.recent_events:
        meta = event.metadata or {}
        if _present(meta.get('intent')) or _present(meta.get('score')):
            return AnalysisSnapshot(
                intent=_first_present(meta.get('intent'), lead.intent, DEFAULT_INTENT),
                score=_first_present(_as_number(meta.get('score')), lead.score, DEFAULT_SCORE),
                sentiment=_first_present(meta.get('sentiment'), lead.sentiment, DEFAULT_SENTIMENT),
            )
    return None


def _first_present(*values):
    for value in values:
        if _present(value):
            return value
    return None


# ── Workflow configuration ───────────────────────────────────────────────────

def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_str_tuple(value) -> Optional[Tuple[str, ...]]:
    """Allow-lists: an empty or malformed list means the predicate is not declared."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return None
    items = tuple(str(v) for v in value if v is not None)
    return items or None


@dataclass(frozen=True)
class Conditions:
    """Predicates a lead must satisfy; None means 'do not check this dimension'."""
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    intent_in: Optional[Tuple[str, ...]] = None
    stage_in: Optional[Tuple[str, ...]] = None
    site_suitability_in: Optional[Tuple[str, ...]] = None
    solar_enriched: Optional[bool] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional['Conditions']:
        if not isinstance(raw, dict):
            return None
        solar_enriched = raw.get('solarEnriched')
        return cls(
            min_score=_as_number(raw.get('minScore')),
            max_score=_as_number(raw.get('maxScore')),
            intent_in=_as_str_tuple(raw.get('intentIn')),
            stage_in=_as_str_tuple(raw.get('stageIn')),
            site_suitability_in=_as_str_tuple(raw.get('siteSuitabilityIn')),
            solar_enriched=solar_enriched if isinstance(solar_enriched, bool) else None,
        )

    @property
    def is_empty(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in ('min_score', 'max_score', 'intent_in', 'stage_in',
                         'site_suitability_in', 'solar_enriched')
        )


@dataclass(frozen=True)
class Actions:
    enrich_solar: bool = False
    notify_on_viable: bool = False  # reserved, no behaviour yet

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> 'Actions':
        if not isinstance(raw, dict):
            return cls()
        return cls(
            enrich_solar=bool(raw.get('enrichSolar')),
            notify_on_viable=bool(raw.get('notifyOnViable')),
        )


@dataclass(frozen=True)
class WorkflowConfig:
    channel: str = DEFAULT_CHANNEL
    delay: float = 0
    conditions: Optional[Conditions] = None
    actions: Actions = field(default_factory=Actions)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> 'WorkflowConfig':
        """Parse the stored JSON config. Unknown keys are ignored."""
        if not isinstance(raw, dict):
            return cls()
        channel = raw.get('channel') or DEFAULT_CHANNEL
        delay = _as_number(raw.get('delay')) or 0
        return cls(
            channel=str(channel).lower(),
            delay=max(delay, 0),
            conditions=Conditions.from_dict(raw.get('conditions')),
            actions=Actions.from_dict(raw.get('actions')),
        )

    @property
    def has_supported_channel(self) -> bool:
        return self.channel in CHANNELS


@dataclass(frozen=True)
class Workflow:
    """A tenant-configured automation rule."""
    id: str
    tenant_id: str
    name: str
    trigger: str
    template: str = ''
    enabled: bool = True
    config: WorkflowConfig = field(default_factory=WorkflowConfig)


# ── Collaborators ─────────────────────────────────────────────────────────────

@dataclass
class SendResult:
    success: bool
    error: Optional[str] = None


class LeadStore(ABC):
    """
    Persistence collaborator.

    Implementations must give row-level atomicity for each call; the engine
    never needs a cross-row transaction.
    """

    @abstractmethod
    def get_lead(self, lead_id: str, recent_events: int = 5) -> Optional[LeadSnapshot]:
        """Load a lead with its N most recent events (newest first), or None."""
        ...

    @abstractmethod
    def list_enabled_workflows(self, tenant_id: str, trigger: str) -> List[Workflow]:
        """All enabled workflows of a tenant whose trigger matches exactly."""
        ...

    @abstractmethod
    def update_lead_enrichment(self, lead_id: str, fields: Dict[str, Any]) -> None:
        """Write the solar enrichment columns of a lead."""
        ...

    @abstractmethod
    def mark_enrichment_failed(self, lead_id: str, error: str) -> None:
        """Record the terminal 'not viable / not enriched' state."""
        ...

    @abstractmethod
    def rearm_solar_enrichment(self, lead_id: str) -> bool:
        """Clear the failure marker so enrichment may be attempted again."""
        ...

    @abstractmethod
    def create_site_survey(self, lead_id: str, survey: Any) -> None:
        """Insert a SiteSurvey row from a SiteSurveyData."""
        ...

    @abstractmethod
    def create_lead_event(self, lead_id: str, event_type: str, content: str,
                          metadata: Optional[Dict[str, Any]] = None) -> None:
        """Append a LeadEvent."""
        ...


class MessageSender(ABC):
    """Outbound message collaborator. Must not raise; failures go in SendResult."""

    @abstractmethod
    def send(self, lead_id: str, channel: str, body: str) -> SendResult:
        ...
