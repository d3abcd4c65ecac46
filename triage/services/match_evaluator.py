"""
Match evaluator: expertise-to-ticket evidence and technical score.

Three evidence sources are evaluated as sequential passes over one collector,
in fixed priority order:
  1. declared field  - the ticket's configured custom field names the system
  2. content         - the system name appears in subject + description
  3. tag             - a ticket tag equals the system name
A system already credited by an earlier pass only earns a small duplicate bonus.
The summed points are clamped to TECH_SCORE_CEILING.
"""

from typing import Optional

from triage.config import (
    CONTENT_DUPLICATE_BONUS,
    CONTENT_WEIGHT,
    FIELD_WEIGHT,
    TAG_DUPLICATE_BONUS,
    TAG_WEIGHT,
    TECH_SCORE_CEILING,
)
from triage.models import (
    Agent,
    EvidenceItem,
    EvidenceSource,
    ScoringConfig,
    SystemExpertise,
    Ticket,
)


class _EvidenceCollector:
    """Ordered evidence list plus the set of system names already credited."""

    def __init__(self) -> None:
        self.items: list[EvidenceItem] = []
        self._credited: set[str] = set()

    def credited(self, exp: SystemExpertise) -> bool:
        return exp.system_name.lower() in self._credited

    def add(self, source: EvidenceSource, exp: SystemExpertise, points: float) -> None:
        self.items.append(
            EvidenceItem(
                source=source,
                matched_system=exp.system_name,
                level=exp.level,
                points=points,
            )
        )
        self._credited.add(exp.system_name.lower())

    def total(self) -> float:
        return sum(item.points for item in self.items)


def _declared_field_pass(
    collector: _EvidenceCollector, ticket: Ticket, agent: Agent, field_key: Optional[str]
) -> None:
    declared = ticket.declared_field(field_key)
    if declared is None:
        return
    exp = agent.expertise_for(declared)
    if exp is not None:
        collector.add(EvidenceSource.DECLARED_FIELD, exp, int(exp.level) * FIELD_WEIGHT)


def _content_pass(collector: _EvidenceCollector, ticket: Ticket, agent: Agent) -> None:
    content = f"{ticket.subject} {ticket.description}".lower()
    if not content.strip():
        return
    for exp in agent.expertise:
        if exp.system_name.lower() not in content:
            continue
        if collector.credited(exp):
            points = CONTENT_DUPLICATE_BONUS
        else:
            points = int(exp.level) * CONTENT_WEIGHT
        collector.add(EvidenceSource.CONTENT, exp, points)


def _tag_pass(collector: _EvidenceCollector, ticket: Ticket, agent: Agent) -> None:
    tags = {t.strip().lower() for t in ticket.tags if t and t.strip()}
    if not tags:
        return
    # Iterate expertise (not tags) so repeated tags credit a system once.
    for exp in agent.expertise:
        if exp.system_name.lower() not in tags:
            continue
        if collector.credited(exp):
            points = TAG_DUPLICATE_BONUS
        else:
            points = int(exp.level) * TAG_WEIGHT
        collector.add(EvidenceSource.TAG, exp, points)


def evaluate(
    ticket: Ticket, agent: Agent, config: Optional[ScoringConfig] = None
) -> tuple[float, list[EvidenceItem]]:
    """
    Compute (tech_score, evidence) for one ticket and one agent.

    Never raises for well-formed models: an agent without expertise, or a ticket
    without subject/description/tags, simply yields (0.0, []).
    """
    config = config or ScoringConfig()
    if not agent.expertise:
        return 0.0, []
    collector = _EvidenceCollector()
    _declared_field_pass(collector, ticket, agent, config.declared_field_key)
    _content_pass(collector, ticket, agent)
    _tag_pass(collector, ticket, agent)
    tech_score = min(collector.total(), TECH_SCORE_CEILING)
    return tech_score, collector.items
