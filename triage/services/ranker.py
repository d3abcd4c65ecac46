"""
Recommendation ranker: pick the best active agent for the active ticket.

For each active agent a in input order:
    score_a = load_contribution(a) + tech_score(a)
The recommended agent is argmax(score). numpy's argmax returns the first index
of the maximum, so ties go to the agent listed first.

Ranking is pure: it reads the agents and ticket and never mutates them.
"""

import logging
from typing import Optional

import numpy as np

from triage.models import Agent, EvidenceItem, Recommendation, ScoringConfig, Ticket
from triage.services.match_evaluator import evaluate
from triage.services.occupancy import load_contribution, occupancy_rate

logger = logging.getLogger(__name__)


def _active(agents: list[Agent]) -> list[Agent]:
    return [a for a in agents if a.is_active]


def _compute_scores(
    ticket: Ticket, agents: list[Agent], config: ScoringConfig
) -> tuple[np.ndarray, list[tuple[float, float, list[EvidenceItem]]]]:
    """Composite score per agent plus the (tech, load, evidence) parts behind it."""
    scores = np.zeros(len(agents), dtype=np.float64)
    parts = []
    for i, agent in enumerate(agents):
        tech, evidence = evaluate(ticket, agent, config)
        load = load_contribution(agent)
        scores[i] = load + tech
        parts.append((tech, load, evidence))
    return scores, parts


def _build(ticket: Ticket, agent: Agent, score: float, part) -> Recommendation:
    tech, load, evidence = part
    return Recommendation(
        ticket_id=ticket.id,
        agent=agent,
        score=score,
        tech_score=tech,
        load_score=load,
        occupancy_rate=occupancy_rate(agent),
        evidence=evidence,
    )


def rank(
    ticket: Optional[Ticket], agents: list[Agent], config: Optional[ScoringConfig] = None
) -> Optional[Recommendation]:
    """
    Return the top Recommendation for `ticket`, or None when there is no ticket
    or no active agent.
    """
    if ticket is None:
        return None
    candidates = _active(agents)
    if not candidates:
        logger.warning("No active agents to rank for ticket %s.", ticket.id)
        return None
    config = config or ScoringConfig()
    scores, parts = _compute_scores(ticket, candidates, config)
    best_idx = int(np.argmax(scores))
    return _build(ticket, candidates[best_idx], float(scores[best_idx]), parts[best_idx])


def rank_candidates(
    ticket: Optional[Ticket], agents: list[Agent], config: Optional[ScoringConfig] = None
) -> list[Recommendation]:
    """All active candidates, best first. Equal scores keep input order (stable sort)."""
    if ticket is None:
        return []
    candidates = _active(agents)
    if not candidates:
        return []
    config = config or ScoringConfig()
    scores, parts = _compute_scores(ticket, candidates, config)
    order = np.argsort(-scores, kind="stable")
    return [
        _build(ticket, candidates[int(i)], float(scores[int(i)]), parts[int(i)])
        for i in order
    ]
