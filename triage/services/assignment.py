"""
Assignment mutator: apply a confirmed recommendation to the roster store.

One confirmation:
  - increments the chosen agent's current_workload by exactly 1
  - appends one entry to the assignment log (newest first, capped)
  - retires the ticket from the pending queue
  - credits every ticket tag to the agent in outcome memory (fan-out: N tags ->
    N record updates; no tags -> a single GENERAL_TAG update)
All of it, including the hand-off to persistence, happens under the store lock,
so concurrent confirmations serialize and are saved in the order they applied.
A confirmation cannot be undone here; corrections are explicit new mutations.
"""

import logging
import math
import time
from typing import Optional
from uuid import uuid4

from triage.errors import StaleRecommendation
from triage.models import (
    AssignmentLogEntry,
    AssignmentResult,
    EvidenceItem,
    Recommendation,
    ScoringConfig,
    Ticket,
)
from triage.services.roster_store import RosterStore

logger = logging.getLogger(__name__)

NO_EVIDENCE_REASON = "availability"


def build_reason(evidence: list[EvidenceItem]) -> str:
    """'<source> (<system>)' pairs joined by ', '; 'availability' when nothing matched."""
    if not evidence:
        return NO_EVIDENCE_REASON
    return ", ".join(f"{e.source.value} ({e.matched_system})" for e in evidence)


def confirm(
    store: RosterStore,
    recommendation: Recommendation,
    ticket: Ticket,
    config: Optional[ScoringConfig] = None,
) -> AssignmentResult:
    """
    Confirm `recommendation` for `ticket`.

    Raises StaleRecommendation if the recommendation was made for another ticket,
    its agent is no longer in the roster, or the ticket is no longer pending.
    The caller should re-rank and retry with fresh data.
    """
    config = config or store.config
    agent_id = recommendation.agent.id
    with store.lock:
        if recommendation.ticket_id != ticket.id:
            raise StaleRecommendation(
                f"Recommendation is for ticket {recommendation.ticket_id}, not {ticket.id}"
            )
        agent = store.get_agent(agent_id)
        if agent is None:
            raise StaleRecommendation(f"Agent {agent_id} is no longer in the roster")
        if not store.pending.contains(ticket.id):
            raise StaleRecommendation(f"Ticket {ticket.id} is no longer pending")

        agent = agent.model_copy(update={"current_workload": agent.current_workload + 1})
        store.replace_agent(agent)
        entry = AssignmentLogEntry(
            id=uuid4().hex,
            ticket_id=ticket.id,
            agent_id=agent.id,
            agent_name=agent.name,
            timestamp=time.time(),
            reason=build_reason(recommendation.evidence),
            type="autopilot" if config.autopilot_enabled else "manual",
            score=math.floor(recommendation.score + 0.5),
        )
        store.log.append(entry)
        store.pending.remove(ticket.id)
        memory_updates = store.memory.record_success(ticket.tags, agent.id)
        agents = store.list_agents()
        store.persist()

    logger.info(
        "Assigned ticket %s to agent %s (score=%d, workload=%d/%d, %s).",
        ticket.id, agent.id, entry.score, agent.current_workload, agent.max_capacity, entry.type,
    )
    return AssignmentResult(agents=agents, log_entry=entry, memory_updates=memory_updates)
