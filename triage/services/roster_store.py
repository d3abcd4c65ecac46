"""
Roster store: the single owner of agents, pending tickets, outcome memory and the
assignment log. Every mutation runs under `lock`; ranking reads a snapshot.

An optional persistence collaborator (see triage.persistence) is handed the
updated state after each mutation, while the lock is still held, so saves land
in mutation order.
"""

import logging
import math
import threading
from typing import Iterable, Optional

from triage.assignment_log import AssignmentLog
from triage.errors import UnknownAgent
from triage.models import (
    Agent,
    AssignmentLogEntry,
    KnowledgeLevel,
    OutcomeRecord,
    Recommendation,
    ScoringConfig,
    SystemExpertise,
    Ticket,
)
from triage.queue_store import PendingQueue
from triage.services.outcome_memory import OutcomeMemory
from triage.services.ranker import rank, rank_candidates

logger = logging.getLogger(__name__)


class RosterStore:
    """Shared roster and ledger state, passed by handle to the ranker and mutator."""

    def __init__(
        self,
        agents: Optional[Iterable[Agent]] = None,
        memory: Optional[Iterable[OutcomeRecord]] = None,
        log_entries: Optional[Iterable[AssignmentLogEntry]] = None,
        config: Optional[ScoringConfig] = None,
        persistence=None,
    ) -> None:
        self.lock = threading.RLock()
        self._agents: dict[int, Agent] = {}
        for agent in agents or []:
            self._agents[agent.id] = agent
        self.memory = OutcomeMemory(memory)
        self.log = AssignmentLog(log_entries)
        self.pending = PendingQueue()
        self.config = config or ScoringConfig()
        self.persistence = persistence

    @classmethod
    def from_persistence(cls, persistence, config: Optional[ScoringConfig] = None) -> "RosterStore":
        """Load roster, memory, log and settings saved by a previous session."""
        if config is None:
            config = persistence.load_settings()
        return cls(
            agents=persistence.load_agents(),
            memory=persistence.load_memory(),
            log_entries=persistence.load_log(),
            config=config,
            persistence=persistence,
        )

    def persist(self) -> None:
        """
        Hand the current state to the persistence collaborator, if any.
        Mutators call this before releasing `lock`, so a later mutation can never
        be overwritten by an earlier snapshot.
        """
        if self.persistence is None:
            return
        try:
            with self.lock:
                self.persistence.save(self.list_agents(), self.memory.records(), self.log.recent())
        except Exception as e:
            logger.warning("Could not persist triage state (Redis down?): %s", e)

    def update_config(self, config: ScoringConfig) -> ScoringConfig:
        """Replace the scoring settings and save them alongside the roster."""
        with self.lock:
            self.config = config
            if self.persistence is not None:
                try:
                    self.persistence.save_settings(config)
                except Exception as e:
                    logger.warning("Could not persist scoring settings (Redis down?): %s", e)
        logger.info("Scoring settings updated (autopilot=%s).", config.autopilot_enabled)
        return config

    # --- Agents ---

    def list_agents(self) -> list[Agent]:
        """Roster in insertion order (the order ranking ties are broken by)."""
        with self.lock:
            return list(self._agents.values())

    def get_agent(self, agent_id: int) -> Optional[Agent]:
        with self.lock:
            return self._agents.get(agent_id)

    def has_agent(self, agent_id: int) -> bool:
        with self.lock:
            return agent_id in self._agents

    def register_agent(self, agent: Agent) -> None:
        """Upsert an agent. Capacity and expertise are validated when the Agent is built."""
        with self.lock:
            self._agents[agent.id] = agent
            self.persist()
        logger.info("Agent %s registered (%d expertise entries).", agent.id, len(agent.expertise))

    def replace_agent(self, agent: Agent) -> None:
        """Swap in an updated copy of a known agent (caller holds `lock`)."""
        self._agents[agent.id] = agent

    def sync_agents(self, remote: Iterable[Agent]) -> list[Agent]:
        """
        Merge a fresh roster from the agent source. Remote fields win, except that
        expertise already edited locally is kept for agents with the same id.
        An empty remote roster leaves the local one untouched.
        """
        remote = list(remote)
        with self.lock:
            if not remote:
                logger.warning("Agent sync returned no agents; keeping %d local agents.", len(self._agents))
                return list(self._agents.values())
            merged: dict[int, Agent] = {}
            for ra in remote:
                local = self._agents.get(ra.id)
                if local is not None:
                    ra = ra.model_copy(update={"expertise": [e.model_copy() for e in local.expertise]})
                merged[ra.id] = ra
            self._agents = merged
            out = list(merged.values())
            self.persist()
        logger.info("Synced %d agents from agent source.", len(out))
        return out

    # --- Expertise editing ---

    def set_expertise(
        self, agent_ids: Iterable[int], system_name: str, level: KnowledgeLevel
    ) -> list[Agent]:
        """Add or update one system's level on one or many agents."""
        entry = SystemExpertise(system_name=system_name, level=level)
        agent_ids = list(agent_ids)
        with self.lock:
            missing = [aid for aid in agent_ids if aid not in self._agents]
            if missing:
                raise UnknownAgent(f"Unknown agent id(s): {missing}")
            updated = []
            for aid in agent_ids:
                agent = self._agents[aid]
                expertise = [e.model_copy() for e in agent.expertise]
                key = entry.system_name.lower()
                for i, exp in enumerate(expertise):
                    if exp.system_name.lower() == key:
                        expertise[i] = exp.model_copy(update={"level": entry.level})
                        break
                else:
                    expertise.append(entry.model_copy())
                agent = agent.model_copy(update={"expertise": expertise})
                self._agents[aid] = agent
                updated.append(agent)
            self.persist()
        logger.info("Expertise %s=%d applied to %d agent(s).", entry.system_name, int(entry.level), len(updated))
        return updated

    def remove_expertise(self, agent_id: int, system_name: str) -> Agent:
        """Drop a system (case-insensitive) from an agent's expertise."""
        key = system_name.strip().lower()
        with self.lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise UnknownAgent(f"Unknown agent id: {agent_id}")
            agent = agent.model_copy(
                update={"expertise": [e for e in agent.expertise if e.system_name.lower() != key]}
            )
            self._agents[agent_id] = agent
            self.persist()
        return agent

    def team_insight(self, system_name: str) -> Optional[tuple[KnowledgeLevel, int]]:
        """
        Suggested level for `system_name`: the team's average level (rounded half up)
        and how many agents declare it. None for names under 2 chars or unknown systems.
        """
        key = system_name.strip().lower()
        if len(key) < 2:
            return None
        with self.lock:
            levels = [
                int(e.level)
                for a in self._agents.values()
                for e in a.expertise
                if e.system_name.lower() == key
            ]
        if not levels:
            return None
        average = math.floor(sum(levels) / len(levels) + 0.5)
        return KnowledgeLevel(average), len(levels)

    # --- Tickets and ranking ---

    def add_ticket(self, ticket: Ticket) -> bool:
        with self.lock:
            return self.pending.add(ticket)

    def pending_ticket(self, ticket_id: Optional[str] = None) -> Optional[Ticket]:
        """The pending ticket with `ticket_id`, or the head of the queue when no id is given."""
        with self.lock:
            if ticket_id:
                return self.pending.get(ticket_id)
            return self.pending.active()

    def recommend(self, ticket: Optional[Ticket] = None) -> Optional[Recommendation]:
        """Rank the roster for `ticket` (default: the head of the pending queue)."""
        with self.lock:
            ticket = ticket or self.pending.active()
            agents = list(self._agents.values())
            config = self.config
        return rank(ticket, agents, config)

    def candidates(self, ticket: Optional[Ticket] = None) -> list[Recommendation]:
        with self.lock:
            ticket = ticket or self.pending.active()
            agents = list(self._agents.values())
            config = self.config
        return rank_candidates(ticket, agents, config)
