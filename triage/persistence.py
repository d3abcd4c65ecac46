"""
Redis-backed persistence for the roster, outcome memory, assignment log and
scoring settings. Each is stored as one JSON blob (triage:agents, triage:memory,
triage:log, triage:settings).
"""

import json
import logging
from typing import Optional

from triage.config import REDIS_URL
from triage.models import Agent, AssignmentLogEntry, OutcomeRecord, ScoringConfig

logger = logging.getLogger(__name__)

AGENTS_KEY = "triage:agents"
MEMORY_KEY = "triage:memory"
LOG_KEY = "triage:log"
SETTINGS_KEY = "triage:settings"


class RedisPersistence:
    """Save/load triage state. The client is created lazily on first use."""

    def __init__(self, url: str = REDIS_URL, client=None) -> None:
        self.url = url
        self._client = client

    def _redis(self):
        if self._client is None:
            import redis
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    def ping(self) -> bool:
        return bool(self._redis().ping())

    def save(
        self,
        agents: list[Agent],
        memory: list[OutcomeRecord],
        log_entries: list[AssignmentLogEntry],
    ) -> None:
        """Write all three blobs in a single transaction."""
        pipe = self._redis().pipeline(transaction=True)
        pipe.set(AGENTS_KEY, json.dumps([a.model_dump(mode="json") for a in agents]))
        pipe.set(MEMORY_KEY, json.dumps([m.model_dump(mode="json") for m in memory]))
        pipe.set(LOG_KEY, json.dumps([e.model_dump(mode="json") for e in log_entries]))
        pipe.execute()

    def _load(self, key: str) -> list[dict]:
        raw: Optional[str] = self._redis().get(key)
        if not raw:
            return []
        return json.loads(raw)

    def load_agents(self) -> list[Agent]:
        """Saved agents; records that no longer validate (e.g. capacity <= 0) are rejected."""
        agents = []
        for item in self._load(AGENTS_KEY):
            try:
                agents.append(Agent.model_validate(item))
            except ValueError as e:
                logger.warning("Rejected stored agent %s: %s", item.get("id"), e)
        return agents

    def load_memory(self) -> list[OutcomeRecord]:
        return [OutcomeRecord.model_validate(item) for item in self._load(MEMORY_KEY)]

    def load_log(self) -> list[AssignmentLogEntry]:
        """Saved log entries, newest first."""
        return [AssignmentLogEntry.model_validate(item) for item in self._load(LOG_KEY)]

    def save_settings(self, config: ScoringConfig) -> None:
        self._redis().set(SETTINGS_KEY, config.model_dump_json())

    def load_settings(self) -> Optional[ScoringConfig]:
        """Saved settings, or None when nothing was saved or the blob no longer validates."""
        raw: Optional[str] = self._redis().get(SETTINGS_KEY)
        if not raw:
            return None
        try:
            return ScoringConfig.model_validate_json(raw)
        except ValueError as e:
            logger.warning("Rejected stored settings: %s", e)
            return None

    def clear(self) -> None:
        self._redis().delete(AGENTS_KEY, MEMORY_KEY, LOG_KEY, SETTINGS_KEY)
