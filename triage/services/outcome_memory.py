"""
Outcome memory: durable success tallies per (tag, agent) pair.

Every confirmed assignment credits each of the ticket's tags to the chosen agent,
so one confirmation may touch several records. Tickets without tags are credited
to GENERAL_TAG. The tally is a trailing signal; ranking does not read it.
"""

from typing import Iterable, Optional

from triage.config import GENERAL_TAG
from triage.models import OutcomeRecord


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Lowercased, stripped, de-duplicated tags in first-seen order; [GENERAL_TAG] if none."""
    out: list[str] = []
    for tag in tags:
        t = (tag or "").strip().lower()
        if t and t not in out:
            out.append(t)
    return out or [GENERAL_TAG]


class OutcomeMemory:
    """In-memory (tag, agent_id) -> OutcomeRecord table. Callers serialize writes."""

    def __init__(self, records: Optional[Iterable[OutcomeRecord]] = None) -> None:
        self._records: dict[tuple[str, int], OutcomeRecord] = {}
        for rec in records or []:
            self._records[(rec.tag, rec.agent_id)] = rec.model_copy()

    def record_success(self, tags: Iterable[str], agent_id: int) -> list[OutcomeRecord]:
        """Create or increment one record per tag. Returns the updated records."""
        updated = []
        for tag in normalize_tags(tags):
            key = (tag, agent_id)
            rec = self._records.get(key)
            if rec is None:
                rec = OutcomeRecord(tag=tag, agent_id=agent_id, success_count=1)
            else:
                rec = rec.model_copy(update={"success_count": rec.success_count + 1})
            self._records[key] = rec
            updated.append(rec)
        return updated

    def get(self, tag: str, agent_id: int) -> Optional[OutcomeRecord]:
        return self._records.get((tag.strip().lower(), agent_id))

    def records(self) -> list[OutcomeRecord]:
        return list(self._records.values())

    def top_agents_for(self, tag: str, limit: int = 5) -> list[OutcomeRecord]:
        """Records for `tag`, highest success_count first."""
        key = tag.strip().lower()
        matching = [r for r in self._records.values() if r.tag == key]
        return sorted(matching, key=lambda r: r.success_count, reverse=True)[:limit]

    def __len__(self) -> int:
        return len(self._records)
