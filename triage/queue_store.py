"""In-memory pending ticket queue (heapq): most urgent priority first, then arrival order."""

import heapq
import time
from typing import Optional

from triage.config import QUEUE_GREEN_MINUTES, QUEUE_YELLOW_MINUTES
from triage.models import Ticket, TicketPriority

PRIORITY_RANK = {
    TicketPriority.URGENT: 0,
    TicketPriority.HIGH: 1,
    TicketPriority.NORMAL: 2,
    TicketPriority.LOW: 3,
}


class PendingQueue:
    """
    Pending set of tickets awaiting assignment.

    Heap entries: (priority_rank, insertion_order, ticket_id). An entry is live only
    while `_entry_order[ticket_id]` equals its insertion_order; entries left behind by
    `remove` (or by a later re-add of the same id) are skipped lazily.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, str]] = []
        self._tickets: dict[str, Ticket] = {}
        self._entry_order: dict[str, int] = {}
        self._arrived_at: dict[str, float] = {}
        self._counter = 0

    def _next_order(self) -> int:
        self._counter += 1
        return self._counter

    def add(self, ticket: Ticket) -> bool:
        """Queue a ticket. Returns False if a ticket with this id is already pending."""
        if ticket.id in self._tickets:
            return False
        order = self._next_order()
        self._tickets[ticket.id] = ticket
        self._entry_order[ticket.id] = order
        self._arrived_at[ticket.id] = ticket.created_at if ticket.created_at is not None else time.time()
        heapq.heappush(self._heap, (PRIORITY_RANK[ticket.priority], order, ticket.id))
        return True

    def remove(self, ticket_id: str) -> Optional[Ticket]:
        """Retire a ticket from the pending set. None if it was not pending."""
        self._entry_order.pop(ticket_id, None)
        self._arrived_at.pop(ticket_id, None)
        return self._tickets.pop(ticket_id, None)

    def contains(self, ticket_id: str) -> bool:
        return ticket_id in self._tickets

    def get(self, ticket_id: str) -> Optional[Ticket]:
        return self._tickets.get(ticket_id)

    def _live(self, entry: tuple[int, int, str]) -> bool:
        return self._entry_order.get(entry[2]) == entry[1]

    def _drop_stale_head(self) -> None:
        while self._heap and not self._live(self._heap[0]):
            heapq.heappop(self._heap)

    def active(self) -> Optional[Ticket]:
        """The ticket to score next (head of the queue), without removing it."""
        self._drop_stale_head()
        if not self._heap:
            return None
        return self._tickets[self._heap[0][2]]

    def snapshot(self) -> list[Ticket]:
        """Pending tickets in queue order (no mutation)."""
        ordered = sorted(e for e in self._heap if self._live(e))
        return [self._tickets[tid] for _, _, tid in ordered]

    def size(self) -> int:
        return len(self._tickets)

    def clear(self) -> None:
        self._heap = []
        self._tickets = {}
        self._entry_order = {}
        self._arrived_at = {}
        self._counter = 0

    def wait_buckets(self, now: Optional[float] = None) -> dict[str, list[Ticket]]:
        """
        Split pending tickets by waiting time: green (<= QUEUE_GREEN_MINUTES),
        yellow (<= QUEUE_YELLOW_MINUTES) and red (longer).
        """
        now = time.time() if now is None else now
        buckets: dict[str, list[Ticket]] = {"green": [], "yellow": [], "red": []}
        for ticket in self.snapshot():
            waited_min = (now - self._arrived_at[ticket.id]) / 60.0
            if waited_min <= QUEUE_GREEN_MINUTES:
                buckets["green"].append(ticket)
            elif waited_min <= QUEUE_YELLOW_MINUTES:
                buckets["yellow"].append(ticket)
            else:
                buckets["red"].append(ticket)
        return buckets
