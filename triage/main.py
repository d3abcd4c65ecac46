"""REST API for the triage recommendation engine (presentation collaborator)."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from triage.config import REDIS_URL
from triage.errors import StaleRecommendation, UnknownAgent
from triage.models import (
    Agent,
    AssignmentLogEntry,
    AssignmentResult,
    KnowledgeLevel,
    OutcomeRecord,
    Recommendation,
    ScoringConfig,
    Ticket,
)
from triage.persistence import RedisPersistence
from triage.services.assignment import confirm
from triage.services.occupancy import is_overloaded, occupancy_rate
from triage.services.roster_store import RosterStore

logger = logging.getLogger(__name__)

_store: Optional[RosterStore] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _store
    persistence = RedisPersistence(REDIS_URL)
    try:
        persistence.ping()
        _store = RosterStore.from_persistence(persistence)
        logger.info("Loaded %d agents from Redis.", len(_store.list_agents()))
    except Exception as e:
        logging.warning("Redis unavailable: %s. Triage state will be kept in memory only.", e)
        _store = RosterStore()
    try:
        yield
    finally:
        _store = None


def get_store() -> RosterStore:
    if _store is None:
        raise HTTPException(status_code=503, detail="Store not ready")
    return _store


app = FastAPI(
    title="Ticket Triage Engine",
    description="Recommends the best agent for a ticket from expertise and workload.",
    version="0.3.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# --- Agents & expertise ---


class AgentLoad(BaseModel):
    agent: Agent
    occupancy_rate: float
    overloaded: bool


class ExpertiseUpdate(BaseModel):
    """Apply one system level to one or more agents."""

    agent_ids: list[int] = Field(..., min_length=1)
    system_name: str = Field(..., min_length=1)
    level: KnowledgeLevel = KnowledgeLevel.BASIC


class TeamInsight(BaseModel):
    system_name: str
    suggested_level: KnowledgeLevel
    count: int


@app.get("/agents", response_model=list[Agent])
def list_agents(active_only: bool = False, store: RosterStore = Depends(get_store)) -> list[Agent]:
    agents = store.list_agents()
    if active_only:
        return [a for a in agents if a.is_active]
    return agents


@app.post("/agents", response_model=Agent)
def register_agent(agent: Agent, store: RosterStore = Depends(get_store)) -> Agent:
    """Register or update an agent. Capacity <= 0 is rejected with 422."""
    store.register_agent(agent)
    return store.get_agent(agent.id) or agent


@app.post("/agents/sync", response_model=list[Agent])
def sync_agents(agents: list[Agent], store: RosterStore = Depends(get_store)) -> list[Agent]:
    """Merge a roster snapshot from the agent source; local expertise is kept."""
    return store.sync_agents(agents)


@app.get("/agents/load", response_model=list[AgentLoad])
def agent_loads(store: RosterStore = Depends(get_store)) -> list[AgentLoad]:
    """Occupancy per agent, flagged against the configured overload threshold."""
    threshold = store.config.overload_threshold
    return [
        AgentLoad(agent=a, occupancy_rate=occupancy_rate(a), overloaded=is_overloaded(a, threshold))
        for a in store.list_agents()
    ]


@app.put("/agents/expertise", response_model=list[Agent])
def set_expertise(payload: ExpertiseUpdate, store: RosterStore = Depends(get_store)) -> list[Agent]:
    try:
        return store.set_expertise(payload.agent_ids, payload.system_name, payload.level)
    except UnknownAgent as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/agents/{agent_id}/expertise/{system_name}", response_model=Agent)
def remove_expertise(agent_id: int, system_name: str, store: RosterStore = Depends(get_store)) -> Agent:
    try:
        return store.remove_expertise(agent_id, system_name)
    except UnknownAgent as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/expertise/insight", response_model=TeamInsight)
def expertise_insight(system_name: str, store: RosterStore = Depends(get_store)) -> TeamInsight:
    """Suggested level for a system from the team's current expertise."""
    insight = store.team_insight(system_name)
    if insight is None:
        raise HTTPException(status_code=404, detail="No team expertise for this system")
    level, count = insight
    return TeamInsight(system_name=system_name.strip(), suggested_level=level, count=count)


# --- Tickets & recommendations ---


@app.post("/tickets", status_code=201, response_model=Ticket)
def add_ticket(ticket: Ticket, store: RosterStore = Depends(get_store)) -> Ticket:
    if not store.add_ticket(ticket):
        raise HTTPException(status_code=409, detail="Ticket already pending")
    return ticket


@app.get("/tickets", response_model=list[Ticket])
def list_pending(store: RosterStore = Depends(get_store)) -> list[Ticket]:
    with store.lock:
        return store.pending.snapshot()


@app.get("/tickets/buckets")
def ticket_buckets(store: RosterStore = Depends(get_store)) -> dict:
    """Pending tickets grouped by waiting time (green / yellow / red)."""
    with store.lock:
        buckets = store.pending.wait_buckets()
    return {name: [t.id for t in tickets] for name, tickets in buckets.items()}


def _pending_ticket(store: RosterStore, ticket_id: Optional[str]) -> Ticket:
    ticket = store.pending_ticket(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail="No pending ticket")
    return ticket


@app.get("/recommendation", response_model=Recommendation)
def get_recommendation(ticket_id: Optional[str] = None, store: RosterStore = Depends(get_store)) -> Recommendation:
    """Best agent for `ticket_id` (default: the head of the pending queue)."""
    ticket = _pending_ticket(store, ticket_id)
    rec = store.recommend(ticket)
    if rec is None:
        raise HTTPException(status_code=404, detail="No active agents")
    return rec


@app.get("/recommendation/candidates", response_model=list[Recommendation])
def get_candidates(ticket_id: Optional[str] = None, store: RosterStore = Depends(get_store)) -> list[Recommendation]:
    ticket = _pending_ticket(store, ticket_id)
    return store.candidates(ticket)


class ConfirmRequest(BaseModel):
    """Confirm signal from the presentation layer."""

    ticket_id: str
    agent_id: int


@app.post("/assignments/confirm", response_model=AssignmentResult)
def confirm_assignment(payload: ConfirmRequest, store: RosterStore = Depends(get_store)) -> AssignmentResult:
    """
    Re-rank the ticket against the current roster and confirm the candidate for
    `agent_id`. 409 if the ticket is no longer pending or the agent is gone/inactive.
    """
    ticket = store.pending_ticket(payload.ticket_id)
    if ticket is None:
        raise HTTPException(status_code=409, detail=f"Ticket {payload.ticket_id} is no longer pending")
    chosen = next((c for c in store.candidates(ticket) if c.agent.id == payload.agent_id), None)
    if chosen is None:
        raise HTTPException(status_code=409, detail=f"Agent {payload.agent_id} is not an active candidate")
    try:
        return confirm(store, chosen, ticket)
    except StaleRecommendation as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/assignments", response_model=list[AssignmentLogEntry])
def list_assignments(limit: int = 100, store: RosterStore = Depends(get_store)) -> list[AssignmentLogEntry]:
    """Assignment log, newest first."""
    if limit < 1 or limit > store.log.cap:
        limit = store.log.cap
    return store.log.recent(limit=limit)


@app.get("/memory", response_model=list[OutcomeRecord])
def list_memory(tag: Optional[str] = None, store: RosterStore = Depends(get_store)) -> list[OutcomeRecord]:
    with store.lock:
        if tag:
            return store.memory.top_agents_for(tag, limit=len(store.memory) or 1)
        return store.memory.records()


# --- Settings ---


@app.get("/settings", response_model=ScoringConfig)
def get_settings(store: RosterStore = Depends(get_store)) -> ScoringConfig:
    return store.config


@app.put("/settings", response_model=ScoringConfig)
def update_settings(config: ScoringConfig, store: RosterStore = Depends(get_store)) -> ScoringConfig:
    return store.update_config(config)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("API starting (Redis: %s).", REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL)
    uvicorn.run(app, host="127.0.0.1", port=8000)
