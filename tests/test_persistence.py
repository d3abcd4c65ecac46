"""
Round-trip tests for Redis persistence (requires Redis; skipped when it is not running).
Run: pytest tests/test_persistence.py -v
"""

import os

import pytest

from triage.models import Agent, KnowledgeLevel, ScoringConfig, SystemExpertise, Ticket
from triage.persistence import RedisPersistence
from triage.services.assignment import confirm
from triage.services.roster_store import RosterStore

TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def persistence():
    p = RedisPersistence(TEST_REDIS_URL)
    try:
        p.ping()
    except Exception as e:
        err = str(e).lower()
        if "connection" in err or "10061" in err or "refused" in err:
            pytest.skip("Redis not running")
        raise
    p.clear()
    yield p
    p.clear()


def test_empty_load(persistence):
    assert persistence.load_agents() == []
    assert persistence.load_memory() == []
    assert persistence.load_log() == []
    assert persistence.load_settings() is None


def test_state_round_trip(persistence):
    agent = Agent(
        id=7,
        name="Ana",
        email="ana@example.com",
        max_capacity=8,
        current_workload=2,
        expertise=[SystemExpertise(system_name="MagaluPay", level=KnowledgeLevel.ADVANCED)],
    )
    store = RosterStore(agents=[agent], persistence=persistence)
    ticket = Ticket(id="T-1", subject="MagaluPay fora", tags=["checkout", "financeiro"])
    store.add_ticket(ticket)
    confirm(store, store.recommend(ticket), ticket)

    reloaded = RosterStore.from_persistence(persistence)
    assert reloaded.list_agents() == store.list_agents()
    assert reloaded.get_agent(7).current_workload == 3
    assert reloaded.memory.records() == store.memory.records()
    assert reloaded.log.recent() == store.log.recent()


def test_invalid_stored_agent_is_rejected(persistence):
    persistence._redis().set("triage:agents", '[{"id": 1, "max_capacity": 0}, {"id": 2, "max_capacity": 3}]')
    assert [a.id for a in persistence.load_agents()] == [2]


def test_settings_round_trip(persistence):
    store = RosterStore(persistence=persistence)
    store.update_config(ScoringConfig(declared_field_key="sistema", overload_threshold=65, autopilot_enabled=True))

    reloaded = RosterStore.from_persistence(persistence)
    assert reloaded.config.declared_field_key == "sistema"
    assert reloaded.config.overload_threshold == 65
    assert reloaded.config.autopilot_enabled is True


def test_invalid_stored_settings_fall_back_to_defaults(persistence):
    persistence._redis().set("triage:settings", '{"overload_threshold": "lots"}')
    assert persistence.load_settings() is None
    assert RosterStore.from_persistence(persistence).config == ScoringConfig()
