"""
Unit tests for the occupancy model and recommendation ranker (no Redis required).
Run: pytest tests/test_ranker.py -v
"""

import pytest

from triage.models import Agent, KnowledgeLevel, ScoringConfig, SystemExpertise, Ticket
from triage.services.occupancy import is_overloaded, load_contribution, occupancy_rate
from triage.services.ranker import rank, rank_candidates

CONFIG = ScoringConfig(declared_field_key="system_field", overload_threshold=80, autopilot_enabled=False)


def _agent(agent_id, workload=0, capacity=8, expertise=None, active=True):
    return Agent(
        id=agent_id,
        name=f"Agent {agent_id}",
        email=f"agent{agent_id}@example.com",
        max_capacity=capacity,
        current_workload=workload,
        is_active=active,
        expertise=[SystemExpertise(system_name=n, level=lvl) for n, lvl in (expertise or [])],
    )


def _checkout_ticket():
    return Ticket(
        id="459203",
        subject="Falha no Checkout MagaluPay",
        description="erro 500",
        tags=["checkout", "financeiro"],
        custom_fields={"system_field": "MagaluPay"},
    )


class TestOccupancy:
    def test_rate(self):
        assert occupancy_rate(_agent(1, workload=2, capacity=8)) == pytest.approx(0.25)

    def test_idle_agent_gets_full_load_weight(self):
        assert load_contribution(_agent(1, workload=0)) == pytest.approx(30.0)

    def test_contribution_decreases_with_workload(self):
        values = [load_contribution(_agent(1, workload=w, capacity=5)) for w in range(0, 11)]
        assert all(a > b for a, b in zip(values, values[1:]))
        assert max(values) == pytest.approx(30.0)

    def test_over_capacity_goes_negative(self):
        assert load_contribution(_agent(1, workload=10, capacity=5)) == pytest.approx(-30.0)

    def test_overload_flag(self):
        assert is_overloaded(_agent(1, workload=7, capacity=8), 80)
        assert not is_overloaded(_agent(1, workload=6, capacity=8), 80)


class TestRank:
    def test_no_ticket_returns_none(self):
        assert rank(None, [_agent(1)], CONFIG) is None

    def test_no_active_agents_returns_none(self):
        assert rank(_checkout_ticket(), [], CONFIG) is None
        assert rank(_checkout_ticket(), [_agent(1, active=False)], CONFIG) is None

    def test_inactive_agents_are_excluded(self):
        agents = [
            _agent(1, expertise=[("MagaluPay", KnowledgeLevel.ADVANCED)], active=False),
            _agent(2, workload=7),
        ]
        rec = rank(_checkout_ticket(), agents, CONFIG)
        assert rec.agent.id == 2

    def test_expertise_beats_lower_workload(self):
        """
        Agent A (MagaluPay expert, 2/8) beats idle agent B with no expertise.
        The subject also names MagaluPay, so content adds its duplicate bonus:
        45 tech + 22.5 load = 67.5, not the 62.5 a field-only match would give.
        """
        a = _agent(1, workload=2, capacity=8, expertise=[("MagaluPay", KnowledgeLevel.ADVANCED)])
        b = _agent(2, workload=0, capacity=8)
        ticket = _checkout_ticket()
        rec = rank(ticket, [a, b], CONFIG)
        assert rec.agent.id == 1
        assert rec.ticket_id == "459203"
        assert rec.evidence[0].points == pytest.approx(40.0)
        # declared field 40 + duplicate content bonus 5
        assert rec.tech_score == pytest.approx(45.0)
        assert rec.load_score == pytest.approx(22.5)
        assert rec.score == pytest.approx(67.5)
        assert rec.occupancy_rate == pytest.approx(0.25)
        others = rank_candidates(ticket, [a, b], CONFIG)
        assert others[1].agent.id == 2
        assert others[1].score == pytest.approx(30.0)

    def test_lower_load_wins_without_expertise(self):
        rec = rank(_checkout_ticket(), [_agent(1, workload=5), _agent(2, workload=1)], CONFIG)
        assert rec.agent.id == 2

    def test_tie_goes_to_first_in_list(self):
        ticket = _checkout_ticket()
        assert rank(ticket, [_agent(1), _agent(2)], CONFIG).agent.id == 1
        assert rank(ticket, [_agent(2), _agent(1)], CONFIG).agent.id == 2

    def test_tie_ignores_inactive_agents_before_it(self):
        agents = [_agent(1, active=False), _agent(2), _agent(3)]
        assert rank(_checkout_ticket(), agents, CONFIG).agent.id == 2

    def test_rank_is_deterministic(self):
        agents = [
            _agent(1, workload=3, expertise=[("checkout", KnowledgeLevel.INTERMEDIATE)]),
            _agent(2, workload=1, expertise=[("financeiro", KnowledgeLevel.ADVANCED)]),
            _agent(3, workload=0),
        ]
        ticket = _checkout_ticket()
        first = rank(ticket, agents, CONFIG).model_dump()
        for _ in range(5):
            assert rank(ticket, agents, CONFIG).model_dump() == first

    def test_rank_does_not_mutate_agents(self):
        agents = [_agent(1, workload=3, expertise=[("MagaluPay", KnowledgeLevel.BASIC)]), _agent(2)]
        before = [a.model_dump() for a in agents]
        rank(_checkout_ticket(), agents, CONFIG)
        rank_candidates(_checkout_ticket(), agents, CONFIG)
        assert [a.model_dump() for a in agents] == before

    def test_candidates_sorted_with_stable_ties(self):
        agents = [_agent(1, workload=4), _agent(2), _agent(3), _agent(4, workload=8)]
        ids = [c.agent.id for c in rank_candidates(_checkout_ticket(), agents, CONFIG)]
        assert ids == [2, 3, 1, 4]
