"""Occupancy model: agent load fraction and its contribution to the composite score."""

from triage.config import LOAD_WEIGHT
from triage.models import Agent


def occupancy_rate(agent: Agent) -> float:
    """current_workload / max_capacity. max_capacity > 0 is enforced when the Agent is built."""
    return agent.current_workload / agent.max_capacity


def load_contribution(agent: Agent) -> float:
    """
    (1 - rate) * LOAD_WEIGHT. An idle agent earns the full LOAD_WEIGHT; an agent
    over capacity gets a negative contribution (over-allocation is penalized, not floored).
    """
    return (1.0 - occupancy_rate(agent)) * LOAD_WEIGHT


def is_overloaded(agent: Agent, threshold_pct: float) -> bool:
    """True if occupancy (in percent) is at or above threshold_pct. Display only."""
    return occupancy_rate(agent) * 100.0 >= threshold_pct
