"""Planning graph for the multi-agent task runner.

    START ─┬→ plan_next ─┐ (loop while agents remain) → summarize → END
           │      ↑______│
           └→ plan_parallel ──────────────────────────→ summarize

Sequential mode spawns one agent per step; each later agent sees the plan
files of the earlier ones as dependencies. Parallel mode spawns all agents
at once without dependencies.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Literal, TypedDict

from langgraph.graph import END, START, StateGraph

from selekAgent.orchestration.task_models import PlanOutput, TaskRequest
from selekAgent.utils.logging_utils import log_routing_decision

if TYPE_CHECKING:
    from selekAgent.orchestration.task_runner import PlanningTaskRunner

LOGGER = logging.getLogger(__name__)


class PlanningState(TypedDict, total=False):
    request: TaskRequest

    remaining: List[str]
    """Agent types not spawned yet, in request order."""

    plans: Dict[str, str]
    """Agent id -> plan file."""

    dependencies: List[str]
    """Plan files produced so far (sequential mode)."""

    outputs: List[PlanOutput]

    summary: str


def start_route(state: PlanningState) -> Literal["plan_next", "plan_parallel", "summarize"]:
    if not state.get("remaining"):
        decision = "summarize"
    elif state["request"].parallel:
        decision = "plan_parallel"
    else:
        decision = "plan_next"
    log_routing_decision(LOGGER, "planning_graph.start", decision)
    return decision


def plan_next_route(state: PlanningState) -> Literal["plan_next", "summarize"]:
    return "plan_next" if state.get("remaining") else "summarize"


def build_planning_graph(runner: "PlanningTaskRunner"):
    """Compile the planning graph around ``runner.run_agent``."""

    async def plan_next(state: PlanningState) -> PlanningState:
        agent_type, *rest = state["remaining"]
        dependencies = list(state.get("dependencies", []))
        output = await runner.run_agent(agent_type, state["request"], dependencies)
        return {
            "remaining": rest,
            "plans": {**state.get("plans", {}), output.agent_id: output.plan_file},
            "dependencies": dependencies + [output.plan_file],
            "outputs": list(state.get("outputs", [])) + [output],
        }

    async def plan_parallel(state: PlanningState) -> PlanningState:
        agent_types = list(state["remaining"])
        results = await asyncio.gather(
            *(runner.run_agent(t, state["request"], []) for t in agent_types),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return {
            "remaining": [],
            "plans": {o.agent_id: o.plan_file for o in results},
            "dependencies": [o.plan_file for o in results],
            "outputs": list(results),
        }

    async def summarize(state: PlanningState) -> PlanningState:
        return {"summary": runner.generate_summary(state["request"], state.get("plans", {}))}

    graph = StateGraph(PlanningState)

    graph.add_node("plan_next", plan_next)
    graph.add_node("plan_parallel", plan_parallel)
    graph.add_node("summarize", summarize)

    graph.add_conditional_edges(
        START,
        start_route,
        {
            "plan_next": "plan_next",
            "plan_parallel": "plan_parallel",
            "summarize": "summarize",
        },
    )
    graph.add_conditional_edges(
        "plan_next",
        plan_next_route,
        {
            "plan_next": "plan_next",
            "summarize": "summarize",
        },
    )
    graph.add_edge("plan_parallel", "summarize")
    graph.add_edge("summarize", END)

    return graph.compile()


__all__ = ["PlanningState", "build_planning_graph", "start_route", "plan_next_route"]
