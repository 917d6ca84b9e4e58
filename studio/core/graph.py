from __future__ import annotations

from typing import Any, Callable, Dict, TypedDict

from langgraph.graph import END, StateGraph

from studio.core.stages import StageRunner
from studio.core.state import STAGE_STATUSES, TRANSITIONS, AgentStatus
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class RunState(TypedDict):
    generation: int
    status: str


def _node_name(status: AgentStatus) -> str:
    return f"{status.value}_node"


def _stage_node(runner: StageRunner, status: AgentStatus) -> Callable[[RunState], Any]:
    async def node(state: RunState) -> Dict[str, Any]:
        result = await runner.run_stage(status, state["generation"])
        return {"status": result.value}

    node.__name__ = _node_name(status)
    return node


def _router(current: AgentStatus) -> Callable[[RunState], str]:
    allowed = {s for s in TRANSITIONS[current] if s in STAGE_STATUSES}

    def route(state: RunState) -> str:
        nxt = AgentStatus(state["status"])
        if nxt in allowed:
            return _node_name(nxt)
        # ready, error, or a handler that did not advance: the run ends here
        return END

    return route


def create_pipeline_graph(runner: StageRunner):
    """Compile a graph with one node per stage status.

    Edges come from ``TRANSITIONS``; each node runs exactly one handler and
    the router follows the status that handler left in the store.
    """
    workflow = StateGraph(RunState)
    for status in AgentStatus:
        if status in STAGE_STATUSES:
            workflow.add_node(_node_name(status), _stage_node(runner, status))

    workflow.set_entry_point(_node_name(AgentStatus.MANAGING))

    for status in AgentStatus:
        if status not in STAGE_STATUSES:
            continue
        targets = {_node_name(s): _node_name(s) for s in TRANSITIONS[status] if s in STAGE_STATUSES}
        targets[END] = END
        workflow.add_conditional_edges(_node_name(status), _router(status), targets)

    LOGGER.debug("Pipeline graph built with %d stage nodes", len(STAGE_STATUSES))
    return workflow.compile()


def recursion_limit(max_heal_attempts: int) -> int:
    """Super-steps a run may take: seven stages plus two per heal cycle, with headroom."""
    return 7 + 2 * max_heal_attempts + 5
