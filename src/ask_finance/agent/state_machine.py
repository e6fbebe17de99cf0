"""Graph-based state machine for the tool-calling loop.

States and allowed transitions are declared as a networkx directed graph;
every transition the loop makes is checked against it.
"""

import networkx as nx

from ..errors import IllegalTransitionError
from ..models import LoopState
from ..utils import get_logger

logger = get_logger(__name__)

TRANSITIONS: list[tuple[LoopState, LoopState]] = [
    (LoopState.AWAITING_MODEL, LoopState.EXECUTING_TOOLS),
    (LoopState.AWAITING_MODEL, LoopState.DONE),
    (LoopState.AWAITING_MODEL, LoopState.FAILED),
    (LoopState.EXECUTING_TOOLS, LoopState.AWAITING_MODEL),
    (LoopState.EXECUTING_TOOLS, LoopState.FAILED),
]


def build_loop_graph() -> nx.DiGraph:
    """Build the loop state graph.

    Returns:
        Directed graph whose nodes are LoopState values
    """
    graph: nx.DiGraph = nx.DiGraph()
    for state in LoopState:
        graph.add_node(state.value, terminal=state.is_terminal)
    for from_state, to_state in TRANSITIONS:
        graph.add_edge(from_state.value, to_state.value)
    return graph


LOOP_GRAPH = build_loop_graph()


class LoopStateMachine:
    """Tracks the current state of one loop run.

    Attributes:
        graph: Allowed transitions
        state: Current state
        trail: States visited, in order
    """

    def __init__(self, graph: nx.DiGraph = LOOP_GRAPH) -> None:
        self.graph = graph
        self.state = LoopState.AWAITING_MODEL
        self.trail: list[LoopState] = [self.state]

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def can_transition(self, target: LoopState) -> bool:
        return self.graph.has_edge(self.state.value, target.value)

    def transition(self, target: LoopState) -> None:
        """Move to ``target``.

        Raises:
            IllegalTransitionError: If the graph has no such edge
        """
        if not self.can_transition(target):
            raise IllegalTransitionError(f"Illegal loop transition: {self.state.value} -> {target.value}")
        logger.debug(f"Loop state: {self.state.value} -> {target.value}")
        self.state = target
        self.trail.append(target)

    def visualize(self) -> str:
        """Render the state graph as a Mermaid diagram."""
        lines = ["graph TD"]
        for node in self.graph.nodes():
            lines.append(f"  {node}[{node}]")
        for from_node, to_node in self.graph.edges():
            lines.append(f"  {from_node} --> {to_node}")
        lines.append("  START((start))")
        lines.append(f"  START --> {LoopState.AWAITING_MODEL.value}")
        return "\n".join(lines)
