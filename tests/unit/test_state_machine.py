"""Unit tests for the loop state machine."""

import pytest

from ask_finance.agent import LOOP_GRAPH, LoopStateMachine, build_loop_graph
from ask_finance.errors import IllegalTransitionError
from ask_finance.models import LoopState


class TestLoopGraph:
    """Tests for the transition graph."""

    def test_nodes_and_terminal_flags(self):
        """Test that every state is a node, flagged terminal where it ends the run."""
        graph = build_loop_graph()
        assert set(graph.nodes()) == {state.value for state in LoopState}
        assert graph.nodes["done"]["terminal"] is True
        assert graph.nodes["awaiting_model"]["terminal"] is False

    def test_terminal_states_have_no_exits(self):
        """Test that done and failed are sinks."""
        assert LOOP_GRAPH.out_degree("done") == 0
        assert LOOP_GRAPH.out_degree("failed") == 0


class TestLoopStateMachine:
    """Tests for LoopStateMachine."""

    def test_initial_state(self):
        """Test that a run starts awaiting the model."""
        machine = LoopStateMachine()
        assert machine.state == LoopState.AWAITING_MODEL
        assert not machine.is_terminal

    def test_tool_round_then_done(self):
        """Test a normal run with one tool round."""
        machine = LoopStateMachine()
        machine.transition(LoopState.EXECUTING_TOOLS)
        machine.transition(LoopState.AWAITING_MODEL)
        machine.transition(LoopState.DONE)

        assert machine.is_terminal
        assert machine.trail == [
            LoopState.AWAITING_MODEL,
            LoopState.EXECUTING_TOOLS,
            LoopState.AWAITING_MODEL,
            LoopState.DONE,
        ]

    def test_failure_from_either_active_state(self):
        """Test that both active states may fail."""
        for path in ([], [LoopState.EXECUTING_TOOLS]):
            machine = LoopStateMachine()
            for state in path:
                machine.transition(state)
            machine.transition(LoopState.FAILED)
            assert machine.state == LoopState.FAILED

    @pytest.mark.parametrize(
        "path",
        [
            [LoopState.EXECUTING_TOOLS, LoopState.DONE],
            [LoopState.DONE, LoopState.AWAITING_MODEL],
            [LoopState.FAILED, LoopState.DONE],
        ],
    )
    def test_illegal_transitions(self, path):
        """Test that transitions outside the graph raise."""
        machine = LoopStateMachine()
        with pytest.raises(IllegalTransitionError):
            for state in path:
                machine.transition(state)

    def test_visualize(self):
        """Test Mermaid output."""
        diagram = LoopStateMachine().visualize()
        assert diagram.startswith("graph TD")
        assert "awaiting_model --> executing_tools" in diagram
        assert "START --> awaiting_model" in diagram
