"""LangGraph workflow assembly for the tool-calling loop."""

from langgraph.graph import END, StateGraph

from meal_orchestrator.graph.nodes import call_model, dispatch_tools, recover_json
from meal_orchestrator.graph.state import LoopState
from meal_orchestrator.llm.gateway import ModelGateway
from meal_orchestrator.tools.dispatcher import ToolDispatcher


def build_graph(*, gateway: ModelGateway, dispatcher: ToolDispatcher):
    tools = dispatcher.declarations()

    def _call_model(state: LoopState) -> LoopState:
        return call_model.run(state, gateway=gateway, tools=tools)

    def _dispatch_tools(state: LoopState) -> LoopState:
        return dispatch_tools.run(state, dispatcher=dispatcher)

    def _recover_json(state: LoopState) -> LoopState:
        return recover_json.run(state, gateway=gateway)

    def _after_model(state: LoopState) -> str:
        turn = state.get("last_turn")
        if turn is not None and turn.wants_tools:
            return "tools"
        if state.get("final_text") is not None:
            return "done"
        return "recover"

    graph = StateGraph(LoopState)

    graph.add_node("call_model", _call_model)
    graph.add_node("dispatch_tools", _dispatch_tools)
    graph.add_node("recover_json", _recover_json)

    graph.set_entry_point("call_model")
    graph.add_conditional_edges(
        "call_model",
        _after_model,
        {"tools": "dispatch_tools", "done": END, "recover": "recover_json"},
    )
    graph.add_edge("dispatch_tools", "call_model")
    graph.add_edge("recover_json", END)

    return graph.compile()


def recursion_limit_for(max_iterations: int) -> int:
    # call_model + dispatch_tools per iteration, plus the recovery hop.
    return 2 * max_iterations + 5
