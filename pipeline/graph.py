from langgraph.graph import END, StateGraph

from pipeline.nodes import (
    format_response,
    node_authenticate,
    node_detect,
    node_encode,
    node_parse,
    node_persist,
    node_sign,
    node_upload,
    node_validate,
)
from pipeline.state import ThermalState

# Executed strictly in this order; each step may end the request.
STEPS = [
    ("authenticate", node_authenticate),
    ("validate", node_validate),
    ("upload", node_upload),
    ("encode", node_encode),
    ("detect", node_detect),
    ("parse", node_parse),
    ("persist", node_persist),
    ("sign", node_sign),
]


def _route_after(next_node):
    def route(state):
        """Router: an errored state skips to the response."""
        if state.get("error"):
            return "format_response"
        return next_node

    return route


def build_graph():
    workflow = StateGraph(ThermalState)

    for name, node in STEPS:
        workflow.add_node(name, node)
    workflow.add_node("format_response", format_response)

    workflow.set_entry_point(STEPS[0][0])

    names = [name for name, _ in STEPS] + ["format_response"]
    for current, following in zip(names[:-2], names[1:-1]):
        workflow.add_conditional_edges(
            current,
            _route_after(following),
            {
                following: following,
                "format_response": "format_response",
            },
        )

    # sign never fails the request
    workflow.add_edge(names[-2], "format_response")
    workflow.add_edge("format_response", END)

    return workflow.compile()


pipeline = build_graph()
