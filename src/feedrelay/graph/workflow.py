from __future__ import annotations

from langgraph.graph import END, StateGraph

from feedrelay.graph.state import RelayState
from feedrelay.nodes.checkpoint import load_checkpoint_node, save_checkpoint_node
from feedrelay.nodes.reconcile import reconcile_feeds_node


def build_workflow():
    graph = StateGraph(RelayState)

    graph.add_node("load_checkpoint", load_checkpoint_node)
    graph.add_node("reconcile_feeds", reconcile_feeds_node)
    graph.add_node("save_checkpoint", save_checkpoint_node)

    graph.set_entry_point("load_checkpoint")
    graph.add_edge("load_checkpoint", "reconcile_feeds")
    graph.add_edge("reconcile_feeds", "save_checkpoint")
    graph.add_edge("save_checkpoint", END)

    return graph.compile()
