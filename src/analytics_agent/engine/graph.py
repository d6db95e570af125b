"""Execution ordering for workflow graphs.

Kahn's algorithm: nodes with no unresolved dependencies are emitted first,
then each emitted node releases its successors. Ties are broken by queue
insertion order (input order for the initial roots, discovery order after),
which is the only ordering guaranteed among independent nodes.
"""

from collections import deque
from collections.abc import Sequence

from src.analytics_agent.engine.errors import CyclicWorkflowError, WorkflowValidationError
from src.analytics_agent.schemas.workflow import WorkflowEdge, WorkflowNode


def _build_graph(
    nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]
) -> tuple[dict[str, int], dict[str, list[str]]]:
    in_degree: dict[str, int] = {}
    successors: dict[str, list[str]] = {}

    for node in nodes:
        if node.id in in_degree:
            raise WorkflowValidationError(f"Duplicate node id: {node.id}")
        in_degree[node.id] = 0
        successors[node.id] = []

    for edge in edges:
        for end in (edge.source, edge.target):
            if end not in in_degree:
                raise WorkflowValidationError(
                    f"Edge {edge.source} -> {edge.target} references unknown node {end}"
                )
        successors[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    return in_degree, successors


def order_nodes(
    nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]
) -> list[WorkflowNode]:
    """Return the nodes in an order where every edge source precedes its target.

    Raises:
        WorkflowValidationError: duplicate node ids or edges naming unknown nodes.
        CyclicWorkflowError: the edges contain a cycle. Nothing is returned in
            that case, so a partial pipeline can never run.
    """
    in_degree, successors = _build_graph(nodes, edges)
    by_id = {node.id: node for node in nodes}

    queue = deque(node.id for node in nodes if in_degree[node.id] == 0)
    ordered: list[WorkflowNode] = []

    while queue:
        node_id = queue.popleft()
        ordered.append(by_id[node_id])

        for successor in successors[node_id]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(ordered) < len(nodes):
        emitted = {node.id for node in ordered}
        raise CyclicWorkflowError([node.id for node in nodes if node.id not in emitted])

    return ordered


def execution_layers(
    nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]
) -> list[list[WorkflowNode]]:
    """Group nodes into dependency layers.

    Every node in layer ``k`` depends only on nodes in layers ``< k``, so the
    nodes of one layer are independent of each other. Raises the same errors
    as :func:`order_nodes`.
    """
    in_degree, successors = _build_graph(nodes, edges)
    by_id = {node.id: node for node in nodes}

    layers: list[list[WorkflowNode]] = []
    current = [node.id for node in nodes if in_degree[node.id] == 0]
    placed = 0

    while current:
        layers.append([by_id[node_id] for node_id in current])
        placed += len(current)
        following: list[str] = []
        for node_id in current:
            for successor in successors[node_id]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    following.append(successor)
        current = following

    if placed < len(nodes):
        placed_ids = {node.id for layer in layers for node in layer}
        raise CyclicWorkflowError([node.id for node in nodes if node.id not in placed_ids])

    return layers
