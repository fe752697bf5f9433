from typing import Any, Callable, List, Optional, Tuple

import networkx as nx


class Tree(object):
    """Directed rooted tree of named nodes, edges are added from an existing
    predecessor node to a new successor node, so the insertion order of the
    edges is always a valid root-to-leaf traversal order.
    """

    graph: nx.DiGraph

    def __init__(self, name: str, root: Optional[str] = "root"):
        self.name = name
        self.root = root
        self.graph = nx.DiGraph(name=name)
        self.graph.add_node(root)
        self._edges = []

    @property
    def nodes(self) -> List[str]:
        return list(self.graph.nodes)

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return list(self._edges)

    def add_edge(self, predecessor: str, successor: str) -> None:
        if not self.check_if_node_exists(predecessor):
            raise ValueError(f"Node '{predecessor}' is not in the tree!")

        if self.check_if_node_exists(successor):
            raise ValueError(f"Cannot add node '{successor}', as it already exists!")

        self.graph.add_edge(predecessor, successor)
        self._edges.append((predecessor, successor))

    def check_if_node_exists(self, node: str) -> bool:
        return node in self.graph

    def is_valid(self) -> bool:
        return nx.is_arborescence(self.graph)


def accumulate_root_to_leaf(
    root_initial: Any,
    cumfunc: Callable[[Any, Any], Any],
) -> Callable[[List[Any], List[Tuple[int, int, int]]], List[Any]]:
    def func(edges_weights: List[Any], traversal_order: List[Tuple[int, int, int]]):
        nodes_vals = [root_initial]

        for _, edge_index, predecessor_index in traversal_order:
            successor_val = cumfunc(
                nodes_vals[predecessor_index], edges_weights[edge_index]
            )
            nodes_vals.append(successor_val)
        return nodes_vals

    return func


def construct_traversal_order(tree: Tree) -> Tuple[Tuple[int, int, int], ...]:
    if not tree.is_valid():
        raise ValueError(f"Graph '{tree.name}' is not a tree!")

    nodes_indices = {n: i for i, n in enumerate(tree.nodes)}
    base_to_tip = tuple(
        (nodes_indices[s], i, nodes_indices[p]) for i, (p, s) in enumerate(tree.edges)
    )
    return base_to_tip
