from __future__ import annotations
from typing import Dict, Iterable, List, Sequence

import numpy as np


def adjacency_dict(nneigh: Sequence[int], adj_list: np.ndarray) -> Dict[int, List[int]]:
    """Convert (counts, padded table) adjacency lists into a node -> neighbors dict."""
    return {i: [int(j) for j in adj_list[i, : int(n)]] for i, n in enumerate(nneigh)}


def connected_components(adj: Dict[int, Iterable[int]]) -> List[List[int]]:
    """Connected components of an undirected graph, largest first.

    Nodes inside a component are sorted; ties between equally sized
    components are broken by their smallest node.
    """
    WHITE, BLACK = 0, 1
    color: Dict[int, int] = {}

    nodes = set(adj.keys())
    for u, vs in adj.items():
        for v in vs:
            nodes.add(v)

    components: List[List[int]] = []
    for n in sorted(nodes):
        if color.get(n, WHITE) != WHITE:
            continue
        comp = []
        stack = [n]
        color[n] = BLACK
        while stack:
            u = stack.pop()
            comp.append(u)
            for v in adj.get(u, []):
                if color.get(v, WHITE) == WHITE:
                    color[v] = BLACK
                    stack.append(v)
        components.append(sorted(comp))
    components.sort(key=lambda c: (-len(c), c[0]))
    return components


def cluster_sizes(nneigh: Sequence[int], adj_list: np.ndarray) -> List[int]:
    return [len(c) for c in connected_components(adjacency_dict(nneigh, adj_list))]
