"""
steptrace/__init__.py — Trace Registry
=======================================
Single source of truth for every visualizer the app knows about.

    from steptrace import REGISTRY, get_trace_info

REGISTRY is a dict:
    {
        "bfs": TraceInfo(key, label, family, filename, pseudocode, …),
        …
    }

Adding a visualizer is: drop a trace file in steptrace/data/, add one
entry here.  The family decides how the trace is read and drawn.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from steptrace.errors import (
    VisualizerError,
    SchemaError,
    IndexOutOfRange,
    UnknownEntity,
    UnstyledCategory,
)
from steptrace.step import Step, StepTrace
from steptrace.schema import parse_trace, load_trace


DATA_DIR = Path(__file__).resolve().parent / "data"


# ---------------------------------------------------------------------------
# TraceInfo — metadata card for each visualizer
# ---------------------------------------------------------------------------
@dataclass
class TraceInfo:
    key:              str                    # registry key / URL slug, e.g. "bfs"
    label:            str                    # human label, e.g. "Breadth-First Search"
    family:           str                    # engine family key, e.g. "graph_search"
    filename:         str                    # trace file under the trace dir
    pseudocode:       List[str]              # lines for the side-panel
    tags:             List[str] = field(default_factory=list)
    complexity_time:  str       = ""
    complexity_space: str       = ""
    description:      str       = ""


# ---------------------------------------------------------------------------
# THE REGISTRY
# ---------------------------------------------------------------------------
REGISTRY: Dict[str, TraceInfo] = {

    "bfs": TraceInfo(
        key="bfs", label="Breadth-First Search", family="graph_search", filename="bfs.json",
        pseudocode=[
            "BFS(G, s):",
            "  visited = {s}; queue = [s]",
            "  while queue:",
            "    u = queue.pop_front()",
            "    for v in adj[u]:",
            "      if v not in visited:",
            "        visited.add(v); pred[v] = u",
            "        queue.push_back(v)",
        ],
        tags=["graph", "traversal"],
        complexity_time="O(V + E)", complexity_space="O(V)",
        description="Explores layer by layer from the start node using a queue.",
    ),

    "dfs": TraceInfo(
        key="dfs", label="Depth-First Search", family="graph_search", filename="dfs.json",
        pseudocode=[
            "DFS(G, s):",
            "  stack = [s]",
            "  while stack:",
            "    u = stack.pop()",
            "    if u in visited: continue",
            "    visited.add(u)",
            "    for v in reversed(adj[u]):",
            "      if v not in visited: stack.push(v)",
        ],
        tags=["graph", "traversal"],
        complexity_time="O(V + E)", complexity_space="O(V)",
        description="Dives as deep as possible before backtracking, driven by a stack.",
    ),

    "bellman_ford": TraceInfo(
        key="bellman_ford", label="Bellman–Ford", family="shortest_path", filename="bellman_ford.json",
        pseudocode=[
            "BellmanFord(G, s):",
            "  dist[*] = ∞; dist[s] = 0",
            "  repeat |V| - 1 times:",
            "    for (u, v, w) in E:",
            "      if dist[u] + w < dist[v]:",
            "        dist[v] = dist[u] + w; pred[v] = u",
            "  check for negative cycles",
        ],
        tags=["graph", "weighted", "shortest-path", "negative-edges"],
        complexity_time="O(V · E)", complexity_space="O(V)",
        description="Relaxes every edge repeatedly. Handles negative edge weights.",
    ),

    "floyd_warshall": TraceInfo(
        key="floyd_warshall", label="Floyd–Warshall", family="all_pairs", filename="floyd_warshall.json",
        pseudocode=[
            "FloydWarshall(W):",
            "  dist = W",
            "  for k in V:",
            "    for i in V:",
            "      for j in V:",
            "        if dist[i][k] + dist[k][j] < dist[i][j]:",
            "          dist[i][j] = dist[i][k] + dist[k][j]",
        ],
        tags=["graph", "weighted", "all-pairs"],
        complexity_time="O(V³)", complexity_space="O(V²)",
        description="All-pairs shortest paths by dynamic programming. Watch the matrix evolve.",
    ),

    "prims": TraceInfo(
        key="prims", label="Prim's MST", family="mst", filename="prims.json",
        pseudocode=[
            "Prim(G, s):",
            "  tree = {s}",
            "  while tree != V:",
            "    (u, v) = lightest edge with u in tree, v not in tree",
            "    tree.add(v); mst.add((u, v))",
        ],
        tags=["graph", "weighted", "mst"],
        complexity_time="O(E log V)", complexity_space="O(V)",
        description="Grows a minimum spanning tree one lightest crossing edge at a time.",
    ),

    "linear_search": TraceInfo(
        key="linear_search", label="Linear Search", family="linear_search", filename="linear_search.json",
        pseudocode=[
            "LinearSearch(A, target):",
            "  for i in 0 .. n-1:",
            "    if A[i] == target: return i",
            "  return -1",
        ],
        tags=["array", "search"],
        complexity_time="O(n)", complexity_space="O(1)",
        description="Checks every element from left to right.",
    ),

    "binary_search": TraceInfo(
        key="binary_search", label="Binary Search", family="binary_search", filename="binary_search.json",
        pseudocode=[
            "BinarySearch(A, target):",
            "  left, right = 0, n - 1",
            "  while left <= right:",
            "    mid = (left + right) // 2",
            "    if A[mid] == target: return mid",
            "    if A[mid] < target: left = mid + 1",
            "    else: right = mid - 1",
            "  return -1",
        ],
        tags=["array", "search"],
        complexity_time="O(log n)", complexity_space="O(1)",
        description="Halves a sorted search range at every comparison.",
    ),

    "bubble_sort": TraceInfo(
        key="bubble_sort", label="Bubble Sort", family="bubble_sort", filename="bubble_sort.json",
        pseudocode=[
            "BubbleSort(A):",
            "  for pass in 1 .. n-1:",
            "    for j in 0 .. n-pass-1:",
            "      if A[j] > A[j+1]: swap(A[j], A[j+1])",
            "    stop early if no swaps",
        ],
        tags=["array", "sort"],
        complexity_time="O(n²)", complexity_space="O(1)",
        description="Repeatedly swaps adjacent out-of-order pairs; large values bubble to the end.",
    ),

    "selection_sort": TraceInfo(
        key="selection_sort", label="Selection Sort", family="selection_sort", filename="selection_sort.json",
        pseudocode=[
            "SelectionSort(A):",
            "  for i in 0 .. n-2:",
            "    min = i",
            "    for j in i+1 .. n-1:",
            "      if A[j] < A[min]: min = j",
            "    swap(A[i], A[min])",
        ],
        tags=["array", "sort"],
        complexity_time="O(n²)", complexity_space="O(1)",
        description="Selects the minimum of the unsorted part and moves it to the front.",
    ),

    "insertion_sort": TraceInfo(
        key="insertion_sort", label="Insertion Sort", family="insertion_sort", filename="insertion_sort.json",
        pseudocode=[
            "InsertionSort(A):",
            "  for i in 1 .. n-1:",
            "    key = A[i]; j = i - 1",
            "    while j >= 0 and A[j] > key:",
            "      A[j+1] = A[j]; j = j - 1",
            "    A[j+1] = key",
        ],
        tags=["array", "sort"],
        complexity_time="O(n²)", complexity_space="O(1)",
        description="Inserts each key into the sorted prefix by shifting larger values right.",
    ),

    "quick_sort": TraceInfo(
        key="quick_sort", label="Quick Sort", family="quick_sort", filename="quick_sort.json",
        pseudocode=[
            "QuickSort(A, lo, hi):",
            "  if lo < hi:",
            "    p = Partition(A, lo, hi)   # pivot = A[hi]",
            "    QuickSort(A, lo, p - 1)",
            "    QuickSort(A, p + 1, hi)",
        ],
        tags=["array", "sort", "divide-and-conquer"],
        complexity_time="O(n log n)", complexity_space="O(log n)",
        description="Partitions around a pivot, then sorts each side recursively.",
    ),

    "merge_sort": TraceInfo(
        key="merge_sort", label="Merge Sort", family="merge_sort", filename="merge_sort.json",
        pseudocode=[
            "MergeSort(A, lo, hi):",
            "  if lo < hi:",
            "    mid = (lo + hi) // 2",
            "    MergeSort(A, lo, mid); MergeSort(A, mid + 1, hi)",
            "    Merge(A, lo, mid, hi)",
        ],
        tags=["array", "sort", "divide-and-conquer"],
        complexity_time="O(n log n)", complexity_space="O(n)",
        description="Splits the array in halves, sorts them, and merges the results.",
    ),

    "merge_sort_tree": TraceInfo(
        key="merge_sort_tree", label="Merge Sort (Tree)", family="merge_sort_tree", filename="merge_sort.json",
        pseudocode=[
            "MergeSort(A, lo, hi):",
            "  if lo < hi:",
            "    mid = (lo + hi) // 2",
            "    MergeSort(A, lo, mid); MergeSort(A, mid + 1, hi)",
            "    Merge(A, lo, mid, hi)",
        ],
        tags=["array", "sort", "tree", "divide-and-conquer"],
        complexity_time="O(n log n)", complexity_space="O(n)",
        description="The same merge sort run drawn as its recursion tree.",
    ),

    "linked_list": TraceInfo(
        key="linked_list", label="Linked List Traversal", family="linked_list", filename="linked_list.json",
        pseudocode=[
            "Find(head, target):",
            "  node = head",
            "  while node is not None:",
            "    if node.value == target: return node",
            "    node = node.next",
            "  return None",
        ],
        tags=["linked-list", "search"],
        complexity_time="O(n)", complexity_space="O(1)",
        description="Follows next pointers from the head until the target value is found.",
    ),
}


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------
def get_trace_info(key: str) -> Optional[TraceInfo]:
    """Return TraceInfo by key, or None."""
    return REGISTRY.get(key)


def list_traces() -> List[TraceInfo]:
    """Return all registered visualizers in insertion order."""
    return list(REGISTRY.values())


def traces_by_tag(tag: str) -> List[TraceInfo]:
    return [t for t in REGISTRY.values() if tag in t.tags]


__all__ = [
    "DATA_DIR",
    "TraceInfo",
    "REGISTRY",
    "get_trace_info",
    "list_traces",
    "traces_by_tag",
    "Step",
    "StepTrace",
    "parse_trace",
    "load_trace",
    "VisualizerError",
    "SchemaError",
    "IndexOutOfRange",
    "UnknownEntity",
    "UnstyledCategory",
]
