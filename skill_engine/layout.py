# skill_engine/layout.py
#
# Radial tree layout for a skill graph.
#
# The center sits at the origin. A tidy tree pass (Buchheim, Junger and
# Leipert's linear-time version of Walker's algorithm) spreads every other
# node over [0, 2pi) by subtree, depth picks the ring, and a short pairwise
# relaxation removes the overlaps left over. Anything that stops the tree
# pass from running drops down to concentric BFS rings instead; no center at
# all means a plain grid.

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import NodeType, SkillEdge, SkillGraph, SkillNode

logger = logging.getLogger(__name__)

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))

Point = Tuple[float, float]


@dataclass(frozen=True)
class LayoutConfig:
    base_radius: float = 350.0
    radius_increment: float = 300.0
    subtree_weight: float = 50.0
    min_node_distance: float = 200.0
    push_strength: float = 5.0
    iterations: int = 50
    grid_spacing: float = 350.0


DEFAULT_CONFIG = LayoutConfig()


class HierarchyError(ValueError):
    """The edge set does not form a single tree rooted at the center."""


class _HierarchyNode:
    __slots__ = ("node", "parent", "children", "depth", "size", "x", "y")

    def __init__(self, node: SkillNode):
        self.node = node
        self.parent: Optional["_HierarchyNode"] = None
        self.children: List["_HierarchyNode"] = []
        self.depth = 0
        self.size = 1
        self.x = 0.0
        self.y = 0.0


class _Walker:
    """Per-node bookkeeping of the tidy tree pass."""

    __slots__ = ("h", "parent", "children", "A", "a", "z", "m", "c", "s", "t", "i")

    def __init__(self, h: Optional[_HierarchyNode], i: int):
        self.h = h
        self.parent: Optional["_Walker"] = None
        self.children: Optional[List["_Walker"]] = None
        self.A: Optional["_Walker"] = None  # default ancestor
        self.a = self  # ancestor
        self.z = 0.0  # prelim
        self.m = 0.0  # mod
        self.c = 0.0  # change
        self.s = 0.0  # shift
        self.t: Optional["_Walker"] = None  # thread
        self.i = i  # index among siblings


def _pre_order(root):
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.children:
            stack.extend(reversed(node.children))


def _post_order(root):
    stack = [root]
    visited = []
    while stack:
        node = stack.pop()
        visited.append(node)
        if node.children:
            stack.extend(node.children)
    return reversed(visited)


def _breadth_first(root):
    queue = deque([root])
    while queue:
        node = queue.popleft()
        yield node
        queue.extend(node.children or ())


def stratify(nodes: Sequence[SkillNode], edges: Iterable[SkillEdge]) -> _HierarchyNode:
    """
    Builds the rooted hierarchy the tree pass works on.

    A node's parent is the source of its first inbound edge. Children keep
    input order. Raises HierarchyError unless there is exactly one root, it
    is the center, every parent exists and every node hangs off the root.
    """
    graph = SkillGraph(nodes, edges)
    by_id = {node_id: _HierarchyNode(node) for node_id, node in graph.nodes.items()}

    roots = []
    for node_id, h in by_id.items():
        parent_id = graph.parent_of.get(node_id)
        if parent_id is None:
            roots.append(h)
            continue
        parent = by_id.get(parent_id)
        if parent is None:
            raise HierarchyError(f"missing parent {parent_id} of node {node_id}")
        h.parent = parent
        parent.children.append(h)

    if len(roots) != 1:
        raise HierarchyError(f"expected a single root, found {len(roots)}")
    root = roots[0]
    if root.node.node_type != NodeType.CENTER:
        raise HierarchyError(f"root {root.node.id} is not the center node")

    reached = 0
    for h in _breadth_first(root):
        reached += 1
        if h.parent is not None:
            h.depth = h.parent.depth + 1
    if reached != len(by_id):
        raise HierarchyError("cycle detected in the edge set")

    for h in _post_order(root):
        if h.parent is not None:
            h.parent.size += h.size
    return root


def _radial_separation(a: _HierarchyNode, b: _HierarchyNode) -> float:
    # Siblings pack tighter the deeper they sit.
    return (1 if a.parent is b.parent else 2) / max(a.depth, 1)


def _next_left(v: _Walker) -> Optional[_Walker]:
    return v.children[0] if v.children else v.t


def _next_right(v: _Walker) -> Optional[_Walker]:
    return v.children[-1] if v.children else v.t


def _move_subtree(wm: _Walker, wp: _Walker, shift: float) -> None:
    change = shift / (wp.i - wm.i)
    wp.c -= change
    wp.s += shift
    wm.c += change
    wp.z += shift
    wp.m += shift


def _execute_shifts(v: _Walker) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.z += shift
        w.m += shift
        change += w.c
        shift += w.s + change


def _next_ancestor(vim: _Walker, v: _Walker, ancestor: _Walker) -> _Walker:
    return vim.a if vim.a.parent is v.parent else ancestor


def _walker_tree(root: _HierarchyNode) -> _Walker:
    tree = _Walker(root, 0)
    stack = [tree]
    while stack:
        node = stack.pop()
        children = node.h.children
        if children:
            node.children = [None] * len(children)
            for i in range(len(children) - 1, -1, -1):
                child = _Walker(children[i], i)
                child.parent = node
                node.children[i] = child
                stack.append(child)
    tree.parent = _Walker(None, 0)
    tree.parent.children = [tree]
    return tree


def tidy_tree(
    root: _HierarchyNode,
    separation: Callable[[_HierarchyNode, _HierarchyNode], float] = _radial_separation,
    size: Tuple[float, float] = (2 * math.pi, 1.0),
) -> _HierarchyNode:
    """Assigns ``x`` in ``[0, size[0]]`` and ``y`` proportional to depth."""

    def apportion(v: _Walker, w: Optional[_Walker], ancestor: _Walker) -> _Walker:
        if w is None:
            return ancestor
        vip = vop = v
        vim = w
        vom = vip.parent.children[0]
        sip = vip.m
        sop = vop.m
        sim = vim.m
        som = vom.m
        while True:
            vim = _next_right(vim)
            vip = _next_left(vip)
            if vim is None or vip is None:
                break
            vom = _next_left(vom)
            vop = _next_right(vop)
            vop.a = v
            shift = vim.z + sim - vip.z - sip + separation(vim.h, vip.h)
            if shift > 0:
                _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
                sip += shift
                sop += shift
            sim += vim.m
            sip += vip.m
            som += vom.m
            sop += vop.m
        if vim is not None and _next_right(vop) is None:
            vop.t = vim
            vop.m += sim - sop
        if vip is not None and _next_left(vom) is None:
            vom.t = vip
            vom.m += sip - som
            ancestor = v
        return ancestor

    def first_walk(v: _Walker) -> None:
        children = v.children
        siblings = v.parent.children
        w = siblings[v.i - 1] if v.i else None
        if children:
            _execute_shifts(v)
            midpoint = (children[0].z + children[-1].z) / 2
            if w is not None:
                v.z = w.z + separation(v.h, w.h)
                v.m = v.z - midpoint
            else:
                v.z = midpoint
        elif w is not None:
            v.z = w.z + separation(v.h, w.h)
        v.parent.A = apportion(v, w, v.parent.A or siblings[0])

    def second_walk(v: _Walker) -> None:
        v.h.x = v.z + v.parent.m
        v.m += v.parent.m

    t = _walker_tree(root)
    for v in _post_order(t):
        first_walk(v)
    t.parent.m = -t.z
    for v in _pre_order(t):
        second_walk(v)

    left = right = bottom = root
    for h in _pre_order(root):
        if h.x < left.x:
            left = h
        if h.x > right.x:
            right = h
        if h.depth > bottom.depth:
            bottom = h

    s = 1 if left is right else separation(left, right) / 2
    tx = s - left.x
    kx = size[0] / (right.x + s + tx)
    ky = size[1] / (bottom.depth or 1)
    for h in _pre_order(root):
        h.x = (h.x + tx) * kx
        h.y = h.depth * ky
    return root


def relax(
    points: List[List[float]], fixed: Sequence[bool], config: LayoutConfig = DEFAULT_CONFIG
) -> None:
    """
    Pushes apart every movable pair closer than ``min_node_distance``.

    Works in place. Edges play no part, so the overall shape is kept and
    only local overlaps move. Coincident points are pushed along a fixed
    direction derived from their indices.
    """
    min_distance = config.min_node_distance
    factor = config.push_strength / config.iterations
    n = len(points)

    for _ in range(config.iterations):
        for i in range(n):
            if fixed[i]:
                continue
            a = points[i]
            for j in range(i + 1, n):
                if fixed[j]:
                    continue
                b = points[j]
                dx = b[0] - a[0]
                dy = b[1] - a[1]
                distance = math.hypot(dx, dy)
                if distance >= min_distance:
                    continue
                if distance > 0:
                    ux = dx / distance
                    uy = dy / distance
                else:
                    angle = (i * n + j) * GOLDEN_ANGLE
                    ux = math.cos(angle)
                    uy = math.sin(angle)
                push = (min_distance - distance) / 2 * factor
                a[0] -= ux * push
                a[1] -= uy * push
                b[0] += ux * push
                b[1] += uy * push


def grid_positions(nodes: Sequence[SkillNode], config: LayoutConfig = DEFAULT_CONFIG) -> Dict[str, Point]:
    if not nodes:
        return {}
    cols = math.ceil(math.sqrt(len(nodes)))
    return {
        node.id: ((index % cols) * config.grid_spacing, (index // cols) * config.grid_spacing)
        for index, node in enumerate(nodes)
    }


def _relaxed(
    order: Sequence[SkillNode], positions: Dict[str, Point], config: LayoutConfig
) -> Dict[str, Point]:
    points = [list(positions[node.id]) for node in order]
    fixed = [node.node_type == NodeType.CENTER for node in order]
    relax(points, fixed, config)
    return {node.id: (p[0], p[1]) for node, p in zip(order, points)}


def radial_positions(
    nodes: Sequence[SkillNode], edges: Iterable[SkillEdge], config: LayoutConfig = DEFAULT_CONFIG
) -> Dict[str, Point]:
    """Tidy tree placement plus relaxation. Raises HierarchyError on a bad edge set."""
    root = tidy_tree(stratify(nodes, edges))

    order = []
    positions = {}
    for h in _breadth_first(root):
        order.append(h.node)
        if h.depth == 0:
            positions[h.node.id] = (0.0, 0.0)
            continue
        radius = (
            config.base_radius
            + (h.depth - 1) * config.radius_increment
            + math.log(h.size + 1) * config.subtree_weight
        )
        angle = h.x - math.pi / 2
        x, y = math.cos(angle) * radius, math.sin(angle) * radius
        if not (math.isfinite(x) and math.isfinite(y)):
            raise HierarchyError(f"non-finite position for node {h.node.id}")
        positions[h.node.id] = (x, y)

    return _relaxed(order, positions, config)


def ring_positions(
    nodes: Sequence[SkillNode], edges: Iterable[SkillEdge], config: LayoutConfig = DEFAULT_CONFIG
) -> Dict[str, Point]:
    """
    Concentric rings by BFS depth from the center, then relaxation.

    The first ring is spread evenly. Deeper nodes take their parent's
    angle. Nodes the BFS never reaches share one extra ring outside the
    deepest level.
    """
    graph = SkillGraph(nodes, edges)
    center = graph.center
    if center is None:
        return grid_positions(list(graph.nodes.values()), config)

    positions: Dict[str, Point] = {center.id: (0.0, 0.0)}
    angles: Dict[str, float] = {}
    visited = {center.id}
    level_nodes = [center.id]
    level = 0

    while level_nodes:
        if level == 1:
            step = 2 * math.pi / len(level_nodes)
            for index, node_id in enumerate(level_nodes):
                angle = index * step - math.pi / 2
                positions[node_id] = (
                    math.cos(angle) * config.base_radius,
                    math.sin(angle) * config.base_radius,
                )
                angles[node_id] = angle
        elif level > 1:
            radius = config.base_radius + (level - 1) * config.radius_increment
            for node_id in level_nodes:
                angle = angles.get(graph.parent_of.get(node_id), -math.pi / 2)
                positions[node_id] = (math.cos(angle) * radius, math.sin(angle) * radius)
                angles[node_id] = angle

        next_level = []
        for node_id in level_nodes:
            for child in graph.children_of.get(node_id, []):
                if child in graph and child not in visited:
                    visited.add(child)
                    next_level.append(child)
        level_nodes = next_level
        level += 1

    stray = [node_id for node_id in graph.nodes if node_id not in visited]
    if stray:
        radius = config.base_radius + max(level - 1, 0) * config.radius_increment
        step = 2 * math.pi / len(stray)
        for index, node_id in enumerate(stray):
            angle = index * step - math.pi / 2
            positions[node_id] = (math.cos(angle) * radius, math.sin(angle) * radius)

    return _relaxed(list(graph.nodes.values()), positions, config)


def layout(
    nodes: Iterable[SkillNode],
    edges: Iterable[SkillEdge],
    config: Optional[LayoutConfig] = None,
) -> List[SkillNode]:
    """
    Returns copies of ``nodes`` with ``position_x``/``position_y`` set.

    Never raises for a malformed graph: without a center the nodes go on a
    grid, and if the tree pass fails they go on BFS rings.
    """
    config = config or DEFAULT_CONFIG
    nodes = list(nodes)
    edges = list(edges)

    if not any(node.node_type == NodeType.CENTER for node in nodes):
        positions = grid_positions(nodes, config)
    else:
        try:
            positions = radial_positions(nodes, edges, config)
        except HierarchyError as e:
            logger.warning("Radial layout unavailable (%s); using BFS rings", e)
            positions = ring_positions(nodes, edges, config)
        except Exception:
            logger.exception("Radial layout failed; using BFS rings")
            positions = ring_positions(nodes, edges, config)

    res = []
    for node in nodes:
        x, y = positions.get(node.id, (0.0, 0.0))
        res.append(node.model_copy(update={"position_x": x, "position_y": y}))
    return res
