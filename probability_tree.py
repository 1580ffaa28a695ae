"""Tree of true draws consistent with the recorded history.

There is one tree per shuffle. A reshuffle resets the pile to a composition
everybody can compute, so draws in different shuffles are independent and
the full history is the product of its trees.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from constraint_extraction import (
    INITIAL_STATE,
    DrawWindow,
    WindowKind,
    chancellor_hands,
    extract_constraints,
    successors,
)
from deck import ClaimPattern, pattern_probability
from deduction_engine import DEFAULT_TOGGLES, InferenceToggles, feasible_worlds
from session import Session

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    round: int
    kind: WindowKind
    draw: ClaimPattern
    # chance of this draw given the draws above it
    probability: float
    path_probability: float
    president: Optional[int] = None
    chancellor: Optional[int] = None
    president_lied: bool = False
    chancellor_lied: bool = False
    posterior: float = 0.0
    children: List["TreeNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round,
            "kind": self.kind.name.lower(),
            "draw": str(self.draw),
            "probability": self.probability,
            "path_probability": self.path_probability,
            "posterior": self.posterior,
            "president": self.president,
            "chancellor": self.chancellor,
            "president_lied": self.president_lied,
            "chancellor_lied": self.chancellor_lied,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ShuffleTree:
    shuffle: int
    deck_liberal: int
    deck_fascist: int
    children: List[TreeNode] = field(default_factory=list)

    def leaves(self) -> List[TreeNode]:
        found = []
        stack = list(self.children)
        while stack:
            node = stack.pop()
            if node.is_leaf:
                found.append(node)
            else:
                stack.extend(node.children)
        return found

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shuffle": self.shuffle,
            "deck_liberal": self.deck_liberal,
            "deck_fascist": self.deck_fascist,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ProbabilityForest:
    trees: List[ShuffleTree]
    num_worlds: int

    @property
    def contradictory(self) -> bool:
        return self.num_worlds == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_worlds": self.num_worlds,
            "contradictory": self.contradictory,
            "trees": [tree.to_dict() for tree in self.trees],
        }


@lru_cache(maxsize=4096)
def consistent_paths(windows: Tuple[DrawWindow, ...], free_seats: FrozenSet[int]) -> FrozenSet[Tuple[int, ...]]:
    """Liberal counts of the consuming windows along every path the claims allow."""
    paths: Set[Tuple[int, ...]] = set()

    def walk(index, state, path):
        if index == len(windows):
            paths.add(tuple(path))
            return
        window = windows[index]
        for drawn, nxt in successors(window, state, free_seats):
            if window.consumes:
                path.append(drawn)
                walk(index + 1, nxt, path)
                path.pop()
            else:
                walk(index + 1, nxt, path)

    walk(0, INITIAL_STATE, [])
    return frozenset(paths)


def _grow(levels: List[DrawWindow], paths, depth: int, liberal_left: int, parent_probability: float) -> List[TreeNode]:
    if depth == len(levels):
        return []
    window = levels[depth]
    by_draw = defaultdict(set)
    for path in paths:
        by_draw[path[depth]].add(path)

    children = []
    for drawn in sorted(by_draw):
        draw = ClaimPattern.from_liberals(drawn, window.size)
        probability = pattern_probability(liberal_left, window.cards_before - liberal_left, draw)
        node = TreeNode(
            round=window.round,
            kind=window.kind,
            draw=draw,
            probability=probability,
            path_probability=parent_probability * probability,
            president=window.president,
            chancellor=window.chancellor,
        )
        if window.kind is WindowKind.GOVERNMENT:
            node.president_lied = window.president_claim.liberal != drawn
            node.chancellor_lied = not chancellor_hands(window, drawn, frozenset({window.president}))
        node.children = _grow(levels, by_draw[drawn], depth + 1, liberal_left - drawn, node.path_probability)
        children.append(node)
    return children


def _assign_posteriors(nodes: List[TreeNode], total: float) -> float:
    mass = 0.0
    for node in nodes:
        if node.is_leaf:
            below = node.path_probability
        else:
            below = _assign_posteriors(node.children, total)
        node.posterior = below / total if total else 0.0
        mass += below
    return mass


def _shuffle_tree(shuffle: int, windows: Tuple[DrawWindow, ...], free_sets) -> ShuffleTree:
    start = windows[0]
    deck_liberal = start.reset_liberal
    tree = ShuffleTree(shuffle, deck_liberal, start.cards_before - deck_liberal)

    paths = set()
    for free in free_sets:
        paths |= consistent_paths(windows, free)
    levels = [w for w in windows if w.consumes]
    if levels and paths:
        tree.children = _grow(levels, paths, 0, deck_liberal, 1.0)
        total = sum(leaf.path_probability for leaf in tree.leaves())
        _assign_posteriors(tree.children, total)
    return tree


def probability_tree(session: Session, toggles: Optional[InferenceToggles] = None) -> ProbabilityForest:
    """Every true draw sequence some consistent world allows, weighted by its deck odds."""
    toggles = toggles or DEFAULT_TOGGLES
    worlds = feasible_worlds(session, toggles)
    windows = extract_constraints(session).windows
    free_sets = {w.free_seats(toggles) for w in worlds}

    by_shuffle: Dict[int, List[DrawWindow]] = defaultdict(list)
    for window in windows:
        by_shuffle[window.shuffle].append(window)

    trees = [_shuffle_tree(shuffle, tuple(ws), free_sets) for shuffle, ws in sorted(by_shuffle.items())]
    logger.debug("Built %d shuffle trees from %d worlds", len(trees), len(worlds))
    return ProbabilityForest(trees=trees, num_worlds=len(worlds))
