"""
Parametric Hash Solver

Searches, for every multi-predecessor block, a hash of the form

    hash(pred) = (key[B] >> x) ^ ((key[pred] >> y) + z)

whose values over B's incoming edges are pairwise distinct and disjoint from
the slots claimed by blocks accepted earlier in the same round.

Rounds sweep the shared shift y over 1..log2(M). Within a round each block
takes the first (x, z) that works, ascending x then z; blocks with no such
pair are left for the fallback table. The sweep stops at the first round
whose unsolved count is below delta or whose unsolved ratio is below sigma.
"""

import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from cfg_nodes import Block, HashParams, edge_hash
from map_config import MapConfig, UnsolvedPolicy


@dataclass
class RoundState:
    """Search state of one y round"""
    y: int
    solved: List[Block] = field(default_factory=list)
    unsolved: List[Block] = field(default_factory=list)
    params: Dict[Block, HashParams] = field(default_factory=dict)
    claimed: Set[int] = field(default_factory=set)

    @property
    def unsolved_ratio(self) -> float:
        total = len(self.unsolved) + len(self.solved)
        if total == 0:
            return 0.0
        return len(self.unsolved) / total


@dataclass
class SolveResult:
    """Partition and parameters kept from the last round executed"""
    solved: List[Block]
    unsolved: List[Block]
    params: Dict[Block, HashParams]
    claimed: Set[int]
    min_unsolved_ratio: float
    rounds: int
    last_y: int


class ParametricHashSolver:
    """Runs the y sweep over a list of multi-predecessor blocks."""

    def __init__(self, config: MapConfig):
        self.config = config

    def _say(self, msg: str):
        if not self.config.quiet:
            print(msg, file=sys.stderr)

    def solve(self, multi: Sequence[Block]) -> SolveResult:
        bits = self.config.map_size_pow2
        min_ratio = 1.0
        rounds = 0

        for y in range(1, bits + 1):
            state = self.solve_round(multi, y)
            rounds += 1
            ratio = state.unsolved_ratio
            if ratio < min_ratio:
                min_ratio = ratio
            self._say(f"[solver] y={y}: solved {len(state.solved)}, "
                      f"unsolved {len(state.unsolved)} (ratio {ratio:.4f})")
            if len(state.unsolved) < self.config.delta or ratio < self.config.sigma:
                self._say(f"[solver] stopping at y={y}")
                break

        return SolveResult(
            solved=state.solved,
            unsolved=state.unsolved,
            params=state.params,
            claimed=state.claimed,
            min_unsolved_ratio=min_ratio,
            rounds=rounds,
            last_y=state.y,
        )

    def solve_round(self, multi: Sequence[Block], y: int) -> RoundState:
        """Process every block once under shift y, starting from empty state."""
        state = RoundState(y=y)
        requeue = self.config.unsolved_policy == UnsolvedPolicy.REQUEUE_ALL

        for block in multi:
            found = self.search_block(block, y, state.claimed)
            if found is not None:
                params, hashes = found
                state.solved.append(block)
                state.params[block] = params
                state.claimed |= hashes
                if requeue:
                    state.unsolved.append(block)
            else:
                state.unsolved.append(block)

        return state

    def search_block(self, block: Block, y: int,
                     claimed: Set[int]) -> Optional[Tuple[HashParams, Set[int]]]:
        """First (x, z) giving distinct, unclaimed hashes for block's edges."""
        bits = self.config.map_size_pow2
        cur = block.key
        pred_keys = [p.key for p in block.preds]

        for x in range(1, bits + 1):
            for z in range(1, bits + 1):
                hashes = {edge_hash(cur, pk, x, y, z) for pk in pred_keys}
                if len(hashes) == len(pred_keys) and hashes.isdisjoint(claimed):
                    return HashParams(x, y, z), hashes
        return None
