"""
Slot Planner

Runs the whole slot assignment for one compilation unit:

    classify -> parametric hash solver -> fallback table -> single table

All state lives in the SlotPlan returned by one plan() call; nothing is kept
at module scope, so separate units can be planned independently.
"""

import random
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from cfg_builder import CFGBuilder, assign_keys, check_blocks, classify_blocks
from cfg_nodes import Block, EdgeKey, HashParams, ModuleCFG
from map_config import MapConfig
from slot_solver.hash_solver import ParametricHashSolver
from slot_solver.tables import SlotAllocator, build_edge_table, build_single_table


@dataclass
class SlotPlan:
    """Read-only result handed to the instrumentation emitter."""
    map_size: int
    params: Dict[Block, HashParams] = field(default_factory=dict)
    solved: List[Block] = field(default_factory=list)
    unsolved: List[Block] = field(default_factory=list)
    single: List[Block] = field(default_factory=list)
    edge_table: Dict[EdgeKey, int] = field(default_factory=dict)
    single_table: Dict[int, int] = field(default_factory=dict)
    occupied: Set[int] = field(default_factory=set)
    min_unsolved_ratio: float = 1.0
    rounds: int = 0

    @property
    def multi(self) -> List[Block]:
        seen = set()
        result = []
        for block in self.solved + self.unsolved:
            if id(block) not in seen:
                seen.add(id(block))
                result.append(block)
        return result

    def is_solved(self, block: Block) -> bool:
        return block in self.params

    def slot_for(self, block: Block, pred: Optional[Block] = None) -> int:
        """Slot recorded when control enters block from pred.

        Single-predecessor blocks ignore pred.
        """
        if not block.is_multi_pred:
            return self.single_table[block.key]
        if pred is None:
            raise KeyError(f"{block.name} has several predecessors; pred is required")
        params = self.params.get(block)
        if params is not None:
            return params.slot(block.key, pred.key)
        return self.edge_table[(block.key, pred.key)]

    def __len__(self):
        return len(self.single) + len(self.multi)


class SlotPlanner:
    """Plans coverage-map slots for the blocks of one unit."""

    def __init__(self, config: Optional[MapConfig] = None):
        self.config = config or MapConfig()
        self.rng = random.Random(self.config.seed)

    def _say(self, msg: str):
        if not self.config.quiet:
            print(msg, file=sys.stderr)

    def plan(self, blocks: Sequence[Block]) -> SlotPlan:
        """Assign slots to every edge of the given (already keyed) blocks."""
        map_size = self.config.map_size
        plan = SlotPlan(map_size=map_size)
        if not blocks:
            self._say("Warning: no instrumentation targets found.")
            plan.min_unsolved_ratio = 0.0
            return plan

        check_blocks(blocks, map_size)
        single, multi = classify_blocks(blocks)
        self._say(f"Solving edge hashes for {len(multi)} multi-predecessor block(s)...")

        result = ParametricHashSolver(self.config).solve(multi)
        plan.params = result.params
        plan.solved = result.solved
        plan.unsolved = result.unsolved
        plan.single = single
        plan.min_unsolved_ratio = result.min_unsolved_ratio
        plan.rounds = result.rounds
        plan.occupied = set(result.claimed)

        allocator = SlotAllocator(plan.occupied, map_size)
        self._say(f"Building fallback table for {len(plan.unsolved)} unsolved block(s)...")
        plan.edge_table = build_edge_table(plan.unsolved, allocator)
        self._say(f"Building single-predecessor table for {len(single)} block(s)...")
        plan.single_table = build_single_table(single, allocator)

        self._say(f"min unsolved ratio: {plan.min_unsolved_ratio:.4f}, "
                  f"slots used: {len(plan.occupied)}/{map_size} ({allocator.free} free)")
        return plan

    def plan_cfg(self, cfg: ModuleCFG) -> SlotPlan:
        """Assign fresh keys to every block of cfg, then plan it."""
        blocks = cfg.blocks
        assign_keys(blocks, self.config.map_size, self.rng)
        return self.plan(blocks)

    def plan_ir(self, ir_text: str) -> Tuple[ModuleCFG, SlotPlan]:
        """Extract the CFG from LLVM IR text and plan it."""
        self._say("Extracting CFG...")
        cfg = CFGBuilder().build(ir_text)
        return cfg, self.plan_cfg(cfg)
