"""
Exact Slot Tables

Blocks the hash solver could not handle, and blocks with a single
predecessor, get explicit slots: each edge (or block) takes the lowest
slot index not yet in the shared occupied set, which is then reserved.
"""

from typing import Dict, Sequence, Set

from cfg_nodes import Block, EdgeKey
from slot_errors import SlotExhaustion


class SlotAllocator:
    """First-fit allocator over the shared occupied-slot set.

    The set only grows, so every index below the cursor stays occupied and
    the scan can resume there.
    """

    def __init__(self, occupied: Set[int], map_size: int):
        self.occupied = occupied
        self.map_size = map_size
        self._cursor = 0

    def take(self, what: str = "edge") -> int:
        i = self._cursor
        while i < self.map_size and i in self.occupied:
            i += 1
        if i >= self.map_size:
            self._cursor = self.map_size
            raise SlotExhaustion(
                f"No free slot for {what}: all {self.map_size} slots are occupied"
            )
        self.occupied.add(i)
        self._cursor = i + 1
        return i

    @property
    def free(self) -> int:
        return self.map_size - len(self.occupied)


def build_edge_table(unsolved: Sequence[Block], allocator: SlotAllocator) -> Dict[EdgeKey, int]:
    """Map every (cur_key, pred_key) of the unsolved blocks to its own slot."""
    table: Dict[EdgeKey, int] = {}
    for block in unsolved:
        for pred in block.preds:
            table[(block.key, pred.key)] = allocator.take(f"edge {pred.name} -> {block.name}")
    return table


def build_single_table(single: Sequence[Block], allocator: SlotAllocator) -> Dict[int, int]:
    """Map each single-predecessor block's key to its own slot."""
    table: Dict[int, int] = {}
    for block in single:
        table[block.key] = allocator.take(f"block {block.name}")
    return table
