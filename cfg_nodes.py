"""
Edgeslot CFG Node Definitions

Basic blocks, per-block hash parameters and the per-module CFG container
shared by the builder, the slot solver and the coverage emitter.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Tuple


# ============================================================================
# Blocks and Edges
# ============================================================================

@dataclass(eq=False)
class Block:
    """A basic block. Identity is the object itself, so blocks hash by id."""
    name: str
    key: int = 0
    preds: List['Block'] = field(default_factory=list)
    function: str = ""

    def add_pred(self, pred: 'Block'):
        """Record pred as a predecessor, once."""
        if not any(p is pred for p in self.preds):
            self.preds.append(pred)

    @property
    def is_multi_pred(self) -> bool:
        return len(self.preds) > 1

    def edges(self) -> Iterator[Tuple[int, int]]:
        """Yield (cur_key, pred_key) for every incoming edge."""
        for p in self.preds:
            yield (self.key, p.key)

    def __repr__(self):
        return f"Block({self.name!r}, key={self.key}, preds={[p.name for p in self.preds]})"


# (cur_key, pred_key)
EdgeKey = Tuple[int, int]


class HashParams(NamedTuple):
    """Shift/offset triple defining one block's custom edge hash."""
    x: int
    y: int
    z: int

    def slot(self, cur_key: int, pred_key: int) -> int:
        return edge_hash(cur_key, pred_key, self.x, self.y, self.z)


def edge_hash(cur_key: int, pred_key: int, x: int, y: int, z: int) -> int:
    """(cur >> x) XOR ((pred >> y) + z)"""
    return (cur_key >> x) ^ ((pred_key >> y) + z)


# ============================================================================
# Module CFG
# ============================================================================

@dataclass
class ModuleCFG:
    """Blocks of one compilation unit, grouped by function in IR order."""
    name: str = "module"
    functions: Dict[str, List[Block]] = field(default_factory=dict)

    @property
    def blocks(self) -> List[Block]:
        result = []
        for blocks in self.functions.values():
            result.extend(blocks)
        return result

    def edge_count(self) -> int:
        return sum(len(b.preds) for b in self.blocks)

    def __len__(self):
        return sum(len(blocks) for blocks in self.functions.values())
