"""
Edgeslot CFG Builder

Extracts basic blocks and their predecessor relation from textual LLVM IR
using llvmlite, gives every block a random identifier and splits the blocks
into single- and multi-predecessor sets.
"""

import random
from typing import Dict, List, Optional, Sequence, Tuple

from llvmlite import binding

from cfg_nodes import Block, ModuleCFG
from slot_errors import CFGError, SlotExhaustion


def _init_llvm():
    # Newer llvmlite versions initialize on import and raise here
    try:
        binding.initialize()
    except RuntimeError:
        pass


class CFGBuilder:
    """Builds a ModuleCFG from LLVM IR"""

    def __init__(self):
        _init_llvm()

    def build(self, ir_text: str, name: str = "module") -> ModuleCFG:
        """Parse and verify IR text, then collect one Block per basic block."""
        try:
            llmod = binding.parse_assembly(ir_text)
            llmod.verify()
        except RuntimeError as e:
            raise CFGError(f"Invalid LLVM IR: {e}")

        cfg = ModuleCFG(name=name)
        for func in llmod.functions:
            if func.is_declaration:
                continue
            cfg.functions[func.name] = self._build_function(func)
        return cfg

    def build_file(self, path: str) -> ModuleCFG:
        """Read a .ll file and build its CFG."""
        with open(path, 'r') as f:
            ir_text = f.read()
        return self.build(ir_text, name=path)

    def _build_function(self, func) -> List[Block]:
        blocks: List[Block] = []
        by_label: Dict[str, Block] = {}
        successors: Dict[str, List[str]] = {}

        for llblock in func.blocks:
            label = llblock.name
            if not label:
                raise CFGError(
                    f"Function '{func.name}' has unnamed basic blocks; "
                    "emit IR with -fno-discard-value-names"
                )
            block = Block(name=f"{func.name}:{label}", function=func.name)
            blocks.append(block)
            by_label[label] = block
            successors[label] = self._successor_labels(llblock)

        for label, targets in successors.items():
            for target in targets:
                if target not in by_label:
                    raise CFGError(f"Branch to unknown block '{target}' in '{func.name}'")
                by_label[target].add_pred(by_label[label])

        return blocks

    def _successor_labels(self, llblock) -> List[str]:
        """Labels referenced by the block's terminator, in operand order."""
        terminator = None
        for inst in llblock.instructions:
            terminator = inst
        if terminator is None:
            return []

        labels = []
        for operand in terminator.operands:
            if str(operand.type) == "label":
                labels.append(operand.name)
        return labels


# ============================================================================
# Identifier Assignment
# ============================================================================

def assign_keys(blocks: Sequence[Block], map_size: int,
                rng: Optional[random.Random] = None):
    """Give every block a unique random key in [0, map_size)."""
    if len(blocks) > map_size:
        raise SlotExhaustion(
            f"{len(blocks)} blocks do not fit a {map_size}-slot map"
        )
    rng = rng or random.Random()
    keys = rng.sample(range(map_size), len(blocks))
    for block, key in zip(blocks, keys):
        block.key = key


# ============================================================================
# Predecessor Classification
# ============================================================================

def classify_blocks(blocks: Sequence[Block]) -> Tuple[List[Block], List[Block]]:
    """Split blocks into (single, multi) predecessor lists, keeping order.

    Entry blocks have no predecessors and land in the single list.
    """
    single = []
    multi = []
    for block in blocks:
        if block.is_multi_pred:
            multi.append(block)
        else:
            single.append(block)
    return single, multi


def check_blocks(blocks: Sequence[Block], map_size: int):
    """Raise CFGError if keys clash, fall outside the map or preds leak out."""
    members = {id(b) for b in blocks}
    owners: Dict[int, Block] = {}
    for block in blocks:
        if not 0 <= block.key < map_size:
            raise CFGError(f"Key {block.key} of {block.name} outside [0, {map_size})")
        if block.key in owners:
            raise CFGError(
                f"Duplicate key {block.key} on {owners[block.key].name} and {block.name}"
            )
        owners[block.key] = block
        seen = set()
        for pred in block.preds:
            if id(pred) in seen:
                raise CFGError(f"Predecessor {pred.name} listed twice on {block.name}")
            seen.add(id(pred))
            if id(pred) not in members:
                raise CFGError(f"Predecessor {pred.name} of {block.name} is not in the block set")
