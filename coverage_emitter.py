"""
Edgeslot Coverage Emitter

Generates, with llvmlite, a companion LLVM module holding one edge-recording
stub per instrumented block. Calling a block's stub on entry records the edge
(previous block, this block) in the shared coverage bitmap:

    prev = __afl_prev_loc
    slot = <single slot | (key >> x) ^ ((prev >> y) + z) | table lookup on prev>
    __afl_area_ptr[slot] += 1
    __afl_prev_loc = key

Slot sources per block kind:
- single-predecessor: constant from the single table
- solved multi-predecessor: the block's hash parameters
- unsolved multi-predecessor: switch over the fallback table, with the classic
  (key ^ (prev >> 1)) & (M - 1) slot for predecessors the table does not know
"""

import random
import sys
from typing import Dict, List, Optional, Sequence, Union

from llvmlite import ir, binding

from cfg_nodes import Block, ModuleCFG
from map_config import MapConfig
from slot_errors import CFGError
from slot_solver.planner import SlotPlan


AREA_PTR_NAME = "__afl_area_ptr"
PREV_LOC_NAME = "__afl_prev_loc"
STUB_PREFIX = "__edgeslot_cov_"


class CoverageEmitter:
    """Emits edge-recording stubs for a planned unit"""

    def __init__(self, config: Optional[MapConfig] = None):
        self.config = config or MapConfig()
        self.rng = random.Random(self.config.seed)

        self.i8 = ir.IntType(8)
        self.i32 = ir.IntType(32)

        self.module: Optional[ir.Module] = None
        self.area_ptr: Optional[ir.GlobalVariable] = None
        self.prev_loc: Optional[ir.GlobalVariable] = None

        # Results of the last emit()
        self.instrumented: int = 0
        self.stubs: Dict[Block, str] = {}

    def _say(self, msg: str):
        if not self.config.quiet:
            print(msg, file=sys.stderr)

    def emit(self, blocks: Union[ModuleCFG, Sequence[Block]], plan: SlotPlan,
             name: str = "edgeslot_coverage") -> ir.Module:
        """Build the stub module for every sampled block."""
        if isinstance(blocks, ModuleCFG):
            blocks = blocks.blocks

        self.module = ir.Module(name=name)
        self.module.triple = binding.get_default_triple()
        self._create_globals()
        self.instrumented = 0
        self.stubs = {}

        for index, block in enumerate(blocks):
            if self.rng.randrange(100) >= self.config.inst_ratio:
                continue
            stub_name = f"{STUB_PREFIX}{index}"
            self._emit_stub(stub_name, block, plan)
            self.stubs[block] = stub_name
            self.instrumented += 1

        if not self.instrumented:
            self._say("Warning: no instrumentation targets found.")
        else:
            self._say(f"Instrumented {self.instrumented} locations "
                      f"(ratio {self.config.inst_ratio}%).")
        return self.module

    def _create_globals(self):
        """Declare the shared bitmap pointer and previous-location globals."""
        self.area_ptr = ir.GlobalVariable(self.module, ir.PointerType(self.i8), name=AREA_PTR_NAME)
        self.area_ptr.linkage = 'external'
        self.prev_loc = ir.GlobalVariable(self.module, self.i32, name=PREV_LOC_NAME)
        self.prev_loc.linkage = 'external'

    # ========================================================================
    # Stub Generation
    # ========================================================================

    def _emit_stub(self, stub_name: str, block: Block, plan: SlotPlan):
        func = ir.Function(self.module, ir.FunctionType(ir.VoidType(), []), name=stub_name)
        entry = func.append_basic_block("entry")
        builder = ir.IRBuilder(entry)

        prev = builder.load(self.prev_loc, name="prev")

        if not block.is_multi_pred:
            if block.key not in plan.single_table:
                raise CFGError(f"{block.name} has no slot in the plan")
            slot = ir.Constant(self.i32, plan.single_table[block.key])
        elif block in plan.params:
            slot = self._hashed_slot(builder, block, plan, prev)
        else:
            slot = self._table_slot(builder, func, block, plan, prev)

        self._bump(builder, slot)
        builder.store(ir.Constant(self.i32, block.key), self.prev_loc)
        builder.ret_void()

    def _hashed_slot(self, builder: ir.IRBuilder, block: Block, plan: SlotPlan, prev):
        x, y, z = plan.params[block]
        shifted = builder.lshr(prev, ir.Constant(self.i32, y), name="prev_shr")
        offset = builder.add(shifted, ir.Constant(self.i32, z), name="prev_off")
        slot = builder.xor(ir.Constant(self.i32, block.key >> x), offset, name="hash")
        # keeps keys of blocks outside the plan inside the map
        return builder.and_(slot, ir.Constant(self.i32, plan.map_size - 1), name="slot")

    def _table_slot(self, builder: ir.IRBuilder, func: ir.Function, block: Block,
                    plan: SlotPlan, prev):
        entries = []
        for pred in block.preds:
            edge = (block.key, pred.key)
            if edge not in plan.edge_table:
                raise CFGError(f"Edge {pred.name} -> {block.name} has no slot in the plan")
            entries.append((pred.key, plan.edge_table[edge]))

        default = func.append_basic_block("unknown_pred")
        merge = func.append_basic_block("record")
        switch = builder.switch(prev, default)

        incoming = []
        for pred_key, table_slot in entries:
            case = func.append_basic_block(f"from_{pred_key}")
            switch.add_case(ir.Constant(self.i32, pred_key), case)
            builder.position_at_end(case)
            builder.branch(merge)
            incoming.append((ir.Constant(self.i32, table_slot), case))

        builder.position_at_end(default)
        shifted = builder.lshr(prev, ir.Constant(self.i32, 1), name="prev_shr")
        mixed = builder.xor(ir.Constant(self.i32, block.key), shifted, name="mixed")
        fallback = builder.and_(mixed, ir.Constant(self.i32, plan.map_size - 1), name="fallback")
        builder.branch(merge)
        incoming.append((fallback, default))

        builder.position_at_end(merge)
        slot = builder.phi(self.i32, name="slot")
        for value, source in incoming:
            slot.add_incoming(value, source)
        return slot

    def _bump(self, builder: ir.IRBuilder, slot):
        """__afl_area_ptr[slot] += 1"""
        area = builder.load(self.area_ptr, name="area")
        cell = builder.gep(area, [slot], name="cell")
        count = builder.load(cell, name="count")
        builder.store(builder.add(count, ir.Constant(self.i8, 1), name="count_inc"), cell)

    # ========================================================================
    # Verification
    # ========================================================================

    def verify(self, module: Optional[ir.Module] = None) -> binding.ModuleRef:
        """Round-trip the emitted IR through LLVM's parser and verifier."""
        module = module or self.module
        try:
            llmod = binding.parse_assembly(str(module))
            llmod.verify()
        except RuntimeError as e:
            raise CFGError(f"Emitted coverage module failed verification: {e}")
        return llmod

    def stub_names(self) -> List[str]:
        return list(self.stubs.values())
