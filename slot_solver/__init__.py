"""
Edgeslot Slot Solver Package

Assigns every CFG edge a slot in the fixed-size coverage bitmap while
keeping edges from sharing slots.

Package Structure:
    slot_solver/
    ├── __init__.py      # Package exports (this file)
    ├── hash_solver.py   # Per-block (x, y, z) hash search (ParametricHashSolver)
    ├── tables.py        # First-fit fallback and single-predecessor tables
    ├── planner.py       # Orchestration and result (SlotPlanner, SlotPlan)
    └── diagnostics.py   # Invariant checks and reports (PlanDiagnostics)
"""

from slot_solver.hash_solver import ParametricHashSolver, RoundState, SolveResult
from slot_solver.tables import SlotAllocator, build_edge_table, build_single_table
from slot_solver.planner import SlotPlan, SlotPlanner
from slot_solver.diagnostics import PlanDiagnostics

__all__ = [
    'ParametricHashSolver',
    'RoundState',
    'SolveResult',
    'SlotAllocator',
    'build_edge_table',
    'build_single_table',
    'SlotPlan',
    'SlotPlanner',
    'PlanDiagnostics',
]
