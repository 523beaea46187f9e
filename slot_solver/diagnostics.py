"""
Slot Plan Diagnostics

Checks a finished SlotPlan against its invariants and renders the scalars
worth reporting after a run:
- validate: every slot has at most one owner, solved blocks hash their
  edges to distinct slots, occupancy stays within the map
- summary: counts as a dict
- report: the same counts as text
"""

from typing import Any, Dict, List

from slot_solver.planner import SlotPlan


class PlanDiagnostics:
    """Inspects a SlotPlan."""

    def __init__(self, plan: SlotPlan):
        self.plan = plan

    def validate(self) -> List[str]:
        """Return a description of every violated invariant (empty if sound)."""
        plan = self.plan
        problems = []
        owners: Dict[int, str] = {}

        def claim(slot: int, owner: str):
            if not 0 <= slot < plan.map_size:
                problems.append(f"{owner} maps to slot {slot} outside [0, {plan.map_size})")
            elif slot in owners:
                problems.append(f"slot {slot} owned by both {owners[slot]} and {owner}")
            else:
                owners[slot] = owner
            if slot not in plan.occupied:
                problems.append(f"{owner} uses slot {slot} missing from the occupied set")

        for block in plan.solved:
            params = plan.params[block]
            hashes = [params.slot(block.key, p.key) for p in block.preds]
            if len(set(hashes)) != len(hashes):
                problems.append(f"{block.name} hashes its edges to colliding slots under {tuple(params)}")
            for pred, slot in zip(block.preds, hashes):
                claim(slot, f"hashed edge {pred.name} -> {block.name}")

        for (cur, pred), slot in plan.edge_table.items():
            claim(slot, f"table edge ({cur}, {pred})")

        for key, slot in plan.single_table.items():
            claim(slot, f"single block {key}")

        stray = sorted(s for s in plan.occupied if not 0 <= s < plan.map_size)
        if stray:
            problems.append(f"occupied set holds slots outside [0, {plan.map_size}): {stray}")
        if len(plan.occupied) > plan.map_size:
            problems.append(f"{len(plan.occupied)} occupied slots exceed map size {plan.map_size}")

        return problems

    def summary(self) -> Dict[str, Any]:
        plan = self.plan
        return {
            "blocks": len(plan),
            "solved": len(plan.solved),
            "unsolved": len(plan.unsolved),
            "single": len(plan.single),
            "hashed_edges": sum(len(b.preds) for b in plan.solved),
            "table_edges": len(plan.edge_table),
            "single_slots": len(plan.single_table),
            "occupied": len(plan.occupied),
            "map_size": plan.map_size,
            "rounds": plan.rounds,
            "min_unsolved_ratio": plan.min_unsolved_ratio,
        }

    def report(self) -> str:
        s = self.summary()
        lines = [
            "=== Edge Slot Plan ===",
            f"blocks: {s['blocks']} (single {s['single']}, solved {s['solved']}, unsolved {s['unsolved']})",
            f"edges: {s['hashed_edges']} hashed, {s['table_edges']} from fallback table",
            f"slots: {s['occupied']}/{s['map_size']} occupied",
            f"rounds: {s['rounds']}, min unsolved ratio: {s['min_unsolved_ratio']:.4f}",
        ]
        return "\n".join(lines)
