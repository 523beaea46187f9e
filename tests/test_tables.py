"""
Tests for the first-fit fallback and single-predecessor tables.
"""

import os
import sys
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cfg_nodes import Block
from slot_errors import SlotExhaustion
from slot_solver import SlotAllocator, build_edge_table, build_single_table


class TestSlotAllocator:
    """First-fit over the shared occupied set"""

    def test_lowest_free_first(self):
        allocator = SlotAllocator({0, 1, 3}, 8)
        assert allocator.take() == 2
        assert allocator.take() == 4
        assert allocator.occupied == {0, 1, 2, 3, 4}

    def test_shares_the_set(self):
        occupied = {1}
        allocator = SlotAllocator(occupied, 4)
        allocator.take()
        assert occupied == {0, 1}
        assert allocator.free == 2

    def test_exhaustion(self):
        allocator = SlotAllocator({0, 1, 2, 3}, 4)
        with pytest.raises(SlotExhaustion, match="4 slots"):
            allocator.take("edge a -> b")

    def test_exhaustion_is_sticky(self):
        allocator = SlotAllocator({0}, 2)
        assert allocator.take() == 1
        with pytest.raises(SlotExhaustion):
            allocator.take()
        with pytest.raises(SlotExhaustion):
            allocator.take()

    def test_occupancy_monotonic(self):
        allocator = SlotAllocator({2, 5}, 8)
        sizes = [len(allocator.occupied)]
        for _ in range(6):
            allocator.take()
            sizes.append(len(allocator.occupied))
        assert sizes == sorted(sizes)
        assert sizes[-1] == 8


class TestEdgeTable:
    """Fallback table for unsolved multi-predecessor blocks"""

    def test_assigns_every_edge(self, colliding_blocks):
        allocator = SlotAllocator(set(), 8)
        table = build_edge_table([colliding_blocks["b"]], allocator)
        assert table == {(5, 2): 0, (5, 3): 1}

    def test_skips_claimed_hashes(self, colliding_blocks):
        allocator = SlotAllocator({0, 2}, 8)
        table = build_edge_table([colliding_blocks["b"]], allocator)
        assert table == {(5, 2): 1, (5, 3): 3}

    def test_empty(self):
        assert build_edge_table([], SlotAllocator(set(), 8)) == {}

    def test_exhaustion(self, colliding_blocks):
        allocator = SlotAllocator({0, 1, 2}, 4)
        with pytest.raises(SlotExhaustion, match="p2 -> b"):
            build_edge_table([colliding_blocks["b"]], allocator)


class TestSingleTable:
    """Single-predecessor table"""

    def test_assigns_each_block(self):
        blocks = [Block(name=f"s{i}", key=10 + i) for i in range(3)]
        table = build_single_table(blocks, SlotAllocator({1}, 8))
        assert table == {10: 0, 11: 2, 12: 3}

    def test_five_blocks_in_four_slots(self):
        blocks = [Block(name=f"s{i}", key=i) for i in range(5)]
        allocator = SlotAllocator(set(), 4)
        with pytest.raises(SlotExhaustion, match="block s4"):
            build_single_table(blocks, allocator)
        assert allocator.occupied == {0, 1, 2, 3}

    def test_after_fallback_table(self, colliding_blocks):
        allocator = SlotAllocator(set(), 8)
        edges = build_edge_table([colliding_blocks["b"]], allocator)
        single = build_single_table([colliding_blocks["p1"], colliding_blocks["p2"]], allocator)
        assert set(edges.values()).isdisjoint(single.values())
        assert single == {2: 2, 3: 3}
