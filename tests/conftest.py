"""
Pytest configuration and fixtures for edgeslot tests.

Provides reusable fixtures for:
- Building small hand-keyed CFGs
- Quiet map configurations
- A sample LLVM IR module
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cfg_nodes import Block
from map_config import MapConfig


SAMPLE_IR = r'''
define i32 @classify(i32 %x) {
entry:
  %neg = icmp slt i32 %x, 0
  br i1 %neg, label %negative, label %check_zero
negative:
  br label %done
check_zero:
  %zero = icmp eq i32 %x, 0
  br i1 %zero, label %is_zero, label %positive
is_zero:
  br label %done
positive:
  br label %done
done:
  %r = phi i32 [ -1, %negative ], [ 0, %is_zero ], [ 1, %positive ]
  ret i32 %r
}

define i32 @pick(i32 %k) {
entry:
  switch i32 %k, label %other [
    i32 0, label %zero
    i32 1, label %zero
    i32 2, label %two
  ]
zero:
  br label %exit
two:
  br label %exit
other:
  br label %exit
exit:
  %v = phi i32 [ 10, %zero ], [ 20, %two ], [ 30, %other ]
  ret i32 %v
}

define i32 @count(i32 %n) {
entry:
  br label %loop
loop:
  %i = phi i32 [ 0, %entry ], [ %next, %loop ]
  %next = add i32 %i, 1
  %more = icmp slt i32 %next, %n
  br i1 %more, label %loop, label %out
out:
  ret i32 %next
}

declare i32 @external_helper(i32)
'''


@pytest.fixture
def sample_ir():
    """LLVM IR with branches, a switch, a loop and a declaration."""
    return SAMPLE_IR


@pytest.fixture
def make_config():
    """
    Fixture that returns a factory for quiet MapConfigs.

    Usage:
        config = make_config(map_size=8)
    """
    def _make(**kwargs) -> MapConfig:
        kwargs.setdefault("quiet", True)
        return MapConfig(**kwargs)

    return _make


@pytest.fixture
def make_blocks():
    """
    Fixture that builds keyed blocks from {name: (key, [pred names])}.

    Usage:
        blocks = make_blocks({"a": (0, []), "b": (5, ["a"])})
        blocks["b"].preds[0] is blocks["a"]
    """
    def _make(layout):
        blocks = {name: Block(name=name, key=key) for name, (key, _) in layout.items()}
        for name, (_, preds) in layout.items():
            for pred in preds:
                blocks[name].preds.append(blocks[pred])
        return blocks

    return _make


@pytest.fixture
def solvable_blocks(make_blocks):
    """One multi-predecessor block whose two edges hash apart under (1, 1, 1)."""
    return make_blocks({
        "p1": (0, []),
        "p2": (4, []),
        "b": (5, ["p1", "p2"]),
    })


@pytest.fixture
def colliding_blocks(make_blocks):
    """Predecessor keys differ only in bit 0, so every y >= 1 merges them."""
    return make_blocks({
        "p1": (2, []),
        "p2": (3, []),
        "b": (5, ["p1", "p2"]),
    })
