"""
Wallet Allocator
================
Splits the wallet set into disjoint per-lane assignments.

Distribution is round-robin: the wallet at position i goes to lane
i mod lane_count, so lane sizes differ by at most one. Assignments are
computed once at startup; no rotation cursor is shared between lanes.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class LaneAssignment:
    """Ordered wallet indices owned by one lane."""
    lane_id: int
    wallet_indices: Tuple[int, ...]

    def __len__(self):
        return len(self.wallet_indices)

    @property
    def is_empty(self) -> bool:
        return not self.wallet_indices


def distribute(wallet_indices: Sequence[int], lane_count: int) -> List[List[int]]:
    """
    Round-robin the wallet indices over lane_count lanes.

    Returns exactly lane_count lists (some may be empty when there are
    fewer wallets than lanes). Order inside each lane follows input order.

    Raises:
        ValueError: If lane_count < 1
    """
    if lane_count < 1:
        raise ValueError(f"lane count must be at least 1, got {lane_count}")

    lanes: List[List[int]] = [[] for _ in range(lane_count)]
    for position, wallet_index in enumerate(wallet_indices):
        lanes[position % lane_count].append(wallet_index)
    return lanes


def build_lane_assignments(wallet_count: int, lane_count: int) -> List[LaneAssignment]:
    """Assignments for wallets 0..wallet_count-1, lanes numbered from 1."""
    return [
        LaneAssignment(lane_id=lane_number, wallet_indices=tuple(indices))
        for lane_number, indices in enumerate(distribute(range(wallet_count), lane_count), start=1)
    ]
