"""
Proportional search-slot allocation.

Slots are shared between servers in proportion to how much outstanding work
each one reported, using the largest-remainder method:

    1. every server gets floor(limit * count / total)
    2. leftover slots go one each to the largest fractional remainders
       (ties go to the server listed first)
    3. if there are at least as many slots as servers, a server left with
       nothing takes one slot from the server holding the most (ties: the
       one with fewer items, then the one listed last)

The result always sums to min(limit, total) and never exceeds a server's
own item count. Example: counts [90, 10], limit 9 -> quotas 8.1 / 0.9 ->
floors [8, 0] -> leftover slot to the 0.9 remainder -> [8, 1].
"""

from typing import List, Sequence


def allocate_proportional(counts: Sequence[int], limit: int) -> List[int]:
    """Split ``limit`` slots across servers with the given item counts."""
    counts = [max(int(c), 0) for c in counts]
    allocation = [0] * len(counts)
    total = sum(counts)
    if limit <= 0 or total == 0:
        return allocation

    if limit >= total:
        # Enough slots for everything
        return list(counts)

    # Integer arithmetic keeps the remainders exact
    remainders = [0] * len(counts)
    for i, count in enumerate(counts):
        allocation[i], remainders[i] = divmod(limit * count, total)

    leftover = limit - sum(allocation)
    by_remainder = sorted(range(len(counts)), key=lambda i: -remainders[i])
    for i in by_remainder[:leftover]:
        allocation[i] += 1

    participants = [i for i, count in enumerate(counts) if count > 0]
    if limit >= len(participants):
        _guarantee_minimum(allocation, counts, participants)

    return allocation


def _guarantee_minimum(allocation: List[int], counts: List[int], participants: List[int]):
    """Give every participant at least one slot without changing the total."""
    for i in participants:
        if allocation[i] > 0:
            continue
        donor = max(participants, key=lambda j: (allocation[j], -counts[j], j))
        # limit >= participants and someone holds 0, so the donor holds >= 2
        allocation[donor] -= 1
        allocation[i] += 1


def take_first(ids: Sequence[int], count: int) -> List[int]:
    """First ``count`` IDs in detection order."""
    return list(ids[:max(count, 0)])
