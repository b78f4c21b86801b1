"""Tests for proportional search-slot allocation."""

import itertools

import pytest

from janitarr.automation.allocator import allocate_proportional, take_first


def test_worked_example():
    assert allocate_proportional([90, 10], 9) == [8, 1]


def test_even_split():
    assert allocate_proportional([50, 50], 10) == [5, 5]


def test_three_way_split():
    assert allocate_proportional([30, 20, 10], 7) == [4, 2, 1]


@pytest.mark.parametrize("counts", [[0, 0], [], [0]])
def test_nothing_to_allocate(counts):
    assert allocate_proportional(counts, 10) == [0] * len(counts)


def test_zero_limit():
    assert allocate_proportional([5, 7], 0) == [0, 0]


def test_limit_covers_everything():
    assert allocate_proportional([3, 4], 10) == [3, 4]
    assert allocate_proportional([3, 4], 7) == [3, 4]


def test_leftover_ties_go_to_first_server():
    assert allocate_proportional([1, 1], 1) == [1, 0]
    assert allocate_proportional([1, 1, 1], 2) == [1, 1, 0]


def test_small_server_gets_at_least_one_slot():
    assert allocate_proportional([100, 1, 1], 3) == [1, 1, 1]
    assert allocate_proportional([1, 1000], 10) == [1, 9]


def test_server_without_items_gets_nothing():
    assert allocate_proportional([0, 10, 5], 6) == [0, 4, 2]


def test_invariants_over_small_inputs():
    for counts in itertools.product(range(0, 7), repeat=3):
        for limit in range(0, 12):
            allocation = allocate_proportional(list(counts), limit)
            total = sum(counts)

            assert sum(allocation) == min(limit, total)
            for alloc, count in zip(allocation, counts):
                assert 0 <= alloc <= count
            for (a1, c1), (a2, c2) in itertools.combinations(zip(allocation, counts), 2):
                if c1 > c2:
                    assert a1 >= a2
                if c2 > c1:
                    assert a2 >= a1
            participants = [c for c in counts if c > 0]
            if limit >= len(participants):
                assert all(a >= 1 for a, c in zip(allocation, counts) if c > 0)


def test_take_first_keeps_detection_order():
    assert take_first([5, 3, 9, 1], 2) == [5, 3]
    assert take_first([5, 3], 10) == [5, 3]
    assert take_first([5, 3], 0) == []
