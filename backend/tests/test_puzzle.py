import random
from collections import deque

import pytest

from partyhub.errors import PuzzleGenerationError
from partyhub.services.games.puzzle import (
    MAX_ATTEMPTS,
    count_solutions,
    find_solutions,
    generate_puzzle,
    random_regions,
    solution_markers,
    verify_solution,
)

ROW_REGIONS = [[row] * 6 for row in range(6)]
EXAMPLE = [(0, 1), (1, 3), (2, 5), (3, 0), (4, 2), (5, 4)]


def region_is_contiguous(grid, region):
    cells = {(r, c) for r, row in enumerate(grid) for c, value in enumerate(row) if value == region}
    start = next(iter(cells))
    seen = {start}
    queue = deque([start])
    while queue:
        r, c = queue.popleft()
        for nxt in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
            if nxt in cells and nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return seen == cells


def test_verifier_accepts_example_placement():
    assert verify_solution(ROW_REGIONS, EXAMPLE)
    assert verify_solution(ROW_REGIONS, [{'row': r, 'col': c} for r, c in EXAMPLE])


def test_verifier_rejects_wrong_count():
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5])
    assert not verify_solution(ROW_REGIONS, EXAMPLE + [(0, 0)])
    assert not verify_solution(ROW_REGIONS, None)


def test_verifier_rejects_out_of_bounds_and_garbage():
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5] + [(5, 6)])
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5] + [(-1, 4)])
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5] + ['54'])
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5] + [{'row': 5}])
    assert not verify_solution(ROW_REGIONS, EXAMPLE[:5] + [(5.0, 4.0)])


def test_verifier_rejects_repeated_row():
    placement = EXAMPLE[:5] + [(4, 4)]
    assert not verify_solution(ROW_REGIONS, placement)


def test_verifier_rejects_repeated_column():
    # rows and regions distinct, nothing adjacent, column 1 twice
    placement = [(0, 1), (1, 3), (2, 5), (3, 1), (4, 3), (5, 0)]
    assert not verify_solution(ROW_REGIONS, placement)


def test_verifier_rejects_shared_region():
    grid = [list(row) for row in ROW_REGIONS]
    grid[1][3] = 0
    assert not verify_solution(grid, EXAMPLE)


def test_verifier_rejects_touching_markers():
    # (2,4) touches (1,3) diagonally; rows/columns/regions are still all distinct
    placement = [(0, 1), (1, 3), (2, 4), (3, 0), (4, 2), (5, 5)]
    assert not verify_solution(ROW_REGIONS, placement)


def test_counter_finds_all_king_free_permutations():
    # with one region per row the only constraints are columns and adjacency
    assert count_solutions(ROW_REGIONS, limit=1000) == 90
    assert count_solutions(ROW_REGIONS, limit=2) == 2


def test_single_cell_regions_force_one_answer():
    grid = [[5] * 6 for _ in range(6)]
    for region, (r, c) in enumerate(EXAMPLE[:5]):
        grid[r][c] = region
    assert find_solutions(grid, limit=10) == [[c for _, c in EXAMPLE]]


def test_counter_respects_limit():
    assert len(find_solutions(ROW_REGIONS, limit=3)) == 3


@pytest.mark.parametrize('seed', range(20))
def test_random_regions_are_contiguous_partitions(seed):
    grid = random_regions(6, random.Random(seed))
    assert len(grid) == 6 and all(len(row) == 6 for row in grid)
    assert {region for row in grid for region in row} == set(range(6))
    assert all(region_is_contiguous(grid, region) for region in range(6))


def test_thousand_generated_puzzles_are_uniquely_solvable():
    rng = random.Random(2024)
    for _ in range(1000):
        puzzle = generate_puzzle(max_attempts=MAX_ATTEMPTS, rng=rng)
        grid = puzzle.grid
        assert {region for row in grid for region in row} == set(range(6))
        assert all(region_is_contiguous(grid, region) for region in range(6))
        assert count_solutions(grid, limit=10) == 1
        assert verify_solution(grid, solution_markers(puzzle.solution))


def test_exhausted_budget_raises():
    with pytest.raises(PuzzleGenerationError) as info:
        generate_puzzle(max_attempts=0)
    assert info.value.attempts == 0
