"""Region-queens puzzle generation and verification.

A puzzle is an N x N grid of region ids (0..N-1) split into N contiguous
regions. A valid placement puts one marker in every row, column and region
with no two markers touching, diagonals included. Generated puzzles have
exactly one valid placement.

Region sizes are not balanced: equal-size partitions of a 6 x 6 grid turn
out to always admit several solutions, so generation cuts a random spanning
tree into N pieces and keeps the first grid with a unique answer.
"""
import random
from collections import namedtuple
from typing import List, Sequence

from partyhub.errors import PuzzleGenerationError

GRID_SIZE = 6
MAX_ATTEMPTS = 2000

Puzzle = namedtuple('Puzzle', ['grid', 'solution'])


class _DisjointSet:
    def __init__(self, count: int):
        self.parent = list(range(count))

    def find(self, x: int) -> int:
        while self.parent[x] != x:
            self.parent[x] = self.parent[self.parent[x]]
            x = self.parent[x]
        return x

    def union(self, a: int, b: int) -> bool:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        self.parent[rb] = ra
        return True


def random_regions(size: int = GRID_SIZE, rng=random) -> List[List[int]]:
    """Partition the grid into ``size`` contiguous regions.

    Builds a random spanning tree over the cells (Kruskal on shuffled edges),
    then drops ``size - 1`` random tree edges. Each remaining piece of the
    tree is one region, numbered in row-major order of first appearance.
    """
    edges = []
    for r in range(size):
        for c in range(size):
            cell = r * size + c
            if c + 1 < size:
                edges.append((cell, cell + 1))
            if r + 1 < size:
                edges.append((cell, cell + size))
    rng.shuffle(edges)

    forest = _DisjointSet(size * size)
    tree = [edge for edge in edges if forest.union(*edge)]
    rng.shuffle(tree)

    pieces = _DisjointSet(size * size)
    for a, b in tree[size - 1:]:
        pieces.union(a, b)

    ids = {}
    grid = []
    for r in range(size):
        row = []
        for c in range(size):
            root = pieces.find(r * size + c)
            row.append(ids.setdefault(root, len(ids)))
        grid.append(row)
    return grid


def find_solutions(grid: Sequence[Sequence[int]], limit: int = 2) -> List[List[int]]:
    """Valid placements as column-per-row lists, stopping at ``limit``."""
    size = len(grid)
    cols: List[int] = []
    used_cols = set()
    used_regions = set()
    found: List[List[int]] = []

    def solve(row: int) -> None:
        if row == size:
            found.append(list(cols))
            return
        for col in range(size):
            if len(found) >= limit:
                return
            region = grid[row][col]
            if col in used_cols or region in used_regions:
                continue
            # one marker per row means only the previous row can touch this one
            if row > 0 and abs(cols[row - 1] - col) <= 1:
                continue
            cols.append(col)
            used_cols.add(col)
            used_regions.add(region)
            solve(row + 1)
            cols.pop()
            used_cols.discard(col)
            used_regions.discard(region)

    solve(0)
    return found


def count_solutions(grid: Sequence[Sequence[int]], limit: int = 2) -> int:
    """Count valid placements, stopping once ``limit`` have been found."""
    return len(find_solutions(grid, limit))


def generate_puzzle(size: int = GRID_SIZE, max_attempts: int = MAX_ATTEMPTS, rng=None) -> Puzzle:
    rng = rng or random.Random()
    for _ in range(max_attempts):
        grid = random_regions(size, rng)
        solutions = find_solutions(grid, limit=2)
        if len(solutions) == 1:
            return Puzzle(grid, solutions[0])
    raise PuzzleGenerationError(max_attempts)


def _marker_cell(marker):
    if isinstance(marker, dict):
        row, col = marker.get('row'), marker.get('col')
    elif isinstance(marker, (list, tuple)) and len(marker) == 2:
        row, col = marker
    else:
        return None
    if isinstance(row, bool) or isinstance(col, bool):
        return None
    if not isinstance(row, int) or not isinstance(col, int):
        return None
    return row, col


def verify_solution(grid: Sequence[Sequence[int]], markers) -> bool:
    """Check a submitted placement against every constraint at once.

    ``markers`` is a list of ``{"row": r, "col": c}`` objects or ``[r, c]``
    pairs.
    """
    size = len(grid)
    if not isinstance(markers, (list, tuple)) or len(markers) != size:
        return False

    cells = []
    for marker in markers:
        cell = _marker_cell(marker)
        if cell is None:
            return False
        row, col = cell
        if not (0 <= row < size and 0 <= col < size):
            return False
        cells.append(cell)

    if len({row for row, _ in cells}) != size:
        return False
    if len({col for _, col in cells}) != size:
        return False
    if len({grid[row][col] for row, col in cells}) != size:
        return False
    for i in range(size):
        for j in range(i + 1, size):
            if abs(cells[i][0] - cells[j][0]) <= 1 and abs(cells[i][1] - cells[j][1]) <= 1:
                return False
    return True


def solution_markers(solution: Sequence[int]) -> List[dict]:
    return [{'row': row, 'col': col} for row, col in enumerate(solution)]
