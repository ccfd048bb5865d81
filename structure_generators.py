from __future__ import annotations

from typing import Dict, List, Optional, Union

from sudoku_engine import (
    Cell,
    GenerationError,
    Grid,
    LcgRandom,
    ensure_rng,
    orthogonal_neighbors,
    _log,
)
from variant_rules import (
    HYPER_REGIONS,
    Cage,
    ConsecutiveMarker,
    RegionMap,
    Thermometer,
    are_consecutive,
    validate_regions,
)


# -----------------------------------------------------------------------------
# Tunables (by difficulty; unknown difficulty -> medium)
# -----------------------------------------------------------------------------
CAGE_SIZE_PREFERENCES: Dict[str, List[int]] = {
    "easy": [3, 4, 5],   # larger cages
    "medium": [2, 3, 4],
    "hard": [2, 3],
}

THERMO_CONFIG: Dict[str, Dict[str, int]] = {
    "easy": {"count": 6, "min_length": 3, "max_length": 5},
    "medium": {"count": 8, "min_length": 3, "max_length": 6},
    "hard": {"count": 10, "min_length": 4, "max_length": 7},
}

MARKING_RATIOS: Dict[str, float] = {
    "easy": 0.65,
    "medium": 0.45,
    "hard": 0.30,
}

JIGSAW_REGION_ATTEMPTS = 100
JIGSAW_TARGET_SIZE = 9
JIGSAW_TOP_FRACTION = 0.3

FALLBACK_REGIONS: RegionMap = [
    [(r // 3) * 3 + (c // 3) for c in range(9)] for r in range(9)
]


def _pick(table: dict, difficulty: str):
    return table.get(difficulty, table["medium"])


# -----------------------------------------------------------------------------
# Jigsaw regions
# -----------------------------------------------------------------------------
class _RegionGrowthFailed(Exception):
    pass


def _attempt_region_growth(rng: LcgRandom) -> RegionMap:
    """
    One growth attempt:
      1) drop 9 seed cells on distinct random squares (one per region)
      2) each round, in shuffled region order, every region that still
         needs cells takes one adjacent free cell, preferring cells with
         few free neighbours (best 30%, random pick among them)
      3) if a whole round makes no progress, free cells join a random
         assigned neighbour's region
    """
    grid = [[-1] * 9 for _ in range(9)]
    sizes = [0] * 9

    used = set()
    for region in range(9):
        tries = 0
        while True:
            row, col = rng.below(9), rng.below(9)
            tries += 1
            if tries > 100:
                raise _RegionGrowthFailed("cannot place seed")
            if (row, col) not in used:
                break
        grid[row][col] = region
        sizes[region] = 1
        used.add((row, col))

    unassigned = 81 - 9
    while unassigned > 0:
        progress = False
        order = rng.shuffled(range(9))

        for region in order:
            if sizes[region] >= JIGSAW_TARGET_SIZE:
                continue

            candidates = []
            for row in range(9):
                for col in range(9):
                    if grid[row][col] != -1:
                        continue
                    nbrs = orthogonal_neighbors(row, col)
                    if any(grid[r][c] == region for (r, c) in nbrs):
                        free = sum(1 for (r, c) in nbrs if grid[r][c] == -1)
                        candidates.append((free, row, col))
            if not candidates:
                continue

            candidates.sort(key=lambda x: x[0])  # stable: ties keep raster order
            top = candidates[: max(1, int(len(candidates) * JIGSAW_TOP_FRACTION))]
            _, row, col = rng.choice(top)
            grid[row][col] = region
            sizes[region] += 1
            unassigned -= 1
            progress = True

        if not progress:
            # deadlock: hand leftovers to a neighbouring region
            for row in range(9):
                for col in range(9):
                    if grid[row][col] != -1:
                        continue
                    assigned = [(r, c) for (r, c) in orthogonal_neighbors(row, col) if grid[r][c] != -1]
                    if assigned:
                        r, c = rng.choice(assigned)
                        grid[row][col] = grid[r][c]
                        sizes[grid[r][c]] += 1
                        unassigned -= 1
            if unassigned > 0:
                raise _RegionGrowthFailed("failed to assign all cells")

    return grid


def generate_jigsaw_regions(seed: Union[int, LcgRandom], max_attempts: int = JIGSAW_REGION_ATTEMPTS) -> RegionMap:
    """
    Nine connected regions of nine cells each (region id 0-8 per cell).
    Falls back to the standard 3x3 boxes when every attempt fails.
    """
    rng = ensure_rng(seed)
    for attempt in range(max_attempts):
        try:
            regions = _attempt_region_growth(rng)
        except _RegionGrowthFailed:
            continue
        if validate_regions(regions):
            _log(f"jigsaw: regions ready after {attempt + 1} attempt(s)")
            return regions

    _log(f"jigsaw: no valid regions in {max_attempts} attempts, using standard boxes")
    return [row[:] for row in FALLBACK_REGIONS]


# -----------------------------------------------------------------------------
# Killer cages
# -----------------------------------------------------------------------------
def generate_cages(rng: Union[int, LcgRandom], difficulty: str, solution: Optional[Grid] = None) -> List[Cage]:
    """
    Partition the board into connected cages (sums still 0).

    Free cells are taken in raster order; each starts a cage with a target
    size drawn from the difficulty's menu and grows by random free
    neighbours of any cage cell. With a solution, neighbours whose digit is
    already in the cage are skipped so cages never repeat a digit.
    """
    _rng = ensure_rng(rng)
    sizes = _pick(CAGE_SIZE_PREFERENCES, difficulty)
    assigned = [[False] * 9 for _ in range(9)]
    cages: List[Cage] = []

    def _grow(start_row: int, start_col: int) -> Cage:
        cells = [(start_row, start_col)]
        assigned[start_row][start_col] = True
        digits = {solution[start_row][start_col]} if solution else set()
        target = _rng.choice(sizes)

        while len(cells) < target:
            expand: List[Cell] = []
            for (row, col) in cells:
                for (r, c) in orthogonal_neighbors(row, col):
                    if assigned[r][c]:
                        continue
                    if solution and solution[r][c] in digits:
                        continue
                    expand.append((r, c))  # may repeat: shared neighbours weigh more
            if not expand:
                break
            r, c = _rng.choice(expand)
            cells.append((r, c))
            assigned[r][c] = True
            if solution:
                digits.add(solution[r][c])
        return Cage(cells=cells)

    for row in range(9):
        for col in range(9):
            if not assigned[row][col]:
                cages.append(_grow(row, col))

    _log(f"killer: {len(cages)} cages ({difficulty})")
    return cages


def calculate_cage_sums(cages: List[Cage], solution: Grid) -> List[Cage]:
    """New cages with `sum` taken from the solution."""
    return [Cage(cells=list(cage.cells), sum=sum(solution[r][c] for (r, c) in cage.cells)) for cage in cages]


# -----------------------------------------------------------------------------
# Thermometers
# -----------------------------------------------------------------------------
def _strictly_increasing(solution: Grid, cells: List[Cell]) -> bool:
    return all(solution[r1][c1] < solution[r2][c2] for (r1, c1), (r2, c2) in zip(cells, cells[1:]))


def generate_thermometers(solution: Grid, difficulty: str, rng: Union[int, LcgRandom]) -> List[Thermometer]:
    """
    Random walks over the solution that only step to a free neighbour with
    a larger digit. Up to count * 20 tries; walks shorter than min_length
    are thrown away. May return fewer than `count` thermometers.
    """
    _rng = ensure_rng(rng)
    cfg = _pick(THERMO_CONFIG, difficulty)
    used = set()
    thermometers: List[Thermometer] = []

    attempts = 0
    max_attempts = cfg["count"] * 20
    while len(thermometers) < cfg["count"] and attempts < max_attempts:
        attempts += 1
        row, col = _rng.below(9), _rng.below(9)
        if (row, col) in used:
            continue

        target = cfg["min_length"] + _rng.below(cfg["max_length"] - cfg["min_length"] + 1)
        cells = [(row, col)]
        while len(cells) < target:
            cur = solution[row][col]
            options = [
                (r, c) for (r, c) in orthogonal_neighbors(row, col)
                if (r, c) not in used and (r, c) not in cells and solution[r][c] > cur
            ]
            if not options:
                break
            row, col = _rng.choice(options)
            cells.append((row, col))

        if len(cells) >= cfg["min_length"] and _strictly_increasing(solution, cells):
            thermometers.append(Thermometer(cells=cells))
            used.update(cells)

    _log(f"thermo: {len(thermometers)} thermometers after {attempts} tries ({difficulty})")
    return thermometers


# -----------------------------------------------------------------------------
# Consecutive markers
# -----------------------------------------------------------------------------
def find_all_consecutive_pairs(grid: Grid) -> List[ConsecutiveMarker]:
    """Every adjacent pair differing by 1, each edge once, raster order."""
    size = len(grid)
    pairs: List[ConsecutiveMarker] = []
    for row in range(size):
        for col in range(size):
            for (r, c) in orthogonal_neighbors(row, col, size):
                if (r, c) < (row, col):
                    continue
                if are_consecutive(grid[row][col], grid[r][c]):
                    pairs.append(ConsecutiveMarker(row, col, r, c))
    return pairs


def select_consecutive_markers(
    pairs: List[ConsecutiveMarker],
    difficulty: str,
    rng: Union[int, LcgRandom],
) -> List[ConsecutiveMarker]:
    """Shuffle and keep floor(len * ratio) pairs (ratio from MARKING_RATIOS)."""
    _rng = ensure_rng(rng)
    ratio = _pick(MARKING_RATIOS, difficulty)
    keep = int(len(pairs) * ratio)
    return _rng.shuffled(pairs)[:keep]


# -----------------------------------------------------------------------------
# Hyper regions (fixed)
# -----------------------------------------------------------------------------
def hyper_regions() -> list:
    """The four windows in wire form."""
    return [h.to_dict() for h in HYPER_REGIONS]


def require_structure(ok: bool, what: str, errors: Optional[List[str]] = None) -> None:
    """Raise GenerationError when a freshly built structure fails validation."""
    if not ok:
        detail = f": {'; '.join(errors[:3])}" if errors else ""
        raise GenerationError(f"generated {what} failed validation{detail}")
