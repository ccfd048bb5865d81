from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sudoku_engine import (
    MINI_SHAPE,
    STANDARD_SHAPE,
    Cell,
    ClassicRules,
    ConstraintChecker,
    Grid,
    ValidationResult,
    orthogonal_neighbors,
    string_to_grid,
)


# -----------------------------------------------------------------------------
# Structure shapes (what the UI draws and the API ships around)
# -----------------------------------------------------------------------------
RegionMap = List[List[int]]  # jigsaw: region id 0-8 per cell


def _cell(value) -> Cell:
    r, c = value
    return int(r), int(c)


@dataclass
class Cage:
    """Killer cage: connected cells whose digits add up to `sum` without repeats."""
    cells: List[Cell]
    sum: int = 0

    def to_dict(self) -> dict:
        return {"cells": [[r, c] for (r, c) in self.cells], "sum": self.sum}

    @classmethod
    def from_dict(cls, data: dict) -> "Cage":
        return cls(cells=[_cell(x) for x in data.get("cells", [])], sum=int(data.get("sum") or 0))


@dataclass
class Thermometer:
    """Ordered cells, bulb first. Digits strictly increase towards the tip."""
    cells: List[Cell]

    def to_dict(self) -> dict:
        return {"cells": [[r, c] for (r, c) in self.cells]}

    @classmethod
    def from_dict(cls, data: dict) -> "Thermometer":
        return cls(cells=[_cell(x) for x in data.get("cells", [])])


@dataclass(frozen=True)
class ConsecutiveMarker:
    """Edge between two orthogonally adjacent cells whose digits differ by 1."""
    row1: int
    col1: int
    row2: int
    col2: int

    def key(self) -> frozenset:
        return frozenset({(self.row1, self.col1), (self.row2, self.col2)})

    def to_dict(self) -> dict:
        return {"row1": self.row1, "col1": self.col1, "row2": self.row2, "col2": self.col2}

    @classmethod
    def from_dict(cls, data: dict) -> "ConsecutiveMarker":
        return cls(data["row1"], data["col1"], data["row2"], data["col2"])


@dataclass(frozen=True)
class HyperRegion:
    """One of the four extra 3x3 windows."""
    start_row: int
    start_col: int

    def cells(self) -> List[Cell]:
        return [(self.start_row + i, self.start_col + j) for i in range(3) for j in range(3)]

    def contains(self, row: int, col: int) -> bool:
        return (self.start_row <= row < self.start_row + 3
                and self.start_col <= col < self.start_col + 3)

    def to_dict(self) -> dict:
        return {"startRow": self.start_row, "startCol": self.start_col}


HYPER_REGIONS: Tuple[HyperRegion, ...] = (
    HyperRegion(1, 1),  # top-left
    HyperRegion(1, 5),  # top-right
    HyperRegion(5, 1),  # bottom-left
    HyperRegion(5, 5),  # bottom-right
)

KNIGHT_OFFSETS: Tuple[Cell, ...] = (
    (-2, -1), (-2, 1),
    (-1, -2), (-1, 2),
    (1, -2), (1, 2),
    (2, -1), (2, 1),
)


def coerce_cages(cages: Iterable) -> List[Cage]:
    """Accept Cage objects or the JSON dicts the client sends."""
    return [c if isinstance(c, Cage) else Cage.from_dict(c) for c in cages]


def coerce_thermometers(thermometers: Iterable) -> List[Thermometer]:
    return [t if isinstance(t, Thermometer) else Thermometer.from_dict(t) for t in thermometers]


def coerce_markers(markers: Iterable) -> List[ConsecutiveMarker]:
    return [m if isinstance(m, ConsecutiveMarker) else ConsecutiveMarker.from_dict(m) for m in markers]


# -----------------------------------------------------------------------------
# Small lookups
# -----------------------------------------------------------------------------
def get_adjacent_cells(row: int, col: int, size: int = 9) -> List[Cell]:
    return orthogonal_neighbors(row, col, size)


def get_knight_cells(row: int, col: int, size: int = 9) -> List[Cell]:
    """Cells a chess knight's move away (at most 8)."""
    out = []
    for dr, dc in KNIGHT_OFFSETS:
        r, c = row + dr, col + dc
        if 0 <= r < size and 0 <= c < size:
            out.append((r, c))
    return out


def get_hyper_region(row: int, col: int) -> Optional[HyperRegion]:
    """First hyper window containing the cell, or None."""
    for region in HYPER_REGIONS:
        if region.contains(row, col):
            return region
    return None


def find_cage_for_cell(cages: Sequence[Cage], row: int, col: int) -> Optional[Cage]:
    for cage in coerce_cages(cages):
        for (r, c) in cage.cells:
            if r == row and c == col:
                return cage
    return None


def find_thermometers_for_cell(thermometers: Sequence[Thermometer], row: int, col: int) -> List[Tuple[Thermometer, int]]:
    """(thermometer, index) for every thermometer passing through the cell."""
    results = []
    for thermo in coerce_thermometers(thermometers):
        for i, (r, c) in enumerate(thermo.cells):
            if r == row and c == col:
                results.append((thermo, i))
                break
    return results


def count_thermometer_cells(thermometers: Sequence[Thermometer]) -> int:
    return sum(len(t.cells) for t in coerce_thermometers(thermometers))


def are_consecutive(a: int, b: int) -> bool:
    return abs(a - b) == 1


def is_marked_consecutive(markers: Sequence[ConsecutiveMarker], row1: int, col1: int, row2: int, col2: int) -> bool:
    """Markers are undirected: (a, b) and (b, a) are the same edge."""
    for m in coerce_markers(markers):
        if (m.row1 == row1 and m.col1 == col1 and m.row2 == row2 and m.col2 == col2) or \
           (m.row1 == row2 and m.col1 == col2 and m.row2 == row1 and m.col2 == col1):
            return True
    return False


def count_consecutive_markers(markers: Sequence[ConsecutiveMarker]) -> int:
    return len(markers)


def get_region_cells(regions: RegionMap, region_id: int) -> List[Cell]:
    return [(r, c) for r in range(len(regions)) for c in range(len(regions[r])) if regions[r][c] == region_id]


# -----------------------------------------------------------------------------
# Variant checkers
# -----------------------------------------------------------------------------
class MiniRules(ClassicRules):
    """6x6 board, digits 1-6, boxes of 2 rows x 3 columns."""

    variant = "mini"

    def __init__(self):
        super().__init__(MINI_SHAPE)


class XSudokuRules(ConstraintChecker):
    """Both main diagonals hold every digit once."""

    variant = "x-sudoku"

    def extra_units(self):
        n = self.size
        return [
            ("main diagonal", [(i, i) for i in range(n)]),
            ("anti-diagonal", [(i, n - 1 - i) for i in range(n)]),
        ]


class AntiKnightRules(ConstraintChecker):
    """Equal digits may not sit a knight's move apart."""

    variant = "anti-knight"

    def exclusive_cells(self, row, col):
        return get_knight_cells(row, col, self.size)

    def extra_solution_errors(self, grid):
        return [
            f"Anti-Knight violation: {v['num']} at ({v['row']}, {v['col']}) "
            f"and ({v['conflict_row']}, {v['conflict_col']})"
            for v in get_anti_knight_violations(grid)
        ]


class HyperRules(ConstraintChecker):
    """Classic rules plus the four hyper windows (a cell may be in its box and a window)."""

    variant = "hyper-sudoku"

    def extra_units(self):
        return [(f"hyper region ({h.start_row}, {h.start_col})", h.cells()) for h in HYPER_REGIONS]


class JigsawRules(ConstraintChecker):
    """Rows, columns and nine irregular regions (no geometric boxes)."""

    variant = "jigsaw-sudoku"

    def __init__(self, regions: RegionMap):
        self.regions = [list(row) for row in regions]
        super().__init__(STANDARD_SHAPE)

    def box_units(self):
        return [(f"region {rid}", get_region_cells(self.regions, rid)) for rid in range(self.size)]


class KillerRules(ConstraintChecker):
    """
    Classic rules plus cages: no repeated digit inside a cage, and the cage
    total must stay reachable. Concretely, after placing `digit`:
      - the filled sum may not exceed the target
      - the last empty cell must make the sum exact
      - the other empty cells must still fit between the smallest and the
        largest sum of distinct unused digits
    """

    variant = "killer-sudoku"

    def __init__(self, cages: Iterable):
        self.cages = coerce_cages(cages)
        self._cage_of: Dict[Cell, Cage] = {}
        for cage in self.cages:
            for cell in cage.cells:
                self._cage_of[cell] = cage
        super().__init__(STANDARD_SHAPE)

    def extra_units(self):
        return [(f"cage {i} (sum={cage.sum})", list(cage.cells)) for i, cage in enumerate(self.cages)]

    def cage_for(self, row: int, col: int) -> Optional[Cage]:
        return self._cage_of.get((row, col))

    def extra_ok(self, grid, row, col, digit):
        cage = self._cage_of.get((row, col))
        if cage is None:
            return True  # uncovered cell; validate_cage_structure reports it

        total = digit
        used = {digit}
        empty = 0
        for (r, c) in cage.cells:
            if r == row and c == col:
                continue
            v = grid[r][c]
            if v:
                total += v
                used.add(v)
            else:
                empty += 1

        if total > cage.sum:
            return False
        if empty == 0:
            return total == cage.sum

        free = [d for d in self.digits if d not in used]
        if len(free) < empty:
            return False
        remaining = cage.sum - total
        return sum(free[:empty]) <= remaining <= sum(free[-empty:])

    def extra_solution_errors(self, grid):
        errors = []
        for i, cage in enumerate(self.cages):
            total = sum(grid[r][c] for (r, c) in cage.cells)
            if total != cage.sum:
                errors.append(f"Killer constraint violation: Cage {i} sum is {total}, expected {cage.sum}")
        return errors


class ThermoRules(ConstraintChecker):
    """Digits strictly increase along each thermometer, bulb to tip."""

    variant = "thermo-sudoku"

    def __init__(self, thermometers: Iterable):
        self.thermometers = coerce_thermometers(thermometers)
        # cell -> [(previous cell or None, next cell or None), ...]
        self._links: Dict[Cell, List[Tuple[Optional[Cell], Optional[Cell]]]] = {}
        for thermo in self.thermometers:
            cells = thermo.cells
            for i, cell in enumerate(cells):
                prev_cell = cells[i - 1] if i > 0 else None
                next_cell = cells[i + 1] if i < len(cells) - 1 else None
                self._links.setdefault(cell, []).append((prev_cell, next_cell))
        super().__init__(STANDARD_SHAPE)

    def linked_cells(self, row, col):
        out = []
        for prev_cell, next_cell in self._links.get((row, col), ()):
            if prev_cell is not None:
                out.append(prev_cell)
            if next_cell is not None:
                out.append(next_cell)
        return out

    def extra_ok(self, grid, row, col, digit):
        for prev_cell, next_cell in self._links.get((row, col), ()):
            if prev_cell is not None:
                before = grid[prev_cell[0]][prev_cell[1]]
                if before != 0 and before >= digit:
                    return False
            if next_cell is not None:
                after = grid[next_cell[0]][next_cell[1]]
                if after != 0 and after <= digit:
                    return False
        return True

    def extra_solution_errors(self, grid):
        errors = []
        for t, thermo in enumerate(self.thermometers):
            for (r1, c1), (r2, c2) in zip(thermo.cells, thermo.cells[1:]):
                a, b = grid[r1][c1], grid[r2][c2]
                if a >= b:
                    errors.append(
                        f"Thermo violation in thermometer {t + 1}: "
                        f"Cell ({r1}, {c1})={a} must be < ({r2}, {c2})={b}"
                    )
        return errors


class ConsecutiveRules(ConstraintChecker):
    """
    Marked neighbours differ by exactly 1; unmarked neighbours must not.
    Both directions are errors.
    """

    variant = "consecutive-sudoku"

    def __init__(self, markers: Iterable):
        self.markers = coerce_markers(markers)
        self._marked = {m.key() for m in self.markers}
        super().__init__(STANDARD_SHAPE)

    def is_marked(self, a: Cell, b: Cell) -> bool:
        return frozenset({a, b}) in self._marked

    def linked_cells(self, row, col):
        return orthogonal_neighbors(row, col, self.size)

    def extra_ok(self, grid, row, col, digit):
        for (r, c) in orthogonal_neighbors(row, col, self.size):
            other = grid[r][c]
            if other == 0:
                continue
            if self.is_marked((row, col), (r, c)) != are_consecutive(digit, other):
                return False
        return True

    def extra_solution_errors(self, grid):
        errors = []
        for row in range(self.size):
            for col in range(self.size):
                num = grid[row][col]
                for (r, c) in orthogonal_neighbors(row, col, self.size):
                    if (r, c) < (row, col):
                        continue  # each edge once
                    other = grid[r][c]
                    marked = self.is_marked((row, col), (r, c))
                    consecutive = are_consecutive(num, other)
                    if marked and not consecutive:
                        errors.append(
                            f"Consecutive violation: Cells ({row}, {col})={num} and ({r}, {c})={other} "
                            f"are marked consecutive but differ by {abs(num - other)}"
                        )
                    elif consecutive and not marked:
                        errors.append(
                            f"Consecutive violation: Cells ({row}, {col})={num} and ({r}, {c})={other} "
                            f"are NOT marked but are consecutive (differ by 1)"
                        )
        return errors


# Structure-free checkers are immutable once built; share one of each.
@lru_cache(maxsize=None)
def classic_rules() -> ClassicRules:
    return ClassicRules()


@lru_cache(maxsize=None)
def mini_rules() -> MiniRules:
    return MiniRules()


@lru_cache(maxsize=None)
def x_sudoku_rules() -> XSudokuRules:
    return XSudokuRules()


@lru_cache(maxsize=None)
def anti_knight_rules() -> AntiKnightRules:
    return AntiKnightRules()


@lru_cache(maxsize=None)
def hyper_rules() -> HyperRules:
    return HyperRules()


def rules_for(variant: str, structure=None) -> ConstraintChecker:
    """Checker for a variant id; `structure` is the cages / thermometers / markers / regions."""
    if variant == "classic":
        return classic_rules()
    if variant == "mini":
        return mini_rules()
    if variant == "x-sudoku":
        return x_sudoku_rules()
    if variant == "anti-knight":
        return anti_knight_rules()
    if variant == "hyper-sudoku":
        return hyper_rules()
    if variant == "killer-sudoku":
        return KillerRules(structure or [])
    if variant == "thermo-sudoku":
        return ThermoRules(structure or [])
    if variant == "consecutive-sudoku":
        return ConsecutiveRules(structure or [])
    if variant == "jigsaw-sudoku":
        if structure is None:
            raise ValueError("jigsaw-sudoku needs a region map")
        return JigsawRules(structure)
    raise ValueError(f"unknown variant: {variant!r}")


# -----------------------------------------------------------------------------
# Generic validators (every variant funnels through these)
# -----------------------------------------------------------------------------
def validate_board(grid: Grid, checker: ConstraintChecker) -> bool:
    """Partial boards allowed: every filled cell must agree with every other."""
    return checker.board_is_consistent(grid)


def validate_solution(grid: Grid, checker: ConstraintChecker) -> ValidationResult:
    """Complete-board check with readable errors."""
    return ValidationResult.from_errors(checker.solution_errors(grid))


def validate_solution_string(text: str, checker: ConstraintChecker) -> bool:
    """True if `text` is a complete, valid solution for the checker's board."""
    try:
        grid = string_to_grid(text, checker.size)
    except ValueError:
        return False
    return validate_solution(grid, checker).valid


# -----------------------------------------------------------------------------
# Per-variant entry points
# -----------------------------------------------------------------------------
# Classic
def is_valid_classic_placement(grid: Grid, row: int, col: int, digit: int) -> bool:
    return classic_rules().is_valid_placement(grid, row, col, digit)


def validate_classic_board(grid: Grid) -> bool:
    return validate_board(grid, classic_rules())


def validate_classic_solution(grid: Grid) -> ValidationResult:
    return validate_solution(grid, classic_rules())


def get_valid_classic_numbers(grid: Grid, row: int, col: int) -> List[int]:
    return classic_rules().candidates(grid, row, col)


# Mini 6x6
def is_valid_mini_placement(grid: Grid, row: int, col: int, digit: int) -> bool:
    return mini_rules().is_valid_placement(grid, row, col, digit)


def validate_mini_board(grid: Grid) -> bool:
    return validate_board(grid, mini_rules())


def validate_mini_solution(grid: Grid) -> ValidationResult:
    return validate_solution(grid, mini_rules())


def get_valid_mini_numbers(grid: Grid, row: int, col: int) -> List[int]:
    return mini_rules().candidates(grid, row, col)


# X-Sudoku
def is_valid_x_sudoku_placement(grid: Grid, row: int, col: int, digit: int) -> bool:
    return x_sudoku_rules().is_valid_placement(grid, row, col, digit)


def validate_x_sudoku_board(grid: Grid) -> bool:
    return validate_board(grid, x_sudoku_rules())


def validate_x_sudoku_solution(grid: Grid) -> ValidationResult:
    return validate_solution(grid, x_sudoku_rules())


def get_valid_x_sudoku_numbers(grid: Grid, row: int, col: int) -> List[int]:
    return x_sudoku_rules().candidates(grid, row, col)


# Anti-Knight
def get_anti_knight_violations(grid: Grid) -> List[dict]:
    """Each offending pair once, reported from its earlier cell."""
    violations = []
    size = len(grid)
    for row in range(size):
        for col in range(size):
            num = grid[row][col]
            if num == 0:
                continue
            for (r, c) in get_knight_cells(row, col, size):
                if grid[r][c] == num and (row, col) < (r, c):
                    violations.append({"row": row, "col": col, "num": num,
                                       "conflict_row": r, "conflict_col": c})
    return violations


def count_anti_knight_conflicts(grid: Grid) -> int:
    """Number of filled cells that see their own digit a knight's move away."""
    size = len(grid)
    count = 0
    for row in range(size):
        for col in range(size):
            num = grid[row][col]
            if num and any(grid[r][c] == num for (r, c) in get_knight_cells(row, col, size)):
                count += 1
    return count


def is_valid_anti_knight_placement(grid: Grid, row: int, col: int, digit: int) -> bool:
    return anti_knight_rules().is_valid_placement(grid, row, col, digit)


def validate_anti_knight_board(grid: Grid) -> bool:
    return validate_board(grid, anti_knight_rules())


def validate_anti_knight_solution(grid: Grid) -> ValidationResult:
    return validate_solution(grid, anti_knight_rules())


def get_valid_anti_knight_numbers(grid: Grid, row: int, col: int) -> List[int]:
    return anti_knight_rules().candidates(grid, row, col)


# Hyper
def is_valid_hyper_placement(grid: Grid, row: int, col: int, digit: int) -> bool:
    return hyper_rules().is_valid_placement(grid, row, col, digit)


def validate_hyper_sudoku_board(grid: Grid) -> bool:
    return validate_board(grid, hyper_rules())


def validate_hyper_sudoku_solution(grid: Grid) -> ValidationResult:
    return validate_solution(grid, hyper_rules())


def get_valid_hyper_numbers(grid: Grid, row: int, col: int) -> List[int]:
    return hyper_rules().candidates(grid, row, col)


# Killer
def is_valid_killer_placement(grid: Grid, cages, row: int, col: int, digit: int) -> bool:
    return KillerRules(cages).is_valid_placement(grid, row, col, digit)


def validate_killer_sudoku_board(grid: Grid, cages) -> bool:
    return validate_board(grid, KillerRules(cages))


def validate_killer_sudoku_solution(grid: Grid, cages) -> ValidationResult:
    return validate_solution(grid, KillerRules(cages))


def get_valid_killer_numbers(grid: Grid, cages, row: int, col: int) -> List[int]:
    return KillerRules(cages).candidates(grid, row, col)


# Thermo
def is_valid_thermo_placement(grid: Grid, thermometers, row: int, col: int, digit: int) -> bool:
    return ThermoRules(thermometers).is_valid_placement(grid, row, col, digit)


def validate_thermo_board(grid: Grid, thermometers) -> bool:
    return validate_board(grid, ThermoRules(thermometers))


def validate_thermo_solution(grid: Grid, thermometers) -> ValidationResult:
    return validate_solution(grid, ThermoRules(thermometers))


def get_valid_thermo_numbers(grid: Grid, thermometers, row: int, col: int) -> List[int]:
    return ThermoRules(thermometers).candidates(grid, row, col)


# Consecutive
def is_valid_consecutive_placement(grid: Grid, markers, row: int, col: int, digit: int) -> bool:
    return ConsecutiveRules(markers).is_valid_placement(grid, row, col, digit)


def validate_consecutive_board(grid: Grid, markers) -> bool:
    return validate_board(grid, ConsecutiveRules(markers))


def validate_consecutive_solution(grid: Grid, markers) -> ValidationResult:
    return validate_solution(grid, ConsecutiveRules(markers))


def get_valid_consecutive_numbers(grid: Grid, markers, row: int, col: int) -> List[int]:
    return ConsecutiveRules(markers).candidates(grid, row, col)


# Jigsaw
def is_valid_jigsaw_placement(grid: Grid, regions: RegionMap, row: int, col: int, digit: int) -> bool:
    return JigsawRules(regions).is_valid_placement(grid, row, col, digit)


def validate_jigsaw_board(grid: Grid, regions: RegionMap) -> bool:
    return validate_board(grid, JigsawRules(regions))


def validate_jigsaw_solution(grid: Grid, regions: RegionMap) -> ValidationResult:
    return validate_solution(grid, JigsawRules(regions))


def get_valid_jigsaw_numbers(grid: Grid, regions: RegionMap, row: int, col: int) -> List[int]:
    return JigsawRules(regions).candidates(grid, row, col)


# -----------------------------------------------------------------------------
# Structure validators (run before carving; invalid structure blocks the puzzle)
# -----------------------------------------------------------------------------
def _in_bounds(row, col, size: int = 9) -> bool:
    return isinstance(row, int) and isinstance(col, int) and 0 <= row < size and 0 <= col < size


def _adjacent(a: Cell, b: Cell) -> bool:
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def validate_cage_structure(cages) -> ValidationResult:
    """
    Cages must have cells, a positive sum reachable by that many distinct
    digits, stay on the board, never share a cell, and cover all 81 cells.
    """
    errors: List[str] = []
    all_cells = set()

    for i, cage in enumerate(coerce_cages(cages)):
        if not cage.cells:
            errors.append(f"Cage {i} has no cells")
            continue
        if not cage.sum or cage.sum < 1:
            errors.append(f"Cage {i} has invalid sum: {cage.sum}")

        for (row, col) in cage.cells:
            if not _in_bounds(row, col):
                errors.append(f"Cage {i} has out-of-bounds cell: ({row}, {col})")
            if (row, col) in all_cells:
                errors.append(f"Cell ({row}, {col}) appears in multiple cages")
            all_cells.add((row, col))

        n = len(cage.cells)
        min_sum = n * (n + 1) // 2        # 1 + 2 + ... + n
        max_sum = n * (19 - n) // 2       # 9 + 8 + ... + (10 - n)
        if cage.sum < min_sum:
            errors.append(f"Cage {i} sum {cage.sum} is too small for {n} cells (min: {min_sum})")
        if cage.sum > max_sum:
            errors.append(f"Cage {i} sum {cage.sum} is too large for {n} cells (max: {max_sum})")

    if len(all_cells) != 81:
        errors.append(f"Only {len(all_cells)} cells covered by cages (expected 81)")

    return ValidationResult.from_errors(errors)


def validate_thermometer_structure(thermometers) -> ValidationResult:
    """At least 2 cells each, on the board, each step orthogonally adjacent."""
    errors: List[str] = []
    try:
        thermos = coerce_thermometers(thermometers)
    except (TypeError, ValueError, KeyError) as e:
        return ValidationResult.from_errors([f"Malformed thermometer list: {e}"])

    for t, thermo in enumerate(thermos):
        if len(thermo.cells) < 2:
            errors.append(f"Thermometer {t} has fewer than 2 cells")
        for (row, col) in thermo.cells:
            if not _in_bounds(row, col):
                errors.append(f"Thermometer {t} has out-of-bounds cell: ({row}, {col})")
        for a, b in zip(thermo.cells, thermo.cells[1:]):
            if not _adjacent(a, b):
                errors.append(f"Thermometer {t} cells {a} and {b} are not adjacent")
    return ValidationResult.from_errors(errors)


def validate_marker_format(markers) -> ValidationResult:
    """Every marker joins two orthogonally adjacent on-board cells."""
    errors: List[str] = []
    try:
        marks = coerce_markers(markers)
    except (TypeError, ValueError, KeyError) as e:
        return ValidationResult.from_errors([f"Malformed marker list: {e}"])

    for i, m in enumerate(marks):
        if not (_in_bounds(m.row1, m.col1) and _in_bounds(m.row2, m.col2)):
            errors.append(f"Marker {i} has out-of-bounds cell: {m.to_dict()}")
            continue
        if not _adjacent((m.row1, m.col1), (m.row2, m.col2)):
            errors.append(f"Marker {i} does not join orthogonally adjacent cells: {m.to_dict()}")
    return ValidationResult.from_errors(errors)


def is_region_connected(regions: RegionMap, region_id: int) -> bool:
    """Flood fill from the first cell of the region must reach all 9 cells."""
    cells = get_region_cells(regions, region_id)
    if not cells:
        return False
    size = len(regions)
    seen = {cells[0]}
    queue = [cells[0]]
    while queue:
        row, col = queue.pop(0)
        for (r, c) in orthogonal_neighbors(row, col, size):
            if (r, c) not in seen and regions[r][c] == region_id:
                seen.add((r, c))
                queue.append((r, c))
    return len(seen) == 9


def validate_regions(regions: RegionMap) -> bool:
    """9x9 map, ids 0-8, each id on exactly 9 cells forming one connected piece."""
    if len(regions) != 9 or any(len(row) != 9 for row in regions):
        return False
    counts = [0] * 9
    for row in regions:
        for rid in row:
            if not isinstance(rid, int) or not 0 <= rid <= 8:
                return False
            counts[rid] += 1
    if any(n != 9 for n in counts):
        return False
    return all(is_region_connected(regions, rid) for rid in range(9))
