from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union


# -----------------------------------------------------------------------------
# Simple logger hook
# -----------------------------------------------------------------------------
# app.py can call set_logger(my_ui_logger). If you do nothing, we print().
_LOGGER = None  # type: Optional[callable]


def set_logger(fn) -> None:
    """Allow the UI to inject a logger callback: fn(text: str)."""
    global _LOGGER
    _LOGGER = fn


def _log(msg: str) -> None:
    """Log to UI if available; otherwise print. Keep messages simple."""
    if _LOGGER:
        try:
            _LOGGER(msg)
            return
        except Exception:
            pass
    print(msg)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class GenerationError(RuntimeError):
    """No solution / structure could be built for this seed. Retry with another seed."""


class PuzzleIntegrityError(RuntimeError):
    """A generated puzzle or solution breaks its own rules. This is a bug, not bad luck."""


# -----------------------------------------------------------------------------
# Data shapes used across the engine
# -----------------------------------------------------------------------------
Cell = Tuple[int, int]  # (row, col), 0-based
Grid = List[List[int]]  # 0 = empty


@dataclass(frozen=True)
class GridShape:
    """Board size and box layout. Boxes are box_rows x box_cols."""
    size: int
    box_rows: int
    box_cols: int

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    def cells(self) -> List[Cell]:
        return [(r, c) for r in range(self.size) for c in range(self.size)]

    def box_origin(self, row: int, col: int) -> Cell:
        return (row // self.box_rows) * self.box_rows, (col // self.box_cols) * self.box_cols


STANDARD_SHAPE = GridShape(size=9, box_rows=3, box_cols=3)
MINI_SHAPE = GridShape(size=6, box_rows=2, box_cols=3)


@dataclass
class ValidationResult:
    """Outcome of a diagnostic validator: ok flag plus readable errors."""
    valid: bool
    errors: List[str]

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass
class SearchStats:
    """Counters filled in by the search functions (node limits, tests)."""
    nodes: int = 0


# -----------------------------------------------------------------------------
# Seeded randomness
# -----------------------------------------------------------------------------
class LcgRandom:
    """
    Small linear-congruential generator shared by every randomized step.

    seed = (seed * 9301 + 49297) mod 233280, value = seed / 233280.
    The same seed always gives the same sequence, which is what makes daily
    puzzles reproducible. Pass the instance around; never reseed inside.
    """

    MULTIPLIER = 9301
    INCREMENT = 49297
    MODULUS = 233280

    def __init__(self, seed: int = 0):
        self.state = int(seed)

    def random(self) -> float:
        """Next value in [0, 1)."""
        self.state = (self.state * self.MULTIPLIER + self.INCREMENT) % self.MODULUS
        return self.state / float(self.MODULUS)

    def below(self, n: int) -> int:
        """Integer in [0, n): floor(random() * n)."""
        return int(self.random() * n)

    def choice(self, items: Sequence):
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[self.below(len(items))]

    def shuffle_in_place(self, items: list) -> list:
        """Fisher-Yates from the back, one draw per position."""
        for i in range(len(items) - 1, 0, -1):
            j = self.below(i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def shuffled(self, items: Iterable) -> list:
        """Shuffled copy; the input is left alone."""
        return self.shuffle_in_place(list(items))


def ensure_rng(seed_or_rng: Union[int, LcgRandom]) -> LcgRandom:
    """Accept either a seed or an existing generator (to keep one stream going)."""
    if isinstance(seed_or_rng, LcgRandom):
        return seed_or_rng
    return LcgRandom(seed_or_rng)


# -----------------------------------------------------------------------------
# Grid helpers and serialization
# -----------------------------------------------------------------------------
def empty_grid(size: int = 9) -> Grid:
    return [[0 for _ in range(size)] for _ in range(size)]


def copy_grid(grid: Grid) -> Grid:
    return [row[:] for row in grid]


def count_filled_cells(grid: Grid) -> int:
    return sum(1 for row in grid for v in row if v != 0)


def grid_to_string(grid: Grid) -> str:
    """Row-major, one digit per cell, '0' for empty."""
    return "".join(str(v) for row in grid for v in row)


def string_to_grid(text: str, size: int = 9) -> Grid:
    """
    Inverse of grid_to_string. Raises ValueError on a wrong length or a
    character that is not a digit.
    """
    if len(text) != size * size:
        raise ValueError(f"expected {size * size} characters, got {len(text)}")
    if not all(ch in "0123456789" for ch in text):
        raise ValueError("grid string may only contain digits 0-9")
    return [[int(text[r * size + c]) for c in range(size)] for r in range(size)]


def render_preview_ascii(grid: Grid) -> str:
    """
    Simple ASCII for quick debugging ('.' for empty cells).
    """
    lines = []
    for row in grid:
        lines.append(" ".join(str(v) if v else "." for v in row))
    return "\n".join(lines)


def orthogonal_neighbors(row: int, col: int, size: int = 9) -> List[Cell]:
    """Up, down, left, right (only the ones inside the board)."""
    out: List[Cell] = []
    if row > 0:
        out.append((row - 1, col))
    if row < size - 1:
        out.append((row + 1, col))
    if col > 0:
        out.append((row, col - 1))
    if col < size - 1:
        out.append((row, col + 1))
    return out


# -----------------------------------------------------------------------------
# Constraint checker (classic rules; variants extend it in variant_rules.py)
# -----------------------------------------------------------------------------
class ConstraintChecker:
    """
    Decides whether a digit may go into a cell.

    A checker is built once per puzzle with its structure (cages, regions, ...)
    and precomputes, for every cell, the units it belongs to (row, column, box,
    then variant units). Subclasses hook in through:
      - box_units():       replace the geometric boxes (jigsaw)
      - extra_units():     extra all-different groups (diagonals, hyper, cages)
      - exclusive_cells(): single cells that may not repeat the digit (knights)
      - linked_cells():    cells tied by a non-uniqueness rule (thermo, consecutive, cage sum)
      - extra_ok():        the non-uniqueness rule itself
    """

    variant = "classic"

    def __init__(self, shape: GridShape = STANDARD_SHAPE):
        self.shape = shape
        self.size = shape.size
        self.digits: Tuple[int, ...] = tuple(range(1, shape.size + 1))
        self.named_units: List[Tuple[str, List[Cell]]] = (
            self.row_units() + self.column_units() + self.box_units() + self.extra_units()
        )

        self._units: Dict[Cell, List[List[Cell]]] = {cell: [] for cell in shape.cells()}
        for _name, cells in self.named_units:
            for cell in cells:
                self._units[cell].append(cells)

        self._exclusive: Dict[Cell, Tuple[Cell, ...]] = {}
        self._peers: Dict[Cell, Tuple[Cell, ...]] = {}
        self._related: Dict[Cell, Tuple[Cell, ...]] = {}
        for cell in shape.cells():
            excl = tuple(self.exclusive_cells(*cell))
            self._exclusive[cell] = excl
            peers = {p for unit in self._units[cell] for p in unit}
            peers.update(excl)
            peers.discard(cell)
            self._peers[cell] = tuple(sorted(peers))
            related = set(peers)
            related.update(self.linked_cells(*cell))
            related.discard(cell)
            self._related[cell] = tuple(sorted(related))

    # ---- unit layout -------------------------------------------------------
    def row_units(self) -> List[Tuple[str, List[Cell]]]:
        return [(f"row {r}", [(r, c) for c in range(self.size)]) for r in range(self.size)]

    def column_units(self) -> List[Tuple[str, List[Cell]]]:
        return [(f"column {c}", [(r, c) for r in range(self.size)]) for c in range(self.size)]

    def box_units(self) -> List[Tuple[str, List[Cell]]]:
        units = []
        br, bc = self.shape.box_rows, self.shape.box_cols
        for top in range(0, self.size, br):
            for left in range(0, self.size, bc):
                cells = [(top + i, left + j) for i in range(br) for j in range(bc)]
                units.append((f"box ({top // br}, {left // bc})", cells))
        return units

    def extra_units(self) -> List[Tuple[str, List[Cell]]]:
        return []

    def exclusive_cells(self, row: int, col: int) -> Iterable[Cell]:
        return ()

    def linked_cells(self, row: int, col: int) -> Iterable[Cell]:
        return ()

    def extra_ok(self, grid: Grid, row: int, col: int, digit: int) -> bool:
        return True

    # ---- queries -----------------------------------------------------------
    def peers(self, row: int, col: int) -> Tuple[Cell, ...]:
        """Cells that may never share the digit of (row, col)."""
        return self._peers[(row, col)]

    def related(self, row: int, col: int) -> Tuple[Cell, ...]:
        """Every cell whose options change when (row, col) is filled."""
        return self._related[(row, col)]

    def is_valid_placement(self, grid: Grid, row: int, col: int, digit: int) -> bool:
        """
        Row, column, box (or region), then variant rules. Only filled cells
        other than (row, col) are looked at, so this also works mid-search.
        """
        me = (row, col)
        for unit in self._units[me]:
            for (r, c) in unit:
                if grid[r][c] == digit and (r, c) != me:
                    return False
        for (r, c) in self._exclusive[me]:
            if grid[r][c] == digit:
                return False
        return self.extra_ok(grid, row, col, digit)

    def candidates(self, grid: Grid, row: int, col: int) -> List[int]:
        """All digits is_valid_placement would accept, ascending."""
        used = {grid[r][c] for (r, c) in self._peers[(row, col)]}
        return [d for d in self.digits if d not in used and self.extra_ok(grid, row, col, d)]

    def has_candidate(self, grid: Grid, row: int, col: int) -> bool:
        used = {grid[r][c] for (r, c) in self._peers[(row, col)]}
        for d in self.digits:
            if d not in used and self.extra_ok(grid, row, col, d):
                return True
        return False

    def board_is_consistent(self, grid: Grid) -> bool:
        """Every filled cell passes is_valid_placement against the others."""
        for r in range(self.size):
            for c in range(self.size):
                v = grid[r][c]
                if v != 0 and not self.is_valid_placement(grid, r, c, v):
                    return False
        return True

    def solution_errors(self, grid: Grid) -> List[str]:
        """
        Readable list of everything wrong with a supposedly complete grid:
        empty / out-of-range cells, duplicates per unit, then variant rules.
        """
        errors: List[str] = []
        for r in range(self.size):
            for c in range(self.size):
                v = grid[r][c]
                if not 1 <= v <= self.size:
                    errors.append(f"Invalid value at ({r}, {c}): {v}")
        for name, cells in self.named_units:
            seen = set()
            for (r, c) in cells:
                v = grid[r][c]
                if v == 0:
                    continue  # already reported above
                if v in seen:
                    errors.append(f"Duplicate {v} in {name}")
                seen.add(v)
        errors.extend(self.extra_solution_errors(grid))
        return errors

    def extra_solution_errors(self, grid: Grid) -> List[str]:
        return []


class ClassicRules(ConstraintChecker):
    """Plain row / column / box rules."""

    variant = "classic"


# -----------------------------------------------------------------------------
# Search: solution generator, solution counter, carver
# -----------------------------------------------------------------------------
class _NodeBudgetExceeded(Exception):
    pass


def generate_solution(
    checker: ConstraintChecker,
    rng: Union[int, LcgRandom],
    node_limit: Optional[int] = None,
    stats: Optional[SearchStats] = None,
) -> Optional[Grid]:
    """
    Fill an empty board into a complete solution.

    - cells are visited row-major
    - at each cell the digits are shuffled with rng and tried in that order
    - after a placement, every empty related cell must keep at least one
      candidate (forward check); otherwise the digit is undone right away

    Returns None when no solution exists or the optional node_limit is hit.
    """
    _rng = ensure_rng(rng)
    size = checker.size
    grid = empty_grid(size)
    cells = checker.shape.cells()
    nodes = 0

    def _forward_ok(row: int, col: int) -> bool:
        for (r, c) in checker.related(row, col):
            if grid[r][c] == 0 and not checker.has_candidate(grid, r, c):
                return False
        return True

    def _fill(index: int) -> bool:
        nonlocal nodes
        if index == len(cells):
            return True
        nodes += 1
        if node_limit is not None and nodes > node_limit:
            raise _NodeBudgetExceeded()
        row, col = cells[index]
        for digit in _rng.shuffled(checker.digits):
            if not checker.is_valid_placement(grid, row, col, digit):
                continue
            grid[row][col] = digit
            if _forward_ok(row, col) and _fill(index + 1):
                return True
            grid[row][col] = 0
        return False

    try:
        ok = _fill(0)
    except _NodeBudgetExceeded:
        _log(f"solve: gave up on {checker.variant} after {node_limit} nodes")
        ok = False
    finally:
        if stats is not None:
            stats.nodes += nodes
    return grid if ok else None


def count_solutions(
    grid: Grid,
    checker: ConstraintChecker,
    max_solutions: int = 2,
    stats: Optional[SearchStats] = None,
) -> int:
    """
    Count solutions of a partial grid, exact up to max_solutions.

    Exhaustive backtracking that stops the moment the count reaches the cap.
    It branches on the empty cell with the fewest candidates; the count does
    not depend on that order. Conflicting givens count as zero solutions.
    """
    work = copy_grid(grid)
    if not checker.board_is_consistent(work):
        return 0
    size = checker.size
    found = 0

    def _search() -> None:
        nonlocal found
        if found >= max_solutions:
            return
        if stats is not None:
            stats.nodes += 1

        best: Optional[Cell] = None
        best_opts: List[int] = []
        for r in range(size):
            for c in range(size):
                if work[r][c] != 0:
                    continue
                opts = checker.candidates(work, r, c)
                if not opts:
                    return  # dead end
                if best is None or len(opts) < len(best_opts):
                    best, best_opts = (r, c), opts
                    if len(opts) == 1:
                        break
            if best is not None and len(best_opts) == 1:
                break

        if best is None:
            found += 1
            return

        r, c = best
        for digit in best_opts:
            work[r][c] = digit
            _search()
            work[r][c] = 0
            if found >= max_solutions:
                return

    _search()
    return found


def has_unique_solution(grid: Grid, checker: ConstraintChecker) -> bool:
    return count_solutions(grid, checker, 2) == 1


def carve_puzzle(
    solution: Grid,
    checker: ConstraintChecker,
    target_clues: int,
    rng: Union[int, LcgRandom],
) -> Grid:
    """
    Remove digits from a full solution while it keeps exactly one solution.

    Cells are visited in a seeded random order. A removal is kept only if
    the counter (capped at 2) still finds a single solution. Stops as soon
    as cells - target_clues digits are gone; may stop above the target when
    no further cell can be removed.
    """
    _rng = ensure_rng(rng)
    puzzle = copy_grid(solution)
    positions = _rng.shuffled(checker.shape.cells())
    max_remove = checker.shape.cell_count - int(target_clues)
    removed = 0

    for (row, col) in positions:
        if removed >= max_remove:
            break
        value = puzzle[row][col]
        puzzle[row][col] = 0
        if count_solutions(puzzle, checker, 2) != 1:
            puzzle[row][col] = value  # ambiguous or broken: put it back
        else:
            removed += 1

    _log(f"carve: {checker.variant} removed {removed}, clues left {checker.shape.cell_count - removed}")
    return puzzle
