from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from sudoku_engine import (
    MINI_SHAPE,
    ConstraintChecker,
    GenerationError,
    Grid,
    LcgRandom,
    PuzzleIntegrityError,
    carve_puzzle,
    count_filled_cells,
    generate_solution,
    grid_to_string,
    string_to_grid,
    _log,
)
from variant_rules import (
    HYPER_REGIONS,
    Cage,
    ConsecutiveMarker,
    ConsecutiveRules,
    JigsawRules,
    KillerRules,
    RegionMap,
    Thermometer,
    ThermoRules,
    anti_knight_rules,
    classic_rules,
    hyper_rules,
    mini_rules,
    validate_cage_structure,
    validate_marker_format,
    validate_solution,
    validate_thermometer_structure,
    x_sudoku_rules,
)
from structure_generators import (
    calculate_cage_sums,
    find_all_consecutive_pairs,
    generate_cages,
    generate_jigsaw_regions,
    generate_thermometers,
    require_structure,
)


# -----------------------------------------------------------------------------
# Difficulty tables
# -----------------------------------------------------------------------------
DIFFICULTIES = ("easy", "medium", "hard")

CLUE_COUNTS: Dict[str, Dict[str, int]] = {
    "classic":            {"easy": 42, "medium": 28, "hard": 25},
    "x-sudoku":           {"easy": 41, "medium": 27, "hard": 24},
    "anti-knight":        {"easy": 40, "medium": 32, "hard": 28},
    "killer-sudoku":      {"easy": 25, "medium": 18, "hard": 12},
    "hyper-sudoku":       {"easy": 36, "medium": 30, "hard": 26},
    "consecutive-sudoku": {"easy": 38, "medium": 28, "hard": 25},
    "thermo-sudoku":      {"easy": 36, "medium": 28, "hard": 24},
    "jigsaw-sudoku":      {"easy": 36, "medium": 30, "hard": 26},
    "mini":               {"easy": 19, "medium": 13, "hard": 11},
}

DEFAULT_MAX_ATTEMPTS = 3
RETRY_SEED_STRIDE = 1_000_000

JIGSAW_MAX_ATTEMPTS = 10
JIGSAW_CLUE_TOLERANCE = 3
JIGSAW_NODE_LIMIT = 50_000

# offsets for the independent random streams of one puzzle
CAGE_SEED_OFFSET = 1000
KILLER_CARVE_SEED_OFFSET = 2000
STRUCTURE_SEED_OFFSET = 5000
CARVE_SEED_OFFSET = 10000


def target_clues(variant: str, difficulty: str) -> int:
    """Clue target for a variant; unknown difficulty -> medium."""
    table = CLUE_COUNTS[variant]
    return table.get(difficulty, table["medium"])


# -----------------------------------------------------------------------------
# Data shapes
# -----------------------------------------------------------------------------
@dataclass
class PuzzleSpec:
    """
    Everything needed to generate a single puzzle.
    Keep this explicit and simple so it is easy to build in app.py.
    """
    variant: str = "classic"
    difficulty: str = "medium"
    seed: int = 0
    clue_count: Optional[int] = None   # custom difficulty; None = table value
    max_attempts: Optional[int] = None  # None = variant default


@dataclass
class PuzzleResult:
    """
    The outcome of a generator: givens, solution and the variant's structure.
    Only the fields that belong to the variant are set.
    """
    variant: str
    difficulty: str
    seed: int
    puzzle: Grid
    solution: Grid
    cages: Optional[List[Cage]] = None
    thermometers: Optional[List[Thermometer]] = None
    consecutive_markers: Optional[List[ConsecutiveMarker]] = None
    regions: Optional[RegionMap] = None
    hyper_regions: bool = False
    attempts: int = 1

    @property
    def grid_size(self) -> int:
        return len(self.solution)

    @property
    def clue_count(self) -> int:
        return count_filled_cells(self.puzzle)

    @property
    def puzzle_string(self) -> str:
        return grid_to_string(self.puzzle)

    @property
    def solution_string(self) -> str:
        return grid_to_string(self.solution)

    def to_dict(self) -> dict:
        """Wire shape the web client reads (camelCase structure keys)."""
        out = {
            "puzzle": self.puzzle_string,
            "solution": self.solution_string,
            "difficulty": self.difficulty,
            "variant": self.variant,
            "seed": self.seed,
        }
        if self.cages is not None:
            out["cages"] = [c.to_dict() for c in self.cages]
        if self.thermometers is not None:
            out["thermometers"] = [t.to_dict() for t in self.thermometers]
        if self.consecutive_markers is not None:
            out["consecutiveMarkers"] = [m.to_dict() for m in self.consecutive_markers]
        if self.regions is not None:
            out["regions"] = [row[:] for row in self.regions]
        if self.hyper_regions:
            out["hyperRegions"] = [h.to_dict() for h in HYPER_REGIONS]
        if self.grid_size != 9:
            out["gridSize"] = self.grid_size
        return out


# -----------------------------------------------------------------------------
# Solution helpers (one per variant without a derived structure)
# -----------------------------------------------------------------------------
def _solve_or_fail(checker: ConstraintChecker, rng, node_limit: Optional[int] = None) -> Grid:
    solution = generate_solution(checker, rng, node_limit=node_limit)
    if solution is None:
        raise GenerationError(f"failed to generate {checker.variant} solution")
    return solution


def generate_standard_solution(seed: Union[int, LcgRandom]) -> Optional[Grid]:
    return generate_solution(classic_rules(), seed)


def generate_x_sudoku_solution(seed: Union[int, LcgRandom]) -> Optional[Grid]:
    return generate_solution(x_sudoku_rules(), seed)


def generate_anti_knight_solution(seed: Union[int, LcgRandom]) -> Optional[Grid]:
    return generate_solution(anti_knight_rules(), seed)


def generate_hyper_sudoku_solution(seed: Union[int, LcgRandom]) -> Optional[Grid]:
    return generate_solution(hyper_rules(), seed)


def generate_mini_sudoku_solution(seed: Union[int, LcgRandom]) -> Optional[Grid]:
    return generate_solution(mini_rules(), seed)


def generate_jigsaw_solution(regions: RegionMap, rng: Union[int, LcgRandom],
                             node_limit: Optional[int] = JIGSAW_NODE_LIMIT) -> Optional[Grid]:
    """Irregular regions can paint the search into a corner; the node limit caps that."""
    return generate_solution(JigsawRules(regions), rng, node_limit=node_limit)


# -----------------------------------------------------------------------------
# Final checks (shared)
# -----------------------------------------------------------------------------
def _finalize(
    checker: ConstraintChecker,
    puzzle: Grid,
    solution: Grid,
    difficulty: str,
    seed: int,
    **structure,
) -> PuzzleResult:
    """
    Givens must agree with the solution and with each other, and the
    solution must pass the full validator. Anything else is a bug.
    """
    size = checker.size
    for r in range(size):
        for c in range(size):
            if puzzle[r][c] and puzzle[r][c] != solution[r][c]:
                raise PuzzleIntegrityError(
                    f"{checker.variant}: given {puzzle[r][c]} at ({r}, {c}) differs from solution"
                )
    if not checker.board_is_consistent(puzzle):
        raise PuzzleIntegrityError(f"Generated invalid {checker.variant} puzzle")
    result = validate_solution(solution, checker)
    if not result.valid:
        raise PuzzleIntegrityError(
            f"Generated invalid {checker.variant} solution: " + ", ".join(result.errors)
        )

    out = PuzzleResult(
        variant=checker.variant,
        difficulty=difficulty,
        seed=seed,
        puzzle=puzzle,
        solution=solution,
        **structure,
    )
    _log(f"{checker.variant}: seed {seed}, {difficulty}, {out.clue_count} clues")
    return out


def _clues(variant: str, difficulty: str, clue_count: Optional[int]) -> int:
    return int(clue_count) if clue_count is not None else target_clues(variant, difficulty)


# -----------------------------------------------------------------------------
# Generators: fixed-rule variants
# -----------------------------------------------------------------------------
def generate_classic(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    checker = classic_rules()
    solution = _solve_or_fail(checker, seed)
    puzzle = carve_puzzle(solution, checker, _clues("classic", difficulty, clue_count), seed + 1)
    return _finalize(checker, puzzle, solution, difficulty, seed)


def generate_x_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    checker = x_sudoku_rules()
    solution = _solve_or_fail(checker, seed)
    puzzle = carve_puzzle(solution, checker, _clues("x-sudoku", difficulty, clue_count), seed + 1)
    return _finalize(checker, puzzle, solution, difficulty, seed)


def generate_anti_knight(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    checker = anti_knight_rules()
    solution = _solve_or_fail(checker, seed)
    puzzle = carve_puzzle(solution, checker, _clues("anti-knight", difficulty, clue_count), seed)
    return _finalize(checker, puzzle, solution, difficulty, seed)


def generate_hyper_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    checker = hyper_rules()
    solution = _solve_or_fail(checker, seed)
    puzzle = carve_puzzle(solution, checker, _clues("hyper-sudoku", difficulty, clue_count), seed)
    return _finalize(checker, puzzle, solution, difficulty, seed, hyper_regions=True)


def generate_mini_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    checker = mini_rules()
    solution = _solve_or_fail(checker, seed)
    clues = min(_clues("mini", difficulty, clue_count), MINI_SHAPE.cell_count)
    puzzle = carve_puzzle(solution, checker, clues, seed + 1)
    return _finalize(checker, puzzle, solution, difficulty, seed)


# -----------------------------------------------------------------------------
# Generators: structure derived from a classic solution
# -----------------------------------------------------------------------------
def generate_killer_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    # 1) classic solution
    solution = _solve_or_fail(classic_rules(), seed)

    # 2) cages grown over it, sums read off the solution
    cages = calculate_cage_sums(generate_cages(seed + CAGE_SEED_OFFSET, difficulty, solution), solution)
    check = validate_cage_structure(cages)
    require_structure(check.valid, "cages", check.errors)

    # 3) carve with the cage rules in play
    checker = KillerRules(cages)
    clues = _clues("killer-sudoku", difficulty, clue_count)
    puzzle = carve_puzzle(solution, checker, clues, seed + KILLER_CARVE_SEED_OFFSET)
    return _finalize(checker, puzzle, solution, difficulty, seed, cages=cages)


def generate_thermo_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    # 1) classic solution
    solution = _solve_or_fail(classic_rules(), seed)

    # 2) thermometers walked over it
    thermometers = generate_thermometers(solution, difficulty, seed + STRUCTURE_SEED_OFFSET)
    check = validate_thermometer_structure(thermometers)
    require_structure(check.valid, "thermometers", check.errors)

    # 3) carve
    checker = ThermoRules(thermometers)
    clues = _clues("thermo-sudoku", difficulty, clue_count)
    puzzle = carve_puzzle(solution, checker, clues, seed + CARVE_SEED_OFFSET)
    return _finalize(checker, puzzle, solution, difficulty, seed, thermometers=thermometers)


def generate_consecutive_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    # 1) classic solution
    solution = _solve_or_fail(classic_rules(), seed)

    # 2) mark every consecutive edge; an unmarked edge means "not consecutive"
    markers = find_all_consecutive_pairs(solution)
    check = validate_marker_format(markers)
    require_structure(check.valid, "consecutive markers", check.errors)

    # 3) carve
    checker = ConsecutiveRules(markers)
    clues = _clues("consecutive-sudoku", difficulty, clue_count)
    puzzle = carve_puzzle(solution, checker, clues, seed + CARVE_SEED_OFFSET)
    return _finalize(checker, puzzle, solution, difficulty, seed, consecutive_markers=markers)


# -----------------------------------------------------------------------------
# Generators: jigsaw (regions first, solution fitted to them)
# -----------------------------------------------------------------------------
def generate_jigsaw_sudoku(difficulty: str, seed: int, clue_count: Optional[int] = None) -> PuzzleResult:
    """
    Regions come from `seed`; solution and carving share one stream seeded
    with `seed` as well. A carve that lands more than JIGSAW_CLUE_TOLERANCE
    clues away from the target counts as a failed attempt.
    """
    regions = generate_jigsaw_regions(seed)
    checker = JigsawRules(regions)
    rng = LcgRandom(seed)

    solution = generate_jigsaw_solution(regions, rng)
    if solution is None:
        raise GenerationError("failed to generate jigsaw-sudoku solution")

    clues = _clues("jigsaw-sudoku", difficulty, clue_count)
    puzzle = carve_puzzle(solution, checker, clues, rng)
    got = count_filled_cells(puzzle)
    if abs(got - clues) > JIGSAW_CLUE_TOLERANCE:
        raise GenerationError(f"jigsaw-sudoku carve stopped at {got} clues (target {clues})")
    return _finalize(checker, puzzle, solution, difficulty, seed, regions=regions)


# -----------------------------------------------------------------------------
# Retry wrappers
# -----------------------------------------------------------------------------
GeneratorFn = Callable[..., PuzzleResult]


def _with_retry(
    fn: GeneratorFn,
    variant: str,
    difficulty: str,
    seed: int,
    max_attempts: int,
    stride: int,
    clue_count: Optional[int] = None,
) -> PuzzleResult:
    """
    Try seed, seed + stride, seed + 2 * stride, ... Only GenerationError is
    retried; the last one is re-raised.
    """
    last_error: Optional[GenerationError] = None
    for attempt in range(max_attempts):
        try:
            result = fn(difficulty, seed + attempt * stride, clue_count)
        except GenerationError as e:
            last_error = e
            _log(f"[retry] {variant} attempt {attempt + 1} failed: {e}")
            continue
        result.attempts = attempt + 1
        return result
    if last_error is not None:
        raise last_error
    raise GenerationError(f"Failed to generate {variant} after {max_attempts} attempts")


def generate_classic_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_classic, "classic", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_x_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                 clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_x_sudoku, "x-sudoku", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_anti_knight_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                    clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_anti_knight, "anti-knight", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_killer_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                      clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_killer_sudoku, "killer-sudoku", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_hyper_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                     clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_hyper_sudoku, "hyper-sudoku", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_consecutive_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                           clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_consecutive_sudoku, "consecutive-sudoku", difficulty, seed, max_attempts,
                       RETRY_SEED_STRIDE, clue_count)


def generate_thermo_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                      clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_thermo_sudoku, "thermo-sudoku", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


def generate_jigsaw_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = JIGSAW_MAX_ATTEMPTS,
                                      clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_jigsaw_sudoku, "jigsaw-sudoku", difficulty, seed, max_attempts, 1, clue_count)


def generate_mini_sudoku_with_retry(difficulty: str, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                    clue_count: Optional[int] = None) -> PuzzleResult:
    return _with_retry(generate_mini_sudoku, "mini", difficulty, seed, max_attempts, RETRY_SEED_STRIDE, clue_count)


# -----------------------------------------------------------------------------
# High-level API
# -----------------------------------------------------------------------------
VARIANT_GENERATORS: Dict[str, GeneratorFn] = {
    "classic": generate_classic_with_retry,
    "x-sudoku": generate_x_sudoku_with_retry,
    "anti-knight": generate_anti_knight_with_retry,
    "killer-sudoku": generate_killer_sudoku_with_retry,
    "hyper-sudoku": generate_hyper_sudoku_with_retry,
    "consecutive-sudoku": generate_consecutive_sudoku_with_retry,
    "thermo-sudoku": generate_thermo_sudoku_with_retry,
    "jigsaw-sudoku": generate_jigsaw_sudoku_with_retry,
    "mini": generate_mini_sudoku_with_retry,
}

VARIANTS = tuple(VARIANT_GENERATORS)


def generate_puzzle(
    variant: str,
    difficulty: str = "medium",
    seed: int = 0,
    clue_count: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> PuzzleResult:
    """Dispatch by variant id (with retries)."""
    try:
        fn = VARIANT_GENERATORS[variant]
    except KeyError:
        raise ValueError(f"unknown variant: {variant!r}") from None
    if max_attempts is None:
        return fn(difficulty, seed, clue_count=clue_count)
    return fn(difficulty, seed, max_attempts=max_attempts, clue_count=clue_count)


def generate_one_puzzle(spec: PuzzleSpec) -> PuzzleResult:
    """Build one puzzle from a PuzzleSpec (what app.py calls per item)."""
    _log(f"seed: {spec.seed}")
    return generate_puzzle(
        spec.variant,
        spec.difficulty,
        int(spec.seed),
        clue_count=spec.clue_count,
        max_attempts=spec.max_attempts,
    )


# -----------------------------------------------------------------------------
# Daily seed and quality score
# -----------------------------------------------------------------------------
def daily_seed(date_text: str, variant: str) -> int:
    """
    Stable seed for "today's puzzle": the web client's 31-multiplier string
    hash over date_text + variant, in signed 32-bit, absolute value.
    """
    h = 0
    for ch in date_text + variant:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def quality_score(puzzle: Union[str, Grid, PuzzleResult], difficulty: str, variant: str = "classic") -> int:
    """100 for a puzzle on its clue target, minus 2 per clue off, clamped to 0..100."""
    if isinstance(puzzle, PuzzleResult):
        clues = puzzle.clue_count
    elif isinstance(puzzle, str):
        size = 6 if len(puzzle) == MINI_SHAPE.cell_count else 9
        clues = count_filled_cells(string_to_grid(puzzle, size))
    else:
        clues = count_filled_cells(puzzle)
    score = 100 - 2 * abs(clues - target_clues(variant, difficulty))
    return max(0, min(100, score))


def results_summary(results: List[PuzzleResult]) -> List[dict]:
    """Small per-puzzle table for the UI."""
    rows = []
    for i, res in enumerate(results, 1):
        rows.append({
            "#": i,
            "variant": res.variant,
            "difficulty": res.difficulty,
            "seed": res.seed,
            "clues": res.clue_count,
            "attempts": res.attempts,
            "quality": quality_score(res, res.difficulty, res.variant),
        })
    return rows
