import pytest

import sudoku_engine
from structure_generators import THERMO_CONFIG
from sudoku_engine import GenerationError, PuzzleIntegrityError, count_solutions
from variant_generators import (
    CLUE_COUNTS,
    DIFFICULTIES,
    JIGSAW_CLUE_TOLERANCE,
    RETRY_SEED_STRIDE,
    VARIANTS,
    PuzzleResult,
    PuzzleSpec,
    _with_retry,
    daily_seed,
    generate_consecutive_sudoku,
    generate_killer_sudoku,
    generate_one_puzzle,
    generate_puzzle,
    quality_score,
    results_summary,
    target_clues,
)
from variant_rules import are_consecutive, is_marked_consecutive, rules_for, validate_regions

SEED = 20240115
ALL_CASES = [(v, d) for v in VARIANTS for d in DIFFICULTIES]


def pattern_solution():
    return [[(r * 3 + r // 3 + c) % 9 + 1 for c in range(9)] for r in range(9)]


def _structure(res: PuzzleResult):
    return res.cages or res.thermometers or res.consecutive_markers or res.regions


@pytest.fixture(autouse=True)
def quiet_logger():
    lines = []
    sudoku_engine.set_logger(lines.append)
    yield lines
    sudoku_engine.set_logger(None)


@pytest.fixture(scope="module")
def generated():
    """Puzzles for SEED, built on first use and shared by the whole module."""
    cache = {}

    def get(variant, difficulty="easy"):
        key = (variant, difficulty)
        if key not in cache:
            cache[key] = generate_puzzle(variant, difficulty, SEED)
        return cache[key]

    return get


# ---- every variant, every difficulty --------------------------------------------
@pytest.mark.parametrize("variant,difficulty", ALL_CASES)
def test_givens_agree_with_solution(generated, variant, difficulty):
    res = generated(variant, difficulty)
    size = res.grid_size
    for r in range(size):
        for c in range(size):
            assert res.puzzle[r][c] in (0, res.solution[r][c])


@pytest.mark.parametrize("variant,difficulty", ALL_CASES)
def test_solution_passes_validator(generated, variant, difficulty):
    res = generated(variant, difficulty)
    checker = rules_for(variant, _structure(res))
    assert checker.solution_errors(res.solution) == []


@pytest.mark.parametrize("variant,difficulty", ALL_CASES)
def test_puzzle_has_unique_solution(generated, variant, difficulty):
    res = generated(variant, difficulty)
    assert count_solutions(res.puzzle, rules_for(variant, _structure(res)), 2) == 1


@pytest.mark.parametrize("variant,difficulty", ALL_CASES)
def test_clue_count_against_target(generated, variant, difficulty):
    res = generated(variant, difficulty)
    target = CLUE_COUNTS[variant][difficulty]
    if variant == "jigsaw-sudoku":
        assert abs(res.clue_count - target) <= JIGSAW_CLUE_TOLERANCE
    else:
        assert res.clue_count >= target


@pytest.mark.parametrize("variant,difficulty", ALL_CASES)
def test_result_metadata(generated, variant, difficulty):
    res = generated(variant, difficulty)
    assert res.variant == variant
    assert res.difficulty == difficulty
    assert res.attempts >= 1
    assert len(res.puzzle_string) == res.grid_size ** 2


# ---- structure invariants ----------------------------------------------------
@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_killer_cages_cover_board_with_correct_sums(generated, difficulty):
    res = generated("killer-sudoku", difficulty)
    cells = [cell for cage in res.cages for cell in cage.cells]
    assert sorted(cells) == [(r, c) for r in range(9) for c in range(9)]
    for cage in res.cages:
        assert cage.sum == sum(res.solution[r][c] for (r, c) in cage.cells)


@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_thermometers_increase_along_solution(generated, difficulty):
    res = generated("thermo-sudoku", difficulty)
    cfg = THERMO_CONFIG[difficulty]
    assert res.thermometers
    for thermo in res.thermometers:
        assert cfg["min_length"] <= len(thermo.cells) <= cfg["max_length"]
        values = [res.solution[r][c] for (r, c) in thermo.cells]
        assert values == sorted(set(values))


@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_consecutive_markers_match_solution_exactly(generated, difficulty):
    res = generated("consecutive-sudoku", difficulty)
    markers = res.consecutive_markers
    for r in range(9):
        for c in range(9):
            for (r2, c2) in ((r, c + 1), (r + 1, c)):
                if r2 > 8 or c2 > 8:
                    continue
                consecutive = are_consecutive(res.solution[r][c], res.solution[r2][c2])
                assert is_marked_consecutive(markers, r, c, r2, c2) == consecutive


@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_jigsaw_regions_valid(generated, difficulty):
    assert validate_regions(generated("jigsaw-sudoku", difficulty).regions)


def test_mini_is_six_by_six(generated):
    res = generated("mini")
    assert res.grid_size == 6
    assert all(len(row) == 6 for row in res.solution)


# ---- determinism and wire form ------------------------------------------------
@pytest.mark.parametrize("variant", VARIANTS)
def test_same_seed_same_puzzle(generated, variant):
    again = generate_puzzle(variant, "medium", SEED)
    first = generated(variant, "medium")
    assert again.solution == first.solution
    assert again.to_dict() == first.to_dict()


def test_different_seed_different_solution(generated):
    other = generate_puzzle("classic", "easy", SEED + 1)
    assert other.solution != generated("classic").solution


def test_to_dict_keys(generated):
    classic = generated("classic").to_dict()
    assert set(classic) == {"puzzle", "solution", "difficulty", "variant", "seed"}

    killer = generated("killer-sudoku").to_dict()
    assert set(killer["cages"][0]) == {"cells", "sum"}

    thermo = generated("thermo-sudoku").to_dict()
    assert all(len(t["cells"]) >= 3 for t in thermo["thermometers"])

    cons = generated("consecutive-sudoku").to_dict()
    assert set(cons["consecutiveMarkers"][0]) == {"row1", "col1", "row2", "col2"}

    hyper = generated("hyper-sudoku").to_dict()
    assert hyper["hyperRegions"][3] == {"startRow": 5, "startCol": 5}

    assert len(generated("jigsaw-sudoku").to_dict()["regions"]) == 9
    assert generated("mini").to_dict()["gridSize"] == 6


def test_custom_clue_count():
    res = generate_puzzle("classic", "easy", 99, clue_count=50)
    assert res.clue_count == 50


def test_killer_and_consecutive_direct_calls():
    killer = generate_killer_sudoku("easy", 7)
    assert killer.attempts == 1
    assert killer.clue_count >= CLUE_COUNTS["killer-sudoku"]["easy"]
    cons = generate_consecutive_sudoku("medium", 7)
    assert cons.consecutive_markers


def test_generate_one_puzzle_logs_seed(quiet_logger):
    res = generate_one_puzzle(PuzzleSpec(variant="x-sudoku", difficulty="easy", seed=3))
    assert res.variant == "x-sudoku"
    assert "seed: 3" in quiet_logger
    assert any(line.startswith("x-sudoku: seed 3") for line in quiet_logger)


# ---- retry wrapper -------------------------------------------------------------
def _fake_result(seed):
    grid = pattern_solution()
    return PuzzleResult("classic", "easy", seed, [row[:] for row in grid], grid)


def test_retry_moves_seed_by_stride(quiet_logger):
    seen = []

    def flaky(difficulty, seed, clue_count=None):
        seen.append(seed)
        if len(seen) < 3:
            raise GenerationError("nope")
        return _fake_result(seed)

    res = _with_retry(flaky, "classic", "easy", 10, 3, RETRY_SEED_STRIDE)
    assert seen == [10, 10 + RETRY_SEED_STRIDE, 10 + 2 * RETRY_SEED_STRIDE]
    assert res.attempts == 3
    assert sum("[retry]" in line for line in quiet_logger) == 2


def test_retry_reraises_last_generation_error():
    calls = []

    def always_fails(difficulty, seed, clue_count=None):
        calls.append(seed)
        raise GenerationError(f"failed at {seed}")

    with pytest.raises(GenerationError, match="failed at 12"):
        _with_retry(always_fails, "jigsaw-sudoku", "easy", 10, 3, 1)
    assert calls == [10, 11, 12]


def test_retry_does_not_swallow_integrity_errors():
    calls = []

    def broken(difficulty, seed, clue_count=None):
        calls.append(seed)
        raise PuzzleIntegrityError("bad givens")

    with pytest.raises(PuzzleIntegrityError):
        _with_retry(broken, "classic", "easy", 1, 3, 1)
    assert calls == [1]


def test_retry_with_no_attempts():
    with pytest.raises(GenerationError, match="after 0 attempts"):
        _with_retry(lambda *a: _fake_result(0), "classic", "easy", 1, 0, 1)


# ---- dispatch and tables -------------------------------------------------------
def test_unknown_variant_raises():
    with pytest.raises(ValueError):
        generate_puzzle("samurai", "easy", 1)


def test_target_clues_unknown_difficulty_is_medium():
    assert target_clues("classic", "impossible") == 28
    assert target_clues("mini", "hard") == 11


# ---- daily seed ----------------------------------------------------------------
def _reference_hash(text):
    h = 0
    for ch in text:
        h = h * 31 + ord(ch)
        h = (h + 2 ** 31) % 2 ** 32 - 2 ** 31
    return abs(h)


def test_daily_seed_small_strings():
    assert daily_seed("", "a") == 97
    assert daily_seed("a", "b") == 3105


@pytest.mark.parametrize("date", ["2024-01-15", "2025-12-31", "1999-07-04"])
def test_daily_seed_matches_int32_hash(date):
    for variant in ("classic", "killer-sudoku", "jigsaw-sudoku"):
        assert daily_seed(date, variant) == _reference_hash(date + variant)
        assert 0 <= daily_seed(date, variant) <= 2 ** 31


def test_daily_seed_changes_with_variant():
    assert daily_seed("2024-01-15", "classic") != daily_seed("2024-01-15", "mini")


# ---- quality -------------------------------------------------------------------
def test_quality_score_on_target_and_off():
    grid = pattern_solution()
    assert quality_score(grid, "medium") == 0   # 81 clues vs 28

    cells = [(r, c) for r in range(9) for c in range(9)]
    for (r, c) in cells[28:]:
        grid[r][c] = 0
    assert quality_score(grid, "medium") == 100
    grid[8][8] = pattern_solution()[8][8]
    assert quality_score(grid, "medium") == 98


def test_quality_score_accepts_strings():
    mini = "1" * 13 + "0" * 23
    assert quality_score(mini, "medium", "mini") == 100
    classic = "1" * 30 + "0" * 51
    assert quality_score(classic, "medium") == 96


def test_results_summary_rows(generated):
    rows = results_summary([generated("classic"), generated("mini")])
    assert [row["#"] for row in rows] == [1, 2]
    assert rows[1]["variant"] == "mini"
    assert rows[0]["clues"] == generated("classic").clue_count
    assert 0 <= rows[0]["quality"] <= 100


def test_anti_knight_solution_seed_42():
    from variant_generators import generate_anti_knight_solution
    from variant_rules import get_knight_cells, validate_classic_solution

    grid = generate_anti_knight_solution(42)
    assert validate_classic_solution(grid).valid
    for r in range(9):
        for c in range(9):
            assert all(grid[kr][kc] != grid[r][c] for (kr, kc) in get_knight_cells(r, c))
