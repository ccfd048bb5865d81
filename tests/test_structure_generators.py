import pytest

from sudoku_engine import LcgRandom, set_logger
from structure_generators import (
    CAGE_SIZE_PREFERENCES,
    FALLBACK_REGIONS,
    THERMO_CONFIG,
    calculate_cage_sums,
    find_all_consecutive_pairs,
    generate_cages,
    generate_jigsaw_regions,
    generate_thermometers,
    hyper_regions,
    require_structure,
    select_consecutive_markers,
)
from sudoku_engine import GenerationError, orthogonal_neighbors
from variant_generators import generate_standard_solution
from variant_rules import are_consecutive, validate_cage_structure, validate_regions


@pytest.fixture(autouse=True)
def quiet_logger():
    lines = []
    set_logger(lines.append)
    yield lines
    set_logger(None)


@pytest.fixture(scope="module")
def solution():
    return generate_standard_solution(2024)


def _connected(cells):
    cells = set(cells)
    start = next(iter(cells))
    seen, stack = {start}, [start]
    while stack:
        r, c = stack.pop()
        for nb in orthogonal_neighbors(r, c):
            if nb in cells and nb not in seen:
                seen.add(nb)
                stack.append(nb)
    return seen == cells


# ---- jigsaw ------------------------------------------------------------------
@pytest.mark.parametrize("seed", [1, 42, 777])
def test_jigsaw_regions_are_valid(seed):
    regions = generate_jigsaw_regions(seed)
    assert validate_regions(regions)


def test_jigsaw_regions_deterministic():
    assert generate_jigsaw_regions(99) == generate_jigsaw_regions(LcgRandom(99))


def test_jigsaw_falls_back_to_boxes(quiet_logger):
    regions = generate_jigsaw_regions(5, max_attempts=0)
    assert regions == FALLBACK_REGIONS
    assert regions is not FALLBACK_REGIONS
    assert regions[4][4] == 4 and regions[8][0] == 6
    assert any("standard boxes" in line for line in quiet_logger)


# ---- killer cages ------------------------------------------------------------
@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_cages_partition_board(solution, difficulty):
    cages = generate_cages(LcgRandom(1000), difficulty, solution)
    cells = [cell for cage in cages for cell in cage.cells]
    assert len(cells) == 81
    assert len(set(cells)) == 81
    biggest = max(CAGE_SIZE_PREFERENCES[difficulty])
    for cage in cages:
        assert 1 <= len(cage.cells) <= biggest
        assert _connected(cage.cells)
        digits = [solution[r][c] for (r, c) in cage.cells]
        assert len(set(digits)) == len(digits)


def test_cage_sums_from_solution(solution):
    cages = calculate_cage_sums(generate_cages(7, "medium", solution), solution)
    for cage in cages:
        assert cage.sum == sum(solution[r][c] for (r, c) in cage.cells)
    assert sum(cage.sum for cage in cages) == 405
    assert validate_cage_structure(cages).valid


def test_cages_without_solution_still_partition():
    cages = generate_cages(3, "hard")
    assert sorted(cell for cage in cages for cell in cage.cells) == [(r, c) for r in range(9) for c in range(9)]
    assert all(cage.sum == 0 for cage in cages)


def test_cages_unknown_difficulty_uses_medium(solution):
    cages = generate_cages(11, "nightmare", solution)
    assert max(len(c.cells) for c in cages) <= max(CAGE_SIZE_PREFERENCES["medium"])


# ---- thermometers ------------------------------------------------------------
@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_thermometers_follow_rules(solution, difficulty):
    cfg = THERMO_CONFIG[difficulty]
    thermos = generate_thermometers(solution, difficulty, 5000)
    assert len(thermos) <= cfg["count"]
    used = set()
    for thermo in thermos:
        cells = thermo.cells
        assert cfg["min_length"] <= len(cells) <= cfg["max_length"]
        for (r1, c1), (r2, c2) in zip(cells, cells[1:]):
            assert abs(r1 - r2) + abs(c1 - c2) == 1
            assert solution[r1][c1] < solution[r2][c2]
        assert not used.intersection(cells)
        used.update(cells)


def test_thermometers_deterministic(solution):
    a = generate_thermometers(solution, "medium", 5)
    b = generate_thermometers(solution, "medium", 5)
    assert a == b


# ---- consecutive markers -----------------------------------------------------
def test_find_all_consecutive_pairs(solution):
    pairs = find_all_consecutive_pairs(solution)
    expected = 0
    for r in range(9):
        for c in range(9):
            if c + 1 < 9 and are_consecutive(solution[r][c], solution[r][c + 1]):
                expected += 1
            if r + 1 < 9 and are_consecutive(solution[r][c], solution[r + 1][c]):
                expected += 1
    assert len(pairs) == expected
    for m in pairs:
        assert abs(m.row1 - m.row2) + abs(m.col1 - m.col2) == 1
        assert (m.row1, m.col1) < (m.row2, m.col2)
        assert are_consecutive(solution[m.row1][m.col1], solution[m.row2][m.col2])


@pytest.mark.parametrize("difficulty,ratio", [("easy", 0.65), ("medium", 0.45), ("hard", 0.30), ("odd", 0.45)])
def test_select_markers_ratio(solution, difficulty, ratio):
    pairs = find_all_consecutive_pairs(solution)
    picked = select_consecutive_markers(pairs, difficulty, 5000)
    assert len(picked) == int(len(pairs) * ratio)
    assert set(picked) <= set(pairs)
    assert len(set(picked)) == len(picked)


def test_select_markers_empty():
    assert select_consecutive_markers([], "easy", 1) == []


# ---- misc --------------------------------------------------------------------
def test_hyper_regions_wire_form():
    assert hyper_regions() == [
        {"startRow": 1, "startCol": 1},
        {"startRow": 1, "startCol": 5},
        {"startRow": 5, "startCol": 1},
        {"startRow": 5, "startCol": 5},
    ]


def test_require_structure():
    require_structure(True, "cages")
    with pytest.raises(GenerationError, match="cages failed validation: bad"):
        require_structure(False, "cages", ["bad"])
