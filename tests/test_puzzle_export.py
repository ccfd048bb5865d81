import csv
import io
import json
import zipfile

import pytest

import sudoku_engine
from puzzle_export import CSV_COLUMNS, build_zip, results_to_csv, results_to_json
from variant_generators import PuzzleResult
from variant_rules import Cage


def pattern_solution():
    return [[(r * 3 + r // 3 + c) % 9 + 1 for c in range(9)] for r in range(9)]


def make_result(variant="classic", seed=42, **structure):
    solution = pattern_solution()
    puzzle = [row[:] for row in solution]
    for r in range(9):
        for c in range(5):
            puzzle[r][c] = 0
    return PuzzleResult(variant, "medium", seed, puzzle, solution, **structure)


@pytest.fixture(autouse=True)
def quiet_logger():
    lines = []
    sudoku_engine.set_logger(lines.append)
    yield lines
    sudoku_engine.set_logger(None)


@pytest.fixture
def results():
    row_cages = [Cage(cells=[(r, c) for c in range(9)], sum=45) for r in range(9)]
    return [make_result(), make_result("killer-sudoku", 7, cages=row_cages)]


def test_json_records(results):
    data = json.loads(results_to_json(results))
    assert len(data) == 2
    assert data[0]["variant"] == "classic"
    assert data[0]["puzzle"].startswith("00000")
    assert "cages" not in data[0]
    assert data[1]["cages"][0]["sum"] == 45
    assert data[1]["cages"][0]["cells"][8] == [0, 8]


def test_csv_rows(results):
    rows = list(csv.reader(io.StringIO(results_to_csv(results))))
    assert rows[0] == CSV_COLUMNS
    assert len(rows) == 3
    first = dict(zip(CSV_COLUMNS, rows[1]))
    assert first["index"] == "1"
    assert first["clues"] == "36"
    assert first["quality"] == "84"      # 36 clues vs medium target 28
    assert first["structure"] == ""
    second = dict(zip(CSV_COLUMNS, rows[2]))
    assert json.loads(second["structure"])["cages"][3]["sum"] == 45


def test_zip_contents_without_conversions(results, quiet_logger):
    sheets = [("puzzle_001.svg", "<svg/>"), ("solution_001.svg", "<svg/>")]
    data = build_zip(results, sheets=sheets)
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert sorted(zf.namelist()) == ["puzzle_001.svg", "puzzles.csv", "puzzles.json", "solution_001.svg"]
        assert json.loads(zf.read("puzzles.json"))[1]["seed"] == 7
    assert "export: 2 puzzles, 2 sheets" in quiet_logger


def test_zip_can_leave_things_out(results):
    sheets = [("puzzle_001.svg", "<svg/>")]
    data = build_zip(results, include_json=False, include_csv=True, sheets=sheets, include_svg=False)
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == ["puzzles.csv"]


def test_zip_without_sheets_ignores_conversion_flags(results):
    data = build_zip(results, make_png=True, make_pdf=True, make_pptx=True)
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert sorted(zf.namelist()) == ["puzzles.csv", "puzzles.json"]
