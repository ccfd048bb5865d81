import xml.etree.ElementTree as ET

import pytest

import sudoku_engine
from svg_renderer import Appearance, render_puzzle_svg, render_sheets, render_solution_svg, save_svg
from variant_generators import PuzzleResult
from variant_rules import Cage, ConsecutiveMarker, Thermometer

SVG_NS = "{http://www.w3.org/2000/svg}"


def pattern_solution():
    return [[(r * 3 + r // 3 + c) % 9 + 1 for c in range(9)] for r in range(9)]


def make_result(variant="classic", **structure):
    solution = pattern_solution()
    puzzle = [row[:] for row in solution]
    for r in range(9):
        for c in range(9):
            if (r + c) % 2:
                puzzle[r][c] = 0
    return PuzzleResult(variant, "easy", 42, puzzle, solution, **structure)


def _texts(svg):
    root = ET.fromstring(svg)
    return [el.text for el in root.iter(SVG_NS + "text")]


@pytest.fixture(autouse=True)
def quiet_logger():
    lines = []
    sudoku_engine.set_logger(lines.append)
    yield lines
    sudoku_engine.set_logger(None)


def test_puzzle_sheet_is_well_formed_and_shows_givens_only():
    res = make_result()
    svg = render_puzzle_svg(res, Appearance())
    assert svg.startswith("<svg")
    digits = _texts(svg)
    assert len(digits) == res.clue_count


def test_solution_sheet_fills_every_cell():
    res = make_result()
    app = Appearance(solution_font_color="#123456")
    svg = render_solution_svg(res, app)
    assert len(_texts(svg)) == 81
    assert 'fill="#123456"' in svg


def test_full_puzzle_has_no_solution_group():
    res = make_result()
    res.puzzle = [row[:] for row in res.solution]
    svg = render_solution_svg(res, Appearance(solution_font_color="#123456"))
    assert "#123456" not in svg


def test_killer_overlay_draws_dashed_cages_and_sums():
    cages = [Cage(cells=[(0, 0), (0, 1)], sum=3), Cage(cells=[(8, 8)], sum=9)]
    res = make_result("killer-sudoku", cages=cages)
    svg = render_puzzle_svg(res, Appearance(cage_line_color="#654321"))
    assert "stroke-dasharray" in svg
    root = ET.fromstring(svg)
    sum_group = [g for g in root.iter(SVG_NS + "g") if g.get("fill") == "#654321"][0]
    assert [t.text for t in sum_group.iter(SVG_NS + "text")] == ["3", "9"]


def test_thermo_overlay_has_bulb_and_stem():
    thermos = [Thermometer(cells=[(0, 0), (0, 1), (0, 2)])]
    svg = render_puzzle_svg(make_result("thermo-sudoku", thermometers=thermos), Appearance())
    root = ET.fromstring(svg)
    assert len(list(root.iter(SVG_NS + "circle"))) == 1
    assert len(list(root.iter(SVG_NS + "polyline"))) == 1


def test_x_sudoku_draws_both_diagonals():
    plain = render_puzzle_svg(make_result(), Appearance(diagonal_color="#ABCDEF"))
    x = render_puzzle_svg(make_result("x-sudoku"), Appearance(diagonal_color="#ABCDEF"))
    assert "#ABCDEF" not in plain
    assert x.count('stroke="#ABCDEF"') == 2


def test_hyper_windows_are_filled():
    svg = render_puzzle_svg(make_result("hyper-sudoku", hyper_regions=True), Appearance(hyper_fill_color="#EEEEEE"))
    assert svg.count('fill="#EEEEEE"') == 4


def test_consecutive_bars_one_per_marker():
    markers = [ConsecutiveMarker(0, 0, 0, 1), ConsecutiveMarker(3, 3, 4, 3)]
    app = Appearance(marker_color="#FF0000")
    svg = render_puzzle_svg(make_result("consecutive-sudoku", consecutive_markers=markers), app)
    root = ET.fromstring(svg)
    group = [g for g in root.iter(SVG_NS + "g") if g.get("stroke") == "#FF0000"][0]
    assert len(list(group)) == 2


def test_jigsaw_regions_change_borders():
    rows = [[r] * 9 for r in range(9)]
    boxes = render_puzzle_svg(make_result(), Appearance())
    jigsaw = render_puzzle_svg(make_result("jigsaw-sudoku", regions=rows), Appearance())
    assert boxes != jigsaw


def test_mini_grid_is_smaller():
    solution = [[(r * 3 + r // 2 + c) % 6 + 1 for c in range(6)] for r in range(6)]
    res = PuzzleResult("mini", "easy", 1, [row[:] for row in solution], solution)
    svg = render_puzzle_svg(res, Appearance())
    assert len(_texts(svg)) == 36


def test_caption_and_border():
    app = Appearance(show_caption=True, add_border=True, border_color="#00FF00")
    svg = render_puzzle_svg(make_result("killer-sudoku", cages=[]), app)
    assert "killer-sudoku - easy - seed 42" in svg
    assert 'stroke="#00FF00"' in svg


def test_render_sheets_names(quiet_logger):
    sheets = render_sheets([make_result(), make_result("x-sudoku")], Appearance())
    assert [name for name, _ in sheets] == [
        "puzzle_001.svg", "solution_001.svg", "puzzle_002.svg", "solution_002.svg",
    ]
    assert "render: 4 sheets" in quiet_logger


def test_save_svg(tmp_path):
    target = tmp_path / "p.svg"
    save_svg("<svg/>", str(target))
    assert target.read_text(encoding="utf-8") == "<svg/>"
