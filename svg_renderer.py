from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from sudoku_engine import _log
from variant_generators import PuzzleResult
from variant_rules import HYPER_REGIONS


@dataclass
class Appearance:
    """
    Visual settings used by the SVG renderer.
    Keep this in sync with your UI fields.
    """
    # Grid
    cell_bg_color: str = "#FFFFFF"
    cell_line_color: str = "#000000"
    cell_line_thickness: float = 1.0
    box_line_thickness: float = 3.0   # box / jigsaw region borders

    # Digits
    grid_font_family: str = "Arial"
    grid_font_size: int = 24
    grid_font_bold: bool = False
    grid_font_color: str = "#000000"
    # Solution sheet: digits the player fills in
    solution_font_color: str = "#2F6FD0"

    # Variant overlays
    diagonal_color: str = "#B0B0B0"       # X-Sudoku
    hyper_fill_color: str = "#DDE7F5"      # Hyper windows
    cage_line_color: str = "#555555"       # Killer
    cage_sum_font_size: int = 10
    thermo_color: str = "#C8C8C8"          # Thermo bulb + stem
    marker_color: str = "#000000"          # Consecutive bars

    # Border
    add_border: bool = False
    border_thickness: float = 2.0
    border_color: str = "#000000"
    # Distance of border rectangle to the grid (px)
    border_distance: float = 2.0

    # Optional caption under the grid ("killer-sudoku - easy - seed 42")
    show_caption: bool = False
    caption_font_size: int = 14


# -----------------------------------------------------------------------------
# Tiny helper to build safe SVG text (no external lib, very basic)
# -----------------------------------------------------------------------------
def _esc(s: str) -> str:
    return (
        str(s).replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _box_dims(size: int) -> Tuple[int, int]:
    """(box_rows, box_cols) for the board size."""
    return (2, 3) if size == 6 else (3, 3)


def _region_ids(result: PuzzleResult) -> List[List[int]]:
    """Region id per cell: jigsaw map if present, else the geometric boxes."""
    if result.regions is not None:
        return result.regions
    n = result.grid_size
    br, bc = _box_dims(n)
    per_row = n // bc
    return [[(r // br) * per_row + (c // bc) for c in range(n)] for r in range(n)]


def _caption(result: PuzzleResult) -> str:
    return f"{result.variant} - {result.difficulty} - seed {result.seed}"


# -----------------------------------------------------------------------------
# Overlays (each returns a list of SVG lines)
# -----------------------------------------------------------------------------
def _hyper_overlay(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    if not result.hyper_regions:
        return []
    out = []
    for h in HYPER_REGIONS:
        x = pad + h.start_col * cell
        y = pad + h.start_row * cell
        out.append(f'<rect x="{x}" y="{y}" width="{3 * cell}" height="{3 * cell}" '
                   f'fill="{app.hyper_fill_color}" stroke="none" />')
    return out


def _thermo_overlay(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    if not result.thermometers:
        return []
    out = []
    stem_w = cell * 0.3
    bulb_r = cell * 0.36

    def _center(rc):
        r, c = rc
        return pad + c * cell + cell / 2, pad + r * cell + cell / 2

    for thermo in result.thermometers:
        pts = [_center(rc) for rc in thermo.cells]
        path = " ".join(f"{x:.1f},{y:.1f}" for (x, y) in pts)
        out.append(f'<polyline points="{path}" fill="none" stroke="{app.thermo_color}" '
                   f'stroke-width="{stem_w:.1f}" stroke-linecap="round" stroke-linejoin="round" />')
        bx, by = pts[0]
        out.append(f'<circle cx="{bx:.1f}" cy="{by:.1f}" r="{bulb_r:.1f}" fill="{app.thermo_color}" />')
    return out


def _diagonal_overlay(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    if result.variant != "x-sudoku":
        return []
    n = result.grid_size
    end = pad + n * cell
    return [
        f'<line x1="{pad}" y1="{pad}" x2="{end}" y2="{end}" stroke="{app.diagonal_color}" stroke-width="1.5" />',
        f'<line x1="{end}" y1="{pad}" x2="{pad}" y2="{end}" stroke="{app.diagonal_color}" stroke-width="1.5" />',
    ]


def _cage_overlay(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    """Dashed outline inset into each cage, sum in its top-left cell."""
    if not result.cages:
        return []
    inset = max(2, int(cell * 0.08))
    out = [f'<g stroke="{app.cage_line_color}" stroke-width="1" stroke-dasharray="3,2" fill="none">']
    sums = []
    for cage in result.cages:
        members = set(cage.cells)
        for (r, c) in cage.cells:
            x0, y0 = pad + c * cell, pad + r * cell
            x1, y1 = x0 + cell, y0 + cell
            if (r - 1, c) not in members:
                out.append(f'<line x1="{x0 + inset}" y1="{y0 + inset}" x2="{x1 - inset}" y2="{y0 + inset}" />')
            if (r + 1, c) not in members:
                out.append(f'<line x1="{x0 + inset}" y1="{y1 - inset}" x2="{x1 - inset}" y2="{y1 - inset}" />')
            if (r, c - 1) not in members:
                out.append(f'<line x1="{x0 + inset}" y1="{y0 + inset}" x2="{x0 + inset}" y2="{y1 - inset}" />')
            if (r, c + 1) not in members:
                out.append(f'<line x1="{x1 - inset}" y1="{y0 + inset}" x2="{x1 - inset}" y2="{y1 - inset}" />')
        top_r, top_c = min(cage.cells)
        sums.append((top_r, top_c, cage.sum))
    out.append('</g>')

    fs = app.cage_sum_font_size
    out.append(f'<g font-family="{_esc(app.grid_font_family)}" font-size="{fs}" fill="{app.cage_line_color}">')
    for (r, c, total) in sums:
        # white patch so the dashes do not run through the number
        tx = pad + c * cell + inset + 1
        ty = pad + r * cell + inset + fs
        out.append(f'<rect x="{tx - 1}" y="{ty - fs}" width="{fs * 0.65 * len(str(total)) + 2:.1f}" '
                   f'height="{fs + 1}" fill="{app.cell_bg_color}" />')
        out.append(f'<text x="{tx}" y="{ty - 1}" text-anchor="start">{total}</text>')
    out.append('</g>')
    return out


def _marker_overlay(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    """A short bar across the shared edge of each marked pair."""
    if not result.consecutive_markers:
        return []
    long_side = cell * 0.4
    short_side = max(3.0, cell * 0.12)
    out = [f'<g fill="{app.cell_bg_color}" stroke="{app.marker_color}" stroke-width="1.2">']
    for m in result.consecutive_markers:
        if m.row1 == m.row2:
            # left/right neighbours: vertical bar on the shared vertical edge
            x = pad + max(m.col1, m.col2) * cell
            y = pad + m.row1 * cell + cell / 2
            out.append(f'<rect x="{x - short_side / 2:.1f}" y="{y - long_side / 2:.1f}" '
                       f'width="{short_side:.1f}" height="{long_side:.1f}" />')
        else:
            x = pad + m.col1 * cell + cell / 2
            y = pad + max(m.row1, m.row2) * cell
            out.append(f'<rect x="{x - long_side / 2:.1f}" y="{y - short_side / 2:.1f}" '
                       f'width="{long_side:.1f}" height="{short_side:.1f}" />')
    out.append('</g>')
    return out


def _region_borders(result: PuzzleResult, app: Appearance, pad: int, cell: int) -> List[str]:
    """Thick segments wherever two neighbouring cells sit in different boxes / regions."""
    ids = _region_ids(result)
    n = result.grid_size
    stroke = app.cell_line_color
    sw = app.box_line_thickness
    out = [f'<g stroke="{stroke}" stroke-width="{sw}" stroke-linecap="square">']
    for r in range(n):
        for c in range(n):
            x, y = pad + c * cell, pad + r * cell
            if c + 1 < n and ids[r][c] != ids[r][c + 1]:
                out.append(f'<line x1="{x + cell}" y1="{y}" x2="{x + cell}" y2="{y + cell}" />')
            if r + 1 < n and ids[r][c] != ids[r + 1][c]:
                out.append(f'<line x1="{x}" y1="{y + cell}" x2="{x + cell}" y2="{y + cell}" />')
    size = n * cell
    out.append(f'<rect x="{pad}" y="{pad}" width="{size}" height="{size}" fill="none" />')
    out.append('</g>')
    return out


# -----------------------------------------------------------------------------
# Core renderers
# -----------------------------------------------------------------------------
def _render(result: PuzzleResult, appearance: Appearance, with_solution: bool) -> str:
    n = result.grid_size

    # Size math: cell becomes font_size * 1.6, with some padding
    cell = max(12, int(appearance.grid_font_size * 1.6))
    pad = int(cell * 0.4)
    grid_px = n * cell
    caption_h = int(appearance.caption_font_size * 1.6) if appearance.show_caption else 0

    total_w = grid_px + pad * 2
    total_h = grid_px + pad * 2 + caption_h

    out = []
    out.append(
        f'<svg xmlns="http://www.w3.org/2000/svg" '
        f'width="{total_w}" height="{total_h}" '
        f'viewBox="0 0 {total_w} {total_h}">'
    )

    # Optional border (around GRID, offset by border_distance)
    if appearance.add_border:
        d = float(appearance.border_distance or 0.0)
        out.append(
            f'<rect x="{pad - d}" y="{pad - d}" width="{grid_px + 2 * d}" height="{grid_px + 2 * d}" '
            f'stroke="{appearance.border_color}" stroke-width="{appearance.border_thickness}" fill="none" />'
        )

    # Grid background, then fills that sit under the lines
    out.append(
        f'<rect x="{pad}" y="{pad}" width="{grid_px}" height="{grid_px}" '
        f'fill="{appearance.cell_bg_color}" stroke="none" />'
    )
    out.extend(_hyper_overlay(result, appearance, pad, cell))
    out.extend(_thermo_overlay(result, appearance, pad, cell))
    out.extend(_diagonal_overlay(result, appearance, pad, cell))

    # Cell lines
    stroke = appearance.cell_line_color
    sw = appearance.cell_line_thickness
    for i in range(n + 1):
        p = pad + i * cell
        out.append(f'<line x1="{p}" y1="{pad}" x2="{p}" y2="{pad + grid_px}" stroke="{stroke}" stroke-width="{sw}" />')
        out.append(f'<line x1="{pad}" y1="{p}" x2="{pad + grid_px}" y2="{p}" stroke="{stroke}" stroke-width="{sw}" />')

    out.extend(_region_borders(result, appearance, pad, cell))
    out.extend(_cage_overlay(result, appearance, pad, cell))
    out.extend(_marker_overlay(result, appearance, pad, cell))

    # Digits
    font_weight = "bold" if appearance.grid_font_bold else "normal"
    txt_dy = int(appearance.grid_font_size * 0.35)
    givens: List[str] = []
    filled: List[str] = []
    for r in range(n):
        for c in range(n):
            x = pad + c * cell + cell // 2
            y = pad + r * cell + cell // 2 + txt_dy
            if result.puzzle[r][c]:
                givens.append(f'<text x="{x}" y="{y}" text-anchor="middle">{result.puzzle[r][c]}</text>')
            elif with_solution:
                filled.append(f'<text x="{x}" y="{y}" text-anchor="middle">{result.solution[r][c]}</text>')

    out.append(
        f'<g font-family="{_esc(appearance.grid_font_family)}" font-size="{appearance.grid_font_size}" '
        f'font-weight="{font_weight}" fill="{appearance.grid_font_color}">'
    )
    out.extend(givens)
    out.append('</g>')
    if filled:
        out.append(
            f'<g font-family="{_esc(appearance.grid_font_family)}" font-size="{appearance.grid_font_size}" '
            f'font-weight="normal" fill="{appearance.solution_font_color}">'
        )
        out.extend(filled)
        out.append('</g>')

    if appearance.show_caption:
        cy = pad + grid_px + int(appearance.caption_font_size * 1.4)
        out.append(
            f'<text x="{total_w // 2}" y="{cy}" text-anchor="middle" '
            f'font-family="{_esc(appearance.grid_font_family)}" font-size="{appearance.caption_font_size}" '
            f'fill="{appearance.grid_font_color}">{_esc(_caption(result))}</text>'
        )

    out.append('</svg>')
    return "\n".join(out)


def render_puzzle_svg(result: PuzzleResult, appearance: Appearance) -> str:
    """
    Draw the grid, the variant overlay and the givens.
    The goal is clarity, not fancy style.
    """
    return _render(result, appearance, with_solution=False)


def render_solution_svg(result: PuzzleResult, appearance: Appearance) -> str:
    """Same sheet with the missing digits filled in (solution_font_color)."""
    return _render(result, appearance, with_solution=True)


def render_sheets(results: List[PuzzleResult], appearance: Appearance) -> List[Tuple[str, str]]:
    """(file name, svg) pairs: puzzle_001.svg, solution_001.svg, ..."""
    sheets: List[Tuple[str, str]] = []
    for idx, res in enumerate(results, 1):
        sheets.append((f"puzzle_{idx:03d}.svg", render_puzzle_svg(res, appearance)))
        sheets.append((f"solution_{idx:03d}.svg", render_solution_svg(res, appearance)))
    _log(f"render: {len(sheets)} sheets")
    return sheets


def save_svg(svg_text: str, path: str) -> None:
    """Write an SVG string to disk."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(svg_text)
