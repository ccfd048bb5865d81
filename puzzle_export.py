from __future__ import annotations

import csv
import io
import json
import zipfile
from typing import Iterable, List, Optional, Sequence, Tuple

from sudoku_engine import _log
from variant_generators import PuzzleResult, quality_score


CSV_COLUMNS = ["index", "variant", "difficulty", "seed", "clues", "quality", "puzzle", "solution", "structure"]

Sheet = Tuple[str, str]  # (file name, svg text)


# -----------------------------------------------------------------------------
# Records
# -----------------------------------------------------------------------------
def results_to_json(results: Sequence[PuzzleResult], indent: Optional[int] = 2) -> str:
    """List of puzzle records in the web client's shape."""
    return json.dumps([r.to_dict() for r in results], indent=indent)


def _structure_json(record: dict) -> str:
    extra = {k: v for k, v in record.items()
             if k in ("cages", "thermometers", "consecutiveMarkers", "regions", "hyperRegions", "gridSize")}
    return json.dumps(extra, separators=(",", ":")) if extra else ""


def results_to_csv(results: Sequence[PuzzleResult]) -> str:
    """One row per puzzle; variant structure goes into a compact JSON column."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for i, res in enumerate(results, 1):
        record = res.to_dict()
        writer.writerow([
            i,
            res.variant,
            res.difficulty,
            res.seed,
            res.clue_count,
            quality_score(res, res.difficulty, res.variant),
            record["puzzle"],
            record["solution"],
            _structure_json(record),
        ])
    return buf.getvalue()


# -----------------------------------------------------------------------------
# Sheet conversions (cairosvg / python-pptx are imported on use)
# -----------------------------------------------------------------------------
def _write_conversions(zf: zipfile.ZipFile, sheets: Iterable[Sheet], make_png: bool, make_pdf: bool,
                       pptx_images: Optional[List[bytes]]) -> None:
    from cairosvg import svg2png, svg2pdf

    for name, s in sheets:
        data = s.encode("utf-8")
        if make_png:
            try:
                zf.writestr(name.replace(".svg", ".png"), svg2png(bytestring=data))
            except Exception as e:
                zf.writestr(name.replace(".svg", ".PNG_ERROR.txt"),
                            f"PNG conversion failed for {name}:\n{e}".encode("utf-8"))
        if make_pdf:
            try:
                zf.writestr(name.replace(".svg", ".pdf"), svg2pdf(bytestring=data))
            except Exception as e:
                zf.writestr(name.replace(".svg", ".PDF_ERROR.txt"),
                            f"PDF conversion failed for {name}:\n{e}".encode("utf-8"))
        if pptx_images is not None and name.startswith("puzzle_"):
            try:
                pptx_images.append(svg2png(bytestring=data))
            except Exception as e:
                zf.writestr(name.replace(".svg", ".PPTX_IMAGE_ERROR.txt"),
                            f"PPTX image prep failed for {name}:\n{e}".encode("utf-8"))


def build_pptx(images: Sequence[bytes]) -> bytes:
    """One blank slide per PNG."""
    from pptx import Presentation
    from pptx.util import Inches

    prs = Presentation()
    blank = prs.slide_layouts[6]
    for png in images:
        slide = prs.slides.add_slide(blank)
        slide.shapes.add_picture(io.BytesIO(png), Inches(0.5), Inches(0.5), height=Inches(6.5))
    out = io.BytesIO()
    prs.save(out)
    return out.getvalue()


# -----------------------------------------------------------------------------
# ZIP
# -----------------------------------------------------------------------------
def build_zip(
    results: Sequence[PuzzleResult],
    include_json: bool = True,
    include_csv: bool = True,
    sheets: Optional[Sequence[Sheet]] = None,
    include_svg: bool = True,
    make_png: bool = False,
    make_pdf: bool = False,
    make_pptx: bool = False,
) -> bytes:
    """
    Pack everything the batch tool produced into one archive:
    puzzles.json, puzzles.csv, the SVG sheets and their conversions.
    """
    mem = io.BytesIO()
    with zipfile.ZipFile(mem, "w", zipfile.ZIP_DEFLATED) as zf:
        if include_json:
            zf.writestr("puzzles.json", results_to_json(results))
        if include_csv:
            zf.writestr("puzzles.csv", results_to_csv(results))

        sheets = list(sheets or [])
        if include_svg:
            for name, s in sheets:
                zf.writestr(name, s)

        if sheets and (make_png or make_pdf or make_pptx):
            images: Optional[List[bytes]] = [] if make_pptx else None
            _write_conversions(zf, sheets, make_png, make_pdf, images)
            if images:
                zf.writestr("puzzles.pptx", build_pptx(images))

    _log(f"export: {len(results)} puzzles, {len(sheets)} sheets")
    return mem.getvalue()
