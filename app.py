import datetime
import re
from pathlib import Path

import streamlit as st


def load_css(path: str | Path) -> None:
    css_path = Path(path)
    css = css_path.read_text(encoding="utf-8")
    st.markdown(f"<style>{css}</style>", unsafe_allow_html=True)


# ---- preview helper: scale an SVG to a target pixel width (keeps aspect) ----

def _scale_svg_for_preview(svg_text: str, target_width_px: int) -> tuple[str, int]:
    """
    Returns (scaled_svg_text, new_height_px).
    Only used for UI preview; original SVGs stay full size for ZIP/PNG/PDF.
    """
    m = re.search(r'viewBox="0\s+0\s+([\d.]+)\s+([\d.]+)"', svg_text)
    if not m:
        return svg_text, 600  # fallback
    vw, vh = float(m.group(1)), float(m.group(2))

    scale = max(0.05, float(target_width_px) / max(1.0, vw))
    new_h = max(50, int(round(vh * scale)))

    # rewrite width/height only on the <svg ...> tag
    s = re.sub(r'(<svg\b[^>]*\bwidth=")[^"]+(")', rf'\g<1>{int(target_width_px)}\g<2>', svg_text, count=1)
    s = re.sub(r'(<svg\b[^>]*\bheight=")[^"]+(")', rf'\g<1>{new_h}\g<2>', s, count=1)
    if 'preserveAspectRatio' not in s[:400]:
        s = re.sub(r'<svg\b', '<svg preserveAspectRatio="xMidYMid meet"', s, count=1)
    return s, new_h


def _parse_seed(text: str) -> int | None:
    """Blank -> None (daily seed). Digits -> int. Anything else -> None + warning."""
    text = (text or "").strip()
    if not text:
        return None
    if text.lstrip("-").isdigit():
        return int(text)
    st.warning(f"Seed '{text}' is not a whole number; using today's daily seed instead.")
    return None


VARIANT_LABELS = {
    "Classic": "classic",
    "X-Sudoku": "x-sudoku",
    "Anti-Knight": "anti-knight",
    "Killer": "killer-sudoku",
    "Hyper": "hyper-sudoku",
    "Consecutive": "consecutive-sudoku",
    "Thermo": "thermo-sudoku",
    "Jigsaw": "jigsaw-sudoku",
    "Mini 6x6": "mini",
}


st.set_page_config(page_title="Sudoku Variant Generator", layout="wide")
# If styles.css is next to app.py:
load_css(Path(__file__).with_name("styles.css"))
st.title("Sudoku Variant Generator")


# --- Controls in the sidebar (clean + compact) ---
with st.sidebar:
    tab_create, tab_settings = st.tabs(["Create Puzzles", "Settings"])

    # ---------------------------
    # TAB 1: Create Puzzles
    # ---------------------------
    with tab_create:
        variant_label = st.selectbox("Variant", list(VARIANT_LABELS))
        variant = VARIANT_LABELS[variant_label]

        r1c1, r1c2 = st.columns(2)
        with r1c1:
            difficulty = st.selectbox("Difficulty", ["easy", "medium", "hard"], index=0)
        with r1c2:
            n_puzzles = st.number_input("# puzzles", 1, 50, 4, format="%d")

        seed_text = st.text_input("Seed (blank = today's daily seed)", "")

        custom_clues = st.checkbox("Custom clue count", value=False)
        max_cells = 36 if variant == "mini" else 81
        clue_count = None
        if custom_clues:
            clue_count = int(st.number_input("Clues", 0, max_cells, max_cells // 3, format="%d"))

        go = st.button("Generate", type="primary", use_container_width=True)

    # ---------------------------
    # TAB 2: Settings
    # ---------------------------
    with tab_settings:
        st.caption("Output formats")
        make_json = st.checkbox("JSON records", value=True)
        make_csv = st.checkbox("CSV table", value=True)
        make_svg = st.checkbox("SVG sheets", value=True)
        make_png = st.checkbox("Also make PNG", value=False)
        make_pdf = st.checkbox("Also make PDF", value=False)
        make_pptx = st.checkbox("Also make PPTX (simple insert)", value=False)
        show_caption = st.checkbox("Caption under each grid", value=True)

        st.caption("Preview")
        size_label = st.select_slider("Preview size", options=["Small", "Medium", "Large"], value="Medium")
        PREVIEW_W = {"Small": 360, "Medium": 480, "Large": 640}[size_label]


if go:
    # --- Import inside the button, so errors show on page ---
    try:
        import sudoku_engine as eng
        import variant_generators as gen
    except Exception as e:
        st.error("Failed to import the puzzle engine")
        st.exception(e)
        st.stop()

    try:
        import svg_renderer as svg
        import puzzle_export as export
    except Exception as e:
        st.error("Failed to import svg_renderer.py / puzzle_export.py")
        st.exception(e)
        st.stop()

    log_lines: list[str] = []
    eng.set_logger(log_lines.append)

    base_seed = _parse_seed(seed_text)
    if base_seed is None:
        today = datetime.date.today().isoformat()
        base_seed = gen.daily_seed(today, variant)
        st.caption(f"Daily seed for {today}: {base_seed}")

    results = []
    progress = st.progress(0.0, text="Generating...")
    for idx in range(int(n_puzzles)):
        spec = gen.PuzzleSpec(
            variant=variant,
            difficulty=difficulty,
            seed=base_seed + idx,
            clue_count=clue_count,
        )
        try:
            results.append(gen.generate_one_puzzle(spec))
        except eng.GenerationError as e:
            st.warning(f"Puzzle #{idx + 1} (seed {spec.seed}) skipped: {e}")
        except eng.PuzzleIntegrityError as e:
            st.error("Generated puzzle broke its own rules")
            st.exception(e)
            st.stop()
        progress.progress((idx + 1) / int(n_puzzles), text=f"Generated {idx + 1} of {int(n_puzzles)}")

    if not results:
        st.error("No puzzles could be generated. Try another seed.")
        st.stop()

    look = svg.Appearance(show_caption=show_caption)
    sheets = svg.render_sheets(results, look) if (make_svg or make_png or make_pdf or make_pptx) else []
    first = results[0]

    # --- Previews (tabs) ---
    tab_puz, tab_sol, tab_txt = st.tabs(["Preview - Puzzle", "Preview - Solution", "Preview - Text"])

    with tab_puz:
        svgp, hp = _scale_svg_for_preview(svg.render_puzzle_svg(first, look), PREVIEW_W)
        st.components.v1.html(svgp, height=hp + 6, scrolling=False)

    with tab_sol:
        svgs, hs = _scale_svg_for_preview(svg.render_solution_svg(first, look), PREVIEW_W)
        st.components.v1.html(svgs, height=hs + 6, scrolling=False)

    with tab_txt:
        c1, c2 = st.columns(2)
        with c1:
            st.code(eng.render_preview_ascii(first.puzzle), language=None)
        with c2:
            st.code(eng.render_preview_ascii(first.solution), language=None)

    st.dataframe(gen.results_summary(results), use_container_width=True, hide_index=True)

    with st.expander("Log", expanded=False):
        st.code("\n".join(log_lines) or "(empty)", language=None)

    # --- ZIP outputs ---
    try:
        data = export.build_zip(
            results,
            include_json=make_json,
            include_csv=make_csv,
            sheets=sheets,
            include_svg=make_svg,
            make_png=make_png,
            make_pdf=make_pdf,
            make_pptx=make_pptx,
        )
    except Exception as e:
        st.error("Failed to package outputs")
        st.exception(e)
        st.stop()

    st.download_button("Download ZIP", data=data, file_name=f"{variant}_puzzles.zip", mime="application/zip")
