from __future__ import annotations

"""
covidash report generator
-------------------------
This module renders the current dashboard view into a DOCX report.

It is a renderer: every number it prints comes from a `DashboardSession`
view-model (snapshot, KPIs, series, insights). Nothing is recomputed here.

Design goals:
- Keep covidash usable without report dependencies installed (lazy imports).
- Choose charts that match the selection: the map is drawn only when the
  GeoJSON is loaded, the comparison only when two countries are selected.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
import os
import tempfile

from .catalog import lookup
from .insights import format_percent, format_value
from .session import DashboardSession


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "COVID-19 Dataset"
    institutional_author: str = "Our World in Data"
    website: str = "https://ourworldindata.org/coronavirus"
    file_name: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "COVID-19 Dashboard Report"
    subtitle: str = "Snapshot of the current dashboard selection"
    dataset_name: str = "OWID COVID-19 time series"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # How many countries to show in the top-countries chart/table
    top_n: int = 10

    # Optional: list of CLI commands used to reach the current selection
    command_log: Optional[List[str]] = None


PROFILE_FIELDS: Sequence[Tuple[str, str]] = (
    ("population", "Population"),
    ("population_density", "Population density (per km²)"),
    ("median_age", "Median age"),
    ("aged_65_older", "Aged 65+ (%)"),
    ("gdp_per_capita", "GDP per capita"),
    ("diabetes_prevalence", "Diabetes prevalence (%)"),
    ("hospital_beds_per_thousand", "Hospital beds per 1,000"),
    ("life_expectancy", "Life expectancy"),
)


def _rings(geometry: Dict[str, Any]) -> List[List[Sequence[float]]]:
    """Exterior rings of a Polygon/MultiPolygon geometry."""
    if not geometry:
        return []
    kind = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if kind == "Polygon":
        return [coords[0]] if coords else []
    if kind == "MultiPolygon":
        return [poly[0] for poly in coords if poly]
    return []


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    session: DashboardSession,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """Generate a DOCX report + charts for the session's current selection."""
    config = config or ReportConfig()

    # Lazy imports: only required when "report" is used.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install with: python -m pip install matplotlib"
        ) from e

    if not session.ready:
        raise ValueError("Dataset is not loaded yet; nothing to report on.")

    state = session.state
    metric = lookup(state.selected_metric)
    as_of = state.selected_date.isoformat() if state.selected_date else "n/a"

    # -----------------------------
    # 1) Collect view-models
    # -----------------------------
    stats = session.global_stats()
    kpi = session.kpi()
    top = session.top(config.top_n)
    series = session.series()
    comparison = session.comparison()
    insights = session.insights()
    profile = session.profile()
    map_view = session.map_view()

    # -----------------------------
    # 2) Create charts
    # -----------------------------
    tmpdir = tempfile.mkdtemp(prefix="covidash_report_")
    chart_paths: List[Tuple[str, str]] = []

    def _save(filename: str) -> str:
        path = os.path.join(tmpdir, filename)
        plt.tight_layout()
        plt.savefig(path, dpi=150)
        plt.close()
        return path

    if map_view and map_view["features"]:
        fig, ax = plt.subplots(figsize=(10, 5))
        for feat, geo_feat in zip(map_view["features"], session.geo.features):
            for ring in _rings(geo_feat.get("geometry")):
                ax.add_patch(Polygon(ring, closed=True, facecolor=feat["fill"], edgecolor="white", linewidth=0.3))
        ax.set_xlim(-180, 180)
        ax.set_ylim(-60, 85)
        ax.set_axis_off()
        lo, hi = map_view["domain"]
        ax.set_title(f"{metric.label} ({format_value(lo)} to {format_value(hi)})")
        chart_paths.append((f"World map: {metric.label}", _save("map.png")))

    if top:
        plt.figure()
        plt.bar([t["country"] for t in top], [t["value"] for t in top], color=metric.color)
        plt.xticks(rotation=45, ha="right")
        plt.title(f"Top {len(top)} countries by {metric.label}")
        chart_paths.append((f"Top countries by {metric.label}", _save("top_countries.png")))

    if series:
        plt.figure()
        plt.plot([p["date"] for p in series], [p["value"] for p in series], color=metric.color)
        plt.xticks(series_ticks(series), rotation=45, ha="right")
        plt.title(f"{metric.label}: {state.selected_country}")
        chart_paths.append((f"{metric.label} over time ({state.selected_country})", _save("series.png")))

    if comparison:
        a, b = state.selected_country, state.compare_country
        xs = [row["date"] for row in comparison]
        plt.figure()
        plt.plot(xs, [row[a] for row in comparison], label=a)
        plt.plot(xs, [row[b] for row in comparison], label=b)
        plt.xticks(series_ticks(comparison), rotation=45, ha="right")
        plt.legend()
        plt.title(f"{metric.label}: {a} vs {b}")
        chart_paths.append((f"Comparison: {a} vs {b}", _save("comparison.png")))

    # -----------------------------
    # 3) Build DOCX report
    # -----------------------------
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(header))
        for i, h in enumerate(header):
            t.rows[0].cells[i].text = h
        for row in rows:
            cells = t.add_row().cells
            for i, v in enumerate(row):
                cells[i].text = v

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    _kv("Selected date", as_of)
    _kv("Metric", metric.label)
    _kv("Mode", "Aggregate up to date" if state.mode == "upto" else "Single date")
    if state.selected_country:
        _kv("Country", state.selected_country)
    if state.compare_country:
        _kv("Compared with", state.compare_country)

    doc.add_heading("Global statistics", level=1)
    _table(["Indicator", "Value"], [
        ("Total cases", format_value(stats.total_cases)),
        ("Total deaths", format_value(stats.total_deaths)),
        ("Total vaccinations", format_value(stats.total_vaccinations)),
        ("Recovery rate", format_percent(stats.recovery_rate)),
        ("Fatality rate", format_percent(stats.fatality_rate)),
    ])
    if kpi:
        change = kpi["change"]
        direction = "up" if change["increase"] else "down"
        doc.add_paragraph(
            f"{metric.label} across countries: {format_value(kpi['value'])} "
            f"({direction} {format_percent(change['value'])} vs previous day)."
        )

    if insights:
        doc.add_heading("Insights", level=1)
        for ins in insights:
            p = doc.add_paragraph(style="List Bullet")
            p.add_run(f"{ins.title}: ").bold = True
            p.add_run(ins.text)

    if top:
        doc.add_heading(f"Top countries by {metric.label}", level=1)
        _table(["Country", metric.label], [(t["country"], format_value(t["value"])) for t in top])

    if profile:
        doc.add_heading(f"{state.selected_country} profile", level=1)
        doc.add_paragraph(f"Most recent record: {profile['date'].isoformat()}")
        _table(["Indicator", "Value"], [
            (label, format_value(profile.get(key))) for key, label in PROFILE_FIELDS
        ])

    if chart_paths:
        doc.add_heading("Visualizations", level=1)
        for title, path in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.5))

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__ as covidash_version
    doc.add_paragraph(f"covidash version: {covidash_version}")
    doc.add_paragraph(f"Report generated at: {datetime.now().isoformat(timespec='seconds')}")
    cit = config.citation
    doc.add_paragraph(f"Source: {cit.institutional_author}, {cit.database_name}. {cit.website}")
    if cit.file_name:
        doc.add_paragraph(f"Dataset file: {cit.file_name}")
    if config.command_log:
        doc.add_paragraph("Commands used (log):")
        for line in config.command_log:
            doc.add_paragraph(line, style="List Bullet")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path


def series_ticks(rows: Sequence[Dict[str, Any]], max_ticks: int = 8) -> List[str]:
    """Evenly spaced date labels so long series stay readable."""
    if not rows:
        return []
    step = max(1, len(rows) // max_ticks)
    return [rows[i]["date"] for i in range(0, len(rows), step)]
