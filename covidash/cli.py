"""
covidash Command Line Interface (CLI)
=====================================

An interactive terminal dashboard you run like:

    python -m covidash.cli --csv owid-covid-data.csv --geojson world.geojson

The REPL stands in for the dashboard's controls: commands change the
selection (date, metric, mode, countries) and print the recomputed views.
The CLI never modifies the data files; it loads them once per session.
"""

from __future__ import annotations
import argparse, csv, json, logging, os, shlex
from typing import Any, Dict, List
from . import catalog
from .choropleth import coverage
from .engine import EngineConfig
from .insights import format_percent, format_value
from .loader import load_sources
from .names import NameReconciler
from .session import DashboardSession

logger = logging.getLogger(__name__)

HELP = """
Commands:
  help
  status                           loaded sources and current selection
  metrics                          list metric ids
  values [prefix]                  list countries
  undo | redo

  date <YYYY-MM-DD>                (example: date 2021-06-30)
  metric <id>                      (example: metric new_cases_smoothed)
  mode single|upto
  country "<Country>"              (example: country "India")
  compare "<Country>"
  click "<Map feature name>"       select via a map name (example: click "USA")

  stats                            global totals and rates
  kpi                              selected metric summed across countries
  top [n]                          most affected countries
  snapshot [n]                     per-country values (first n)
  series [n]                       recent non-zero trend of the selected country
  comparison [n]                   selected vs compare country (last n dates)
  profile                          latest known indicators of the selected country
  insights
  trends                           recent case/death trend of the selected country
  vaccination
  map [n]                          map fills/tooltips (first n features)
  coverage                         map names without a dataset match

  export csv|json "<path>"         current snapshot
  report "<path.docx>"
  quit
"""


def main(argv=None):
    """Entry point for the covidash CLI.

    1) Load dataset and map (concurrently)
    2) Build the session
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(description="COVID-19 dashboard aggregation REPL")
    ap.add_argument("--csv", required=True, help="Path to the OWID COVID-19 CSV (or .xlsx)")
    ap.add_argument("--geojson", help="Path to a world GeoJSON FeatureCollection")
    ap.add_argument("--aliases", help="JSON object of extra map-name -> dataset-name aliases")
    ap.add_argument("--policy", choices=["latest", "exact"], default="latest",
                    help="single-date snapshot policy")
    ap.add_argument("--kpi", choices=["auto", "world", "sum"], default="auto",
                    help="global statistics strategy")
    ap.add_argument("--log-level", default="WARNING", type=str.upper,
                    choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    reconciler = NameReconciler.from_json(args.aliases) if args.aliases else NameReconciler()
    session = DashboardSession(
        config=EngineConfig(snapshot_policy=args.policy, kpi_strategy=args.kpi),
        reconciler=reconciler,
        source_file=os.path.basename(args.csv),
    )

    print("Loading dataset...")
    dataset, geo = load_sources(args.csv, args.geojson)
    if dataset is not None:
        session.attach_dataset(dataset)
        print(f"Loaded {len(dataset)} records for {len(dataset.countries)} locations.")
    else:
        print("Dataset not available (see log). Views will stay empty.")
    if geo is not None:
        session.attach_geo(geo)
    print("Type 'help' for commands.")

    while True:
        try:
            line = input("covidash> ")
        except EOFError:
            break
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        cmd0 = stripped.split()[0].lower()
        if cmd0 in ("date", "metric", "mode", "country", "compare", "click", "undo", "redo"):
            # Keep a lightweight log of selection commands for the report.
            session.command_log.append(stripped)
        try:
            handle(session, stripped)
        except Exception as e:
            logger.debug("Command failed: %s", stripped, exc_info=True)
            print(f"Error: {e}")


def handle(session: DashboardSession, line: str) -> None:
    """Handle one CLI command line."""
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "status":
        _print_status(session)
        return

    if cmd == "metrics":
        for m in catalog.METRICS:
            kind = "cumulative" if m.is_cumulative else "daily"
            print(f"{m.id:<22} {m.label} ({kind})")
        return

    if not session.ready:
        print("Data is still loading (or failed to load). Nothing to show.")
        return

    if cmd == "values":
        prefix = parts[1].lower() if len(parts) >= 2 else ""
        vals = [c for c in session.dataset.countries if c.lower().startswith(prefix)]
        for v in vals[:50]:
            print(v)
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "undo":
        print("Undone." if session.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if session.redo() else "Nothing to redo.")
        return

    if cmd in ("date", "metric", "mode", "country", "compare", "click"):
        if len(parts) < 2:
            print(f"Usage: {cmd} <value>")
            return
        value = " ".join(parts[1:])
        setter = {
            "date": session.set_date,
            "metric": session.set_metric,
            "mode": session.set_mode,
            "country": session.select_country,
            "compare": session.set_compare,
            "click": session.select_from_map,
        }[cmd]
        if setter(value):
            _print_status(session)
        else:
            print(f"Ignored {cmd} {value!r}; selection unchanged.")
        return

    if cmd == "stats":
        s = session.global_stats()
        print(f"Total cases:        {format_value(s.total_cases)}")
        print(f"Total deaths:       {format_value(s.total_deaths)}")
        print(f"Total vaccinations: {format_value(s.total_vaccinations)}")
        print(f"Recovery rate:      {format_percent(s.recovery_rate)}")
        print(f"Fatality rate:      {format_percent(s.fatality_rate)}")
        return

    if cmd == "kpi":
        k = session.kpi()
        change = k["change"]
        arrow = "+" if change["increase"] else "-"
        label = catalog.lookup(k["metric"]).label
        print(f"{label}: {format_value(k['value'])} ({arrow}{format_percent(change['value'])} vs previous day)")
        return

    if cmd == "top":
        n = int(parts[1]) if len(parts) >= 2 else None
        rows = session.top(n)
        if not rows:
            print("No data")
        for i, row in enumerate(rows, 1):
            print(f"{i:>2}. {row['country']:<30} {format_value(row['value'])}")
        return

    if cmd == "snapshot":
        n = int(parts[1]) if len(parts) >= 2 else 20
        snap = session.snapshot()
        for country in sorted(snap)[:n]:
            print(f"{country:<30} {format_value(snap[country])}")
        print(f"({len(snap)} countries with data)")
        return

    if cmd == "series":
        n = int(parts[1]) if len(parts) >= 2 else None
        _print_points(session.recent_series(n))
        return

    if cmd == "comparison":
        n = int(parts[1]) if len(parts) >= 2 else 10
        a, b = session.state.selected_country, session.state.compare_country
        rows = session.comparison()
        if not rows:
            print("No data")
            return
        for row in rows[-n:]:
            print(f"{row['date']}  {a}={format_value(row[a])}  {b}={format_value(row[b])}")
        return

    if cmd == "profile":
        prof = session.profile()
        if not prof:
            print("No data")
            return
        for k, v in prof.items():
            shown = v.isoformat() if k == "date" else (v if isinstance(v, str) else format_value(v, 2))
            print(f"{k:<38} {shown}")
        return

    if cmd == "insights":
        ins = session.insights()
        if not ins:
            print("No data")
        for i in ins:
            print(f"[{i.icon}] {i.title}: {i.text}")
        return

    if cmd == "trends":
        t = session.trends()
        print(f"Cases:  {t.case_trend:+.2f} (last 5 days vs previous 5, smoothed)")
        print(f"Deaths: {t.death_trend:+.2f}")
        return

    if cmd == "vaccination":
        rows = session.vaccination()
        if not rows:
            print("No data")
            return
        for k, v in rows[0].items():
            if k != "name":
                print(f"{k:<18} {format_percent(v)}")
        return

    if cmd == "map":
        if not session.map_ready:
            print("Map is still loading (or failed to load).")
            return
        n = int(parts[1]) if len(parts) >= 2 else 20
        view = session.map_view()
        lo, hi = view["domain"]
        print(f"Legend: {format_value(lo)} .. {format_value(hi)}")
        for feat in view["features"][:n]:
            print(f"{feat['fill']}  {feat['tooltip']}")
        return

    if cmd == "coverage":
        if not session.map_ready:
            print("Map is still loading (or failed to load).")
            return
        cov = coverage(session.geo, session.dataset.countries, session.reconciler)
        print(f"Matched {len(cov['matched'])} map features. Unmatched:")
        for name in cov["unmatched"]:
            print(f"  {name}")
        return

    if cmd == "export":
        # export <csv|json> "<path>"
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        snap = session.snapshot()
        if not snap:
            print("Nothing to export: current snapshot is empty.")
            return
        if fmt == "csv":
            export_csv(snap, out_path, session.state.selected_metric)
        elif fmt == "json":
            export_json(snap, out_path, session.state.selected_metric)
        else:
            print("Unknown export format. Use: csv or json")
            return
        print(f"Exported {fmt.upper()} to {out_path}")
        return

    if cmd == "report":
        from .report import DatasetCitation, generate_docx_report, ReportConfig
        if len(parts) < 2:
            print('Usage: report "out.docx"')
            return
        cfg = ReportConfig(
            citation=DatasetCitation(file_name=session.source_file),
            command_log=session.command_log,
        )
        generate_docx_report(session, parts[1], config=cfg)
        print(f"Report written to {parts[1]}")
        return

    print("Unknown command. Type 'help'.")


def export_csv(snapshot: Dict[str, float], path: str, metric_id: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["location", metric_id])
        for country in sorted(snapshot):
            w.writerow([country, snapshot[country]])


def export_json(snapshot: Dict[str, float], path: str, metric_id: str) -> None:
    payload = [{"location": c, metric_id: snapshot[c]} for c in sorted(snapshot)]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def _print_status(session: DashboardSession) -> None:
    s = session.state
    data = "loaded" if session.ready else "not loaded"
    geo = "loaded" if session.map_ready else "not loaded"
    print(f"Dataset: {data} | Map: {geo}")
    if session.ready:
        r = session.dataset.date_range
        lo = r.min.isoformat() if r.min else "n/a"
        hi = r.max.isoformat() if r.max else "n/a"
        print(f"Date range: {lo} .. {hi}")
    when = s.selected_date.isoformat() if s.selected_date else "n/a"
    print(f"Date={when} | Metric={s.selected_metric} | Mode={s.mode} | "
          f"Country={s.selected_country} | Compare={s.compare_country}")


def _print_points(points: List[Dict[str, Any]]) -> None:
    if not points:
        print("No data")
        return
    for p in points:
        print(f"{p['date']}  {format_value(p['value'])}")


if __name__ == "__main__":
    main()
