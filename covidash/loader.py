"""
Dataset loader (CSV/XLSX -> Record list, GeoJSON -> GeoData)
============================================================

This module reads the OWID-style COVID-19 export and converts each row into a
`Record` object, and reads the world map GeoJSON.

Key ideas:
- Column names are matched loosely (case/punctuation) because exports vary.
- Conversion helpers (_to_float/_to_str) turn blanks into None, never NaN.
- The two start-up loads are independent; `load_sources` runs them
  concurrently and a failed load leaves that source as None (not ready).
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional, Tuple
import json
import logging
import os
import re
import pandas as pd
from .catalog import CORE_METRICS
from .models import DateRange, Dataset, GeoData, NUMERIC_FIELDS, Record

logger = logging.getLogger(__name__)


def _to_float(x) -> Optional[float]:
    """Convert a cell to float, returning None if missing/invalid."""
    if x is None or pd.isna(x): return None
    try: return float(x)
    except (TypeError, ValueError): return None

def _to_str(x) -> str:
    if x is None or pd.isna(x): return ""
    return str(x).strip()

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise KeyError(f"Missing required column. Tried={names}. Available={cols}")

def _optional_col(df: pd.DataFrame, name: str) -> Optional[str]:
    try:
        return _col(df, name)
    except KeyError:
        return None


def read_frame(path: str) -> pd.DataFrame:
    """Read the raw table. `.xlsx` goes through openpyxl, everything else is CSV."""
    if path.lower().endswith((".xlsx", ".xlsm")):
        df = pd.read_excel(path, engine="openpyxl")
    else:
        df = pd.read_csv(path, low_memory=False)
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df


def records_from_frame(df: pd.DataFrame) -> List[Record]:
    """Convert a raw frame into Records.

    Numeric columns of the Record schema are coerced to float (blank -> None).
    Rows without a location or with an unparseable date are skipped.
    """
    loc_col = _col(df, "location", "country", "Country")
    date_col = _col(df, "date", "Date")
    iso_col = _optional_col(df, "iso_code")
    cont_col = _optional_col(df, "continent")

    numeric_cols: Dict[str, str] = {}
    for name in NUMERIC_FIELDS:
        c = _optional_col(df, name)
        if c is not None:
            numeric_cols[name] = c
    missing = [n for n in NUMERIC_FIELDS if n not in numeric_cols]
    if missing:
        logger.debug("Columns not present in source, defaulting to None: %s", ", ".join(missing))

    # Convert whole columns to plain Python lists once, then walk rows with zip.
    n = len(df)
    locations = [_to_str(x) for x in df[loc_col].tolist()]
    days = [None if pd.isna(ts) else ts.date() for ts in pd.to_datetime(df[date_col], errors="coerce")]
    isos = [_to_str(x) for x in df[iso_col].tolist()] if iso_col else [""] * n
    conts = [_to_str(x) for x in df[cont_col].tolist()] if cont_col else [""] * n
    names = list(numeric_cols)
    columns = [
        [_to_float(x) for x in pd.to_numeric(df[numeric_cols[name]], errors="coerce").tolist()]
        for name in names
    ]

    records: List[Record] = []
    skipped = 0
    for location, day, iso, cont, *values in zip(locations, days, isos, conts, *columns):
        if not location or day is None:
            skipped += 1
            continue
        records.append(Record(
            location=location,
            date=day,
            iso_code=iso,
            continent=cont,
            **dict(zip(names, values)),
        ))
    if skipped:
        logger.warning("Skipped %d rows with an empty location or invalid date", skipped)
    return records


def compute_date_range(records: List[Record]) -> DateRange:
    """Return the min/max date over records whose core metrics are all present."""
    dates: List[date] = [
        r.date for r in records
        if all(r.value(m) is not None for m in CORE_METRICS)
    ]
    if not dates:
        return DateRange()
    return DateRange(min=min(dates), max=max(dates))


def build_dataset(records: List[Record]) -> Dataset:
    return Dataset(records=records, date_range=compute_date_range(records))


def load_dataset(path: str) -> Dataset:
    """Load the time-series file and build the session dataset.

    Raises:
        KeyError: if the location/date columns are missing.
        DuplicateRecordError: if a location has two rows for one date.
    """
    df = read_frame(path)
    dataset = build_dataset(records_from_frame(df))
    logger.info(
        "Loaded %d records for %d locations from %s",
        len(dataset), len(dataset.countries), os.path.basename(path),
    )
    return dataset


def parse_geojson(payload: dict) -> GeoData:
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise ValueError("GeoJSON document must be a FeatureCollection")
    features = payload.get("features") or []
    return GeoData(features=list(features))


def load_geojson(path: str) -> GeoData:
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    geo = parse_geojson(payload)
    logger.info("Loaded %d map features from %s", len(geo.features), os.path.basename(path))
    return geo


def _guarded(fn, path: Optional[str], what: str):
    if not path:
        return None
    try:
        return fn(path)
    except Exception:
        logger.exception("Error loading %s from %s", what, path)
        return None


def load_sources(csv_path: Optional[str], geojson_path: Optional[str]) -> Tuple[Optional[Dataset], Optional[GeoData]]:
    """Load the dataset and the map concurrently.

    Each source resolves independently; a failure is logged and that source
    is returned as None so callers stay in a loading state.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        data_future = pool.submit(_guarded, load_dataset, csv_path, "dataset")
        geo_future = pool.submit(_guarded, load_geojson, geojson_path, "GeoJSON")
        return data_future.result(), geo_future.result()
