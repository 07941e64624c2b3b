"""
covidash package
================

Aggregation layer of a COVID-19 dashboard: it turns the flat country/date
time series into map snapshots, KPIs, chart series and insights.

- The CLI entry point is in `covidash/cli.py`.
- The aggregation engine is in `covidash/engine.py`.
- Dataset and map loading is in `covidash/loader.py`.
"""

__version__ = '0.1.0'
