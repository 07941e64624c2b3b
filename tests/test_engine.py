import pytest

from covidash import engine
from covidash.engine import EngineConfig
from covidash.loader import build_dataset
from covidash.models import DuplicateRecordError, SelectionState

from .conftest import D1, D2, D3, rec


def test_aggregate_up_to_takes_latest_cumulative_value(dataset):
    assert engine.aggregate_up_to(dataset, D2, "total_cases")["World"] == 150
    assert engine.aggregate_up_to(dataset, D1, "total_cases")["World"] == 100


def test_aggregate_up_to_cumulative_uses_max_date_record(dataset):
    snap = engine.aggregate_up_to(dataset, D3, "total_cases")
    # Alpha's newest record has no total_cases, so it is absent rather than summed
    assert "Alpha" not in snap
    assert snap["Beta"] == 35
    assert snap["Gamma"] == 0


def test_aggregate_up_to_sums_flow_metric(dataset):
    snap = engine.aggregate_up_to(dataset, D3, "new_cases_smoothed")
    assert snap["Alpha"] == 30
    assert snap["Beta"] == 10
    assert snap["World"] == 60
    assert snap["Gamma"] == 0


def test_country_without_vaccinations_is_absent(dataset):
    assert "Beta" not in engine.aggregate_up_to(dataset, D2, "total_vaccinations")
    assert "Beta" not in engine.snapshot_latest(dataset, D2, "total_vaccinations")


def test_snapshot_latest_skips_nulls_and_zeros(dataset):
    snap = engine.snapshot_latest(dataset, D3, "total_cases")
    assert snap == {"World": 150, "Alpha": 60, "Beta": 35}


def test_snapshot_exact_requires_record_on_date(dataset):
    assert engine.snapshot_exact(dataset, D1, "total_cases") == {"World": 100, "Alpha": 40, "Beta": 30}
    assert engine.snapshot_exact(dataset, D3, "total_cases") == {}


def test_metric_snapshot_dispatches_on_mode_and_policy(dataset):
    single = SelectionState(selected_date=D3, selected_metric="total_cases", mode="single")
    assert engine.metric_snapshot(dataset, single)["Alpha"] == 60
    assert engine.metric_snapshot(dataset, single, EngineConfig(snapshot_policy="exact")) == {}

    upto = SelectionState(selected_date=D2, selected_metric="new_cases_smoothed", mode="upto")
    assert engine.metric_snapshot(dataset, upto)["Alpha"] == 30

    with pytest.raises(ValueError):
        engine.metric_snapshot(dataset, SelectionState(selected_date=D2, mode="weekly"))


def test_unknown_metric_is_not_an_error(dataset):
    assert engine.snapshot_latest(dataset, D2, "no_such_metric") == {}
    assert engine.aggregate_up_to(dataset, D2, "no_such_metric")["Alpha"] == 0


def test_invalid_engine_config():
    with pytest.raises(ValueError):
        EngineConfig(snapshot_policy="closest")
    with pytest.raises(ValueError):
        EngineConfig(kpi_strategy="median")


def test_global_stats_uses_world_row(dataset):
    stats = engine.global_stats(dataset, D2)
    assert stats.total_cases == 150
    assert stats.total_deaths == 3
    assert stats.total_vaccinations == 2000
    assert stats.fatality_rate == pytest.approx(2.0)
    assert stats.recovery_rate == pytest.approx(98.0)


def test_global_stats_falls_back_to_summation():
    ds = build_dataset([
        rec("Alpha", D1, total_cases=40, total_deaths=4),
        rec("Alpha", D2, total_cases=60, total_deaths=6, total_vaccinations=10),
        rec("Beta", D1, total_cases=40),
    ])
    stats = engine.global_stats(ds, D2)
    assert stats.total_cases == 100
    assert stats.total_deaths == 6
    assert stats.total_vaccinations == 10
    assert stats.fatality_rate == pytest.approx(6.0)


def test_global_stats_sum_strategy_ignores_world_row(dataset):
    stats = engine.global_stats(dataset, D2, EngineConfig(kpi_strategy="sum"))
    assert stats.total_cases == 95
    assert stats.total_deaths == 1


def test_rates_are_zero_without_cases(dataset):
    stats = engine.make_stats(0, 0, 0)
    assert stats.recovery_rate == 0
    assert stats.fatality_rate == 0
    assert engine.global_stats(dataset, D1.replace(year=2020)).fatality_rate == 0


def test_global_kpi_and_change(dataset):
    sel = SelectionState(selected_date=D2, selected_metric="total_cases")
    snap = engine.metric_snapshot(dataset, sel)
    assert engine.global_kpi(snap) == 95
    assert engine.previous_day_kpi(dataset, sel) == 70
    change = engine.calculate_change(95, 70)
    assert change["increase"] is True
    assert change["value"] == pytest.approx(35.714, rel=1e-3)
    assert engine.calculate_change(10, 0) == {"value": 0.0, "increase": False}


def test_top_countries_excludes_world(dataset):
    snap = engine.snapshot_latest(dataset, D2, "total_cases")
    top = engine.top_countries(snap, limit=2)
    assert top == [{"country": "Alpha", "value": 60}, {"country": "Beta", "value": 35}]


def test_countries_on_date_defaults_to_zero(dataset):
    rows = engine.countries_on_date(dataset, ["Alpha", "Gamma", "Nowhere"], D1, "total_cases")
    assert rows == [
        {"country": "Alpha", "value": 40},
        {"country": "Gamma", "value": 0.0},
        {"country": "Nowhere", "value": 0.0},
    ]


def test_full_and_windowed_series(dataset):
    alpha = engine.country_records(dataset, "Alpha")
    assert engine.full_series(alpha, "total_cases") == [
        {"date": "2021-01-01", "value": 40},
        {"date": "2021-01-02", "value": 60},
    ]
    assert engine.windowed_series(alpha, "total_cases", limit=1) == [{"date": "2021-01-02", "value": 60}]
    gamma = engine.country_records(dataset, "Gamma")
    assert engine.full_series(gamma, "total_cases") == [{"date": "2021-01-02", "value": 0}]
    assert engine.windowed_series(gamma, "total_cases") == []


def test_comparison_series_unions_dates():
    a = [rec("A", D1, new_cases_smoothed=10), rec("A", D2, new_cases_smoothed=20)]
    b = [rec("B", D3, new_cases_smoothed=5), rec("B", D2, new_cases_smoothed=5)]
    rows = engine.comparison_series(a, b, "new_cases_smoothed", "A", "B")
    assert rows == [
        {"date": "2021-01-01", "A": 10, "B": 0.0},
        {"date": "2021-01-02", "A": 20, "B": 5},
        {"date": "2021-01-03", "A": 0.0, "B": 5},
    ]


def test_latest_country_data_composes_fields(dataset):
    prof = engine.latest_country_data(dataset, "Alpha", D3)
    assert prof["location"] == "Alpha"
    assert prof["date"] == D3
    assert prof["total_cases"] == 60
    assert prof["total_vaccinations"] == 5
    assert prof["population"] == 5_000_000
    assert prof["iso_code"] == "ALP"
    assert "total_boosters" not in prof


def test_latest_country_data_empty_when_no_records(dataset):
    assert engine.latest_country_data(dataset, "Alpha", D1.replace(year=2020)) == {}
    assert engine.latest_country_data(dataset, "Nowhere", D3) == {}


def test_breakdowns(dataset):
    alpha = engine.country_records(dataset, "Alpha")
    assert engine.vaccination_breakdown(alpha, D3) == []
    cd = engine.cases_deaths_breakdown(alpha, D2)
    assert [row["value"] for row in cd] == [60, 1]

    vacc = [rec("V", D1, people_vaccinated_per_hundred=70, people_fully_vaccinated_per_hundred=60)]
    row = engine.vaccination_breakdown(vacc, D1)[0]
    assert row["First Dose Only"] == 10
    assert row["Fully Vaccinated"] == 60
    assert row["Unvaccinated"] == 30


def test_default_selection(dataset):
    sel = engine.default_selection(dataset)
    assert sel.selected_date == D2
    assert sel.selected_country == "World"
    assert sel.compare_country == "Alpha"
    assert sel.mode == "single"


def test_duplicate_dates_are_rejected():
    with pytest.raises(DuplicateRecordError):
        build_dataset([rec("Alpha", D1, total_cases=1), rec("Alpha", D1, total_cases=2)])


def test_functions_are_idempotent(dataset):
    sel = SelectionState(selected_date=D3, selected_metric="new_cases_smoothed", mode="upto")
    assert engine.metric_snapshot(dataset, sel) == engine.metric_snapshot(dataset, sel)
    assert engine.global_stats(dataset, D3) == engine.global_stats(dataset, D3)
    assert engine.latest_country_data(dataset, "Alpha", D3) == engine.latest_country_data(dataset, "Alpha", D3)
