from covidash.insights import compute_trends, format_percent, format_value, generate_insights
from covidash.models import GlobalStats

from .conftest import D2, D3


def test_format_value():
    assert format_value(None) == "No data"
    assert format_value(float("nan")) == "No data"
    assert format_value(950) == "950.0"
    assert format_value(1500) == "1.5K"
    assert format_value(2_500_000) == "2.5M"
    assert format_value(3_000_000_000, 2) == "3.00B"


def test_format_percent():
    assert format_percent(None) == "No data"
    assert format_percent(12.3456) == "12.35%"


def test_rising_trend_and_vaccination(trending_records):
    as_of = trending_records[-1].date
    trends = compute_trends(trending_records, as_of)
    assert trends.case_trend == 5.0
    assert trends.death_trend == 0.0

    insights = generate_insights(trending_records, "Rising", as_of, GlobalStats())
    assert [i.kind for i in insights] == ["overview", "cases_rising", "vaccination"]
    assert insights[0].title == "Rising Overview"
    assert "average daily increase" in insights[1].text
    assert insights[2].text.startswith("40.00%")


def test_declining_trend(trending_records):
    from dataclasses import replace
    reversed_cases = [
        replace(r, new_cases_smoothed=float(12 - i)) for i, r in enumerate(trending_records)
    ]
    as_of = reversed_cases[-1].date
    kinds = [i.kind for i in generate_insights(reversed_cases, "Rising", as_of, GlobalStats())]
    assert "cases_declining" in kinds


def test_short_history_has_no_trend(records):
    alpha = [r for r in records if r.location == "Alpha"]
    insights = generate_insights(alpha, "Alpha", D3, GlobalStats())
    assert [i.kind for i in insights] == ["overview"]
    assert "No data cases" in insights[0].text


def test_world_overview_uses_global_stats(records):
    world = [r for r in records if r.location == "World"]
    stats = GlobalStats(total_cases=2_000_000, total_deaths=40_000)
    insights = generate_insights(world, "World", D2, stats)
    assert insights[0].title == "Global Pandemic Status"
    assert "2.0M" in insights[0].text
    assert "40.0K" in insights[0].text


def test_no_records_no_insights(records):
    assert generate_insights([], "Alpha", D3, GlobalStats()) == []
    assert generate_insights(records, None, D3, GlobalStats()) == []
