from datetime import date, timedelta

import pytest

from covidash.loader import build_dataset
from covidash.models import GeoData, Record

D1 = date(2021, 1, 1)
D2 = date(2021, 1, 2)
D3 = date(2021, 1, 3)


def rec(location, d, **values):
    return Record(location=location, date=d, **values)


@pytest.fixture
def records():
    return [
        rec("World", D1, total_cases=100, total_deaths=2, total_vaccinations=1000,
            new_cases_smoothed=10, new_deaths_smoothed=1),
        rec("World", D2, total_cases=150, total_deaths=3, total_vaccinations=2000,
            new_cases_smoothed=50, new_deaths_smoothed=1),
        rec("Alpha", D1, total_cases=40, total_deaths=1, new_cases_smoothed=10, population=5_000_000,
            iso_code="ALP", continent="Europe"),
        rec("Alpha", D2, total_cases=60, total_deaths=1, new_cases_smoothed=20, total_vaccinations=5),
        rec("Alpha", D3),
        rec("Beta", D2, total_cases=35, new_cases_smoothed=5),
        rec("Beta", D1, total_cases=30, new_cases_smoothed=5),
        rec("Gamma", D2, total_cases=0),
    ]


@pytest.fixture
def dataset(records):
    return build_dataset(records)


@pytest.fixture
def trending_records():
    """Twelve days of steadily rising smoothed cases for one country."""
    start = date(2021, 3, 1)
    return [
        rec("Rising", start + timedelta(days=i), total_cases=1000 + i * 10, total_deaths=5,
            new_cases_smoothed=float(i + 1), new_deaths_smoothed=1.0,
            people_fully_vaccinated_per_hundred=40.0 if i == 11 else None)
        for i in range(12)
    ]


@pytest.fixture
def geo():
    def square(x, y):
        return {"type": "Polygon", "coordinates": [[[x, y], [x + 5, y], [x + 5, y + 5], [x, y + 5], [x, y]]]}

    return GeoData(features=[
        {"type": "Feature", "properties": {"name": "Alpha"}, "geometry": square(0, 0)},
        {"type": "Feature", "properties": {"name": "Beta"}, "geometry": square(10, 0)},
        {"type": "Feature", "properties": {"name": "Freedonia"}, "geometry": square(20, 0)},
    ])
