import json

import pytest

from covidash import catalog
from covidash.names import NameReconciler, reconcile


def test_lookup_known_metric():
    m = catalog.lookup("new_cases_smoothed")
    assert m.label == "New Cases (7-day avg)"
    assert m.is_cumulative is False


def test_lookup_unknown_metric_falls_back():
    m = catalog.lookup("hosp_patients")
    assert m.label == "hosp_patients"
    assert m.color == catalog.DEFAULT_COLOR


@pytest.mark.parametrize("metric_id, expected", [
    ("total_cases", True),
    ("total_deaths", True),
    ("total_vaccinations", True),
    ("new_deaths_smoothed", False),
    ("total_cases_per_million", False),
])
def test_is_cumulative(metric_id, expected):
    assert catalog.is_cumulative(metric_id) is expected


def test_reconcile_alias_and_identity():
    assert reconcile("Czech Republic") == "Czechia"
    assert reconcile("USA") == "United States"
    assert reconcile("Freedonia") == "Freedonia"


def test_reconciler_add_and_override():
    r = NameReconciler({"Czech Republic": "Czech Rep."})
    r.add("Freedonia", "Grand Fenwick")
    assert r.reconcile("Czech Republic") == "Czech Rep."
    assert r.reconcile("Freedonia") == "Grand Fenwick"
    # module-level defaults are untouched
    assert reconcile("Czech Republic") == "Czechia"


def test_reconciler_from_json(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text(json.dumps({"Burma": "Myanmar"}), encoding="utf-8")
    r = NameReconciler.from_json(str(path))
    assert r.reconcile("Burma") == "Myanmar"
    assert r.reconcile("USA") == "United States"


def test_reconciler_from_json_rejects_lists(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        NameReconciler.from_json(str(path))
