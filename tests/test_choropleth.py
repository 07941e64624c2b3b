import matplotlib
from matplotlib.colors import to_hex

from covidash.choropleth import MISSING_FILL, build_map_view, coverage, fill_color, value_domain


def test_value_domain():
    assert value_domain({}) == (0.0, 1.0)
    assert value_domain({"A": 3.0, "B": 9.0}) == (3.0, 9.0)


def test_fill_color_scale():
    reds = matplotlib.colormaps["Reds"]
    assert fill_color(None, (0, 10)) == MISSING_FILL
    assert fill_color(0, (0, 10)) == to_hex(reds(0.0))
    assert fill_color(10, (0, 10)) == to_hex(reds(1.0))
    assert fill_color(5, (5, 5)) == to_hex(reds(0.5))


def test_build_map_view(geo):
    view = build_map_view(geo, {"Alpha": 10.0, "Beta": 20.0}, "new_cases_smoothed", mode="upto")
    by_name = {f["name"]: f for f in view["features"]}
    assert view["domain"] == (10.0, 20.0)
    assert by_name["Freedonia"]["fill"] == MISSING_FILL
    assert by_name["Freedonia"]["value"] is None
    assert "No data" in by_name["Freedonia"]["tooltip"]
    assert by_name["Beta"]["tooltip"].endswith("(cumulative)")


def test_cumulative_metric_tooltip_has_no_suffix(geo):
    view = build_map_view(geo, {"Alpha": 10.0}, "total_cases", mode="upto")
    assert not view["features"][0]["tooltip"].endswith("(cumulative)")


def test_coverage(geo):
    cov = coverage(geo, ["Alpha", "Beta"])
    assert cov == {"matched": ["Alpha", "Beta"], "unmatched": ["Freedonia"]}
