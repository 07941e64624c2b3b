import matplotlib

matplotlib.use("Agg")

import pytest
from docx import Document

from covidash.report import ReportConfig, generate_docx_report, series_ticks
from covidash.session import DashboardSession


def test_report_written(dataset, geo, tmp_path):
    session = DashboardSession(dataset=dataset, geo=geo)
    session.select_country("Alpha")
    session.set_compare("Beta")
    out = tmp_path / "out" / "report.docx"
    path = generate_docx_report(session, str(out), config=ReportConfig(command_log=["country Alpha"]))
    assert out.exists()
    text = "\n".join(p.text for p in Document(path).paragraphs)
    assert "Selected date: 2021-01-02" in text
    assert "Alpha Overview" in text
    assert "country Alpha" in text


def test_report_requires_dataset(tmp_path):
    with pytest.raises(ValueError):
        generate_docx_report(DashboardSession(), str(tmp_path / "r.docx"))


def test_series_ticks():
    rows = [{"date": f"2021-01-{d:02d}"} for d in range(1, 21)]
    ticks = series_ticks(rows, max_ticks=4)
    assert ticks[0] == "2021-01-01"
    assert len(ticks) == 4
    assert series_ticks([]) == []
