from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from garment_erp.services import production_reports as reports


def test_hour_labels():
    assert reports.hour_label(8) == "8-9"
    assert reports.hour_label(12) == "12-1"
    assert reports.hour_label(13) == "1-2"
    assert len(reports.HOUR_LABELS) == 12


def test_efficiency():
    assert reports.efficiency(80, 100) == 80
    assert reports.efficiency(2, 3) == 67
    assert reports.efficiency(10, 0) == 0


def test_working_hours():
    assert reports.working_hours("08:00", "17:30") == 9
    assert reports.working_hours(None, "17:00") == 12
    assert reports.working_hours("18:00", "08:00", default=10) == 10
    assert reports.working_hours("08:00", "08:30", default=10) == 10


def test_merge_report_quantities():
    assert reports.merge_report_quantities("ADD", 100, 40, 80, 30) == {"target_qty": 100, "production_qty": 70}
    assert reports.merge_report_quantities("SUBTRACT", 100, 40, 0, 60) == {"target_qty": 100, "production_qty": 0}
    assert reports.merge_report_quantities("REPLACE", 100, 40, 90, 10) == {"target_qty": 90, "production_qty": 10}
    with pytest.raises(ValueError):
        reports.merge_report_quantities("MULTIPLY", 1, 1, 1, 1)


def test_report_amounts():
    amounts = reports.report_amounts(100, 2.5, 20, 120)
    assert amounts["total_amount"] == Decimal("250.00")
    assert amounts["net_amount"] == Decimal("6000.00")


def _cutting(day, line_code, style_no, input_qty, output_qty, defect_qty=0):
    return SimpleNamespace(
        date=day, line=SimpleNamespace(code=line_code), line_id=1,
        style=SimpleNamespace(style_number=style_no), style_id=1,
        input_qty=input_qty, output_qty=output_qty, defect_qty=defect_qty,
    )


def test_summarize_cutting_with_trend():
    today = [
        _cutting(date(2024, 5, 2), "L-01", "ST-1", 100, 90, 2),
        _cutting(date(2024, 5, 2), "L-02", "ST-1", 100, 50),
    ]
    previous = [_cutting(date(2024, 5, 1), "L-01", "ST-1", 100, 100)]
    summary = reports.summarize_cutting(today, previous)
    assert summary["total_input"] == 200
    assert summary["total_output"] == 140
    assert summary["wip"] == 60
    assert summary["efficiency"] == 70
    assert [b["name"] for b in summary["by_line"]] == ["L-01", "L-02"]
    assert summary["trend"] == {"previous_output": 100, "change": 40, "change_percent": 40.0}


def test_cutting_monthly_report():
    entries = [
        _cutting(date(2024, 5, 2), "L-01", "ST-1", 50, 40),
        _cutting(date(2024, 5, 1), "L-01", "ST-1", 100, 100, 1),
        _cutting(date(2024, 5, 2), "L-02", "ST-1", 50, 20),
    ]
    report = reports.cutting_monthly_report(entries)
    assert [d["date"] for d in report["days"]] == ["2024-05-01", "2024-05-02"]
    assert report["days"][1]["input"] == 100
    assert report["days"][1]["wip"] == 40
    assert report["summary"]["working_days"] == 2
    assert report["summary"]["total_defects"] == 1


def test_target_daily_report_places_output_in_hour_slots():
    target = SimpleNamespace(id=1, line_no="L-01", style_no="ST-1", line_target=50,
                             in_time="08:00", out_time="18:00")
    entries = [
        SimpleNamespace(line=SimpleNamespace(code="L-01"), line_id=1,
                        style=SimpleNamespace(style_number="ST-1"), style_id=1,
                        hour_index=8, output_qty=40),
        SimpleNamespace(line=SimpleNamespace(code="L-01"), line_id=1,
                        style=SimpleNamespace(style_number="ST-1"), style_id=1,
                        hour_index=13, output_qty=60),
    ]
    report = reports.build_target_daily_report([target], entries)
    row = report["rows"][0]
    assert row["working_hours"] == 10
    assert row["total_target"] == 500
    assert row["hourly_production"]["8-9"] == 40
    assert row["hourly_production"]["1-2"] == 60
    assert row["total_production"] == 100
    assert report["summary"]["achievement"] == 20.0


def test_target_daily_report_without_targets():
    entries = [SimpleNamespace(line=SimpleNamespace(code="L-02"), line_id=2,
                               style=SimpleNamespace(style_number="ST-9"), style_id=9,
                               hour_index=9, output_qty=24)]
    report = reports.build_target_daily_report([], entries)
    assert report["rows"][0]["line_target"] == 0
    assert report["rows"][0]["average_production_per_hour"] == 2.0


def test_production_balance_overproduced():
    style = SimpleNamespace(id=1, style_number="ST-1", buyer="H&M", po_number=None,
                            status="RUNNING", order_qty=100)
    row = reports.production_balance(style, produced=120, shipped=100)
    assert row["balance"] == -20
    assert row["ready_to_ship"] == 20
    assert row["progress"] == 120.0
    assert reports.production_balance(SimpleNamespace(**{**vars(style), "order_qty": 0}), 5, 0)["progress"] == 0
