"""
Tests for the spreadsheet export and PDF report
"""

import io

import openpyxl
import pytest
from PyPDF2 import PdfReader

from export import SHEET_TITLE, build_workbook, export_surveys_xlsx, flatten_survey
from models import SavingOpportunity, SurveyRecord
from report import generate_survey_pdf


class TestFlatten:

    def test_aggregates(self, sample_record):
        row = flatten_survey(sample_record.model_copy(update={"submission_date": "2025-08-01T10:00:00+00:00"}))
        assert row["Submission Date"] == "2025-08-01"
        assert row["Consumer Name"] == "Vijayalakshmi"
        assert row["Avg Bill Consumption (kWh)"] == 151
        assert row["Total Bill Amount (Rs)"] == 2323
        assert row["Avg Daily Consumption (kWh/day)"] == pytest.approx(2.5167)
        assert row["Total Equipment Consumption (Wh/day)"] == 12045
        assert row["Num Vehicles"] == 0

    def test_empty_record(self):
        row = flatten_survey(SurveyRecord())
        assert row["Submission Date"] == "N/A"
        assert row["Building Area (m2)"] == ""
        assert row["Avg Bill Consumption (kWh)"] == 0


class TestWorkbook:

    def test_one_row_per_survey(self, sample_record):
        wb = build_workbook([sample_record, SurveyRecord()])
        ws = wb.active
        assert ws.title == SHEET_TITLE
        assert ws.max_row == 3
        assert ws["A1"].font.bold

    def test_empty_export(self):
        with pytest.raises(ValueError, match="No data available to export."):
            build_workbook([])

    def test_bytes_open_as_workbook(self, sample_record):
        wb = openpyxl.load_workbook(io.BytesIO(export_surveys_xlsx([sample_record])))
        headers = [c.value for c in wb.active[1]]
        assert "Total Equipment Energy (kWh/day)" in headers


class TestReport:

    def test_pdf_is_readable(self, sample_record):
        record = sample_record.model_copy(update={"saving_opportunities": [
            SavingOpportunity(suggestion="Replace <old> tube lights & fans", energy_saving_wh=300),
        ]})
        content = generate_survey_pdf(record)
        assert content.startswith(b"%PDF")
        assert len(PdfReader(io.BytesIO(content)).pages) >= 1

    def test_empty_record(self):
        assert generate_survey_pdf(SurveyRecord()).startswith(b"%PDF")
