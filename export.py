"""Spreadsheet export of survey submissions."""
import io
from typing import Any, Dict, Iterable, List

import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from calculations import (
    as_number,
    average_daily_consumption,
    bill_totals,
    total_equipment_energy_kwh,
)
from models import SurveyRecord

EXPORT_FILENAME = "CarbonNeutralHome_Surveys.xlsx"
SHEET_TITLE = "Survey Submissions"


def _blank(value: Any) -> Any:
    return "" if value is None else value


def flatten_survey(s: SurveyRecord) -> Dict[str, Any]:
    """One flat row per survey, with list fields aggregated."""
    connection = s.electricity_connection
    totals = bill_totals(s)
    bills = len(s.bill_estimations)
    avg_bill_consumption = totals.consumption / bills if bills else 0.0
    equipment_wh = sum(as_number(e.energy_consumption_wh) for e in s.equipment_estimations)

    return {
        "Survey ID": _blank(s.id),
        "Submission Date": s.submission_date[:10] if s.submission_date else "N/A",
        "Appraiser Name": s.appraiser_info.name,
        "Appraiser Enrollment ID": s.appraiser_info.enrollment_id,
        "Consumer Name": connection.consumer_name,
        "Consumer Number": connection.consumer_number,
        "Family Members": _blank(connection.family_members),
        "Building Type": connection.building_type,
        "Building Area (m2)": _blank(connection.building_area),
        "Connected Load (W)": _blank(connection.connected_load_watts),
        "Solar Installed": connection.solar_installed,
        "Avg Bill Consumption (kWh)": round(avg_bill_consumption, 2),
        "Total Bill Amount (Rs)": round(totals.amount, 2),
        "Avg Daily Consumption (kWh/day)": round(average_daily_consumption(s), 4),
        "Total Equipment Consumption (Wh/day)": round(equipment_wh, 2),
        "Total Equipment Energy (kWh/day)": round(total_equipment_energy_kwh(s), 4),
        "Num Vehicles": len(s.vehicle_usage),
        "Num Fuel Types": len(s.fuel_for_cooking),
        "Num Saving Opportunities": len(s.saving_opportunities),
    }


def build_workbook(surveys: Iterable[SurveyRecord]) -> openpyxl.Workbook:
    rows: List[Dict[str, Any]] = [flatten_survey(s) for s in surveys]
    if not rows:
        raise ValueError("No data available to export.")

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    headers = list(rows[0].keys())
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([row[h] for h in headers])

    for idx, header in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = max(12, len(header) + 2)
    return wb


def export_surveys_xlsx(surveys: Iterable[SurveyRecord]) -> bytes:
    buffer = io.BytesIO()
    build_workbook(surveys).save(buffer)
    return buffer.getvalue()
