"""
SURVEY SUMMARY REPORT
One-survey PDF for the admin dashboard: household details, bills,
appliance inventory and the savings projection.
"""

import html
import io
from datetime import datetime
from typing import List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from calculations import (
    average_daily_consumption,
    bill_totals,
    consumption_cross_check,
    project_savings,
    total_equipment_energy_kwh,
)
from models import SurveyRecord

PRIMARY = colors.HexColor('#0F172A')
LIGHT_BG = colors.HexColor('#F8FAFC')
MID_BG = colors.HexColor('#E2E8F0')


def _fmt(value, digits: int = 2) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, float):
        return f"{value:,.{digits}f}"
    return str(value)


def _table(rows: List[List[str]], col_widths, header: bool = True) -> Table:
    table = Table(rows, colWidths=col_widths)
    style = [
        ('GRID', (0, 0), (-1, -1), 0.5, MID_BG),
        ('BOX', (0, 0), (-1, -1), 1, PRIMARY),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, LIGHT_BG]),
        ('LEFTPADDING', (0, 0), (-1, -1), 6),
    ]
    if header:
        style += [
            ('BACKGROUND', (0, 0), (-1, 0), PRIMARY),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ]
    table.setStyle(TableStyle(style))
    return table


def generate_survey_pdf(record: SurveyRecord) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.6*inch, bottomMargin=0.6*inch)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('Title', parent=styles['Title'], textColor=PRIMARY, alignment=TA_CENTER)
    h2_style = ParagraphStyle('H2', parent=styles['Heading2'], textColor=PRIMARY, spaceBefore=14)

    conn = record.electricity_connection
    elements = [
        Paragraph("Carbon Neutral Home - Energy Survey", title_style),
        Paragraph(f"Generated {datetime.now().strftime('%d %B %Y')}", styles['Normal']),
        Spacer(1, 0.2*inch),
    ]

    elements.append(Paragraph("Household", h2_style))
    elements.append(_table([
        ['Consumer', conn.consumer_name or '-'],
        ['Consumer Number', conn.consumer_number or '-'],
        ['Appraiser', record.appraiser_info.name or '-'],
        ['Building Type', conn.building_type or '-'],
        ['Building Area (m2)', _fmt(conn.building_area)],
        ['Family Members', _fmt(conn.family_members)],
        ['Solar Installed', conn.solar_installed or '-'],
        ['Submitted', record.submission_date or 'Not submitted'],
    ], [2.2*inch, 4.3*inch], header=False))

    if record.bill_estimations:
        elements.append(Paragraph("Electricity Bills", h2_style))
        rows = [['Bill No.', 'Period', 'kWh', 'Total']]
        for b in record.bill_estimations:
            rows.append([b.bill_number, b.period, _fmt(b.consumption), _fmt(b.total)])
        totals = bill_totals(record)
        rows.append(['Total', '', _fmt(totals.consumption), _fmt(totals.amount)])
        elements.append(_table(rows, [1.8*inch, 1.8*inch, 1.3*inch, 1.6*inch]))

    if record.equipment_estimations:
        elements.append(Paragraph("Appliances", h2_style))
        rows = [['Equipment', 'Hours/day', 'Watts', 'Wh/day']]
        for e in record.equipment_estimations:
            rows.append([e.equipment, _fmt(e.daily_usage_hours), _fmt(e.power_watts), _fmt(e.energy_consumption_wh)])
        elements.append(_table(rows, [2.6*inch, 1.2*inch, 1.2*inch, 1.5*inch]))

    check = consumption_cross_check(record)
    projection = project_savings(record)
    elements.append(Paragraph("Energy Performance", h2_style))
    elements.append(_table([
        ['Average daily consumption from bills (kWh)', _fmt(average_daily_consumption(record), 3)],
        ['Daily consumption from appliances (kWh)', _fmt(total_equipment_energy_kwh(record), 3)],
        ['Estimates agree', 'No - review entries' if check.mismatch else 'Yes'],
        ['Annual consumption (kWh)', _fmt(projection.annual_consumption)],
        ['Present EPI (kWh/m2/year)', _fmt(projection.present_epi)],
        ['Projected EPI (kWh/m2/year)', _fmt(projection.projected_epi)],
        ['Annual saving (kWh)', _fmt(projection.annual_saving_kwh)],
        ['Annual bill reduction', _fmt(projection.annual_bill_reduction)],
        ['CO2 reduction (kg/year)', _fmt(projection.co2_reduction)],
    ], [3.8*inch, 2.7*inch], header=False))

    if record.saving_opportunities:
        elements.append(Paragraph("Saving Opportunities", h2_style))
        body = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9)
        rows = [['Suggestion', 'Wh/day', 'Investment', 'Payback (months)']]
        for s in record.saving_opportunities:
            rows.append([Paragraph(html.escape(s.suggestion), body), _fmt(s.energy_saving_wh), _fmt(s.investment), _fmt(s.payback_months)])
        elements.append(_table(rows, [3.2*inch, 1*inch, 1.1*inch, 1.2*inch]))

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
