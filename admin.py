"""
Admin Module - Survey Dashboard, Amendments and Reports
"""

import html
import logging

from fastapi import Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from auth import Session
from calculations import average_daily_consumption, bill_totals, summarize
from database import get_survey, get_surveys, update_survey
from errors import ItemNotFoundError, SurveyError
from export import EXPORT_FILENAME, export_surveys_xlsx
from report import generate_survey_pdf
from survey_ops import replace_record
from survey_tool import error_response

logger = logging.getLogger(__name__)


def _sorted_surveys():
    """Newest submissions first; undated surveys last."""
    surveys = get_surveys()
    surveys.sort(key=lambda s: s.submission_date or "", reverse=True)
    return surveys


def _load(survey_id: str):
    record = get_survey(survey_id)
    if record is None:
        raise ItemNotFoundError(f"Survey {survey_id} not found")
    return record


def get_admin_dashboard(request: Request, session: Session):
    """Admin dashboard - every submitted survey in one table."""
    try:
        surveys = _sorted_surveys()
    except SurveyError as e:
        return HTMLResponse(f"<h1>{html.escape(str(e))}</h1>", status_code=500)

    rows = []
    for s in surveys:
        conn = s.electricity_connection
        totals = bill_totals(s)
        rows.append(f"""
            <tr>
                <td>{html.escape((s.submission_date or "N/A")[:10])}</td>
                <td>{html.escape(conn.consumer_name)}</td>
                <td>{html.escape(conn.consumer_number)}</td>
                <td>{html.escape(s.appraiser_info.name)}</td>
                <td>{html.escape(conn.building_type)}</td>
                <td>{totals.consumption:.0f}</td>
                <td>{average_daily_consumption(s):.2f}</td>
                <td><a href="/admin/surveys/{s.id}/report.pdf">PDF</a></td>
            </tr>""")
    table_body = "".join(rows) or '<tr><td colspan="8">No surveys submitted yet.</td></tr>'

    return HTMLResponse(f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>Admin Dashboard - Carbon Neutral Home</title>
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body>
        <header>
            <h1>Survey Submissions</h1>
            <span>Signed in as {html.escape(session.username)}</span>
            <a href="/admin/export.xlsx">Export to Excel</a>
            <form method="POST" action="/admin/logout"><button type="submit">Logout</button></form>
        </header>
        <table>
            <thead>
                <tr>
                    <th>Date</th><th>Consumer</th><th>Consumer No.</th><th>Appraiser</th>
                    <th>Building</th><th>Bill kWh</th><th>kWh/day</th><th>Report</th>
                </tr>
            </thead>
            <tbody>{table_body}</tbody>
        </table>
    </body>
    </html>
    """)


# ============================================================================
# JSON API
# ============================================================================

def get_admin_surveys():
    try:
        surveys = _sorted_surveys()
    except SurveyError as e:
        return error_response(e)
    return JSONResponse({"surveys": [s.to_document() for s in surveys]})


def get_admin_survey(survey_id: str):
    try:
        record = _load(survey_id)
    except SurveyError as e:
        return error_response(e)
    return JSONResponse({"record": record.to_document(), "summary": summarize(record)})


async def put_admin_survey(request: Request, survey_id: str, session: Session):
    """Amend a stored survey: sections in the body replace the stored ones."""
    document = await request.json()
    if not isinstance(document, dict):
        return JSONResponse({"error": "Expected a survey object."}, status_code=400)
    try:
        record = replace_record(_load(survey_id), document)
        update_survey(survey_id, record)
    except SurveyError as e:
        return error_response(e)

    logger.info("Survey %s amended by %s", survey_id, session.username)
    return JSONResponse({
        "record": record.to_document(),
        "summary": summarize(record),
        "message": "Survey updated successfully!",
    })


# ============================================================================
# DOWNLOADS
# ============================================================================

def get_admin_export():
    """All surveys as one spreadsheet"""
    try:
        content = export_surveys_xlsx(_sorted_surveys())
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    except SurveyError as e:
        return error_response(e)

    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


def get_admin_report(survey_id: str):
    """One survey as a PDF summary"""
    try:
        record = _load(survey_id)
    except SurveyError as e:
        return error_response(e)

    consumer = record.electricity_connection.consumer_number or survey_id
    filename = f"Survey_{consumer}.pdf".replace(" ", "_")
    return Response(
        content=generate_survey_pdf(record),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
