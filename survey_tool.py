"""
SURVEY FORM TOOL
JSON endpoints behind the five-stage survey form. Each editing session keeps
its record in memory; every edit replaces the whole record.
"""

import io
import logging
import time
import uuid
from typing import Any, Dict, Optional

import PyPDF2
from fastapi import Request
from fastapi.responses import JSONResponse

import config
import gemini_service
from calculations import consumption_cross_check, summarize
from database import create_survey
from errors import (
    AuthError,
    BusyError,
    ExternalServiceError,
    FieldError,
    InvalidDocumentError,
    ItemNotFoundError,
    ManualEntryRequired,
    SurveyError,
)
from models import SurveyRecord
from survey_ops import (
    append_item,
    append_preset_equipment,
    apply_bill_extraction,
    finalize,
    new_survey,
    parse_list_key,
    remove_item,
    replace_saving_opportunities,
    update_item,
    update_section,
)

logger = logging.getLogger(__name__)

# Session storage (in-memory, one entry per editing session).
# Handlers touching it are async and never await between reading a
# session's record and storing the new one.
SESSION_STORAGE: Dict[str, Dict[str, Any]] = {}


# ============================================================================
# HELPERS
# ============================================================================

def error_response(error: SurveyError) -> JSONResponse:
    status = 400
    if isinstance(error, ItemNotFoundError):
        status = 404
    elif isinstance(error, BusyError):
        status = 409
    elif isinstance(error, ManualEntryRequired):
        status = 422
    elif isinstance(error, AuthError):
        status = 401
    elif isinstance(error, ExternalServiceError):
        status = 502
    return JSONResponse({"error": str(error)}, status_code=status)


def record_payload(record: SurveyRecord, **extra) -> Dict[str, Any]:
    return {"record": record.to_document(), "summary": summarize(record), **extra}


def prune_idle_sessions(now: Optional[float] = None) -> int:
    """Drop sessions idle longer than SESSION_IDLE_SECONDS, unless an AI call is pending."""
    now = time.monotonic() if now is None else now
    cutoff = now - config.SESSION_IDLE_SECONDS
    expired = [
        sid for sid, session in SESSION_STORAGE.items()
        if session["touched"] < cutoff and not session["busy"]
    ]
    for sid in expired:
        del SESSION_STORAGE[sid]
    if expired:
        logger.info("Dropped %d idle survey sessions", len(expired))
    return len(expired)


def _get_session(session_id: str) -> Dict[str, Any]:
    prune_idle_sessions()
    session = SESSION_STORAGE.get(session_id)
    if session is None:
        raise ItemNotFoundError(f"No survey session {session_id}")
    session["touched"] = time.monotonic()
    return session


async def _json_body(request: Request, allow_empty: bool = False) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        if allow_empty:
            return {}
        raise FieldError("Request body must be a JSON object.") from None
    if allow_empty and body is None:
        return {}
    if not isinstance(body, dict):
        raise FieldError("Request body must be a JSON object.")
    return body


def _commit(session: Dict[str, Any], record: SurveyRecord) -> JSONResponse:
    session["record"] = record
    return JSONResponse(record_payload(record))


def validate_bill_pdf(content: bytes, content_type: str, filename: str) -> int:
    """Reject anything that is not a readable PDF; return its page count."""
    if content_type != "application/pdf" and not (filename or "").lower().endswith(".pdf"):
        raise InvalidDocumentError("Please upload a valid PDF file.")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise InvalidDocumentError("The PDF is too large.")
    if not content.startswith(b"%PDF"):
        raise InvalidDocumentError("Please upload a valid PDF file.")
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(content))
        return len(pdf_reader.pages)
    except Exception as e:
        raise InvalidDocumentError("The PDF could not be read.") from e


# ============================================================================
# SESSION / FIELD EDITS
# ============================================================================

async def post_new_session(request: Request):
    """Start an editing session with an empty record"""
    prune_idle_sessions()
    session_id = uuid.uuid4().hex
    record = new_survey()
    SESSION_STORAGE[session_id] = {"record": record, "busy": False, "touched": time.monotonic()}
    logger.info("Survey session %s started", session_id)
    return JSONResponse(record_payload(record, sessionId=session_id), status_code=201)


async def get_session_state(session_id: str):
    try:
        session = _get_session(session_id)
    except SurveyError as e:
        return error_response(e)
    return JSONResponse(record_payload(session["record"], busy=session["busy"]))


async def patch_section(request: Request, session_id: str, section: str):
    try:
        body = await _json_body(request)
        session = _get_session(session_id)
        record = update_section(session["record"], section, body.get("field", ""), body.get("value"))
    except SurveyError as e:
        return error_response(e)
    return _commit(session, record)


async def post_list_item(request: Request, session_id: str, list_name: str):
    try:
        body = await _json_body(request, allow_empty=True)
        session = _get_session(session_id)
        record = append_item(session["record"], list_name, body or None)
    except SurveyError as e:
        return error_response(e)
    return _commit(session, record)


async def post_preset_equipment(session_id: str, name: str):
    try:
        session = _get_session(session_id)
        record = append_preset_equipment(session["record"], name)
    except SurveyError as e:
        return error_response(e)
    return _commit(session, record)


async def patch_list_item(request: Request, session_id: str, list_name: str, index: int):
    try:
        body = await _json_body(request)
        session = _get_session(session_id)
        record = update_item(session["record"], list_name, index, body.get("field", ""), body.get("value"))
    except SurveyError as e:
        return error_response(e)
    return _commit(session, record)


async def delete_list_item(session_id: str, list_name: str, key: str):
    try:
        session = _get_session(session_id)
        record = remove_item(session["record"], list_name, **parse_list_key(list_name, key))
    except SurveyError as e:
        return error_response(e)
    return _commit(session, record)


# ============================================================================
# AI CALLS
# ============================================================================

def _claim(session: Dict[str, Any]):
    if session["busy"]:
        raise BusyError("A request is already in progress for this survey.")
    session["busy"] = True


async def post_bill_pdf(request: Request, session_id: str, stage: int = 1):
    """Extract a bill PDF into the record (stage 1 also fills connection details)"""
    form = await request.form()
    upload = form.get("file")
    try:
        session = _get_session(session_id)
        if upload is None or not hasattr(upload, "read"):
            raise InvalidDocumentError("Please upload a valid PDF file.")
        content = await upload.read()
        try:
            pages = validate_bill_pdf(content, upload.content_type, upload.filename)
        except InvalidDocumentError:
            logger.warning("Rejected upload %s (%s)", upload.filename, upload.content_type)
            raise
        _claim(session)
    except BusyError as e:
        logger.warning("Session %s is busy", session_id)
        return error_response(e)
    except SurveyError as e:
        return error_response(e)

    try:
        logger.info("Extracting bill %s (%d pages)", upload.filename, pages)
        extraction = await gemini_service.extract_details_from_pdf(content, "application/pdf")
        record, bill_added = apply_bill_extraction(
            session["record"],
            extraction.connection_details,
            extraction.bill_details,
            include_connection=stage == 1,
        )
    except SurveyError as e:
        return error_response(e)
    finally:
        session["busy"] = False

    session["record"] = record
    if stage == 1:
        message = "Success! Details extracted. Review them in the upcoming steps."
    else:
        message = "Success! Bill details extracted and added to the table."
    return JSONResponse(record_payload(record, billAdded=bill_added, message=message))


async def post_suggestions(session_id: str):
    """Replace the saving opportunities with Gemini suggestions"""
    try:
        session = _get_session(session_id)
        _claim(session)
    except SurveyError as e:
        return error_response(e)

    try:
        suggestions = await gemini_service.get_energy_saving_suggestions(session["record"])
    except SurveyError as e:
        return error_response(e)
    finally:
        session["busy"] = False

    return _commit(session, replace_saving_opportunities(session["record"], suggestions))


# ============================================================================
# SAVE
# ============================================================================

async def post_save(session_id: str):
    """Finalize the record and store it"""
    try:
        session = _get_session(session_id)
        if session["busy"]:
            raise BusyError("Wait for the pending request to finish before saving.")
        record = finalize(session["record"])
        check = consumption_cross_check(record)
        if check.mismatch:
            logger.warning(
                "Session %s: bill estimate %.3f kWh/day vs appliance estimate %.3f kWh/day",
                session_id, check.bill_daily_kwh, check.equipment_daily_kwh,
            )
        survey_id = create_survey(record)
    except SurveyError as e:
        return error_response(e)

    SESSION_STORAGE.pop(session_id, None)
    saved = record.model_copy(update={"id": survey_id})
    return JSONResponse(
        record_payload(saved, message="Survey data saved successfully!"),
        status_code=201,
    )
