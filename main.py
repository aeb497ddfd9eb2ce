"""
Carbon Neutral Home - Energy Survey Service
Survey form API, admin dashboard and downloads.
"""

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse

import config
from admin import (
    get_admin_dashboard,
    get_admin_export,
    get_admin_report,
    get_admin_survey,
    get_admin_surveys,
    put_admin_survey,
)
from auth import (
    auth_service,
    get_login_page,
    post_login,
    post_logout,
    require_admin,
    require_admin_api,
)
from security import SecurityMiddleware
from survey_tool import (
    delete_list_item,
    get_session_state,
    patch_list_item,
    patch_section,
    post_bill_pdf,
    post_list_item,
    post_new_session,
    post_preset_equipment,
    post_save,
    post_suggestions,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("carbon_neutral_home")

app = FastAPI(title="Carbon Neutral Home Survey")
app.add_middleware(SecurityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _audit_session(session):
    if session:
        logger.info("Admin session opened for %s", session.username)
    else:
        logger.info("Admin session closed")


auth_service.subscribe(_audit_session)


# Health check for Render
@app.get("/api/ping")
def ping():
    return {"status": "ok"}

# ============================================================================
# SURVEY FORM ROUTES
# ============================================================================

@app.post("/api/surveys/session")
async def route_new_session(request: Request):
    return await post_new_session(request)

@app.get("/api/surveys/session/{session_id}")
async def route_session_state(session_id: str):
    return await get_session_state(session_id)

@app.patch("/api/surveys/session/{session_id}/sections/{section}")
async def route_update_section(request: Request, session_id: str, section: str):
    return await patch_section(request, session_id, section)

@app.post("/api/surveys/session/{session_id}/lists/equipmentEstimations/presets/{name}")
async def route_add_preset(session_id: str, name: str):
    return await post_preset_equipment(session_id, name)

@app.post("/api/surveys/session/{session_id}/lists/{list_name}")
async def route_add_item(request: Request, session_id: str, list_name: str):
    return await post_list_item(request, session_id, list_name)

@app.patch("/api/surveys/session/{session_id}/lists/{list_name}/{index}")
async def route_update_item(request: Request, session_id: str, list_name: str, index: int):
    return await patch_list_item(request, session_id, list_name, index)

@app.delete("/api/surveys/session/{session_id}/lists/{list_name}/{key}")
async def route_remove_item(session_id: str, list_name: str, key: str):
    return await delete_list_item(session_id, list_name, key)

@app.post("/api/surveys/session/{session_id}/bill-pdf")
async def route_bill_pdf(request: Request, session_id: str, stage: int = 1):
    return await post_bill_pdf(request, session_id, stage)

@app.post("/api/surveys/session/{session_id}/suggestions")
async def route_suggestions(session_id: str):
    return await post_suggestions(session_id)

@app.post("/api/surveys/session/{session_id}/save")
async def route_save(session_id: str):
    return await post_save(session_id)

# ============================================================================
# AUTH ROUTES
# ============================================================================

@app.get("/admin/login", response_class=HTMLResponse)
def route_login(request: Request):
    return get_login_page(request)

@app.post("/admin/login")
async def route_post_login(request: Request):
    return await post_login(request)

@app.post("/admin/logout")
def route_logout(request: Request):
    return post_logout(request)

# ============================================================================
# ADMIN ROUTES
# ============================================================================

@app.get("/admin", response_class=HTMLResponse)
def route_admin_dashboard(request: Request):
    session = require_admin(request)
    if isinstance(session, RedirectResponse):
        return session
    return get_admin_dashboard(request, session)

@app.get("/admin/export.xlsx")
def route_admin_export(request: Request):
    session = require_admin(request)
    if isinstance(session, RedirectResponse):
        return session
    return get_admin_export()

@app.get("/admin/surveys/{survey_id}/report.pdf")
def route_admin_report(request: Request, survey_id: str):
    session = require_admin(request)
    if isinstance(session, RedirectResponse):
        return session
    return get_admin_report(survey_id)

@app.get("/api/admin/surveys")
def route_admin_surveys(request: Request):
    require_admin_api(request)
    return get_admin_surveys()

@app.get("/api/admin/surveys/{survey_id}")
def route_admin_survey(request: Request, survey_id: str):
    require_admin_api(request)
    return get_admin_survey(survey_id)

@app.put("/api/admin/surveys/{survey_id}")
async def route_admin_amend(request: Request, survey_id: str):
    session = require_admin_api(request)
    return await put_admin_survey(request, survey_id, session)

# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
