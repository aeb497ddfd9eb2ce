import json
import logging
import threading
import uuid
from typing import Dict, List, Optional

import config
from errors import DatabaseError
from models import SurveyRecord

logger = logging.getLogger(__name__)

DB_FILE = config.DB_FILE

_lock = threading.Lock()


def _empty_db() -> Dict:
    return {"users": [], "surveys": {}}


def read_db() -> Dict:
    """Read the entire database."""
    try:
        with open(DB_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return _empty_db()
    except (OSError, json.JSONDecodeError) as e:
        logger.exception("Error reading database file %s", DB_FILE)
        raise DatabaseError("Failed to read survey data.") from e
    data.setdefault("users", [])
    data.setdefault("surveys", {})
    return data


def write_db(data: Dict):
    """Write data to the database."""
    try:
        with open(DB_FILE, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.exception("Error writing database file %s", DB_FILE)
        raise DatabaseError("Failed to save data.") from e


# =============================================================================
# SURVEYS
# =============================================================================

def create_survey(record: SurveyRecord) -> str:
    """Store a new survey document and return its generated ID."""
    survey_id = uuid.uuid4().hex
    document = record.to_document()
    document.pop("id", None)
    with _lock:
        db = read_db()
        db["surveys"][survey_id] = document
        write_db(db)
    logger.info("Survey written with ID: %s", survey_id)
    return survey_id


def get_surveys() -> List[SurveyRecord]:
    """Fetch every stored survey."""
    db = read_db()
    return [SurveyRecord.from_document(doc, doc_id) for doc_id, doc in db["surveys"].items()]


def get_survey(survey_id: str) -> Optional[SurveyRecord]:
    db = read_db()
    document = db["surveys"].get(survey_id)
    if document is None:
        return None
    return SurveyRecord.from_document(document, survey_id)


def update_survey(survey_id: str, record: SurveyRecord):
    """Replace an existing survey document."""
    document = record.to_document()
    document.pop("id", None)
    with _lock:
        db = read_db()
        if survey_id not in db["surveys"]:
            raise DatabaseError(f"Survey {survey_id} does not exist.")
        db["surveys"][survey_id] = document
        write_db(db)
    logger.info("Survey %s updated", survey_id)


# =============================================================================
# ADMIN USERS
# =============================================================================

def get_user_by_username(username: str) -> Optional[Dict]:
    """Get user by username."""
    db = read_db()
    for user in db["users"]:
        if user["username"] == username:
            return user
    return None


def create_user(username: str, password_hash: str) -> Optional[Dict]:
    """Create a new admin user; None if the username is taken."""
    with _lock:
        db = read_db()
        if any(u["username"] == username for u in db["users"]):
            return None
        new_id = max([u["id"] for u in db["users"]], default=0) + 1
        user = {
            "id": new_id,
            "username": username,
            "password_hash": password_hash,
            "is_active": 1,
        }
        db["users"].append(user)
        write_db(db)
    return user
