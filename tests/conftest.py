import json
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import database  # noqa: E402
from models import SurveyRecord  # noqa: E402


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    """Point the JSON store at a fresh file"""
    path = tmp_path / "surveys.json"
    monkeypatch.setattr(database, "DB_FILE", str(path))
    return path


@pytest.fixture
def sample_record():
    return SurveyRecord.from_document({
        "appraiserInfo": {"name": "Ashwin Harikumar", "enrollmentId": "SCM23CS077"},
        "electricityConnection": {
            "consumerName": "Vijayalakshmi",
            "consumerNumber": "1156047011364",
            "familyMembers": 6,
            "buildingType": "Concrete",
            "buildingArea": 2000,
            "solarInstalled": "Yes",
        },
        "billEstimations": [
            {"id": "b1", "period": "May 2025", "consumption": 134, "total": 974},
            {"id": "b2", "period": "June 2025", "consumption": 158, "total": 1079},
            {"id": "b3", "period": "July 2025", "consumption": 161, "total": 270},
        ],
        "equipmentEstimations": [
            {"id": "e1", "equipment": "Refrigerator", "dailyUsageHours": 24,
             "powerWatts": 200, "energyConsumptionWh": 4800},
            {"id": "e2", "equipment": "AC (1 Ton)", "dailyUsageHours": 6,
             "powerWatts": 1200, "energyConsumptionWh": 7200},
            {"id": "e3", "equipment": "LED Bulb", "dailyUsageHours": 5,
             "powerWatts": 9, "energyConsumptionWh": 45},
        ],
    })


def make_genai_client(payload):
    """Stand-in for genai.Client whose async generate_content answers with ``payload``"""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    client = Mock()
    client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=text))
    return client


@pytest.fixture
def genai_client():
    return make_genai_client
