"""Gemini calls: bill PDF extraction and energy-saving suggestions.

Both calls ask for a strict JSON response schema and turn the answer into
sanitized, typed values. Failures surface as a single AIServiceError; there
are no retries here.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

import config
from calculations import BILL_CHARGE_FIELDS, average_daily_consumption
from errors import AIServiceError
from models import (
    ConnectionNature,
    MeterType,
    SavingOpportunity,
    SurveyRecord,
    YesNo,
    choices,
    new_identifier,
)

logger = logging.getLogger(__name__)

_client: Optional[genai.Client] = None


def get_client() -> genai.Client:
    global _client
    if _client is None:
        if not config.GEMINI_API_KEY:
            raise AIServiceError("Gemini API key is not configured.")
        _client = genai.Client(api_key=config.GEMINI_API_KEY)
    return _client


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

STRING = types.Type.STRING
NUMBER = types.Type.NUMBER

CONNECTION_FIELDS = {
    "consumerName": "string",
    "consumerNumber": "string",
    "electricalSection": "string",
    "tariffCategory": "string",
    "connectionNature": "string",
    "energyMeterType": "string",
    "solarInstalled": "string",
    "connectedLoadWatts": "number",
}

BILL_FIELDS = {
    "billNumber": "string",
    "period": "string",
    "remarks": "string",
    "consumption": "number",
    "fixedCharge": "number",
    "meterRent": "number",
    "energyCharges": "number",
    "duty": "number",
    "otherCharges": "number",
    "total": "number",
}

SUGGESTION_FIELDS = {
    "suggestion": (STRING, "The energy saving suggestion."),
    "energySavingWh": (NUMBER, "Targeted energy saving per day in Watt-hours (Wh)."),
    "investment": (NUMBER, "Estimated investment required in Indian Rupees."),
    "paybackMonths": (NUMBER, "Estimated payback period in months."),
    "remarks": (STRING, "Any additional remarks."),
}

CHOICE_FIELDS = {
    "connectionNature": choices(ConnectionNature),
    "energyMeterType": choices(MeterType),
    "solarInstalled": choices(YesNo),
}


def _object_schema(fields: Dict[str, str]) -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            name: types.Schema(type=STRING if kind == "string" else NUMBER)
            for name, kind in fields.items()
        },
    )


EXTRACTION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "connectionDetails": _object_schema(CONNECTION_FIELDS),
        "billDetails": _object_schema({k: v for k, v in BILL_FIELDS.items() if k != "remarks"}),
    },
)

SUGGESTION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "suggestions": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    name: types.Schema(type=kind, description=desc)
                    for name, (kind, desc) in SUGGESTION_FIELDS.items()
                },
            ),
        )
    },
)

EXTRACTION_INSTRUCTIONS = """
Analyze the provided electricity bill PDF, likely from KSEB (Kerala State Electricity Board).
Extract the following details and return them in a single JSON object.
The JSON should have two main keys: 'connectionDetails' and 'billDetails'.
If a value is not found, return an empty string for string fields, 0 for numeric fields, or 'No' for the solar field.

For 'connectionDetails', extract:
- consumerName: Name of the consumer.
- consumerNumber: The unique consumer number or ID.
- electricalSection: The name of the electrical section office.
- tariffCategory: The tariff code or category (e.g., LT-1A).
- connectedLoadWatts: The sanctioned or connected load. If in kW, convert to Watts.
- connectionNature: Should be either 'Single Phase' or 'Three Phase'.
- energyMeterType: Type of meter, like 'Digital', 'Electromechanical', or 'TOD'.
- solarInstalled: Check for net-metering data like 'Export' energy readings. If present, set this to "Yes", otherwise "No".

For 'billDetails', extract:
- billNumber: The Bill Number. Can be the same as consumer number if not distinct.
- period: The billing period (e.g., 'May-Jun 2023').
- consumption: Total consumption in kWh for the period. For net-metered bills, this is usually the 'Net' or 'Billed' consumption.
- fixedCharge: The fixed charge amount.
- meterRent: The meter rent amount.
- energyCharges: The total energy charges.
- duty: The electricity duty amount.
- total: The total bill amount.
- otherCharges: Any other charges not covered above. Sum them up if there are multiple.
"""


# ============================================================================
# SANITIZING
# ============================================================================

def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return 0.0
    return 0.0


def sanitize_object(obj: Optional[Dict[str, Any]], schema: Dict[str, str]) -> Dict[str, Any]:
    """Keep only the schema's keys: strings default to '', numbers to 0."""
    if not isinstance(obj, dict):
        obj = {}
    sanitized: Dict[str, Any] = {}
    for key, kind in schema.items():
        value = obj.get(key)
        if kind == "string":
            sanitized[key] = str(value) if value else ""
        else:
            sanitized[key] = _to_number(value)
    return sanitized


def _normalize_choice(value: str, allowed: tuple) -> str:
    for option in allowed:
        if value.strip().lower() == option.lower():
            return option
    return ""


def _parse_json(text: Optional[str]) -> Dict[str, Any]:
    if not text:
        raise ValueError("Empty response from Gemini")
    result = json.loads(text.strip())
    if not isinstance(result, dict):
        raise ValueError("Gemini response is not a JSON object")
    return result


# ============================================================================
# BILL EXTRACTION
# ============================================================================

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class BillExtraction:
    connection_details: Dict[str, Any] = field(default_factory=dict)
    bill_details: Dict[str, Any] = field(default_factory=dict)


def parse_extraction(result: Dict[str, Any]) -> BillExtraction:
    """Sanitize a raw extraction answer; fill in the bill total when it is missing."""
    raw_connection = result.get("connectionDetails")
    raw_bill = result.get("billDetails")

    connection = sanitize_object(raw_connection, CONNECTION_FIELDS)
    for key, allowed in CHOICE_FIELDS.items():
        connection[key] = _normalize_choice(connection[key], allowed)

    bill = sanitize_object(raw_bill, BILL_FIELDS)
    if not isinstance(raw_bill, dict) or raw_bill.get("total") in (None, ""):
        bill["total"] = sum(bill[_camel(f)] for f in BILL_CHARGE_FIELDS)

    return BillExtraction(connection_details=connection, bill_details=bill)


async def extract_details_from_pdf(
    pdf_bytes: bytes,
    mime_type: str = "application/pdf",
    client: Optional[genai.Client] = None,
) -> BillExtraction:
    client = client or get_client()
    contents = [
        types.Part.from_text(text=EXTRACTION_INSTRUCTIONS),
        types.Part.from_bytes(data=pdf_bytes, mime_type=mime_type),
    ]
    try:
        response = await client.aio.models.generate_content(
            model=config.GEMINI_MODEL,
            contents=contents,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=EXTRACTION_SCHEMA,
            ),
        )
        extraction = parse_extraction(_parse_json(response.text))
    except Exception as e:
        logger.exception("Error calling Gemini API for bill extraction")
        raise AIServiceError(
            "Failed to extract details from PDF using Gemini AI. "
            "The document might be unreadable or in an unexpected format."
        ) from e

    logger.info("Bill extracted (consumption=%s)", extraction.bill_details.get("consumption"))
    return extraction


# ============================================================================
# SAVING SUGGESTIONS
# ============================================================================

def build_profile(record: SurveyRecord) -> Dict[str, Any]:
    connection = record.electricity_connection
    threshold = config.HIGH_POWER_THRESHOLD_WATTS
    return {
        "buildingType": connection.building_type,
        "buildingArea": connection.building_area,
        "familyMembers": connection.family_members,
        "solarInstalled": connection.solar_installed,
        "averageDailyConsumption": average_daily_consumption(record),
        "highPowerAppliances": [
            e.equipment for e in record.equipment_estimations
            if (e.power_watts or 0) > threshold
        ],
    }


def generate_prompt(profile: Dict[str, Any]) -> str:
    appliances = ", ".join(a for a in profile["highPowerAppliances"] if a)
    family = profile["familyMembers"] if profile["familyMembers"] is not None else ""
    return f"""
Analyze the following home energy data and provide 3-5 practical, targeted energy-saving suggestions.

Home Profile:
- Building Type: {profile["buildingType"]}
- Total Area: {profile["buildingArea"] or "N/A"} sq meters
- Number of Family Members: {family}
- Solar Plant Installed: {profile["solarInstalled"]}
- Approximate Average Daily Electricity Consumption: {profile["averageDailyConsumption"]:.2f} kWh
- High-Power Appliances Noted: {appliances or "None specified"}

For each suggestion, provide a brief description, an estimated daily energy saving in Watt-hours (Wh), a rough required investment in Indian Rupees, and an estimated payback period in months. Be realistic with the numbers.
"""


def parse_suggestions(result: Dict[str, Any]) -> List[SavingOpportunity]:
    suggestions = result.get("suggestions")
    if not isinstance(suggestions, list):
        return []
    parsed = []
    for raw in suggestions:
        if not isinstance(raw, dict):
            continue
        parsed.append(SavingOpportunity(
            id=new_identifier("gemini"),
            suggestion=raw.get("suggestion") or "N/A",
            energy_saving_wh=_to_number(raw.get("energySavingWh")),
            investment=_to_number(raw.get("investment")),
            payback_months=_to_number(raw.get("paybackMonths")),
            remarks=raw.get("remarks") or "",
        ))
    return parsed


async def get_energy_saving_suggestions(
    record: SurveyRecord,
    client: Optional[genai.Client] = None,
) -> List[SavingOpportunity]:
    client = client or get_client()
    prompt = generate_prompt(build_profile(record))
    try:
        response = await client.aio.models.generate_content(
            model=config.GEMINI_MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=SUGGESTION_SCHEMA,
            ),
        )
        suggestions = parse_suggestions(_parse_json(response.text))
    except Exception as e:
        logger.exception("Error calling Gemini API for suggestions")
        raise AIServiceError("Failed to get suggestions from Gemini AI.") from e

    logger.info("Received %d saving suggestions", len(suggestions))
    return suggestions
