"""Edit operations on a survey record.

Every operation returns a new SurveyRecord and never mutates the one it was
given, so callers can keep the previous record if anything later fails.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from calculations import (
    BILL_CHARGE_FIELDS,
    EQUIPMENT_INPUT_FIELDS,
    WATER_INPUT_FIELDS,
    apply_bill_total,
    apply_equipment_energy,
    apply_water_energy,
)
from errors import DerivedFieldError, FieldError, ItemNotFoundError, ManualEntryRequired
from models import (
    LISTS,
    SECTIONS,
    BillEntry,
    EquipmentEntry,
    SavingOpportunity,
    SolarPlantDetail,
    SurveyModel,
    SurveyRecord,
    WaterUsage,
    attribute_name,
    has_identifier,
    resolve_field,
)

COMMON_APPLIANCES = {
    "Ceiling Fan": 75,
    "Refrigerator": 200,
    "LED Bulb": 9,
    "Television (LED)": 100,
    "Washing Machine": 500,
    "Water Pump (0.5HP)": 375,
    "AC (1 Ton)": 1200,
    "Iron Box": 1000,
    "Mixer Grinder": 550,
    "Laptop Charger": 65,
}


def new_survey() -> SurveyRecord:
    """Empty record: every scalar unset, every list empty."""
    return SurveyRecord()


def _model_for_list(list_name: str):
    try:
        return LISTS[list_name]
    except KeyError:
        raise FieldError(f"Unknown list: {list_name}") from None


def _set_field(entity: SurveyModel, field: str, value: Any) -> Tuple[SurveyModel, str]:
    """Validated copy of ``entity`` with one field replaced."""
    model_cls = type(entity)
    try:
        name = resolve_field(model_cls, field)
    except KeyError:
        raise FieldError(f"Unknown field '{field}' for {model_cls.__name__}") from None
    if name in model_cls.derived_fields:
        raise DerivedFieldError(f"'{field}' is calculated and cannot be edited")
    if name == "id":
        raise FieldError("Row identifiers cannot be edited")

    data = entity.model_dump()
    data[name] = value
    try:
        return model_cls.model_validate(data), name
    except ValidationError as e:
        raise FieldError(f"Invalid value for '{field}': {e.errors()[0]['msg']}") from e


def _recompute(entity: SurveyModel, changed: str) -> SurveyModel:
    # Only the edited row is recomputed, and only when one of its inputs changed
    if isinstance(entity, BillEntry) and changed in BILL_CHARGE_FIELDS:
        return apply_bill_total(entity)
    if isinstance(entity, EquipmentEntry) and changed in EQUIPMENT_INPUT_FIELDS:
        return apply_equipment_energy(entity)
    if isinstance(entity, WaterUsage):
        # Reads only the three pump inputs, so any water edit may rerun it
        return apply_water_energy(entity)
    return entity


def update_section(record: SurveyRecord, section: str, field: str, value: Any) -> SurveyRecord:
    """Replace one field of a 1:1 section and rerun its rule."""
    if section not in SECTIONS:
        raise FieldError(f"Unknown section: {section}")
    attr = attribute_name(section)
    updated, changed = _set_field(getattr(record, attr), field, value)
    return record.model_copy(update={attr: _recompute(updated, changed)})


def _get_list(record: SurveyRecord, list_name: str) -> Tuple[str, List[SurveyModel]]:
    _model_for_list(list_name)
    attr = attribute_name(list_name)
    return attr, getattr(record, attr)


def append_item(record: SurveyRecord, list_name: str, values: Optional[Dict[str, Any]] = None) -> SurveyRecord:
    """Append a row seeded with defaults (and a fresh identifier where the list has one)."""
    model_cls = _model_for_list(list_name)
    values = dict(values or {})
    values.pop("id", None)
    for field in list(values):
        try:
            name = resolve_field(model_cls, field)
        except KeyError:
            raise FieldError(f"Unknown field '{field}' for {model_cls.__name__}") from None
        if name in model_cls.derived_fields:
            raise DerivedFieldError(f"'{field}' is calculated and cannot be edited")
    try:
        item = model_cls.model_validate(values)
    except ValidationError as e:
        raise FieldError(f"Invalid {model_cls.__name__}: {e.errors()[0]['msg']}") from e

    if isinstance(item, BillEntry) and any(getattr(item, f) is not None for f in BILL_CHARGE_FIELDS):
        item = apply_bill_total(item)
    elif isinstance(item, EquipmentEntry) and values:
        item = apply_equipment_energy(item)

    attr, items = _get_list(record, list_name)
    return record.model_copy(update={attr: [*items, item]})


def append_preset_equipment(record: SurveyRecord, name: str) -> SurveyRecord:
    if name not in COMMON_APPLIANCES:
        raise FieldError(f"Unknown appliance preset: {name}")
    return append_item(
        record,
        "equipmentEstimations",
        {"equipment": name, "powerWatts": COMMON_APPLIANCES[name]},
    )


def update_item(record: SurveyRecord, list_name: str, index: int, field: str, value: Any) -> SurveyRecord:
    """Replace one field of the row at ``index`` and rerun that row's rule."""
    attr, items = _get_list(record, list_name)
    if not 0 <= index < len(items):
        raise ItemNotFoundError(f"No row {index} in {list_name}")
    updated, changed = _set_field(items[index], field, value)
    new_items = list(items)
    new_items[index] = _recompute(updated, changed)
    return record.model_copy(update={attr: new_items})


def remove_item(
    record: SurveyRecord,
    list_name: str,
    item_id: Optional[str] = None,
    index: Optional[int] = None,
) -> SurveyRecord:
    """Remove a row by identifier, or by index for lists without identifiers."""
    attr, items = _get_list(record, list_name)
    if item_id is not None and has_identifier(LISTS[list_name]):
        new_items = [i for i in items if i.id != item_id]
        if len(new_items) == len(items):
            raise ItemNotFoundError(f"No row '{item_id}' in {list_name}")
    elif index is not None:
        if not 0 <= index < len(items):
            raise ItemNotFoundError(f"No row {index} in {list_name}")
        new_items = items[:index] + items[index + 1:]
    else:
        raise FieldError(f"An identifier or index is required to remove from {list_name}")
    return record.model_copy(update={attr: new_items})


def replace_saving_opportunities(record: SurveyRecord, suggestions: Iterable[SavingOpportunity]) -> SurveyRecord:
    return record.model_copy(update={"saving_opportunities": list(suggestions)})


def apply_bill_extraction(
    record: SurveyRecord,
    connection_details: Dict[str, Any],
    bill_details: Dict[str, Any],
    include_connection: bool = True,
) -> Tuple[SurveyRecord, bool]:
    """Merge an extracted bill into the record.

    With ``include_connection`` the connection details are merged and a solar
    row is seeded when the bill shows net metering. The bill row is only
    appended when it has a consumption figure; the returned flag says whether
    it was. Without ``include_connection`` a missing consumption raises
    ManualEntryRequired.
    """
    updates: Dict[str, Any] = {}

    if include_connection and connection_details:
        merged = {**record.electricity_connection.to_document(), **connection_details}
        try:
            updates["electricity_connection"] = type(record.electricity_connection).model_validate(merged)
        except ValidationError as e:
            raise FieldError(f"Extracted connection details are invalid: {e.errors()[0]['msg']}") from e

    bill_added = bool(bill_details.get("consumption"))
    if bill_added:
        fields = {**bill_details, "remarks": bill_details.get("remarks") or "Extracted from PDF"}
        try:
            bill = BillEntry.model_validate(fields)
        except ValidationError as e:
            raise FieldError(f"Extracted bill details are invalid: {e.errors()[0]['msg']}") from e
        updates["bill_estimations"] = [*record.bill_estimations, bill]
    elif not include_connection:
        raise ManualEntryRequired(
            "Could not find key details (like consumption) in the PDF. Please add the bill manually."
        )

    connection = updates.get("electricity_connection", record.electricity_connection)
    if include_connection and connection.solar_installed == "Yes" and not record.solar_plant_details:
        updates["solar_plant_details"] = [
            SolarPlantDetail(type="On grid", remarks="Automatically detected from electricity bill.")
        ]

    return record.model_copy(update=updates), bill_added


def finalize(record: SurveyRecord, now: Optional[datetime] = None) -> SurveyRecord:
    """Stamp the submission date for the first save."""
    if record.submission_date:
        return record
    now = now or datetime.now(timezone.utc)
    return record.model_copy(update={"submission_date": now.isoformat()})


def _rederive(entity: SurveyModel, stored: Optional[SurveyModel], inputs: Iterable[str], rule) -> SurveyModel:
    """Derived values come from ``stored`` while inputs are unchanged, else from ``rule``."""
    derived = type(entity).derived_fields
    if stored is not None and all(getattr(entity, f) == getattr(stored, f) for f in inputs):
        return entity.model_copy(update={f: getattr(stored, f) for f in derived})
    if stored is None and not any(getattr(entity, f) is not None for f in inputs):
        return entity.model_copy(update={f: None for f in derived})
    return rule(entity)


def replace_record(existing: SurveyRecord, document: Dict[str, Any]) -> SurveyRecord:
    """Amend flow: each top-level section in ``document`` replaces the stored one.

    The identifier and submission date of ``existing`` are kept. Calculated
    fields sent by the client are ignored: rows whose inputs are unchanged
    keep their stored values, the rest are recomputed.
    """
    merged = {**existing.to_document(), **document}
    merged["id"] = existing.id
    merged["submissionDate"] = existing.submission_date
    try:
        amended = SurveyRecord.model_validate(merged)
    except ValidationError as e:
        raise FieldError(f"Invalid survey: {e.errors()[0]['msg']}") from e

    stored_bills = {b.id: b for b in existing.bill_estimations}
    stored_equipment = {e.id: e for e in existing.equipment_estimations}
    return amended.model_copy(update={
        "water_usage": _rederive(
            amended.water_usage, existing.water_usage, WATER_INPUT_FIELDS, apply_water_energy
        ),
        "bill_estimations": [
            _rederive(b, stored_bills.get(b.id), BILL_CHARGE_FIELDS, apply_bill_total)
            for b in amended.bill_estimations
        ],
        "equipment_estimations": [
            _rederive(e, stored_equipment.get(e.id), EQUIPMENT_INPUT_FIELDS, apply_equipment_energy)
            for e in amended.equipment_estimations
        ],
    })


def parse_list_key(list_name: str, key: str) -> Dict[str, Union[str, int]]:
    """Removal key from a URL segment: identifier, or index for id-less lists."""
    if has_identifier(_model_for_list(list_name)):
        return {"item_id": key}
    try:
        return {"index": int(key)}
    except ValueError:
        raise FieldError(f"{list_name} rows are removed by index") from None
