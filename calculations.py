"""Derived metrics for a survey record.

Field-level rules (bill total, water pump energy, equipment energy) return a
new copy of the entity they are given. Roll-ups read the whole record and
are cheap enough to recompute for every response.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

import config
from models import BillEntry, EquipmentEntry, SurveyRecord, WaterUsage

BILL_CHARGE_FIELDS = ("fixed_charge", "meter_rent", "energy_charges", "duty", "other_charges")
WATER_INPUT_FIELDS = ("pump_capacity", "fill_time", "pump_frequency")
EQUIPMENT_INPUT_FIELDS = ("daily_usage_hours", "power_watts")


def as_number(value: Optional[float]) -> float:
    """Unset counts as 0 in arithmetic."""
    return float(value) if value is not None else 0.0


# ---------------------------------------------------------------------------
# Field-level rules
# ---------------------------------------------------------------------------

def bill_total(bill: BillEntry) -> float:
    return sum(as_number(getattr(bill, f)) for f in BILL_CHARGE_FIELDS)


def apply_bill_total(bill: BillEntry) -> BillEntry:
    return bill.model_copy(update={"total": bill_total(bill)})


def water_pump_energy(
    water: WaterUsage, hp_to_watts: Optional[float] = None
) -> Tuple[Optional[float], Optional[float]]:
    """Return (daily kWh, annual kWh), or (None, None) unless all three inputs are positive."""
    if hp_to_watts is None:
        hp_to_watts = config.HP_TO_WATTS
    capacity, fill_time, frequency = (water.pump_capacity, water.fill_time, water.pump_frequency)
    if not all(v is not None and v > 0 for v in (capacity, fill_time, frequency)):
        return None, None

    pump_watts = capacity * hp_to_watts
    daily_kwh = pump_watts * fill_time * frequency / 1000
    annual_kwh = daily_kwh * 365
    return round(daily_kwh, 3), round(annual_kwh, 2)


def apply_water_energy(water: WaterUsage, hp_to_watts: Optional[float] = None) -> WaterUsage:
    daily, annual = water_pump_energy(water, hp_to_watts)
    return water.model_copy(
        update={"daily_power_consumption": daily, "annual_power_consumption": annual}
    )


def equipment_energy(entry: EquipmentEntry) -> float:
    # Partial entries still produce a number (0 Wh), unlike the pump rule
    return as_number(entry.daily_usage_hours) * as_number(entry.power_watts)


def apply_equipment_energy(entry: EquipmentEntry) -> EquipmentEntry:
    return entry.model_copy(update={"energy_consumption_wh": equipment_energy(entry)})


# ---------------------------------------------------------------------------
# Aggregate roll-ups
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class BillTotals:
    consumption: float
    amount: float


@dataclass(slots=True)
class ConsumptionCheck:
    """Bill-derived (A) vs appliance-derived (B) daily consumption."""

    bill_daily_kwh: float
    equipment_daily_kwh: float
    difference_kwh: float
    mismatch: bool


@dataclass(slots=True)
class SavingsProjection:
    annual_consumption: float
    building_area: float
    present_epi: float
    total_daily_saving_wh: float
    annual_saving_kwh: float
    reduced_annual_consumption: float
    projected_epi: float
    annual_bill_reduction: float
    co2_reduction: float


def bill_totals(record: SurveyRecord) -> BillTotals:
    return BillTotals(
        consumption=sum(as_number(b.consumption) for b in record.bill_estimations),
        amount=sum(as_number(b.total) for b in record.bill_estimations),
    )


def average_daily_consumption(record: SurveyRecord, period_days: Optional[int] = None) -> float:
    """Average kWh/day over the bills, each assumed to span ``period_days``."""
    if period_days is None:
        period_days = config.BILL_PERIOD_DAYS
    total_days = len(record.bill_estimations) * period_days
    if total_days <= 0:
        return 0.0
    return bill_totals(record).consumption / total_days


def total_equipment_energy_kwh(record: SurveyRecord) -> float:
    return sum(as_number(e.energy_consumption_wh) for e in record.equipment_estimations) / 1000


def consumption_cross_check(
    record: SurveyRecord,
    tolerance: Optional[float] = None,
    period_days: Optional[int] = None,
) -> ConsumptionCheck:
    """Flag a difference larger than ``tolerance`` of either estimate.

    This is a data-quality warning for the reviewer; nothing is rejected.
    """
    if tolerance is None:
        tolerance = config.CROSS_CHECK_TOLERANCE
    a = average_daily_consumption(record, period_days)
    b = total_equipment_energy_kwh(record)
    difference = abs(a - b)
    mismatch = difference > tolerance * min(a, b) if (a or b) else False
    return ConsumptionCheck(
        bill_daily_kwh=a,
        equipment_daily_kwh=b,
        difference_kwh=difference,
        mismatch=mismatch,
    )


def project_savings(
    record: SurveyRecord,
    cost_per_kwh: Optional[float] = None,
    co2_factor: Optional[float] = None,
) -> SavingsProjection:
    if cost_per_kwh is None:
        cost_per_kwh = config.COST_PER_KWH
    if co2_factor is None:
        co2_factor = config.CO2_FACTOR

    annual_consumption = total_equipment_energy_kwh(record) * 365
    area = as_number(record.electricity_connection.building_area)
    present_epi = annual_consumption / area if area > 0 else 0.0

    daily_saving_wh = sum(as_number(s.energy_saving_wh) for s in record.saving_opportunities)
    annual_saving_kwh = daily_saving_wh * 365 / 1000
    reduced = annual_consumption - annual_saving_kwh
    projected_epi = reduced / area if area > 0 else 0.0

    return SavingsProjection(
        annual_consumption=annual_consumption,
        building_area=area,
        present_epi=present_epi,
        total_daily_saving_wh=daily_saving_wh,
        annual_saving_kwh=annual_saving_kwh,
        reduced_annual_consumption=reduced,
        projected_epi=projected_epi,
        annual_bill_reduction=annual_saving_kwh * cost_per_kwh,
        co2_reduction=annual_saving_kwh * co2_factor,
    )


def top_consumers(record: SurveyRecord, limit: int = 10) -> List[Dict[str, Any]]:
    """Named equipment rows with non-zero consumption, largest first."""
    rows = [
        e for e in record.equipment_estimations
        if e.equipment and e.energy_consumption_wh
    ]
    rows.sort(key=lambda e: e.energy_consumption_wh, reverse=True)
    return [{"name": e.equipment, "dailyWh": e.energy_consumption_wh} for e in rows[:limit]]


def summarize(record: SurveyRecord) -> Dict[str, Any]:
    """All roll-ups for presentation."""
    totals = bill_totals(record)
    return {
        "totalConsumption": totals.consumption,
        "totalBillAmount": totals.amount,
        "averageDailyConsumption": average_daily_consumption(record),
        "totalEquipmentEnergyKWh": total_equipment_energy_kwh(record),
        "crossCheck": asdict(consumption_cross_check(record)),
        "projection": asdict(project_savings(record)),
        "topConsumers": top_consumers(record),
    }
