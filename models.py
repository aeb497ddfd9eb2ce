"""Data models for the household energy survey record."""
import uuid
from functools import partial
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Type, get_args

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _blank_to_none(value: Any) -> Any:
    # Form inputs send "" for a field that was never entered
    if isinstance(value, str) and not value.strip():
        return None
    return value


# "Unset" is None, which is distinct from an entered 0
OptionalNumber = Annotated[Optional[float], BeforeValidator(_blank_to_none)]
OptionalCount = Annotated[Optional[int], BeforeValidator(_blank_to_none)]

ConnectionNature = Literal["Single Phase", "Three Phase", ""]
BuildingType = Literal["Concrete", "Tiled Roof", "Sheet Roof", ""]
Ownership = Literal["Own", "Rental", ""]
EarthingType = Literal["Plate", "Pipe", ""]
ControlSystem = Literal["ELCB", "RCCB", ""]
MeterType = Literal["Electromechanical", "Digital", "TOD", ""]
YesNo = Literal["Yes", "No", ""]
SolarType = Literal["Off grid", "On grid", "Hybrid", ""]
FuelType = Literal["Firewood", "LPG Cylinder", "Biogas", "Induction Cooker", "Others"]
FuelUnit = Literal["Kg", "Cylinders", "Hours"]
WaterSource = Literal["Open well", "Bore well", "Underground tank", "Municipal water", ""]
VehicleType = Literal["2 wheeler", "3 wheeler", "Car", "Other"]
VehicleFuel = Literal["Petrol", "Diesel", "Electric", ""]


def new_identifier(prefix: str) -> str:
    """Return a list-row identifier that is unique regardless of insert rate."""
    return f"{prefix}-{uuid.uuid4().hex}"


def choices(literal_type) -> tuple:
    """Return the allowed non-empty values of a Literal choice type."""
    return tuple(v for v in get_args(literal_type) if v)


class SurveyModel(BaseModel):
    """Base for every record part: snake_case in Python, camelCase in documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Fields that only a calculation rule may write
    derived_fields: ClassVar[tuple] = ()

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class AppraiserInfo(SurveyModel):
    name: str = ""
    enrollment_id: str = ""
    unit_no: str = ""
    college_name: str = ""


class ElectricityConnection(SurveyModel):
    consumer_name: str = ""
    family_members: OptionalCount = None
    consumer_number: str = ""
    tariff_category: str = ""
    electrical_section: str = ""
    connected_load_watts: OptionalNumber = None
    connection_nature: ConnectionNature = ""
    building_type: BuildingType = ""
    ownership: Ownership = ""
    floors: OptionalCount = None
    building_area: OptionalNumber = None  # m²
    earthing_type: EarthingType = ""
    control_systems: ControlSystem = ""
    mcb_count: OptionalCount = None
    energy_meter_type: MeterType = ""
    solar_installed: YesNo = ""


class SolarPlantDetail(SurveyModel):
    id: str = Field(default_factory=partial(new_identifier, "solar"))
    type: SolarType = ""
    installed_capacity: OptionalNumber = None  # kW
    remarks: str = ""


class FuelForCooking(SurveyModel):
    type: FuelType = "Firewood"
    consumption: OptionalNumber = None
    units: FuelUnit = "Kg"
    remarks: str = ""


class WaterUsage(SurveyModel):
    derived_fields: ClassVar[tuple] = ("daily_power_consumption", "annual_power_consumption")

    source: WaterSource = ""
    municipal_consumption: OptionalNumber = None  # kilolitres
    municipal_bill: OptionalNumber = None
    tank_capacity: OptionalNumber = None  # litres
    pump_capacity: OptionalNumber = None  # HP
    fill_time: OptionalNumber = None  # hours
    pump_frequency: OptionalNumber = None  # fills per day
    daily_power_consumption: OptionalNumber = None  # kWh
    annual_power_consumption: OptionalNumber = None  # kWh
    remarks: str = ""


class VehicleUsage(SurveyModel):
    type: VehicleType = "2 wheeler"
    fuel_type: VehicleFuel = ""
    monthly_usage_km: OptionalNumber = None
    monthly_fuel_consumption: OptionalNumber = None  # litres or kWh
    monthly_fuel_expense: OptionalNumber = None
    remarks: str = ""


class BillEntry(SurveyModel):
    derived_fields: ClassVar[tuple] = ("total",)

    id: str = Field(default_factory=partial(new_identifier, "bill"))
    bill_number: str = ""
    period: str = ""
    consumption: OptionalNumber = None  # kWh
    fixed_charge: OptionalNumber = None
    meter_rent: OptionalNumber = None
    energy_charges: OptionalNumber = None
    duty: OptionalNumber = None
    other_charges: OptionalNumber = None
    total: OptionalNumber = None
    remarks: str = ""


class EquipmentEntry(SurveyModel):
    derived_fields: ClassVar[tuple] = ("energy_consumption_wh",)

    id: str = Field(default_factory=partial(new_identifier, "equip"))
    equipment: str = ""
    daily_usage_hours: OptionalNumber = None
    power_watts: OptionalNumber = None
    energy_consumption_wh: OptionalNumber = None
    remarks: str = ""


class SavingOpportunity(SurveyModel):
    id: str = Field(default_factory=partial(new_identifier, "saving"))
    suggestion: str = ""
    energy_saving_wh: OptionalNumber = None  # per day
    investment: OptionalNumber = None
    payback_months: OptionalNumber = None
    remarks: str = ""


class SurveyRecord(SurveyModel):
    id: Optional[str] = None
    submission_date: Optional[str] = None
    appraiser_info: AppraiserInfo = Field(default_factory=AppraiserInfo)
    electricity_connection: ElectricityConnection = Field(default_factory=ElectricityConnection)
    solar_plant_details: List[SolarPlantDetail] = Field(default_factory=list)
    fuel_for_cooking: List[FuelForCooking] = Field(default_factory=list)
    water_usage: WaterUsage = Field(default_factory=WaterUsage)
    vehicle_usage: List[VehicleUsage] = Field(default_factory=list)
    bill_estimations: List[BillEntry] = Field(default_factory=list)
    equipment_estimations: List[EquipmentEntry] = Field(default_factory=list)
    saving_opportunities: List[SavingOpportunity] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Dict[str, Any], doc_id: Optional[str] = None) -> "SurveyRecord":
        data = dict(document)
        if doc_id is not None:
            data["id"] = doc_id
        return cls.model_validate(data)


# 1:1 sections, keyed by document name
SECTIONS: Dict[str, Type[SurveyModel]] = {
    "appraiserInfo": AppraiserInfo,
    "electricityConnection": ElectricityConnection,
    "waterUsage": WaterUsage,
}

# 1:N lists, keyed by document name
LISTS: Dict[str, Type[SurveyModel]] = {
    "solarPlantDetails": SolarPlantDetail,
    "fuelForCooking": FuelForCooking,
    "vehicleUsage": VehicleUsage,
    "billEstimations": BillEntry,
    "equipmentEstimations": EquipmentEntry,
    "savingOpportunities": SavingOpportunity,
}


def attribute_name(document_name: str) -> str:
    """Map a camelCase section or list name to its SurveyRecord attribute."""
    for name, info in SurveyRecord.model_fields.items():
        if info.alias == document_name or name == document_name:
            return name
    raise KeyError(document_name)


def resolve_field(model_cls: Type[SurveyModel], field: str) -> str:
    """Accept either the camelCase alias or the attribute name of a field."""
    for name, info in model_cls.model_fields.items():
        if field in (name, info.alias):
            return name
    raise KeyError(field)


def has_identifier(model_cls: Type[SurveyModel]) -> bool:
    return "id" in model_cls.model_fields
