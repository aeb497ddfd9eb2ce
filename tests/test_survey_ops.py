"""
Unit tests for record edit operations
"""

from datetime import datetime, timezone

import pytest

from errors import DerivedFieldError, FieldError, ItemNotFoundError, ManualEntryRequired
from survey_ops import (
    COMMON_APPLIANCES,
    append_item,
    append_preset_equipment,
    apply_bill_extraction,
    finalize,
    new_survey,
    parse_list_key,
    remove_item,
    replace_record,
    update_item,
    update_section,
)


class TestNewSurvey:

    def test_everything_unset(self):
        record = new_survey()
        assert record.id is None
        assert record.submission_date is None
        assert record.electricity_connection.building_area is None
        assert record.bill_estimations == []
        assert record.water_usage.daily_power_consumption is None


class TestUpdateSection:

    def test_sets_field_by_document_name(self):
        record = update_section(new_survey(), "electricityConnection", "consumerName", "Vijayalakshmi")
        assert record.electricity_connection.consumer_name == "Vijayalakshmi"

    def test_does_not_mutate_input(self):
        original = new_survey()
        update_section(original, "appraiserInfo", "name", "Ashwin")
        assert original.appraiser_info.name == ""

    def test_blank_number_means_unset(self):
        record = update_section(new_survey(), "electricityConnection", "buildingArea", "")
        assert record.electricity_connection.building_area is None

    def test_water_rule_runs_on_edit(self):
        record = new_survey()
        for field, value in (("pumpCapacity", 0.5), ("fillTime", 2), ("pumpFrequency", 3)):
            record = update_section(record, "waterUsage", field, value)
        assert record.water_usage.daily_power_consumption == 2.238
        assert record.water_usage.annual_power_consumption == 816.87

        record = update_section(record, "waterUsage", "fillTime", "")
        assert record.water_usage.daily_power_consumption is None
        assert record.water_usage.annual_power_consumption is None

    def test_derived_field_cannot_be_set(self):
        with pytest.raises(DerivedFieldError):
            update_section(new_survey(), "waterUsage", "dailyPowerConsumption", 5)

    def test_unknown_section(self):
        with pytest.raises(FieldError):
            update_section(new_survey(), "garden", "size", 1)

    def test_unknown_field(self):
        with pytest.raises(FieldError):
            update_section(new_survey(), "appraiserInfo", "favouriteColour", "blue")

    def test_invalid_choice(self):
        with pytest.raises(FieldError):
            update_section(new_survey(), "electricityConnection", "connectionNature", "Four Phase")


class TestListOperations:

    def test_append_assigns_unique_ids(self):
        record = append_item(new_survey(), "billEstimations")
        record = append_item(record, "billEstimations")
        ids = [b.id for b in record.bill_estimations]
        assert len(set(ids)) == 2
        assert all(i.startswith("bill-") for i in ids)

    def test_append_defaults(self):
        record = append_item(new_survey(), "fuelForCooking")
        record = append_item(record, "vehicleUsage")
        assert record.fuel_for_cooking[0].type == "Firewood"
        assert record.fuel_for_cooking[0].units == "Kg"
        assert record.vehicle_usage[0].type == "2 wheeler"

    def test_append_with_charges_computes_total(self):
        record = append_item(new_survey(), "billEstimations", {"fixedCharge": 235, "meterRent": 35})
        assert record.bill_estimations[0].total == 270

    def test_append_rejects_derived_field(self):
        with pytest.raises(DerivedFieldError):
            append_item(new_survey(), "billEstimations", {"total": 100})

    def test_append_unknown_list(self):
        with pytest.raises(FieldError):
            append_item(new_survey(), "pets")

    def test_preset_equipment(self):
        record = append_preset_equipment(new_survey(), "Ceiling Fan")
        entry = record.equipment_estimations[0]
        assert entry.power_watts == COMMON_APPLIANCES["Ceiling Fan"]
        assert entry.daily_usage_hours is None
        assert entry.energy_consumption_wh == 0

    def test_unknown_preset(self):
        with pytest.raises(FieldError):
            append_preset_equipment(new_survey(), "Flux Capacitor")

    def test_update_reruns_row_rule_only(self):
        record = append_item(new_survey(), "billEstimations", {"fixedCharge": 10})
        record = append_item(record, "billEstimations", {"fixedCharge": 20})
        record = update_item(record, "billEstimations", 1, "duty", 5)
        assert record.bill_estimations[0].total == 10
        assert record.bill_estimations[1].total == 25

    def test_update_non_charge_field_keeps_total(self):
        record = append_item(new_survey(), "billEstimations", {"fixedCharge": 10})
        record = update_item(record, "billEstimations", 0, "period", "May 2025")
        assert record.bill_estimations[0].total == 10

    def test_update_equipment(self):
        record = append_preset_equipment(new_survey(), "Iron Box")
        record = update_item(record, "equipmentEstimations", 0, "dailyUsageHours", 0.5)
        assert record.equipment_estimations[0].energy_consumption_wh == 500

    def test_update_total_is_rejected(self):
        record = append_item(new_survey(), "billEstimations")
        with pytest.raises(DerivedFieldError):
            update_item(record, "billEstimations", 0, "total", 1)

    def test_update_id_is_rejected(self):
        record = append_item(new_survey(), "billEstimations")
        with pytest.raises(FieldError):
            update_item(record, "billEstimations", 0, "id", "x")

    def test_update_out_of_range(self):
        with pytest.raises(ItemNotFoundError):
            update_item(new_survey(), "billEstimations", 0, "period", "May")

    def test_list_is_replaced_not_mutated(self):
        before = append_item(new_survey(), "billEstimations")
        after = update_item(before, "billEstimations", 0, "period", "May")
        assert before.bill_estimations is not after.bill_estimations
        assert before.bill_estimations[0].period == ""

    def test_remove_by_id(self, sample_record):
        record = remove_item(sample_record, "billEstimations", item_id="b2")
        assert [b.id for b in record.bill_estimations] == ["b1", "b3"]
        assert len(sample_record.bill_estimations) == 3

    def test_remove_unknown_id(self, sample_record):
        with pytest.raises(ItemNotFoundError):
            remove_item(sample_record, "billEstimations", item_id="nope")

    def test_remove_by_index_for_lists_without_ids(self):
        record = append_item(new_survey(), "vehicleUsage", {"type": "Car"})
        record = append_item(record, "vehicleUsage", {"type": "3 wheeler"})
        record = remove_item(record, "vehicleUsage", index=0)
        assert [v.type for v in record.vehicle_usage] == ["3 wheeler"]

    def test_parse_list_key(self):
        assert parse_list_key("billEstimations", "b1") == {"item_id": "b1"}
        assert parse_list_key("fuelForCooking", "2") == {"index": 2}
        with pytest.raises(FieldError):
            parse_list_key("fuelForCooking", "abc")


class TestBillExtraction:

    CONNECTION = {"consumerName": "Vijayalakshmi", "consumerNumber": "1156047011364", "solarInstalled": "Yes"}
    BILL = {"billNumber": "5604250502814", "period": "May 2025", "consumption": 134,
            "fixedCharge": 310, "total": 974, "remarks": ""}

    def test_stage_one_merges_connection_bill_and_solar(self):
        record, added = apply_bill_extraction(new_survey(), self.CONNECTION, self.BILL)
        assert added is True
        assert record.electricity_connection.consumer_name == "Vijayalakshmi"
        assert record.bill_estimations[0].consumption == 134
        assert record.bill_estimations[0].total == 974
        assert record.bill_estimations[0].remarks == "Extracted from PDF"
        assert record.solar_plant_details[0].type == "On grid"

    def test_existing_solar_rows_are_kept(self, sample_record):
        record = append_item(sample_record, "solarPlantDetails", {"type": "Hybrid"})
        record, _ = apply_bill_extraction(record, self.CONNECTION, self.BILL)
        assert [s.type for s in record.solar_plant_details] == ["Hybrid"]

    def test_stage_one_without_consumption_skips_bill(self):
        record, added = apply_bill_extraction(new_survey(), self.CONNECTION, {**self.BILL, "consumption": 0})
        assert added is False
        assert record.bill_estimations == []
        assert record.electricity_connection.consumer_number == "1156047011364"

    def test_stage_four_appends_bill_only(self):
        record, added = apply_bill_extraction(new_survey(), self.CONNECTION, self.BILL, include_connection=False)
        assert added is True
        assert record.electricity_connection.consumer_name == ""
        assert record.solar_plant_details == []

    def test_stage_four_without_consumption_asks_for_manual_entry(self):
        original = new_survey()
        with pytest.raises(ManualEntryRequired):
            apply_bill_extraction(original, {}, {**self.BILL, "consumption": 0}, include_connection=False)
        assert original.bill_estimations == []

    def test_keeps_remarks_from_extraction(self):
        record, _ = apply_bill_extraction(new_survey(), {}, {**self.BILL, "remarks": "Net metered"})
        assert record.bill_estimations[0].remarks == "Net metered"


class TestFinalizeAndReplace:

    def test_finalize_stamps_once(self):
        now = datetime(2025, 8, 1, 10, tzinfo=timezone.utc)
        record = finalize(new_survey(), now=now)
        assert record.submission_date == now.isoformat()
        assert finalize(record).submission_date == now.isoformat()

    def test_replace_record_keeps_identity(self, sample_record):
        stored = finalize(sample_record.model_copy(update={"id": "abc"}))
        amended = replace_record(stored, {
            "id": "other",
            "submissionDate": "1999-01-01",
            "appraiserInfo": {"name": "New Appraiser"},
        })
        assert amended.id == "abc"
        assert amended.submission_date == stored.submission_date
        assert amended.appraiser_info.name == "New Appraiser"
        assert amended.appraiser_info.enrollment_id == ""
        assert amended.bill_estimations == stored.bill_estimations

    def test_replace_record_validates(self, sample_record):
        with pytest.raises(FieldError):
            replace_record(sample_record, {"electricityConnection": {"ownership": "Leased"}})

    def test_amend_recomputes_changed_pump(self):
        record = new_survey()
        for field, value in (("pumpCapacity", 0.5), ("fillTime", 2), ("pumpFrequency", 3)):
            record = update_section(record, "waterUsage", field, value)
        water = record.water_usage.to_document()
        amended = replace_record(record, {"waterUsage": {**water, "pumpCapacity": 1.0}})
        assert amended.water_usage.daily_power_consumption == 4.476
        assert amended.water_usage.annual_power_consumption == round(4.476 * 365, 2)

    def test_amend_ignores_client_pump_energy(self):
        record = update_section(new_survey(), "waterUsage", "pumpCapacity", 0.5)
        water = record.water_usage.to_document()
        amended = replace_record(record, {"waterUsage": {**water, "dailyPowerConsumption": 50}})
        assert amended.water_usage.daily_power_consumption is None

    def test_amend_recomputes_changed_bill(self, sample_record):
        bills = [b.to_document() for b in sample_record.bill_estimations]
        bills[0] = {**bills[0], "fixedCharge": 100, "total": 99999}
        amended = replace_record(sample_record, {"billEstimations": bills})
        assert amended.bill_estimations[0].total == 100
        assert amended.bill_estimations[1].total == 1079

    def test_amend_keeps_stored_total_when_charges_unchanged(self, sample_record):
        bills = [b.to_document() for b in sample_record.bill_estimations]
        bills[0] = {**bills[0], "period": "May-Jun 2025", "total": 1}
        amended = replace_record(sample_record, {"billEstimations": bills})
        assert amended.bill_estimations[0].total == 974
        assert amended.bill_estimations[0].period == "May-Jun 2025"

    def test_amend_new_rows_are_derived(self, sample_record):
        amended = replace_record(sample_record, {
            "billEstimations": [{"fixedCharge": 235, "meterRent": 35, "total": 5}, {"period": "Aug", "total": 7}],
            "equipmentEstimations": [{"equipment": "Fan", "dailyUsageHours": 8, "powerWatts": 75,
                                      "energyConsumptionWh": 1}],
        })
        assert [b.total for b in amended.bill_estimations] == [270, None]
        assert amended.equipment_estimations[0].energy_consumption_wh == 600

    def test_amend_recomputes_changed_equipment(self, sample_record):
        rows = [e.to_document() for e in sample_record.equipment_estimations]
        rows[2] = {**rows[2], "dailyUsageHours": 10}
        amended = replace_record(sample_record, {"equipmentEstimations": rows})
        assert amended.equipment_estimations[2].energy_consumption_wh == 90
        assert amended.equipment_estimations[0].energy_consumption_wh == 4800
