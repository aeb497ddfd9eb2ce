"""
Tests for the JSON file store
"""

import pytest

import database
from errors import DatabaseError
from models import SurveyRecord


class TestSurveys:

    def test_missing_file_reads_empty(self, db_file):
        assert database.read_db() == {"users": [], "surveys": {}}
        assert database.get_surveys() == []

    def test_create_and_fetch(self, db_file, sample_record):
        survey_id = database.create_survey(sample_record)
        assert db_file.exists()

        stored = database.get_survey(survey_id)
        assert stored.id == survey_id
        assert stored.bill_estimations == sample_record.bill_estimations
        assert [s.id for s in database.get_surveys()] == [survey_id]

    def test_identifier_is_not_stored_in_document(self, db_file, sample_record):
        survey_id = database.create_survey(sample_record.model_copy(update={"id": "client-side"}))
        assert "id" not in database.read_db()["surveys"][survey_id]

    def test_unset_numbers_stored_as_null(self, db_file):
        survey_id = database.create_survey(SurveyRecord())
        document = database.read_db()["surveys"][survey_id]
        assert document["electricityConnection"]["buildingArea"] is None

    def test_get_unknown(self, db_file):
        assert database.get_survey("missing") is None

    def test_update(self, db_file, sample_record):
        survey_id = database.create_survey(sample_record)
        amended = sample_record.model_copy(update={"bill_estimations": []})
        database.update_survey(survey_id, amended)
        assert database.get_survey(survey_id).bill_estimations == []

    def test_update_unknown(self, db_file, sample_record):
        with pytest.raises(DatabaseError):
            database.update_survey("missing", sample_record)

    def test_corrupt_file(self, db_file):
        db_file.write_text("{not json")
        with pytest.raises(DatabaseError):
            database.get_surveys()


class TestUsers:

    def test_create_user(self, db_file):
        user = database.create_user("admin@example.org", "hash")
        assert user["id"] == 1
        assert user["is_active"] == 1
        assert database.get_user_by_username("admin@example.org")["password_hash"] == "hash"

    def test_duplicate_username(self, db_file):
        database.create_user("admin@example.org", "hash")
        assert database.create_user("admin@example.org", "other") is None

    def test_unknown_user(self, db_file):
        assert database.get_user_by_username("nobody") is None
