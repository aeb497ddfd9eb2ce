# seed_master.py
"""Create the admin account and, optionally, a demo survey.

    python seed_master.py [--email EMAIL] [--demo]

The password is read from ADMIN_PASSWORD or prompted for.
"""
import argparse
import getpass
import logging
import os

import config
from auth import hash_password
from database import create_survey, create_user
from models import SurveyRecord

logger = logging.getLogger("seed_master")

DEMO_SURVEY = {
    "submissionDate": "2025-08-01T10:00:00+00:00",
    "appraiserInfo": {
        "name": "Ashwin Harikumar",
        "enrollmentId": "SCM23CS077",
        "unitNo": "Unit-328",
        "collegeName": "SCMS School of Engineering and Technology",
    },
    "electricityConnection": {
        "consumerName": "Vijayalakshmi",
        "familyMembers": 6,
        "consumerNumber": "1156047011364",
        "tariffCategory": "LT-1",
        "electricalSection": "Electrical Section North Paravur",
        "connectedLoadWatts": 6790,
        "connectionNature": "Three Phase",
        "buildingType": "Concrete",
        "ownership": "Own",
        "floors": 2,
        "buildingArea": 2000,
        "earthingType": "Pipe",
        "controlSystems": "ELCB",
        "mcbCount": 6,
        "energyMeterType": "Digital",
        "solarInstalled": "Yes",
    },
    "solarPlantDetails": [
        {"id": "solar-demo", "type": "On grid", "installedCapacity": 3,
         "remarks": "Operational since April 2021"},
    ],
    "billEstimations": [
        {"id": "b1", "billNumber": "5604250502814", "period": "May 2025", "consumption": 134,
         "fixedCharge": 310, "meterRent": 35, "energyCharges": 561.9, "duty": 56.19,
         "otherCharges": 10.72, "total": 974, "remarks": ""},
        {"id": "b2", "billNumber": "5604250600505", "period": "June 2025", "consumption": 158,
         "fixedCharge": 260, "meterRent": 35, "energyCharges": 705.1, "duty": 70.51,
         "otherCharges": 7.9, "total": 1079, "remarks": ""},
        {"id": "b3", "billNumber": "5604250700577", "period": "July 2025", "consumption": 161,
         "fixedCharge": 235, "meterRent": 35, "energyCharges": 0, "duty": 0,
         "otherCharges": 0, "total": 270,
         "remarks": "No energy charge listed; likely covered by solar export"},
    ],
    "waterUsage": {"source": "Municipal water"},
}


def seed_admin(email: str, password: str) -> bool:
    user = create_user(email, hash_password(password))
    if user is None:
        logger.warning("Admin user %s already exists", email)
        return False
    logger.info("Admin user %s created", email)
    return True


def seed_demo_survey() -> str:
    survey_id = create_survey(SurveyRecord.from_document(DEMO_SURVEY))
    logger.info("Demo survey %s created", survey_id)
    return survey_id


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the survey database")
    parser.add_argument("--email", default=config.ADMIN_EMAIL)
    parser.add_argument("--demo", action="store_true", help="also load the demo survey")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s | %(message)s")
    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass(f"Password for {args.email}: ")
    seed_admin(args.email, password)
    if args.demo:
        seed_demo_survey()


if __name__ == "__main__":
    main()
