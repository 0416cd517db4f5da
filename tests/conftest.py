import math

import pytest

from coverage_lib import EARTH_RADIUS_M

METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180

SCHOOL_LAT = 15.85
SCHOOL_LNG = 74.49


def north_of(lat, meters):
    """Latitude `meters` due north of `lat` on the haversine sphere."""
    return lat + meters / METERS_PER_DEGREE


@pytest.fixture
def school():
    return {"type": "school", "position": {"lat": SCHOOL_LAT, "lng": SCHOOL_LNG}, "radius": 800}


@pytest.fixture
def village_houses():
    """Three houses 200 m, 500 m and 900 m north of the school."""
    return [
        {"houseId": "H1", "latitude": north_of(SCHOOL_LAT, 200), "longitude": SCHOOL_LNG,
         "residents": 4, "students": 2},
        {"houseId": "H2", "latitude": north_of(SCHOOL_LAT, 500), "longitude": SCHOOL_LNG,
         "residents": 6, "students": 0},
        {"houseId": "H3", "latitude": north_of(SCHOOL_LAT, 900), "longitude": SCHOOL_LNG,
         "residents": 5, "students": 3},
    ]


@pytest.fixture
def private_plan():
    return {
        "id": "p1",
        "planName": "Ward 7",
        "userId": "u-owner",
        "userEmail": "owner@example.com",
        "collaborators": ["friend@example.com"],
        "isPublic": False,
        "resources": [],
    }
