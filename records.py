"""
Record utilities for plans, resources and population registries.

Documents come from the shared store with a few historical field spellings
(`lat`/`long` next to `latitude`/`longitude`, `planName` next to `name`,
flat `lat`/`lng` on saved resources). Everything downstream reads records
through the helpers here so the fallbacks live in one place.
"""

from __future__ import annotations

import json
import math
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

DATA_DIR = Path("data")

# Ordered list mirrors the palette exposed by the planning map
RESOURCE_TYPES: List[str] = [
    "school",
    "water",
    "house",
    "road",
    "hospital",
    "fireStation",
    "police",
    "park",
    "mall",
    "restaurant",
    "busStop",
    "gasStation",
    "parking",
    "powerPlant",
    "recycling",
    "tower",
]

RESOURCE_NAMES: Dict[str, str] = {
    "school": "School",
    "water": "Tank",
    "house": "House",
    "road": "Road",
    "hospital": "Hospital",
    "fireStation": "Fire Station",
    "police": "Police Station",
    "park": "Park",
    "mall": "Mall",
    "restaurant": "Restaurant",
    "busStop": "Bus Stop",
    "gasStation": "Gas Station",
    "parking": "Parking",
    "powerPlant": "Power Plant",
    "recycling": "Recycling Center",
    "tower": "Tower",
}

# Service radius in meters offered for each placeable facility
DEFAULT_RESOURCE_RADII_M: Dict[str, float] = {
    "school": 800,
    "water": 500,
    "hospital": 1200,
    "fireStation": 1000,
    "police": 1500,
    "park": 600,
    "mall": 400,
    "busStop": 300,
    "restaurant": 200,
    "gasStation": 250,
    "parking": 150,
    "powerPlant": 2000,
    "recycling": 500,
    "tower": 3000,
}

HOUSE_COLUMNS = ["houseId", "latitude", "longitude", "residents", "students"]


def _utc_now_iso() -> str:
    return pd.Timestamp.now(tz="UTC").isoformat()


def _to_float(value) -> Optional[float]:
    """Coerce a document value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_count(value):
    """Coerce a head count; missing, invalid or negative values count as 0."""
    number = _to_float(value)
    if number is None or number < 0:
        return 0
    if number.is_integer():
        return int(number)
    return number


def resource_display_name(resource_type: str) -> str:
    if not isinstance(resource_type, str):
        return str(resource_type)
    return RESOURCE_NAMES.get(resource_type, resource_type)


def default_resource_name(resource_type: str, idx: int) -> str:
    """Default label for the idx-th (0-based) resource of a type, e.g. 'Tank 2'."""
    return f"{resource_display_name(resource_type)} {idx + 1}"


def resource_letter_label(resource_type: str, idx: int) -> str:
    """Lettered label used in coverage tables: A..Z, then AA, AB, ..."""
    letters = ""
    n = idx
    while True:
        letters = chr(65 + n % 26) + letters
        n = n // 26 - 1
        if n < 0:
            break
    return f"{resource_display_name(resource_type)} {letters}"


def house_coordinates(house: Dict) -> Tuple[Optional[float], Optional[float]]:
    """
    Resolve a house's coordinates.

    Legacy `lat`/`long` fields win over `latitude`/`longitude` when present.

    Args:
        house: Raw house-like record

    Returns:
        (lat, lon) tuple; either element is None when it cannot be resolved
    """
    if not isinstance(house, dict):
        return None, None
    lat = house.get("lat")
    if lat is None:
        lat = house.get("latitude")
    lon = house.get("long")
    if lon is None:
        lon = house.get("longitude")
    return _to_float(lat), _to_float(lon)


def normalize_house(record: Dict) -> Dict:
    """
    Coerce a raw registry record to the canonical house shape.

    Unknown fields are kept; coordinates are written to `latitude` and
    `longitude`, counts default to 0.
    """
    house = dict(record)
    lat, lon = house_coordinates(record)
    house.pop("lat", None)
    house.pop("long", None)
    house["latitude"] = lat
    house["longitude"] = lon
    house["residents"] = coerce_count(record.get("residents"))
    house["students"] = coerce_count(record.get("students"))
    house.setdefault("houseId", None)
    return house


def resource_position(resource: Dict) -> Tuple[Optional[float], Optional[float]]:
    """Resolve a resource's (lat, lng), from `position` or flat fields."""
    if not isinstance(resource, dict):
        return None, None
    position = resource.get("position")
    if isinstance(position, dict):
        return _to_float(position.get("lat")), _to_float(position.get("lng"))
    if isinstance(position, (list, tuple)) and len(position) == 2:
        return _to_float(position[0]), _to_float(position[1])
    return _to_float(resource.get("lat")), _to_float(resource.get("lng"))


def resource_radius(resource: Dict) -> Optional[float]:
    """Service radius in meters, or None when missing or not a positive number."""
    radius = _to_float(resource.get("radius")) if isinstance(resource, dict) else None
    if radius is None or radius <= 0:
        return None
    return radius


def normalize_resource(record: Dict) -> Dict:
    """
    Coerce a stored resource to the shape used by the coverage code.

    Flat `lat`/`lng` fields are folded into `position`; a radius that is
    not a positive number is dropped.
    """
    resource = dict(record)
    lat, lng = resource_position(record)
    resource.pop("lat", None)
    resource.pop("lng", None)
    if lat is None or lng is None:
        resource["position"] = None
    else:
        resource["position"] = {"lat": lat, "lng": lng}

    radius = resource_radius(record)
    if radius is None:
        resource.pop("radius", None)
    else:
        resource["radius"] = radius

    if resource.get("type") == "house":
        resource["residents"] = coerce_count(record.get("residents"))
        resource["students"] = coerce_count(record.get("students"))
    return resource


def plan_display_name(plan: Dict, fallback: str = "Untitled Plan") -> str:
    if not isinstance(plan, dict):
        return fallback
    return plan.get("planName") or plan.get("name") or fallback


def plan_resources(plan: Dict) -> List[Dict]:
    """Return a plan's resources, or an empty list for malformed plans."""
    if not isinstance(plan, dict):
        return []
    resources = plan.get("resources")
    if not isinstance(resources, list):
        return []
    return [r for r in resources if isinstance(r, dict)]


def merge_house_records(primary: Iterable[Dict], secondary: Iterable[Dict]) -> List[Dict]:
    """
    Merge house records from several registries.

    Records are concatenated (primary first) and de-duplicated by `houseId`.
    The first record seen for an id wins and later ones are dropped whole.
    Records without a `houseId`, or with one that cannot be compared
    (a list or object from a hand-edited upload), are always kept.

    Args:
        primary: Records from the shared public registry
        secondary: Records from private registries

    Returns:
        List of the surviving records, unmodified, in first-seen order
    """
    seen = set()
    merged = []
    for record in list(primary or []) + list(secondary or []):
        house_id = record.get("houseId") if isinstance(record, dict) else None
        if not house_id:
            merged.append(record)
            continue
        try:
            duplicate = house_id in seen
        except TypeError:
            merged.append(record)
            continue
        if duplicate:
            continue
        seen.add(house_id)
        merged.append(record)
    return merged


def houses_to_dataframe(houses: Iterable[Dict]) -> pd.DataFrame:
    """
    Build a DataFrame of houses with canonical columns.

    Rows without resolvable coordinates are kept with NaN coordinates so
    the frame lines up with the input sequence.
    """
    rows = [normalize_house(h) for h in houses if isinstance(h, dict)]
    df = pd.DataFrame(rows)
    for col in HOUSE_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    df["residents"] = pd.to_numeric(df["residents"], errors="coerce").fillna(0).astype(int)
    df["students"] = pd.to_numeric(df["students"], errors="coerce").fillna(0).astype(int)
    return df


def generate_house_id(now: Optional[float] = None) -> str:
    """House id in the form used by the planning map, `H<epoch-ms>`."""
    if now is None:
        now = time.time()
    return f"H{int(now * 1000)}"


def load_json_records(path) -> List[Dict]:
    """
    Load a JSON array of records from disk.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the file does not hold a JSON array
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: '{path}'")
    with open(path, "r") as f:
        content = json.load(f)
    if not isinstance(content, list):
        raise ValueError(f"Invalid file format in '{path}'. Expected JSON array.")
    return content


# ---------------------------------------------------------------------------
# Private registries ("databases")
# ---------------------------------------------------------------------------

def _record_key(record: Dict):
    return record.get("houseId") or record.get("id")


def create_database(name: str, data, owner: Dict, now: Optional[str] = None) -> Dict:
    """
    Build a new private registry document from an uploaded record list.

    Args:
        name: Registry display name
        data: Parsed upload; must be a list of records
        owner: Identity dict with `id` and `email`
        now: ISO timestamp override

    Returns:
        Registry document ready to persist

    Raises:
        ValueError: if the name is blank or the upload is not a list
    """
    if not name or not str(name).strip():
        raise ValueError("Please provide a database name.")
    if not isinstance(data, list):
        raise ValueError("Invalid file format. Expected JSON array.")
    now = now or _utc_now_iso()
    return {
        "name": str(name).strip(),
        "userId": owner.get("id"),
        "userEmail": owner.get("email"),
        "data": list(data),
        "collaborators": [],
        "createdAt": now,
        "lastModified": now,
    }


def flatten_database_records(databases: Iterable[Dict]) -> List[Dict]:
    """
    Expand every registry's records into house-like records.

    Each record is tagged with the registry it came from, typed `house`
    unless it says otherwise, and given zero counts when they are missing.
    """
    records = []
    for database in databases or []:
        data = database.get("data") if isinstance(database, dict) else None
        if not isinstance(data, list):
            continue
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                continue
            record = dict(item)
            record["databaseId"] = database.get("id")
            record["databaseName"] = database.get("name")
            record["type"] = item.get("type") or "house"
            record["id"] = _record_key(item) or f"{database.get('id')}_{i}"
            record["residents"] = coerce_count(item.get("residents"))
            record["students"] = coerce_count(item.get("students"))
            records.append(record)
    return records


def _with_data(database: Dict, data: List[Dict], now: Optional[str]) -> Dict:
    updated = dict(database)
    updated["data"] = data
    updated["lastModified"] = now or _utc_now_iso()
    return updated


def add_database_record(database: Dict, record: Dict, now: Optional[str] = None) -> Dict:
    """Return a copy of the registry with `record` appended."""
    return _with_data(database, list(database.get("data") or []) + [record], now)


def update_database_record(database: Dict, record_id, changes: Dict,
                           now: Optional[str] = None) -> Dict:
    """Return a copy of the registry with fields of `record_id` overwritten."""
    data = []
    for item in database.get("data") or []:
        if _record_key(item) == record_id:
            item = {**item, **changes}
        data.append(item)
    return _with_data(database, data, now)


def remove_database_record(database: Dict, record_id, now: Optional[str] = None) -> Dict:
    """Return a copy of the registry without `record_id`."""
    data = [item for item in database.get("data") or [] if _record_key(item) != record_id]
    return _with_data(database, data, now)
