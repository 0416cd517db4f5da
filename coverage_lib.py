"""
Coverage Analysis Library

Core functions for analyzing how well placed facilities serve a village.
Provides reusable methods for:
- Loading and merging house registries
- Computing which houses fall inside a facility's service radius
- Aggregating per-facility coverage (houses, residents, students)
- Overall coverage and uncovered houses for a plan

Distances are great-circle (haversine) distances in meters. No special
handling for the antimeridian or the poles; plans are village sized.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional

from records import (
    coerce_count,
    house_coordinates,
    load_json_records,
    merge_house_records,
    normalize_resource,
    plan_resources,
    resource_letter_label,
)

# Constants
EARTH_RADIUS_M = 6_371_000


def haversine_distance_m(lat1, lon1, lat2, lon2):
    """
    Calculate haversine distance between points in meters.

    Works on scalars or numpy arrays (broadcast element-wise).

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters (float for scalar input, ndarray otherwise)
    """
    lat1_rad = np.deg2rad(np.asarray(lat1, dtype=np.float64))
    lon1_rad = np.deg2rad(np.asarray(lon1, dtype=np.float64))
    lat2_rad = np.deg2rad(np.asarray(lat2, dtype=np.float64))
    lon2_rad = np.deg2rad(np.asarray(lon2, dtype=np.float64))

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon/2)**2
    c = 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))

    distance = c * EARTH_RADIUS_M
    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def house_coordinate_array(houses: List[Dict]) -> np.ndarray:
    """(n, 2) array of house (lat, lon); unresolvable coordinates are NaN."""
    return np.array(
        [[np.nan if v is None else v for v in house_coordinates(h)] for h in houses],
        dtype=np.float64,
    ).reshape(-1, 2)


def coverage_mask(resource: Dict, coords: np.ndarray) -> np.ndarray:
    """
    Boolean mask of the coordinates inside a resource's service radius.

    Args:
        resource: Resource with `position` ({lat, lng}) and `radius` (meters)
        coords: Array from `house_coordinate_array`

    Returns:
        One flag per row of `coords`; all False when the resource has no
        position or no positive radius
    """
    resource = normalize_resource(resource) if isinstance(resource, dict) else {}
    position = resource.get("position")
    radius = resource.get("radius")
    if not position or radius is None or len(coords) == 0:
        return np.zeros(len(coords), dtype=bool)

    dist_m = haversine_distance_m(position["lat"], position["lng"], coords[:, 0], coords[:, 1])

    # NaN distances (unresolvable coordinates) compare False
    return dist_m <= radius


def houses_covered_by(resource: Dict, houses: List[Dict]) -> List[Dict]:
    """
    Find the houses inside a resource's service radius.

    Args:
        resource: Resource with `position` ({lat, lng}) and `radius` (meters)
        houses: House-like records (`lat`/`long` or `latitude`/`longitude`)

    Returns:
        The covered house records, in input order. Empty when the resource
        has no position or no positive radius.
    """
    houses = list(houses or [])
    covered_mask = coverage_mask(resource, house_coordinate_array(houses))
    return [house for house, covered in zip(houses, covered_mask) if covered]


def _coverage_entry(resource: Dict, houses: List[Dict]) -> Dict:
    covered = houses_covered_by(resource, houses)
    resource_type = resource.get("type")
    entry = {
        "type": resource_type,
        "name": resource.get("name"),
        "housesCovered": len(covered),
        "residentsCovered": sum(_count(h, "residents") for h in covered),
    }
    if resource_type == "school":
        entry["studentsCovered"] = sum(_count(h, "students") for h in covered)
    entry["coveredHouses"] = [h.get("houseId") for h in covered]
    return entry


def _count(house: Dict, field: str):
    return coerce_count(house.get(field))


def aggregate_stats(resources: List[Dict], houses: List[Dict]) -> List[Dict]:
    """
    Compute coverage statistics for every resource in a plan.

    Resources are grouped by type (types in first-seen order, resources in
    encounter order within a type). A missing or non-string type is grouped
    as "other".

    Args:
        resources: Placed resources (stored or canonical shape)
        houses: House-like records to test against

    Returns:
        One dict per resource with `type`, `index` (0-based within its type),
        `label`, `name`, `housesCovered`, `residentsCovered`, `coveredHouses`
        and, for schools only, `studentsCovered`.
    """
    grouped: Dict[str, List[Dict]] = {}
    for res in resources or []:
        if not isinstance(res, dict):
            continue
        resource = normalize_resource(res)
        resource_type = resource.get("type")
        if not resource_type or not isinstance(resource_type, str):
            resource_type = resource["type"] = "other"
        grouped.setdefault(resource_type, []).append(resource)

    stats = []
    for resource_type, group in grouped.items():
        for i, resource in enumerate(group):
            entry = _coverage_entry(resource, houses)
            entry["index"] = i
            entry["label"] = resource_letter_label(resource_type, i)
            stats.append(entry)
    return stats


def resource_quality(resource: Dict, houses: List[Dict]) -> Optional[Dict]:
    """
    Coverage statistics for a single selected resource.

    Returns None when the resource has no service radius.
    """
    if not isinstance(resource, dict):
        return None
    resource = normalize_resource(resource)
    if resource.get("radius") is None:
        return None
    return _coverage_entry(resource, houses)


def stats_to_dataframe(stats: List[Dict]) -> pd.DataFrame:
    """Tabular view of `aggregate_stats` output for display."""
    columns = ["label", "type", "housesCovered", "residentsCovered", "studentsCovered"]
    df = pd.DataFrame(stats)
    for col in columns:
        if col not in df.columns:
            df[col] = np.nan
    return df[columns]


class CoverageAnalyzer:
    """Coverage analysis for plans against a merged house registry."""

    def __init__(self):
        self.houses = None

    def add_houses(self, records: List[Dict]) -> List[Dict]:
        """
        Merge further house records into the registry.

        Records already loaded win over later ones with the same `houseId`.

        Args:
            records: House-like records

        Returns:
            The merged house list
        """
        self.houses = merge_house_records(self.houses or [], records)
        return self.houses

    def load_houses(self, path) -> List[Dict]:
        """
        Load houses from a JSON array file and merge them into the registry.

        Args:
            path: Path to a JSON file holding a list of house records

        Returns:
            The merged house list
        """
        print(f"Loading houses from {path}...")
        records = load_json_records(path)
        before = len(self.houses or [])
        self.add_houses(records)
        added = len(self.houses) - before
        if added < len(records):
            print(f"  Skipped {len(records) - added} duplicate houses")
        print(f"Loaded {added} houses")
        return self.houses

    def _require_houses(self):
        if self.houses is None:
            raise ValueError("No houses loaded. Call load_houses() first.")

    def compute_plan_coverage(self, plan: Dict) -> List[Dict]:
        """Per-resource coverage for every resource in a plan."""
        self._require_houses()
        return aggregate_stats(plan_resources(plan), self.houses)

    def compute_resource_quality(self, resource: Dict) -> Optional[Dict]:
        """Coverage for one selected resource (None without a radius)."""
        self._require_houses()
        return resource_quality(resource, self.houses)

    def _covered_mask(self, resources: List[Dict]) -> np.ndarray:
        coords = house_coordinate_array(self.houses)
        mask = np.zeros(len(self.houses), dtype=bool)
        for resource in resources:
            mask |= coverage_mask(resource, coords)
        return mask

    def compute_basic_coverage(self, plan: Dict) -> Dict:
        """
        Compute overall coverage (% of residents within reach of any facility).

        Args:
            plan: Plan record

        Returns:
            Dictionary with covered/uncovered/total residents and coverage_pct
        """
        self._require_houses()
        mask = self._covered_mask(plan_resources(plan))
        residents = np.array([_count(h, "residents") for h in self.houses], dtype=float)

        total_people = residents.sum()
        covered_people = residents[mask].sum()
        coverage_pct = (covered_people / total_people * 100) if total_people > 0 else 0

        return {
            'covered': float(covered_people),
            'uncovered': float(total_people - covered_people),
            'total': float(total_people),
            'coverage_pct': float(coverage_pct),
            'houses_covered': int(mask.sum()),
            'houses_total': len(self.houses),
        }

    def find_uncovered_houses(self, plan: Dict) -> List[Dict]:
        """Houses not reached by any facility in the plan."""
        self._require_houses()
        mask = self._covered_mask(plan_resources(plan))
        return [house for house, covered in zip(self.houses, mask) if not covered]
