"""
Plan Analytics Module

Rolls a plan's resources up into plan-level metrics:
- Resource counts per analytics bucket
- Population headcount, household size and school load
- Infrastructure score (0-10)
- Rule-based recommendations

The metric names are the contract of the PDF/JSON export and must not change.

Only seven buckets are tracked (house, school, water, road, hospital, park,
other). The remaining placeable types (fireStation, police, mall,
restaurant, busStop, gasStation, parking, powerPlant, recycling, tower) are
counted under "other" and do not contribute to the infrastructure score.
"""

from typing import Dict, List, Optional

import pandas as pd

from coverage_lib import aggregate_stats
from records import coerce_count, plan_display_name, plan_resources

ANALYTICS_BUCKETS = ["house", "school", "water", "road", "hospital", "park", "other"]

# Weight per essential facility, score is clamped to [0, MAX_INFRASTRUCTURE_SCORE]
INFRASTRUCTURE_WEIGHT = 2
MAX_INFRASTRUCTURE_SCORE = 10

# Rough multiplier, not an area-based density
POPULATION_DENSITY_MULTIPLIER = 100

# Recommendation thresholds
MAX_AVG_HOUSEHOLD_SIZE = 6
MAX_STUDENTS_PER_SCHOOL = 100
MIN_INFRASTRUCTURE_SCORE = 5
LARGE_POPULATION = 1000

RECOMMENDATION_HOUSING = "Consider housing density regulations as average household size is high"
RECOMMENDATION_SCHOOLS = "Additional schools may be needed to serve the student population"
RECOMMENDATION_INFRASTRUCTURE = "Infrastructure development needed - focus on essential services"
RECOMMENDATION_HEALTHCARE = "Large population area - ensure adequate healthcare and emergency services"
RECOMMENDATION_BALANCED = "Plan appears well-balanced with good resource distribution"

EXPORT_VERSION = "1.0"


def get_resource_counts(resources: List[Dict]) -> Dict:
    """
    Count resources per analytics bucket.

    Args:
        resources: Plan resources

    Returns:
        Dictionary with one count per bucket plus `totalResidents` and
        `totalStudents` (summed from house resources only)
    """
    counts = {bucket: 0 for bucket in ANALYTICS_BUCKETS}
    counts["totalResidents"] = 0
    counts["totalStudents"] = 0

    for resource in resources or []:
        if not isinstance(resource, dict):
            continue
        resource_type = resource.get("type") or "other"
        if resource_type in ANALYTICS_BUCKETS:
            counts[resource_type] += 1
        else:
            counts["other"] += 1

        if resource_type == "house":
            counts["totalResidents"] += coerce_count(resource.get("residents"))
            counts["totalStudents"] += coerce_count(resource.get("students"))

    return counts


def summarize(resources: List[Dict]) -> Dict:
    """
    Compute plan-level analytics.

    Args:
        resources: Plan resources

    Returns:
        Dictionary with totalResidents, totalStudents, avgHouseholdSize,
        populationDensity, schoolCoverageRatio and infrastructureScore
    """
    counts = get_resource_counts(resources)
    total_houses = max(counts["house"], 1)
    total_schools = max(counts["school"], 1)

    essential = counts["school"] + counts["water"] + counts["hospital"]
    score = min(MAX_INFRASTRUCTURE_SCORE, essential * INFRASTRUCTURE_WEIGHT)

    return {
        "totalResidents": counts["totalResidents"],
        "totalStudents": counts["totalStudents"],
        "avgHouseholdSize": counts["totalResidents"] / total_houses,
        "populationDensity": counts["totalResidents"] * POPULATION_DENSITY_MULTIPLIER,
        "schoolCoverageRatio": counts["totalStudents"] / total_schools,
        "infrastructureScore": max(0, score),
    }


def generate_recommendations(analytics: Dict) -> List[str]:
    """
    Generate recommendations from plan analytics.

    Every rule is checked independently, in a fixed order. The
    well-balanced message is returned only when no other rule fires.
    """
    recommendations = []

    if analytics.get("avgHouseholdSize", 0) > MAX_AVG_HOUSEHOLD_SIZE:
        recommendations.append(RECOMMENDATION_HOUSING)

    if analytics.get("schoolCoverageRatio", 0) > MAX_STUDENTS_PER_SCHOOL:
        recommendations.append(RECOMMENDATION_SCHOOLS)

    if analytics.get("infrastructureScore", 0) < MIN_INFRASTRUCTURE_SCORE:
        recommendations.append(RECOMMENDATION_INFRASTRUCTURE)

    if analytics.get("totalResidents", 0) > LARGE_POPULATION:
        recommendations.append(RECOMMENDATION_HEALTHCARE)

    if not recommendations:
        recommendations.append(RECOMMENDATION_BALANCED)

    return recommendations


def build_plan_export(plan: Dict, houses: Optional[List[Dict]] = None,
                      now: Optional[str] = None) -> Dict:
    """
    Build the JSON export document for a plan.

    Args:
        plan: Plan record
        houses: Merged house registry; when given, per-resource coverage is
            included under analytics.byResource
        now: ISO timestamp override for `exportedAt`

    Returns:
        Export document (planMetadata, resources, databaseSources, analytics)
    """
    resources = plan_resources(plan)
    analytics = summarize(resources)

    export_analytics = {
        "totalResources": len(resources),
        "exportedAt": now or pd.Timestamp.now(tz="UTC").isoformat(),
        **analytics,
        "recommendations": generate_recommendations(analytics),
    }
    if houses is not None:
        export_analytics["byResource"] = aggregate_stats(resources, houses)

    return {
        "planMetadata": {
            "id": plan.get("id"),
            "name": plan_display_name(plan),
            "description": plan.get("description") or "",
            "createdBy": plan.get("userEmail") or "Unknown User",
            "createdAt": plan.get("createdAt"),
            "lastModified": plan.get("lastModified") or plan.get("createdAt"),
            "version": EXPORT_VERSION,
            "collaborators": list(plan.get("collaborators") or []),
        },
        "resources": resources,
        "databaseSources": list(plan.get("databaseSources") or []),
        "analytics": export_analytics,
    }


def export_file_name(plan: Dict, now: Optional[pd.Timestamp] = None) -> str:
    """File name for a JSON export, e.g. `My_Plan_2025-01-31.json`."""
    now = now or pd.Timestamp.now(tz="UTC")
    safe_name = "".join(c if c.isalnum() else "_" for c in (plan.get("planName") or "plan"))
    return f"{safe_name}_{now.strftime('%Y-%m-%d')}.json"


def print_analytics_summary(plan: Dict, stats: List[Dict], analytics: Dict,
                            recommendations: List[str]):
    """
    Print formatted summary of a plan's coverage and analytics.

    Args:
        plan: Plan record
        stats: Output of aggregate_stats()
        analytics: Output of summarize()
        recommendations: Output of generate_recommendations()
    """
    print("\n" + "="*70)
    print(f"PLAN QUALITY SCORE: {plan_display_name(plan)}")
    print("="*70)

    if not stats:
        print("No resources placed in this plan.")
    for stat in stats:
        print(f"\n{stat['label']}")
        print(f"  Houses Covered:    {stat['housesCovered']}")
        print(f"  Residents Covered: {stat['residentsCovered']}")
        if "studentsCovered" in stat:
            print(f"  Students Covered:  {stat['studentsCovered']}")

    print("\n" + "="*70)
    print("PLAN ANALYTICS")
    print("="*70)
    print(f"Plan Quality Score:      {analytics['infrastructureScore']:.1f} / 10")
    print(f"Total Population:        {analytics['totalResidents']}")
    print(f"Student Population:      {analytics['totalStudents']}")
    print(f"Average Household Size:  {analytics['avgHouseholdSize']:.1f}")
    print(f"Population Density:      {analytics['populationDensity']:.0f} per sq km")
    print(f"School Coverage Ratio:   1:{analytics['schoolCoverageRatio']:.0f}")

    print("\nRecommendations:")
    for i, rec in enumerate(recommendations, 1):
        print(f"  {i}. {rec}")
    print("="*70)
