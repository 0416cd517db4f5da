"""
Plan lifecycle helpers: preparing saves and tracking status.

Saves are last-write-wins. Every save replaces the plan's resource list
wholesale; there is no merge between concurrent editors.
"""

from typing import Dict, Iterable, List, Optional

import pandas as pd

from records import default_resource_name, resource_position, resource_radius

DEFAULT_STATUS = "draft"
COMPLETED_STATUS = "completed"
ACTIVE_STATUS = "active"


class PlanSaveError(ValueError):
    """Raised when a plan cannot be saved as requested."""


def _now_iso() -> str:
    return pd.Timestamp.now(tz="UTC").isoformat()


def format_resources_for_save(resources: Iterable[Dict]) -> List[Dict]:
    """
    Convert placed resources to the stored shape.

    Resources without a numeric position are dropped, as are radii that are
    not positive numbers. Each stored resource gets a default name from its
    type and position in the saved list.
    """
    formatted = []
    for res in resources or []:
        if not isinstance(res, dict):
            continue
        lat, lng = resource_position(res)
        if lat is None or lng is None:
            continue
        base = {
            "type": res.get("type"),
            "name": default_resource_name(res.get("type"), len(formatted)),
            "lat": lat,
            "lng": lng,
        }
        radius = resource_radius(res)
        if radius is not None:
            base["radius"] = radius
        if res.get("type") == "house":
            for field in ("residents", "students"):
                if field in res:
                    base[field] = res[field]
        formatted.append(base)
    return formatted


def prepare_plan_for_save(plan: Dict, user: Optional[Dict], existing: bool = False,
                          now: Optional[str] = None) -> Dict:
    """
    Build the document written to the store on save.

    Args:
        plan: Plan fields from the editor (planName, center, resources, ...)
        user: Logged-in identity dict with `id` and `email`
        existing: True when updating a saved plan, False on first save
        now: ISO timestamp override

    Returns:
        Plan document to write

    Raises:
        PlanSaveError: if nobody is logged in or no resource has a position
    """
    if not user or not user.get("id"):
        raise PlanSaveError("User not logged in")

    resources = format_resources_for_save(plan.get("resources"))
    if not resources:
        raise PlanSaveError("Please place at least one resource on the map before saving.")

    now = now or _now_iso()
    document = dict(plan)
    document["resources"] = resources
    document["lastModified"] = now
    document["lastModifiedBy"] = user["id"]

    if not existing:
        document["userId"] = user["id"]
        document["userEmail"] = user.get("email")
        document["createdAt"] = now
        document["collaborators"] = []
        document.setdefault("status", DEFAULT_STATUS)
    return document


def plan_status(plan: Dict) -> str:
    return plan.get("status") or DEFAULT_STATUS


def toggle_plan_status(plan: Dict, now: Optional[str] = None) -> Dict:
    """Mark a plan completed, or back to active if it already is."""
    updated = dict(plan)
    updated["status"] = ACTIVE_STATUS if plan_status(plan) == COMPLETED_STATUS else COMPLETED_STATUS
    updated["lastModified"] = now or _now_iso()
    return updated


def plan_status_counts(plans: Iterable[Dict]) -> Dict[str, int]:
    """Dashboard counts: total, completed and active (everything else)."""
    plans = [p for p in plans or [] if isinstance(p, dict)]
    completed = sum(1 for p in plans if plan_status(p) == COMPLETED_STATUS)
    return {
        "totalPlans": len(plans),
        "activePlans": len(plans) - completed,
        "completedPlans": completed,
    }
