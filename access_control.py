"""
Access control for plans and private registries.

A plan is owned by one identity (`userId` / `userEmail`). Collaborators,
listed by email, may view and edit; anyone may view a public plan.
Private registries ("databases") follow the same owner/collaborator model
but are never public.

The resolvers below never raise: a malformed or missing field simply
means the requester is not granted anything through it.
"""

import re
from typing import Dict, List, Optional

import pandas as pd

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SharingError(ValueError):
    """Raised when a share request cannot be applied."""


def _collaborators(record: Dict) -> List[str]:
    collaborators = record.get("collaborators") if isinstance(record, dict) else None
    if not isinstance(collaborators, (list, tuple, set)):
        return []
    return list(collaborators)


def is_owner(record: Dict, email: Optional[str], user_id: Optional[str]) -> bool:
    """Owner match on id OR email; empty identity values never match."""
    if not isinstance(record, dict):
        return False
    if user_id and record.get("userId") == user_id:
        return True
    if email and record.get("userEmail") == email:
        return True
    return False


def is_collaborator(record: Dict, email: Optional[str]) -> bool:
    return bool(email) and email in _collaborators(record)


def can_access_plan(plan: Dict, email: Optional[str] = None,
                    user_id: Optional[str] = None) -> bool:
    """
    Decide whether a requester may open a plan.

    Checked in order, first match wins: public plan, anonymous requester
    (denied), owner, collaborator, otherwise denied.

    Args:
        plan: Plan record
        email: Requester email, None for anonymous
        user_id: Requester id, None for anonymous

    Returns:
        True if the plan may be viewed
    """
    if not isinstance(plan, dict):
        return False
    if plan.get("isPublic") is True:
        return True
    if not email and not user_id:
        return False
    if is_owner(plan, email, user_id):
        return True
    return is_collaborator(plan, email)


def get_plan_sharing_status(plan: Dict, email: Optional[str] = None,
                            user_id: Optional[str] = None) -> Dict[str, bool]:
    """
    Classify a requester's role on a plan.

    Returns:
        Dictionary with isOwner, isShared, isPublic, canEdit and canView.
        Owners and collaborators can edit; public viewers can only view.
    """
    owner = is_owner(plan, email, user_id)
    shared = is_collaborator(plan, email)
    public = isinstance(plan, dict) and plan.get("isPublic") is True

    return {
        "isOwner": owner,
        "isShared": shared,
        "isPublic": public,
        "canEdit": owner or shared,
        "canView": owner or shared or public,
    }


def can_access_database(database: Dict, email: Optional[str] = None,
                        user_id: Optional[str] = None) -> bool:
    """Registries are readable by their owner and collaborators only."""
    if not email and not user_id:
        return False
    return is_owner(database, email, user_id) or is_collaborator(database, email)


def visible_databases(databases: List[Dict], email: Optional[str],
                      user_id: Optional[str]) -> List[Dict]:
    """
    Registries a requester can read, owned ones first.

    Each returned copy carries `isOwner` like the registry listing does.
    """
    owned = []
    shared = []
    for database in databases or []:
        if is_owner(database, email, user_id):
            owned.append({**database, "isOwner": True})
        elif is_collaborator(database, email):
            shared.append({**database, "isOwner": False})
    return owned + shared


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

def validate_collaborator_email(record: Dict, email: str) -> str:
    """
    Check that `email` can be added as a collaborator.

    Args:
        record: Plan or registry record
        email: Email to grant access to

    Returns:
        The stripped email

    Raises:
        SharingError: if the email is blank, malformed, already a
            collaborator, or the owner's own address
    """
    email = (email or "").strip()
    if not email:
        raise SharingError("Please enter an email address")
    if not EMAIL_RE.match(email):
        raise SharingError("Please enter a valid email address")
    if email in _collaborators(record):
        raise SharingError("This user is already a collaborator")
    if record.get("userEmail") == email:
        raise SharingError("Cannot add yourself as a collaborator")
    return email


def _touched(record: Dict, now: Optional[str]) -> Dict:
    updated = dict(record)
    updated["lastModified"] = now or pd.Timestamp.now(tz="UTC").isoformat()
    return updated


def add_collaborator(record: Dict, email: str, now: Optional[str] = None) -> Dict:
    """Return a copy of the record with `email` added to its collaborators."""
    email = validate_collaborator_email(record, email)
    updated = _touched(record, now)
    updated["collaborators"] = _collaborators(record) + [email]
    return updated


def remove_collaborator(record: Dict, email: str, now: Optional[str] = None) -> Dict:
    """Return a copy of the record without `email` among its collaborators."""
    updated = _touched(record, now)
    updated["collaborators"] = [c for c in _collaborators(record) if c != email]
    return updated


def set_public(plan: Dict, is_public: bool, now: Optional[str] = None) -> Dict:
    updated = _touched(plan, now)
    updated["isPublic"] = bool(is_public)
    return updated


def toggle_public(plan: Dict, now: Optional[str] = None) -> Dict:
    """Flip a plan between public and private."""
    return set_public(plan, not plan.get("isPublic", False), now)
