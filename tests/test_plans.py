import pytest

from plans import (
    PlanSaveError,
    format_resources_for_save,
    plan_status_counts,
    prepare_plan_for_save,
    toggle_plan_status,
)

USER = {"id": "u-owner", "email": "owner@example.com"}


def _draft_plan():
    return {
        "planName": "Ward 7",
        "center": [15.85, 74.49],
        "resources": [
            {"type": "water", "position": {"lat": 15.85, "lng": 74.49}, "radius": 500},
            {"type": "school"},
            {"type": "house", "lat": 15.851, "lng": 74.491, "residents": 5, "students": 2,
             "radius": "big"},
        ],
    }


def test_format_drops_unplaced_and_renames():
    formatted = format_resources_for_save(_draft_plan()["resources"])

    assert formatted == [
        {"type": "water", "name": "Tank 1", "lat": 15.85, "lng": 74.49, "radius": 500},
        {"type": "house", "name": "House 2", "lat": 15.851, "lng": 74.491,
         "residents": 5, "students": 2},
    ]


def test_first_save_sets_ownership():
    document = prepare_plan_for_save(_draft_plan(), USER, now="t0")

    assert document["userId"] == "u-owner"
    assert document["userEmail"] == "owner@example.com"
    assert document["createdAt"] == "t0"
    assert document["lastModified"] == "t0"
    assert document["lastModifiedBy"] == "u-owner"
    assert document["collaborators"] == []
    assert document["status"] == "draft"
    assert len(document["resources"]) == 2


def test_update_keeps_ownership():
    saved = {**_draft_plan(), "userId": "u-owner", "createdAt": "t0",
             "collaborators": ["friend@example.com"], "status": "active"}
    document = prepare_plan_for_save(saved, {"id": "u-friend", "email": "friend@example.com"},
                                     existing=True, now="t1")

    assert document["userId"] == "u-owner"
    assert document["createdAt"] == "t0"
    assert document["collaborators"] == ["friend@example.com"]
    assert document["lastModifiedBy"] == "u-friend"
    assert document["lastModified"] == "t1"
    assert document["status"] == "active"


@pytest.mark.parametrize("user", [None, {}, {"email": "owner@example.com"}])
def test_save_requires_login(user):
    with pytest.raises(PlanSaveError, match="User not logged in"):
        prepare_plan_for_save(_draft_plan(), user)


def test_save_requires_a_placed_resource():
    with pytest.raises(PlanSaveError, match="at least one resource"):
        prepare_plan_for_save({"resources": [{"type": "school"}]}, USER)


def test_toggle_plan_status():
    completed = toggle_plan_status({"status": "draft"}, now="t1")
    assert completed["status"] == "completed"
    assert completed["lastModified"] == "t1"
    assert toggle_plan_status(completed)["status"] == "active"


def test_plan_status_counts():
    plans = [{"status": "completed"}, {"status": "active"}, {}, {"status": "completed"}]
    assert plan_status_counts(plans) == {"totalPlans": 4, "activePlans": 2, "completedPlans": 2}
    assert plan_status_counts([]) == {"totalPlans": 0, "activePlans": 0, "completedPlans": 0}


def test_format_uses_resource_radius_rules():
    position = {"lat": 15.85, "lng": 74.49}
    formatted = format_resources_for_save([
        {"type": "school", "position": position, "radius": "800"},
        {"type": "water", "position": position, "radius": 0},
        {"type": "park", "position": position, "radius": -50},
    ])

    assert formatted[0]["radius"] == 800.0
    assert "radius" not in formatted[1]
    assert "radius" not in formatted[2]
