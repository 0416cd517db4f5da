import pytest

from access_control import (
    SharingError,
    add_collaborator,
    can_access_database,
    can_access_plan,
    get_plan_sharing_status,
    remove_collaborator,
    toggle_public,
    validate_collaborator_email,
    visible_databases,
)


@pytest.mark.parametrize(
    "is_public,email,user_id,can_access,can_edit",
    [
        # public plan, anonymous viewer
        (True, None, None, True, False),
        # owner id matches, email does not
        (False, "other@example.com", "u-owner", True, True),
        # owner email matches, id does not
        (False, "owner@example.com", "u-other", True, True),
        # collaborator
        (False, "friend@example.com", "u-friend", True, True),
        # collaborator signed in without an id
        (False, "friend@example.com", None, True, True),
        # unrelated requester
        (False, "stranger@example.com", "u-stranger", False, False),
        # anonymous requester, private plan
        (False, None, None, False, False),
        # public plan, unrelated requester
        (True, "stranger@example.com", "u-stranger", True, False),
    ],
)
def test_access_matrix(private_plan, is_public, email, user_id, can_access, can_edit):
    plan = {**private_plan, "isPublic": is_public}

    assert can_access_plan(plan, email, user_id) is can_access
    status = get_plan_sharing_status(plan, email, user_id)
    assert status["canEdit"] is can_edit
    assert status["canView"] is can_access


def test_sharing_status_flags(private_plan):
    assert get_plan_sharing_status(private_plan, "owner@example.com", "u-owner") == {
        "isOwner": True,
        "isShared": False,
        "isPublic": False,
        "canEdit": True,
        "canView": True,
    }
    viewer = get_plan_sharing_status({**private_plan, "isPublic": True}, None, None)
    assert viewer["isPublic"] and viewer["canView"] and not viewer["canEdit"]


def test_empty_identity_never_matches_missing_owner():
    plan = {"isPublic": False, "collaborators": []}
    assert can_access_plan(plan, "", "") is False
    assert get_plan_sharing_status(plan, None, None)["isOwner"] is False


@pytest.mark.parametrize("plan", [
    None,
    {},
    {"isPublic": "yes", "collaborators": "friend@example.com"},
    {"collaborators": None, "userId": None},
])
def test_malformed_plans_are_denied(plan):
    assert can_access_plan(plan, "friend@example.com", "u-friend") is False
    assert get_plan_sharing_status(plan, "friend@example.com", "u-friend")["canView"] is False


def test_database_access(private_plan):
    database = {**private_plan, "isPublic": True}
    assert can_access_database(database, "friend@example.com", None)
    assert can_access_database(database, None, "u-owner")
    assert not can_access_database(database, None, None)
    assert not can_access_database(database, "stranger@example.com", "u-stranger")


def test_visible_databases_lists_owned_first():
    databases = [
        {"id": "shared", "userId": "u-other", "collaborators": ["me@example.com"]},
        {"id": "hidden", "userId": "u-other", "collaborators": []},
        {"id": "mine", "userId": "u-me", "userEmail": "me@example.com"},
    ]
    visible = visible_databases(databases, "me@example.com", "u-me")
    assert [(d["id"], d["isOwner"]) for d in visible] == [("mine", True), ("shared", False)]


def test_add_and_remove_collaborator(private_plan):
    shared = add_collaborator(private_plan, " new@example.com ", now="t1")
    assert shared["collaborators"] == ["friend@example.com", "new@example.com"]
    assert shared["lastModified"] == "t1"
    assert private_plan["collaborators"] == ["friend@example.com"]

    unshared = remove_collaborator(shared, "friend@example.com", now="t2")
    assert unshared["collaborators"] == ["new@example.com"]
    assert remove_collaborator(unshared, "nobody@example.com")["collaborators"] == ["new@example.com"]


@pytest.mark.parametrize("email,message", [
    ("", "enter an email"),
    ("not-an-email", "valid email"),
    ("friend@example.com", "already a collaborator"),
    ("owner@example.com", "yourself"),
])
def test_invalid_collaborators_are_rejected(private_plan, email, message):
    with pytest.raises(SharingError, match=message):
        validate_collaborator_email(private_plan, email)


def test_toggle_public(private_plan):
    public = toggle_public(private_plan, now="t1")
    assert public["isPublic"] is True
    assert toggle_public(public)["isPublic"] is False
