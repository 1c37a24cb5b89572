"""
Role policy tests.

Verifies:
- The action table (baseline allowed roles)
- Managers cannot modify administrators or hand out the administrator role
- Self-service edits pass for any role, but own role changes do not
"""

import pytest

from stockroom.extensions import db
from stockroom.models import User
from stockroom.permissions import get_all_action_codes, get_allowed_roles, validate_action_code
from stockroom.services.permission_service import authorize, PermissionDeniedError

from conftest import TEST_PASSWORD


STAFF, MANAGER, ADMIN = 1, 2, 3


# =============================================================================
# POLICY GATE (UNIT)
# =============================================================================


class TestAuthorize:

    @pytest.mark.parametrize(
        "action,allowed",
        [
            ("VIEW_CATALOG", {STAFF, MANAGER, ADMIN}),
            ("MANAGE_CATALOG", {MANAGER, ADMIN}),
            ("CREATE_USER", {MANAGER, ADMIN}),
            ("DELETE_USER", {ADMIN}),
            ("REQUEST_RESTOCK", {STAFF, MANAGER, ADMIN}),
            ("DELIVER_RESTOCK", {MANAGER, ADMIN}),
            ("ASK_QUESTION", {STAFF, MANAGER, ADMIN}),
        ],
    )
    def test_baseline_table(self, app, action, allowed):
        for role in (STAFF, MANAGER, ADMIN):
            if role in allowed:
                authorize(role, action)
            else:
                with pytest.raises(PermissionDeniedError):
                    authorize(role, action)

    def test_unknown_action_denies_everyone(self, app):
        for role in (STAFF, MANAGER, ADMIN):
            with pytest.raises(PermissionDeniedError):
                authorize(role, "LAUNCH_ROCKETS")

    def test_manager_cannot_modify_administrator(self, app):
        with pytest.raises(PermissionDeniedError):
            authorize(MANAGER, "EDIT_USER", target_role=ADMIN)

    def test_manager_cannot_assign_administrator(self, app):
        with pytest.raises(PermissionDeniedError):
            authorize(MANAGER, "ASSIGN_ROLE", target_role=STAFF, assigned_role=ADMIN)

    def test_admin_can_assign_administrator(self, app):
        authorize(ADMIN, "ASSIGN_ROLE", target_role=STAFF, assigned_role=ADMIN)

    def test_self_service_skips_baseline(self, app):
        authorize(STAFF, "EDIT_USER", target_role=STAFF, is_self=True)
        authorize(STAFF, "MANAGE_AVATAR", target_role=STAFF, is_self=True)

    def test_self_does_not_cover_role_changes(self, app):
        with pytest.raises(PermissionDeniedError):
            authorize(STAFF, "ASSIGN_ROLE", target_role=STAFF, assigned_role=MANAGER, is_self=True)

    def test_action_table_helpers(self):
        assert "DELIVER_RESTOCK" in get_all_action_codes()
        assert validate_action_code("VIEW_REPORTS")
        assert not validate_action_code("NOPE")
        assert get_allowed_roles("NOPE") == frozenset()


# =============================================================================
# USER ADMINISTRATION THROUGH THE API
# =============================================================================


def _new_user_payload(**overrides):
    payload = {
        "first_name": "New",
        "last_name": "Hire",
        "email": "new.hire@stockroom.test",
        "password": "Password123!",
    }
    payload.update(overrides)
    return payload


class TestUserAdministration:

    def test_manager_assigning_admin_role_is_403(self, client, staff_user, manager_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={"role_id": 3}, headers=manager_headers)
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Forbidden"}
        assert db.session.get(User, staff_user.user_id).role_id == 1

    def test_manager_creating_admin_is_403(self, client, manager_headers):
        resp = client.post("/users", json=_new_user_payload(role_id=3), headers=manager_headers)
        assert resp.status_code == 403

    def test_manager_editing_admin_is_403(self, client, admin_user, manager_headers):
        resp = client.patch(f"/users/{admin_user.user_id}", json={"designation": "Boss"}, headers=manager_headers)
        assert resp.status_code == 403

    def test_manager_promotes_staff_to_manager(self, client, staff_user, manager_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={"role_id": 2}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role_id"] == 2

    def test_admin_assigns_admin_role(self, client, staff_user, admin_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={"role_id": 3}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role_name"] == "Administrator"

    def test_staff_edits_own_profile(self, client, staff_user, staff_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={"designation": "Barista"}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["designation"] == "Barista"

    def test_staff_cannot_change_own_role(self, client, staff_user, staff_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={"role_id": 2}, headers=staff_headers)
        assert resp.status_code == 403

    def test_staff_cannot_edit_others(self, client, manager_user, staff_headers):
        resp = client.patch(f"/users/{manager_user.user_id}", json={"designation": "x"}, headers=staff_headers)
        assert resp.status_code == 403

    def test_empty_patch_is_400(self, client, staff_user, staff_headers):
        resp = client.patch(f"/users/{staff_user.user_id}", json={}, headers=staff_headers)
        assert resp.status_code == 400

    def test_non_object_bodies_are_400(self, client, staff_user, manager_headers):
        assert client.post("/users", json=["staff@stockroom.test"], headers=manager_headers).status_code == 400
        resp = client.patch(f"/users/{staff_user.user_id}", json=["Sam"], headers=manager_headers)
        assert resp.status_code == 400

    def test_password_change_allows_new_login(self, client, staff_user, staff_headers):
        resp = client.patch(
            f"/users/{staff_user.user_id}", json={"password": "NewPassword456!"}, headers=staff_headers
        )
        assert resp.status_code == 200
        assert client.post("/login", json={"email": staff_user.email, "password": TEST_PASSWORD}).status_code == 401
        assert client.post("/login", json={"email": staff_user.email, "password": "NewPassword456!"}).status_code == 200

    def test_create_user(self, client, manager_headers):
        resp = client.post("/users", json=_new_user_payload(email="New.Hire@Stockroom.test"), headers=manager_headers)
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "new.hire@stockroom.test"
        assert user["role_id"] == 1

    def test_create_user_duplicate_email_is_409(self, client, staff_user, manager_headers):
        resp = client.post("/users", json=_new_user_payload(email=staff_user.email), headers=manager_headers)
        assert resp.status_code == 409

    def test_create_user_weak_password_is_400(self, client, manager_headers):
        resp = client.post("/users", json=_new_user_payload(password="weak"), headers=manager_headers)
        assert resp.status_code == 400

    def test_create_user_bad_role_is_400(self, client, admin_headers):
        resp = client.post("/users", json=_new_user_payload(role_id=9), headers=admin_headers)
        assert resp.status_code == 400

    def test_staff_cannot_create_users(self, client, staff_headers):
        resp = client.post("/users", json=_new_user_payload(), headers=staff_headers)
        assert resp.status_code == 403

    def test_list_users(self, client, staff_user, manager_user, staff_headers):
        resp = client.get("/users", headers=staff_headers)
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.get_json()["users"]}
        assert {staff_user.email, manager_user.email} <= emails

    def test_admin_deletes_user(self, client, staff_user, admin_headers):
        user_id = staff_user.user_id
        resp = client.delete(f"/users/{user_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}
        assert db.session.get(User, user_id) is None

    def test_manager_cannot_delete(self, client, staff_user, manager_headers):
        resp = client.delete(f"/users/{staff_user.user_id}", headers=manager_headers)
        assert resp.status_code == 403

    def test_admin_cannot_delete_self(self, client, admin_user, admin_headers):
        resp = client.delete(f"/users/{admin_user.user_id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_unknown_user_is_404(self, client, admin_headers):
        resp = client.delete("/users/99999", headers=admin_headers)
        assert resp.status_code == 404
