"""
Unit tests for the authorization gate, admin session, role management and
the Supabase identity adapter.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from auth.gate import AuthorizationGate, bearer_token, has_permission
from auth.identity import SupabaseIdentityProvider
from auth.roles import RoleManager
from auth.session import AdminSession
from models.admin import (
    AdminClaims,
    AdminRole,
    Permission,
    RoleRequestStatus,
    permissions_for_role,
)
from utils.exceptions import AuthError, RoleRequestNotFoundError, ValidationError


@pytest.fixture
def gate(identity):
    return AuthorizationGate(
        identity, super_admin_uids=["root-uid"], emergency_team_uids=["root-uid"]
    )


@pytest.fixture
def roles(gate, store):
    return RoleManager(gate, store)


class TestPermissions:
    def test_role_permissions(self):
        assert set(permissions_for_role(AdminRole.SUPER_ADMIN)) == {p.value for p in Permission}
        viewer = permissions_for_role(AdminRole.VIEWER)
        assert "view_bookings" in viewer
        assert "confirm_bookings" not in viewer

    def test_has_permission(self):
        claims = AdminClaims(
            uid="u1", admin=True, role=AdminRole.MANAGER,
            permissions=permissions_for_role(AdminRole.MANAGER),
        )
        assert has_permission(claims, Permission.CONFIRM_BOOKINGS)
        assert not has_permission(claims, Permission.MANAGE_USERS)

    def test_non_admin_has_no_permissions(self):
        claims = AdminClaims(uid="u1", admin=False, permissions=["view_bookings"])
        assert not has_permission(claims, Permission.VIEW_BOOKINGS)
        assert not has_permission(None, Permission.VIEW_BOOKINGS)

    def test_bearer_token(self):
        assert bearer_token("Bearer abc") == "abc"
        assert bearer_token("bearer  abc ") == "abc"
        assert bearer_token("Basic abc") is None
        assert bearer_token(None) is None


class TestAuthorizationGate:
    @pytest.mark.asyncio
    async def test_missing_token(self, gate):
        with pytest.raises(AuthError, match="Authentication required"):
            await gate.require_admin(None)

    @pytest.mark.asyncio
    async def test_non_admin_denied(self, gate):
        with pytest.raises(AuthError, match="Insufficient permissions"):
            await gate.require_admin("user-token")

    @pytest.mark.asyncio
    async def test_permission_check(self, gate):
        claims = await gate.require_permission("admin-token", Permission.CONFIRM_BOOKINGS)
        assert claims.uid == "admin-uid"

        with pytest.raises(AuthError):
            await gate.require_permission("viewer-token", Permission.CONFIRM_BOOKINGS)

    @pytest.mark.asyncio
    async def test_super_admin_must_be_designated(self, gate, identity):
        identity.add_user("rogue-token", "rogue-uid", AdminRole.SUPER_ADMIN)

        assert (await gate.require_super_admin("root-token")).uid == "root-uid"
        with pytest.raises(AuthError):
            await gate.require_super_admin("rogue-token")
        with pytest.raises(AuthError):
            await gate.require_super_admin("admin-token")

    @pytest.mark.asyncio
    async def test_emergency_access(self, gate, identity):
        assert (await gate.require_emergency_access("root-token")).uid == "root-uid"

        other_gate = AuthorizationGate(identity, super_admin_uids=[], emergency_team_uids=[])
        with pytest.raises(AuthError):
            await other_gate.require_emergency_access("root-token")


class TestAdminSession:
    @pytest.mark.asyncio
    async def test_watchers_follow_sign_in_and_out(self, identity):
        identity.add_user("jane-token", "jane-uid", AdminRole.ADMIN, email="jane@example.com")
        identity.passwords["jane@example.com"] = "s3cret"
        session = AdminSession(identity)
        users, flags = [], []
        session.watch(users.append)
        session.watch_authenticated(flags.append)

        await session.sign_in("jane@example.com", "s3cret")
        assert session.is_authenticated
        assert session.access_token == "jane-token"

        await session.sign_out()

        assert [u.uid if u else None for u in users] == [None, "jane-uid", None]
        assert flags == [False, True, False]
        assert session.access_token is None
        assert identity.signed_out

    @pytest.mark.asyncio
    async def test_bad_credentials(self, identity):
        session = AdminSession(identity)

        with pytest.raises(AuthError, match="Invalid email or password"):
            await session.sign_in("nobody@example.com", "wrong")
        assert not session.is_authenticated

    @pytest.mark.asyncio
    async def test_unsubscribe(self, identity):
        identity.add_user("jane-token", "jane-uid", AdminRole.ADMIN, email="jane@example.com")
        identity.passwords["jane@example.com"] = "s3cret"
        session = AdminSession(identity)
        seen = []
        unsubscribe = session.watch(seen.append)
        unsubscribe()

        await session.sign_in("jane@example.com", "s3cret")

        assert seen == [None]


class TestRoleManager:
    @pytest.mark.asyncio
    async def test_assign_role(self, roles, identity, store):
        result = await roles.assign_role("root-token", "user-uid", "manager")

        assert result["success"] is True
        uid, claims = identity.claims_written[-1]
        assert uid == "user-uid"
        assert claims["admin"] is True
        assert claims["role"] == "manager"
        assert claims["permissions"] == permissions_for_role(AdminRole.MANAGER)
        assert store.audit_logs[-1]["action"] == "role_assigned"
        assert store.audit_logs[-1]["performed_by"] == "root-uid"

    @pytest.mark.asyncio
    async def test_assign_requires_super_admin(self, roles, identity):
        with pytest.raises(AuthError):
            await roles.assign_role("admin-token", "user-uid", "manager")
        assert identity.claims_written == []

    @pytest.mark.asyncio
    async def test_assign_invalid_role(self, roles):
        with pytest.raises(ValidationError, match="Invalid role"):
            await roles.assign_role("root-token", "user-uid", "owner")

    @pytest.mark.asyncio
    async def test_remove_role(self, roles, identity, store):
        await roles.remove_role("root-token", "admin-uid")

        uid, claims = identity.claims_written[-1]
        assert uid == "admin-uid"
        assert claims["admin"] is False
        assert claims["permissions"] == []
        assert store.audit_logs[-1]["action"] == "role_removed"

    @pytest.mark.asyncio
    async def test_list_admin_users(self, roles):
        users = await roles.list_admin_users("viewer-token")

        assert {u.uid for u in users} == {"root-uid", "admin-uid", "viewer-uid"}


class TestRoleRequests:
    @pytest.mark.asyncio
    async def test_request_then_approve(self, roles, identity, store):
        result = await roles.request_role_assignment(
            "admin-token", "user-uid", "manager", "Runs the weekend tours"
        )
        request_id = result["requestId"]

        assert result["success"] is True
        assert identity.claims_written == []
        pending = await roles.get_pending_role_requests("root-token")
        assert [r.id for r in pending] == [request_id]
        assert pending[0].requested_by == "admin-uid"
        assert store.audit_logs[-1]["action"] == "role_assignment_requested"

        result = await roles.approve_role_assignment("root-token", request_id, "approve")

        assert result["message"] == "Role assignment approved and applied"
        uid, claims = identity.claims_written[-1]
        assert uid == "user-uid"
        assert claims["role"] == "manager"
        assert claims["permissions"] == permissions_for_role(AdminRole.MANAGER)
        request = await store.get_role_request(request_id)
        assert request.status == RoleRequestStatus.APPROVED.value
        assert request.decided_by == "root-uid"
        assert request.decision_reason == "Approved by Super Admin"
        assert await roles.get_pending_role_requests("root-token") == []
        assert store.audit_logs[-1]["action"] == "role_assignment_approved"

    @pytest.mark.asyncio
    async def test_reject_writes_no_claims(self, roles, identity, store):
        result = await roles.request_role_assignment(
            "root-token", "user-uid", "admin", "Covering for the owner"
        )

        await roles.approve_role_assignment(
            "root-token", result["requestId"], "reject", "Not needed"
        )

        assert identity.claims_written == []
        request = await store.get_role_request(result["requestId"])
        assert request.status == RoleRequestStatus.REJECTED.value
        assert request.decision_reason == "Not needed"
        assert store.audit_logs[-1]["action"] == "role_assignment_rejected"

    @pytest.mark.asyncio
    async def test_request_is_decided_once(self, roles):
        result = await roles.request_role_assignment(
            "admin-token", "user-uid", "viewer", "Read-only access for accounting"
        )
        await roles.approve_role_assignment("root-token", result["requestId"], "reject")

        with pytest.raises(ValidationError, match="not pending"):
            await roles.approve_role_assignment("root-token", result["requestId"], "approve")

    @pytest.mark.asyncio
    async def test_only_admins_may_request(self, roles, store):
        with pytest.raises(AuthError):
            await roles.request_role_assignment(
                "viewer-token", "user-uid", "admin", "Please"
            )
        assert store.role_requests == {}

    @pytest.mark.asyncio
    async def test_request_validation(self, roles):
        with pytest.raises(ValidationError):
            await roles.request_role_assignment("admin-token", "user-uid", "manager", "")
        with pytest.raises(ValidationError, match="Invalid role"):
            await roles.request_role_assignment("admin-token", "user-uid", "owner", "Reason")

    @pytest.mark.asyncio
    async def test_only_super_admin_decides(self, roles, identity):
        result = await roles.request_role_assignment(
            "admin-token", "user-uid", "manager", "Runs the weekend tours"
        )

        with pytest.raises(AuthError):
            await roles.approve_role_assignment("admin-token", result["requestId"], "approve")
        with pytest.raises(AuthError):
            await roles.get_pending_role_requests("admin-token")
        assert identity.claims_written == []

    @pytest.mark.asyncio
    async def test_unknown_request_and_action(self, roles):
        with pytest.raises(RoleRequestNotFoundError):
            await roles.approve_role_assignment("root-token", "missing", "approve")
        with pytest.raises(ValidationError, match="Invalid action"):
            await roles.approve_role_assignment("root-token", "missing", "maybe")


class TestSupabaseIdentityProvider:
    @pytest.fixture
    def mock_client(self):
        return MagicMock()

    @pytest.fixture
    def provider(self, mock_client):
        return SupabaseIdentityProvider("https://test.supabase.co", "test_key", client=mock_client)

    @pytest.mark.asyncio
    async def test_verify_token_reads_app_metadata(self, provider, mock_client):
        mock_client.auth.get_user.return_value = SimpleNamespace(
            user=SimpleNamespace(
                id="uid-1",
                email="jane@example.com",
                app_metadata={"admin": True, "role": "viewer", "permissions": ["view_bookings"]},
            )
        )

        claims = await provider.verify_token("jwt")

        mock_client.auth.get_user.assert_called_once_with("jwt")
        assert claims.admin
        assert claims.role == AdminRole.VIEWER
        assert claims.permissions == ["view_bookings"]

    @pytest.mark.asyncio
    async def test_verify_token_failure(self, provider, mock_client):
        mock_client.auth.get_user.side_effect = RuntimeError("invalid JWT")

        with pytest.raises(AuthError, match="Authentication required"):
            await provider.verify_token("jwt")

    @pytest.mark.asyncio
    async def test_sign_in_failure_is_generic(self, provider, mock_client):
        mock_client.auth.sign_in_with_password.side_effect = RuntimeError("user not found")

        with pytest.raises(AuthError) as exc_info:
            await provider.sign_in("jane@example.com", "wrong")
        assert str(exc_info.value) == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_set_claims(self, provider, mock_client):
        await provider.set_claims("uid-1", {"admin": True})

        mock_client.auth.admin.update_user_by_id.assert_called_once_with(
            "uid-1", {"app_metadata": {"admin": True}}
        )

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        provider = SupabaseIdentityProvider(None, None)

        with pytest.raises(AuthError, match="not configured"):
            await provider.set_claims("uid-1", {})
