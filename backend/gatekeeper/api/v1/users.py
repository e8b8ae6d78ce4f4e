"""User profile, account administration and role membership endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from gatekeeper.api.deps import (
    current_claims,
    empty_response,
    json_response,
    require_auth,
    require_role,
    timing,
)
from gatekeeper.core.container import get_services
from gatekeeper.schemas import (
    ChangePasswordSchema,
    EmailChangeSchema,
    RegisterSchema,
    RoleSchema,
    UpdateUserSchema,
    UserSchema,
)
from gatekeeper.services.auth.dto import RegisterIn
from gatekeeper.services.identity.dto import ChangePasswordIn, EmailChangeIn, UpdateUserIn
from gatekeeper.services.roles.dto import RoleName

bp = Blueprint("users", __name__)

user_schema = UserSchema()
user_list_schema = UserSchema(many=True)
create_user_schema = RegisterSchema()
update_user_schema = UpdateUserSchema()
role_list_schema = RoleSchema(many=True)
change_password_schema = ChangePasswordSchema()
email_change_schema = EmailChangeSchema()


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the caller's profile as currently stored."""

    user = get_services().identity.get_user(current_claims().sub)
    return json_response({"data": user_schema.dump(user)})


@bp.post("/me/password")
@require_auth
@timing
def change_password():
    payload = change_password_schema.load(request.get_json(silent=True) or {})
    get_services().identity.change_password(
        ChangePasswordIn(user_id=current_claims().sub, **payload)
    )
    return empty_response()


@bp.post("/me/email")
@require_auth
@timing
def request_email_change():
    """Mail a confirmation link for moving the account to ``new_email``."""

    payload = email_change_schema.load(request.get_json(silent=True) or {})
    get_services().identity.request_email_change(
        EmailChangeIn(user_id=current_claims().sub, new_email=payload["new_email"])
    )
    return empty_response(202)


@bp.get("/<int:user_id>/roles")
@require_role(RoleName.ADMIN)
@timing
def list_user_roles(user_id: int):
    roles = get_services().user_roles.get_user_roles(user_id)
    return json_response({"data": role_list_schema.dump(roles)})


@bp.delete("/<int:user_id>/roles/<int:role_id>")
@require_role(RoleName.ADMIN)
@timing
def remove_user_role(user_id: int, role_id: int):
    """Revoke a role; 404 when the user does not hold it."""

    get_services().user_roles.remove_role(user_id, role_id)
    return empty_response()


# ------------------------------ Administration ----------------------------- #


@bp.get("")
@require_role(RoleName.ADMIN)
@timing
def list_users():
    users = get_services().identity.list_users()
    return json_response({"data": user_list_schema.dump(users)})


@bp.post("")
@require_role(RoleName.ADMIN)
@timing
def create_user():
    """Create an unconfirmed account; the owner receives the confirmation email."""

    payload = create_user_schema.load(request.get_json(silent=True) or {})
    user = get_services().identity.create_user(RegisterIn(**payload))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.get("/<int:user_id>")
@require_role(RoleName.ADMIN)
@timing
def get_user(user_id: int):
    user = get_services().identity.get_user(user_id)
    return json_response({"data": user_schema.dump(user)})


@bp.put("/<int:user_id>")
@require_role(RoleName.ADMIN)
@timing
def update_user(user_id: int):
    payload = update_user_schema.load(request.get_json(silent=True) or {})
    user = get_services().identity.update_user(user_id, UpdateUserIn(**payload))
    return json_response({"data": user_schema.dump(user)})


@bp.delete("/<int:user_id>")
@require_role(RoleName.ADMIN)
@timing
def delete_user(user_id: int):
    """Delete the account together with its sessions and role grants."""

    get_services().identity.delete_user(user_id)
    return empty_response()
