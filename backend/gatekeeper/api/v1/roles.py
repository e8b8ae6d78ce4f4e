"""Role catalog administration; every route requires the ``admin`` role."""

from __future__ import annotations

from flask import Blueprint, request

from gatekeeper.api.deps import empty_response, json_response, require_role, timing
from gatekeeper.core.container import get_services
from gatekeeper.schemas import RoleCreateSchema, RoleSchema, RoleUpdateSchema
from gatekeeper.services.roles.dto import RoleIn, RoleName, RoleUpdateIn

bp = Blueprint("roles", __name__)

role_schema = RoleSchema()
role_list_schema = RoleSchema(many=True)
role_create_schema = RoleCreateSchema()
role_update_schema = RoleUpdateSchema()


@bp.get("")
@require_role(RoleName.ADMIN)
@timing
def list_roles():
    roles = get_services().roles.list_roles()
    return json_response({"data": role_list_schema.dump(roles)})


@bp.post("")
@require_role(RoleName.ADMIN)
@timing
def create_role():
    payload = role_create_schema.load(request.get_json(silent=True) or {})
    role = get_services().roles.create_role(RoleIn(**payload))
    return json_response({"data": role_schema.dump(role)}, status=201)


@bp.get("/<int:role_id>")
@require_role(RoleName.ADMIN)
@timing
def get_role(role_id: int):
    role = get_services().roles.get_role(role_id)
    return json_response({"data": role_schema.dump(role)})


@bp.put("/<int:role_id>")
@require_role(RoleName.ADMIN)
@timing
def update_role(role_id: int):
    payload = role_update_schema.load(request.get_json(silent=True) or {})
    role = get_services().roles.update_role(role_id, RoleUpdateIn(**payload))
    return json_response({"data": role_schema.dump(role)})


@bp.delete("/<int:role_id>")
@require_role(RoleName.ADMIN)
@timing
def delete_role(role_id: int):
    """Delete the role; users holding it lose the grant."""

    get_services().roles.delete_role(role_id)
    return empty_response()
