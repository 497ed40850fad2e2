"""Role discovery for the signed-in user."""

import structlog
from fastapi import APIRouter, Request

from portal.core.security import PRINCIPAL_HEADER, decode_client_principal, extract_roles
from portal.schemas.audit import RolesResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/roles", response_model=RolesResponse)
@router.post("/GetRoles", response_model=RolesResponse, include_in_schema=False)
async def get_roles(request: Request) -> RolesResponse:
    """
    Roles of the caller, read from the gateway's client principal.

    Never fails: a missing or malformed principal yields no roles.
    """
    encoded = request.headers.get(PRINCIPAL_HEADER)
    if not encoded:
        return RolesResponse(roles=[])

    try:
        principal = decode_client_principal(encoded)
    except ValueError as e:
        logger.warning("roles.principal_malformed", error=str(e))
        return RolesResponse(roles=[])

    roles = extract_roles(principal)
    logger.debug("roles.resolved", count=len(roles))
    return RolesResponse(roles=roles)
