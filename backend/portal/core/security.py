"""Caller identity as injected by the hosting platform's auth gateway.

The gateway authenticates users before requests reach the API and forwards
the identity in ``x-ms-client-principal*`` headers. Nothing here gates access;
the identity is used for audit attribution and for role discovery.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Mapping

PRINCIPAL_ID_HEADER = "x-ms-client-principal-id"
PRINCIPAL_NAME_HEADER = "x-ms-client-principal-name"
PRINCIPAL_HEADER = "x-ms-client-principal"

ROLE_CLAIM_TYPES = frozenset(
    {
        "roles",
        "http://schemas.microsoft.com/ws/2008/06/identity/claims/role",
    }
)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class Caller:
    """Identity of the user behind a request."""

    user_id: str = UNKNOWN
    user_email: str = UNKNOWN


def get_caller(headers: Mapping[str, str]) -> Caller:
    """
    Read caller identity from gateway headers.

    Args:
        headers: Request headers (case-insensitive mapping)

    Returns:
        Caller with "unknown" for any missing value
    """
    return Caller(
        user_id=headers.get(PRINCIPAL_ID_HEADER) or UNKNOWN,
        user_email=headers.get(PRINCIPAL_NAME_HEADER) or UNKNOWN,
    )


def decode_client_principal(encoded: str) -> dict[str, Any]:
    """
    Decode the base64 JSON client principal.

    Raises:
        ValueError: If the header is not valid base64 JSON object
    """
    try:
        raw = base64.b64decode(encoded, validate=False)
        principal = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Malformed client principal: {e}") from e

    if not isinstance(principal, dict):
        raise ValueError("Malformed client principal: expected a JSON object")
    return principal


def extract_roles(principal: Mapping[str, Any]) -> list[str]:
    """
    Collect app roles from claims and the gateway's built-in roles.

    Order is first-seen: claim roles first, then userRoles; duplicates dropped.
    """
    roles: list[str] = []

    for claim in principal.get("claims") or []:
        if not isinstance(claim, Mapping):
            continue
        if claim.get("typ") in ROLE_CLAIM_TYPES and claim.get("val"):
            roles.append(str(claim["val"]))

    roles.extend(str(role) for role in principal.get("userRoles") or [])

    return list(dict.fromkeys(roles))
