"""Resource name validation.

Names are checked before any remote call so a malformed identifier can never
reach the management API.
"""

import re
from enum import Enum

from portal.core.exceptions import InvalidRequestError


class ResourceKind(str, Enum):
    """Kinds of resources the portal addresses by name."""

    VM = "vm"
    APP_SERVICE = "app_service"
    SCHEDULE = "schedule"


_NAME_PATTERNS: dict[ResourceKind, re.Pattern[str]] = {
    # 1-64 chars, alphanumeric start, then alphanumerics, hyphens, underscores
    ResourceKind.VM: re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]{0,63}"),
    # 2-60 chars, alphanumerics and hyphens, alphanumeric at both ends
    ResourceKind.APP_SERVICE: re.compile(r"[A-Za-z0-9][A-Za-z0-9-]{0,58}[A-Za-z0-9]"),
    # 1-128 chars, same class as VM names
    ResourceKind.SCHEDULE: re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]{0,127}"),
}

_KIND_LABELS = {
    ResourceKind.VM: "VM",
    ResourceKind.APP_SERVICE: "App Service",
    ResourceKind.SCHEDULE: "schedule",
}


def is_valid_name(name: object, kind: ResourceKind) -> bool:
    """
    Check a candidate resource name against the grammar for its kind.

    Args:
        name: Candidate identifier
        kind: Resource kind whose grammar applies

    Returns:
        True if the name is acceptable, False otherwise (never raises)
    """
    if not isinstance(name, str):
        return False
    return _NAME_PATTERNS[kind].fullmatch(name) is not None


def kind_label(kind: ResourceKind) -> str:
    return _KIND_LABELS[kind]


def require_valid_name(name: object, kind: ResourceKind) -> str:
    """
    Return ``name`` if it is valid for ``kind``.

    Raises:
        InvalidRequestError: With "Invalid <kind> name"
    """
    if not is_valid_name(name, kind):
        raise InvalidRequestError(f"Invalid {kind_label(kind)} name")
    return name
