"""Shared Pydantic schema pieces."""

from pydantic import BaseModel, ConfigDict, Field


class PortalModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    error: str = Field(description="Short error summary")
    message: str | None = Field(default=None, description="Provider or validation detail")


class ActionResponse(PortalModel):
    """Result of a single-resource action."""

    success: bool
    message: str
    name: str
