"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service status plus the state of the access-control layers a deploy can misconfigure."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Value of NODE_ENV (empty when unset)")
    database: Literal["connected", "disconnected"] | None = Field(
        default=None,
        description="Database connectivity status when check is performed",
    )
    row_level_security: Literal["request_role", "table_owner"] = Field(
        description="request_role when requests switch to DB_APP_ROLE; table_owner means policies are bypassed",
    )
    request_role: Literal["ok", "misconfigured"] | None = Field(
        default=None,
        description="Result of checking DB_APP_ROLE against the database; None when unset or unreachable",
    )
    csrf_bypass: bool = Field(description="True when the development origin-guard bypass is open")
