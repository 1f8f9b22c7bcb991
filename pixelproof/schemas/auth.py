"""Schemas related to the Figma OAuth flow."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class OAuthStatePayload(BaseModel):
    """Decoded contents of the ``state`` parameter round-tripped through Figma."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    csrf: str = Field(..., min_length=1, description="Nonce mirrored in the CSRF cookie.")
    project_id: Optional[str] = Field(
        None,
        alias="projectId",
        min_length=1,
        description="Project the resulting credential is stored for.",
    )


class FigmaTokenResponse(BaseModel):
    """Token endpoint response for the authorization-code grant."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_in: PositiveInt = Field(..., description="Seconds until the access token expires.")
    token_type: Optional[str] = None
    user_id: Optional[Union[str, int]] = None


class FigmaRefreshResponse(BaseModel):
    """Token endpoint response for the refresh-token grant."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = Field(
        None, description="Present only when the provider rotates refresh tokens."
    )
    expires_in: PositiveInt


__all__ = ["FigmaRefreshResponse", "FigmaTokenResponse", "OAuthStatePayload"]
