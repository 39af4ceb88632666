"""Wire models returned by the cluster API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ApiKeyRecord(BaseModel):
    """One entry of the cluster key listing."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    api_key: str = Field(default="", alias="apiKey", repr=False)


class ApiKeyGrant(BaseModel):
    """Response to a generate or rotate request."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey", repr=False)


ApiKeyListing = TypeAdapter(list[ApiKeyRecord])
