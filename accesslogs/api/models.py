"""Data models for PlanetHoster API payloads."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class HostingAccount(BaseModel):
    """A hosting account owned by the API user."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(description="Hosting account identifier")
    username: Annotated[str, Field(min_length=1, description="Account username")]


class Domain(BaseModel):
    """A domain served by a hosting account."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    domain: Annotated[str, Field(min_length=1, description="Domain name")]


class StorageCredentials(BaseModel):
    """Object-storage credentials attached to a hosting account."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    access_key: Annotated[str, Field(min_length=1, alias="accessKey")]
    secret_key: Annotated[str, Field(min_length=1, alias="secretKey", repr=False)]
    bucket: Annotated[str, Field(min_length=1, alias="name")]
