from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Station(BaseModel):
    """A registered stream endpoint as seen by the validation engine.

    Field aliases follow the camelCase keys used by the station store.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="stationId", min_length=1)
    name: str = Field(alias="stationName")
    stream_url: str = Field(alias="streamUrl", min_length=1)
    is_online: bool = Field(default=True, alias="isOnline")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
