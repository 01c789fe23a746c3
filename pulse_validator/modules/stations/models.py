import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pulse_validator.config.database import Base


class StationRecord(Base):
    __tablename__ = "stations"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    station_id: Mapped[str] = mapped_column("stationId", Text, unique=True)
    station_name: Mapped[str] = mapped_column("stationName", Text)
    stream_url: Mapped[str] = mapped_column("streamUrl", Text)
    is_online: Mapped[bool] = mapped_column("isOnline", Boolean, default=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        "updatedAt", DateTime(timezone=True), server_default=func.now()
    )
