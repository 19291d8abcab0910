import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Date, DateTime, Text
from sqlmodel import Field, SQLModel


class HardwareStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    DECOMMISSIONED = "decommissioned"


class Hardware(SQLModel, table=True):
    """A registered device installed at a location."""

    __tablename__ = "hardware"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    org_id: uuid.UUID = Field(foreign_key="organizations.id", index=True, nullable=False)
    location_id: uuid.UUID = Field(foreign_key="locations.id", index=True, nullable=False)

    name: str = Field(max_length=255, nullable=False)
    hardware_type: str = Field(max_length=100, nullable=False)
    manufacturer: Optional[str] = Field(default=None, max_length=255)
    model_number: Optional[str] = Field(default=None, max_length=255)
    serial_number: Optional[str] = Field(default=None, max_length=255)
    status: HardwareStatus = Field(default=HardwareStatus.ACTIVE, nullable=False)

    installation_date: Optional[date] = Field(default=None, sa_column=Column(Date, nullable=True))
    warranty_expiration: Optional[date] = Field(
        default=None, sa_column=Column(Date, nullable=True)
    )
    internal_notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
