from typing import List

from pydantic import BaseModel, Field


class RowError(BaseModel):
    row: int
    errors: List[str]


class InsertedDevice(BaseModel):
    name: str
    organization: str
    location: str


class HardwareImportResult(BaseModel):
    """Outcome of a CSV device upload."""

    success: bool
    total_rows: int
    inserted_count: int
    error_count: int
    errors: List[RowError] = Field(default_factory=list)
    inserted_devices: List[InsertedDevice] = Field(default_factory=list)
