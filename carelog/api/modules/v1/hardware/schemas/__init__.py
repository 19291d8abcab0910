from carelog.api.modules.v1.hardware.schemas.hardware_import_schema import (
    HardwareImportResult,
    InsertedDevice,
    RowError,
)

__all__ = ["HardwareImportResult", "InsertedDevice", "RowError"]
