import csv
import logging
from datetime import date
from io import StringIO
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.config import settings
from carelog.api.core.exceptions import CsvImportError
from carelog.api.modules.v1.hardware.models.hardware_model import Hardware, HardwareStatus
from carelog.api.modules.v1.hardware.schemas.hardware_import_schema import (
    HardwareImportResult,
    InsertedDevice,
    RowError,
)
from carelog.api.modules.v1.hardware.service.csv_parser import (
    is_valid_date,
    normalize_header,
    parse_csv,
)
from carelog.api.modules.v1.organization.models.organization_model import Location, Organization

logger = logging.getLogger("app")

REQUIRED_HEADERS = ["organization_name", "location_name", "name", "hardware_type"]
ALL_HEADERS = REQUIRED_HEADERS + [
    "manufacturer",
    "model_number",
    "serial_number",
    "status",
    "installation_date",
    "warranty_expiration",
    "internal_notes",
]
VALID_STATUSES = [s.value for s in HardwareStatus]


def build_csv_template(organization_name: str = "Acme Corp", location_name: str = "Main Office") -> str:
    """Header row plus two example devices."""
    examples = [
        [
            organization_name,
            location_name,
            "Ubiquiti Dream Machine Pro",
            "Router",
            "Ubiquiti",
            "UDM-Pro",
            "SN-2024-001",
            "active",
            "2024-06-15",
            "2027-06-15",
            "Primary gateway router",
        ],
        [
            organization_name,
            location_name,
            "UniFi Switch 24 PoE",
            "Switch",
            "Ubiquiti",
            "USW-24-POE",
            "SN-2024-002",
            "active",
            "2024-06-15",
            "2027-06-15",
            "",
        ],
    ]
    output = StringIO()
    writer = csv.writer(output)

    writer.writerow(ALL_HEADERS)
    writer.writerows(examples)

    return output.getvalue()


class HardwareImportService:
    """
    Bulk device import from CSV.

    Every row is validated on its own and all of its problems are reported;
    valid rows are inserted in a single batch even when other rows fail.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _lookups(
        self,
    ) -> Tuple[Dict[str, Organization], Dict[UUID, Dict[str, Location]]]:
        orgs = (await self.db.execute(select(Organization))).scalars().all()
        locations = (await self.db.execute(select(Location))).scalars().all()

        org_map = {org.name.strip().lower(): org for org in orgs}
        locations_by_org: Dict[UUID, Dict[str, Location]] = {}
        for loc in locations:
            locations_by_org.setdefault(loc.org_id, {})[loc.name.strip().lower()] = loc
        return org_map, locations_by_org

    async def import_csv(self, text: str) -> HardwareImportResult:
        """
        Validate and insert the devices described by ``text``.

        Row numbers in the error report count data rows from 1; the header
        row is not counted.

        Raises:
            CsvImportError: missing columns, no data rows or too many rows.
        """
        rows = parse_csv(text)
        if len(rows) < 2:
            raise CsvImportError("CSV must have a header row and at least one data row")

        header = [normalize_header(h) for h in rows[0]]
        missing = [h for h in REQUIRED_HEADERS if h not in header]
        if missing:
            raise CsvImportError(
                f"Missing required columns: {', '.join(missing)}. "
                f"Required: {', '.join(REQUIRED_HEADERS)}"
            )

        columns = {}
        for index, name in enumerate(header):
            if name in ALL_HEADERS and name not in columns:
                columns[name] = index

        data_rows = rows[1:]
        if len(data_rows) > settings.HARDWARE_CSV_MAX_ROWS:
            raise CsvImportError(
                f"Maximum {settings.HARDWARE_CSV_MAX_ROWS} devices per upload"
            )

        org_map, locations_by_org = await self._lookups()

        valid: List[Tuple[Hardware, Organization, Location]] = []
        row_errors: List[RowError] = []

        for index, cells in enumerate(data_rows):
            raw = {
                key: (cells[columns[key]].strip() if key in columns and columns[key] < len(cells) else "")
                for key in ALL_HEADERS
            }
            errors, org, location = self._validate_row(raw, org_map, locations_by_org)

            if errors:
                row_errors.append(RowError(row=index + 1, errors=errors))
                continue

            valid.append((self._build_device(raw, org, location), org, location))

        inserted: List[InsertedDevice] = []
        if valid:
            try:
                self.db.add_all([device for device, _, _ in valid])
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.error("Hardware CSV batch insert failed", exc_info=True)
                raise

            inserted = [
                InsertedDevice(name=device.name, organization=org.name, location=loc.name)
                for device, org, loc in valid
            ]

        logger.info(
            f"Hardware CSV import: {len(valid)} inserted, {len(row_errors)} rejected "
            f"of {len(data_rows)} rows"
        )

        return HardwareImportResult(
            success=not row_errors,
            total_rows=len(data_rows),
            inserted_count=len(valid),
            error_count=len(row_errors),
            errors=row_errors,
            inserted_devices=inserted,
        )

    @staticmethod
    def _validate_row(
        raw: Dict[str, str],
        org_map: Dict[str, Organization],
        locations_by_org: Dict[UUID, Dict[str, Location]],
    ) -> Tuple[List[str], Optional[Organization], Optional[Location]]:
        errors: List[str] = []
        org: Optional[Organization] = None
        location: Optional[Location] = None

        if not raw["organization_name"]:
            errors.append("organization_name is required")
        if not raw["location_name"]:
            errors.append("location_name is required")
        if not raw["name"]:
            errors.append("name (device name) is required")
        if not raw["hardware_type"]:
            errors.append("hardware_type is required")

        if raw["organization_name"]:
            org = org_map.get(raw["organization_name"].lower())
            if org is None:
                errors.append(f'Organization "{raw["organization_name"]}" not found')
            elif raw["location_name"]:
                location = locations_by_org.get(org.id, {}).get(raw["location_name"].lower())
                if location is None:
                    errors.append(
                        f'Location "{raw["location_name"]}" not found in organization "{org.name}"'
                    )

        if raw["status"] and raw["status"].lower() not in VALID_STATUSES:
            errors.append(
                f'Invalid status "{raw["status"]}". Must be one of: {", ".join(VALID_STATUSES)}'
            )

        for field in ("installation_date", "warranty_expiration"):
            if raw[field] and not is_valid_date(raw[field]):
                errors.append(f'Invalid {field} "{raw[field]}". Use YYYY-MM-DD format')

        return errors, org, location

    @staticmethod
    def _build_device(raw: Dict[str, str], org: Organization, location: Location) -> Hardware:
        return Hardware(
            org_id=org.id,
            location_id=location.id,
            name=raw["name"],
            hardware_type=raw["hardware_type"],
            manufacturer=raw["manufacturer"] or None,
            model_number=raw["model_number"] or None,
            serial_number=raw["serial_number"] or None,
            status=HardwareStatus(raw["status"].lower()) if raw["status"] else HardwareStatus.ACTIVE,
            installation_date=(
                date.fromisoformat(raw["installation_date"]) if raw["installation_date"] else None
            ),
            warranty_expiration=(
                date.fromisoformat(raw["warranty_expiration"])
                if raw["warranty_expiration"]
                else None
            ),
            internal_notes=raw["internal_notes"] or None,
        )

    async def sample_names(self) -> Tuple[str, str]:
        """A real organization/location pair for the template, when one exists."""
        result = await self.db.execute(
            select(Location, Organization)
            .join(Organization, Organization.id == Location.org_id)
            .limit(1)
        )
        first = result.first()
        if first is None:
            return "Acme Corp", "Main Office"
        location, organization = first
        return organization.name, location.name
