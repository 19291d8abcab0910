from carelog.api.modules.v1.organization.models.organization_model import Location, Organization

__all__ = ["Organization", "Location"]
