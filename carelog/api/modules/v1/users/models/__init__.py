from carelog.api.modules.v1.users.models.users_model import MembershipRole, OrgMembership, Profile

__all__ = ["Profile", "OrgMembership", "MembershipRole"]
