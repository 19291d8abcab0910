from carelog.api.modules.v1.users.schemas.actor_schema import Actor

__all__ = ["Actor"]
