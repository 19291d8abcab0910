from carelog.api.modules.v1.notifications.models.notification_model import (
    Notification,
    NotificationType,
)

__all__ = ["Notification", "NotificationType"]
