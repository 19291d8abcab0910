from fastapi import APIRouter

from carelog.api.modules.v1.hardware.routes.hardware_csv_routes import router as hardware_router
from carelog.api.modules.v1.notifications.routes.notification_routes import (
    router as notification_router,
)
from carelog.api.modules.v1.tickets.routes.email_webhook_routes import (
    router as email_webhook_router,
)
from carelog.api.modules.v1.tickets.routes.ticket_routes import router as ticket_router

router = APIRouter(prefix="/v1")
router.include_router(ticket_router)
router.include_router(notification_router)
router.include_router(hardware_router)
router.include_router(email_webhook_router)
