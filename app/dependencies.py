from typing import Annotated

from fastapi import Depends, Request

from app.services.cron_org import CronService


def get_cron_service(request: Request) -> CronService:
    """The CronService built at startup (see app.main.lifespan)."""
    service: CronService = request.app.state.cron_service
    return service


# Type aliases for dependency injection
Cron = Annotated[CronService, Depends(get_cron_service)]
