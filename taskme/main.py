"""Flet entry point: wires the services to the page lifecycle.

Screens are built elsewhere; this module only bootstraps the services,
hands page.run_task to the background loops, and runs the first alarm sync.
"""
import logging

import flet as ft

from api import TaskMeAPI
from core import bootstrap, shutdown
from logging_setup import setup_logging
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def main(page: ft.Page) -> None:
    setup_logging()
    platform = page.platform.value if page.platform else None
    services = await bootstrap(platform=platform)
    api = TaskMeAPI(services)

    if isinstance(services.notifications, NotificationService):
        services.notifications.inject_dependencies(page=page, async_scheduler=page.run_task)
        services.notifications.start_scheduler()
    services.refresh.inject_dependencies(async_scheduler=page.run_task)

    await api.refresh()
    services.refresh.start()

    async def _on_close(e) -> None:
        await shutdown(services)

    page.on_close = _on_close
    page.data = api
    logger.info(f"Task Me started on {platform or 'unknown platform'}")


if __name__ == "__main__":
    ft.run(main)
