from datetime import datetime
from typing import Optional

import flet as ft


@ft.control("flet_local_notifications")
class FletLocalNotifications(ft.Service):
    """Bridge to flutter_local_notifications.

    Every method returns the raw string reply from the Dart side: "ok" or
    "true"/"false" on success, "error:<reason>" otherwise.
    """
    on_notification_tap: Optional[ft.ControlEventHandler["FletLocalNotifications"]] = None

    async def schedule_notification(
        self,
        notification_id: int,
        title: str,
        body: str,
        scheduled_time: datetime,
        payload: str = "",
        channel_id: str = "",
        channel_name: str = "",
    ) -> str:
        result = await self._invoke_method(
            method_name="schedule_notification",
            arguments={
                "id": notification_id,
                "title": title,
                "body": body,
                "scheduled_time": scheduled_time.isoformat(),
                "payload": payload,
                "channel_id": channel_id,
                "channel_name": channel_name,
            },
        )
        return str(result) if result is not None else "error:no_response"

    async def cancel(self, notification_id: int) -> str:
        result = await self._invoke_method(
            method_name="cancel",
            arguments={"id": notification_id},
        )
        return str(result) if result is not None else "error:no_response"

    async def request_permissions(self) -> str:
        result = await self._invoke_method(
            method_name="request_permissions",
        )
        return str(result) if result is not None else "error:no_response"

    async def check_permissions(self) -> str:
        result = await self._invoke_method(
            method_name="check_permissions",
        )
        return str(result) if result is not None else "error:no_response"
