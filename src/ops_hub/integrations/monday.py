"""Monday.com: active board items become local tasks."""

from typing import Any

from ops_hub.integrations.base import (
    Platform,
    PlatformAPIError,
    PlatformSync,
    SyncResult,
    marker,
)
from ops_hub.models import Integration, Task

API_URL = "https://api.monday.com/v2"

BOARDS_QUERY = """
query {
  boards(limit: 10) {
    id
    name
    items_page(limit: 50) {
      items {
        id
        name
        state
      }
    }
  }
}
"""


class MondaySync(PlatformSync):
    platform = Platform.MONDAY
    label = "Monday.com"
    required_fields = ("apiKey",)

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        data = await self._request(
            "POST",
            API_URL,
            json={"query": BOARDS_QUERY},
            headers={"Authorization": credentials["apiKey"], "Content-Type": "application/json"},
        )
        # GraphQL reports failures in the body with a 200 status.
        if data.get("errors"):
            message = data["errors"][0].get("message", "unknown error")
            raise PlatformAPIError(f"Monday.com API failed: {message}", platform=self.platform)

        boards = (data.get("data") or {}).get("boards", [])

        existing = await self._storage.get_tasks(integration.user_id)
        imported = 0

        for board in boards:
            for item in (board.get("items_page") or {}).get("items", []):
                if item.get("state") != "active":
                    continue

                token = marker("Monday", item["id"])
                if self._already_imported(existing, token, legacy=f"ID:{item['id']}"):
                    continue

                task = await self._storage.create_task(
                    Task(
                        user_id=integration.user_id,
                        title=item.get("name") or "Untitled item",
                        description=f"Monday.com board: {board.get('name')} ({token})",
                        priority="medium",
                        status="pending",
                    )
                )
                existing.append(task)
                imported += 1

        return SyncResult(
            success=True,
            counts={"items": imported, "boards": len(boards), "imported": imported},
        )
