"""Asana: open tasks assigned to the token owner become local tasks."""

from typing import Any

from ops_hub.integrations.base import MAX_RECORDS, Platform, PlatformSync, SyncResult, marker
from ops_hub.models import Integration, Task

API_BASE = "https://app.asana.com/api/1.0"


class AsanaSync(PlatformSync):
    platform = Platform.ASANA
    label = "Asana"
    required_fields = ("accessToken",)

    async def _sync(self, integration: Integration, credentials: dict[str, Any]) -> SyncResult:
        headers = {
            "Authorization": f"Bearer {credentials['accessToken']}",
            "Accept": "application/json",
        }

        workspaces_data = await self._request("GET", f"{API_BASE}/workspaces", headers=headers)
        workspaces = workspaces_data.get("data", [])

        existing = await self._storage.get_tasks(integration.user_id)
        imported = 0

        for workspace in workspaces:
            tasks_data = await self._request(
                "GET",
                f"{API_BASE}/tasks",
                optional=True,
                params={
                    "workspace": workspace["gid"],
                    "assignee": "me",
                    "completed_since": "now",
                    "opt_fields": "name,completed,due_on,notes",
                    "limit": MAX_RECORDS,
                },
                headers=headers,
            )
            if not tasks_data:
                continue

            for asana_task in tasks_data.get("data", []):
                if asana_task.get("completed"):
                    continue

                token = marker("Asana", asana_task["gid"])
                if self._already_imported(existing, token):
                    continue

                task = await self._storage.create_task(
                    Task(
                        user_id=integration.user_id,
                        title=asana_task.get("name") or "Untitled Asana task",
                        description=f"Synced from {token} - {asana_task.get('notes') or 'No notes'}",
                        priority="high" if asana_task.get("due_on") else "medium",
                        status="pending",
                    )
                )
                existing.append(task)
                imported += 1

        return SyncResult(
            success=True,
            counts={"tasks": imported, "workspaces": len(workspaces), "imported": imported},
        )
