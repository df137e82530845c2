"""Example: drive the attendance workspace without Flask.

Controllers stay thin; the coordinator and services hold the behaviour.
"""

import asyncio
import importlib

from config import get_settings_module

from coaching_attendance.container import build_container


async def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(api_config=settings.API_CONFIG, threshold=settings.LOW_ATTENDANCE_THRESHOLD)
    workspace = container.build_workspace()

    result = await workspace.refresh()
    if not result.ok:
        print(f"[{result.error_kind.value}] {result.message}")
        return
    print(result.data.to_dict())


if __name__ == "__main__":
    asyncio.run(main())
