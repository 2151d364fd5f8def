"""Background snapshot task for the loaded clan."""
import asyncio
from typing import Optional

from clan_dashboard.config import DEFAULT_SETTINGS
from clan_dashboard.dashboard import Dashboard
from clan_dashboard.settings import is_positive_number


class AutoSnapshotController:
    """
    Owns the single periodic task that appends the current clan data to the
    ``clan`` history.

    ``start`` always cancels a live task before creating its replacement, so
    restarting after an interval change never leaves two timers running.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard
        self.interval_minutes: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_minutes: Optional[float] = None) -> asyncio.Task:
        """Start (or restart) the loop. Must be called from a running event loop."""
        self.stop(quiet=True)
        if interval_minutes is None:
            interval_minutes = self.dashboard.get_settings().get("snapshotIntervalMinutes")
        if not is_positive_number(interval_minutes):
            print(f"[AUTO] Invalid snapshot interval {interval_minutes!r}, using the default")
            interval_minutes = DEFAULT_SETTINGS["snapshotIntervalMinutes"]
        self.interval_minutes = interval_minutes
        self._task = asyncio.create_task(self._run(interval_minutes * 60))
        print(f"[AUTO] Auto-snapshot started (every {interval_minutes} minutes)")
        return self._task

    def restart(self) -> asyncio.Task:
        """Restart with the interval currently saved in settings."""
        return self.start()

    def stop(self, quiet: bool = False) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            if not quiet:
                print("[AUTO] Auto-snapshot stopped")

    def take_snapshot(self) -> bool:
        """Append the current clan data once. False when there is nothing to record."""
        clan_data = self.dashboard.get_clan_data()
        if not clan_data or not clan_data.get("tag"):
            return False
        print("[AUTO] Auto-saving clan snapshot...")
        return self.dashboard.append("clan", clan_data)

    async def _run(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.take_snapshot()
            except Exception as e:
                print(f"[AUTO] Error in auto-snapshot loop: {e}")
