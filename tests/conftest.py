"""Shared fixtures: a fresh dashboard per test on a temp directory with a fake clock."""
import pytest

from clan_dashboard.config import DAY_MS
from clan_dashboard.dashboard import Dashboard

NOW = 1_760_000_000_000


class FakeClock:
    """Callable epoch-ms clock that tests move by hand."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def days_ago(self, days: float) -> int:
        return int(NOW - days * DAY_MS)


def make_member(tag, trophies=1000, donations=0, name=None, **extra):
    member = {
        "tag": tag,
        "name": name or f"Player {tag}",
        "role": "member",
        "trophies": trophies,
        "donations": donations,
        "donationsReceived": 0,
    }
    member.update(extra)
    return member


def make_clan(members, tag="#CLAN", name="Test Clan"):
    return {"tag": tag, "name": name, "members": len(members), "memberList": members}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dashboard(tmp_path, clock):
    return Dashboard(data_dir=str(tmp_path / "data"), clock=clock)


@pytest.fixture
def append_at(dashboard, clock):
    """Append a snapshot as if taken ``days`` ago."""
    def _append(category, data, days):
        clock.now = clock.days_ago(days)
        assert dashboard.append(category, data)
        clock.now = NOW
    return _append
