"""Wall clock used for timestamps; services accept an explicit ``now`` instead."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
