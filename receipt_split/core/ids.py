import threading
from datetime import datetime, timezone

from ulid import ULID

_lock = threading.Lock()
_last: ULID | None = None


def generate_id() -> str:
    """Return a ULID string, strictly increasing within this process.

    Plain ULIDs minted in the same millisecond sort randomly; bumping the
    previous value keeps ``ORDER BY id`` equal to creation order.
    """
    global _last
    new = ULID()
    with _lock:
        if _last is not None and new.milliseconds <= _last.milliseconds:
            new = ULID.from_int(int(_last) + 1)
        _last = new
    return str(new)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
