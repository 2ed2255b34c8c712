"""Named in-process locks.

Locks live in a weak-value registry: a lock exists only while some task holds
or waits on it, so per-event locks do not accumulate and a lock is never
reused across event loops.
"""

import asyncio
import weakref

_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def named_lock(name: str) -> asyncio.Lock:
    """Return the lock registered under ``name``, creating it if needed."""
    lock = _locks.get(name)
    if lock is None:
        lock = asyncio.Lock()
        _locks[name] = lock
    return lock
