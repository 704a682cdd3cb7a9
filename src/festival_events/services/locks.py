"""Keyed asyncio locks.

`KeyedLock` hands out one `asyncio.Lock` per key, so work for different users
runs concurrently while work for one user runs one unit at a time.

Locks only serialize tasks inside one process. Across worker processes the
collection row's `version` column does the same job.

```python
async with user_locks.hold(user_id):
    ...
```
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """A registry of locks keyed by string.

    A key's lock exists only while some task holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: str) -> bool:
        return key in self._locks


# Shared by every request handled by this process
user_locks = KeyedLock()
