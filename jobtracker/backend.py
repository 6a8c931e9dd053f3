"""Key-value backend contract consumed by the record store."""

import asyncio
from typing import Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueBackend(Protocol):
    """Opaque string store. Each call can fail on its own; no cross-key transactions."""

    async def list(self, prefix: str) -> List[str]: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryBackend:
    """Dict-backed backend. Single-key writes are atomic, nothing else is."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    async def list(self, prefix: str) -> List[str]:
        await asyncio.sleep(0)
        return sorted(k for k in self.data if k.startswith(prefix))

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("backend values must be strings")
        await asyncio.sleep(0)
        self.data[key] = value

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        self.data.pop(key, None)
