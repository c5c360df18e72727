"""In-memory test doubles for the key-value store and the directory API.

``FakeStore`` implements the ``KeyValueStore`` interface on a dict with a
controllable clock, so TTL countdown, NX locks and MULTI batches behave like
Redis without a server. Failures are injected per command name.
``HasuraStub`` answers the directory GraphQL queries over httpx.MockTransport.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import httpx

from frames_directory.cache.serializer import decode_entry, encode_entry
from frames_directory.errors import StoreUnavailableError
from frames_directory.redis_client import KeyTtl


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBatch:
    def __init__(self, store: "FakeStore"):
        self._store = store
        self._ops: List[Callable[[], Any]] = []

    def get(self, key):
        self._ops.append(lambda: self._store._get(key))
        return self

    def set(self, key, value, ex=None, nx=False):
        self._ops.append(lambda: self._store._set(key, value, ex, nx))
        return self

    def ttl(self, key):
        self._ops.append(lambda: self._store._ttl(key))
        return self

    def exists(self, key):
        self._ops.append(lambda: self._store._exists(key))
        return self

    def delete(self, *keys):
        self._ops.append(lambda: self._store._delete(keys))
        return self

    async def execute(self) -> List[Any]:
        self._store._check("multi")
        return [op() for op in self._ops]


class FakeStore:
    """Dict-backed store with expiry, NX and MULTI.

    Attributes:
        clock: Time source for expiry
        fail_on: Command names ("get", "set", "delete", "ttl", "exists",
            "multi") that raise StoreUnavailableError
        commands: Names of the commands issued, in order
    """

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.fail_on: Set[str] = set()
        self.commands: List[str] = []

    # ==================== Test helpers ====================

    def fail(self, *commands: str) -> None:
        self.fail_on.update(commands or {"get", "set", "delete", "ttl", "exists", "multi"})

    def recover(self) -> None:
        self.fail_on.clear()

    def seed(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Store ``data`` as a cache entry."""
        self._set(key, encode_entry(data), ttl, False)

    def raw(self, key: str) -> Optional[str]:
        item = self._live(key)
        return item[0] if item else None

    def entry(self, key: str):
        return decode_entry(self.raw(key))

    def keys(self) -> List[str]:
        return [key for key in list(self._data) if self._live(key)]

    # ==================== Internals ====================

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if command in self.fail_on:
            raise StoreUnavailableError(f"fake {command} failure")

    def _live(self, key: str):
        item = self._data.get(key)
        if item is None:
            return None
        expires_at = item[1]
        if expires_at is not None and expires_at <= self.clock():
            del self._data[key]
            return None
        return item

    def _get(self, key):
        item = self._live(key)
        return item[0] if item else None

    def _set(self, key, value, ex, nx) -> bool:
        if nx and self._live(key):
            return False
        expires_at = self.clock() + ex if ex else None
        self._data[key] = (value, expires_at)
        return True

    def _ttl(self, key) -> KeyTtl:
        item = self._live(key)
        if item is None:
            return KeyTtl.absent()
        if item[1] is None:
            return KeyTtl.persistent()
        return KeyTtl.expiring(int(item[1] - self.clock()))

    def _exists(self, key) -> bool:
        return self._live(key) is not None

    def _delete(self, keys) -> int:
        count = 0
        for key in keys:
            if self._live(key) is not None:
                count += 1
            self._data.pop(key, None)
        return count

    # ==================== KeyValueStore interface ====================

    async def ping(self) -> bool:
        return "ping" not in self.fail_on

    async def get(self, key):
        self._check("get")
        return self._get(key)

    async def set(self, key, value, ex=None, nx=False) -> bool:
        self._check("set")
        return self._set(key, value, ex, nx)

    async def delete(self, *keys) -> int:
        if not keys:
            return 0
        self._check("delete")
        return self._delete(keys)

    async def ttl(self, key) -> KeyTtl:
        self._check("ttl")
        return self._ttl(key)

    async def exists(self, key) -> bool:
        self._check("exists")
        return self._exists(key)

    def multi(self) -> FakeBatch:
        return FakeBatch(self)


class HasuraStub:
    """MockTransport handler answering the directory GraphQL queries.

    Attributes:
        users: Rows returned for the list, single-creator and membership
            queries; a join appends a new row
        gives: Rows returned for the gives query, by lowercased address
        failures: Operation name -> number of upcoming calls answered with 500
        calls: (operation, variables) of every request, in order
    """

    OPERATIONS = {
        "CreatorsDirGetAllCreators": "all",
        "CreatorsDirGetSingleCreator": "single",
        "CreatorsDirGetCreatorGives": "gives",
        "CreatorsDirCheckMembership": "membership",
        "CreatorsDirJoinDirectory": "join",
    }

    def __init__(self, users=None, gives=None):
        self.users: List[Dict[str, Any]] = list(users or [])
        self.gives: Dict[str, List[Dict[str, Any]]] = dict(gives or {})
        self.failures: Dict[str, int] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        operation = next(
            (name for marker, name in self.OPERATIONS.items() if marker in body["query"]),
            "unknown",
        )
        variables = body.get("variables") or {}
        self.calls.append((operation, variables))

        if self.failures.get(operation, 0) > 0:
            self.failures[operation] -= 1
            return httpx.Response(500, text="upstream down")

        if operation == "all":
            return httpx.Response(200, json={"data": {"users": self.users}})
        if operation == "single":
            address = variables["address"].lower()
            rows = [u for u in self.users if u["profile"]["address"].lower() == address]
            return httpx.Response(200, json={"data": {"users": rows}})
        if operation == "gives":
            rows = self.gives.get(variables["address"].lower(), [])
            return httpx.Response(200, json={"data": {"colinks_gives": rows}})
        if operation == "membership":
            address = variables["address"].lower()
            rows = [u for u in self.users if u["profile"]["address"].lower() == address]
            return httpx.Response(200, json={"data": {"users": rows}})
        if operation == "join":
            user_id = max((int(u["id"]) for u in self.users), default=0) + 1
            self.users.append(user_row(user_id, variables["address"], variables["name"]))
            return httpx.Response(200, json={"data": {"createUsers": [{"id": user_id}]}})
        return httpx.Response(400, json={"errors": [{"message": "unknown operation"}]})


def user_row(user_id: int, address: str, name: str, avatar: str = "") -> Dict[str, Any]:
    return {
        "id": user_id,
        "profile": {
            "id": user_id * 10,
            "address": address,
            "name": name,
            "avatar": avatar,
            "description": f"{name} makes frames",
            "farcaster_account": {"username": name.lower()},
        },
    }
