"""An in-memory store of named things."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

__all__ = ["Thing", "ThingWithId", "ThingServer"]


@dataclass(frozen=True)
class Thing:
    """A thing as submitted by a client."""

    name: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the thing."""
        return {"name": self.name}


@dataclass(frozen=True)
class ThingWithId:
    """A stored thing together with its id."""

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the stored thing."""
        return {"id": self.id, "name": self.name}


@dataclass
class ThingServer:
    """Keeps things in memory, handing out ids from zero upwards."""

    last_id: int = 0
    things: dict[int, Thing] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def list_things(self) -> list[ThingWithId]:
        """Return all things, ordered by id."""
        with self.lock:
            return [
                ThingWithId(id=key, name=self.things[key].name)
                for key in sorted(self.things)
            ]

    def add_thing(self, thing: Thing) -> ThingWithId:
        """Store a thing under the next id and return it with that id."""
        with self.lock:
            thing_id = self.last_id
            self.things[thing_id] = thing
            self.last_id += 1
        return ThingWithId(id=thing_id, name=thing.name)