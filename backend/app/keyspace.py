"""Redis key layout."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Keyspace:
    prefix: str

    def pageviews(self, date: str) -> str:
        return f"{self.prefix}analytics:pv:{date}"

    def uniques(self, date: str) -> str:
        return f"{self.prefix}analytics:uu:{date}"

    def failure_count(self, segment: str) -> str:
        return f"{self.prefix}auth:bf:count:{segment}"

    def lock(self, segment: str) -> str:
        return f"{self.prefix}auth:bf:lock:{segment}"

    @property
    def credentials(self) -> str:
        return f"{self.prefix}admin:credentials"

    def session(self, sid: str) -> str:
        return f"{self.prefix}sess:{sid}"
