
from array import array
from dataclasses import dataclass


@dataclass(eq=False)
class Upload:
    name: str
    hashes: array  # typecode "Q", sorted ascending
    deposited_at: float
    expires_at: float
    serial: int = 0
    match_query_count: int = 0

    def __len__(self) -> int:
        return len(self.hashes)

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


def short_name(name: str) -> str:
    # names are bearer tokens; keep them out of logs
    return name[:4] + "…" if len(name) > 4 else "…"
