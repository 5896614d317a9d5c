from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Tuple


@dataclass(frozen=True)
class StagedWrite:
    path: str
    content: str
    description: str


class StagingBuffer:
    """Ordered, append-only list of file writes waiting to be landed.

    Every write is kept, including repeated writes to the same path. When the
    buffer is turned into a landing payload with flatten(), each path appears
    once, at the position it was first staged, carrying its latest content.
    """

    def __init__(self) -> None:
        self._writes: List[StagedWrite] = []

    def stage(self, path: str, content: str, description: str) -> StagedWrite:
        write = StagedWrite(path=path, content=content, description=description)
        self._writes.append(write)
        return write

    def flatten(self) -> List[StagedWrite]:
        latest: dict[str, StagedWrite] = {}
        for write in self._writes:
            latest[write.path] = write
        return list(latest.values())

    def snapshot(self) -> Tuple[StagedWrite, ...]:
        return tuple(self._writes)

    @property
    def paths(self) -> List[str]:
        return [w.path for w in self.flatten()]

    def __len__(self) -> int:
        return len(self._writes)

    def __bool__(self) -> bool:
        return bool(self._writes)

    def __iter__(self) -> Iterator[StagedWrite]:
        return iter(list(self._writes))
