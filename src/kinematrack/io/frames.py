from __future__ import annotations

from typing import Iterable, Iterator, List, Protocol, Tuple, Union

import numpy as np

from kinematrack.utils.types import Frame


class FrameSource(Protocol):
    def __iter__(self) -> Iterator[Frame]:
        ...

    def close(self) -> None:
        ...


class ArrayFrameSource:
    """In-memory frames, e.g. synthetic test sequences."""

    def __init__(self, frames: Iterable[Union[Frame, Tuple[float, np.ndarray]]]) -> None:
        self._frames: List[Frame] = []
        for item in frames:
            if isinstance(item, Frame):
                self._frames.append(item)
            else:
                t_s, pixels = item
                self._frames.append(Frame(timestamp_s=float(t_s), pixels=pixels))

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def close(self) -> None:
        self._frames = []
