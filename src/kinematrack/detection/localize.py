from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Tuple

import numpy as np

from kinematrack.utils.types import Detection, Segmentation

DEFAULT_MIN_PIXELS = 40

_NEIGHBOURS_4 = ((1, 0), (-1, 0), (0, 1), (0, -1))


def _detection_from_points(xs: np.ndarray, ys: np.ndarray, stride: int) -> Detection:
    # spans are pixel footprints: a single sampled pixel covers `stride` pixels
    span_x = float(xs.max() - xs.min()) + float(stride)
    span_y = float(ys.max() - ys.min()) + float(stride)
    return Detection(
        centroid_x=float(xs.mean()),
        centroid_y=float(ys.mean()),
        extent_px=max(span_x, span_y),
        pixel_count=int(xs.size),
    )


def localize_centroid(seg: Segmentation, min_pixels: int = DEFAULT_MIN_PIXELS) -> Optional[Detection]:
    if seg.count < max(1, int(min_pixels)):
        return None
    return _detection_from_points(seg.xs, seg.ys, seg.stride)


def largest_component(mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Rows and columns of the largest 4-connected region of ``mask``.

    Iterative breadth-first flood fill with a visited grid.
    """
    h, w = mask.shape[:2]
    grid = mask.astype(bool).tolist()
    visited = [bytearray(w) for _ in range(h)]
    best_rows: List[int] = []
    best_cols: List[int] = []

    for r0, c0 in np.argwhere(mask):
        r0 = int(r0)
        c0 = int(c0)
        if visited[r0][c0]:
            continue
        visited[r0][c0] = 1
        queue: Deque[Tuple[int, int]] = deque([(r0, c0)])
        rows: List[int] = []
        cols: List[int] = []
        while queue:
            r, c = queue.popleft()
            rows.append(r)
            cols.append(c)
            for dr, dc in _NEIGHBOURS_4:
                nr = r + dr
                nc = c + dc
                if 0 <= nr < h and 0 <= nc < w and grid[nr][nc] and not visited[nr][nc]:
                    visited[nr][nc] = 1
                    queue.append((nr, nc))
        if len(rows) > len(best_rows):
            best_rows = rows
            best_cols = cols

    return np.asarray(best_rows, dtype=np.int64), np.asarray(best_cols, dtype=np.int64)


def localize_largest_component(seg: Segmentation, min_pixels: int = DEFAULT_MIN_PIXELS) -> Optional[Detection]:
    if seg.count < max(1, int(min_pixels)):
        return None
    rows, cols = largest_component(seg.mask)
    if rows.size < max(1, int(min_pixels)):
        return None
    return _detection_from_points(cols * seg.stride, rows * seg.stride, seg.stride)
