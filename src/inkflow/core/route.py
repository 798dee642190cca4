"""Pen-travel optimisation.

Two heuristics live here:

- :func:`sort_lines` orders disconnected polylines so the pen lifts as
  little as possible between them (greedy nearest endpoint).
- :func:`nearest_neighbor_tour` and :func:`two_opt` order a point set into a
  single short tour for TSP-art rendering.

Neither is an exact solver; both are bounded by work budgets.
"""

import math
from collections.abc import Callable, Sequence

import numpy as np

from inkflow.domain import Coord, Polyline

ProgressCallback = Callable[[str], None]


def travel_distance(lines: Sequence[Sequence[Coord]]) -> float:
    """Total pen-up distance when drawing ``lines`` in order."""
    total = 0.0
    for prev, line in zip(lines, lines[1:]):
        if not prev or not line:
            continue
        (ax, ay), (bx, by) = prev[-1], line[0]
        total += math.hypot(bx - ax, by - ay)
    return total


def sort_lines(lines: Sequence[Polyline]) -> list[Polyline]:
    """Order and orient polylines to reduce pen travel.

    Starts from the last input line, then repeatedly appends the line with
    the nearest endpoint to the current pen position, reversing it when its
    far end is the closer one. The input order is returned if the greedy
    order happens to travel further. Empty polylines carry no endpoints and
    are kept, in input order, after the drawable ones.

    Args:
        lines: Open polylines

    Returns:
        A new list containing every input line once, possibly reversed
    """
    remaining = [list(line) for line in lines if line]
    empty = [[] for line in lines if not line]
    if len(remaining) < 2:
        return remaining + empty

    starts = np.array([line[0] for line in remaining], dtype=np.float64)
    ends = np.array([line[-1] for line in remaining], dtype=np.float64)
    available = np.ones(len(remaining), dtype=bool)

    current = len(remaining) - 1
    available[current] = False
    ordered = [remaining[current]]
    pen = ends[current]

    for _ in range(len(remaining) - 1):
        d_start = np.sum((starts - pen) ** 2, axis=1)
        d_end = np.sum((ends - pen) ** 2, axis=1)
        d_start[~available] = np.inf
        d_end[~available] = np.inf

        best_start = int(np.argmin(d_start))
        best_end = int(np.argmin(d_end))
        if d_end[best_end] < d_start[best_start]:
            index = best_end
            line = remaining[index][::-1]
            pen = starts[index]
        else:
            index = best_start
            line = remaining[index]
            pen = ends[index]

        available[index] = False
        ordered.append(line)

    if travel_distance(ordered) > travel_distance(remaining):
        return remaining + empty
    return ordered + empty


def tour_length(points: Sequence[Coord]) -> float:
    """Length of the open polyline through ``points``."""
    if len(points) < 2:
        return 0.0
    array = np.asarray(points, dtype=np.float64)
    return float(np.sum(np.hypot(*np.diff(array, axis=0).T)))


def nearest_neighbor_tour(points: Sequence[Coord]) -> list[Coord]:
    """Greedy tour starting from the first point."""
    count = len(points)
    if count < 3:
        return list(points)

    array = np.asarray(points, dtype=np.float64)
    visited = np.zeros(count, dtype=bool)
    order = [0]
    visited[0] = True
    current = array[0]
    for _ in range(count - 1):
        dist = np.sum((array - current) ** 2, axis=1)
        dist[visited] = np.inf
        nxt = int(np.argmin(dist))
        visited[nxt] = True
        order.append(nxt)
        current = array[nxt]

    return [(float(array[i, 0]), float(array[i, 1])) for i in order]


def two_opt(
    points: Sequence[Coord],
    rng: np.random.Generator,
    *,
    budget: float = 2000.0,
    initial_score: float = 100.0,
    decay: float = 0.9,
    trials_per_point: float = 20.0,
    max_passes: int = 200,
    on_pass: ProgressCallback | None = None,
    checkpoint: Callable[[], None] | None = None,
) -> list[Coord]:
    """Randomised 2-opt refinement of an open tour.

    Each pass decays a running swap score, tries ``trials_per_point * n``
    random segment reversals and adds the number of improvements to the
    score. The
    run stops once the score drops below ``budget / n`` or after
    ``max_passes`` passes. The result is never longer than the input.

    Args:
        points: Tour to refine
        rng: Random source
        budget: Termination budget; the threshold is ``budget / n``
        initial_score: Starting swap score
        decay: Per-pass decay of the swap score
        trials_per_point: Trials per pass per tour point
        max_passes: Hard pass limit
        on_pass: Optional progress callback receiving a status string
        checkpoint: Optional cancellation hook called between passes

    Returns:
        The refined tour
    """
    count = len(points)
    if count < 4:
        return list(points)

    xs = [float(p[0]) for p in points]
    ys = [float(p[1]) for p in points]

    def dist(a: int, b: int) -> float:
        return math.hypot(xs[a] - xs[b], ys[a] - ys[b])

    threshold = budget / count
    score = initial_score
    trials = max(1, int(trials_per_point * count))
    passes = 0

    while score > threshold and passes < max_passes:
        if checkpoint is not None:
            checkpoint()
        score *= decay
        picks = rng.integers(0, count - 1, size=(trials, 2))
        for a, b in picks:
            i, j = (int(a), int(b)) if a < b else (int(b), int(a))
            if j - i < 2:
                continue
            before = dist(i, i + 1) + dist(j, j + 1)
            after = dist(i, j) + dist(i + 1, j + 1)
            if after < before:
                xs[i + 1 : j + 1] = xs[i + 1 : j + 1][::-1]
                ys[i + 1 : j + 1] = ys[i + 1 : j + 1][::-1]
                score += 1
        passes += 1
        if on_pass is not None:
            on_pass(f"Optimizing route... [{score:.2f}]")

    return list(zip(xs, ys))


def tsp_tour(
    points: Sequence[Coord],
    rng: np.random.Generator,
    on_pass: ProgressCallback | None = None,
    checkpoint: Callable[[], None] | None = None,
) -> list[Coord]:
    """Greedy tour followed by 2-opt refinement."""
    tour = nearest_neighbor_tour(points)
    return two_opt(tour, rng, on_pass=on_pass, checkpoint=checkpoint)
