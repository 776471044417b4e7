"""Label-matched accuracy for inferred discrete states.

The model's discrete state indices carry no built-in correspondence with
the ground-truth labels, so inferred labels are first relabelled by the
permutation that maximises the number of matching timesteps.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

__all__ = [
    "MAX_BRUTE_FORCE_STATES",
    "AccuracyReport",
    "align_with_hungarian",
    "format_report",
    "print_report",
]

MAX_BRUTE_FORCE_STATES = 10
"""Largest ``num_states`` handled by the exhaustive permutation search."""


@dataclass(eq=False)
class AccuracyReport:
    """Outcome of label-matched accuracy scoring.

    ``permutation[inferred_label]`` is the matched true label. ``confusion``
    has ground truth on rows and permuted inferred labels on columns, so its
    diagonal holds the correct counts.
    """

    permutation: list[int]
    accuracy: float
    confusion: np.ndarray
    correct: int
    total: int


def _build_confusion(
    true_states: np.ndarray, inferred_states: np.ndarray, num_states: int
) -> np.ndarray:
    if true_states.shape != inferred_states.shape:
        raise ValueError(
            f"true_states shape {list(true_states.shape)} != "
            f"inferred_states shape {list(inferred_states.shape)}"
        )
    truth = true_states.ravel()
    inferred = inferred_states.ravel()
    bad_true = (truth < 0) | (truth >= num_states)
    bad_inferred = (inferred < 0) | (inferred >= num_states)
    bad = np.flatnonzero(bad_true | bad_inferred)
    if bad.size:
        idx = int(bad[0])
        if bad_true[idx]:
            raise ValueError(f"true_state {truth[idx]} out of range [0, {num_states})")
        raise ValueError(f"inferred_state {inferred[idx]} out of range [0, {num_states})")
    raw = np.zeros((num_states, num_states), dtype=np.uint32)
    np.add.at(raw, (truth.astype(np.intp), inferred.astype(np.intp)), 1)
    return raw


def _heap_permutations(n: int) -> Iterator[tuple[int, ...]]:
    """Every permutation of ``range(n)`` in the order of Heap's algorithm."""
    perm = list(range(n))
    yield tuple(perm)
    counters = [0] * n
    pivot = 0
    while pivot < n:
        if counters[pivot] < pivot:
            other = 0 if pivot % 2 == 0 else counters[pivot]
            perm[other], perm[pivot] = perm[pivot], perm[other]
            yield tuple(perm)
            counters[pivot] += 1
            pivot = 0
        else:
            counters[pivot] = 0
            pivot += 1


def align_with_hungarian(
    true_states: np.ndarray, inferred_states: np.ndarray, num_states: int
) -> AccuracyReport:
    """Find the relabelling that maximises matched accuracy.

    Both label arrays must share a shape and hold values in
    ``[0, num_states)``. Raises ``ValueError`` for invalid input, for
    ``num_states`` above :data:`MAX_BRUTE_FORCE_STATES`, or for empty input.
    """
    if num_states < 1:
        raise ValueError(f"num_states must be >= 1 (got {num_states})")
    if num_states > MAX_BRUTE_FORCE_STATES:
        raise ValueError(
            f"num_states {num_states} exceeds brute-force cap {MAX_BRUTE_FORCE_STATES} "
            "— implement a proper Hungarian solver"
        )
    raw = _build_confusion(np.asarray(true_states), np.asarray(inferred_states), num_states)
    total = int(raw.sum(dtype=np.uint64))
    if total == 0:
        raise ValueError(
            "no scored timesteps (true_states and inferred_states were both empty)"
        )

    counts = raw.tolist()
    columns = range(num_states)
    best_perm: tuple[int, ...] = tuple(columns)
    best_score = -1
    for perm in _heap_permutations(num_states):
        score = sum(counts[true_label][inferred] for inferred, true_label in zip(columns, perm))
        if score > best_score:
            best_score = score
            best_perm = perm

    confusion = np.zeros((num_states, num_states), dtype=np.uint32)
    confusion[:, list(best_perm)] = raw

    accuracy = float(np.float32(best_score) / np.float32(total))
    return AccuracyReport(
        permutation=list(best_perm),
        accuracy=accuracy,
        confusion=confusion,
        correct=best_score,
        total=total,
    )


def format_report(report: AccuracyReport) -> str:
    """Human-readable multi-line rendering of ``report``."""
    lines = [
        f"Matched accuracy: {report.accuracy:.4f} ({report.correct}/{report.total} timesteps)",
        "Label mapping (inferred -> true): "
        + ", ".join(f"{inferred}->{true}" for inferred, true in enumerate(report.permutation)),
        "Permuted confusion matrix (rows=true, cols=inferred-after-permutation):",
    ]
    for true_label, row in enumerate(report.confusion):
        cells = ", ".join(f"{int(count):>6}" for count in row)
        lines.append(f"  truth={true_label}: [{cells}]")
    return "\n".join(lines)


def print_report(report: AccuracyReport) -> None:
    """Print :func:`format_report` to standard output."""
    print(format_report(report))