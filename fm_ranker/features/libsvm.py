"""
libsvm text serialisation of a ``FeatureMatrix``.

File-based engines (xlearn) read their test set from disk.  Unlabeled rows
are written without a leading label column::

    10:1 5:2 6:1
    20:1 5:2 6:1

Labeled matrices are not produced by the bridge and are rejected.
"""

from __future__ import annotations

from typing import Iterator, TextIO

from fm_ranker.models.matrix import FeatureMatrix, FeatureRow


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_row(row: FeatureRow) -> str:
    return " ".join(f"{n.index}:{_format_value(n.value)}" for n in row)


def to_libsvm_lines(matrix: FeatureMatrix) -> Iterator[str]:
    """Yield one libsvm line (no trailing newline) per matrix row."""
    if matrix.has_label:
        raise ValueError("Labeled matrices cannot be written in unlabeled libsvm form.")
    for row in matrix:
        yield format_row(row)


def write_libsvm(matrix: FeatureMatrix, stream: TextIO) -> int:
    """Write ``matrix`` to ``stream``; returns the number of rows written."""
    count = 0
    for line in to_libsvm_lines(matrix):
        stream.write(line)
        stream.write("\n")
        count += 1
    return count
