"""
Score grid segmentation and line-oriented export.

Score files are gnuplot friendly: one sample per line and a blank line
between rows so pm3d can draw the grid as a surface.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from regeval.common.data_structures import ScoreSample

logger = logging.getLogger(__name__)


def segment_by_row(samples: Sequence[ScoreSample]) -> List[List[ScoreSample]]:
    """
    Split samples into contiguous runs sharing the same outer-axis value.

    Rows come from the row tag assigned at generation, so no float
    comparison is involved. Concatenating the runs gives back the input.

    Args:
        samples: Score samples in generation order

    Returns:
        List of runs, one per outer-axis value
    """
    segments: List[List[ScoreSample]] = []
    current: List[ScoreSample] = []
    for i, sample in enumerate(samples):
        if current and sample.offset.row != samples[i - 1].offset.row:
            segments.append(current)
            current = []
        current.append(sample)
    if current:
        segments.append(current)
    return segments


def score_segments(
    samples: Sequence[ScoreSample],
    axis_a: int,
    axis_b: int,
    use_constrained: bool = False
) -> List[List[Tuple[float, float, float]]]:
    """
    Surface data for a plotting collaborator.

    Args:
        samples: Score samples in generation order
        axis_a: Outer sweep axis
        axis_b: Inner sweep axis
        use_constrained: Use the soft-constrained score instead of the plain one

    Returns:
        Per row, a list of (offset[axis_a], offset[axis_b], score)
    """
    return [
        [
            (float(s.offset.vector[axis_a]), float(s.offset.vector[axis_b]),
             s.score(use_constrained))
            for s in segment
        ]
        for segment in segment_by_row(samples)
    ]


def _format(value: float) -> str:
    return repr(float(value))


def _write_rows(path: Path, samples: Sequence[ScoreSample], line_for) -> Optional[Path]:
    path = Path(path)
    logger.info(f"Saving to: {path}")
    try:
        with open(path, 'w') as f:
            for i, segment in enumerate(segment_by_row(samples)):
                if i > 0:
                    f.write("\n")
                for sample in segment:
                    f.write(line_for(sample) + "\n")
    except OSError as e:
        logger.error(f"Cannot write {path}: {e}")
        return None
    return path


def write_scores(path: Union[str, Path], samples: Sequence[ScoreSample]) -> Optional[Path]:
    """
    Write '<6 offset params> <plain> <constrained>' lines.

    Returns:
        Path written, or None if the file could not be written
    """
    def line(sample: ScoreSample) -> str:
        params = " ".join(_format(v) for v in sample.offset.vector)
        return f"{params} {_format(sample.score_plain)} {_format(sample.score_constrained)}"

    return _write_rows(path, samples, line)


def write_scores_2d(path: Union[str, Path], samples: Sequence[ScoreSample],
                    axis_a: int, axis_b: int) -> Optional[Path]:
    """
    Write '<offset[axis_a]> <offset[axis_b]> <plain> <constrained>' lines.

    Returns:
        Path written, or None if the file could not be written
    """
    def line(sample: ScoreSample) -> str:
        v = sample.offset.vector
        return (f"{_format(v[axis_a])} {_format(v[axis_b])} "
                f"{_format(sample.score_plain)} {_format(sample.score_constrained)}")

    return _write_rows(path, samples, line)


def read_scores(path: Union[str, Path]) -> List[List[List[float]]]:
    """
    Parse a score file back into rows of numeric lines.

    Blank lines separate rows.
    """
    rows: List[List[List[float]]] = []
    current: List[List[float]] = []
    with open(path, 'r') as f:
        for raw in f:
            line = raw.strip()
            if not line:
                if current:
                    rows.append(current)
                    current = []
                continue
            current.append([float(v) for v in line.split()])
    if current:
        rows.append(current)
    return rows
