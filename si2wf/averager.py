"""Per-pixel averaging of one phase/angle group."""

from typing import Sequence
import numpy as np

from si2wf.errors import InvalidParameterError, ShapeMismatchError


def average_planes(group: Sequence[np.ndarray]) -> np.ndarray:
    """Average a group of planes pixel by pixel in 32-bit floating point.

    Every plane is converted to float32 and added into a zeroed float32
    buffer, which is divided by the group size once all planes are summed.
    The input planes are not modified.

    Args:
        group: 2D planes of identical shape (Y, X)

    Returns:
        New float32 plane holding the mean of the group

    Raises:
        InvalidParameterError: If the group is empty
        ShapeMismatchError: If a plane is not 2D or differs in shape
    """
    size = len(group)
    if size == 0:
        raise InvalidParameterError("Cannot average an empty group of planes")

    shape = np.shape(group[0])
    if len(shape) != 2:
        raise ShapeMismatchError(f"Expected 2D plane, got {len(shape)}D")

    accumulator = np.zeros(shape, dtype=np.float32)
    for i, plane in enumerate(group):
        if np.shape(plane) != shape:
            raise ShapeMismatchError(
                f"Plane {i} has shape {np.shape(plane)}, expected {shape}"
            )
        accumulator += np.asarray(plane, dtype=np.float32)

    accumulator /= np.float32(size)
    return accumulator
