# -*- coding: utf-8 -*-
"""Index routing for raw SI stacks stored in OMX CPZAT order.

Raw structured-illumination data stores its planes with the channel varying
fastest, followed by phase, z, angle and finally time. This module maps
logical (t, z, c, a, p) coordinates onto that flat sequence and walks them
in the order needed to collect each phase/angle group for one (t, z, c)
position consecutively.
"""

from typing import Generator, Iterator, List, Sequence, Tuple
from loguru import logger
import numpy as np

from si2wf.errors import InvalidParameterError
from si2wf.models import GroupParameters, LogicalCoordinate


def linear_index(t, z, c, a, p, channels, z_planes, frames, phases, angles):
    # type: (int, int, int, int, int, int, int, int, int, int) -> int
    """Return the 1-based position of a logical coordinate in a CPZAT stack.

    :param t: Frame (1-based)
    :param z: Z-plane after phases and angles are divided out (1-based)
    :param c: Channel (1-based)
    :param a: Angle (1-based)
    :param p: Phase (1-based)
    :return: Position of the plane in the flat sequence (1-based)
    :raises InvalidParameterError: If any coordinate is outside its extent
    """
    for name, value, extent in (
        ("t", t, frames),
        ("z", z, z_planes),
        ("c", c, channels),
        ("a", a, angles),
        ("p", p, phases),
    ):
        if not 1 <= value <= extent:
            raise InvalidParameterError(f"{name}={value} outside [1, {extent}]")

    index = (t - 1) * (channels * phases * z_planes * angles)
    index += (a - 1) * (channels * phases * z_planes)
    index += (z - 1) * (channels * phases)
    index += (p - 1) * channels
    index += c
    return index


class IndexRouter:
    """Restartable walk over (t, z, c, a, p) for one raw SI stack.

    Iterating yields every LogicalCoordinate once, outermost to innermost:
    frame, z-plane, channel, angle, phase. Each ``iter()`` starts a new walk.
    """

    def __init__(self, channels, z_planes, frames, params):
        # type: (int, int, int, GroupParameters) -> None
        params.validate()
        for name, extent in (
            ("channels", channels),
            ("z_planes", z_planes),
            ("frames", frames),
        ):
            if extent < 1:
                raise InvalidParameterError(f"{name} must be >= 1, got {extent}")
        self.channels = channels
        self.z_planes = z_planes
        self.frames = frames
        self.params = params

    def __len__(self) -> int:
        return (
            self.channels
            * self.z_planes
            * self.frames
            * self.params.group_size
        )

    def __iter__(self) -> Iterator[LogicalCoordinate]:
        for t in range(1, self.frames + 1):
            for z in range(1, self.z_planes + 1):
                for c in range(1, self.channels + 1):
                    for a in range(1, self.params.angles + 1):
                        for p in range(1, self.params.phases + 1):
                            yield LogicalCoordinate(t=t, z=z, c=c, a=a, p=p)

    def index_of(self, coord: LogicalCoordinate) -> int:
        """1-based position of ``coord`` in the flat plane sequence."""
        return linear_index(
            coord.t,
            coord.z,
            coord.c,
            coord.a,
            coord.p,
            self.channels,
            self.z_planes,
            self.frames,
            self.params.phases,
            self.params.angles,
        )

    def offset_of(self, coord: LogicalCoordinate) -> int:
        """0-based position of ``coord``, for indexing Python sequences."""
        return self.index_of(coord) - 1

    def is_group_complete(self, coord: LogicalCoordinate) -> bool:
        """True on the last phase of the last angle of a (t, z, c) group."""
        # Only the final (a=A, p=P) iteration reaches the product P*A
        return coord.p * coord.a == self.params.group_size

    def iter_groups(self, planes):
        # type: (Sequence[np.ndarray]) -> Generator[Tuple[Tuple[int, int, int], List[np.ndarray]], None, None]
        """Collect planes along the walk and yield each completed group.

        :param planes: Flat plane sequence of exactly ``len(self)`` planes
        :return: Generator of ((t, z, c), group) with P*A planes per group
        """
        group = []
        last_tz = None
        for coord in self:
            if (coord.t, coord.z) != last_tz:
                logger.debug(f"t={coord.t}/{self.frames} z={coord.z}/{self.z_planes}")
                last_tz = (coord.t, coord.z)
            group.append(planes[self.offset_of(coord)])
            if self.is_group_complete(coord):
                yield (coord.t, coord.z, coord.c), group
                group = []
