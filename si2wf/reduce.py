# -*- coding: utf-8 -*-
"""Raw SI stack to pseudo-wide-field reduction.

Averages all phases and angles of every (t, z, c) position of a raw
structured-illumination stack, giving an image comparable to a conventional
wide-field acquisition of the same sample.
"""

import time
from dataclasses import replace
from pathlib import PurePath
from loguru import logger
import numpy as np

from si2wf.averager import average_planes
from si2wf.errors import ShapeMismatchError
from si2wf.models import (
    GroupParameters,
    OutputVolume,
    RasterVolume,
    ViewPosition,
)
from si2wf.router import IndexRouter

IMAGE_SUFFIXES = (
    ".ome.tiff",
    ".ome.tif",
    ".tiff",
    ".tif",
    ".dv",
    ".r3d",
    ".zarr",
)


def _check_plane_shapes(volume):
    # type: (RasterVolume) -> None
    if isinstance(volume.planes, np.ndarray) and volume.planes.ndim == 3:
        return
    shape = volume.plane_shape
    for i, plane in enumerate(volume.planes):
        if np.shape(plane) != shape:
            raise ShapeMismatchError(
                f"{volume.name}: plane {i} has shape {np.shape(plane)}, expected {shape}"
            )


def reduce_volume(volume, phases, angles):
    # type: (RasterVolume, int, int) -> OutputVolume
    """Average phases and angles of a raw SI stack.

    :param volume: Raw stack in OMX CPZAT order, left unmodified
    :param phases: Number of phases (P >= 1)
    :param angles: Number of angles (A >= 1)
    :return: New volume of C*Z*T float32 planes in (t, z, c) order
    :raises InvalidParameterError: If phases or angles are < 1
    :raises ShapeMismatchError: If the stack does not split into whole groups
    """
    start_time = time.time()
    params = GroupParameters(phases=phases, angles=angles).validate()
    channels, z_planes, frames = volume.logical_shape(params)
    _check_plane_shapes(volume)

    logger.debug(
        f"{volume.name} - averaging P={phases} x A={angles} for "
        f"C={channels}, Z={z_planes}, T={frames}"
    )

    router = IndexRouter(channels, z_planes, frames, params)
    planes = []
    for _, group in router.iter_groups(volume.planes):
        planes.append(average_planes(group))

    position = ViewPosition(channel=1, z=max(1, z_planes // 2), frame=1)
    elapsed = time.time() - start_time
    logger.debug(
        f"{volume.name} - {len(planes)} planes averaged in {elapsed:.2f} seconds"
    )

    return OutputVolume(
        planes=planes,
        channels=channels,
        z_planes=z_planes,
        frames=frames,
        default_position=position,
    )


def strip_image_suffix(name):
    # type: (str) -> str
    """Drop directories and a known image extension from a source name."""
    base = PurePath(name).name
    lowered = base.lower()
    for ext in IMAGE_SUFFIXES:
        if lowered.endswith(ext) and len(base) > len(ext):
            return base[: -len(ext)]
    return base


def make_title(name, suffix):
    # type: (str, str) -> str
    """Derive an output title from a source name, e.g. ``cell.dv`` -> ``cell_PWF``."""
    return f"{strip_image_suffix(name)}_{suffix}"


def pseudo_widefield(volume, phases, angles):
    # type: (RasterVolume, int, int) -> OutputVolume
    """Reduce a raw SI stack and carry over its calibration and a derived title."""
    result = reduce_volume(volume, phases, angles)
    return replace(
        result,
        calibration=volume.calibration,
        title=make_title(volume.name, "PWF"),
    )
