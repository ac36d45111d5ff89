# -*- coding: utf-8 -*-
"""Reading raw SI stacks with BioIO and writing pseudo-wide-field results.

Raw OMX acquisitions fold phases and angles into the Z dimension, so BioIO
reports them as ordinary TCZYX images. Planes are flattened here into the
flat CPZAT sequence expected by :mod:`si2wf.reduce`.
"""

import logging
from pathlib import Path
from typing import Any, Generator, Optional, Union
import numpy as np
import tifffile
import bioio

from si2wf.models import Calibration, OutputVolume, RasterVolume
from si2wf.reduce import strip_image_suffix

logger = logging.getLogger(__name__)


def _calibration_from(img):
    # type: (bioio.BioImage) -> Optional[Calibration]
    pps = img.physical_pixel_sizes
    # Array-like readers report no physical sizes at all
    if pps is None:
        return None
    if pps.X is None and pps.Y is None and pps.Z is None:
        return None
    return Calibration(x=pps.X, y=pps.Y, z=pps.Z)


def _flatten_tczyx(data):
    # type: (np.ndarray) -> np.ndarray
    """Reorder a TCZYX array into planes with C fastest, then Z, then T."""
    size_t, size_c, size_z, size_y, size_x = data.shape
    planes = np.ascontiguousarray(data.transpose(0, 2, 1, 3, 4))
    return planes.reshape(size_t * size_z * size_c, size_y, size_x)


def _read_scene(img, image_name, scene_idx, num_scenes):
    # type: (bioio.BioImage, str, int, int) -> RasterVolume
    """Read the current scene of an open BioImage as a raw SI volume."""
    data = img.get_image_data("TCZYX")
    size_t, size_c, size_z, size_y, size_x = data.shape
    logger.debug(
        f"{image_name} - scene {scene_idx}: T={size_t}, C={size_c}, Z={size_z}, Y={size_y}, X={size_x}"
    )

    name = image_name
    if num_scenes > 1:
        name = f"{strip_image_suffix(image_name)}.scene_{scene_idx:03d}"
    return RasterVolume(
        planes=_flatten_tczyx(data),
        channels=size_c,
        slices=size_z,
        frames=size_t,
        calibration=_calibration_from(img),
        name=name,
    )


def iter_raw_volumes(image, **reader_kwargs):
    # type: (bioio.ImageLike, **Any) -> Generator[RasterVolume, None, None]
    """Yield one raw SI volume per scene of a bioimage.

    :param image: Path to bioimage file, fsspec URI, or array-like object
    :param reader_kwargs: Passed to ``bioio.BioImage`` (e.g. ``dim_order``)
    :return: Generator of RasterVolume in scene order
    """
    img = bioio.BioImage(image, **reader_kwargs)
    image_name = Path(image).name if isinstance(image, (str, Path)) else "array"

    num_scenes = len(img.scenes)
    logger.debug(f"{image_name} - processing {num_scenes} scene(s)")

    for scene_idx in range(num_scenes):
        if num_scenes > 1:
            img.set_scene(scene_idx)
            logger.debug(
                f"{image_name} - processing scene {scene_idx}: {img.scenes[scene_idx]}"
            )

        yield _read_scene(img, image_name, scene_idx, num_scenes)


def load_raw_volume(image, scene=0, **reader_kwargs):
    # type: (bioio.ImageLike, int, **Any) -> RasterVolume
    """Load a single scene of a bioimage as a raw SI volume.

    :raises IndexError: If the image has no such scene
    """
    img = bioio.BioImage(image, **reader_kwargs)
    image_name = Path(image).name if isinstance(image, (str, Path)) else "array"

    num_scenes = len(img.scenes)
    if not 0 <= scene < num_scenes:
        raise IndexError(f"Scene {scene} not found in {image_name} ({num_scenes} scene(s))")
    if num_scenes > 1:
        img.set_scene(scene)
    return _read_scene(img, image_name, scene, num_scenes)


def save_pwf(output: OutputVolume, path: Union[str, Path]) -> Path:
    """Save a pseudo-wide-field volume as an ImageJ hyperstack TIFF.

    Args:
        output: Reduced volume to save
        path: Destination file; parent directories are created

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    position = output.default_position
    metadata = {
        "axes": "TZCYX",
        "Info": (
            f"Title = {output.title}\n"
            f"DefaultChannel = {position.channel}\n"
            f"DefaultSlice = {position.z}\n"
            f"DefaultFrame = {position.frame}\n"
        ),
    }
    kwargs = {}
    calibration = output.calibration
    if calibration is not None:
        metadata["unit"] = calibration.unit
        if calibration.z:
            metadata["spacing"] = calibration.z
        if calibration.x and calibration.y:
            kwargs["resolution"] = (1 / calibration.x, 1 / calibration.y)

    data = output.as_hyperstack()
    logger.info(f"Saving {output.title}: shape={data.shape}, axes=TZCYX")
    tifffile.imwrite(path, data, imagej=True, metadata=metadata, **kwargs)
    return path
