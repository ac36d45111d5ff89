import numpy as np
import pytest

from si2wf.models import Calibration, RasterVolume


def make_tagged_volume(channels, z_planes, frames, phases, angles, height=4, width=6):
    """Raw volume whose planes are filled with their own 1-based flat index."""
    slices = z_planes * phases * angles
    count = channels * slices * frames
    tags = np.arange(1, count + 1, dtype=np.uint16)
    planes = np.broadcast_to(tags[:, None, None], (count, height, width)).copy()
    return RasterVolume(
        planes=planes, channels=channels, slices=slices, frames=frames, name="tagged.dv"
    )


@pytest.fixture
def tagged_volume():
    """Factory for index-tagged raw volumes."""
    return make_tagged_volume


@pytest.fixture
def random_volume():
    """Raw 16-bit volume with C=2, Z=3, T=2 and OMX 5 phases x 3 angles."""
    rng = np.random.default_rng(42)
    channels, z_planes, frames, phases, angles = 2, 3, 2, 5, 3
    slices = z_planes * phases * angles
    planes = rng.integers(0, 4095, (channels * slices * frames, 16, 12), dtype=np.uint16)
    return RasterVolume(
        planes=planes,
        channels=channels,
        slices=slices,
        frames=frames,
        calibration=Calibration(x=0.08, y=0.08, z=0.125),
        name="cell_01.dv",
    )
