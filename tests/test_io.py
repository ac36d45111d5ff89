import numpy as np
import pytest
import tifffile

from si2wf.io import _flatten_tczyx, iter_raw_volumes, load_raw_volume, save_pwf
from si2wf.reduce import pseudo_widefield, reduce_volume
from si2wf.router import linear_index


def test_flatten_orders_channel_fastest():
    # T=2, C=3, Z=4 with every plane tagged by its (t, c, z)
    data = np.zeros((2, 3, 4, 2, 2), dtype=np.uint16)
    for t in range(2):
        for c in range(3):
            for z in range(4):
                data[t, c, z] = t * 100 + c * 10 + z
    planes = _flatten_tczyx(data)

    assert planes.shape == (24, 2, 2)
    assert planes[0, 0, 0] == 0
    assert planes[1, 0, 0] == 10
    assert planes[3, 0, 0] == 1
    assert planes[12, 0, 0] == 100


def test_flattened_planes_follow_cpzat_index():
    channels, z_planes, frames, phases, angles = 2, 3, 2, 5, 3
    slices = z_planes * phases * angles
    data = np.zeros((frames, channels, slices, 1, 1), dtype=np.int32)
    # Raw slice position of (z, a, p) within one frame: angle, then z, then phase
    for t in range(frames):
        for c in range(channels):
            for a in range(angles):
                for z in range(z_planes):
                    for p in range(phases):
                        s = (a * z_planes + z) * phases + p
                        data[t, c, s] = linear_index(
                            t + 1, z + 1, c + 1, a + 1, p + 1,
                            channels, z_planes, frames, phases, angles,
                        )
    planes = _flatten_tczyx(data)
    assert np.array_equal(planes[:, 0, 0], np.arange(1, len(planes) + 1))


def test_load_raw_volume_from_array():
    data = np.arange(2 * 3 * 15 * 4 * 5, dtype=np.uint16).reshape(2, 3, 15, 4, 5)
    volume = load_raw_volume(data, dim_order="TCZYX")

    assert (volume.channels, volume.slices, volume.frames) == (3, 15, 2)
    assert len(volume) == 2 * 3 * 15
    assert volume.name == "array"
    assert volume.calibration is None
    assert np.array_equal(volume.planes[1], data[0, 1, 0])

    result = reduce_volume(volume, 5, 3)
    assert len(result) == 3 * 1 * 2


def test_save_pwf_writes_imagej_hyperstack(random_volume, tmp_path):
    result = pseudo_widefield(random_volume, 5, 3)
    path = save_pwf(result, tmp_path / "out" / f"{result.title}.tif")

    assert path.exists()
    with tifffile.TiffFile(path) as tif:
        assert tif.is_imagej
        data = tif.series[0].asarray()
        ij = tif.imagej_metadata

    assert data.dtype == np.float32
    assert data.shape == (2, 3, 2, 16, 12)
    assert np.array_equal(data, result.as_hyperstack())
    assert ij["frames"] == 2
    assert ij["slices"] == 3
    assert ij["channels"] == 2
    assert ij["spacing"] == pytest.approx(0.125)
    assert ij["unit"] == "um"
    assert "Title = cell_01_PWF" in ij["Info"]
    assert "DefaultSlice = 1" in ij["Info"]


def test_save_pwf_without_calibration(tagged_volume, tmp_path):
    result = reduce_volume(tagged_volume(2, 2, 2, 1, 1), 1, 1)
    path = save_pwf(result, tmp_path / "plain.tif")

    with tifffile.TiffFile(path) as tif:
        ij = tif.imagej_metadata
    assert "spacing" not in ij


def _write_raw_hyperstack(path, frames=2, z_planes=15, channels=2):
    """Write an OMX-like ImageJ hyperstack with 80 nm pixels and 125 nm z steps."""
    data = np.arange(frames * z_planes * channels * 4 * 5, dtype=np.uint16).reshape(
        frames, z_planes, channels, 4, 5
    )
    tifffile.imwrite(
        path,
        data,
        imagej=True,
        resolution=(1 / 0.08, 1 / 0.08),
        metadata={"axes": "TZCYX", "spacing": 0.125, "unit": "um"},
    )
    return data


def test_load_raw_volume_from_calibrated_tiff(tmp_path):
    path = tmp_path / "raw_cell.tif"
    data = _write_raw_hyperstack(path)
    volume = load_raw_volume(path)

    assert (volume.channels, volume.slices, volume.frames) == (2, 15, 2)
    assert volume.name == "raw_cell.tif"
    # data is TZCYX: the second plane is channel 2 of the first slice
    assert np.array_equal(volume.planes[1], data[0, 0, 1])
    assert volume.calibration is not None
    assert volume.calibration.x == pytest.approx(0.08, rel=1e-4)
    assert volume.calibration.y == pytest.approx(0.08, rel=1e-4)
    assert volume.calibration.z == pytest.approx(0.125)


def test_calibration_survives_reduction_and_save(tmp_path):
    raw_path = tmp_path / "raw_cell.tif"
    _write_raw_hyperstack(raw_path)
    result = pseudo_widefield(load_raw_volume(raw_path), 5, 3)
    path = save_pwf(result, tmp_path / f"{result.title}.tif")

    reloaded = load_raw_volume(path)
    assert (reloaded.channels, reloaded.slices, reloaded.frames) == (2, 3, 2)
    assert reloaded.calibration.z == pytest.approx(0.125)
    assert reloaded.calibration.x == pytest.approx(0.08, rel=1e-4)


def test_load_raw_volume_selects_scene():
    first = np.zeros((1, 1, 3, 2, 2), dtype=np.uint16)
    second = np.full((1, 1, 3, 2, 2), 9, dtype=np.uint16)
    volume = load_raw_volume([first, second], scene=1, dim_order="TCZYX")

    assert volume.name == "array.scene_001"
    assert np.all(volume.planes == 9)


def test_load_raw_volume_missing_scene():
    data = np.zeros((1, 1, 3, 2, 2), dtype=np.uint16)
    with pytest.raises(IndexError):
        load_raw_volume(data, scene=1, dim_order="TCZYX")


def test_iter_raw_volumes_names_each_scene():
    scenes = [np.full((1, 1, 3, 2, 2), i, dtype=np.uint16) for i in range(3)]
    volumes = list(iter_raw_volumes(scenes, dim_order="TCZYX"))

    assert [v.name for v in volumes] == [
        "array.scene_000",
        "array.scene_001",
        "array.scene_002",
    ]
    assert [int(v.planes[0, 0, 0]) for v in volumes] == [0, 1, 2]
