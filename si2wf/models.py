"""Data structures for raw SI stacks and their pseudo-wide-field reduction."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import numpy as np

from si2wf.errors import InvalidParameterError, ShapeMismatchError

# API OMX defaults: 5 phases x 3 angles
DEFAULT_PHASES = 5
DEFAULT_ANGLES = 3


@dataclass(frozen=True)
class GroupParameters:
    """Number of illumination phases and pattern angles per (t, z, c) position.

    :ivar phases: Phase steps per angle (P)
    :ivar angles: Pattern orientations (A)
    """

    phases: int = DEFAULT_PHASES
    angles: int = DEFAULT_ANGLES

    @property
    def group_size(self) -> int:
        return self.phases * self.angles

    def validate(self) -> "GroupParameters":
        if self.phases < 1:
            raise InvalidParameterError(f"phases must be >= 1, got {self.phases}")
        if self.angles < 1:
            raise InvalidParameterError(f"angles must be >= 1, got {self.angles}")
        return self


@dataclass(frozen=True)
class LogicalCoordinate:
    """1-based traversal cursor over (time, z, channel, angle, phase)."""

    t: int
    z: int
    c: int
    a: int
    p: int


@dataclass(frozen=True)
class ViewPosition:
    """Suggested default display position (1-based)."""

    channel: int = 1
    z: int = 1
    frame: int = 1


@dataclass(frozen=True)
class Calibration:
    """Physical voxel size, as reported by bioio's ``PhysicalPixelSizes``.

    Any size may be None when the source file does not record it.
    """

    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    unit: str = "um"


@dataclass
class RasterVolume:
    """Raw SI stack as a flat sequence of 2D planes in OMX CPZAT order.

    ``slices`` is the z extent reported by the acquisition, i.e. with phases
    and angles still folded in (Z * P * A). Channels vary fastest within the
    flat sequence, followed by slices and then frames.

    :ivar planes: 2D arrays (Y, X), or a 3D array indexed by plane
    :ivar channels: Number of channels (C)
    :ivar slices: Raw slice count including phases and angles
    :ivar frames: Number of time points (T)
    :ivar calibration: Physical voxel size of the source, if known
    :ivar name: Source name used to derive output titles
    """

    planes: Sequence[np.ndarray]
    channels: int
    slices: int
    frames: int
    calibration: Optional[Calibration] = None
    name: str = "raw"

    def __len__(self) -> int:
        return len(self.planes)

    @property
    def plane_shape(self) -> Tuple[int, int]:
        """Height and width shared by all planes."""
        if len(self.planes) == 0:
            raise ShapeMismatchError(f"{self.name} contains no planes")
        shape = np.shape(self.planes[0])
        if len(shape) != 2:
            raise ShapeMismatchError(f"Expected 2D planes, got {len(shape)}D")
        return shape[0], shape[1]

    def logical_shape(self, params: GroupParameters) -> Tuple[int, int, int]:
        """Return (C, Z, T) once phases and angles are divided out of ``slices``.

        Raises:
            ShapeMismatchError: If the stack cannot be split into whole groups
        """
        group_size = params.group_size
        expected = self.channels * self.slices * self.frames
        if len(self.planes) != expected:
            raise ShapeMismatchError(
                f"{self.name}: {len(self.planes)} planes but "
                f"C={self.channels} x Z={self.slices} x T={self.frames} = {expected}"
            )
        if len(self.planes) % group_size != 0:
            raise ShapeMismatchError(
                f"{self.name}: {len(self.planes)} planes not divisible by "
                f"phases x angles = {group_size}"
            )
        if self.slices % group_size != 0:
            raise ShapeMismatchError(
                f"{self.name}: {self.slices} slices not divisible by "
                f"phases x angles = {group_size}"
            )
        return self.channels, self.slices // group_size, self.frames


@dataclass
class OutputVolume:
    """Pseudo-wide-field result, one float32 plane per (t, z, c).

    Planes are ordered by frame, then z, with channels varying fastest.
    """

    planes: List[np.ndarray]
    channels: int
    z_planes: int
    frames: int
    default_position: ViewPosition = field(default_factory=ViewPosition)
    title: str = "PWF"
    calibration: Optional[Calibration] = None

    def __len__(self) -> int:
        return len(self.planes)

    def as_hyperstack(self) -> np.ndarray:
        """Stack the planes into a (T, Z, C, Y, X) float32 array."""
        if not self.planes:
            raise ShapeMismatchError("Output volume contains no planes")
        height, width = self.planes[0].shape
        stacked = np.stack(self.planes)
        return stacked.reshape(
            self.frames, self.z_planes, self.channels, height, width
        )
