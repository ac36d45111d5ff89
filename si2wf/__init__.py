from .errors import InvalidParameterError, ShapeMismatchError, SI2WFError
from .models import (
    Calibration,
    GroupParameters,
    LogicalCoordinate,
    OutputVolume,
    RasterVolume,
    ViewPosition,
)
from .router import IndexRouter, linear_index
from .averager import average_planes
from .reduce import make_title, pseudo_widefield, reduce_volume

__version__ = "0.1.0"
