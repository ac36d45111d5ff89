"""Exceptions raised by the pseudo-wide-field reduction."""


class SI2WFError(ValueError):
    """Base class for all si2wf errors."""


class InvalidParameterError(SI2WFError):
    """Phase/angle counts, group sizes or coordinates outside their valid range."""


class ShapeMismatchError(SI2WFError):
    """Plane count or plane dimensions inconsistent with the requested grouping."""
