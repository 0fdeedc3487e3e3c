import enum

from . import bezier
from . import bspline
from . import hermite

class SplineType(enum.Enum):
    CATMULL_ROM = 'catmull_rom'
    CUBIC = 'cubic'
    BEZIER = 'bezier'
    BSPLINE = 'bspline'
    INTERPOLATING_BSPLINE = 'interpolating_bspline'

SPLINE_CLASSES = {
    SplineType.CATMULL_ROM: hermite.CatmullRomSpline,
    SplineType.CUBIC: hermite.CubicSpline,
    SplineType.BEZIER: bezier.BezierSpline,
    SplineType.BSPLINE: bspline.BSpline,
    SplineType.INTERPOLATING_BSPLINE: hermite.InterpolatingBSpline,
}

def spline_type_of(spline):
    """Return the SplineType of a spline instance."""
    for spline_type, cls in SPLINE_CLASSES.items():
        if type(spline) is cls:
            return spline_type
    raise ValueError('Unknown spline class {}.'.format(type(spline).__name__))

def make_spline(spline_type, points=None, **params):
    """Construct a spline of the given type.

    Parameters:
        spline_type: SplineType member or its string value (e.g. 'catmull_rom').
        points: optional (n, d) array of control points.
        **params: algorithm parameters, e.g. tension for CATMULL_ROM or degree
            for BSPLINE.

    Example:
        spline = make_spline('catmull_rom', points, tension=0.5)
        positions = spline.get_points(50)
    """
    try:
        spline_type = SplineType(spline_type)
    except ValueError:
        valid = ', '.join(repr(s.value) for s in SplineType)
        raise ValueError('Unknown spline type {!r}: expected one of {}.'.format(spline_type, valid))
    return SPLINE_CLASSES[spline_type](points, **params)

def switch_spline_type(spline, spline_type, **params):
    """Return a new spline of a different type over the same control points."""
    return make_spline(spline_type, spline.control_points, **params)
