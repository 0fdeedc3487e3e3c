import logging

import numpy

from . import geometry

logger = logging.getLogger(__name__)

LENGTH_RESOLUTION = 100
TANGENT_DELTA = 1e-4
DEFAULT_DIMENSION = 3

def as_points(points):
    """Convert input to a float array of shape (n, d). An empty sequence is
    accepted as zero points."""
    points = numpy.array(points, dtype=float)
    if points.size == 0:
        return points.reshape((0, points.shape[-1] if points.ndim == 2 else DEFAULT_DIMENSION))
    if points.ndim != 2:
        raise ValueError('Control points must be an array of shape (n, d), not {}.'.format(points.shape))
    return points

class Spline:
    """Base class for parametric curves through an ordered chain of control points.

    Subclasses implement _evaluate(t), which receives an array of parameter
    values already clamped to [0, 1] and returns an (m, d) array of positions.
    It is only called with three or more control points: fewer points are
    handled here (zero vector for 0 or 1 points, straight line for 2).

    The curve's length is computed once by sampling and cached until the
    control points (or any shape parameter) change.
    """
    def __init__(self, points=None):
        self._points = as_points([])
        self._dirty = True
        self._cached_length = 0.0
        if points is not None:
            self.set_control_points(points)

    @property
    def control_points(self):
        return self._points

    @property
    def point_count(self):
        return len(self._points)

    @property
    def dimension(self):
        return self._points.shape[1]

    @property
    def dirty(self):
        return self._dirty

    def mark_dirty(self):
        self._dirty = True

    def clear_dirty(self):
        self._dirty = False

    def set_control_points(self, points):
        """Replace the control points with a copy of the given (n, d) array and
        invalidate any cached values."""
        self._points = as_points(points)
        self.mark_dirty()

    def get_point(self, t):
        """Return the curve position at parameter t.

        Parameters:
            t: scalar or array of parameter values. Values outside [0, 1]
                are clamped; exactly the first / last control point is
                returned at either end.

        Returns: array of shape (d,) for scalar t, else (len(t), d).
        """
        t = numpy.asarray(t, dtype=float)
        scalar = t.ndim == 0
        t = numpy.clip(numpy.atleast_1d(t), 0, 1)
        n = self.point_count
        if n < 2:
            logger.debug('Evaluating a curve with %d control points: returning zero vector', n)
            out = numpy.zeros((len(t), self.dimension))
        else:
            if n == 2:
                out = geometry.lerp(self._points[0], self._points[1], t)
            else:
                out = self._evaluate(t)
            # exact endpoints, free of accumulated rounding error
            out[t <= 0] = self._points[0]
            out[t >= 1] = self._points[-1]
        return out[0] if scalar else out

    def _evaluate(self, t):
        raise NotImplementedError()

    def get_tangent(self, t):
        """Return the unit tangent at parameter t, estimated by central
        difference of get_point()."""
        t = numpy.asarray(t, dtype=float)
        before = self.get_point(numpy.clip(t - TANGENT_DELTA, 0, 1))
        after = self.get_point(numpy.clip(t + TANGENT_DELTA, 0, 1))
        return geometry.normalize(after - before)

    def get_points(self, num_points):
        """Evaluate the curve at num_points equally-spaced parameter values.

        Returns: array of shape (num_points, d)."""
        return self.get_point(numpy.linspace(0, 1, num_points))

    def get_length(self):
        """Return the arc length, approximated by a polyline of
        LENGTH_RESOLUTION segments. Cached until the curve is next changed."""
        if self._dirty:
            self._cached_length = self._calculate_length()
            self.clear_dirty()
        return self._cached_length

    def _calculate_length(self):
        return float(geometry.polyline_length(self.get_points(LENGTH_RESOLUTION + 1)))

    def __repr__(self):
        return '{}({} points)'.format(type(self).__name__, self.point_count)
