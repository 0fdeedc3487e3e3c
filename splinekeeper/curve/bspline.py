import logging

import numpy
from scipy import interpolate

from . import base

logger = logging.getLogger(__name__)

def knot_vector(n, degree):
    """Return the clamped (open) uniform knot vector for n control points of
    the given degree.

    The first and last degree+1 knots are clamped to 0 and n-degree, so that
    the curve starts and ends exactly at the first and last control points;
    interior knots are spaced one unit apart.

    Returns: array of n+degree+1 knots."""
    return numpy.clip(numpy.arange(n + degree + 1) - degree, 0, n - degree).astype(float)

def effective_degree(degree, n):
    """Return the degree actually usable with n control points: at least 1,
    and at most n-1 (a degree-p B-spline needs p+1 control points)."""
    return max(1, min(int(degree), n - 1))


class BSpline(base.Spline):
    """Uniform clamped B-spline of the given degree.

    This is an approximating curve: it passes through the first and last
    control points, but is only pulled toward the interior ones. If there are
    too few control points for the requested degree, the degree is reduced
    (see effective_degree and degree_reduced); with two points the curve is a
    straight line.

    Evaluation uses scipy.interpolate.BSpline (Cox-de Boor recursion) over the
    knot vector from knot_vector(), which is rebuilt whenever the control
    points or degree change.
    """
    def __init__(self, points=None, degree=3):
        self._degree = max(1, int(degree))
        self._spline = None
        super().__init__(points)

    @property
    def degree(self):
        """Requested degree."""
        return self._degree

    @degree.setter
    def degree(self, value):
        self._degree = max(1, int(value))
        self._spline = None
        self.mark_dirty()

    @property
    def effective_degree(self):
        """Degree actually used for the current control points."""
        return effective_degree(self._degree, max(self.point_count, 2))

    @property
    def degree_reduced(self):
        """True if there are too few control points for the requested degree."""
        return self.effective_degree < self._degree

    @property
    def knots(self):
        return knot_vector(max(self.point_count, 2), self.effective_degree)

    def set_control_points(self, points):
        super().set_control_points(points)
        self._spline = None

    def _get_spline(self):
        if self._spline is None:
            if self.degree_reduced:
                logger.debug('B-spline degree reduced from %d to %d for %d control points',
                    self._degree, self.effective_degree, self.point_count)
            self._spline = interpolate.BSpline(self.knots, self._points, self.effective_degree)
        return self._spline

    def _evaluate(self, t):
        p = self.effective_degree
        # map [0, 1] onto the knot span [t_p, t_n] = [0, n-p]
        return self._get_spline()(t * (self.point_count - p))
