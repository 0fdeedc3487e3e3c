"""Piecewise cubic Hermite curves that pass through every control point.

All three curves here split the parameter range [0, 1] evenly among the n-1
segments between consecutive control points and blend each segment with the
cubic Hermite basis. They differ only in how the tangents at the segment ends
are estimated.
"""

import numpy

from . import base

def segment_positions(t, n):
    """Map parameter values in [0, 1] onto the n-1 segments of a chain of n points.

    Returns: (index, s), where index is the integer segment index for each
        value of t and s is the fractional position within that segment."""
    scaled = t * (n - 1)
    index = numpy.clip(numpy.floor(scaled).astype(int), 0, n - 2)
    return index, scaled - index

def hermite(p0, p1, m0, m1, s):
    """Evaluate cubic Hermite segments from p0 to p1 with end tangents m0, m1.

    Parameters:
        p0, p1, m0, m1: arrays of shape (m, d), one row per evaluation.
        s: array of shape (m,) of positions in [0, 1] along each segment.
    """
    s = s[:, numpy.newaxis]
    s2 = s * s
    s3 = s2 * s
    h00 = 2*s3 - 3*s2 + 1
    h10 = s3 - 2*s2 + s
    h01 = -2*s3 + 3*s2
    h11 = s3 - s2
    return h00*p0 + h10*m0 + h01*p1 + h11*m1


class CatmullRomSpline(base.Spline):
    """Catmull-Rom curve: tangent at each point is the chord between its
    neighbours, scaled by the tension (0.5 gives the classic Catmull-Rom)."""
    def __init__(self, points=None, tension=0.5):
        self._tension = min(max(float(tension), 0), 1)
        super().__init__(points)

    @property
    def tension(self):
        return self._tension

    @tension.setter
    def tension(self, value):
        self._tension = min(max(float(value), 0), 1)
        self.mark_dirty()

    def _evaluate(self, t):
        points = self._points
        n = len(points)
        i, s = segment_positions(t, n)
        # neighbours past either end clamp to the end point itself
        before = points[numpy.maximum(i - 1, 0)]
        start = points[i]
        end = points[i + 1]
        after = points[numpy.minimum(i + 2, n - 1)]
        return hermite(start, end, (end - before) * self._tension, (after - start) * self._tension, s)


class CubicSpline(base.Spline):
    """Cubic Hermite curve with central-difference tangents at interior points
    and one-sided differences at the two ends."""
    def _evaluate(self, t):
        points = self._points
        n = len(points)
        i, s = segment_positions(t, n)
        prev_i = numpy.maximum(i - 1, 0)
        next_i = numpy.minimum(i + 2, n - 1)
        # a one-sided difference spans one segment, a central one spans two
        m0_scale = numpy.where(i == 0, 1, 0.5)[:, numpy.newaxis]
        m1_scale = numpy.where(i == n - 2, 1, 0.5)[:, numpy.newaxis]
        m0 = (points[i + 1] - points[prev_i]) * m0_scale
        m1 = (points[next_i] - points[i]) * m1_scale
        return hermite(points[i], points[i + 1], m0, m1, s)


class InterpolatingBSpline(base.Spline):
    """Smooth curve guaranteed to pass through every control point.

    Unlike the approximating BSpline, which is only pulled toward its interior
    control points, each segment here is a Catmull-Rom blend (tension 0.5).
    Virtual points reflected past either end of the chain supply the end
    tangents, so the curve leaves its first and arrives at its last point
    along the direction of the adjacent chord.
    """
    TENSION = 0.5
    _padded = None

    def set_control_points(self, points):
        super().set_control_points(points)
        self._padded = None

    def padded_points(self):
        """Return the control points with the two virtual end points attached,
        shape (n+2, d). Chains of fewer than two points have no end tangent to
        extrapolate and are returned unchanged."""
        if self.point_count < 2:
            return self._points
        if self._padded is None:
            p = self._points
            self._padded = numpy.concatenate([[2*p[0] - p[1]], p, [2*p[-1] - p[-2]]])
        return self._padded

    def _evaluate(self, t):
        padded = self.padded_points()
        n = len(padded) - 2
        i, s = segment_positions(t, n)
        # shift by one to skip the leading virtual point
        before, start, end, after = (padded[i + k] for k in range(4))
        return hermite(start, end, (end - before) * self.TENSION, (after - start) * self.TENSION, s)
