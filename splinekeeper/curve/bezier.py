"""Piecewise cubic Bezier curve through every control point, with editable handles.

Each control point i owns an "in" handle (shaping the segment arriving at it)
and an "out" handle (shaping the segment leaving it), both stored as absolute
positions. Segment i is the cubic Bezier curve with control polygon
(point i, out handle i, in handle i+1, point i+1).

Handles are generated automatically whenever the control points are set:
each handle lies along the chord joining the point's two neighbours, a quarter
of that chord's length away from the point. The first point's in handle and
the last point's out handle collapse onto the point itself.

After generation, handles can be edited freely; edits only affect the handle
in question unless mirroring is requested.
"""

import logging

import numpy

from . import base
from . import geometry
from . import hermite

logger = logging.getLogger(__name__)

HANDLE_SCALE = 0.25

def auto_handles(points):
    """Compute default (in, out) handle positions for an (n, d) chain of points.

    Returns: (handles_in, handles_out), each of shape (n, d)."""
    points = numpy.asarray(points, dtype=float)
    n = len(points)
    idx = numpy.arange(n)
    prev_points = points[numpy.maximum(idx - 1, 0)]
    next_points = points[numpy.minimum(idx + 1, n - 1)]
    # along the neighbour chord, a quarter of its length from the point
    offsets = (next_points - prev_points) * HANDLE_SCALE
    handles_in = points - offsets
    handles_out = points + offsets
    if n > 0:
        handles_in[0] = points[0]
        handles_out[-1] = points[-1]
    return handles_in, handles_out

def bezier(p0, p1, p2, p3, s):
    """Evaluate cubic Bezier segments, one per row of the (m, d) inputs, at the
    positions s (shape (m,))."""
    s = s[:, numpy.newaxis]
    r = 1 - s
    return r**3 * p0 + 3 * r**2 * s * p1 + 3 * r * s**2 * p2 + s**3 * p3

def bezier_derivative(p0, p1, p2, p3, s):
    """First derivative with respect to s of the cubic Bezier segments."""
    s = s[:, numpy.newaxis]
    r = 1 - s
    return 3 * r**2 * (p1 - p0) + 6 * r * s * (p2 - p1) + 3 * s**2 * (p3 - p2)


class BezierSpline(base.Spline):
    def __init__(self, points=None):
        self._handles_in, self._handles_out = auto_handles(base.as_points([]))
        super().__init__(points)

    def set_control_points(self, points):
        super().set_control_points(points)
        self._handles_in, self._handles_out = auto_handles(self._points)

    def _segments(self, t):
        i, s = hermite.segment_positions(t, self.point_count)
        return (self._points[i], self._handles_out[i], self._handles_in[i + 1], self._points[i + 1]), s

    def _evaluate(self, t):
        segments, s = self._segments(t)
        return bezier(*segments, s)

    def get_tangent(self, t):
        """Return the unit tangent at t from the exact derivative of the Bezier
        segment, rather than a finite-difference estimate."""
        t = numpy.asarray(t, dtype=float)
        scalar = t.ndim == 0
        t = numpy.clip(numpy.atleast_1d(t), 0, 1)
        n = self.point_count
        if n < 2:
            out = numpy.zeros((len(t), self.dimension))
        elif n == 2:
            chord = geometry.normalize(self._points[1] - self._points[0])
            out = numpy.tile(chord, (len(t), 1))
        else:
            segments, s = self._segments(t)
            out = geometry.normalize(bezier_derivative(*segments, s))
        return out[0] if scalar else out

    def _valid_index(self, index):
        if 0 <= index < len(self._handles_in):
            return True
        logger.debug('Handle index %d out of range for %d control points', index, self.point_count)
        return False

    @property
    def handle_count(self):
        return len(self._handles_in)

    def get_handle_in(self, index):
        """Return the in handle of point index, or a zero vector if out of range."""
        if not self._valid_index(index):
            return numpy.zeros(self.dimension)
        return self._handles_in[index].copy()

    def get_handle_out(self, index):
        """Return the out handle of point index, or a zero vector if out of range."""
        if not self._valid_index(index):
            return numpy.zeros(self.dimension)
        return self._handles_out[index].copy()

    def set_handle_in(self, index, position, mirror=False):
        """Move the in handle of point index. If mirror is True, the out handle
        is moved to the reflection of the new in handle through the point."""
        if not self._valid_index(index):
            return
        self._handles_in[index] = position
        self.mark_dirty()
        if mirror:
            self.mirror_handle(index, from_out=False)

    def set_handle_out(self, index, position, mirror=False):
        """Move the out handle of point index. If mirror is True, the in handle
        is moved to the reflection of the new out handle through the point."""
        if not self._valid_index(index):
            return
        self._handles_out[index] = position
        self.mark_dirty()
        if mirror:
            self.mirror_handle(index, from_out=True)

    def reset_handles(self, index):
        """Restore the automatically-generated handles of a single point."""
        if not self._valid_index(index):
            return
        handles_in, handles_out = auto_handles(self._points)
        self._handles_in[index] = handles_in[index]
        self._handles_out[index] = handles_out[index]
        self.mark_dirty()

    def reset_all_handles(self):
        """Discard all handle edits and regenerate every handle."""
        self._handles_in, self._handles_out = auto_handles(self._points)
        self.mark_dirty()

    def set_handle_symmetric(self, index):
        """Align the two handles of an interior point along a common direction
        (the average of the two handle directions), keeping each handle's
        distance from the point. End points are left unchanged."""
        if not self._valid_index(index) or index in (0, self.point_count - 1):
            return
        point = self._points[index]
        in_offset = self._handles_in[index] - point
        out_offset = self._handles_out[index] - point
        direction = geometry.normalize(out_offset - in_offset)
        self._handles_in[index] = point - direction * geometry.norm(in_offset)
        self._handles_out[index] = point + direction * geometry.norm(out_offset)
        self.mark_dirty()

    def mirror_handle(self, index, from_out=True):
        """Reflect one handle of a point through the point onto the other.

        Parameters:
            index: control point index.
            from_out: if True, the in handle becomes the mirror image of the
                out handle; otherwise the out handle mirrors the in handle.
                The first point has no in handle to set, nor the last point
                an out handle; such requests are ignored.
        """
        if not self._valid_index(index):
            return
        point = self._points[index]
        if from_out and index > 0:
            self._handles_in[index] = 2 * point - self._handles_out[index]
        elif not from_out and index < self.point_count - 1:
            self._handles_out[index] = 2 * point - self._handles_in[index]
        self.mark_dirty()

    def get_handles(self):
        """Return copies of all handles as (handles_in, handles_out) arrays."""
        return self._handles_in.copy(), self._handles_out.copy()

    def set_handles(self, handles_in, handles_out):
        """Replace all handles at once. Both arrays must have the same shape as
        the control points; otherwise the call is ignored.

        Returns: True if the handles were replaced."""
        handles_in = numpy.asarray(handles_in, dtype=float)
        handles_out = numpy.asarray(handles_out, dtype=float)
        if handles_in.shape != self._points.shape or handles_out.shape != self._points.shape:
            logger.warning('Ignoring handles of shapes %s and %s for control points of shape %s',
                handles_in.shape, handles_out.shape, self._points.shape)
            return False
        self._handles_in = handles_in.copy()
        self._handles_out = handles_out.copy()
        self.mark_dirty()
        return True
