"""Arc-length lookup table for a parametric curve.

A curve's parameter t is generally not proportional to distance travelled
along it: points bunch up where the control points are close together. The
ArcLengthCache samples a curve once into a piecewise-linear table of
positions, tangents, and cumulative distances, from which positions can be
looked up by distance, and distances converted back to parameter values.

The cache does not observe the curve: call build() again whenever the curve
changes. Queries against a cache that has not been built (or has been
invalidated) return zero vectors and zero distances. The zero vectors have the
dimension of the last curve built, or of the dimension argument before any
build.

Example:
    cache = ArcLengthCache.for_spline(spline, resolution=200)
    midpoint = cache.point_at_distance(cache.length / 2)
    t = cache.param_at_distance(1.5)
"""

import logging

import numpy

from . import geometry

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = 100

class ArcLengthCache:
    def __init__(self, resolution=DEFAULT_RESOLUTION, dimension=3):
        self._resolution = max(1, int(resolution))
        # dimension of the fallback vectors; taken from the curve once built
        self._dimension = dimension
        self._positions = None
        self._tangents = None
        self._distances = None

    @classmethod
    def for_spline(cls, spline, resolution=DEFAULT_RESOLUTION):
        """Construct and build a cache from a spline's get_point / get_tangent."""
        cache = cls(resolution)
        cache.build(spline.get_point, spline.get_tangent)
        return cache

    @property
    def resolution(self):
        """Number of linear segments in the table."""
        return self._resolution

    @resolution.setter
    def resolution(self, value):
        value = max(1, int(value))
        if value != self._resolution:
            self._resolution = value
            self.invalidate()

    @property
    def valid(self):
        return self._distances is not None

    @property
    def length(self):
        """Total arc length of the sampled curve, or 0 if not built."""
        return float(self._distances[-1]) if self.valid else 0.0

    @property
    def positions(self):
        return self._positions

    @property
    def distances(self):
        return self._distances

    def invalidate(self):
        self._positions = self._tangents = self._distances = None

    def build(self, point_fn, tangent_fn):
        """Sample a curve into the lookup table.

        Parameters:
            point_fn, tangent_fn: functions of a scalar parameter t in [0, 1]
                returning the curve position and tangent at t.
        """
        params = numpy.linspace(0, 1, self._resolution + 1)
        self._positions = numpy.array([point_fn(t) for t in params], dtype=float)
        self._tangents = numpy.array([tangent_fn(t) for t in params], dtype=float)
        self._distances = geometry.cumulative_distances(self._positions, unit=False)
        self._dimension = self._positions.shape[1]
        logger.debug('Built arc-length table: %d samples, length %.4g', len(params), self.length)

    def _bracket(self, t):
        """Return the index of the sample at or before t, and the fraction of
        the way to the next sample."""
        position = min(max(float(t), 0), 1) * self._resolution
        i = min(int(numpy.floor(position)), self._resolution - 1)
        return i, position - i

    def point_at(self, t):
        """Position at parameter t, interpolated linearly between samples."""
        if not self.valid:
            return numpy.zeros(self._dimension)
        i, frac = self._bracket(t)
        return geometry.lerp(self._positions[i], self._positions[i+1], frac)

    def tangent_at(self, t):
        """Tangent at parameter t, interpolated spherically between samples."""
        if not self.valid:
            return numpy.zeros(self._dimension)
        i, frac = self._bracket(t)
        return geometry.slerp(self._tangents[i], self._tangents[i+1], frac)

    def distance_at(self, t):
        """Arc length from the start of the curve to parameter t."""
        if not self.valid:
            return 0.0
        i, frac = self._bracket(t)
        return float(self._distances[i] + (self._distances[i+1] - self._distances[i]) * frac)

    def param_at_distance(self, distance):
        """Parameter t at which the arc length from the start equals distance.
        The distance is clamped to [0, length]."""
        if not self.valid or self.length == 0:
            return 0.0
        distance = min(max(float(distance), 0), self.length)
        # first sample whose cumulative distance reaches the target
        j = max(int(numpy.searchsorted(self._distances, distance, side='left')), 1)
        start, end = self._distances[j-1], self._distances[j]
        frac = (distance - start) / (end - start) if end > start else 0.0
        return (j - 1 + frac) / self._resolution

    def point_at_distance(self, distance):
        return self.point_at(self.param_at_distance(distance))

    def tangent_at_distance(self, distance):
        return self.tangent_at(self.param_at_distance(distance))

    def resample(self, num_points):
        """Return num_points positions equally spaced by arc length along the
        sampled curve, shape (num_points, d)."""
        if not self.valid:
            return numpy.zeros((num_points, self._dimension))
        return geometry.linear_resample_polyline(self._positions, num_points)
