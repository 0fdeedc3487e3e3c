import numpy
from scipy.spatial.transform import Rotation

EPSILON = 1e-3

def cumulative_distances(points, unit=True):
    """Return cumulative distances along a polyline.

    Parameters:
    points: array of shape (n,m) consisting of n points in m dimensions
    unit: if True, return distances divided by total length of the curve,
          if False, return actual arc lengths. A zero-length curve yields
          all-zero unit distances."""
    points = numpy.asarray(points, dtype=float)
    if len(points) == 0:
        return numpy.zeros(0)
    segments = numpy.sqrt(((points[:-1] - points[1:])**2).sum(axis=1))
    distances = numpy.concatenate([[0], numpy.add.accumulate(segments)])
    if unit and distances[-1] > 0:
        distances /= distances[-1]
    return distances

def polyline_length(points):
    """Return the total length of a polyline of shape (n,m)."""
    points = numpy.asarray(points, dtype=float)
    return numpy.sqrt(((points[:-1] - points[1:])**2).sum(axis=1)).sum()

def linear_resample_polyline(points, num_points):
    """Resample a piecewise linear curve to contain a given number of
    equally-spaced points, using linear interpolation.

    Parameters:
    points: array of n points in m dimensions; shape=(n,m)
    num_points: number of output points in array.

    Returns a resampled array, of shape (num_points,m)"""
    points = numpy.asarray(points, dtype=float)
    distances = cumulative_distances(points, unit=True)
    sample_positions = numpy.linspace(0, 1, num_points)
    return numpy.transpose([numpy.interp(sample_positions, distances, coord) for coord in points.T])

def norm(vectors):
    """Return the euclidean length of a vector, or of each row of an (n,m) array."""
    return numpy.sqrt((numpy.asarray(vectors, dtype=float)**2).sum(axis=-1))

def normalize(vectors):
    """Return unit-length copies of the given vector(s). Zero vectors stay zero."""
    vectors = numpy.asarray(vectors, dtype=float)
    lengths = numpy.sqrt((vectors**2).sum(axis=-1, keepdims=True))
    return numpy.divide(vectors, lengths, out=numpy.zeros_like(vectors), where=lengths > 1e-12)

def lerp(a, b, t):
    """Linearly interpolate between a and b. t may be a scalar or an array of
    shape (n,) to produce n interpolated points."""
    a = numpy.asarray(a, dtype=float)
    b = numpy.asarray(b, dtype=float)
    t = numpy.asarray(t, dtype=float)
    if t.ndim > 0 and a.ndim > 0:
        t = t[..., numpy.newaxis]
    return a + (b - a) * t

def slerp(v0, v1, t):
    """Spherically interpolate between two vectors.

    Direction is interpolated along the great arc between v0 and v1, and
    magnitude is interpolated linearly. Nearly-parallel inputs fall back to
    linear interpolation."""
    v0 = numpy.asarray(v0, dtype=float)
    v1 = numpy.asarray(v1, dtype=float)
    l0 = norm(v0)
    l1 = norm(v1)
    if l0 < 1e-12 or l1 < 1e-12:
        return lerp(v0, v1, t)
    u0 = v0 / l0
    u1 = v1 / l1
    omega = numpy.arccos(numpy.clip(numpy.dot(u0, u1), -1, 1))
    sin_omega = numpy.sin(omega)
    if sin_omega < 1e-6:
        return lerp(v0, v1, t)
    direction = (numpy.sin((1 - t) * omega) * u0 + numpy.sin(t * omega) * u1) / sin_omega
    return direction * (l0 + (l1 - l0) * t)

def any_perpendicular(v):
    """Return a unit 3D vector perpendicular to v."""
    v = normalize(v)
    axis = numpy.zeros(3)
    axis[numpy.argmin(numpy.absolute(v))] = 1
    return normalize(numpy.cross(v, axis))

def rotation_between(v_from, v_to):
    """Return the shortest-arc rotation taking the direction of 3D vector
    v_from onto that of v_to, as a scipy Rotation.

    Antiparallel inputs rotate by pi about an arbitrary perpendicular axis;
    zero-length inputs give the identity."""
    u_from = normalize(v_from)
    u_to = normalize(v_to)
    if not u_from.any() or not u_to.any():
        return Rotation.identity()
    axis = numpy.cross(u_from, u_to)
    sin_angle = norm(axis)
    cos_angle = numpy.dot(u_from, u_to)
    if sin_angle < 1e-9:
        if cos_angle > 0:
            return Rotation.identity()
        return Rotation.from_rotvec(any_perpendicular(u_from) * numpy.pi)
    angle = numpy.arctan2(sin_angle, cos_angle)
    return Rotation.from_rotvec(axis / sin_angle * angle)
