'''
# splinekeeper

Parametric curves through chains of control points, and a shape keeper that
holds a chain's shape steady while some of its points are moved from outside.

Curve
-----
Functions and classes for smooth curves through (or near) an ordered chain of
points in any number of dimensions, represented as float arrays of shape (n, d).
 - curve.geometry: basic vector and polyline helpers (distances, resampling,
   interpolation, rotations between directions).
 - curve.base: the common Spline interface: get_point(t), get_tangent(t) and
   cached get_length() for t in [0, 1].
 - curve.hermite: Catmull-Rom, cubic Hermite, and interpolating B-spline curves,
   which pass through every control point.
 - curve.bspline: clamped uniform B-splines (using scipy.interpolate.BSpline),
   which approximate the interior control points.
 - curve.bezier: piecewise cubic Bezier curves with automatic, editable handles.
 - curve.splines: choose among the above by name with make_spline().
 - curve.arc_length: lookup tables for positions and parameters by distance
   along a curve.

Shape keeping
-------------
 - shape_keeper: given a chain of 3D points tagged FIXED, AUTO, or MANUAL,
   record its shape and reposition the AUTO points as the FIXED points move,
   either rigidly (with several policies for how bends respond to stretching)
   or elastically.
'''
