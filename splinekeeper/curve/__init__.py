'''
Curve
-----
Functions and classes for curves through an ordered chain of control points.
 - curve.geometry: basic vector and polyline helpers.
 - curve.base: the Spline base class shared by every curve type.
 - curve.hermite, curve.bspline, curve.bezier: the curve algorithms.
 - curve.splines: SplineType and make_spline() to select an algorithm by name.
 - curve.arc_length: ArcLengthCache for distance-based lookups.
 '''
