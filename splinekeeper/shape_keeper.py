"""Keep the shape of a chain of control points stable while some of them move.

A ShapeKeeper watches a chain of 3D points (the host's array, modified in
place) in which each point has a role:
 - FIXED points are moved by something else (a tracker, a user's drag) and
   are never touched here.
 - AUTO points are repositioned on every update to preserve the shape the
   chain had when it was recorded.
 - MANUAL points are left alone.

When the shape is recorded, each point's position is described relative to
the chord joining the first and last FIXED points: how far along the chord
its projection lies, and how far off the chord it bends. On update, in RIGID
mode, those descriptions are replayed against the current chord: the bend
offsets are rotated with the chord and rescaled according to a Preservation
policy that decides how the bend reacts when the chord stretches or
compresses. In ELASTIC mode, AUTO points are instead nudged by spring forces
toward their recorded distances from their chain neighbours.

Example:
    points = numpy.array([[0,0,0], [1,0,1], [2,0,0], [3,0,1], [4,0,0]], dtype=float)
    keeper = ShapeKeeper(points, tracked=[True, False, False, False, True],
        preservation=Preservation.ABSOLUTE)
    points[4] = [8, 0, 0] # an anchor is dragged
    keeper.update()       # points 1-3 follow, keeping their bends
"""

import dataclasses
import enum
import logging
import time

import numpy
import pydantic

from .curve import geometry

logger = logging.getLogger(__name__)

class ControlPointRole(enum.Enum):
    FIXED = 'fixed'
    AUTO = 'auto'
    MANUAL = 'manual'

class ShapeMode(enum.Enum):
    RIGID = 'rigid'
    ELASTIC = 'elastic'

class Preservation(enum.Enum):
    """How a point's bend offset responds when the anchor chord is stretched
    by a factor s (s < 1 meaning compression)."""
    SCALED = 'scaled' # offset scales with s: the whole shape grows and shrinks
    ABSOLUTE = 'absolute' # offset keeps its original length
    ELASTIC_BEND = 'elastic_bend' # buckles like a cable: s**-r when compressed, s**(0.5/r) when stretched
    ARC_LENGTH = 'arc_length' # grows by 1 + 2*(1-s) when compressed, unchanged when stretched


class ShapeKeeperSettings(pydantic.BaseModel):
    """Tuning parameters for a ShapeKeeper. Out-of-range numbers are clamped
    into range rather than rejected."""
    model_config = pydantic.ConfigDict(validate_assignment=True, extra='forbid')

    shape_mode: ShapeMode = ShapeMode.RIGID
    preservation: Preservation = Preservation.ABSOLUTE
    # spring strength of the ELASTIC mode
    elasticity: float = 0.5
    # RIGID: fraction of the remaining distance covered per update;
    # ELASTIC: multiplied by 10*dt for the same purpose
    smoothness: float = 0.95
    # 0 places AUTO points on the anchor chord, 1 keeps the full recorded bend
    shape_fidelity: float = 1.0
    # exponent r of the ELASTIC_BEND preservation
    compression_response: float = 1.5
    # maximum updates per second; 0 disables throttling
    update_rate: float = 60.0
    # jump straight to the target shape on the first update after activation
    snap_on_enable: bool = True
    # ignore tracked flags: roles are only set explicitly
    manual_mode: bool = False

    @pydantic.field_validator('smoothness', 'shape_fidelity')
    @classmethod
    def _clamp_unit(cls, value):
        return min(max(value, 0.0), 1.0)

    @pydantic.field_validator('elasticity', 'update_rate')
    @classmethod
    def _clamp_non_negative(cls, value):
        return max(value, 0.0)

    @pydantic.field_validator('compression_response')
    @classmethod
    def _clamp_response(cls, value):
        # r appears as a divisor in the ELASTIC_BEND exponent
        return max(value, 0.01)


@dataclasses.dataclass(frozen=True, eq=False)
class RelativePositionData:
    """Snapshot of one chain point's position relative to the anchor chord
    (the segment from the first to the last FIXED point) at recording time."""
    # position of the point's projection along the chord, in [0, 1]
    curve_parameter: float = 0.0
    # vector from the projection to the point
    perp_offset: numpy.ndarray = dataclasses.field(default_factory=lambda: numpy.zeros(3))
    # length of perp_offset
    bend_amount: float = 0.0
    # direction from the previous to the next chain point
    tangent_direction: numpy.ndarray = dataclasses.field(default_factory=lambda: numpy.array([0.0, 0.0, 1.0]))
    position: numpy.ndarray = dataclasses.field(default_factory=lambda: numpy.zeros(3))
    relative_to_first: numpy.ndarray = dataclasses.field(default_factory=lambda: numpy.zeros(3))
    relative_to_last: numpy.ndarray = dataclasses.field(default_factory=lambda: numpy.zeros(3))
    distance_to_prev: float = 0.0
    distance_to_next: float = 0.0


def bend_scale(preservation, stretch, compression_response):
    """Factor by which a rotated bend offset is scaled, for chord stretch factor
    stretch. ABSOLUTE is handled by renormalisation and returns 1."""
    if preservation is Preservation.SCALED:
        return stretch
    if preservation is Preservation.ELASTIC_BEND:
        if stretch < 1:
            return (1 / stretch)**compression_response
        if stretch > 1:
            return stretch**(0.5 / compression_response)
        return 1.0
    if preservation is Preservation.ARC_LENGTH and stretch < 1:
        return 1 + (1 - stretch) * 2
    return 1.0


class ShapeKeeper:
    """Maintain the recorded shape of a chain of points as its FIXED points move.

    Parameters:
        points: array of shape (n, 3) owned by the caller. If it is a float
            numpy array, it is modified in place by update(); otherwise a
            float copy is made, available as the points attribute.
        roles: optional sequence of n ControlPointRole values (or their string
            values). Unspecified points are AUTO.
        tracked: optional sequence of n booleans, True for points driven by an
            external tracker. Tracked points become FIXED and the rest AUTO,
            unless settings.manual_mode is set. Explicit roles take precedence.
        settings: ShapeKeeperSettings; any additional keyword arguments are
            used to construct (or override fields of) the settings.
        clock: function returning the current time in seconds, used to
            throttle updates and to measure elapsed time. Defaults to
            time.monotonic.
        pre_snap: optional function called with the points array immediately
            before the first (snapping) update after activation, so that
            anchor drivers can first move FIXED points to their targets.

    The shape is recorded on construction, and the keeper starts active.
    """
    def __init__(self, points, roles=None, tracked=None, settings=None, clock=None, pre_snap=None, **settings_kws):
        if settings is None:
            settings = ShapeKeeperSettings(**settings_kws)
        elif settings_kws:
            settings = ShapeKeeperSettings(**{**settings.model_dump(), **settings_kws})
        if pre_snap is not None and not callable(pre_snap):
            raise TypeError('pre_snap must be callable.')
        self.settings = settings
        self.clock = time.monotonic if clock is None else clock
        self.pre_snap = pre_snap
        self.points = self._as_chain(points)
        self._roles = {}
        self._records = []
        self._recorded = False
        self._first_fixed = None
        self._last_fixed = None
        self._original_chord = numpy.zeros(3)
        self._last_update_time = None
        self._active = False
        self._just_activated = False
        if tracked is not None and not settings.manual_mode:
            self.assign_roles(tracked)
        if roles is not None:
            self.set_roles(roles)
        self.record_initial_shape()
        self.activate()

    @staticmethod
    def _as_chain(points):
        if not (isinstance(points, numpy.ndarray) and points.dtype.kind == 'f'):
            points = numpy.array(points, dtype=float)
        if points.size == 0:
            points = points.reshape((0, 3))
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError('Points must be an array of shape (n, 3), not {}.'.format(points.shape))
        return points

    def _check_length(self, values, what):
        values = list(values)
        if len(values) != len(self.points):
            raise ValueError('Expected {} {}, one per point, got {}.'.format(len(self.points), what, len(values)))
        return values

    @property
    def point_count(self):
        return len(self.points)

    @property
    def roles(self):
        """List of the current role of each point."""
        return [self.get_point_role(i) for i in range(self.point_count)]

    def get_point_role(self, index):
        return self._roles.get(index, ControlPointRole.AUTO)

    def set_point_role(self, index, role):
        self._roles[index] = ControlPointRole(role)

    def set_roles(self, roles):
        roles = self._check_length(roles, 'roles')
        self._roles = {i: ControlPointRole(role) for i, role in enumerate(roles)}

    def assign_roles(self, tracked):
        """Set roles from per-point flags: FIXED where tracked, else AUTO."""
        tracked = self._check_length(tracked, 'tracked flags')
        self._roles = {i: ControlPointRole.FIXED if flag else ControlPointRole.AUTO for i, flag in enumerate(tracked)}
        logger.info('Assigned roles: %d fixed, %d auto', sum(map(bool, tracked)), len(tracked) - sum(map(bool, tracked)))

    def _indices_with_role(self, role):
        return [i for i in range(self.point_count) if self.get_point_role(i) is role]

    @property
    def recorded(self):
        return self._recorded

    @property
    def reference(self):
        """Tuple of RelativePositionData records, one per point, from the last
        recording."""
        return tuple(self._records)

    @property
    def first_fixed_index(self):
        return self._first_fixed

    @property
    def last_fixed_index(self):
        return self._last_fixed

    @property
    def original_chord(self):
        return self._original_chord.copy()

    @property
    def active(self):
        return self._active

    def record_initial_shape(self):
        """Record the current positions as the reference shape.

        The anchor chord runs from the first to the last FIXED point, or from
        the first to the last point of the chain if none are FIXED. Does
        nothing if the chain has fewer than two points."""
        points = self.points
        n = len(points)
        if n < 2:
            logger.debug('Not recording shape of a chain with %d points', n)
            return
        fixed = self._indices_with_role(ControlPointRole.FIXED)
        first, last = (fixed[0], fixed[-1]) if fixed else (0, n - 1)
        chord = points[last] - points[first]
        chord_length = geometry.norm(chord)
        records = []
        for i, point in enumerate(points):
            fields = {}
            if first != last and chord_length > geometry.EPSILON:
                parameter = min(max(numpy.dot(point - points[first], chord / chord_length) / chord_length, 0), 1)
                perp_offset = point - (points[first] + chord * parameter)
                fields.update(curve_parameter=float(parameter), perp_offset=perp_offset,
                    bend_amount=float(geometry.norm(perp_offset)))
                if 0 < i < n - 1:
                    fields['tangent_direction'] = geometry.normalize(points[i+1] - points[i-1])
            records.append(RelativePositionData(
                position=point.copy(),
                relative_to_first=point - points[first],
                relative_to_last=point - points[last],
                distance_to_prev=float(geometry.norm(point - points[i-1])) if i > 0 else 0.0,
                distance_to_next=float(geometry.norm(points[i+1] - point)) if i < n - 1 else 0.0,
                **fields))
        self._records = records
        self._first_fixed = first
        self._last_fixed = last
        self._original_chord = chord
        self._recorded = True
        logger.info('Recorded shape of %d points, anchor chord %d-%d (length %.4g)', n, first, last, chord_length)

    def reset_shape_record(self):
        """Discard the recorded shape and record the current one."""
        self._recorded = False
        self._records = []
        self.record_initial_shape()

    def set_points(self, points):
        """Replace the chain (e.g. after points were added or removed) and
        record its current shape. Roles of indices beyond the new chain
        length are dropped."""
        self.points = self._as_chain(points)
        self._roles = {i: role for i, role in self._roles.items() if i < len(self.points)}
        self.reset_shape_record()

    def activate(self):
        """Enable updates. Records the shape if it was never recorded, and arms
        the snap of the next update if settings.snap_on_enable is set."""
        if not self._recorded:
            self.record_initial_shape()
        self._active = True
        self._just_activated = self.settings.snap_on_enable

    def deactivate(self):
        self._active = False

    def update(self, dt=None):
        """Run one shape-keeping pass, moving AUTO points in place.

        Parameters:
            dt: elapsed time for this tick in seconds, used by ELASTIC mode.
                If None, the clock time since the previous pass is used (0 for
                the first pass).

        Returns: True if a pass ran; False if the keeper is inactive, has no
            recorded shape, or the pass was skipped by update_rate throttling.
        """
        if not self._active or not self._recorded:
            return False
        if len(self._records) != self.point_count:
            logger.warning('Chain length changed from %d to %d points: re-recording shape',
                len(self._records), self.point_count)
            self.reset_shape_record()
            if not self._recorded:
                return False
        now = self.clock()
        rate = self.settings.update_rate
        if rate > 0 and self._last_update_time is not None and now - self._last_update_time < 1 / rate:
            logger.debug('Shape update throttled')
            return False
        if dt is None:
            dt = 0.0 if self._last_update_time is None else now - self._last_update_time
        self._last_update_time = now

        snap = self._just_activated
        if snap and self.pre_snap is not None:
            self.pre_snap(self.points)
        if self.settings.shape_mode is ShapeMode.RIGID:
            self._update_rigid(snap)
        else:
            self._update_elastic(dt, snap)
        self._just_activated = False
        return True

    def _move(self, index, target, factor, snap):
        if snap:
            self.points[index] = target
        else:
            self.points[index] = geometry.lerp(self.points[index], target, min(max(factor, 0), 1))

    def _update_rigid(self, snap):
        fixed = self._indices_with_role(ControlPointRole.FIXED)
        auto = self._indices_with_role(ControlPointRole.AUTO)
        if not auto:
            return
        if len(fixed) >= 2:
            self._update_with_chord(fixed[0], fixed[-1], auto, snap)
        elif len(fixed) == 1:
            self._update_with_single_anchor(fixed[0], auto, snap)
        # with no FIXED points, nothing drives a change of shape

    def _update_with_chord(self, first, last, auto, snap):
        settings = self.settings
        points = self.points
        chord = points[last] - points[first]
        chord_length = geometry.norm(chord)
        original_length = geometry.norm(self._original_chord)
        rotation = None
        stretch = 1.0
        if original_length > geometry.EPSILON and chord_length > geometry.EPSILON:
            rotation = geometry.rotation_between(self._original_chord, chord)
            stretch = chord_length / original_length
        else:
            logger.debug('Degenerate anchor chord: using identity rotation and unit stretch')
        scale = bend_scale(settings.preservation, stretch, settings.compression_response)
        for i in auto:
            data = self._records[i]
            if chord_length > geometry.EPSILON:
                base = points[first] + chord * data.curve_parameter
                offset = data.perp_offset
                if settings.preservation is Preservation.ABSOLUTE:
                    offset = geometry.normalize(offset) * data.bend_amount
                if rotation is not None:
                    offset = rotation.apply(offset)
                target = base + offset * scale * settings.shape_fidelity
            else:
                target = points[first] + data.relative_to_first * stretch
            self._move(i, target, settings.smoothness, snap)

    def _update_with_single_anchor(self, anchor, auto, snap):
        movement = self.points[anchor] - self._records[anchor].position
        for i in auto:
            self._move(i, self._records[i].position + movement, self.settings.smoothness, snap)

    def _update_elastic(self, dt, snap):
        settings = self.settings
        points = self.points
        n = len(points)
        for i in self._indices_with_role(ControlPointRole.AUTO):
            data = self._records[i]
            force = numpy.zeros(points.shape[1])
            count = 0
            for j, rest in ((i - 1, data.distance_to_prev), (i + 1, data.distance_to_next)):
                if not 0 <= j < n:
                    continue
                to_neighbor = points[j] - points[i]
                distance = geometry.norm(to_neighbor)
                if distance > 0 and rest > 0:
                    force += to_neighbor / distance * (distance - rest) / rest * settings.elasticity
                    count += 1
            if count:
                self._move(i, points[i] + force / count, settings.smoothness * dt * 10, snap)

    def tracking_status(self):
        """Return a short human-readable summary of the keeper's state."""
        counts = {role: len(self._indices_with_role(role)) for role in ControlPointRole}
        return '\n'.join([
            'Shape keeping: {}'.format('active' if self._active else 'inactive'),
            'Mode: {} ({})'.format(self.settings.shape_mode.value, self.settings.preservation.value),
            'Points: {} fixed, {} auto, {} manual'.format(
                counts[ControlPointRole.FIXED], counts[ControlPointRole.AUTO], counts[ControlPointRole.MANUAL]),
            'Shape recorded: {}'.format('yes' if self._recorded else 'no'),
        ])

    def __repr__(self):
        return 'ShapeKeeper({} points, {})'.format(self.point_count, self.settings.shape_mode.value)
