"""Tests for ShapeKeeper and its settings."""

import logging

import numpy
import pydantic
import pytest
from numpy.testing import assert_allclose

from splinekeeper import shape_keeper
from splinekeeper.shape_keeper import ControlPointRole, Preservation, ShapeMode

ENDS_TRACKED = [True, False, False, False, True]


class TestRecording:
    """Tests for the recorded reference shape."""

    def test_records_relative_to_chord(self, zigzag, make_keeper):
        """Test chord parameters, bends, and tangents of the recorded points."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        assert keeper.recorded
        assert (keeper.first_fixed_index, keeper.last_fixed_index) == (0, 4)
        assert_allclose(keeper.original_chord, [4, 0, 0])
        record = keeper.reference[1]
        assert record.curve_parameter == pytest.approx(0.25)
        assert record.bend_amount == pytest.approx(1)
        assert_allclose(record.perp_offset, [0, 0, 1])
        assert_allclose(record.tangent_direction, [1, 0, 0])
        assert record.distance_to_prev == pytest.approx(numpy.sqrt(2))
        assert keeper.reference[0].distance_to_prev == 0

    def test_no_fixed_points_uses_chain_ends(self, zigzag, make_keeper):
        """Test the chord falls back to the first and last chain points."""
        keeper = make_keeper(zigzag)
        assert (keeper.first_fixed_index, keeper.last_fixed_index) == (0, 4)

    def test_too_few_points(self, make_keeper):
        """Test a single point is never recorded and never updated."""
        keeper = make_keeper([[1, 2, 3]])
        assert not keeper.recorded
        assert not keeper.update()

    def test_list_input_is_copied(self, make_keeper):
        """Test non-array input is converted to a float array of its own."""
        points = [[0, 0, 0], [1, 0, 1], [2, 0, 0]]
        keeper = make_keeper(points)
        assert isinstance(keeper.points, numpy.ndarray)
        assert keeper.points.dtype == float

    def test_bad_shape(self, make_keeper):
        """Test points that are not 3D are refused."""
        with pytest.raises(ValueError):
            make_keeper(numpy.zeros((4, 2)))


class TestRigid:
    """Tests for RIGID mode with each anchor configuration."""

    def test_translation(self, zigzag, make_keeper):
        """Test that moving both anchors together translates the chain."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        original = zigzag.copy()
        zigzag[[0, 4]] += [1, 2, 3]
        assert keeper.update()
        assert_allclose(zigzag, original + [1, 2, 3], atol=1e-12)

    def test_stretch_keeps_absolute_bends(self, zigzag, make_keeper):
        """Test ABSOLUTE preservation spreads points along the chord at constant bend."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1:4], [[2, 0, 1], [4, 0, 0], [6, 0, 1]], atol=1e-12)

    def test_rotation(self, zigzag, make_keeper):
        """Test bends rotate with the chord."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        zigzag[4] = [0, 4, 0]
        keeper.update()
        assert_allclose(zigzag[1], [0, 1, 1], atol=1e-12)
        assert_allclose(zigzag[3], [0, 3, 1], atol=1e-12)

    def test_scaled_preservation(self, zigzag, make_keeper):
        """Test SCALED preservation grows bends with the chord."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, preservation=Preservation.SCALED)
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1], [2, 0, 2], atol=1e-12)

    @pytest.mark.parametrize('preservation, anchor, expected', [
        ('elastic_bend', [8, 0, 0], [2, 0, 2**(1/3)]),
        ('elastic_bend', [2, 0, 0], [0.5, 0, 2**1.5]),
        ('arc_length', [8, 0, 0], [2, 0, 1]),
        ('arc_length', [2, 0, 0], [0.5, 0, 2]),
    ])
    def test_bend_response(self, zigzag, make_keeper, preservation, anchor, expected):
        """Test stretching and compressing the chord under the bend-scaling policies."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, preservation=preservation)
        zigzag[4] = anchor
        keeper.update()
        assert_allclose(zigzag[1], expected, atol=1e-12)

    def test_shape_fidelity_zero_flattens(self, zigzag, make_keeper):
        """Test zero fidelity places AUTO points on the chord."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, shape_fidelity=0)
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1:4, 2], 0, atol=1e-12)

    def test_degenerate_chord(self, zigzag, make_keeper):
        """Test collapsed anchors fall back to the offsets from the first anchor."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        zigzag[0] = zigzag[4] = [1, 1, 1]
        keeper.update()
        assert_allclose(zigzag[1], [2, 1, 2])
        assert_allclose(zigzag[3], [4, 1, 2])

    def test_single_anchor_translates(self, zigzag, make_keeper):
        """Test a single FIXED point drags the whole chain with it."""
        keeper = make_keeper(zigzag, tracked=[True, False, False, False, False])
        original = zigzag.copy()
        zigzag[0] += [0, 5, 0]
        keeper.update()
        assert_allclose(zigzag, original + [0, 5, 0])

    def test_no_anchors_freezes(self, zigzag, make_keeper):
        """Test nothing moves when no point is FIXED."""
        keeper = make_keeper(zigzag)
        zigzag[2] = [2, 7, 0]
        assert keeper.update()
        assert_allclose(zigzag[2], [2, 7, 0])

    def test_manual_points_untouched(self, zigzag, make_keeper):
        """Test MANUAL points are neither moved nor used as anchors."""
        roles = ['fixed', 'manual', 'auto', 'auto', 'fixed']
        keeper = make_keeper(zigzag, roles=roles)
        zigzag[1] = [1, 3, 3]
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1], [1, 3, 3])
        assert_allclose(zigzag[3], [6, 0, 1], atol=1e-12)


class TestUpdateTiming:
    """Tests for smoothing, snapping, throttling, and activation."""

    def test_smoothing(self, zigzag, make_keeper):
        """Test points cover a fraction of the way to their targets per update."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, smoothness=0.5, snap_on_enable=False)
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1], [1.5, 0, 1], atol=1e-12)

    def test_snap_then_smooth(self, zigzag, make_keeper):
        """Test only the first update after activation jumps to the target."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, smoothness=0.5)
        zigzag[4] = [8, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1], [2, 0, 1], atol=1e-12)
        zigzag[4] = [12, 0, 0]
        keeper.update()
        assert_allclose(zigzag[1], [2.5, 0, 1], atol=1e-12)

    def test_throttle(self, zigzag, make_keeper, clock):
        """Test updates closer together than 1/update_rate are skipped."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, update_rate=10)
        assert keeper.update()
        clock.now = 0.05
        assert not keeper.update()
        clock.now = 0.2
        assert keeper.update()

    def test_deactivate(self, zigzag, make_keeper):
        """Test an inactive keeper leaves the chain alone until reactivated."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, smoothness=0.5)
        keeper.update()
        keeper.deactivate()
        zigzag[4] = [8, 0, 0]
        assert not keeper.update()
        assert_allclose(zigzag[1], [1, 0, 1])
        keeper.activate()
        assert keeper.update()
        assert_allclose(zigzag[1], [2, 0, 1], atol=1e-12)

    def test_pre_snap_hook(self, zigzag, make_keeper):
        """Test the hook runs once, before the snapping update."""
        calls = []
        def drive_anchor(points):
            calls.append(True)
            points[4] = [8, 0, 0]
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, pre_snap=drive_anchor)
        keeper.update()
        keeper.update()
        assert len(calls) == 1
        assert_allclose(zigzag[1], [2, 0, 1], atol=1e-12)

    def test_pre_snap_must_be_callable(self, zigzag, make_keeper):
        with pytest.raises(TypeError):
            make_keeper(zigzag, pre_snap='not a function')


class TestChainChanges:
    """Tests for re-recording when the chain changes."""

    def test_stale_record(self, zigzag, make_keeper, caplog):
        """Test a changed point count triggers a warning and a new recording."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        keeper.points = numpy.vstack([zigzag, [[5, 0, 1]]])
        with caplog.at_level(logging.WARNING):
            assert keeper.update()
        assert 'Chain length changed' in caplog.text
        assert len(keeper.reference) == 6

    def test_set_points(self, zigzag, make_keeper):
        """Test roles beyond the new chain are dropped."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        keeper.set_points(zigzag[:3])
        assert keeper.roles == [ControlPointRole.FIXED, ControlPointRole.AUTO, ControlPointRole.AUTO]
        assert len(keeper.reference) == 3
        assert (keeper.first_fixed_index, keeper.last_fixed_index) == (0, 0)


class TestElastic:
    """Tests for ELASTIC mode."""

    def test_no_time_no_motion(self, zigzag, make_keeper):
        """Test a zero time step leaves the chain unchanged."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, shape_mode='elastic', snap_on_enable=False)
        zigzag[4] = [8, 0, 0]
        original = zigzag.copy()
        keeper.update(dt=0)
        assert_allclose(zigzag, original)

    def test_springs_pull_toward_neighbours(self, zigzag, make_keeper):
        """Test a stretched neighbour pulls an AUTO point toward it."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, shape_mode=ShapeMode.ELASTIC,
            snap_on_enable=False)
        zigzag[4] = [8, 0, 0]
        keeper.update(dt=0.05)
        assert zigzag[3, 0] > 3
        assert_allclose(zigzag[4], [8, 0, 0])

    def test_snap_applies_full_force(self, zigzag, make_keeper):
        """Test the first update after activation takes the whole spring step,
        even with no elapsed time, and later zero-time updates do nothing."""
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, shape_mode='elastic')
        zigzag[4] = [8, 0, 0]
        to_anchor = zigzag[4] - zigzag[3]
        distance = numpy.linalg.norm(to_anchor)
        rest = numpy.sqrt(2)
        # the spring to point 2 is at rest; the force is averaged over both neighbours
        pull = to_anchor / distance * (distance - rest) / rest * keeper.settings.elasticity / 2
        expected = zigzag[3] + pull
        keeper.update(dt=0)
        assert_allclose(zigzag[3], expected)
        assert_allclose(zigzag[3] - [3, 0, 1], [0.6387, 0, -0.1277], atol=1e-4)
        snapped = zigzag.copy()
        keeper.update(dt=0)
        assert_allclose(zigzag, snapped)


class TestRoles:
    """Tests for role assignment."""

    def test_tracked_flags(self, zigzag, make_keeper):
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        assert keeper.get_point_role(0) is ControlPointRole.FIXED
        assert keeper.get_point_role(2) is ControlPointRole.AUTO

    def test_manual_mode_ignores_tracked(self, zigzag, make_keeper):
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED, manual_mode=True)
        assert keeper.roles == [ControlPointRole.AUTO] * 5

    def test_wrong_length(self, zigzag, make_keeper):
        with pytest.raises(ValueError):
            make_keeper(zigzag, roles=['fixed', 'auto'])

    def test_tracking_status(self, zigzag, make_keeper):
        keeper = make_keeper(zigzag, tracked=ENDS_TRACKED)
        assert keeper.tracking_status() == '\n'.join([
            'Shape keeping: active',
            'Mode: rigid (absolute)',
            'Points: 2 fixed, 3 auto, 0 manual',
            'Shape recorded: yes',
        ])


class TestSettings:
    """Tests for ShapeKeeperSettings validation."""

    def test_clamping(self):
        settings = shape_keeper.ShapeKeeperSettings(smoothness=2, elasticity=-1, compression_response=0)
        assert settings.smoothness == 1
        assert settings.elasticity == 0
        assert settings.compression_response == pytest.approx(0.01)
        settings.shape_fidelity = -3
        assert settings.shape_fidelity == 0

    def test_unknown_field(self):
        with pytest.raises(pydantic.ValidationError):
            shape_keeper.ShapeKeeperSettings(stiffness=1)

    def test_enum_strings(self):
        settings = shape_keeper.ShapeKeeperSettings(shape_mode='elastic', preservation='arc_length')
        assert settings.shape_mode is ShapeMode.ELASTIC
        assert settings.preservation is Preservation.ARC_LENGTH

    def test_keyword_overrides(self, zigzag, make_keeper):
        """Test keywords override fields of an explicit settings object."""
        settings = shape_keeper.ShapeKeeperSettings(smoothness=0.3, preservation='scaled')
        keeper = make_keeper(zigzag, settings=settings)
        assert keeper.settings.smoothness == pytest.approx(0.3)
        assert keeper.settings.preservation is Preservation.SCALED
        assert keeper.settings.update_rate == 0


@pytest.mark.parametrize('preservation, stretch, expected', [
    (Preservation.SCALED, 2, 2),
    (Preservation.ABSOLUTE, 2, 1),
    (Preservation.ELASTIC_BEND, 0.5, 2),
    (Preservation.ELASTIC_BEND, 2, numpy.sqrt(2)),
    (Preservation.ELASTIC_BEND, 1, 1),
    (Preservation.ARC_LENGTH, 0.5, 2),
    (Preservation.ARC_LENGTH, 2, 1),
])
def test_bend_scale(preservation, stretch, expected):
    assert shape_keeper.bend_scale(preservation, stretch, 1) == pytest.approx(expected)
