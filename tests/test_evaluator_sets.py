import unittest

import jax
import numpy as np
from numpy.testing import assert_allclose

from uraeus.kinematic.evaluator_sets import KinematicEvaluatorSet
from uraeus.kinematic.evaluators import DistanceEvaluator, WorldPointEvaluator

from systems import construct_double_pendulum, construct_spatial_chain, random_context


class TestKinematicEvaluatorSet(unittest.TestCase):
    def setUp(self):
        self.plant = construct_spatial_chain()
        tool = self.plant.get_frame_by_name("tool")
        mount = self.plant.get_frame_by_name("cart_mount")
        world = self.plant.world_frame()

        self.distance = DistanceEvaluator(
            self.plant, np.array([0.2, 0.1, -0.3]), tool, np.zeros(3), mount, 0.8
        )
        self.point = WorldPointEvaluator(self.plant, np.array([0.1, 0.0, 0.0]), tool)
        self.reach = DistanceEvaluator(
            self.plant, np.zeros(3), mount, np.array([0.0, 0.0, 1.0]), world, 1.5
        )

        self.evaluators = KinematicEvaluatorSet(self.plant)
        for evaluator in (self.distance, self.point, self.reach):
            self.evaluators.add_evaluator(evaluator)

        self.context = random_context(self.plant, 0)

    def test_counts(self):
        self.assertEqual(self.evaluators.num_evaluators, 3)
        self.assertEqual(self.evaluators.count_full(), 5)
        self.assertEqual(self.evaluators.count_active(), 5)
        self.assertEqual(
            [self.evaluators.evaluator_full_start(i) for i in range(3)], [0, 1, 4]
        )

    def test_stacking_follows_insertion_order(self):
        context = self.context
        members = (self.distance, self.point, self.reach)

        assert_allclose(
            self.evaluators.eval_full(context),
            np.hstack([e.eval_full(context) for e in members]),
            atol=1e-14,
        )
        assert_allclose(
            self.evaluators.eval_full_jacobian(context),
            np.vstack([e.eval_full_jacobian(context) for e in members]),
            atol=1e-14,
        )
        assert_allclose(
            self.evaluators.eval_full_jacobian_dot_times_v(context),
            np.hstack([e.eval_full_jacobian_dot_times_v(context) for e in members]),
            atol=1e-14,
        )
        assert_allclose(
            self.evaluators.eval_full_time_derivative(context),
            self.evaluators.eval_full_jacobian(context) @ context.qdt1,
            atol=1e-12,
        )

    def test_shapes(self):
        nv = self.plant.num_velocities
        self.assertEqual(self.evaluators.eval_full(self.context).shape, (5,))
        self.assertEqual(
            self.evaluators.eval_full_jacobian(self.context).shape, (5, nv)
        )
        self.assertEqual(
            self.evaluators.eval_full_jacobian_dot_times_v(self.context).shape, (5,)
        )

    def test_rows_are_stable_under_append(self):
        context = self.context
        phi = self.evaluators.eval_full(context)
        J = self.evaluators.eval_full_jacobian(context)
        starts = [self.evaluators.evaluator_full_start(i) for i in range(3)]

        tool = self.plant.get_frame_by_name("tool")
        index = self.evaluators.add_evaluator(
            WorldPointEvaluator(self.plant, np.zeros(3), tool)
        )

        self.assertEqual(index, 3)
        self.assertEqual(
            [self.evaluators.evaluator_full_start(i) for i in range(3)], starts
        )
        self.assertEqual(self.evaluators.evaluator_full_start(3), 5)
        np.testing.assert_array_equal(self.evaluators.eval_full(context)[:5], phi)
        np.testing.assert_array_equal(
            self.evaluators.eval_full_jacobian(context)[:5], J
        )

    def test_deactivated_evaluator(self):
        context = self.context
        self.evaluators.set_evaluator_active(1, False)

        self.assertFalse(self.evaluators.is_evaluator_active(1))
        self.assertEqual(self.evaluators.count_full(), 5)
        self.assertEqual(self.evaluators.count_active(), 2)
        self.assertEqual(self.evaluators.evaluator_active_start(2), 1)

        expected = [self.distance.eval_full(context), self.reach.eval_full(context)]
        assert_allclose(
            self.evaluators.eval_active(context),
            np.hstack(expected),
            atol=1e-14,
        )
        self.assertEqual(
            self.evaluators.eval_active_jacobian(context).shape,
            (2, self.plant.num_velocities),
        )
        self.assertEqual(self.evaluators.eval_full(context).shape, (5,))

        self.evaluators.set_evaluator_active(1, True)
        self.assertEqual(self.evaluators.count_active(), 5)

    def test_member_active_rows(self):
        context = self.context
        self.point.set_active_indices([2])

        self.assertEqual(self.evaluators.count_active(), 3)
        self.assertEqual(self.evaluators.evaluator_active_start(2), 2)

        phi_full = np.asarray(self.evaluators.eval_full(context))
        assert_allclose(
            self.evaluators.eval_active(context),
            phi_full[np.array([0, 3, 4])],
            atol=1e-14,
        )
        J_full = np.asarray(self.evaluators.eval_full_jacobian(context))
        assert_allclose(
            self.evaluators.eval_active_jacobian(context),
            J_full[np.array([0, 3, 4])],
            atol=1e-14,
        )
        bias_full = np.asarray(self.evaluators.eval_full_jacobian_dot_times_v(context))
        assert_allclose(
            self.evaluators.eval_active_jacobian_dot_times_v(context),
            bias_full[np.array([0, 3, 4])],
            atol=1e-14,
        )
        assert_allclose(
            self.evaluators.eval_active_time_derivative(context),
            self.evaluators.eval_active_jacobian(context) @ context.qdt1,
            atol=1e-12,
        )

    def test_get_evaluator(self):
        self.assertIs(self.evaluators.get_evaluator(1), self.point)

    def test_jit_compiled_evaluation(self):
        context = self.context

        @jax.jit
        def stacked(q, v):
            c = self.plant.create_context(q, v)
            return (
                self.evaluators.eval_full(c),
                self.evaluators.eval_full_jacobian(c),
                self.evaluators.eval_full_jacobian_dot_times_v(c),
            )

        phi, J, bias = stacked(context.qdt0, context.qdt1)
        assert_allclose(phi, self.evaluators.eval_full(context), atol=1e-12)
        assert_allclose(J, self.evaluators.eval_full_jacobian(context), atol=1e-12)
        assert_allclose(
            bias,
            self.evaluators.eval_full_jacobian_dot_times_v(context),
            atol=1e-12,
        )


class TestEmptySet(unittest.TestCase):
    def setUp(self):
        self.plant = construct_double_pendulum()
        self.evaluators = KinematicEvaluatorSet(self.plant)
        self.context = self.plant.create_context()

    def test_empty_shapes(self):
        self.assertEqual(self.evaluators.count_full(), 0)
        self.assertEqual(self.evaluators.eval_full(self.context).shape, (0,))
        self.assertEqual(
            self.evaluators.eval_full_jacobian(self.context).shape, (0, 2)
        )
        self.assertEqual(
            self.evaluators.eval_full_jacobian_dot_times_v(self.context).shape, (0,)
        )
        self.assertEqual(self.evaluators.eval_active(self.context).shape, (0,))
        self.assertEqual(
            self.evaluators.eval_active_jacobian(self.context).shape, (0, 2)
        )


class TestSetPreconditions(unittest.TestCase):
    def setUp(self):
        self.plant = construct_double_pendulum()
        self.evaluators = KinematicEvaluatorSet(self.plant)
        self.evaluators.add_evaluator(
            WorldPointEvaluator(
                self.plant, np.zeros(3), self.plant.get_frame_by_name("l2_tip")
            )
        )

    def test_foreign_plant(self):
        other = construct_double_pendulum()
        evaluator = WorldPointEvaluator(
            other, np.zeros(3), other.get_frame_by_name("l1")
        )
        with self.assertRaises(ValueError):
            self.evaluators.add_evaluator(evaluator)
        self.assertEqual(self.evaluators.num_evaluators, 1)

    def test_index_out_of_range(self):
        with self.assertRaises(ValueError):
            self.evaluators.get_evaluator(1)
        with self.assertRaises(ValueError):
            self.evaluators.set_evaluator_active(-1, False)
        with self.assertRaises(ValueError):
            self.evaluators.evaluator_full_start(2)

    def test_wrong_context(self):
        other = construct_spatial_chain()
        with self.assertRaises(ValueError):
            self.evaluators.eval_full(other.create_context())


if __name__ == "__main__":
    unittest.main()
