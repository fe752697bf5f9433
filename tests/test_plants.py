import unittest

import numpy as np
from numpy.testing import assert_allclose

from uraeus.kinematic.plants import Context

from systems import (
    construct_double_pendulum,
    construct_spatial_chain,
    perturbed_contexts,
    random_context,
)

H = 1e-5


class TestPlantQueries(unittest.TestCase):
    def setUp(self):
        self.plant = construct_spatial_chain()
        self.world = self.plant.world_frame()
        self.tool = self.plant.get_frame_by_name("tool")
        self.mount = self.plant.get_frame_by_name("cart_mount")
        self.point = np.array([0.3, -0.1, 0.25])

    def test_dimensions(self):
        self.assertEqual(self.plant.num_positions, 6 + 1 + 1 + 3)
        self.assertEqual(self.plant.num_velocities, self.plant.num_positions)
        self.assertEqual(
            self.plant.coordinates_names[:2],
            ("base_free_phi_dt0", "base_free_theta_dt0"),
        )

    def test_context_accessors(self):
        context = random_context(self.plant, 0)
        np.testing.assert_array_equal(
            self.plant.get_positions(context), context.qdt0
        )
        np.testing.assert_array_equal(
            self.plant.get_velocities(context), context.qdt1
        )

        context = self.plant.create_context()
        np.testing.assert_array_equal(context.qdt0, np.zeros(11))
        np.testing.assert_array_equal(context.qdt1, np.zeros(11))

    def test_points_positions_round_trip(self):
        context = random_context(self.plant, 0)
        p_M = self.plant.calc_points_positions(
            context, self.tool, self.point, self.mount
        )
        p_T = self.plant.calc_points_positions(context, self.mount, p_M, self.tool)
        assert_allclose(p_T, self.point, atol=1e-12)

    def test_points_positions_stacked(self):
        context = random_context(self.plant, 1)
        points = np.stack([self.point, -self.point, np.zeros(3)])
        stacked = self.plant.calc_points_positions(
            context, self.tool, points, self.world
        )
        for point, p_G in zip(points, stacked):
            single = self.plant.calc_points_positions(
                context, self.tool, point, self.world
            )
            assert_allclose(p_G, single, atol=1e-14)

    def test_relative_transform_is_orthonormal(self):
        context = random_context(self.plant, 2)
        X_MT = self.plant.calc_relative_transform(context, self.mount, self.tool)
        assert_allclose(X_MT.R.T @ X_MT.R, np.eye(3), atol=1e-12)
        assert_allclose(np.linalg.det(X_MT.R), 1.0, atol=1e-12)

    def test_jacobian_against_finite_differences(self):
        for seed in range(3):
            context = random_context(self.plant, seed)
            forward, backward = perturbed_contexts(self.plant, context, H)

            for measured_in in (self.world, self.mount):
                J = self.plant.calc_jacobian_translational_velocity(
                    context, self.tool, self.point, measured_in, measured_in
                )
                p_f = self.plant.calc_points_positions(
                    forward, self.tool, self.point, measured_in
                )
                p_b = self.plant.calc_points_positions(
                    backward, self.tool, self.point, measured_in
                )
                assert_allclose(
                    J @ context.qdt1, (p_f - p_b) / (2 * H), rtol=1e-6, atol=1e-7
                )

    def test_jacobian_expressed_in_another_frame(self):
        context = random_context(self.plant, 3)
        J_MM = self.plant.calc_jacobian_translational_velocity(
            context, self.tool, self.point, self.mount, self.mount
        )
        J_MW = self.plant.calc_jacobian_translational_velocity(
            context, self.tool, self.point, self.mount, self.world
        )
        R_WM = self.plant.calc_relative_transform(context, self.world, self.mount).R
        assert_allclose(J_MW, R_WM @ J_MM, atol=1e-12)

    def test_bias_acceleration_against_finite_differences(self):
        for seed in range(3):
            context = random_context(self.plant, seed)
            forward, backward = perturbed_contexts(self.plant, context, H)
            v = context.qdt1

            a_bias = self.plant.calc_bias_translational_acceleration(
                context, self.tool, self.point, self.world, self.world
            )
            Jv = [
                self.plant.calc_jacobian_translational_velocity(
                    c, self.tool, self.point, self.world, self.world
                )
                @ v
                for c in (forward, backward)
            ]
            a_fd = (Jv[0] - Jv[1]) / (2 * H)
            assert_allclose(a_bias, a_fd, rtol=1e-6, atol=1e-7)

    def test_bias_acceleration_vanishes_at_rest(self):
        context = self.plant.create_context(random_context(self.plant, 4).qdt0)
        a_bias = self.plant.calc_bias_translational_acceleration(
            context, self.tool, self.point, self.mount, self.world
        )
        np.testing.assert_array_equal(a_bias, np.zeros(3))

    def test_queries_are_deterministic(self):
        context = random_context(self.plant, 5)
        first = self.plant.calc_bias_translational_acceleration(
            context, self.tool, self.point, self.world, self.world
        )
        second = self.plant.calc_bias_translational_acceleration(
            context, self.tool, self.point, self.world, self.world
        )
        np.testing.assert_array_equal(first, second)


class TestPlantPreconditions(unittest.TestCase):
    def setUp(self):
        self.plant = construct_spatial_chain()
        self.world = self.plant.world_frame()

    def test_wrong_positions_size(self):
        with self.assertRaises(ValueError):
            self.plant.create_context(np.zeros(self.plant.num_positions + 1))

    def test_wrong_velocities_size(self):
        nq, nv = self.plant.num_positions, self.plant.num_velocities
        context = Context(np.zeros(nq), np.zeros(nv - 1))
        with self.assertRaises(ValueError):
            self.plant.get_velocities(context)

    def test_not_a_context(self):
        with self.assertRaises(ValueError):
            self.plant.validate_context((np.zeros(11), np.zeros(11)))

    def test_unknown_frame_name(self):
        with self.assertRaises(ValueError):
            self.plant.get_frame_by_name("nowhere")

    def test_foreign_frame(self):
        other = construct_double_pendulum()
        context = self.plant.create_context()
        with self.assertRaises(ValueError):
            self.plant.calc_points_positions(
                context, other.get_frame_by_name("l1"), np.zeros(3), self.world
            )

    def test_same_named_frame_of_another_plant(self):
        other = construct_spatial_chain()
        with self.assertRaises(ValueError):
            self.plant.validate_frame(other.get_frame_by_name("tool"))

    def test_wrong_point_shape(self):
        context = self.plant.create_context()
        with self.assertRaises(ValueError):
            self.plant.calc_jacobian_translational_velocity(
                context, self.world, np.zeros(2), self.world, self.world
            )
        with self.assertRaises(ValueError):
            self.plant.calc_points_positions(
                context, self.world, np.zeros((2, 4)), self.world
            )


if __name__ == "__main__":
    unittest.main()
