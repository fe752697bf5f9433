"""Kinematic constraint evaluators.

An evaluator realizes a holonomic constraint `phi(q) = 0` of fixed length over
a :class:`~uraeus.kinematic.plants.MultiBodyPlant`, and evaluates from a
context snapshot

- the residual `phi(q)`,
- the Jacobian `J` of the residual with respect to the generalized velocity,
  such that `d/dt phi(q) = J @ v`,
- the bias term `Jdot @ v`, the part of `d2/dt2 phi(q)` that does not depend
  on the generalized acceleration.

Evaluators borrow the plant and never mutate it, nor retain any pose-dependent
state between calls. All the computations are expressed in `jax.numpy`, so the
evaluators can be differentiated and jit-compiled by the calling optimizers.

Each evaluator also carries a mask of *active* rows. The `eval_full*` methods
always return every row, the `eval_active*` methods only the active rows.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Tuple

import jax.numpy as jnp
import numpy as np

from uraeus.kinematic.plants import Context, Frame, MultiBodyPlant

logger = logging.getLogger(__name__)


def as_cartesian_vector(v: np.ndarray, name: str) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"'{name}' should be a (3,) vector, got shape {v.shape}")
    return v


class KinematicEvaluator(ABC):
    def __init__(self, plant: MultiBodyPlant, length: int):
        if length < 0:
            raise ValueError(f"Evaluator length should be non-negative, got {length}")
        self._plant = plant
        self._length = int(length)
        self._active_indices = tuple(range(self._length))

    @property
    def plant(self) -> MultiBodyPlant:
        return self._plant

    @property
    def length(self) -> int:
        return self._length

    @property
    def num_full(self) -> int:
        return self._length

    @property
    def num_active(self) -> int:
        return len(self._active_indices)

    @property
    def active_indices(self) -> Tuple[int, ...]:
        return self._active_indices

    def is_active(self, index: int) -> bool:
        return index in self._active_indices

    def set_active_indices(self, indices: Iterable[int]) -> None:
        indices = [int(i) for i in indices]
        if len(set(indices)) != len(indices):
            raise ValueError(f"Duplicate active indices {indices}")
        for i in indices:
            if not 0 <= i < self._length:
                raise ValueError(
                    f"Active index {i} is out of range for an evaluator of "
                    f"length {self._length}"
                )
        self._active_indices = tuple(sorted(indices))
        logger.debug(
            "%s active rows set to %s", type(self).__name__, self._active_indices
        )

    def set_all_active(self) -> None:
        self.set_active_indices(range(self._length))

    def set_all_inactive(self) -> None:
        self.set_active_indices(())

    def full_index_to_active_index(self, index: int) -> int:
        if not self.is_active(index):
            raise ValueError(f"Row {index} is not active")
        return self._active_indices.index(index)

    # -------------------------------------------------------------------------
    # Full evaluations
    # -------------------------------------------------------------------------

    @abstractmethod
    def eval_full(self, context: Context) -> jnp.ndarray:
        """(length,) constraint residual."""

    @abstractmethod
    def eval_full_jacobian(self, context: Context) -> jnp.ndarray:
        """(length, nv) Jacobian of the residual w.r.t. the generalized
        velocity.
        """

    @abstractmethod
    def eval_full_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        """(length,) bias term `Jdot @ v`."""

    def eval_full_time_derivative(self, context: Context) -> jnp.ndarray:
        """(length,) time derivative of the residual, `J @ v`."""
        J = self.eval_full_jacobian(context)
        return J @ self._plant.get_velocities(context)

    # -------------------------------------------------------------------------
    # Active evaluations
    # -------------------------------------------------------------------------

    def _active_rows(self) -> np.ndarray:
        return np.asarray(self._active_indices, dtype=int)

    def eval_active(self, context: Context) -> jnp.ndarray:
        return self.eval_full(context)[self._active_rows()]

    def eval_active_jacobian(self, context: Context) -> jnp.ndarray:
        return self.eval_full_jacobian(context)[self._active_rows(), :]

    def eval_active_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        return self.eval_full_jacobian_dot_times_v(context)[self._active_rows()]

    def eval_active_time_derivative(self, context: Context) -> jnp.ndarray:
        return self.eval_full_time_derivative(context)[self._active_rows()]


class DistanceEvaluator(KinematicEvaluator):
    """Constrain the euclidean distance between point A, fixed on frame A, and
    point B, fixed on frame B, to a target distance.

    The residual is `||p_A - p_B|| - distance`, positive when the points are
    further apart than the target.

    Parameters
    ----------
    plant : MultiBodyPlant
        The plant the frames belong to.
    pt_A : np.ndarray
        (3,) point A expressed in frame A.
    frame_A : Frame
        Frame point A is fixed on.
    pt_B : np.ndarray
        (3,) point B expressed in frame B.
    frame_B : Frame
        Frame point B is fixed on.
    distance : float
        Target distance.

    Notes
    -----
    The Jacobian and the bias term are divided by `||p_A - p_B||`, and are not
    defined for coincident points. No guard is applied, coincident points
    produce `nan` or `inf` entries that propagate to the caller.
    """

    def __init__(
        self,
        plant: MultiBodyPlant,
        pt_A: np.ndarray,
        frame_A: Frame,
        pt_B: np.ndarray,
        frame_B: Frame,
        distance: float,
    ):
        super().__init__(plant, 1)
        plant.validate_frame(frame_A)
        plant.validate_frame(frame_B)

        self._pt_A = as_cartesian_vector(pt_A, "pt_A")
        self._frame_A = frame_A
        self._pt_B = as_cartesian_vector(pt_B, "pt_B")
        self._frame_B = frame_B
        self._distance = float(distance)

        logger.debug(
            "Constructed distance evaluator between '%s' and '%s', distance = %s",
            frame_A.name,
            frame_B.name,
            self._distance,
        )

    @property
    def pt_A(self) -> np.ndarray:
        return self._pt_A.copy()

    @property
    def frame_A(self) -> Frame:
        return self._frame_A

    @property
    def pt_B(self) -> np.ndarray:
        return self._pt_B.copy()

    @property
    def frame_B(self) -> Frame:
        return self._frame_B

    @property
    def distance(self) -> float:
        return self._distance

    def _relative_position_in_B(self, context: Context) -> jnp.ndarray:
        pt_A_B = self.plant.calc_points_positions(
            context, self._frame_A, self._pt_A, self._frame_B
        )
        return pt_A_B - self._pt_B

    def eval_full(self, context: Context) -> jnp.ndarray:
        rel_pos = self._relative_position_in_B(context)
        return jnp.atleast_1d(jnp.linalg.norm(rel_pos) - self._distance)

    def eval_full_jacobian(self, context: Context) -> jnp.ndarray:
        # Jacobian of ||pt_A - pt_B||, evaluated all in frame B, is
        #   (pt_A - pt_B)^T * (J_A - J_B) / ||pt_A - pt_B||
        # where J_A - J_B is the velocity Jacobian of A measured in frame B.
        rel_pos = self._relative_position_in_B(context)

        J_A = self.plant.calc_jacobian_translational_velocity(
            context, self._frame_A, self._pt_A, self._frame_B, self._frame_B
        )

        return ((rel_pos @ J_A) / jnp.linalg.norm(rel_pos))[None, :]

    def eval_full_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        # Chain rule applied on the Jacobian, in the world frame. Jdot * v is
        #
        # ||(J_A - J_B) * v||^2 / phi
        #   + (pt_A - pt_B)^T * (J_A_dot * v - J_B_dot * v) / phi
        #   - phidot * (pt_A - pt_B)^T * (J_A - J_B) * v / phi^2
        plant = self.plant
        world = plant.world_frame()

        pt_A_world = plant.calc_points_positions(
            context, self._frame_A, self._pt_A, world
        )
        pt_B_world = plant.calc_points_positions(
            context, self._frame_B, self._pt_B, world
        )
        rel_pos = pt_A_world - pt_B_world

        J_A = plant.calc_jacobian_translational_velocity(
            context, self._frame_A, self._pt_A, world, world
        )
        J_B = plant.calc_jacobian_translational_velocity(
            context, self._frame_B, self._pt_B, world, world
        )
        J_rel = J_A - J_B

        J_A_dot_times_v = plant.calc_bias_translational_acceleration(
            context, self._frame_A, self._pt_A, world, world
        )
        J_B_dot_times_v = plant.calc_bias_translational_acceleration(
            context, self._frame_B, self._pt_B, world, world
        )
        J_rel_dot_times_v = J_A_dot_times_v - J_B_dot_times_v

        v = plant.get_velocities(context)
        phi = jnp.linalg.norm(rel_pos)

        # matches the frame B Jacobian of `eval_full_jacobian`
        J = (rel_pos @ J_rel) / phi
        phidot = J @ v

        J_rel_v = J_rel @ v

        J_dot_times_v = (
            (J_rel_v @ J_rel_v) / phi
            + (rel_pos @ J_rel_dot_times_v) / phi
            - phidot * (rel_pos @ J_rel_v) / (phi * phi)
        )
        return jnp.atleast_1d(J_dot_times_v)


class WorldPointEvaluator(KinematicEvaluator):
    """Constrain the world position of point A, fixed on frame A.

    The residual is `rotation @ p_A_world - offset`, the rotation expresses
    the constraint along arbitrary world directions, e.g. a contact normal and
    its tangents, and `active_directions` selects the directions enforced.
    """

    def __init__(
        self,
        plant: MultiBodyPlant,
        pt_A: np.ndarray,
        frame_A: Frame,
        rotation: Optional[np.ndarray] = None,
        offset: Optional[np.ndarray] = None,
        active_directions: Iterable[int] = (0, 1, 2),
    ):
        super().__init__(plant, 3)
        plant.validate_frame(frame_A)

        rotation = np.eye(3) if rotation is None else np.asarray(rotation, float)
        if rotation.shape != (3, 3):
            raise ValueError(
                f"'rotation' should be a (3, 3) matrix, got shape {rotation.shape}"
            )

        self._pt_A = as_cartesian_vector(pt_A, "pt_A")
        self._frame_A = frame_A
        self._rotation = rotation
        self._offset = as_cartesian_vector(
            np.zeros((3,)) if offset is None else offset, "offset"
        )
        self.set_active_indices(active_directions)

        logger.debug(
            "Constructed world point evaluator on '%s', active directions %s",
            frame_A.name,
            self.active_indices,
        )

    @property
    def pt_A(self) -> np.ndarray:
        return self._pt_A.copy()

    @property
    def frame_A(self) -> Frame:
        return self._frame_A

    @property
    def rotation(self) -> np.ndarray:
        return self._rotation.copy()

    @property
    def offset(self) -> np.ndarray:
        return self._offset.copy()

    def eval_full(self, context: Context) -> jnp.ndarray:
        world = self.plant.world_frame()
        pt_A_world = self.plant.calc_points_positions(
            context, self._frame_A, self._pt_A, world
        )
        return self._rotation @ pt_A_world - self._offset

    def eval_full_jacobian(self, context: Context) -> jnp.ndarray:
        world = self.plant.world_frame()
        J_A = self.plant.calc_jacobian_translational_velocity(
            context, self._frame_A, self._pt_A, world, world
        )
        return self._rotation @ J_A

    def eval_full_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        world = self.plant.world_frame()
        J_A_dot_times_v = self.plant.calc_bias_translational_acceleration(
            context, self._frame_A, self._pt_A, world, world
        )
        return self._rotation @ J_A_dot_times_v
