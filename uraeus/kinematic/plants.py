"""Kinematic plant of a tree-structured multibody system.

The plant answers the kinematic queries the constraint evaluators rely on:
frames' relative transforms, points' positions, translational velocity
Jacobians and translational bias accelerations. Every query is a pure function
of a :class:`Context` snapshot, is jit-compiled with the plant itself as a
static argument, and is differentiable with `jax` transformations.

The generalized velocity of the plant is the time derivative of its
generalized position, hence `num_velocities == num_positions`, and a Jacobian
with respect to the generalized velocity is the position Jacobian.
"""

import logging
from functools import partial
from typing import NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from uraeus.kinematic.spatial_algebra import (
    Pose,
    compose_poses,
    invert_pose,
    transform_points,
)
from uraeus.kinematic.topologies import MultiBodyTree, construct_multibodydata
from uraeus.kinematic.tree_traversals import base_to_tip, split_coordinates

logger = logging.getLogger(__name__)


class Context(NamedTuple):
    qdt0: jnp.ndarray
    qdt1: jnp.ndarray


class Frame(NamedTuple):
    """Handle of a named frame owned by a :class:`MultiBodyPlant`.

    Frames are issued by the plant and only valid for the plant that issued
    them. They do not own any kinematic data.
    """

    name: str
    index: int
    body_index: int
    model: str


class MultiBodyPlant(object):
    def __init__(self, topology: MultiBodyTree):
        self.name = topology.name
        self.data = construct_multibodydata(topology)

        self._frames = tuple(
            Frame(f.name, i, f.body_index, self.name)
            for i, f in enumerate(self.data.frames)
        )
        self._frames_by_name = {f.name: f for f in self._frames}

        logger.debug(
            "Constructed plant '%s' with %d bodies, %d frames and %d coordinates",
            self.name,
            len(self.data.joints) + 1,
            len(self._frames),
            self.num_positions,
        )

    @property
    def num_positions(self) -> int:
        return self.data.qdt0_idx[-1]

    @property
    def num_velocities(self) -> int:
        return self.data.qdt0_idx[-1]

    @property
    def frames(self) -> Tuple[Frame, ...]:
        return self._frames

    @property
    def coordinates_names(self) -> Tuple[str, ...]:
        return self.data.coordinates_names

    def world_frame(self) -> Frame:
        return self._frames_by_name["ground"]

    def has_frame(self, name: str) -> bool:
        return name in self._frames_by_name

    def get_frame_by_name(self, name: str) -> Frame:
        if not self.has_frame(name):
            raise ValueError(f"Frame '{name}' is not in plant '{self.name}'!")
        return self._frames_by_name[name]

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def validate_frame(self, frame: Frame) -> None:
        valid = (
            isinstance(frame, Frame)
            and 0 <= frame.index < len(self._frames)
            and self._frames[frame.index] is frame
        )
        if not valid:
            raise ValueError(f"{frame!r} does not belong to plant '{self.name}'!")

    def validate_context(self, context: Context) -> None:
        if not isinstance(context, Context):
            raise ValueError(f"Expected a Context, got {type(context).__name__}")

        qdt0_shape = jnp.shape(context.qdt0)
        qdt1_shape = jnp.shape(context.qdt1)
        if qdt0_shape != (self.num_positions,):
            raise ValueError(
                f"Plant '{self.name}' expects positions of shape "
                f"({self.num_positions},), got {qdt0_shape}"
            )
        if qdt1_shape != (self.num_velocities,):
            raise ValueError(
                f"Plant '{self.name}' expects velocities of shape "
                f"({self.num_velocities},), got {qdt1_shape}"
            )

    @staticmethod
    def _validate_points(points: jnp.ndarray) -> None:
        if jnp.ndim(points) not in (1, 2) or jnp.shape(points)[-1] != 3:
            raise ValueError(
                f"Points should be of shape (3,) or (n, 3), got {jnp.shape(points)}"
            )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def create_context(
        self, qdt0: Optional[np.ndarray] = None, qdt1: Optional[np.ndarray] = None
    ) -> Context:
        qdt0 = np.zeros((self.num_positions,)) if qdt0 is None else qdt0
        qdt1 = np.zeros((self.num_velocities,)) if qdt1 is None else qdt1
        context = Context(
            jnp.asarray(qdt0, dtype=float), jnp.asarray(qdt1, dtype=float)
        )
        self.validate_context(context)
        return context

    def get_positions(self, context: Context) -> jnp.ndarray:
        self.validate_context(context)
        return context.qdt0

    def get_velocities(self, context: Context) -> jnp.ndarray:
        self.validate_context(context)
        return context.qdt1

    # -------------------------------------------------------------------------
    # Kinematic queries
    # -------------------------------------------------------------------------

    def calc_bodies_poses(self, context: Context) -> Tuple[Pose, ...]:
        self.validate_context(context)
        return self._bodies_poses(context.qdt0)

    def calc_relative_transform(
        self, context: Context, frame_A: Frame, frame_B: Frame
    ) -> Pose:
        """Pose `X_AB` of `frame_B` relative to `frame_A`."""
        self.validate_context(context)
        self.validate_frame(frame_A)
        self.validate_frame(frame_B)
        return self._relative_transform(frame_A.index, frame_B.index, context.qdt0)

    def calc_points_positions(
        self,
        context: Context,
        frame_from: Frame,
        points: np.ndarray,
        frame_to: Frame,
    ) -> jnp.ndarray:
        """Express `points`, given in `frame_from`, in `frame_to` coordinates."""
        self.validate_context(context)
        self.validate_frame(frame_from)
        self.validate_frame(frame_to)
        self._validate_points(points)
        return self._points_positions(
            frame_from.index, frame_to.index, context.qdt0, points
        )

    def calc_jacobian_translational_velocity(
        self,
        context: Context,
        frame: Frame,
        point: np.ndarray,
        measured_in: Frame,
        expressed_in: Frame,
    ) -> jnp.ndarray:
        """(3, nv) Jacobian of the velocity of `point`, fixed on `frame`,
        measured in `measured_in` and expressed in `expressed_in`, with respect
        to the generalized velocity.
        """
        self.validate_context(context)
        for f in (frame, measured_in, expressed_in):
            self.validate_frame(f)
        if jnp.shape(point) != (3,):
            raise ValueError(f"Point should be of shape (3,), got {jnp.shape(point)}")

        return self._jacobian_translational_velocity(
            frame.index, measured_in.index, expressed_in.index, context.qdt0, point
        )

    def calc_bias_translational_acceleration(
        self,
        context: Context,
        frame: Frame,
        point: np.ndarray,
        measured_in: Frame,
        expressed_in: Frame,
    ) -> jnp.ndarray:
        """(3,) acceleration of `point`, fixed on `frame`, measured in
        `measured_in` and expressed in `expressed_in`, under the current
        velocity and zero generalized acceleration, i.e. `Jdot * v`.
        """
        self.validate_context(context)
        for f in (frame, measured_in, expressed_in):
            self.validate_frame(f)
        if jnp.shape(point) != (3,):
            raise ValueError(f"Point should be of shape (3,), got {jnp.shape(point)}")

        return self._bias_translational_acceleration(
            frame.index,
            measured_in.index,
            expressed_in.index,
            context.qdt0,
            context.qdt1,
            point,
        )

    # -------------------------------------------------------------------------
    # Jitted kernels
    # -------------------------------------------------------------------------

    @partial(jax.jit, static_argnums=(0,))
    def _bodies_poses(self, qdt0: jnp.ndarray) -> Tuple[Pose, ...]:
        data = self.data
        joints_coordinates = split_coordinates(data.qdt0_idx, qdt0)
        return base_to_tip(data.joints, joints_coordinates, data.forward_traversal)

    @partial(jax.jit, static_argnums=(0, 1))
    def _frame_pose(self, frame_index: int, qdt0: jnp.ndarray) -> Pose:
        frame_data = self.data.frames[frame_index]
        X_GB = self._bodies_poses(qdt0)[frame_data.body_index]
        return compose_poses(X_GB, frame_data.X_BF)

    @partial(jax.jit, static_argnums=(0, 1, 2))
    def _relative_transform(
        self, frame_A_index: int, frame_B_index: int, qdt0: jnp.ndarray
    ) -> Pose:
        X_GA = self._frame_pose(frame_A_index, qdt0)
        X_GB = self._frame_pose(frame_B_index, qdt0)
        return compose_poses(invert_pose(X_GA), X_GB)

    @partial(jax.jit, static_argnums=(0, 1, 2))
    def _points_positions(
        self,
        frame_from_index: int,
        frame_to_index: int,
        qdt0: jnp.ndarray,
        points: jnp.ndarray,
    ) -> jnp.ndarray:
        X_TF = self._relative_transform(frame_to_index, frame_from_index, qdt0)
        return transform_points(X_TF, points)

    @partial(jax.jit, static_argnums=(0, 1, 2, 3))
    def _jacobian_translational_velocity(
        self,
        frame_index: int,
        measured_in_index: int,
        expressed_in_index: int,
        qdt0: jnp.ndarray,
        point: jnp.ndarray,
    ) -> jnp.ndarray:
        def position(q):
            return self._points_positions(frame_index, measured_in_index, q, point)

        J_M = jax.jacfwd(position)(qdt0)
        R_EM = self._relative_transform(expressed_in_index, measured_in_index, qdt0).R
        return R_EM @ J_M

    @partial(jax.jit, static_argnums=(0, 1, 2, 3))
    def _bias_translational_acceleration(
        self,
        frame_index: int,
        measured_in_index: int,
        expressed_in_index: int,
        qdt0: jnp.ndarray,
        qdt1: jnp.ndarray,
        point: jnp.ndarray,
    ) -> jnp.ndarray:
        def position(q):
            return self._points_positions(frame_index, measured_in_index, q, point)

        def velocity(q):
            return jax.jvp(position, (q,), (qdt1,))[1]

        # directional derivative of `J(q) @ v` along `v` with `v` held fixed.
        _, a_M = jax.jvp(velocity, (qdt0,), (qdt1,))
        R_EM = self._relative_transform(expressed_in_index, measured_in_index, qdt0).R
        return R_EM @ a_M
