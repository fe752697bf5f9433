"""Mobilizers define the relative pose `X_FM` of a joint's mobilized frame M
in its fixed frame F as a function of the joint coordinates.

Generic mobilizers are driven by *pose polynomials*, a function mapping the
joint coordinates to a six-element pose vector `[phi, theta, psi, x, y, z]`,
where the first half are body-fixed x-y-z Euler angles and the second half is
the location of M expressed in F.
"""

from typing import Callable, NamedTuple

import jax.numpy as jnp
import numpy as np

from uraeus.kinematic.spatial_algebra import Pose, euler_rotation, rot_z


class AbstractMobilizer(NamedTuple):

    nj: int = None

    def pose_polynomials(self, qdt0: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def X_FM(self, qdt0: np.ndarray) -> Pose:
        raise NotImplementedError


class CustomMobilizer(AbstractMobilizer):
    def X_FM(self, qdt0: np.ndarray) -> Pose:
        pose_dt0 = self.pose_polynomials(qdt0)
        orientation, location = pose_dt0.reshape(2, -1)
        R_FM = euler_rotation(orientation)
        return Pose(R_FM, location)


class RevoluteMobilizer(CustomMobilizer):

    nj = 1

    @staticmethod
    def pose_polynomials(qdt0: np.ndarray) -> np.ndarray:
        return jnp.hstack([jnp.zeros((2,)), qdt0[:1], jnp.zeros((3,))])

    def X_FM(self, qdt0: np.ndarray) -> Pose:
        psi_dt0 = qdt0[0]
        return Pose(rot_z(psi_dt0), jnp.zeros((3,)))


class TranslationalMobilizer(CustomMobilizer):

    nj = 1

    @staticmethod
    def pose_polynomials(qdt0: np.ndarray) -> np.ndarray:
        return jnp.hstack([jnp.zeros((5,)), qdt0[:1]])

    def X_FM(self, qdt0: np.ndarray) -> Pose:
        z_dt0 = qdt0[0]
        return Pose(jnp.eye(3), jnp.hstack([jnp.zeros((2,)), z_dt0]))


class PlanarMobilizer(CustomMobilizer):

    nj = 3

    @staticmethod
    def pose_polynomials(qdt0: np.ndarray) -> np.ndarray:
        psi, x, y = qdt0
        return jnp.hstack([jnp.zeros((2,)), psi, x, y, jnp.zeros((1,))])


class FreeMobilizer(CustomMobilizer):

    nj = 6

    @staticmethod
    def pose_polynomials(qdt0: np.ndarray) -> np.ndarray:
        return qdt0


def construct_custom_mobilizer(
    cls_name: str,
    pose_polynomials: Callable[[np.ndarray], np.ndarray],
    nj: int,
) -> CustomMobilizer:
    """Build a mobilizer out of arbitrary jax-traceable pose polynomials.

    Parameters
    ----------
    cls_name : str
        Name prefix of the generated mobilizer class.
    pose_polynomials : Callable[[np.ndarray], np.ndarray]
        Function mapping the (nj,) joint coordinates to the (6,) pose vector.
    nj : int
        Number of joint coordinates.

    Returns
    -------
    CustomMobilizer
        An instance of the generated mobilizer class.
    """
    mobilizer = type(
        f"{cls_name}Mobilizer",
        (CustomMobilizer,),
        {"nj": nj, "pose_polynomials": staticmethod(pose_polynomials)},
    )
    return mobilizer()
