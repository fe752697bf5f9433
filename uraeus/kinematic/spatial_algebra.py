from typing import NamedTuple, Optional

import jax
import numpy as np
import jax.numpy as jnp

jax.config.update("jax_enable_x64", True)


class Pose(NamedTuple):
    """Rigid transform `X_AB` of a frame B relative to a frame A.

    Attributes
    ----------
    R : jnp.ndarray
        (3, 3) rotation matrix, columns are the axes of B expressed in A.
    p : jnp.ndarray
        (3,) position of the origin of B expressed in A.
    """

    R: jnp.ndarray
    p: jnp.ndarray


def identity_pose() -> Pose:
    return Pose(np.eye(3), np.zeros((3,)))


@jax.jit
def rot_x(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta)
    s = jnp.sin(theta)

    mat = jnp.array([[1, 0, 0], [0, c, -s], [0, s, c]])
    return mat


@jax.jit
def rot_y(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta)
    s = jnp.sin(theta)

    mat = jnp.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])
    return mat


@jax.jit
def rot_z(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta)
    s = jnp.sin(theta)

    mat = jnp.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])
    return mat


@jax.jit
def euler_rotation(orientation: jnp.ndarray) -> jnp.ndarray:
    """Rotation matrix of the body-fixed x-y-z Euler angles
    `(phi, theta, psi)`, i.e. `Rz(psi) @ Ry(theta) @ Rx(phi)`.
    """
    phi, theta, psi = orientation
    return rot_z(psi) @ rot_y(theta) @ rot_x(phi)


@jax.jit
def compose_poses(X_AB: Pose, X_BC: Pose) -> Pose:
    R_AC = X_AB.R @ X_BC.R
    p_AC = X_AB.p + X_AB.R @ X_BC.p
    return Pose(R_AC, p_AC)


@jax.jit
def invert_pose(X_AB: Pose) -> Pose:
    R_BA = X_AB.R.T
    return Pose(R_BA, -R_BA @ X_AB.p)


@jax.jit
def transform_points(X_AB: Pose, points_B: jnp.ndarray) -> jnp.ndarray:
    """Express points given in frame B in the coordinates of frame A.

    Parameters
    ----------
    X_AB : Pose
        Pose of frame B in frame A.
    points_B : jnp.ndarray
        A (3,) point or an (n, 3) stack of points, expressed in frame B.

    Returns
    -------
    jnp.ndarray
        The points expressed in frame A, same shape as `points_B`.
    """
    return X_AB.p + points_B @ X_AB.R.T


def orthogonal_vector(v: np.ndarray) -> np.ndarray:
    x, y, z = v

    v1 = np.array([y, -x, 0])
    v2 = np.array([-z, 0, x])

    v3 = (5 * v1) + (9 * v2)

    u = v3 / np.linalg.norm(v3)

    return u


def triad(v1: np.ndarray, v2: Optional[np.ndarray] = None) -> np.ndarray:
    """Construct an orthonormal frame whose z-axis is `v1`.

    When `v2` is given, its component perpendicular to `v1` is used as the
    x-axis direction. Otherwise an arbitrary perpendicular vector is used.
    """
    k = v1 / np.linalg.norm(v1)
    if v2 is not None:
        i = v2 - (v2 @ k) * k
        i = i / np.linalg.norm(i)
    else:
        i = orthogonal_vector(k)

    j = np.cross(k, i)
    j = j / np.linalg.norm(j)

    R = np.vstack([i, j, k]).T

    return R
