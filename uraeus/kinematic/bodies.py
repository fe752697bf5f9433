from typing import NamedTuple

import numpy as np

from uraeus.kinematic.spatial_algebra import Pose


class RigidBodyData(NamedTuple):

    location: np.ndarray = np.array([0.0, 0.0, 0.0])
    orientation: np.ndarray = np.eye(3)


class RigidBody(object):

    body_data: RigidBodyData
    X_GB: Pose

    def __init__(self, name: str, body_data: RigidBodyData):

        self.name = name
        self.body_data = body_data
        self.X_GB = get_reference_pose(body_data.location, body_data.orientation)


def get_reference_pose(location: np.ndarray, orientation: np.ndarray) -> Pose:
    location = np.asarray(location, dtype=np.float64)
    orientation = np.asarray(orientation, dtype=np.float64)

    if location.shape != (3,):
        raise ValueError(f"Body location should be a (3,) vector, got {location.shape}")
    if orientation.shape != (3, 3):
        raise ValueError(
            f"Body orientation should be a (3, 3) matrix, got {orientation.shape}"
        )
    if not np.allclose(orientation.T @ orientation, np.eye(3)):
        raise ValueError("Body orientation matrix is not orthonormal")

    return Pose(orientation, location)
