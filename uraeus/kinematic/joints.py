from typing import Callable, List, NamedTuple, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

from uraeus.kinematic.spatial_algebra import (
    Pose,
    compose_poses,
    invert_pose,
    triad,
)
from uraeus.kinematic.mobilizers import (
    AbstractMobilizer,
    FreeMobilizer,
    RevoluteMobilizer,
    TranslationalMobilizer,
    PlanarMobilizer,
    construct_custom_mobilizer,
)
from uraeus.kinematic.bodies import RigidBody


class JointFrames(NamedTuple):
    X_PF: Pose
    X_SM: Pose


class StatesNames(NamedTuple):
    pos_states: List[str]
    vel_states: List[str]


class JointConfigInputs(BaseModel):
    """Joint location and axes, expressed in the ground frame at the
    reference (zero) configuration of the system.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    pos: np.ndarray
    z_axis: np.ndarray
    x_axis: Optional[np.ndarray] = None

    @field_validator("pos", "z_axis", "x_axis", mode="before")
    @classmethod
    def as_cartesian_vector(cls, v):
        if v is None:
            return v
        v = np.asarray(v, dtype=np.float64)
        if v.shape != (3,):
            raise ValueError(f"expected a (3,) cartesian vector, got shape {v.shape}")
        return v


class JointData(NamedTuple):
    name: str
    predecessor: RigidBody
    successor: RigidBody
    frames: JointFrames
    state_names: StatesNames


def construct_state_names(name: str, coordinates_names: List[str]) -> StatesNames:
    pos_states = [f"{name}_{coordinate}_dt0" for coordinate in coordinates_names]
    vel_states = [f"{name}_{coordinate}_dt1" for coordinate in coordinates_names]
    state_names = StatesNames(pos_states, vel_states)
    return state_names


class AbstractJoint(NamedTuple):
    nj: int
    mobilizer: AbstractMobilizer
    coordinates_names: List[str]


class JointInstance(NamedTuple):
    joint_data: JointData
    joint_type: AbstractJoint


RevoluteJoint = AbstractJoint(
    nj=1,
    mobilizer=RevoluteMobilizer(),
    coordinates_names=["psi"],
)


TranslationalJoint = AbstractJoint(
    nj=1,
    mobilizer=TranslationalMobilizer(),
    coordinates_names=["z"],
)


PlanarJoint = AbstractJoint(
    nj=3,
    mobilizer=PlanarMobilizer(),
    coordinates_names=["psi", "x", "y"],
)


FreeJoint = AbstractJoint(
    nj=6,
    mobilizer=FreeMobilizer(),
    coordinates_names=["phi", "theta", "psi", "x", "y", "z"],
)


class FunctionalJoint(NamedTuple):
    nj: int
    mobilizer: AbstractMobilizer
    frames: JointFrames

    def evaluate_pose(self, qdt0: np.ndarray) -> Pose:
        """Pose `X_PS` of the successor body in the predecessor body."""
        X_PF, X_SM = self.frames
        X_FM = self.mobilizer.X_FM(qdt0)
        X_PS = compose_poses(compose_poses(X_PF, X_FM), invert_pose(X_SM))
        return X_PS


def construct_functional_joint(joint: JointInstance) -> FunctionalJoint:
    joint = FunctionalJoint(
        joint.joint_type.nj,
        joint.joint_type.mobilizer,
        joint.joint_data.frames,
    )
    return joint


def construct_joint_instance(
    joint_type: AbstractJoint,
    name: str,
    predecessor: RigidBody,
    successor: RigidBody,
    joint_frames: JointFrames,
) -> JointInstance:
    state_names = construct_state_names(name, joint_type.coordinates_names)
    joint_data = JointData(name, predecessor, successor, joint_frames, state_names)
    joint_instance = JointInstance(joint_data, joint_type)
    return joint_instance


def construct_custom_joint(
    cls_name: str,
    pose_polynomials: Callable[[np.ndarray], np.ndarray],
    nj: int,
    coordinates_names: List[str],
) -> AbstractJoint:
    if len(coordinates_names) != nj:
        raise ValueError(
            f"Joint '{cls_name}' has {nj} coordinates, "
            f"but {len(coordinates_names)} names were given!"
        )
    mobilizer = construct_custom_mobilizer(cls_name, pose_polynomials, nj)
    joint = AbstractJoint(nj, mobilizer, coordinates_names)
    return joint


def initialize_joint(
    location: np.ndarray,
    z_axis: np.ndarray,
    x_axis: Optional[np.ndarray],
    X_GP: Pose,
    X_GS: Pose,
) -> JointFrames:
    R_GJ = triad(z_axis, x_axis)
    X_GJ = Pose(R_GJ, location)

    X_PF = compose_poses(invert_pose(X_GP), X_GJ)
    X_SM = compose_poses(invert_pose(X_GS), X_GJ)

    return JointFrames(X_PF, X_SM)
