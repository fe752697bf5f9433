import logging
from typing import Dict, List, NamedTuple, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

from uraeus.kinematic.bodies import RigidBody, RigidBodyData
from uraeus.kinematic.graphs import Tree, construct_traversal_order
from uraeus.kinematic.joints import (
    AbstractJoint,
    FunctionalJoint,
    JointConfigInputs,
    JointInstance,
    construct_functional_joint,
    construct_joint_instance,
    initialize_joint,
)
from uraeus.kinematic.spatial_algebra import Pose

logger = logging.getLogger(__name__)


class FrameConfigInputs(BaseModel):
    """Pose of a frame fixed on a body, expressed in the body's coordinates."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    location: np.ndarray = np.zeros((3,))
    orientation: np.ndarray = np.eye(3)

    @field_validator("location", mode="before")
    @classmethod
    def as_cartesian_vector(cls, v):
        v = np.asarray(v, dtype=np.float64)
        if v.shape != (3,):
            raise ValueError(f"expected a (3,) cartesian vector, got shape {v.shape}")
        return v

    @field_validator("orientation", mode="before")
    @classmethod
    def as_rotation_matrix(cls, v):
        v = np.asarray(v, dtype=np.float64)
        if v.shape != (3, 3):
            raise ValueError(f"expected a (3, 3) rotation matrix, got shape {v.shape}")
        if not np.allclose(v.T @ v, np.eye(3)):
            raise ValueError("orientation matrix is not orthonormal")
        return v


class FrameData(NamedTuple):
    name: str
    body_index: int
    X_BF: Pose


class MultiBodyTree(object):
    name: str
    tree: Tree
    bodies: Dict[str, RigidBody]
    joints: Dict[str, JointInstance]
    frames: Dict[str, Tuple[str, FrameConfigInputs]]

    def __init__(self, name: str):
        self.name = name
        self.tree = Tree(self.name, root="ground")

        self.bodies = {"ground": RigidBody("ground", RigidBodyData())}
        self.joints = {}
        self.frames = {"ground": ("ground", FrameConfigInputs())}

    @property
    def dof(self) -> int:
        return sum(j.joint_type.nj for j in self.joints.values())

    def add_joint(
        self,
        joint_name: str,
        predecessor: str,
        successor: str,
        succ_data: RigidBodyData,
        joint_type: AbstractJoint,
        joint_data: JointConfigInputs,
    ) -> None:
        if self.check_if_joint_exists(joint_name):
            raise ValueError(f"Joint '{joint_name}' already exists!")

        if self.check_if_frame_exists(successor):
            raise ValueError(f"Frame '{successor}' already exists!")

        if not self.tree.check_if_node_exists(predecessor):
            raise ValueError(f"Body '{predecessor}' is not in '{self.name}'!")

        pred_body = self.get_body(predecessor)
        succ_body = RigidBody(successor, succ_data)

        joint_frames = initialize_joint(
            joint_data.pos,
            joint_data.z_axis,
            joint_data.x_axis,
            pred_body.X_GB,
            succ_body.X_GB,
        )

        joint = construct_joint_instance(
            joint_type=joint_type,
            name=joint_name,
            predecessor=pred_body,
            successor=succ_body,
            joint_frames=joint_frames,
        )

        self.tree.add_edge(predecessor, successor)
        self.bodies[successor] = succ_body
        self.joints[joint_name] = joint
        self.frames[successor] = (successor, FrameConfigInputs())

        logger.debug(
            "Added joint '%s' (%d dof) between '%s' and '%s' to '%s'",
            joint_name,
            joint_type.nj,
            predecessor,
            successor,
            self.name,
        )
        return

    def add_frame(
        self,
        frame_name: str,
        body: str,
        frame_config: FrameConfigInputs = None,
    ) -> None:
        if self.check_if_frame_exists(frame_name):
            raise ValueError(f"Frame '{frame_name}' already exists!")

        if body not in self.bodies:
            raise ValueError(f"Body '{body}' is not in '{self.name}'!")

        frame_config = FrameConfigInputs() if frame_config is None else frame_config
        self.frames[frame_name] = (body, frame_config)
        logger.debug("Added frame '%s' on body '%s'", frame_name, body)

    def get_body(self, name: str) -> RigidBody:
        return self.bodies[name]

    def construct_coordinates_names(self) -> List[str]:
        names = []
        for joint in self.joints.values():
            names += joint.joint_data.state_names.pos_states
        return names

    def check_if_joint_exists(self, joint_name: str) -> bool:
        return joint_name in self.joints

    def check_if_frame_exists(self, frame_name: str) -> bool:
        return frame_name in self.frames


class MultiBodyData(NamedTuple):
    name: str
    joints: Tuple[FunctionalJoint, ...]
    forward_traversal: Tuple[Tuple[int, int, int], ...]
    qdt0_idx: Tuple[int, ...]
    frames: Tuple[FrameData, ...]
    coordinates_names: Tuple[str, ...]


def construct_frames_data(topology: MultiBodyTree) -> Tuple[FrameData, ...]:
    bodies_indices = {b: i for i, b in enumerate(topology.tree.nodes)}
    frames = tuple(
        FrameData(name, bodies_indices[body], Pose(cfg.orientation, cfg.location))
        for name, (body, cfg) in topology.frames.items()
    )
    return frames


def construct_multibodydata(topology: MultiBodyTree) -> MultiBodyData:
    func_joints = tuple(map(construct_functional_joint, topology.joints.values()))
    forward_traversal = construct_traversal_order(topology.tree)
    qdt0_idx = [0] + list(np.cumsum([j.nj for j in func_joints]))

    data = MultiBodyData(
        name=topology.name,
        joints=func_joints,
        forward_traversal=forward_traversal,
        qdt0_idx=tuple(int(i) for i in qdt0_idx),
        frames=construct_frames_data(topology),
        coordinates_names=tuple(topology.construct_coordinates_names()),
    )

    return data
