from typing import Tuple

import numpy as np

from uraeus.kinematic.joints import FunctionalJoint
from uraeus.kinematic.spatial_algebra import Pose, compose_poses, identity_pose
from uraeus.kinematic.graphs import accumulate_root_to_leaf


def split_coordinates(idx: Tuple[int, ...], qdt0: np.ndarray) -> Tuple[np.ndarray, ...]:
    coordinates = tuple(qdt0[i:j] for (i, j) in zip(idx[:-1], idx[1:]))
    return coordinates


def eval_joints_poses(
    joints: Tuple[FunctionalJoint, ...], coordinates: Tuple[np.ndarray, ...]
) -> Tuple[Pose, ...]:
    return tuple(j.evaluate_pose(qdt0) for j, qdt0 in zip(joints, coordinates))


def evaluate_successor_pose(predecessor_X_GB: Pose, joint_X_PS: Pose) -> Pose:
    return compose_poses(predecessor_X_GB, joint_X_PS)


root_to_leaf = accumulate_root_to_leaf(identity_pose(), evaluate_successor_pose)


def base_to_tip(
    joints: Tuple[FunctionalJoint, ...],
    joints_coordinates: Tuple[np.ndarray, ...],
    traversal_order: Tuple[Tuple[int, int, int], ...],
) -> Tuple[Pose, ...]:
    """Evaluate the pose of every body in the ground frame, ordered as the
    nodes of the topology tree, i.e. ground first.
    """
    joints_poses = eval_joints_poses(joints, joints_coordinates)
    bodies_poses = root_to_leaf(joints_poses, traversal_order)
    return tuple(bodies_poses)
