import dataclasses
import logging

import numpy as np
import pytest

from abadyn import AppliedForces, Inertial, JointType, Model, Pose, UnitInertia
from abadyn.numpy import KinDynComputations

CUBE_LENGTH = 3.0


@dataclasses.dataclass
class State:
    q: np.ndarray
    v: np.ndarray
    forces: AppliedForces


@dataclasses.dataclass
class RobotCfg:
    robot_name: str
    model: Model
    kin_dyn: KinDynComputations
    states: list


def cube_inertial(mass: float, length: float = CUBE_LENGTH) -> Inertial:
    """Solid cube whose center of mass lies half a side along x of the body frame"""
    return Inertial(
        mass=mass,
        unit_inertia=UnitInertia.solid_cube(length),
        origin=Pose.build([length / 2, 0.0, 0.0], [0.0, 0.0, 0.0]),
    )


def box_inertial(mass: float, size, com, rpy=(0.0, 0.0, 0.0)) -> Inertial:
    return Inertial(
        mass=mass,
        unit_inertia=UnitInertia.solid_box(*size),
        origin=Pose.build(com, rpy),
    )


def build_serial_arm() -> Model:
    """A 7 dof arm with alternating joint axes, similar to a collaborative manipulator"""
    masses = [4.0, 4.0, 3.0, 2.7, 1.7, 1.8, 0.3]
    axes = [[0, 0, 1], [0, 1, 0], [0, 0, 1], [0, -1, 0], [0, 0, 1], [0, 1, 0], [0, 0, 1]]
    model = Model("serial_arm")
    parent = "world"
    for i, (mass, axis) in enumerate(zip(masses, axes)):
        body = f"link_{i + 1}"
        model.add_body(
            body,
            box_inertial(mass, (0.12, 0.12, 0.3), [0.0, 0.01 * i, 0.12], [0.1 * i, 0.0, 0.05]),
        )
        origin = Pose.build([0.0, 0.0, 0.34 if i == 0 else 0.2], [0.0, 0.0, 0.0])
        model.add_joint(f"joint_{i + 1}", parent, body, JointType.REVOLUTE, axis, origin)
        parent = body
    model.add_body("flange", box_inertial(0.2, (0.08, 0.08, 0.02), [0.0, 0.0, 0.01]))
    model.add_joint("flange_weld", parent, "flange", JointType.WELD, origin=Pose.build([0, 0, 0.126], [0, 0, 0]))
    model.add_frame("tool", "flange", Pose.build([0.0, 0.0, 0.1], [0.0, np.pi / 2, 0.0]))
    return model.finalize()


def build_floating_arm() -> Model:
    """A floating base carrying a 3 dof arm and a welded payload"""
    model = Model("floating_arm")
    model.add_body("base", box_inertial(10.0, (0.5, 0.3, 0.2), [0.02, 0.0, 0.0]))
    model.add_joint("base_free", "world", "base", JointType.FLOATING)
    model.add_body("payload", box_inertial(1.5, (0.1, 0.1, 0.1), [0.0, 0.0, 0.05]))
    model.add_joint(
        "payload_weld", "base", "payload", "weld", origin=Pose.build([-0.2, 0.0, 0.1], [0, 0, 0.3])
    )
    parent = "base"
    for i, axis in enumerate([[0, 0, 1], [0, 1, 0], [1, 0, 0]]):
        body = f"arm_{i + 1}"
        model.add_body(body, box_inertial(2.0 - 0.5 * i, (0.08, 0.08, 0.25), [0.0, 0.0, 0.12]))
        model.add_joint(
            f"arm_joint_{i + 1}",
            parent,
            body,
            "revolute",
            axis,
            Pose.build([0.2 if i == 0 else 0.0, 0.0, 0.1 if i == 0 else 0.25], [0.0, 0.0, 0.0]),
        )
        parent = body
    return model.finalize()


def build_branched_tree() -> Model:
    """A torso with two branches, one of which ends with a prismatic joint"""
    model = Model("branched_tree")
    model.add_body("torso", box_inertial(8.0, (0.3, 0.4, 0.5), [0.0, 0.0, 0.25]))
    model.add_joint("waist", "world", "torso", "revolute", [0, 0, 1], Pose.build([0, 0, 0.8], [0, 0, 0]))
    for side, sign in (("left", 1.0), ("right", -1.0)):
        model.add_body(f"{side}_upper", box_inertial(2.0, (0.1, 0.1, 0.3), [0.0, 0.0, -0.15]))
        model.add_joint(
            f"{side}_shoulder",
            "torso",
            f"{side}_upper",
            "revolute",
            [0, 1, 0],
            Pose.build([0.0, sign * 0.25, 0.45], [sign * 0.2, 0.0, 0.0]),
        )
        model.add_body(f"{side}_lower", box_inertial(1.2, (0.08, 0.08, 0.3), [0.0, 0.0, -0.15]))
        model.add_joint(
            f"{side}_elbow",
            f"{side}_upper",
            f"{side}_lower",
            "revolute",
            [0, 1, 0],
            Pose.build([0.0, 0.0, -0.3], [0.0, 0.0, 0.0]),
        )
    model.add_body("slider", box_inertial(0.8, (0.05, 0.05, 0.2), [0.0, 0.0, -0.05]))
    model.add_joint(
        "telescope",
        "right_lower",
        "slider",
        "prismatic",
        [0, 0, -1],
        Pose.build([0.0, 0.0, -0.3], [0.0, 0.1, 0.0]),
    )
    model.add_frame("right_hand", "slider", Pose.build([0, 0, -0.1], [0, 0, 0]))
    return model.finalize()


MODEL_BUILDERS = {
    "serial_arm": build_serial_arm,
    "floating_arm": build_floating_arm,
    "branched_tree": build_branched_tree,
}


def random_positions(model: Model, rng: np.random.Generator) -> np.ndarray:
    q = np.zeros(model.nq)
    for joint in model.joints.values():
        if joint.type == JointType.FLOATING:
            quat = rng.normal(size=4)
            q[joint.position_slice] = np.concatenate(
                [rng.uniform(-1.0, 1.0, size=3), quat / np.linalg.norm(quat)]
            )
        elif joint.type == JointType.REVOLUTE:
            q[joint.position_slice] = rng.uniform(-np.pi, np.pi)
        elif joint.type == JointType.PRISMATIC:
            q[joint.position_slice] = rng.uniform(-0.3, 0.3)
    return q


def symmetric_positions(model: Model, value: float) -> np.ndarray:
    q = np.full(model.nq, value)
    for joint in model.joints.values():
        if joint.type == JointType.FLOATING:
            q[joint.position_slice] = [value, value, value, 0.5, 0.5, 0.5, 0.5]
    return q


def build_states(model: Model, rng: np.random.Generator) -> list:
    """Five configurations: at rest, static non-zero, and three moving ones"""
    zero = np.zeros(model.nv)
    default_q = np.zeros(model.nq)
    for joint in model.joints.values():
        default_q[joint.position_slice] = joint.default_positions()
    last_body = list(model.bodies)[-1]
    return [
        State(q=default_q, v=zero, forces=AppliedForces()),
        State(q=symmetric_positions(model, 0.5), v=zero, forces=AppliedForces()),
        State(
            q=random_positions(model, rng),
            v=rng.uniform(-1.0, 1.0, size=model.nv),
            forces=AppliedForces(generalized_forces=rng.uniform(-5.0, 5.0, size=model.nv)),
        ),
        State(
            q=random_positions(model, rng),
            v=np.full(model.nv, 0.7),
            forces=AppliedForces(
                generalized_forces=np.full(model.nv, 1.5),
                body_wrenches={last_body: np.array([1.0, -2.0, 3.0, 0.1, 0.2, -0.3])},
            ),
        ),
        State(
            q=random_positions(model, rng),
            v=rng.uniform(-3.0, 3.0, size=model.nv),
            forces=AppliedForces(
                generalized_forces=rng.uniform(-1.0, 1.0, size=model.nv),
                gravity=np.array([0.5, -1.0, -3.7]),
            ),
        ),
    ]


@pytest.fixture(scope="module", params=list(MODEL_BUILDERS), ids=str)
def tests_setup(request) -> RobotCfg:
    robot_name = request.param
    rng = np.random.default_rng(42)

    logging.basicConfig(level=logging.DEBUG)
    logging.debug(f"Building the {robot_name} model.")

    model = MODEL_BUILDERS[robot_name]()
    kin_dyn = KinDynComputations(model)
    return RobotCfg(
        robot_name=robot_name,
        model=model,
        kin_dyn=kin_dyn,
        states=build_states(model, rng),
    )
