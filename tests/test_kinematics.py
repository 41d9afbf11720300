import numpy as np
import pytest
from conftest import build_branched_tree, cube_inertial

from abadyn import JointType, Model, Pose, Representations
from abadyn.numpy import KinDynComputations

L1, L2 = 0.7, 0.4


def Rz(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def planar_arm() -> KinDynComputations:
    model = Model("planar_arm")
    model.add_body("link_1", cube_inertial(1.0, L1))
    model.add_body("link_2", cube_inertial(1.0, L2))
    model.add_joint("shoulder", "world", "link_1", JointType.REVOLUTE, [0, 0, 1])
    model.add_joint(
        "elbow", "link_1", "link_2", JointType.REVOLUTE, [0, 0, 1], Pose.build([L1, 0, 0], [0, 0, 0])
    )
    model.add_frame("tip", "link_2", Pose.build([L2, 0, 0], [0, 0, 0]))
    return KinDynComputations(model.finalize())


def planar_context(kin_dyn, q, v):
    context = kin_dyn.create_default_context()
    context.set_positions(q)
    context.set_velocities(v)
    return context


def test_default_representation(planar_arm):
    assert planar_arm.rbdalgos.frame_velocity_representation == Representations.MIXED_REPRESENTATION
    with pytest.raises(NotImplementedError):
        planar_arm.set_frame_velocity_representation("inertial")


def test_planar_poses(planar_arm):
    q1, q2 = 0.4, -1.1
    context = planar_context(planar_arm, [q1, q2], [0.0, 0.0])

    H = planar_arm.frame_pose_in_world(context, "tip")
    assert H[:3, :3] == pytest.approx(Rz(q1 + q2))
    assert H[:3, 3] == pytest.approx(
        [L1 * np.cos(q1) + L2 * np.cos(q1 + q2), L1 * np.sin(q1) + L2 * np.sin(q1 + q2), 0.0]
    )

    H_elbow = planar_arm.body_pose_in_world(context, "link_2")
    assert H_elbow[:3, 3] == pytest.approx([L1 * np.cos(q1), L1 * np.sin(q1), 0.0])
    assert planar_arm.frame_pose_in_world(context, "link_2") == pytest.approx(H_elbow)
    assert planar_arm.body_pose_in_world(context, "world") == pytest.approx(np.eye(4))

    link_1_H_tip = planar_arm.relative_pose(context, "link_1", "tip")
    assert link_1_H_tip[:3, :3] == pytest.approx(Rz(q2))
    assert link_1_H_tip[:3, 3] == pytest.approx([L1 + L2 * np.cos(q2), L2 * np.sin(q2), 0.0])
    assert planar_arm.relative_pose(context, "tip", "tip") == pytest.approx(np.eye(4))


def test_planar_velocities(planar_arm):
    q1, q2 = 0.3, 0.8
    w1, w2 = 1.5, -0.6
    context = planar_context(planar_arm, [q1, q2], [w1, w2])
    elbow_velocity = L1 * w1 * np.array([-np.sin(q1), np.cos(q1), 0.0])
    omega = np.array([0.0, 0.0, w1 + w2])

    v_mixed = planar_arm.body_spatial_velocity(context, "link_2")
    assert v_mixed == pytest.approx(np.concatenate([elbow_velocity, omega]))

    planar_arm.set_frame_velocity_representation(Representations.BODY_FIXED_REPRESENTATION)
    v_body = planar_arm.body_spatial_velocity(context, "link_2")
    assert v_body == pytest.approx(np.concatenate([Rz(q1 + q2).T @ elbow_velocity, omega]))


def test_planar_accelerations(planar_arm):
    q1, q2 = -0.5, 1.3
    w1, w2 = 0.9, 2.0
    vdot = np.array([0.4, -1.7])
    context = planar_context(planar_arm, [q1, q2], [w1, w2])
    R = Rz(q1 + q2)
    omega = np.array([0.0, 0.0, w1 + w2])
    alpha = np.array([0.0, 0.0, vdot.sum()])
    elbow_velocity = L1 * w1 * np.array([-np.sin(q1), np.cos(q1), 0.0])
    elbow_acceleration = L1 * vdot[0] * np.array([-np.sin(q1), np.cos(q1), 0.0]) - L1 * w1**2 * np.array(
        [np.cos(q1), np.sin(q1), 0.0]
    )

    a_mixed = planar_arm.body_spatial_acceleration(context, "link_2", vdot)
    assert a_mixed == pytest.approx(np.concatenate([elbow_acceleration, alpha]))

    planar_arm.set_frame_velocity_representation(Representations.BODY_FIXED_REPRESENTATION)
    a_body = planar_arm.body_spatial_acceleration(context, "link_2", vdot)
    v_body = R.T @ elbow_velocity
    # time derivative of the body-fixed twist
    expected_linear = R.T @ elbow_acceleration - np.cross(omega, v_body)
    assert a_body == pytest.approx(np.concatenate([expected_linear, alpha]))


def test_prismatic_translation():
    model = Model("slider")
    model.add_body("carriage", cube_inertial(1.0))
    model.add_joint(
        "rail",
        "world",
        "carriage",
        JointType.PRISMATIC,
        [1, 0, 0],
        Pose.build([0.0, 0.0, 1.0], [0.0, 0.0, np.pi / 2]),
    )
    kin_dyn = KinDynComputations(model.finalize())
    context = planar_context(kin_dyn, [0.25], [2.0])

    H = kin_dyn.body_pose_in_world(context, "carriage")
    assert H[:3, 3] == pytest.approx([0.0, 0.25, 1.0])
    assert H[:3, :3] == pytest.approx(Rz(np.pi / 2))
    assert kin_dyn.body_spatial_velocity(context, "carriage") == pytest.approx([0, 2.0, 0, 0, 0, 0])


def test_floating_body_velocity():
    model = Model("free_body")
    model.add_body("block", cube_inertial(2.0))
    model.add_joint("free", "world", "block", JointType.FLOATING)
    kin_dyn = KinDynComputations(model.finalize())
    angle = 0.6
    quat = [np.cos(angle / 2), 0.0, 0.0, np.sin(angle / 2)]
    twist = np.array([1.0, 0.0, 0.5, 0.0, 0.2, 0.3])
    context = planar_context(kin_dyn, np.concatenate([[1.0, 2.0, 3.0], quat]), twist)

    H = kin_dyn.body_pose_in_world(context, "block")
    assert H[:3, :3] == pytest.approx(Rz(angle))
    assert H[:3, 3] == pytest.approx([1.0, 2.0, 3.0])
    R = Rz(angle)
    v_mixed = kin_dyn.body_spatial_velocity(context, "block")
    assert v_mixed == pytest.approx(np.concatenate([R @ twist[:3], R @ twist[3:]]))

    kin_dyn.set_frame_velocity_representation(Representations.BODY_FIXED_REPRESENTATION)
    assert kin_dyn.body_spatial_velocity(context, "block") == pytest.approx(twist)


def test_mixed_velocity_matches_finite_differences():
    kin_dyn = KinDynComputations(build_branched_tree())
    rng = np.random.default_rng(7)
    q = rng.uniform(-1.0, 1.0, size=kin_dyn.model.nv)
    v = rng.uniform(-1.0, 1.0, size=kin_dyn.model.nv)
    dt = 1e-6
    context = planar_context(kin_dyn, q, v)
    plus = planar_context(kin_dyn, q + v * dt, v)
    minus = planar_context(kin_dyn, q - v * dt, v)

    for body in ("torso", "left_lower", "right_lower", "slider"):
        H = kin_dyn.body_pose_in_world(context, body)
        H_plus = kin_dyn.body_pose_in_world(plus, body)
        H_minus = kin_dyn.body_pose_in_world(minus, body)
        H_dot = (H_plus - H_minus) / (2 * dt)
        omega_skew = H_dot[:3, :3] @ H[:3, :3].T
        expected = np.concatenate(
            [H_dot[:3, 3], [omega_skew[2, 1], omega_skew[0, 2], omega_skew[1, 0]]]
        )
        assert kin_dyn.body_spatial_velocity(context, body) == pytest.approx(expected, abs=1e-6)
