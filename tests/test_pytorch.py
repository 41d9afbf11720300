import numpy as np
import pytest
import torch
from conftest import RobotCfg, cube_inertial

from abadyn import AppliedForces, JointType, Model, SingularConfigurationError
from abadyn.pytorch import KinDynComputations


def to_numpy(x: torch.Tensor) -> np.ndarray:
    return x.detach().cpu().numpy()


@pytest.fixture(scope="module")
def setup_test(tests_setup: RobotCfg):
    return KinDynComputations(tests_setup.model), tests_setup


def torch_context(kin_dyn: KinDynComputations, q, v):
    context = kin_dyn.create_default_context()
    context.set_positions(torch.as_tensor(q, dtype=torch.float64))
    context.set_velocities(torch.as_tensor(v, dtype=torch.float64))
    return context


def test_forward_dynamics_matches_numpy(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    for state in robot_cfg.states:
        np_context = robot_cfg.kin_dyn.create_default_context()
        np_context.set_positions(state.q)
        np_context.set_velocities(state.v)
        vdot_np = robot_cfg.kin_dyn.forward_dynamics(np_context, state.forces)

        context = torch_context(torch_kin_dyn, state.q, state.v)
        vdot = torch_kin_dyn.forward_dynamics(context, state.forces)
        assert isinstance(vdot, torch.Tensor)
        assert vdot.dtype == torch.float64
        assert to_numpy(vdot) == pytest.approx(vdot_np, rel=1e-10, abs=1e-10)


def test_inverse_dynamics_of_forward_dynamics(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    state = robot_cfg.states[3]
    context = torch_context(torch_kin_dyn, state.q, state.v)
    vdot = torch_kin_dyn.forward_dynamics(context, state.forces)
    residual = torch_kin_dyn.inverse_dynamics(context, vdot, state.forces)
    assert to_numpy(residual) == pytest.approx(0.0, abs=1e-8)


def test_mass_matrix_matches_numpy(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    state = robot_cfg.states[2]
    np_context = robot_cfg.kin_dyn.create_default_context()
    np_context.set_positions(state.q)
    context = torch_context(torch_kin_dyn, state.q, state.v)
    M = torch_kin_dyn.mass_matrix(context)
    assert isinstance(M, torch.Tensor)
    assert to_numpy(M) == pytest.approx(robot_cfg.kin_dyn.mass_matrix(np_context), abs=1e-10)


def test_acceleration_gradient_wrt_torque_is_inverse_mass_matrix(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    state = robot_cfg.states[2]
    context = torch_context(torch_kin_dyn, state.q, state.v)
    tau = torch.zeros(robot_cfg.model.nv, dtype=torch.float64)

    def vdot_of_tau(tau):
        return torch_kin_dyn.forward_dynamics(context, AppliedForces(generalized_forces=tau))

    jacobian = torch.autograd.functional.jacobian(vdot_of_tau, tau)
    M = to_numpy(torch_kin_dyn.mass_matrix(context))
    assert to_numpy(jacobian) == pytest.approx(np.linalg.inv(M), rel=1e-8, abs=1e-8)


def test_acceleration_gradient_wrt_positions(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    if robot_cfg.model.nq != robot_cfg.model.nv:
        pytest.skip("finite differences on q need q_dot = v")
    state = robot_cfg.states[4]

    def vdot_of_q(q):
        context = torch_context(torch_kin_dyn, q, state.v)
        return torch_kin_dyn.forward_dynamics(context, state.forces)

    q = torch.as_tensor(state.q, dtype=torch.float64)
    jacobian = to_numpy(torch.autograd.functional.jacobian(vdot_of_q, q))

    h = 1e-6
    finite_differences = np.zeros_like(jacobian)
    for i in range(robot_cfg.model.nq):
        dq = np.zeros(robot_cfg.model.nq)
        dq[i] = h
        plus = to_numpy(vdot_of_q(torch.as_tensor(state.q + dq)))
        minus = to_numpy(vdot_of_q(torch.as_tensor(state.q - dq)))
        finite_differences[:, i] = (plus - minus) / (2 * h)
    assert jacobian == pytest.approx(finite_differences, rel=1e-5, abs=1e-5)


def test_backward_through_forward_dynamics(setup_test):
    torch_kin_dyn, robot_cfg = setup_test
    state = robot_cfg.states[3]
    q = torch.as_tensor(state.q, dtype=torch.float64).requires_grad_()
    v = torch.as_tensor(state.v, dtype=torch.float64).requires_grad_()
    context = torch_kin_dyn.create_default_context()
    context.set_positions(q)
    context.set_velocities(v)
    vdot = torch_kin_dyn.forward_dynamics(context, state.forces)
    vdot.pow(2).sum().backward()
    for t in (q, v):
        assert t.grad is not None
        assert torch.isfinite(t.grad).all()


def test_singular_configuration():
    model = Model("massless_slider")
    model.add_body("slider", cube_inertial(0.0))
    model.add_joint("rail", "world", "slider", JointType.PRISMATIC, [0, 0, 1])
    kin_dyn = KinDynComputations(model.finalize())
    with pytest.raises(SingularConfigurationError) as excinfo:
        kin_dyn.forward_dynamics(kin_dyn.create_default_context())
    assert excinfo.value.node_index == 1
