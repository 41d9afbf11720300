import dataclasses
import logging
from typing import Dict, List, Union

import numpy.typing as npt

from abadyn.core.constants import DEFAULT_TOLERANCES, WORLD_BODY_NAME, JointType, Tolerances
from abadyn.core.errors import ModelError
from abadyn.core.validity import check_unit_vector
from abadyn.model.abc_factories import Body, Frame, Inertial, Joint, Pose
from abadyn.model.std_factories import StdBody, StdJoint
from abadyn.model.tree import Tree

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Model:
    """
    Model class. It describes the mechanism using bodies, joints and frames and their connectivity.

    The model is assembled with add_body, add_joint and add_frame and it becomes immutable
    once finalize is called. The world body is always present, with index 0.
    The unit_vector tolerance of `tolerances` is used to check the joint axes.
    """

    name: str
    bodies: Dict[str, Body] = dataclasses.field(default_factory=dict)
    joints: Dict[str, Joint] = dataclasses.field(default_factory=dict)
    frames: Dict[str, Frame] = dataclasses.field(default_factory=dict)
    tree: Union[Tree, None] = None
    tolerances: Tolerances = DEFAULT_TOLERANCES

    def __post_init__(self):
        if not self.bodies:
            self.bodies[WORLD_BODY_NAME] = StdBody(WORLD_BODY_NAME, Inertial.zero(), idx=0)

    @property
    def is_finalized(self) -> bool:
        return self.tree is not None

    def _check_not_finalized(self, action: str):
        if self.is_finalized:
            raise ModelError(f"Cannot {action}: the model {self.name} is already finalized")

    def _check_new_name(self, name: str, kind: str, registry: Dict):
        if name in registry:
            raise ModelError(f"A {kind} named {name} already exists in the model {self.name}")

    def add_body(self, name: str, inertial: Inertial) -> Body:
        """
        Args:
            name (str): the body name
            inertial (Inertial): mass, unit inertia and center of mass pose of the body

        Returns:
            Body: the new body. Its index is the insertion order, the world being 0
        """
        self._check_not_finalized(f"add the body {name}")
        self._check_new_name(name, "body", self.bodies)
        body = StdBody(name, inertial, idx=len(self.bodies))
        self.bodies[name] = body
        return body

    def add_joint(
        self,
        name: str,
        parent: str,
        child: str,
        type: Union[JointType, str],
        axis: npt.ArrayLike = None,
        origin: Pose = None,
    ) -> Joint:
        """
        Args:
            name (str): the joint name
            parent (str): the parent body
            child (str): the child body
            type (Union[JointType, str]): weld, revolute, prismatic or floating
            axis (npt.ArrayLike, optional): unit axis of revolute and prismatic joints,
                                            expressed in the joint frame
            origin (Pose, optional): pose of the joint frame in the parent body frame

        Returns:
            Joint: the new joint
        """
        self._check_not_finalized(f"add the joint {name}")
        self._check_new_name(name, "joint", self.joints)
        type = JointType(type)
        if type in (JointType.REVOLUTE, JointType.PRISMATIC):
            if axis is None:
                raise ModelError(f"The {type.value} joint {name} needs an axis")
            check_unit_vector(axis, "add_joint", self.tolerances.unit_vector)
        joint = StdJoint(name, parent, child, type, axis=axis, origin=origin, idx=len(self.joints))
        self.joints[name] = joint
        return joint

    def add_frame(self, name: str, body: str, pose: Pose = None) -> Frame:
        """
        Args:
            name (str): the frame name, distinct from every body name
            body (str): the body the frame is attached to
            pose (Pose, optional): pose of the frame in the body frame

        Returns:
            Frame: the new frame
        """
        self._check_not_finalized(f"add the frame {name}")
        self._check_new_name(name, "frame", self.frames)
        self._check_new_name(name, "body", self.bodies)
        frame = Frame(name, body, Pose.zero() if pose is None else pose)
        self.frames[name] = frame
        return frame

    def finalize(self) -> "Model":
        """Builds the tree, assigns the node indices and the offsets of each joint in q and v.

        Returns:
            Model: the model itself
        """
        self._check_not_finalized("finalize")
        for frame in self.frames.values():
            if frame.body not in self.bodies:
                raise ModelError(f"Frame {frame.name} references the unknown body {frame.body}")
        tree = Tree.build_tree(
            bodies=list(self.bodies.values()),
            joints=list(self.joints.values()),
            root=WORLD_BODY_NAME,
        )
        position_start, velocity_start = 0, 0
        for node_idx, node in enumerate(tree):
            node.body.node_idx = node_idx
            joint = node.parent_arc
            if joint is None:
                continue
            joint.position_start = position_start
            joint.velocity_start = velocity_start
            position_start += joint.num_positions
            velocity_start += joint.num_velocities
        self.tree = tree
        logger.debug(
            f"Finalized model {self.name}: {self.num_bodies} bodies, nq = {self.nq}, nv = {self.nv}"
        )
        return self

    @property
    def nq(self) -> int:
        return sum(joint.num_positions for joint in self.joints.values())

    @property
    def nv(self) -> int:
        return sum(joint.num_velocities for joint in self.joints.values())

    @property
    def num_bodies(self) -> int:
        """number of bodies, world included"""
        return len(self.bodies)

    @property
    def actuated_joints(self) -> List[str]:
        """the joints with at least one degree of freedom, in tree order"""
        self._check_finalized()
        return [
            node.parent_arc.name
            for node in self.tree
            if node.parent_arc is not None and node.parent_arc.num_velocities > 0
        ]

    def _check_finalized(self):
        if not self.is_finalized:
            raise ModelError(f"The model {self.name} is not finalized")

    def get_body(self, name: str) -> Body:
        if name not in self.bodies:
            raise ValueError(f"{name} is not a body of the model {self.name}")
        return self.bodies[name]

    def get_joint(self, name: str) -> Joint:
        if name not in self.joints:
            raise ValueError(f"{name} is not a joint of the model {self.name}")
        return self.joints[name]

    def get_frame(self, name: str) -> Frame:
        """
        Args:
            name (str): a frame or a body name

        Returns:
            Frame: the frame. A body name gives the body frame itself
        """
        if name in self.frames:
            return self.frames[name]
        if name in self.bodies:
            return Frame(name, name, Pose.zero())
        raise ValueError(f"{name} is not a frame of the model {self.name}")

    def get_total_mass(self) -> float:
        """total mass of the mechanism

        Returns:
            float: the total mass
        """
        return sum(body.inertial.mass for body in self.bodies.values())

    def print_table(self):
        """print the table that describes the connectivity between the elements"""
        from rich.console import Console
        from rich.table import Table

        self._check_finalized()
        console = Console()

        table = Table(show_header=True, header_style="bold red")
        table.add_column("Node")
        table.add_column("Parent Body")
        table.add_column("Joint name")
        table.add_column("Child Body")
        table.add_column("Type")
        table.add_column("q")
        table.add_column("v")

        for node in self.tree:
            joint = node.parent_arc
            if joint is None:
                continue
            table.add_row(
                str(node.body.node_idx),
                joint.parent,
                joint.name,
                joint.child,
                joint.type.value,
                f"{joint.position_slice.start}:{joint.position_slice.stop}",
                f"{joint.velocity_slice.start}:{joint.velocity_slice.stop}",
            )

        console.print(table)
