from .abc_factories import Body, Frame, Inertial, Joint, Pose, UnitInertia
from .model import Model
from .std_factories import StdBody, StdJoint
from .tree import Node, Tree
