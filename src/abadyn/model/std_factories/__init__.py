from .std_body import StdBody
from .std_joint import StdJoint
