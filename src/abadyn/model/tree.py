import collections
import dataclasses
from typing import Dict, Iterable, List, Tuple, Union

from abadyn.core.errors import ModelError
from abadyn.model.abc_factories import Body, Joint


@dataclasses.dataclass
class Node:
    """The node class"""

    name: str
    body: Body
    arcs: List[Joint]
    children: List["Node"]
    parent: Union[Body, None] = None
    parent_arc: Union[Joint, None] = None

    def __hash__(self) -> int:
        return hash(self.name)

    def get_elements(self) -> Tuple[Body, Joint, Body]:
        """returns the node with its parent arc and parent body

        Returns:
            Tuple[Body, Joint, Body]: the node, the parent_arc, the parent_body
        """
        return self.body, self.parent_arc, self.parent


@dataclasses.dataclass
class Tree(Iterable):
    """The directed tree class. Nodes are ordered breadth-first from the root"""

    graph: Dict[str, Node]
    root: str

    def __post_init__(self):
        self.ordered_nodes_list = self.get_ordered_nodes_list(self.root)
        unreachable = [name for name in self.graph if name not in self.ordered_nodes_list]
        if unreachable:
            raise ModelError(
                f"The bodies {unreachable} are not connected to {self.root}. "
                "Every body needs a chain of joints to the root and the joints cannot form a loop"
            )

    @staticmethod
    def build_tree(bodies: List[Body], joints: List[Joint], root: str) -> "Tree":
        """builds the tree from the connectivity of the elements

        Args:
            bodies (List[Body])
            joints (List[Joint])
            root (str): the root body name

        Returns:
            Tree: the directed tree
        """
        nodes: Dict[str, Node] = {
            b.name: Node(name=b.name, body=b, arcs=[], children=[], parent=None, parent_arc=None)
            for b in bodies
        }

        for joint in joints:
            for end in (joint.parent, joint.child):
                if end not in nodes:
                    raise ModelError(f"Joint {joint.name} references the unknown body {end}")
            if joint.parent == joint.child:
                raise ModelError(f"Joint {joint.name} connects {joint.parent} to itself")
            if joint.child == root:
                raise ModelError(f"Joint {joint.name} uses {root} as a child body")
            child = nodes[joint.child]
            if child.parent_arc is not None:
                raise ModelError(
                    f"Body {joint.child} has more than one parent joint: "
                    f"{child.parent_arc.name} and {joint.name}"
                )
            nodes[joint.parent].children.append(child)
            nodes[joint.parent].arcs.append(joint)
            child.parent = nodes[joint.parent].body
            child.parent_arc = joint

        return Tree(nodes, root)

    def get_ordered_nodes_list(self, start: str) -> List[str]:
        """get the breadth-first list of the nodes, given the connectivity

        Args:
            start (str): the start node

        Returns:
            List[str]: the ordered list, parents always precede their children
        """
        ordered_list = []
        queue = collections.deque([self.graph[start]])
        while queue:
            node = queue.popleft()
            ordered_list.append(node.name)
            queue.extend(node.children)
        return ordered_list

    def get_idx_from_name(self, name: str) -> int:
        """
        Args:
            name (str): node name

        Returns:
            int: the index of the node in the ordered list
        """
        return self.ordered_nodes_list.index(name)

    def __iter__(self) -> Node:
        """This method allows to iterate on the model
        Returns:
            Node: the node istance

        Yields:
            Iterator[Node]: the list of the nodes
        """
        yield from [self.graph[name] for name in self.ordered_nodes_list]

    def __len__(self) -> int:
        """
        Returns:
            int: the number of nodes, root included
        """
        return len(self.ordered_nodes_list)
