# chain_node.py
# The class representing a node in a critical request chain.
# Copyright (C) 2025 Vojtěch Fiala
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with this program.
# If not, see <https://www.gnu.org/licenses/>.
#

from critical_chains.traffic_parser.request_record import RequestRecord

class ChainNode:
    """Class representing each node in the critical request chain"""
    def __init__(self, record: RequestRecord) -> None:
        """Init method for setting up each instance

        Args:
            record: The request represented by this node
        """
        self.record = record

        # Child request id -> ChainNode, in the order the children were attached
        self.children = {}

        # New node has initially no parent
        self.parent = None

    def get_record(self) -> RequestRecord:
        """Method to return the request stored in the node

        Returns:
            RequestRecord: Request represented by this Node
        """
        return self.record

    def get_request_id(self) -> str:
        return self.record.request_id

    def get_resource(self) -> str:
        """Method to return the URL of the request stored in the node

        Returns:
            str: URL assigned to this Node
        """
        return self.record.url

    def get_parent(self) -> "ChainNode":
        """Method to return the parent of the node

        Returns:
            ChainNode: Node this one was attached under, None for roots
        """
        return self.parent

    def get_children(self) -> dict[str, "ChainNode"]:
        """Method to return all direct children of the node

        Returns:
            dict: Request id -> Node of every child directly assigned to this Node
        """
        return self.children

    def add_child(self, child_node: "ChainNode") -> None:
        """Method to add child node to a parent node

        Args:
            child_node: Node to be added as a child of this Node
        """
        # If the child node is already there, do not repeat
        if child_node.get_request_id() in self.children:
            return

        self.children[child_node.get_request_id()] = child_node
        child_node.parent = self

    def get_all_children_nodes(self) -> list["ChainNode"]:
        """Method to return all children nodes of the current node -> even transitive
        Also contains the node itself

        Returns:
            list: All nodes even transitively associated as children of this Node
        """
        children = [self]

        for child in self.children.values():
            # Add the transitive children (children of children...)
            children.extend(child.get_all_children_nodes())

        return children

    def get_depth(self) -> int:
        """Method to return how many ancestors the node has"""
        depth = 0
        node = self.get_parent()
        while node is not None:
            depth += 1
            node = node.get_parent()
        return depth

    def __repr__(self) -> str:
        return f"ChainNode({self.get_request_id()!r}, children={list(self.children)})"
