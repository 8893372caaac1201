# chain_forest.py
# The class representing the forest of critical request chains.
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

from critical_chains.traffic_parser.chain_node import ChainNode

class ChainForest:
    """Class representing all critical request chains of one page.
    Usually there is a single tree rooted at the main document.

    Args:
        roots: Root request id -> root Node
    """
    def __init__(self, roots: dict[str, ChainNode]=None) -> None:
        """Initialization method

        Args:
            roots: Nodes representing the roots of the trees, empty forest if not provided
        """
        self.roots = roots if roots is not None else {}

    def get_roots(self) -> dict[str, ChainNode]:
        """Method to return the mapping of root request ids to root nodes"""
        return self.roots

    def get_root(self) -> ChainNode:
        """Method to return the root of the main tree (the main document)

        Returns:
            ChainNode: Root of the first tree, None for an empty forest
        """
        for root in self.roots.values():
            return root
        return None

    def is_empty(self) -> bool:
        return not self.roots

    def get_all_nodes(self) -> list[ChainNode]:
        """Method to return every node of every tree, roots first (depth-first)"""
        nodes = []
        for root in self.roots.values():
            nodes.extend(root.get_all_children_nodes())
        return nodes

    def get_request_ids(self) -> list[str]:
        return [node.get_request_id() for node in self.get_all_nodes()]

    def get_leaf_paths(self, start: ChainNode=None, path: list[ChainNode]=None)\
        -> list[list[ChainNode]]:
        """Method to return every path from a root to a leaf

        Args:
            start: Node from which to start, all roots if not provided
            path: Nodes above start

        Returns:
            list: Paths, each ordered from the root to the leaf
        """
        if start is None:
            paths = []
            for root in self.roots.values():
                paths.extend(self.get_leaf_paths(start=root, path=[]))
            return paths

        path = path + [start]
        if not start.get_children():
            return [path]

        paths = []
        for child in start.get_children().values():
            paths.extend(self.get_leaf_paths(start=child, path=path))
        return paths

    def longest_chain(self) -> dict:
        """Method to find the chain which took the longest to download

        Returns:
            dict: "length" (number of requests), "duration" (milliseconds from the start
                of the root to the response of the last request) and "request_ids"
                of the longest chain. Zeroes for an empty forest.
        """
        longest = {"length": 0, "duration": 0, "request_ids": []}

        for path in self.get_leaf_paths():
            # Every prefix of a path is also a chain
            start_time = path[0].get_record().start_time or 0
            for (index, node) in enumerate(path):
                record = node.get_record()
                end_time = record.response_received_time
                if end_time is None:
                    end_time = record.start_time or 0
                duration = (end_time - start_time) * 1000

                if duration > longest["duration"] or\
                   (duration == longest["duration"] and index + 1 > longest["length"]):
                    longest = {"length": index + 1, "duration": duration,
                               "request_ids": [n.get_request_id() for n in path[:index + 1]]}

        return longest

    def ascii_tree(self, level: int=1, current_node: ChainNode=None, url_length: int=100) -> str:
        """Method to return a CLI-visual of the requests in the forest

        Args:
            level: How deep the printed node should be
            current_node: Node to print, all roots if not provided
            url_length: How many characters of each URL to show
        Returns:
            str: The forest visualization as a string
        """
        result = ""

        if not current_node:
            for root in self.roots.values():
                result += self.ascii_tree(level=level, current_node=root, url_length=url_length)
            return result

        record = current_node.get_record()

        # Add current level to result
        result += '\n|' + '--' * 2 * level + ' ' + record.url[:url_length] + ' '\
                + '(' + record.resource_type.value + ', ' + record.priority.to_value() + ')'

        # Recursively print for children
        for child in current_node.get_children().values():
            result += self.ascii_tree(level=level+1, current_node=child, url_length=url_length)

        return result
