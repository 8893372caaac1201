# test_chain_nodes.py
# Test the chain_node.py from traffic_parser
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

import unittest

from critical_chains.traffic_parser.chain_node import ChainNode
from critical_chains.traffic_parser.request_record import RequestRecord

class TestChainNode(unittest.TestCase):
    def setUp(self):
        """Create nodes to be used in tests"""
        self.node_1 = ChainNode(RequestRecord("1", "https://example.com/a.js"))
        self.node_2 = ChainNode(RequestRecord("2", "https://example.com/b.js"))
        self.node_3 = ChainNode(RequestRecord("3", "https://example.com/c.js"))
        self.node_same_id = ChainNode(RequestRecord("3", "https://example.com/c.js"))

    def test_add_child(self):
        """Test adding a child adds it into the children of the parent and sets its parent"""
        self.node_1.add_child(self.node_2)
        self.assertIs(self.node_1.get_children()["2"], self.node_2)
        self.assertIs(self.node_2.get_parent(), self.node_1)

    def test_add_duplicate_child(self):
        """Test adding a node with the same request id twice doesnt actually add it twice"""
        self.node_1.add_child(self.node_3)
        self.node_1.add_child(self.node_same_id)
        self.assertEqual(len(self.node_1.get_children()), 1)
        self.assertIs(self.node_1.get_children()["3"], self.node_3)

    def test_children_keep_attach_order(self):
        """Test children are kept in the order they were attached"""
        self.node_1.add_child(self.node_3)
        self.node_1.add_child(self.node_2)
        self.assertEqual(list(self.node_1.get_children()), ["3", "2"])

    def test_get_all_children_nodes(self):
        """Test get_all_children_nodes works transitively as it should"""
        self.node_1.add_child(self.node_2)
        self.node_2.add_child(self.node_3)
        children_nodes = self.node_1.get_all_children_nodes()
        self.assertEqual(children_nodes, [self.node_1, self.node_2, self.node_3])

    def test_get_depth(self):
        """Test depth counts the ancestors"""
        self.node_1.add_child(self.node_2)
        self.node_2.add_child(self.node_3)
        self.assertEqual(self.node_1.get_depth(), 0)
        self.assertEqual(self.node_3.get_depth(), 2)

    def test_getters(self):
        """Test the record attributes are exposed"""
        self.assertEqual(self.node_1.get_request_id(), "1")
        self.assertEqual(self.node_1.get_resource(), "https://example.com/a.js")
        self.assertEqual(self.node_1.get_record().request_id, "1")
