# serialization.py
# Render critical request chains into nested parent -> children dictionaries.
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

from critical_chains.traffic_parser.chain_forest import ChainForest
from critical_chains.traffic_parser.chain_node import ChainNode

def serialize_node(node: ChainNode) -> dict:
    """Function to render a node and everything below it

    Args:
        node: Node to render

    Returns:
        dict: {"record": RequestRecord, "children": {child id: rendered child}}
    """
    children = {}
    for (request_id, child) in node.get_children().items():
        children[request_id] = serialize_node(child)

    return {"record": node.get_record(), "children": children}

def serialize(forest: ChainForest) -> dict:
    """Function to render the forest into nested dictionaries. No filtering is done.

    Args:
        forest: The critical request chains

    Returns:
        dict: Root request id -> rendered root, empty for an empty forest
    """
    return {request_id: serialize_node(root) for (request_id, root) in forest.get_roots().items()}

def serialize_json_node(node: ChainNode) -> dict:
    """Same as serialize_node, with records rendered as plain dicts"""
    children = {}
    for (request_id, child) in node.get_children().items():
        children[request_id] = serialize_json_node(child)

    return {"request": node.get_record().to_dict(), "children": children}

def serialize_json(forest: ChainForest) -> dict:
    """Function to render the forest into JSON-safe nested dictionaries, ready for save_json

    Args:
        forest: The critical request chains

    Returns:
        dict: Root request id -> rendered root
    """
    return {request_id: serialize_json_node(root)
            for (request_id, root) in forest.get_roots().items()}
