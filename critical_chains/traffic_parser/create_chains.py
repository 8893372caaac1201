# create_chains.py
# Reconstruct the critical request chains based on the recorded HTTP traffic.
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

# Built-in modules
import os
import sys

# Custom modules
from critical_chains.config import Config
from critical_chains.constants import RECORDS_KEY, MAIN_DOCUMENT_URL_KEY, TRAFFIC_FOLDER
from critical_chains.file_manipulation import load_json, get_traffic_files
from critical_chains.utils import print_progress
from critical_chains.traffic_logger.devtools_log_loader import records_from_devtools_log
from critical_chains.traffic_parser.chain_forest import ChainForest
from critical_chains.traffic_parser.chain_node import ChainNode
from critical_chains.traffic_parser.criticality import is_critical
from critical_chains.traffic_parser.redirect_chains import RedirectChain, collapse_redirects
from critical_chains.traffic_parser.request_record import RequestRecord
from critical_chains.traffic_parser.request_registry import RequestRegistry, MalformedTrafficError
from critical_chains.traffic_parser.request_registry import initiator_url

def record_order(record: RequestRecord) -> tuple:
    """Sort key ordering records by the time they were sent, records with no time go last"""
    start_time = record.start_time if record.start_time is not None else sys.maxsize
    return (start_time, record.request_id)

def find_main_chain(registry: RequestRegistry, chains: list[RedirectChain],\
                    main_document_url: str=None) -> RedirectChain:
    """Function to find the redirect chain of the main document, the chains are rooted
    at its first hop

    Args:
        registry: Registry with linked redirects and resolved initiators
        chains: Redirect chains of all the recorded requests
        main_document_url: URL of the main document, possibly the final URL after redirects.
            If not provided, the earliest request with no initiator is used.

    Returns:
        RedirectChain: Chain of the main document request

    Raises:
        MalformedTrafficError: If the main document cannot be found or was itself
            initiated by another recorded request
    """
    chain_of_hop = {hop.request_id: chain for chain in chains for hop in chain.get_hops()}

    if main_document_url is not None:
        candidates = registry.find_by_url(main_document_url)
        if not candidates:
            raise MalformedTrafficError(f"Main document {main_document_url} was not recorded")

        # The final hop of a redirected document is the one that was really loaded
        final_hops = [c for c in candidates if registry.last_recorded_hop(c) is c]
        if final_hops:
            candidates = final_hops

        main_chain = chain_of_hop[min(candidates, key=record_order).request_id]
    else:
        candidates = [chain for chain in chains if initiator_url(chain.get_first_hop()) is None]
        if not candidates:
            raise MalformedTrafficError("No request without an initiator was recorded, "
                                        "unable to tell which one is the main document")

        main_chain = min(candidates, key=lambda chain: record_order(chain.get_first_hop()))

    main_record = main_chain.get_first_hop()
    if main_record.initiator_request is not None:
        raise MalformedTrafficError(f"Main document {main_record.url} was initiated by "
                                    f"{main_record.initiator_request.url}")

    return main_chain

def get_ancestors(registry: RequestRegistry, chains: list[RedirectChain]) -> dict:
    """Function to find the request each request depends on. The first hop of a chain
    depends on its initiator, every later hop on the hop before it.

    Args:
        registry: Registry with linked redirects and resolved initiators
        chains: Redirect chains of all the recorded requests

    Returns:
        dict: Request id -> RequestRecord it depends on, None if unknown
    """
    ancestors = {}
    for chain in chains:
        # Detached destinations only classify the chain, they are never attached
        hops = [hop for hop in chain.get_hops() if registry.get_record(hop.request_id) is hop]

        ancestors[hops[0].request_id] = hops[0].initiator_request
        for (previous, hop) in zip(hops, hops[1:]):
            ancestors[hop.request_id] = previous

    return ancestors

def get_node(nodes: dict[str, ChainNode], record: RequestRecord) -> ChainNode:
    """Function to return the node of a request, creating it on first reference

    Args:
        nodes: Request id -> Node of every node created so far
        record: Request the node is for

    Returns:
        ChainNode: The one node representing this request
    """
    node = nodes.get(record.request_id)
    if node is None:
        node = ChainNode(record)
        nodes[record.request_id] = node
    return node

def attach_to_ancestor(nodes: dict[str, ChainNode], record: RequestRecord,\
                       ancestor: RequestRecord, critical_ids: set[str]) -> None:
    """Function to attach a critical request under the request it depends on

    Args:
        nodes: Request id -> Node of every node created so far
        record: Critical request to attach
        ancestor: Request the record depends on
        critical_ids: Ids of all critical requests
    """
    # Missing ancestor, nothing to attach to
    if ancestor is None:
        return

    # A non-critical ancestor breaks the chain here
    if ancestor.request_id not in critical_ids:
        return

    parent_node = get_node(nodes, ancestor)
    parent_node.add_child(get_node(nodes, record))

def prune_disconnected(nodes: dict[str, ChainNode], root_node: ChainNode) -> list[ChainNode]:
    """Function to drop every node that cannot be reached from the root

    Args:
        nodes: Request id -> Node of every node created, pruned in place
        root_node: Node of the main document

    Returns:
        list: The dropped nodes
    """
    reachable = {node.get_request_id() for node in root_node.get_all_children_nodes()}

    dropped = [node for (request_id, node) in nodes.items() if request_id not in reachable]
    for node in dropped:
        del nodes[node.get_request_id()]

    return dropped

def assemble(records: list, main_document_url: str=None, options: Config=None) -> ChainForest:
    """Function to build the critical request chains of a page

    Args:
        records: Recorded requests as dicts or RequestRecord instances, in any order.
            The records themselves are never modified.
        main_document_url: URL of the main document. If not provided, the earliest
            request with no initiator is used.
        options: Instance of Config, default settings are used if not provided

    Returns:
        ChainForest: Forest with the main document as its only root, empty if
            no records were provided

    Raises:
        MalformedTrafficError: If the records break the structure chains are built on
    """
    if options is None:
        options = Config()

    registry = RequestRegistry(records)
    if registry.is_empty():
        return ChainForest()

    chains = collapse_redirects(registry)
    registry.resolve_initiators()

    main_chain = find_main_chain(registry, chains, main_document_url)
    main_record = main_chain.get_first_hop()

    # Classify each request on its own first, the main document always stays
    terminals = {}
    for chain in chains:
        if chain.is_redirected():
            for hop in chain.get_hops():
                terminals[hop.request_id] = chain.get_terminal()

    critical_ids = {record.request_id for record in registry.get_records()
                    if is_critical(record, main_record, options,
                                   terminals.get(record.request_id))}
    critical_ids.add(main_record.request_id)

    ancestors = get_ancestors(registry, chains)

    nodes = {}
    root_node = get_node(nodes, main_record)

    # Attach in the order the requests were sent so the result doesn't depend on input order
    for record in sorted(registry.get_records(), key=record_order):
        if record.request_id not in critical_ids or record is main_record:
            continue
        attach_to_ancestor(nodes, record, ancestors[record.request_id], critical_ids)

    prune_disconnected(nodes, root_node)

    return ChainForest({main_chain.get_chain_id(): root_node})

def split_traffic(traffic, devtools_log: bool=False) -> tuple[list, str]:
    """Function to obtain the records and the main document URL from a loaded traffic file

    Args:
        traffic: Content of the traffic file. Either a list of records, a dict with
            the records and the main document URL, or a DevTools log
        devtools_log: Whether the content is a DevTools log

    Returns:
        tuple:
            - list: Records of the requests
            - str: Main document URL, None if not known
    """
    main_document_url = None

    if isinstance(traffic, dict):
        main_document_url = traffic.get(MAIN_DOCUMENT_URL_KEY)
        traffic = traffic.get(RECORDS_KEY, [])

    if devtools_log:
        traffic = records_from_devtools_log(traffic)

    return traffic, main_document_url

def load_network_traffic_files(folder: str=TRAFFIC_FOLDER) -> list[tuple]:
    """Function to return recorded network traffic for each page as a record in list

    Args:
        folder: Folder with the traffic files

    Returns:
        list[tuple]: Loaded traffic together with the name of its file
    """
    traffic_logs = []
    for file in get_traffic_files(folder):
        traffic = load_json(file)

        # obtain pure filename to be used as key for the chains
        pure_filename = os.path.basename(file)

        traffic_logs.append((traffic, pure_filename))

    return traffic_logs

def create_chains(options: Config, folder: str=TRAFFIC_FOLDER, devtools_log: bool=False,\
                  main_document_url: str=None) -> dict[str, ChainForest]:
    """Function to load all traffic files of a folder and build their critical request chains

    Args:
        options: instance of Config
        folder: Folder with the traffic files
        devtools_log: Whether the traffic files are DevTools logs
        main_document_url: URL of the main document, overrides the one in the files

    Returns:
        dict[ChainForest]: File name -> critical request chains of that page
    """
    print("Reconstructing critical request chains...")

    chains = {}
    traffic_logs = load_network_traffic_files(folder)
    total = len(traffic_logs)

    if total == 0:
        print("No traffic files found in " + folder)
        return chains

    progress_printer = print_progress(total, "Creating critical request chains...")

    for (traffic, traffic_file_name) in traffic_logs:
        progress_printer()

        records, file_main_document_url = split_traffic(traffic, devtools_log)
        chains[traffic_file_name] = assemble(records, main_document_url or file_main_document_url,
                                             options)

    print("Critical request chains reconstructed!")
    return chains
