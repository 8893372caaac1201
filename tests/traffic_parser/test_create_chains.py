# test_create_chains.py
# Test the create_chains.py from traffic_parser
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
import random
import unittest
from unittest.mock import patch

# Custom modules
from critical_chains.config import Config
from critical_chains.traffic_parser.create_chains import assemble, find_main_chain
from critical_chains.traffic_parser.create_chains import get_ancestors
from critical_chains.traffic_parser.create_chains import split_traffic, create_chains
from critical_chains.traffic_parser.create_chains import prune_disconnected, get_node
from critical_chains.traffic_parser.criticality import is_critical
from critical_chains.traffic_parser.chain_node import ChainNode
from critical_chains.traffic_parser.redirect_chains import collapse_redirects
from critical_chains.traffic_parser.request_record import RequestRecord, Initiator
from critical_chains.traffic_parser.request_registry import RequestRegistry, MalformedTrafficError
from critical_chains.analysis_engine.serialization import serialize

HIGH = "High"
VERY_HIGH = "VeryHigh"
MEDIUM = "Medium"
LOW = "Low"
VERY_LOW = "VeryLow"

def create_mock_records(priorities: list[str], edges: list[list[int]], extras=None) -> list[dict]:
    """Create records of a page with a document at index 0 and stylesheets after it.
    Each edge [a, b] makes record a the parser initiator of record b."""
    records = []
    for (index, priority) in enumerate(priorities):
        records.append({
            "requestId": str(index),
            "url": "https://www.example.com/" + str(index),
            "resourceType": "Document" if index == 0 else "Stylesheet",
            "frameId": 1,
            "finished": True,
            "priority": priority,
            "initiator": None,
            "statusCode": 200,
            "startTime": index,
            "responseReceivedTime": index + 0.5,
        })

    # add mock initiator information
    for (parent, child) in edges:
        records[child]["initiator"] = {"type": "parser", "url": records[parent]["url"]}

    if extras:
        extras(records)

    return records

def main_url(records: list[dict]) -> str:
    return next(record["url"] for record in records if record["requestId"] == "0")

def chains_from_mock_records(priorities, edges, extras=None) -> dict:
    records = create_mock_records(priorities, edges, extras)
    return serialize(assemble(records, main_url(records)))

def chain_shape(serialized: dict) -> dict:
    """Reduce the serialized chains to nested request ids"""
    return {request_id: chain_shape(node["children"]) for (request_id, node) in serialized.items()}

class TestCreateChains(unittest.TestCase):

    def test_chain_of_four_critical_requests(self):
        """Test all four requests of a linear chain are kept"""
        chains = chains_from_mock_records([HIGH, MEDIUM, VERY_HIGH, HIGH],
                                          [[0, 1], [1, 2], [2, 3]])
        self.assertEqual(chain_shape(chains), {"0": {"1": {"2": {"3": {}}}}})

        # The records are attached to the nodes
        self.assertEqual(chains["0"]["record"].url, "https://www.example.com/0")
        third = chains["0"]["children"]["1"]["children"]["2"]["record"]
        self.assertEqual(third.request_id, "2")

    def test_chain_interleaved_with_non_critical_requests(self):
        """Test a low priority request cuts off everything below it"""
        chains = chains_from_mock_records([MEDIUM, HIGH, LOW, MEDIUM, HIGH, VERY_LOW],
                                          [[0, 1], [1, 2], [2, 3], [3, 4]])
        self.assertEqual(chain_shape(chains), {"0": {"1": {}}})

    def test_prunes_chains_not_connected_to_root(self):
        """Test critical requests with no path to the main document are dropped"""
        chains = chains_from_mock_records([HIGH, HIGH, HIGH, HIGH], [[0, 2], [1, 3]])
        self.assertEqual(chain_shape(chains), {"0": {"2": {}}})

    def test_prunes_disconnected_without_main_url(self):
        """Test the earliest request without initiator becomes the root"""
        records = create_mock_records([HIGH, HIGH, HIGH, HIGH], [[0, 2], [1, 3]])
        chains = serialize(assemble(records))
        self.assertEqual(chain_shape(chains), {"0": {"2": {}}})

    def test_fork_at_non_root(self):
        """Test both branches of a fork are kept"""
        chains = chains_from_mock_records([HIGH, HIGH, HIGH, HIGH], [[0, 1], [1, 2], [1, 3]])
        self.assertEqual(chain_shape(chains), {"0": {"1": {"2": {}, "3": {}}}})

    def test_only_root_document(self):
        """Test the main document stays even with no critical children"""
        chains = chains_from_mock_records([VERY_HIGH, LOW], [[0, 1]])
        self.assertEqual(chain_shape(chains), {"0": {}})

    def test_root_kept_even_when_not_critical(self):
        """Test the main document is kept even with a low priority"""
        chains = chains_from_mock_records([VERY_LOW, HIGH], [[0, 1]])
        self.assertEqual(chain_shape(chains), {"0": {"1": {}}})

    def test_empty_traffic(self):
        """Test no records produce an empty forest"""
        forest = assemble([])
        self.assertTrue(forest.is_empty())
        self.assertIsNone(forest.get_root())
        self.assertEqual(serialize(forest), {})

    def test_random_big_graph(self):
        """Test a bigger graph with multiple levels of forks"""
        chains = chains_from_mock_records([HIGH] * 9,
            [[0, 1], [1, 2], [1, 3], [0, 4], [4, 5], [5, 7], [7, 8], [5, 6]])
        expected = {"0": {
            "1": {"2": {}, "3": {}},
            "4": {"5": {"7": {"8": {}}, "6": {}}},
        }}
        self.assertEqual(chain_shape(chains), expected)

    def test_redirects(self):
        """Test redirect hops are nested and dependents of the chain go under its final hop"""
        def make_redirect(records):
            # Record 1 redirects into record 2 which takes over its id
            records[1]["requestId"] = "1:redirect"
            records[2]["requestId"] = "1"

            # Record 3 is a redirect known only by what it redirected into
            records[3]["requestId"] = "2"
            records[3]["url"] = "https://example.com/redirect-stylesheet"
            records[3]["resourceType"] = None
            records[3]["statusCode"] = 302
            records[3]["redirectDestination"] = {"resourceType": "Stylesheet", "priority": HIGH}

        chains = chains_from_mock_records([HIGH, HIGH, HIGH, HIGH], [[0, 1], [1, 2], [1, 3]],
                                          make_redirect)
        self.assertEqual(chain_shape(chains), {"0": {"1:redirect": {"1": {"2": {}}}}})

    def test_redirect_by_explicit_destination(self):
        """Test hops linked by redirectDestination ids form a nested chain"""
        def make_redirect(records):
            records[1]["statusCode"] = 301
            records[1]["redirectDestination"] = "2"
            records[2]["initiator"] = None

        chains = chains_from_mock_records([HIGH, HIGH, HIGH, HIGH], [[0, 1], [2, 3]],
                                          make_redirect)
        self.assertEqual(chain_shape(chains), {"0": {"1": {"2": {"3": {}}}}})

    def test_redirected_main_document(self):
        """Test the first hop of a redirected main document is the root"""
        def make_redirect(records):
            records[0]["requestId"] = "0:redirect"
            records[0]["statusCode"] = 301
            records[1]["requestId"] = "0"
            records[1]["resourceType"] = "Document"
            records[1]["initiator"] = None
            records[2]["initiator"] = {"type": "parser", "url": records[1]["url"]}

        records = create_mock_records([VERY_HIGH, VERY_HIGH, HIGH], [], make_redirect)
        chains = serialize(assemble(records, records[1]["url"]))
        self.assertEqual(chain_shape(chains), {"0:redirect": {"0": {"2": {}}}})

    def test_discards_favicons(self):
        """Test favicons are never critical, and neither is anything below them"""
        def make_favicons(records):
            records[1]["url"] = "https://example.com/favicon.ico"
            records[1]["mimeType"] = "image/x-icon"
            records[2]["url"] = "https://example.com/favicon-32x32.png"
            records[2]["mimeType"] = "image/png"
            records[3]["url"] = "https://example.com/android-chrome-192x192.png"
            records[3]["mimeType"] = "image/png"
            records[4]["initiator"] = {"type": "parser", "url": records[1]["url"]}

        chains = chains_from_mock_records([HIGH] * 5, [[0, 1], [0, 2], [0, 3]], make_favicons)
        self.assertEqual(chain_shape(chains), {"0": {}})

    def test_discards_iframes(self):
        """Test documents of other frames are never critical"""
        def make_iframes(records):
            records[0]["mimeType"] = "text/html"
            records[1]["url"] = "https://example.com/iframe.html"
            records[1]["mimeType"] = "text/html"
            records[1]["resourceType"] = "Document"
            records[1]["frameId"] = "2"
            records[2]["url"] = "https://youtube.com/"
            records[2]["mimeType"] = "text/html"
            records[2]["resourceType"] = "Document"
            records[2]["frameId"] = "3"

            # Iframe in the page with a redirect
            records[3]["url"] = "https://example.com/redirect-iframe"
            records[3]["resourceType"] = None
            records[3]["statusCode"] = 302
            records[3]["redirectDestination"] = {"resourceType": "Document", "priority": LOW}
            records[3]["frameId"] = "4"

        chains = chains_from_mock_records([HIGH] * 4, [[0, 1], [0, 2], [0, 3]], make_iframes)
        self.assertEqual(chain_shape(chains), {"0": {}})

    def test_non_existent_nodes_when_building(self):
        """Test reversed records produce the same chains"""
        chains = chains_from_mock_records([HIGH, HIGH], [[0, 1]],
                                          lambda records: records.reverse())
        self.assertEqual(chain_shape(chains), {"0": {"1": {}}})
        self.assertEqual(chains["0"]["record"].url, "https://www.example.com/0")

    def test_chain_with_preload(self):
        """Test preloaded requests are not critical"""
        def make_preload(records):
            records[1]["isLinkPreload"] = True

        chains = chains_from_mock_records([HIGH, HIGH], [[0, 1]], make_preload)
        self.assertEqual(chain_shape(chains), {"0": {}})

    def test_unknown_resource_type_fails_closed(self):
        """Test an unknown resource type is excluded with everything below it"""
        def make_unknown(records):
            records[1]["resourceType"] = "SomethingNew"

        chains = chains_from_mock_records([HIGH, HIGH, HIGH], [[0, 1], [1, 2]], make_unknown)
        self.assertEqual(chain_shape(chains), {"0": {}})

    def test_unfinished_request_excluded(self):
        """Test requests that never finished are not part of chains"""
        def make_unfinished(records):
            records[2]["finished"] = False

        chains = chains_from_mock_records([HIGH, HIGH, HIGH], [[0, 1], [0, 2]], make_unfinished)
        self.assertEqual(chain_shape(chains), {"0": {"1": {}}})

    def test_unfinished_request_included_by_config(self):
        """Test unfinished requests can be included through the config"""
        records = create_mock_records([HIGH, HIGH], [[0, 1]])
        records[1]["finished"] = False
        options = Config()
        options.include_unfinished_requests = True

        chains = serialize(assemble(records, main_url(records), options))
        self.assertEqual(chain_shape(chains), {"0": {"1": {}}})

    def test_order_independent(self):
        """Test shuffled records always produce the same chains"""
        edges = [[0, 1], [1, 2], [1, 3], [0, 4], [4, 5], [5, 7], [7, 8], [5, 6]]
        priorities = [HIGH, HIGH, LOW, HIGH, MEDIUM, HIGH, VERY_LOW, HIGH, HIGH]
        expected = chain_shape(chains_from_mock_records(priorities, edges))

        shuffler = random.Random(42)
        for _ in range(10):
            chains = chains_from_mock_records(priorities, edges, shuffler.shuffle)
            self.assertEqual(chain_shape(chains), expected)

    def test_repeated_assembly_is_identical(self):
        """Test building the chains twice from the same records gives the same result"""
        records = create_mock_records([HIGH] * 4, [[0, 1], [1, 2], [0, 3]])
        first = chain_shape(serialize(assemble(records, main_url(records))))
        second = chain_shape(serialize(assemble(records, main_url(records))))
        self.assertEqual(first, second)

    def create_redirected_stylesheet(self) -> list[RequestRecord]:
        """Create a document with a stylesheet redirected from 1:redirect to 1"""
        parser = Initiator("parser", "https://example.com/")
        root = RequestRecord("0", "https://example.com/", "Document", VERY_HIGH, frame_id="1",
                             start_time=0, response_received_time=0.5)
        hop = RequestRecord("1:redirect", "https://example.com/a.css", "Stylesheet", HIGH,
                            frame_id="1", initiator=parser, start_time=1,
                            response_received_time=1.2)
        final = RequestRecord("1", "https://example.com/b.css", "Stylesheet", HIGH, frame_id="1",
                              initiator=parser, start_time=1.2, response_received_time=1.5)
        return [root, hop, final]

    def test_shared_records_are_not_modified(self):
        """Test records passed in can be used again for another page without the first
        computation leaking into it"""
        (root, hop, final) = self.create_redirected_stylesheet()

        first = serialize(assemble([root, hop, final], "https://example.com/"))
        self.assertEqual(chain_shape(first), {"0": {"1:redirect": {"1": {}}}})
        self.assertIsNone(final.redirect_source)
        self.assertIsNone(hop.redirect_destination)
        self.assertIsNone(hop.initiator_request)

        second = serialize(assemble([root, final], "https://example.com/"))
        self.assertEqual(chain_shape(second), {"0": {"1": {}}})

    def test_get_ancestors(self):
        """Test first hops depend on their initiator and later hops on the previous hop"""
        registry = RequestRegistry(self.create_redirected_stylesheet())
        chains = collapse_redirects(registry)
        registry.resolve_initiators()

        ancestors = get_ancestors(registry, chains)
        self.assertIsNone(ancestors["0"])
        self.assertIs(ancestors["1:redirect"], registry.get_record("0"))
        self.assertIs(ancestors["1"], registry.get_record("1:redirect"))

    def test_connectivity_of_random_graphs(self):
        """Test every path from the root consists of critical requests only"""
        shuffler = random.Random(7)
        choices = [VERY_LOW, LOW, MEDIUM, HIGH, VERY_HIGH]

        for _ in range(20):
            priorities = [shuffler.choice(choices) for _ in range(12)]
            edges = [[shuffler.randrange(child), child] for child in range(1, 12)]
            records = create_mock_records(priorities, edges)
            forest = assemble(records, main_url(records))

            root = forest.get_root()
            for node in forest.get_all_nodes():
                if node is root:
                    continue
                self.assertTrue(is_critical(node.get_record(), root.get_record()))
                self.assertIn(node.get_parent().get_request_id(), forest.get_request_ids())

    def test_duplicate_request_ids(self):
        """Test two records with the same id are rejected"""
        records = create_mock_records([HIGH, HIGH], [[0, 1]])
        records[1]["requestId"] = "0"
        with self.assertRaises(MalformedTrafficError):
            assemble(records)

    def test_main_document_not_recorded(self):
        """Test an unknown main document URL is rejected"""
        records = create_mock_records([HIGH, HIGH], [[0, 1]])
        with self.assertRaises(MalformedTrafficError):
            assemble(records, "https://not-recorded.com/")

    def test_main_document_with_initiator(self):
        """Test a main document initiated by another request is rejected"""
        records = create_mock_records([HIGH, HIGH], [[1, 0]])
        records[1]["startTime"] = -1
        records[1]["responseReceivedTime"] = -0.5
        with self.assertRaises(MalformedTrafficError):
            assemble(records, main_url(records))

    def test_find_main_chain_without_url(self):
        """Test the earliest request without initiator is the main document"""
        records = create_mock_records([HIGH, HIGH, HIGH], [[0, 2]])
        records[0]["startTime"] = 5
        registry = RequestRegistry(records)
        chains = collapse_redirects(registry)
        registry.resolve_initiators()

        self.assertEqual(find_main_chain(registry, chains).get_chain_id(), "1")

    def test_prune_disconnected(self):
        """Test nodes not reachable from the root are dropped from the node map"""
        nodes = {}
        root = get_node(nodes, RequestRecord("0", "https://a.com/"))
        child = get_node(nodes, RequestRecord("1", "https://a.com/1.css"))
        lonely = get_node(nodes, RequestRecord("2", "https://a.com/2.css"))
        root.add_child(child)

        dropped = prune_disconnected(nodes, root)
        self.assertEqual(dropped, [lonely])
        self.assertEqual(set(nodes), {"0", "1"})

    def test_get_node_shares_instances(self):
        """Test the same request always maps to the same node"""
        nodes = {}
        record = RequestRecord("0", "https://a.com/")
        node = get_node(nodes, record)
        self.assertIsInstance(node, ChainNode)
        self.assertIs(get_node(nodes, record), node)

    def test_split_traffic_with_url(self):
        """Test traffic files with records and the main document URL are split"""
        records = create_mock_records([HIGH], [])
        traffic = {"records": records, "mainDocumentUrl": "https://www.example.com/0"}
        self.assertEqual(split_traffic(traffic), (records, "https://www.example.com/0"))
        self.assertEqual(split_traffic(records), (records, None))

    @patch("builtins.print")
    @patch("critical_chains.traffic_parser.create_chains.load_network_traffic_files")
    def test_create_chains(self, mock_load_files, mock_print):
        """Test chains are created for every traffic file"""
        records = create_mock_records([HIGH, HIGH], [[0, 1]])
        mock_load_files.return_value = [(records, "log_1.json"),
                                        ({"records": records,
                                          "mainDocumentUrl": main_url(records)}, "log_2.json")]

        chains = create_chains(Config(), "./traffic/")
        self.assertEqual(set(chains), {"log_1.json", "log_2.json"})
        for forest in chains.values():
            self.assertEqual(chain_shape(serialize(forest)), {"0": {"1": {}}})
