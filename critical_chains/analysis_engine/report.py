# report.py
# Summaries and tables of the critical request chains.
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

# 3rd-party modules
from tabulate import tabulate

# Custom modules
from critical_chains.traffic_parser.chain_forest import ChainForest

TABLE_HEADERS = ["Request", "Type", "Priority", "Start (s)", "Response (s)"]

def summary(forest: ChainForest) -> dict:
    """Function to summarize the chains of one page

    Args:
        forest: The critical request chains

    Returns:
        dict: Main document, number of critical requests and the longest chain
    """
    longest = forest.longest_chain()
    root = forest.get_root()

    return {
        "main_document": root.get_resource() if root else None,
        "critical_requests": len(forest.get_request_ids()),
        "longest_chain_length": longest["length"],
        "longest_chain_duration": round(longest["duration"], 3),
        "longest_chain": longest["request_ids"],
    }

def format_time(value) -> str:
    if value is None:
        return "-"
    return f"{value:.3f}"

def table_rows(forest: ChainForest, url_length: int=100) -> list[list]:
    """Function to create one table row per node, indented by its depth

    Args:
        forest: The critical request chains
        url_length: How many characters of each URL to show

    Returns:
        list: Rows matching TABLE_HEADERS
    """
    rows = []
    for node in forest.get_all_nodes():
        record = node.get_record()
        indent = "  " * node.get_depth()
        rows.append([
            indent + node.get_resource()[:url_length],
            record.resource_type.value,
            record.priority.to_value(),
            format_time(record.start_time),
            format_time(record.response_received_time),
        ])
    return rows

def chains_table(forest: ChainForest, url_length: int=100, tablefmt: str="simple") -> str:
    """Function to render the chains as a table

    Args:
        forest: The critical request chains
        url_length: How many characters of each URL to show
        tablefmt: Any table format supported by tabulate

    Returns:
        str: The rendered table
    """
    return tabulate(table_rows(forest, url_length), headers=TABLE_HEADERS, tablefmt=tablefmt,
                    disable_numparse=True)

def summary_table(summaries: dict[str, dict], tablefmt: str="simple") -> str:
    """Function to render summaries of multiple pages as one table

    Args:
        summaries: Traffic file name -> summary of its chains
        tablefmt: Any table format supported by tabulate

    Returns:
        str: The rendered table
    """
    headers = ["Traffic file", "Critical requests", "Longest chain", "Duration (ms)"]
    table_data = []
    for (name, page_summary) in summaries.items():
        table_data.append([name, page_summary["critical_requests"],
                           page_summary["longest_chain_length"],
                           page_summary["longest_chain_duration"]])

    return tabulate(table_data, headers=headers, tablefmt=tablefmt)
