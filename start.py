# start.py
# Compute critical request chains of recorded page traffic.
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
import argparse
import os
import sys

# Custom modules
from critical_chains.constants import GENERAL_ERROR, TRAFFIC_ERROR, TRAFFIC_FOLDER
from critical_chains.constants import CHAINS_FILE_SUFFIX
from critical_chains.config import Config
from critical_chains.file_manipulation import load_json, save_json, chains_file_name
from critical_chains.traffic_parser.create_chains import assemble, create_chains, split_traffic
from critical_chains.traffic_parser.request_registry import MalformedTrafficError
from critical_chains.analysis_engine.serialization import serialize_json
from critical_chains.analysis_engine.report import summary, chains_table, summary_table

# Increase recursion limit because of the chains, should be more than enough
sys.setrecursionlimit(3000)

def parse_arguments(argv: list[str]=None) -> argparse.Namespace:
    """Function to parse the command line arguments

    Args:
        argv: Arguments to parse, sys.argv if not provided

    Returns:
        argparse.Namespace: The parsed arguments
    """
    parser = argparse.ArgumentParser(prog="Critical request chains",
                                     description="Computes chains of render blocking\
                                          requests from recorded page traffic")
    parser.add_argument('traffic', nargs="*",
            help="Traffic files to process, all JSON files in --folder if none are given")
    parser.add_argument('-f', '--folder', default=TRAFFIC_FOLDER,
            help="Folder with the recorded traffic files")
    parser.add_argument('-u', '--url', default=None,
            help="URL of the main document, the earliest request without initiator if not given")
    parser.add_argument('-d', '--devtools-log', action="store_true",
            help="Whether the traffic files are DevTools logs instead of request records")
    parser.add_argument('-o', '--output', default=None,
            help="Folder to save the computed chains into, results_folder from config if not set")
    parser.add_argument('-t', '--table', action="store_true",
            help="Whether to print the chains of each page as a table")
    parser.add_argument('-a', '--ascii', action="store_true",
            help="Whether to print the chains of each page as an ASCII tree")
    return parser.parse_args(argv)

def initialize_folders(output_folder: str) -> None:
    """Function to prepare the folder the chains are saved into"""
    if not os.path.exists(output_folder):
        print("Creating the results folder...")
        os.makedirs(output_folder)

def compute_chains(args: argparse.Namespace, options: Config) -> dict:
    """Function to build the chains of every requested traffic file

    Args:
        args: Parsed command line arguments
        options: instance of Config

    Returns:
        dict: Traffic file name -> ChainForest
    """
    try:
        # No files given, go through the whole folder
        if not args.traffic:
            return create_chains(options, args.folder, args.devtools_log, args.url)

        chains = {}
        for traffic_file in args.traffic:
            print("Reconstructing critical request chains of", traffic_file)
            records, main_document_url = split_traffic(load_json(traffic_file), args.devtools_log)
            chains[os.path.basename(traffic_file)] = assemble(records,
                                                             args.url or main_document_url,
                                                             options)
        return chains

    except MalformedTrafficError as e:
        print(e)
        print("Error while reconstructing critical request chains!")
        exit(TRAFFIC_ERROR)

def save_chains(chains: dict, output_folder: str) -> None:
    """Function to save the chains of each traffic file into the output folder"""
    for (name, forest) in chains.items():
        path = os.path.join(output_folder, chains_file_name(name, CHAINS_FILE_SUFFIX))
        save_json(serialize_json(forest), path)

def print_reports(chains: dict, args: argparse.Namespace, options: Config) -> None:
    """Function to print the requested reports of the computed chains"""
    summaries = {}
    for (name, forest) in chains.items():
        summaries[name] = summary(forest)

        if forest.is_empty():
            print(name, "contains no requests, no chains to show")
            continue

        if args.ascii:
            print(name + forest.ascii_tree(url_length=options.report_url_length))

        if args.table:
            print(name)
            print(chains_table(forest, url_length=options.report_url_length))

    print(summary_table(summaries))

def start(argv: list[str]=None, options: Config=None) -> dict:
    """Main driver function"""
    args = parse_arguments(argv)

    # Load config only if none was provided
    if not options:
        options = Config()

    # Validate options
    if not options.validate_settings():
        print("Invalid Configuration! Consult the original file!")
        exit(GENERAL_ERROR)

    output_folder = args.output or options.results_folder
    initialize_folders(output_folder)

    chains = compute_chains(args, options)
    save_chains(chains, output_folder)
    print_reports(chains, args, options)

    print(f"Saved critical request chains of {len(chains)} pages into {output_folder}")
    return chains

if __name__ == "__main__":
    start()
