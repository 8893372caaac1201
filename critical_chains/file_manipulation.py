# file_manipulation.py
# Provides functions for loading recorded traffic and saving computed chains
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
import json
import os

# Custom modules
from critical_chains.constants import FILE_ERROR, TRAFFIC_FOLDER

def load_json(path: str) -> dict:
    """Function to load a given JSON file and return its content as dict

    Args:
        path: Path to the loaded json

    Returns:
        dict: Content of the loaded json
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
            return data
    except OSError:
        print("Error reading the content of " + path + "! Is the file present?")
        exit(FILE_ERROR)
    except json.JSONDecodeError:
        print("Error parsing the content of " + path + "! Is it a valid JSON?")
        exit(FILE_ERROR)

def save_json(json_file, path) -> None:
    """Function to save a given JSON file

    Args:
        json_file: Content of the JSON to save
        path: Where to save the file
    """
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(json_file, f, ensure_ascii=False, indent=4)
    except OSError:
        print("Error saving json into " + path + "!")
        exit(FILE_ERROR)

def get_traffic_files(folder: str=TRAFFIC_FOLDER) -> list[str]:
    """Function to obtain the recorded traffic files from a folder

    Args:
        folder: Folder with the recorded traffic

    Returns:
        list: Paths of the JSON files in the folder, sorted by name
    """
    if not os.path.isdir(folder):
        print("Couldn't find the folder with the recorded traffic: " + folder)
        exit(FILE_ERROR)

    # Only JSON files count, the .empty placeholder is skipped
    files = [os.path.join(folder, f) for f in sorted(os.listdir(folder))
             if f.endswith(".json") and os.path.isfile(os.path.join(folder, f))]

    return files

def chains_file_name(traffic_file: str, suffix: str) -> str:
    """Function to create the name of the output file belonging to a traffic file

    Args:
        traffic_file: Path of the traffic file the chains were computed from
        suffix: Suffix replacing the traffic file extension

    Returns:
        str: Bare file name, e.g. log_1_network.json -> log_1_network_chains.json
    """
    pure_filename = os.path.basename(traffic_file)
    return os.path.splitext(pure_filename)[0] + suffix
