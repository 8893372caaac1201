# criticality.py
# Decide whether a single recorded request blocks rendering of the page.
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
import re

# Custom modules
from critical_chains.config import Config
from critical_chains.constants import FAVICON_FILENAME_REGEX, ICON_MIME_TYPES
from critical_chains.constants import NON_NETWORK_SCHEMES, INITIATOR_PARSER
from critical_chains.traffic_parser.request_record import RequestRecord, ResourceType, Priority
from critical_chains.utils import last_path_component

FETCH_RESOURCE_TYPES = (ResourceType.XHR, ResourceType.FETCH)

def is_favicon(record: RequestRecord) -> bool:
    """Function to check whether a request loads a favicon

    Args:
        record: Checked request

    Returns:
        bool: True if the file name follows a favicon naming convention or
            the response is an icon
    """
    if record.mime_type and record.mime_type.lower() in ICON_MIME_TYPES:
        return True

    filename = last_path_component(record.url).lower()
    return re.match(FAVICON_FILENAME_REGEX, filename) is not None

def is_image(record: RequestRecord) -> bool:
    """Images never block rendering, whatever priority the browser gave them"""
    if record.resource_type == ResourceType.IMAGE:
        return True
    return bool(record.mime_type) and record.mime_type.lower().startswith("image/")

def is_iframe(record: RequestRecord, main_record: RequestRecord) -> bool:
    """Function to check whether a request is a document loaded into another frame

    Args:
        record: Checked request
        main_record: The main document of the page

    Returns:
        bool: True for documents whose frame differs from the main document frame
    """
    if record.resource_type != ResourceType.DOCUMENT:
        return False

    if record.frame_id is None or main_record.frame_id is None:
        return False

    return record.frame_id != main_record.frame_id

def is_non_network_request(record: RequestRecord) -> bool:
    """Requests such as data: URLs are served without ever touching the network"""
    return record.url.lower().startswith(NON_NETWORK_SCHEMES)

def classification_record(record: RequestRecord, terminal: RequestRecord=None) -> RequestRecord:
    """Function to pick the record whose properties decide the classification.

    A hop in the middle of a redirect which does not know its own type or priority
    is classified by the request the redirects end up in.

    Args:
        record: Classified request
        terminal: Last hop of the redirect chain of the record, followed from the
            record if not provided

    Returns:
        RequestRecord: The record itself or the terminal record of its redirect chain
    """
    if not record.is_redirect_hop():
        return record

    if record.resource_type != ResourceType.UNKNOWN and record.priority != Priority.UNKNOWN:
        return record

    if terminal is None:
        terminal = record.get_terminal_record()
    return terminal

def has_critical_type(target: RequestRecord, record: RequestRecord, options: Config) -> bool:
    """Function to check whether the resource type of a request can block rendering

    Args:
        target: Record deciding the classification
        record: The classified record, used for its initiator
        options: Instance of Config

    Returns:
        bool: True if the resource type is render blocking
    """
    critical_types = [ResourceType.from_value(t) for t in options.critical_resource_types]
    if target.resource_type in critical_types:
        return True

    # XHR and Fetch only block rendering when the parser itself asked for them
    if target.resource_type in FETCH_RESOURCE_TYPES and options.parser_initiated_fetch_is_critical:
        initiator = target.initiator or record.initiator
        return initiator is not None and initiator.kind == INITIATOR_PARSER

    return False

def is_critical(record: RequestRecord, main_record: RequestRecord, options: Config=None,\
                terminal: RequestRecord=None) -> bool:
    """Function to decide whether a request is on the critical rendering path.
    Does not look at the position of the request in the dependency graph.

    Args:
        record: Classified request
        main_record: Root document of the page, always critical
        options: Instance of Config, default settings are used if not provided
        terminal: Last hop of the redirect chain of the record, if already known

    Returns:
        bool: Whether the request is critical
    """
    if options is None:
        options = Config()

    # The main document is always critical
    if record is main_record:
        return True

    # Speculative preloads are never critical
    if record.is_link_preload:
        return False

    target = classification_record(record, terminal)

    # Favicons and other images are never render blocking
    if is_favicon(target) or is_favicon(record) or is_image(target):
        return False

    # Iframes get high priority but do not block the main document
    if is_iframe(target, main_record):
        return False

    if is_non_network_request(record):
        return False

    if not options.include_unfinished_requests:
        if not record.finished or not target.finished:
            return False

    if not has_critical_type(target, record, options):
        return False

    minimum_priority = Priority.from_value(options.minimum_critical_priority)

    # Unknown priorities sort below everything and fail closed
    if minimum_priority == Priority.UNKNOWN or target.priority == Priority.UNKNOWN:
        return False

    return target.priority >= minimum_priority
