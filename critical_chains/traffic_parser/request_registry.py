# request_registry.py
# Addressable registry of the recorded requests and initiator resolution.
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

# Custom modules
from critical_chains.constants import INITIATOR_PARSER
from critical_chains.traffic_parser.request_record import RequestRecord, ResourceType

class MalformedTrafficError(Exception):
    """Raised when the recorded traffic breaks the structure chains are built on"""

def join_call_frames(stack: dict) -> list[str]:
    """Function to recursively obtain the callstack containing all parents

    Args:
        stack: initator call stack attribute
    Returns:
        list: URLs of callers in the call stack, the final caller is the last
    """
    frames = []

    # Go from the bottom -> Deepest parent first
    parent = stack.get("parent")
    if parent:
        frames.extend(join_call_frames(parent))

    # The first in the stack is the final which caused it -> should be last
    current_callframe = stack.get("callFrames", [])[::-1]
    for call in current_callframe:
        frames.append(call.get("url", ""))

    return frames

def initiator_url(record: RequestRecord) -> str:
    """Function to return the URL of whatever initiated the request

    Args:
        record: The initiated request

    Returns:
        str: initiator.url if present, else the final valid caller in the call stack,
            None if the request has no known initiator
    """
    initiator = record.initiator
    if initiator is None:
        return None

    if initiator.url:
        return initiator.url

    if initiator.stack:
        # Dynamic content with no known caller and extension wrappers are skipped
        calls = [x for x in join_call_frames(initiator.stack)
                 if x != "" and not x.startswith("chrome-extension")]
        if calls:
            return calls[-1]

    return None

class RequestRegistry:
    """Class mapping request ids to the recorded requests

    Args:
        traffic: Recorded requests, either as dicts or as RequestRecord instances
    """
    def __init__(self, traffic: list) -> None:
        """Initialization method, records can come in any order

        Raises:
            MalformedTrafficError: if two records share the same request id
        """
        self.records = {}
        self.records_by_url = {}

        for entry in traffic:
            # Links are set on the registry's own copies, the supplied records stay untouched
            if isinstance(entry, RequestRecord):
                record = entry.copy()
            else:
                record = RequestRecord.from_dict(entry)

            if record.request_id in self.records:
                raise MalformedTrafficError(f"Request id {record.request_id} was recorded twice")

            self.records[record.request_id] = record
            self.records_by_url.setdefault(record.url, []).append(record)

    def get_record(self, request_id: str) -> RequestRecord:
        """Method to return a record by its id, None if it was never recorded"""
        return self.records.get(str(request_id))

    def get_records(self) -> list[RequestRecord]:
        """Method to return all records in the order they were supplied"""
        return list(self.records.values())

    def find_by_url(self, url: str) -> list[RequestRecord]:
        """Method to return all records of a given URL"""
        return list(self.records_by_url.get(url, []))

    def is_empty(self) -> bool:
        return not self.records

    def last_recorded_hop(self, record: RequestRecord) -> RequestRecord:
        """Method to return the last recorded hop of the redirect chain a record belongs to.
        Dependents of any hop of a chain are attached under this one.

        Args:
            record: Any hop of a redirect chain

        Returns:
            RequestRecord: The final hop that is part of the recorded traffic
        """
        current = record
        seen = {current.request_id}
        while isinstance(current.redirect_destination, RequestRecord):
            destination = current.redirect_destination
            if self.get_record(destination.request_id) is not destination:
                break
            if destination.request_id in seen:
                break
            seen.add(destination.request_id)
            current = destination
        return current

    def _choose_initiator_request(self, record: RequestRecord) -> RequestRecord:
        """Internal method to pick the request which initiated a given one

        Args:
            record: Request whose initiator is searched for

        Returns:
            RequestRecord: The initiating request, None if unknown or ambiguous
        """
        url = initiator_url(record)
        if url is None:
            return None

        candidates = self.find_by_url(url)

        # The initiator must have its response before the initiated request started
        candidates = [c for c in candidates if not c.failed and
                      (c.response_received_time is None or record.start_time is None or
                       c.response_received_time <= record.start_time)]

        if len(candidates) > 1:
            # Prefetches and other unknown fetches are unlikely initiators
            non_other = [c for c in candidates if c.resource_type != ResourceType.OTHER]
            if non_other:
                candidates = non_other

        if len(candidates) > 1:
            same_frame = [c for c in candidates if c.frame_id == record.frame_id]
            if same_frame:
                candidates = same_frame

        if len(candidates) > 1 and record.initiator.kind == INITIATOR_PARSER:
            # Parser initiators are documents
            documents = [c for c in candidates if c.resource_type == ResourceType.DOCUMENT]
            if documents:
                candidates = documents

        if len(candidates) > 1:
            # A preloaded resource is requested again by its real user, the real one initiates
            preloads = [c for c in candidates if c.is_link_preload]
            non_preloads = [c for c in candidates if not c.is_link_preload]
            if preloads and non_preloads:
                candidates = non_preloads

        # Only accept an unambiguous result
        if len(candidates) != 1:
            return None

        initiator_request = self.last_recorded_hop(candidates[0])

        # A request never initiates itself
        if initiator_request is record:
            return None

        return initiator_request

    def resolve_initiators(self) -> None:
        """Method to assign the initiating request to every record which is the
        first hop of its redirect chain. Later hops depend on the previous hop.
        Redirects have to be linked before calling this."""
        for record in self.get_records():
            if record.redirect_source is not None:
                continue
            record.initiator_request = self._choose_initiator_request(record)
