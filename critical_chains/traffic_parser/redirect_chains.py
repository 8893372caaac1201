# redirect_chains.py
# Group redirect hops of the recorded traffic into logical requests.
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
from critical_chains.constants import REDIRECT_ID_SUFFIX
from critical_chains.traffic_parser.request_record import RequestRecord
from critical_chains.traffic_parser.request_registry import RequestRegistry, MalformedTrafficError

class RedirectChain:
    """Ordered hops of one logical request. The first hop is where the chain
    attaches to its initiator, every later hop hangs under the previous one."""
    def __init__(self, hops: list[RequestRecord]) -> None:
        self.hops = hops

    def get_chain_id(self) -> str:
        """Id of the first hop, the externally visible attachment point"""
        return self.hops[0].request_id

    def get_first_hop(self) -> RequestRecord:
        return self.hops[0]

    def get_terminal(self) -> RequestRecord:
        """The hop which returned content, decides the chain's classification"""
        return self.hops[-1]

    def get_hops(self) -> list[RequestRecord]:
        return self.hops

    def is_redirected(self) -> bool:
        return len(self.hops) > 1

def _link_hops(source: RequestRecord, destination: RequestRecord) -> None:
    """Set both directions of a redirect link, a record can be redirected into only once"""
    if destination.redirect_source is not None and destination.redirect_source is not source:
        raise MalformedTrafficError(f"Request {destination.request_id} is the redirect "
                                    f"destination of more than one request")
    source.redirect_destination = destination
    destination.redirect_source = source

def link_redirects(registry: RequestRegistry) -> None:
    """Function to replace redirect destination ids with the records themselves
    and set the redirect sources

    Args:
        registry: Registry with all the recorded requests
    """
    for record in registry.get_records():
        destination = record.redirect_destination

        # Destination given by properties only, already linked while parsing
        if isinstance(destination, RequestRecord):
            if registry.get_record(destination.request_id) is destination:
                _link_hops(record, destination)
            continue

        # Destination given by id
        if destination is not None:
            destination_record = registry.get_record(destination)

            # Destination never recorded, the hop is the last one we know of
            if destination_record is None:
                record.redirect_destination = None
                continue

            _link_hops(record, destination_record)

    # Chrome names earlier hops "<id>:redirect" and leaves the final hop with "<id>"
    for record in registry.get_records():
        if record.redirect_destination is not None:
            continue
        if not record.request_id.endswith(REDIRECT_ID_SUFFIX):
            continue

        destination_record = registry.get_record(record.request_id[:-len(REDIRECT_ID_SUFFIX)])
        if destination_record is not None and destination_record.redirect_source is None:
            _link_hops(record, destination_record)

def collapse_redirects(registry: RequestRegistry) -> list[RedirectChain]:
    """Function to link redirect hops and group them into chains

    Args:
        registry: Registry with all the recorded requests

    Returns:
        list[RedirectChain]: One chain per logical request, in the order the first
            hops were recorded
    """
    link_redirects(registry)

    chains = []
    visited = set()

    for record in registry.get_records():
        # Only start walking from first hops
        if record.redirect_source is not None:
            continue

        hops = [record]
        visited.add(record.request_id)
        current = record
        while isinstance(current.redirect_destination, RequestRecord):
            current = current.redirect_destination

            # Detached destinations are not recorded requests, they only classify the chain
            if registry.get_record(current.request_id) is not current:
                hops.append(current)
                break

            if current.request_id in visited:
                raise MalformedTrafficError(f"Redirect loop at request {current.request_id}")
            visited.add(current.request_id)
            hops.append(current)

        chains.append(RedirectChain(hops))

    # Whatever was not reached from a first hop only redirects in a circle
    for record in registry.get_records():
        if record.request_id not in visited:
            raise MalformedTrafficError(f"Redirect loop at request {record.request_id}")

    return chains

