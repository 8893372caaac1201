# request_record.py
# The class representing one recorded network request.
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
from enum import Enum, IntEnum

# Custom modules
from critical_chains.constants import DESTINATION_ID_SUFFIX

class ResourceType(Enum):
    """Resource types as reported by DevTools, UNKNOWN for anything else"""
    DOCUMENT = "Document"
    STYLESHEET = "Stylesheet"
    IMAGE = "Image"
    MEDIA = "Media"
    FONT = "Font"
    SCRIPT = "Script"
    TEXT_TRACK = "TextTrack"
    XHR = "XHR"
    FETCH = "Fetch"
    EVENT_SOURCE = "EventSource"
    WEB_SOCKET = "WebSocket"
    MANIFEST = "Manifest"
    SIGNED_EXCHANGE = "SignedExchange"
    PING = "Ping"
    CSP_VIOLATION_REPORT = "CSPViolationReport"
    PREFLIGHT = "Preflight"
    OTHER = "Other"
    UNKNOWN = "Unknown"

    @classmethod
    def from_value(cls, value) -> "ResourceType":
        """Parse the DevTools string, missing or unrecognized values become UNKNOWN"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

class Priority(IntEnum):
    """Ordered request priorities. UNKNOWN sorts below everything else."""
    UNKNOWN = -1
    VERY_LOW = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    VERY_HIGH = 4

    @classmethod
    def from_value(cls, value) -> "Priority":
        """Parse the DevTools string ("VeryLow" ... "VeryHigh")"""
        if isinstance(value, cls):
            return value
        return _PRIORITY_NAMES.get(value, cls.UNKNOWN)

    def to_value(self) -> str:
        """Return the DevTools string of this priority"""
        for (name, priority) in _PRIORITY_NAMES.items():
            if priority == self:
                return name
        return "Unknown"

_PRIORITY_NAMES = {
    "VeryLow": Priority.VERY_LOW,
    "Low": Priority.LOW,
    "Medium": Priority.MEDIUM,
    "High": Priority.HIGH,
    "VeryHigh": Priority.VERY_HIGH,
}

class Initiator:
    """What triggered a request. The url is missing for the main document
    and for requests started by scripts with only a call stack."""
    def __init__(self, kind: str, url: str=None, stack: dict=None) -> None:
        self.kind = kind
        self.url = url
        self.stack = stack

    @classmethod
    def from_dict(cls, initiator: dict) -> "Initiator":
        if not initiator:
            return None
        return cls(initiator.get("type", "other"), initiator.get("url") or None,
                   initiator.get("stack"))

    def to_dict(self) -> dict:
        initiator = {"type": self.kind}
        if self.url:
            initiator["url"] = self.url
        if self.stack:
            initiator["stack"] = self.stack
        return initiator

class RequestRecord:
    """Class representing a single observed network request"""
    def __init__(self, request_id: str, url: str, resource_type: ResourceType=None,\
                 priority: Priority=None, frame_id: str=None, initiator: Initiator=None,\
                 start_time: float=0, response_received_time: float=None,\
                 status_code: int=None, redirect_destination=None,\
                 is_link_preload: bool=False, finished: bool=True,\
                 mime_type: str=None, failed: bool=False) -> None:
        """Init method for setting up each instance

        Args:
            request_id: Id of the request, unique within one recording
            url: URL of the requested resource
            resource_type: Type of the resource, UNKNOWN if not reported
            priority: Priority the browser fetched the resource with
            frame_id: Frame which requested the resource
            initiator: What triggered this request, None for the main document
            start_time: Time at which the request was sent
            response_received_time: Time at which the response headers arrived
            status_code: HTTP status of the response
            redirect_destination: RequestRecord (or id of it) this request redirected into
            is_link_preload: Whether the request came from <link rel=preload>
            finished: Whether the request finished loading
            mime_type: Mime type of the response
            failed: Whether the request failed
        """
        self.request_id = str(request_id)
        self.url = url or ""
        self.resource_type = ResourceType.from_value(resource_type)
        self.priority = Priority.from_value(priority)
        self.frame_id = None if frame_id is None else str(frame_id)
        self.initiator = initiator
        self.start_time = start_time
        self.response_received_time = response_received_time
        self.status_code = status_code
        self.redirect_destination = redirect_destination
        self.is_link_preload = is_link_preload
        self.finished = finished
        self.mime_type = mime_type
        self.failed = failed

        # Filled in by the RequestRegistry once all records are known
        self.redirect_source = None
        self.initiator_request = None

    @classmethod
    def from_dict(cls, record: dict) -> "RequestRecord":
        """Create a record from its JSON form as saved by the traffic logger

        Args:
            record: Dict using DevTools naming (requestId, resourceType, ...)

        Returns:
            RequestRecord: The parsed record. An inline redirectDestination dict
                is parsed into a detached record, an id string is kept as is.
        """
        destination = record.get("redirectDestination")
        new_record = cls(
            record["requestId"],
            record.get("url"),
            resource_type=record.get("resourceType"),
            priority=record.get("priority"),
            frame_id=record.get("frameId"),
            initiator=Initiator.from_dict(record.get("initiator")),
            start_time=record.get("startTime", 0),
            response_received_time=record.get("responseReceivedTime"),
            status_code=record.get("statusCode"),
            is_link_preload=bool(record.get("isLinkPreload", False)),
            finished=bool(record.get("finished", True)),
            mime_type=record.get("mimeType"),
            failed=bool(record.get("failed", False)),
        )

        if isinstance(destination, dict):
            new_record.redirect_destination = new_record._detached_destination(destination)
        elif destination is not None:
            new_record.redirect_destination = str(destination)

        return new_record

    def _detached_destination(self, destination: dict) -> "RequestRecord":
        """Internal method to parse a redirect destination given only by its
        properties. Whatever the destination doesn't specify is inherited from this hop.
        """
        inherited = {
            "requestId": self.request_id + DESTINATION_ID_SUFFIX,
            "url": self.url,
            "frameId": self.frame_id,
            "startTime": self.start_time,
        }
        inherited.update(destination)
        detached = RequestRecord.from_dict(inherited)
        detached.redirect_source = self
        return detached

    def to_dict(self) -> dict:
        """Return the JSON form of the record"""
        record = {
            "requestId": self.request_id,
            "url": self.url,
            "resourceType": self.resource_type.value,
            "priority": self.priority.to_value(),
            "frameId": self.frame_id,
            "startTime": self.start_time,
            "responseReceivedTime": self.response_received_time,
            "statusCode": self.status_code,
            "mimeType": self.mime_type,
            "isLinkPreload": self.is_link_preload,
            "finished": self.finished,
        }
        if self.initiator:
            record["initiator"] = self.initiator.to_dict()

        # Detached destinations are written whole so that they still classify the hop on reload
        if self.has_detached_destination():
            record["redirectDestination"] = self.redirect_destination.to_dict()
        elif isinstance(self.redirect_destination, RequestRecord):
            record["redirectDestination"] = self.redirect_destination.request_id
        elif self.redirect_destination is not None:
            record["redirectDestination"] = self.redirect_destination
        return record

    def has_detached_destination(self) -> bool:
        """Whether the redirect destination was given only by its properties"""
        destination = self.redirect_destination
        return isinstance(destination, RequestRecord) and\
               destination.request_id == self.request_id + DESTINATION_ID_SUFFIX

    def copy(self) -> "RequestRecord":
        """Return a new record with the same recorded values and none of the links
        set during a computation. A linked destination is kept by its id, a detached
        destination is copied along with the record.
        """
        new_record = RequestRecord(self.request_id, self.url, self.resource_type, self.priority,
                                   self.frame_id, self.initiator, self.start_time,
                                   self.response_received_time, self.status_code,
                                   is_link_preload=self.is_link_preload, finished=self.finished,
                                   mime_type=self.mime_type, failed=self.failed)

        if self.has_detached_destination():
            detached = self.redirect_destination.copy()
            detached.redirect_source = new_record
            new_record.redirect_destination = detached
        elif isinstance(self.redirect_destination, RequestRecord):
            new_record.redirect_destination = self.redirect_destination.request_id
        else:
            new_record.redirect_destination = self.redirect_destination

        return new_record

    def is_redirect_hop(self) -> bool:
        """Whether the request was redirected somewhere else"""
        return self.redirect_destination is not None

    def get_terminal_record(self) -> "RequestRecord":
        """Follow the redirects to the record that actually returned content"""
        record = self
        seen = set()
        while isinstance(record.redirect_destination, RequestRecord):
            if id(record) in seen:
                break
            seen.add(id(record))
            record = record.redirect_destination
        return record

    def __repr__(self) -> str:
        return f"RequestRecord({self.request_id!r}, {self.url!r})"
