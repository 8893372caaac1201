# devtools_log_loader.py
# Turn a recorded DevTools network log into request records.
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

# Custom modules
from critical_chains.constants import REDIRECT_ID_SUFFIX, INITIATOR_PRELOAD

INTERNAL_URL_PREFIXES = ("devtools://", "chrome://", "chrome-extension://",
                         "https://[ff00::]/chrome-extension://")

def is_internal_network_event(params: dict) -> bool:
    """Function to be used during network requests parsing.
    Decides whether a given network event is an internal request.

    Args:
        params: Parameters of a Network.requestWillBeSent event

    Returns:
        status (bool): Whether the provided event corresponds to an internal request
    """
    url = params.get("request", {}).get("url", "")
    document_url = params.get("documentURL", "")

    return url.startswith(INTERNAL_URL_PREFIXES) or document_url.startswith(INTERNAL_URL_PREFIXES)

def unwrap_event(log: dict) -> dict:
    """Function to obtain the DevTools event from a log entry.
    ChromeDriver performance logs wrap the event as a JSON string in "message".

    Args:
        log: Either the event itself or a performance log entry

    Returns:
        dict: Event with "method" and "params"
    """
    if "method" in log:
        return log

    message = log.get("message")
    if isinstance(message, str):
        return json.loads(message).get("message", {})

    return {}

def _new_record(params: dict) -> dict:
    """Internal function to create a record from a Network.requestWillBeSent event"""
    request = params["request"]

    record = {
        "requestId": params["requestId"],
        "url": request["url"],
        "resourceType": params.get("type"),
        "priority": request.get("initialPriority"),
        "frameId": params.get("frameId"),
        "initiator": params.get("initiator"),
        "startTime": params.get("timestamp"),
        "responseReceivedTime": None,
        "statusCode": None,
        "mimeType": None,
        "isLinkPreload": bool(request.get("isLinkPreload")) or\
                         (params.get("initiator") or {}).get("type") == INITIATOR_PRELOAD,
        "finished": False,
        "failed": False,
    }
    return record

def _apply_redirect(records: dict, params: dict) -> None:
    """Internal function to finish the previous hop of a redirect.

    The new hop takes over the original id and the previous hop becomes <id>:redirect.
    Hops recorded before it move one suffix further, so the oldest hop carries the most
    suffixes and every <X>:redirect redirects into <X>.
    """
    request_id = params["requestId"]
    previous = records.pop(request_id, None)
    if previous is None:
        return

    redirect_response = params["redirectResponse"]
    previous["statusCode"] = redirect_response.get("status")
    previous["mimeType"] = redirect_response.get("mimeType")
    previous["responseReceivedTime"] = params.get("timestamp")
    previous["finished"] = True

    # Shift the earlier hops, starting from the oldest one
    depth = 1
    while request_id + REDIRECT_ID_SUFFIX * depth in records:
        depth += 1
    for level in range(depth - 1, 0, -1):
        hop = records.pop(request_id + REDIRECT_ID_SUFFIX * level)
        hop["requestId"] = request_id + REDIRECT_ID_SUFFIX * (level + 1)
        hop["redirectDestination"] = request_id + REDIRECT_ID_SUFFIX * level
        records[hop["requestId"]] = hop

    previous["requestId"] = request_id + REDIRECT_ID_SUFFIX
    previous["redirectDestination"] = request_id
    records[previous["requestId"]] = previous

def records_from_devtools_log(log: list[dict]) -> list[dict]:
    """Function to extract request records from the Network domain events of a DevTools log

    Args:
        log: DevTools events, or ChromeDriver performance log entries wrapping them

    Returns:
        list[dict]: Request records, ordered by the time their requests were sent
    """
    records = {}

    for entry in log:
        event = unwrap_event(entry)
        method = event.get("method")
        params = event.get("params", {})

        if method == "Network.requestWillBeSent":
            # Skip internal requests
            if is_internal_network_event(params):
                continue

            if params.get("redirectResponse"):
                _apply_redirect(records, params)

            records[params["requestId"]] = _new_record(params)
            continue

        record = records.get(params.get("requestId"))
        if record is None:
            continue

        if method == "Network.responseReceived":
            response = params.get("response", {})
            record["statusCode"] = response.get("status")
            record["mimeType"] = response.get("mimeType")
            record["responseReceivedTime"] = params.get("timestamp")
            if params.get("type"):
                record["resourceType"] = params["type"]

        elif method == "Network.resourceChangedPriority":
            record["priority"] = params.get("newPriority", record["priority"])

        elif method == "Network.loadingFinished":
            record["finished"] = True

        elif method == "Network.loadingFailed":
            record["finished"] = True
            record["failed"] = True

    ordered_records = list(records.values())
    ordered_records.sort(key=lambda record: (record["startTime"] or 0, record["requestId"]))

    return ordered_records
