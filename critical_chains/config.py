# config.py
# Configuration options of the critical request chains computation.
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
from critical_chains.constants import RESULTS_FOLDER
from critical_chains.traffic_parser.request_record import Priority, ResourceType

class Config:
    """Available configuration settings and their validation"""

    ##########################
    # Classification Settings #
    ##########################

    # Lowest priority a request can have and still be considered critical.
    # Must be one of "VeryLow", "Low", "Medium", "High", "VeryHigh".
    minimum_critical_priority = "Medium"

    # Resource types which block rendering when fetched with a high enough priority
    critical_resource_types = ["Document", "Script", "Stylesheet", "Font"]

    # Whether XHR and Fetch requests started by the HTML parser count as render blocking.
    # Requests of these types started by scripts never do.
    parser_initiated_fetch_is_critical = True

    # Whether requests that never finished loading may still be part of a chain.
    # Should not be enabled in standard situations, only for debugging incomplete logs.
    include_unfinished_requests = False

    ###################
    # Output Settings #
    ###################

    # Folder in which the computed chains are saved
    results_folder = RESULTS_FOLDER

    # How many characters of each URL are shown in text reports
    report_url_length = 100

    def _validate_number_settings(self) -> bool:
        """Internal method to check whether number values are correct

            Returns:
                status (bool): the status whether the chosen numbers are valid.
        """
        status = True

        # Expected number values must actually be numbers
        if not str(self.report_url_length).isnumeric():
            return False

        # Reports need at least some of the URL
        if int(self.report_url_length) < 10:
            status = False

        return status

    def validate_settings(self) -> bool:
        """Function to validate the chosen settings

            Returns:
                status (bool): the status whether the chosen configuration is valid.
        """
        status = True

        # Priority must be one of the known priorities
        if Priority.from_value(self.minimum_critical_priority) == Priority.UNKNOWN:
            status = False

        # Resource types must be known and there must be at least one of them
        if not self.critical_resource_types:
            status = False
        for resource_type in self.critical_resource_types:
            if ResourceType.from_value(resource_type) == ResourceType.UNKNOWN:
                status = False

        # Flags must either be true or false
        if self.parser_initiated_fetch_is_critical not in [True, False]:
            status = False

        if self.include_unfinished_requests not in [True, False]:
            status = False

        # Results need somewhere to go
        if not self.results_folder:
            status = False

        if not self._validate_number_settings():
            status = False

        return status
