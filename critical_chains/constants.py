# constants.py
# Specifies constants shared across the critical request chains computation
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

# Errors
GENERAL_ERROR = 1
FILE_ERROR = 51
TRAFFIC_ERROR = 52

# Paths - folders
TRAFFIC_FOLDER = "./traffic/"
RESULTS_FOLDER = "./results/"

# Suffix of the written chain files
CHAINS_FILE_SUFFIX = "_chains.json"

# Request id suffix Chrome uses for the non-terminal hops of a redirect
REDIRECT_ID_SUFFIX = ":redirect"

# Request id suffix of a redirect destination given only by its properties
DESTINATION_ID_SUFFIX = ":destination"

# Initiator types as reported by DevTools
INITIATOR_PARSER = "parser"
INITIATOR_PRELOAD = "preload"

# URL schemes of requests which never hit the network
NON_NETWORK_SCHEMES = ("data:", "blob:", "about:", "chrome:", "chrome-extension:",\
                       "devtools:", "filesystem:")

# Mime types browsers use for .ico files
ICON_MIME_TYPES = ("image/x-icon", "image/vnd.microsoft.icon")

# Last path components which identify a favicon
FAVICON_FILENAME_REGEX = r"^(favicon|apple-touch-icon|android-chrome|mstile)[\w.-]*\.(ico|png|svg|gif|jpe?g|webp)$"

# Keys of a traffic file holding records together with the main document URL
RECORDS_KEY = "records"
MAIN_DOCUMENT_URL_KEY = "mainDocumentUrl"
