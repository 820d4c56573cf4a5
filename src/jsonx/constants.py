# topmark:header:start
#
#   project      : jsonx
#   file         : constants.py
#   file_relpath : src/jsonx/constants.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""jsonx constants."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

try:
    JSONX_VERSION: str = get_version("jsonx")
except PackageNotFoundError:  # running from a source checkout
    JSONX_VERSION = "0.0.0"
