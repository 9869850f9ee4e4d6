# SPDX-License-Identifier: MIT
"""Version information for tomatolog."""

__version__ = "0.4.0"
