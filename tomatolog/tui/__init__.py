# SPDX-License-Identifier: MIT
"""Textual statistics viewer for tomatolog."""
