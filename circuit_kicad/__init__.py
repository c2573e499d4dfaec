"""
Circuit JSON to KiCad converters.

Turns Circuit JSON element lists into KiCad schematics, boards and
component libraries, and exposes the conversions as MCP tools.
"""

__version__ = "0.1.0"
