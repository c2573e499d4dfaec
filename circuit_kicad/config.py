"""
Configuration settings for the Circuit JSON to KiCad converters.

Format versions, generator names, library names, unit scales and paper
sizes shared by the schematic, PCB and library converters. A couple of
values can be overridden through the environment.
"""
import os
from typing import Dict, Tuple


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# Stage driver guard: how many times one stage may step without finishing
MAX_STAGE_ITERATIONS = _env_int("CIRCUIT_KICAD_MAX_STAGE_ITERATIONS", 1000)

# Where 3D models for builtin footprints are downloaded from
MODEL_CDN_BASE_URL = os.environ.get(
    "CIRCUIT_KICAD_MODEL_CDN_BASE_URL",
    "https://modelcdn.tscircuit.com/jscad_models",
).rstrip("/")

# Generator identity written into every output file
GENERATOR = "circuit-json-to-kicad"
GENERATOR_VERSION = "0.0.1"

# File format versions
PCB_FILE_VERSION = 20241229
SCH_FILE_VERSION = 20250114
FOOTPRINT_FILE_VERSION = 20240108
SYMBOL_LIB_FILE_VERSION = 20211014

# Library-extracted footprints look like they came from pcbnew 8
FOOTPRINT_GENERATOR = "pcbnew"
FOOTPRINT_GENERATOR_VERSION = "8.0"

# Library names
DEFAULT_FOOTPRINT_LIBRARY = "tscircuit"
BUILTIN_LIBRARY_NAME = "tscircuit_builtin"
DEFAULT_USER_LIBRARY_NAME = "user"
PCM_PREFIX = "PCM_"

# Board defaults
BOARD_THICKNESS = 1.6
PCB_ORIGIN_OFFSET = (100.0, 100.0)
DEFAULT_TRACE_WIDTH = 0.25
DEFAULT_VIA_SIZE = 0.8
DEFAULT_VIA_DRILL = 0.4
SILKSCREEN_LINE_WIDTH = 0.15
EDGE_CUTS_LINE_WIDTH = 0.1

# Schematic scaling (input units -> millimetres on the sheet)
SCHEMATIC_SCALE = 15.0
CUSTOM_SYMBOL_SCALE = 15.24
CHIP_PIN_LENGTH = 6.0
CUSTOM_PIN_LENGTH = 2.54
PAPER_PADDING_MM = 20.0

# Landscape paper sizes in millimetres, smallest first
PAPER_SIZES: Dict[str, Tuple[float, float]] = {
    "A5": (210.0, 148.0),
    "A4": (297.0, 210.0),
    "A3": (420.0, 297.0),
    "A2": (594.0, 420.0),
    "A1": (841.0, 594.0),
    "A0": (1189.0, 841.0),
}

# Model path placeholders
KIPRJMOD = "${KIPRJMOD}"
KICAD_3RD_PARTY = "${KICAD9_3RD_PARTY}"
