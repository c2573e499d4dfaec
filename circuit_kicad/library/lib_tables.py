"""
fp-lib-table and sym-lib-table generation.

Tables register libraries relative to the project directory:

    (fp_lib_table
      (lib (name "my-lib")(type "KiCad")(uri "${KIPRJMOD}/footprints/my-lib.pretty")(options "")(descr ""))
    )
"""

from typing import List, Tuple

from .. import config

# (name, type, uri, options, description)
LibraryRow = Tuple[str, str, str, str, str]


def _render_table(table_name: str, rows: List[LibraryRow]) -> str:
    lines = [f"({table_name}"]
    for name, lib_type, uri, options, descr in rows:
        lines.append(
            f'  (lib (name "{name}")(type "{lib_type}")(uri "{uri}")(options "{options}")(descr "{descr}"))'
        )
    lines.append(")")
    return "\n".join(lines) + "\n"


def footprint_library_row(library_name: str) -> LibraryRow:
    return (library_name, "KiCad", f"{config.KIPRJMOD}/footprints/{library_name}.pretty", "", "")


def symbol_library_row(library_name: str) -> LibraryRow:
    return (library_name, "KiCad", f"{config.KIPRJMOD}/symbols/{library_name}.kicad_sym", "", "")


def generate_fp_lib_table(library_name: str, include_builtin: bool = False) -> str:
    """
    fp-lib-table text listing the user library and, optionally, the builtin one.

    Args:
        library_name: User footprint library name
        include_builtin: Also register tscircuit_builtin
    """
    rows = [footprint_library_row(library_name)]
    if include_builtin:
        rows.append(footprint_library_row(config.BUILTIN_LIBRARY_NAME))
    return _render_table("fp_lib_table", rows)


def generate_sym_lib_table(library_name: str, include_user: bool = True,
                           include_builtin: bool = False) -> str:
    """sym-lib-table text; the user row is omitted when the library has no symbols."""
    rows = []
    if include_user:
        rows.append(symbol_library_row(library_name))
    if include_builtin:
        rows.append(symbol_library_row(config.BUILTIN_LIBRARY_NAME))
    return _render_table("sym_lib_table", rows)
