"""
KiCad S-expression element trees

Reads and writes the parenthesised text format used by .kicad_pcb,
.kicad_sch, .kicad_mod and .kicad_sym files, on top of sexpdata.

Element trees are the nested lists sexpdata produces:

    [Symbol("pad"), "1", Symbol("smd"), Symbol("rect"),
        [Symbol("at"), 1.5, 0, 0],
        [Symbol("size"), 0.6, 0.5]]

renders as:

    (pad "1" smd rect
        (at 1.5 0 0)
        (size 0.6 0.5)
    )

Strings are always quoted, Symbols are written bare, ints and floats are
written as fixed-point numbers.
"""
from typing import Any, Iterator, List, Optional

import sexpdata
from sexpdata import Symbol

FLOAT_PRECISION = 6


class SExpressionError(ValueError):
    """Raised when S-expression text cannot be parsed or a tree cannot be rendered."""


def yes_no(flag: bool) -> Symbol:
    """KiCad boolean atom."""
    return Symbol("yes" if flag else "no")


def head(node: Any) -> Optional[str]:
    """Return the head symbol of a list node, or None for atoms and empty lists."""
    if isinstance(node, list) and node and isinstance(node[0], Symbol):
        return str(node[0])
    return None


def find(node: List[Any], key: str) -> Optional[List[Any]]:
    """Return the first direct child list whose head is ``key``."""
    for child in node[1:]:
        if head(child) == key:
            return child
    return None


def find_all(node: List[Any], key: str) -> List[List[Any]]:
    """Return every direct child list whose head is ``key``, in order."""
    return [child for child in node[1:] if head(child) == key]


def value_of(node: List[Any], key: str, default: Any = None) -> Any:
    """Return the first value of child ``key``, e.g. ``(layer "F.Cu")`` -> ``"F.Cu"``."""
    child = find(node, key)
    if child is None or len(child) < 2:
        return default
    return child[1]


def set_child(node: List[Any], child: List[Any]) -> List[Any]:
    """
    Replace the first direct child sharing ``child``'s head, or append it.

    Returns:
        The inserted child
    """
    key = head(child)
    for i, existing in enumerate(node):
        if i > 0 and head(existing) == key:
            node[i] = child
            return child
    node.append(child)
    return child


def remove_children(node: List[Any], *keys: str) -> None:
    """Remove direct children whose head (or bare symbol value) is in ``keys``."""
    wanted = set(keys)
    node[1:] = [
        child for child in node[1:]
        if not (head(child) in wanted or (isinstance(child, Symbol) and str(child) in wanted))
    ]


def walk(node: Any) -> Iterator[List[Any]]:
    """Yield ``node`` and every nested list below it, depth first."""
    if isinstance(node, list):
        yield node
        for child in node:
            yield from walk(child)


# ============================================================================
# Rendering
# ============================================================================

def _format_number(value: Any) -> str:
    if isinstance(value, int):
        return str(value)
    if value != value or value in (float("inf"), float("-inf")):
        raise SExpressionError(f"Cannot render non-finite number: {value}")
    # KiCad does not read exponent notation
    text = f"{value:.{FLOAT_PRECISION}f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def _format_atom(atom: Any) -> str:
    if isinstance(atom, Symbol):
        return str(atom)
    if isinstance(atom, bool):
        return "yes" if atom else "no"
    if isinstance(atom, (int, float)):
        return _format_number(atom)
    if isinstance(atom, str):
        return sexpdata.dumps(atom)
    raise SExpressionError(f"Cannot render atom of type {type(atom).__name__}: {atom!r}")


def _render(node: Any, depth: int, lines: List[str]) -> None:
    indent = "\t" * depth
    if not isinstance(node, list):
        lines.append(indent + _format_atom(node))
        return

    if not any(isinstance(child, list) for child in node):
        lines.append(indent + "(" + " ".join(_format_atom(child) for child in node) + ")")
        return

    # Leading atoms stay on the opening line, everything after the first
    # nested list goes on its own line
    opening = []
    rest_start = len(node)
    for i, child in enumerate(node):
        if isinstance(child, list):
            rest_start = i
            break
        opening.append(_format_atom(child))

    lines.append(indent + "(" + " ".join(opening))
    for child in node[rest_start:]:
        _render(child, depth + 1, lines)
    lines.append(indent + ")")


def dumps(tree: List[Any]) -> str:
    """
    Render an element tree as KiCad S-expression text.

    Args:
        tree: Root list node

    Returns:
        Text terminated by a newline

    Raises:
        SExpressionError: If the tree holds values that cannot be rendered
    """
    if not isinstance(tree, list) or not tree:
        raise SExpressionError("Root of an element tree must be a non-empty list")
    lines: List[str] = []
    _render(tree, 0, lines)
    return "\n".join(lines) + "\n"


# ============================================================================
# Parsing
# ============================================================================

def loads(text: str) -> List[Any]:
    """
    Parse one S-expression from text.

    Args:
        text: KiCad file content

    Returns:
        The root list node

    Raises:
        SExpressionError: If the text is empty, malformed, or not a list
    """
    if not text or not text.strip():
        raise SExpressionError("No S-expression found")
    try:
        # KiCad has no nil/t atoms
        tree = sexpdata.loads(text, nil=None, true=None)
    except Exception as e:
        raise SExpressionError(f"Failed to parse S-expression content: {e}") from e
    if not isinstance(tree, list):
        raise SExpressionError("Top-level expression is not a list")
    return tree
