"""
3D model path rewriting.

Footprints generated from a project point at their models through the
project directory. Once a footprint moves into a library the path has to
follow one of three conventions:

    project:  ${KIPRJMOD}/<lib>.3dshapes/<file>
    relative: ../../3dmodels/<lib>.3dshapes/<file>
    pcm:      ${KICAD9_3RD_PARTY}/3dmodels/<package id>/<lib>.3dshapes/<file>

Only project-local paths are rewritten; a model that already points
somewhere else (an absolute path, a URL) is left alone.
"""

import copy
import re
from typing import Any, List, Optional

from .. import config
from ..converter_core.errors import ConfigurationError
from ..utils.sexpr import find_all
from .extraction import model_basename

MODEL_PATH_MODES = ("project", "relative", "pcm")

_PROJECT_MODEL_DIR = re.compile(r'3dmodels[\\/]')


def validate_model_path_mode(mode: str, package_id: Optional[str] = None) -> None:
    """
    Raises:
        ConfigurationError: For an unknown mode, or pcm mode without a package id
    """
    if mode not in MODEL_PATH_MODES:
        raise ConfigurationError(
            f"Unknown model path mode '{mode}', expected one of: {', '.join(MODEL_PATH_MODES)}"
        )
    if mode == "pcm" and not package_id:
        raise ConfigurationError("Model path mode 'pcm' requires a PCM package id")


def needs_rewrite(path: str) -> bool:
    """True for paths inside the project (${KIPRJMOD}/ or a 3dmodels folder)."""
    return f"{config.KIPRJMOD}/" in path or bool(_PROJECT_MODEL_DIR.search(path))


def resolve_model_path(path: str, library_name: str, mode: str = "relative",
                       package_id: Optional[str] = None) -> str:
    """
    Rewrite one model path for ``library_name``.

    Args:
        path: Current model path
        library_name: Library whose .3dshapes folder the model lives in
        mode: "project", "relative" or "pcm"
        package_id: PCM package identifier, required for "pcm"

    Returns:
        The rewritten path, or ``path`` unchanged if it is not project-local

    Raises:
        ConfigurationError: If the mode is invalid
    """
    validate_model_path_mode(mode, package_id)
    if not needs_rewrite(path):
        return path

    filename = model_basename(path)
    if mode == "project":
        return f"{config.KIPRJMOD}/{library_name}.3dshapes/{filename}"
    if mode == "pcm":
        return f"{config.KICAD_3RD_PARTY}/3dmodels/{package_id}/{library_name}.3dshapes/{filename}"
    return f"../../3dmodels/{library_name}.3dshapes/{filename}"


def rewrite_footprint_models(footprint: List[Any], library_name: str, mode: str = "relative",
                             package_id: Optional[str] = None) -> List[Any]:
    """Copy of ``footprint`` with every model path passed through resolve_model_path."""
    result = copy.deepcopy(footprint)
    for model in find_all(result, "model"):
        if len(model) > 1 and isinstance(model[1], str):
            model[1] = resolve_model_path(model[1], library_name, mode, package_id)
    return result
