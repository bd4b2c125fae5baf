"""Project scanning: language/framework detection, tree rendering, samples.

Quick usage::

    from worqhat_wizard.scanner import build_project_tree, detect_project

    detected = detect_project(".")
    tree = build_project_tree(".")
"""

from worqhat_wizard.scanner.detection import DetectResult, detect_project
from worqhat_wizard.scanner.languages import (
    DEFAULT_LANGUAGE,
    LANGUAGE_PREFERENCE,
    Language,
    normalize_language,
    resolve_target_language,
)
from worqhat_wizard.scanner.samples import CodeSample, find_language_samples
from worqhat_wizard.scanner.tree import build_project_tree

__all__ = [
    "CodeSample",
    "DEFAULT_LANGUAGE",
    "DetectResult",
    "LANGUAGE_PREFERENCE",
    "Language",
    "build_project_tree",
    "detect_project",
    "find_language_samples",
    "normalize_language",
    "resolve_target_language",
]
