"""Target-language enumeration and resolution."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class Language(str, Enum):
    """Languages the backend can generate integration code for."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    RUBY = "ruby"


# First match wins.
LANGUAGE_PREFERENCE: tuple[Language, ...] = (
    Language.TYPESCRIPT,
    Language.JAVASCRIPT,
    Language.PYTHON,
    Language.RUBY,
)

DEFAULT_LANGUAGE = Language.JAVASCRIPT

# Extensions whose presence marks a language during the project scan.
EXTENSION_LANGUAGES: dict[str, Language] = {
    ".py": Language.PYTHON,
    ".rb": Language.RUBY,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
}

# Extensions considered when collecting code samples for a language.
SAMPLE_EXTENSIONS: dict[Language, tuple[str, ...]] = {
    Language.TYPESCRIPT: (".ts", ".tsx"),
    Language.JAVASCRIPT: (".js", ".jsx", ".mjs", ".cjs"),
    Language.PYTHON: (".py",),
    Language.RUBY: (".rb",),
}


def resolve_target_language(detected: Iterable[str]) -> Language:
    """Pick the preferred language present in *detected*.

    Matching is case-insensitive.  Falls back to ``DEFAULT_LANGUAGE`` when
    none of the preferred languages were detected.

    Examples::

        resolve_target_language(["python", "javascript"]) -> Language.JAVASCRIPT
        resolve_target_language(["unknown"])              -> Language.JAVASCRIPT
    """
    lowered = {lang.lower() for lang in detected}
    for candidate in LANGUAGE_PREFERENCE:
        if candidate.value in lowered:
            return candidate
    return DEFAULT_LANGUAGE


def normalize_language(value: str | None, fallback: Language = DEFAULT_LANGUAGE) -> Language:
    """Coerce a free-form language name (e.g. from the backend) to ``Language``."""
    if value:
        try:
            return Language(value.strip().lower())
        except ValueError:
            pass
    return fallback
