"""
Recipe pre-processing: macro expansion and migration of legacy recipes.

Recipes written before the 2.0 dialect referred to columns by bare words
(``rename col1 col2``) and used unquoted single-character delimiters
(``split body , out``). ``RecipeMigrator`` rewrites such statements so the
2.0 grammar accepts them:

    rename col1 col2          ->  rename :col1 :col2
    drop a,b                  ->  drop :a,:b
    split-to-columns body ,   ->  split-to-columns :body ','

Column prefixing only happens for directives whose usage definition is
known, at argument positions that accept column references. Line numbers
are preserved.
"""

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..dsl.registry import DirectiveRegistry
from ..dsl.tokens import TokenType
from ..exceptions import CompileError
from ..logging_config import configure_logger_for_debug_trace

logger = configure_logger_for_debug_trace(__name__)

TARGET_VERSION = "2.0"

_MACRO_PATTERN = re.compile(r"\$\{([^${}]*)\}")
_VERSION_PATTERN = re.compile(r"#pragma\s+version\s+([0-9][0-9.]*)")

# Quoted strings, prop:{...} bodies, statement terminators and bare words.
_ARGUMENT_PATTERN = re.compile(
    r"'(?:[^'\\]|\\.)*'"
    r'|"(?:[^"\\]|\\.)*"'
    r"|\{[^}]*\}"
    r"|;"
    r"|[^\s;'\"{]+"
)
_BARE_WORD = re.compile(r"^[A-Za-z_][\w\-.]*$")
_BARE_WORD_LIST = re.compile(r"^[A-Za-z_][\w\-.]*(?:,[A-Za-z_][\w\-.]*)+$")
_SINGLE_PUNCTUATION = re.compile(r"^[^\w\s'\"{}]$")

_COLUMN_TYPES = (TokenType.COLUMN_NAME, TokenType.COLUMN_NAME_LIST)


# ============================================================
# MACROS
# ============================================================

def expand_macros(text: str, macros: Optional[Mapping[str, str]] = None) -> str:
    """
    Replace ``${name}`` references with values from ``macros``.

    Nested references are expanded innermost first, so ``${a_${b}}`` looks
    up ``b`` and then ``a_<value of b>``. Unknown macros expand to ''.
    """
    macros = macros or {}

    def replace(match: "re.Match") -> str:
        value = macros.get(match.group(1).strip())
        return "" if value is None else str(value)

    previous = None
    while previous != text:
        previous = text
        text = _MACRO_PATTERN.sub(replace, text)
    return text


# ============================================================
# VERSION
# ============================================================

def recipe_version(text: str) -> Optional[str]:
    """Return the first ``#pragma version`` value in ``text``, if any."""
    match = _VERSION_PATTERN.search(text)
    return match.group(1) if match else None


def needs_migration(text: str) -> bool:
    """
    True when the recipe is in the legacy dialect.

    Raises:
        CompileError: If the declared major version is neither 1 nor 2
    """
    version = recipe_version(text)
    if version is None:
        return True
    major = version.split(".")[0]
    if major == "1":
        return True
    if major == "2":
        return False
    raise CompileError(f"Unsupported recipe version '{version}'; supported versions are 1.x and 2.x")


# ============================================================
# MIGRATOR
# ============================================================

class RecipeMigrator:
    """
    Rewrites a legacy recipe into the 2.0 dialect.

    Usage:
        migrated = RecipeMigrator(registry).migrate(lines)
    """

    def __init__(self, registry: Optional[DirectiveRegistry] = None):
        self.registry = registry

    def migrate(self, recipe: Union[str, Sequence[str]]) -> str:
        """
        Migrate ``recipe`` and return the 2.0 text.

        Existing version pragmas are rewritten to 2.0; a recipe without one
        gets ``#pragma version 2.0;`` prepended on its first line.
        """
        text = recipe if isinstance(recipe, str) else "\n".join(recipe)
        lines = [self._migrate_line(line) for line in text.split("\n")]
        text = "\n".join(lines)

        if _VERSION_PATTERN.search(text):
            text = _VERSION_PATTERN.sub(f"#pragma version {TARGET_VERSION}", text)
        else:
            text = f"#pragma version {TARGET_VERSION}; {text}"
        return text

    def _migrate_line(self, line: str) -> str:
        matches = list(_ARGUMENT_PATTERN.finditer(line))
        replacements: List[Tuple[int, int, str]] = []

        statement: List["re.Match"] = []
        for match in matches:
            if match.group(0).startswith("//"):
                break
            if match.group(0) == ";":
                replacements.extend(self._migrate_statement(statement))
                statement = []
            else:
                statement.append(match)
        replacements.extend(self._migrate_statement(statement))

        for start, end, text in reversed(replacements):
            line = line[:start] + text + line[end:]
        return line

    def _migrate_statement(self, parts: List["re.Match"]) -> List[Tuple[int, int, str]]:
        if not parts:
            return []
        name = parts[0].group(0)
        if name.startswith("#"):
            return []

        usage = None
        if self.registry is not None and self.registry.contains(name):
            usage = self.registry.usage(name)

        replacements = []
        for index, part in enumerate(parts[1:]):
            text = part.group(0)
            slot = usage.slots[index] if usage is not None and index < len(usage.slots) else None
            rewritten = self._migrate_argument(text, slot.accepts if slot else ())
            if rewritten != text:
                replacements.append((part.start(), part.end(), rewritten))

        if replacements:
            logger.debug("Migrated '%s' arguments: %s", name, [r[2] for r in replacements])
        return replacements

    def _migrate_argument(self, text: str, accepts: Tuple[TokenType, ...]) -> str:
        if any(t in _COLUMN_TYPES for t in accepts):
            if _BARE_WORD.match(text) and text.lower() not in ("true", "false"):
                return f":{text}"
            if TokenType.COLUMN_NAME_LIST in accepts and _BARE_WORD_LIST.match(text):
                return ",".join(f":{name}" for name in text.split(","))
        if _SINGLE_PUNCTUATION.match(text):
            escaped = text.replace("\\", "\\\\")
            return f"'{escaped}'"
        return text


def prepend_load_directives(text: str, names: Sequence[str]) -> str:
    """
    Declare ``names`` as loadable at the top of the recipe.

    The pragma is added to the first line so statement line numbers do not
    move.
    """
    names = [n.strip() for n in names if n and n.strip()]
    if not names:
        return text
    return f"#pragma load-directives {', '.join(names)}; {text}"
