"""
Version spec normalization.

Turns a user-facing runtime version spec such as ``nogil-3.9``,
``3.9.10``, ``3.11-dev`` or ``3.12.0rc1`` into a semantic-version range
expression and the equivalent ``packaging`` SpecifierSet used for matching.

Steps:
1. strip the implementation prefix (``nogil`` optionally followed by ``-``)
2. desugar ``X.Y-dev`` into ``~X.Y.0-0``
3. insert the pre-release separator (``3.11a1`` -> ``3.11-a1``)
4. convert the range expression into PEP 440 specifiers

Range forms accepted in step 4:
    3.9.10         exact release          ==3.9.10
    3.9 / 3.9.x    any 3.9 release        ==3.9.*
    3 / 3.x        any 3 release          ==3.*
    ~3.9.10        tilde                  >=3.9.10,==3.9.*
    ^3.9.10        caret                  >=3.9.10,==3.*
    >=3.9 <3.11    comparators (AND)      >=3.9.0,<3.11.0
    x, *, latest   any release            (empty set)
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from runtimekit.core.exceptions import InvalidVersionSpec

logger = logging.getLogger(__name__)

IMPLEMENTATION_PREFIX = "nogil"

_DEV_VERSION_RE = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?-dev$")
_COMPACT_PRERELEASE_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)((?:a|b|rc)\d*)")
_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.]+))?$"
)
_COMPARATOR_RE = re.compile(r"^(>=|<=|==|>|<|=)?\s*(.+)$")
_WILDCARDS = {"x", "X", "*"}
_ANY = {"", "x", "X", "*", "latest"}


@dataclass(frozen=True)
class VersionRange:
    """
    A normalized version request.

    Attributes:
        spec: Original user input
        expression: Semantic-version range expression (e.g. '~3.11.0-0')
        specifier: Equivalent PEP 440 SpecifierSet
    """

    spec: str
    expression: str
    specifier: SpecifierSet

    def contains(self, version: str) -> bool:
        """
        Check whether a catalog version satisfies the range.

        Catalog versions are semantic versions; pre-releases like
        ``3.12.0-rc.1`` parse through PEP 440 normalization.
        """
        try:
            parsed = Version(version)
        except InvalidVersion:
            logger.warning(f"Ignoring unparseable catalog version: {version}")
            return False
        return self.specifier.contains(parsed)

    def __str__(self) -> str:
        return self.expression


def strip_implementation_prefix(spec: str, prefix: str = IMPLEMENTATION_PREFIX) -> str:
    """
    Remove a leading implementation name, optionally followed by '-'.

    The match is case-sensitive. Applying it twice is the same as once.

    Example:
        >>> strip_implementation_prefix("nogil-3.9.10")
        '3.9.10'
        >>> strip_implementation_prefix("nogil3.9")
        '3.9'
        >>> strip_implementation_prefix("NOGIL-3.9")
        'NOGIL-3.9'
    """
    return re.sub(rf"^{re.escape(prefix)}-?", "", spec, count=1)


def desugar_dev_version(spec: str) -> str:
    """
    Rewrite ``X.Y-dev`` (or ``X.Y.Z-dev``) as a tilde range admitting pre-releases.

    Example:
        >>> desugar_dev_version("3.11-dev")
        '~3.11.0-0'
        >>> desugar_dev_version("3.9.10-dev")
        '~3.9.10-0'
    """
    match = _DEV_VERSION_RE.match(spec)
    if not match:
        return spec
    major, minor, patch = match.groups()
    return f"~{major}.{minor}.{patch or 0}-0"


def python_version_to_semantic(spec: str) -> str:
    """
    Insert the semver pre-release separator into compact Python versions.

    Example:
        >>> python_version_to_semantic("3.11a1")
        '3.11-a1'
        >>> python_version_to_semantic("3.12.0rc2")
        '3.12.0-rc2'
    """
    return _COMPACT_PRERELEASE_RE.sub(r"\1-\2", spec)


def _parse_version_token(token: str, original: str) -> dict:
    """Split a (possibly partial) semantic version into its parts."""
    match = _VERSION_RE.match(token)
    if not match:
        raise InvalidVersionSpec(f"Unrecognized version '{token}'", original)

    parts = [match.group("major"), match.group("minor"), match.group("patch")]
    numbers: List[Optional[int]] = []
    wildcard = False
    for part in parts:
        if part is None or part in _WILDCARDS:
            wildcard = wildcard or part in _WILDCARDS
            numbers.append(None)
        elif wildcard or (numbers and numbers[-1] is None):
            raise InvalidVersionSpec(f"Unrecognized version '{token}'", original)
        else:
            numbers.append(int(part))

    pre = match.group("pre")
    if pre is not None and wildcard:
        raise InvalidVersionSpec(
            f"Pre-release tag cannot follow a wildcard: '{token}'", original
        )

    return {"numbers": numbers, "pre": pre}


def _pep440(numbers: List[Optional[int]], pre: Optional[str], original: str) -> str:
    """Render parsed parts as a PEP 440 version, padding missing parts with 0."""
    release = ".".join(str(n or 0) for n in numbers)
    if pre is None:
        return release
    if pre.isdigit():
        # semver '-0' is the lowest possible pre-release
        return f"{release}.dev{pre}"
    try:
        version = Version(f"{release}-{pre}")
    except InvalidVersion:
        raise InvalidVersionSpec(f"Unrecognized pre-release tag '{pre}'", original)
    if not version.is_prerelease:
        raise InvalidVersionSpec(f"Unrecognized pre-release tag '{pre}'", original)
    return str(version)


def _wildcard(numbers: List[Optional[int]]) -> str:
    fixed = [str(n) for n in numbers if n is not None]
    return "==" + ".".join(fixed) + ".*"


def _convert_term(term: str, original: str) -> List[str]:
    """Convert one range term into PEP 440 specifier strings."""
    if term.startswith("~") or term.startswith("^"):
        operator, token = term[0], term[1:].lstrip("=").strip()
        parsed = _parse_version_token(token, original)
        numbers, pre = parsed["numbers"], parsed["pre"]
        major, minor, patch = numbers

        if major is None:
            return []
        lower = _pep440(numbers, pre, original)

        if operator == "~":
            if minor is None:
                return [f">={lower}", f"=={major}.*"]
            return [f">={lower}", f"=={major}.{minor}.*"]

        if major > 0 or minor is None:
            return [f">={lower}", f"=={major}.*"]
        if minor > 0 or patch is None:
            return [f">={lower}", f"==0.{minor}.*"]
        return [f">={lower}", f"==0.0.{patch}.*"]

    match = _COMPARATOR_RE.match(term)
    operator, token = match.group(1), match.group(2).strip()
    parsed = _parse_version_token(token, original)
    numbers, pre = parsed["numbers"], parsed["pre"]

    if operator in (None, "=", "=="):
        if numbers[0] is None:
            return []
        if None in numbers and pre is None:
            return [_wildcard(numbers)]
        return [f"=={_pep440(numbers, pre, original)}"]

    if numbers[0] is None:
        return []

    if None in numbers and operator in (">", "<="):
        # '>3.9' means above every 3.9.x, '<=3.9' includes every 3.9.x
        fixed = [n for n in numbers if n is not None]
        fixed[-1] += 1
        bumped = fixed + [0] * (3 - len(fixed))
        bound = ".".join(str(n) for n in bumped)
        return [f">={bound}"] if operator == ">" else [f"<{bound}"]

    return [f"{operator}{_pep440(numbers, pre, original)}"]


def to_specifier(expression: str, original: Optional[str] = None) -> SpecifierSet:
    """
    Convert a semantic-version range expression into a SpecifierSet.

    Args:
        expression: Range expression (see module docstring)
        original: User input to report in errors (default: expression)

    Raises:
        InvalidVersionSpec: If the expression has no recognizable shape

    Example:
        >>> str(to_specifier("3.9"))
        '==3.9.*'
    """
    original = expression if original is None else original
    expression = expression.strip()

    if expression in _ANY:
        return SpecifierSet("")

    if "||" in expression:
        raise InvalidVersionSpec("Alternative ranges ('||') are not supported", original)

    # Join operators to their versions: '>= 3.9' -> '>=3.9'
    terms = re.sub(r"(>=|<=|==|>|<|=|~|\^)\s+", r"\1", expression).split()

    specifiers: List[str] = []
    for term in terms:
        specifiers.extend(_convert_term(term, original))

    try:
        return SpecifierSet(",".join(specifiers))
    except InvalidSpecifier as e:
        raise InvalidVersionSpec(f"Invalid version range '{expression}': {e}", original)


def normalize_version_spec(
    spec: str, prefix: str = IMPLEMENTATION_PREFIX
) -> VersionRange:
    """
    Normalize a user version spec into a VersionRange.

    Args:
        spec: Requested version (e.g. 'nogil-3.9.10', '3.9', '3.11-dev')
        prefix: Implementation prefix to strip

    Returns:
        VersionRange with the semantic expression and SpecifierSet

    Raises:
        InvalidVersionSpec: If the version spec is empty or unparseable

    Example:
        >>> normalize_version_spec("nogil-3.9.10").expression
        '3.9.10'
        >>> str(normalize_version_spec("3.11-dev").specifier)
        '==3.11.*,>=3.11.0.dev0'
    """
    if spec is None or not spec.strip():
        raise InvalidVersionSpec("Version spec cannot be empty", spec or "")

    stripped = strip_implementation_prefix(spec.strip(), prefix)
    if not stripped:
        raise InvalidVersionSpec("Version spec has no version after the prefix", spec)

    desugared = desugar_dev_version(stripped)
    semantic = python_version_to_semantic(desugared)
    specifier = to_specifier(semantic, original=spec)

    logger.debug(f"Semantic version spec of {spec} is {semantic} ({specifier})")
    return VersionRange(spec=spec, expression=semantic, specifier=specifier)
