"""Version normalization, stability levels and constraint parsing.

Constraints use Composer-style syntax and are evaluated with
semantic_version.NpmSpec after translation:

- ``~1.2`` allows the next minor releases (``>=1.2.0 <2.0.0``)
- a bare version is exact (``1.2`` means ``=1.2.0``)
- ``,`` and whitespace both mean AND, ``|`` and ``||`` both mean OR
"""

import logging
import re
from enum import IntEnum

import semantic_version

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_STABILITY_SUFFIX = re.compile(r"@(stable|RC|beta|alpha|dev)$", re.IGNORECASE)
_PRERELEASE_STABILITY = re.compile(r"^(dev|alpha|a|beta|b|rc)\d*$", re.IGNORECASE)
_HYPHEN_RANGE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_TERM = re.compile(r"^(\^|~|[<>]=?|==?|!=)?v?(.+)$")
_OPERATOR_ONLY = re.compile(r"^(\^|~|[<>]=?|==?|!=)$")


class StabilityLevel(IntEnum):
    """Version maturity, ascending from least to most stable."""

    DEV = 0
    ALPHA = 1
    BETA = 2
    RC = 3
    STABLE = 4

    @property
    def label(self) -> str:
        return "RC" if self is StabilityLevel.RC else self.name.lower()

    @classmethod
    def parse(cls, value: "str | StabilityLevel") -> "StabilityLevel":
        """Parse a stability name case-insensitively (``RC``, ``beta``, ...)."""
        if isinstance(value, StabilityLevel):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown stability '{value}', expected one of: stable, RC, beta, alpha, dev") from None

    def __str__(self) -> str:
        return self.label


def _strip_prefix(version: str) -> str:
    version = version.strip()
    if version[:1] in ("v", "V") and version[1:2].isdigit():
        return version[1:]
    return version


def parse_version(version: str) -> semantic_version.Version:
    """Parse a loose version string (``v1.2``, ``1.0.0-beta1``) into a semantic version.

    Raises:
        ValueError: If the string is not a version (e.g. a ``dev-main`` branch alias)
    """
    return semantic_version.Version.coerce(_strip_prefix(version))


def normalize_version(version: str) -> str:
    """Return the normalized form used for comparison and lock records."""
    return str(parse_version(version))


def stability_of(version: "str | semantic_version.Version") -> StabilityLevel:
    """Classify a version by its first pre-release identifier."""
    if isinstance(version, str):
        version = parse_version(version)
    if not version.prerelease:
        return StabilityLevel.STABLE

    match = _PRERELEASE_STABILITY.match(version.prerelease[0])
    if not match:
        # patch/pl style suffixes and unknown tags count as stable releases
        return StabilityLevel.STABLE

    kind = match.group(1).lower()
    if kind == "dev":
        return StabilityLevel.DEV
    if kind in ("alpha", "a"):
        return StabilityLevel.ALPHA
    if kind in ("beta", "b"):
        return StabilityLevel.BETA
    return StabilityLevel.RC


def _pad(version: str) -> str:
    release, sep, extra = version.partition("-")
    parts = release.split(".")
    parts += ["0"] * (3 - len(parts))
    return ".".join(parts) + sep + extra


def _translate_term(term: str) -> tuple[str, bool]:
    """Translate one term into an NpmSpec string, flagged True for exact pins."""
    match = _TERM.match(term)
    if not match:
        raise ValueError(f"Invalid constraint term '{term}'")
    op, version = match.group(1) or "", match.group(2)

    if version in ("*", "x", "X"):
        if op:
            raise ValueError(f"Invalid constraint term '{term}'")
        return "*", False
    if op == "!=":
        raise ValueError(f"Operator '!=' is not supported in '{term}'")

    parts = version.split(".")
    wildcard = any(part in ("*", "x", "X") for part in parts)
    if wildcard and not op:
        fixed = [int(part) for part in parts[: [p in ("*", "x", "X") for p in parts].index(True)]]
        if not fixed:
            return "*", False
        upper = fixed[:-1] + [fixed[-1] + 1]
        return f">={_pad('.'.join(map(str, fixed)))} <{_pad('.'.join(map(str, upper)))}", False
    if op == "~" and not wildcard and len(version.split("-")[0].split(".")) == 2:
        major = int(parts[0])
        return f">={_pad(version)} <{major + 1}.0.0", False
    if op in ("^", "~") or wildcard:
        return f"{op}{version}", False
    if op in ("", "=", "=="):
        return f"={_pad(version)}", True
    return f"{op}{_pad(version)}", False


def _translate(constraint: str) -> list[list[tuple[str, bool]]]:
    """Split a constraint into OR groups of AND terms, each translated by ``_translate_term``."""
    groups = []
    for group in re.split(r"\s*\|\|?\s*", constraint.strip()):
        hyphen = _HYPHEN_RANGE.match(group)
        if hyphen:
            groups.append([(f"{_strip_prefix(hyphen.group(1))} - {_strip_prefix(hyphen.group(2))}", False)])
            continue

        terms: list[tuple[str, bool]] = []
        pending = ""
        for token in re.split(r"[\s,]+", group):
            if not token:
                continue
            if _OPERATOR_ONLY.match(token):
                # ">= 1.0" written with a space after the operator
                pending = token
                continue
            terms.append(_translate_term(pending + token))
            pending = ""
        if pending or not terms:
            raise ValueError(f"Incomplete constraint '{group}'")
        groups.append(terms)
    return groups


def _term_matches(
    spec: semantic_version.NpmSpec,
    exact: bool,
    version: semantic_version.Version,
    release: semantic_version.Version | None,
) -> bool:
    if spec.match(version):
        return True
    return not exact and release is not None and spec.match(release)


class VersionConstraint:
    """Predicate over versions built from a user-supplied constraint string.

    A ``None`` raw string is the unconstrained "any version" constraint.
    """

    def __init__(self, raw: str | None = None):
        self.raw = raw.strip() if raw is not None and raw.strip() else None
        self._groups: list[list[tuple[semantic_version.NpmSpec, bool]]] | None = None
        if self.raw is not None and self.raw != "*":
            self._groups = [
                [(semantic_version.NpmSpec(spec), exact) for spec, exact in terms] for terms in _translate(self.raw)
            ]

    @property
    def is_any(self) -> bool:
        return self._groups is None

    def matches(self, version: "str | semantic_version.Version") -> bool:
        """Check a version against the constraint.

        Pre-releases match a range term when either the full version or its
        release part matches; the stability floor decides whether they are
        eligible at all. Exact pins (``1.2.0``, ``=1.2.0``, ``==1.2.0``) only
        match the very version they name.
        """
        if self._groups is None:
            return True
        if isinstance(version, str):
            version = parse_version(version)
        release = None
        if version.prerelease:
            release = semantic_version.Version(major=version.major, minor=version.minor, patch=version.patch)
        return any(all(_term_matches(spec, exact, version, release) for spec, exact in terms) for terms in self._groups)

    def __str__(self) -> str:
        return self.raw if self.raw is not None else "*"

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r})"


def parse_version_token(
    token: str | None,
    default_stability: StabilityLevel = StabilityLevel.STABLE,
) -> tuple[VersionConstraint, StabilityLevel]:
    """Split a version token such as ``^2.0@beta`` into constraint and minimum stability.

    Args:
        token: Raw version token; empty or None means any version
        default_stability: Stability used when the token carries no ``@stability`` suffix

    Returns:
        Tuple of (constraint, minimum stability)

    Raises:
        ConfigurationError: If the constraint cannot be parsed
    """
    stability = default_stability
    if token is not None:
        match = _STABILITY_SUFFIX.search(token)
        if match:
            stability = StabilityLevel.parse(match.group(1))
            token = token[: -len(match.group(0))]

    try:
        constraint = VersionConstraint(token)
    except ValueError as e:
        raise ConfigurationError(f'Invalid version constraint "{token}": {e}', context={"token": token}) from e

    logger.debug(f"Parsed version token into constraint '{constraint}' at stability '{stability}'")
    return constraint, stability
