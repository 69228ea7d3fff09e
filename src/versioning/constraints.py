"""Version ordering and constraint evaluation.

Versions order numerically segment by segment; pre-releases sort below the
release with the same numbers. Constraint syntax covers the notations seen in
Gradle build files and Maven POMs plus npm-style caret/tilde ranges.
"""

import re
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import semantic_version
from packaging import version

from .errors import MalformedVersionError, UnsatisfiableConstraintError

_MAVEN_SUFFIXES = (".release", ".final", ".ga")
_SNAPSHOT = "-snapshot"
_DYNAMIC = {"", "*", "+", "latest", "latest.release", "latest.integration"}
_OPERATOR_SPACING = re.compile(r"(>=|<=|!=|==|>|<|=)\s+")
_COMPARATOR = re.compile(r"^(>=|<=|!=|==|>|<|=)(.+)$")
_LOCAL_QUALIFIER = re.compile(r"^[A-Za-z0-9]+(?:[._][A-Za-z0-9]+)*$")


class ConstraintKind(Enum):
    """Shape of a parsed constraint."""
    ANY = "any"
    PREFERRED = "preferred"
    STRICT = "strict"
    RANGE = "range"
    MAVEN_RANGE = "maven_range"
    PREFIX = "prefix"
    NPM = "npm"


def parse_version(text: str) -> version.Version:
    """Parse a version string into a comparable object.

    Maven release suffixes are stripped, -SNAPSHOT becomes a development
    release, and an unrecognised trailing qualifier such as "-jre" is kept as
    a local label so "31.1-jre" still compares numerically.
    """
    raw = (text or "").strip()
    if not raw:
        raise MalformedVersionError(text or "", "empty version")

    normalized = raw
    lower = raw.lower()
    for suffix in _MAVEN_SUFFIXES:
        if lower.endswith(suffix):
            normalized = raw[:-len(suffix)]
            break
    if normalized.lower().endswith(_SNAPSHOT):
        normalized = normalized[:-len(_SNAPSHOT)] + ".dev0"

    try:
        return version.Version(normalized)
    except version.InvalidVersion:
        pass

    if "-" in normalized:
        base, qualifier = normalized.rsplit("-", 1)
        if _LOCAL_QUALIFIER.match(qualifier):
            try:
                return version.Version(f"{base}+{qualifier}")
            except version.InvalidVersion:
                pass
    raise MalformedVersionError(raw)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as a sorts below, equal to, or above b."""
    pa, pb = parse_version(a), parse_version(b)
    if pa < pb:
        return -1
    if pa > pb:
        return 1
    return 0


class _Bracket:
    """One Maven range such as [1.0,2.0) or the exact form [1.2]."""

    def __init__(self, text: str):
        text = text.strip()
        if len(text) < 2 or text[0] not in "[(" or text[-1] not in "])":
            raise MalformedVersionError(text, "unbalanced range")
        inner = text[1:-1]
        self.text = text
        self.exact: Optional[str] = None
        self.lower: Optional[str] = None
        self.upper: Optional[str] = None
        self.lower_inclusive = text[0] == "["
        self.upper_inclusive = text[-1] == "]"

        if "," not in inner:
            base = inner.strip()
            if not base or not (self.lower_inclusive and self.upper_inclusive):
                raise MalformedVersionError(text, "single-version range must be [x]")
            parse_version(base)
            self.exact = base
            return

        lower_str, upper_str = (p.strip() for p in inner.split(",", 1))
        if lower_str:
            parse_version(lower_str)
            self.lower = lower_str
        if upper_str:
            parse_version(upper_str)
            self.upper = upper_str

    @property
    def preferred(self) -> Optional[str]:
        if self.exact is not None:
            return self.exact
        if self.upper is not None and self.upper_inclusive:
            return self.upper
        if self.lower is not None and self.lower_inclusive:
            return self.lower
        return None

    def contains(self, ver: version.Version) -> bool:
        if self.exact is not None:
            return ver == parse_version(self.exact)
        if self.lower is not None:
            lower = parse_version(self.lower)
            if ver < lower or (not self.lower_inclusive and ver == lower):
                return False
        if self.upper is not None:
            upper = parse_version(self.upper)
            if ver > upper or (not self.upper_inclusive and ver == upper):
                return False
        return True


def _split_brackets(spec: str) -> List[str]:
    """Split a union like "[1.0,2.0),[3.0,4.0]" into its ranges."""
    ranges = []
    current = ""
    depth = 0
    for char in spec:
        if char in "[(":
            if depth == 0:
                current = ""
            depth += 1
            current += char
        elif char in "])":
            depth -= 1
            current += char
            if depth == 0:
                ranges.append(current)
                current = ""
        elif depth > 0:
            current += char
        elif char not in ", ":
            raise MalformedVersionError(spec, f"unexpected '{char}' between ranges")
        if depth < 0 or depth > 1:
            raise MalformedVersionError(spec, "unbalanced range")
    if depth != 0:
        raise MalformedVersionError(spec, "unbalanced range")
    return ranges


# (lower, lower_inclusive, upper, upper_inclusive); a None bound is open.
Interval = Tuple[Optional[str], bool, Optional[str], bool]
UNBOUNDED: Interval = (None, False, None, False)


def _join(parts) -> str:
    return ".".join(str(p) for p in parts)


def _clause_interval(op: str, text: str) -> Interval:
    if op == "==":
        return (text, True, text, True)
    if op == ">=":
        return (text, True, None, False)
    if op == ">":
        return (text, False, None, False)
    if op == "<=":
        return (None, False, text, True)
    if op == "<":
        return (None, False, text, False)
    return UNBOUNDED


def _intersect(a: Interval, b: Interval) -> Optional[Interval]:
    """Intersect two intervals; None when they do not overlap."""
    lower, lower_inclusive = a[0], a[1]
    if b[0] is not None:
        if lower is None or parse_version(b[0]) > parse_version(lower):
            lower, lower_inclusive = b[0], b[1]
        elif parse_version(b[0]) == parse_version(lower) and not b[1]:
            lower, lower_inclusive = b[0], False

    upper, upper_inclusive = a[2], a[3]
    if b[2] is not None:
        if upper is None or parse_version(b[2]) < parse_version(upper):
            upper, upper_inclusive = b[2], b[3]
        elif parse_version(b[2]) == parse_version(upper) and not b[3]:
            upper, upper_inclusive = b[2], False

    if lower is not None and upper is not None:
        low, high = parse_version(lower), parse_version(upper)
        if low > high or (low == high and not (lower_inclusive and upper_inclusive)):
            return None
    return (lower, lower_inclusive, upper, upper_inclusive)


def _upper_key(interval: Interval):
    """Sort key placing unbounded intervals above bounded ones."""
    if interval[2] is None:
        return (1, version.Version("0"))
    return (0, parse_version(interval[2]))


class VersionConstraint:
    """A parsed version constraint.

    ``preferred`` is the concrete version the constraint names (None when it
    names none, e.g. "1.+" or "(1.0,2.0)"); ``allows`` tests a candidate.
    """

    def __init__(self, raw: str, kind: ConstraintKind, preferred: Optional[str] = None):
        self.raw = raw
        self.kind = kind
        self.preferred = preferred
        self._clauses: List[Tuple[str, version.Version, str]] = []
        self._brackets: List[_Bracket] = []
        self._prefix: Tuple[int, ...] = ()
        self._npm: Optional[semantic_version.NpmSpec] = None

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r}, {self.kind.value})"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "VersionConstraint":
        """Parse a constraint string; raises MalformedVersionError."""
        text = (raw or "").strip()
        lower = text.lower()

        if lower in _DYNAMIC:
            return cls(text, ConstraintKind.ANY)

        if text.endswith("!!"):
            exact = text[:-2].strip()
            parse_version(exact)
            return cls(text, ConstraintKind.STRICT, exact)

        if text[0] in "[(":
            c = cls(text, ConstraintKind.MAVEN_RANGE)
            c._brackets = [_Bracket(r) for r in _split_brackets(text)]
            preferred = [b.preferred for b in c._brackets if b.preferred is not None]
            if preferred:
                c.preferred = max(preferred, key=parse_version)
            return c

        if text[0] in "^~" and not text.startswith("~="):
            try:
                spec = semantic_version.NpmSpec(text)
            except ValueError as exc:
                raise MalformedVersionError(text, str(exc)) from exc
            base = text.lstrip("^~=").strip()
            parse_version(base)
            c = cls(text, ConstraintKind.NPM, base)
            c._npm = spec
            return c

        if text[0] in "<>=!":
            return cls._parse_comparators(text)

        if text.endswith("+") or text.endswith("*"):
            head = text[:-1].rstrip(".")
            c = cls(text, ConstraintKind.PREFIX)
            try:
                c._prefix = tuple(int(p) for p in head.split(".")) if head else ()
            except ValueError as exc:
                raise MalformedVersionError(text, "prefix must be numeric") from exc
            return c

        parse_version(text)
        return cls(text, ConstraintKind.PREFERRED, text)

    @classmethod
    def _parse_comparators(cls, text: str) -> "VersionConstraint":
        normalized = _OPERATOR_SPACING.sub(r"\1", text)
        c = cls(text, ConstraintKind.RANGE)
        exact: Optional[str] = None
        lower: Optional[str] = None
        for token in re.split(r"[,\s]+", normalized):
            if not token:
                continue
            match = _COMPARATOR.match(token)
            if not match:
                raise MalformedVersionError(text, f"bad comparator '{token}'")
            op, ver_text = match.group(1), match.group(2).strip()
            op = "==" if op == "=" else op
            parsed = parse_version(ver_text)
            c._clauses.append((op, parsed, ver_text))
            if op == "==":
                exact = ver_text
            elif op == ">=" and (lower is None or parsed > parse_version(lower)):
                lower = ver_text
        if not c._clauses:
            raise MalformedVersionError(text, "no comparators")
        if exact is not None:
            c.kind = ConstraintKind.STRICT if len(c._clauses) == 1 else ConstraintKind.RANGE
            c.preferred = exact
        else:
            c.preferred = lower
        return c

    def allows(self, candidate: str) -> bool:
        """Return True if candidate satisfies this constraint.

        Raises MalformedVersionError when candidate cannot be parsed.
        """
        if self.kind == ConstraintKind.ANY:
            return True
        ver = parse_version(candidate)
        if self.kind == ConstraintKind.PREFERRED:
            return ver >= parse_version(self.preferred)
        if self.kind == ConstraintKind.STRICT and not self._clauses:
            return ver == parse_version(self.preferred)
        if self.kind in (ConstraintKind.STRICT, ConstraintKind.RANGE):
            return all(_compare(ver, op, bound) for op, bound, _ in self._clauses)
        if self.kind == ConstraintKind.MAVEN_RANGE:
            return any(b.contains(ver) for b in self._brackets)
        if self.kind == ConstraintKind.PREFIX:
            return ver.release[:len(self._prefix)] == self._prefix
        if self.kind == ConstraintKind.NPM:
            try:
                return self._npm.match(semantic_version.Version.coerce(candidate))
            except ValueError as exc:
                raise MalformedVersionError(candidate, str(exc)) from exc
        return False

    def intervals(self) -> List[Interval]:
        """Return the version intervals this constraint allows, as a union.

        "!=" clauses are not represented; callers re-check concrete versions
        with allows().
        """
        if self.kind == ConstraintKind.ANY:
            return [UNBOUNDED]
        if self.kind == ConstraintKind.PREFERRED:
            return [(self.preferred, True, None, False)]
        if self.kind == ConstraintKind.STRICT and not self._clauses:
            return [(self.preferred, True, self.preferred, True)]
        if self.kind in (ConstraintKind.STRICT, ConstraintKind.RANGE):
            result: Optional[Interval] = UNBOUNDED
            for op, _, text in self._clauses:
                result = _intersect(result, _clause_interval(op, text))
                if result is None:
                    return []
            return [result]
        if self.kind == ConstraintKind.MAVEN_RANGE:
            return [
                (b.exact, True, b.exact, True) if b.exact is not None
                else (b.lower, b.lower_inclusive, b.upper, b.upper_inclusive)
                for b in self._brackets
            ]
        if self.kind == ConstraintKind.PREFIX:
            if not self._prefix:
                return [UNBOUNDED]
            upper = self._prefix[:-1] + (self._prefix[-1] + 1,)
            return [(_join(self._prefix), True, _join(upper), False)]
        if self.kind == ConstraintKind.NPM:
            release = list(parse_version(self.preferred).release)
            if self.raw.startswith("^"):
                idx = next((i for i, p in enumerate(release) if p), len(release) - 1)
            else:
                idx = 1 if len(release) > 1 else 0
            upper = release[:idx] + [release[idx] + 1]
            return [(self.preferred, True, _join(upper), False)]
        return []


def _compare(ver: version.Version, op: str, bound: version.Version) -> bool:
    if op == "==":
        return ver == bound
    if op == "!=":
        return ver != bound
    if op == ">=":
        return ver >= bound
    if op == ">":
        return ver > bound
    if op == "<=":
        return ver <= bound
    return ver < bound


def pick_version(constraints: Sequence[VersionConstraint]) -> str:
    """Pick the highest preferred version that every constraint allows.

    When no named version fits, the constraints are intersected instead: all
    dynamic constraints give back the first non-empty one, a single bounded
    constraint is returned as written, and otherwise the highest common
    interval is rendered as a comparator range such as ">1.0,<2".

    Raises:
        UnsatisfiableConstraintError: the constraints share no version.
    """
    candidates: List[str] = []
    for c in constraints:
        if c.preferred is not None and c.preferred not in candidates:
            candidates.append(c.preferred)

    for candidate in sorted(candidates, key=parse_version, reverse=True):
        if all(c.allows(candidate) for c in constraints):
            return candidate

    if all(c.kind == ConstraintKind.ANY for c in constraints):
        return next((c.raw for c in constraints if c.raw), "")

    common: List[Interval] = [UNBOUNDED]
    for c in constraints:
        narrowed = []
        for a in common:
            for b in c.intervals():
                both = _intersect(a, b)
                if both is not None:
                    narrowed.append(both)
        common = narrowed
    if not common:
        raise UnsatisfiableConstraintError([c.raw for c in constraints])

    bounded = [c for c in constraints if c.kind != ConstraintKind.ANY]
    if len({c.raw for c in bounded}) == 1:
        return bounded[0].raw
    best = max(common, key=_upper_key)
    lower, lower_inclusive, upper, upper_inclusive = best
    if lower is not None and upper is not None and parse_version(lower) == parse_version(upper):
        # A single point; "!=" clauses were not part of the intersection.
        if all(c.allows(lower) for c in constraints):
            return lower
        raise UnsatisfiableConstraintError([c.raw for c in constraints])
    parts = []
    if lower is not None:
        parts.append((">=" if lower_inclusive else ">") + lower)
    if upper is not None:
        parts.append(("<=" if upper_inclusive else "<") + upper)
    return ",".join(parts)
