"""
Poetry manifest model for depbump.

Loads the dependency tables of a ``pyproject.toml`` into memory, lets the
planner rewrite individual constraints, and writes the file back with every
unrelated byte untouched. Parsing goes through ``tomli``; rewriting works on
the original lines, replacing only the string literal that holds a changed
constraint, so comments, key order and formatting survive a round trip.

Recognised tables::

    [tool.poetry.dependencies]
    [tool.poetry.group.<name>.dependencies]
    [tool.poetry.dev-dependencies]

Recognised entry shapes::

    requests = "^2.31.0"
    rich = { version = "^13.0", extras = ["jupyter"] }
    click.version = "^8.1"

    [tool.poetry.dependencies.httpx]
    version = "^0.27"

Entries without a ``version`` (path, git or url dependencies) and
multiple-constraint lists are not upgradeable and are not listed.
"""

from __future__ import annotations

import re
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import tomli

from depbump.exceptions import ParseError
from depbump.models.upgrade import ProposedChange, normalize_name
from depbump.utils.filesystem import safe_read_file, safe_write_file
from depbump.utils.logger import get_logger
from depbump.constants import (
    LOCK_FILE_NAME,
    LEGACY_DEV_DEPENDENCY_TABLE,
    LEGACY_DEV_GROUP,
    MAIN_DEPENDENCY_TABLE,
    MAIN_GROUP,
)

logger = get_logger("manifest")

TablePath = Tuple[str, ...]

_HEADER_RE = re.compile(r"^\s*\[(?!\[)\s*(?P<key>[^\]]+?)\s*\]\s*(?:#.*)?$")
_KEY_VALUE_RE = re.compile(
    r"^\s*(?P<key>(?:\"[^\"]*\"|'[^']*'|[A-Za-z0-9_-]+)"
    r"(?:\s*\.\s*(?:\"[^\"]*\"|'[^']*'|[A-Za-z0-9_-]+))*)\s*=\s*(?P<value>.*)$"
)
_KEY_PART_RE = re.compile(r"\"([^\"]*)\"|'([^']*)'|([A-Za-z0-9_-]+)")
_STRING_VALUE_RE = re.compile(r"(?P<prefix>=\s*)(?P<quote>[\"'])(?P<text>[^\"'\n]*)(?P=quote)")
_VERSION_FIELD_RE = re.compile(
    r"(?P<prefix>(?:\bversion|\"version\"|'version')\s*=\s*)"
    r"(?P<quote>[\"'])(?P<text>[^\"'\n]*)(?P=quote)"
)
_PATH_FIELD_RE = re.compile(
    r"(?P<prefix>(?:(?<![\w-])path|\"path\"|'path')\s*=\s*)"
    r"(?P<quote>[\"'])(?P<text>[^\"'\n]*)(?P=quote)"
)

# How the constraint literal is located on its line
_PLAIN = "plain"
_VERSION_FIELD = "version-field"


@dataclass(frozen=True)
class ManifestEntry:
    """One upgradeable dependency declaration.

    Attributes:
        name: Package name as written in the manifest.
        constraint: Declared constraint text.
        group: Dependency group (``main``, ``dev`` or the group name).
        line_number: 1-based line holding the constraint literal.
    """

    name: str
    constraint: str
    group: str
    line_number: int


@dataclass
class _Location:
    table: TablePath
    name: str
    group: str
    line_index: int
    kind: str


class Manifest:
    """In-memory dependency manifest with change tracking.

    Args:
        text: Full manifest text.
        path: File the text was read from, if any.

    Raises:
        ParseError: The text is not valid TOML or declares no Poetry
            dependency table.

    Example::

        >>> manifest = Manifest.load("pyproject.toml")
        >>> [(e.name, e.constraint) for e in manifest.dependencies()]
        [('python', '^3.10'), ('requests', '^2.28.0')]
        >>> manifest.set_constraint("requests", "^2.31.0")
        True
        >>> manifest.save()
    """

    def __init__(self, text: str, path: Optional[Path] = None) -> None:
        self.path = path
        self._lines: List[str] = text.splitlines(keepends=True)

        data = _parse_toml(text, path)
        tables = _dependency_tables(data)
        if not tables:
            raise ParseError(
                "No [tool.poetry] dependency tables found",
                file_path=str(path) if path else None,
            )

        self._tables = tables
        self._entries: List[ManifestEntry] = []
        self._locations: Dict[str, List[_Location]] = {}
        self._original: Dict[str, str] = {}
        self._current: Dict[str, str] = {}
        self._index(tables)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Manifest":
        """Read and parse the manifest at ``path``.

        Raises:
            FileOperationError: The file is missing or unreadable.
            ParseError: The content is not a usable Poetry manifest.
        """
        manifest_path = Path(path)
        logger.debug("Loading manifest %s", manifest_path)
        return cls(safe_read_file(manifest_path), path=manifest_path)

    @classmethod
    def loads(cls, text: str) -> "Manifest":
        """Parse manifest ``text`` that has no backing file."""
        return cls(text)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def dependencies(self) -> List[ManifestEntry]:
        """Return upgradeable dependencies in declaration order.

        A package declared in several groups is listed once, at its first
        declaration, with its current in-memory constraint.
        """
        return [
            ManifestEntry(
                name=entry.name,
                constraint=self._current[normalize_name(entry.name)],
                group=entry.group,
                line_number=entry.line_number,
            )
            for entry in self._entries
        ]

    def get_constraint(self, package: str) -> Optional[str]:
        """Return the current constraint of ``package``, if declared."""
        return self._current.get(normalize_name(package))

    def __contains__(self, package: object) -> bool:
        return isinstance(package, str) and normalize_name(package) in self._current

    @property
    def lock_path(self) -> Optional[Path]:
        """Path of the lock file next to the manifest."""
        return self.path.parent / LOCK_FILE_NAME if self.path else None

    # ------------------------------------------------------------------
    # Mutation and diff tracking
    # ------------------------------------------------------------------

    def set_constraint(self, package: str, constraint: str) -> bool:
        """Rewrite the constraint of ``package`` in every table declaring it.

        Returns:
            ``True`` if the stored text changed, ``False`` when the value
            was already ``constraint``.

        Raises:
            KeyError: ``package`` is not an upgradeable dependency.
        """
        key = normalize_name(package)
        if key not in self._current:
            raise KeyError(package)

        if self._current[key] == constraint:
            return False

        for location in self._locations[key]:
            self._rewrite(location, constraint)

        logger.debug("Set %s: %s -> %s", package, self._current[key], constraint)
        self._current[key] = constraint
        return True

    def changes(self) -> List[ProposedChange]:
        """Return constraint rewrites made since load, in declaration order."""
        return [
            ProposedChange(
                package=entry.name,
                old_constraint=self._original[key],
                new_constraint=self._current[key],
            )
            for entry in self._entries
            for key in (normalize_name(entry.name),)
            if self._original[key] != self._current[key]
        ]

    def anchor_paths(self, base_dir: Union[str, Path]) -> int:
        """Make relative ``path`` dependencies absolute against ``base_dir``.

        Used when the manifest text is resolved from another directory.
        Only the path literal changes; tracked constraints are unaffected.

        Returns:
            Number of path literals rewritten.
        """
        base = Path(base_dir).resolve()
        rewritten = 0

        def anchor(match: "re.Match[str]") -> str:
            nonlocal rewritten
            text = match.group("text")
            if not text or Path(text).is_absolute():
                return match.group(0)
            rewritten += 1
            anchored = (base / text).resolve().as_posix()
            return f"{match.group('prefix')}{match.group('quote')}{anchored}{match.group('quote')}"

        for index, path, value in self._iter_keys():
            table, name = path[:-1], path[-1]
            if table in self._tables and value.startswith("{"):
                # lib = { path = "../lib", develop = true }
                pattern = _PATH_FIELD_RE
            elif name == "path" and len(path) >= 2 and path[:-2] in self._tables:
                # lib.path = "../lib" or a [tool.poetry.dependencies.lib] sub-table
                pattern = _STRING_VALUE_RE
            else:
                continue
            self._lines[index] = pattern.sub(anchor, self._lines[index], count=1)

        if rewritten:
            logger.debug("Anchored %d path dependency(ies) at %s", rewritten, base)
        return rewritten

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def dumps(self) -> str:
        """Return the manifest text including in-memory rewrites."""
        return "".join(self._lines)

    def save(
        self,
        path: Optional[Union[str, Path]] = None,
        *,
        backup: bool = False,
    ) -> Optional[Path]:
        """Write the manifest atomically.

        Args:
            path: Destination; defaults to the file it was loaded from.
            backup: Create a timestamped backup of the destination first.

        Returns:
            Path of the backup, if one was created.
        """
        destination = Path(path) if path is not None else self.path
        if destination is None:
            raise ValueError("Manifest has no path; pass a destination")

        backup_path = safe_write_file(destination, self.dumps(), create_backup=backup)
        logger.info("Wrote %s", destination)
        return backup_path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _index(self, tables: Mapping[TablePath, Tuple[str, Mapping[str, Any]]]) -> None:
        """Pair parsed declarations with the lines holding their literals."""
        located = {
            (location.table, normalize_name(location.name)): location
            for location in self._scan(tables)
        }

        found: List[Tuple[_Location, str]] = []
        for table, (_group, deps) in tables.items():
            for name, value in deps.items():
                constraint = _declared_constraint(value)
                if constraint is None:
                    logger.debug("Skipping %s: no version constraint", name)
                    continue
                location = located.get((table, normalize_name(name)))
                if location is None:
                    logger.debug("Skipping %s: constraint literal not found", name)
                    continue
                found.append((location, constraint))

        found.sort(key=lambda item: item[0].line_index)
        for location, constraint in found:
            key = normalize_name(location.name)
            self._locations.setdefault(key, []).append(location)
            if key in self._original:
                if self._original[key] != constraint:
                    logger.warning(
                        "%s is declared with different constraints; using '%s'",
                        location.name,
                        self._original[key],
                    )
                continue
            self._original[key] = constraint
            self._current[key] = constraint
            self._entries.append(
                ManifestEntry(
                    name=location.name,
                    constraint=constraint,
                    group=location.group,
                    line_number=location.line_index + 1,
                )
            )

    def _iter_keys(self) -> Iterator[Tuple[int, TablePath, str]]:
        """Yield ``(line index, full key path, raw value)`` per key/value line."""
        header: TablePath = ()

        for index, line in enumerate(self._lines):
            content = line.rstrip("\r\n")
            header_match = _HEADER_RE.match(content)
            if header_match:
                header = _split_key(header_match.group("key"))
                continue
            if content.lstrip().startswith("[["):
                # Array-of-tables entries never hold dependency declarations
                header = ("[[",)
                continue
            if content.lstrip().startswith("#"):
                continue

            kv = _KEY_VALUE_RE.match(content)
            if kv:
                yield index, header + _split_key(kv.group("key")), kv.group("value").lstrip()

    def _scan(self, tables: Mapping[TablePath, Tuple[str, Mapping[str, Any]]]) -> List[_Location]:
        locations: List[_Location] = []

        for index, path, value in self._iter_keys():
            table, name = path[:-1], path[-1]
            if table in tables and value[:1] in ("'", '"'):
                # requests = "^2.0"
                locations.append(_Location(table, name, tables[table][0], index, _PLAIN))
            elif table in tables and value.startswith("{"):
                # rich = { version = "^13" }
                locations.append(_Location(table, name, tables[table][0], index, _VERSION_FIELD))
            elif name == "version" and len(path) >= 2 and path[:-2] in tables:
                # click.version = "^8" or a [tool.poetry.dependencies.httpx] sub-table
                table, name = path[:-2], path[-2]
                locations.append(_Location(table, name, tables[table][0], index, _PLAIN))

        return locations

    def _rewrite(self, location: _Location, constraint: str) -> None:
        line = self._lines[location.line_index]
        pattern = _STRING_VALUE_RE if location.kind == _PLAIN else _VERSION_FIELD_RE

        updated, count = pattern.subn(
            lambda m: f"{m.group('prefix')}{m.group('quote')}{constraint}{m.group('quote')}",
            line,
            count=1,
        )
        if count != 1:
            raise ParseError(
                f"Cannot locate constraint of {location.name}",
                line_number=location.line_index + 1,
                line_content=line.rstrip("\r\n"),
                file_path=str(self.path) if self.path else None,
            )
        self._lines[location.line_index] = updated


def _parse_toml(text: str, path: Optional[Path]) -> Dict[str, Any]:
    try:
        return tomli.loads(text)
    except tomli.TOMLDecodeError as exc:
        raise ParseError(
            f"Invalid TOML: {exc}",
            file_path=str(path) if path else None,
        ) from exc


def _dependency_tables(data: Mapping[str, Any]) -> Dict[TablePath, Tuple[str, Mapping[str, Any]]]:
    """Map each Poetry dependency table path to ``(group, declarations)``."""
    poetry = data.get("tool", {}).get("poetry", {})
    tables: Dict[TablePath, Tuple[str, Mapping[str, Any]]] = {}

    main = poetry.get("dependencies")
    if isinstance(main, dict):
        tables[MAIN_DEPENDENCY_TABLE] = (MAIN_GROUP, main)

    groups = poetry.get("group", {})
    if isinstance(groups, dict):
        for group_name, group in groups.items():
            deps = group.get("dependencies") if isinstance(group, dict) else None
            if isinstance(deps, dict):
                tables[("tool", "poetry", "group", group_name, "dependencies")] = (group_name, deps)

    legacy = poetry.get("dev-dependencies")
    if isinstance(legacy, dict):
        tables[LEGACY_DEV_DEPENDENCY_TABLE] = (LEGACY_DEV_GROUP, legacy)

    return tables


def _declared_constraint(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("version"), str):
        return value["version"]
    return None


def _split_key(key: str) -> TablePath:
    """Split a dotted TOML key into its parts, unquoting quoted segments."""
    return tuple(
        next(group for group in match.groups() if group is not None)
        for match in _KEY_PART_RE.finditer(key)
    )
