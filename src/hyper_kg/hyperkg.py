#!/usr/bin/env python3
"""
hyperkg.py

Foundational source-tree extractor for the hyperbolic knowledge graph.

Best-effort lexical pass:
    path -> directory / file / member nodes, contains edges, import references

JavaScript/TypeScript sources go through a line scanner (declaration
patterns + brace-depth block matching). Python sources go through ``ast``
behind the same interface.

NO embeddings
NO metrics
NO persistence

Known failure modes of the lexical scanner: braces inside strings or
comments shift block ends, and multi-line signatures are only matched
on their first line.
"""

from __future__ import annotations

import ast
import functools
import hashlib
import os
import re
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from hyper_kg.errors import AnalysisTimeoutError, PathNotFoundError

if TYPE_CHECKING:
    from hyper_kg.graph import GraphAssembler

# ============================================================================
# Constants
# ============================================================================

NODE_TYPES = ("file", "directory", "class", "function", "interface", "module", "concept")
EDGE_TYPES = (
    "imports",
    "extends",
    "implements",
    "calls",
    "contains",
    "references",
    "similar_to",
    "depends_on",
)

DEFAULT_FILE_PATTERNS: tuple[str, ...] = (
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
    "**/*.py",
    "**/*.md",
)
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/dist/**",
    "**/.git/**",
    "**/coverage/**",
)

LANGUAGES: dict[str, str] = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript React",
    ".js": "JavaScript",
    ".jsx": "JavaScript React",
    ".py": "Python",
    ".md": "Markdown",
    ".json": "JSON",
    ".html": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
}

LEXICAL_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"}

# tried in order when a relative import names a file without its extension
_SCRIPT_SUFFIXES = (
    "",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    "/index.ts",
    "/index.tsx",
    "/index.js",
    "/index.jsx",
)
_PYTHON_SUFFIXES = (".py", "/__init__.py")

# lines kept for a block whose closing brace never shows up
_UNTERMINATED_BLOCK_LINES = 10

# ============================================================================
# Graph primitives
# ============================================================================


@dataclass(frozen=True)
class NodeMeta:
    """
    Node metadata.

    :param file_path: Absolute path of the file or directory.
    :param line_start: 1-based first line (files start at 1).
    :param line_end: 1-based last line, inclusive.
    :param complexity: Approximate cyclomatic complexity.
    :param size: Byte size for files, child count for directories.
    :param last_modified: Modification time, epoch seconds.
    :param dependencies: Every import specifier found in the file.
    :param exports: Exported names.
    :param imports: Relative (local) import specifiers.
    :param description: Preceding doc-comment or docstring.
    :param purpose: Short ``"<Kind> <name>"`` label for members.
    """

    file_path: str | None = None
    line_start: int | None = None
    line_end: int | None = None
    complexity: int | None = None
    size: int | None = None
    last_modified: float | None = None
    dependencies: tuple[str, ...] = ()
    exports: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()
    description: str | None = None
    purpose: str | None = None

    def to_dict(self) -> dict:
        modified = None
        if self.last_modified is not None:
            modified = datetime.fromtimestamp(self.last_modified, tz=timezone.utc).isoformat()
        return {
            "file_path": self.file_path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "complexity": self.complexity,
            "size": self.size,
            "last_modified": modified,
            "dependencies": list(self.dependencies),
            "exports": list(self.exports),
            "imports": list(self.imports),
            "description": self.description,
            "purpose": self.purpose,
        }


@dataclass(frozen=True)
class KnowledgeNode:
    """
    Graph node.

    :param id: Stable node id (see :func:`node_id`).
    :param type: One of :data:`NODE_TYPES`.
    :param name: Short name (file name, directory name or member name).
    :param metadata: :class:`NodeMeta`.
    :param content: Source text, only when content inclusion was requested.
    :param embedding: Point in the open unit ball (set by the embedder).
    :param position: Optional 2D position.
    """

    id: str
    type: str
    name: str
    metadata: NodeMeta = field(default_factory=NodeMeta)
    content: str | None = None
    embedding: tuple[float, ...] | None = None
    position: tuple[float, float] | None = None

    def __post_init__(self) -> None:
        if self.type not in NODE_TYPES:
            raise ValueError(f"Unknown node type: {self.type!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "position": (
                {"x": self.position[0], "y": self.position[1]}
                if self.position is not None
                else None
            ),
        }


@dataclass(frozen=True)
class KnowledgeEdge:
    """
    Directed graph edge.

    :param source: Source node id.
    :param type: One of :data:`EDGE_TYPES`.
    :param target: Target node id.
    :param weight: Non-negative weight.
    :param confidence: Optional confidence in [0, 1].
    :param description: Optional free text.
    """

    source: str
    type: str
    target: str
    weight: float = 1.0
    confidence: float | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.type not in EDGE_TYPES:
            raise ValueError(f"Unknown edge type: {self.type!r}")
        if not self.weight >= 0:
            raise ValueError(f"Edge weight must be non-negative, got {self.weight!r}")

    @property
    def id(self) -> str:
        return edge_id(self.source, self.type, self.target)

    def to_dict(self) -> dict:
        meta: dict = {}
        if self.confidence is not None:
            meta["confidence"] = self.confidence
        if self.description is not None:
            meta["description"] = self.description
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "weight": self.weight,
            "metadata": meta,
        }


@dataclass(frozen=True)
class ImportRef:
    """
    An import that may resolve to a file node once the whole tree is known.

    :param source: Importing file node id.
    :param specifier: Import specifier as written.
    :param candidates: Node ids to try, in order.
    """

    source: str
    specifier: str
    candidates: tuple[str, ...]


@dataclass(frozen=True)
class AnalyzeOptions:
    """
    Options for one analysis run.

    :param recursive: Descend into subdirectories.
    :param include_content: Attach source text to file and member nodes.
    :param max_depth: Directories at this depth or deeper are not analysed
                      (the root is depth 0).
    :param file_patterns: Glob-style patterns a file must match.
    :param exclude_patterns: Glob-style patterns that prune files and directories.
    :param timeout: Wall-clock budget in seconds for the file-system walk.
    """

    recursive: bool = True
    include_content: bool = True
    max_depth: int = 10
    file_patterns: Sequence[str] = DEFAULT_FILE_PATTERNS
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "file_patterns", tuple(self.file_patterns))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))


@dataclass
class Member:
    """A class, function or interface found inside a source file."""

    type: str
    name: str
    line_start: int
    line_end: int
    content: str
    complexity: int
    description: str | None
    purpose: str


@dataclass
class ImportSpec:
    """An import statement: specifier, whether it is local, candidate paths."""

    specifier: str
    local: bool
    candidates: tuple[str, ...] = ()


@dataclass
class SourceElements:
    """Everything member extraction finds in one file."""

    members: list[Member] = field(default_factory=list)
    imports: list[ImportSpec] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)


# ============================================================================
# Utility helpers
# ============================================================================


def node_id(path: str, member: str | None = None) -> str:
    """
    Construct a stable node id.

    :param path: Absolute path of the file or directory.
    :param member: Member name for class/function/interface nodes.
    :return: 16 hex characters of the SHA-1 of ``path`` or ``path:member``.
    """
    key = path if member is None else f"{path}:{member}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


def edge_id(source: str, rel: str, target: str) -> str:
    return f"{source}-{rel}-{target}"


def language_for(ext: str) -> str:
    return LANGUAGES.get(ext.lower(), "Unknown")


@functools.lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern:
    """Translate ``**`` / ``*`` globs to a regex anchored at the path end."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + "$")


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """
    True if the POSIX-style ``path`` matches any glob-style pattern.

    Directories are tested with a trailing ``/`` so that ``**/dist/**``
    prunes the ``dist`` directory itself.
    """
    return any(_glob_regex(p).search(path) for p in patterns)


_COMPLEXITY_PATTERNS = [
    re.compile(r"\bif\b"),
    re.compile(r"\belse\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b"),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
    re.compile(r"\?\s*:"),
]


def complexity(text: str) -> int:
    """
    Approximate cyclomatic complexity: 1 + branching/logical token count.

    A pattern scan, not control-flow analysis; tokens inside strings and
    comments count too.
    """
    return 1 + sum(len(p.findall(text)) for p in _COMPLEXITY_PATTERNS)


def find_block_end(lines: Sequence[str], start: int) -> tuple[int, str]:
    """
    Match the block opened at or after ``lines[start]`` by brace depth.

    :param lines: File lines.
    :param start: 0-based declaration line.
    :return: ``(end_line, content)`` with a 1-based inclusive end line.
    """
    depth = 0
    opened = False
    for i in range(start, len(lines)):
        for ch in lines[i]:
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
                if opened and depth == 0:
                    return i + 1, "\n".join(lines[start : i + 1])
    end = min(start + _UNTERMINATED_BLOCK_LINES, len(lines))
    return end, "\n".join(lines[start:end])


def extract_description(lines: Sequence[str], index: int) -> str:
    """
    Return the block comment immediately above ``lines[index]``.

    Walks upward over blank and ``//`` lines; stops at the first code line.
    A comment trailing code on the same line is not a description.
    """
    for i in range(index - 1, -1, -1):
        line = lines[i].strip()
        if line.endswith("*/"):
            if not line.startswith(("/*", "*")):
                return ""
            collected: list[str] = []
            for j in range(i, -1, -1):
                comment = lines[j].strip()
                collected.insert(0, comment)
                if comment.startswith("/*"):
                    break
            else:
                return ""
            cleaned = []
            for c in collected:
                c = re.sub(r"^/\*+", "", c)
                c = re.sub(r"\*+/$", "", c)
                c = re.sub(r"^\s*\*+\s?", "", c).strip()
                if c:
                    cleaned.append(c)
            return " ".join(cleaned)
        if line and not line.startswith("//") and not line.startswith("*"):
            break
    return ""


# ============================================================================
# Member extraction
# ============================================================================

_CLASS_RE = re.compile(r"^\s*(export\s+)?(abstract\s+)?class\s+(\w+)")
_FUNCTION_RE = re.compile(r"^\s*(export\s+)?(async\s+)?function\s+(\w+)")
_INTERFACE_RE = re.compile(r"^\s*(export\s+)?interface\s+(\w+)")
_IMPORT_RE = re.compile(r"""import.*from\s*['"]([^'"]+)['"];?""")
_EXPORT_RE = re.compile(r"export\s+(class|function|interface|const|let|var)\s+(\w+)")


def _is_relative(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def _script_candidates(specifier: str, file_path: Path) -> tuple[str, ...]:
    base = os.path.normpath(os.path.join(str(file_path.parent), specifier))
    return tuple(base + suffix for suffix in _SCRIPT_SUFFIXES)


def scan_script(text: str, file_path: Path) -> SourceElements:
    """
    Lexical member/import/export scan for JavaScript and TypeScript.

    :param text: File content.
    :param file_path: Absolute file path (for relative import resolution).
    """
    found = SourceElements()
    lines = text.split("\n")

    for line in lines:
        m = _IMPORT_RE.search(line)
        if m:
            spec = m.group(1)
            local = _is_relative(spec)
            found.imports.append(
                ImportSpec(spec, local, _script_candidates(spec, file_path) if local else ())
            )
        m = _EXPORT_RE.search(line)
        if m:
            found.exports.append(m.group(2))

    for i, line in enumerate(lines):
        m = _CLASS_RE.match(line)
        if m:
            name = m.group(3)
            end, body = find_block_end(lines, i)
            found.members.append(
                Member("class", name, i + 1, end, body, complexity(body),
                       extract_description(lines, i) or None, f"Class {name}")
            )
        m = _FUNCTION_RE.match(line)
        if m:
            name = m.group(3)
            end, body = find_block_end(lines, i)
            found.members.append(
                Member("function", name, i + 1, end, body, complexity(body),
                       extract_description(lines, i) or None, f"Function {name}")
            )
        m = _INTERFACE_RE.match(line)
        if m:
            name = m.group(2)
            end, body = find_block_end(lines, i)
            found.members.append(
                Member("interface", name, i + 1, end, body, 1,
                       extract_description(lines, i) or None, f"Interface {name}")
            )

    return found


def _python_candidates(base: Path, dotted: str) -> tuple[str, ...]:
    stem = os.path.normpath(os.path.join(str(base), *dotted.split(".")))
    return tuple(stem + suffix for suffix in _PYTHON_SUFFIXES)


def scan_python(text: str, file_path: Path) -> SourceElements:
    """
    ``ast``-based member/import/export extraction for Python.

    :raises SyntaxError: if the file does not parse.
    """
    tree = ast.parse(text, filename=str(file_path))
    lines = text.split("\n")
    found = SourceElements()
    explicit_all: list[str] | None = None

    for stmt in tree.body:
        if isinstance(stmt, ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef):
            kind = "class" if isinstance(stmt, ast.ClassDef) else "function"
            start = stmt.lineno
            if stmt.decorator_list:
                start = min(d.lineno for d in stmt.decorator_list)
            end = getattr(stmt, "end_lineno", None) or stmt.lineno
            body = "\n".join(lines[start - 1 : end])
            found.members.append(
                Member(kind, stmt.name, start, end, body, complexity(body),
                       ast.get_docstring(stmt) or None, f"{kind.title()} {stmt.name}")
            )

        elif isinstance(stmt, ast.Import):
            for alias in stmt.names:
                found.imports.append(ImportSpec(alias.name, False))

        elif isinstance(stmt, ast.ImportFrom):
            if not stmt.level:
                found.imports.append(ImportSpec(stmt.module or "", False))
                continue
            base = file_path.parent
            for _ in range(stmt.level - 1):
                base = base.parent
            dots = "." * stmt.level
            if stmt.module:
                found.imports.append(
                    ImportSpec(dots + stmt.module, True, _python_candidates(base, stmt.module))
                )
            else:
                for alias in stmt.names:
                    found.imports.append(
                        ImportSpec(dots + alias.name, True, _python_candidates(base, alias.name))
                    )

        elif isinstance(stmt, ast.Assign):
            targets = [t.id for t in stmt.targets if isinstance(t, ast.Name)]
            if "__all__" in targets and isinstance(stmt.value, ast.List | ast.Tuple):
                explicit_all = [
                    e.value
                    for e in stmt.value.elts
                    if isinstance(e, ast.Constant) and isinstance(e.value, str)
                ]

    if explicit_all is not None:
        found.exports = explicit_all
    else:
        found.exports = [m.name for m in found.members if not m.name.startswith("_")]
    return found


def extract_elements(text: str, file_path: Path) -> SourceElements:
    """
    Dispatch member extraction by file extension.

    Files that are neither script nor Python yield no members.
    """
    ext = file_path.suffix.lower()
    if ext in LEXICAL_EXTENSIONS:
        return scan_script(text, file_path)
    if ext == ".py":
        return scan_python(text, file_path)
    return SourceElements()


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


# ============================================================================
# Core extraction logic
# ============================================================================


def extract_path(
    path: str | Path,
    options: AnalyzeOptions | None = None,
    assembler: GraphAssembler | None = None,
) -> GraphAssembler:
    """
    Walk ``path`` and feed nodes, edges and import references to an assembler.

    Deterministic for an unchanged tree: directory entries are visited in
    name order and ids depend only on absolute paths.

    :param path: Root file or directory.
    :param options: :class:`AnalyzeOptions` (defaults when ``None``).
    :param assembler: Target assembler; a fresh one when ``None``.
    :return: The assembler.
    :raises PathNotFoundError: if ``path`` is missing or unreadable.
    :raises AnalysisTimeoutError: if ``options.timeout`` elapses.
    """
    from hyper_kg.graph import GraphAssembler

    options = options or AnalyzeOptions()
    assembler = assembler if assembler is not None else GraphAssembler()

    root = Path(path).expanduser().resolve()
    if not root.exists():
        raise PathNotFoundError(str(path))

    walk = _Walk(options, assembler, str(path))
    if root.is_dir():
        walk.directory(root, 0)
    else:
        walk.file(root, root=True)
    return assembler


class _Walk:
    """One file-system walk; owns the deadline and the assembler for the run."""

    def __init__(self, options: AnalyzeOptions, assembler: GraphAssembler, label: str) -> None:
        self.options = options
        self.asm = assembler
        self.label = label
        self.deadline = (
            time.monotonic() + options.timeout if options.timeout is not None else None
        )

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise AnalysisTimeoutError(self.label, self.options.timeout)  # type: ignore[arg-type]

    def directory(self, dir_path: Path, depth: int) -> bool:
        """Analyse one directory; ``True`` if a directory node was emitted."""
        if depth >= self.options.max_depth:
            return False
        self._check_deadline()

        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
            mtime = dir_path.stat().st_mtime
        except OSError as exc:
            if depth == 0:
                raise PathNotFoundError(self.label, reason="Path is not readable") from exc
            self.asm.warn(f"Skipped unreadable directory {dir_path}: {exc}")
            return False

        dir_id = node_id(str(dir_path))
        self.asm.add_node(
            KnowledgeNode(
                id=dir_id,
                type="directory",
                name=dir_path.name or str(dir_path),
                metadata=NodeMeta(
                    file_path=str(dir_path),
                    size=len(entries),
                    last_modified=mtime,
                ),
            )
        )

        for entry in entries:
            child = Path(entry.path)
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError as exc:
                self.asm.warn(f"Skipped {child}: {exc}")
                continue

            if is_dir:
                if not self.options.recursive:
                    continue
                if matches_any(child.as_posix() + "/", self.options.exclude_patterns):
                    continue
                if self.directory(child, depth + 1):
                    self.asm.add_edge(KnowledgeEdge(dir_id, "contains", node_id(str(child))))
            elif is_file:
                posix = child.as_posix()
                if not matches_any(posix, self.options.file_patterns):
                    continue
                if matches_any(posix, self.options.exclude_patterns):
                    continue
                if self.file(child):
                    self.asm.add_edge(KnowledgeEdge(dir_id, "contains", node_id(str(child))))

        return True

    def file(self, file_path: Path, *, root: bool = False) -> bool:
        """
        Analyse one file; ``True`` if a file node was emitted.

        Undecodable bytes become U+FFFD so the scan still sees the rest of
        the file. A read failure skips the file, or is fatal when it is the
        analysis root.
        """
        self._check_deadline()
        try:
            stat = file_path.stat()
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            if root:
                raise PathNotFoundError(self.label, reason="Path is not readable") from exc
            self.asm.warn(f"Skipped unreadable file {file_path}: {exc}")
            return False

        try:
            elements = extract_elements(text, file_path)
        except (SyntaxError, ValueError) as exc:
            self.asm.warn(f"Skipped unparsable file {file_path}: {exc}")
            return False

        include = self.options.include_content
        lines = text.split("\n")
        file_complexity = complexity(text)
        self.asm.record_file(language_for(file_path.suffix), len(lines), file_complexity)

        fpath = str(file_path)
        file_id = node_id(fpath)
        self.asm.add_node(
            KnowledgeNode(
                id=file_id,
                type="file",
                name=file_path.name,
                content=text if include else None,
                metadata=NodeMeta(
                    file_path=fpath,
                    line_start=1,
                    line_end=len(lines),
                    complexity=file_complexity,
                    size=stat.st_size,
                    last_modified=stat.st_mtime,
                    dependencies=_unique(i.specifier for i in elements.imports),
                    exports=_unique(elements.exports),
                    imports=_unique(i.specifier for i in elements.imports if i.local),
                ),
            )
        )

        for m in elements.members:
            member_id = node_id(fpath, m.name)
            self.asm.add_node(
                KnowledgeNode(
                    id=member_id,
                    type=m.type,
                    name=m.name,
                    content=m.content if include else None,
                    metadata=NodeMeta(
                        file_path=fpath,
                        line_start=m.line_start,
                        line_end=m.line_end,
                        complexity=m.complexity,
                        description=m.description,
                        purpose=m.purpose,
                    ),
                )
            )
            self.asm.add_edge(KnowledgeEdge(file_id, "contains", member_id))

        for spec in elements.imports:
            if spec.local and spec.candidates:
                self.asm.add_import(
                    ImportRef(file_id, spec.specifier, tuple(node_id(c) for c in spec.candidates))
                )

        logger.debug(
            "extracted {} ({} members, {} imports)",
            fpath,
            len(elements.members),
            len(elements.imports),
        )
        return True
