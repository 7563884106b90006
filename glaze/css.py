"""Stylesheet bundling and cross-reference rewriting.

A stylesheet is processed in two steps. :class:`StylesheetBundler` inlines
local ``@import`` rules and swaps every ``url()`` reference for a unique
placeholder token, recording a :class:`Dependency` for each one. Once the
referenced assets have been published, :func:`resolve_bundle` looks every
dependency up in the :class:`~glaze.manifest.Manifest` and substitutes the
placeholders with published URLs.
"""

from __future__ import annotations

import posixpath
import re
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Set, Tuple
from urllib.parse import unquote

import rcssmin

from .errors import AssetIOError, StylesheetError, UnresolvedReferenceError
from .logging import get_logger
from .manifest import Manifest

_IMPORT_RE = re.compile(
    r"""@import\s*
        (?:
            url\(\s*(?P<q1>['"]?)(?P<url1>[^'")]*)(?P=q1)\s*\)
          | (?P<q2>['"])(?P<url2>[^'"]*)(?P=q2)
        )
        \s*(?P<conditions>[^;]*);""",
    re.IGNORECASE | re.VERBOSE,
)
_URL_RE = re.compile(
    r"""(?<![\w-])url\(\s*(?P<quote>['"]?)(?P<url>.*?)(?P=quote)\s*\)""",
    re.IGNORECASE | re.DOTALL,
)
_CHARSET_RE = re.compile(r"""@charset\s*(['"])[^'"]*\1\s*;""", re.IGNORECASE)
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
# Bare `layer` or `layer(name)`, the first of the optional @import conditions.
_LAYER_RE = re.compile(r"layer(?:\(\s*(?P<name>[^()]*?)\s*\)|(?![\w(-]))", re.IGNORECASE)
_SUPPORTS_OPEN = "supports("

_EXTERNAL_PREFIXES = ("http://", "https://", "//")
_NON_FILE_PREFIXES = ("data:", "#", "about:", "blob:", "javascript:")

DependencyKind = Literal["url", "import"]

logger = get_logger("css")


@dataclass(frozen=True)
class Dependency:
    """A single cross-reference found while bundling a stylesheet."""

    placeholder: str
    source: Path
    url: str
    kind: DependencyKind = "url"

    @property
    def external(self) -> bool:
        return is_external(self.url)


@dataclass
class Bundle:
    """Bundled stylesheet text with unresolved placeholder tokens."""

    entry: Path
    code: str
    nonce: str
    dependencies: List[Dependency] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)

    def local_keys(self, root: Path) -> Set[str]:
        """Logical keys of every non-external reference in this bundle."""
        keys: Set[str] = set()
        for dependency in self.dependencies:
            if dependency.external:
                continue
            path_part, _ = split_url(dependency.url)
            keys.add(logical_key_for(path_part, dependency.source, root))
        return keys

    def substitute(self, replacements: Mapping[str, str]) -> str:
        pattern = re.compile(rf"__glaze_{self.nonce}_\d+__")

        def _replace(match: re.Match[str]) -> str:
            token = match.group(0)
            if token not in replacements:
                raise StylesheetError(f"{self.entry}: no replacement for placeholder {token}")
            return replacements[token]

        return pattern.sub(_replace, self.code)


@dataclass(frozen=True)
class ImportConditions:
    """What follows the URL of an ``@import``: ``layer``, ``supports()`` and a media list.

    Inlining an import has to keep those conditions, so the imported rules
    are wrapped in the matching ``@layer``, ``@supports`` and ``@media``
    blocks (innermost first).
    """

    layer: Optional[str] = None
    supports: Optional[str] = None
    media: str = ""

    @classmethod
    def parse(cls, text: str, importer: Path) -> "ImportConditions":
        rest = text.strip()
        layer: Optional[str] = None
        match = _LAYER_RE.match(rest)
        if match:
            layer = match.group("name") or ""
            rest = rest[match.end() :].strip()

        supports: Optional[str] = None
        if rest.lower().startswith(_SUPPORTS_OPEN):
            close = _closing_paren(rest, len(_SUPPORTS_OPEN) - 1)
            if close is None:
                raise StylesheetError(f"{importer}: unbalanced supports() in @import")
            supports = rest[len(_SUPPORTS_OPEN) : close].strip()
            if not supports:
                raise StylesheetError(f"{importer}: empty supports() in @import")
            rest = rest[close + 1 :].strip()

        return cls(layer=layer, supports=supports, media=rest)

    def wrap(self, content: str) -> str:
        if self.layer is not None:
            name = f" {self.layer}" if self.layer else ""
            content = f"@layer{name}{{{content}}}"
        if self.supports is not None:
            content = f"@supports ({self.supports}){{{content}}}"
        if self.media:
            content = f"@media {self.media}{{{content}}}"
        return content


def _closing_paren(text: str, open_index: int) -> Optional[int]:
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def is_external(url: str) -> bool:
    return url.strip().lower().startswith(_EXTERNAL_PREFIXES)


def is_file_reference(url: str) -> bool:
    stripped = url.strip()
    if not stripped:
        return False
    return not stripped.lower().startswith(_NON_FILE_PREFIXES)


def split_url(url: str) -> Tuple[str, str]:
    """Split ``url`` into its path and its ``?query``/``#fragment`` suffix."""
    cut = len(url)
    for marker in ("?", "#"):
        index = url.find(marker)
        if index != -1:
            cut = min(cut, index)
    return url[:cut], url[cut:]


def logical_key_for(url: str, referrer: Path, root: Path) -> str:
    """Normalise a stylesheet reference into a root-relative logical key.

    Relative URLs resolve against the referencing file's directory; a leading
    ``/`` makes the URL relative to the asset root itself.
    """
    path_part = unquote(url.strip())
    if path_part.startswith("/"):
        candidate = posixpath.normpath(path_part.lstrip("/"))
    else:
        try:
            rel_dir = referrer.parent.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            raise UnresolvedReferenceError(
                url, referrer, "referencing file lies outside the asset root"
            ) from None
        candidate = posixpath.normpath(posixpath.join(rel_dir, path_part))

    if candidate in (".", "..") or candidate.startswith("../"):
        raise UnresolvedReferenceError(url, referrer, "path escapes the asset root")
    return candidate


class _BundleState:
    def __init__(self) -> None:
        self.nonce = secrets.token_hex(4)
        self.dependencies: List[Dependency] = []
        self.files: List[Path] = []
        self.external_imports: List[str] = []
        self.charset: str | None = None

    def placeholder_for(self, source: Path, url: str, kind: DependencyKind) -> str:
        token = f"__glaze_{self.nonce}_{len(self.dependencies)}__"
        self.dependencies.append(Dependency(placeholder=token, source=source, url=url, kind=kind))
        return token


class StylesheetBundler:
    """Inline ``@import`` chains and collect ``url()`` dependencies."""

    def __init__(self, root: Path, *, minify: bool = True) -> None:
        self.root = root.resolve()
        self.minify = minify
        self._separator = "" if minify else "\n"

    def bundle(self, entry: Path) -> Bundle:
        state = _BundleState()
        body = self._inline(entry.resolve(), state, chain=())
        head = list(state.external_imports)
        if state.charset:
            head.insert(0, state.charset)
        code = self._separator.join([*head, body]) if head else body
        logger.debug(
            "Bundled %s (%d file(s), %d reference(s))",
            entry,
            len(state.files),
            len(state.dependencies),
        )
        return Bundle(
            entry=entry,
            code=code,
            nonce=state.nonce,
            dependencies=state.dependencies,
            files=state.files,
        )

    def _read(self, path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise StylesheetError(f"{path}: stylesheet is not valid UTF-8 ({exc})") from exc
        except OSError as exc:
            raise AssetIOError(path, exc.strerror or str(exc)) from exc
        if self.minify:
            return rcssmin.cssmin(text)
        return _COMMENT_RE.sub("", text)

    def _import_target(self, url: str, importer: Path) -> Path:
        path_part, _ = split_url(url)
        path_part = unquote(path_part.strip())
        if path_part.startswith("/"):
            target = self.root / path_part.lstrip("/")
        else:
            target = importer.parent / path_part
        target = target.resolve()
        if not target.is_file():
            raise UnresolvedReferenceError(url, importer, "imported stylesheet does not exist")
        return target

    def _inline(self, path: Path, state: _BundleState, chain: Tuple[Path, ...]) -> str:
        if path in chain:
            cycle = " -> ".join(str(item) for item in (*chain, path))
            raise StylesheetError(f"Circular @import: {cycle}")
        if path in state.files:
            # Each file is emitted once, at its first import.
            return ""
        state.files.append(path)

        text = self._read(path)
        charset = _CHARSET_RE.search(text)
        if charset and state.charset is None and not chain:
            state.charset = charset.group(0)
        text = _CHARSET_RE.sub("", text)

        inlined: List[str] = []
        body_parts: List[str] = []
        cursor = 0
        for match in _IMPORT_RE.finditer(text):
            body_parts.append(text[cursor : match.start()])
            cursor = match.end()
            url = match.group("url1") if match.group("url1") is not None else match.group("url2")
            conditions_text = match.group("conditions").strip()

            if is_external(url):
                token = state.placeholder_for(path, url, "import")
                rule = f'@import url("{token}")'
                state.external_imports.append(
                    f"{rule} {conditions_text};" if conditions_text else f"{rule};"
                )
                continue

            conditions = ImportConditions.parse(conditions_text, path)
            target = self._import_target(url, path)
            content = self._inline(target, state, (*chain, path))
            if content:
                inlined.append(conditions.wrap(content))
        body_parts.append(text[cursor:])

        def _rewrite(match: re.Match[str]) -> str:
            url = match.group("url").strip()
            if not is_file_reference(url):
                return match.group(0)
            token = state.placeholder_for(path, url, "url")
            return f'url("{token}")'

        body = _URL_RE.sub(_rewrite, "".join(body_parts)).strip()
        pieces = [*inlined, body] if body else inlined
        return self._separator.join(pieces)


def resolve_dependency(
    dependency: Dependency, manifest: Manifest, *, root: Path, public_url: str = "/"
) -> str:
    """Return the URL that replaces ``dependency``'s placeholder."""
    if dependency.external:
        return dependency.url
    path_part, suffix = split_url(dependency.url)
    key = logical_key_for(path_part, dependency.source, root)
    published = manifest.lookup(key)
    if published is None:
        raise UnresolvedReferenceError(key, dependency.source)
    return f"{public_url.rstrip('/')}/{published}{suffix}"


def resolve_bundle(
    bundle: Bundle, manifest: Manifest, *, root: Path, public_url: str = "/"
) -> str:
    """Substitute every placeholder in ``bundle`` with its published URL."""
    replacements: Dict[str, str] = {}
    for dependency in bundle.dependencies:
        replacements[dependency.placeholder] = resolve_dependency(
            dependency, manifest, root=root, public_url=public_url
        )
    return bundle.substitute(replacements)


__all__ = [
    "Bundle",
    "Dependency",
    "ImportConditions",
    "StylesheetBundler",
    "is_external",
    "is_file_reference",
    "logical_key_for",
    "resolve_bundle",
    "resolve_dependency",
    "split_url",
]
