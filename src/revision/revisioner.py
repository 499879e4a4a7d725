# src/revision/revisioner.py - v3
"""Static asset revisioning: embed content tokens in filenames, rewrite references.

A revisioned file is named ``<stem>.<token><ext>`` where token is the
leading hex of the file's final content digest. Eligible files that
reference other eligible files are handled after them, so their own
token is computed over already rewritten content. A file whose stem
already ends in its own content token is recognized and keeps its name
as long as nothing it references is renamed; otherwise it is re-hashed
and renamed from its original stem, and references to its previous
name are rewritten like references to its original.

References are rewritten by literal match of the original path relative
to the tree root, delimited so that ``styles/main.css`` never matches
inside ``styles/main.css.map`` or ``otherstyles/main.css``.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from polyship.cache.fingerprint import content_token, digest_bytes, file_digest, file_token
from polyship.core.errors import CollisionError, UnresolvedReferenceError
from polyship.revision.models import RevisionRecord

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".css", ".js")
DEFAULT_SCAN_EXTENSIONS = (".html", ".css", ".js", ".json")


@dataclass
class _Item:
    """An eligible file, under its original and its current path."""

    original: str
    current: str
    data: bytes
    rewritten: bool = False


class Revisioner:
    """Revision eligible files of an artifact tree in place.

    Args:
        extensions: Suffixes of files that get revisioned.
        exclude: fnmatch globs (relative posix paths) never revisioned.
        scan_extensions: Suffixes of text artifacts scanned for references.
        token_length: Number of hex characters embedded in filenames.
    """

    def __init__(
        self,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        exclude: Sequence[str] = (),
        scan_extensions: Sequence[str] = DEFAULT_SCAN_EXTENSIONS,
        token_length: int = 8,
    ) -> None:
        self._extensions = {e.lower() for e in extensions}
        self._exclude = list(exclude)
        self._scan_extensions = {e.lower() for e in scan_extensions}
        self._token_length = token_length
        self._token_re = re.compile(
            rf"^(?P<stem>.+)\.(?P<token>[0-9a-f]{{{token_length}}})$"
        )

    def revision(self, root: Path) -> RevisionRecord:
        """Revision the tree under root and return the mapping.

        Raises:
            FingerprintComputationError: If an eligible file cannot be read.
            CollisionError: If two originals would share a revisioned path.
            UnresolvedReferenceError: If a text artifact cannot be rewritten,
                eligible files reference each other in a cycle, or the
                result is not consistent.
        """
        root = Path(root)
        if not root.is_dir():
            raise UnresolvedReferenceError(f"Artifact tree {root} does not exist")

        items = self._collect(root, _list_files(root))
        references: dict[str, set[str]] = {}
        renames = self._plan(root, items, references)
        self._rewrite_references(root, renames, items, references)
        entries = {o: item.current for o, item in items.items()}
        self._verify(root, entries, renames)

        renamed = sum(1 for o, r in entries.items() if o != r)
        refs = {o: sorted(f) for o, f in sorted(references.items())}
        logger.info(
            "Revisioned %d files (%d renamed), rewrote references in %d files",
            len(entries),
            renamed,
            len({f for fs in refs.values() for f in fs}),
        )
        return RevisionRecord(entries=dict(sorted(entries.items())), references=refs)


    def is_eligible(self, rel: str) -> bool:
        if PurePosixPath(rel).suffix.lower() not in self._extensions:
            return False
        return not any(fnmatch.fnmatch(rel, pat) for pat in self._exclude)

    def is_scanned(self, rel: str) -> bool:
        return PurePosixPath(rel).suffix.lower() in self._scan_extensions

    def split_revisioned(self, rel: str, token: str) -> str | None:
        """Original path of rel if its name already carries token, else None."""
        p = PurePosixPath(rel)
        m = self._token_re.match(p.stem)
        if m and m.group("token") == token:
            return str(p.with_name(m.group("stem") + p.suffix))
        return None

    def revisioned_name(self, rel: str, data: bytes) -> str:
        p = PurePosixPath(rel)
        token = content_token(data, self._token_length)
        return str(p.with_name(f"{p.stem}.{token}{p.suffix}"))

    # --- Planning ---

    def _collect(self, root: Path, files: list[str]) -> dict[str, _Item]:
        """Eligible files keyed by original path.

        A bare original lying next to an identical revision of itself is a
        stale copy and is dropped from the tree.
        """
        found: dict[str, list[str]] = {}
        for rel in files:
            if not self.is_eligible(rel):
                continue
            token = file_token(root / rel, self._token_length)
            original = self.split_revisioned(rel, token) or rel
            found.setdefault(original, []).append(rel)

        items: dict[str, _Item] = {}
        for original, paths in found.items():
            current = paths[0]
            if len(paths) > 1:
                revised = [p for p in paths if p != original]
                if len(revised) > 1:
                    raise CollisionError(
                        f"'{original}' has two revisions in the tree: "
                        f"'{revised[0]}' and '{revised[1]}'"
                    )
                current = revised[0]
                if file_digest(root / original) != file_digest(root / current):
                    raise CollisionError(
                        f"'{original}' has two revisions in the tree: "
                        f"'{original}' and '{current}'"
                    )
                (root / original).unlink()
                logger.debug("Removed stale copy %s of %s", original, current)
            items[original] = _Item(original, current, (root / current).read_bytes())
        return items

    def _plan(
        self,
        root: Path,
        items: dict[str, _Item],
        references: dict[str, set[str]],
    ) -> dict[str, str]:
        """Revision every eligible file, dependencies first.

        Files already carrying a token are planned too: once a file they
        reference is renamed their content changes and so does their token.
        Returns every name (original or previous revision) that now maps to
        a different path.
        """
        owners = {o: o for o in items}
        owners.update({item.current: o for o, item in items.items()})
        pattern = reference_pattern(list(owners)) if items else None

        depends: dict[str, set[str]] = {o: set() for o in items}
        for original, item in items.items():
            if pattern is None or not self.is_scanned(original):
                continue
            text = _decode(item.current, item.data)
            depends[original] = {owners[m.group(0)] for m in pattern.finditer(text)}
            if original in depends[original]:
                raise UnresolvedReferenceError(f"'{item.current}' references itself")

        renames: dict[str, str] = {}
        initial = {item.current: o for o, item in items.items()}
        claimed: dict[str, str] = {}
        for original in _dependency_order(depends):
            item = items[original]
            hits: set[str] = set()
            if pattern is not None and self.is_scanned(original):
                data, matched = _substitute(pattern, _decode(item.current, item.data), renames)
                item.rewritten = data != item.data
                item.data = data
                hits = {owners[name] for name in matched}

            revised = self.revisioned_name(original, item.data)
            for target in hits:
                references.setdefault(target, set()).add(revised)
            owner = claimed.get(revised)
            if owner is not None:
                raise CollisionError(f"'{owner}' and '{original}' both map to '{revised}'")
            holder = initial.get(revised)
            if holder is not None and holder != original:
                raise CollisionError(
                    f"'{revised}' already exists with different content than '{original}'"
                )
            dst = root / revised
            if holder is None and dst.exists() and file_digest(dst) != digest_bytes(item.data):
                raise CollisionError(
                    f"'{revised}' already exists with different content than '{original}'"
                )

            previous = item.current
            self._move(root, item, revised)
            claimed[revised] = original
            for name in (original, previous):
                if name != revised:
                    renames[name] = revised
        return renames

    @staticmethod
    def _move(root: Path, item: _Item, revised: str) -> None:
        src = root / item.current
        dst = root / revised
        if revised == item.current:
            if item.rewritten:
                dst.write_bytes(item.data)
            return
        if dst.exists():
            # Identical content was verified while planning.
            src.unlink()
        elif item.rewritten:
            dst.write_bytes(item.data)
            src.unlink()
        else:
            os.replace(src, dst)
        logger.debug("Revisioned %s -> %s", item.current, revised)
        item.current = revised

    # --- References ---

    def _rewrite_references(
        self,
        root: Path,
        renames: dict[str, str],
        items: dict[str, _Item],
        references: dict[str, set[str]],
    ) -> None:
        if not renames:
            return
        pattern = reference_pattern(list(renames))
        finals = {item.current: o for o, item in items.items()}
        skip = set(finals)

        for rel in _list_files(root):
            if rel in skip or not self.is_scanned(rel):
                continue
            path = root / rel
            try:
                text = _decode(rel, path.read_bytes())
            except OSError as exc:
                raise UnresolvedReferenceError(
                    f"Cannot scan '{rel}' for references: {exc}"
                ) from exc

            data, hits = _substitute(pattern, text, renames)
            if not hits:
                continue
            try:
                path.write_bytes(data)
            except OSError as exc:
                raise UnresolvedReferenceError(
                    f"Cannot rewrite references in '{rel}': {exc}"
                ) from exc
            for name in hits:
                references.setdefault(finals[renames[name]], set()).add(rel)

    def _verify(self, root: Path, entries: dict[str, str], renames: dict[str, str]) -> None:
        missing = sorted(r for r in entries.values() if not (root / r).is_file())
        if missing:
            raise UnresolvedReferenceError(
                f"Revisioned files missing from the tree: {missing}"
            )
        stale = {o for o, r in entries.items() if o != r} | set(renames)
        if not stale:
            return
        pattern = reference_pattern(sorted(stale))
        for rel in _list_files(root):
            if not self.is_scanned(rel):
                continue
            leftover = pattern.search(_decode(rel, (root / rel).read_bytes()))
            if leftover:
                raise UnresolvedReferenceError(
                    f"'{rel}' still references '{leftover.group(0)}' after rewrite"
                )


def reference_pattern(originals: Sequence[str]) -> re.Pattern[str]:
    """Regex matching any original path as a whole path reference.

    Longer paths are tried first so that at a given position the most
    specific path wins.
    """
    alternatives = sorted(set(originals), key=lambda s: (-len(s), s))
    body = "|".join(re.escape(a) for a in alternatives)
    return re.compile(rf"(?<![\w-])(?:{body})(?![\w-]|\.\w)")


def _substitute(
    pattern: re.Pattern[str], text: str, renames: dict[str, str]
) -> tuple[bytes, set[str]]:
    """Single-pass replacement of names already moved to a revisioned path."""
    hits: set[str] = set()

    def _replace(m: re.Match[str]) -> str:
        revised = renames.get(m.group(0))
        if revised is None or revised == m.group(0):
            return m.group(0)
        hits.add(m.group(0))
        return revised

    return pattern.sub(_replace, text).encode("utf-8"), hits


def _decode(rel: str, data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnresolvedReferenceError(f"Cannot scan '{rel}' for references: {exc}") from exc


def _dependency_order(depends: dict[str, set[str]]) -> list[str]:
    """Files ordered so that each comes after everything it references."""
    remaining = {rel: set(deps) for rel, deps in depends.items()}
    order: list[str] = []
    while remaining:
        ready = sorted(rel for rel, deps in remaining.items() if not deps)
        if not ready:
            raise UnresolvedReferenceError(
                f"Circular references between {sorted(remaining)}"
            )
        for rel in ready:
            order.append(rel)
            del remaining[rel]
        for deps in remaining.values():
            deps.difference_update(ready)
    return order


def _list_files(root: Path) -> list[str]:
    return sorted(
        p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
    )
