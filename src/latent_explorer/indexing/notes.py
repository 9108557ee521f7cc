"""
Markdown vault access: note documents, tags and wiki links.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

NOTE_EXTENSION = ".md"

_FRONT_MATTER = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_INLINE_TAG = re.compile(r"(?:^|\s)#([A-Za-z][\w/-]*)")
_WIKILINK = re.compile(r"\[\[([^\]\|#]+)(?:#[^\]\|]*)?(?:\|[^\]]*)?\]\]")
_LIST_ITEM = re.compile(r"^\s*-\s*(.+?)\s*$")


@dataclass(frozen=True)
class NoteDocument:
    """One note as handed to the index maintainer."""

    id: str
    text: str
    modified_at: float
    title: str
    path: str
    tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def outgoing_links(self) -> tuple[str, ...]:
        return extract_wikilinks(self.text)


def _clean_tag(raw: str) -> str:
    return raw.strip().strip("'\"").lstrip("#").strip()


def _front_matter_tags(front_matter: str) -> set[str]:
    tags: set[str] = set()
    lines = front_matter.splitlines()
    for index, line in enumerate(lines):
        key, sep, value = line.partition(":")
        if not sep or key.strip().lower() not in ("tags", "tag"):
            continue
        value = value.strip()
        if value:
            for item in value.strip("[]").split(","):
                tag = _clean_tag(item)
                if tag:
                    tags.add(tag)
            continue
        # Block list form:
        # tags:
        #   - one
        for item_line in lines[index + 1 :]:
            match = _LIST_ITEM.match(item_line)
            if not match:
                break
            tag = _clean_tag(match.group(1))
            if tag:
                tags.add(tag)
    return tags


def extract_tags(text: str) -> frozenset[str]:
    """Tags from front matter ``tags:`` plus inline ``#tag`` tokens."""
    tags: set[str] = set()
    body = text
    match = _FRONT_MATTER.match(text)
    if match:
        tags |= _front_matter_tags(match.group(1))
        body = text[match.end() :]
    tags.update(_INLINE_TAG.findall(body))
    return frozenset(tags)


def extract_wikilinks(text: str) -> tuple[str, ...]:
    """Targets of ``[[Target]]`` / ``[[Target|Alias]]`` links, first occurrence order."""
    links: list[str] = []
    for target in _WIKILINK.findall(text):
        target = target.strip()
        if target and target not in links:
            links.append(target)
    return tuple(links)


class VaultSource:
    """Read notes from a folder of markdown files.

    Document ids are POSIX paths relative to the vault root, which keeps them
    stable across platforms and usable as folder prefixes.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise ValueError(f"No such directory: {self.root}")

    def list_documents(self) -> list[str]:
        ids: list[str] = []
        for current_root, dirnames, filenames in os.walk(self.root):
            # Skip editor state such as .obsidian/ and .trash/.
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in filenames:
                if filename.lower().endswith(NOTE_EXTENSION):
                    path = Path(current_root) / filename
                    ids.append(path.relative_to(self.root).as_posix())
        ids.sort()
        return ids

    def read_document(self, doc_id: str) -> NoteDocument:
        path = self._resolve(doc_id)
        if not path.is_file():
            raise FileNotFoundError(f"No such note: {doc_id}")
        text = path.read_text(encoding="utf-8", errors="replace")
        return NoteDocument(
            id=doc_id,
            text=text,
            modified_at=path.stat().st_mtime,
            title=path.stem,
            path=doc_id,
            tags=extract_tags(text),
        )

    def get_document(self, doc_id: str) -> NoteDocument | None:
        """Like ``read_document`` but returns ``None`` for a vanished note."""
        try:
            return self.read_document(doc_id)
        except FileNotFoundError:
            return None

    def _resolve(self, doc_id: str) -> Path:
        path = (self.root / doc_id).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Note id escapes the vault: {doc_id}")
        return path
