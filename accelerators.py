"""
accelerators.py
Shared helpers for the accelerator context tools
Version 1.0

Both gather_accelerator_contexts (context_extractor.py) and
check_accelerator_conflicts (conflict_checker.py) talk to each other only
through "#. accelerator_context(...)" lines stored in PO catalogs.
This module owns that convention and the catalog I/O.
"""

import argparse
import os
import re
import sys
from typing import Iterable, List, Optional

import polib

__version__ = "1.0"

DEFAULT_ACCELERATOR_TAG = "~"
IGNORE_CONTEXT = "IGNORE"

# A wrapped annotation spans several "#." lines; names never contain ")".
ANNOTATION_PATTERN = re.compile(r'^accelerator_context\(([^)]*)\)[ \t]*$', re.MULTILINE)


class CatalogError(OSError):
    """A PO catalog could not be read or written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def warn(message: str, path: Optional[str] = None, line: Optional[int] = None):
    """Print a compiler-style warning to stderr."""
    location = ""
    if path:
        location = f"{path}:{line}: " if line is not None else f"{path}: "
    print(f"{location}warning: {message}", file=sys.stderr)


def find_accelerator(text: str, tag: str) -> Optional[str]:
    """Return the character after the first tag in text, if any.

    Later tags in the same string are never looked at.
    """
    if not text:
        return None
    idx = text.find(tag)
    if idx < 0 or idx + len(tag) >= len(text):
        return None
    return text[idx + len(tag)]


def format_annotation(contexts: Iterable[str]) -> str:
    return "accelerator_context(" + ", ".join(sorted(set(contexts))) + ")"


def strip_annotations(comment: str) -> List[str]:
    """Automatic comment lines, minus any (possibly wrapped) accelerator_context(...)."""
    if not comment:
        return []
    # each annotation span, however many lines it covers, becomes one marker line
    marker = "\x00"
    remaining = ANNOTATION_PATTERN.sub(marker, comment)
    return [line for line in remaining.split("\n") if line != marker]


def unwrap_annotation(body: str) -> str:
    """Undo textwrap line breaks: after a hyphen they split a word, elsewhere a space."""
    return body.replace("-\n", "-").replace("\n", " ")


def annotation_contexts(entry: polib.POEntry) -> List[str]:
    """Context names recorded on an entry, with IGNORE filtered out."""
    match = ANNOTATION_PATTERN.search(entry.comment or "")
    if not match:
        return []
    names = [name.strip() for name in unwrap_annotation(match.group(1)).split(",")]
    return [name for name in names if name and name != IGNORE_CONTEXT]


def annotate_entry(entry: polib.POEntry, contexts: Iterable[str]) -> bool:
    """Replace the entry's accelerator_context(...) line.

    Returns True when an annotation was written.
    """
    contexts = {name for name in contexts if name != IGNORE_CONTEXT}
    lines = strip_annotations(entry.comment)
    if contexts:
        lines.append(format_annotation(contexts))
    entry.comment = "\n".join(lines)
    return bool(contexts)


def load_catalog(path: str) -> polib.POFile:
    """Parse a PO/POT file, raising CatalogError on failure."""
    # polib parses any string that is not an existing path as PO source text
    if not os.path.isfile(path):
        raise CatalogError(path, "No such file")
    try:
        return polib.pofile(path)
    except (OSError, UnicodeDecodeError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
        raise CatalogError(path, reason) from e


def save_catalog(catalog: polib.POFile, path: str):
    try:
        catalog.save(path)
    except (OSError, UnicodeEncodeError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
        raise CatalogError(path, reason) from e


def active_entries(catalog: polib.POFile) -> List[polib.POEntry]:
    """Entries that are not obsolete (#~)."""
    return [entry for entry in catalog if not entry.obsolete]


def accelerator_tag(value: str) -> str:
    """argparse type for the accelerator tag option."""
    if len(value) != 1:
        raise argparse.ArgumentTypeError(f"accelerator tag must be one character, got {value!r}")
    return value
