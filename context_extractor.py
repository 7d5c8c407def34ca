"""
context_extractor.py
Accelerator Context Extraction Engine
Version 1.0

Scans program sources for [gettext_accelerator_context(...)] markers and
records, in each PO template entry whose msgid carries an accelerator,
the contexts (menus, dialogs) where that string is shown:

    /* [gettext_accelerator_context(Main.menu, .file_menu)] */
    static struct menu_item file_menu[] = {
        INIT_MENU_ITEM(N_("~Open"), ...),
        INIT_MENU_ITEM(N_("~Save"), ...),
    };

A line starting with "}" or a marker with an empty list closes the region.
Names starting with "." are local to the file: ".file_menu" in menu.c
becomes "menu.c:file_menu".
"""

import argparse
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

import chardet
import ftfy
import polib

from accelerators import (
    DEFAULT_ACCELERATOR_TAG, IGNORE_CONTEXT, CatalogError, __version__, active_entries,
    accelerator_tag, annotate_entry, load_catalog, save_catalog, warn,
)
from config_manager import config

MARKER_KEYWORD = "gettext_accelerator_context"
MARKER_OPEN = "[" + MARKER_KEYWORD + "("
MARKER_CLOSE = ")]"
NAME_PUNCTUATION = "._:-"


# --- Data Classes ---
@dataclass(frozen=True)
class ContextRegion:
    """Contexts in effect from start_line until the next region."""
    start_line: int
    contexts: FrozenSet[str] = field(default_factory=frozenset)


class MarkerSyntaxError(ValueError):
    """A line mentions the marker keyword but is not a valid marker."""


# --- Helper Functions ---
def _is_context_name(name: str) -> bool:
    return bool(name) and all(ch.isalnum() or ch in NAME_PUNCTUATION for ch in name)


def parse_marker(line: str) -> Optional[List[str]]:
    """
    Tokenize a [gettext_accelerator_context(...)] marker.

    Returns None when the line has no marker keyword at all, the list of
    context names (trimmed, first occurrence kept) when it has a valid
    marker, and raises MarkerSyntaxError when the keyword appears in any
    other shape.
    """
    if MARKER_KEYWORD not in line:
        return None

    start = line.find(MARKER_OPEN)
    if start < 0:
        raise MarkerSyntaxError(f"expected '{MARKER_OPEN}'")
    body_start = start + len(MARKER_OPEN)
    end = line.find(MARKER_CLOSE, body_start)
    if end < 0:
        raise MarkerSyntaxError(f"missing '{MARKER_CLOSE}'")

    body = line[body_start:end]
    if not body.strip():
        return []

    names = []
    for token in body.split(","):
        name = token.strip()
        if not _is_context_name(name):
            raise MarkerSyntaxError(f"bad context name {token.strip()!r}")
        if name not in names:
            names.append(name)
    return names


def localize_context(name: str, filename: str) -> str:
    """Expand a file-local ".name" to "filename:name"."""
    if name.startswith("."):
        return f"{filename}:{name[1:]}"
    return name


def decode_source(data: bytes) -> str:
    """Decode source bytes, falling back to chardet and ftfy for non-UTF-8 files."""
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        pass

    detection = chardet.detect(data)
    encoding = detection.get('encoding') or 'latin-1'
    try:
        text = data.decode(encoding, errors='replace')
    except LookupError:
        text = data.decode('latin-1')
    # line breaks must stay as they are, references count "\n" lines
    return ftfy.fix_text(text, fix_line_breaks=False)


class SourceScanner:
    """Finds context regions in source files, caching one scan per file."""

    def __init__(self, search_path: Sequence[str] = (".",)):
        self.search_path = list(search_path) or ["."]
        self.regions: Dict[str, List[ContextRegion]] = {}

    def _read_source(self, filename: str) -> Optional[str]:
        failures = []
        for directory in self.search_path:
            path = os.path.join(directory, filename)
            try:
                with open(path, 'rb') as f:
                    return decode_source(f.read())
            except OSError as e:
                failures.append((path, e.strerror or str(e)))

        for path, reason in failures:
            warn(f"cannot open {path}: {reason}")
        return None

    def scan_source_file(self, filename: str) -> List[ContextRegion]:
        """Context regions of a source file, ordered by line."""
        if filename in self.regions:
            return self.regions[filename]

        regions = []
        text = self._read_source(filename)
        if text is not None:
            regions = self._scan_lines(filename, text.split("\n"))
        self.regions[filename] = regions
        return regions

    def _scan_lines(self, filename: str, lines: List[str]) -> List[ContextRegion]:
        regions = []
        current = frozenset()

        for lineno, line in enumerate(lines, start=1):
            try:
                names = parse_marker(line)
            except MarkerSyntaxError as e:
                warn(f"suspicious non-directive: {e}", filename, lineno)
                continue

            if names is not None:
                contexts = frozenset(localize_context(name, filename) for name in names)
                if current and contexts:
                    warn("previous accelerator context not closed", filename, lineno)
                elif not current and not contexts:
                    warn("accelerator context already closed", filename, lineno)
                regions.append(ContextRegion(lineno, contexts))
                current = contexts
            elif current and line.startswith("}"):
                regions.append(ContextRegion(lineno, frozenset()))
                current = frozenset()

        if current:
            warn("last accelerator context not closed", filename)
        return regions

    def lookup_contexts(self, filename: str, line: int) -> FrozenSet[str]:
        """Contexts active at a line; stops at the first region past it."""
        found = frozenset()
        for region in self.scan_source_file(filename):
            if region.start_line > line:
                break
            found = region.contexts
        return found


class ContextExtractor:
    """Annotates catalog entries with the accelerator contexts of their sources."""

    def __init__(self, search_path: Sequence[str] = (".",), tag: str = DEFAULT_ACCELERATOR_TAG):
        self.tag = tag
        self.scanner = SourceScanner(search_path)

    def entry_contexts(self, entry: polib.POEntry) -> List[str]:
        contexts = set()
        for filename, line in entry.occurrences:
            found = frozenset()
            if str(line).isdigit():
                found = self.scanner.lookup_contexts(filename, int(line))
            if not found:
                warn(f"no accelerator context for msgid \"{entry.msgid}\"",
                     filename, line or None)
            contexts.update(found)
        contexts.discard(IGNORE_CONTEXT)
        return sorted(contexts)

    def annotate(self, catalog: polib.POFile) -> int:
        """Rewrite accelerator_context(...) comments in place; returns annotated count."""
        annotated = 0
        for entry in active_entries(catalog):
            if self.tag not in entry.msgid:
                continue
            if annotate_entry(entry, self.entry_contexts(entry)):
                annotated += 1
        return annotated


# --- Command line ---
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gather-accelerator-contexts",
        description="Add accelerator_context comments to a PO template, "
                    "based on [gettext_accelerator_context(...)] markers in the sources.",
    )
    parser.add_argument("-S", "--search-dir", dest="search_path", action="append",
                        metavar="DIR",
                        help="directory searched for source files (repeatable)")
    parser.add_argument("-A", "--accelerator-tag", type=accelerator_tag, metavar="CHAR",
                        help="character that marks accelerators (default: ~)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("catalog", help="PO or POT file, updated in place")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    tag = args.accelerator_tag
    if tag is None:
        try:
            tag = accelerator_tag(config.get_accelerator_tag())
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))
    search_path = args.search_path or config.get_search_path()

    try:
        catalog = load_catalog(args.catalog)
    except CatalogError as e:
        print(f"✗ Error: cannot read {e.path}: {e.reason}", file=sys.stderr)
        return 2

    extractor = ContextExtractor(search_path, tag)
    candidates = sum(1 for entry in active_entries(catalog) if tag in entry.msgid)
    annotated = extractor.annotate(catalog)

    try:
        save_catalog(catalog, args.catalog)
    except CatalogError as e:
        print(f"✗ Error: cannot write {e.path}: {e.reason}", file=sys.stderr)
        return 2

    print(f"✓ {args.catalog}: {annotated} of {candidates} accelerator entries annotated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
