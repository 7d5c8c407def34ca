"""
conflict_checker.py
Accelerator Conflict Checker
Version 1.0

Reads translated PO files whose entries carry "#. accelerator_context(...)"
comments (see context_extractor.py) and reports every context in which two
different strings use the same accelerator key. For each conflict a list of
replacement characters is suggested, taken from the conflicting strings and
skipping keys that translations already use in the same contexts.

Exit status: 0 no conflicts, 1 conflicts found, 2 unreadable file or bad
arguments. With several files the highest status wins.
"""

import argparse
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import polib

from accelerators import (
    DEFAULT_ACCELERATOR_TAG, CatalogError, __version__, active_entries,
    accelerator_tag, annotation_contexts, find_accelerator, load_catalog,
)
from config_manager import config


# --- Data Classes ---
@dataclass(eq=False)
class Acceleration:
    """One accelerator found in an entry's msgstr or msgid."""
    entry: polib.POEntry
    accelerator: str
    text: str
    from_msgstr: bool
    contexts: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.accelerator.upper()

    @property
    def explanation(self) -> str:
        return ("msgstr " if self.from_msgstr else "msgid ") + self.text


@dataclass
class ConflictGroup:
    """Accelerations sharing one key inside one context."""
    accelerator: str
    context: str
    accelerations: List[Acceleration] = field(default_factory=list)
    claimed_by_msgstr: bool = False

    def add(self, acceleration: Acceleration):
        for existing in self.accelerations:
            if existing.entry is acceleration.entry and existing.explanation == acceleration.explanation:
                break
        else:
            self.accelerations.append(acceleration)
        if acceleration.from_msgstr:
            self.claimed_by_msgstr = True

    @property
    def is_conflict(self) -> bool:
        return len(self.accelerations) >= 2

    def signature(self) -> Tuple:
        return tuple((id(a.entry), a.explanation) for a in self.accelerations)


@dataclass
class Conflict:
    accelerator: str
    contexts: List[str]
    accelerations: List[Acceleration]


GroupMap = Dict[Tuple[str, str], ConflictGroup]


# --- Detection ---
def extract_accelerations(entry: polib.POEntry, tag: str = DEFAULT_ACCELERATOR_TAG,
                          use_msgid_fallback: bool = True) -> List[Acceleration]:
    """
    Accelerator candidates of one entry (zero or one).

    The translation is used when it is non-empty and not fuzzy; otherwise
    the msgid is used if the fallback is enabled. Entries without an
    accelerator_context(...) comment contribute nothing.
    """
    contexts = annotation_contexts(entry)
    if not contexts:
        return []

    if entry.msgstr and not entry.fuzzy:
        text, from_msgstr = entry.msgstr, True
    elif use_msgid_fallback and entry.msgid:
        text, from_msgstr = entry.msgid, False
    else:
        return []

    accelerator = find_accelerator(text, tag)
    if accelerator is None:
        return []
    return [Acceleration(entry, accelerator, text, from_msgstr, contexts)]


def group_accelerations(entries: Iterable[polib.POEntry], tag: str = DEFAULT_ACCELERATOR_TAG,
                        use_msgid_fallback: bool = True) -> Tuple[GroupMap, int]:
    """Group candidates by (key, context). Returns the groups and the checkable entry count."""
    groups: GroupMap = {}
    checked = 0
    for entry in entries:
        accelerations = extract_accelerations(entry, tag, use_msgid_fallback)
        if accelerations:
            checked += 1
        for acceleration in accelerations:
            for context in acceleration.contexts:
                key = (acceleration.key, context)
                if key not in groups:
                    groups[key] = ConflictGroup(acceleration.key, context)
                groups[key].add(acceleration)
    return groups, checked


def find_conflicts(groups: GroupMap) -> List[Conflict]:
    """Conflicting groups, merged across contexts with identical candidate lists."""
    conflicts = []
    reported: Set[Tuple[str, str]] = set()

    for key in sorted(groups, key=lambda k: (k[1], k[0])):
        group = groups[key]
        if key in reported or not group.is_conflict:
            continue
        signature = group.signature()
        contexts = []
        for other_key, other in groups.items():
            if other_key in reported or not other.is_conflict:
                continue
            if other.signature() == signature:
                reported.add(other_key)
                contexts.append(other.context)
        conflicts.append(Conflict(group.accelerator, sorted(contexts), group.accelerations))

    return conflicts


def avoided_accelerators(groups: GroupMap, contexts: Iterable[str]) -> Set[str]:
    """Keys already taken by translations in any of the given contexts."""
    contexts = set(contexts)
    return {group.accelerator for group in groups.values()
            if group.claimed_by_msgstr and group.context in contexts}


def suggest_accelerators(texts: Iterable[str], tag: str = DEFAULT_ACCELERATOR_TAG,
                         avoid: Iterable[str] = ()) -> str:
    """
    Candidate replacement keys taken from the conflicting strings.

    Word-initial letters and digits come first, then all others, in the
    order they appear; each character is kept once, case-insensitively.
    Characters in avoid are dropped.
    """
    text = " ".join(t.replace(tag, "") for t in texts)
    initials = [ch for i, ch in enumerate(text)
                if ch.isalnum() and (i == 0 or not text[i - 1].isalnum())]
    others = [ch for ch in text if ch.isalnum()]

    seen = set()
    suggestions = []
    for ch in initials + others:
        if ch.upper() in seen:
            continue
        seen.add(ch.upper())
        suggestions.append(ch)

    avoid = {ch.upper() for ch in avoid}
    return "".join(ch for ch in suggestions if ch.upper() not in avoid)


# --- Reporting ---
def read_lines(path: str, encoding: str) -> List[str]:
    with open(path, 'r', encoding=encoding, errors='replace') as f:
        return f.read().split("\n")


def keyword_line(lines: Sequence[str], acceleration: Acceleration) -> Optional[int]:
    """
    Line of the msgstr or msgid keyword the accelerator was read from.

    polib only records where an entry starts (its first comment line),
    so scan forward from there.
    """
    start = acceleration.entry.linenum
    if not start:
        return None
    keyword = 'msgstr ' if acceleration.from_msgstr else 'msgid '
    for number in range(start, len(lines) + 1):
        if lines[number - 1].startswith(keyword):
            return number
    return start


def report_conflict(path: str, conflict: Conflict, suggestions: str, lines: Sequence[str] = ()):
    names = '", "'.join(conflict.contexts)
    print(f'{path}: Accelerator conflict for "{conflict.accelerator}" in "{names}":', file=sys.stderr)
    for acceleration in conflict.accelerations:
        line = keyword_line(lines, acceleration)
        print(f"{path}:{line}: {acceleration.explanation}", file=sys.stderr)
        if suggestions:
            print(f"{path}:{line}: suggestions: {suggestions}", file=sys.stderr)
        else:
            print(f"{path}:{line}: no suggestions", file=sys.stderr)


def check_file(path: str, tag: str = DEFAULT_ACCELERATOR_TAG, use_msgid_fallback: bool = True) -> int:
    """Check one catalog; returns its exit status."""
    try:
        catalog = load_catalog(path)
    except CatalogError as e:
        print(f"✗ Error: cannot read {e.path}: {e.reason}", file=sys.stderr)
        return 2

    groups, checked = group_accelerations(active_entries(catalog), tag, use_msgid_fallback)
    conflicts = find_conflicts(groups)
    lines = []
    if conflicts:
        try:
            lines = read_lines(path, catalog.encoding or 'utf-8')
        except OSError as e:
            print(f"✗ Error: cannot read {path}: {e.strerror or e}", file=sys.stderr)
            return 2
    for conflict in conflicts:
        avoid = avoided_accelerators(groups, conflict.contexts)
        suggestions = suggest_accelerators([a.text for a in conflict.accelerations], tag, avoid)
        report_conflict(path, conflict, suggestions, lines)

    print(f"{path}: {checked} checkable entries, {len(conflicts)} conflicts")
    return 1 if conflicts else 0


# --- Command line ---
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-accelerator-conflicts",
        description="Report accelerator keys used twice in one context of a translated PO file.",
    )
    parser.add_argument("-A", "--accelerator-tag", type=accelerator_tag, metavar="CHAR",
                        help="character that marks accelerators (default: ~)")
    parser.add_argument("--msgid-fallback", action=argparse.BooleanOptionalAction, default=None,
                        help="check the msgid when the msgstr is empty or fuzzy (default: on)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("files", nargs="+", metavar="FILE", help="PO files to check")
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
    use_msgid_fallback = args.msgid_fallback
    if use_msgid_fallback is None:
        use_msgid_fallback = config.use_msgid_fallback()

    status = 0
    for path in args.files:
        status = max(status, check_file(path, tag, use_msgid_fallback))
    return status


if __name__ == "__main__":
    sys.exit(main())
