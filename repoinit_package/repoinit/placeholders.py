"""
Placeholder substitution across a fixed list of files.

A placeholder is a literal ``{{KEY}}`` token where KEY is upper-case letters,
digits and underscores. Expressions such as ``{{ github.ref }}`` in workflow
files do not match and are left alone.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Set, Tuple

from .errors import PlaceholderError

PLACEHOLDER_PATTERN = re.compile(r'\{\{([A-Z][A-Z0-9_]*)\}\}')
KEY_PATTERN = re.compile(r'[A-Z][A-Z0-9_]*\Z')


def is_valid_key(key: str) -> bool:
    """True when ``key`` can appear as a placeholder name."""
    return bool(KEY_PATTERN.match(key))


def find_placeholders(text: str) -> Set[str]:
    """Return the names of all placeholders present in ``text``."""
    return set(PLACEHOLDER_PATTERN.findall(text))


def substitute(text: str, mapping: Dict[str, str]) -> Tuple[str, int, Set[str]]:
    """
    Replace every known placeholder in a single pass.

    Args:
        text: Text containing ``{{KEY}}`` tokens
        mapping: Placeholder values

    Returns:
        Tuple of (new text, number of tokens replaced, names left unresolved)
    """
    replaced = 0
    unresolved = set()

    def _replace(match):
        nonlocal replaced
        key = match.group(1)
        if key in mapping:
            replaced += 1
            return mapping[key]
        unresolved.add(key)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, text), replaced, unresolved


@dataclass
class SubstitutionReport:
    """Outcome of a substitution run."""

    changed_files: List[str] = field(default_factory=list)
    replacements: Dict[str, int] = field(default_factory=dict)
    unresolved: Dict[str, Set[str]] = field(default_factory=dict)
    missing_files: List[str] = field(default_factory=list)

    @property
    def total_replacements(self) -> int:
        return sum(self.replacements.values())


class PlaceholderReplacer:
    """Substitutes placeholder tokens in a fixed set of files under a root directory."""

    def __init__(self, root: str, target_files: List[str]):
        """
        Args:
            root: Repository root the target paths are relative to
            target_files: Relative paths of the files to process
        """
        self.root = Path(root)
        self.target_files = list(target_files)
        self.logger = logging.getLogger('repoinit.placeholders')

    def _resolve(self, relative_path: str) -> Path:
        path = (self.root / relative_path).resolve()
        if self.root.resolve() not in path.parents:
            raise PlaceholderError(f"Target file escapes the repository root: {relative_path}")
        return path

    def _read(self, relative_path: str, path: Path) -> str:
        try:
            return path.read_text(encoding='utf-8')
        except (IOError, UnicodeDecodeError) as e:
            raise PlaceholderError(f"Error reading {relative_path}: {e}")

    def apply(self, mapping: Dict[str, str], dry_run: bool = False) -> SubstitutionReport:
        """
        Substitute placeholders in every target file.

        Every file is read and substituted before any is written, so a read
        failure leaves the whole set untouched.

        Args:
            mapping: Placeholder values
            dry_run: Compute the report without writing any file

        Returns:
            SubstitutionReport describing what changed
        """
        report = SubstitutionReport()
        pending = []

        for relative_path in self.target_files:
            path = self._resolve(relative_path)
            if not path.is_file():
                self.logger.debug(f"Skipping missing target file: {relative_path}")
                report.missing_files.append(relative_path)
                continue

            original = self._read(relative_path, path)
            updated, count, unresolved = substitute(original, mapping)
            if unresolved:
                report.unresolved[relative_path] = unresolved
                self.logger.warning(
                    f"Unresolved placeholders in {relative_path}: {sorted(unresolved)}"
                )
            if updated == original:
                continue

            report.changed_files.append(relative_path)
            report.replacements[relative_path] = count
            pending.append((relative_path, path, updated, count))

        for relative_path, path, updated, count in pending:
            if dry_run:
                self.logger.info(f"Would replace {count} placeholder(s) in {relative_path}")
                continue

            try:
                path.write_text(updated, encoding='utf-8')
            except IOError as e:
                raise PlaceholderError(f"Error writing {relative_path}: {e}")
            self.logger.info(f"Replaced {count} placeholder(s) in {relative_path}")

        return report

    def scan(self) -> Dict[str, Set[str]]:
        """Return the placeholders still present in each target file."""
        remaining = {}
        for relative_path in self.target_files:
            path = self._resolve(relative_path)
            if not path.is_file():
                continue
            tokens = find_placeholders(self._read(relative_path, path))
            if tokens:
                remaining[relative_path] = tokens
        return remaining
