"""
Glossary file handling.

The glossary is a CSV file of ``source,target`` rows (DeepL's ``csv``
entries format). Rows that DeepL would reject are skipped with a warning
instead of failing the whole glossary creation.
"""

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from glossary_translator.logger import get_logger
from glossary_translator.api.exceptions import ConfigurationError

logger = get_logger(__name__)


@dataclass
class GlossaryEntries:
    """Sanitised CSV text ready to send, plus what was dropped."""

    csv_text: str
    entry_count: int
    skipped: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0


def parse_glossary_csv(text: str) -> GlossaryEntries:
    """
    Sanitise raw glossary CSV.

    Keeps rows with a non-empty source and target term. Extra columns are
    dropped, duplicate source terms keep their first occurrence, blank
    lines and lines starting with '#' are ignored.
    """
    rows: List[Tuple[str, str]] = []
    skipped: List[Tuple[int, str]] = []
    seen = set()

    reader = csv.reader(io.StringIO(text))
    for line_no, row in enumerate(reader, 1):
        if not row or not any(cell.strip() for cell in row):
            continue
        if row[0].lstrip().startswith("#"):
            continue
        if len(row) < 2:
            skipped.append((line_no, "needs source,target"))
            continue

        source, target = row[0].strip(), row[1].strip()
        if not source or not target:
            skipped.append((line_no, "empty term"))
            continue
        if source in seen:
            skipped.append((line_no, f"duplicate source term {source!r}"))
            continue

        seen.add(source)
        rows.append((source, target))

    for line_no, reason in skipped:
        logger.warning(f"Glossary line {line_no} skipped: {reason}")

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerows(rows)
    return GlossaryEntries(csv_text=out.getvalue(), entry_count=len(rows), skipped=skipped)


def read_glossary_text(path: Path) -> str:
    """Raw text of the glossary file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return f.read()
    except FileNotFoundError:
        raise ConfigurationError(
            f"Glossary file not found: {path}",
            code="glossary_missing",
            details={"path": str(path)},
        )
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Could not read glossary file {path}: {e}",
            code="glossary_unreadable",
            details={"path": str(path)},
        )


def load_glossary(path: Path) -> GlossaryEntries:
    """Read and sanitise the glossary file."""
    entries = parse_glossary_csv(read_glossary_text(path))
    if entries.is_empty:
        logger.warning(f"Glossary file {path} has no entries")
    else:
        logger.info(f"Loaded {entries.entry_count} glossary entries from {path}")
    return entries


def save_glossary_text(path: Path, text: str) -> GlossaryEntries:
    """Write raw glossary text to ``path`` and return what it parses to."""
    entries = parse_glossary_csv(text)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info(f"Glossary file {path} saved ({entries.entry_count} entries)")
    return entries
