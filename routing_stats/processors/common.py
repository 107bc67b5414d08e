"""
Shared helpers for the bulk input parsers
"""

import bz2
import gzip
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import IO, Union

# Malformed lines beyond this many are counted but not logged individually
MAX_LOGGED_MALFORMED = 5


@dataclass
class ParseStats:
    """Per-file record counters"""

    source: str
    accepted: int = 0
    skipped_malformed: int = 0
    skipped_low_visibility: int = 0
    skipped_as_set: int = 0
    duration: float = 0.0

    @property
    def skipped(self) -> int:
        return self.skipped_malformed + self.skipped_low_visibility + self.skipped_as_set

    def malformed(self, logger: logging.Logger, line_number: int, line: str, reason: str):
        """Count a malformed record, logging only the first few"""
        self.skipped_malformed += 1
        if self.skipped_malformed <= MAX_LOGGED_MALFORMED:
            logger.debug(f"{self.source}:{line_number}: skipping malformed record "
                         f"'{line.strip()[:120]}': {reason}")
        elif self.skipped_malformed == MAX_LOGGED_MALFORMED + 1:
            logger.debug(f"{self.source}: further malformed records are not logged")

    def to_dict(self) -> dict:
        result = asdict(self)
        result['duration'] = round(self.duration, 3)
        return result


def open_text(path: Union[str, Path]) -> IO[str]:
    """Open a possibly gzip or bzip2 compressed file for text reading"""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == '.gz':
        return gzip.open(path, 'rt', encoding='utf-8', errors='replace')
    if suffix == '.bz2':
        return bz2.open(path, 'rt', encoding='utf-8', errors='replace')
    return open(path, 'r', encoding='utf-8', errors='replace')


def open_binary(path: Union[str, Path]) -> IO[bytes]:
    """Binary counterpart of open_text, for streaming JSON parsers"""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == '.gz':
        return gzip.open(path, 'rb')
    if suffix == '.bz2':
        return bz2.open(path, 'rb')
    return open(path, 'rb')


def base_suffix(path: Union[str, Path]) -> str:
    """File suffix ignoring a trailing compression suffix (``vrps.json.gz`` -> ``.json``)"""
    path = Path(path)
    if path.suffix.lower() in ('.gz', '.bz2'):
        path = path.with_suffix('')
    return path.suffix.lower()
