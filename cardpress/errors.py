"""
Exceptions and the diagnostic channel shared by the pipeline stages.

Only :class:`InputNotFoundError`, :class:`ThemeTableError` and
:class:`TemplateError` are meant to stop a run. Everything that goes wrong with a single card is recorded in a
:class:`Diagnostics` collector and the batch carries on.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


class CardPressError(Exception):
    """Base class for cardpress errors"""


class InputNotFoundError(CardPressError):
    """A CSV, folder or table the run depends on does not exist."""

    def __init__(self, path, what="input"):
        self.path = path
        self.what = what
        super().__init__(f"{what} not found: {path}")


class ThemeTableError(CardPressError):
    """A theme table is present but cannot be used."""


class TemplateError(CardPressError):
    """A template definition is malformed."""


class MissingAssetError(CardPressError):
    """A template or template image needed for one card is missing."""


class RenderError(CardPressError):
    """Rasterizing a single card failed."""


@dataclass(frozen=True)
class Diagnostic:
    severity: str
    subject: str
    message: str

    def __str__(self):
        return f"[{self.severity.upper()}] {self.subject}: {self.message}"


class Diagnostics:
    """Collects per-record problems and mirrors them to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.entries: List[Diagnostic] = []
        self._log = log or logger

    def error(self, subject, message):
        self._add(ERROR, subject, message)

    def warning(self, subject, message):
        self._add(WARNING, subject, message)

    def _add(self, severity, subject, message):
        entry = Diagnostic(severity, str(subject), str(message))
        self.entries.append(entry)
        level = logging.ERROR if severity == ERROR else logging.WARNING
        self._log.log(level, "%s: %s", entry.subject, entry.message)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.severity == ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.entries if d.severity == WARNING]

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
