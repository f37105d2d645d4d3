"""Configuration error type."""

from typing import Iterable, List, Optional


class ConfigurationError(Exception):
    """Raised when the config file or environment cannot be used.

    Carries the individual validation problems and operator-facing hints so
    ``str(error)`` is a complete, printable report.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[Iterable[str]] = None,
        suggestions: Optional[Iterable[str]] = None,
    ):
        self.message = message
        self.errors: List[str] = list(errors or [])
        self.suggestions: List[str] = list(suggestions or [])
        super().__init__(self.report())

    def report(self) -> str:
        """Render message, numbered errors and suggestions as one block of text."""
        lines = [self.message]
        if self.errors:
            lines.append("\nValidation Errors:")
            lines.extend(f"  {n}. {error}" for n, error in enumerate(self.errors, 1))
        if self.suggestions:
            lines.append("\nSuggestions:")
            lines.extend(f"  - {hint}" for hint in self.suggestions)
        return "\n".join(lines)
