"""Fatal build errors raised while loading, indexing, rendering, or planning content."""

from __future__ import annotations


class BuildError(Exception):
    """Base class for errors that abort a build before anything is written."""

    def __init__(self, message: str, *, source_path: str | None = None, line: int | None = None) -> None:
        super().__init__(message)
        self.source_path = source_path
        self.line = line

    def __str__(self) -> str:
        message = super().__str__()
        if self.source_path is None:
            return message
        location = self.source_path if self.line is None else f"{self.source_path}:{self.line}"
        return f"{location}: {message}"


class FrontMatterError(BuildError):
    """Raised when a document header cannot be turned into a valid record."""


class MalformedHeader(FrontMatterError):
    """Header delimiters are missing or the header is not a flat key/value mapping."""


class MissingRequiredField(FrontMatterError):
    """A field required for the document kind is absent."""

    def __init__(self, field: str, *, source_path: str | None = None, line: int | None = None) -> None:
        super().__init__(f"Missing required field '{field}'.", source_path=source_path, line=line)
        self.field = field


class InvalidDate(FrontMatterError):
    """The ``date`` value is not a calendar date with time and UTC offset."""


class DuplicateIdentifier(BuildError):
    """Two documents resolve to the same permalink or source."""

    def __init__(
        self,
        identifier: str,
        *,
        source_path: str | None = None,
        existing_path: str | None = None,
    ) -> None:
        message = f"Identifier '{identifier}' is already registered"
        if existing_path:
            message += f" by {existing_path}"
        super().__init__(f"{message}.", source_path=source_path)
        self.identifier = identifier
        self.existing_path = existing_path


class UnterminatedCodeFence(BuildError):
    """A fenced code block is opened but never closed."""


class OutputPathCollision(BuildError):
    """Two planned outputs would be written to the same file."""

    def __init__(self, output_path: str, first: str, second: str) -> None:
        super().__init__(f"Output path '{output_path}' is claimed by both {first} and {second}.")
        self.output_path = output_path
        self.owners = (first, second)


class BrokenReferencesError(BuildError):
    """Broken references found while running in strict mode."""

    def __init__(self, count: int) -> None:
        super().__init__(f"{count} broken reference(s) found in strict mode.")
        self.count = count
