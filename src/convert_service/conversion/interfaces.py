from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Mapping, Protocol

from .errors import ConversionError


def normalize_format(fmt: str) -> str:
    """Format identifiers compare case-insensitively and nothing else."""
    return fmt.lower()


@dataclass(frozen=True)
class ConversionCapability:
    source: str
    target: str
    name: str = ""
    description: str = ""
    requirements: tuple[str, ...] = ()
    options: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", normalize_format(self.source))
        object.__setattr__(self, "target", normalize_format(self.target))

    def matches(self, source: str, target: str) -> bool:
        return self.source == normalize_format(source) and self.target == normalize_format(target)

    def to_dict(self) -> dict[str, object]:
        return {
            "from": self.source,
            "to": self.target,
            "name": self.name,
            "description": self.description,
            "requirements": list(self.requirements),
            "options": list(self.options),
        }


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion: either output bytes or an error, never both."""

    output: bytes | None = None
    error: ConversionError | None = None

    def __post_init__(self) -> None:
        if (self.output is None) == (self.error is None):
            raise ValueError("ConversionResult requires exactly one of output or error")

    @classmethod
    def success(cls, output: bytes) -> "ConversionResult":
        return cls(output=bytes(output))

    @classmethod
    def failure(cls, error: ConversionError) -> "ConversionResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> bytes:
        if self.error is not None:
            raise self.error
        assert self.output is not None
        return self.output


@dataclass(frozen=True)
class ConversionRequest:
    data: bytes | None
    source: str | None
    target: str | None
    options: Mapping[str, Any] = field(default_factory=dict)
    filename: str | None = None

    def output_filename(self) -> str:
        """Suggested download name: original base name plus the target extension."""
        base = PurePath(self.filename).stem if self.filename else "converted"
        return f"{base}.{self.target}"


class Converter(Protocol):
    def supports(self, source: str, target: str) -> bool:
        ...

    def convert(self, data: bytes, options: Mapping[str, Any] | None = None) -> ConversionResult:
        """Transform the input buffer according to the declared capability.

        Must not mutate `data`, must release every scratch resource on all exit
        paths and must be safe to call from several threads at once.
        """

    def describe(self) -> ConversionCapability:
        ...
