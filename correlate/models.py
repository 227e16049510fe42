"""
Processor result plumbing shared by every pipeline stage.

Every stage returns a ProcessorResult (data + diagnostics + warnings + errors). Stages that
can fail as a whole also offer a tagged Result so callers can branch on a failure code
without exception handling.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar('T')


class WarningCodes:
    """Recoverable issues attached to a successful result."""
    TEXT_TRUNCATED = 'TEXT_TRUNCATED'
    NO_PATTERNS = 'NO_PATTERNS'
    DATE_FILTERED = 'DATE_FILTERED'
    ACTIVITIES_WITHOUT_REFS = 'ACTIVITIES_WITHOUT_REFS'
    VALIDATION_GATES_FAILED = 'VALIDATION_GATES_FAILED'
    ACTIVITIES_NOT_FOUND = 'ACTIVITIES_NOT_FOUND'


class ErrorCodes:
    """Per-item failures and whole-stage failure codes."""
    PATTERN_ERROR = 'PATTERN_ERROR'
    PATTERN_VALIDATION_FAILED = 'PATTERN_VALIDATION_FAILED'
    CLUSTERING_FAILED = 'CLUSTERING_FAILED'
    NO_ACTIVITIES_FOUND = 'NO_ACTIVITIES_FOUND'
    VALIDATION_FAILED = 'VALIDATION_FAILED'
    EXTRACTION_FAILED = 'EXTRACTION_FAILED'


@dataclass
class ProcessorWarning:
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessorError:
    code: str
    message: str
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessorDiagnostics:
    processor: str
    processing_time_ms: float
    input_metrics: Dict[str, float] = field(default_factory=dict)
    output_metrics: Dict[str, float] = field(default_factory=dict)
    debug: Optional[Dict[str, Any]] = None


@dataclass
class ProcessorResult(Generic[T]):
    data: T
    diagnostics: ProcessorDiagnostics
    warnings: List[ProcessorWarning] = field(default_factory=list)
    errors: List[ProcessorError] = field(default_factory=list)

    def warning_codes(self) -> List[str]:
        return [w.code for w in self.warnings]


@dataclass(frozen=True)
class PipelineFailure:
    """
    Machine-readable description of why a stage produced no usable output.
    """
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


class PipelineError(Exception):
    """Raised by the throwing entry points; wraps the PipelineFailure it unwrapped."""

    def __init__(self, failure: PipelineFailure):
        super().__init__(f"{failure.code}: {failure.message}")
        self.failure = failure

    @property
    def code(self) -> str:
        return self.failure.code


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a value or a failure, never both.
    """
    value: Optional[T] = None
    failure: Optional[PipelineFailure] = None

    @property
    def is_ok(self) -> bool:
        return self.failure is None

    @property
    def is_err(self) -> bool:
        return self.failure is not None

    @staticmethod
    def ok(value: T) -> 'Result[T]':
        return Result(value=value, failure=None)

    @staticmethod
    def err(failure: PipelineFailure) -> 'Result[T]':
        return Result(value=None, failure=failure)

    def map(self, fn) -> 'Result':
        if self.is_err:
            return self
        return Result.ok(fn(self.value))

    def unwrap(self) -> T:
        if self.failure is not None:
            raise PipelineError(self.failure)
        return self.value
