"""Public data types for converters — the shared contracts."""

from dataclasses import dataclass, field


class ConverterError(Exception):
    """Raised by a converter when an annotation value cannot be mapped at all."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class ConvertResult:
    """Append-only accumulator shared by every converter of one conversion run.

    Converters only ever append to these lists; they are invoked one at a time
    by the orchestrator, so no locking is done here.
    """
    middlewares: list = field(default_factory=list)
    ingress_routes: list = field(default_factory=list)
    warnings: list = field(default_factory=list)


@dataclass
class ConvertContext:
    """Per-Ingress state passed to all annotation converters."""
    name: str
    namespace: str
    annotations: dict
    result: ConvertResult
    config: dict = field(default_factory=dict)
