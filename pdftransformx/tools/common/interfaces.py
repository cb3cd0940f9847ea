"""Core interfaces and context objects shared by rule handlers."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from ...config import PipelineSettings
from ...core.document import Document
from ...core.rules import Rule

RuleT = TypeVar("RuleT", bound=Rule)


@dataclass
class TransformContext:
    """Holds shared execution state for one pipeline invocation."""

    settings: PipelineSettings = field(default_factory=PipelineSettings)
    rng: random.Random | None = None
    resources: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = random.Random(self.settings.redaction_seed)

    def record(self, key: str, value: Any) -> None:
        """Append ``value`` to the ``key`` resource list."""
        self.resources.setdefault(key, []).append(value)


class BaseHandler(Generic[RuleT]):
    """Base class for all per-rule document handlers."""

    name: str

    def __init__(self, context: TransformContext) -> None:
        self.context = context

    def apply(self, document: Document, rule: RuleT) -> None:  # pragma: no cover - implemented by subclasses
        raise NotImplementedError


HandlerFactory = Callable[[TransformContext], BaseHandler]
