"""Runtime configuration for :mod:`pdftransformx` read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_ENV_PREFIX = "PDFTRANSFORMX_"
DEFAULT_ARTIFACT_TTL = 60 * 60


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(_ENV_PREFIX + name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class PipelineSettings:
    """Settings shared by the pipeline, its external adapters and the service."""

    ghostscript: str | None = None
    qpdf: str | None = None
    artifact_ttl: float = DEFAULT_ARTIFACT_TTL
    redaction_seed: int | None = None
    temp_dir: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineSettings":
        environ = os.environ if environ is None else environ
        ttl = _env(environ, "ARTIFACT_TTL")
        seed = _env(environ, "REDACTION_SEED")
        temp_dir = _env(environ, "TEMP_DIR")
        return cls(
            ghostscript=_env(environ, "GHOSTSCRIPT"),
            qpdf=_env(environ, "QPDF"),
            artifact_ttl=float(ttl) if ttl else DEFAULT_ARTIFACT_TTL,
            redaction_seed=int(seed) if seed else None,
            temp_dir=Path(temp_dir).expanduser() if temp_dir else None,
            log_level=_env(environ, "LOG_LEVEL") or "INFO",
        )


__all__ = ["PipelineSettings", "DEFAULT_ARTIFACT_TTL"]
