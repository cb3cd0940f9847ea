"""HTTP boundary around :class:`~pdftransformx.pipeline.TransformationPipeline`."""

from .app import create_app

__all__ = ["create_app"]
