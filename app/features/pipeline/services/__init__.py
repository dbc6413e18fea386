"""
Service layer for the pipeline board feature.
"""

from .stage_mover import StageMover

__all__ = ["StageMover"]
