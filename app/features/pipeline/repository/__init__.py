"""
Collaborator access for the pipeline board feature.
"""

from .actions_client import PipelineActions, PipelineApiClient

__all__ = ["PipelineActions", "PipelineApiClient"]
