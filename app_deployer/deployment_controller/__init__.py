"""Deployment controller module.

This controller keeps the image change triggers of DeploymentConfigs
pointed at the desired version.
"""

from .controller import DeploymentTriggerSynchronizer

__all__ = ["DeploymentTriggerSynchronizer"]
