"""
app-deployer converges OpenShift build and deployment definitions to a
desired version published in a ConfigMap.
"""

__all__ = [
    "manifest",
    "image",
    "desired_state",
    "exceptions",
    "store",
    "build_controller",
    "deployment_controller",
    "orchestrator",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
