"""Core utilities and shared components for codedeployctl."""

# Note: Import context lazily to avoid circular imports
# Use: from codedeployctl.core.context import CodeDeployCtlContext, pass_context
from codedeployctl.core.exceptions import AWSError, CodeDeployCtlError, ConfigError
from codedeployctl.core.output import OutputFormat, OutputFormatter

__all__ = [
    "AWSError",
    "CodeDeployCtlError",
    "ConfigError",
    "OutputFormat",
    "OutputFormatter",
]
