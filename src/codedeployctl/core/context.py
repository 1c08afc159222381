"""Click context object for sharing state across commands."""

from __future__ import annotations

from typing import Any, Mapping

import click

from codedeployctl.config import (
    CodeDeployCtlConfig,
    PublisherConfig,
    get_default_config,
    resolve_publisher_config,
)
from codedeployctl.core.logging import LogLevel, StructuredLogger, setup_logging
from codedeployctl.core.output import OutputFormat, OutputFormatter


class CodeDeployCtlContext:
    """Shared context object for codedeployctl commands.

    This object is passed through Click's context mechanism and provides
    access to configuration and output utilities.
    """

    def __init__(
        self,
        config: CodeDeployCtlConfig | None = None,
        profile: str | None = None,
        output_format: OutputFormat | None = None,
        verbose: int = 0,
        quiet: bool = False,
        color: bool = True,
    ):
        self._config = config or get_default_config()
        self._profile_name = profile

        # Output settings (CLI overrides config)
        self._output_format = output_format or self._config.global_settings.output_format
        self._verbose = verbose
        self._quiet = quiet
        self._color = color and self._config.global_settings.color != "never"

        # Determine log level from verbosity
        if verbose >= 2:
            log_level = LogLevel.DEBUG
        elif verbose >= 1:
            log_level = LogLevel.INFO
        elif quiet:
            log_level = LogLevel.ERROR
        else:
            log_level = self._config.global_settings.verbosity

        setup_logging(log_level, rich_output=self._color)
        self._logger = StructuredLogger("context")

        self._output = OutputFormatter(
            format=self._output_format,
            color=self._color,
            quiet=quiet,
        )

    @property
    def config(self) -> CodeDeployCtlConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def profile_name(self) -> str:
        """Get the current profile name."""
        return self._profile_name or "default"

    @property
    def output(self) -> OutputFormatter:
        """Get the output formatter."""
        return self._output

    @property
    def output_format(self) -> OutputFormat:
        """Get the output format."""
        return self._output_format

    @property
    def verbose(self) -> int:
        """Get verbosity level."""
        return self._verbose

    @property
    def quiet(self) -> bool:
        """Check if quiet mode is enabled."""
        return self._quiet

    @property
    def color(self) -> bool:
        """Check if color output is enabled."""
        return self._color

    @property
    def logger(self) -> StructuredLogger:
        """Get the context logger."""
        return self._logger

    def publisher_config(self, overrides: Mapping[str, Any] | None = None) -> PublisherConfig:
        """Active profile with command-line overrides applied."""
        return resolve_publisher_config(self._config, self._profile_name, overrides)


# Click decorator for passing context
pass_context = click.make_pass_decorator(CodeDeployCtlContext, ensure=True)
