"""Templated, leveled logging on top of :mod:`logging`."""

import logging
import re
from collections.abc import Mapping

NOTICE: int = 25
PACKAGE_LOGGER_NAME: str = "nodebridge"
_PLACEHOLDER_PATTERN: re.Pattern[str] = re.compile(r"\{([A-Za-z0-9_.]+)\}")

logging.addLevelName(NOTICE, "NOTICE")


def interpolate(template: str, context: Mapping[str, object]) -> str:
    """Replace ``{key}`` placeholders with values from ``context``.

    Unknown placeholders are left untouched.

    :param template: Message template.
    :param context: Placeholder values.
    :returns: Rendered message.
    """

    def _replace(match: re.Match[str]) -> str:
        key: str = match.group(1)
        if key not in context:
            return match.group(0)
        return str(context[key])

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


class ContextLogger:
    """Render templated messages and hand them to a standard logger."""

    _logger: logging.Logger

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize the adapter.

        :param logger: Target logger, the package logger when ``None``.
        """
        if logger is None:
            logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        self._logger = logger

    @property
    def logger(self) -> logging.Logger:
        """Return the wrapped logger.

        :returns: Wrapped logger.
        """
        return self._logger

    def log(
        self,
        level: int,
        template: str,
        context: Mapping[str, object] | None = None,
        exc_info: bool = False,
    ) -> None:
        """Log one templated message.

        :param level: ``logging`` level number.
        :param template: Message template with ``{key}`` placeholders.
        :param context: Placeholder values, also attached as ``record.context``.
        :param exc_info: Attach the exception being handled.
        """
        if self._logger.isEnabledFor(level) is False:
            return
        if context is None:
            context = {}
        message: str = interpolate(template, context)
        self._logger.log(level, message, extra={"context": dict(context)}, exc_info=exc_info)

    def debug(self, template: str, context: Mapping[str, object] | None = None) -> None:
        self.log(logging.DEBUG, template, context)

    def info(self, template: str, context: Mapping[str, object] | None = None) -> None:
        self.log(logging.INFO, template, context)

    def notice(self, template: str, context: Mapping[str, object] | None = None) -> None:
        self.log(NOTICE, template, context)

    def warning(self, template: str, context: Mapping[str, object] | None = None) -> None:
        self.log(logging.WARNING, template, context)

    def error(self, template: str, context: Mapping[str, object] | None = None) -> None:
        self.log(logging.ERROR, template, context)

    def exception(self, template: str, context: Mapping[str, object] | None = None) -> None:
        """Log at error level with the current exception attached.

        :param template: Message template.
        :param context: Placeholder values.
        """
        self.log(logging.ERROR, template, context, exc_info=True)
