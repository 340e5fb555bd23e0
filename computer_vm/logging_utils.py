#!/usr/bin/env python3
"""
Shared logging utilities for computer-vm.

Status lines are tagged with their severity (``[INFO] ...``) and rendered on
the console through prompt_toolkit. Every message, including DEBUG, can also
be mirrored to a timestamped debug file for diagnostic purposes.
"""

import logging
import sys

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

LOGGER_NAME = "computer_vm"

# Debug file lines: "[<epoch>.<usec>] LEVEL logger.name: message".
DEBUG_FILE_FORMAT = "[%(created).6f] %(levelname)s %(name)s: %(message)s"

LOG_STYLE = Style.from_dict({
    "debug": "ansibrightblack",
    "info": "ansigreen",
    "warning": "ansiyellow bold",
    "error": "ansired bold",
    "critical": "ansiwhite bg:ansired bold",
    "message": "",
})


class PromptToolkitHandler(logging.Handler):
    """
    Logging handler that prints ``[LEVEL] message`` with a styled tag.

    Warnings and errors go to stderr, everything else to stdout. When an
    explicit prompt_toolkit ``output`` is given, all records are written there.
    """

    def __init__(self, output=None, level=logging.NOTSET):
        super().__init__(level)
        self._output = output

    def emit(self, record):
        try:
            level = record.levelname
            fragments = FormattedText([
                (f"class:{level.lower()}", f"[{level}]"),
                ("class:message", f" {self.format(record)}"),
            ])
            if self._output is not None:
                print_formatted_text(fragments, style=LOG_STYLE, output=self._output)
            else:
                stream = sys.stderr if record.levelno >= logging.WARNING else sys.stdout
                print_formatted_text(fragments, style=LOG_STYLE, file=stream)
        except Exception:
            self.handleError(record)


def setup_logging(debug_file=None, verbose=False):
    """
    Configure the package logger.

    Args:
        debug_file: Optional path of a file that receives every message,
                    DEBUG included, with a high-resolution timestamp.
        verbose: Show DEBUG messages on the console as well.

    Returns:
        The configured ``computer_vm`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = PromptToolkitHandler(level=logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console)

    if debug_file:
        file_handler = logging.FileHandler(debug_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DEBUG_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
