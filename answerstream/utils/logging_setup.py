"""Debug logging configuration."""

import logging

DEBUG_LOG_FILE = 'llm_debug.log'
DEBUG_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DUMP_LOGGER_NAME = 'llm_debug'


def setup_debug_logging(filename: str = DEBUG_LOG_FILE) -> None:
    """Send DEBUG records from the whole package to ``filename``.

    The file is overwritten on each run. Prompt and response dumps go to
    the ``llm_debug`` logger and land in the same file.
    """
    logging.basicConfig(
        filename=filename,
        level=logging.DEBUG,
        format=DEBUG_LOG_FORMAT,
        filemode='w'
    )
    logging.getLogger('answerstream').setLevel(logging.DEBUG)
    logging.getLogger(DUMP_LOGGER_NAME).setLevel(logging.DEBUG)
