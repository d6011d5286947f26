"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apibldr.exceptions.ApibldrError` subclass.
Shell wrappers and CI jobs can inspect the exit code to tell a rejected
import from a storage problem without parsing stderr.

Example::

    $ apibldr import broken.yaml
    $ echo $?
    7   # EXIT_PARSE_ERROR -- the text was neither JSON nor YAML
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used when validation finds blocking issues)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_PARSE_ERROR = 7
"""The imported text could not be parsed as JSON or YAML."""

EXIT_IMPORT_REJECTED = 8
"""The imported document parsed but has blocking validation issues."""

EXIT_PERSISTENCE_ERROR = 9
"""The section store could not be opened or written."""
