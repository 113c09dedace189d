"""recordspine command-line interface (``recordspine db ...``, ``recordspine records ...``)."""

from recordspine.cli.app import app, run

__all__ = ["app", "run"]
