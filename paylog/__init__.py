"""Mini README: Core package initializer for PayLog.

PayLog is a small administrative ledger: an admin imports a member roster
and records charges and credits against each member's running balance. This
module exposes the package version and the logger factory without pulling in
the web stack.
"""

from .logging_utils import get_logger

__version__ = "1.0.0"

__all__ = ["__version__", "get_logger"]
