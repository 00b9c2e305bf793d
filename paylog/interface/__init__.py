"""Mini README: Interactive interfaces for PayLog.

Exports the FastAPI application factory that powers the browser-based admin
console. The Typer entry point lives in ``main_pay_log.py`` at the repository
root.
"""

from .web_app import create_application

__all__ = ["create_application"]
