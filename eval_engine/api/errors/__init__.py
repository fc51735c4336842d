"""
API Error Handling

FastAPI-specific exception handler registration.
"""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from eval_engine.core.exceptions import ApplicationException

from .exception_handlers import global_exception_handler


def register_exception_handlers(app: FastAPI) -> None:
    """Route every exception type through the global handler."""
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(ApplicationException, global_exception_handler)
    app.add_exception_handler(HTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)


__all__ = ["global_exception_handler", "register_exception_handlers"]
