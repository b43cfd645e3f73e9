"""
envelope.py
- The JSON envelope every HTTP response is wrapped in:
    {code, transaction, message, args, data}
- Each response carries a transaction UUID; callers may pass one in to log against it.
"""

import uuid

from fastapi.responses import JSONResponse


def new_transaction():
    return str(uuid.uuid4())


def envelope(code, message, data=None, args=None, transaction=None):
    return {
        "code": code,
        "transaction": transaction or new_transaction(),
        "message": message,
        "args": list(args or []),
        "data": {} if data is None else data,
    }


def error_response(message, status_code=500, code="error", args=None):
    return JSONResponse(
        status_code=status_code,
        content=envelope(code, message, args=args),
    )
