"""
Response helpers shared by the routers
"""

from fastapi.responses import JSONResponse

from ..errors import LedgerErrorKind
from ..ledger import LedgerResult


def failure_response(result: LedgerResult) -> JSONResponse:
    """Business-rule rejection; only unknown accounts map to a non-200 status"""
    status_code = 404 if result.error == LedgerErrorKind.ACCOUNT_NOT_FOUND else 200
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": result.message,
            "error": result.error.value,
        },
    )
