"""
Ledger system wiring and request dependencies
"""

from typing import Optional

from fastapi import Header, Request

from ..admin_auth import AdminAuthenticator
from ..config import RatingLedgerConfig, get_config
from ..ledger import AccountLedger
from ..storage import StorageInterface, create_storage


class LedgerSystem:
    """Storage, ledger engine and admin authenticator sharing one configuration"""

    def __init__(self, config: Optional[RatingLedgerConfig] = None,
                 storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config)
        self.ledger = AccountLedger(self.storage, self.config)
        self.authenticator = AdminAuthenticator(self.storage, self.config)

    def close(self) -> None:
        self.storage.close()


def get_ledger_system(request: Request) -> LedgerSystem:
    return request.app.state.ledger_system


def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(None),
) -> str:
    """Dependency: validate the X-Admin-Token header and return the admin username"""
    system = get_ledger_system(request)
    return system.authenticator.verify(x_admin_token)
