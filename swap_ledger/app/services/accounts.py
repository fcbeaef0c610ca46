from __future__ import annotations

import logging

from ..core.config import get_settings
from ..core.errors import CurrencyNotFoundError
from ..models import AccountModel
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class AccountResolver:
    """Get-or-create accounts for a (user, currency) pair."""

    def __init__(self, repository: LedgerRepository, retries: int | None = None) -> None:
        self.repository = repository
        self.retries = get_settings().account_create_retries if retries is None else retries

    def resolve(self, user_key: str, currency_id: int) -> AccountModel:
        if self.repository.get_currency(currency_id) is None:
            raise CurrencyNotFoundError(f"Currency {currency_id} not found")

        account, created = self.repository.get_or_create_account(
            user_key, currency_id, retries=self.retries
        )
        if created:
            logger.info(
                "account.created",
                extra={
                    "account_id": account.id,
                    "user_key": user_key,
                    "currency_id": currency_id,
                },
            )
        return account
