from __future__ import annotations

from typing import Optional

from sqlmodel import Session

from ..core.errors import SwapNotFoundError
from ..models import SwapResponse, SwapStatus
from .repository import LedgerRepository
from .responses import swap_to_response
from .unit_of_work import atomic


class SwapQueries:
    """Read-only swap projections, newest first.

    Each read runs in its own short unit so it sees only committed swaps.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)

    def _list(self, **filters) -> list[SwapResponse]:
        with atomic(self.session):
            return [swap_to_response(swap) for swap in self.repository.list_swaps(**filters)]

    def get_swap(self, swap_id: int) -> SwapResponse:
        with atomic(self.session):
            swap = self.repository.get_swap(swap_id)
            if swap is None:
                raise SwapNotFoundError(f"Swap {swap_id} not found")
            return swap_to_response(swap)

    def pending_by_maker(self, maker_account_id: int) -> list[SwapResponse]:
        return self._list(maker_account_id=maker_account_id, status=SwapStatus.PENDING)

    def by_maker(self, maker_account_id: int) -> list[SwapResponse]:
        return self._list(maker_account_id=maker_account_id)

    def by_taker(self, taker_account_id: int) -> list[SwapResponse]:
        return self._list(taker_account_id=taker_account_id)

    def all_pending(self) -> list[SwapResponse]:
        return self._list(status=SwapStatus.PENDING)

    def open_swaps(self) -> list[SwapResponse]:
        return self._list(status=SwapStatus.PENDING, open_only=True)
