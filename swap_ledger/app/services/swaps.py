from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    CannotAcceptOwnSwapError,
    CurrencyNotFoundError,
    InsufficientFundsError,
    LedgerError,
    MakerAccountNotFoundError,
    NotAuthorizedError,
    SwapNotAcceptedError,
    SwapNotFoundError,
    SwapNotPendingError,
)
from ..core.money import AmountLike, to_positive_units
from ..models import (
    AccountModel,
    OpenTaker,
    SwapModel,
    SwapResponse,
    SwapStatus,
    SwapTaker,
    TargetedTaker,
)
from .accounts import AccountResolver
from .repository import LedgerRepository
from .responses import swap_to_response
from .transactions import TransactionLog
from .unit_of_work import atomic


logger = logging.getLogger(__name__)


class SwapEngine:
    """State machine for two-party currency swaps.

    ``pending`` moves exactly once, to ``accepted`` or ``cancelled``. The
    maker's amount is escrowed (debited) when the swap is created, so a
    pending swap always represents funds already taken from the maker.
    Every public operation is a single unit of work.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
        resolver: Optional[AccountResolver] = None,
        transaction_log: Optional[TransactionLog] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.resolver = resolver or AccountResolver(self.repository)
        self.transaction_log = transaction_log or TransactionLog(self.repository)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _pending_swap(self, swap_id: int) -> SwapModel:
        swap = self.repository.get_swap(swap_id, for_update=True)
        if swap is None:
            raise SwapNotFoundError(f"Swap {swap_id} not found")
        if swap.status != SwapStatus.PENDING:
            raise SwapNotPendingError(
                f"Swap {swap_id} is {swap.status.value}, not pending"
            )
        return swap

    def _maker_account(self, swap: SwapModel) -> AccountModel:
        maker = self.repository.get_account(swap.maker_account_id)
        if maker is None:
            raise MakerAccountNotFoundError(
                f"Maker account {swap.maker_account_id} not found"
            )
        return maker

    def _targeted_account(self, taker: TargetedTaker) -> AccountModel:
        account = self.repository.get_account(taker.account_id)
        if account is None:
            raise AccountNotFoundError(f"Taker account {taker.account_id} not found")
        return account

    def _authorize_acceptance(
        self, taker: SwapTaker, maker: AccountModel, user_key: str
    ) -> None:
        if isinstance(taker, TargetedTaker):
            if self._targeted_account(taker).user_key != user_key:
                raise NotAuthorizedError(
                    "Only the designated taker can accept this swap"
                )
        elif maker.user_key == user_key:
            raise CannotAcceptOwnSwapError("Cannot accept your own open swap")

    def _transition(self, swap: SwapModel, to_status: SwapStatus, **values) -> None:
        moved = self.repository.transition_swap(
            swap.id, from_status=SwapStatus.PENDING, to_status=to_status, **values
        )
        if not moved:
            raise SwapNotPendingError(f"Swap {swap.id} is no longer pending")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_swap(
        self,
        maker_account_id: int,
        maker_currency_id: int,
        taker_currency_id: int,
        maker_amount: AmountLike,
        taker_amount: AmountLike,
        taker: SwapTaker = OpenTaker(),
    ) -> int:
        """Escrow ``maker_amount`` from the maker and record a pending swap.

        Returns the new swap id. Raises ``InsufficientFundsError`` without
        touching any state when the maker cannot cover the amount.
        """
        maker_units = to_positive_units(maker_amount, "Maker amount")
        taker_units = to_positive_units(taker_amount, "Taker amount")

        with atomic(self.session):
            maker = self.repository.get_account(maker_account_id)
            if maker is None:
                raise AccountNotFoundError(f"Account {maker_account_id} not found")
            if maker.currency_id != maker_currency_id:
                raise ValueError(
                    f"Account {maker_account_id} does not hold currency {maker_currency_id}"
                )
            if self.repository.get_currency(taker_currency_id) is None:
                raise CurrencyNotFoundError(f"Currency {taker_currency_id} not found")

            taker_account_id = None
            if isinstance(taker, TargetedTaker):
                target = self._targeted_account(taker)
                if target.currency_id != taker_currency_id:
                    raise ValueError(
                        f"Account {target.id} does not hold currency {taker_currency_id}"
                    )
                if target.user_key == maker.user_key:
                    raise ValueError("Cannot create a swap with yourself")
                taker_account_id = target.id

            try:
                self.repository.adjust_balance(maker.id, -maker_units)
            except InsufficientFundsError as exc:
                raise InsufficientFundsError("Maker has insufficient balance") from exc

            swap = self.repository.add_swap(
                maker_account_id=maker.id,
                taker_account_id=taker_account_id,
                maker_currency_id=maker_currency_id,
                taker_currency_id=taker_currency_id,
                maker_amount=maker_units,
                taker_amount=taker_units,
            )
            swap_id = swap.id

        logger.info(
            "swap.created",
            extra={
                "swap_id": swap_id,
                "maker_account_id": maker_account_id,
                "taker_account_id": taker_account_id,
                "maker_amount": maker_units,
                "taker_amount": taker_units,
            },
        )
        return swap_id

    def accept_swap(
        self,
        swap_id: int,
        accepting_user_key: str,
        txn_id_a: str,
        txn_id_b: str,
    ) -> SwapResponse:
        """Settle a pending swap against ``accepting_user_key``.

        ``txn_id_a`` records the taker -> maker leg and ``txn_id_b`` the
        maker -> taker leg. Both ids are checked before anything else, so a
        retry of an acceptance that already committed reports
        ``DuplicateTransactionIdError`` and changes nothing.
        """
        try:
            with atomic(self.session):
                self.transaction_log.ensure_unused(txn_id_a, txn_id_b)

                swap = self._pending_swap(swap_id)
                maker = self._maker_account(swap)
                taker = swap.taker
                self._authorize_acceptance(taker, maker, accepting_user_key)

                user_taker = self.resolver.resolve(accepting_user_key, swap.taker_currency_id)
                user_maker = self.resolver.resolve(accepting_user_key, swap.maker_currency_id)
                maker_taker = self.resolver.resolve(maker.user_key, swap.taker_currency_id)

                if user_taker.balance < swap.taker_amount:
                    raise InsufficientFundsError("Insufficient balance to accept swap")

                filled_by = user_taker.id if isinstance(taker, OpenTaker) else None
                self._transition(swap, SwapStatus.ACCEPTED, taker_account_id=filled_by)

                self.repository.adjust_balance(user_taker.id, -swap.taker_amount)
                self.repository.adjust_balance(user_maker.id, swap.maker_amount)
                self.repository.adjust_balance(maker_taker.id, swap.taker_amount)
                # the maker's own leg was escrowed at creation

                self.transaction_log.append(
                    txn_id_a, user_taker.id, maker_taker.id, swap.taker_amount
                )
                self.transaction_log.append(
                    txn_id_b, maker.id, user_maker.id, swap.maker_amount
                )
                response = swap_to_response(self.repository.get_swap(swap_id))
        except LedgerError as exc:
            logger.warning(
                "swap.accept.rejected",
                extra={"swap_id": swap_id, "user_key": accepting_user_key, "kind": exc.kind},
            )
            raise

        logger.info(
            "swap.accepted",
            extra={
                "swap_id": swap_id,
                "user_key": accepting_user_key,
                "taker_account_id": response.taker_account_id,
                "txn_ids": [txn_id_a, txn_id_b],
            },
        )
        return response

    def cancel_swap(
        self,
        swap_id: int,
        requested_by: Optional[str] = None,
    ) -> SwapResponse:
        """Refund the escrowed maker amount and mark the swap cancelled.

        When ``requested_by`` is given it must be the maker or, for a
        targeted swap, the designated taker. Schedulers call without it.
        """
        with atomic(self.session):
            swap = self._pending_swap(swap_id)
            maker = self._maker_account(swap)

            if requested_by is not None and requested_by != maker.user_key:
                taker = swap.taker
                if not (
                    isinstance(taker, TargetedTaker)
                    and self._targeted_account(taker).user_key == requested_by
                ):
                    raise NotAuthorizedError(
                        "Only the maker or the designated taker can cancel this swap"
                    )

            self._transition(swap, SwapStatus.CANCELLED)
            self.repository.adjust_balance(maker.id, swap.maker_amount)
            response = swap_to_response(self.repository.get_swap(swap_id))

        logger.info(
            "swap.cancelled",
            extra={
                "swap_id": swap_id,
                "maker_account_id": response.maker_account_id,
                "refunded": str(response.maker_amount),
            },
        )
        return response

    def complete_swap(self, swap_id: int) -> SwapResponse:
        """Administrative ``accepted -> completed`` flip; balances are untouched."""
        with atomic(self.session):
            swap = self.repository.get_swap(swap_id, for_update=True)
            if swap is None:
                raise SwapNotFoundError(f"Swap {swap_id} not found")
            moved = self.repository.transition_swap(
                swap_id,
                from_status=SwapStatus.ACCEPTED,
                to_status=SwapStatus.COMPLETED,
            )
            if not moved:
                raise SwapNotAcceptedError(
                    f"Swap {swap_id} is {swap.status.value}, not accepted"
                )
            response = swap_to_response(self.repository.get_swap(swap_id))

        logger.info("swap.completed", extra={"swap_id": swap_id})
        return response
