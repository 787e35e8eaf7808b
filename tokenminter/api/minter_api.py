"""User-facing API for the semi-fungible asset ledger.

MinterAPI wires the layers together and is the only entry point callers
need: queries, mint, approvals, transfers and portfolio composition. Every
mutating call runs under one lock and one store transaction; events are
published only once that transaction commits.
"""

import threading
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Deque, Iterator, List, Optional, Sequence

import pandas as pd

from tokenminter.approval.manager import ApprovalManager
from tokenminter.approval.signatures import EIP712PermitVerifier, PermitDomain, SignatureVerifier
from tokenminter.composition.engine import CompositionEngine, Recipe
from tokenminter.identity.accounts import to_account
from tokenminter.identity.codec import IdentityCodec
from tokenminter.ledger.balances import BalanceLedger, validate_asset_id
from tokenminter.ledger.base import LedgerStore
from tokenminter.ledger.memory_store import MemoryLedgerStore
from tokenminter.ledger.sqlite_store import SQLiteLedgerStore
from tokenminter.transfer.engine import TransferEngine
from tokenminter.utils.config import (
    DEFAULT_EVENT_HISTORY,
    NULL_ACCOUNT,
    MinterSettings,
    load_minter_settings,
)
from tokenminter.utils.events import LedgerEvent, LedgerEventLogger, LedgerEventType
from tokenminter.utils.exceptions import InvalidRecipientError, UnauthorizedMinterError
from tokenminter.utils.logging import get_logger, log_rejection, setup_logging

logger = get_logger(__name__)


class MinterAPI:
    """High-level API for the ledger.

    Example:
        >>> api = MinterAPI(minter=owner)
        >>> api.mint(owner, 1, alice, 10)
        >>> api.mint(owner, 2, alice, 20)
        >>> portfolio_id = api.compose(alice, [1, 2], [1, 2], 5)
        >>> api.balance_of(alice, portfolio_id)
        5
        >>> api.balance_of(alice)
        2
    """

    def __init__(
        self,
        minter: str,
        store: Optional[LedgerStore] = None,
        domain: Optional[PermitDomain] = None,
        verifier: Optional[SignatureVerifier] = None,
        clock: Optional[Callable[[], int]] = None,
        base_token_uri: str = "",
        event_logger: Optional[LedgerEventLogger] = None,
        event_history: Optional[int] = DEFAULT_EVENT_HISTORY,
    ):
        """Initialize MinterAPI.

        Args:
            minter: Account holding the mint role
            store: Backing store (defaults to MemoryLedgerStore)
            domain: EIP-712 domain for permits (defaults to PermitDomain())
            verifier: Permit signature verifier (defaults to EIP712PermitVerifier(domain))
            clock: Current Unix time source for permit expiry
            base_token_uri: Prefix for token_uri()
            event_logger: Optional JSON event log mirror
            event_history: How many committed events ``events`` keeps (None = unbounded)
        """
        self.minter = to_account(minter)
        self.store = store or MemoryLedgerStore()
        self.domain = domain or PermitDomain()
        self.base_token_uri = base_token_uri
        self.event_logger = event_logger

        self.events: Deque[LedgerEvent] = deque(maxlen=event_history)
        self._pending: List[LedgerEvent] = []
        self._lock = threading.RLock()
        self._depth = 0

        self.codec = IdentityCodec()
        self.balances = BalanceLedger(self.store)
        self.approvals = ApprovalManager(
            self.store,
            self.balances,
            verifier=verifier or EIP712PermitVerifier(self.domain),
            clock=clock,
            emit=self._pending.append,
        )
        self.transfers = TransferEngine(self.balances, self.approvals, emit=self._pending.append)
        self.composer = CompositionEngine(self.balances, self.codec, emit=self._pending.append)

        logger.debug("MinterAPI initialized with %s", type(self.store).__name__)

    @classmethod
    def from_settings(
        cls,
        settings: MinterSettings,
        clock: Optional[Callable[[], int]] = None,
    ) -> "MinterAPI":
        """Build an API instance from loaded settings."""
        if settings.storage_backend == "sqlite":
            store: LedgerStore = SQLiteLedgerStore(settings.db_path)
        else:
            store = MemoryLedgerStore()

        event_logger = None
        if settings.event_log_dir:
            event_logger = LedgerEventLogger(log_dir=settings.event_log_dir)

        return cls(
            minter=settings.minter,
            store=store,
            domain=PermitDomain(
                name=settings.domain_name,
                version=settings.domain_version,
                verifying_contract=settings.verifying_contract,
            ),
            clock=clock,
            base_token_uri=settings.base_token_uri,
            event_logger=event_logger,
            event_history=settings.event_history,
        )

    @contextmanager
    def _operation(self, name: str, **context) -> Iterator[None]:
        """Run one public mutating call atomically.

        Nested calls join the outer operation; only the outermost call
        publishes events or logs the rejection.
        """
        with self._lock:
            outermost = self._depth == 0
            mark = len(self._pending)
            self._depth += 1
            try:
                with self.store.transaction():
                    yield
            except Exception as e:
                del self._pending[mark:]
                if outermost:
                    log_rejection(logger, name, e, **context)
                raise
            finally:
                self._depth -= 1

            if outermost:
                self._publish()

    def _publish(self) -> None:
        committed, self._pending[:] = list(self._pending), []
        self.events.extend(committed)
        if self.event_logger is not None:
            for event in committed:
                self.event_logger.log_event(event)

    # Queries

    def balance_of(self, owner: str, asset_id: Optional[int] = None) -> int:
        """Return a quantity, or the distinct-asset count when asset_id is omitted.

        Args:
            owner: Account to query
            asset_id: Asset to query; None returns how many distinct assets owner holds

        Returns:
            Quantity of asset_id, or number of distinct assets held
        """
        owner = to_account(owner)
        with self._lock:
            if asset_id is None:
                return self.balances.count_distinct(owner)
            validate_asset_id(asset_id)
            return self.balances.get(owner, asset_id)

    def held_assets(self, owner: str) -> List[int]:
        owner = to_account(owner)
        with self._lock:
            return self.balances.held_assets(owner)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        owner, operator = to_account(owner), to_account(operator)
        with self._lock:
            return self.approvals.is_approved_for_all(owner, operator)

    def get_approved(self, owner: str, asset_id: int) -> Optional[str]:
        """Return the single-asset approved spender for (owner, asset_id)."""
        owner = to_account(owner)
        with self._lock:
            return self.approvals.get_single_approval(owner, asset_id)

    def permit_nonce(self, owner: str) -> int:
        owner = to_account(owner)
        with self._lock:
            return self.approvals.permit_nonce(owner)

    def portfolio_id(self, asset_ids: Sequence[int], ratios: Sequence[int]) -> int:
        """Derive the id a composition of (asset_ids, ratios) would produce."""
        recipe = Recipe.of(asset_ids, ratios)
        return self.codec.derive(recipe.asset_ids, recipe.ratios)

    def token_uri(self, asset_id: int) -> str:
        """Metadata URI for an asset: the configured base URI followed by the decimal id."""
        validate_asset_id(asset_id)
        return f"{self.base_token_uri}{asset_id}"

    def holdings_frame(self, owner: str) -> pd.DataFrame:
        """Snapshot of an owner's positions.

        Returns:
            DataFrame indexed by asset_id with a quantity column. Values are
            Python ints in object columns since they may exceed 64 bits.
        """
        owner = to_account(owner)
        with self._lock:
            rows = [
                {"asset_id": asset_id, "quantity": self.balances.get(owner, asset_id)}
                for asset_id in self.balances.held_assets(owner)
            ]

        df = pd.DataFrame(rows, columns=["asset_id", "quantity"], dtype=object)
        return df.set_index("asset_id")

    # Mint

    def mint(self, caller: str, asset_id: int, to: str, amount: int) -> None:
        """Create ``amount`` new units of ``asset_id`` for ``to``.

        Raises:
            InvalidAccountError: If caller or ``to`` is not an address
            UnauthorizedMinterError: If caller does not hold the minter role
            InvalidRecipientError: If ``to`` is the null account
            QuantityOverflowError: If the balance would overflow
        """
        with self._operation("mint", caller=caller, asset=asset_id, to=to, amount=amount):
            caller, to = to_account(caller), to_account(to)
            if caller != self.minter:
                raise UnauthorizedMinterError(f"{caller} is not the minter")
            if to == NULL_ACCOUNT:
                raise InvalidRecipientError("Invalid to address")

            self.balances.credit(to, asset_id, amount)
            self._pending.append(
                LedgerEvent(
                    LedgerEventType.TRANSFER_SINGLE,
                    {
                        "operator": caller,
                        "from": NULL_ACCOUNT,
                        "to": to,
                        "asset_id": asset_id,
                        "amount": amount,
                    },
                )
            )
        logger.info("Minted %s of asset %s to %s", amount, asset_id, to)

    # Approvals

    def set_operator_approval(self, owner: str, operator: str, approved: bool) -> None:
        with self._operation("set_operator_approval", owner=owner, operator=operator):
            self.approvals.set_operator_approval(to_account(owner), to_account(operator), approved)

    def set_single_approval(self, owner: str, asset_id: int, spender: Optional[str]) -> None:
        with self._operation("set_single_approval", owner=owner, asset=asset_id):
            if spender is not None:
                spender = to_account(spender)
            self.approvals.set_single_approval(to_account(owner), asset_id, spender)

    def permit(
        self,
        holder: str,
        spender: str,
        nonce: int,
        expiry: int,
        allowed: bool,
        signature: bytes | str,
    ) -> None:
        with self._operation("permit", holder=holder, spender=spender, nonce=nonce):
            self.approvals.permit(
                to_account(holder), to_account(spender), nonce, expiry, allowed, signature
            )

    # Transfers

    def transfer(self, caller: str, from_: str, to: str, asset_id: int, amount: int) -> None:
        with self._operation("transfer", caller=caller, from_=from_, to=to, asset=asset_id):
            self.transfers.transfer(
                to_account(caller), to_account(from_), to_account(to), asset_id, amount
            )

    def batch_transfer(
        self,
        caller: str,
        from_: str,
        to: str,
        asset_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        with self._operation("batch_transfer", caller=caller, from_=from_, to=to):
            self.transfers.batch_transfer(
                to_account(caller), to_account(from_), to_account(to), asset_ids, amounts
            )

    # Composition

    def compose(self, caller: str, asset_ids: Sequence[int], ratios: Sequence[int], count: int) -> int:
        with self._operation("compose", caller=caller, count=count):
            return self.composer.compose(to_account(caller), asset_ids, ratios, count)

    def decompose(
        self,
        caller: str,
        portfolio_id: int,
        asset_ids: Sequence[int],
        ratios: Sequence[int],
        count: int,
    ) -> None:
        with self._operation("decompose", caller=caller, portfolio=portfolio_id, count=count):
            self.composer.decompose(to_account(caller), portfolio_id, asset_ids, ratios, count)

    def recompose(
        self,
        caller: str,
        old_portfolio_id: int,
        asset_ids: Sequence[int],
        old_ratios: Sequence[int],
        new_ratios: Sequence[int],
        count: int,
        new_asset_ids: Optional[Sequence[int]] = None,
    ) -> int:
        with self._operation("recompose", caller=caller, portfolio=old_portfolio_id, count=count):
            return self.composer.recompose(
                to_account(caller),
                old_portfolio_id,
                asset_ids,
                old_ratios,
                new_ratios,
                count,
                new_asset_ids,
            )

    def close(self) -> None:
        """Close the store and the event log."""
        self.store.close()
        if self.event_logger is not None:
            self.event_logger.close()

    def __enter__(self) -> "MinterAPI":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_minter(
    config_file: str | Path = None,
    env_file: str | Path = None,
    clock: Optional[Callable[[], int]] = None,
) -> MinterAPI:
    """Load settings, configure logging and build a MinterAPI.

    Args:
        config_file: YAML config path (defaults to config/default.yaml)
        env_file: Optional .env file with TOKENMINTER_* overrides
        clock: Optional time source for permit expiry

    Returns:
        Ready-to-use MinterAPI
    """
    settings = load_minter_settings(config_file=config_file, env_file=env_file)
    setup_logging(level=settings.log_level)
    logger.info(
        "Creating ledger: backend=%s minter=%s", settings.storage_backend, settings.minter
    )
    return MinterAPI.from_settings(settings, clock=clock)
