"""Stateful fare account wrapping the functional fare engine."""

from typing import List

from farecap.models import AccountState, FareConfig, FareResult, FareTransaction, Journey
from farecap.services.fare_calculator import (
    create_initial_account_state,
    process_journey,
    sort_journeys,
)


class FareAccount:
    """
    One rider's account, keeping its ledger between calls.

    The account owns its state outright: accessors hand back copies,
    so nothing a caller holds can change the ledger behind its back.
    """

    def __init__(self, config: FareConfig):
        self._config = config
        self._state = create_initial_account_state()

    @property
    def config(self) -> FareConfig:
        return self._config

    def process_journey(self, journey: Journey) -> FareTransaction:
        """
        Charge one journey and advance the ledger.

        Journeys dated before the last charged day raise InvalidInputError.
        If charging fails the ledger is left exactly as it was.
        """
        transaction, new_state = process_journey(journey, self._state, self._config)
        self._state = new_state
        return transaction

    def process_journeys(self, journeys: List[Journey]) -> List[FareTransaction]:
        """
        Charge journeys in chronological order.

        The ledger only advances once the whole batch has been charged.
        """
        state = self._state
        transactions = []
        for journey in sort_journeys(journeys):
            transaction, state = process_journey(journey, state, self._config)
            transactions.append(transaction)
        self._state = state
        return transactions

    def calculate_total_fare(self, journeys: List[Journey]) -> int:
        return sum(t.charged_fare for t in self.process_journeys(journeys))

    def get_state(self) -> AccountState:
        """Independent copy of the current ledger."""
        return self._state.model_copy(deep=True)

    def reset(self) -> None:
        self._state = create_initial_account_state()

    def get_daily_total(self) -> int:
        return self._state.daily_total

    def get_weekly_total(self) -> int:
        return self._state.weekly_total

    def get_daily_cap(self) -> int:
        return self._state.current_applicable_daily_cap

    def get_weekly_cap(self) -> int:
        return self._state.current_applicable_weekly_cap

    def create_fare_result(self, transactions: List[FareTransaction]) -> FareResult:
        """Bundle transactions with a snapshot of the current ledger."""
        return FareResult(
            total_fare=sum(t.charged_fare for t in transactions),
            transactions=list(transactions),
            final_state=self.get_state(),
        )
