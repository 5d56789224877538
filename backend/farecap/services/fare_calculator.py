"""Fare calculation service: peak pricing with daily and weekly caps."""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Protocol, Tuple, runtime_checkable

from farecap.exceptions import ConfigurationMissingError, InvalidInputError
from farecap.models import (
    AccountState,
    FareConfig,
    FareResult,
    FareTransaction,
    Journey,
    ZoneCombination,
)
from farecap.services.classifier import parse_timestamp, time_of_travel, zone_combination
from farecap.services.periods import (
    highest_capped_combination,
    highest_zone_combination,
    is_same_day,
    journey_date,
    week_start,
)

logger = logging.getLogger(__name__)


def create_initial_account_state() -> AccountState:
    """Empty ledger: no totals, no caps, no period established."""
    return AccountState()


def _reset_daily(state: AccountState, day: date) -> AccountState:
    return state.model_copy(update={
        "daily_total": 0,
        "current_applicable_daily_cap": 0,
        "current_daily_cap_combo": None,
        "last_journey_date": day,
    })


def _reset_weekly(state: AccountState, day: date) -> AccountState:
    return AccountState(last_journey_date=day, week_start=week_start(day))


def reset_state_if_needed(state: AccountState, day: date) -> AccountState:
    """
    Start a new day or week if the journey falls outside the current one.

    Same day keeps everything; a new day in the same week keeps the weekly
    total and weekly cap; a new week starts from scratch.
    """
    if state.last_journey_date is not None and is_same_day(state.last_journey_date, day):
        return state

    if state.week_start is None or state.week_start != week_start(day):
        logger.debug("New week starting %s", week_start(day))
        return _reset_weekly(state, day)

    logger.debug("New day %s within week of %s", day, state.week_start)
    return _reset_daily(state, day)


def _escalate(
    current: ZoneCombination,
    candidate: ZoneCombination,
    caps: dict,
    config: FareConfig,
) -> ZoneCombination:
    if current is None:
        return candidate
    if config.cap_precedence == "fixed":
        return highest_zone_combination(current, candidate)
    return highest_capped_combination(current, candidate, caps)


def update_applicable_caps(
    state: AccountState,
    combo: ZoneCombination,
    config: FareConfig,
) -> AccountState:
    """
    Raise the daily and weekly caps to the dearest combination seen this period.

    Daily and weekly caps escalate independently of each other.

    Raises:
        ConfigurationMissingError: If the combination has no daily or weekly cap
    """
    for table_name, caps in (("daily cap", config.daily_caps), ("weekly cap", config.weekly_caps)):
        if combo not in caps:
            raise ConfigurationMissingError(combo, table_name)

    daily_combo = _escalate(state.current_daily_cap_combo, combo, config.daily_caps, config)
    weekly_combo = _escalate(state.current_weekly_cap_combo, combo, config.weekly_caps, config)

    return state.model_copy(update={
        "current_daily_cap_combo": daily_combo,
        "current_weekly_cap_combo": weekly_combo,
        "current_applicable_daily_cap": config.daily_caps[daily_combo],
        "current_applicable_weekly_cap": config.weekly_caps[weekly_combo],
    })


def calculate_base_fare(journey: Journey, config: FareConfig) -> int:
    """
    Price of a journey before any cap.

    Raises:
        ConfigurationMissingError: If the zone combination has no base fare
        InvalidInputError: If the journey timestamp cannot be parsed
    """
    combo = zone_combination(journey.from_zone, journey.to_zone)
    fares = config.base_fares.get(combo)
    if fares is None:
        raise ConfigurationMissingError(combo, "base fare")
    return fares.for_time(time_of_travel(journey))


def apply_caps(base_fare: int, state: AccountState) -> Tuple[int, str]:
    """
    Cut a base fare down to what the daily cap, then the weekly cap, allows.

    Returns:
        Charged fare and a human-readable explanation
    """
    explanation = f"Base fare: {base_fare}p"

    daily_charge = min(base_fare, max(0, state.current_applicable_daily_cap - state.daily_total))
    if daily_charge < base_fare:
        explanation += f" (Daily cap applied: {daily_charge}p charged)"

    weekly_charge = min(daily_charge, max(0, state.current_applicable_weekly_cap - state.weekly_total))
    if weekly_charge < daily_charge:
        explanation += f" (Weekly cap applied: {weekly_charge}p charged)"

    return weekly_charge, explanation


def process_journey(
    journey: Journey,
    state: AccountState,
    config: FareConfig,
) -> Tuple[FareTransaction, AccountState]:
    """
    Charge one journey against an account.

    The passed-in state is never modified. On error nothing is returned,
    so the caller still holds its prior state.

    Args:
        journey: Journey to charge
        state: Account state before this journey
        config: Fare table to price against

    Returns:
        The transaction record and the account state after this journey

    Raises:
        InvalidInputError: If the journey is dated before the account's last journey
    """
    day = journey_date(journey.date_time)
    if state.last_journey_date is not None and day < state.last_journey_date:
        raise InvalidInputError(
            f"Journey on {day} is earlier than the last charged journey on {state.last_journey_date}"
        )
    combo = zone_combination(journey.from_zone, journey.to_zone)

    period_state = reset_state_if_needed(state, day)
    capped_state = update_applicable_caps(period_state, combo, config)
    base_fare = calculate_base_fare(journey, config)

    charged_fare, explanation = apply_caps(base_fare, capped_state)
    if charged_fare < base_fare:
        logger.debug("Journey %s capped from %sp to %sp", journey.date_time, base_fare, charged_fare)

    new_state = capped_state.model_copy(update={
        "daily_total": capped_state.daily_total + charged_fare,
        "weekly_total": capped_state.weekly_total + charged_fare,
    })

    transaction = FareTransaction(
        journey=journey,
        base_fare=base_fare,
        charged_fare=charged_fare,
        explanation=explanation,
        daily_total_before=capped_state.daily_total,
        weekly_total_before=capped_state.weekly_total,
        daily_total_after=new_state.daily_total,
        weekly_total_after=new_state.weekly_total,
    )
    return transaction, new_state


def sort_journeys(journeys: Iterable[Journey]) -> List[Journey]:
    """
    Order journeys chronologically; equal timestamps keep their input order.

    Every timestamp is parsed up front, so a bad one fails the whole batch
    before any journey is charged.
    """
    keyed = [(parse_timestamp(journey.date_time), journey) for journey in journeys]
    keyed.sort(key=lambda pair: pair[0])
    return [journey for _, journey in keyed]


@runtime_checkable
class FareCalculatorInterface(Protocol):
    """
    Interface for fare calculation (Dependency Inversion Principle).
    This protocol defines the contract that all fare calculators must follow.
    """

    def process_journey(
        self, journey: Journey, state: AccountState
    ) -> Tuple[FareTransaction, AccountState]:
        """Charge a single journey against an account state."""
        ...

    def calculate_fares(self, journeys: List[Journey]) -> FareResult:
        """Charge a batch of journeys from an empty account."""
        ...


class BaseFareCalculator(ABC):
    """Abstract base class for fare calculators (Open/Closed Principle)."""

    @abstractmethod
    def process_journey(
        self, journey: Journey, state: AccountState
    ) -> Tuple[FareTransaction, AccountState]:
        """
        Charge a single journey.
        Must be implemented by subclasses.
        """
        pass

    def calculate_fares(self, journeys: List[Journey]) -> FareResult:
        """
        Charge journeys in chronological order, starting from an empty account.
        Default implementation folds process_journey over the sorted list.
        """
        state = create_initial_account_state()
        transactions = []
        total_fare = 0

        for journey in sort_journeys(journeys):
            transaction, state = self.process_journey(journey, state)
            transactions.append(transaction)
            total_fare += transaction.charged_fare

        return FareResult(
            total_fare=total_fare,
            transactions=transactions,
            final_state=state
        )


class CappedFareCalculator(BaseFareCalculator):
    """
    Concrete calculator applying peak pricing and daily/weekly caps.
    Holds the fare table it prices against; it keeps no account state.
    """

    def __init__(self, config: FareConfig):
        self.config = config

    def process_journey(
        self, journey: Journey, state: AccountState
    ) -> Tuple[FareTransaction, AccountState]:
        return process_journey(journey, state, self.config)

    # calculate_fares is inherited from BaseFareCalculator


def calculate_fares(journeys: List[Journey], config: FareConfig) -> FareResult:
    """
    Charge a batch of journeys for one rider.

    Args:
        journeys: Journeys in any order
        config: Fare table to price against

    Returns:
        FareResult with transactions in chronological order
    """
    return CappedFareCalculator(config).calculate_fares(journeys)


def get_fare_calculator(config: FareConfig) -> FareCalculatorInterface:
    """
    Get a fare calculator bound to the given fare table.

    Returns:
        Fare calculator instance implementing FareCalculatorInterface
    """
    return CappedFareCalculator(config)
