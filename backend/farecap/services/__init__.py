"""Services package for the PearlCard fare engine."""

from .account import FareAccount
from .fare_calculator import (
    get_fare_calculator,
    calculate_fares,
    process_journey,
    create_initial_account_state,
    FareCalculatorInterface,
    CappedFareCalculator
)

__all__ = [
    'get_fare_calculator',
    'calculate_fares',
    'process_journey',
    'create_initial_account_state',
    'FareCalculatorInterface',
    'CappedFareCalculator',
    'FareAccount'
]
