"""Unit tests for the capped fare calculation engine."""

import random
from datetime import date, datetime, timedelta
from itertools import permutations

import pytest

from farecap.exceptions import ConfigurationMissingError, InvalidInputError
from farecap.models import AccountState, FareConfig, FareResult, Journey
from farecap.services.fare_calculator import (
    CappedFareCalculator,
    FareCalculatorInterface,
    calculate_base_fare,
    calculate_fares,
    create_initial_account_state,
    get_fare_calculator,
    process_journey,
    sort_journeys,
)


def make_journey(date_time: str, from_zone: int, to_zone: int) -> Journey:
    return Journey(date_time=date_time, from_zone=from_zone, to_zone=to_zone)


def run(journeys, config):
    """Process journeys in the given order, returning transactions and every state."""
    state = create_initial_account_state()
    transactions, states = [], []
    for journey in journeys:
        transaction, state = process_journey(journey, state, config)
        transactions.append(transaction)
        states.append(state)
    return transactions, states


THREE_ZONE_TABLE = {
    "base_fares": {
        f"{a}-{b}": {"peak": 20 + 10 * abs(a - b) + 5 * (a == 1 or b == 1),
                     "off-peak": 15 + 10 * abs(a - b)}
        for a in (1, 2, 3) for b in (1, 2, 3)
    },
    "daily_caps": {
        "1-1": 100, "2-2": 80, "3-3": 60,
        "1-2": 120, "2-1": 120, "2-3": 100, "3-2": 100,
        "1-3": 150, "3-1": 150,
    },
    "weekly_caps": {
        "1-1": 500, "2-2": 400, "3-3": 300,
        "1-2": 600, "2-1": 600, "2-3": 500, "3-2": 500,
        "1-3": 750, "3-1": 750,
    },
}


class TestInitialState:
    """Test the empty ledger."""

    def test_initial_state_is_empty(self):
        state = create_initial_account_state()
        assert state.daily_total == 0
        assert state.weekly_total == 0
        assert state.current_applicable_daily_cap == 0
        assert state.current_applicable_weekly_cap == 0
        assert state.current_daily_cap_combo is None
        assert state.current_weekly_cap_combo is None
        assert state.last_journey_date is None
        assert state.week_start is None


class TestBaseFare:
    """Test pre-cap pricing."""

    def test_base_fares_for_zones_and_times(self, config):
        assert calculate_base_fare(make_journey("2023-01-02 08:30", 1, 1), config) == 30
        assert calculate_base_fare(make_journey("2023-01-02 12:00", 1, 1), config) == 25
        assert calculate_base_fare(make_journey("2023-01-02 08:30", 1, 2), config) == 35
        assert calculate_base_fare(make_journey("2023-01-02 12:00", 2, 1), config) == 30
        assert calculate_base_fare(make_journey("2023-01-02 12:00", 2, 2), config) == 20

    def test_custom_config(self):
        custom = FareConfig(
            base_fares={
                "1-1": {"peak": 50, "off-peak": 40},
                "1-2": {"peak": 60, "off-peak": 50},
                "2-1": {"peak": 60, "off-peak": 50},
                "2-2": {"peak": 40, "off-peak": 30},
            },
            daily_caps={"1-1": 200, "1-2": 240, "2-1": 240, "2-2": 160},
            weekly_caps={"1-1": 1000, "1-2": 1200, "2-1": 1200, "2-2": 800},
        )
        assert calculate_base_fare(make_journey("2023-01-02T08:00:00", 1, 1), custom) == 50

    def test_missing_zone_combination(self, config):
        with pytest.raises(ConfigurationMissingError) as exc_info:
            calculate_base_fare(make_journey("2023-01-02 08:30", 1, 3), config)
        assert exc_info.value.zone_combination == "1-3"


class TestProcessJourney:
    """Test single-journey transitions."""

    def test_first_journey(self, config):
        journey = make_journey("2023-01-02 08:30", 1, 2)
        transaction, state = process_journey(journey, create_initial_account_state(), config)

        assert transaction.base_fare == 35
        assert transaction.charged_fare == 35
        assert transaction.explanation == "Base fare: 35p"
        assert state.daily_total == 35
        assert state.weekly_total == 35
        assert state.current_applicable_daily_cap == 120
        assert state.current_applicable_weekly_cap == 600
        assert state.last_journey_date == date(2023, 1, 2)
        assert state.week_start == date(2023, 1, 2)

    def test_monday_peak_zone_one(self, config):
        transaction, _ = process_journey(
            make_journey("2023-01-02 08:30", 1, 1), create_initial_account_state(), config
        )
        assert transaction.base_fare == 30
        assert transaction.charged_fare == 30

    def test_off_peak_zone_one(self, config):
        transaction, _ = process_journey(
            make_journey("2023-01-02 12:00", 1, 1), create_initial_account_state(), config
        )
        assert transaction.base_fare == 25

    def test_daily_cap(self, config):
        journeys = [make_journey(f"2023-01-02 {hour}:00", 1, 2) for hour in (8, 9, 10, 11)]
        transactions, states = run(journeys, config)

        assert [t.charged_fare for t in transactions] == [35, 35, 35, 15]
        assert [s.daily_total for s in states] == [35, 70, 105, 120]
        assert "Daily cap applied" in transactions[3].explanation
        assert transactions[3].explanation == "Base fare: 30p (Daily cap applied: 15p charged)"
        assert transactions[3].daily_total_before == 105
        assert transactions[3].daily_total_after == 120

    def test_charge_is_zero_once_capped(self, config):
        journeys = [make_journey(f"2023-01-02 {hour}:00", 1, 2) for hour in (8, 9, 10, 11, 12)]
        transactions, states = run(journeys, config)

        assert transactions[4].charged_fare == 0
        assert transactions[4].base_fare == 30
        assert states[4].daily_total == 120

    def test_daily_reset_within_week(self, config):
        transactions, states = run([
            make_journey("2023-01-02 08:30", 1, 2),
            make_journey("2023-01-03 08:30", 1, 2),
        ], config)

        assert states[1].daily_total == 35
        assert states[1].weekly_total == 70
        assert states[1].week_start == date(2023, 1, 2)
        assert transactions[1].daily_total_before == 0
        assert transactions[1].weekly_total_before == 35

    def test_weekly_reset_on_next_monday(self, config):
        _, states = run([
            make_journey("2023-01-02T08:00:00", 1, 2),
            make_journey("2023-01-09T08:00:00", 1, 2),
        ], config)

        assert states[0].weekly_total == 35
        assert states[1].weekly_total == 35
        assert states[1].week_start == date(2023, 1, 9)

    def test_sunday_to_monday_starts_new_week(self, config):
        _, states = run([
            make_journey("2023-01-08T12:00:00", 1, 1),
            make_journey("2023-01-09T12:00:00", 1, 1),
        ], config)

        assert states[1].weekly_total == 25
        assert states[1].week_start == date(2023, 1, 9)

    def test_daily_cap_escalates(self, config):
        _, states = run([
            make_journey("2023-01-02T08:00:00", 2, 2),
            make_journey("2023-01-02T09:00:00", 1, 2),
        ], config)

        assert states[0].current_applicable_daily_cap == 80
        assert states[1].current_applicable_daily_cap == 120
        assert states[1].current_daily_cap_combo == "1-2"

    def test_daily_cap_never_shrinks(self, config):
        _, states = run([
            make_journey("2023-01-02T08:00:00", 1, 2),
            make_journey("2023-01-02T09:00:00", 2, 2),
            make_journey("2023-01-02T10:00:00", 1, 1),
        ], config)

        assert [s.current_applicable_daily_cap for s in states] == [120, 120, 120]
        assert [s.current_applicable_weekly_cap for s in states] == [600, 600, 600]

    def test_daily_cap_resets_but_weekly_cap_carries_over(self, config):
        _, states = run([
            make_journey("2023-01-02T08:00:00", 1, 2),
            make_journey("2023-01-03T08:00:00", 2, 2),
        ], config)

        assert states[1].current_applicable_daily_cap == 80
        assert states[1].current_applicable_weekly_cap == 600
        assert states[1].current_weekly_cap_combo == "1-2"

    def test_previous_state_is_not_modified(self, config):
        state = create_initial_account_state()
        _, new_state = process_journey(make_journey("2023-01-02 08:30", 1, 2), state, config)

        assert state == AccountState()
        assert new_state is not state

    def test_invalid_timestamp(self, config):
        with pytest.raises(InvalidInputError):
            process_journey(make_journey("2023-01-02 8h30", 1, 2), create_initial_account_state(), config)

    def test_journey_before_last_day_is_rejected(self, config):
        _, state = process_journey(make_journey("2023-01-03 08:30", 1, 2), create_initial_account_state(), config)

        with pytest.raises(InvalidInputError):
            process_journey(make_journey("2023-01-02 08:30", 1, 2), state, config)
        assert state.last_journey_date == date(2023, 1, 3)

    def test_unknown_zone_fails_before_charging(self, config):
        _, state = process_journey(make_journey("2023-01-02 08:30", 1, 2), create_initial_account_state(), config)

        with pytest.raises(ConfigurationMissingError):
            process_journey(make_journey("2023-01-02 09:30", 1, 3), state, config)
        assert state.daily_total == 35


class TestCapPrecedence:
    """Test cap_value precedence against the fixed priority list."""

    def test_fixed_list_lowers_cap_after_zone_one(self, config, fixed_config):
        journeys = [
            make_journey("2023-01-02T08:00:00", 1, 1),
            make_journey("2023-01-02T09:00:00", 2, 2),
        ]
        _, by_value = run(journeys, config)
        _, by_list = run(journeys, fixed_config)

        assert by_value[1].current_applicable_daily_cap == 100
        assert by_list[1].current_applicable_daily_cap == 80

    def test_both_rules_reach_highest_cap(self, config, fixed_config):
        journeys = [
            make_journey("2023-01-02T08:00:00", 1, 1),
            make_journey("2023-01-02T09:00:00", 2, 2),
            make_journey("2023-01-02T10:00:00", 1, 2),
        ]
        for fare_config in (config, fixed_config):
            result = calculate_fares(journeys, fare_config)
            assert result.final_state.current_applicable_daily_cap == 120
            assert result.final_state.current_applicable_weekly_cap == 600

    def test_three_zone_table_by_cap_value(self):
        table = FareConfig(**THREE_ZONE_TABLE)
        _, states = run([
            make_journey("2023-01-02T12:00:00", 3, 3),
            make_journey("2023-01-02T12:30:00", 2, 3),
            make_journey("2023-01-02T13:00:00", 1, 1),
            make_journey("2023-01-02T13:30:00", 3, 1),
        ], table)

        assert [s.current_applicable_daily_cap for s in states] == [60, 100, 100, 150]
        assert [s.current_applicable_weekly_cap for s in states] == [300, 500, 500, 750]

    def test_three_zone_table_outgrows_fixed_list(self):
        table = FareConfig(**THREE_ZONE_TABLE, cap_precedence="fixed")
        _, state = process_journey(
            make_journey("2023-01-02T12:00:00", 3, 3), create_initial_account_state(), table
        )

        with pytest.raises(ConfigurationMissingError):
            process_journey(make_journey("2023-01-02T12:30:00", 2, 3), state, table)


class TestWeeklyCap:
    """Test weekly cap behaviour."""

    def test_weekly_cap_limits_total(self, config):
        journeys = [
            make_journey(f"2023-01-0{day} {hour}:00", 1, 2)
            for day in range(2, 9)
            for hour in (8, 9, 10)
        ]
        result = calculate_fares(journeys, config)

        assert result.total_fare == 600
        assert result.final_state.weekly_total == 600
        assert "Weekly cap applied" in result.transactions[17].explanation
        assert result.transactions[17].charged_fare == 10

    def test_weekly_cap_overrides_daily_cap(self, config):
        journeys = [
            make_journey(f"2023-01-0{day}T{hour}:00:00", 1, 2)
            for day in range(2, 8)
            for hour in (8, 9, 10)
        ]
        journeys.append(make_journey("2023-01-08T08:00:00", 1, 2))
        journeys.append(make_journey("2023-01-08T09:00:00", 1, 2))

        result = calculate_fares(journeys, config)
        last = result.transactions[-1]

        assert "Weekly cap applied" in last.explanation
        assert "Daily cap applied" not in last.explanation
        assert last.charged_fare == 0

    def test_daily_and_weekly_annotations_together(self, config):
        state = AccountState(
            daily_total=100,
            weekly_total=590,
            current_applicable_daily_cap=120,
            current_applicable_weekly_cap=600,
            current_daily_cap_combo="1-2",
            current_weekly_cap_combo="1-2",
            last_journey_date=date(2023, 1, 6),
            week_start=date(2023, 1, 2),
        )
        transaction, new_state = process_journey(make_journey("2023-01-06T08:00:00", 1, 2), state, config)

        assert transaction.charged_fare == 10
        assert transaction.explanation == (
            "Base fare: 35p (Daily cap applied: 20p charged) (Weekly cap applied: 10p charged)"
        )
        assert new_state.weekly_total == 600


class TestCalculateFares:
    """Test the sorting sequencing wrapper."""

    def test_empty_journey_list(self, config):
        result = calculate_fares([], config)
        assert result.total_fare == 0
        assert result.transactions == []
        assert result.final_state == create_initial_account_state()

    def test_multiple_journeys(self, config):
        result = calculate_fares([
            make_journey("2023-01-02 08:30", 1, 2),  # 35
            make_journey("2023-01-02 18:30", 2, 1),  # 35
            make_journey("2023-01-03 12:00", 1, 1),  # 25
        ], config)

        assert result.total_fare == 95
        assert len(result.transactions) == 3

    def test_sorts_by_timestamp(self, config):
        result = calculate_fares([
            make_journey("2023-01-03 12:00", 1, 1),
            make_journey("2023-01-02 08:30", 1, 2),
            make_journey("2023-01-02 18:30", 2, 1),
        ], config)

        assert [t.journey.date_time for t in result.transactions] == [
            "2023-01-02 08:30",
            "2023-01-02 18:30",
            "2023-01-03 12:00",
        ]

    def test_sort_compares_parsed_times_not_strings(self):
        ordered = sort_journeys([
            make_journey("2023-01-02 10:00", 1, 1),
            make_journey("2023-01-02T9:00:00", 1, 1),
        ])
        assert ordered[0].date_time == "2023-01-02T9:00:00"

    def test_sort_is_stable_for_equal_timestamps(self):
        first = make_journey("2023-01-02 08:30", 1, 2)
        second = make_journey("2023-01-02T08:30:00", 2, 2)
        assert sort_journeys([first, second]) == [first, second]
        assert sort_journeys([second, first]) == [second, first]

    def test_permutations_give_identical_result(self, config):
        journeys = [
            make_journey("2023-01-02 08:30", 1, 2),
            make_journey("2023-01-02 18:30", 2, 1),
            make_journey("2023-01-02 19:00", 2, 2),
            make_journey("2023-01-02 19:30", 1, 1),
            make_journey("2023-01-03 12:00", 1, 1),
        ]
        expected = calculate_fares(journeys, config)

        for ordering in permutations(journeys):
            assert calculate_fares(list(ordering), config) == expected

    def test_invalid_timestamp_aborts_batch(self, config):
        with pytest.raises(InvalidInputError):
            calculate_fares([
                make_journey("2023-01-02 08:30", 1, 2),
                make_journey("2023-01-02 99:99", 1, 2),
            ], config)

    def test_missing_configuration_aborts_batch(self, config):
        with pytest.raises(ConfigurationMissingError):
            calculate_fares([
                make_journey("2023-01-02 08:30", 1, 2),
                make_journey("2023-01-02 09:30", 2, 3),
            ], config)


class TestInvariants:
    """Test properties that hold for any sequence of journeys."""

    def generate_journeys(self, seed: int, count: int = 120):
        rng = random.Random(seed)
        start = datetime(2023, 1, 2)
        journeys = []
        # Distinct minutes, so chronological order is unambiguous
        for offset in rng.sample(range(16 * 24 * 60), count):
            moment = start + timedelta(minutes=offset)
            journeys.append(make_journey(
                moment.strftime("%Y-%m-%dT%H:%M:%S"),
                rng.choice((1, 2)),
                rng.choice((1, 2)),
            ))
        return journeys

    @pytest.mark.parametrize("seed", [1, 7, 42, 2023])
    def test_charges_and_totals_stay_within_caps(self, config, seed):
        journeys = sort_journeys(self.generate_journeys(seed))
        transactions, states = run(journeys, config)

        for transaction, state in zip(transactions, states):
            assert 0 <= transaction.charged_fare <= transaction.base_fare
            assert state.daily_total <= state.current_applicable_daily_cap
            assert state.weekly_total <= state.current_applicable_weekly_cap

    @pytest.mark.parametrize("seed", [3, 11, 99])
    def test_caps_only_escalate_within_period(self, config, seed):
        journeys = sort_journeys(self.generate_journeys(seed))
        _, states = run(journeys, config)

        for previous, current in zip(states, states[1:]):
            if current.last_journey_date == previous.last_journey_date:
                assert current.current_applicable_daily_cap >= previous.current_applicable_daily_cap
            if current.week_start == previous.week_start:
                assert current.current_applicable_weekly_cap >= previous.current_applicable_weekly_cap

    @pytest.mark.parametrize("seed", [5, 8])
    def test_shuffled_input_gives_identical_result(self, config, seed):
        journeys = self.generate_journeys(seed, count=60)
        shuffled = list(journeys)
        random.Random(seed).shuffle(shuffled)

        assert calculate_fares(shuffled, config) == calculate_fares(journeys, config)

    def test_total_fare_is_sum_of_charges(self, config):
        result = calculate_fares(self.generate_journeys(13), config)
        assert result.total_fare == sum(t.charged_fare for t in result.transactions)


class TestCalculatorInterface:
    """Test the calculator seam."""

    def test_calculators_implement_protocol(self, config):
        calc = get_fare_calculator(config)

        assert isinstance(calc, FareCalculatorInterface), \
            f"{calc.__class__.__name__} does not implement FareCalculatorInterface"
        assert isinstance(calc, CappedFareCalculator)

        journey = make_journey("2023-01-02T08:30:00", 1, 2)
        transaction, state = calc.process_journey(journey, create_initial_account_state())
        assert transaction.charged_fare == 35
        assert state.daily_total == 35

        response = calc.calculate_fares([journey])
        assert isinstance(response, FareResult)
        assert response.total_fare == 35
