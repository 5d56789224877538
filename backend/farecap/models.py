"""Models for the PearlCard fare calculation system."""

from datetime import date
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from farecap.exceptions import ConfigurationMissingError, InvalidInputError

ZoneCombination = str

CapPrecedence = Literal["cap_value", "fixed"]


class TimeOfTravel(str, Enum):
    """Pricing band a journey falls into."""
    PEAK = "peak"
    OFF_PEAK = "off-peak"


class Journey(BaseModel):
    """Model representing a single journey."""
    model_config = ConfigDict(frozen=True)

    date_time: str = Field(..., description="Journey timestamp, e.g. 2023-01-02T08:30:00")
    from_zone: int = Field(..., ge=1, description="Starting zone")
    to_zone: int = Field(..., ge=1, description="Ending zone")


class ZoneFare(BaseModel):
    """Peak and off-peak price for one zone combination, in pence."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    peak: int = Field(..., ge=0)
    off_peak: int = Field(..., ge=0, alias="off-peak")

    def for_time(self, time_of_travel: TimeOfTravel) -> int:
        if time_of_travel == TimeOfTravel.PEAK:
            return self.peak
        return self.off_peak


def parse_zone_combination(key: ZoneCombination) -> tuple:
    """Split a "from-to" key back into its two zone numbers."""
    parts = key.split("-")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidInputError(f"Malformed zone combination: {key!r}")
    return int(parts[0]), int(parts[1])


class FareConfig(BaseModel):
    """
    Fare table: base fares plus daily and weekly caps, keyed by zone combination.

    Every ordered pair of the zones mentioned anywhere in the table must be
    present in all three mappings. An incomplete table is rejected when the
    config is built, not when a journey first hits the gap.
    """
    model_config = ConfigDict(frozen=True)

    base_fares: Dict[ZoneCombination, ZoneFare]
    daily_caps: Dict[ZoneCombination, int]
    weekly_caps: Dict[ZoneCombination, int]
    cap_precedence: CapPrecedence = "cap_value"

    @model_validator(mode="after")
    def check_complete(self):
        tables = {
            "base fare": self.base_fares,
            "daily cap": self.daily_caps,
            "weekly cap": self.weekly_caps,
        }
        zones = set()
        for table in tables.values():
            for key in table:
                zones.update(parse_zone_combination(key))

        for from_zone in sorted(zones):
            for to_zone in sorted(zones):
                key = f"{from_zone}-{to_zone}"
                for name, table in tables.items():
                    if key not in table:
                        raise ConfigurationMissingError(key, name)
        return self

    def zones(self) -> List[int]:
        """Sorted list of zones this table covers."""
        zones = set()
        for key in self.base_fares:
            zones.update(parse_zone_combination(key))
        return sorted(zones)


class AccountState(BaseModel):
    """Rolling daily/weekly ledger for one rider."""
    model_config = ConfigDict(frozen=True)

    daily_total: int = 0
    weekly_total: int = 0
    current_applicable_daily_cap: int = 0
    current_applicable_weekly_cap: int = 0
    current_daily_cap_combo: Optional[ZoneCombination] = None
    current_weekly_cap_combo: Optional[ZoneCombination] = None
    last_journey_date: Optional[date] = None
    week_start: Optional[date] = None


class FareTransaction(BaseModel):
    """Outcome of charging one journey."""
    model_config = ConfigDict(frozen=True)

    journey: Journey
    base_fare: int = Field(..., description="Price before caps")
    charged_fare: int = Field(..., description="Price after daily and weekly caps")
    explanation: str
    daily_total_before: int
    weekly_total_before: int
    daily_total_after: int
    weekly_total_after: int


class FareResult(BaseModel):
    """Response model for fare calculation."""
    total_fare: int = Field(..., description="Sum of charged fares")
    transactions: List[FareTransaction] = Field(
        ...,
        description="Transactions in chronological processing order"
    )
    final_state: AccountState


class JourneyRequest(BaseModel):
    """Request model for fare calculation."""
    journeys: List[Journey] = Field(
        ...,
        min_length=1,
        description="Journeys to charge, in any order"
    )

    @field_validator('journeys')
    @classmethod
    def validate_journey_count(cls, v):
        from farecap.config import settings
        max_journeys = settings.get_max_journeys_per_request()
        if len(v) > max_journeys:
            raise ValueError(
                f"Maximum {max_journeys} journeys allowed per request, got {len(v)}"
            )
        return v


class FareRule(BaseModel):
    """Model representing one row of the fare table."""
    from_zone: int = Field(..., ge=1)
    to_zone: int = Field(..., ge=1)
    peak_fare: int = Field(..., ge=0)
    off_peak_fare: int = Field(..., ge=0)
    daily_cap: int = Field(..., ge=0)
    weekly_cap: int = Field(..., ge=0)

    @property
    def zone_combination(self) -> ZoneCombination:
        """Key this rule is stored under in a FareConfig."""
        return f"{self.from_zone}-{self.to_zone}"


class FareRuleUpdate(BaseModel):
    """Request model for changing one fare rule; omitted amounts are left as they are."""
    from_zone: int = Field(..., ge=1)
    to_zone: int = Field(..., ge=1)
    peak_fare: Optional[int] = Field(None, ge=0)
    off_peak_fare: Optional[int] = Field(None, ge=0)
    daily_cap: Optional[int] = Field(None, ge=0)
    weekly_cap: Optional[int] = Field(None, ge=0)
