"""Error types raised by the fare engine."""


class FareEngineError(Exception):
    """Base class for all fare engine errors."""


class InvalidInputError(FareEngineError, ValueError):
    """A timestamp, date or zone key could not be parsed."""


class ConfigurationMissingError(FareEngineError, LookupError):
    """
    A zone combination has no entry in the fare table.

    Raised before any charge is computed, so the account state
    the caller holds is never partially updated.
    """

    def __init__(self, zone_combination: str, table: str):
        self.zone_combination = zone_combination
        self.table = table
        super().__init__(
            f"No {table} entry for zone combination {zone_combination}"
        )
