"""Database models and setup for the PearlCard fare tables."""

import logging
import os
from typing import Dict, Optional

from sqlalchemy import create_engine, Column, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from farecap.models import FareConfig, FareRule, parse_zone_combination

logger = logging.getLogger(__name__)

Base = declarative_base()


class FareRuleDB(Base):
    """Database model for one zone combination's fares and caps (pence)."""
    __tablename__ = "fare_rules"

    id = Column(Integer, primary_key=True, index=True)
    from_zone = Column(Integer, nullable=False)
    to_zone = Column(Integer, nullable=False)
    peak_fare = Column(Integer, nullable=False)
    off_peak_fare = Column(Integer, nullable=False)
    daily_cap = Column(Integer, nullable=False)
    weekly_cap = Column(Integer, nullable=False)
    description = Column(String, nullable=True)

    # Direction matters: 1->2 and 2->1 are separate rows
    __table_args__ = (
        UniqueConstraint('from_zone', 'to_zone', name='_zone_pair_uc'),
    )

    def to_rule(self) -> FareRule:
        return FareRule(
            from_zone=self.from_zone,
            to_zone=self.to_zone,
            peak_fare=self.peak_fare,
            off_peak_fare=self.off_peak_fare,
            daily_cap=self.daily_cap,
            weekly_cap=self.weekly_cap,
        )

    def __repr__(self):
        return (
            f"<FareRule(from_zone={self.from_zone}, to_zone={self.to_zone}, "
            f"peak={self.peak_fare}, off_peak={self.off_peak_fare})>"
        )


class SystemConfigDB(Base):
    """Database model for storing system configuration."""
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, nullable=False)
    value = Column(String, nullable=False)
    description = Column(String, nullable=True)

    def __repr__(self):
        return f"<SystemConfig(key={self.key}, value={self.value})>"


DEFAULT_SYSTEM_CONFIG = {
    "max_journeys_per_request": ("200", "Maximum number of journeys accepted in one request"),
    "cap_precedence": ("cap_value", "How caps escalate between zone combinations: cap_value or fixed"),
}


class DatabaseManager:
    """Manager class for fare table storage."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database connection."""
        self.database_url = database_url or os.getenv(
            "DATABASE_URL",
            "sqlite:///./pearlcard_fare_tables.db"
        )

        connect_args = {"check_same_thread": False} if "sqlite" in self.database_url else {}
        self.engine = create_engine(self.database_url, connect_args=connect_args)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def init_default_fare_rules(self, config: Optional[FareConfig] = None):
        """
        Seed the fare table and system config if they are empty.

        Args:
            config: Fare table to seed with; the standard table if omitted
        """
        from farecap.config import default_fare_config, settings

        if config is None:
            config = default_fare_config(cap_precedence=settings.CAP_PRECEDENCE)

        session = self.get_session()
        try:
            if session.query(FareRuleDB).count() == 0:
                for combo, fares in config.base_fares.items():
                    from_zone, to_zone = parse_zone_combination(combo)
                    session.add(FareRuleDB(
                        from_zone=from_zone,
                        to_zone=to_zone,
                        peak_fare=fares.peak,
                        off_peak_fare=fares.off_peak,
                        daily_cap=config.daily_caps[combo],
                        weekly_cap=config.weekly_caps[combo],
                        description=f"Zone {from_zone} to Zone {to_zone}"
                    ))
                session.commit()
                logger.info("Initialized %d default fare rules", len(config.base_fares))

            for key, (value, description) in DEFAULT_SYSTEM_CONFIG.items():
                if key == "max_journeys_per_request":
                    value = str(settings.MAX_JOURNEYS_PER_REQUEST)
                elif key == "cap_precedence":
                    value = config.cap_precedence
                existing = session.query(SystemConfigDB).filter_by(key=key).first()
                if not existing:
                    session.add(SystemConfigDB(key=key, value=value, description=description))
                    logger.info("Initialized system configuration %s=%s", key, value)
            session.commit()
        finally:
            session.close()

    def get_all_fare_rules(self) -> Dict[tuple, FareRule]:
        """Retrieve all fare rules keyed by (from_zone, to_zone)."""
        session = self.get_session()
        try:
            rules = session.query(FareRuleDB).all()
            return {
                (rule.from_zone, rule.to_zone): rule.to_rule()
                for rule in rules
            }
        finally:
            session.close()

    def get_fare_rule(self, from_zone: int, to_zone: int) -> Optional[FareRule]:
        """Get the rule for one direction of travel, or None."""
        session = self.get_session()
        try:
            rule = session.query(FareRuleDB).filter_by(
                from_zone=from_zone,
                to_zone=to_zone
            ).first()
            return rule.to_rule() if rule else None
        finally:
            session.close()

    def get_fare_config(self) -> FareConfig:
        """
        Assemble the stored rules into a FareConfig.

        Raises:
            ConfigurationMissingError: If the stored table does not cover
                every pair of its zones
        """
        rules = self.get_all_fare_rules().values()
        precedence = self.get_config_value("cap_precedence") or "cap_value"
        return FareConfig(
            base_fares={
                rule.zone_combination: {"peak": rule.peak_fare, "off-peak": rule.off_peak_fare}
                for rule in rules
            },
            daily_caps={rule.zone_combination: rule.daily_cap for rule in rules},
            weekly_caps={rule.zone_combination: rule.weekly_cap for rule in rules},
            cap_precedence=precedence,
        )

    def get_available_zones(self) -> list:
        """Get all unique zones from the database."""
        session = self.get_session()
        try:
            rules = session.query(FareRuleDB).all()
            zones = set()
            for rule in rules:
                zones.add(rule.from_zone)
                zones.add(rule.to_zone)
            return sorted(zones)
        finally:
            session.close()

    def is_valid_zone(self, zone: int) -> bool:
        """Check if a zone number exists in the database."""
        return zone in self.get_available_zones()

    def update_fare_rule(
        self,
        from_zone: int,
        to_zone: int,
        peak_fare: Optional[int] = None,
        off_peak_fare: Optional[int] = None,
        daily_cap: Optional[int] = None,
        weekly_cap: Optional[int] = None,
    ) -> FareRule:
        """
        Update or create a fare rule.

        Amounts left as None keep their stored value. A new rule must be
        given all four amounts.

        Raises:
            ValueError: If a new rule is missing an amount
        """
        amounts = {
            "peak_fare": peak_fare,
            "off_peak_fare": off_peak_fare,
            "daily_cap": daily_cap,
            "weekly_cap": weekly_cap,
        }
        session = self.get_session()
        try:
            rule = session.query(FareRuleDB).filter_by(
                from_zone=from_zone,
                to_zone=to_zone
            ).first()

            if rule:
                for field, value in amounts.items():
                    if value is not None:
                        setattr(rule, field, value)
            else:
                missing = [field for field, value in amounts.items() if value is None]
                if missing:
                    raise ValueError(
                        f"New rule for Zone {from_zone} to Zone {to_zone} needs: {', '.join(missing)}"
                    )
                rule = FareRuleDB(
                    from_zone=from_zone,
                    to_zone=to_zone,
                    description=f"Zone {from_zone} to Zone {to_zone}",
                    **amounts
                )
                session.add(rule)

            session.commit()
            return rule.to_rule()
        finally:
            session.close()

    def get_config_value(self, key: str) -> Optional[str]:
        """Get a configuration value by key."""
        session = self.get_session()
        try:
            config = session.query(SystemConfigDB).filter_by(key=key).first()
            return config.value if config else None
        finally:
            session.close()

    def set_config_value(self, key: str, value: str, description: Optional[str] = None):
        """Create or overwrite a configuration value."""
        session = self.get_session()
        try:
            config = session.query(SystemConfigDB).filter_by(key=key).first()
            if config:
                config.value = value
            else:
                session.add(SystemConfigDB(key=key, value=value, description=description))
            session.commit()
        finally:
            session.close()


# Singleton instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get singleton database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
        _db_manager.init_default_fare_rules()
    return _db_manager
