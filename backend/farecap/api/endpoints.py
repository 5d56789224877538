"""API endpoints for fare calculation."""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import SQLAlchemyError

from farecap.exceptions import ConfigurationMissingError, InvalidInputError
from farecap.models import JourneyRequest, FareResult, FareRuleUpdate
from farecap.services import get_fare_calculator
from farecap.services.fare_calculator import FareCalculatorInterface
from farecap.config import settings
from farecap.database import get_db_manager
from farecap.cache import get_fare_config_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Fare Calculation"])


def get_calculator() -> FareCalculatorInterface:
    """
    Dependency injection for fare calculator.
    Binds a calculator to the current fare table.
    """
    try:
        config = settings.get_fare_config()
    except ConfigurationMissingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return get_fare_calculator(config)


@router.post("/calculate-fares", response_model=FareResult)
async def calculate_fares(
    request: JourneyRequest,
    calculator: FareCalculatorInterface = Depends(get_calculator)
) -> FareResult:
    """
    Calculate capped fares for a rider's journeys.

    Journeys may arrive in any order; they are charged chronologically.
    A single bad journey fails the whole request.

    Raises:
        HTTPException: 400 for an unparseable timestamp, 422 for a zone
            combination the fare table does not cover
    """
    try:
        return calculator.calculate_fares(request.journeys)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationMissingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Fare calculation failed")
        raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")


@router.get("/fare-rules")
async def get_fare_rules():
    """
    Get the fare table from the local datastore.

    Returns:
        Fares and caps per zone combination, plus zone and cap settings
    """
    db_manager = get_db_manager()
    rules_dict = db_manager.get_all_fare_rules()

    rules = []
    for (from_zone, to_zone), rule in sorted(rules_dict.items()):
        rules.append({
            **rule.model_dump(),
            "zone_combination": rule.zone_combination,
            "description": f"Zone {from_zone} to Zone {to_zone}"
        })

    available_zones = db_manager.get_available_zones()

    return {
        "rules": rules,
        "max_journeys_per_request": settings.get_max_journeys_per_request(),
        "cap_precedence": db_manager.get_config_value("cap_precedence"),
        "available_zones": available_zones,
        "total_zones": len(available_zones),
        "datastore": "SQLite Local Database"
    }


@router.put("/fare-rules")
async def update_fare_rule(update: FareRuleUpdate):
    """
    Create or change a fare rule in the local datastore.

    Returns:
        The stored fare rule
    """
    db_manager = get_db_manager()
    try:
        rule = db_manager.update_fare_rule(
            update.from_zone,
            update.to_zone,
            peak_fare=update.peak_fare,
            off_peak_fare=update.off_peak_fare,
            daily_cap=update.daily_cap,
            weekly_cap=update.weekly_cap,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Clear cache so the next calculation sees the new table
    get_fare_config_cache().invalidate()

    return {
        **rule.model_dump(),
        "message": "Fare rule updated successfully in local datastore"
    }


@router.get("/health")
async def health_check():
    """Health check endpoint including database status."""
    db_status = "healthy"
    try:
        db_manager = get_db_manager()
        rules_count = len(db_manager.get_all_fare_rules())
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        rules_count = 0

    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "datastore_status": db_status,
        "fare_rules_count": rules_count
    }
