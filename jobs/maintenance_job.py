# jobs/maintenance_job.py

from core.supabase_client import get_supabase_client
from core.logging_config import logger
from services.advertising import deactivate_expired_placements
from services.inventory import low_stock_items


def run() -> dict:
    """
    Nightly housekeeping:
    - switch off ad placements whose end_date has passed
    - log the stock rows at or below their minimum

    Also callable as a one-off cron job: `python -m jobs.maintenance_job`
    """
    client = get_supabase_client()
    if not client:
        raise RuntimeError("Supabase not configured")

    expired = deactivate_expired_placements(client)
    low_stock = low_stock_items(client)

    for item in low_stock:
        logger.warning(
            f"[maintenance] Low stock: {item['consumable_name']} "
            f"(park {item['park_id']}) {item['quantity']:g} <= {item['minimum_stock']:g}"
        )

    logger.info(f"[maintenance] Deactivated {expired} expired placements, {len(low_stock)} low-stock rows")
    return {"expired_placements": expired, "low_stock": len(low_stock)}


if __name__ == "__main__":
    run()
