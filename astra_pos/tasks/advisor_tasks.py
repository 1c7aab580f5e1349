import logging

from astra_pos.tasks.celery_app import celery_app
from astra_pos.services.advisor_service import (
    AdvisorService,
    AdvisorNotConfiguredError,
    AdvisorProviderError,
)

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="generate_insights", max_retries=2)
def generate_insights(self, query: str, products: list, sales: list) -> dict:
    """
    Ask the advisor a question about a ledger snapshot.

    Runs outside the request so a slow provider never holds up the till.
    Provider errors are retried; once retries run out, or when the advisor
    is not configured, a failed result is returned instead of raising.

    Args:
        query: The user's question
        products: JSON snapshot of the catalog
        sales: JSON snapshot of the sale history

    Returns:
        Dictionary with the answer or the failure kind
    """
    logger.info(f"Generating insights (attempt {self.request.retries + 1})")

    try:
        text = AdvisorService().generate_insights(query, products, sales)
    except AdvisorNotConfiguredError as e:
        logger.warning("Advisor request rejected: no API key configured")
        return {"status": "failed", "error": "not_configured", "message": str(e)}
    except AdvisorProviderError as e:
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=10)
        logger.error(f"Advisor gave up after {self.request.retries + 1} attempts: {e}")
        return {"status": "failed", "error": "provider_error", "message": str(e)}

    return {"status": "success", "text": text}
