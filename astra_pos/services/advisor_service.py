import json
import logging
from datetime import date
from typing import Any, List, Optional

from google import genai

from astra_pos.config import get_settings
from astra_pos.database import Database
from astra_pos.services.product_service import ProductService
from astra_pos.services.sale_service import SaleService

logger = logging.getLogger(__name__)


class AdvisorError(Exception):
    """Base class for advisor failures."""
    pass


class AdvisorNotConfiguredError(AdvisorError):
    """Exception raised when no Gemini API key is configured."""
    pass


class AdvisorProviderError(AdvisorError):
    """Exception raised when the text-generation provider fails."""
    pass


PROMPT_TEMPLATE = """
You are an expert business analyst for a small retail shop.
Analyze the following data to answer the user's question.
Provide concise, data-driven insights. Do not make up information.
If the data is insufficient to answer, state that.
Today's date is {today}.

DATA:
Products (Current Inventory):
{products}

Sales History:
{sales}

USER QUESTION:
"{query}"

YOUR ANALYSIS:
"""


def take_snapshot(database: Database) -> tuple[list[dict], list[dict]]:
    """Serialize the catalog and sale history for the advisor, as of one moment."""
    with database.locked():
        products = ProductService(database).list_products()
        sales = SaleService(database).list_sales()
    return (
        [p.model_dump(mode="json") for p in products],
        [s.model_dump(mode="json") for s in sales],
    )


class AdvisorService:
    """
    Thin wrapper around the Gemini text-generation API.

    The advisor only ever sees read-only JSON snapshots of the ledger; it
    has no access to the store itself.
    """

    def __init__(self, api_key: str = None, model: str = None, client: Any = None):
        settings = get_settings()
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def build_prompt(self, query: str, products: List[dict], sales: List[dict], today: Optional[date] = None) -> str:
        return PROMPT_TEMPLATE.format(
            today=(today or date.today()).isoformat(),
            products=json.dumps(products, indent=2, default=str),
            sales=json.dumps(sales, indent=2, default=str),
            query=query,
        )

    def generate_insights(self, query: str, products: List[dict], sales: List[dict]) -> str:
        """
        Answer ``query`` from the given snapshots.

        Raises:
            AdvisorNotConfiguredError: If no API key is set
            AdvisorProviderError: If the provider call fails or returns no text
        """
        if not self.configured:
            raise AdvisorNotConfiguredError(
                "The AI Assistant is not configured. A Gemini API key is required."
            )

        client = self._client or genai.Client(api_key=self.api_key)
        prompt = self.build_prompt(query, products, sales)

        try:
            response = client.models.generate_content(model=self.model, contents=prompt)
        except Exception as e:
            logger.error(f"Error generating insights from Gemini: {e}")
            raise AdvisorProviderError(f"Provider request failed: {e}") from e

        text = getattr(response, "text", None)
        if not text:
            raise AdvisorProviderError("Provider returned an empty response")

        return text
