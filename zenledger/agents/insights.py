"""
Financial Insight Agent

DESIGN DECISION: The LLM only ever sees numbers the engine already
computed. It receives budgets, per-category spending and a short slice of
recent transactions, and answers with three short strings.

CRITICAL BOUNDARIES:
   - CAN: Comment on spending, suggest one concrete action
   - CANNOT: Change the ledger (the agent has no write path)
   - CANNOT: Block the app (any failure yields None, never an exception)

The response text is shown to the user as-is. Nothing in the engine reads it.
"""

import json
from decimal import Decimal
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from zenledger.config import GeminiSettings, get_settings
from zenledger.models.ledger import (
    Budget,
    Money,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)


class FinancialInsight(BaseModel):
    """What the model returns, validated before it reaches the user."""

    tip: str = Field(..., min_length=1, description="One-line core advice")
    analysis: str = Field(..., min_length=1, description="Short read of the current situation")
    recommendation: str = Field(..., min_length=1, description="A concrete next action")


class InsightRequest(BaseModel):
    """Everything the model is allowed to see."""

    budgets: list[Budget] = Field(default_factory=list)
    category_spend: dict[str, Money] = Field(
        default_factory=dict,
        description="Expense total per category"
    )
    recent_transactions: list[Transaction] = Field(
        default_factory=list,
        description="The most recently recorded transactions, oldest first"
    )


def build_insight_request(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    recent_limit: Optional[int] = None,
) -> InsightRequest:
    """
    Collect the context for an insight call.

    `recent_limit` defaults to LEDGER_INSIGHT_RECENT_TRANSACTIONS. Recent
    means last recorded, i.e. the tail of `transactions` in storage order.
    """
    if recent_limit is None:
        recent_limit = get_settings().ledger.insight_recent_transactions

    spend: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.type is TransactionType.EXPENSE:
            spend[tx.category] = spend.get(tx.category, Decimal("0")) + tx.amount

    recent = list(transactions[-recent_limit:]) if recent_limit > 0 else []

    return InsightRequest(
        budgets=list(budgets),
        category_spend=spend,
        recent_transactions=recent,
    )


def build_prompt(request: InsightRequest) -> str:
    payload = request.model_dump(mode="json", by_alias=True)
    return f"""You are a personal finance assistant inside a budgeting app.

Analyse the user's bookkeeping data below and give brief advice.

Budgets: {json.dumps(payload["budgets"], ensure_ascii=False)}
Spending by category: {json.dumps(payload["category_spend"], ensure_ascii=False)}
Recent transactions: {json.dumps(payload["recent_transactions"], ensure_ascii=False)}

Important:
- Only use the numbers given above; do not invent amounts
- Keep each field to one or two sentences

Respond with ONLY a JSON object in this exact format:
{{"tip": "one core piece of advice", "analysis": "current situation", "recommendation": "a specific action plan"}}"""


def parse_insight(text: str) -> Optional[FinancialInsight]:
    """Pull the JSON object out of a model reply. None if there isn't a valid one."""
    text = text.strip()
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None

    try:
        data = json.loads(text[start:end])
        return FinancialInsight.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("insight_response_unparseable", error=str(e))
        return None


class InsightAgent:
    """
    Gemini-backed generator of spending advice.

    RESPONSIBILITIES:
    - Turn an InsightRequest into a prompt
    - Call the model (retrying transient failures)
    - Validate the reply into a FinancialInsight
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
    ):
        """
        Args:
            settings: Gemini settings; read from the environment when omitted.
            model: Anything with an async `generate_content_async(prompt)`.
                   When given, the Gemini client is not configured at all.
        """
        if model is not None:
            self._settings = settings
            self._model = model
            return

        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return response.text

    async def generate(self, request: InsightRequest) -> Optional[FinancialInsight]:
        """
        Ask the model for an insight.

        Returns None on any failure: network, quota, empty or malformed reply.
        """
        if not request.category_spend and not request.recent_transactions:
            logger.info("insight_skipped_no_data")
            return None

        prompt = build_prompt(request)
        try:
            text = await self._generate(prompt)
        except Exception as e:
            logger.error("insight_generation_failed", error=str(e))
            return None

        if not text:
            logger.warning("insight_response_empty")
            return None

        return parse_insight(text)
