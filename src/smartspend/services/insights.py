"""AI-generated spending insights.

A read-only consumer: it summarizes a ledger snapshot, asks a Gemini model
for a short structured insight, and returns ``None`` on any failure so the
caller can show "no insight available". It never touches the store.
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal, Optional, Protocol

import google.generativeai as genai
from pydantic import ValidationError
from sqlmodel import SQLModel

from ..config import BaseConfig
from ..logging_config import get_logger
from ..models import LedgerSnapshot
from .ledger_service import category_name

logger = get_logger(__name__)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class FinancialInsight(SQLModel):
    summary: str
    spending_trend: Literal["increasing", "decreasing", "stable"]
    actionable_tip: str


class InsightModel(Protocol):
    """The slice of ``genai.GenerativeModel`` this module relies on."""

    async def generate_content_async(self, contents: Any) -> Any:  # pragma: no cover - interface
        ...


def build_context(snapshot: LedgerSnapshot, *, window: int = BaseConfig.INSIGHT_TRANSACTION_WINDOW) -> str:
    """Render balances and the newest transactions as prompt context."""

    recent = [
        {
            "amount": txn.amount,
            "type": txn.type.value,
            "category": category_name(txn.category_id, snapshot.categories),
            "date": txn.date.isoformat(),
            "note": txn.note,
        }
        for txn in snapshot.transactions[:window]
    ]
    sources = ", ".join(f"{s.name}: {s.balance:.2f}" for s in snapshot.sources)
    return (
        f"Current Total Balance: {snapshot.total_balance:.2f}\n"
        f"Sources: {sources}\n"
        f"Recent Transactions:\n{json.dumps(recent, ensure_ascii=False)}"
    )


def build_prompt(snapshot: LedgerSnapshot, *, window: int = BaseConfig.INSIGHT_TRANSACTION_WINDOW) -> str:
    return (
        "You are a personal financial assistant. Analyze the provided financial data and "
        "provide insights.\n"
        "Respond with ONLY a JSON object in this exact format:\n"
        '{"summary": "one friendly sentence about recent spending", '
        '"spending_trend": "increasing" | "decreasing" | "stable", '
        '"actionable_tip": "one short, specific way to save money"}\n\n'
        f"Data:\n{build_context(snapshot, window=window)}"
    )


def parse_insight(text: str) -> Optional[FinancialInsight]:
    """Parse a model reply, tolerating code fences and camelCase keys."""

    cleaned = _FENCE.sub("", text).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}") + 1
    if start < 0 or end <= start:
        logger.warning("Insight reply contained no JSON object")
        return None
    try:
        data = json.loads(cleaned[start:end])
    except ValueError:
        logger.warning("Insight reply was not valid JSON")
        return None
    if not isinstance(data, dict):
        return None
    data.setdefault("spending_trend", data.pop("spendingTrend", None))
    data.setdefault("actionable_tip", data.pop("actionableTip", None))
    try:
        return FinancialInsight.model_validate(data)
    except ValidationError:
        logger.warning("Insight reply did not match the expected shape")
        return None


def _default_model(config: BaseConfig) -> Optional[InsightModel]:
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set; insights disabled")
        return None
    genai.configure(api_key=config.GEMINI_API_KEY)
    return genai.GenerativeModel(
        model_name=config.GEMINI_MODEL,
        generation_config={"temperature": 0.4, "response_mime_type": "application/json"},
    )


async def analyze_finances(
    snapshot: LedgerSnapshot,
    *,
    config: Optional[BaseConfig] = None,
    model: Optional[InsightModel] = None,
) -> Optional[FinancialInsight]:
    """Return an insight for the snapshot, or None when unavailable."""

    cfg = config or BaseConfig()
    model = model or _default_model(cfg)
    if model is None:
        return None

    try:
        response = await model.generate_content_async(
            build_prompt(snapshot, window=cfg.INSIGHT_TRANSACTION_WINDOW)
        )
        text = response.text
    except Exception:
        # Any service failure degrades to "no insight"; the ledger is unaffected.
        logger.error("Insight generation failed", exc_info=True)
        return None

    if not text:
        return None
    return parse_insight(text)
