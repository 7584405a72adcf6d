"""
AI Advisory Client Module

Async REST client for a generative model (Gemini ``generateContent`` API)
that produces a non-authoritative credit risk opinion for a loan request and
short collection reminders for overdue installments.

Nothing here feeds back into loan status or schedules. Every failure path
(disabled, no key, transport error, malformed reply) degrades to a fallback
opinion or message instead of raising.
"""

import json
import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx

from .clients import Client
from .currency import Currency, format_currency, to_decimal
from .exceptions import CrediflowError

logger = logging.getLogger("crediflow.advisory")

# Share of monthly income an installment may take before risk goes up
AFFORDABILITY_THRESHOLD = Decimal('0.30')
HIGH_RISK_SCORE = 50


class AdvisoryUnavailable(CrediflowError):
    """Raised internally when the model cannot produce an answer"""


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(Enum):
    APPROVE = "approve"
    REJECT = "reject"
    MANUAL_REVIEW = "manual_review"


@dataclass
class RiskAnalysis:
    """Risk opinion for a loan request"""
    risk_level: RiskLevel
    score: int              # 0-100, 100 is safest
    reasoning: str
    recommendation: Recommendation
    source: str = "model"   # model, fallback or heuristic

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "score": self.score,
            "reasoning": self.reasoning,
            "recommendation": self.recommendation.value,
            "source": self.source,
        }

    @classmethod
    def from_model_reply(cls, data: Dict[str, Any]) -> 'RiskAnalysis':
        """Build from the JSON object returned by the model"""
        raw_score = float(data["score"])
        if not math.isfinite(raw_score):
            raise ValueError(f"non-finite risk score: {data['score']!r}")
        score = int(round(raw_score))
        return cls(
            risk_level=RiskLevel(str(data["riskLevel"]).lower()),
            score=min(max(score, 0), 100),
            reasoning=str(data["reasoning"]),
            recommendation=Recommendation(str(data["recommendation"]).lower()),
        )


RISK_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "riskLevel": {"type": "STRING", "enum": ["LOW", "MEDIUM", "HIGH"]},
        "score": {"type": "NUMBER", "description": "Risk score 0-100 where 100 is safest"},
        "reasoning": {"type": "STRING"},
        "recommendation": {"type": "STRING", "enum": ["APPROVE", "REJECT", "MANUAL_REVIEW"]},
    },
    "required": ["riskLevel", "score", "reasoning", "recommendation"],
}


class AdvisoryClient:
    """Async client for the generative advisory service"""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        timeout: float = 10.0,
        enabled: bool = True,
        currency: Currency = Currency.MXN,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.enabled = enabled
        self.currency = currency
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)

    async def analyze_loan_risk(
        self,
        client: Client,
        loan_amount: Union[Decimal, int, str],
        term: int
    ) -> RiskAnalysis:
        """
        Ask the model for a risk opinion on a loan request

        Returns:
            RiskAnalysis; the fallback opinion when the service is unavailable
        """
        amount = to_decimal(loan_amount)
        prompt = (
            "Act as an expert risk analyst for a microfinance institution.\n"
            "Analyze the following credit request and return a JSON analysis.\n\n"
            "Client data:\n"
            f"Name: {client.name}\n"
            f"Monthly income: {format_currency(client.monthly_income, self.currency)}\n"
            f"Internal credit score (0-100): {client.credit_score}\n\n"
            "Request:\n"
            f"Amount: {format_currency(amount, self.currency)}\n"
            f"Term: {term} installments\n\n"
            "Business rules:\n"
            f"- If the estimated installment exceeds {int(AFFORDABILITY_THRESHOLD * 100)}% "
            "of income, risk goes up.\n"
            f"- A score below {HIGH_RISK_SCORE} is high risk.\n"
        )

        try:
            text = await self._generate(prompt, response_schema=RISK_RESPONSE_SCHEMA)
            return RiskAnalysis.from_model_reply(json.loads(text))
        except (AdvisoryUnavailable, httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, OverflowError) as e:
            logger.warning(f"Risk analysis unavailable, using fallback: {e}")
            return self._fallback_analysis()

    async def generate_collection_message(
        self,
        client_name: str,
        days_overdue: int,
        amount_due: Union[Decimal, int, str]
    ) -> str:
        """
        Ask the model for a short collection reminder

        Returns:
            Reminder text; a plain template when the service is unavailable
        """
        amount = format_currency(to_decimal(amount_due), self.currency)
        prompt = (
            f"Write a short, professional and firm WhatsApp message in Spanish addressed to {client_name}.\n"
            f"They are {days_overdue} days late on a payment of {amount}.\n"
            "The tone must be respectful but urgent. Include appropriate emojis.\n"
            'Do not include placeholders such as "[Your Name]"; sign as "Equipo de CrediFlow".'
        )

        try:
            text = await self._generate(prompt)
            return text.strip()
        except (AdvisoryUnavailable, httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, OverflowError) as e:
            logger.warning(f"Collection message unavailable, using fallback: {e}")
            return self._fallback_message(client_name, amount)

    async def _generate(self, prompt: str, response_schema: Optional[Dict[str, Any]] = None) -> str:
        """Call generateContent and return the first candidate's text"""
        if not self.is_configured:
            raise AdvisoryUnavailable("advisory service not configured")

        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if response_schema:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        start = time.time()
        response = await self._client.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            json=body,
            headers={"x-goog-api-key": self.api_key},
        )
        latency_ms = (time.time() - start) * 1000
        logger.debug(f"Advisory call returned {response.status_code} in {latency_ms:.0f}ms")
        response.raise_for_status()

        data = response.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        if not text:
            raise AdvisoryUnavailable("empty reply from model")
        return text

    def _fallback_analysis(self) -> RiskAnalysis:
        return RiskAnalysis(
            risk_level=RiskLevel.MEDIUM,
            score=50,
            reasoning="The AI service could not be reached. Default analysis.",
            recommendation=Recommendation.MANUAL_REVIEW,
            source="fallback",
        )

    def _fallback_message(self, client_name: str, formatted_amount: str) -> str:
        return (
            f"Hola {client_name}, le recordamos que tiene un pago pendiente de "
            f"{formatted_amount}. Por favor regularice su situación."
        )

    async def aclose(self) -> None:
        """Close the HTTP client"""
        await self._client.aclose()


class MockAdvisoryClient(AdvisoryClient):
    """Offline client: deterministic heuristic opinions and template reminders"""

    def __init__(self, **kwargs):
        super().__init__(enabled=True, **kwargs)

    @property
    def is_configured(self) -> bool:
        return True

    async def analyze_loan_risk(self, client: Client, loan_amount, term: int) -> RiskAnalysis:
        amount = to_decimal(loan_amount)
        installment = amount / Decimal(max(term, 1))
        score = client.credit_score
        reasons = [f"internal score {client.credit_score}"]

        if client.monthly_income <= 0:
            score -= 30
            reasons.append("no declared income")
        elif installment / client.monthly_income > AFFORDABILITY_THRESHOLD:
            score -= 20
            reasons.append("installment above 30% of income")

        score = min(max(score, 0), 100)
        if score < HIGH_RISK_SCORE:
            level, recommendation = RiskLevel.HIGH, Recommendation.REJECT
        elif score < 70:
            level, recommendation = RiskLevel.MEDIUM, Recommendation.MANUAL_REVIEW
        else:
            level, recommendation = RiskLevel.LOW, Recommendation.APPROVE

        return RiskAnalysis(
            risk_level=level,
            score=score,
            reasoning="; ".join(reasons),
            recommendation=recommendation,
            source="heuristic",
        )

    async def generate_collection_message(self, client_name: str, days_overdue: int, amount_due) -> str:
        return self._fallback_message(client_name, format_currency(to_decimal(amount_due), self.currency))
