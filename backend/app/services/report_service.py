# backend/app/services/report_service.py
"""
Informes de negocio enriquecidos con IA.

Cada informe obtiene primero los datos analíticos y, si hay cliente de OpenAI
configurado, pide al modelo un análisis en lenguaje natural. Si la IA no está
disponible o falla, se devuelven igualmente los datos en bruto con una nota.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Any

from openai import AsyncOpenAI, OpenAIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.schemas.analytics_schema import AIReportResponse, AIReportData
from app.services.analytics_service import analytics_service
from app.services.customer_service import customer_service

logger = logging.getLogger(__name__)

# ========================================
# PROMPTS DE SISTEMA
# ========================================

SALES_SYSTEM_PROMPT = """You are a professional business analyst specializing in e-commerce sales data analysis.
Generate concise, actionable insights from sales data. Focus on key performance indicators and trends,
growth opportunities and concerns, and specific recommendations for business decisions.
Use clear, executive-level language. Keep responses to 3-4 paragraphs maximum."""

CUSTOMER_SYSTEM_PROMPT = """You are a customer analytics expert for e-commerce platforms.
Analyze customer segmentation data and provide insights on behavior patterns, segment performance,
retention and acquisition strategies, and personalization.
Write in a strategic, data-driven tone suitable for marketing teams."""

INVENTORY_SYSTEM_PROMPT = """You are an inventory management specialist for e-commerce operations.
Analyze inventory data and provide operational insights on stock level alerts and reorder recommendations,
demand patterns, supply chain optimization and cost reduction.
Focus on actionable operational recommendations."""

TOP_PRODUCTS_SYSTEM_PROMPT = """You are a product performance analyst for an e-commerce platform.
Analyze top-performing products data and provide insights on product success factors, revenue optimization,
product mix and competitive positioning.
Provide strategic product management recommendations."""


def _as_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def build_openai_client(settings: Settings) -> Optional[AsyncOpenAI]:
    """Cliente de OpenAI, o None si no hay API key configurada."""
    if not settings.OPENAI_API_KEY:
        logger.warning("⚠️ IA: OPENAI_API_KEY no configurada, informes sin análisis de IA")
        return None
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL or None,
        timeout=60.0,
    )


class ReportService:
    """
    Genera los informes de ventas, clientes, inventario y productos top.
    """

    def __init__(self, openai_client: Optional[AsyncOpenAI], settings: Settings):
        self.openai_client = openai_client
        self.settings = settings

    @property
    def ai_enabled(self) -> bool:
        return self.openai_client is not None

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.openai_client.chat.completions.create(
            model=self.settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.settings.OPENAI_MAX_TOKENS,
            temperature=self.settings.OPENAI_TEMPERATURE,
        )
        return (response.choices[0].message.content or "").strip()

    async def _build(self, report_type: str, label: str, raw_data: Any, system_prompt: str, user_prompt: str) -> AIReportResponse:
        data = AIReportData(raw_data=raw_data, summary=f"{label} data retrieved successfully")
        if not self.ai_enabled:
            data.summary = f"Raw {label.lower()} data (AI insights unavailable)"
        else:
            try:
                data.ai_insights = await self._complete(system_prompt, user_prompt)
                data.summary = f"AI-generated {label.lower()} insights and recommendations"
                logger.info(f"🤖 IA: Informe '{report_type}' generado")
            except OpenAIError as e:
                logger.error(f"❌ IA: Falló el análisis del informe '{report_type}': {e}")
                data.error = f"AI analysis failed: {e}"

        return AIReportResponse(
            status="success",
            report_type=report_type,
            data=data,
            generated_at=datetime.now(timezone.utc),
            ai_enabled=self.ai_enabled,
        )

    # ========================================
    # INFORMES
    # ========================================

    async def sales_report(self, db: AsyncSession, start_date: Optional[str], end_date: Optional[str]) -> AIReportResponse:
        report = await analytics_service.sales(db, start_date, end_date, group_by="day")
        raw = report.model_dump(mode="json")
        prompt = (
            "Analyze the following sales analytics data and provide business insights:\n\n"
            f"{_as_json(raw)}\n\n"
            "Please provide:\n1. Key performance highlights and trends\n2. Areas of concern or opportunity\n"
            "3. Specific recommendations for business growth\n4. Actionable next steps for the management team"
        )
        return await self._build("sales", "Sales", raw, SALES_SYSTEM_PROMPT, prompt)

    async def customer_insights(self, db: AsyncSession) -> AIReportResponse:
        segments = await customer_service.get_spending_segments(db)
        raw = segments.model_dump(mode="json")
        prompt = (
            "Analyze the following customer segmentation data and provide insights:\n\n"
            f"{_as_json(raw)}\n\n"
            "Please provide:\n1. Customer behavior patterns and trends\n2. High-value segment opportunities\n"
            "3. Retention and acquisition strategies\n4. Personalization recommendations for each segment"
        )
        return await self._build("customers", "Customer", raw, CUSTOMER_SYSTEM_PROMPT, prompt)

    async def inventory_report(self, db: AsyncSession, alerts_only: bool = False) -> AIReportResponse:
        inventory = await analytics_service.inventory_status(db, alerts_only)
        raw = inventory.model_dump(mode="json")
        context = " (This data shows only products requiring immediate attention)" if alerts_only else ""
        prompt = (
            f"Analyze the following inventory status data{context} and provide operational insights:\n\n"
            f"{_as_json(raw)}\n\n"
            "Please provide:\n1. Immediate actions required for stock management\n2. Demand patterns and forecasting insights\n"
            "3. Supply chain optimization opportunities\n4. Cost reduction recommendations"
        )
        return await self._build("inventory", "Inventory", raw, INVENTORY_SYSTEM_PROMPT, prompt)

    async def top_products_report(
        self, db: AsyncSession, limit: int, sort_by: str, start_date: Optional[str], end_date: Optional[str]
    ) -> AIReportResponse:
        top = await analytics_service.top_products(db, limit, sort_by, start_date, end_date)
        raw = top.model_dump(mode="json")
        prompt = (
            f"Analyze the following top {limit} products data (sorted by {sort_by}) and provide strategic insights:\n\n"
            f"{_as_json(raw)}\n\n"
            "Please provide:\n1. Success factors driving top product performance\n2. Market trends and opportunities identified\n"
            "3. Product mix optimization recommendations\n4. Competitive positioning strategies"
        )
        return await self._build("top-products", "Top products", raw, TOP_PRODUCTS_SYSTEM_PROMPT, prompt)
