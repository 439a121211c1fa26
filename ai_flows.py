"""
Prompt flows over an external chat model: customer chat, product
recommendations and sales-report insights.

The model is opaque. Every flow catches its failure, logs it and returns a
fallback instead of raising.
"""

import json
import logging
import re
from typing import Dict, Iterable, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

import settings
from catalog import CATEGORIES, featured_products
from schemas import ChatTurn, SalesReport

logger = logging.getLogger(__name__)

CHAT_FALLBACK = (
    "Sorry, I'm having trouble answering right now. "
    f"Please reach us on WhatsApp at {settings.STORE_PHONE} or email {settings.STORE_EMAIL}."
)
INSIGHTS_FALLBACK = "AI insights could not be generated at this time. Please try again later."

CHAT_SYSTEM = """You are a friendly and helpful customer service chatbot for "{store_name}", an online furniture store in {location}.
Your goal is to assist users with their questions about products, orders, and the store. Be conversational and welcoming.

Keep your responses concise and to the point.

The store is located in {location}.
The contact phone number is {phone} (also available on WhatsApp).
The email is {email}.
Custom orders can be discussed via WhatsApp.

Here is the store's product catalog:
---
{catalog}
---

Available categories: {categories}."""

RECOMMEND_PROMPT = """You are an expert furniture stylist. Based on the products a user has viewed and the products in their cart, recommend other products that match their style.

Product catalog:
{catalog}

Viewed Product IDs: {viewed}
Cart Product IDs: {cart}

Return a JSON array of product IDs that would be a good fit for the user. Only suggest product IDs from the catalog above, do not invent new IDs.
Products already in the cart or recently viewed should not be included in recommendations.
Consider the user's taste and aesthetic preferences, with a focus on products that complement the existing selections."""

INSIGHTS_PROMPT = """You are a business intelligence analyst for an online furniture store. Your task is to analyze the following sales data and provide actionable insights.

The currency is {currency}.

**Data Overview:**
- Total Revenue (from delivered orders): {total_revenue} {currency}
- Weekly Sales (last 8 weeks): {weekly_sales}
- Order Status Distribution: {order_status}
- Revenue by Category: {category_revenue}

**Analysis Task:**
Based on the data provided, generate a concise, bulleted list of key insights and actionable recommendations. Each point should start with a `*`. Focus on:
- Sales trends (e.g., growth, decline).
- Top-performing categories and potential opportunities.
- Order fulfillment efficiency (based on status distribution).
- Suggestions for marketing, inventory management, or product strategy.

Keep the insights clear and easy to understand for a business owner."""


def get_llm() -> Optional[BaseChatModel]:
    if not settings.OPENAI_API_KEY:
        return None
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(model=settings.AI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0.4)


def format_catalog(products: Iterable[Dict]) -> str:
    blocks = []
    for p in products:
        blocks.append(
            f"ID: {p['id']}\n"
            f"Name: {p.get('name')}\n"
            f"Description: {p.get('description')}\n"
            f"Price: {p.get('price')} {settings.CURRENCY}\n"
            f"Category: {p.get('category')}\n"
            f"In Stock: {p.get('stock', 0)}\n"
            f"Materials: {', '.join(p.get('materials') or []) or 'N/A'}\n"
            f"Sizes: {', '.join(p.get('sizes') or []) or 'N/A'}"
        )
    return "\n\n".join(blocks)


def _require(llm):
    if llm is None:
        raise RuntimeError("No AI model configured")
    return llm


def chat_reply(llm, products: List[Dict], history: List[ChatTurn], message: str) -> str:
    prompt = ChatPromptTemplate.from_messages([
        ("system", CHAT_SYSTEM),
        MessagesPlaceholder("history"),
        ("human", "{message}"),
    ])
    turns = [("human" if t.role == "user" else "ai", t.content) for t in history]
    try:
        chain = prompt | _require(llm) | StrOutputParser()
        reply = chain.invoke({
            "store_name": settings.STORE_NAME,
            "location": settings.STORE_LOCATION,
            "phone": settings.STORE_PHONE,
            "email": settings.STORE_EMAIL,
            "catalog": format_catalog(products),
            "categories": ", ".join(c["name"] for c in CATEGORIES),
            "history": turns,
            "message": message,
        })
    except Exception:
        logger.exception("Chat reply generation failed")
        return CHAT_FALLBACK
    return reply.strip() or CHAT_FALLBACK


def parse_id_list(text: str) -> List[str]:
    match = re.search(r"\[.*\]", text, re.DOTALL)
    if not match:
        raise ValueError(f"No JSON array in model output: {text[:80]!r}")
    data = json.loads(match.group(0))
    return [str(x) for x in data if isinstance(x, (str, int))]


def recommend_products(llm, products: List[Dict], viewed_ids: List[str], cart_ids: List[str], current_product_id: Optional[str] = None, limit: int = 5) -> List[Dict]:
    """Ask the model for product ids; keep only known ids not already seen."""
    known = {p["id"]: p for p in products}
    excluded = set(viewed_ids) | set(cart_ids)
    if current_product_id:
        excluded.add(current_product_id)
    prompt = ChatPromptTemplate.from_messages([("human", RECOMMEND_PROMPT)])
    try:
        chain = prompt | _require(llm) | StrOutputParser()
        raw = chain.invoke({
            "catalog": format_catalog(products),
            "viewed": json.dumps(viewed_ids),
            "cart": json.dumps(cart_ids),
        })
        ids = parse_id_list(raw)
    except Exception:
        logger.exception("Recommendation generation failed, using featured products")
        return featured_products(products, exclude_id=current_product_id, limit=limit)

    picks, seen = [], set()
    for pid in ids:
        if pid in known and pid not in excluded and pid not in seen:
            seen.add(pid)
            picks.append(known[pid])
    if not picks:
        return featured_products(products, exclude_id=current_product_id, limit=limit)
    return picks[:limit]


def split_insights(text: str) -> List[str]:
    """Split model output on its leading `*` bullet markers."""
    return [part.strip() for part in re.split(r"(?m)^\s*\*\s+", text) if part.strip()]


def report_insights(llm, report: SalesReport) -> List[str]:
    prompt = ChatPromptTemplate.from_messages([("human", INSIGHTS_PROMPT)])
    try:
        chain = prompt | _require(llm) | StrOutputParser()
        text = chain.invoke({
            "currency": settings.CURRENCY,
            "total_revenue": report.total_revenue,
            "weekly_sales": json.dumps([w.model_dump() for w in report.weekly_sales]),
            "order_status": json.dumps([s.model_dump() for s in report.order_status_counts]),
            "category_revenue": json.dumps([c.model_dump() for c in report.category_revenue]),
        })
    except Exception:
        logger.exception("Report insight generation failed")
        return [INSIGHTS_FALLBACK]
    return split_insights(text) or [INSIGHTS_FALLBACK]
