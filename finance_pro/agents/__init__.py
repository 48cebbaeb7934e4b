"""AI Agents package."""

from finance_pro.agents.extraction_agent import (
    TransactionExtractionAgent,
    create_generative_model,
)

__all__ = [
    "TransactionExtractionAgent",
    "create_generative_model",
]
