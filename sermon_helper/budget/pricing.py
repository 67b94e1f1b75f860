"""Model pricing in USD per 1000 tokens."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelPricing:
    input_per_1k: float
    output_per_1k: float


MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-4o-mini": ModelPricing(0.00015, 0.00060),
    "gpt-4o-mini-2024-07-18": ModelPricing(0.00015, 0.00060),
    "gpt-4o": ModelPricing(0.00250, 0.01000),
    "gpt-4o-2024-08-06": ModelPricing(0.00250, 0.01000),
    # legacy
    "gpt-4-turbo": ModelPricing(0.01000, 0.03000),
    "gpt-4-turbo-preview": ModelPricing(0.01000, 0.03000),
    "gpt-3.5-turbo": ModelPricing(0.00050, 0.00150),
    "gpt-3.5-turbo-0125": ModelPricing(0.00050, 0.00150),
}


def get_model_pricing(model: str) -> ModelPricing | None:
    return MODEL_PRICING.get(model)


def calculate_usage_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    """Cost of one call; unknown models cost 0."""
    pricing = get_model_pricing(model)
    if pricing is None:
        return 0.0
    return (tokens_in / 1000) * pricing.input_per_1k + (tokens_out / 1000) * pricing.output_per_1k
