"""
Cost tracking for Gemini API usage
"""

from typing import Any, Dict, Optional

from promptmotion.core import get_logger

logger = get_logger(__name__, component="cost_tracker")

# Gemini pricing (per 1M tokens)
# See: https://ai.google.dev/pricing
PRICING = {
    "gemini-3-pro-preview": {"input": 2.0, "output": 12.0},
    "gemini-3-flash-preview": {"input": 0.5, "output": 3.0},
    "gemini-flash-lite-latest": {"input": 0.075, "output": 0.30},
    "gemini-2.5-flash": {"input": 0.15, "output": 0.60},
}


class CostTracker:
    """Tracks token usage and costs for Gemini API calls"""

    def __init__(self):
        self.token_usage: Dict[str, Any] = {
            "input_tokens": 0,
            "output_tokens": 0,
            "total_cost": 0.0,
            "by_model": {},
        }

    def track_request(self, model_name: str, input_tokens: int, output_tokens: int) -> float:
        """Record one call's token counts; returns the cost of the call."""
        input_tokens = int(input_tokens or 0)
        output_tokens = int(output_tokens or 0)

        self.token_usage["input_tokens"] += input_tokens
        self.token_usage["output_tokens"] += output_tokens

        by_model = self.token_usage["by_model"].setdefault(
            model_name, {"input_tokens": 0, "output_tokens": 0, "calls": 0, "cost": 0.0}
        )
        by_model["input_tokens"] += input_tokens
        by_model["output_tokens"] += output_tokens
        by_model["calls"] += 1

        pricing = PRICING.get(model_name)
        if not pricing:
            return 0.0
        call_cost = (input_tokens / 1_000_000) * pricing["input"] + (output_tokens / 1_000_000) * pricing["output"]
        by_model["cost"] += call_cost
        self.token_usage["total_cost"] += call_cost
        return call_cost

    def track_usage(self, usage_metadata: Optional[Any], model_name: str) -> None:
        """Record usage from a response's `usage_metadata` (may be absent)."""
        if usage_metadata is None:
            return
        self.track_request(
            model_name=model_name,
            input_tokens=getattr(usage_metadata, "prompt_token_count", 0) or 0,
            output_tokens=getattr(usage_metadata, "candidates_token_count", 0) or 0,
        )

    def get_summary(self) -> Dict[str, Any]:
        """Token counts, costs, and breakdown by model"""
        return {
            "total_input_tokens": self.token_usage["input_tokens"],
            "total_output_tokens": self.token_usage["output_tokens"],
            "total_tokens": self.token_usage["input_tokens"] + self.token_usage["output_tokens"],
            "total_cost_usd": round(self.token_usage["total_cost"], 4),
            "by_model": {
                model: {
                    "calls": data["calls"],
                    "input_tokens": data["input_tokens"],
                    "output_tokens": data["output_tokens"],
                    "total_tokens": data["input_tokens"] + data["output_tokens"],
                    "cost_usd": round(data["cost"], 4),
                }
                for model, data in self.token_usage["by_model"].items()
            },
        }

    def log_summary(self) -> None:
        summary = self.get_summary()
        logger.info(
            f"💰 LLM usage: {summary['total_tokens']:,} tokens, ${summary['total_cost_usd']:.4f}",
            extra={"cost_summary": summary},
        )
