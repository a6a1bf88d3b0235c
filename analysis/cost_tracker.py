"""
LLM usage ledger.

Every completed ``ChatClient.chat`` call is booked against its model and the
pipeline operation that made it (onboarding chat, evidence analysis, brand
research). Rates and warning thresholds come from config/llm_pricing.yml.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

PRICING_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', 'llm_pricing.yml')
FALLBACK_MODEL = 'gpt-4o-mini'
TOKENS_PER_UNIT = 1_000_000

# Used when the YAML file is missing or unreadable (USD per 1M tokens)
BUILTIN_RATES = {
    'gpt-4o': {'input': 2.50, 'output': 10.00},
    'gpt-4o-mini': {'input': 0.15, 'output': 0.60},
    'claude-3-5-sonnet-20241022': {'input': 3.00, 'output': 15.00},
    'claude-3-5-haiku-20241022': {'input': 1.00, 'output': 5.00},
    'deepseek-chat': {'input': 0.14, 'output': 0.28},
}
BUILTIN_QUOTAS = {'warn_input_tokens': 100000, 'warn_output_tokens': 50000, 'warn_cost_usd': 1.00}


@dataclass
class UsageEntry:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    calls: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def add(self, prompt_tokens: int, completion_tokens: int):
        self.prompt_tokens += prompt_tokens
        self.completion_tokens += completion_tokens
        self.calls += 1


def load_pricing(path: str = PRICING_PATH) -> Tuple[Dict[str, Dict[str, float]], Dict[str, float]]:
    """(rates by model, quota thresholds) from ``path``, or the built-in tables."""
    if not os.path.exists(path):
        logger.warning(f"[COST] Pricing file {path} not found, using built-in rates")
        return BUILTIN_RATES, BUILTIN_QUOTAS
    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"[COST] Could not read pricing file: {e}")
        return BUILTIN_RATES, BUILTIN_QUOTAS
    return config.get('models') or BUILTIN_RATES, config.get('quotas') or BUILTIN_QUOTAS


class CostTracker:
    """Process-wide usage ledger; one shared instance."""

    _instance: Optional['CostTracker'] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._ready = False
            cls._instance = instance
        return cls._instance

    def __init__(self):
        if self._ready:
            return
        self._ready = True
        # Evidence analysis runs in background threads
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, str], UsageEntry] = {}
        self.rates, self.quotas = load_pricing()

    def record(self, model: str, prompt_tokens: int, completion_tokens: int, operation: str = 'chat'):
        with self._lock:
            entry = self._entries.setdefault((model, operation), UsageEntry())
            entry.add(prompt_tokens or 0, completion_tokens or 0)
        logger.debug(f"[COST] {operation} on {model}: {prompt_tokens} in / {completion_tokens} out")

    def rates_for(self, model: str) -> Dict[str, float]:
        if model in self.rates:
            return self.rates[model]
        # 'gpt-4o-mini-2024-07-18' must match 'gpt-4o-mini', not 'gpt-4o'
        prefixes = [known for known in self.rates if model.startswith(known)]
        if prefixes:
            return self.rates[max(prefixes, key=len)]
        logger.warning(f"[COST] No rates for {model}, billing as {FALLBACK_MODEL}")
        return self.rates.get(FALLBACK_MODEL, BUILTIN_RATES[FALLBACK_MODEL])

    def cost_of(self, model: str, entry: UsageEntry) -> float:
        rates = self.rates_for(model)
        return (entry.prompt_tokens * rates['input'] + entry.completion_tokens * rates['output']) / TOKENS_PER_UNIT

    def _snapshot(self) -> List[Tuple[str, str, UsageEntry]]:
        with self._lock:
            return [(model, op, UsageEntry(e.prompt_tokens, e.completion_tokens, e.calls))
                    for (model, op), e in self._entries.items()]

    def total_tokens(self) -> int:
        return sum(entry.total_tokens for _, _, entry in self._snapshot())

    def get_summary(self) -> Dict[str, Any]:
        """Usage and cost grouped by model and by operation, plus totals."""
        by_model: Dict[str, UsageEntry] = {}
        by_operation: Dict[str, Dict[str, Any]] = {}
        total_cost = 0.0

        for model, operation, entry in self._snapshot():
            cost = self.cost_of(model, entry)
            total_cost += cost
            merged = by_model.setdefault(model, UsageEntry())
            merged.prompt_tokens += entry.prompt_tokens
            merged.completion_tokens += entry.completion_tokens
            merged.calls += entry.calls
            op = by_operation.setdefault(operation, {'calls': 0, 'total_tokens': 0, 'cost_usd': 0.0})
            op['calls'] += entry.calls
            op['total_tokens'] += entry.total_tokens
            op['cost_usd'] += cost

        models = {
            model: {
                'prompt_tokens': e.prompt_tokens,
                'completion_tokens': e.completion_tokens,
                'total_tokens': e.total_tokens,
                'calls': e.calls,
                'cost_usd': self.cost_of(model, e),
            }
            for model, e in by_model.items()
        }
        return {
            'models': models,
            'operations': by_operation,
            'totals': {
                'prompt_tokens': sum(m['prompt_tokens'] for m in models.values()),
                'completion_tokens': sum(m['completion_tokens'] for m in models.values()),
                'total_tokens': sum(m['total_tokens'] for m in models.values()),
                'calls': sum(m['calls'] for m in models.values()),
                'cost_usd': total_cost,
            },
        }

    def check_quotas(self) -> List[str]:
        """Warnings for every threshold the totals exceed; each is also logged."""
        totals = self.get_summary()['totals']
        checks = (
            ('warn_input_tokens', totals['prompt_tokens'], 'Input tokens ({value:,}) exceeded threshold ({limit:,})'),
            ('warn_output_tokens', totals['completion_tokens'],
             'Output tokens ({value:,}) exceeded threshold ({limit:,})'),
            ('warn_cost_usd', totals['cost_usd'], 'Estimated cost (${value:.4f}) exceeded threshold (${limit:.2f})'),
        )
        warnings = [
            template.format(value=value, limit=self.quotas[key])
            for key, value, template in checks
            if key in self.quotas and value > self.quotas[key]
        ]
        for warning in warnings:
            logger.warning(f"[COST] {warning}")
        return warnings

    def reset(self):
        with self._lock:
            self._entries = {}
        logger.debug("[COST] Ledger cleared")


cost_tracker = CostTracker()
