"""
Settings for the QnA Maker clients.
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, Any, Optional, Union


def resolve_env_vars(value: Any) -> Any:
    """Resolve environment variables in string values like ${VAR_NAME}."""
    if isinstance(value, str) and "${" in value:
        def replace_env_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, value)
    return value


def parse_score_threshold(value: Union[str, float, int, None]) -> float:
    """Convert a configured score threshold to a float; absent means 0.0."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid score threshold: {value!r}")


@dataclass
class QnAMakerSettings:
    """Configuration for the QnA Maker authoring and runtime endpoints."""
    endpoint: Optional[str] = None
    subscription_key: Optional[str] = None
    runtime_endpoint: Optional[str] = None
    endpoint_key: Optional[str] = None
    score_threshold: float = 0.0
    top: Optional[int] = None
    timeout: float = 30.0

    def __post_init__(self):
        """Resolve environment variables after initialization."""
        self.endpoint = resolve_env_vars(self.endpoint)
        self.subscription_key = resolve_env_vars(self.subscription_key)
        self.runtime_endpoint = resolve_env_vars(self.runtime_endpoint)
        self.endpoint_key = resolve_env_vars(self.endpoint_key)
        self.score_threshold = parse_score_threshold(resolve_env_vars(self.score_threshold))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "QnAMakerSettings":
        qna_config = config.get("qnamaker", {}) or {}
        return cls(
            endpoint=qna_config.get("endpoint"),
            subscription_key=qna_config.get("subscription_key") or os.getenv("QNAMAKER_SUBSCRIPTION_KEY"),
            runtime_endpoint=qna_config.get("runtime_endpoint"),
            endpoint_key=qna_config.get("endpoint_key") or os.getenv("QNAMAKER_ENDPOINT_KEY"),
            score_threshold=qna_config.get("score_threshold"),
            top=int(qna_config["top"]) if qna_config.get("top") is not None else None,
            timeout=float(qna_config.get("timeout", 30.0)),
        )
