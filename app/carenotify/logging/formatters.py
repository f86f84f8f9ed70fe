"""Structlog processors stamping app info and redacting recipient data."""

from typing import Any, Callable, Dict, FrozenSet, Optional

EventDict = Dict[str, Any]
Processor = Callable[[Any, str, EventDict], EventDict]

# Gateway credentials and the per-channel recipient addresses (phone
# numbers, push open ids) must never reach the logs.
SENSITIVE_PATTERNS: FrozenSet[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "credential",
        "phone",
        "open_id",
        "address",
    }
)


def add_app_info(app_name: str, app_version: str = "unknown") -> Processor:
    """Processor adding ``app_name`` and ``app_version`` to every entry."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app_name", app_name)
        event_dict.setdefault("app_version", app_version)
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: Optional[FrozenSet[str]] = None,
) -> Processor:
    """Processor replacing values whose key contains a sensitive pattern.

    Matching is case-insensitive on the key. Nested dicts, such as a logged
    ``target_user``, are masked the same way. ``None`` values are kept so
    that a missing credential stays visible in the logs.
    """
    patterns = SENSITIVE_PATTERNS | (additional_patterns or frozenset())

    def mask(data: Dict[str, Any]) -> Dict[str, Any]:
        masked = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if value is not None and any(p in lowered for p in patterns):
                masked[key] = mask_value
            elif isinstance(value, dict):
                masked[key] = mask(value)
            else:
                masked[key] = value
        return masked

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        return mask(event_dict)

    return processor
