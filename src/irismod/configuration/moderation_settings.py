from typing import Any, Dict


class ModerationSettings:
    """Helper exposing typed accessors for the ``moderation`` config section.

    Provides a minimal explicit API (`get`, `as_dict`, and convenience
    properties) rather than the full mapping protocol.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping."""
        return self.data

    @property
    def default_mute_duration(self) -> str:
        return str(self.data.get("default_mute_duration") or "10m")

    @property
    def default_clear_amount(self) -> int:
        return int(self.data.get("default_clear_amount", 5))

    @property
    def max_clear_amount(self) -> int:
        return int(self.data.get("max_clear_amount", 100))

    @property
    def max_warning_threshold(self) -> int:
        return int(self.data.get("max_warning_threshold", 20))

    @property
    def warnings_page_size(self) -> int:
        return int(self.data.get("warnings_page_size", 10))

    @property
    def strict_dispatch(self) -> bool:
        """Raise on unknown command kinds instead of degrading to an internal error."""
        return bool(self.data.get("strict_dispatch", False))
