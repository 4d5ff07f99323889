from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..domain.errors import StartupError
from .settings import Settings


def _describe(e: ValidationError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
        for err in e.errors()
    ]


def load_settings(*, cli_overrides: dict[str, Any]) -> Settings:
    """Validate CLI-supplied values; there is no file or environment layer."""

    try:
        return Settings.model_validate(cli_overrides)
    except ValidationError as e:
        problems = _describe(e)
        summary = "; ".join(f"{p['field']}: {p['error']}" for p in problems)
        raise StartupError(
            code="INVALID_CONFIG",
            message=f"invalid configuration ({summary})",
            details={"errors": problems},
        ) from e
