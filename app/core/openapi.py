"""OpenAPI metadata and customization utilities.

Enriches the generated schema with the ``X-API-Key`` security scheme, tag
descriptions, and the documented 429 response. Routes that do not take an
API key (health, public form delivery, sign-in) are exempted from the
global security requirement.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.schemas.forms import RateLimitErrorResponse

_TAGS = [
    {"name": "Forms", "description": "Owner endpoints: create, edit, publish, cache control."},
    {"name": "Public", "description": "Respondent endpoints: read and submit published forms."},
    {"name": "Auth", "description": "Credential checks (strictly rate limited)."},
    {"name": "Health", "description": "Liveness and API info."},
]

_UNAUTHENTICATED_MARKERS = ("/health", "/public/", "/auth/signin")


def _is_unauthenticated(path: str) -> bool:
    return path == "/api/v1" or any(marker in path for marker in _UNAUTHENTICATED_MARKERS)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        components.setdefault("schemas", {}).setdefault(
            "RateLimitErrorResponse",
            RateLimitErrorResponse.model_json_schema(by_alias=True),
        )

        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in _TAGS if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if _is_unauthenticated(path):
                    method_obj["security"] = []
                if path != "/health":
                    method_obj.setdefault("responses", {}).setdefault(
                        "429",
                        {
                            "description": "Rate limit exceeded",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/RateLimitErrorResponse"}
                                }
                            },
                        },
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
