from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from supabase import Client

from chefscript.app.domain.models import ChargeResult, Style, TemplateRecord
from chefscript.app.infra.db.base import StyleRepository, TemplateRepository, TokenRepository

logger = logging.getLogger(__name__)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _first_row(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data if isinstance(data, dict) else None


def _row_to_template(row: dict[str, Any]) -> TemplateRecord:
    return TemplateRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]) if row.get("user_id") else None,
        name=str(row.get("name") or ""),
        canvas_data=row.get("canvas_data") or {},
        is_active=bool(row.get("is_active")),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _row_to_style(row: dict[str, Any]) -> Style:
    return Style(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        custom_style_id=str(row.get("custom_style_id") or ""),
        thumbnail_url=row.get("thumbnail_url"),
        base_style=str(row.get("base_style") or "realistic_image"),
        created_at=_parse_datetime(row.get("created_at")),
    )


class SupabaseTokenRepository(TokenRepository):
    TABLE_NAME = "users"

    def __init__(self, client: Client):
        self._client = client

    def get_balance(self, user_id: str) -> int:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("tokens")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        row = _first_row(result.data)
        if row is None:
            logger.warning("Token balance requested for unknown user: %s", user_id)
            return 0
        return int(row.get("tokens") or 0)

    def charge(self, user_id: str, amount: int) -> ChargeResult:
        result = self._client.rpc(
            "charge_user_tokens",
            {"p_user_id": user_id, "p_amount": amount},
        ).execute()
        row = _first_row(result.data) or {}
        allowed = bool(row.get("allowed"))
        return ChargeResult(
            allowed=allowed,
            balance=int(row.get("balance") or 0),
            amount=amount if allowed else 0,
            reason=None if allowed else "Insufficient tokens",
        )

    def credit(self, user_id: str, amount: int) -> int:
        result = self._client.rpc(
            "add_tokens",
            {"p_user_id": user_id, "p_amount": amount},
        ).execute()
        data = result.data
        if isinstance(data, (int, float)):
            return int(data)
        row = _first_row(data) or {}
        return int(row.get("balance") or row.get("add_tokens") or 0)


class SupabaseTemplateRepository(TemplateRepository):
    TABLE_NAME = "templates"

    def __init__(self, client: Client):
        self._client = client

    def list_templates(self, user_id: str) -> list[TemplateRecord]:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_row_to_template(row) for row in result.data or []]

    def get_template(self, user_id: str, template_id: str) -> Optional[TemplateRecord]:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("user_id", user_id)
            .eq("id", template_id)
            .limit(1)
            .execute()
        )
        row = _first_row(result.data)
        return _row_to_template(row) if row else None

    def save_template(self, user_id: str, template: TemplateRecord) -> TemplateRecord:
        payload = {"name": template.name, "canvas_data": template.canvas_data}
        table = self._client.table(self.TABLE_NAME)
        if template.id:
            result = table.update(payload).eq("user_id", user_id).eq("id", template.id).execute()
        else:
            # is_active is only ever set through activate_template
            result = table.insert({**payload, "user_id": user_id, "is_active": False}).execute()

        row = _first_row(result.data)
        if row is None:
            raise LookupError(f"Template not saved: {template.id or template.name}")
        saved = _row_to_template(row)
        logger.info("Template saved: id=%s user=%s", saved.id, user_id)
        return saved

    def delete_template(self, user_id: str, template_id: str) -> bool:
        result = (
            self._client.table(self.TABLE_NAME)
            .delete()
            .eq("user_id", user_id)
            .eq("id", template_id)
            .execute()
        )
        return bool(result.data)

    def get_active_template(self, user_id: str) -> Optional[TemplateRecord]:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        row = _first_row(result.data)
        return _row_to_template(row) if row else None

    def activate_template(self, user_id: str, template_id: str) -> bool:
        result = self._client.rpc(
            "activate_template",
            {"p_user_id": user_id, "p_template_id": template_id},
        ).execute()
        return bool(result.data)


class SupabaseStyleRepository(StyleRepository):
    TABLE_NAME = "styles"

    def __init__(self, client: Client):
        self._client = client

    def list_styles(self) -> list[Style]:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [_row_to_style(row) for row in result.data or []]

    def create_style(self, user_id: str, style: Style) -> Style:
        result = (
            self._client.table(self.TABLE_NAME)
            .insert(
                {
                    "name": style.name,
                    "custom_style_id": style.custom_style_id,
                    "thumbnail_url": style.thumbnail_url,
                    "base_style": style.base_style,
                    "created_by": user_id,
                }
            )
            .execute()
        )
        row = _first_row(result.data)
        if row is None:
            raise LookupError(f"Style not saved: {style.name}")
        logger.info("Style saved: id=%s name=%s", row.get("id"), style.name)
        return _row_to_style(row)
