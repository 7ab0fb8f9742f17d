# chefscript/app/infra/db/base.py
"""
Abstract repositories for the data store.
Services depend on these interfaces so tests can swap in stubs.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from chefscript.app.domain.models import ChargeResult, Style, TemplateRecord


class TokenRepository(ABC):
    """
    Per-user token balance.

    Implementations:
    - SupabaseTokenRepository: `users.tokens` column plus RPC functions
    """

    @abstractmethod
    def get_balance(self, user_id: str) -> int:
        """Return the current balance for the user."""
        pass

    @abstractmethod
    def charge(self, user_id: str, amount: int) -> ChargeResult:
        """
        Atomically subtract `amount` if, and only if, the balance covers it.

        Args:
            user_id: The user to charge
            amount: Tokens to subtract

        Returns:
            ChargeResult with `allowed` False when the balance was too low
        """
        pass

    @abstractmethod
    def credit(self, user_id: str, amount: int) -> int:
        """Add tokens and return the new balance."""
        pass


class TemplateRepository(ABC):
    @abstractmethod
    def list_templates(self, user_id: str) -> list[TemplateRecord]:
        """Templates for the user, newest first."""
        pass

    @abstractmethod
    def get_template(self, user_id: str, template_id: str) -> Optional[TemplateRecord]:
        pass

    @abstractmethod
    def save_template(self, user_id: str, template: TemplateRecord) -> TemplateRecord:
        """Insert when `template.id` is empty, update otherwise."""
        pass

    @abstractmethod
    def delete_template(self, user_id: str, template_id: str) -> bool:
        pass

    @abstractmethod
    def get_active_template(self, user_id: str) -> Optional[TemplateRecord]:
        pass

    @abstractmethod
    def activate_template(self, user_id: str, template_id: str) -> bool:
        """
        Mark one template active and clear the flag on every other template
        of the same user, in a single store-side operation.
        """
        pass


class StyleRepository(ABC):
    @abstractmethod
    def list_styles(self) -> list[Style]:
        pass

    @abstractmethod
    def create_style(self, user_id: str, style: Style) -> Style:
        pass
