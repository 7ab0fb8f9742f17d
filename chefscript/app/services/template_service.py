# chefscript/app/services/template_service.py
"""
Template management.
Templates are stored scene documents; at most one per user is active.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from chefscript.app.domain.errors import TemplateNotFoundError
from chefscript.app.domain.models import TemplateRecord
from chefscript.app.domain.scene import Scene
from chefscript.app.infra.db.base import TemplateRepository
from chefscript.services.errors import InvalidInputError

logger = logging.getLogger(__name__)


class TemplateService:
    def __init__(self, repository: TemplateRepository):
        self._repo = repository

    def list_templates(self, user_id: str) -> list[TemplateRecord]:
        return self._repo.list_templates(user_id)

    def get_template(self, user_id: str, template_id: str) -> TemplateRecord:
        template = self._repo.get_template(user_id, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def save_template(
        self,
        user_id: str,
        name: str,
        canvas_data: dict[str, Any],
        template_id: Optional[str] = None,
        activate: bool = True,
    ) -> TemplateRecord:
        """
        Validate and store a scene document.

        The document is normalized through the scene model before it is
        written, so stored templates always deserialize. A saved template
        becomes the active one unless `activate` is False.

        Raises:
            InvalidInputError: If the name is empty
            InvalidSceneError: If the document is not a valid scene
            TemplateNotFoundError: If `template_id` does not exist
        """
        if not (name or "").strip():
            raise InvalidInputError("Template name is required")
        document = Scene.from_document(canvas_data).to_document()

        if template_id:
            self.get_template(user_id, template_id)

        saved = self._repo.save_template(
            user_id,
            TemplateRecord(id=template_id, name=name.strip(), canvas_data=document),
        )
        if activate and saved.id:
            self.activate(user_id, saved.id)
            saved.is_active = True
        return saved

    def delete_template(self, user_id: str, template_id: str) -> None:
        if not self._repo.delete_template(user_id, template_id):
            raise TemplateNotFoundError(template_id)
        logger.info("Template deleted: id=%s user=%s", template_id, user_id)

    def get_active_template(self, user_id: str) -> Optional[TemplateRecord]:
        return self._repo.get_active_template(user_id)

    def require_active_template(self, user_id: str) -> TemplateRecord:
        template = self.get_active_template(user_id)
        if template is None:
            raise TemplateNotFoundError()
        return template

    def activate(self, user_id: str, template_id: str) -> None:
        if not self._repo.activate_template(user_id, template_id):
            raise TemplateNotFoundError(template_id)
        logger.info("Template activated: id=%s user=%s", template_id, user_id)
