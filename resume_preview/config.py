"""Persisted preview configuration (``resumes/config.json``)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class PreviewConfig(BaseModel):
    """Validated shape of the config file.

    ``visible_resumes`` of ``None`` means every document is shown.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    visible_resumes: Optional[List[str]] = Field(default=None, alias="visibleResumes")
    last_resume: Optional[str] = Field(default=None, alias="lastResume")
    external_paths: List[str] = Field(default_factory=list, alias="externalPaths")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def _coerce_raw_config(raw: Any) -> Dict[str, Any]:
    """Apply defaulting rules to loosely-typed JSON before validation."""
    if not isinstance(raw, dict):
        logger.warning("config_invalid_shape type=%s", type(raw).__name__)
        return {}

    data: Dict[str, Any] = {}

    visible = raw.get("visibleResumes")
    if isinstance(visible, list):
        data["visibleResumes"] = [item for item in visible if isinstance(item, str)]
    elif visible is not None:
        logger.warning("config_field_ignored field=visibleResumes")

    last = raw.get("lastResume")
    if isinstance(last, str):
        data["lastResume"] = last
    elif last is not None:
        logger.warning("config_field_ignored field=lastResume")

    external = raw.get("externalPaths")
    if isinstance(external, list):
        data["externalPaths"] = [item for item in external if isinstance(item, str)]
    elif external is not None:
        logger.warning("config_field_ignored field=externalPaths")

    return data


def parse_config(raw: Any) -> PreviewConfig:
    return PreviewConfig.model_validate(_coerce_raw_config(raw))


class ConfigStore:
    """Owns the in-memory config and rewrites the file wholesale on save."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._config = PreviewConfig()

    @property
    def config(self) -> PreviewConfig:
        return self._config.model_copy(deep=True)

    def load(self) -> PreviewConfig:
        if not self.path.exists():
            self._config = PreviewConfig()
            return self.config
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("config_load_failed path=%s error=%s", self.path, exc)
            self._config = PreviewConfig()
            return self.config
        self._config = parse_config(raw)
        return self.config

    def update(self, **changes: Any) -> PreviewConfig:
        """Apply field changes in memory without persisting."""
        merged = self._config.model_dump()
        merged.update(changes)
        self._config = PreviewConfig.model_validate(merged)
        return self.config

    def save(self, **changes: Any) -> bool:
        if changes:
            self.update(**changes)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._config.to_json_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("config_save_failed path=%s error=%s", self.path, exc)
            return False
        return True
