"""
Persistence of the active template specification.

The template the user last inspected or picked is kept as a small JSON file
so a restarted session can resume rendering without re-uploading.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from .exceptions import InvalidSpecificationError
from .field_spec import TemplateSpec, parse_template_spec

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "templateSpec"


class ActiveTemplateStore:
    """Stores one TemplateSpec as ``<directory>/<key>.json``."""

    def __init__(self, directory: Union[str, Path], key: str = DEFAULT_STORE_KEY):
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def save(self, spec: TemplateSpec) -> None:
        """
        Persist a template specification, replacing any previous one.

        Raises:
            OSError: If the file cannot be written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(spec.to_payload(), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved active template {spec.template_id} v{spec.version} to {self.path}")

    def load(self) -> Optional[TemplateSpec]:
        """Load the persisted specification, or None if there is none usable."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read active template from {self.path}: {e}")
            return None

        try:
            return parse_template_spec(raw)
        except InvalidSpecificationError as e:
            logger.warning(f"Ignoring invalid active template in {self.path}: {e}")
            return None

    def clear(self) -> bool:
        """Remove the persisted specification. Returns True if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Cleared active template at {self.path}")
        return True
