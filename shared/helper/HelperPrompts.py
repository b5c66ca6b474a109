"""Loads the prompt templates used by the chat layer."""

import os

from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ConfigurationError

REQUIRED_PROMPTS = ("orchestrator", "info_provider", "synthesis", "response_wrapper")


class HelperPrompts:
    """Reads every required prompt template once at startup.

    Templates live in PROMPTS_DIR (default: $ROOT_DIR/prompts) as <name>.md and
    use str.format placeholders.
    """

    def __init__(self, helper_config: HelperConfig, names: tuple[str, ...] = REQUIRED_PROMPTS) -> None:
        self.logging = helper_config.get_logger()
        self.prompts_dir = helper_config.get_string_val(
            "PROMPTS_DIR", default=os.path.join(helper_config.get_root_dir(), "prompts")
        )
        self._templates: dict[str, str] = {name: self._load(name) for name in names}
        self.logging.info("Loaded %d prompt templates from %s", len(self._templates), self.prompts_dir)

    def _load(self, name: str) -> str:
        """Read a single prompt file.

        Raises:
            ConfigurationError: If the file is missing or empty.
        """
        path = os.path.join(self.prompts_dir, f"{name}.md")
        if not os.path.isfile(path):
            raise ConfigurationError(f"Prompt template '{name}' not found at {path}.")
        with open(path, "r", encoding="utf-8") as handle:
            content = handle.read().strip()
        if not content:
            raise ConfigurationError(f"Prompt template '{name}' at {path} is empty.")
        return content

    def get(self, name: str) -> str:
        if name not in self._templates:
            raise ConfigurationError(f"Prompt template '{name}' was not loaded.")
        return self._templates[name]

    def render(self, name: str, **values) -> str:
        """Fill a template's placeholders.

        Raises:
            ConfigurationError: If the template references a placeholder that was not supplied.
        """
        try:
            return self.get(name).format(**values)
        except KeyError as e:
            raise ConfigurationError(f"Prompt template '{name}' expects placeholder {e}.")
