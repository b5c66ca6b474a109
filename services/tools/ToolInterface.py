from abc import ABC, abstractmethod

import pydantic
from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import KBError, ToolExecutionError
from shared.models.tools import ToolContext, ToolFailure, ToolOutcome, ToolSuccess


class ToolInterface(ABC):
    """Base class of every tool the information provider can call.

    Subclasses declare ``name``, ``description`` and a pydantic ``input_model``
    and implement ``_run``. ``invoke`` never raises: every failure is turned
    into a ToolFailure so one broken tool does not sink a batch.
    """

    name: str = ""
    description: str = ""
    input_model: type[BaseModel] = BaseModel

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_schema(self) -> dict:
        """
        Returns the tool declaration handed to the language model.

        Returns:
            dict: {"name", "description", "parameters"} with a JSON schema of the input model.
        """
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        for prop in parameters.get("properties", {}).values():
            prop.pop("title", None)
        return {"name": self.name, "description": self.description, "parameters": parameters}

    ##########################################
    ############### EXECUTION ################
    ##########################################

    @abstractmethod
    async def _run(self, args: BaseModel, context: ToolContext) -> str:
        """
        Executes the tool.

        Args:
            args (BaseModel): Validated arguments (an instance of input_model).
            context (ToolContext): Scope of the current chat request.

        Returns:
            str: Text handed back to the language model.

        Raises:
            ToolExecutionError: If the tool cannot produce a result.
        """
        pass

    async def invoke(self, raw_args: dict | None, context: ToolContext) -> ToolOutcome:
        try:
            args = self.input_model.model_validate(raw_args or {})
        except pydantic.ValidationError as e:
            self.logging.warning("Tool '%s' called with invalid arguments %s: %s", self.name, raw_args, e)
            return ToolFailure(tool=self.name, error=f"Invalid arguments: {e.errors(include_url=False)}")

        self.logging.info("Running tool '%s' with %s", self.name, args.model_dump(exclude_none=True))
        try:
            output = await self._run(args, context)
        except ToolExecutionError as e:
            self.logging.warning("Tool '%s' failed: %s", self.name, e.message)
            return ToolFailure(tool=self.name, error=e.message)
        except KBError as e:
            self.logging.error("Tool '%s' failed on a provider error: %s", self.name, e.message)
            return ToolFailure(tool=self.name, error=e.message)
        except Exception as e:
            self.logging.exception("Tool '%s' raised an unexpected error: %s", self.name, e)
            return ToolFailure(tool=self.name, error=f"Unexpected error: {e}")
        return ToolSuccess(tool=self.name, output=output)

    def fail(self, message: str) -> ToolExecutionError:
        return ToolExecutionError(self.name, message)
