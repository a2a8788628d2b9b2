"""
Form Controllers
Bind submitted values to a validation schema and dispatch a mutation
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Type

from pydantic import BaseModel, ValidationError

from account_portal.mutations.errors import FieldError, NormalizedError, field_errors, validation_failure
from account_portal.mutations.executor import MutationExecutor
from account_portal.mutations.state import Failed, MutationState

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class Navigator(Protocol):
    """Client-side navigation"""

    def push(self, path: str) -> None:
        ...


class RedirectRecorder:
    """Navigator that remembers where it was sent"""

    def __init__(self):
        self.location: Optional[str] = None
        self.history: List[str] = []

    def push(self, path: str) -> None:
        self.location = path
        self.history.append(path)


@dataclass
class FormView:
    """Everything the presentation layer needs to render a form"""
    status: str = "idle"
    is_pending: bool = False
    is_error: bool = False
    error: Optional[NormalizedError] = None
    field_errors: List[FieldError] = field(default_factory=list)
    redirect: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @property
    def error_message(self) -> Optional[str]:
        if not self.is_error:
            return None
        return self.error.message if self.error else UNKNOWN_ERROR_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "is_pending": self.is_pending,
            "is_error": self.is_error,
            "error_message": self.error_message,
            "error": self.error.to_dict() if self.error else None,
            "field_errors": [e.to_dict() for e in self.field_errors],
            "redirect": self.redirect,
            "data": self.data,
        }


class FormController:
    """
    Base form controller

    Subclasses set ``schema``, build ``self.executor`` and implement
    ``to_request``. Invalid input never reaches the executor.
    """

    schema: Type[BaseModel]

    def __init__(self, navigator: Optional[Navigator] = None):
        self.navigator = navigator
        self.redirect: Optional[str] = None
        self.field_errors: List[FieldError] = []
        self.validation_error: Optional[NormalizedError] = None
        self.executor: Optional[MutationExecutor] = None

    def validate(self, values: Mapping[str, Any], schema: Optional[Type[BaseModel]] = None) -> Optional[BaseModel]:
        """Validate locally; on failure record field errors and return None"""
        schema = schema or self.schema
        try:
            model = schema.model_validate(dict(values))
        except ValidationError as e:
            self.field_errors = field_errors(e)
            self.validation_error = validation_failure(e)
            logger.debug(f"{type(self).__name__} rejected input: {self.validation_error.message}")
            return None
        self.field_errors = []
        self.validation_error = None
        return model

    def to_request(self, model: BaseModel) -> Any:
        return model.model_dump(exclude_none=True)

    def submit(self, values: Mapping[str, Any]) -> bool:
        """
        Validate and, when valid, start the mutation

        Returns:
            bool: True when the mutation was started
        """
        model = self.validate(values)
        if model is None:
            return False
        self.redirect = None
        self.executor.execute(self.to_request(model))
        return True

    async def submit_and_wait(self, values: Mapping[str, Any]) -> FormView:
        if self.submit(values):
            await self.wait()
        return self.view()

    async def wait(self) -> None:
        await self.executor.wait()

    def navigate(self, path: str) -> None:
        self.redirect = path
        if self.navigator is not None:
            self.navigator.push(path)

    def success_data(self, state: MutationState) -> Optional[Dict[str, Any]]:
        return None

    def view(self) -> FormView:
        if self.field_errors:
            return FormView(
                status="invalid",
                is_error=True,
                error=self.validation_error,
                field_errors=list(self.field_errors),
            )
        state = self.executor.state
        return FormView(
            status=state.status,
            is_pending=self.executor.is_pending,
            is_error=isinstance(state, Failed),
            error=state.error if isinstance(state, Failed) else None,
            redirect=self.redirect,
            data=self.success_data(state),
        )

    def dispose(self) -> None:
        if self.executor is not None:
            self.executor.dispose()
