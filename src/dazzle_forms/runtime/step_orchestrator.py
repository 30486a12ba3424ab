"""
Multi-step form orchestration.

Partitions a sectioned schema into ordered steps, accumulates the data
submitted at each step, and hands the merged result to the host's submit
callback once the final step is submitted. Each step exposes a sub-schema
containing only its own section, so validation never enforces fields that
are not on screen.

Step state can be serialized into a signed token so a host can resume an
in-progress sequence (e.g. from a cookie).
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from dazzle_forms.config import FormsConfig
from dazzle_forms.errors import StepStateError
from dazzle_forms.logging import log_with_context
from dazzle_forms.runtime.ruleset import ValidationOutcome
from dazzle_forms.runtime.session import FormSession
from dazzle_forms.specs.schema import FormSchemaSpec, SectionSpec

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[dict[str, Any]], Any]


class StepState(BaseModel):
    """Serializable state for an in-progress multi-step form."""

    index: int = 0
    data: dict[str, Any] = Field(default_factory=dict)
    completed: bool = False
    started_at: float = Field(default_factory=time.time)


class StepOrchestrator:
    """Drives a schema through its steps."""

    def __init__(
        self,
        schema: FormSchemaSpec,
        on_submit: SubmitCallback | None = None,
        *,
        config: FormsConfig | None = None,
    ):
        self.schema = schema
        self.on_submit = on_submit
        self.config = config or FormsConfig()

        if schema.sections:
            self._steps = [schema.section_schema(i) for i in range(len(schema.sections))]
        else:
            # A flat schema is a single step
            self._steps = [schema]

        self._index = 0
        self._data: dict[str, Any] = {}
        self._completed = False
        self._started_at = time.time()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def is_terminal(self) -> bool:
        """True while the current step is the last one."""
        return self._index == len(self._steps) - 1

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def data(self) -> dict[str, Any]:
        """Copy of the data merged so far."""
        return dict(self._data)

    @property
    def current_schema(self) -> FormSchemaSpec:
        return self._steps[self._index]

    @property
    def current_section(self) -> SectionSpec | None:
        if not self.schema.sections:
            return None
        return self.schema.sections[self._index]

    @property
    def step_titles(self) -> list[str]:
        if not self.schema.sections:
            return [self.schema.form_title]
        return [section.title for section in self.schema.sections]

    @property
    def progress(self) -> float:
        """Percentage of steps reached, counting the current one."""
        if not self.schema.sections:
            return 100.0
        return (self._index + 1) / len(self._steps) * 100

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def advance(self, step_data: Mapping[str, Any]) -> bool:
        """
        Merge one step's data and move on.

        The step's own fields are replaced wholesale: a field of this step
        missing from ``step_data`` (e.g. hidden and cleared) is dropped from
        the merged result. On the last step the merged result is sent to
        the submit callback exactly once.

        Returns:
            True if this call completed the sequence
        """
        if self._completed:
            raise StepStateError("Form has already been submitted")

        for name in self.current_schema.field_names:
            if name not in step_data:
                self._data.pop(name, None)
        self._data.update(step_data)

        if not self.is_terminal:
            self._index += 1
            logger.debug("Advanced to step %d of %d", self._index + 1, len(self._steps))
            return False

        self._completed = True
        log_with_context(
            logger,
            logging.INFO,
            f"Form {self.schema.form_title!r} completed with {len(self._data)} fields",
            form=self.schema.form_title,
            fields=len(self._data),
        )
        if self.on_submit is not None:
            self.on_submit(dict(self._data))
        return True

    def retreat(self) -> None:
        """Go back one step, keeping everything entered so far."""
        if self._completed:
            raise StepStateError("Form has already been submitted")
        if self._index > 0:
            self._index -= 1
            logger.debug("Returned to step %d of %d", self._index + 1, len(self._steps))

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def open_session(self, **kwargs: Any) -> FormSession:
        """
        Session for the current step.

        The accumulated data seeds the step's values so revisiting a step
        shows what was entered before. Keyword arguments (registries,
        field types) pass through to FormSession.
        """
        kwargs.setdefault("config", self.config)
        return FormSession(self.current_schema, initial_data=self._data, **kwargs)

    async def submit_step(self, session: FormSession) -> ValidationOutcome:
        """Validate the current step's session and advance when it passes."""
        outcome, payload = await session.submit()
        if payload is not None:
            self.advance(payload)
        return outcome

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def snapshot_state(self) -> StepState:
        return StepState(
            index=self._index,
            data=dict(self._data),
            completed=self._completed,
            started_at=self._started_at,
        )

    @classmethod
    def restore(
        cls,
        schema: FormSchemaSpec,
        state: StepState,
        on_submit: SubmitCallback | None = None,
        *,
        config: FormsConfig | None = None,
    ) -> StepOrchestrator:
        """Rebuild an orchestrator from saved state, clamping the step index."""
        orchestrator = cls(schema, on_submit, config=config)
        orchestrator._index = max(0, min(state.index, orchestrator.step_count - 1))
        orchestrator._data = dict(state.data)
        orchestrator._completed = state.completed
        orchestrator._started_at = state.started_at
        return orchestrator


# =============================================================================
# Signed State Tokens
# =============================================================================


def sign_step_state(state: StepState, config: FormsConfig | None = None) -> str:
    """Serialize and sign a StepState.

    Returns:
        Base64-encoded payload (no padding) with HMAC-SHA256 signature appended.
    """
    key = (config or FormsConfig()).signing_key()
    payload = state.model_dump_json().encode("utf-8")
    b64_payload = base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")
    sig = hmac.new(key, payload, hashlib.sha256).hexdigest()
    return f"{b64_payload}.{sig}"


def verify_step_state(
    raw: str,
    config: FormsConfig | None = None,
    max_age: float | None = None,
) -> StepState | None:
    """Verify signature and deserialize a StepState.

    Returns:
        StepState if valid, None if tampered, malformed or older than max_age.
    """
    if not raw or "." not in raw:
        return None

    b64_payload, sig = raw.rsplit(".", 1)
    padded = b64_payload + "=" * (-len(b64_payload) % 4)
    try:
        payload = base64.urlsafe_b64decode(padded)
    except ValueError:
        return None

    key = (config or FormsConfig()).signing_key()
    expected_sig = hmac.new(key, payload, hashlib.sha256).hexdigest()
    if not sig.isascii() or not hmac.compare_digest(sig, expected_sig):
        logger.warning("Step state signature mismatch (tamper detected)")
        return None

    try:
        state = StepState.model_validate_json(payload)
    except ValidationError:
        return None

    if max_age is not None and time.time() - state.started_at > max_age:
        logger.debug("Step state expired")
        return None

    return state
